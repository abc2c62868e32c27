"""
Medicine Requests — Service Layer

Request lifecycle: create (PENDING), accept, reject, cancel, complete,
fail. Each transition locks the request row, checks the acting user,
checks the transition table, hands the quantity effect to the
InventoryLedger, writes an audit entry and notifies the other party.
Everything runs in one transaction; a failure anywhere leaves no trace.

@file medicine_requests/services.py
"""

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_STATUS_CHANGE
from core.exceptions import (
    DuplicateRequestError,
    InsufficientQuantityError,
    InvalidStateTransition,
    MedicineExpiredError,
    ResourceNotFoundError,
    SelfRequestError,
    UnauthorizedActorError,
)
from core.services import AuditService
from medicines.models import Medicine
from medicines.services import InventoryLedger
from notifications.models import Notification
from notifications.services import NotificationService

from .models import MedicineRequest

logger = logging.getLogger('medshare')

Status = MedicineRequest.StatusChoices
NotificationType = Notification.TypeChoices

# Valid status transitions: from_status -> set of allowed to_status
REQUEST_TRANSITIONS = {
    Status.PENDING: {Status.ACCEPTED, Status.REJECTED, Status.CANCELLED, Status.FAILED},
    Status.ACCEPTED: {Status.COMPLETED, Status.FAILED, Status.REJECTED},
    Status.REJECTED: set(),
    Status.CANCELLED: set(),
    Status.COMPLETED: set(),
    Status.FAILED: set(),
}


def _assert_transition(request: MedicineRequest, new_status: str) -> None:
    allowed = REQUEST_TRANSITIONS.get(request.status, set())
    if new_status not in allowed:
        raise InvalidStateTransition(
            detail=f'Cannot transition request from {request.status} to {new_status}.',
        )


def _assert_donor(request: MedicineRequest, actor) -> None:
    if request.donor_id != actor.pk:
        raise UnauthorizedActorError(detail='Only the donor of this medicine can do this.')


def _assert_requester(request: MedicineRequest, actor) -> None:
    if request.requester_id != actor.pk:
        raise UnauthorizedActorError(detail='Only the requester can do this.')


def _lock_request(request_id) -> MedicineRequest:
    try:
        return MedicineRequest.objects.select_for_update().get(pk=request_id)
    except MedicineRequest.DoesNotExist:
        raise ResourceNotFoundError(detail='Request not found.')


def _apply_status(request: MedicineRequest, new_status: str, *, actor, **fields) -> str:
    """Persist the new status plus any response fields and audit the change."""
    old_status = request.status
    request.status = new_status
    for name, value in fields.items():
        setattr(request, name, value)
    request.save(update_fields=['status', *fields.keys(), 'updated_at'])
    AuditService.log(
        actor=actor,
        action=AUDIT_ACTION_STATUS_CHANGE,
        model_name='MedicineRequest',
        object_id=str(request.pk),
        old_values={'status': old_status},
        new_values={'status': new_status, 'quantity': request.quantity},
    )
    return old_status


class MedicineRequestService:
    """Request state machine."""

    @staticmethod
    @transaction.atomic
    def create_request(*, medicine_id, requester, quantity: int, message: str = '') -> MedicineRequest:
        """
        Open a PENDING request. Checks, in order: listing exists, requester
        is not the donor, no open request already, not expired, quantity
        fits in what remains. The listing row stays locked until commit
        so concurrent requests see each other's reservations.
        """
        try:
            medicine = Medicine.objects.select_for_update().get(pk=medicine_id)
        except Medicine.DoesNotExist:
            raise ResourceNotFoundError(detail='Medicine not found.')

        if medicine.donor_id == requester.pk:
            raise SelfRequestError()
        if MedicineRequest.objects.filter(
            medicine=medicine, requester=requester, status__in=MedicineRequest.OPEN_STATUSES,
        ).exists():
            raise DuplicateRequestError()
        if medicine.is_expired:
            raise MedicineExpiredError()

        remaining = InventoryLedger.remaining_quantity(medicine)
        if quantity is None or quantity <= 0:
            raise InsufficientQuantityError(detail='Quantity must be at least 1.')
        if quantity > remaining:
            raise InsufficientQuantityError(
                detail=f'Only {remaining} unit(s) remain; cannot request {quantity}.',
            )

        try:
            with transaction.atomic():
                request = MedicineRequest.objects.create(
                    medicine=medicine,
                    requester=requester,
                    donor_id=medicine.donor_id,
                    quantity=quantity,
                    message=message,
                    status=Status.PENDING,
                )
        except IntegrityError:
            raise DuplicateRequestError()

        InventoryLedger.refresh_status(medicine_id=medicine.pk)
        AuditService.log(
            actor=requester,
            action=AUDIT_ACTION_CREATE,
            model_name='MedicineRequest',
            object_id=str(request.pk),
            new_values={'status': request.status, 'quantity': quantity, 'medicine': str(medicine.pk)},
        )

        NotificationService.notify(
            recipient=medicine.donor,
            sender=requester,
            type=NotificationType.REQUEST_RECEIVED,
            title='New Medicine Request',
            message=f'{requester.get_full_name() or "Someone"} requested {quantity} of your {medicine.name}.',
            related_medicine=medicine,
            related_request=request,
        )
        NotificationService.notify(
            recipient=requester,
            type=NotificationType.REQUEST_SENT,
            title='Request Sent',
            message=f'Your request for {medicine.name} has been sent to the donor.',
            related_medicine=medicine,
            related_request=request,
            priority=Notification.PriorityChoices.LOW,
        )
        logger.info('Request %s created for medicine %s (%d units).', request.pk, medicine.pk, quantity)
        return request

    @staticmethod
    @transaction.atomic
    def accept_request(*, request_id, actor, response_message: str = '') -> MedicineRequest:
        request = _lock_request(request_id)
        _assert_donor(request, actor)
        _assert_transition(request, Status.ACCEPTED)

        _apply_status(
            request, Status.ACCEPTED, actor=actor,
            donor_response_message=response_message,
            responded_at=timezone.now(),
        )
        medicine = InventoryLedger.on_accept(medicine_id=request.medicine_id, request=request)

        NotificationService.notify(
            recipient=request.requester,
            sender=actor,
            type=NotificationType.REQUEST_ACCEPTED,
            title='Request Accepted',
            message=f'Your request for {medicine.name} was accepted.',
            related_medicine=medicine,
            related_request=request,
            priority=Notification.PriorityChoices.HIGH,
        )
        logger.info('Request %s accepted; medicine %s now has %d unit(s).', request.pk, medicine.pk, medicine.quantity)
        return request

    @staticmethod
    @transaction.atomic
    def reject_request(*, request_id, actor, response_message: str = '') -> MedicineRequest:
        """Reject a pending request, or take back an accepted one."""
        request = _lock_request(request_id)
        _assert_donor(request, actor)
        _assert_transition(request, Status.REJECTED)

        old_status = _apply_status(
            request, Status.REJECTED, actor=actor,
            donor_response_message=response_message,
            responded_at=timezone.now(),
        )
        if old_status == Status.ACCEPTED:
            medicine = InventoryLedger.on_reject_previously_accepted(
                medicine_id=request.medicine_id, request=request,
            )
        else:
            medicine = InventoryLedger.refresh_status(medicine_id=request.medicine_id)

        NotificationService.notify(
            recipient=request.requester,
            sender=actor,
            type=NotificationType.REQUEST_REJECTED,
            title='Request Rejected',
            message=f'Your request for {medicine.name} was declined.',
            related_medicine=medicine,
            related_request=request,
        )
        return request

    @staticmethod
    @transaction.atomic
    def cancel_request(*, request_id, actor) -> MedicineRequest:
        request = _lock_request(request_id)
        _assert_requester(request, actor)
        _assert_transition(request, Status.CANCELLED)

        _apply_status(request, Status.CANCELLED, actor=actor)
        medicine = InventoryLedger.on_cancel(medicine_id=request.medicine_id, request=request)

        NotificationService.notify(
            recipient=request.donor,
            sender=actor,
            type=NotificationType.REQUEST_CANCELLED,
            title='Request Cancelled',
            message=f'A request for your {medicine.name} has been cancelled.',
            related_medicine=medicine,
            related_request=request,
        )
        return request

    @staticmethod
    @transaction.atomic
    def complete_request(*, request_id, actor) -> MedicineRequest:
        request = _lock_request(request_id)
        _assert_donor(request, actor)
        _assert_transition(request, Status.COMPLETED)

        _apply_status(request, Status.COMPLETED, actor=actor, completed_at=timezone.now())
        medicine = InventoryLedger.on_complete(medicine_id=request.medicine_id, request=request)

        NotificationService.notify(
            recipient=request.requester,
            sender=actor,
            type=NotificationType.DONATION_COMPLETED,
            title='Donation Completed',
            message=f'Your request for {medicine.name} has been completed.',
            related_medicine=medicine,
            related_request=request,
        )
        logger.info('Request %s completed.', request.pk)
        return request

    @staticmethod
    @transaction.atomic
    def fail_request(*, request_id, actor, reason: str = '') -> MedicineRequest:
        request = _lock_request(request_id)
        _assert_donor(request, actor)
        _assert_transition(request, Status.FAILED)

        old_status = _apply_status(
            request, Status.FAILED, actor=actor,
            donor_response_message=reason,
            responded_at=timezone.now(),
        )
        medicine = InventoryLedger.on_fail(
            medicine_id=request.medicine_id,
            request=request,
            was_accepted=old_status == Status.ACCEPTED,
        )

        message = f'The donation of {medicine.name} could not be completed.'
        if reason:
            message += f' Reason: {reason}'

        NotificationService.notify(
            recipient=request.requester,
            sender=actor,
            type=NotificationType.DONATION_FAILED,
            title='Donation Failed',
            message=message,
            related_medicine=medicine,
            related_request=request,
        )
        return request

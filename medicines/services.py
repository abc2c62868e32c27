"""
Medicines — Service Layer

InventoryLedger is the single authority over a listing's quantity and
status. Request transitions call into it; views and serializers only read
through display_snapshot(). MedicineService handles listing create/delete
and the expiring-soon warnings; MedicineBrowseService builds the candidate set
handed to the ListingRanker.

Quantity model:
  quantity          units still advertised; drops on accept, restored on
                    reject/fail of an accepted request
  reserved          Σ quantity of PENDING requests
  remaining         max(0, quantity - reserved)

@file medicines/services.py
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Count, F, Q, Sum
from django.utils import timezone

from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_DELETE
from core.exceptions import (
    BusinessRuleViolation,
    InsufficientQuantityError,
    ResourceNotFoundError,
    UnauthorizedActorError,
)
from core.services import AuditService
from medicine_requests.models import MedicineRequest
from notifications.models import Notification
from notifications.services import NotificationService

from .models import Medicine

logger = logging.getLogger('medshare')

PENDING = MedicineRequest.StatusChoices.PENDING
ACCEPTED = MedicineRequest.StatusChoices.ACCEPTED
COMPLETED = MedicineRequest.StatusChoices.COMPLETED

LISTABLE_STATUSES = (Medicine.StatusChoices.AVAILABLE, Medicine.StatusChoices.REQUESTED)


def _request_summary(medicine_id, exclude_request_id=None) -> dict[str, int]:
    """Reservation and per-status counts from the live request set."""
    qs = MedicineRequest.objects.filter(medicine_id=medicine_id)
    if exclude_request_id is not None:
        qs = qs.exclude(pk=exclude_request_id)
    return qs.aggregate(
        reserved_quantity=Sum('quantity', filter=Q(status=PENDING), default=0),
        pending_count=Count('id', filter=Q(status=PENDING)),
        accepted_count=Count('id', filter=Q(status=ACCEPTED)),
        completed_count=Count('id', filter=Q(status=COMPLETED)),
    )


def _summary_from(medicine: Medicine) -> dict[str, int]:
    if hasattr(medicine, 'reserved_quantity'):
        return {
            'reserved_quantity': medicine.reserved_quantity,
            'pending_count': medicine.pending_count,
            'accepted_count': medicine.accepted_count,
            'completed_count': medicine.completed_count,
        }
    return _request_summary(medicine.pk)


class InventoryLedger:
    """Quantity and status bookkeeping for listings."""

    @staticmethod
    def with_reservations(queryset):
        """Annotate a Medicine queryset with the fields display_snapshot() reads."""
        return queryset.annotate(
            reserved_quantity=Sum(
                'requests__quantity', filter=Q(requests__status=PENDING), default=0,
            ),
            pending_count=Count('requests', filter=Q(requests__status=PENDING)),
            accepted_count=Count('requests', filter=Q(requests__status=ACCEPTED)),
            completed_count=Count('requests', filter=Q(requests__status=COMPLETED)),
        )

    @staticmethod
    def remaining_quantity(medicine: Medicine, exclude_request_id=None) -> int:
        if exclude_request_id is None:
            reserved = _summary_from(medicine)['reserved_quantity']
        else:
            reserved = _request_summary(medicine.pk, exclude_request_id)['reserved_quantity']
        return max(0, medicine.quantity - reserved)

    @staticmethod
    def derive_display_status(
        medicine: Medicine,
        remaining: int,
        has_open_requests: bool,
        *,
        fully_donated: bool = False,
        today=None,
    ) -> str:
        """
        Fixed precedence: expiry, then stock, then pending interest.

        fully_donated marks a listing whose stock went entirely to
        completed requests; it is reported as DONATED rather than
        STOCK_FINISHED.
        """
        today = today or timezone.localdate()
        if medicine.expiry <= today:
            return Medicine.StatusChoices.EXPIRED
        if remaining == 0:
            if fully_donated:
                return Medicine.StatusChoices.DONATED
            return Medicine.StatusChoices.STOCK_FINISHED
        if has_open_requests:
            return Medicine.StatusChoices.REQUESTED
        return Medicine.StatusChoices.AVAILABLE

    @classmethod
    def _status_for(cls, medicine: Medicine, summary: dict[str, int]) -> tuple[int, str]:
        remaining = max(0, medicine.quantity - summary['reserved_quantity'])
        fully_donated = (
            medicine.quantity == 0
            and summary['pending_count'] == 0
            and summary['accepted_count'] == 0
            and summary['completed_count'] > 0
        )
        status = cls.derive_display_status(
            medicine,
            remaining,
            summary['pending_count'] > 0,
            fully_donated=fully_donated,
        )
        return remaining, status

    @classmethod
    def display_snapshot(cls, medicine: Medicine) -> tuple[int, str]:
        """(remaining, status) as the ledger would compute them right now."""
        return cls._status_for(medicine, _summary_from(medicine))

    @classmethod
    @transaction.atomic
    def refresh_status(cls, *, medicine_id) -> Medicine:
        """Recompute the stored status from quantity, expiry and live requests."""
        medicine = Medicine.objects.select_for_update().get(pk=medicine_id)
        _, status = cls._status_for(medicine, _request_summary(medicine_id))
        if status != medicine.status:
            logger.debug('Medicine %s status %s -> %s.', medicine_id, medicine.status, status)
            medicine.status = status
            medicine.save(update_fields=['status', 'updated_at'])
        return medicine

    @staticmethod
    @transaction.atomic
    def expire_overdue(today=None) -> int:
        """
        Bulk form of the expiry rule in derive_display_status(): every
        listing with expiry <= today becomes EXPIRED, whatever its stock.
        """
        today = today or timezone.localdate()
        count = (
            Medicine.objects
            .filter(expiry__lte=today)
            .exclude(status=Medicine.StatusChoices.EXPIRED)
            .update(status=Medicine.StatusChoices.EXPIRED, updated_at=timezone.now())
        )
        if count:
            logger.info('Expired %d overdue listing(s).', count)
        return count

    @classmethod
    @transaction.atomic
    def on_accept(cls, *, medicine_id, request: MedicineRequest) -> Medicine:
        """
        Turn a pending reservation into a real decrement.

        The decrement is a conditional UPDATE on (version, quantity >= n);
        a lost race re-reads and retries up to LEDGER_MAX_RETRIES times,
        after which the allocation is reported as insufficient.
        """
        amount = request.quantity
        for attempt in range(1, settings.LEDGER_MAX_RETRIES + 1):
            medicine = Medicine.objects.select_for_update().get(pk=medicine_id)
            available = cls.remaining_quantity(medicine, exclude_request_id=request.pk)
            if amount > available:
                raise InsufficientQuantityError(
                    detail=f'Only {available} unit(s) remain; cannot allocate {amount}.',
                )
            updated = Medicine.objects.filter(
                pk=medicine_id, version=medicine.version, quantity__gte=amount,
            ).update(
                quantity=F('quantity') - amount,
                version=F('version') + 1,
                updated_at=timezone.now(),
            )
            if updated:
                return cls.refresh_status(medicine_id=medicine_id)
            logger.warning(
                'Concurrent update on medicine %s (attempt %d/%d).',
                medicine_id, attempt, settings.LEDGER_MAX_RETRIES,
            )
        raise InsufficientQuantityError(
            detail='The listing changed while allocating; please try again.',
        )

    @classmethod
    @transaction.atomic
    def on_reject_previously_accepted(cls, *, medicine_id, request: MedicineRequest) -> Medicine:
        """Give back the units taken by on_accept for this request."""
        Medicine.objects.filter(pk=medicine_id).update(
            quantity=F('quantity') + request.quantity,
            version=F('version') + 1,
            updated_at=timezone.now(),
        )
        return cls.refresh_status(medicine_id=medicine_id)

    @classmethod
    def on_cancel(cls, *, medicine_id, request: MedicineRequest) -> Medicine:
        return cls.refresh_status(medicine_id=medicine_id)

    @classmethod
    def on_complete(cls, *, medicine_id, request: MedicineRequest) -> Medicine:
        # Units were already taken at acceptance.
        return cls.refresh_status(medicine_id=medicine_id)

    @classmethod
    def on_fail(cls, *, medicine_id, request: MedicineRequest, was_accepted: bool) -> Medicine:
        if was_accepted:
            return cls.on_reject_previously_accepted(medicine_id=medicine_id, request=request)
        return cls.refresh_status(medicine_id=medicine_id)


class MedicineService:
    """Listing creation, deletion and expiring-soon warnings."""

    @staticmethod
    @transaction.atomic
    def create_medicine(*, donor, quantity: int, expiry, **fields) -> Medicine:
        if quantity is None or quantity < 1:
            raise BusinessRuleViolation(detail='Quantity must be at least 1.')
        if expiry <= timezone.localdate():
            raise BusinessRuleViolation(detail='Expiry date must be in the future.')

        medicine = Medicine.objects.create(
            donor=donor,
            quantity=quantity,
            original_quantity=quantity,
            expiry=expiry,
            pickup_address=donor.full_address,
            status=Medicine.StatusChoices.AVAILABLE,
            **fields,
        )
        AuditService.log(
            actor=donor,
            action=AUDIT_ACTION_CREATE,
            model_name='Medicine',
            object_id=str(medicine.pk),
            new_values=AuditService.snapshot(medicine),
        )
        logger.info('Medicine %s listed by %s (%d units).', medicine.pk, donor.pk, quantity)
        return medicine

    @staticmethod
    @transaction.atomic
    def delete_medicine(*, medicine_id, actor) -> None:
        try:
            medicine = Medicine.objects.select_for_update().get(pk=medicine_id)
        except Medicine.DoesNotExist:
            raise ResourceNotFoundError(detail='Medicine not found.')
        if medicine.donor_id != actor.pk:
            raise UnauthorizedActorError(detail='Only the donor can delete this listing.')
        if medicine.requests.filter(status__in=[PENDING, ACCEPTED]).exists():
            raise BusinessRuleViolation(
                detail='Listing has open requests; resolve them before deleting.',
            )

        snapshot = AuditService.snapshot(medicine)
        medicine.delete()
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_DELETE,
            model_name='Medicine',
            object_id=str(medicine_id),
            old_values=snapshot,
        )

    @staticmethod
    @transaction.atomic
    def notify_expiring_listings(days: int | None = None) -> int:
        """
        Warn donors about listable medicines expiring within `days`.
        A listing is warned about at most once.
        """
        days = settings.EXPIRY_WARNING_DAYS if days is None else days
        today = timezone.localdate()
        already_warned = Notification.objects.filter(
            type=Notification.TypeChoices.MEDICINE_EXPIRING,
            related_medicine__isnull=False,
        ).values('related_medicine_id')
        expiring = (
            Medicine.objects
            .filter(
                status__in=LISTABLE_STATUSES,
                expiry__gt=today,
                expiry__lte=today + timedelta(days=days),
            )
            .exclude(pk__in=already_warned)
            .select_related('donor')
        )

        sent = 0
        for medicine in expiring:
            NotificationService.notify(
                recipient=medicine.donor,
                type=Notification.TypeChoices.MEDICINE_EXPIRING,
                title='Medicine expiring soon',
                message=(
                    f'Your listing "{medicine.name}" expires on '
                    f'{medicine.expiry:%d %b %Y}.'
                ),
                related_medicine=medicine,
                priority=Notification.PriorityChoices.HIGH,
            )
            sent += 1
        return sent


class MedicineBrowseService:
    """Candidate selection for the browse page."""

    @staticmethod
    def candidates(*, user, category: str | None = None, search: str | None = None):
        qs = (
            Medicine.objects
            .exclude(donor=user)
            .filter(expiry__gt=timezone.localdate(), status__in=LISTABLE_STATUSES)
            .select_related('donor')
        )
        if category:
            qs = qs.filter(category=category)
        if search:
            qs = qs.filter(
                Q(name__icontains=search)
                | Q(description__icontains=search)
                | Q(manufacturer__icontains=search)
            )
        return InventoryLedger.with_reservations(qs)

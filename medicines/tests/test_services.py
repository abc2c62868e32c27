"""
Tests — InventoryLedger, MedicineService and MedicineBrowseService.

@file medicines/tests/test_services.py
"""

from datetime import timedelta
from unittest import mock

import pytest
from django.utils import timezone

from core.exceptions import (
    BusinessRuleViolation,
    InsufficientQuantityError,
    ResourceNotFoundError,
    UnauthorizedActorError,
)
from core.models import AuditLog
from medicine_requests.models import MedicineRequest
from medicines.models import Medicine
from medicines.services import InventoryLedger, MedicineBrowseService, MedicineService
from medicines.tasks import expire_overdue_listings_task, notify_expiring_listings_task
from notifications.models import Notification
from tests.factories import (
    MedicineFactory,
    MedicineRequestFactory,
    NoAddressUserFactory,
    UserFactory,
)


pytestmark = pytest.mark.django_db

Status = Medicine.StatusChoices
RequestStatus = MedicineRequest.StatusChoices


def _today():
    return timezone.localdate()


class TestRemainingQuantity:

    def test_no_requests(self):
        medicine = MedicineFactory(quantity=10)
        assert InventoryLedger.remaining_quantity(medicine) == 10

    def test_pending_requests_reserve_units(self):
        medicine = MedicineFactory(quantity=10)
        MedicineRequestFactory(medicine=medicine, quantity=3)
        MedicineRequestFactory(medicine=medicine, quantity=2)
        assert InventoryLedger.remaining_quantity(medicine) == 5

    def test_terminal_requests_reserve_nothing(self):
        medicine = MedicineFactory(quantity=10)
        for status in (RequestStatus.REJECTED, RequestStatus.CANCELLED, RequestStatus.FAILED):
            MedicineRequestFactory(medicine=medicine, quantity=4, status=status)
        assert InventoryLedger.remaining_quantity(medicine) == 10

    def test_accepted_units_already_left_quantity(self):
        # 10 listed, 6 accepted -> quantity is 4 and nothing else is reserved.
        medicine = MedicineFactory(quantity=4, original_quantity=10)
        MedicineRequestFactory(medicine=medicine, quantity=6, status=RequestStatus.ACCEPTED)
        assert InventoryLedger.remaining_quantity(medicine) == 4

    def test_exclude_request(self):
        medicine = MedicineFactory(quantity=10)
        request = MedicineRequestFactory(medicine=medicine, quantity=6)
        MedicineRequestFactory(medicine=medicine, quantity=1)
        assert InventoryLedger.remaining_quantity(medicine, exclude_request_id=request.pk) == 9

    def test_floored_at_zero(self):
        medicine = MedicineFactory(quantity=2)
        MedicineRequestFactory(medicine=medicine, quantity=3)
        assert InventoryLedger.remaining_quantity(medicine) == 0

    def test_annotated_queryset_agrees(self):
        medicine = MedicineFactory(quantity=10)
        MedicineRequestFactory(medicine=medicine, quantity=3)
        MedicineRequestFactory(medicine=medicine, quantity=2, status=RequestStatus.ACCEPTED)
        MedicineRequestFactory(medicine=medicine, quantity=1, status=RequestStatus.COMPLETED)

        annotated = InventoryLedger.with_reservations(Medicine.objects.filter(pk=medicine.pk)).get()
        assert annotated.reserved_quantity == 3
        assert annotated.pending_count == 1
        assert annotated.accepted_count == 1
        assert annotated.completed_count == 1
        assert InventoryLedger.remaining_quantity(annotated) == 7

    def test_annotation_defaults_to_zero(self):
        medicine = MedicineFactory(quantity=10)
        annotated = InventoryLedger.with_reservations(Medicine.objects.filter(pk=medicine.pk)).get()
        assert annotated.reserved_quantity == 0


class TestDeriveDisplayStatus:

    def test_expiry_dominates(self):
        medicine = MedicineFactory.build(expiry=_today())
        status = InventoryLedger.derive_display_status(medicine, 0, True, fully_donated=True)
        assert status == Status.EXPIRED

    def test_stock_dominates_pending_interest(self):
        medicine = MedicineFactory.build()
        assert InventoryLedger.derive_display_status(medicine, 0, True) == Status.STOCK_FINISHED

    def test_fully_donated(self):
        medicine = MedicineFactory.build()
        status = InventoryLedger.derive_display_status(medicine, 0, False, fully_donated=True)
        assert status == Status.DONATED

    def test_requested(self):
        medicine = MedicineFactory.build()
        assert InventoryLedger.derive_display_status(medicine, 3, True) == Status.REQUESTED

    def test_available(self):
        medicine = MedicineFactory.build()
        assert InventoryLedger.derive_display_status(medicine, 3, False) == Status.AVAILABLE

    def test_explicit_today(self):
        medicine = MedicineFactory.build(expiry=_today() + timedelta(days=3))
        later = _today() + timedelta(days=3)
        assert InventoryLedger.derive_display_status(medicine, 3, False, today=later) == Status.EXPIRED


class TestLedgerTransitions:

    def test_on_accept_decrements_once(self):
        medicine = MedicineFactory(quantity=10)
        request = MedicineRequestFactory(medicine=medicine, quantity=6, status=RequestStatus.ACCEPTED)

        updated = InventoryLedger.on_accept(medicine_id=medicine.pk, request=request)

        assert updated.quantity == 4
        assert updated.version == 1
        assert updated.status == Status.AVAILABLE
        assert updated.original_quantity == 10

    def test_on_accept_checks_other_pending_reservations(self):
        medicine = MedicineFactory(quantity=5)
        MedicineRequestFactory(medicine=medicine, quantity=3)
        request = MedicineRequestFactory(medicine=medicine, quantity=4)

        with pytest.raises(InsufficientQuantityError):
            InventoryLedger.on_accept(medicine_id=medicine.pk, request=request)

        medicine.refresh_from_db()
        assert medicine.quantity == 5
        assert medicine.version == 0

    def test_on_accept_gives_up_after_repeated_conflicts(self, settings):
        settings.LEDGER_MAX_RETRIES = 3
        medicine = MedicineFactory(quantity=10)
        request = MedicineRequestFactory(medicine=medicine, quantity=2)

        with mock.patch.object(Medicine.objects, 'filter') as conflicted:
            conflicted.return_value.update.return_value = 0
            with pytest.raises(InsufficientQuantityError):
                InventoryLedger.on_accept(medicine_id=medicine.pk, request=request)

        assert conflicted.call_count == 3
        medicine.refresh_from_db()
        assert medicine.quantity == 10

    def test_accept_then_reject_restores_exactly(self):
        medicine = MedicineFactory(quantity=5)
        request = MedicineRequestFactory(medicine=medicine, quantity=5, status=RequestStatus.ACCEPTED)

        after_accept = InventoryLedger.on_accept(medicine_id=medicine.pk, request=request)
        assert after_accept.quantity == 0
        assert after_accept.status == Status.STOCK_FINISHED

        MedicineRequest.objects.filter(pk=request.pk).update(status=RequestStatus.REJECTED)
        after_reject = InventoryLedger.on_reject_previously_accepted(
            medicine_id=medicine.pk, request=request,
        )
        assert after_reject.quantity == 5
        assert after_reject.status == Status.AVAILABLE

    def test_on_complete_keeps_quantity_and_marks_donated(self):
        medicine = MedicineFactory(quantity=0, original_quantity=5, status=Status.STOCK_FINISHED)
        request = MedicineRequestFactory(medicine=medicine, quantity=5, status=RequestStatus.COMPLETED)

        updated = InventoryLedger.on_complete(medicine_id=medicine.pk, request=request)

        assert updated.quantity == 0
        assert updated.status == Status.DONATED

    def test_on_cancel_recomputes_status(self):
        medicine = MedicineFactory(quantity=10, status=Status.REQUESTED)
        request = MedicineRequestFactory(medicine=medicine, quantity=2, status=RequestStatus.CANCELLED)

        updated = InventoryLedger.on_cancel(medicine_id=medicine.pk, request=request)

        assert updated.quantity == 10
        assert updated.status == Status.AVAILABLE

    def test_on_fail_restores_only_when_accepted(self):
        medicine = MedicineFactory(quantity=7, original_quantity=10)
        accepted = MedicineRequestFactory(medicine=medicine, quantity=3, status=RequestStatus.FAILED)
        pending = MedicineRequestFactory(medicine=medicine, quantity=2, status=RequestStatus.FAILED)

        assert InventoryLedger.on_fail(
            medicine_id=medicine.pk, request=pending, was_accepted=False,
        ).quantity == 7
        assert InventoryLedger.on_fail(
            medicine_id=medicine.pk, request=accepted, was_accepted=True,
        ).quantity == 10

    def test_refresh_status_converges_stale_status(self):
        medicine = MedicineFactory(quantity=10, status=Status.STOCK_FINISHED)
        MedicineRequestFactory(medicine=medicine, quantity=1)

        assert InventoryLedger.refresh_status(medicine_id=medicine.pk).status == Status.REQUESTED

    def test_display_snapshot_matches_refresh(self):
        medicine = MedicineFactory(quantity=4)
        MedicineRequestFactory(medicine=medicine, quantity=4)

        remaining, status = InventoryLedger.display_snapshot(medicine)
        assert remaining == 0
        assert status == Status.STOCK_FINISHED
        assert InventoryLedger.refresh_status(medicine_id=medicine.pk).status == status


class TestExpireOverdue:

    def test_expires_past_and_due_today(self):
        overdue = MedicineFactory(expiry=_today() - timedelta(days=1))
        due_today = MedicineFactory(expiry=_today(), status=Status.REQUESTED)
        fresh = MedicineFactory()

        assert InventoryLedger.expire_overdue() == 2

        overdue.refresh_from_db()
        due_today.refresh_from_db()
        fresh.refresh_from_db()
        assert overdue.status == Status.EXPIRED
        assert due_today.status == Status.EXPIRED
        assert fresh.status == Status.AVAILABLE
        assert InventoryLedger.expire_overdue() == 0

    def test_agrees_with_refresh_status(self):
        finished = MedicineFactory(quantity=0, original_quantity=3, status=Status.STOCK_FINISHED)
        Medicine.objects.filter(pk=finished.pk).update(expiry=_today() - timedelta(days=2))

        InventoryLedger.expire_overdue()

        finished.refresh_from_db()
        assert finished.status == Status.EXPIRED
        assert InventoryLedger.refresh_status(medicine_id=finished.pk).status == Status.EXPIRED

    def test_explicit_today(self):
        medicine = MedicineFactory(expiry=_today() + timedelta(days=5))
        assert InventoryLedger.expire_overdue(today=_today() + timedelta(days=5)) == 1
        medicine.refresh_from_db()
        assert medicine.status == Status.EXPIRED


class TestMedicineService:

    def test_create_snapshots_donor_address(self):
        donor = UserFactory(address_line1='12 MG Road', city='Bengaluru', state='Karnataka',
                            pincode='560001', country='India')
        medicine = MedicineService.create_medicine(
            donor=donor, name='Paracetamol', quantity=20,
            expiry=_today() + timedelta(days=90),
            category=Medicine.CategoryChoices.PAIN_RELIEF,
        )

        assert medicine.pickup_address == '12 MG Road, Bengaluru, Karnataka, 560001, India'
        assert medicine.original_quantity == 20
        assert medicine.status == Status.AVAILABLE
        assert AuditLog.objects.filter(object_id=str(medicine.pk), action='CREATE').exists()

    def test_pickup_address_is_not_live_linked(self):
        donor = UserFactory(city='Pune')
        medicine = MedicineService.create_medicine(
            donor=donor, name='Cetirizine', quantity=5, expiry=_today() + timedelta(days=30),
        )
        donor.city = 'Mumbai'
        donor.save()
        medicine.refresh_from_db()
        assert 'Pune' in medicine.pickup_address

    def test_create_rejects_zero_quantity(self):
        with pytest.raises(BusinessRuleViolation):
            MedicineService.create_medicine(
                donor=UserFactory(), name='X', quantity=0, expiry=_today() + timedelta(days=30),
            )

    def test_create_rejects_past_expiry(self):
        with pytest.raises(BusinessRuleViolation):
            MedicineService.create_medicine(
                donor=UserFactory(), name='X', quantity=1, expiry=_today(),
            )

    def test_delete_by_donor(self):
        medicine = MedicineFactory()
        MedicineRequestFactory(medicine=medicine, status=RequestStatus.REJECTED)

        MedicineService.delete_medicine(medicine_id=medicine.pk, actor=medicine.donor)

        assert not Medicine.objects.filter(pk=medicine.pk).exists()
        assert AuditLog.objects.filter(object_id=str(medicine.pk), action='DELETE').exists()

    def test_delete_by_someone_else(self):
        medicine = MedicineFactory()
        with pytest.raises(UnauthorizedActorError):
            MedicineService.delete_medicine(medicine_id=medicine.pk, actor=UserFactory())

    def test_delete_with_open_request(self):
        medicine = MedicineFactory()
        MedicineRequestFactory(medicine=medicine, status=RequestStatus.ACCEPTED)
        with pytest.raises(BusinessRuleViolation):
            MedicineService.delete_medicine(medicine_id=medicine.pk, actor=medicine.donor)

    def test_delete_missing(self):
        medicine = MedicineFactory.build()
        with pytest.raises(ResourceNotFoundError):
            MedicineService.delete_medicine(medicine_id=medicine.pk, actor=UserFactory())

    def test_notify_expiring_listings_once(self):
        soon = MedicineFactory(expiry=_today() + timedelta(days=10))
        MedicineFactory(expiry=_today() + timedelta(days=90))
        MedicineFactory(expiry=_today() + timedelta(days=5), status=Status.STOCK_FINISHED)

        assert MedicineService.notify_expiring_listings(days=30) == 1
        assert MedicineService.notify_expiring_listings(days=30) == 0

        notification = Notification.objects.get(type=Notification.TypeChoices.MEDICINE_EXPIRING)
        assert notification.recipient == soon.donor
        assert notification.related_medicine == soon


class TestTasks:

    def test_expire_task(self):
        MedicineFactory(expiry=_today() - timedelta(days=3))
        assert expire_overdue_listings_task() == {'expired_count': 1}

    def test_notify_task_uses_default_window(self, settings):
        settings.EXPIRY_WARNING_DAYS = 15
        MedicineFactory(expiry=_today() + timedelta(days=10))
        MedicineFactory(expiry=_today() + timedelta(days=20))
        assert notify_expiring_listings_task() == {'notified_count': 1}


class TestBrowseCandidates:

    def test_excludes_own_expired_and_finished(self):
        viewer = NoAddressUserFactory()
        visible = MedicineFactory()
        requested = MedicineFactory(status=Status.REQUESTED)
        MedicineFactory(donor=viewer)
        MedicineFactory(expiry=_today())
        MedicineFactory(status=Status.STOCK_FINISHED)
        MedicineFactory(status=Status.DONATED)

        ids = set(MedicineBrowseService.candidates(user=viewer).values_list('pk', flat=True))
        assert ids == {visible.pk, requested.pk}

    def test_category_and_search(self):
        viewer = UserFactory()
        match = MedicineFactory(
            name='Amoxicillin 500', category=Medicine.CategoryChoices.ANTIBIOTICS,
        )
        MedicineFactory(name='Azithromycin', category=Medicine.CategoryChoices.ANTIBIOTICS)
        MedicineFactory(name='Amoxicillin syrup', category=Medicine.CategoryChoices.OTHER)
        by_description = MedicineFactory(
            name='Generic', description='contains amoxicillin',
            category=Medicine.CategoryChoices.ANTIBIOTICS,
        )

        qs = MedicineBrowseService.candidates(
            user=viewer, category=Medicine.CategoryChoices.ANTIBIOTICS, search='amoxi',
        )
        assert set(qs.values_list('pk', flat=True)) == {match.pk, by_description.pk}

    def test_candidates_carry_reservations(self):
        viewer = UserFactory()
        medicine = MedicineFactory(quantity=8)
        MedicineRequestFactory(medicine=medicine, quantity=3)

        candidate = MedicineBrowseService.candidates(user=viewer).get(pk=medicine.pk)
        assert candidate.reserved_quantity == 3

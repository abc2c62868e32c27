"""
Users — Service Layer

Profile updates and read-derived user statistics. Statistics are never
stored on the user: they are aggregated from listings and requests on
every read so they cannot drift from the request history.

@file users/services.py
"""

import logging

from django.db import transaction

from core.constants import AUDIT_ACTION_UPDATE
from core.services import AuditService
from medicine_requests.models import MedicineRequest
from medicines.models import Medicine

from .models import User

logger = logging.getLogger('medshare')

PROFILE_FIELDS = {
    'first_name', 'last_name', 'phone',
    'address_line1', 'city', 'state', 'pincode', 'country',
}


class UserService:
    """Profile management for the authenticated user."""

    @staticmethod
    @transaction.atomic
    def update_profile(*, user: User, **fields) -> User:
        """
        Update profile fields. Existing listings keep the pickup address
        they were created with; only future listings see the new address.
        """
        old_snapshot = AuditService.snapshot(user, fields=list(PROFILE_FIELDS))
        changed = []
        for field, value in fields.items():
            if field in PROFILE_FIELDS:
                setattr(user, field, value)
                changed.append(field)
        if not changed:
            return user
        user.save(update_fields=changed + ['updated_at'])
        AuditService.log(
            actor=user,
            action=AUDIT_ACTION_UPDATE,
            model_name='User',
            object_id=str(user.pk),
            old_values=old_snapshot,
            new_values=AuditService.snapshot(user, fields=list(PROFILE_FIELDS)),
        )
        return user


class UserStatsService:
    """Lifetime counters shown on dashboards and profiles."""

    @staticmethod
    def medicines_received(user) -> int:
        return MedicineRequest.objects.filter(
            requester=user, status=MedicineRequest.StatusChoices.COMPLETED,
        ).count()

    @staticmethod
    def people_helped(user) -> int:
        """Distinct donors across the user's completed requests."""
        return (
            MedicineRequest.objects
            .filter(requester=user, status=MedicineRequest.StatusChoices.COMPLETED)
            .values('donor')
            .distinct()
            .count()
        )

    @classmethod
    def for_user(cls, user) -> dict[str, int]:
        as_requester = MedicineRequest.objects.filter(requester=user)
        return {
            'medicines_donated': Medicine.objects.filter(donor=user).count(),
            'medicines_received': cls.medicines_received(user),
            'pending_requests': as_requester.filter(
                status=MedicineRequest.StatusChoices.PENDING,
            ).count(),
            'completed_requests': as_requester.filter(
                status=MedicineRequest.StatusChoices.COMPLETED,
            ).count(),
            'people_helped': cls.people_helped(user),
        }

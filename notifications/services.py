"""
Notifications — Service Layer

Synchronous notification sink. notify() runs inside the caller's
transaction, so a rolled-back transition leaves no notification behind.

@file notifications/services.py
"""

import logging

from django.db import transaction
from django.utils import timezone

from core.exceptions import ResourceNotFoundError

from .models import Notification

logger = logging.getLogger('medshare')


class NotificationService:

    @staticmethod
    def notify(
        *,
        recipient,
        type: str,
        title: str,
        message: str,
        sender=None,
        related_medicine=None,
        related_request=None,
        priority: str = Notification.PriorityChoices.MEDIUM,
    ) -> Notification:
        notification = Notification.objects.create(
            recipient=recipient,
            sender=sender,
            type=type,
            title=title,
            message=message,
            related_medicine=related_medicine,
            related_request=related_request,
            priority=priority,
        )
        logger.debug('Notification %s (%s) for user %s.', notification.pk, type, recipient.pk)
        return notification

    @staticmethod
    @transaction.atomic
    def mark_read(*, notification_id, user) -> Notification:
        try:
            notification = Notification.objects.select_for_update().get(
                pk=notification_id, recipient=user,
            )
        except Notification.DoesNotExist:
            raise ResourceNotFoundError(detail='Notification not found.')
        if not notification.read:
            notification.read = True
            notification.read_at = timezone.now()
            notification.save(update_fields=['read', 'read_at', 'updated_at'])
        return notification

    @staticmethod
    def mark_all_read(*, user) -> int:
        return Notification.objects.filter(recipient=user).unread().update(
            read=True, read_at=timezone.now(), updated_at=timezone.now(),
        )

    @staticmethod
    def unread_count(user) -> int:
        return Notification.objects.filter(recipient=user).unread().count()

"""
Notifications — Models

In-app notifications created as a side effect of listing and request
transitions. Delivery (email, push) is not handled here.

@file notifications/models.py
"""

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel


class NotificationQuerySet(models.QuerySet):
    def unread(self):
        return self.filter(read=False)


class Notification(BaseModel):

    class TypeChoices(models.TextChoices):
        REQUEST_SENT = 'REQUEST_SENT', _('Request sent')
        REQUEST_RECEIVED = 'REQUEST_RECEIVED', _('Request received')
        REQUEST_ACCEPTED = 'REQUEST_ACCEPTED', _('Request accepted')
        REQUEST_REJECTED = 'REQUEST_REJECTED', _('Request rejected')
        REQUEST_CANCELLED = 'REQUEST_CANCELLED', _('Request cancelled')
        DONATION_COMPLETED = 'DONATION_COMPLETED', _('Donation completed')
        DONATION_FAILED = 'DONATION_FAILED', _('Donation failed')
        MEDICINE_EXPIRING = 'MEDICINE_EXPIRING', _('Medicine expiring')
        SYSTEM = 'SYSTEM', _('System')

    class PriorityChoices(models.TextChoices):
        LOW = 'LOW', _('Low')
        MEDIUM = 'MEDIUM', _('Medium')
        HIGH = 'HIGH', _('High')
        URGENT = 'URGENT', _('Urgent')

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications',
        verbose_name=_('recipient'),
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='+',
        verbose_name=_('sender'),
    )
    type = models.CharField(_('type'), max_length=24, choices=TypeChoices.choices)
    title = models.CharField(_('title'), max_length=255)
    message = models.TextField(_('message'))
    related_medicine = models.ForeignKey(
        'medicines.Medicine',
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='notifications',
    )
    related_request = models.ForeignKey(
        'medicine_requests.MedicineRequest',
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='notifications',
    )
    priority = models.CharField(
        _('priority'), max_length=8,
        choices=PriorityChoices.choices,
        default=PriorityChoices.MEDIUM,
    )
    read = models.BooleanField(_('read'), default=False)
    read_at = models.DateTimeField(_('read at'), null=True, blank=True)

    objects = NotificationQuerySet.as_manager()

    class Meta:
        verbose_name = _('notification')
        verbose_name_plural = _('notifications')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'read']),
            models.Index(fields=['recipient', 'created_at']),
        ]

    def __str__(self):
        return f'{self.get_type_display()} → {self.recipient_id}'

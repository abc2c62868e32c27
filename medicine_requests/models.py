"""
Medicine Requests — Models

A requester's claim on part of a listing. Status is written only by
MedicineRequestService (medicine_requests/services.py).

@file medicine_requests/models.py
"""

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel


class MedicineRequest(BaseModel):

    class StatusChoices(models.TextChoices):
        PENDING = 'PENDING', _('Pending')
        ACCEPTED = 'ACCEPTED', _('Accepted')
        REJECTED = 'REJECTED', _('Rejected')
        CANCELLED = 'CANCELLED', _('Cancelled')
        COMPLETED = 'COMPLETED', _('Completed')
        FAILED = 'FAILED', _('Failed')

    OPEN_STATUSES = (StatusChoices.PENDING, StatusChoices.ACCEPTED)

    medicine = models.ForeignKey(
        'medicines.Medicine',
        on_delete=models.CASCADE,
        related_name='requests',
        verbose_name=_('medicine'),
    )
    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='requests_made',
        verbose_name=_('requester'),
    )
    donor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='requests_received',
        verbose_name=_('donor'),
        help_text=_('Frozen copy of medicine.donor at request time'),
    )
    quantity = models.PositiveIntegerField(_('quantity'))
    message = models.TextField(_('message'), blank=True)
    status = models.CharField(
        _('status'), max_length=10,
        choices=StatusChoices.choices,
        default=StatusChoices.PENDING,
        db_index=True,
    )
    donor_response_message = models.TextField(_('donor response'), blank=True)
    responded_at = models.DateTimeField(_('responded at'), null=True, blank=True)
    completed_at = models.DateTimeField(_('completed at'), null=True, blank=True)

    class Meta:
        verbose_name = _('medicine request')
        verbose_name_plural = _('medicine requests')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['medicine', 'status']),
            models.Index(fields=['requester', 'status']),
            models.Index(fields=['donor', 'status']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['requester', 'medicine'],
                condition=models.Q(status__in=['PENDING', 'ACCEPTED']),
                name='one_open_request_per_requester_medicine',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name='medicine_request_positive_quantity',
            ),
        ]

    def __str__(self):
        return f'{self.quantity} × {self.medicine_id} by {self.requester_id} ({self.status})'

    @property
    def is_open(self) -> bool:
        return self.status in self.OPEN_STATUSES

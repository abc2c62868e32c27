"""
Medicines — Models

Donation listings. A listing's quantity and status are owned by the
InventoryLedger (medicines/services.py); nothing else writes them.

@file medicines/models.py
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel


class Medicine(BaseModel):
    """
    A surplus medicine offered by a donor.

    quantity is the number of units still advertised: it drops when a
    request is accepted and is restored when an accepted request is
    rejected or fails. original_quantity never changes after creation.
    pickup_address is a snapshot of the donor's address at creation time.
    """

    class StatusChoices(models.TextChoices):
        AVAILABLE = 'AVAILABLE', _('Available')
        REQUESTED = 'REQUESTED', _('Requested')
        STOCK_FINISHED = 'STOCK_FINISHED', _('Stock Finished')
        DONATED = 'DONATED', _('Donated')
        EXPIRED = 'EXPIRED', _('Expired')

    class CategoryChoices(models.TextChoices):
        PAIN_RELIEF = 'PAIN_RELIEF', _('Pain relief')
        ANTIBIOTICS = 'ANTIBIOTICS', _('Antibiotics')
        CARDIOVASCULAR = 'CARDIOVASCULAR', _('Cardiovascular')
        DIABETES = 'DIABETES', _('Diabetes')
        RESPIRATORY = 'RESPIRATORY', _('Respiratory')
        GASTROINTESTINAL = 'GASTROINTESTINAL', _('Gastrointestinal')
        DERMATOLOGY = 'DERMATOLOGY', _('Dermatology')
        VITAMINS = 'VITAMINS', _('Vitamins & supplements')
        FIRST_AID = 'FIRST_AID', _('First aid')
        OTHER = 'OTHER', _('Other')

    class UnitChoices(models.TextChoices):
        TABLETS = 'TABLETS', _('Tablets')
        CAPSULES = 'CAPSULES', _('Capsules')
        BOTTLES = 'BOTTLES', _('Bottles')
        STRIPS = 'STRIPS', _('Strips')
        PIECES = 'PIECES', _('Pieces')

    class ConditionChoices(models.TextChoices):
        NEW = 'NEW', _('New / sealed')
        OPENED = 'OPENED', _('Opened')
        PARTIAL = 'PARTIAL', _('Partially used')

    donor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='donations',
        verbose_name=_('donor'),
    )
    name = models.CharField(_('name'), max_length=255)
    category = models.CharField(
        _('category'), max_length=20,
        choices=CategoryChoices.choices,
        default=CategoryChoices.OTHER,
        db_index=True,
    )
    unit = models.CharField(
        _('unit'), max_length=10,
        choices=UnitChoices.choices,
        default=UnitChoices.TABLETS,
    )
    quantity = models.PositiveIntegerField(_('quantity'))
    original_quantity = models.PositiveIntegerField(_('original quantity'))
    expiry = models.DateField(_('expiry date'), db_index=True)
    condition = models.CharField(
        _('condition'), max_length=10,
        choices=ConditionChoices.choices,
        default=ConditionChoices.NEW,
    )
    description = models.TextField(_('description'), blank=True)
    manufacturer = models.CharField(_('manufacturer'), max_length=255, blank=True)
    image_url = models.URLField(_('image URL'), blank=True)
    pickup_address = models.CharField(
        _('pickup address'), max_length=500, blank=True,
        help_text=_('Copied from the donor profile when the listing is created'),
    )
    status = models.CharField(
        _('status'), max_length=16,
        choices=StatusChoices.choices,
        default=StatusChoices.AVAILABLE,
        db_index=True,
    )
    version = models.PositiveIntegerField(
        _('version'), default=0,
        help_text=_('Bumped on every quantity change; guards concurrent allocations'),
    )

    class Meta:
        verbose_name = _('medicine')
        verbose_name_plural = _('medicines')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'expiry']),
            models.Index(fields=['donor', 'created_at']),
            models.Index(fields=['category', 'status']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(original_quantity__gt=0),
                name='medicine_positive_original_quantity',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__lte=models.F('original_quantity')),
                name='medicine_quantity_lte_original',
            ),
        ]

    def __str__(self):
        return f'{self.name} × {self.quantity} ({self.get_status_display()})'

    @property
    def is_expired(self) -> bool:
        return self.expiry <= timezone.localdate()

    @property
    def days_to_expiry(self) -> int:
        return (self.expiry - timezone.localdate()).days

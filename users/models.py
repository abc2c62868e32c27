"""
Users — Models

Custom User model with UUID PK, email-based auth and the address
profile that donation listings snapshot as their pickup location.

@file users/models.py
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel
from users.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin, BaseModel):
    """
    Custom user for MedShare.

    Any user can both donate and request medicines. The address fields
    feed the pickup address copied onto each listing at creation time and
    the requester location used when ranking listings by distance.
    """

    email = models.EmailField(_('email'), unique=True)
    phone = models.CharField(_('phone'), max_length=20, blank=True)
    first_name = models.CharField(_('first name'), max_length=100, blank=True)
    last_name = models.CharField(_('last name'), max_length=100, blank=True)

    address_line1 = models.CharField(_('address line 1'), max_length=255, blank=True)
    city = models.CharField(_('city'), max_length=100, blank=True)
    state = models.CharField(_('state'), max_length=100, blank=True)
    pincode = models.CharField(_('postal code'), max_length=20, blank=True)
    country = models.CharField(_('country'), max_length=100, blank=True)

    is_staff = models.BooleanField(_('staff status'), default=False)
    is_active = models.BooleanField(_('active'), default=True)
    date_joined = models.DateTimeField(_('date joined'), default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['city', 'state']),
        ]

    def __str__(self):
        return self.get_full_name()

    def get_full_name(self):
        full = f'{self.first_name} {self.last_name}'.strip()
        return full or self.email

    def get_short_name(self):
        return self.first_name or self.email

    @property
    def has_usable_address(self) -> bool:
        """Street, city and state are all needed for a meaningful geocode."""
        return bool(self.address_line1 and self.city and self.state)

    @property
    def full_address(self) -> str:
        parts = [self.address_line1, self.city, self.state, self.pincode, self.country]
        return ', '.join(p.strip() for p in parts if p and p.strip())

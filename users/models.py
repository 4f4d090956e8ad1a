"""
Users — Models

Custom User model with UUID PK and email login. Every user acts under
exactly one role and, unless the role spans all units, is attached to a
home unit that scopes what they can see and change.

@file users/models.py
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import RegulatedModel
from users.capabilities import Capabilities, Role, capabilities_for
from users.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin, RegulatedModel):

    class RoleChoices(models.TextChoices):
        ADMIN = Role.ADMIN, _('Administrator')
        MANAGER = Role.MANAGER, _('Manager')
        FINANCIAL_OPERATOR = Role.FINANCIAL_OPERATOR, _('Financial operator')
        ADMINISTRATIVE_OPERATOR = Role.ADMINISTRATIVE_OPERATOR, _('Administrative operator')
        WAREHOUSE_OPERATOR = Role.WAREHOUSE_OPERATOR, _('Warehouse operator')

    email = models.EmailField(_('email'), unique=True)
    full_name = models.CharField(_('full name'), max_length=200, blank=True)
    role = models.CharField(
        _('role'), max_length=30,
        choices=RoleChoices.choices, default=RoleChoices.ADMINISTRATIVE_OPERATOR,
        db_index=True,
    )
    unit = models.ForeignKey(
        'catalog.Unit',
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='users',
        verbose_name=_('unit'),
    )

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
            models.Index(fields=['role', 'is_deleted']),
            models.Index(fields=['unit']),
        ]

    def __str__(self):
        return self.full_name or self.email

    def get_full_name(self):
        return self.full_name or self.email

    def get_short_name(self):
        return self.full_name.split(' ')[0] if self.full_name else self.email

    @property
    def capabilities(self) -> Capabilities:
        if self.is_superuser:
            return capabilities_for(Role.ADMIN)
        return capabilities_for(self.role)

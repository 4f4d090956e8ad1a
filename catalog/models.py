"""
Catalog — Models

Reference data the ledger points at: units (consuming units and
distribution centers), items and suppliers. Soft-delete only, since
stock rows, movements and requests keep references to them.

@file catalog/models.py
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import RegulatedModel


class Unit(RegulatedModel):
    """
    A location holding stock. ``is_cd`` marks a distribution center and
    selects the CD stock partition of the ledger.
    """

    name = models.CharField(_('name'), max_length=200, unique=True)
    description = models.TextField(_('description'), blank=True)
    address = models.CharField(_('address'), max_length=300, blank=True)
    is_cd = models.BooleanField(_('distribution center'), default=False, db_index=True)

    class Meta:
        verbose_name = _('unit')
        verbose_name_plural = _('units')
        ordering = ['name']

    def __str__(self):
        return f'{self.name} (CD)' if self.is_cd else self.name


class Item(RegulatedModel):

    code = models.CharField(_('code'), max_length=50, unique=True)
    name = models.CharField(_('name'), max_length=200, db_index=True)
    description = models.TextField(_('description'), blank=True)
    unit_measure = models.CharField(_('unit of measure'), max_length=30, default='un')
    category = models.CharField(_('category'), max_length=100, blank=True, db_index=True)
    show_in_company = models.BooleanField(_('show in company catalog'), default=True)
    has_lifecycle = models.BooleanField(_('has lifecycle'), default=False)
    requires_maintenance = models.BooleanField(_('requires maintenance'), default=False)

    class Meta:
        verbose_name = _('item')
        verbose_name_plural = _('items')
        ordering = ['name']
        indexes = [
            models.Index(fields=['category', 'is_deleted']),
        ]

    def __str__(self):
        return f'{self.code} — {self.name}'


class Supplier(RegulatedModel):

    name = models.CharField(_('name'), max_length=200)
    contact_person = models.CharField(_('contact person'), max_length=200, blank=True)
    email = models.EmailField(_('email'), blank=True)
    phone = models.CharField(_('phone'), max_length=30, blank=True)
    address = models.CharField(_('address'), max_length=300, blank=True)
    cnpj = models.CharField(_('tax ID (CNPJ)'), max_length=20, blank=True, db_index=True)

    class Meta:
        verbose_name = _('supplier')
        verbose_name_plural = _('suppliers')
        ordering = ['name']

    def __str__(self):
        return self.name

"""
Catalog — Views

CRUD ViewSets for units, items and suppliers. Reads are open to any
active user; writes need the matching management capability.

@file catalog/views.py
"""

from rest_framework import viewsets

from users.permissions import HasCapability, IsActiveUser

from .models import Item, Supplier, Unit
from .serializers import ItemSerializer, SupplierSerializer, UnitSerializer


class CatalogViewSet(viewsets.ModelViewSet):
    """Stamps the actor on saves and soft-deletes on destroy."""

    permission_classes = [IsActiveUser, HasCapability]

    def perform_create(self, serializer):
        instance = serializer.Meta.model(**serializer.validated_data)
        instance.created_by = self.request.user
        instance._current_user = self.request.user
        instance.save()
        serializer.instance = instance

    def perform_update(self, serializer):
        instance = serializer.instance
        for field, value in serializer.validated_data.items():
            setattr(instance, field, value)
        instance.updated_by = self.request.user
        instance._current_user = self.request.user
        instance.save()

    def perform_destroy(self, instance):
        instance._current_user = self.request.user
        instance.soft_delete(user=self.request.user)


class UnitViewSet(CatalogViewSet):
    write_capabilities = ['can_manage_units']
    serializer_class = UnitSerializer
    filterset_fields = ['is_cd']
    search_fields = ['name', 'address']
    ordering_fields = ['name', 'created_at']
    ordering = ['name']

    def get_queryset(self):
        return Unit.objects.filter(is_deleted=False)


class ItemViewSet(CatalogViewSet):
    write_capabilities = ['can_access_items']
    serializer_class = ItemSerializer
    filterset_fields = ['category', 'show_in_company', 'has_lifecycle', 'requires_maintenance']
    search_fields = ['code', 'name', 'description']
    ordering_fields = ['code', 'name', 'created_at']
    ordering = ['name']

    def get_queryset(self):
        return Item.objects.filter(is_deleted=False)


class SupplierViewSet(CatalogViewSet):
    write_capabilities = ['can_manage_suppliers']
    serializer_class = SupplierSerializer
    search_fields = ['name', 'cnpj', 'contact_person']
    ordering_fields = ['name', 'created_at']
    ordering = ['name']

    def get_queryset(self):
        return Supplier.objects.filter(is_deleted=False)

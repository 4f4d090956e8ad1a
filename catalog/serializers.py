"""
Catalog — Serializers

@file catalog/serializers.py
"""

from rest_framework import serializers

from .models import Item, Supplier, Unit


class UnitSerializer(serializers.ModelSerializer):
    class Meta:
        model = Unit
        fields = ['id', 'name', 'description', 'address', 'is_cd', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_is_cd(self, value):
        # Flipping the partition would strand the unit's existing stock rows.
        if self.instance and self.instance.is_cd != value:
            from stock.models import CDStockRecord, StockRecord

            model = CDStockRecord if self.instance.is_cd else StockRecord
            if model.objects.filter(unit=self.instance).exists():
                raise serializers.ValidationError('Cannot change is_cd on a unit that holds stock.')
        return value


class ItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = Item
        fields = [
            'id', 'code', 'name', 'description', 'unit_measure', 'category',
            'show_in_company', 'has_lifecycle', 'requires_maintenance',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_code(self, value):
        value = value.strip().upper()
        qs = Item.objects.filter(code__iexact=value)
        if self.instance:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError('Item code already in use.')
        return value


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = [
            'id', 'name', 'contact_person', 'email', 'phone', 'address', 'cnpj',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

"""
Stock — Serializers

Read serializers for both ledger partitions and the Movement journal;
input serializers for stock entry, settings, adjustment and transfer.

@file stock/serializers.py
"""

from rest_framework import serializers

from catalog.models import Item, Unit

from .models import CDStockRecord, Movement, StockRecord


def _active_items():
    return Item.objects.filter(is_deleted=False)


def _active_units():
    return Unit.objects.filter(is_deleted=False)


class StockRecordReadSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source='item.code', read_only=True)
    item_name = serializers.CharField(source='item.name', read_only=True)
    unit_name = serializers.CharField(source='unit.name', read_only=True)
    status = serializers.CharField(read_only=True)

    class Meta:
        model = StockRecord
        fields = [
            'id', 'item', 'item_code', 'item_name', 'unit', 'unit_name',
            'quantity', 'min_quantity', 'max_quantity', 'location', 'status',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class CDStockRecordReadSerializer(StockRecordReadSerializer):
    class Meta(StockRecordReadSerializer.Meta):
        model = CDStockRecord
        fields = StockRecordReadSerializer.Meta.fields + [
            'unit_price', 'price_updated_by', 'price_updated_at',
        ]
        read_only_fields = fields


class StockEntryWriteSerializer(serializers.Serializer):
    item = serializers.PrimaryKeyRelatedField(queryset=_active_items())
    unit = serializers.PrimaryKeyRelatedField(queryset=_active_units())
    quantity = serializers.IntegerField(min_value=0)
    min_quantity = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    max_quantity = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    location = serializers.CharField(max_length=120, required=False, allow_blank=True)
    unit_price = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=0, required=False, allow_null=True,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class StockSettingsSerializer(serializers.Serializer):
    min_quantity = serializers.IntegerField(min_value=0, required=False)
    max_quantity = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    location = serializers.CharField(max_length=120, required=False, allow_blank=True)
    unit_price = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=0, required=False, allow_null=True,
    )


class StockAdjustSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class TransferSerializer(serializers.Serializer):
    item = serializers.PrimaryKeyRelatedField(queryset=_active_items())
    from_unit = serializers.PrimaryKeyRelatedField(queryset=_active_units())
    to_unit = serializers.PrimaryKeyRelatedField(queryset=_active_units())
    quantity = serializers.IntegerField(min_value=1)
    reference = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['from_unit'].pk == attrs['to_unit'].pk:
            raise serializers.ValidationError({'to_unit': 'Origin and destination must be different units.'})
        return attrs


class MovementReadSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source='item.code', read_only=True)
    from_unit_name = serializers.CharField(source='from_unit.name', read_only=True, default=None)
    to_unit_name = serializers.CharField(source='to_unit.name', read_only=True, default=None)

    class Meta:
        model = Movement
        fields = [
            'id', 'item', 'item_code', 'from_unit', 'from_unit_name',
            'to_unit', 'to_unit_name', 'quantity', 'movement_type',
            'reference', 'reference_type', 'reference_id', 'notes',
            'created_by', 'created_at',
        ]
        read_only_fields = fields

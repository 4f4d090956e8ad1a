"""
Purchases — Serializers

@file purchases/serializers.py
"""

from rest_framework import serializers

from catalog.models import Item, Supplier, Unit

from .models import Purchase, PurchaseItem, Quotation, QuotationItem, QuotationResponse, UnitBudget


class PurchaseItemReadSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source='item.code', read_only=True)
    item_name = serializers.CharField(source='item.name', read_only=True)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)

    class Meta:
        model = PurchaseItem
        fields = [
            'id', 'item', 'item_code', 'item_name', 'quantity',
            'unit_price', 'total_price', 'supplier', 'supplier_name', 'request_item',
        ]
        read_only_fields = fields


class PurchaseReadSerializer(serializers.ModelSerializer):
    unit_name = serializers.CharField(source='unit.name', read_only=True)
    cd_unit_name = serializers.CharField(source='cd_unit.name', read_only=True)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)
    items = PurchaseItemReadSerializer(many=True, read_only=True)

    class Meta:
        model = Purchase
        fields = [
            'id', 'unit', 'unit_name', 'cd_unit', 'cd_unit_name', 'requester',
            'status', 'supplier', 'supplier_name', 'total_value', 'notes',
            'error_description', 'request', 'budget', 'finalized_at', 'items',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class PurchaseLineSerializer(serializers.Serializer):
    item = serializers.PrimaryKeyRelatedField(queryset=Item.objects.filter(is_deleted=False))
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=0, required=False, allow_null=True,
    )
    supplier = serializers.PrimaryKeyRelatedField(
        queryset=Supplier.objects.filter(is_deleted=False), required=False, allow_null=True,
    )


class PurchaseWriteSerializer(serializers.Serializer):
    unit = serializers.PrimaryKeyRelatedField(queryset=Unit.objects.filter(is_deleted=False))
    cd_unit = serializers.PrimaryKeyRelatedField(queryset=Unit.objects.filter(is_deleted=False, is_cd=True))
    items = PurchaseLineSerializer(many=True, allow_empty=False)
    supplier = serializers.PrimaryKeyRelatedField(
        queryset=Supplier.objects.filter(is_deleted=False), required=False, allow_null=True,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ReplaceItemsSerializer(serializers.Serializer):
    items = PurchaseLineSerializer(many=True, allow_empty=False)
    expected_status = serializers.ChoiceField(choices=Purchase.StatusChoices.choices, required=False)


class PurchaseTransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Purchase.StatusChoices.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    expected_status = serializers.ChoiceField(choices=Purchase.StatusChoices.choices, required=False)


class QuotationItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = QuotationItem
        fields = ['id', 'item', 'item_code', 'quantity']
        read_only_fields = fields


class QuotationResponseReadSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)

    class Meta:
        model = QuotationResponse
        fields = [
            'id', 'quotation', 'supplier', 'supplier_name', 'item',
            'unit_price', 'delivery_days', 'notes', 'is_selected', 'created_at',
        ]
        read_only_fields = fields


class QuotationReadSerializer(serializers.ModelSerializer):
    items = QuotationItemSerializer(many=True, read_only=True)
    responses = QuotationResponseReadSerializer(many=True, read_only=True)

    class Meta:
        model = Quotation
        fields = [
            'id', 'purchase', 'title', 'description', 'status', 'deadline',
            'items', 'responses', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class QuotationWriteSerializer(serializers.Serializer):
    purchase = serializers.PrimaryKeyRelatedField(queryset=Purchase.objects.all())
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    deadline = serializers.DateTimeField(required=False, allow_null=True)


class QuotationStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Quotation.StatusChoices.choices)


class QuotationResponseWriteSerializer(serializers.Serializer):
    supplier = serializers.PrimaryKeyRelatedField(queryset=Supplier.objects.filter(is_deleted=False))
    item = serializers.PrimaryKeyRelatedField(queryset=Item.objects.filter(is_deleted=False))
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0)
    delivery_days = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class UnitBudgetReadSerializer(serializers.ModelSerializer):
    unit_name = serializers.CharField(source='unit.name', read_only=True)
    available_amount = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = UnitBudget
        fields = [
            'id', 'unit', 'unit_name', 'period_start', 'period_end',
            'budget_amount', 'used_amount', 'available_amount',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class UnitBudgetWriteSerializer(serializers.Serializer):
    unit = serializers.PrimaryKeyRelatedField(queryset=Unit.objects.filter(is_deleted=False))
    period_start = serializers.DateField()
    period_end = serializers.DateField()
    budget_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0)

    def validate(self, attrs):
        if attrs['period_end'] < attrs['period_start']:
            raise serializers.ValidationError({'period_end': 'Period cannot end before it starts.'})
        return attrs


class UnitBudgetUpdateSerializer(serializers.Serializer):
    period_start = serializers.DateField(required=False)
    period_end = serializers.DateField(required=False)
    budget_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False)

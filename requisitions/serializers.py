"""
Requisitions — Serializers

Read serializers render a request with its items; the write and action
serializers only validate input for SupplyRequestService.

@file requisitions/serializers.py
"""

from rest_framework import serializers

from catalog.models import Item, Unit

from .models import SupplyRequest, SupplyRequestItem


class SupplyRequestItemReadSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source='item.code', read_only=True)
    item_name = serializers.CharField(source='item.name', read_only=True)

    class Meta:
        model = SupplyRequestItem
        fields = [
            'id', 'item', 'item_code', 'item_name',
            'quantity_requested', 'quantity_approved', 'quantity_sent',
            'cd_stock_available', 'needs_purchase', 'unit_price',
            'has_error', 'error_description', 'notes',
        ]
        read_only_fields = fields


class SupplyRequestReadSerializer(serializers.ModelSerializer):
    requesting_unit_name = serializers.CharField(source='requesting_unit.name', read_only=True)
    cd_unit_name = serializers.CharField(source='cd_unit.name', read_only=True)
    requester_name = serializers.CharField(source='requester.full_name', read_only=True, default=None)
    items = SupplyRequestItemReadSerializer(many=True, read_only=True)

    class Meta:
        model = SupplyRequest
        fields = [
            'id', 'requesting_unit', 'requesting_unit_name', 'cd_unit', 'cd_unit_name',
            'requester', 'requester_name', 'status', 'priority', 'notes',
            'approved_by', 'approved_at', 'rejection_reason', 'error_description',
            'sent_at', 'received_at', 'items', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class RequestLineSerializer(serializers.Serializer):
    item = serializers.PrimaryKeyRelatedField(queryset=Item.objects.filter(is_deleted=False))
    quantity = serializers.IntegerField(min_value=1)


class SupplyRequestWriteSerializer(serializers.Serializer):
    requesting_unit = serializers.PrimaryKeyRelatedField(queryset=Unit.objects.filter(is_deleted=False))
    cd_unit = serializers.PrimaryKeyRelatedField(queryset=Unit.objects.filter(is_deleted=False, is_cd=True))
    items = RequestLineSerializer(many=True, allow_empty=False)
    priority = serializers.ChoiceField(
        choices=SupplyRequest.PriorityChoices.choices, default=SupplyRequest.PriorityChoices.NORMAL,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class SupplyRequestUpdateSerializer(serializers.Serializer):
    items = RequestLineSerializer(many=True, required=False)
    priority = serializers.ChoiceField(choices=SupplyRequest.PriorityChoices.choices, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    expected_status = serializers.CharField(required=False)


class TransitionSerializer(serializers.Serializer):
    """Base for every action body: optional optimistic status check."""
    expected_status = serializers.ChoiceField(choices=SupplyRequest.StatusChoices.choices, required=False)


class ReviewDecisionSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity_approved = serializers.IntegerField(min_value=0)


class ReviewSerializer(TransitionSerializer):
    decisions = ReviewDecisionSerializer(many=True, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class RejectSerializer(TransitionSerializer):
    reason = serializers.CharField()


class FlagErrorSerializer(TransitionSerializer):
    description = serializers.CharField()
    item_id = serializers.UUIDField(required=False, allow_null=True)


class CancelSerializer(TransitionSerializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')

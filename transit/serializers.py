"""
Transit — Serializers

@file transit/serializers.py
"""

from django.conf import settings
from rest_framework import serializers

from .models import TransitRecord
from .services import TransitService


class TransitRecordReadSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source='item.code', read_only=True)
    item_name = serializers.CharField(source='item.name', read_only=True)
    from_cd_name = serializers.CharField(source='from_cd.name', read_only=True)
    to_unit_name = serializers.CharField(source='to_unit.name', read_only=True)
    progress = serializers.SerializerMethodField()
    eta = serializers.SerializerMethodField()

    class Meta:
        model = TransitRecord
        fields = [
            'id', 'item', 'item_code', 'item_name', 'quantity',
            'from_cd', 'from_cd_name', 'to_unit', 'to_unit_name',
            'status', 'sent_at', 'delivered_at', 'delivered_by',
            'request', 'request_item', 'notes', 'progress', 'eta',
        ]
        read_only_fields = fields

    def _progress(self, obj):
        cache = self.context.setdefault('_progress', {})
        if obj.pk not in cache:
            cache[obj.pk] = TransitService.progress(obj, settings.TRANSIT_NOMINAL_HOURS)
        return cache[obj.pk]

    def get_progress(self, obj):
        return self._progress(obj)[0]

    def get_eta(self, obj):
        eta = self._progress(obj)[1]
        return eta.isoformat() if eta else None

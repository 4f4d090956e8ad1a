"""
Core — Serializers

@file core/serializers.py
"""

from rest_framework import serializers

from .models import AuditLog


class AuditLogSerializer(serializers.ModelSerializer):
    actor_email = serializers.EmailField(source='actor.email', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = [
            'id', 'actor', 'actor_email', 'action', 'model_name', 'object_id',
            'old_values', 'new_values', 'ip_address', 'timestamp',
        ]
        read_only_fields = fields

"""
Core — Views

Read-only access to the audit trail for roles holding can_access_logs.

@file core/views.py
"""

from rest_framework import viewsets

from users.permissions import HasCapability, IsActiveUser

from .models import AuditLog
from .serializers import AuditLogSerializer


class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsActiveUser, HasCapability]
    required_capabilities = ['can_access_logs']
    serializer_class = AuditLogSerializer
    queryset = AuditLog.objects.select_related('actor')
    filterset_fields = ['action', 'model_name', 'object_id', 'actor']
    search_fields = ['model_name', 'object_id', 'actor__email']
    ordering_fields = ['timestamp']
    ordering = ['-timestamp']

"""
Transit — Views

Read-only listing of goods in flight plus the delivery confirmation
action. Dispatch happens through the request workflow.

@file transit/views.py
"""

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from users.context import ActorContext
from users.permissions import HasCapability, IsActiveUser, scope_to_actor_units

from .models import TransitRecord
from .serializers import TransitRecordReadSerializer
from .services import TransitService


class TransitRecordViewSet(viewsets.ReadOnlyModelViewSet):

    permission_classes = [IsActiveUser, HasCapability]
    required_capabilities = ['can_access_requests', 'can_access_inventory', 'can_access_cd_stock']
    serializer_class = TransitRecordReadSerializer
    filterset_fields = ['status', 'from_cd', 'to_unit', 'item', 'request']
    search_fields = ['item__code', 'item__name']
    ordering_fields = ['sent_at', 'delivered_at', 'quantity']
    ordering = ['-sent_at']

    def get_queryset(self):
        qs = TransitRecord.objects.select_related('item', 'from_cd', 'to_unit')
        actor = ActorContext.from_user(self.request.user)
        return scope_to_actor_units(qs, actor, 'from_cd_id', 'to_unit_id')

    @action(
        detail=True,
        methods=['post'],
        url_path='deliver',
        permission_classes=[IsActiveUser, HasCapability],
        required_capabilities=['can_receive_transit'],
    )
    def deliver(self, request, pk=None):
        self.get_object()
        record = TransitService.deliver(actor=ActorContext.from_user(request.user), transit_id=pk)
        return Response(TransitRecordReadSerializer(record, context={'request': request}).data)

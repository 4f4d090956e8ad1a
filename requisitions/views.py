"""
Requisitions — Views

SupplyRequestViewSet: list / retrieve / create / partial_update plus
one POST action per workflow step. Status never changes through a
plain update; each action maps to a SupplyRequestService call.

@file requisitions/views.py
"""

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from users.context import ActorContext
from users.permissions import HasCapability, IsActiveUser, scope_to_actor_units

from .models import SupplyRequest
from .serializers import (
    CancelSerializer,
    FlagErrorSerializer,
    RejectSerializer,
    ReviewSerializer,
    SupplyRequestReadSerializer,
    SupplyRequestUpdateSerializer,
    SupplyRequestWriteSerializer,
    TransitionSerializer,
)
from .services import SupplyRequestService


class SupplyRequestViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):

    permission_classes = [IsActiveUser, HasCapability]
    required_capabilities = ['can_access_requests']
    serializer_class = SupplyRequestReadSerializer
    filterset_fields = ['status', 'priority', 'requesting_unit', 'cd_unit']
    search_fields = ['notes', 'items__item__code', 'items__item__name']
    ordering_fields = ['created_at', 'priority', 'status']
    ordering = ['-created_at']

    def get_queryset(self):
        qs = (
            SupplyRequest.objects
            .select_related('requesting_unit', 'cd_unit', 'requester')
            .prefetch_related('items__item')
        )
        return scope_to_actor_units(qs, self.actor, 'requesting_unit_id', 'cd_unit_id')

    @property
    def actor(self) -> ActorContext:
        return ActorContext.from_user(self.request.user)

    def get_serializer_class(self):
        if self.action == 'create':
            return SupplyRequestWriteSerializer
        if self.action == 'partial_update':
            return SupplyRequestUpdateSerializer
        return SupplyRequestReadSerializer

    def _read(self, supply_request, **kwargs):
        supply_request = self.get_queryset().get(pk=supply_request.pk)
        return Response(SupplyRequestReadSerializer(supply_request, context={'request': self.request}).data, **kwargs)

    def _validated(self, serializer_class):
        serializer = serializer_class(data=self.request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def create(self, request, *args, **kwargs):
        data = self._validated(SupplyRequestWriteSerializer)
        supply_request = SupplyRequestService.create_request(actor=self.actor, **data)
        return self._read(supply_request, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        supply_request = self.get_object()
        data = self._validated(SupplyRequestUpdateSerializer)
        supply_request = SupplyRequestService.update_request(
            actor=self.actor, request_id=supply_request.pk, **data,
        )
        return self._read(supply_request)

    @action(detail=True, methods=['post'], url_path='endorse')
    def endorse(self, request, pk=None):
        self.get_object()
        data = self._validated(TransitionSerializer)
        return self._read(SupplyRequestService.endorse_request(actor=self.actor, request_id=pk, **data))

    @action(detail=True, methods=['post'], url_path='start-review')
    def start_review(self, request, pk=None):
        self.get_object()
        data = self._validated(TransitionSerializer)
        return self._read(SupplyRequestService.start_review(actor=self.actor, request_id=pk, **data))

    @action(detail=True, methods=['post'], url_path='review')
    def review(self, request, pk=None):
        self.get_object()
        data = self._validated(ReviewSerializer)
        return self._read(SupplyRequestService.review_request(actor=self.actor, request_id=pk, **data))

    @action(detail=True, methods=['post'], url_path='reject')
    def reject(self, request, pk=None):
        self.get_object()
        data = self._validated(RejectSerializer)
        return self._read(SupplyRequestService.reject_request(actor=self.actor, request_id=pk, **data))

    @action(detail=True, methods=['post'], url_path='prepare')
    def prepare(self, request, pk=None):
        self.get_object()
        data = self._validated(TransitionSerializer)
        return self._read(SupplyRequestService.start_preparing(actor=self.actor, request_id=pk, **data))

    @action(detail=True, methods=['post'], url_path='dispatch', url_name='dispatch')
    def dispatch_items(self, request, pk=None):
        self.get_object()
        data = self._validated(TransitionSerializer)
        return self._read(SupplyRequestService.dispatch_request(actor=self.actor, request_id=pk, **data))

    @action(detail=True, methods=['post'], url_path='flag-error')
    def flag_error(self, request, pk=None):
        self.get_object()
        data = self._validated(FlagErrorSerializer)
        return self._read(SupplyRequestService.flag_error(actor=self.actor, request_id=pk, **data))

    @action(detail=True, methods=['post'], url_path='cancel')
    def cancel(self, request, pk=None):
        self.get_object()
        data = self._validated(CancelSerializer)
        return self._read(SupplyRequestService.cancel_request(actor=self.actor, request_id=pk, **data))

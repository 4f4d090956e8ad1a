"""
Stock — Views

ViewSets for unit stock, CD stock and the Movement journal. All writes
go through StockService; the ViewSets never save quantities themselves.

@file stock/views.py
"""

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.exceptions import BusinessRuleViolation
from users.context import ActorContext
from users.permissions import HasCapability, IsActiveUser, scope_to_actor_units

from .models import CDStockRecord, Movement, StockRecord
from .serializers import (
    CDStockRecordReadSerializer,
    MovementReadSerializer,
    StockAdjustSerializer,
    StockEntryWriteSerializer,
    StockRecordReadSerializer,
    StockSettingsSerializer,
    TransferSerializer,
)
from .services import StockService


class BaseStockViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    list / retrieve / create (merge) / update settings / destroy (empty
    rows only) / adjust. Subclasses pick the partition.
    """

    permission_classes = [IsActiveUser, HasCapability]
    model = None
    read_serializer_class = None
    cd_partition = False
    filterset_fields = ['unit', 'item']
    search_fields = ['item__code', 'item__name', 'location']
    ordering_fields = ['quantity', 'updated_at', 'item__name']
    ordering = ['item__name']

    def get_queryset(self):
        qs = self.model.objects.select_related('item', 'unit')
        return scope_to_actor_units(qs, self.actor, 'unit_id')

    @property
    def actor(self) -> ActorContext:
        return ActorContext.from_user(self.request.user)

    def get_serializer_class(self):
        if self.action == 'create':
            return StockEntryWriteSerializer
        if self.action in ('update', 'partial_update'):
            return StockSettingsSerializer
        if self.action == 'adjust':
            return StockAdjustSerializer
        return self.read_serializer_class

    def _read(self, record, **kwargs):
        return Response(self.read_serializer_class(record, context={'request': self.request}).data, **kwargs)

    def create(self, request, *args, **kwargs):
        serializer = StockEntryWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        if data['unit'].is_cd != self.cd_partition:
            raise BusinessRuleViolation(
                detail='CD stock must be managed on cd-stock, unit stock on unit-stock.',
            )
        record = StockService.add_stock(
            actor=self.actor,
            item=data['item'],
            unit=data['unit'],
            quantity=data['quantity'],
            min_quantity=data.get('min_quantity'),
            max_quantity=data.get('max_quantity'),
            location=data.get('location'),
            unit_price=data.get('unit_price'),
            notes=data.get('notes', ''),
        )
        return self._read(record, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        record = self.get_object()
        serializer = StockSettingsSerializer(data=request.data, partial=kwargs.get('partial', False))
        serializer.is_valid(raise_exception=True)
        record = StockService.update_stock_settings(
            actor=self.actor, record=record, **serializer.validated_data,
        )
        return self._read(record)

    def partial_update(self, request, *args, **kwargs):
        kwargs['partial'] = True
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        StockService.delete_stock_record(actor=self.actor, record=self.get_object())
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'], url_path='adjust')
    def adjust(self, request, pk=None):
        record = self.get_object()
        serializer = StockAdjustSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        record = StockService.adjust_stock(
            actor=self.actor,
            item=record.item,
            unit=record.unit,
            quantity=serializer.validated_data['quantity'],
            notes=serializer.validated_data['notes'],
        )
        return self._read(record)


class UnitStockViewSet(BaseStockViewSet):
    required_capabilities = ['can_access_inventory']
    model = StockRecord
    read_serializer_class = StockRecordReadSerializer


class CDStockViewSet(BaseStockViewSet):
    required_capabilities = ['can_access_cd_stock']
    model = CDStockRecord
    read_serializer_class = CDStockRecordReadSerializer
    cd_partition = True


class MovementViewSet(viewsets.ReadOnlyModelViewSet):
    """Read-only journal plus the manual transfer entry point."""

    permission_classes = [IsActiveUser, HasCapability]
    required_capabilities = ['can_access_movements', 'can_access_inventory', 'can_access_cd_stock']
    serializer_class = MovementReadSerializer
    filterset_fields = ['item', 'from_unit', 'to_unit', 'movement_type', 'reference_type', 'reference_id']
    search_fields = ['reference', 'item__code', 'item__name']
    ordering_fields = ['created_at', 'quantity']
    ordering = ['-created_at']

    def get_queryset(self):
        qs = Movement.objects.select_related('item', 'from_unit', 'to_unit')
        actor = ActorContext.from_user(self.request.user)
        return scope_to_actor_units(qs, actor, 'from_unit_id', 'to_unit_id')

    @action(detail=False, methods=['post'], url_path='transfer')
    def transfer(self, request):
        serializer = TransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        movement = StockService.transfer_stock(
            actor=ActorContext.from_user(request.user),
            **serializer.validated_data,
        )
        return Response(MovementReadSerializer(movement).data, status=status.HTTP_201_CREATED)

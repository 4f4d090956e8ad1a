"""
Purchases — Views

PurchaseViewSet, QuotationViewSet and UnitBudgetViewSet. Status changes,
repricing and budget changes go through the services; there is no plain
update of a purchase.

@file purchases/views.py
"""

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from users.context import ActorContext
from users.permissions import HasCapability, IsActiveUser, scope_to_actor_units

from .models import Purchase, Quotation, UnitBudget
from .serializers import (
    PurchaseReadSerializer,
    PurchaseTransitionSerializer,
    PurchaseWriteSerializer,
    QuotationReadSerializer,
    QuotationResponseReadSerializer,
    QuotationResponseWriteSerializer,
    QuotationStatusSerializer,
    QuotationWriteSerializer,
    ReplaceItemsSerializer,
    UnitBudgetReadSerializer,
    UnitBudgetUpdateSerializer,
    UnitBudgetWriteSerializer,
)
from .services import BudgetService, PurchaseService, QuotationService


class _ActorMixin:

    @property
    def actor(self) -> ActorContext:
        return ActorContext.from_user(self.request.user)

    def _validated(self, serializer_class):
        serializer = serializer_class(data=self.request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data


class PurchaseViewSet(
    _ActorMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):

    permission_classes = [IsActiveUser, HasCapability]
    required_capabilities = ['can_access_purchases', 'can_receive_purchases']
    serializer_class = PurchaseReadSerializer
    filterset_fields = ['status', 'unit', 'cd_unit', 'supplier', 'request']
    search_fields = ['notes', 'items__item__code', 'supplier__name']
    ordering_fields = ['created_at', 'total_value', 'status']
    ordering = ['-created_at']

    def get_queryset(self):
        qs = (
            Purchase.objects
            .select_related('unit', 'cd_unit', 'supplier')
            .prefetch_related('items__item', 'items__supplier')
        )
        return scope_to_actor_units(qs, self.actor, 'unit_id', 'cd_unit_id')

    def get_serializer_class(self):
        if self.action == 'create':
            return PurchaseWriteSerializer
        return PurchaseReadSerializer

    def _read(self, purchase, **kwargs):
        purchase = self.get_queryset().get(pk=purchase.pk)
        return Response(PurchaseReadSerializer(purchase, context={'request': self.request}).data, **kwargs)

    def create(self, request, *args, **kwargs):
        data = self._validated(PurchaseWriteSerializer)
        purchase = PurchaseService.create_purchase(actor=self.actor, **data)
        return self._read(purchase, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='items')
    def replace_items(self, request, pk=None):
        self.get_object()
        data = self._validated(ReplaceItemsSerializer)
        return self._read(PurchaseService.replace_items(actor=self.actor, purchase_id=pk, **data))

    @action(detail=True, methods=['post'], url_path='transition')
    def transition(self, request, pk=None):
        self.get_object()
        data = self._validated(PurchaseTransitionSerializer)
        purchase = PurchaseService.transition(
            actor=self.actor,
            purchase_id=pk,
            new_status=data['status'],
            notes=data['notes'],
            expected_status=data.get('expected_status'),
        )
        return self._read(purchase)


class QuotationViewSet(
    _ActorMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):

    permission_classes = [IsActiveUser, HasCapability]
    required_capabilities = ['can_access_purchases']
    serializer_class = QuotationReadSerializer
    filterset_fields = ['status', 'purchase']
    search_fields = ['title', 'description']
    ordering_fields = ['created_at', 'deadline']
    ordering = ['-created_at']

    def get_queryset(self):
        qs = (
            Quotation.objects
            .select_related('purchase')
            .prefetch_related('items', 'responses__supplier')
        )
        return scope_to_actor_units(qs, self.actor, 'purchase__unit_id', 'purchase__cd_unit_id')

    def get_serializer_class(self):
        if self.action == 'create':
            return QuotationWriteSerializer
        return QuotationReadSerializer

    def _read(self, quotation, **kwargs):
        quotation = self.get_queryset().get(pk=quotation.pk)
        return Response(QuotationReadSerializer(quotation, context={'request': self.request}).data, **kwargs)

    def create(self, request, *args, **kwargs):
        data = self._validated(QuotationWriteSerializer)
        quotation = QuotationService.create_quotation(
            actor=self.actor,
            purchase_id=data['purchase'].pk,
            title=data['title'],
            description=data['description'],
            deadline=data.get('deadline'),
        )
        return self._read(quotation, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='status')
    def change_status(self, request, pk=None):
        self.get_object()
        data = self._validated(QuotationStatusSerializer)
        return self._read(QuotationService.change_status(actor=self.actor, quotation_id=pk, new_status=data['status']))

    @action(detail=True, methods=['post'], url_path='responses')
    def record_response(self, request, pk=None):
        self.get_object()
        data = self._validated(QuotationResponseWriteSerializer)
        response = QuotationService.record_response(actor=self.actor, quotation_id=pk, **data)
        return Response(QuotationResponseReadSerializer(response).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path=r'responses/(?P<response_id>[^/.]+)/select')
    def select_response(self, request, pk=None, response_id=None):
        quotation = self.get_object()
        if not quotation.responses.filter(pk=response_id).exists():
            return Response(status=status.HTTP_404_NOT_FOUND)
        QuotationService.select_response(actor=self.actor, response_id=response_id)
        return self._read(quotation)


class UnitBudgetViewSet(
    _ActorMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):

    permission_classes = [IsActiveUser, HasCapability]
    required_capabilities = ['can_access_financial', 'can_access_purchases']
    write_capabilities = ['can_access_financial']
    serializer_class = UnitBudgetReadSerializer
    filterset_fields = ['unit']
    ordering_fields = ['period_start', 'budget_amount']
    ordering = ['-period_start']
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    def get_queryset(self):
        return scope_to_actor_units(UnitBudget.objects.select_related('unit'), self.actor, 'unit_id')

    def create(self, request, *args, **kwargs):
        data = self._validated(UnitBudgetWriteSerializer)
        budget = BudgetService.create_budget(actor=self.actor, **data)
        return Response(UnitBudgetReadSerializer(budget).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        budget = self.get_object()
        data = self._validated(UnitBudgetUpdateSerializer)
        budget = BudgetService.update_budget(actor=self.actor, budget_id=budget.pk, **data)
        return Response(UnitBudgetReadSerializer(budget).data)

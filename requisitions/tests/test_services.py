"""
Tests — SupplyRequestService: creation, review against CD stock,
dispatch into transit, delivery completion and the purchase-backed
shortfall path.

@file requisitions/tests/test_services.py
"""

from unittest import mock

import pytest
from rest_framework.exceptions import PermissionDenied

from core.exceptions import (
    BusinessRuleViolation,
    ConflictError,
    InsufficientStockError,
    InvalidStateTransition,
    UnauthorizedTransitionError,
)
from core.models import AuditLog
from purchases.models import Purchase
from purchases.services import PurchaseService
from requisitions.models import SupplyRequest, SupplyRequestItem
from requisitions.services import SupplyRequestService
from stock.models import CDStockRecord, Movement
from stock.services import StockService
from tests.factories import (
    CDStockRecordFactory,
    CDUnitFactory,
    ItemFactory,
    ManagerFactory,
    SupplyRequestFactory,
    SupplyRequestItemFactory,
    UnitFactory,
    UserFactory,
    WarehouseOperatorFactory,
)
from transit.models import TransitRecord
from transit.services import TransitService
from users.context import as_actor


pytestmark = pytest.mark.django_db

S = SupplyRequest.StatusChoices


@pytest.fixture
def cd():
    return CDUnitFactory()


@pytest.fixture
def operator(unit):
    return UserFactory(unit=unit)


@pytest.fixture
def warehouse(cd):
    return WarehouseOperatorFactory(unit=cd)


def _request(operator, cd, *lines):
    return SupplyRequestService.create_request(
        actor=operator,
        requesting_unit=operator.unit,
        cd_unit=cd,
        items=[{'item': item, 'quantity': quantity} for item, quantity in lines],
    )


class TestCreate:

    def test_creates_request_in_requested(self, operator, cd):
        item = ItemFactory()
        request = _request(operator, cd, (item, 5))
        assert request.status == S.REQUESTED
        assert request.requester == operator
        assert request.items.get().quantity_requested == 5
        assert AuditLog.objects.filter(model_name='SupplyRequest', object_id=str(request.pk)).exists()

    def test_duplicate_items_are_summed(self, operator, cd):
        item = ItemFactory()
        request = _request(operator, cd, (item, 2), (item, 3))
        assert request.items.count() == 1
        assert request.items.get().quantity_requested == 5

    def test_empty_items_rejected(self, operator, cd):
        with pytest.raises(BusinessRuleViolation):
            _request(operator, cd)

    def test_zero_quantity_rejected(self, operator, cd):
        with pytest.raises(BusinessRuleViolation):
            _request(operator, cd, (ItemFactory(), 0))
        assert not SupplyRequest.objects.exists()

    def test_target_must_be_cd(self, operator):
        with pytest.raises(BusinessRuleViolation):
            _request(operator, UnitFactory(), (ItemFactory(), 1))

    def test_operator_cannot_request_for_other_unit(self, operator, cd):
        with pytest.raises(PermissionDenied):
            SupplyRequestService.create_request(
                actor=operator, requesting_unit=UnitFactory(), cd_unit=cd,
                items=[{'item': ItemFactory(), 'quantity': 1}],
            )

    def test_warehouse_cannot_create(self, warehouse, cd):
        with pytest.raises(PermissionDenied):
            SupplyRequestService.create_request(
                actor=warehouse, requesting_unit=UnitFactory(), cd_unit=cd,
                items=[{'item': ItemFactory(), 'quantity': 1}],
            )


class TestUpdate:

    def test_upserts_items_while_requested(self, operator, cd):
        first, second = ItemFactory(), ItemFactory()
        request = _request(operator, cd, (first, 2))
        SupplyRequestService.update_request(
            actor=operator, request_id=request.pk,
            items=[{'item': first, 'quantity': 7}, {'item': second, 'quantity': 1}],
            priority=SupplyRequest.PriorityChoices.URGENT,
        )
        request.refresh_from_db()
        assert request.priority == SupplyRequest.PriorityChoices.URGENT
        assert request.items.get(item=first).quantity_requested == 7
        assert request.items.get(item=second).quantity_requested == 1

    def test_locked_after_review_starts(self, operator, warehouse, cd):
        request = _request(operator, cd, (ItemFactory(), 2))
        SupplyRequestService.start_review(actor=warehouse, request_id=request.pk)
        with pytest.raises(InvalidStateTransition):
            SupplyRequestService.update_request(actor=operator, request_id=request.pk, notes='late')


class TestTransitionsGuard:

    def test_stale_expected_status_conflicts(self, operator, warehouse, cd):
        request = _request(operator, cd, (ItemFactory(), 2))
        SupplyRequestService.start_review(actor=warehouse, request_id=request.pk)
        with pytest.raises(ConflictError):
            SupplyRequestService.start_review(
                actor=warehouse, request_id=request.pk, expected_status=S.REQUESTED,
            )

    def test_second_reviewer_loses(self, operator, warehouse, cd):
        request = _request(operator, cd, (ItemFactory(), 2))
        SupplyRequestService.review_request(
            actor=warehouse, request_id=request.pk, expected_status=S.REQUESTED,
        )
        with pytest.raises(ConflictError):
            SupplyRequestService.reject_request(
                actor=warehouse, request_id=request.pk, reason='dup', expected_status=S.REQUESTED,
            )

    def test_operator_cannot_review(self, operator, cd):
        request = _request(operator, cd, (ItemFactory(), 2))
        with pytest.raises(UnauthorizedTransitionError):
            SupplyRequestService.review_request(actor=operator, request_id=request.pk)
        request.refresh_from_db()
        assert request.status == S.REQUESTED

    def test_invalid_edge(self, operator, warehouse, cd):
        request = _request(operator, cd, (ItemFactory(), 2))
        with pytest.raises(InvalidStateTransition):
            SupplyRequestService.dispatch_request(actor=warehouse, request_id=request.pk)

    def test_system_edge_not_reachable_by_hand(self, warehouse):
        request = SupplyRequestFactory(status=S.SENT)
        with pytest.raises(UnauthorizedTransitionError):
            SupplyRequestService._authorize(request, S.RECEIVED, as_actor(warehouse))

    def test_each_transition_writes_one_status_audit(self, operator, warehouse, cd):
        request = _request(operator, cd, (ItemFactory(), 2))
        SupplyRequestService.start_review(actor=warehouse, request_id=request.pk)
        rows = AuditLog.objects.filter(
            model_name='SupplyRequest', object_id=str(request.pk),
            action=AuditLog.ActionChoices.STATUS_CHANGE,
        )
        assert rows.count() == 1
        assert rows.get().old_values == {'status': S.REQUESTED}
        assert rows.get().new_values['status'] == S.REVIEWING

    def test_manager_endorses(self, operator, cd):
        request = _request(operator, cd, (ItemFactory(), 2))
        SupplyRequestService.endorse_request(actor=ManagerFactory(), request_id=request.pk)
        request.refresh_from_db()
        assert request.status == S.APPROVED_BY_UNIT

    def test_reject_needs_reason(self, operator, warehouse, cd):
        request = _request(operator, cd, (ItemFactory(), 2))
        with pytest.raises(BusinessRuleViolation):
            SupplyRequestService.reject_request(actor=warehouse, request_id=request.pk, reason='  ')

    def test_requester_cancels(self, operator, cd):
        request = _request(operator, cd, (ItemFactory(), 2))
        SupplyRequestService.cancel_request(actor=operator, request_id=request.pk, reason='typo')
        request.refresh_from_db()
        assert request.status == S.CANCELLED

    def test_other_unit_cannot_cancel(self, operator, cd):
        request = _request(operator, cd, (ItemFactory(), 2))
        with pytest.raises(UnauthorizedTransitionError):
            SupplyRequestService.cancel_request(actor=UserFactory(), request_id=request.pk)




class TestFullFlow:
    """Request fully covered by the CD, from creation to receipt."""

    def test_request_to_received(self, operator, warehouse, cd):
        item = ItemFactory()
        CDStockRecordFactory(item=item, unit=cd, quantity=100)
        request = _request(operator, cd, (item, 30))

        SupplyRequestService.start_review(actor=warehouse, request_id=request.pk)
        SupplyRequestService.review_request(actor=warehouse, request_id=request.pk)
        request.refresh_from_db()
        line = request.items.get()
        assert request.status == S.APPROVED
        assert request.approved_by == warehouse
        assert line.quantity_approved == 30
        assert line.cd_stock_available == 100
        assert not line.needs_purchase
        # Review never moves stock.
        assert StockService.get_quantity(item, cd) == 100

        SupplyRequestService.start_preparing(actor=warehouse, request_id=request.pk)
        SupplyRequestService.dispatch_request(actor=warehouse, request_id=request.pk)
        request.refresh_from_db()
        assert request.status == S.SENT
        assert request.sent_at is not None
        assert StockService.get_quantity(item, cd) == 70
        transit = TransitRecord.objects.get(request=request)
        assert transit.quantity == 30

        TransitService.deliver(actor=operator, transit_id=transit.pk)
        request.refresh_from_db()
        assert request.status == S.RECEIVED
        assert request.received_at is not None
        assert StockService.get_quantity(item, operator.unit) == 30
        assert Movement.objects.filter(
            item=item, movement_type=Movement.MovementType.TRANSFER,
        ).count() == 1

    def test_received_only_after_last_transit(self, operator, warehouse, cd):
        first, second = ItemFactory(), ItemFactory()
        CDStockRecordFactory(item=first, unit=cd, quantity=10)
        CDStockRecordFactory(item=second, unit=cd, quantity=10)
        request = _request(operator, cd, (first, 2), (second, 3))
        SupplyRequestService.review_request(actor=warehouse, request_id=request.pk)
        SupplyRequestService.start_preparing(actor=warehouse, request_id=request.pk)
        SupplyRequestService.dispatch_request(actor=warehouse, request_id=request.pk)

        transit_a, transit_b = TransitRecord.objects.filter(request=request)
        TransitService.deliver(actor=operator, transit_id=transit_a.pk)
        request.refresh_from_db()
        assert request.status == S.SENT
        TransitService.deliver(actor=operator, transit_id=transit_b.pk)
        request.refresh_from_db()
        assert request.status == S.RECEIVED

    def test_reviewer_override_caps_approval(self, operator, warehouse, cd):
        item = ItemFactory()
        CDStockRecordFactory(item=item, unit=cd, quantity=100)
        request = _request(operator, cd, (item, 30))
        line = request.items.get()
        SupplyRequestService.review_request(
            actor=warehouse, request_id=request.pk,
            decisions=[{'item_id': line.pk, 'quantity_approved': 12}],
        )
        line.refresh_from_db()
        assert line.quantity_approved == 12

    def test_unknown_decision_item_rejected(self, operator, warehouse, cd):
        request = _request(operator, cd, (ItemFactory(), 3))
        other = SupplyRequestItemFactory()
        with pytest.raises(BusinessRuleViolation):
            SupplyRequestService.review_request(
                actor=warehouse, request_id=request.pk,
                decisions=[{'item_id': other.pk, 'quantity_approved': 1}],
            )


class TestDispatchAtomicity:

    def test_insufficient_second_item_rolls_back_everything(self, operator, warehouse, cd):
        first, second = ItemFactory(), ItemFactory()
        CDStockRecordFactory(item=first, unit=cd, quantity=10)
        second_record = CDStockRecordFactory(item=second, unit=cd, quantity=10)
        request = _request(operator, cd, (first, 4), (second, 6))
        SupplyRequestService.review_request(actor=warehouse, request_id=request.pk)
        SupplyRequestService.start_preparing(actor=warehouse, request_id=request.pk)

        # Stock taken elsewhere between review and dispatch.
        CDStockRecord.objects.filter(pk=second_record.pk).update(quantity=1)

        with pytest.raises(InsufficientStockError):
            SupplyRequestService.dispatch_request(actor=warehouse, request_id=request.pk)

        request.refresh_from_db()
        assert request.status == S.PREPARING
        assert not TransitRecord.objects.filter(request=request).exists()
        assert StockService.get_quantity(first, cd) == 10
        assert set(request.items.values_list('quantity_sent', flat=True)) == {0}

    def test_failure_in_transit_step_rolls_back(self, operator, warehouse, cd):
        item = ItemFactory()
        CDStockRecordFactory(item=item, unit=cd, quantity=10)
        request = _request(operator, cd, (item, 4))
        SupplyRequestService.review_request(actor=warehouse, request_id=request.pk)
        SupplyRequestService.start_preparing(actor=warehouse, request_id=request.pk)

        with mock.patch('requisitions.services.AuditService.log_status_change', side_effect=RuntimeError('boom')):
            with pytest.raises(RuntimeError):
                SupplyRequestService.dispatch_request(actor=warehouse, request_id=request.pk)

        assert StockService.get_quantity(item, cd) == 10
        assert not TransitRecord.objects.exists()

    def test_nothing_approved_cannot_dispatch(self, operator, warehouse, cd):
        item = ItemFactory()
        CDStockRecordFactory(item=item, unit=cd, quantity=10)
        request = _request(operator, cd, (item, 4))
        line = request.items.get()
        SupplyRequestService.review_request(
            actor=warehouse, request_id=request.pk,
            decisions=[{'item_id': line.pk, 'quantity_approved': 0}],
        )
        SupplyRequestService.start_preparing(actor=warehouse, request_id=request.pk)
        with pytest.raises(BusinessRuleViolation):
            SupplyRequestService.dispatch_request(actor=warehouse, request_id=request.pk)


class TestShortfall:
    """CD cannot fully cover the request; a purchase fills the gap."""

    def _reviewed(self, operator, warehouse, cd, available=4, requested=10):
        item = ItemFactory()
        CDStockRecordFactory(item=item, unit=cd, quantity=available)
        request = _request(operator, cd, (item, requested))
        SupplyRequestService.review_request(actor=warehouse, request_id=request.pk)
        request.refresh_from_db()
        return request, item

    def test_review_opens_purchase_for_shortfall(self, operator, warehouse, cd):
        request, item = self._reviewed(operator, warehouse, cd)
        line = request.items.get()
        assert request.status == S.APPROVED_PENDING_PURCHASE
        assert line.needs_purchase
        assert line.quantity_approved == 4
        purchase = request.purchases.get()
        assert purchase.status == Purchase.StatusChoices.ORDER_PLACED
        assert purchase.cd_unit == cd
        purchase_item = purchase.items.get()
        assert purchase_item.quantity == 6
        assert purchase_item.request_item == line

    def test_missing_cd_record_counts_as_zero(self, operator, warehouse, cd):
        item = ItemFactory()
        request = _request(operator, cd, (item, 5))
        SupplyRequestService.review_request(actor=warehouse, request_id=request.pk)
        line = request.items.get()
        assert line.cd_stock_available == 0
        assert line.quantity_approved == 0
        assert request.purchases.get().items.get().quantity == 5

    def test_dispatch_blocked_until_purchase_finalized(self, operator, warehouse, cd):
        request, _ = self._reviewed(operator, warehouse, cd)
        SupplyRequestService.start_preparing(actor=warehouse, request_id=request.pk)
        with pytest.raises(BusinessRuleViolation):
            SupplyRequestService.dispatch_request(actor=warehouse, request_id=request.pk)

    def test_finalized_purchase_releases_request(self, operator, warehouse, cd):
        request, item = self._reviewed(operator, warehouse, cd)
        purchase = request.purchases.get()

        PurchaseService.finalize(actor=warehouse, purchase_id=purchase.pk)

        request.refresh_from_db()
        line = request.items.get()
        assert request.status == S.APPROVED
        assert line.quantity_approved == 10
        assert StockService.get_quantity(item, cd) == 10

        SupplyRequestService.start_preparing(actor=warehouse, request_id=request.pk)
        SupplyRequestService.dispatch_request(actor=warehouse, request_id=request.pk)
        assert StockService.get_quantity(item, cd) == 0
        assert TransitRecord.objects.get(request=request).quantity == 10

    def test_override_caps_cd_share_not_purchase(self, operator, warehouse, cd):
        item = ItemFactory()
        CDStockRecordFactory(item=item, unit=cd, quantity=6)
        request = _request(operator, cd, (item, 10))
        line = request.items.get()
        SupplyRequestService.review_request(
            actor=warehouse, request_id=request.pk,
            decisions=[{'item_id': line.pk, 'quantity_approved': 4}],
        )
        line.refresh_from_db()
        assert line.quantity_approved == 4
        purchase = request.purchases.get()
        assert purchase.items.get().quantity == 4

        PurchaseService.finalize(actor=warehouse, purchase_id=purchase.pk)
        line.refresh_from_db()
        assert line.quantity_approved == 8

    def test_finalize_after_cancel_leaves_items(self, operator, warehouse, cd):
        request, _ = self._reviewed(operator, warehouse, cd)
        SupplyRequestService.cancel_request(actor=operator, request_id=request.pk, reason='not needed')
        purchase = request.purchases.get()

        PurchaseService.finalize(actor=warehouse, purchase_id=purchase.pk)

        request.refresh_from_db()
        assert request.status == S.CANCELLED
        assert request.items.get().quantity_approved == 4

    def test_purchase_error_keeps_request_pending(self, operator, warehouse, cd):
        request, _ = self._reviewed(operator, warehouse, cd)
        purchase = request.purchases.get()
        PurchaseService.flag_error(actor=warehouse, purchase_id=purchase.pk, notes='supplier gone')
        request.refresh_from_db()
        assert request.status == S.APPROVED_PENDING_PURCHASE

    def test_flag_error_marks_item(self, operator, warehouse, cd):
        request, _ = self._reviewed(operator, warehouse, cd)
        line = request.items.get()
        SupplyRequestService.flag_error(
            actor=warehouse, request_id=request.pk, description='damaged batch', item_id=line.pk,
        )
        request.refresh_from_db()
        line.refresh_from_db()
        assert request.status == S.ORDER_ERROR
        assert line.has_error
        assert line.error_description == 'damaged batch'


class TestRequestItemConstraints:

    def test_approved_cannot_exceed_requested(self):
        from django.db import IntegrityError, transaction

        with pytest.raises(IntegrityError), transaction.atomic():
            SupplyRequestItemFactory(quantity_requested=2, quantity_approved=3)

    def test_shortfall_property(self):
        line = SupplyRequestItem(quantity_requested=10, cd_stock_available=4)
        assert line.shortfall == 6

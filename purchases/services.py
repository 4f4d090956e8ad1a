"""
Purchases — Service Layer

PurchaseService drives a Purchase along purchases.state_machine and, on
finalize, credits the CD and writes one `purchase` Movement per item.
QuotationService runs the price survey and feeds the selected prices
back into the purchase items. BudgetService holds each unit's spending
limit: totals are checked when a purchase is opened or repriced and
charged when it is finalized.

@file purchases/services.py
"""

import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_UPDATE
from core.exceptions import (
    BusinessRuleViolation,
    ConflictError,
    InvalidStateTransition,
    ResourceNotFoundError,
    UnauthorizedTransitionError,
)
from core.services import AuditService
from stock.models import Movement
from stock.services import StockService
from users.context import as_actor

from . import state_machine
from .models import Purchase, PurchaseItem, Quotation, QuotationItem, QuotationResponse, UnitBudget

logger = logging.getLogger('depotrack')

P = Purchase.StatusChoices
Q = Quotation.StatusChoices

_EDITABLE_STATUSES = (P.ORDER_PLACED, P.QUOTING)


def _line_total(quantity: int, unit_price) -> Decimal | None:
    if unit_price is None:
        return None
    return (Decimal(unit_price) * quantity).quantize(Decimal('0.01'))


class BudgetService:
    """Spending limits per unit and period. Purchases are checked against them and charged on finalize."""

    @staticmethod
    def current_for(unit, on=None, *, lock: bool = False) -> UnitBudget | None:
        on = on or timezone.localdate()
        qs = UnitBudget.objects.filter(unit=unit, period_start__lte=on, period_end__gte=on)
        if lock:
            qs = qs.select_for_update()
        return qs.order_by('-period_start').first()

    @staticmethod
    def check(unit, amount, budget: UnitBudget | None) -> UnitBudget | None:
        """
        Raise BusinessRuleViolation when ``amount`` does not fit ``budget``.
        Zero totals always pass. Without a budget the outcome depends on
        settings.PURCHASE_BUDGET_REQUIRED.
        """
        if amount <= 0:
            return budget
        if budget is None:
            if settings.PURCHASE_BUDGET_REQUIRED:
                raise BusinessRuleViolation(detail=f'{unit} has no budget for the current period.')
            return None
        if budget.available_amount < amount:
            raise BusinessRuleViolation(
                detail=f'Purchase total {amount} exceeds the available budget {budget.available_amount} of {unit}.',
            )
        return budget

    @staticmethod
    def attach(purchase: Purchase) -> UnitBudget | None:
        """Check the purchase total and link the purchase to its budget."""
        budget = purchase.budget or BudgetService.current_for(purchase.unit)
        budget = BudgetService.check(purchase.unit, purchase.total_value, budget)
        if budget is not None and purchase.budget_id != budget.pk:
            purchase.budget = budget
            purchase.save(update_fields=['budget', 'updated_at'])
        return budget

    @staticmethod
    @transaction.atomic
    def charge(purchase: Purchase) -> UnitBudget | None:
        """Consume the purchase total from its budget, locking the budget row."""
        if purchase.budget_id:
            budget = UnitBudget.objects.select_for_update().get(pk=purchase.budget_id)
        else:
            budget = BudgetService.current_for(purchase.unit, lock=True)
        budget = BudgetService.check(purchase.unit, purchase.total_value, budget)
        if budget is None or purchase.total_value <= 0:
            return budget

        UnitBudget.objects.filter(pk=budget.pk).update(
            used_amount=F('used_amount') + purchase.total_value,
            updated_at=timezone.now(),
        )
        budget.refresh_from_db()
        if purchase.budget_id != budget.pk:
            purchase.budget = budget
            purchase.save(update_fields=['budget', 'updated_at'])
        logger.info(
            'Budget %s charged %s for purchase %s (available %s)',
            budget.pk, purchase.total_value, purchase.pk, budget.available_amount,
        )
        return budget

    @staticmethod
    def _check_period(unit, period_start, period_end, exclude_pk=None) -> None:
        if period_end < period_start:
            raise BusinessRuleViolation(detail='Budget period cannot end before it starts.')
        overlapping = UnitBudget.objects.filter(
            unit=unit, period_start__lte=period_end, period_end__gte=period_start,
        ).exclude(pk=exclude_pk)
        if overlapping.exists():
            raise BusinessRuleViolation(detail=f'{unit} already has a budget overlapping {period_start}..{period_end}.')

    @staticmethod
    @transaction.atomic
    def create_budget(*, actor, unit, period_start, period_end, budget_amount) -> UnitBudget:
        actor = as_actor(actor)
        actor.require('can_access_financial', 'You are not allowed to manage budgets.')
        actor.require_unit(unit.pk, 'You may only manage the budget of your own unit.')
        if budget_amount < 0:
            raise BusinessRuleViolation(detail='Budget amount cannot be negative.')
        BudgetService._check_period(unit, period_start, period_end)

        budget = UnitBudget.objects.create(
            unit=unit,
            period_start=period_start,
            period_end=period_end,
            budget_amount=budget_amount,
            created_by=actor.user,
        )
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='UnitBudget',
            object_id=str(budget.pk),
            new_values=AuditService.snapshot(budget, ['unit', 'period_start', 'period_end', 'budget_amount']),
        )
        return budget

    @staticmethod
    @transaction.atomic
    def update_budget(*, actor, budget_id, budget_amount=None, period_start=None, period_end=None) -> UnitBudget:
        actor = as_actor(actor)
        actor.require('can_access_financial', 'You are not allowed to manage budgets.')
        try:
            budget = UnitBudget.objects.select_for_update().select_related('unit').get(pk=budget_id)
        except UnitBudget.DoesNotExist:
            raise ResourceNotFoundError(detail='Budget not found.')
        actor.require_unit(budget.unit_id, 'You may only manage the budget of your own unit.')

        fields = ['budget_amount', 'period_start', 'period_end', 'used_amount']
        old_values = AuditService.snapshot(budget, fields)
        new_amount = budget.budget_amount if budget_amount is None else budget_amount
        if new_amount < budget.used_amount:
            raise BusinessRuleViolation(
                detail=f'Budget amount {new_amount} is below the amount already used ({budget.used_amount}).',
            )
        new_start = period_start or budget.period_start
        new_end = period_end or budget.period_end
        BudgetService._check_period(budget.unit, new_start, new_end, exclude_pk=budget.pk)

        budget.budget_amount = new_amount
        budget.period_start = new_start
        budget.period_end = new_end
        budget.updated_by = actor.user
        budget.save(update_fields=['budget_amount', 'period_start', 'period_end', 'updated_by', 'updated_at'])
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='UnitBudget',
            object_id=str(budget.pk),
            old_values=old_values,
            new_values=AuditService.snapshot(budget, fields),
        )
        return budget


class PurchaseService:

    @staticmethod
    def _get_locked(purchase_id) -> Purchase:
        try:
            return (
                Purchase.objects
                .select_for_update()
                .select_related('unit', 'cd_unit')
                .get(pk=purchase_id)
            )
        except Purchase.DoesNotExist:
            raise ResourceNotFoundError(detail='Purchase not found.')

    @staticmethod
    def _check_expected(purchase: Purchase, expected_status) -> None:
        if expected_status is not None and purchase.status != expected_status:
            raise ConflictError(
                detail=f'Purchase is "{purchase.status}", expected "{expected_status}". Reload and retry.',
            )

    @staticmethod
    def _authorize(purchase: Purchase, new_status: str, actor) -> None:
        who = state_machine.required_capabilities(purchase.status, new_status)
        if who is None:
            raise InvalidStateTransition(
                detail=f'Cannot move purchase from "{purchase.status}" to "{new_status}".',
            )
        if not any(actor.can(cap) for cap in who):
            raise UnauthorizedTransitionError(
                detail=f'Role "{actor.role}" may not move a purchase to "{new_status}".',
            )

    @staticmethod
    def _apply_transition(purchase: Purchase, new_status: str, actor, *, fields: tuple = (), **audit_extra) -> Purchase:
        PurchaseService._authorize(purchase, new_status, actor)
        old_status = purchase.status
        purchase.status = new_status
        purchase.updated_by = actor.user
        purchase.save(update_fields=['status', 'updated_by', 'updated_at', *fields])
        AuditService.log_status_change(
            actor=actor, instance=purchase,
            old_status=old_status, new_status=new_status, **audit_extra,
        )
        logger.info('Purchase %s: %s -> %s', purchase.pk, old_status, new_status)
        return purchase

    @staticmethod
    def recompute_total(purchase: Purchase) -> Decimal:
        total = purchase.items.aggregate(total=Sum('total_price'))['total'] or Decimal('0')
        purchase.total_value = total
        purchase.save(update_fields=['total_value', 'updated_at'])
        return total

    @staticmethod
    def _create_items(purchase: Purchase, items, actor) -> list[PurchaseItem]:
        if not items:
            raise BusinessRuleViolation(detail='A purchase needs at least one item.')
        created = []
        for entry in items:
            quantity = int(entry['quantity'])
            if quantity <= 0:
                raise BusinessRuleViolation(detail=f'Quantity for {entry["item"].code} must be positive.')
            unit_price = entry.get('unit_price')
            created.append(PurchaseItem.objects.create(
                purchase=purchase,
                item=entry['item'],
                quantity=quantity,
                unit_price=unit_price,
                total_price=_line_total(quantity, unit_price),
                supplier=entry.get('supplier') or purchase.supplier,
                request_item_id=entry.get('request_item_id') or getattr(entry.get('request_item'), 'pk', None),
                created_by=actor.user,
            ))
        PurchaseService.recompute_total(purchase)
        return created

    @staticmethod
    @transaction.atomic
    def create_purchase(
        *,
        actor,
        unit,
        cd_unit,
        items,
        supplier=None,
        notes: str = '',
        request=None,
    ) -> Purchase:
        actor = as_actor(actor)
        actor.require('can_manage_purchases', 'You are not allowed to create purchases.')
        actor.require_unit(unit.pk, 'You may only purchase for your own unit.')
        if not cd_unit.is_cd:
            raise BusinessRuleViolation(detail=f'{cd_unit} is not a distribution center.')

        purchase = Purchase.objects.create(
            unit=unit,
            cd_unit=cd_unit,
            requester=actor.user,
            supplier=supplier,
            notes=notes,
            request=request,
            created_by=actor.user,
        )
        PurchaseService._create_items(purchase, items, actor)
        budget = BudgetService.attach(purchase)

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='Purchase',
            object_id=str(purchase.pk),
            new_values={
                'unit': str(unit.pk),
                'cd_unit': str(cd_unit.pk),
                'total_value': str(purchase.total_value),
                'request': str(request.pk) if request else None,
                'budget': str(budget.pk) if budget else None,
            },
        )
        logger.info('Purchase %s created for unit %s (total %s)', purchase.pk, unit.pk, purchase.total_value)
        return purchase

    @staticmethod
    @transaction.atomic
    def create_from_request_shortfall(*, actor, request, shortfall) -> Purchase:
        """
        Open one purchase for what the CD could not cover during review.
        ``shortfall`` is ``[(request_item, quantity), ...]``.
        """
        actor = as_actor(actor)
        purchase = Purchase.objects.create(
            unit=request.requesting_unit,
            cd_unit=request.cd_unit,
            requester=actor.user,
            request=request,
            notes=f'Shortfall of request {request.pk}',
            created_by=actor.user,
        )
        PurchaseService._create_items(
            purchase,
            [
                {
                    'item': request_item.item,
                    'quantity': quantity,
                    'unit_price': request_item.unit_price,
                    'request_item': request_item,
                }
                for request_item, quantity in shortfall
            ],
            actor,
        )
        BudgetService.attach(purchase)
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='Purchase',
            object_id=str(purchase.pk),
            new_values={
                'request': str(request.pk),
                'items': {str(ri.item_id): qty for ri, qty in shortfall},
            },
        )
        logger.info('Purchase %s opened for shortfall of request %s', purchase.pk, request.pk)
        return purchase

    @staticmethod
    @transaction.atomic
    def replace_items(*, actor, purchase_id, items, expected_status: str | None = None) -> Purchase:
        """Swap the item list. Open quotations no longer match it, so they expire."""
        actor = as_actor(actor)
        purchase = PurchaseService._get_locked(purchase_id)
        PurchaseService._check_expected(purchase, expected_status)
        actor.require('can_manage_purchases', 'You are not allowed to edit purchases.')
        actor.require_unit(purchase.unit_id, 'You may only edit purchases of your own unit.')
        if purchase.status not in _EDITABLE_STATUSES:
            raise InvalidStateTransition(detail=f'Items cannot change once the purchase is "{purchase.status}".')

        old_total = purchase.total_value
        # Lines that cover a request item keep that link when the item stays.
        links = dict(
            purchase.items.filter(request_item__isnull=False).values_list('item_id', 'request_item')
        )
        items = [
            {**entry, 'request_item_id': entry.get('request_item_id') or links.get(entry['item'].pk)}
            for entry in items
        ]
        purchase.items.all().delete()
        PurchaseService._create_items(purchase, items, actor)
        BudgetService.attach(purchase)
        expired = QuotationService.invalidate_for_purchase(purchase)

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='Purchase',
            object_id=str(purchase.pk),
            old_values={'total_value': str(old_total)},
            new_values={'total_value': str(purchase.total_value), 'expired_quotations': expired},
        )
        return purchase

    @staticmethod
    @transaction.atomic
    def transition(
        *,
        actor,
        purchase_id,
        new_status: str,
        notes: str = '',
        expected_status: str | None = None,
    ) -> Purchase:
        if new_status == P.FINALIZED:
            return PurchaseService.finalize(actor=actor, purchase_id=purchase_id, expected_status=expected_status)
        if new_status == P.ORDER_ERROR:
            return PurchaseService.flag_error(
                actor=actor, purchase_id=purchase_id, notes=notes, expected_status=expected_status,
            )
        actor = as_actor(actor)
        purchase = PurchaseService._get_locked(purchase_id)
        PurchaseService._check_expected(purchase, expected_status)
        if notes:
            purchase.notes = f'{purchase.notes}\n{notes}'.strip()
        return PurchaseService._apply_transition(purchase, new_status, actor, fields=('notes',))

    @staticmethod
    @transaction.atomic
    def finalize(*, actor, purchase_id, expected_status: str | None = None) -> Purchase:
        """Credit every purchased item to the CD and release the linked request."""
        from requisitions.services import SupplyRequestService

        actor = as_actor(actor)
        purchase = PurchaseService._get_locked(purchase_id)
        PurchaseService._check_expected(purchase, expected_status)
        PurchaseService._authorize(purchase, P.FINALIZED, actor)
        BudgetService.charge(purchase)

        for purchase_item in purchase.items.select_related('item'):
            seed = {}
            if purchase_item.unit_price is not None:
                seed = {
                    'unit_price': purchase_item.unit_price,
                    'price_updated_by': actor.user,
                    'price_updated_at': timezone.now(),
                }
            StockService.increment(purchase_item.item, purchase.cd_unit, purchase_item.quantity, defaults=seed)
            StockService.record_movement(
                item=purchase_item.item,
                quantity=purchase_item.quantity,
                movement_type=Movement.MovementType.PURCHASE,
                actor=actor,
                from_unit=None,
                to_unit=purchase.cd_unit,
                reference=f'Purchase #{purchase.pk}',
                reference_type='Purchase',
                reference_id=purchase.pk,
            )

        purchase.finalized_at = timezone.now()
        PurchaseService._apply_transition(purchase, P.FINALIZED, actor, fields=('finalized_at',))
        SupplyRequestService.on_purchase_finalized(purchase=purchase, actor=actor)
        return purchase

    @staticmethod
    @transaction.atomic
    def flag_error(*, actor, purchase_id, notes: str, expected_status: str | None = None) -> Purchase:
        actor = as_actor(actor)
        notes = (notes or '').strip()
        if not notes:
            raise BusinessRuleViolation(detail='An error description is required.')
        purchase = PurchaseService._get_locked(purchase_id)
        PurchaseService._check_expected(purchase, expected_status)
        purchase.error_description = notes
        return PurchaseService._apply_transition(
            purchase, P.ORDER_ERROR, actor, fields=('error_description',), description=notes,
        )


class QuotationService:

    @staticmethod
    def _get_locked(quotation_id) -> Quotation:
        try:
            return Quotation.objects.select_for_update().select_related('purchase').get(pk=quotation_id)
        except Quotation.DoesNotExist:
            raise ResourceNotFoundError(detail='Quotation not found.')

    @staticmethod
    @transaction.atomic
    def create_quotation(
        *,
        actor,
        purchase_id,
        title: str,
        description: str = '',
        deadline=None,
    ) -> Quotation:
        actor = as_actor(actor)
        actor.require('can_manage_purchases', 'You are not allowed to open quotations.')
        purchase = PurchaseService._get_locked(purchase_id)
        actor.require_unit(purchase.unit_id, 'You may only quote purchases of your own unit.')
        if purchase.status not in _EDITABLE_STATUSES:
            raise InvalidStateTransition(
                detail=f'Quotations can only be opened while the purchase is {" or ".join(_EDITABLE_STATUSES)}.',
            )

        snapshot: dict = {}
        for purchase_item in purchase.items.select_related('item'):
            item, quantity = snapshot.get(purchase_item.item_id, (purchase_item.item, 0))
            snapshot[purchase_item.item_id] = (item, quantity + purchase_item.quantity)
        if not snapshot:
            raise BusinessRuleViolation(detail='The purchase has no items to quote.')

        quotation = Quotation.objects.create(
            purchase=purchase,
            title=title,
            description=description,
            deadline=deadline,
            created_by=actor.user,
        )
        QuotationItem.objects.bulk_create([
            QuotationItem(quotation=quotation, item=item, item_code=item.code, quantity=quantity)
            for item, quantity in snapshot.values()
        ])

        if purchase.status == P.ORDER_PLACED:
            PurchaseService._apply_transition(purchase, P.QUOTING, actor, quotation=str(quotation.pk))

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='Quotation',
            object_id=str(quotation.pk),
            new_values={'purchase': str(purchase.pk), 'title': title, 'items': len(snapshot)},
        )
        return quotation

    @staticmethod
    @transaction.atomic
    def change_status(*, actor, quotation_id, new_status: str) -> Quotation:
        actor = as_actor(actor)
        actor.require('can_manage_purchases', 'You are not allowed to manage quotations.')
        quotation = QuotationService._get_locked(quotation_id)
        if new_status not in state_machine.QUOTATION_TRANSITIONS.get(quotation.status, set()):
            raise InvalidStateTransition(
                detail=f'Cannot move quotation from "{quotation.status}" to "{new_status}".',
            )
        old_status = quotation.status
        quotation.status = new_status
        quotation.updated_by = actor.user
        quotation.save(update_fields=['status', 'updated_by', 'updated_at'])
        AuditService.log_status_change(actor=actor, instance=quotation, old_status=old_status, new_status=new_status)
        return quotation

    @staticmethod
    @transaction.atomic
    def record_response(
        *,
        actor,
        quotation_id,
        supplier,
        item,
        unit_price,
        delivery_days=None,
        notes: str = '',
    ) -> QuotationResponse:
        actor = as_actor(actor)
        actor.require('can_manage_purchases', 'You are not allowed to record supplier responses.')
        quotation = QuotationService._get_locked(quotation_id)
        if quotation.status not in state_machine.OPEN_QUOTATION_STATUSES:
            raise InvalidStateTransition(detail=f'Quotation is "{quotation.status}" and takes no more responses.')
        if not quotation.items.filter(item=item).exists():
            raise BusinessRuleViolation(detail=f'{item.code} is not part of this quotation.')
        if Decimal(unit_price) < 0:
            raise BusinessRuleViolation(detail='Unit price cannot be negative.')

        response, created = QuotationResponse.objects.update_or_create(
            quotation=quotation,
            supplier=supplier,
            item=item,
            defaults={
                'unit_price': unit_price,
                'delivery_days': delivery_days,
                'notes': notes,
                'updated_by': actor.user,
            },
            create_defaults={
                'unit_price': unit_price,
                'delivery_days': delivery_days,
                'notes': notes,
                'created_by': actor.user,
            },
        )
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE if created else AUDIT_ACTION_UPDATE,
            model_name='QuotationResponse',
            object_id=str(response.pk),
            new_values={'supplier': str(supplier.pk), 'item': str(item.pk), 'unit_price': str(unit_price)},
        )
        return response

    @staticmethod
    @transaction.atomic
    def select_response(*, actor, response_id) -> QuotationResponse:
        """
        Pick the winning offer for one item. Any earlier pick for the same
        (quotation, item) is cleared and the purchase lines are repriced.
        """
        actor = as_actor(actor)
        actor.require('can_manage_purchases', 'You are not allowed to select supplier responses.')
        try:
            response = (
                QuotationResponse.objects
                .select_for_update()
                .select_related('quotation', 'supplier', 'item')
                .get(pk=response_id)
            )
        except QuotationResponse.DoesNotExist:
            raise ResourceNotFoundError(detail='Quotation response not found.')

        quotation = response.quotation
        if quotation.status in (Q.CANCELLED, Q.EXPIRED):
            raise InvalidStateTransition(detail=f'Quotation is "{quotation.status}".')
        purchase = PurchaseService._get_locked(quotation.purchase_id)
        if purchase.status not in (P.ORDER_PLACED, P.QUOTING, P.PURCHASED_AWAITING):
            raise InvalidStateTransition(detail=f'Purchase is already "{purchase.status}".')

        QuotationResponse.objects.filter(
            quotation=quotation, item=response.item, is_selected=True,
        ).exclude(pk=response.pk).update(is_selected=False)
        response.is_selected = True
        response.updated_by = actor.user
        response.save(update_fields=['is_selected', 'updated_by', 'updated_at'])

        for purchase_item in purchase.items.filter(item=response.item):
            purchase_item.unit_price = response.unit_price
            purchase_item.total_price = _line_total(purchase_item.quantity, response.unit_price)
            purchase_item.supplier = response.supplier
            purchase_item.save(update_fields=['unit_price', 'total_price', 'supplier', 'updated_at'])
        old_total = purchase.total_value
        PurchaseService.recompute_total(purchase)
        BudgetService.attach(purchase)

        suppliers = set(purchase.items.values_list('supplier_id', flat=True))
        if len(suppliers) == 1 and None not in suppliers:
            purchase.supplier_id = suppliers.pop()
            purchase.save(update_fields=['supplier', 'updated_at'])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='Purchase',
            object_id=str(purchase.pk),
            old_values={'total_value': str(old_total)},
            new_values={
                'total_value': str(purchase.total_value),
                'selected_response': str(response.pk),
            },
        )
        logger.info('Quotation %s: selected %s for item %s', quotation.pk, response.supplier_id, response.item_id)
        return response

    @staticmethod
    def invalidate_for_purchase(purchase: Purchase) -> int:
        return Quotation.objects.filter(
            purchase=purchase, status__in=state_machine.OPEN_QUOTATION_STATUSES,
        ).update(status=Q.EXPIRED, updated_at=timezone.now())

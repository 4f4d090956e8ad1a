"""
Requisitions — Service Layer

Every status change of a SupplyRequest goes through
SupplyRequestService._apply_transition, which checks the edge against
requisitions.state_machine, checks the actor's capabilities, saves and
writes one STATUS_CHANGE audit row.

Review reads CD stock but never mutates it. Dispatch is the only step
that moves quantity: it hands each approved item to TransitService in
the same transaction as the status change.

@file requisitions/services.py
"""

import logging

from django.db import transaction
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
from stock.services import StockService
from transit.models import TransitRecord
from transit.services import TransitService
from users.context import as_actor

from . import state_machine
from .models import SupplyRequest, SupplyRequestItem

logger = logging.getLogger('depotrack')

S = SupplyRequest.StatusChoices


def _merge_items(items) -> dict:
    """
    Collapse ``[{'item': Item, 'quantity': int}, ...]`` into
    ``{item_pk: (item, total_quantity)}``. Duplicate items are summed.
    """
    if not items:
        raise BusinessRuleViolation(detail='A request needs at least one item.')
    merged: dict = {}
    for entry in items:
        item, quantity = entry['item'], int(entry['quantity'])
        if quantity <= 0:
            raise BusinessRuleViolation(detail=f'Quantity for {item.code} must be positive.')
        _, current = merged.get(item.pk, (item, 0))
        merged[item.pk] = (item, current + quantity)
    return merged


class SupplyRequestService:

    # -- helpers ---------------------------------------------------------

    @staticmethod
    def _get_locked(request_id) -> SupplyRequest:
        try:
            return (
                SupplyRequest.objects
                .select_for_update()
                .select_related('requesting_unit', 'cd_unit')
                .get(pk=request_id)
            )
        except SupplyRequest.DoesNotExist:
            raise ResourceNotFoundError(detail='Supply request not found.')

    @staticmethod
    def _check_expected(request: SupplyRequest, expected_status) -> None:
        if expected_status is not None and request.status != expected_status:
            raise ConflictError(
                detail=f'Request is "{request.status}", expected "{expected_status}". Reload and retry.',
            )

    @staticmethod
    def _authorize(request: SupplyRequest, new_status: str, actor, *, system: bool = False) -> None:
        who = state_machine.required_capabilities(request.status, new_status)
        if who is None:
            raise InvalidStateTransition(
                detail=f'Cannot move request from "{request.status}" to "{new_status}".',
            )
        if system:
            return
        if who == state_machine.SYSTEM:
            raise UnauthorizedTransitionError(
                detail=f'"{request.status}" → "{new_status}" happens automatically.',
            )
        if not any(actor.can(cap) for cap in who):
            raise UnauthorizedTransitionError(
                detail=f'Role "{actor.role}" may not move a request to "{new_status}".',
            )
        if who == state_machine.CREATE and not actor.can_act_for_unit(request.requesting_unit_id):
            raise UnauthorizedTransitionError(detail='Only the requesting unit can do this.')

    @staticmethod
    def _apply_transition(
        request: SupplyRequest,
        new_status: str,
        actor,
        *,
        system: bool = False,
        fields: tuple = (),
        **audit_extra,
    ) -> SupplyRequest:
        SupplyRequestService._authorize(request, new_status, actor, system=system)
        old_status = request.status
        request.status = new_status
        request.updated_by = actor.user
        request.save(update_fields=['status', 'updated_by', 'updated_at', *fields])
        AuditService.log_status_change(
            actor=actor, instance=request,
            old_status=old_status, new_status=new_status, **audit_extra,
        )
        logger.info('Request %s: %s -> %s', request.pk, old_status, new_status)
        return request

    # -- creation / edits --------------------------------------------------

    @staticmethod
    @transaction.atomic
    def create_request(
        *,
        actor,
        requesting_unit,
        cd_unit,
        items,
        priority: str = SupplyRequest.PriorityChoices.NORMAL,
        notes: str = '',
    ) -> SupplyRequest:
        actor = as_actor(actor)
        actor.require('can_create_requests', 'You are not allowed to create supply requests.')
        actor.require_unit(requesting_unit.pk, 'You may only request for your own unit.')
        if requesting_unit.is_cd:
            raise BusinessRuleViolation(detail='A distribution center cannot request from itself.')
        if not cd_unit.is_cd:
            raise BusinessRuleViolation(detail=f'{cd_unit} is not a distribution center.')

        merged = _merge_items(items)
        request = SupplyRequest.objects.create(
            requesting_unit=requesting_unit,
            cd_unit=cd_unit,
            requester=actor.user,
            priority=priority,
            notes=notes,
            created_by=actor.user,
        )
        SupplyRequestItem.objects.bulk_create([
            SupplyRequestItem(
                request=request, item=item, quantity_requested=quantity, created_by=actor.user,
            )
            for item, quantity in merged.values()
        ])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='SupplyRequest',
            object_id=str(request.pk),
            new_values={
                'requesting_unit': str(requesting_unit.pk),
                'cd_unit': str(cd_unit.pk),
                'priority': priority,
                'items': {str(pk): qty for pk, (_, qty) in merged.items()},
            },
        )
        logger.info('Request %s created by %s for unit %s', request.pk, actor.user, requesting_unit.pk)
        return request

    @staticmethod
    @transaction.atomic
    def update_request(
        *,
        actor,
        request_id,
        items=None,
        priority: str | None = None,
        notes: str | None = None,
        expected_status: str | None = None,
    ) -> SupplyRequest:
        """
        Edit a request that nobody has looked at yet. ``items`` sets the
        quantity of each listed item, adding new lines as needed; lines
        not listed are kept.
        """
        actor = as_actor(actor)
        request = SupplyRequestService._get_locked(request_id)
        SupplyRequestService._check_expected(request, expected_status)
        actor.require('can_create_requests', 'You are not allowed to edit supply requests.')
        actor.require_unit(request.requesting_unit_id, 'Only the requesting unit can edit this request.')
        if request.status != S.REQUESTED:
            raise InvalidStateTransition(detail='Only requests still in "requested" can be edited.')

        old_values = {'priority': request.priority, 'notes': request.notes}
        if priority is not None:
            request.priority = priority
        if notes is not None:
            request.notes = notes
        request.updated_by = actor.user
        request.save(update_fields=['priority', 'notes', 'updated_by', 'updated_at'])

        changed_items = {}
        if items:
            for item, quantity in _merge_items(items).values():
                SupplyRequestItem.objects.update_or_create(
                    request=request, item=item,
                    defaults={'quantity_requested': quantity, 'updated_by': actor.user},
                    create_defaults={
                        'quantity_requested': quantity, 'created_by': actor.user,
                    },
                )
                changed_items[str(item.pk)] = quantity

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='SupplyRequest',
            object_id=str(request.pk),
            old_values=old_values,
            new_values={'priority': request.priority, 'notes': request.notes, 'items': changed_items},
        )
        return request

    # -- transitions -------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def endorse_request(*, actor, request_id, expected_status: str | None = None) -> SupplyRequest:
        actor = as_actor(actor)
        request = SupplyRequestService._get_locked(request_id)
        SupplyRequestService._check_expected(request, expected_status)
        if not actor.can_act_for_unit(request.requesting_unit_id):
            raise UnauthorizedTransitionError(detail='Only a manager of the requesting unit can endorse.')
        return SupplyRequestService._apply_transition(request, S.APPROVED_BY_UNIT, actor)

    @staticmethod
    @transaction.atomic
    def start_review(*, actor, request_id, expected_status: str | None = None) -> SupplyRequest:
        actor = as_actor(actor)
        request = SupplyRequestService._get_locked(request_id)
        SupplyRequestService._check_expected(request, expected_status)
        return SupplyRequestService._apply_transition(request, S.REVIEWING, actor)

    @staticmethod
    @transaction.atomic
    def review_request(
        *,
        actor,
        request_id,
        decisions=None,
        notes: str = '',
        expected_status: str | None = None,
    ) -> SupplyRequest:
        """
        Decide every item against current CD stock.

        ``decisions`` optionally caps the approved quantity per item:
        ``[{'item_id': <request item pk>, 'quantity_approved': int}]``.
        Items the CD cannot fully cover are flagged ``needs_purchase`` and
        one Purchase is opened for the shortfall.
        """
        from purchases.services import PurchaseService

        actor = as_actor(actor)
        request = SupplyRequestService._get_locked(request_id)
        SupplyRequestService._check_expected(request, expected_status)
        # Fail before reading stock when the edge or role is wrong.
        SupplyRequestService._authorize(request, S.APPROVED, actor)

        overrides = {str(d['item_id']): int(d['quantity_approved']) for d in (decisions or [])}
        request_items = list(
            request.items.select_for_update().select_related('item').order_by('created_at')
        )
        unknown = set(overrides) - {str(ri.pk) for ri in request_items}
        if unknown:
            raise BusinessRuleViolation(detail=f'Unknown request items: {", ".join(sorted(unknown))}.')

        shortfall = []
        for request_item in request_items:
            record = StockService.get_record(request_item.item, request.cd_unit)
            available = record.quantity if record else 0
            approved = min(request_item.quantity_requested, available)
            override = overrides.get(str(request_item.pk))
            if override is not None:
                if override < 0:
                    raise BusinessRuleViolation(detail='Approved quantity cannot be negative.')
                approved = min(approved, override)

            request_item.cd_stock_available = available
            request_item.quantity_approved = approved
            request_item.needs_purchase = available < request_item.quantity_requested
            if record is not None and record.unit_price is not None:
                request_item.unit_price = record.unit_price
            request_item.updated_by = actor.user
            request_item.save(update_fields=[
                'cd_stock_available', 'quantity_approved', 'needs_purchase',
                'unit_price', 'updated_by', 'updated_at',
            ])
            # Purchases cover what the CD lacks; an override only caps what
            # leaves current CD stock.
            if request_item.needs_purchase:
                shortfall.append((request_item, request_item.quantity_requested - available))

        request.approved_by = actor.user
        request.approved_at = timezone.now()
        if notes:
            request.notes = f'{request.notes}\n{notes}'.strip()
        new_status = S.APPROVED_PENDING_PURCHASE if shortfall else S.APPROVED
        SupplyRequestService._apply_transition(
            request, new_status, actor,
            fields=('approved_by', 'approved_at', 'notes'),
            shortfall_items=len(shortfall),
        )
        if shortfall:
            PurchaseService.create_from_request_shortfall(actor=actor, request=request, shortfall=shortfall)
        return request

    @staticmethod
    @transaction.atomic
    def reject_request(*, actor, request_id, reason: str, expected_status: str | None = None) -> SupplyRequest:
        actor = as_actor(actor)
        reason = (reason or '').strip()
        if not reason:
            raise BusinessRuleViolation(detail='A rejection reason is required.')
        request = SupplyRequestService._get_locked(request_id)
        SupplyRequestService._check_expected(request, expected_status)
        request.rejection_reason = reason
        return SupplyRequestService._apply_transition(
            request, S.REJECTED, actor, fields=('rejection_reason',), reason=reason,
        )

    @staticmethod
    @transaction.atomic
    def start_preparing(*, actor, request_id, expected_status: str | None = None) -> SupplyRequest:
        actor = as_actor(actor)
        request = SupplyRequestService._get_locked(request_id)
        SupplyRequestService._check_expected(request, expected_status)
        return SupplyRequestService._apply_transition(request, S.PREPARING, actor)

    @staticmethod
    @transaction.atomic
    def dispatch_request(*, actor, request_id, expected_status: str | None = None) -> SupplyRequest:
        """
        Send every approved item. Any InsufficientStockError rolls back
        the whole dispatch, including the transit records already made.
        """
        from purchases.models import Purchase, PurchaseItem

        actor = as_actor(actor)
        request = SupplyRequestService._get_locked(request_id)
        SupplyRequestService._check_expected(request, expected_status)
        SupplyRequestService._authorize(request, S.SENT, actor)

        request_items = list(request.items.select_for_update().select_related('item').order_by('created_at'))
        uncovered = [
            ri.item.code for ri in request_items
            if ri.needs_purchase and not PurchaseItem.objects.filter(
                request_item=ri, purchase__status=Purchase.StatusChoices.FINALIZED,
            ).exists()
        ]
        if uncovered:
            raise BusinessRuleViolation(
                detail=f'Waiting on purchases for: {", ".join(uncovered)}.',
            )

        dispatched = 0
        for request_item in request_items:
            quantity = request_item.quantity_approved or 0
            if quantity <= 0:
                continue
            TransitService.dispatch(
                actor=actor,
                item=request_item.item,
                quantity=quantity,
                from_cd=request.cd_unit,
                to_unit=request.requesting_unit,
                request=request,
                request_item=request_item,
            )
            request_item.quantity_sent = quantity
            request_item.save(update_fields=['quantity_sent', 'updated_at'])
            dispatched += 1
        if not dispatched:
            raise BusinessRuleViolation(detail='Nothing to dispatch: no item has an approved quantity.')

        request.sent_at = timezone.now()
        return SupplyRequestService._apply_transition(
            request, S.SENT, actor, fields=('sent_at',), transit_records=dispatched,
        )

    @staticmethod
    @transaction.atomic
    def flag_error(
        *,
        actor,
        request_id,
        description: str,
        item_id=None,
        expected_status: str | None = None,
    ) -> SupplyRequest:
        actor = as_actor(actor)
        description = (description or '').strip()
        if not description:
            raise BusinessRuleViolation(detail='An error description is required.')
        request = SupplyRequestService._get_locked(request_id)
        SupplyRequestService._check_expected(request, expected_status)
        SupplyRequestService._authorize(request, S.ORDER_ERROR, actor)

        if item_id is not None:
            request_item = request.items.filter(pk=item_id).first()
            if request_item is None:
                raise ResourceNotFoundError(detail='Request item not found.')
            request_item.has_error = True
            request_item.error_description = description
            request_item.save(update_fields=['has_error', 'error_description', 'updated_at'])

        request.error_description = description
        return SupplyRequestService._apply_transition(
            request, S.ORDER_ERROR, actor, fields=('error_description',), description=description,
        )

    @staticmethod
    @transaction.atomic
    def cancel_request(*, actor, request_id, reason: str = '', expected_status: str | None = None) -> SupplyRequest:
        actor = as_actor(actor)
        request = SupplyRequestService._get_locked(request_id)
        SupplyRequestService._check_expected(request, expected_status)
        return SupplyRequestService._apply_transition(request, S.CANCELLED, actor, reason=reason)

    # -- system transitions ----------------------------------------------

    @staticmethod
    @transaction.atomic
    def mark_received(*, request_id, actor) -> SupplyRequest:
        actor = as_actor(actor)
        request = SupplyRequestService._get_locked(request_id)
        request.received_at = timezone.now()
        return SupplyRequestService._apply_transition(
            request, S.RECEIVED, actor, system=True, fields=('received_at',),
        )

    @staticmethod
    @transaction.atomic
    def complete_if_delivered(*, request_id, actor) -> SupplyRequest | None:
        """Mark the request received once none of its transit is still open."""
        request = SupplyRequestService._get_locked(request_id)
        if request.status != S.SENT:
            return None
        still_open = TransitRecord.objects.filter(
            request_id=request_id, status=TransitRecord.StatusChoices.IN_TRANSIT,
        ).exists()
        if still_open:
            return None
        return SupplyRequestService.mark_received(request_id=request_id, actor=actor)

    @staticmethod
    @transaction.atomic
    def on_purchase_finalized(*, purchase, actor) -> SupplyRequest | None:
        """
        Credit what the purchase bought to the approved quantities of the
        items it covered; release the request once all its purchases are
        finalized.
        """
        from purchases.models import Purchase

        if purchase.request_id is None:
            return None
        actor = as_actor(actor)
        request = SupplyRequestService._get_locked(purchase.request_id)
        if request.status in state_machine.TERMINAL:
            logger.info(
                'Purchase %s finalized for closed request %s (%s); items left unchanged',
                purchase.pk, request.pk, request.status,
            )
            return request

        for purchase_item in purchase.items.select_related('request_item').filter(request_item__isnull=False):
            request_item = SupplyRequestItem.objects.select_for_update().get(pk=purchase_item.request_item_id)
            raised = min(
                request_item.quantity_requested,
                (request_item.quantity_approved or 0) + purchase_item.quantity,
            )
            if raised != request_item.quantity_approved:
                request_item.quantity_approved = raised
                request_item.save(update_fields=['quantity_approved', 'updated_at'])

        if request.status != S.APPROVED_PENDING_PURCHASE:
            return request
        pending = request.purchases.exclude(status=Purchase.StatusChoices.FINALIZED).exists()
        if pending:
            return request
        return SupplyRequestService._apply_transition(
            request, S.APPROVED, actor, system=True, purchase=str(purchase.pk),
        )

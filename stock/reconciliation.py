"""
Stock — Ledger Reconciliation

Read-only replay of the Movement journal against the stored balances.
For every (item, unit):

    expected = sum(movements into unit)
             - sum(movements out of unit)
             - sum(open transit quantity leaving unit)

Open transit is subtracted because dispatch takes stock out of a CD
before the matching transfer Movement is written at delivery.

@file stock/reconciliation.py
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from uuid import UUID

from django.db.models import Sum

from .models import Movement
from .services import stock_model_for

logger = logging.getLogger('depotrack')


@dataclass(frozen=True)
class Mismatch:
    item_id: UUID
    unit_id: UUID
    stored: int
    expected: int

    @property
    def difference(self) -> int:
        return self.stored - self.expected

    def as_dict(self) -> dict:
        return {
            'item_id': str(self.item_id),
            'unit_id': str(self.unit_id),
            'stored': self.stored,
            'expected': self.expected,
            'difference': self.difference,
        }


class ReconciliationService:

    @staticmethod
    def expected_quantities(unit) -> dict[UUID, int]:
        from transit.models import TransitRecord

        expected: dict[UUID, int] = defaultdict(int)
        incoming = (
            Movement.objects.filter(to_unit=unit)
            .values('item_id').annotate(total=Sum('quantity'))
        )
        for row in incoming:
            expected[row['item_id']] += row['total']

        outgoing = (
            Movement.objects.filter(from_unit=unit)
            .values('item_id').annotate(total=Sum('quantity'))
        )
        for row in outgoing:
            expected[row['item_id']] -= row['total']

        in_flight = (
            TransitRecord.objects
            .filter(from_cd=unit, status=TransitRecord.StatusChoices.IN_TRANSIT)
            .values('item_id').annotate(total=Sum('quantity'))
        )
        for row in in_flight:
            expected[row['item_id']] -= row['total']
        return dict(expected)

    @staticmethod
    def replay(unit) -> list[Mismatch]:
        """Return every (item, unit) whose stored quantity disagrees with the journal."""
        expected = ReconciliationService.expected_quantities(unit)
        stored = dict(
            stock_model_for(unit).objects
            .filter(unit=unit)
            .values_list('item_id', 'quantity')
        )

        mismatches = []
        for item_id in set(expected) | set(stored):
            want = expected.get(item_id, 0)
            have = stored.get(item_id, 0)
            if want != have:
                mismatches.append(Mismatch(item_id=item_id, unit_id=unit.pk, stored=have, expected=want))

        for m in mismatches:
            logger.warning(
                'Ledger mismatch unit=%s item=%s stored=%s expected=%s',
                m.unit_id, m.item_id, m.stored, m.expected,
            )
        return mismatches

    @staticmethod
    def replay_all() -> list[Mismatch]:
        from catalog.models import Unit

        mismatches = []
        for unit in Unit.objects.filter(is_deleted=False):
            mismatches.extend(ReconciliationService.replay(unit))
        return mismatches

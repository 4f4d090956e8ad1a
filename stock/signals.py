"""
Stock — Ledger Change Events

``ledger_changed`` is sent once the surrounding transaction commits, for
every insert, update or delete on the unit stock, CD stock and transit
tables. Receivers (alerting, dashboards) are optional: nothing in the
ledger depends on them running.

Receiver signature::

    def receiver(sender, table, record_id, operation, **kwargs): ...

@file stock/signals.py
"""

import logging

from django.db import transaction
from django.dispatch import Signal, receiver

logger = logging.getLogger('depotrack')

ledger_changed = Signal()


def emit_ledger_change(sender, *, table: str, record_id, operation: str) -> None:
    """Queue a ledger_changed event for after commit."""
    transaction.on_commit(
        lambda: ledger_changed.send(
            sender=sender,
            table=table,
            record_id=str(record_id),
            operation=operation,
        )
    )


@receiver(ledger_changed)
def log_ledger_change(sender, table, record_id, operation, **kwargs):
    logger.debug('Ledger change: %s %s %s', operation, table, record_id)

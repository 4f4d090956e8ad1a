"""
Stock — Celery Tasks

Periodic, read-only ledger reconciliation.

@file stock/tasks.py
"""

import logging

from celery import shared_task

logger = logging.getLogger('depotrack')


@shared_task(name='stock.reconcile_ledger')
def reconcile_ledger_task():
    """
    Replay the Movement journal for every unit and report mismatches.
    Registered with Celery Beat; never writes to the ledger.
    """
    from .reconciliation import ReconciliationService

    mismatches = ReconciliationService.replay_all()
    logger.info('reconcile_ledger_task completed: %d mismatches.', len(mismatches))
    return {'mismatch_count': len(mismatches), 'mismatches': [m.as_dict() for m in mismatches]}

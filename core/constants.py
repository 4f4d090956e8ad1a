"""
Core — Shared Constants

Audit action labels and API paging limits used across apps.

@file core/constants.py
"""

AUDIT_ACTION_CREATE = 'CREATE'
AUDIT_ACTION_UPDATE = 'UPDATE'
AUDIT_ACTION_DELETE = 'DELETE'
AUDIT_ACTION_STATUS_CHANGE = 'STATUS_CHANGE'
AUDIT_ACTION_STOCK_CHANGE = 'STOCK_CHANGE'
AUDIT_ACTION_LOGIN = 'LOGIN'
AUDIT_ACTION_LOGIN_FAILED = 'LOGIN_FAILED'
AUDIT_ACTION_LOGOUT = 'LOGOUT'

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 200

# Partition labels carried by ledger change events.
LEDGER_TABLE_UNIT_STOCK = 'unit_stock'
LEDGER_TABLE_CD_STOCK = 'cd_stock'
LEDGER_TABLE_TRANSIT = 'transit'

LEDGER_OP_INSERT = 'INSERT'
LEDGER_OP_UPDATE = 'UPDATE'
LEDGER_OP_DELETE = 'DELETE'

"""
Purchases — Purchase & Quotation State Machines

Purchases move forward along one chain; skipping ahead is allowed,
going back is not. The buying side drives the chain up to
purchased_awaiting, the CD receiving side from arrived_at_cd on.

@file purchases/state_machine.py
"""

from users.capabilities import capabilities_for

from .models import Purchase, Quotation

P = Purchase.StatusChoices
Q = Quotation.StatusChoices

CHAIN = [
    P.ORDER_PLACED,
    P.QUOTING,
    P.PURCHASED_AWAITING,
    P.ARRIVED_AT_CD,
    P.SENT,
    P.FINALIZED,
]

MANAGE = ('can_manage_purchases',)
RECEIVE = ('can_receive_purchases',)

_RECEIVING_SIDE = {P.ARRIVED_AT_CD, P.SENT, P.FINALIZED}

TRANSITIONS: dict[tuple[str, str], tuple[str, ...]] = {}

for _i, _source in enumerate(CHAIN[:-1]):
    for _target in CHAIN[_i + 1:]:
        TRANSITIONS[(_source, _target)] = RECEIVE if _target in _RECEIVING_SIDE else MANAGE
    TRANSITIONS[(_source, P.ORDER_ERROR)] = MANAGE + RECEIVE

QUOTATION_TRANSITIONS = {
    Q.DRAFT: {Q.SENT, Q.CANCELLED},
    Q.SENT: {Q.UNDER_REVIEW, Q.CANCELLED},
    Q.UNDER_REVIEW: {Q.FINALIZED, Q.CANCELLED},
    Q.FINALIZED: set(),
    Q.CANCELLED: set(),
    Q.EXPIRED: set(),
}
OPEN_QUOTATION_STATUSES = (Q.DRAFT, Q.SENT, Q.UNDER_REVIEW)


def required_capabilities(from_status: str, to_status: str):
    return TRANSITIONS.get((from_status, to_status))


def can_transition(from_status: str, to_status: str, role: str) -> bool:
    who = TRANSITIONS.get((from_status, to_status))
    if who is None:
        return False
    caps = capabilities_for(role)
    return any(caps.has(cap) for cap in who)

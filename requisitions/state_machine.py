"""
Requisitions — Request State Machine

The allowed (from, to) status pairs and which capabilities may perform
each one. SYSTEM edges are only taken by the services themselves
(purchase finalization, delivery of the last transit record).

@file requisitions/state_machine.py
"""

from users.capabilities import capabilities_for

from .models import SupplyRequest

S = SupplyRequest.StatusChoices

SYSTEM = 'system'

CREATE = ('can_create_requests',)
ENDORSE = ('can_endorse_requests',)
REVIEW = ('can_review_requests',)

PRE_DISPATCH = frozenset({
    S.REQUESTED, S.APPROVED_BY_UNIT, S.REVIEWING,
    S.APPROVED, S.APPROVED_PENDING_PURCHASE, S.PREPARING,
})
TERMINAL = frozenset({S.RECEIVED, S.REJECTED, S.CANCELLED, S.ORDER_ERROR})

TRANSITIONS: dict[tuple[str, str], tuple[str, ...] | str] = {}


def _allow(sources, targets, who):
    for source in sources:
        for target in targets:
            TRANSITIONS[(source, target)] = who


_allow([S.REQUESTED], [S.APPROVED_BY_UNIT], ENDORSE)
_allow([S.REQUESTED, S.APPROVED_BY_UNIT], [S.REVIEWING], REVIEW)
_allow(
    [S.REQUESTED, S.APPROVED_BY_UNIT, S.REVIEWING],
    [S.APPROVED, S.APPROVED_PENDING_PURCHASE, S.REJECTED],
    REVIEW,
)
_allow([S.APPROVED_PENDING_PURCHASE], [S.APPROVED], SYSTEM)
_allow([S.APPROVED, S.APPROVED_PENDING_PURCHASE], [S.PREPARING], REVIEW)
_allow([S.PREPARING], [S.SENT], REVIEW)
_allow([S.SENT], [S.RECEIVED], SYSTEM)
_allow(
    [S.REVIEWING, S.APPROVED, S.APPROVED_PENDING_PURCHASE, S.PREPARING],
    [S.ORDER_ERROR],
    REVIEW,
)
_allow(PRE_DISPATCH, [S.CANCELLED], CREATE)


def required_capabilities(from_status: str, to_status: str):
    """Capabilities (any-of) for the edge, SYSTEM, or None when not an edge."""
    return TRANSITIONS.get((from_status, to_status))


def is_edge(from_status: str, to_status: str) -> bool:
    return (from_status, to_status) in TRANSITIONS


def can_transition(from_status: str, to_status: str, role: str) -> bool:
    """True when ``role`` may move a request along the edge by hand."""
    who = TRANSITIONS.get((from_status, to_status))
    if who is None or who == SYSTEM:
        return False
    caps = capabilities_for(role)
    return any(caps.has(cap) for cap in who)


def allowed_targets(from_status: str, role: str) -> list[str]:
    return [
        target for (source, target) in TRANSITIONS
        if source == from_status and can_transition(source, target, role)
    ]

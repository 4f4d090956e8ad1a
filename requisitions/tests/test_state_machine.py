"""
Tests — Request state machine: the edge table and who may take each edge.

@file requisitions/tests/test_state_machine.py
"""

import pytest

from requisitions import state_machine
from requisitions.models import SupplyRequest
from users.capabilities import Role

S = SupplyRequest.StatusChoices


class TestEdges:

    @pytest.mark.parametrize('source, target', [
        (S.REQUESTED, S.APPROVED_BY_UNIT),
        (S.REQUESTED, S.REVIEWING),
        (S.APPROVED_BY_UNIT, S.APPROVED),
        (S.REVIEWING, S.APPROVED_PENDING_PURCHASE),
        (S.REVIEWING, S.REJECTED),
        (S.APPROVED_PENDING_PURCHASE, S.APPROVED),
        (S.APPROVED, S.PREPARING),
        (S.PREPARING, S.SENT),
        (S.SENT, S.RECEIVED),
        (S.PREPARING, S.ORDER_ERROR),
        (S.APPROVED, S.CANCELLED),
    ])
    def test_allowed(self, source, target):
        assert state_machine.is_edge(source, target)

    @pytest.mark.parametrize('source, target', [
        (S.REQUESTED, S.SENT),
        (S.REQUESTED, S.ORDER_ERROR),
        (S.APPROVED, S.REJECTED),
        (S.SENT, S.CANCELLED),
        (S.RECEIVED, S.REQUESTED),
        (S.APPROVED, S.REQUESTED),
        (S.PREPARING, S.APPROVED),
    ])
    def test_not_allowed(self, source, target):
        assert not state_machine.is_edge(source, target)

    @pytest.mark.parametrize('status', sorted(state_machine.TERMINAL))
    def test_terminal_states_have_no_exits(self, status):
        assert not any(source == status for source, _ in state_machine.TRANSITIONS)


class TestRoles:

    def test_system_edges_never_manual(self):
        assert not state_machine.can_transition(S.SENT, S.RECEIVED, Role.ADMIN)
        assert not state_machine.can_transition(S.APPROVED_PENDING_PURCHASE, S.APPROVED, Role.ADMIN)

    def test_warehouse_reviews_but_cannot_endorse(self):
        assert state_machine.can_transition(S.REVIEWING, S.APPROVED, Role.WAREHOUSE_OPERATOR)
        assert not state_machine.can_transition(S.REQUESTED, S.APPROVED_BY_UNIT, Role.WAREHOUSE_OPERATOR)

    def test_manager_endorses_but_cannot_review(self):
        assert state_machine.can_transition(S.REQUESTED, S.APPROVED_BY_UNIT, Role.MANAGER)
        assert not state_machine.can_transition(S.REVIEWING, S.APPROVED, Role.MANAGER)

    def test_operator_only_creates_and_cancels(self):
        targets = state_machine.allowed_targets(S.REQUESTED, Role.ADMINISTRATIVE_OPERATOR)
        assert targets == [S.CANCELLED]

    def test_unknown_role_has_no_edges(self):
        assert state_machine.allowed_targets(S.REQUESTED, 'visitor') == []

"""Tests for the intervention phase state machine."""

import pytest

from societrics.config import INTERVENTION_PHASES, PhaseConfig
from societrics.exceptions import (
    InvalidConfiguration,
    InvalidPhaseTransition,
    UnknownShockOrPhaseId,
)
from societrics.phases import InterventionPhaseTable


@pytest.fixture
def table():
    return InterventionPhaseTable()


class TestOrdering:
    def test_ids_in_order(self, table):
        assert table.ids() == ("circuitBreaker", "structuralFloor", "incentiveEngine")

    def test_next_phase_chain(self, table):
        assert table.next_phase(None) == "circuitBreaker"
        assert table.next_phase("circuitBreaker") == "structuralFloor"
        assert table.next_phase("structuralFloor") == "incentiveEngine"
        assert table.next_phase("incentiveEngine") is None

    def test_can_activate(self, table):
        assert table.can_activate(None, "circuitBreaker")
        assert not table.can_activate(None, "structuralFloor")
        assert not table.can_activate("incentiveEngine", "circuitBreaker")
        assert not table.can_activate(None, "ceasefire")

    def test_order_independent_of_input_order(self):
        table = InterventionPhaseTable(reversed(INTERVENTION_PHASES))
        assert table.next_phase(None) == "circuitBreaker"


class TestActivate:
    def test_first_phase_effects(self, table, venezuela_state):
        assert table.activate(venezuela_state, None, "circuitBreaker")
        assert venezuela_state.regime_coercion == pytest.approx(0.70 * 0.70)
        assert venezuela_state.social_pressure == pytest.approx(0.80 * 0.85)
        assert venezuela_state.opposition_symbolic_capital == pytest.approx(0.50 * 1.20)

    def test_skip_raises_with_next_phase(self, table, venezuela_state):
        before = venezuela_state.as_dict()
        with pytest.raises(InvalidPhaseTransition) as exc:
            table.activate(venezuela_state, None, "incentiveEngine")
        assert exc.value.next_phase == "circuitBreaker"
        assert exc.value.requested == "incentiveEngine"
        assert venezuela_state.as_dict() == before

    def test_backwards_raises(self, table, venezuela_state):
        with pytest.raises(InvalidPhaseTransition) as exc:
            table.activate(venezuela_state, "structuralFloor", "circuitBreaker")
        assert exc.value.next_phase == "incentiveEngine"

    def test_terminal_phase(self, table, venezuela_state):
        with pytest.raises(InvalidPhaseTransition, match="final phase") as exc:
            table.activate(venezuela_state, "incentiveEngine", "structuralFloor")
        assert exc.value.next_phase is None

    def test_already_active(self, table, venezuela_state):
        before = venezuela_state.as_dict()
        assert not table.activate(venezuela_state, "circuitBreaker", "circuitBreaker")
        assert venezuela_state.as_dict() == before

    def test_unknown(self, table, venezuela_state):
        with pytest.raises(UnknownShockOrPhaseId):
            table.activate(venezuela_state, None, "ceasefire")


class TestRecovery:
    def test_recovery_rates_and_governed_fields(self, table, venezuela_state):
        governed = table.apply_recovery(venezuela_state, "structuralFloor")
        assert set(governed) == {"wealth", "soc", "civilization"}
        assert venezuela_state.wealth == pytest.approx(0.25 * 1.01)
        assert venezuela_state.soc == pytest.approx(0.10 * 1.015)
        assert venezuela_state.trust == 0.30


class TestTableValidation:
    def test_requires_three_phases(self):
        with pytest.raises(InvalidConfiguration, match="exactly 3"):
            InterventionPhaseTable(INTERVENTION_PHASES[:2])

    def test_requires_contiguous_order(self):
        bad = PhaseConfig("late", "Late", 4, "", effects={}, recovery_rates={})
        with pytest.raises(InvalidConfiguration, match="order"):
            InterventionPhaseTable(INTERVENTION_PHASES[:2] + (bad,))

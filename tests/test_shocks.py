"""Tests for the external shock registry."""

import pytest

from societrics.config import EXTERNAL_SHOCKS, ShockConfig
from societrics.exceptions import InvalidConfiguration, UnknownShockOrPhaseId
from societrics.shocks import ShockRegistry


@pytest.fixture
def registry():
    return ShockRegistry()


class TestCatalog:
    def test_six_shocks(self, registry):
        assert registry.ids() == ("sanctions", "oil", "aid", "migration", "intervention", "cyber")
        assert "oil" in registry
        assert "tsunami" not in registry

    def test_unknown_id(self, registry):
        with pytest.raises(UnknownShockOrPhaseId, match="tsunami"):
            registry.get("tsunami")

    def test_duplicate_id_rejected(self):
        with pytest.raises(InvalidConfiguration, match="Duplicate"):
            ShockRegistry(EXTERNAL_SHOCKS + (EXTERNAL_SHOCKS[0],))

    def test_unknown_field_rejected(self):
        bad = ShockConfig("flood", "Flood", "", effects={"rainfall": 2.0})
        with pytest.raises(InvalidConfiguration, match="rainfall"):
            ShockRegistry((bad,))


class TestApplyShock:
    def test_one_time_effects(self, registry, venezuela_state):
        active = []
        assert registry.apply_shock(venezuela_state, active, "oil")
        assert active == ["oil"]
        assert venezuela_state.wealth == pytest.approx(0.25 * 0.70)
        assert venezuela_state.political_power == pytest.approx(0.40 * 0.85)
        assert venezuela_state.personal_agency == pytest.approx(0.35 * 0.90)

    def test_idempotent(self, registry, venezuela_state):
        active = []
        registry.apply_shock(venezuela_state, active, "sanctions")
        after_first = venezuela_state.as_dict()
        assert not registry.apply_shock(venezuela_state, active, "sanctions")
        assert venezuela_state.as_dict() == after_first
        assert active == ["sanctions"]

    def test_unknown_leaves_state_untouched(self, registry, venezuela_state):
        before = venezuela_state.as_dict()
        active = []
        with pytest.raises(UnknownShockOrPhaseId):
            registry.apply_shock(venezuela_state, active, "meteor")
        assert venezuela_state.as_dict() == before
        assert active == []

    def test_results_are_clamped(self, registry, venezuela_state):
        venezuela_state.population_exit_rate = 0.85
        registry.apply_shock(venezuela_state, [], "migration")
        assert venezuela_state.population_exit_rate == 0.90


class TestOngoing:
    def test_ongoing_effects_every_call(self, registry, venezuela_state):
        registry.apply_ongoing(venezuela_state, ["oil", "cyber"])
        registry.apply_ongoing(venezuela_state, ["oil", "cyber"])
        assert venezuela_state.wealth == pytest.approx(0.25 * 0.998 ** 2)
        assert venezuela_state.trust == pytest.approx(0.30 * 0.999 ** 2)

    def test_no_active_shocks_is_noop(self, registry, venezuela_state):
        before = venezuela_state.as_dict()
        registry.apply_ongoing(venezuela_state, [])
        assert venezuela_state.as_dict() == before

"""Tests for the simulation engine: step rule, actions, playback and reporting."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from societrics.config import CRISIS_PRESETS, FIELD_BOUNDS, EngineConfig, ZoneScheme
from societrics.engine import ActionStatus, SimulationEngine, resolve_preset
from societrics.equilibrium import Prediction
from societrics.exceptions import InvalidPreset
from societrics.indices import IndexCalculator
from societrics.state import StateVector

SHOCK_IDS = ("sanctions", "oil", "aid", "migration", "intervention", "cyber")
PHASE_IDS = ("circuitBreaker", "structuralFloor", "incentiveEngine")

actions = st.lists(
    st.one_of(
        st.just(("step", None)),
        st.tuples(st.just("shock"), st.sampled_from(SHOCK_IDS)),
        st.tuples(st.just("phase"), st.sampled_from(PHASE_IDS)),
    ),
    max_size=40,
)


def perform(engine, sequence):
    for kind, arg in sequence:
        if kind == "step":
            engine.step()
        elif kind == "shock":
            engine.apply_shock(arg)
        else:
            engine.apply_phase(arg)


class TestConstruction:
    def test_default_preset(self):
        engine = SimulationEngine()
        assert engine.scenario.preset_id == "venezuela"
        assert engine.step_index == 0
        assert engine.history() == ()
        assert engine.phase is None
        assert engine.next_phase() == "circuitBreaker"

    def test_unknown_preset(self):
        with pytest.raises(InvalidPreset, match="atlantis"):
            SimulationEngine("atlantis")

    def test_custom_state(self, venezuela_state):
        venezuela_state.trust = 0.9
        engine = SimulationEngine(venezuela_state)
        assert engine.scenario.preset_id == "custom"
        assert engine.current_state().trust == 0.9

    def test_custom_state_out_of_domain(self, venezuela_state):
        venezuela_state.soc = 0.5
        with pytest.raises(InvalidPreset):
            resolve_preset(venezuela_state)

    def test_current_state_is_a_copy(self, engine):
        engine.current_state().trust = 0.99
        assert engine.current_state().trust == 0.30


class TestStep:
    def test_step_appends_record(self, engine):
        result = engine.step()
        assert result.ok
        assert result.status == ActionStatus.APPLIED
        assert engine.step_index == 1
        assert len(engine.history()) == 1
        record = engine.history()[0]
        assert record.step == 0
        assert record.phase_label == "initial"
        assert dict(record.state) == engine.current_state().as_dict()

    def test_metrics_describe_post_step_state(self, engine):
        record = engine.step().record
        expected = IndexCalculator().compute(engine.current_state())
        assert record.metrics.theta == pytest.approx(expected.theta)
        assert engine.current_metrics().theta == pytest.approx(record.metrics.theta)

    def test_record_state_is_read_only(self, engine):
        record = engine.step().record
        with pytest.raises(TypeError):
            record.state["trust"] = 1.0

    def test_natural_decay(self, frozen_engine):
        frozen_engine.step()
        s = frozen_engine.current_state()
        assert s.trust == pytest.approx(0.30 * 0.985)
        assert s.wealth == pytest.approx(0.25 * 0.975)
        assert s.soc == pytest.approx(0.10 * 0.985)
        assert s.social_pressure == pytest.approx(0.80 + 0.70 * 0.005)
        assert s.rigidity == pytest.approx(0.703)
        assert s.population_exit_rate == pytest.approx(0.41)
        # Not governed by decay
        assert s.religion == 0.60

    def test_derived_tpc_factors(self, engine):
        record = engine.step().record
        s = record.state
        assert s["cultural_anchoring"] == pytest.approx(s["trust"] * 0.8 + 0.2)
        assert s["time_sense"] == pytest.approx(
            min(1.0, 0.3 + 0.7 * record.metrics.wsi / 0.75)
        )

    def test_next_state_is_pure(self, engine):
        state = engine.current_state()
        before = state.as_dict()
        engine.next_state(state, None, ["oil"])
        assert state.as_dict() == before

    def test_steps_run_indefinitely(self, engine):
        records = engine.run(200)
        assert len(records) == 200
        assert engine.step_index == 200
        assert all(StateVector.from_dict(dict(r.state)).in_domain() for r in records)


class TestPhaseDynamics:
    def test_uncovered_fields_frozen_by_default(self, frozen_engine):
        assert frozen_engine.apply_phase("circuitBreaker").ok
        frozen_engine.step()
        s = frozen_engine.current_state()
        assert s.social_pressure == pytest.approx(0.80 * 0.85 * 0.97)
        assert s.rigidity == pytest.approx(0.70 * 0.90 * 0.98)
        assert s.trust == pytest.approx(0.30 * 1.005)
        assert s.wealth == 0.25
        assert s.population_exit_rate == 0.40

    def test_uncovered_fields_decay_when_enabled(self):
        engine = SimulationEngine(
            "venezuela",
            config=EngineConfig(derive_tpc_factors=False, decay_uncovered_fields=True),
        )
        engine.apply_phase("circuitBreaker")
        engine.step()
        s = engine.current_state()
        # Governed by the phase: recovery only
        assert s.trust == pytest.approx(0.30 * 1.005)
        assert s.rigidity == pytest.approx(0.70 * 0.90 * 0.98)
        # Not governed: natural decay
        assert s.wealth == pytest.approx(0.25 * 0.975)
        assert s.population_exit_rate == pytest.approx(0.41)

    def test_ongoing_shock_applied_each_step(self, frozen_engine):
        frozen_engine.apply_shock("oil")
        frozen_engine.step()
        assert frozen_engine.current_state().wealth == pytest.approx(0.25 * 0.70 * 0.998 * 0.975)


class TestActions:
    def test_shock_statuses(self, engine):
        assert engine.apply_shock("oil").status == ActionStatus.APPLIED
        assert engine.apply_shock("oil").status == ActionStatus.ALREADY_ACTIVE
        assert engine.apply_shock("meteor").status == ActionStatus.UNKNOWN_ID
        assert engine.active_shocks == ("oil",)

    def test_shock_idempotent_on_state(self, engine):
        engine.apply_shock("sanctions")
        after_first = engine.current_state().as_dict()
        engine.apply_shock("sanctions")
        assert engine.current_state().as_dict() == after_first

    def test_phase_order_enforced(self, engine):
        result = engine.apply_phase("structuralFloor")
        assert not result
        assert result.status == ActionStatus.INVALID_TRANSITION
        assert result.next_phase == "circuitBreaker"
        assert engine.phase is None

        for phase_id in PHASE_IDS:
            assert engine.apply_phase(phase_id).ok
        assert engine.phase == "incentiveEngine"
        assert engine.next_phase() is None

        result = engine.apply_phase("incentiveEngine")
        assert result.status == ActionStatus.ALREADY_ACTIVE
        result = engine.apply_phase("circuitBreaker")
        assert result.status == ActionStatus.INVALID_TRANSITION
        assert result.next_phase is None

    def test_unknown_phase(self, engine):
        result = engine.apply_phase("ceasefire")
        assert result.status == ActionStatus.UNKNOWN_ID
        assert result.next_phase == "circuitBreaker"

    def test_refused_actions_leave_scenario_unchanged(self, engine):
        before = engine.current_state().as_dict()
        engine.apply_phase("incentiveEngine")
        engine.apply_shock("meteor")
        assert engine.current_state().as_dict() == before
        assert engine.events() == ()

    def test_events_record_step_index(self, engine):
        engine.run(3)
        engine.apply_shock("cyber")
        engine.run(2)
        engine.apply_phase("circuitBreaker")
        events = engine.events()
        assert [(e.step, e.kind, e.id) for e in events] == [
            (3, "shock", "cyber"),
            (5, "intervention", "circuitBreaker"),
        ]
        assert engine.history()[-1].active_shocks == ("cyber",)

    def test_reset(self, engine):
        engine.apply_shock("oil")
        engine.apply_phase("circuitBreaker")
        engine.run(5)
        engine.reset()
        assert engine.step_index == 0
        assert engine.history() == ()
        assert engine.events() == ()
        assert engine.phase is None
        assert engine.active_shocks == ()
        assert engine.current_state().as_dict() == CRISIS_PRESETS["venezuela"].values

    def test_reset_restores_custom_vector(self, venezuela_state):
        venezuela_state.trust = 0.9
        engine = SimulationEngine(venezuela_state)
        engine.apply_shock("cyber")
        engine.run(3)
        engine.reset()
        assert engine.scenario.preset_id == "custom"
        assert engine.current_state().as_dict() == venezuela_state.as_dict()
        assert engine.history() == ()

    def test_reset_catalog_custom_by_id(self):
        engine = SimulationEngine("custom")
        engine.run(2)
        engine.reset()
        assert engine.current_state().as_dict() == CRISIS_PRESETS["custom"].values

    def test_reset_to_other_preset(self, engine):
        engine.reset("syria")
        assert engine.scenario.preset_id == "syria"
        assert engine.current_state().soc == 0.08
        with pytest.raises(InvalidPreset):
            engine.reset("atlantis")


class TestDomainViolation:
    def test_step_refused(self, engine, monkeypatch):
        engine.run(2)
        before = engine.current_state().as_dict()
        monkeypatch.setattr(engine.calculator, "effective_capacity", lambda state: 0.0)

        result = engine.step()
        assert result.status == ActionStatus.DOMAIN_VIOLATION
        assert "capacity" in result.message
        assert engine.step_index == 2
        assert len(engine.history()) == 2
        assert engine.current_state().as_dict() == before

    def test_run_stops_at_refusal(self, engine, monkeypatch):
        monkeypatch.setattr(engine.calculator, "effective_capacity", lambda state: 0.0)
        assert engine.run(5) == []


class TestDeterminism:
    @given(sequence=actions)
    @settings(max_examples=50, deadline=None)
    def test_same_actions_same_history(self, sequence):
        a, b = SimulationEngine("sudan"), SimulationEngine("sudan")
        perform(a, sequence)
        perform(b, sequence)
        assert [dict(r.state) for r in a.history()] == [dict(r.state) for r in b.history()]
        assert [r.metrics.as_dict() for r in a.history()] == \
            [r.metrics.as_dict() for r in b.history()]

    @given(sequence=actions)
    @settings(max_examples=50, deadline=None)
    def test_state_stays_in_domain(self, sequence):
        engine = SimulationEngine("syria")
        perform(engine, sequence)
        engine.run(5)
        for record in engine.history():
            for name, (lo, hi) in FIELD_BOUNDS.items():
                assert lo <= record.state[name] <= hi
            assert record.metrics.effective_capacity > 0
        assert engine.current_state().in_domain()


class TestPlayback:
    def test_on_step_can_stop(self, engine):
        records = engine.play(10, interval=0.0, on_step=lambda r: r.step < 2)
        assert len(records) == 3
        assert engine.step_index == 3

    def test_interval_sleeps_between_steps(self, engine, monkeypatch):
        sleeps = []
        monkeypatch.setattr("societrics.engine.time.sleep", sleeps.append)
        engine.play(3, interval=0.25)
        assert sleeps == [0.25, 0.25]

    def test_run_does_not_sleep(self, engine, monkeypatch):
        sleeps = []
        monkeypatch.setattr("societrics.engine.time.sleep", sleeps.append)
        engine.run(4)
        assert sleeps == []


class TestReporting:
    def test_statistics_empty(self, engine):
        assert engine.statistics() is None

    def test_statistics(self, engine):
        engine.apply_shock("oil")
        engine.run(10)
        engine.apply_phase("circuitBreaker")
        engine.run(10)
        stats = engine.statistics()
        thetas = [r.metrics.theta for r in engine.history()]
        assert stats.mean_theta == pytest.approx(sum(thetas) / len(thetas))
        assert stats.max_theta == pytest.approx(max(thetas))
        assert stats.min_theta == pytest.approx(min(thetas))
        assert stats.steps_in_crisis == sum(1 for t in thetas if t > 1.0)
        assert stats.interventions == 1
        assert stats.shocks == 1
        first, last = engine.history()[0].state, engine.history()[-1].state
        assert stats.trust_change_pp == pytest.approx((last["trust"] - first["trust"]) * 100)

    def test_analyze_crisis_without_phase(self, engine):
        engine.run(3)
        report = engine.analyze()
        assert report.prediction == Prediction.INTERVENTION_REQUIRED
        assert report.static_prediction.startswith("Defect")

    def test_analyze_during_phase(self, engine):
        engine.apply_phase("circuitBreaker")
        report = engine.analyze()
        assert report.prediction == Prediction.RECOVERY_ACTIVE
        assert report.model_label == "De-escalation Active"

    def test_analyze_zone_uses_engine_scheme(self):
        engine = SimulationEngine(
            "venezuela", config=EngineConfig(zone_scheme=ZoneScheme.ELASTIC_MIDDLE),
        )
        engine.run(2)
        report = engine.analyze()
        assert report.zone.key == "crisis"
        assert report.theta_basis > 1.5

    def test_clone_is_independent(self, engine):
        engine.run(3)
        other = engine.clone()
        other.apply_shock("aid")
        other.run(2)
        assert engine.step_index == 3
        assert engine.active_shocks == ()
        assert other.step_index == 5
        assert len(engine.history()) == 3
        assert other.history()[:3] == engine.history()

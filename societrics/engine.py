"""
Societrics simulation engine.

Evolves one Scenario in discrete steps. Each step:

1. Ongoing shock effects
   Every active shock multiplies its ongoing-effect fields.

2. Phase dynamics
   No phase -> natural decay: trust, wealth and capacity erode, coercion
   feeds social pressure, rigidity and emigration creep up.
   Active phase -> the phase's recovery rates on the fields they name;
   other fields decay or stay frozen depending on
   EngineConfig.decay_uncovered_fields.

3. Derived projections
   Time-sense follows the fresh WSI and cultural anchoring follows trust.

4. Clamp every field to its declared domain.

5. Derived metrics (WSI, TPC, theta, W_acc, phi, payoffs, zone).

6. Append a frozen record to the history and advance the step index.

The engine never halts on its own and has no randomness: the same
preset and the same actions at the same steps give the same history.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Tuple, Union

import numpy as np
from loguru import logger

from .config import CRISIS_PRESETS, DEFAULT_PRESET, EngineConfig, Preset
from .equilibrium import AnalyzerParams, EquilibriumAnalyzer, EquilibriumReport
from .exceptions import (
    DomainViolation,
    InvalidPhaseTransition,
    InvalidPreset,
    UnknownShockOrPhaseId,
)
from .indices import DerivedMetrics, IndexCalculator
from .phases import InterventionPhaseTable
from .shocks import ShockRegistry
from .state import StateVector, clamp

PresetLike = Union[str, Preset, StateVector]


class ActionStatus(str, Enum):
    APPLIED = "applied"
    ALREADY_ACTIVE = "already_active"
    UNKNOWN_ID = "unknown_id"
    INVALID_TRANSITION = "invalid_transition"
    DOMAIN_VIOLATION = "domain_violation"


@dataclass(frozen=True)
class HistoryRecord:
    """One simulated step: the state it produced and the metrics of that state."""

    step: int
    state: Mapping[str, float]
    metrics: DerivedMetrics
    phase: Optional[str]
    active_shocks: Tuple[str, ...]

    @property
    def phase_label(self) -> str:
        return self.phase or "initial"


@dataclass(frozen=True)
class ActionResult:
    """Outcome of apply_shock / apply_phase / step. Refusals leave the scenario unchanged."""

    status: ActionStatus
    message: str = ""
    next_phase: Optional[str] = None
    record: Optional[HistoryRecord] = None

    @property
    def ok(self) -> bool:
        return self.status == ActionStatus.APPLIED

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True)
class Event:
    """A user action recorded at the step index it was taken."""

    step: int
    kind: str  # "shock" | "intervention"
    id: str
    name: str


@dataclass
class Scenario:
    """State, active phase and shocks, step count and history of one run."""

    preset_id: str
    state: StateVector
    initial: StateVector
    phase: Optional[str] = None
    active_shocks: List[str] = field(default_factory=list)
    step_index: int = 0
    history: List[HistoryRecord] = field(default_factory=list)
    events: List[Event] = field(default_factory=list)

    def copy(self) -> "Scenario":
        # Records and events are frozen, so the lists can share them
        return Scenario(
            preset_id=self.preset_id,
            state=self.state.copy(),
            initial=self.initial,
            phase=self.phase,
            active_shocks=list(self.active_shocks),
            step_index=self.step_index,
            history=list(self.history),
            events=list(self.events),
        )


@dataclass(frozen=True)
class SimulationStatistics:
    mean_theta: float
    max_theta: float
    min_theta: float
    steps_in_crisis: int
    trust_change_pp: float
    wealth_change_pct: float
    interventions: int
    shocks: int


def resolve_preset(preset: PresetLike) -> Tuple[str, StateVector]:
    """Turn a preset id, Preset or custom StateVector into (id, validated state)."""
    if isinstance(preset, StateVector):
        state = preset.copy()
        state.validate()
        return "custom", state
    if isinstance(preset, str):
        if preset not in CRISIS_PRESETS:
            raise InvalidPreset(
                f"Unknown preset '{preset}'; presets: {', '.join(CRISIS_PRESETS)}"
            )
        preset = CRISIS_PRESETS[preset]
    return preset.id, StateVector.from_preset(preset)


class SimulationEngine:
    """Owns one Scenario and exposes the operations collaborators use."""

    def __init__(
        self,
        preset: PresetLike = DEFAULT_PRESET,
        config: EngineConfig = None,
        shocks: ShockRegistry = None,
        phases: InterventionPhaseTable = None,
        analyzer_params: AnalyzerParams = None,
    ):
        self.config = (config or EngineConfig()).validate()
        self.calculator = IndexCalculator(self.config)
        self.shocks = shocks or ShockRegistry()
        self.phases = phases or InterventionPhaseTable()
        self.analyzer = EquilibriumAnalyzer(analyzer_params)
        self.scenario = self._new_scenario(preset)

    def _new_scenario(self, preset: PresetLike) -> Scenario:
        preset_id, state = resolve_preset(preset)
        # Reject presets whose metrics are undefined before the first step
        self.calculator.compute(state)
        return Scenario(preset_id=preset_id, state=state, initial=state.copy())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current_state(self) -> StateVector:
        return self.scenario.state.copy()

    def current_metrics(self) -> DerivedMetrics:
        return self.calculator.compute(self.scenario.state)

    def history(self) -> Tuple[HistoryRecord, ...]:
        return tuple(self.scenario.history)

    def events(self) -> Tuple[Event, ...]:
        return tuple(self.scenario.events)

    @property
    def phase(self) -> Optional[str]:
        return self.scenario.phase

    @property
    def active_shocks(self) -> Tuple[str, ...]:
        return tuple(self.scenario.active_shocks)

    @property
    def step_index(self) -> int:
        return self.scenario.step_index

    def next_phase(self) -> Optional[str]:
        return self.phases.next_phase(self.scenario.phase)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def reset(self, preset: PresetLike = None) -> None:
        """Start over from ``preset``.

        Without ``preset`` the scenario returns to the exact state it was
        created from, including a custom StateVector.

        Raises:
            InvalidPreset: for an unknown id or out-of-domain values.
        """
        if preset is None:
            # Custom vectors are not in the catalog; reuse the stored start
            preset = self.scenario.initial if self.scenario.preset_id == "custom" \
                else self.scenario.preset_id
        self.scenario = self._new_scenario(preset)
        logger.info("Scenario reset to preset '{}'", self.scenario.preset_id)

    def apply_shock(self, shock_id: str) -> ActionResult:
        sc = self.scenario
        try:
            applied = self.shocks.apply_shock(sc.state, sc.active_shocks, shock_id)
        except UnknownShockOrPhaseId as e:
            logger.warning("Shock refused: {}", e)
            return ActionResult(ActionStatus.UNKNOWN_ID, str(e))

        if not applied:
            return ActionResult(ActionStatus.ALREADY_ACTIVE, f"Shock '{shock_id}' is already active")

        shock = self.shocks.get(shock_id)
        sc.events.append(Event(sc.step_index, "shock", shock_id, shock.name))
        logger.info("Shock '{}' applied at step {}", shock_id, sc.step_index)
        return ActionResult(ActionStatus.APPLIED, shock.name)

    def apply_phase(self, phase_id: str) -> ActionResult:
        sc = self.scenario
        try:
            applied = self.phases.activate(sc.state, sc.phase, phase_id)
        except UnknownShockOrPhaseId as e:
            logger.warning("Phase refused: {}", e)
            return ActionResult(ActionStatus.UNKNOWN_ID, str(e), next_phase=self.next_phase())
        except InvalidPhaseTransition as e:
            logger.warning("Phase refused: {}", e)
            return ActionResult(ActionStatus.INVALID_TRANSITION, str(e), next_phase=e.next_phase)

        if not applied:
            return ActionResult(
                ActionStatus.ALREADY_ACTIVE,
                f"Phase '{phase_id}' is already active",
                next_phase=self.next_phase(),
            )

        phase = self.phases.get(phase_id)
        sc.phase = phase_id
        sc.events.append(Event(sc.step_index, "intervention", phase_id, phase.name))
        logger.info("Phase '{}' activated at step {}", phase_id, sc.step_index)
        return ActionResult(ActionStatus.APPLIED, phase.name, next_phase=self.next_phase())

    def step(self) -> ActionResult:
        """Advance the scenario by one step.

        A step whose metrics would be undefined is refused with
        DOMAIN_VIOLATION and the scenario stays at its last valid state.
        """
        sc = self.scenario
        new_state = self.next_state(sc.state, sc.phase, sc.active_shocks)
        try:
            metrics = self.calculator.compute(new_state)
        except DomainViolation as e:
            logger.warning("Step {} refused: {}", sc.step_index, e)
            return ActionResult(ActionStatus.DOMAIN_VIOLATION, str(e))

        record = HistoryRecord(
            step=sc.step_index,
            state=MappingProxyType(new_state.as_dict()),
            metrics=metrics,
            phase=sc.phase,
            active_shocks=tuple(sc.active_shocks),
        )
        sc.state = new_state
        sc.history.append(record)
        sc.step_index += 1

        logger.debug(
            "Step {}: theta={:.4f} zone={} phase={}",
            record.step, metrics.theta, metrics.zone.key, record.phase_label,
        )
        return ActionResult(ActionStatus.APPLIED, record=record)

    def run(self, steps: int) -> List[HistoryRecord]:
        """Advance up to ``steps`` steps; stops early if a step is refused."""
        return self.play(steps, interval=0.0)

    def play(
        self,
        max_steps: int,
        interval: float = 0.3,
        on_step: Callable[[HistoryRecord], Optional[bool]] = None,
    ) -> List[HistoryRecord]:
        """Timed playback: step, wait ``interval`` seconds, repeat.

        ``on_step`` may return False to stop early.
        """
        records = []
        for i in range(max_steps):
            result = self.step()
            if not result.ok:
                break
            records.append(result.record)
            if on_step is not None and on_step(result.record) is False:
                break
            if interval > 0 and i < max_steps - 1:
                time.sleep(interval)
        return records

    # ------------------------------------------------------------------
    # Step rule
    # ------------------------------------------------------------------

    def next_state(
        self, state: StateVector, phase: Optional[str], active_shocks: List[str],
    ) -> StateVector:
        """Pure transition: returns the next state without touching ``state``."""
        s = state.copy()

        # 1. Ongoing shock effects
        self.shocks.apply_ongoing(s, active_shocks)

        # 2. Phase recovery or natural decay
        if phase is None:
            self._apply_natural_decay(s)
        else:
            governed = self.phases.apply_recovery(s, phase)
            if self.config.decay_uncovered_fields:
                self._apply_natural_decay(s, skip=governed)

        # 3. Projections re-derived from this step's values
        if self.config.derive_tpc_factors:
            wsi = self.calculator.wsi(s)
            s.time_sense = 0.3 + 0.7 * (wsi / self.config.wsi_reference)
            s.cultural_anchoring = s.trust * 0.8 + 0.2

        # 4. Domains
        return s.clamp()

    def _apply_natural_decay(self, s: StateVector, skip: Tuple[str, ...] = ()) -> None:
        d = self.config.decay
        s.apply_multipliers({k: v for k, v in d.multipliers().items() if k not in skip})
        if "social_pressure" not in skip:
            s.social_pressure = clamp(
                s.social_pressure + s.regime_coercion * d.coercion_pressure_rate, 0.0, 1.0
            )
        if "rigidity" not in skip:
            s.rigidity = clamp(s.rigidity + d.rigidity_drift, 0.0, 1.0)
        if "population_exit_rate" not in skip:
            s.population_exit_rate = s.population_exit_rate + d.exit_drift
        s.clamp()

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def statistics(self) -> Optional[SimulationStatistics]:
        history = self.scenario.history
        if not history:
            return None
        thetas = np.array([r.metrics.theta for r in history])
        first, last = history[0].state, history[-1].state
        events = self.scenario.events
        return SimulationStatistics(
            mean_theta=float(thetas.mean()),
            max_theta=float(thetas.max()),
            min_theta=float(thetas.min()),
            steps_in_crisis=int((thetas > 1.0).sum()),
            trust_change_pp=(last["trust"] - first["trust"]) * 100,
            wealth_change_pct=(last["wealth"] / first["wealth"] - 1) * 100,
            interventions=sum(1 for e in events if e.kind == "intervention"),
            shocks=sum(1 for e in events if e.kind == "shock"),
        )

    def analyze(self, use_history: bool = True) -> EquilibriumReport:
        history = self.scenario.history if use_history else None
        return self.analyzer.analyze(
            self.current_metrics(), self.scenario.phase, history, self.config.zone_scheme,
        )

    def clone(self) -> "SimulationEngine":
        """Independent copy for side-by-side comparison (shares only static catalogs)."""
        other = SimulationEngine.__new__(SimulationEngine)
        other.config = self.config
        other.calculator = self.calculator
        other.shocks = self.shocks
        other.phases = self.phases
        other.analyzer = self.analyzer
        other.scenario = self.scenario.copy()
        return other

"""
Intervention phase table and its one-way state machine.

    none -> circuitBreaker -> structuralFloor -> incentiveEngine

Each phase multiplies a few fields once on activation, then applies its
recovery rates every step until a later phase supersedes it. The final
phase is terminal.
"""

from typing import Dict, Iterable, Optional, Tuple

from loguru import logger

from .config import FIELD_BOUNDS, INTERVENTION_PHASES, PhaseConfig
from .exceptions import InvalidConfiguration, InvalidPhaseTransition, UnknownShockOrPhaseId
from .state import StateVector

PHASE_COUNT = 3


class InterventionPhaseTable:
    """Ordered catalog of exactly three intervention phases."""

    def __init__(self, phases: Iterable[PhaseConfig] = INTERVENTION_PHASES):
        ordered = sorted(phases, key=lambda p: p.order)
        if len(ordered) != PHASE_COUNT:
            raise InvalidConfiguration(
                f"Expected exactly {PHASE_COUNT} intervention phases, got {len(ordered)}"
            )
        if [p.order for p in ordered] != list(range(1, PHASE_COUNT + 1)):
            raise InvalidConfiguration("Phase order must be 1, 2, 3")
        for p in ordered:
            unknown = (set(p.effects) | set(p.recovery_rates)) - set(FIELD_BOUNDS)
            if unknown:
                raise InvalidConfiguration(
                    f"Phase '{p.id}' targets unknown fields {sorted(unknown)}"
                )
        self._ordered: Tuple[PhaseConfig, ...] = tuple(ordered)
        self._by_id: Dict[str, PhaseConfig] = {p.id: p for p in ordered}

    def __iter__(self):
        return iter(self._ordered)

    def ids(self) -> Tuple[str, ...]:
        return tuple(p.id for p in self._ordered)

    def get(self, phase_id: str) -> PhaseConfig:
        try:
            return self._by_id[phase_id]
        except KeyError:
            raise UnknownShockOrPhaseId(
                f"Unknown phase '{phase_id}'; phases: {', '.join(self.ids())}"
            ) from None

    def next_phase(self, current: Optional[str]) -> Optional[str]:
        """The only phase that may be activated from ``current`` (None when terminal)."""
        if current is None:
            return self._ordered[0].id
        order = self.get(current).order
        if order >= PHASE_COUNT:
            return None
        return self._ordered[order].id

    def can_activate(self, current: Optional[str], phase_id: str) -> bool:
        return phase_id in self._by_id and self.next_phase(current) == phase_id

    def activate(self, state: StateVector, current: Optional[str], phase_id: str) -> bool:
        """Apply the one-time effects of ``phase_id`` to ``state``.

        Returns False without touching the state when ``phase_id`` is
        already the current phase.

        Raises:
            UnknownShockOrPhaseId: if ``phase_id`` is not in the table.
            InvalidPhaseTransition: if ``phase_id`` skips or repeats a phase.
        """
        phase = self.get(phase_id)
        if phase_id == current:
            return False
        expected = self.next_phase(current)
        if phase_id != expected:
            raise InvalidPhaseTransition(phase_id, current, expected)
        state.apply_multipliers(phase.effects)
        logger.debug("Phase '{}' effects applied: {}", phase_id, phase.effects)
        return True

    def apply_recovery(self, state: StateVector, phase_id: str) -> Tuple[str, ...]:
        """Apply one step of the phase's recovery rates; returns the fields it governs."""
        phase = self.get(phase_id)
        state.apply_multipliers(phase.recovery_rates)
        return tuple(phase.recovery_rates)

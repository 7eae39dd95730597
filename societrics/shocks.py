"""
External shock registry.

A shock multiplies some fields once when it is activated and keeps
multiplying (usually other) fields every step while it stays active.
Shocks stay active until the scenario is reset.
"""

from typing import Dict, Iterable, List, Tuple

from loguru import logger

from .config import EXTERNAL_SHOCKS, FIELD_BOUNDS, ShockConfig
from .exceptions import InvalidConfiguration, UnknownShockOrPhaseId
from .state import StateVector


class ShockRegistry:
    """Static catalog of shocks plus the activation and per-step rules."""

    def __init__(self, shocks: Iterable[ShockConfig] = EXTERNAL_SHOCKS):
        self._shocks: Dict[str, ShockConfig] = {}
        for shock in shocks:
            if shock.id in self._shocks:
                raise InvalidConfiguration(f"Duplicate shock id '{shock.id}'")
            unknown = (set(shock.effects) | set(shock.ongoing_effects)) - set(FIELD_BOUNDS)
            if unknown:
                raise InvalidConfiguration(
                    f"Shock '{shock.id}' targets unknown fields {sorted(unknown)}"
                )
            self._shocks[shock.id] = shock

    def __contains__(self, shock_id: str) -> bool:
        return shock_id in self._shocks

    def __iter__(self):
        return iter(self._shocks.values())

    def ids(self) -> Tuple[str, ...]:
        return tuple(self._shocks)

    def get(self, shock_id: str) -> ShockConfig:
        try:
            return self._shocks[shock_id]
        except KeyError:
            raise UnknownShockOrPhaseId(
                f"Unknown shock '{shock_id}'; known shocks: {', '.join(self._shocks)}"
            ) from None

    def apply_shock(self, state: StateVector, active: List[str], shock_id: str) -> bool:
        """Apply the one-time effects of ``shock_id`` and mark it active.

        Returns False, leaving ``state`` and ``active`` untouched, when the
        shock is already active.

        Raises:
            UnknownShockOrPhaseId: if the id is not in the catalog.
        """
        shock = self.get(shock_id)
        if shock_id in active:
            return False
        state.apply_multipliers(shock.effects)
        active.append(shock_id)
        logger.debug("Shock '{}' effects applied: {}", shock_id, shock.effects)
        return True

    def apply_ongoing(self, state: StateVector, active: Iterable[str]) -> None:
        """Apply the per-step multipliers of every active shock, in activation order."""
        for shock_id in active:
            state.apply_multipliers(self.get(shock_id).ongoing_effects)

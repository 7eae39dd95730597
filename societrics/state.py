"""
State vector of a running scenario.

Every field carries a declared domain (config.FIELD_BOUNDS). Input from
presets is validated strictly; updates produced by shocks, phases and
simulation steps are clamped back into the domain.
"""

import math
from dataclasses import dataclass, fields, replace
from typing import Dict, Mapping

from .config import FIELD_ALIASES, FIELD_BOUNDS, Preset
from .exceptions import InvalidPreset


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


@dataclass
class StateVector:
    """Normalized socio-economic indicators evolved by the simulation."""

    # Fundamentals
    wealth: float
    trust: float
    education: float
    civilization: float
    political_power: float
    religion: float

    # TPC factors
    time_sense: float
    personal_agency: float
    cultural_anchoring: float

    # Resistance factors
    rigidity: float
    social_pressure: float

    # Absorptive capacity
    soc: float

    # Actor-specific
    regime_coercion: float
    regime_structural_control: float
    opposition_symbolic_capital: float
    population_exit_rate: float

    @classmethod
    def from_dict(cls, values: Mapping[str, float]) -> "StateVector":
        """Build and validate a state from a field -> value mapping.

        Accepts the short aliases T, P, C, R, S for the TPC and
        resistance factors.
        """
        resolved = {FIELD_ALIASES.get(k, k): v for k, v in values.items()}
        unknown = sorted(set(resolved) - set(FIELD_BOUNDS))
        if unknown:
            raise InvalidPreset(f"Unknown state fields: {unknown}")
        missing = sorted(set(FIELD_BOUNDS) - set(resolved))
        if missing:
            raise InvalidPreset(f"Missing state fields: {missing}")
        try:
            state = cls(**{k: float(v) for k, v in resolved.items()})
        except (TypeError, ValueError) as e:
            raise InvalidPreset(f"Non-numeric state value: {e}") from e
        state.validate()
        return state

    @classmethod
    def from_preset(cls, preset: Preset) -> "StateVector":
        try:
            return cls.from_dict(preset.values)
        except InvalidPreset as e:
            raise InvalidPreset(f"Preset '{preset.id}': {e}") from e

    # Short names used in the model equations
    @property
    def T(self) -> float:
        return self.time_sense

    @property
    def P(self) -> float:
        return self.personal_agency

    @property
    def C(self) -> float:
        return self.cultural_anchoring

    @property
    def R(self) -> float:
        return self.rigidity

    @property
    def S(self) -> float:
        return self.social_pressure

    def validate(self) -> None:
        """Raise InvalidPreset if any field is non-finite or outside its domain."""
        for name, (lo, hi) in FIELD_BOUNDS.items():
            value = getattr(self, name)
            if not math.isfinite(value) or value < lo or value > hi:
                raise InvalidPreset(
                    f"{name}={value!r} outside declared domain [{lo}, {hi}]"
                )

    def in_domain(self) -> bool:
        try:
            self.validate()
        except InvalidPreset:
            return False
        return True

    def clamp(self) -> "StateVector":
        """Clamp every field into its declared domain, in place."""
        for name, (lo, hi) in FIELD_BOUNDS.items():
            setattr(self, name, clamp(getattr(self, name), lo, hi))
        return self

    def apply_multipliers(self, multipliers: Mapping[str, float]) -> "StateVector":
        """Multiply the named fields and clamp them to their domains, in place."""
        for name, factor in multipliers.items():
            lo, hi = FIELD_BOUNDS[name]
            setattr(self, name, clamp(getattr(self, name) * factor, lo, hi))
        return self

    def copy(self) -> "StateVector":
        return replace(self)

    def as_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

"""
Derived Societrics indices.

Pure functions of a StateVector at one instant:

    WSI            weighted composite of the six fundamentals
    TPC            time-sense / personal-agency / cultural-anchoring on a 1-7 scale
    TPC modifier   0.8-1.2 amplifier applied to WSI
    capacity       effective absorptive capacity derived from SOC
    theta          adjusted WSI / effective capacity (strain ratio)
    W_acc          dual-pull balance, acceptance minus resistance
    phi            signal-interpretation multiplier, 2*sigmoid(k*W_acc) - 1
"""

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping

import numpy as np

from .config import (
    ActorPayoff,
    CapacityScheme,
    EngineConfig,
    ZoneScheme,
)
from .exceptions import DomainViolation
from .state import StateVector, clamp


@dataclass(frozen=True)
class Zone:
    """A named theta band."""

    key: str
    label: str
    description: str
    color: str


ZONES: Dict[str, Zone] = {
    z.key: z for z in (
        # One-sided scheme
        Zone("stable", "Stable", "System can absorb shocks", "green"),
        Zone("fragile", "Fragile", "Vulnerable to cascading failures", "yellow"),
        Zone("critical", "Critical", "Approaching breakdown", "orange"),
        Zone("crisis", "Crisis", "System capacity exceeded", "red"),
        # Elastic-middle scheme (critical and crisis shared with above)
        Zone("equilibrium", "Equilibrium", "Strain matched to capacity", "green"),
        Zone("under_capacity", "Under Capacity", "Capacity idles below demand for change", "yellow"),
        Zone("elevated_strain", "Elevated Strain", "Strain running above capacity", "yellow"),
        Zone("stagnation", "Stagnation", "Too little change to sustain the system", "orange"),
        Zone("collapse", "Collapse", "System has stopped changing", "red"),
    )
}


def classify_zone(theta: float, scheme: ZoneScheme = ZoneScheme.ONE_SIDED) -> Zone:
    """Map theta onto a zone of the given scheme.

    ONE_SIDED: theta >= 1.0 is crisis. ELASTIC_MIDDLE: bands are symmetric
    in |theta - 1|, inclusive at their upper edge, so theta == 1.0 is
    equilibrium.
    """
    if scheme == ZoneScheme.ONE_SIDED:
        if theta >= 1.0:
            return ZONES["crisis"]
        if theta >= 0.9:
            return ZONES["critical"]
        if theta >= 0.7:
            return ZONES["fragile"]
        return ZONES["stable"]

    # Rounded so exact band edges such as 0.85 and 1.15 land alike
    deviation = round(abs(theta - 1.0), 12)
    below = theta < 1.0
    if deviation <= 0.15:
        return ZONES["equilibrium"]
    if deviation <= 0.30:
        return ZONES["under_capacity"] if below else ZONES["elevated_strain"]
    if deviation <= 0.50:
        return ZONES["stagnation"] if below else ZONES["critical"]
    return ZONES["collapse"] if below else ZONES["crisis"]


def tpc_modifier_from_score(tpc_score: float) -> float:
    """0.8 + 0.4 * normalized TPC; bounded to [0.8, 1.2]."""
    return 0.8 + 0.4 * clamp((tpc_score - 1.0) / 6.0, 0.0, 1.0)


def signal_multiplier(w_acc: float, steepness: float = 2.0) -> float:
    """SIP trap multiplier phi in (-1, 1).

    2*sigmoid(k*x) - 1 written as tanh(k*x/2), which does not overflow
    for large |x|.
    """
    return float(np.tanh(steepness * w_acc / 2.0))


def dual_pull_balance(state: StateVector) -> float:
    """W_acc = (T + P + C) - (R + S)."""
    return (state.T + state.P + state.C) - (state.R + state.S)


def actor_payoff(actor: ActorPayoff, state: StateVector, theta: float, phi: float,
                 inverted: bool) -> float:
    base = sum(w * getattr(state, f) for f, w in actor.weights.items())
    payoff = base - actor.crisis_penalty * max(0.0, theta - 1.0)
    if inverted:
        payoff *= phi
    return payoff


@dataclass(frozen=True)
class DerivedMetrics:
    """Derived indices of one state. Recomputable, never stored as primary state."""

    wsi: float
    tpc_score: float
    tpc_modifier: float
    adjusted_wsi: float
    effective_capacity: float
    theta: float
    dual_pull_balance: float
    signal_multiplier: float
    signal_inverted: bool
    payoffs: Mapping[str, float]
    zone: Zone

    @property
    def threshold_crossed(self) -> bool:
        return self.theta > 1.0

    def as_dict(self) -> Dict[str, Any]:
        row = {
            "wsi": self.wsi,
            "tpc_score": self.tpc_score,
            "tpc_modifier": self.tpc_modifier,
            "adjusted_wsi": self.adjusted_wsi,
            "effective_capacity": self.effective_capacity,
            "theta": self.theta,
            "w_acc": self.dual_pull_balance,
            "phi": self.signal_multiplier,
        }
        for name, value in self.payoffs.items():
            row[f"{name}_payoff"] = value
        row["zone"] = self.zone.key
        row["threshold_crossed"] = self.threshold_crossed
        return row


class IndexCalculator:
    """Computes DerivedMetrics under one fixed EngineConfig."""

    def __init__(self, config: EngineConfig = None):
        self.config = (config or EngineConfig()).validate()

    def wsi(self, state: StateVector) -> float:
        return sum(w * getattr(state, f) for f, w in self.config.weights.as_dict().items())

    def tpc_score(self, state: StateVector) -> float:
        raw = sum(w * getattr(state, f) for f, w in self.config.tpc_weights.items())
        return 1.0 + 6.0 * raw

    def effective_capacity(self, state: StateVector) -> float:
        if self.config.capacity_scheme == CapacityScheme.ADDITIVE:
            return state.soc + 0.15 * state.trust + 0.10 * state.C
        trust_factor = 0.3 + 0.7 * state.trust
        culture_factor = 0.5 + 0.5 * state.C
        return state.soc * trust_factor * culture_factor

    def theta(self, state: StateVector) -> float:
        return self.compute(state).theta

    def zone(self, theta: float) -> Zone:
        return classify_zone(theta, self.config.zone_scheme)

    def compute(self, state: StateVector) -> DerivedMetrics:
        """All derived metrics of ``state``.

        Raises:
            DomainViolation: if effective capacity is not a positive finite
                number, or any input to theta is not finite.
        """
        wsi = self.wsi(state)
        tpc_score = self.tpc_score(state)
        tpc_modifier = tpc_modifier_from_score(tpc_score)
        adjusted_wsi = wsi * tpc_modifier
        capacity = self.effective_capacity(state)

        if not math.isfinite(capacity) or capacity <= 0.0:
            raise DomainViolation(
                f"effective capacity {capacity!r} must be positive and finite (soc={state.soc!r})"
            )
        if not math.isfinite(adjusted_wsi):
            raise DomainViolation(f"adjusted WSI is not finite: {adjusted_wsi!r}")

        theta = adjusted_wsi / capacity
        w_acc = dual_pull_balance(state)
        phi = signal_multiplier(w_acc, self.config.signal_steepness)
        inverted = w_acc < 0.0
        payoffs = {
            actor.name: actor_payoff(actor, state, theta, phi, inverted)
            for actor in self.config.actors
        }

        return DerivedMetrics(
            wsi=wsi,
            tpc_score=tpc_score,
            tpc_modifier=tpc_modifier,
            adjusted_wsi=adjusted_wsi,
            effective_capacity=capacity,
            theta=theta,
            dual_pull_balance=w_acc,
            signal_multiplier=phi,
            signal_inverted=inverted,
            payoffs=MappingProxyType(payoffs),
            zone=self.zone(theta),
        )

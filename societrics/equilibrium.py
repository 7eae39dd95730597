"""
Nash vs Societrics equilibrium predictions.

Reporting only: nothing here feeds back into the simulation.

The static (Nash) prediction looks at nominal immediate payoffs and
ignores theta and system cost, so it always picks defection whenever
defection carries a premium. The Societrics prediction is rule based,
driven by the active phase, theta, and three conditions:

    moral       |W_acc - target| <= tolerance (balanced acceptance)
    strategic   cooperate payoff beats effective defect payoff by a margin
    structural  theta <= 1 (change within capacity)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np

from .config import ZoneScheme
from .indices import DerivedMetrics, Zone, classify_zone


class Prediction(str, Enum):
    RECOVERY_ACTIVE = "recovery_active"
    SOCIETRICS_EQUILIBRIUM = "societrics_equilibrium"
    FORCED_HONEST = "forced_honest"
    INTERVENTION_REQUIRED = "intervention_required"
    MONITOR = "monitor"


# Label and outcome per active phase
PHASE_OUTCOMES = {
    "circuitBreaker": ("De-escalation Active", "Breaking destructive feedback loops"),
    "structuralFloor": ("Stabilization Active", "Institutions being rebuilt"),
    "incentiveEngine": ("Recovery Path Active", "System rebuilding toward equilibrium"),
}

PREDICTION_OUTCOMES = {
    Prediction.SOCIETRICS_EQUILIBRIUM: (
        "Societrics Equilibrium", "Moral, strategic and structural conditions hold",
    ),
    Prediction.FORCED_HONEST: (
        "Honest (defection excluded: θ > 1)", "System cost makes defection net-negative",
    ),
    Prediction.INTERVENTION_REQUIRED: (
        "Intervention Required", "3-phase pathway needed for recovery",
    ),
    Prediction.MONITOR: ("Monitor & Prepare", "System fragile but recoverable"),
}


@dataclass
class AnalyzerParams:
    """Thresholds and stylized payoffs used by the model-consistent prediction."""

    moral_target: float = 1.0
    moral_tolerance: float = 0.25
    strategic_margin: float = 1.0

    cooperate_payoff: float = 10.0
    defect_premium: float = 5.0
    system_cost_multiplier: float = 5.0


@dataclass(frozen=True)
class EquilibriumConditions:
    moral: bool
    strategic: bool
    structural: bool

    @property
    def all_hold(self) -> bool:
        return self.moral and self.strategic and self.structural


@dataclass(frozen=True)
class EquilibriumReport:
    static_prediction: str
    static_outcome: str
    prediction: Prediction
    model_label: str
    model_outcome: str
    conditions: EquilibriumConditions
    theta_basis: float
    zone: Zone
    cooperate_payoff: float
    defect_payoff: float


def system_cost(theta: float, multiplier: float) -> float:
    """Cost of defecting once the system is past capacity (0 while theta <= 1)."""
    return multiplier * (theta - 1.0) * 20.0 if theta > 1.0 else 0.0


class EquilibriumAnalyzer:
    """Compares the naive static prediction with the Societrics prediction."""

    def __init__(self, params: AnalyzerParams = None):
        self.params = params or AnalyzerParams()

    def effective_defect_payoff(self, theta: float, phi: float) -> float:
        p = self.params
        return p.defect_premium * phi - system_cost(theta, p.system_cost_multiplier)

    def static_prediction(self) -> Tuple[str, str]:
        p = self.params
        nominal_defect = p.cooperate_payoff + p.defect_premium
        if nominal_defect > p.cooperate_payoff:
            return (
                f"Defect (always +{p.defect_premium:g} short-term)",
                "Crisis persists indefinitely",
            )
        return "Cooperate", "No short-term gain from defecting"

    def conditions(self, metrics: DerivedMetrics, theta: float) -> EquilibriumConditions:
        p = self.params
        defect = self.effective_defect_payoff(theta, metrics.signal_multiplier)
        return EquilibriumConditions(
            moral=abs(metrics.dual_pull_balance - p.moral_target) <= p.moral_tolerance,
            strategic=(p.cooperate_payoff - defect) >= p.strategic_margin,
            structural=theta <= 1.0,
        )

    def analyze(
        self,
        metrics: DerivedMetrics,
        phase: Optional[str] = None,
        history: Optional[Sequence] = None,
        zone_scheme: ZoneScheme = ZoneScheme.ONE_SIDED,
    ) -> EquilibriumReport:
        """Build both predictions for the latest metrics.

        When ``history`` is non-empty, theta is taken as the mean over it,
        so a single good step does not clear a long crisis. The reported
        zone classifies that same theta basis under ``zone_scheme``.
        """
        theta = metrics.theta
        if history:
            theta = float(np.mean([r.metrics.theta for r in history]))

        conditions = self.conditions(metrics, theta)

        if phase in PHASE_OUTCOMES:
            prediction = Prediction.RECOVERY_ACTIVE
            label, outcome = PHASE_OUTCOMES[phase]
        else:
            if conditions.all_hold:
                prediction = Prediction.SOCIETRICS_EQUILIBRIUM
            elif not conditions.structural and conditions.strategic and conditions.moral:
                prediction = Prediction.FORCED_HONEST
            elif not conditions.structural:
                prediction = Prediction.INTERVENTION_REQUIRED
            else:
                prediction = Prediction.MONITOR
            label, outcome = PREDICTION_OUTCOMES[prediction]

        static, static_outcome = self.static_prediction()
        return EquilibriumReport(
            static_prediction=static,
            static_outcome=static_outcome,
            prediction=prediction,
            model_label=label,
            model_outcome=outcome,
            conditions=conditions,
            theta_basis=theta,
            zone=classify_zone(theta, zone_scheme),
            cooperate_payoff=self.params.cooperate_payoff,
            defect_payoff=self.effective_defect_payoff(theta, metrics.signal_multiplier),
        )

    @staticmethod
    def dilemma_predictions(theta: float, cheat_premium: float = 5.0) -> Tuple[str, str]:
        """(Nash, Societrics) strategy labels for the cheating dilemma."""
        nash = f"Cheat (always +{cheat_premium:g} short-term)"
        if theta > 1.0:
            sgt = "Honest (Cheat excluded: θ > 1)"
        elif theta > 0.8:
            sgt = "Honest (Cheat risky: θ ≈ 1)"
        else:
            sgt = "Either (System stable)"
        return nash, sgt

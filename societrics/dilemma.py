"""
Cheating dilemma simulation.

A two-strategy game played inside a school system. Cheating pays a
short-term premium, so classical game theory predicts cheating. Every
cheat erodes trust and education, which shrinks the system's capacity
(SOC) until theta crosses 1 and the system cost of cheating outweighs
its premium:

    payoff_eff(cheat) = premium * phi(W_acc) - SystemCost(theta)

Fundamentals other than trust and education are held at fixed values.
"""

from dataclasses import dataclass
from typing import Dict

import numpy as np

from .config import DilemmaParams
from .equilibrium import EquilibriumAnalyzer, system_cost
from .indices import signal_multiplier

# Fundamentals held constant in the dilemma: (weight, value)
BACKGROUND_FUNDAMENTALS: Dict[str, tuple] = {
    "wealth": (0.15, 0.70),
    "religion": (0.10, 0.65),
    "civilization": (0.15, 0.75),
    "political_power": (0.20, 0.60),
}
TRUST_WEIGHT = 0.15
EDUCATION_WEIGHT = 0.20

# Fixed dual-pull factors; C follows trust and S rises with cheating
TIME_SENSE = 0.90
PERSONAL_AGENCY = 0.85
RIGIDITY = 0.40
BASE_SOCIAL_PRESSURE = 0.30

TRUST_FLOOR = 0.1
EDUCATION_FLOOR = 0.2


@dataclass
class DilemmaResults:
    """Time series from t = 0 to t = time_steps (inclusive)."""

    time: np.ndarray
    wsi: np.ndarray
    soc: np.ndarray
    theta: np.ndarray
    trust: np.ndarray
    education: np.ndarray
    w_acc: np.ndarray
    phi: np.ndarray
    honest_payoff: np.ndarray
    cheat_payoff: np.ndarray
    threshold_crossed: np.ndarray

    equilibrium_type: str  # stable | fragile | crisis
    nash_prediction: str
    sgt_prediction: str

    @property
    def final_theta(self) -> float:
        return float(self.theta[-1])


def classify_equilibrium(theta: float) -> str:
    if theta > 1.0:
        return "crisis"
    if theta > 0.8:
        return "fragile"
    return "stable"


class CheatingDilemmaSimulator:
    """Batch simulator for the cheating dilemma."""

    def __init__(self, params: DilemmaParams = None):
        self.params = params or DilemmaParams()

    def run(self) -> DilemmaResults:
        p = self.params
        n = p.time_steps + 1

        wsi = np.zeros(n)
        soc = np.zeros(n)
        theta = np.zeros(n)
        trust = np.zeros(n)
        education = np.zeros(n)
        w_acc = np.zeros(n)
        phi = np.zeros(n)
        cheat = np.zeros(n)

        background = sum(w * v for w, v in BACKGROUND_FUNDAMENTALS.values())
        # cheat instances per 100 students
        cheat_instances = p.cheating_rate * 100
        social_pressure = BASE_SOCIAL_PRESSURE + p.cheating_rate * 0.5

        tr = p.initial_trust
        ed = p.initial_education

        for t in range(n):
            tr = max(TRUST_FLOOR, tr - cheat_instances * p.trust_decay * 0.01)
            ed = max(EDUCATION_FLOOR, ed - cheat_instances * p.education_decay * 0.01)
            trust[t] = tr
            education[t] = ed

            wsi[t] = background + TRUST_WEIGHT * tr + EDUCATION_WEIGHT * ed

            # Capacity shrinks as trust falls
            soc[t] = p.soc_limit * (0.5 + 0.5 * tr)
            theta[t] = wsi[t] / soc[t]

            w_acc[t] = (TIME_SENSE + PERSONAL_AGENCY + tr) - (RIGIDITY + social_pressure)
            phi[t] = signal_multiplier(w_acc[t])

            cheat[t] = p.cheat_premium * phi[t] - system_cost(theta[t], p.system_cost_multiplier)

        final = float(theta[-1])
        nash, sgt = EquilibriumAnalyzer.dilemma_predictions(final, p.cheat_premium)

        return DilemmaResults(
            time=np.arange(n),
            wsi=wsi,
            soc=soc,
            theta=theta,
            trust=trust,
            education=education,
            w_acc=w_acc,
            phi=phi,
            honest_payoff=np.full(n, p.honest_payoff),
            cheat_payoff=cheat,
            threshold_crossed=theta > 1.0,
            equilibrium_type=classify_equilibrium(final),
            nash_prediction=nash,
            sgt_prediction=sgt,
        )

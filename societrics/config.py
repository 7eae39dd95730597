"""
Configuration for the Societrics crisis simulator.

Defines field domains, index weights, the shock and intervention
catalogs, engine parameters, and the named crisis presets used by
the multi-crisis analyzer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from .exceptions import InvalidConfiguration


# Declared clamp domain of every StateVector field
FIELD_BOUNDS: Dict[str, Tuple[float, float]] = {
    # Fundamentals
    "wealth": (0.05, 1.0),
    "trust": (0.05, 1.0),
    "education": (0.10, 1.0),
    "civilization": (0.05, 1.0),
    "political_power": (0.10, 1.0),
    "religion": (0.05, 1.0),
    # TPC factors
    "time_sense": (0.20, 1.0),
    "personal_agency": (0.10, 1.0),
    "cultural_anchoring": (0.20, 1.0),
    # Resistance factors
    "rigidity": (0.0, 1.0),
    "social_pressure": (0.0, 1.0),
    # Capacity (Standard of Change); must stay away from zero
    "soc": (0.02, 0.30),
    # Actor-specific scalars
    "regime_coercion": (0.0, 0.90),
    "regime_structural_control": (0.0, 0.90),
    "opposition_symbolic_capital": (0.0, 0.90),
    "population_exit_rate": (0.0, 0.90),
}

# Short names used in the methodology (T, P, C, R, S)
FIELD_ALIASES: Dict[str, str] = {
    "T": "time_sense",
    "P": "personal_agency",
    "C": "cultural_anchoring",
    "R": "rigidity",
    "S": "social_pressure",
}

FUNDAMENTALS = (
    "wealth", "trust", "religion", "civilization", "education", "political_power",
)


class CapacityScheme(str, Enum):
    """How SOC is turned into effective absorptive capacity."""

    MULTIPLICATIVE = "multiplicative"  # soc * (0.3+0.7*trust) * (0.5+0.5*C)
    ADDITIVE = "additive"  # soc + 0.15*trust + 0.10*C


class ZoneScheme(str, Enum):
    """Which theta band classification is used."""

    ONE_SIDED = "one_sided"
    ELASTIC_MIDDLE = "elastic_middle"


@dataclass(frozen=True)
class WeightSet:
    """WSI weights over the six fundamentals. Must sum to 1.0."""

    name: str
    wealth: float
    trust: float
    religion: float
    civilization: float
    education: float
    political_power: float

    def as_dict(self) -> Dict[str, float]:
        return {f: getattr(self, f) for f in FUNDAMENTALS}

    @property
    def total(self) -> float:
        return sum(self.as_dict().values())


# Multi-crisis analyzer weighting
ANALYZER_WEIGHTS = WeightSet(
    "analyzer", wealth=0.20, trust=0.20, religion=0.10,
    civilization=0.15, education=0.20, political_power=0.15,
)

# Education-heavy weighting used by the field assessment presets
EDUCATION_WEIGHTS = WeightSet(
    "education", wealth=0.15, trust=0.20, religion=0.10,
    civilization=0.15, education=0.25, political_power=0.15,
)

WEIGHT_SETS: Dict[str, WeightSet] = {
    w.name: w for w in (ANALYZER_WEIGHTS, EDUCATION_WEIGHTS)
}

TPC_WEIGHTS: Dict[str, float] = {
    "time_sense": 0.35,
    "personal_agency": 0.35,
    "cultural_anchoring": 0.30,
}


@dataclass
class NaturalDecay:
    """Per-step drift applied while no intervention phase is active."""

    # Multiplicative decay
    trust: float = 0.985
    wealth: float = 0.975
    education: float = 0.990
    soc: float = 0.985
    political_power: float = 0.990
    time_sense: float = 0.995
    personal_agency: float = 0.990
    cultural_anchoring: float = 0.995

    # Additive drift
    coercion_pressure_rate: float = 0.005  # S += regime_coercion * rate
    rigidity_drift: float = 0.003
    exit_drift: float = 0.01

    def multipliers(self) -> Dict[str, float]:
        return {
            "trust": self.trust,
            "wealth": self.wealth,
            "education": self.education,
            "soc": self.soc,
            "political_power": self.political_power,
            "time_sense": self.time_sense,
            "personal_agency": self.personal_agency,
            "cultural_anchoring": self.cultural_anchoring,
        }

    def governed_fields(self) -> Tuple[str, ...]:
        return tuple(self.multipliers()) + (
            "social_pressure", "rigidity", "population_exit_rate",
        )


@dataclass(frozen=True)
class ActorPayoff:
    """Linear payoff of one actor: sum(weight * field) - penalty * max(0, theta-1)."""

    name: str
    weights: Dict[str, float]
    crisis_penalty: float = 0.0


DEFAULT_ACTORS: Tuple[ActorPayoff, ...] = (
    ActorPayoff("regime", {"political_power": 10.0}, crisis_penalty=30.0),
    ActorPayoff(
        "opposition",
        {"trust": 8.0, "opposition_symbolic_capital": 5.0},
        crisis_penalty=20.0,
    ),
    ActorPayoff(
        "population",
        {"wealth": 5.0, "education": 5.0, "population_exit_rate": -10.0},
    ),
)


@dataclass
class EngineConfig:
    """All tunable parameters of the simulation engine."""

    weights: WeightSet = ANALYZER_WEIGHTS
    tpc_weights: Dict[str, float] = field(default_factory=lambda: dict(TPC_WEIGHTS))
    capacity_scheme: CapacityScheme = CapacityScheme.MULTIPLICATIVE
    zone_scheme: ZoneScheme = ZoneScheme.ONE_SIDED

    # Steepness k of phi = 2*sigmoid(k*W_acc) - 1
    signal_steepness: float = 2.0

    decay: NaturalDecay = field(default_factory=NaturalDecay)

    # While a phase is active, fields its recovery rates don't name
    # either keep decaying (True) or stay frozen (False).
    decay_uncovered_fields: bool = False

    # Re-derive T from WSI and C from trust at the end of every step
    derive_tpc_factors: bool = True
    wsi_reference: float = 0.75  # WSI at which the derived T reaches 1.0

    actors: Tuple[ActorPayoff, ...] = DEFAULT_ACTORS

    def validate(self) -> "EngineConfig":
        if abs(self.weights.total - 1.0) > 1e-9:
            raise InvalidConfiguration(
                f"WSI weights '{self.weights.name}' sum to {self.weights.total:.4f}, expected 1.0"
            )
        tpc_total = sum(self.tpc_weights.values())
        if abs(tpc_total - 1.0) > 1e-9:
            raise InvalidConfiguration(f"TPC weights sum to {tpc_total:.4f}, expected 1.0")
        unknown = set(self.tpc_weights) - set(TPC_WEIGHTS)
        if unknown:
            raise InvalidConfiguration(f"Unknown TPC factors: {sorted(unknown)}")
        if self.signal_steepness <= 0:
            raise InvalidConfiguration("signal_steepness must be positive")
        if self.wsi_reference <= 0:
            raise InvalidConfiguration("wsi_reference must be positive")
        return self


# ── Shock catalog ────────────────────────────────────────────────────


@dataclass(frozen=True)
class ShockConfig:
    """An exogenous perturbation: one-time multipliers + per-step multipliers."""

    id: str
    name: str
    description: str
    effects: Dict[str, float]
    ongoing_effects: Dict[str, float] = field(default_factory=dict)


EXTERNAL_SHOCKS: Tuple[ShockConfig, ...] = (
    ShockConfig(
        "sanctions", "International Sanctions",
        "Economic isolation from global markets",
        effects={"wealth": 0.85, "soc": 0.90, "social_pressure": 1.15, "time_sense": 0.95},
        ongoing_effects={"wealth": 0.999},
    ),
    ShockConfig(
        "oil", "Commodity Price Collapse",
        "Major export revenue collapse",
        effects={"wealth": 0.70, "political_power": 0.85, "personal_agency": 0.90},
        ongoing_effects={"wealth": 0.998},
    ),
    ShockConfig(
        "aid", "Humanitarian Aid Influx",
        "International assistance arrives",
        effects={"wealth": 1.10, "trust": 1.05, "population_exit_rate": 0.95,
                 "personal_agency": 1.05},
        ongoing_effects={"wealth": 1.001, "trust": 1.0005},
    ),
    ShockConfig(
        "migration", "Mass Emigration Wave",
        "Brain drain and population flight",
        effects={"personal_agency": 0.80, "population_exit_rate": 1.30,
                 "trust": 0.90, "education": 0.95},
        ongoing_effects={"population_exit_rate": 1.005, "personal_agency": 0.999},
    ),
    ShockConfig(
        "intervention", "Foreign Military Intervention",
        "External armed intervention",
        effects={"regime_coercion": 0.60, "social_pressure": 0.75,
                 "rigidity": 1.20, "civilization": 0.80},
        ongoing_effects={"civilization": 0.998, "trust": 0.999},
    ),
    ShockConfig(
        "cyber", "Information Warfare",
        "Disinformation and cyber attacks",
        effects={"trust": 0.85, "cultural_anchoring": 0.90,
                 "opposition_symbolic_capital": 1.15},
        ongoing_effects={"trust": 0.999, "cultural_anchoring": 0.9995},
    ),
)


# ── Intervention phases ──────────────────────────────────────────────


@dataclass(frozen=True)
class PhaseConfig:
    """A policy phase: one-time multipliers on activation + per-step recovery."""

    id: str
    name: str
    order: int
    description: str
    effects: Dict[str, float]
    recovery_rates: Dict[str, float]


INTERVENTION_PHASES: Tuple[PhaseConfig, ...] = (
    PhaseConfig(
        "circuitBreaker", "Circuit Breaker", 1,
        "Reduce coercion and social pressure to stop feedback loops",
        effects={"regime_coercion": 0.70, "social_pressure": 0.85,
                 "rigidity": 0.90, "opposition_symbolic_capital": 1.20},
        recovery_rates={"social_pressure": 0.97, "rigidity": 0.98, "trust": 1.005},
    ),
    PhaseConfig(
        "structuralFloor", "Structural Floor", 2,
        "Stabilize institutions and expand system capacity",
        effects={"political_power": 0.80, "wealth": 1.15, "soc": 1.30,
                 "regime_structural_control": 0.70},
        recovery_rates={"wealth": 1.01, "soc": 1.015, "civilization": 1.005},
    ),
    PhaseConfig(
        "incentiveEngine", "Incentive Engine", 3,
        "Empower individual agency and rebuild trust",
        effects={"personal_agency": 1.40, "wealth": 1.25,
                 "population_exit_rate": 0.70, "trust": 1.30},
        recovery_rates={"personal_agency": 1.02, "trust": 1.015, "wealth": 1.02,
                        "population_exit_rate": 0.95},
    ),
)


# ── Crisis presets ───────────────────────────────────────────────────


@dataclass(frozen=True)
class Preset:
    """A named starting configuration for a scenario."""

    id: str
    name: str
    region: str
    description: str
    values: Dict[str, float]


def _preset(id, name, region, description, wealth, trust, religion, civilization,
            education, political_power, T, P, C, R, S, soc, regime_coercion,
            regime_structural, opposition_symbolic, population_exit) -> Preset:
    return Preset(id, name, region, description, {
        "wealth": wealth, "trust": trust, "religion": religion,
        "civilization": civilization, "education": education,
        "political_power": political_power,
        "time_sense": T, "personal_agency": P, "cultural_anchoring": C,
        "rigidity": R, "social_pressure": S, "soc": soc,
        "regime_coercion": regime_coercion,
        "regime_structural_control": regime_structural,
        "opposition_symbolic_capital": opposition_symbolic,
        "population_exit_rate": population_exit,
    })


CRISIS_PRESETS: Dict[str, Preset] = {
    p.id: p for p in (
        _preset("venezuela", "Venezuela", "Latin America",
                "Authoritarian consolidation with economic collapse",
                0.25, 0.30, 0.60, 0.45, 0.55, 0.40,
                0.45, 0.35, 0.40, 0.70, 0.80, 0.10,
                0.70, 0.60, 0.50, 0.40),
        _preset("syria", "Syria", "Middle East",
                "Civil war with external intervention",
                0.15, 0.20, 0.50, 0.30, 0.40, 0.35,
                0.30, 0.25, 0.35, 0.80, 0.90, 0.08,
                0.85, 0.70, 0.60, 0.70),
        _preset("sudan", "Sudan", "Africa",
                "Military coup with civilian resistance",
                0.30, 0.35, 0.55, 0.40, 0.50, 0.30,
                0.50, 0.45, 0.45, 0.75, 0.75, 0.09,
                0.75, 0.55, 0.65, 0.50),
        _preset("myanmar", "Myanmar", "Southeast Asia",
                "Military takeover with mass civil disobedience",
                0.35, 0.40, 0.45, 0.35, 0.45, 0.25,
                0.40, 0.50, 0.50, 0.70, 0.85, 0.085,
                0.80, 0.60, 0.70, 0.35),
        _preset("custom", "Custom Scenario", "User Defined",
                "Build your own crisis parameters",
                0.40, 0.45, 0.55, 0.50, 0.55, 0.45,
                0.55, 0.50, 0.50, 0.60, 0.65, 0.10,
                0.60, 0.50, 0.50, 0.40),
    )
}

DEFAULT_PRESET = "venezuela"


def get_preset(preset_id: str) -> Optional[Preset]:
    return CRISIS_PRESETS.get(preset_id)


# ── Cheating dilemma ─────────────────────────────────────────────────


@dataclass
class DilemmaParams:
    """Parameters of the two-strategy cheating dilemma model."""

    cheating_rate: float = 0.15
    time_steps: int = 50
    soc_limit: float = 0.10
    trust_decay: float = 0.02
    education_decay: float = 0.015
    system_cost_multiplier: float = 5.0

    initial_trust: float = 0.70
    initial_education: float = 0.80
    honest_payoff: float = 10.0
    cheat_premium: float = 5.0


DILEMMA_PRESETS: Dict[str, DilemmaParams] = {
    "Low Corruption": DilemmaParams(cheating_rate=0.05),
    "Default": DilemmaParams(),
    "Medium Crisis": DilemmaParams(cheating_rate=0.20, trust_decay=0.03, education_decay=0.02),
    "Systemic Collapse": DilemmaParams(cheating_rate=0.40, trust_decay=0.04, education_decay=0.03),
}

"""Shared fixtures for the Societrics simulator tests."""

import pytest

from societrics.config import CRISIS_PRESETS, EDUCATION_WEIGHTS, EngineConfig
from societrics.engine import SimulationEngine
from societrics.indices import IndexCalculator
from societrics.state import StateVector


@pytest.fixture
def venezuela_state() -> StateVector:
    return StateVector.from_preset(CRISIS_PRESETS["venezuela"])


@pytest.fixture
def education_calculator() -> IndexCalculator:
    """Education-heavy weights with the multiplicative capacity scheme."""
    return IndexCalculator(EngineConfig(weights=EDUCATION_WEIGHTS))


@pytest.fixture
def engine() -> SimulationEngine:
    return SimulationEngine("venezuela")


@pytest.fixture
def frozen_engine() -> SimulationEngine:
    """Engine without the T/C projections, so only decay and phases move fields."""
    return SimulationEngine("venezuela", config=EngineConfig(derive_tpc_factors=False))

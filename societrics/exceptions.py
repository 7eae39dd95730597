"""
Custom exceptions for the Societrics simulator.

Lower layers raise these; the simulation engine catches the runtime
ones at its operation boundary and reports them as ActionResult values.
"""

from typing import Optional


class SocietricsError(Exception):
    """Base exception for all simulator errors."""
    pass


class InvalidPhaseTransition(SocietricsError):
    """
    Raised when an intervention phase is activated out of order.

    Carries the phase that is actually eligible next (None once the
    final phase has been reached).
    """

    def __init__(self, requested: str, current: Optional[str], next_phase: Optional[str]):
        self.requested = requested
        self.current = current
        self.next_phase = next_phase
        eligible = next_phase if next_phase is not None else "none (final phase reached)"
        super().__init__(
            f"Cannot activate '{requested}' while phase is '{current or 'none'}'; "
            f"next eligible phase: {eligible}"
        )


class UnknownShockOrPhaseId(SocietricsError):
    """Raised when a shock or phase id is not in the static catalog."""
    pass


class DomainViolation(SocietricsError):
    """Raised when a derived quantity would make theta undefined (capacity <= 0, NaN)."""
    pass


class InvalidPreset(SocietricsError):
    """Raised when a preset or custom state vector has out-of-domain or missing fields."""
    pass


class InvalidConfiguration(SocietricsError):
    """Raised when engine configuration is inconsistent (weights, steepness)."""
    pass

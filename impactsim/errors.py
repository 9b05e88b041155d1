# impactsim/errors.py
from typing import Optional


class ImpactSimError(Exception):
    """Base class for errors raised by the engine."""


class UnknownCompositionError(ImpactSimError, KeyError):
    """Requested composition type is missing from the composition model table."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"Unknown composition type: {self.key}"


class InsufficientSamplesError(ImpactSimError, RuntimeError):
    """Monte Carlo propagation produced too few valid samples to report statistics."""

    def __init__(self, valid: int, requested: int, message: Optional[str] = None):
        self.valid = int(valid)
        self.requested = int(requested)
        super().__init__(
            message
            or f"Monte Carlo analysis failed: too many invalid samples ({self.valid}/{self.requested} valid)"
        )


class InvalidAsteroidRecord(ImpactSimError, ValueError):
    """Raw asteroid record failed boundary validation."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")

# impactsim/physics/uncertain.py
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class Distribution(str, Enum):
    NORMAL = "normal"
    UNIFORM = "uniform"
    TRIANGULAR = "triangular"


@dataclass(frozen=True)
class UncertainValue:
    """
    Scalar tagged with a 1-sigma uncertainty, a unit string and its provenance.

    Units are carried for reporting only; no dimensional analysis is performed.
    """
    value: float
    uncertainty: float
    unit: str = ""
    source: str = ""
    description: str = ""

    def __post_init__(self):
        # NaN compares False here, so non-finite input flows through to the caller
        if self.uncertainty < 0:
            raise ValueError(f"uncertainty must be >= 0 (got {self.uncertainty})")

    @property
    def relative_uncertainty(self) -> float:
        if self.value == 0:
            return math.inf if self.uncertainty > 0 else 0.0
        return abs(self.uncertainty / self.value)

    def with_source(self, source: str) -> "UncertainValue":
        return UncertainValue(self.value, self.uncertainty, self.unit, source, self.description)

    def as_dict(self) -> Dict[str, Any]:
        out = {
            "value": self.value,
            "uncertainty": self.uncertainty,
            "unit": self.unit,
            "source": self.source,
        }
        if self.description:
            out["description"] = self.description
        return out

    def __str__(self) -> str:
        unit = f" {self.unit}" if self.unit else ""
        return f"{self.value:.6g} ± {self.uncertainty:.3g}{unit}"


@dataclass(frozen=True)
class UncertaintyVariable:
    name: str
    value: UncertainValue
    distribution: Distribution = Distribution.NORMAL


def exact(value: float, unit: str = "", source: str = "Definition") -> UncertainValue:
    return UncertainValue(float(value), 0.0, unit, source)

# impactsim/validation/compare.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from impactsim.config.settings import STATUS_THRESHOLDS, WITHIN_UNCERTAINTY_SIGMA
from impactsim.physics.uncertain import UncertainValue


class ValidationStatus(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    ACCEPTABLE = "ACCEPTABLE"
    POOR = "POOR"


@dataclass(frozen=True)
class Agreement:
    sigma_deviation: float
    percent_error: float
    within_uncertainty: bool

    def as_dict(self) -> Dict[str, object]:
        return {
            "sigma_deviation": self.sigma_deviation,
            "percent_error": self.percent_error,
            "within_uncertainty": self.within_uncertainty,
        }


@dataclass(frozen=True)
class ValidationResult:
    subject: str  # event or asteroid name
    parameter: str
    predicted: UncertainValue
    reference: UncertainValue
    agreement: Agreement
    status: ValidationStatus
    epoch: Optional[float] = None  # JD, orbital results only

    def as_dict(self) -> Dict[str, object]:
        out = {
            "subject": self.subject,
            "parameter": self.parameter,
            "predicted": self.predicted.as_dict(),
            "reference": self.reference.as_dict(),
            "agreement": self.agreement.as_dict(),
            "status": self.status.value,
        }
        if self.epoch is not None:
            out["epoch"] = self.epoch
        return out


@dataclass(frozen=True)
class ItemOutcome:
    """One registry item: either a result or the error that stopped it."""
    subject: str
    parameter: str
    result: Optional[ValidationResult] = None
    error: Optional[str] = None
    extra: Dict[str, object] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.result is not None

    def as_dict(self) -> Dict[str, object]:
        if self.ok:
            return {"ok": True, **self.result.as_dict()}
        return {"ok": False, "subject": self.subject, "parameter": self.parameter, "error": self.error}


def compare(predicted: UncertainValue, reference: UncertainValue) -> Agreement:
    """
    sigma = |pred - ref| / sqrt(s_pred^2 + s_ref^2).
    With zero combined uncertainty equal values are 0 sigma apart, anything else inf.
    """
    diff = abs(predicted.value - reference.value)
    combined = math.hypot(predicted.uncertainty, reference.uncertainty)
    if combined > 0:
        sigma = diff / combined
    elif diff == 0:
        sigma = 0.0
    elif math.isnan(diff):
        sigma = math.nan
    else:
        sigma = math.inf

    percent = diff / abs(reference.value) * 100.0 if reference.value != 0 else 0.0
    return Agreement(sigma, percent, sigma <= WITHIN_UNCERTAINTY_SIGMA)


def classify(sigma_deviation: float) -> ValidationStatus:
    for limit, name in STATUS_THRESHOLDS:
        if sigma_deviation <= limit:
            return ValidationStatus(name)
    return ValidationStatus.POOR


def evaluate(
    subject: str,
    parameter: str,
    predicted: UncertainValue,
    reference: UncertainValue,
    epoch: Optional[float] = None,
) -> ValidationResult:
    agreement = compare(predicted, reference)
    return ValidationResult(subject, parameter, predicted, reference, agreement, classify(agreement.sigma_deviation), epoch)

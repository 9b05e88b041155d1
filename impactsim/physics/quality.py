# impactsim/physics/quality.py
"""
Observation-quality driven uncertainty assignment.

An observed quantity gets relative uncertainty
    base(parameter, method) * quality_factor * arc_factor * observation_factor
where the arc factor only applies to orbital parameters.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Sequence

from impactsim.physics.uncertain import UncertainValue
from impactsim.physics.uncertainty import KNOWN_CORRELATIONS

BASE_UNCERTAINTY: Dict[str, Dict[str, float]] = {
    "diameter": {
        "radar": 0.01,
        "occultation": 0.02,
        "thermal_model": 0.15,
        "magnitude_albedo": 0.3,
        "default": 0.25,
    },
    "mass": {
        "gravitational": 0.05,
        "density_volume": 0.4,
        "default": 0.5,
    },
    "density": {
        "measured": 0.1,
        "composition_model": 0.2,
        "default": 0.3,
    },
    "orbital_elements": {
        "radar_astrometry": 0.001,
        "optical_astrometry": 0.01,
        "survey_detection": 0.05,
        "default": 0.02,
    },
    "absolute_magnitude": {
        "photometry": 0.1,
        "survey": 0.2,
        "default": 0.15,
    },
}
UNKNOWN_PARAMETER_UNCERTAINTY = 0.2

QUALITY_FACTORS = {"excellent": 0.8, "good": 1.0, "fair": 1.5, "poor": 2.5}
QUALITY_CONFIDENCE = {"excellent": 0.68, "good": 0.68, "fair": 0.6, "poor": 0.5}
DEFAULT_QUALITY_FACTOR = 1.5
REFERENCE_OBSERVATIONS = 50


@dataclass(frozen=True)
class DataQualityMetrics:
    observation_arc_days: float
    number_of_observations: int
    observation_methods: Sequence[str] = ()
    data_span_years: float = 0.0
    observation_quality: str = "fair"  # excellent | good | fair | poor


@dataclass(frozen=True)
class UncertaintyAssignment:
    value: UncertainValue
    uncertainty_type: str  # statistical | systematic | model | combined
    confidence_level: float
    correlations: Dict[str, float] = field(default_factory=dict)


def classify_data_quality(
    arc_days: float,
    n_obs: int,
    methods: Sequence[str] = (),
    span_years: float = 0.0,
) -> str:
    """Score observation coverage (0-10) and bucket it into HIGH / MEDIUM / LOW."""
    score = 0.0

    if arc_days > 1000:
        score += 3
    elif arc_days > 365:
        score += 2
    elif arc_days > 90:
        score += 1

    if n_obs > 100:
        score += 3
    elif n_obs > 50:
        score += 2
    elif n_obs > 20:
        score += 1

    methods = set(methods)
    if "radar" in methods:
        score += 2
    elif "spectroscopy" in methods:
        score += 1
    elif "photometry" in methods:
        score += 0.5

    if span_years > 10:
        score += 2
    elif span_years > 5:
        score += 1
    elif span_years > 1:
        score += 0.5

    if score >= 7:
        return "HIGH"
    if score >= 4:
        return "MEDIUM"
    return "LOW"


def base_uncertainty(parameter: str, method: str) -> float:
    table = BASE_UNCERTAINTY.get(parameter)
    if table is None:
        return UNKNOWN_PARAMETER_UNCERTAINTY
    return table.get(method) or table.get("default") or UNKNOWN_PARAMETER_UNCERTAINTY


def arc_length_factor(arc_days: float, parameter: str) -> float:
    if "orbital" not in parameter:
        return 1.0
    if arc_days > 1000:
        return 0.8
    if arc_days > 365:
        return 1.0
    if arc_days > 90:
        return 1.5
    return 3.0


def observation_factor(n_obs: int) -> float:
    return math.sqrt(REFERENCE_OBSERVATIONS / max(n_obs, 1))


def uncertainty_type(method: str) -> str:
    m = method.lower()
    if "model" in m or "composition" in m:
        return "model"
    if "systematic" in m or "calibration" in m:
        return "systematic"
    if "measurement" in m or "observation" in m:
        return "statistical"
    return "combined"


def parameter_correlations(parameter: str) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for (a, b), rho in KNOWN_CORRELATIONS.items():
        if a == parameter:
            out[b] = rho
        elif b == parameter and a == "diameter":
            # mass/density correlate back to diameter; period/meanMotion stay one-way
            out[a] = rho
    return out


def assign_uncertainty(
    parameter: str,
    value: float,
    quality: DataQualityMetrics,
    method: str = "unknown",
) -> UncertaintyAssignment:
    factor = (
        base_uncertainty(parameter, method)
        * QUALITY_FACTORS.get(quality.observation_quality, DEFAULT_QUALITY_FACTOR)
        * arc_length_factor(quality.observation_arc_days, parameter)
        * observation_factor(quality.number_of_observations)
    )
    uv = UncertainValue(
        value,
        abs(value) * factor,
        source=f"{method} with {quality.observation_quality} data quality",
    )
    return UncertaintyAssignment(
        value=uv,
        uncertainty_type=uncertainty_type(method),
        confidence_level=QUALITY_CONFIDENCE.get(quality.observation_quality, 0.5),
        correlations=parameter_correlations(parameter),
    )

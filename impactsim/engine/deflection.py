# impactsim/engine/deflection.py
"""
Deflection-mission evaluation.

Small-angle trajectory change, linear-saturation probability reduction,
multiplicative mission-success penalties and a cost-effectiveness ranking.
These are screening heuristics for comparing strategies against each other,
not mission design.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

from impactsim.config import settings
from impactsim.errors import UnknownCompositionError
from impactsim.physics.uncertain import UncertainValue
from impactsim.physics.uncertainty import Factor, propagate_multiplicative

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeflectionStrategy:
    id: str
    name: str
    delta_v: float  # m/s
    lead_time: float  # years
    cost: float  # USD
    success_rate: float  # 0-1
    mass_required: float  # kg
    description: str = ""

    def __post_init__(self):
        if not self.lead_time > 0:
            raise ValueError(f"lead_time must be > 0 (got {self.lead_time})")


@dataclass(frozen=True)
class AsteroidTarget:
    mass: float  # kg
    velocity: float  # m/s
    size: float  # m
    distance_to_earth: float  # AU
    impact_probability: float  # 0-1


@dataclass(frozen=True)
class MissionAssessment:
    success: bool
    probability: float
    factors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DeflectionResult:
    strategy: DeflectionStrategy
    trajectory_change: float  # deg
    impact_probability_reduction: float
    mission_success: bool
    success_probability: float
    cost_effectiveness: float
    time_to_implement: float  # years
    risk_factors: List[str]

    def as_dict(self) -> Dict[str, object]:
        return {
            "strategy": self.strategy.id,
            "name": self.strategy.name,
            "trajectory_change_deg": self.trajectory_change,
            "impact_probability_reduction": self.impact_probability_reduction,
            "mission_success": self.mission_success,
            "success_probability": self.success_probability,
            "cost_effectiveness": self.cost_effectiveness,
            "time_to_implement_years": self.time_to_implement,
            "risk_factors": list(self.risk_factors),
        }


@dataclass(frozen=True)
class LaunchWindow:
    earliest_launch: datetime
    optimal: datetime
    latest_launch: datetime
    impact_date: datetime

    def as_dict(self) -> Dict[str, str]:
        return {
            "earliest_launch": self.earliest_launch.isoformat(),
            "optimal": self.optimal.isoformat(),
            "latest_launch": self.latest_launch.isoformat(),
            "impact_date": self.impact_date.isoformat(),
        }


STANDARD_STRATEGIES: Dict[str, DeflectionStrategy] = {
    "kinetic_impactor": DeflectionStrategy(
        "kinetic_impactor", "Kinetic Impactor", 0.001, 5.0, 5e8, 0.85, 500.0,
        "High-speed spacecraft impacts asteroid to change trajectory",
    ),
    "nuclear": DeflectionStrategy(
        "nuclear_deflection", "Nuclear Deflection", 0.05, 3.0, 3e9, 0.75, 1500.0,
        "Nuclear device detonated near asteroid surface",
    ),
    "gravity_tractor": DeflectionStrategy(
        "gravity_tractor", "Gravity Tractor", 0.0002, 15.0, 1.5e9, 0.9, 800.0,
        "Spacecraft uses gravitational attraction to slowly deflect asteroid",
    ),
    "ion_beam": DeflectionStrategy(
        "ion_beam", "Ion Beam Shepherd", 0.0005, 10.0, 2e9, 0.6, 1000.0,
        "Ion thruster plume directed at the asteroid surface",
    ),
    "solar_sail": DeflectionStrategy(
        "solar_sail", "Solar Radiation Pressure", 0.0001, 20.0, 8e8, 0.7, 200.0,
        "Modify asteroid's surface to enhance solar radiation pressure",
    ),
}

# Momentum enhancement factor beta (Holsapple & Housen 2012)
MOMENTUM_ENHANCEMENT: Dict[str, UncertainValue] = {
    "rocky": UncertainValue(2.0, 0.5, "1", "Holsapple & Housen 2012"),
    "metallic": UncertainValue(1.5, 0.3, "1", "Holsapple & Housen 2012"),
    "carbonaceous": UncertainValue(3.0, 0.8, "1", "Holsapple & Housen 2012"),
}


def trajectory_change(delta_v: float, asteroid_velocity: float, distance_au: float, time_years: float) -> float:
    """
    Small-angle deflection in degrees: (dv / v) * (v t / d).
    Valid only for changes well under a degree.
    """
    distance_m = distance_au * settings.DEFLECTION_AU_M
    time_s = time_years * settings.SECONDS_PER_YEAR
    if asteroid_velocity == 0 or distance_m == 0:
        # v cancels; keep the limit rather than dividing by zero
        along_track = delta_v * time_s
        if distance_m == 0:
            return math.copysign(math.inf, along_track) if along_track else 0.0
        return math.degrees(along_track / distance_m)
    angle = (delta_v / asteroid_velocity) * (time_s * asteroid_velocity / distance_m)
    return math.degrees(angle)


def impact_probability_reduction(change_deg: float, original_probability: float) -> float:
    return original_probability * min(1.0, change_deg / settings.FULL_DEFLECTION_ANGLE_DEG)


def assess_mission_success(
    strategy: DeflectionStrategy,
    lead_years: float,
    size_m: float,
    mass_kg: float,
) -> MissionAssessment:
    factors: List[str] = []
    p = strategy.success_rate

    if lead_years < strategy.lead_time:
        p *= settings.LEAD_TIME_PENALTY
        factors.append("Insufficient lead time")

    if size_m > settings.LARGE_ASTEROID_SIZE_M:
        p *= settings.LARGE_ASTEROID_PENALTY
        factors.append("Large asteroid size")

    if strategy.mass_required > 0:
        required_dv = strategy.delta_v * mass_kg / strategy.mass_required
    else:
        required_dv = math.inf
    if required_dv > strategy.delta_v * settings.MASS_MISMATCH_RATIO:
        p *= settings.MASS_MISMATCH_PENALTY
        factors.append("Insufficient spacecraft mass")

    if strategy.id in settings.UNPROVEN_TECHNOLOGY_IDS:
        p *= settings.UNPROVEN_TECHNOLOGY_PENALTY
        factors.append("Unproven technology")

    return MissionAssessment(p > settings.MISSION_SUCCESS_THRESHOLD, p, factors)


def cost_effectiveness(reduction: float, cost: float, value_at_risk: float) -> float:
    if cost == 0:
        return math.inf
    return reduction * value_at_risk / cost


def calculate_deflection(
    strategy: DeflectionStrategy,
    asteroid: AsteroidTarget,
    t_years: float,
    value_at_risk: float = settings.DEFAULT_VALUE_AT_RISK,
) -> DeflectionResult:
    change = trajectory_change(strategy.delta_v, asteroid.velocity, asteroid.distance_to_earth, t_years)
    reduction = impact_probability_reduction(change, asteroid.impact_probability)
    assessment = assess_mission_success(strategy, t_years, asteroid.size, asteroid.mass)
    return DeflectionResult(
        strategy=strategy,
        trajectory_change=change,
        impact_probability_reduction=reduction,
        mission_success=assessment.success,
        success_probability=assessment.probability,
        cost_effectiveness=cost_effectiveness(reduction, strategy.cost, value_at_risk),
        time_to_implement=strategy.lead_time,
        risk_factors=assessment.factors,
    )


def _rank_key(result: DeflectionResult) -> float:
    ce = result.cost_effectiveness
    return -math.inf if math.isnan(ce) else ce


def compare_strategies(
    strategies: Sequence[DeflectionStrategy],
    asteroid: AsteroidTarget,
    t_years: float,
    value_at_risk: float = settings.DEFAULT_VALUE_AT_RISK,
) -> List[DeflectionResult]:
    """Evaluate each strategy independently; best cost-effectiveness first."""
    results = [calculate_deflection(s, asteroid, t_years, value_at_risk) for s in strategies]
    return sorted(results, key=_rank_key, reverse=True)


def calculate_launch_window(
    strategy: DeflectionStrategy,
    t_years: float,
    now: Optional[datetime] = None,
) -> LaunchWindow:
    now = now or datetime.now(timezone.utc)
    year = timedelta(days=settings.DAYS_PER_YEAR)
    impact = now + year * t_years
    lead = year * strategy.lead_time
    return LaunchWindow(
        earliest_launch=impact - lead * settings.LAUNCH_EARLIEST_FACTOR,
        optimal=impact - lead,
        latest_launch=impact - lead * settings.LAUNCH_LATEST_FACTOR,
        impact_date=impact,
    )


# ---------------------------------------------------------------------------
# Delta-v estimates for individual techniques
# ---------------------------------------------------------------------------

def kinetic_impactor_delta_v(
    spacecraft_mass: float,
    impact_velocity: float,
    asteroid_mass: float,
    target_type: str = "rocky",
) -> UncertainValue:
    """dv = beta * m * v / M (m/s), uncertainty carried by beta."""
    beta = MOMENTUM_ENHANCEMENT.get(target_type)
    if beta is None:
        raise UnknownCompositionError(target_type)
    out = propagate_multiplicative([
        Factor.of(beta),
        Factor(spacecraft_mass, 0.0),
        Factor(impact_velocity, 0.0),
        Factor(asteroid_mass, 0.0, -1.0),
    ])
    return UncertainValue(out.value, out.uncertainty, "m/s", "Momentum transfer with ejecta enhancement")


def gravity_tractor_delta_v(
    spacecraft_mass: float,
    hover_distance_m: float,
    duration_years: float,
    efficiency: float = 1.0,
) -> float:
    """Accumulated dv (m/s) from a station-keeping tractor: G m / d^2 * t * efficiency."""
    accel = settings.GRAVITATIONAL_CONSTANT * spacecraft_mass / hover_distance_m ** 2
    return accel * duration_years * settings.SECONDS_PER_YEAR * efficiency

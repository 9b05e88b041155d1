# impactsim/validation/historical.py
"""
Impact-effect validation against Tunguska (1908) and Chelyabinsk (2013).

References:
- Boslough & Crawford (2008), Tunguska airburst modelling
- Brown et al. (2013), Chelyabinsk impact analysis
- Popova et al. (2013), Chelyabinsk observational data
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from impactsim.config.settings import TNT_JOULES_PER_KILOTON
from impactsim.engine.impact import kinetic_energy, seismic_magnitude
from impactsim.physics.blast import STANDARD_ATMOSPHERE, criterion_blast_radius, thermal_radii
from impactsim.physics.uncertain import UncertainValue, UncertaintyVariable
from impactsim.physics.uncertainty import propagate_first_order
from impactsim.validation.compare import ItemOutcome, evaluate

log = logging.getLogger(__name__)

KM_S = 1000.0


@dataclass(frozen=True)
class EventLocation:
    latitude: float
    longitude: float
    altitude: float  # km above sea level


@dataclass(frozen=True)
class EventImpactParameters:
    energy: UncertainValue  # J
    altitude: UncertainValue  # km above ground
    velocity: UncertainValue  # km/s
    angle: UncertainValue  # deg from horizontal
    diameter: UncertainValue  # m
    mass: UncertainValue  # kg
    composition: str


@dataclass(frozen=True)
class ObservedEffects:
    blast_radius: UncertainValue  # km
    seismic_magnitude: UncertainValue
    thermal_effects: UncertainValue  # km
    damage_radius: UncertainValue
    casualties: int
    injuries: int


@dataclass(frozen=True)
class HistoricalEvent:
    name: str
    date: str
    location: EventLocation
    impact_parameters: EventImpactParameters
    observed_effects: ObservedEffects
    references: Tuple[str, ...]
    # overpressure that produced the observed blast_radius damage
    blast_criterion_psi: float = 5.0


TUNGUSKA_EVENT = HistoricalEvent(
    name="Tunguska",
    date="1908-06-30",
    location=EventLocation(60.886, 101.893, 0.15),
    impact_parameters=EventImpactParameters(
        energy=UncertainValue(5.0e16, 2.0e16, "J", "Boslough & Crawford (2008)"),
        altitude=UncertainValue(8.0, 2.0, "km", "Chyba et al. (1993)"),
        velocity=UncertainValue(20.0, 5.0, "km/s", "Hills & Goda (1993)"),
        angle=UncertainValue(45.0, 15.0, "degrees", "Estimated from trajectory analysis"),
        diameter=UncertainValue(60.0, 20.0, "m", "Derived from energy estimates"),
        mass=UncertainValue(3.0e8, 1.5e8, "kg", "Assuming stony composition"),
        composition="Stony (S-type)",
    ),
    observed_effects=ObservedEffects(
        blast_radius=UncertainValue(30.0, 5.0, "km", "Tree fall radius observations"),
        seismic_magnitude=UncertainValue(5.0, 0.5, "Richter", "Seismic station records"),
        thermal_effects=UncertainValue(15.0, 5.0, "km", "Burn damage radius"),
        damage_radius=UncertainValue(2150.0, 200.0, "km²", "Total forest damage area"),
        casualties=0,
        injuries=0,
    ),
    references=(
        "Boslough, M. B., & Crawford, D. A. (2008). Low-altitude airbursts and the impact threat. "
        "International Journal of Impact Engineering, 35(12), 1441-1448.",
        "Chyba, C. F., Thomas, P. J., & Zahnle, K. J. (1993). The 1908 Tunguska explosion: "
        "atmospheric disruption of a stony asteroid. Nature, 361(6407), 40-44.",
        "Hills, J. G., & Goda, M. P. (1993). The fragmentation of small asteroids in the atmosphere. "
        "The Astronomical Journal, 105(3), 1114-1144.",
    ),
    blast_criterion_psi=5.0,
)

CHELYABINSK_EVENT = HistoricalEvent(
    name="Chelyabinsk",
    date="2013-02-15",
    location=EventLocation(55.15, 61.41, 0.2),
    impact_parameters=EventImpactParameters(
        energy=UncertainValue(2.1e15, 3.0e14, "J", "Brown et al. (2013)"),
        altitude=UncertainValue(23.3, 0.7, "km", "Popova et al. (2013)"),
        velocity=UncertainValue(19.16, 0.15, "km/s", "Borovička et al. (2013)"),
        angle=UncertainValue(18.3, 0.5, "degrees", "Trajectory analysis from videos"),
        diameter=UncertainValue(19.8, 1.0, "m", "Popova et al. (2013)"),
        mass=UncertainValue(1.3e7, 2.0e6, "kg", "Pre-atmospheric mass estimate"),
        composition="Ordinary chondrite (LL5)",
    ),
    observed_effects=ObservedEffects(
        blast_radius=UncertainValue(100.0, 10.0, "km", "Window damage radius"),
        seismic_magnitude=UncertainValue(4.2, 0.1, "Richter", "Regional seismic networks"),
        thermal_effects=UncertainValue(50.0, 10.0, "km", "Thermal radiation observations"),
        damage_radius=UncertainValue(200.0, 20.0, "km", "Building damage assessment"),
        casualties=0,
        injuries=1491,
    ),
    references=(
        "Brown, P., et al. (2013). A 500-kiloton airburst over Chelyabinsk and an enhanced hazard "
        "from small impactors. Nature, 503(7475), 238-241.",
        "Popova, O. P., et al. (2013). Chelyabinsk airburst, damage assessment, meteorite recovery, "
        "and characterization. Science, 342(6162), 1069-1073.",
        "Borovička, J., et al. (2013). The trajectory, structure and origin of the Chelyabinsk "
        "asteroidal impactor. Nature, 503(7475), 235-237.",
    ),
    # window breakage
    blast_criterion_psi=1.0,
)

HISTORICAL_EVENTS: Tuple[HistoricalEvent, ...] = (TUNGUSKA_EVENT, CHELYABINSK_EVENT)


def get_historical_events() -> List[HistoricalEvent]:
    return list(HISTORICAL_EVENTS)


def get_historical_event(name: str) -> Optional[HistoricalEvent]:
    for event in HISTORICAL_EVENTS:
        if event.name.lower() == name.lower():
            return event
    return None


# ---------------------------------------------------------------------------
# Predictions
# ---------------------------------------------------------------------------

def predict_kinetic_energy(event: HistoricalEvent) -> UncertainValue:
    p = event.impact_parameters
    out = propagate_first_order(
        [UncertaintyVariable("mass", p.mass), UncertaintyVariable("velocity", p.velocity)],
        lambda x: kinetic_energy(x["mass"], x["velocity"] * KM_S),
    )
    return out.as_uncertain("J", "Kinetic energy from mass and entry velocity")


def predict_blast_radius(event: HistoricalEvent) -> UncertainValue:
    p = event.impact_parameters
    return criterion_blast_radius(p.energy, p.altitude, event.blast_criterion_psi, STANDARD_ATMOSPHERE)


def predict_thermal_radius(event: HistoricalEvent) -> UncertainValue:
    """First-degree burn radius, attenuated for burst altitude."""
    p = event.impact_parameters

    def radius(x):
        return thermal_radii(x["energy"] / TNT_JOULES_PER_KILOTON, x["altitude"] * 1000.0)[1]

    out = propagate_first_order(
        [UncertaintyVariable("energy", p.energy), UncertaintyVariable("altitude", p.altitude)],
        radius,
    )
    return out.as_uncertain("km", "Thermal radiation scaling (1st degree burns)")


def predict_seismic_magnitude(event: HistoricalEvent) -> UncertainValue:
    out = propagate_first_order(
        [UncertaintyVariable("energy", event.impact_parameters.energy)],
        lambda x: seismic_magnitude(x["energy"]),
    )
    return out.as_uncertain("Richter", "Energy-magnitude relation")


# parameter name, predictor, observed-value accessor
Check = Tuple[str, Callable[[HistoricalEvent], UncertainValue], Callable[[HistoricalEvent], UncertainValue]]

EVENT_CHECKS: Tuple[Check, ...] = (
    ("Kinetic Energy", predict_kinetic_energy, lambda ev: ev.impact_parameters.energy),
    ("Blast Radius", predict_blast_radius, lambda ev: ev.observed_effects.blast_radius),
    ("Thermal Effects", predict_thermal_radius, lambda ev: ev.observed_effects.thermal_effects),
    ("Seismic Magnitude", predict_seismic_magnitude, lambda ev: ev.observed_effects.seismic_magnitude),
)


class HistoricalValidator:
    """
    Runs every registered event through the impact calculators.

    A failing check is logged and returned as a failed ItemOutcome; it never
    stops the remaining checks or events.
    """

    def __init__(self, events: Optional[Sequence[HistoricalEvent]] = None, checks: Sequence[Check] = EVENT_CHECKS):
        self.events = list(HISTORICAL_EVENTS if events is None else events)
        self.checks = list(checks)

    def validate_event(self, event: HistoricalEvent) -> List[ItemOutcome]:
        outcomes: List[ItemOutcome] = []
        for parameter, predict, observed in self.checks:
            try:
                result = evaluate(event.name, parameter, predict(event), observed(event))
            except Exception as exc:
                log.exception("Validation of %s for %s failed", parameter, event.name)
                outcomes.append(ItemOutcome(event.name, parameter, error=f"{type(exc).__name__}: {exc}"))
                continue
            log.info(
                "%s %-18s %.2f sigma -> %s",
                event.name, parameter, result.agreement.sigma_deviation, result.status.value,
            )
            outcomes.append(ItemOutcome(event.name, parameter, result=result))
        return outcomes

    def validate_all_events(self) -> List[ItemOutcome]:
        outcomes: List[ItemOutcome] = []
        for event in self.events:
            outcomes.extend(self.validate_event(event))
        return outcomes

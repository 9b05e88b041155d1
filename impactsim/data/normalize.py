# impactsim/data/normalize.py
"""
Raw asteroid records -> AsteroidParameters.

Three input shapes are accepted, each with its own normalizer:
  CatalogRecord  - local catalogue entries (size in m, velocity in km/s)
  NeoFeedRecord  - NASA NeoWs feed entries (string velocities and distances)
  ManualRecord   - values typed in by a user

Absent fields are filled with documented defaults and listed in
estimated_fields. Present but malformed fields raise InvalidAsteroidRecord.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from impactsim.config.settings import AU_KM
from impactsim.engine.impact import ImpactParameters
from impactsim.errors import InvalidAsteroidRecord
from impactsim.physics.orbital import OrbitalElements

log = logging.getLogger(__name__)

COMPOSITION_DENSITIES: Dict[str, float] = {
    "stony": 2700.0,
    "metallic": 7800.0,
    "carbonaceous": 1300.0,
    "stony-iron": 5200.0,
    "basaltic": 2900.0,
    "unknown": 2500.0,
}

# simple material tag -> spectral complex used by the composition engine
SPECTRAL_COMPLEX: Dict[str, Optional[str]] = {
    "stony": "S-type",
    "basaltic": "S-type",
    "metallic": "M-type",
    "stony-iron": "M-type",
    "carbonaceous": "C-type",
    "unknown": None,
}

THREAT_LEVELS = ("low", "medium", "high", "critical")

DEFAULT_DIAMETER_M = 100.0
DEFAULT_VELOCITY_KM_S = 15.0
DEFAULT_THREAT_LEVEL = "medium"
DEFAULT_NEO_COMPOSITION = "stony"
PHA_IMPACT_PROBABILITY = 0.001
NON_PHA_IMPACT_PROBABILITY = 0.0001

REQUIRED_FIELDS = ("id", "name", "diameter", "mass", "velocity", "composition")
OPTIONAL_FIELDS = ("orbital_elements", "close_approach", "absolute_magnitude", "impact_probability")
REQUIRED_WEIGHT = 0.8
OPTIONAL_WEIGHT = 0.2


# ---------------------------------------------------------------------------
# Raw record variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CatalogRecord:
    id: str
    name: str
    size: Optional[float] = None  # diameter, m
    velocity: Optional[float] = None  # km/s
    mass: Optional[float] = None  # kg
    composition: Optional[str] = None
    threat_level: Optional[str] = None
    impact_probability: Optional[float] = None
    discovery_date: Optional[str] = None
    absolute_magnitude: Optional[float] = None
    orbit: Optional[Mapping[str, float]] = None
    close_approach: Optional[Mapping[str, Any]] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "CatalogRecord":
        names = cls.__dataclass_fields__.keys()
        return cls(**{k: raw.get(k) for k in names})


@dataclass(frozen=True)
class NeoFeedRecord:
    neo_reference_id: str
    name: str
    absolute_magnitude_h: Optional[float] = None
    is_potentially_hazardous_asteroid: bool = False
    est_diameter_min_m: Optional[float] = None
    est_diameter_max_m: Optional[float] = None
    closest_approach_date: Optional[str] = None
    miss_distance_km: Optional[str] = None
    relative_velocity_km_s: Optional[str] = None
    orbiting_body: str = "Earth"

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "NeoFeedRecord":
        names = cls.__dataclass_fields__.keys()
        return cls(**{k: raw[k] for k in names if k in raw})


@dataclass(frozen=True)
class ManualRecord:
    name: str
    diameter: float  # m
    velocity: float  # km/s
    composition: str = "unknown"
    mass: Optional[float] = None
    impact_probability: Optional[float] = None
    absolute_magnitude: Optional[float] = None
    orbital_elements: Optional[OrbitalElements] = None
    id: str = ""


RawRecord = Union[CatalogRecord, NeoFeedRecord, ManualRecord]


# ---------------------------------------------------------------------------
# Normalized record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ApproachRecord:
    date: str
    distance: float  # AU
    velocity: float  # km/s


@dataclass(frozen=True)
class AsteroidParameters:
    id: str
    name: str
    diameter: float  # m
    mass: float  # kg
    density: float  # kg/m^3
    composition: str
    velocity: float  # km/s
    threat_level: str
    source: str
    orbital_elements: Optional[OrbitalElements] = None
    close_approach: Optional[ApproachRecord] = None
    absolute_magnitude: Optional[float] = None
    impact_probability: Optional[float] = None
    discovery_date: str = "Unknown"
    estimated_fields: Tuple[str, ...] = ()
    data_completeness: float = 0.0

    @property
    def spectral_complex(self) -> Optional[str]:
        return SPECTRAL_COMPLEX.get(self.composition)

    def impact_parameters(self, angle: float = 45.0) -> ImpactParameters:
        return ImpactParameters(
            mass=self.mass,
            velocity=self.velocity * 1000.0,
            angle=angle,
            composition=self.composition,
            density=self.density,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "diameter": self.diameter,
            "mass": self.mass,
            "density": self.density,
            "composition": self.composition,
            "velocity": self.velocity,
            "threat_level": self.threat_level,
            "source": self.source,
            "orbital_elements": self.orbital_elements.as_dict() if self.orbital_elements else None,
            "close_approach": vars(self.close_approach) if self.close_approach else None,
            "absolute_magnitude": self.absolute_magnitude,
            "impact_probability": self.impact_probability,
            "discovery_date": self.discovery_date,
            "estimated_fields": list(self.estimated_fields),
            "data_completeness": self.data_completeness,
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def sphere_mass(diameter: float, density: float) -> float:
    return (4.0 / 3.0) * math.pi * (diameter / 2.0) ** 3 * density


def composition_density(composition: str) -> float:
    return COMPOSITION_DENSITIES.get((composition or "unknown").lower(), COMPOSITION_DENSITIES["unknown"])


def data_completeness(values: Mapping[str, Any]) -> float:
    total = REQUIRED_WEIGHT * len(REQUIRED_FIELDS) + OPTIONAL_WEIGHT * len(OPTIONAL_FIELDS)
    score = sum(REQUIRED_WEIGHT for f in REQUIRED_FIELDS if values.get(f) is not None)
    score += sum(OPTIONAL_WEIGHT for f in OPTIONAL_FIELDS if values.get(f) is not None)
    return min(score / total, 1.0)


def _number(field_name: str, raw: Any, positive: bool = True) -> Optional[float]:
    """None stays None; anything else must parse to a finite (positive) float."""
    if raw is None:
        return None
    try:
        x = float(raw)
    except (TypeError, ValueError) as exc:
        raise InvalidAsteroidRecord(field_name, f"not a number: {raw!r}") from exc
    if not math.isfinite(x):
        raise InvalidAsteroidRecord(field_name, f"not finite: {raw!r}")
    if positive and x <= 0:
        raise InvalidAsteroidRecord(field_name, f"must be > 0 (got {x})")
    return x


def _probability(raw: Any) -> Optional[float]:
    p = _number("impact_probability", raw, positive=False)
    if p is not None and not 0.0 <= p <= 1.0:
        raise InvalidAsteroidRecord("impact_probability", f"must be in [0, 1] (got {p})")
    return p


def _require_text(field_name: str, value: Any) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise InvalidAsteroidRecord(field_name, "missing")
    return text


def _composition(raw: Optional[str], record_id: str, estimated: List[str]) -> str:
    key = (raw or "").strip().lower()
    if not key:
        estimated.append("composition")
        return "unknown"
    if key not in COMPOSITION_DENSITIES:
        log.warning("Unknown composition %r for %s, using 'unknown'", raw, record_id)
        estimated.append("composition")
        return "unknown"
    return key


def _elements(orbit: Mapping[str, float]) -> OrbitalElements:
    def get(key: str, default: float) -> float:
        x = _number(f"orbit.{key}", orbit.get(key), positive=False)
        return default if x is None else x

    return OrbitalElements(
        semi_major_axis=get("semi_major_axis", 1.0),
        eccentricity=get("eccentricity", 0.1),
        inclination=get("inclination", 0.0),
        longitude_of_ascending_node=get("ascending_node", 0.0),
        argument_of_periapsis=get("perihelion", 0.0),
        mean_anomaly=get("mean_anomaly", 0.0),
    )


def _finish(source: str, values: Dict[str, Any], estimated: List[str]) -> AsteroidParameters:
    values["data_completeness"] = data_completeness(values)
    values["estimated_fields"] = tuple(dict.fromkeys(estimated))
    return AsteroidParameters(source=source, **values)


# ---------------------------------------------------------------------------
# Normalizers
# ---------------------------------------------------------------------------

def normalize_catalog_record(record: CatalogRecord) -> AsteroidParameters:
    rid = _require_text("id", record.id)
    name = _require_text("name", record.name)
    estimated: List[str] = []

    diameter = _number("size", record.size)
    if diameter is None:
        log.warning("No diameter for %s, using %.0f m", rid, DEFAULT_DIAMETER_M)
        diameter = DEFAULT_DIAMETER_M
        estimated.append("diameter")

    composition = _composition(record.composition, rid, estimated)
    density = COMPOSITION_DENSITIES[composition]
    if composition == "unknown":
        estimated.append("density")

    mass = _number("mass", record.mass)
    if mass is None:
        mass = sphere_mass(diameter, density)
        estimated.append("mass")
        log.info("Derived mass for %s from diameter and composition", rid)

    velocity = _number("velocity", record.velocity)
    if velocity is None:
        velocity = DEFAULT_VELOCITY_KM_S
        estimated.append("velocity")

    threat = (record.threat_level or "").lower()
    if threat not in THREAT_LEVELS:
        if record.threat_level is not None:
            log.warning("Invalid threat level %r for %s", record.threat_level, rid)
        threat = DEFAULT_THREAT_LEVEL
        estimated.append("threat_level")

    elements = None
    if record.orbit is not None:
        elements = _elements(record.orbit)
    else:
        estimated.append("orbital_elements")

    approach = None
    if record.close_approach is not None:
        ca = record.close_approach
        approach = ApproachRecord(
            date=str(ca.get("date") or "Unknown"),
            distance=_number("close_approach.distance", ca.get("distance"), positive=False) or 0.0,
            velocity=_number("close_approach.velocity", ca.get("velocity"), positive=False) or 0.0,
        )

    values = dict(
        id=rid,
        name=name,
        diameter=diameter,
        mass=mass,
        density=density,
        composition=composition,
        velocity=velocity,
        threat_level=threat,
        orbital_elements=elements,
        close_approach=approach,
        absolute_magnitude=_number("absolute_magnitude", record.absolute_magnitude, positive=False),
        impact_probability=_probability(record.impact_probability),
        discovery_date=record.discovery_date or "Unknown",
    )
    return _finish("local", values, estimated)


def threat_from_hazard(potentially_hazardous: bool, diameter: float) -> str:
    if not potentially_hazardous:
        return "low"
    if diameter > 1000:
        return "critical"
    if diameter > 500:
        return "high"
    return "medium"


def normalize_neo_feed_record(record: NeoFeedRecord) -> AsteroidParameters:
    rid = _require_text("neo_reference_id", record.neo_reference_id)
    name = _require_text("name", record.name)
    # feed diameters are always estimates, and the feed carries no composition or orbit
    estimated: List[str] = ["diameter", "composition", "mass", "density"]

    lo = _number("est_diameter_min_m", record.est_diameter_min_m)
    hi = _number("est_diameter_max_m", record.est_diameter_max_m)
    if lo is not None and hi is not None:
        diameter = (lo + hi) / 2.0
    else:
        log.warning("Missing diameter range for %s, using %.0f m", rid, DEFAULT_DIAMETER_M)
        diameter = DEFAULT_DIAMETER_M

    composition = DEFAULT_NEO_COMPOSITION
    density = COMPOSITION_DENSITIES[composition]

    velocity = _number("relative_velocity_km_s", record.relative_velocity_km_s)
    if velocity is None:
        velocity = DEFAULT_VELOCITY_KM_S
        estimated.append("velocity")

    miss_km = _number("miss_distance_km", record.miss_distance_km, positive=False)
    if miss_km is None:
        estimated.append("min_distance")
    date = record.closest_approach_date or "Unknown"
    approach = ApproachRecord(date, (miss_km or 0.0) / AU_KM, velocity)

    hazardous = bool(record.is_potentially_hazardous_asteroid)
    estimated += ["orbital_elements", "impact_probability"]

    values = dict(
        id=rid,
        name=name,
        diameter=diameter,
        mass=sphere_mass(diameter, density),
        density=density,
        composition=composition,
        velocity=velocity,
        threat_level=threat_from_hazard(hazardous, diameter),
        orbital_elements=None,
        close_approach=approach,
        absolute_magnitude=_number("absolute_magnitude_h", record.absolute_magnitude_h, positive=False),
        impact_probability=PHA_IMPACT_PROBABILITY if hazardous else NON_PHA_IMPACT_PROBABILITY,
    )
    return _finish("nasa", values, estimated)


def normalize_manual_record(record: ManualRecord) -> AsteroidParameters:
    name = _require_text("name", record.name)
    rid = record.id or "manual-" + "-".join(name.lower().split())
    estimated: List[str] = []

    diameter = _number("diameter", record.diameter)
    velocity = _number("velocity", record.velocity)
    if diameter is None:
        raise InvalidAsteroidRecord("diameter", "missing")
    if velocity is None:
        raise InvalidAsteroidRecord("velocity", "missing")

    composition = _composition(record.composition, rid, estimated)
    density = COMPOSITION_DENSITIES[composition]
    mass = _number("mass", record.mass)
    if mass is None:
        mass = sphere_mass(diameter, density)
        estimated.append("mass")
    if record.orbital_elements is None:
        estimated.append("orbital_elements")

    values = dict(
        id=rid,
        name=name,
        diameter=diameter,
        mass=mass,
        density=density,
        composition=composition,
        velocity=velocity,
        threat_level=DEFAULT_THREAT_LEVEL,
        orbital_elements=record.orbital_elements,
        absolute_magnitude=_number("absolute_magnitude", record.absolute_magnitude, positive=False),
        impact_probability=_probability(record.impact_probability),
    )
    return _finish("manual", values, estimated)


NORMALIZERS = {
    CatalogRecord: normalize_catalog_record,
    NeoFeedRecord: normalize_neo_feed_record,
    ManualRecord: normalize_manual_record,
}


def normalize(record: RawRecord) -> AsteroidParameters:
    fn = NORMALIZERS.get(type(record))
    if fn is None:
        raise TypeError(f"Unsupported record type: {type(record).__name__}")
    return fn(record)


def validate_asteroid_parameters(p: AsteroidParameters) -> Tuple[bool, List[str], List[str]]:
    """Integrity checks on a normalized record -> (is_valid, errors, warnings)."""
    errors: List[str] = []
    warnings: List[str] = []

    if not p.id:
        errors.append("Missing asteroid ID")
    if not p.name:
        errors.append("Missing asteroid name")
    if not p.diameter > 0:
        errors.append("Invalid diameter")
    if not p.mass > 0:
        errors.append("Invalid mass")
    if not p.velocity > 0:
        errors.append("Invalid velocity")
    if not p.composition:
        errors.append("Missing composition")

    if p.diameter > 100_000:
        errors.append("Diameter too large (>100km)")
    elif p.diameter > 10_000:
        warnings.append("Very large diameter (>10km) - verify data")

    if p.velocity > 100:
        errors.append("Velocity too high (>100 km/s)")
    elif p.velocity > 50:
        warnings.append("Very high velocity (>50 km/s) - verify data")

    if p.mass > 1e15:
        warnings.append("Very large mass - verify calculation")

    if not 0.0 <= p.data_completeness <= 1.0:
        errors.append("Invalid data completeness score")
    elif p.data_completeness < 0.3:
        warnings.append("Very low data completeness")

    if not p.density > 0:
        errors.append("Invalid density")
    elif p.density < 500 or p.density > 10_000:
        warnings.append("Unusual density value - verify composition")

    if p.threat_level not in THREAT_LEVELS:
        errors.append("Invalid threat level")

    return not errors, errors, warnings

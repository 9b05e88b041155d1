# impactsim/engine/impact.py
"""
Impact-effects chain: energy -> crater -> blast -> casualties -> economic loss.

Every stage is a calibrated scaling law (constants live in config.settings),
not a physical simulation. The composition-aware path applies material
multipliers on top of the same chain; with CompositionEffects.neutral() both
paths return identical numbers.

Units: mass kg, velocity m/s, energy J, crater dimensions m, blast radii km.
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, replace
from typing import Dict, Optional, Tuple

import numpy as np

from impactsim.config import settings
from impactsim.physics.uncertain import UncertainValue

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ImpactParameters:
    mass: float  # kg
    velocity: float  # m/s
    angle: float = 45.0  # deg from horizontal
    composition: str = "unknown"
    density: Optional[float] = None  # kg/m^3, material default when None


@dataclass(frozen=True)
class Location:
    population_density: float  # people / km^2
    total_population: float
    gdp_per_capita: float = settings.DEFAULT_GDP_PER_CAPITA
    infrastructure_value: float = settings.DEFAULT_INFRASTRUCTURE_VALUE
    name: str = ""


@dataclass(frozen=True)
class CraterDimensions:
    diameter: float  # m
    depth: float  # m
    volume: float  # m^3


@dataclass(frozen=True)
class BlastEffects:
    fireball_radius: float  # km
    airblast_radius: float  # km
    thermal_radius: float  # km
    seismic_magnitude: float


@dataclass(frozen=True)
class Casualties:
    immediate: float
    injured: float
    displaced: float


@dataclass(frozen=True)
class ImpactEffectsResult:
    kinetic_energy: float
    tnt_equivalent: float
    crater: CraterDimensions
    blast: BlastEffects
    casualties: Casualties
    economic_impact: float

    def as_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class Range:
    min: float
    typical: float
    max: float


@dataclass(frozen=True)
class MaterialProperties:
    density: Range  # kg/m^3
    strength: Range  # Pa
    porosity: Range
    impact_efficiency: float
    vaporization_threshold: float  # J/kg
    vaporization_efficiency: float


@dataclass(frozen=True)
class CompositionEffects:
    efficiency: float
    vaporized_fraction: float
    fragmentation_altitude_km: float
    fragmentation_efficiency: float
    thermal_enhancement: float
    shockwave_modification: float
    crater_scaling: float
    depth_scaling: float

    @classmethod
    def neutral(cls) -> "CompositionEffects":
        return cls(
            efficiency=1.0,
            vaporized_fraction=0.0,
            fragmentation_altitude_km=0.0,
            fragmentation_efficiency=0.0,
            thermal_enhancement=1.0,
            shockwave_modification=1.0,
            crater_scaling=1.0,
            depth_scaling=1.0,
        )


@dataclass(frozen=True)
class EnhancedImpactResult:
    impact: ImpactEffectsResult
    total_kinetic_energy: float
    effective_energy: float
    vaporized_energy: float
    effects: CompositionEffects
    energy_range: Tuple[float, float]
    crater_diameter_range: Tuple[float, float]
    crater_depth_range: Tuple[float, float]
    fireball_range: Tuple[float, float]
    airblast_range: Tuple[float, float]

    def as_dict(self) -> Dict[str, object]:
        return asdict(self)


ASTEROID_MATERIAL_PROPERTIES: Dict[str, MaterialProperties] = {
    "stony": MaterialProperties(
        Range(2000, 2700, 3500), Range(10e6, 50e6, 200e6), Range(0.05, 0.15, 0.4), 0.85, 8e6, 0.3),
    "metallic": MaterialProperties(
        Range(7000, 7800, 8000), Range(200e6, 400e6, 800e6), Range(0.01, 0.05, 0.15), 0.95, 12e6, 0.4),
    "carbonaceous": MaterialProperties(
        Range(1200, 1400, 2200), Range(1e6, 10e6, 50e6), Range(0.2, 0.35, 0.6), 0.7, 6e6, 0.25),
    "stony-iron": MaterialProperties(
        Range(4500, 5300, 6000), Range(100e6, 250e6, 500e6), Range(0.02, 0.1, 0.25), 0.9, 10e6, 0.35),
    "basaltic": MaterialProperties(
        Range(2800, 2900, 3200), Range(50e6, 100e6, 300e6), Range(0.05, 0.12, 0.3), 0.88, 9e6, 0.32),
    "unknown": MaterialProperties(
        Range(2000, 2500, 3000), Range(10e6, 50e6, 200e6), Range(0.1, 0.2, 0.4), 0.8, 8e6, 0.3),
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _pow(x: float, p: float) -> float:
    # negative bases give NaN instead of a complex number
    with np.errstate(invalid="ignore", divide="ignore"):
        return float(np.power(float(x), p))


def _area(radius_km: float) -> float:
    return math.pi * radius_km * radius_km


def _count(x: float, cap: float) -> float:
    if not math.isfinite(x):
        return math.nan
    return float(min(max(math.floor(x), 0), cap))


# ---------------------------------------------------------------------------
# Plain chain
# ---------------------------------------------------------------------------

def kinetic_energy(mass: float, velocity: float) -> float:
    return 0.5 * mass * velocity * velocity


def energy_to_tnt(energy: float) -> float:
    return energy / settings.TNT_JOULES_PER_KILOTON


def calculate_crater(
    energy: float,
    angle: float = 45.0,
    target_density: float = settings.TARGET_DENSITY,
) -> CraterDimensions:
    """Holsapple-Housen style transient crater; K1/K2 are calibration constants."""
    angle_factor = _pow(math.sin(math.radians(angle)), 1.0 / 3.0)
    diameter = (
        settings.CRATER_K1
        * _pow(energy / (target_density * settings.GRAVITY), settings.CRATER_ENERGY_EXPONENT)
        * angle_factor
    )
    depth = diameter * settings.CRATER_K2
    volume = (math.pi / 3.0) * (diameter / 2.0) ** 2 * depth
    return CraterDimensions(diameter, depth, volume)


def seismic_magnitude(energy: float) -> float:
    with np.errstate(divide="ignore", invalid="ignore"):
        m = settings.SEISMIC_SLOPE * float(np.log10(energy)) - settings.SEISMIC_OFFSET
    if math.isnan(m):
        return math.nan
    return max(0.0, m)


def _blast_fit(tnt: float, coeff: float, exponent: float) -> float:
    # unscaled yield in, metres out; the detailed physics.blast fits use W = tnt / 1000 instead
    if tnt < 0:
        return math.nan
    return coeff * tnt ** exponent / settings.BLAST_FIT_M_PER_KM


def calculate_blast_effects(energy: float) -> BlastEffects:
    tnt = energy_to_tnt(energy)
    return BlastEffects(
        fireball_radius=_blast_fit(tnt, settings.FIREBALL_COEFF, settings.FIREBALL_EXPONENT),
        airblast_radius=_blast_fit(tnt, settings.AIRBLAST_COEFF, settings.AIRBLAST_EXPONENT),
        thermal_radius=_blast_fit(tnt, settings.THERMAL_COEFF, settings.THERMAL_EXPONENT),
        seismic_magnitude=seismic_magnitude(energy),
    )


def estimate_casualties(blast: BlastEffects, population_density: float, total_population: float) -> Casualties:
    """
    Nested circular zones fireball < airblast < thermal over a uniform population.
    A zone never counts people already in an inner zone; for small yields the
    thermal fit can fall inside the airblast one, in which case it adds nobody.
    """
    P = total_population
    fire = min(_area(blast.fireball_radius) * population_density, P)
    air = max(0.0, min(_area(blast.airblast_radius) * population_density, P) - fire)
    thermal = max(0.0, min(_area(blast.thermal_radius) * population_density, P) - fire - air)

    (fk, fi), (ak, ai), (tk, ti) = settings.FIREBALL_RATES, settings.AIRBLAST_RATES, settings.THERMAL_RATES
    immediate = fire * fk + air * ak + thermal * tk
    injured = fire * fi + air * ai + thermal * ti
    displaced = (fire + air + thermal) * settings.DISPLACEMENT_RATIO

    return Casualties(
        immediate=_count(immediate, P),
        injured=_count(injured, P),
        displaced=_count(displaced, P),
    )


def calculate_economic_impact(
    blast: BlastEffects,
    gdp_per_capita: float = settings.DEFAULT_GDP_PER_CAPITA,
    infrastructure_value: float = settings.DEFAULT_INFRASTRUCTURE_VALUE,
) -> float:
    affected_area = math.pi * blast.airblast_radius ** 2  # km^2
    direct = infrastructure_value * settings.DIRECT_DAMAGE_FRACTION
    indirect = direct * settings.INDIRECT_DAMAGE_FRACTION
    interruption = (
        gdp_per_capita * affected_area * settings.BUSINESS_INTERRUPTION_SCALE
        * settings.BUSINESS_INTERRUPTION_FRACTION
    )
    return direct + indirect + interruption


def calculate_impact(params: ImpactParameters, location: Location) -> ImpactEffectsResult:
    energy = kinetic_energy(params.mass, params.velocity)
    crater = calculate_crater(energy, params.angle)
    blast = calculate_blast_effects(energy)
    return ImpactEffectsResult(
        kinetic_energy=energy,
        tnt_equivalent=energy_to_tnt(energy),
        crater=crater,
        blast=blast,
        casualties=estimate_casualties(blast, location.population_density, location.total_population),
        economic_impact=calculate_economic_impact(blast, location.gdp_per_capita, location.infrastructure_value),
    )


# ---------------------------------------------------------------------------
# Composition-aware chain
# ---------------------------------------------------------------------------

def material_properties(composition: str) -> MaterialProperties:
    """Material table lookup; unrecognised tags use the 'unknown' row."""
    key = (composition or "unknown").lower()
    return ASTEROID_MATERIAL_PROPERTIES.get(key, ASTEROID_MATERIAL_PROPERTIES["unknown"])


def composition_density(composition: str, uncertainty_factor: float = 0.15) -> UncertainValue:
    d = material_properties(composition).density.typical
    return UncertainValue(float(d), d * uncertainty_factor, "kg/m³", f"{composition} material model")


def impact_efficiency(composition: str, velocity: float) -> float:
    """Energy-coupling efficiency; may exceed 1 at high velocity (capped velocity factor 1.1)."""
    velocity_factor = min(
        settings.VELOCITY_EFFICIENCY_CAP,
        settings.VELOCITY_EFFICIENCY_BASE + velocity / settings.VELOCITY_EFFICIENCY_SCALE,
    )
    return material_properties(composition).impact_efficiency * velocity_factor


def composition_effects(params: ImpactParameters, target_density: float = settings.TARGET_DENSITY) -> CompositionEffects:
    props = material_properties(params.composition)
    key = (params.composition or "unknown").lower()
    density = params.density if params.density is not None else props.density.typical

    efficiency = impact_efficiency(params.composition, params.velocity)
    effective = kinetic_energy(params.mass, params.velocity) * efficiency

    thr = props.vaporization_threshold
    specific = effective / params.mass if params.mass > 0 else 0.0
    vaporized = min(1.0, max(0.0, (specific - thr) / thr) * props.vaporization_efficiency)

    strength_ratio = props.strength.typical / settings.REFERENCE_STRENGTH
    porosity = props.porosity.typical

    return CompositionEffects(
        efficiency=efficiency,
        vaporized_fraction=vaporized,
        fragmentation_altitude_km=max(
            settings.FRAGMENTATION_FLOOR_KM,
            settings.FRAGMENTATION_CEILING_KM - props.strength.typical / 1e6 * settings.FRAGMENTATION_STRENGTH_SLOPE,
        ),
        fragmentation_efficiency=1.0 - math.exp(-porosity * settings.FRAGMENTATION_POROSITY_RATE),
        thermal_enhancement=settings.THERMAL_ENHANCEMENT.get(key, 1.0),
        shockwave_modification=(
            _pow(density / settings.TARGET_DENSITY, settings.SHOCKWAVE_DENSITY_EXPONENT)
            * strength_ratio ** settings.SHOCKWAVE_STRENGTH_EXPONENT
        ),
        crater_scaling=(
            strength_ratio ** settings.STRENGTH_CRATER_EXPONENT
            * (1.0 - porosity) ** settings.POROSITY_CRATER_EXPONENT
            * _pow(density / target_density, settings.DENSITY_CRATER_EXPONENT)
        ),
        depth_scaling=1.0 + porosity * settings.POROSITY_DEPTH_FACTOR,
    )


def _band(x: float, fraction: float) -> Tuple[float, float]:
    return x * (1.0 - fraction), x * (1.0 + fraction)


def calculate_enhanced_impact(
    params: ImpactParameters,
    location: Location,
    effects: Optional[CompositionEffects] = None,
) -> EnhancedImpactResult:
    fx = composition_effects(params) if effects is None else effects

    total = kinetic_energy(params.mass, params.velocity)
    effective = total * fx.efficiency

    base_crater = calculate_crater(effective, params.angle)
    diameter = base_crater.diameter * fx.crater_scaling
    depth = diameter * settings.CRATER_K2 * fx.depth_scaling
    crater = CraterDimensions(diameter, depth, (math.pi / 3.0) * (diameter / 2.0) ** 2 * depth)

    base_blast = calculate_blast_effects(effective)
    blast = replace(
        base_blast,
        fireball_radius=base_blast.fireball_radius * (1.0 + fx.vaporized_fraction * settings.VAPORIZATION_FIREBALL_GAIN),
        airblast_radius=base_blast.airblast_radius * fx.shockwave_modification,
        thermal_radius=base_blast.thermal_radius * fx.thermal_enhancement,
    )

    impact = ImpactEffectsResult(
        kinetic_energy=effective,
        tnt_equivalent=energy_to_tnt(effective),
        crater=crater,
        blast=blast,
        casualties=estimate_casualties(blast, location.population_density, location.total_population),
        economic_impact=calculate_economic_impact(blast, location.gdp_per_capita, location.infrastructure_value),
    )

    log.debug("enhanced impact: efficiency=%.3f vaporized=%.3f", fx.efficiency, fx.vaporized_fraction)

    return EnhancedImpactResult(
        impact=impact,
        total_kinetic_energy=total,
        effective_energy=effective,
        vaporized_energy=effective * fx.vaporized_fraction,
        effects=fx,
        energy_range=_band(effective, settings.ENERGY_RANGE_FRACTION),
        crater_diameter_range=_band(crater.diameter, settings.CRATER_RANGE_FRACTION),
        crater_depth_range=_band(crater.depth, settings.CRATER_RANGE_FRACTION),
        fireball_range=_band(blast.fireball_radius, settings.BLAST_RANGE_FRACTION),
        airblast_range=_band(blast.airblast_radius, settings.BLAST_RANGE_FRACTION),
    )

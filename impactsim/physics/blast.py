# impactsim/physics/blast.py
"""
Blast-wave scaling (Glasstone & Dolan style fits).

Scaled yield W = tnt_equivalent / BLAST_YIELD_SCALE. All radii are in km.
The fits come from nuclear test data and assume a homogeneous atmosphere and
spherical symmetry; treat them as order-of-magnitude estimates.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from impactsim.config.settings import (
    BLAST_VALID_YIELD,
    BLAST_YIELD_SCALE,
    BURST_ALTITUDE_FACTOR,
    FIREBALL_COEFF,
    FIREBALL_DURATION_COEFF,
    FIREBALL_EXPONENT,
    FIREBALL_TEMPERATURE_K,
    FIREBALL_TEMPERATURE_SIGMA_K,
    OVERPRESSURE_K,
    SEA_LEVEL_AIR_DENSITY,
    SEA_LEVEL_PRESSURE,
    STEFAN_BOLTZMANN,
    THERMAL_BURN_K,
    THERMAL_EXPONENT,
    TNT_JOULES_PER_KILOTON,
)
from impactsim.physics.uncertain import UncertainValue, UncertaintyVariable
from impactsim.physics.uncertainty import propagate_first_order

ArrayLike = Union[float, np.ndarray]

# overpressure falls from 5 psi at K5*W^(1/3) to 1 psi at K1*W^(1/3)
_DECAY_EXPONENT = math.log(5.0) / math.log(OVERPRESSURE_K[1.0] / OVERPRESSURE_K[5.0])


@dataclass(frozen=True)
class AtmosphericConditions:
    pressure: UncertainValue  # Pa
    density: UncertainValue  # kg/m^3
    temperature: UncertainValue  # K
    humidity: UncertainValue  # 0-1
    description: str = ""


STANDARD_ATMOSPHERE = AtmosphericConditions(
    pressure=UncertainValue(101325.0, 0.0, "Pa", "ISO 2533", "Standard atmospheric pressure"),
    density=UncertainValue(1.225, 0.01, "kg/m³", "ISO 2533", "Standard atmospheric density at sea level"),
    temperature=UncertainValue(288.15, 0.0, "K", "ISO 2533", "Standard atmospheric temperature"),
    humidity=UncertainValue(0.0, 0.0, "1", "Assumed", "Dry air"),
    description="Standard atmosphere (sea level, 15°C, dry air)",
)

HIGH_ALTITUDE_ATMOSPHERE = AtmosphericConditions(
    pressure=UncertainValue(26500.0, 1000.0, "Pa", "US Standard Atmosphere", "Pressure at 10 km altitude"),
    density=UncertainValue(0.414, 0.02, "kg/m³", "US Standard Atmosphere", "Density at 10 km altitude"),
    temperature=UncertainValue(223.15, 2.0, "K", "US Standard Atmosphere", "Temperature at 10 km altitude"),
    humidity=UncertainValue(0.0, 0.0, "1", "Assumed", "Dry air at altitude"),
    description="High altitude atmosphere (10 km, typical airburst altitude)",
)

ATMOSPHERES = {"standard": STANDARD_ATMOSPHERE, "high_altitude": HIGH_ALTITUDE_ATMOSPHERE}


@dataclass(frozen=True)
class FireballProperties:
    radius_km: float
    duration_s: float
    temperature_k: UncertainValue
    luminosity_w: float

    def as_dict(self) -> Dict[str, object]:
        return {
            "radius_km": self.radius_km,
            "duration_s": self.duration_s,
            "temperature_k": self.temperature_k.as_dict(),
            "luminosity_w": self.luminosity_w,
        }


def get_atmosphere(name: str) -> AtmosphericConditions:
    if name not in ATMOSPHERES:
        raise KeyError(f"Unknown atmospheric conditions: {name}")
    return ATMOSPHERES[name]


def scaled_yield(tnt_equivalent: float) -> float:
    return tnt_equivalent / BLAST_YIELD_SCALE


# ---------------------------------------------------------------------------
# Overpressure
# ---------------------------------------------------------------------------

def pressure_correction(pressure_pa: float) -> float:
    return (SEA_LEVEL_PRESSURE / pressure_pa) ** (1.0 / 3.0)


def burst_altitude_correction(altitude_m: float) -> float:
    if altitude_m > 0:
        return 1.0 + BURST_ALTITUDE_FACTOR * math.log(1.0 + altitude_m / 1000.0)
    return 1.0


def overpressure_radius(
    tnt_equivalent: float,
    psi: float,
    burst_altitude_m: float = 0.0,
    pressure_pa: float = SEA_LEVEL_PRESSURE,
) -> float:
    """Radius (km) at which peak overpressure drops to `psi` (1, 5 or 10)."""
    if psi not in OVERPRESSURE_K:
        raise ValueError(f"No scaling constant for {psi} psi (have {sorted(OVERPRESSURE_K)})")
    r = OVERPRESSURE_K[psi] * scaled_yield(tnt_equivalent) ** (1.0 / 3.0)
    return r * pressure_correction(pressure_pa) * burst_altitude_correction(burst_altitude_m)


def overpressure_radii(
    tnt_equivalent: float,
    burst_altitude_m: float = 0.0,
    atmosphere: AtmosphericConditions = STANDARD_ATMOSPHERE,
) -> Dict[float, float]:
    p = atmosphere.pressure.value
    return {psi: overpressure_radius(tnt_equivalent, psi, burst_altitude_m, p) for psi in sorted(OVERPRESSURE_K)}


def overpressure_at_distance(tnt_equivalent: float, distance_km: ArrayLike) -> ArrayLike:
    """
    Peak overpressure (psi) at ground distance, inverting the radius fits:
    p = 5 * (R / W^(1/3))^-k with k chosen so p(K1 W^(1/3)) = 1 psi.
    Strictly decreasing in distance for W > 0.
    """
    scale = scaled_yield(tnt_equivalent) ** (1.0 / 3.0)
    d = np.asarray(distance_km, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        z = d / (OVERPRESSURE_K[5.0] * scale)
        p = 5.0 * np.power(z, -_DECAY_EXPONENT)
    if np.ndim(p) == 0:
        return float(p)
    return p


# ---------------------------------------------------------------------------
# Fireball / thermal
# ---------------------------------------------------------------------------

def fireball_properties(
    tnt_equivalent: float,
    burst_altitude_m: float = 0.0,
    atmosphere: AtmosphericConditions = STANDARD_ATMOSPHERE,
) -> FireballProperties:
    W = scaled_yield(tnt_equivalent)
    radius = FIREBALL_COEFF * W ** FIREBALL_EXPONENT
    radius *= (SEA_LEVEL_AIR_DENSITY / atmosphere.density.value) ** 0.2
    if burst_altitude_m > 0:
        radius *= (1.0 + burst_altitude_m / 10_000.0) ** 0.1

    temperature = UncertainValue(
        FIREBALL_TEMPERATURE_K, FIREBALL_TEMPERATURE_SIGMA_K, "K", "Typical fireball temperature"
    )
    r_m = radius * 1000.0
    luminosity = STEFAN_BOLTZMANN * 4.0 * math.pi * r_m * r_m * temperature.value ** 4

    return FireballProperties(
        radius_km=radius,
        duration_s=FIREBALL_DURATION_COEFF * W ** FIREBALL_EXPONENT,
        temperature_k=temperature,
        luminosity_w=luminosity,
    )


def thermal_radii(
    tnt_equivalent: float,
    burst_altitude_m: float = 0.0,
    atmosphere: AtmosphericConditions = STANDARD_ATMOSPHERE,
) -> Dict[int, float]:
    """Burn radii (km) keyed by burn degree, with a humidity/altitude absorption term."""
    W = scaled_yield(tnt_equivalent)
    absorption = math.exp(-0.1 * atmosphere.humidity.value - burst_altitude_m / 50_000.0)
    return {deg: k * W ** THERMAL_EXPONENT * math.sqrt(absorption) for deg, k in THERMAL_BURN_K.items()}


def validate_blast_parameters(tnt_equivalent: float, burst_altitude_m: float = 0.0) -> Tuple[bool, List[str], List[str]]:
    warnings: List[str] = []
    lo, hi = BLAST_VALID_YIELD
    W = scaled_yield(tnt_equivalent)
    valid = True
    if W < lo:
        warnings.append(f"Scaled yield ({W:.6f}) is below validated range (>{lo})")
        valid = False
    if W > hi:
        warnings.append(f"Scaled yield ({W:.0f}) is above validated range (<{hi:,.0f})")
        valid = False
    if burst_altitude_m > 50_000:
        warnings.append(
            f"Burst altitude ({burst_altitude_m:.0f} m) is very high - atmospheric effects may be underestimated"
        )
    limitations = [
        "Scaling laws derived from nuclear weapons tests",
        "Assumes spherical symmetry and homogeneous atmosphere",
        "Does not account for terrain effects or meteorological conditions",
    ]
    return valid, warnings, limitations


# ---------------------------------------------------------------------------
# Damage-criterion radius with uncertainty
# ---------------------------------------------------------------------------

def criterion_blast_radius(
    energy: UncertainValue,
    burst_altitude_km: UncertainValue,
    psi: float = 5.0,
    atmosphere: AtmosphericConditions = STANDARD_ATMOSPHERE,
) -> UncertainValue:
    """
    Ground radius (km) of a damage criterion, e.g. 5 psi for tree fall,
    1 psi for window breakage. Energy in J, burst altitude in km.
    Uncertainty is first-order in energy, altitude and ambient pressure.
    """
    variables = [
        UncertaintyVariable("energy", energy),
        UncertaintyVariable("altitude", burst_altitude_km),
        UncertaintyVariable("pressure", atmosphere.pressure),
    ]

    def radius(x):
        tnt = x["energy"] / TNT_JOULES_PER_KILOTON
        return overpressure_radius(tnt, psi, x["altitude"] * 1000.0, x["pressure"])

    out = propagate_first_order(variables, radius)
    return UncertainValue(
        out.value,
        out.uncertainty,
        "km",
        f"Overpressure scaling ({psi:g} psi)",
        f"{psi:g} psi overpressure radius",
    )

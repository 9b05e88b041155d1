"""
Project settings (constants + small helpers).
Units: meters (m), seconds (s), kilograms (kg), joules (J) unless a name says otherwise.

Calibration constants below are empirically tuned to reproduce order-of-magnitude
agreement with the Tunguska and Chelyabinsk events. They are not first-principles values.
"""
from __future__ import annotations

import os
from typing import Optional

# Paths
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
OUTPUT_DIR = os.path.join(BASE_DIR, "outputs")
CONFIG_DIR = os.path.dirname(__file__)
COMPOSITION_MODELS_FILE = os.path.join(CONFIG_DIR, "composition_models.json")

# Run
DEFAULT_RANDOM_SEED: Optional[int] = None
RUN_ID_PREFIX = "run"
VALIDATE_ON_IMPORT = False

# Sun / Earth
MU_SUN = 1.32712440018e20  # m^3/s^2
AU_KM = 149_597_870.7
AU_M = AU_KM * 1000.0
EARTH_RADIUS_KM = 6378.137
EARTH_ECCENTRICITY = 0.0167086
SECONDS_PER_DAY = 86_400.0
DAYS_PER_YEAR = 365.25
SECONDS_PER_YEAR = DAYS_PER_YEAR * SECONDS_PER_DAY
J2000_JD = 2451545.0
GRAVITY = 9.81  # m/s^2

# Energy
TNT_JOULES_PER_KILOTON = 4.184e9
# Glasstone-Dolan coefficients expect yields 1000x coarser than TNT_JOULES_PER_KILOTON units
BLAST_YIELD_SCALE = 1000.0

# Crater (Holsapple-Housen style, calibrated)
CRATER_K1 = 1.88
CRATER_K2 = 0.13
CRATER_ENERGY_EXPONENT = 0.22
TARGET_DENSITY = 2700.0

# Blast power laws R = COEFF * tnt^EXPONENT give metres for the plain chain
BLAST_FIT_M_PER_KM = 1000.0
FIREBALL_COEFF = 0.28
FIREBALL_EXPONENT = 0.4
AIRBLAST_COEFF = 2.2
AIRBLAST_EXPONENT = 0.33
THERMAL_COEFF = 1.9
THERMAL_EXPONENT = 0.41

# Seismic magnitude = max(0, SLOPE * log10(E) - OFFSET)
SEISMIC_SLOPE = 0.67
SEISMIC_OFFSET = 5.87

# Overpressure radii R = K * W^(1/3) km (W in kt)
OVERPRESSURE_K = {1.0: 2.2, 5.0: 1.0, 10.0: 0.7}
SEA_LEVEL_PRESSURE = 101_325.0  # Pa
BURST_ALTITUDE_FACTOR = 0.1
THERMAL_BURN_K = {1: 1.9, 2: 1.2, 3: 0.8}  # burn degree -> R = K * W^0.41 km
BLAST_VALID_YIELD = (0.001, 20_000.0)  # range the Glasstone-Dolan fits cover
SEA_LEVEL_AIR_DENSITY = 1.225  # kg/m^3
FIREBALL_DURATION_COEFF = 0.44
FIREBALL_TEMPERATURE_K = 3500.0
FIREBALL_TEMPERATURE_SIGMA_K = 500.0
STEFAN_BOLTZMANN = 5.670374419e-8

# Casualties: (fatality, injury) per zone
FIREBALL_RATES = (0.95, 0.05)
AIRBLAST_RATES = (0.15, 0.60)
THERMAL_RATES = (0.05, 0.30)
DISPLACEMENT_RATIO = 1.5

# Economics
DEFAULT_GDP_PER_CAPITA = 65_000.0
DEFAULT_INFRASTRUCTURE_VALUE = 1e12
DIRECT_DAMAGE_FRACTION = 0.3
INDIRECT_DAMAGE_FRACTION = 0.5  # of direct damage
BUSINESS_INTERRUPTION_FRACTION = 0.1
BUSINESS_INTERRUPTION_SCALE = 1000.0

# Composition-aware impact effects
REFERENCE_STRENGTH = 50e6  # Pa
STRENGTH_CRATER_EXPONENT = -0.1
POROSITY_CRATER_EXPONENT = 0.2
DENSITY_CRATER_EXPONENT = 0.15
POROSITY_DEPTH_FACTOR = 0.5
VELOCITY_EFFICIENCY_BASE = 0.9
VELOCITY_EFFICIENCY_SCALE = 100_000.0  # m/s
VELOCITY_EFFICIENCY_CAP = 1.1
FRAGMENTATION_CEILING_KM = 50.0
FRAGMENTATION_FLOOR_KM = 5.0
FRAGMENTATION_STRENGTH_SLOPE = 0.1  # km per MPa
FRAGMENTATION_POROSITY_RATE = 3.0
THERMAL_ENHANCEMENT = {"metallic": 1.3, "carbonaceous": 0.8}
SHOCKWAVE_DENSITY_EXPONENT = 0.2
SHOCKWAVE_STRENGTH_EXPONENT = 0.1
VAPORIZATION_FIREBALL_GAIN = 0.5
ENERGY_RANGE_FRACTION = 0.2
CRATER_RANGE_FRACTION = 0.3
BLAST_RANGE_FRACTION = 0.25

# Deflection
FULL_DEFLECTION_ANGLE_DEG = 0.1
DEFLECTION_AU_M = 1.496e11
LEAD_TIME_PENALTY = 0.5
LARGE_ASTEROID_SIZE_M = 200.0
LARGE_ASTEROID_PENALTY = 0.8
MASS_MISMATCH_RATIO = 2.0
MASS_MISMATCH_PENALTY = 0.7
UNPROVEN_TECHNOLOGY_IDS = ("ion_beam", "solar_sail")
UNPROVEN_TECHNOLOGY_PENALTY = 0.9
MISSION_SUCCESS_THRESHOLD = 0.7
DEFAULT_VALUE_AT_RISK = 1e12
LAUNCH_EARLIEST_FACTOR = 1.5
LAUNCH_LATEST_FACTOR = 0.8
GRAVITATIONAL_CONSTANT = 6.67430e-11

# Pipeline fallbacks when a record lacks approach data
DEFAULT_WARNING_YEARS = 5.0
MIN_WARNING_YEARS = 1.0
DEFAULT_TARGET_DISTANCE_AU = 0.01
DEFAULT_IMPACT_PROBABILITY = 0.001
PIPELINE_SEARCH_DAYS = 730.0

# Monte Carlo
MC_DEFAULT_N = 10_000
MC_MIN_SAMPLES = 1000
MC_MIN_VALID_FRACTION = 0.5
MC_CONVERGENCE_FRACTION = 0.9
MC_CORRELATION_THRESHOLD = 0.1
MC_CORRELATION_WEIGHT = 0.5
FIRST_ORDER_STEP = 1e-8

# Kepler solver
KEPLER_TOLERANCE = 1e-12
KEPLER_MAX_ITER = 100
KEPLER_MAX_STEP = 0.5
KEPLER_HIGH_ECCENTRICITY = 0.8

# Close approach search
CLOSE_APPROACH_STEP_DAYS = 1.0
CLOSE_APPROACH_TOLERANCE_DAYS = 1e-6

# Validation
WITHIN_UNCERTAINTY_SIGMA = 2.0
STATUS_THRESHOLDS = ((1.0, "EXCELLENT"), (2.0, "GOOD"), (3.0, "ACCEPTABLE"))
BENCHMARK_SEARCH_WINDOW_DAYS = 365.0
PREDICTED_POSITION_SIGMA_AU = 1e-6
REFERENCE_POSITION_SIGMA_AU = 1e-8
KEPLER_PREDICTED_SIGMA = 1e-12
PROPERTY_GOOD_SIGMA = 1.0
PROPERTY_FAIR_SIGMA = 2.0

# Composition engine
MAX_CLASSIFICATION_CONFIDENCE = 0.95
ALBEDO_RATIO_BOUNDS = (0.3, 3.0)
ALBEDO_PENALTY = 0.9
NAME_OVERRIDE_CONFIDENCE = 0.7
DIAMETER_RELATIVE_ERROR = 0.05
MAX_POROSITY = 0.8
MASS_CONFIDENCE_FACTOR = 0.9


def clamp_samples(val: Optional[int]) -> int:
    out = int(MC_DEFAULT_N if val is None else val)
    return max(int(MC_MIN_SAMPLES), out)


def validate_settings() -> None:
    if TNT_JOULES_PER_KILOTON <= 0:
        raise ValueError("TNT_JOULES_PER_KILOTON must be > 0")
    if BLAST_YIELD_SCALE <= 0:
        raise ValueError("BLAST_YIELD_SCALE must be > 0")
    if BLAST_FIT_M_PER_KM <= 0:
        raise ValueError("BLAST_FIT_M_PER_KM must be > 0")
    if TARGET_DENSITY <= 0:
        raise ValueError("TARGET_DENSITY must be > 0")
    if CRATER_K1 <= 0 or CRATER_K2 <= 0:
        raise ValueError("crater constants must be > 0")
    if MC_MIN_SAMPLES <= 0:
        raise ValueError("MC_MIN_SAMPLES must be > 0")
    if MC_DEFAULT_N < MC_MIN_SAMPLES:
        raise ValueError("MC_DEFAULT_N must be >= MC_MIN_SAMPLES")
    if not 0.0 < MC_MIN_VALID_FRACTION <= MC_CONVERGENCE_FRACTION <= 1.0:
        raise ValueError("Monte Carlo fractions must satisfy 0 < valid <= convergence <= 1")
    if KEPLER_TOLERANCE <= 0:
        raise ValueError("KEPLER_TOLERANCE must be > 0")
    if KEPLER_MAX_ITER <= 0:
        raise ValueError("KEPLER_MAX_ITER must be > 0")
    if CLOSE_APPROACH_STEP_DAYS <= 0:
        raise ValueError("CLOSE_APPROACH_STEP_DAYS must be > 0")
    if not LAUNCH_EARLIEST_FACTOR > 1.0 > LAUNCH_LATEST_FACTOR > 0.0:
        raise ValueError("launch factors must satisfy earliest > 1 > latest > 0")
    if FULL_DEFLECTION_ANGLE_DEG <= 0:
        raise ValueError("FULL_DEFLECTION_ANGLE_DEG must be > 0")

    thresholds = [t for t, _ in STATUS_THRESHOLDS]
    if thresholds != sorted(thresholds):
        raise ValueError("STATUS_THRESHOLDS must be increasing")
    if WITHIN_UNCERTAINTY_SIGMA <= 0:
        raise ValueError("WITHIN_UNCERTAINTY_SIGMA must be > 0")

    lo, hi = ALBEDO_RATIO_BOUNDS
    if not 0 < lo < 1 < hi:
        raise ValueError("ALBEDO_RATIO_BOUNDS must bracket 1")
    if not 0 < MAX_POROSITY < 1:
        raise ValueError("MAX_POROSITY must be in (0, 1)")


if VALIDATE_ON_IMPORT:
    validate_settings()

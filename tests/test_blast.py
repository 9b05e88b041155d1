import math

import numpy as np
import pytest

from impactsim.physics.blast import (
    HIGH_ALTITUDE_ATMOSPHERE,
    STANDARD_ATMOSPHERE,
    criterion_blast_radius,
    fireball_properties,
    get_atmosphere,
    overpressure_at_distance,
    overpressure_radii,
    overpressure_radius,
    thermal_radii,
    validate_blast_parameters,
)
from impactsim.physics.uncertain import UncertainValue


def test_overpressure_decreases_with_distance():
    d = np.array([0.5, 1.0, 2.0, 5.0, 10.0, 50.0])
    p = overpressure_at_distance(1e4, d)
    assert np.all(np.diff(p) < 0)


def test_overpressure_matches_radius_fits():
    tnt = 8000.0
    r5 = overpressure_radius(tnt, 5.0)
    r1 = overpressure_radius(tnt, 1.0)
    assert overpressure_at_distance(tnt, r5) == pytest.approx(5.0)
    assert overpressure_at_distance(tnt, r1) == pytest.approx(1.0)
    assert r1 > r5 > overpressure_radius(tnt, 10.0)


def test_overpressure_radius_unknown_psi():
    with pytest.raises(ValueError):
        overpressure_radius(1000.0, 3.0)


def test_burst_altitude_and_thin_air_enlarge_radius():
    base = overpressure_radius(1000.0, 5.0)
    assert overpressure_radius(1000.0, 5.0, burst_altitude_m=8000.0) > base
    radii = overpressure_radii(1000.0, atmosphere=HIGH_ALTITUDE_ATMOSPHERE)
    assert radii[5.0] > base
    assert list(radii) == [1.0, 5.0, 10.0]


def test_radius_grows_with_yield():
    assert overpressure_radius(2e4, 5.0) > overpressure_radius(1e4, 5.0)
    assert fireball_properties(2e4).radius_km > fireball_properties(1e4).radius_km


def test_thermal_radii_ordering_and_altitude():
    r = thermal_radii(1e4)
    assert r[1] > r[2] > r[3] > 0
    high = thermal_radii(1e4, burst_altitude_m=10_000.0)
    assert high[1] < r[1]


def test_fireball_properties():
    fb = fireball_properties(1e4)
    assert fb.radius_km > 0
    assert fb.temperature_k.value == 3500.0
    assert fb.luminosity_w > 0
    assert fireball_properties(1e4, atmosphere=HIGH_ALTITUDE_ATMOSPHERE).radius_km > fb.radius_km
    assert fb.as_dict()["temperature_k"]["uncertainty"] == 500.0


def test_validate_blast_parameters_range():
    ok, warnings, limitations = validate_blast_parameters(1e4)
    assert ok and not warnings
    assert limitations
    ok, warnings, _ = validate_blast_parameters(1e-3)
    assert not ok
    assert "below validated range" in warnings[0]
    ok, warnings, _ = validate_blast_parameters(1e4, burst_altitude_m=60_000)
    assert ok and warnings


def test_get_atmosphere():
    assert get_atmosphere("standard") is STANDARD_ATMOSPHERE
    with pytest.raises(KeyError):
        get_atmosphere("martian")


def test_criterion_blast_radius_carries_uncertainty():
    energy = UncertainValue(5e16, 2e16, "J")
    altitude = UncertainValue(8.0, 2.0, "km")
    five = criterion_blast_radius(energy, altitude, psi=5.0)
    one = criterion_blast_radius(energy, altitude, psi=1.0)
    assert five.unit == "km"
    assert 20.0 < five.value < 40.0
    assert five.uncertainty > 0
    assert one.value == pytest.approx(five.value * 2.2)
    assert not math.isnan(one.uncertainty)

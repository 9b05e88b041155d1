import math

import numpy as np
import pytest

from impactsim.config.settings import J2000_JD
from impactsim.physics.orbital import (
    OrbitalElements,
    calculate_close_approach,
    calculate_position,
    earth_distance,
    earth_position,
    orbit_path,
    orbital_period_days,
)


def circular(a=1.0, M=0.0):
    return OrbitalElements(a, 0.0, 0.0, 0.0, 0.0, M, J2000_JD)


def test_circular_orbit_state_at_epoch():
    state = calculate_position(circular(), J2000_JD)
    assert state.position_au == pytest.approx([1.0, 0.0, 0.0], abs=1e-12)
    assert state.distance_au == pytest.approx(1.0)
    # Earth-like circular speed
    assert np.linalg.norm(state.velocity_km_s) == pytest.approx(29.78, rel=1e-3)


def test_periapsis_distance():
    el = OrbitalElements(2.0, 0.4, 12.0, 80.0, 30.0, 0.0)
    assert calculate_position(el, el.epoch).distance_au == pytest.approx(1.2)


def test_one_year_period_for_one_au():
    assert orbital_period_days(circular()) == pytest.approx(365.25, rel=1e-3)


def test_position_repeats_after_one_period():
    el = OrbitalElements(1.8, 0.3, 20.0, 45.0, 100.0, 33.0)
    p = orbital_period_days(el)
    a = calculate_position(el, el.epoch + 10.0).position_au
    b = calculate_position(el, el.epoch + 10.0 + p).position_au
    assert np.allclose(a, b, atol=1e-9)


def test_inclination_lifts_out_of_ecliptic():
    flat = calculate_position(OrbitalElements(1.5, 0.1, 0.0, 0.0, 0.0, 90.0), J2000_JD)
    tilted = calculate_position(OrbitalElements(1.5, 0.1, 30.0, 0.0, 0.0, 90.0), J2000_JD)
    assert flat.position_au[2] == pytest.approx(0.0, abs=1e-12)
    assert abs(tilted.position_au[2]) > 0.1
    assert flat.distance_au == pytest.approx(tilted.distance_au)


@pytest.mark.parametrize("el", [
    OrbitalElements(0.0, 0.2, 10.0, 0.0, 0.0, 10.0),
    OrbitalElements(-1.0, 0.5, 10.0, 0.0, 0.0, 10.0),
    OrbitalElements(1.0, 1.5, 10.0, 0.0, 0.0, 10.0),
])
def test_degenerate_elements_give_finite_state(el):
    state = calculate_position(el, J2000_JD + 100.0)
    assert np.all(np.isfinite(state.position_au))
    assert np.all(np.isfinite(state.velocity_au_per_day))


def test_validate_flags_bad_elements():
    ok, _, errors = OrbitalElements(1.0, -0.2, 10.0, 0.0, 0.0, 10.0).validate()
    assert not ok
    assert errors


def test_earth_position_near_one_au():
    for jd in (J2000_JD, J2000_JD + 91.3, J2000_JD + 182.6, J2000_JD + 5000.0):
        r = np.linalg.norm(earth_position(jd))
        assert 0.98 < r < 1.02
    assert earth_position(J2000_JD)[2] == 0.0


def test_close_approach_is_window_minimum():
    el = OrbitalElements(1.1, 0.15, 3.0, 40.0, 60.0, 200.0)
    start, end = J2000_JD, J2000_JD + 365.0
    ca = calculate_close_approach(el, start, end, step_days=5.0)
    assert start <= ca.jd <= end
    grid = np.arange(start, end, 5.0)
    assert ca.distance_au <= min(earth_distance(el, t) for t in grid) + 1e-12
    assert ca.velocity_km_s > 0
    assert ca.distance_km == pytest.approx(ca.distance_au * 149_597_870.7)


def test_close_approach_rejects_empty_window():
    with pytest.raises(ValueError):
        calculate_close_approach(circular(), J2000_JD, J2000_JD)
    with pytest.raises(ValueError):
        calculate_close_approach(circular(), J2000_JD, J2000_JD + 10.0, step_days=0.0)


def test_orbit_path_closes():
    path = orbit_path(OrbitalElements(1.3, 0.2, 5.0, 10.0, 20.0, 0.0), n_points=50)
    assert path.shape == (50, 3)
    assert np.allclose(path[0], path[-1], atol=1e-9)
    assert not math.isnan(path.sum())

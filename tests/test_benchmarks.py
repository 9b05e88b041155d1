import pytest

from impactsim.physics.orbital import OrbitalElements
from impactsim.validation.benchmarks import (
    BENCHMARK_ASTEROIDS,
    KEPLER_TEST_CASES,
    OrbitalBenchmarker,
    get_benchmark_asteroid,
)
from impactsim.validation.compare import ValidationStatus

APOPHIS = BENCHMARK_ASTEROIDS[0]


def test_registry():
    assert get_benchmark_asteroid("99942") is APOPHIS
    assert get_benchmark_asteroid("Icarus").designation == "1566"
    assert get_benchmark_asteroid("433") is None
    assert APOPHIS.label == "99942 Apophis"
    el = APOPHIS.elements
    assert isinstance(el, OrbitalElements)
    assert el.semi_major_axis == 0.9224
    assert el.epoch == 2460000.5


def test_kepler_solver_cases_all_excellent():
    outcomes = OrbitalBenchmarker().validate_kepler_solver()
    assert len(outcomes) == len(KEPLER_TEST_CASES)
    assert outcomes[-1].parameter == "Test Case 5 (e=0.9)"
    for o in outcomes:
        assert o.ok
        assert o.result.status is ValidationStatus.EXCELLENT
        assert o.subject == "Kepler Solver Test"


def test_position_outcomes_per_axis():
    outcomes = OrbitalBenchmarker().validate_positions(APOPHIS)
    assert [o.parameter for o in outcomes] == ["Position X", "Position Y", "Position Z"] * 2
    assert all(o.result.epoch in (2460000.5, 2460365.5) for o in outcomes)
    assert outcomes[0].result.reference.uncertainty == 1e-8


def test_close_approach_outcomes():
    b = OrbitalBenchmarker(asteroids=[APOPHIS], kepler_cases=(), search_window_days=30.0)
    outcomes = b.validate_close_approaches(APOPHIS)
    assert [o.parameter for o in outcomes] == ["Close Approach Distance", "Close Approach Velocity"]
    for o in outcomes:
        assert o.ok
        assert abs(o.extra["found_jd"] - 2462240.5) <= 30.0
    assert outcomes[1].result.predicted.uncertainty == 0.0


def test_fetched_elements_match_registry():
    b = OrbitalBenchmarker(fetch_elements=lambda designation: get_benchmark_asteroid(designation).elements)
    outcomes = b.validate_against_fetched(APOPHIS)
    assert len(outcomes) == 6
    assert outcomes[0].parameter == "Element semi_major_axis"
    assert all(o.result.status is ValidationStatus.EXCELLENT for o in outcomes)


def test_fetch_failure_is_recorded():
    def offline(designation):
        raise ConnectionError("offline")

    outcomes = OrbitalBenchmarker(fetch_elements=offline).validate_against_fetched(APOPHIS)
    assert len(outcomes) == 1
    assert not outcomes[0].ok
    assert outcomes[0].error == "ConnectionError: offline"


def test_no_fetcher_means_no_element_outcomes():
    assert OrbitalBenchmarker().validate_against_fetched(APOPHIS) == []


def test_validate_all_orbital_mechanics_count():
    outcomes = OrbitalBenchmarker(search_window_days=20.0).validate_all_orbital_mechanics()
    # 5 Kepler cases + per asteroid 2 positions x 3 axes + 2 approach checks
    assert len(outcomes) == 5 + 2 * (6 + 2)
    assert {o.subject for o in outcomes} == {"Kepler Solver Test", "99942 Apophis", "1566 Icarus"}

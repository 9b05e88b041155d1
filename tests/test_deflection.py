import math
from datetime import datetime, timedelta, timezone

import pytest

from impactsim.engine.deflection import (
    STANDARD_STRATEGIES,
    AsteroidTarget,
    DeflectionStrategy,
    assess_mission_success,
    calculate_deflection,
    calculate_launch_window,
    compare_strategies,
    cost_effectiveness,
    gravity_tractor_delta_v,
    impact_probability_reduction,
    kinetic_impactor_delta_v,
    trajectory_change,
)
from impactsim.errors import UnknownCompositionError

TARGET = AsteroidTarget(mass=1e10, velocity=20_000.0, size=150.0, distance_to_earth=0.01, impact_probability=0.01)


def test_strategy_table():
    assert set(STANDARD_STRATEGIES) == {"kinetic_impactor", "nuclear", "gravity_tractor", "ion_beam", "solar_sail"}
    assert STANDARD_STRATEGIES["nuclear"].id == "nuclear_deflection"
    ion = STANDARD_STRATEGIES["ion_beam"]
    assert (ion.delta_v, ion.lead_time, ion.cost, ion.success_rate, ion.mass_required) == (0.0005, 10.0, 2e9, 0.6, 1000.0)


def test_lead_time_must_be_positive():
    with pytest.raises(ValueError):
        DeflectionStrategy("x", "X", 0.001, 0.0, 1e8, 0.5, 100.0)


def test_trajectory_change_small_angle():
    deg = trajectory_change(0.001, 20_000.0, 0.01, 5.0)
    expected = math.degrees(0.001 * 5.0 * 365.25 * 86400.0 / (0.01 * 1.496e11))
    assert deg == pytest.approx(expected)
    # asteroid speed cancels out
    assert trajectory_change(0.001, 5_000.0, 0.01, 5.0) == pytest.approx(deg)


def test_trajectory_change_degenerate_inputs():
    assert trajectory_change(0.001, 0.0, 0.01, 5.0) == pytest.approx(trajectory_change(0.001, 1.0, 0.01, 5.0))
    assert trajectory_change(0.001, 20_000.0, 0.0, 5.0) == math.inf
    assert trajectory_change(0.0, 20_000.0, 0.0, 5.0) == 0.0


def test_probability_reduction_saturates():
    assert impact_probability_reduction(0.05, 0.01) == pytest.approx(0.005)
    assert impact_probability_reduction(5.0, 0.01) == pytest.approx(0.01)


def test_assess_mission_success_clean():
    out = assess_mission_success(STANDARD_STRATEGIES["kinetic_impactor"], 10.0, 50.0, 100.0)
    assert out.success
    assert out.probability == pytest.approx(0.85)
    assert out.factors == []


def test_assess_mission_success_all_penalties():
    out = assess_mission_success(STANDARD_STRATEGIES["ion_beam"], 1.0, 500.0, 1e10)
    assert not out.success
    assert out.probability == pytest.approx(0.6 * 0.5 * 0.8 * 0.7 * 0.9)
    assert out.factors == [
        "Insufficient lead time",
        "Large asteroid size",
        "Insufficient spacecraft mass",
        "Unproven technology",
    ]


def test_cost_effectiveness():
    assert cost_effectiveness(0.01, 1e9, 1e12) == pytest.approx(10.0)
    assert cost_effectiveness(0.01, 0.0, 1e12) == math.inf


def test_calculate_deflection_result():
    out = calculate_deflection(STANDARD_STRATEGIES["nuclear"], TARGET, 10.0)
    assert out.strategy.id == "nuclear_deflection"
    assert out.impact_probability_reduction == pytest.approx(0.01)
    assert out.time_to_implement == 3.0
    assert out.as_dict()["strategy"] == "nuclear_deflection"


def test_compare_strategies_sorted():
    results = compare_strategies(list(STANDARD_STRATEGIES.values()), TARGET, 10.0)
    ce = [r.cost_effectiveness for r in results]
    assert ce == sorted(ce, reverse=True)
    assert len(results) == 5


def test_compare_strategies_puts_nan_last():
    broken = DeflectionStrategy("broken", "Broken", 0.001, 1.0, float("nan"), 0.5, 100.0)
    results = compare_strategies([broken, STANDARD_STRATEGIES["kinetic_impactor"]], TARGET, 5.0)
    assert results[0].strategy.id == "kinetic_impactor"
    assert math.isnan(results[-1].cost_effectiveness)


def test_launch_window_ordering():
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    w = calculate_launch_window(STANDARD_STRATEGIES["kinetic_impactor"], 10.0, now=now)
    assert w.earliest_launch < w.optimal < w.latest_launch < w.impact_date
    assert w.impact_date - w.optimal == timedelta(days=5 * 365.25)
    assert w.impact_date == now + timedelta(days=10 * 365.25)
    assert w.as_dict()["optimal"].startswith("2035")


def test_kinetic_impactor_delta_v():
    dv = kinetic_impactor_delta_v(500.0, 6000.0, 5e9)
    assert dv.value == pytest.approx(1.2e-3)
    assert dv.uncertainty == pytest.approx(3e-4)
    assert dv.unit == "m/s"
    assert kinetic_impactor_delta_v(500.0, 6000.0, 5e9, "carbonaceous").value == pytest.approx(1.8e-3)
    with pytest.raises(UnknownCompositionError):
        kinetic_impactor_delta_v(500.0, 6000.0, 5e9, "icy")


def test_gravity_tractor_delta_v():
    dv = gravity_tractor_delta_v(20_000.0, 200.0, 10.0)
    assert dv == pytest.approx(6.6743e-11 * 20_000.0 / 200.0 ** 2 * 10 * 365.25 * 86400.0)
    assert gravity_tractor_delta_v(20_000.0, 200.0, 10.0, efficiency=0.5) == pytest.approx(dv / 2)

import logging

import pytest

from impactsim.validation.compare import ValidationStatus
from impactsim.validation.historical import (
    CHELYABINSK_EVENT,
    EVENT_CHECKS,
    TUNGUSKA_EVENT,
    HistoricalValidator,
    get_historical_event,
    get_historical_events,
    predict_blast_radius,
    predict_kinetic_energy,
    predict_seismic_magnitude,
    predict_thermal_radius,
)


def _by_parameter(outcomes):
    return {o.parameter: o for o in outcomes}


def test_registry_lookup():
    assert [e.name for e in get_historical_events()] == ["Tunguska", "Chelyabinsk"]
    assert get_historical_event("chelyabinsk") is CHELYABINSK_EVENT
    assert get_historical_event("Sikhote-Alin") is None
    assert TUNGUSKA_EVENT.observed_effects.blast_radius.value == 30.0
    assert CHELYABINSK_EVENT.observed_effects.injuries == 1491
    assert len(TUNGUSKA_EVENT.references) == 3


def test_tunguska_kinetic_energy():
    ke = predict_kinetic_energy(TUNGUSKA_EVENT)
    assert ke.value == pytest.approx(6e16, rel=1e-3)
    assert ke.unit == "J"
    assert ke.uncertainty == pytest.approx(6e16 * 2 ** 0.5 / 2, rel=0.01)


def test_blast_radius_uses_event_criterion():
    tunguska = predict_blast_radius(TUNGUSKA_EVENT)
    chelyabinsk = predict_blast_radius(CHELYABINSK_EVENT)
    assert tunguska.value == pytest.approx(27.9, abs=0.3)
    assert chelyabinsk.value == pytest.approx(23.0, abs=0.5)


def test_seismic_predictions():
    assert predict_seismic_magnitude(TUNGUSKA_EVENT).value == pytest.approx(5.32, abs=0.01)
    assert predict_seismic_magnitude(CHELYABINSK_EVENT).value == pytest.approx(4.40, abs=0.01)


def test_thermal_prediction_is_first_degree_radius():
    r = predict_thermal_radius(TUNGUSKA_EVENT)
    assert r.unit == "km"
    assert r.value > TUNGUSKA_EVENT.observed_effects.thermal_effects.value


def test_validate_all_events_statuses():
    outcomes = HistoricalValidator().validate_all_events()
    assert len(outcomes) == 2 * len(EVENT_CHECKS)
    assert all(o.ok for o in outcomes)

    tunguska = _by_parameter(o for o in outcomes if o.subject == "Tunguska")
    chelyabinsk = _by_parameter(o for o in outcomes if o.subject == "Chelyabinsk")

    assert tunguska["Blast Radius"].result.status in (ValidationStatus.EXCELLENT, ValidationStatus.GOOD)
    assert tunguska["Seismic Magnitude"].result.status is ValidationStatus.EXCELLENT
    assert tunguska["Kinetic Energy"].result.status is ValidationStatus.EXCELLENT
    assert chelyabinsk["Seismic Magnitude"].result.status is ValidationStatus.GOOD
    assert chelyabinsk["Blast Radius"].result.status is ValidationStatus.POOR
    assert tunguska["Thermal Effects"].result.status is ValidationStatus.POOR


def test_failing_check_is_isolated(caplog):
    def broken(event):
        raise ZeroDivisionError("no energy")

    checks = (("Broken", broken, lambda ev: ev.observed_effects.blast_radius),) + EVENT_CHECKS
    validator = HistoricalValidator(events=[TUNGUSKA_EVENT], checks=checks)

    with caplog.at_level(logging.ERROR):
        outcomes = validator.validate_all_events()

    assert len(outcomes) == 1 + len(EVENT_CHECKS)
    first = outcomes[0]
    assert not first.ok
    assert first.error == "ZeroDivisionError: no energy"
    assert all(o.ok for o in outcomes[1:])
    assert any("Broken" in rec.getMessage() for rec in caplog.records)

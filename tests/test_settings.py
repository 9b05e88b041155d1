import os

import pytest

from impactsim.config import settings


def test_defaults_are_consistent():
    settings.validate_settings()


def test_clamp_samples():
    assert settings.clamp_samples(None) == settings.MC_DEFAULT_N
    assert settings.clamp_samples(10) == settings.MC_MIN_SAMPLES
    assert settings.clamp_samples(50_000) == 50_000


@pytest.mark.parametrize("name, value", [
    ("TNT_JOULES_PER_KILOTON", 0.0),
    ("BLAST_FIT_M_PER_KM", 0.0),
    ("MC_DEFAULT_N", 10),
    ("MC_MIN_VALID_FRACTION", 0.95),
    ("LAUNCH_LATEST_FACTOR", 1.2),
    ("STATUS_THRESHOLDS", ((2.0, "EXCELLENT"), (1.0, "GOOD"))),
    ("ALBEDO_RATIO_BOUNDS", (1.5, 3.0)),
])
def test_validate_settings_rejects_bad_values(monkeypatch, name, value):
    monkeypatch.setattr(settings, name, value)
    with pytest.raises(ValueError):
        settings.validate_settings()


def test_composition_models_file_exists():
    assert os.path.isfile(settings.COMPOSITION_MODELS_FILE)

import matplotlib
import numpy as np
import pytest

matplotlib.use("Agg")

from impactsim.data.normalize import CatalogRecord, ManualRecord, NeoFeedRecord  # noqa: E402
from impactsim.engine.impact import Location  # noqa: E402


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def catalog_record():
    return CatalogRecord(
        id="2023-dw",
        name="2023 DW",
        size=50.0,
        velocity=24.6,
        mass=1.6e8,
        composition="stony",
        threat_level="medium",
        impact_probability=0.0015,
        absolute_magnitude=24.3,
        orbit={
            "semi_major_axis": 1.0,
            "eccentricity": 0.1,
            "inclination": 6.0,
            "ascending_node": 150.0,
            "perihelion": 73.0,
            "mean_anomaly": 0.0,
        },
        close_approach={"date": "2046-02-14", "distance": 0.0012, "velocity": 24.6},
    )


@pytest.fixture
def neo_feed_record():
    return NeoFeedRecord(
        neo_reference_id="3542519",
        name="(2010 PK9)",
        absolute_magnitude_h=21.4,
        is_potentially_hazardous_asteroid=True,
        est_diameter_min_m=118.0,
        est_diameter_max_m=264.0,
        closest_approach_date="2031-07-28",
        miss_distance_km="4481280.5",
        relative_velocity_km_s="16.1",
    )


@pytest.fixture
def manual_record():
    return ManualRecord(name="Test rock", diameter=60.0, velocity=20.0, composition="metallic")


@pytest.fixture
def city():
    return Location(population_density=2000.0, total_population=5e6, name="Test city")


@pytest.fixture
def tmp_output(tmp_path, monkeypatch):
    from impactsim.config import settings

    out = tmp_path / "outputs"
    monkeypatch.setattr(settings, "OUTPUT_DIR", str(out))
    return str(out)

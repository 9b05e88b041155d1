import math
import os

import pytest

from impactsim.engine.impact import BlastEffects, calculate_blast_effects
from impactsim.validation.compare import ItemOutcome
from impactsim.validation.historical import HistoricalValidator
from impactsim.visualization.plots import plot_damage_zones, plot_sigma_deviations


def test_sigma_plot_written(tmp_path, capsys):
    outcomes = HistoricalValidator().validate_all_events()
    outcomes.append(ItemOutcome("Tunguska", "Broken", error="ValueError: x"))
    path = plot_sigma_deviations(outcomes, filename="sigma.png", output_dir=str(tmp_path))
    assert os.path.isfile(path)
    assert os.path.getsize(path) > 0
    assert "[OK] Saved:" in capsys.readouterr().out


def test_damage_zone_plot_written(tmp_path):
    path = plot_damage_zones(calculate_blast_effects(1e16), filename="zones.png", output_dir=str(tmp_path))
    assert os.path.isfile(path)


def test_damage_zone_plot_skips_non_finite(tmp_path):
    blast = BlastEffects(fireball_radius=math.nan, airblast_radius=3.0, thermal_radius=math.inf, seismic_magnitude=1.0)
    assert os.path.isfile(plot_damage_zones(blast, output_dir=str(tmp_path)))


def test_damage_zone_plot_requires_a_radius(tmp_path):
    blast = BlastEffects(math.nan, 0.0, -1.0, 0.0)
    with pytest.raises(ValueError):
        plot_damage_zones(blast, output_dir=str(tmp_path))


def test_default_output_dir_follows_settings(tmp_output):
    path = plot_damage_zones(calculate_blast_effects(1e15))
    assert path.startswith(tmp_output)

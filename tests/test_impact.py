import math

import pytest

from impactsim.engine.impact import (
    ASTEROID_MATERIAL_PROPERTIES,
    ImpactParameters,
    Location,
    calculate_blast_effects,
    calculate_crater,
    calculate_enhanced_impact,
    calculate_impact,
    composition_density,
    composition_effects,
    energy_to_tnt,
    estimate_casualties,
    impact_efficiency,
    kinetic_energy,
    material_properties,
    seismic_magnitude,
)


def test_kinetic_energy_scaling():
    base = kinetic_energy(1e6, 10_000.0)
    assert base == pytest.approx(5e13)
    assert kinetic_energy(2e6, 10_000.0) == pytest.approx(2 * base)
    assert kinetic_energy(1e6, 20_000.0) == pytest.approx(4 * base)


def test_tnt_conversion_unit():
    assert energy_to_tnt(4.184e9) == pytest.approx(1.0)


def test_crater_grows_with_energy():
    sizes = [calculate_crater(e).diameter for e in (1e12, 1e14, 1e16, 1e18)]
    assert sizes == sorted(sizes)
    assert len(set(sizes)) == 4


def test_shallow_impact_makes_smaller_crater():
    assert calculate_crater(1e15, angle=15.0).diameter < calculate_crater(1e15, angle=90.0).diameter


def test_seismic_magnitude():
    assert seismic_magnitude(5e16) == pytest.approx(5.32, abs=0.01)
    assert seismic_magnitude(1.0) == 0.0
    assert math.isnan(seismic_magnitude(-1.0))


def test_blast_radii_positive_and_nested():
    blast = calculate_blast_effects(1e16)
    assert 0 < blast.fireball_radius < blast.airblast_radius
    assert blast.thermal_radius > 0


def test_blast_radii_use_unscaled_yield_fits():
    # one megaton: R = K * tnt^n / 1000 km with tnt in units of 4.184e9 J
    blast = calculate_blast_effects(4.184e15)
    assert blast.fireball_radius == pytest.approx(0.28 * 1e6 ** 0.4 / 1000)
    assert blast.fireball_radius == pytest.approx(0.0703, abs=1e-4)
    assert blast.airblast_radius == pytest.approx(2.2 * 1e6 ** 0.33 / 1000)
    assert blast.thermal_radius == pytest.approx(1.9 * 1e6 ** 0.41 / 1000)


def test_negative_energy_gives_nan_radii():
    blast = calculate_blast_effects(-1.0)
    assert math.isnan(blast.fireball_radius)
    assert math.isnan(blast.airblast_radius)


def test_casualties_never_exceed_population():
    blast = calculate_blast_effects(1e18)
    c = estimate_casualties(blast, population_density=1e5, total_population=1000.0)
    assert 0 <= c.immediate <= 1000.0
    assert 0 <= c.injured <= 1000.0
    assert c.displaced <= 1000.0


def test_empty_region_has_no_casualties():
    blast = calculate_blast_effects(1e16)
    c = estimate_casualties(blast, 0.0, 0.0)
    assert (c.immediate, c.injured, c.displaced) == (0.0, 0.0, 0.0)


def test_calculate_impact_chain(city):
    params = ImpactParameters(mass=1e8, velocity=20_000.0)
    out = calculate_impact(params, city)
    assert out.kinetic_energy == pytest.approx(2e16)
    assert out.tnt_equivalent == pytest.approx(2e16 / 4.184e9)
    assert out.crater.depth == pytest.approx(out.crater.diameter * 0.13)
    assert out.casualties.immediate > 0
    assert out.economic_impact > 0


def test_material_properties_fallback():
    assert material_properties("Metallic") is ASTEROID_MATERIAL_PROPERTIES["metallic"]
    assert material_properties("cometary") is ASTEROID_MATERIAL_PROPERTIES["unknown"]
    assert material_properties("") is ASTEROID_MATERIAL_PROPERTIES["unknown"]
    assert composition_density("stony").value == 2700
    assert composition_density("stony").uncertainty == pytest.approx(405.0)


def test_impact_efficiency_velocity_cap():
    assert impact_efficiency("stony", 10_000.0) == pytest.approx(0.85 * 1.0)
    assert impact_efficiency("stony", 1e6) == pytest.approx(0.85 * 1.1)


def test_composition_effects_by_material():
    metal = composition_effects(ImpactParameters(1e8, 20_000.0, composition="metallic"))
    carb = composition_effects(ImpactParameters(1e8, 20_000.0, composition="carbonaceous"))
    assert metal.thermal_enhancement == 1.3
    assert carb.thermal_enhancement == 0.8
    assert metal.fragmentation_altitude_km < carb.fragmentation_altitude_km
    assert carb.fragmentation_efficiency > metal.fragmentation_efficiency
    assert 0.0 <= metal.vaporized_fraction <= 1.0


def test_explicit_density_overrides_material_default():
    light = composition_effects(ImpactParameters(1e8, 20_000.0, composition="stony", density=1000.0))
    heavy = composition_effects(ImpactParameters(1e8, 20_000.0, composition="stony", density=8000.0))
    assert heavy.crater_scaling > light.crater_scaling
    assert heavy.shockwave_modification > light.shockwave_modification


def test_enhanced_impact_uses_effective_energy(city):
    params = ImpactParameters(mass=1e8, velocity=20_000.0, composition="metallic")
    out = calculate_enhanced_impact(params, city)
    assert out.total_kinetic_energy == pytest.approx(2e16)
    assert out.effective_energy == pytest.approx(2e16 * out.effects.efficiency)
    assert out.impact.kinetic_energy == out.effective_energy
    lo, hi = out.energy_range
    assert lo < out.effective_energy < hi
    lo, hi = out.crater_diameter_range
    assert lo < out.impact.crater.diameter < hi
    d = out.as_dict()
    assert d["impact"]["blast"]["thermal_radius"] == out.impact.blast.thermal_radius


def test_enhanced_impact_zero_mass_is_safe():
    out = calculate_enhanced_impact(ImpactParameters(mass=0.0, velocity=20_000.0), Location(100.0, 1e5))
    assert out.effective_energy == 0.0
    assert out.effects.vaporized_fraction == 0.0

import math

import pytest

from impactsim.data.composition import (
    bulk_density,
    classify_composition,
    composition_types,
    derive_properties,
    get_composition_model,
    implied_albedo,
    validate_properties,
)
from impactsim.errors import UnknownCompositionError


def test_model_table_loads():
    assert set(composition_types()) == {"C-type", "S-type", "M-type", "X-type"}
    s = get_composition_model("S-type")
    assert s.density.value == 2700
    assert "Eros" in s.examples


def test_unknown_composition_raises():
    with pytest.raises(UnknownCompositionError) as info:
        get_composition_model("Z-type")
    assert "Z-type" in str(info.value)
    with pytest.raises(KeyError):
        derive_properties(100.0, "Z-type", 0.5)


def test_implied_albedo_in_metres():
    assert implied_albedo(15.0, 2658.0) == pytest.approx(0.25, rel=1e-3)
    assert implied_albedo(15.0, 0.0) == math.inf


def test_spectral_type_wins():
    out = classify_composition(1000.0, 17.1, "Eros", "S")
    assert out.primary_type == "S-type"
    assert out.confidence == pytest.approx(0.9)
    assert "Spectroscopic observations" in out.evidence_sources
    assert out.alternative_types[0] == ("C-type", 0.15)


def test_lowercase_spectral_type():
    out = classify_composition(1000.0, 18.0, "anon", "cb")
    assert out.primary_type == "C-type"


def test_size_fallback_without_spectrum():
    out = classify_composition(50.0, 23.6, "2023 DW")
    assert out.primary_type == "S-type"
    assert out.confidence == pytest.approx(0.65)
    assert "No spectroscopic data available" in out.limitations
    assert out.classification_method == "Size-based statistical model"


def test_name_override_and_albedo_penalty():
    out = classify_composition(200_000.0, 30.0, "16 Psyche")
    assert out.primary_type == "M-type"
    assert out.confidence == pytest.approx(0.8 * 0.9)
    assert "Name pattern analysis" in out.evidence_sources
    assert any("Magnitude-diameter" in s for s in out.limitations)


def test_confidence_is_capped():
    out = classify_composition(1000.0, 17.1, "Eros", "S")
    assert out.confidence <= 0.95


def test_derive_properties_mass_consistent():
    props = derive_properties(500.0, "S-type", 0.6)
    volume = (4.0 / 3.0) * math.pi * 250.0 ** 3
    expected = volume * props.density.value * (1.0 - props.porosity.value)
    assert props.mass.value == pytest.approx(expected)
    assert props.mass.uncertainty > 0
    assert props.mass_confidence == pytest.approx(0.54)
    assert props.density_confidence == 0.6
    assert props.density.value == 2700
    assert props.porosity.value == pytest.approx(0.2 * (1.0 + 0.5 * 2.0 ** 0.3))
    assert bulk_density(props).value == pytest.approx(props.density.value * (1.0 - props.porosity.value))


def test_size_corrections():
    big = derive_properties(5000.0, "C-type", 0.5)
    small = derive_properties(20.0, "C-type", 0.5)
    assert big.density.value == pytest.approx(1380 * 1.1)
    assert small.density.value == pytest.approx(1380 * 0.9)
    assert small.strength.value > big.strength.value
    assert small.porosity.value <= 0.8


def test_validate_properties_against_measured_bodies():
    eros = validate_properties("Eros", derive_properties(16_840.0, "S-type", 0.9))
    assert eros.is_valid
    assert {c.property for c in eros.results} == {"density", "porosity"}
    assert all(c.agreement == "good" for c in eros.results)

    itokawa = validate_properties("Itokawa", derive_properties(330.0, "S-type", 0.9))
    density = next(c for c in itokawa.results if c.property == "density")
    assert density.agreement == "fair"
    assert itokawa.is_valid

    bennu = validate_properties("Bennu", derive_properties(490.0, "M-type", 0.5))
    assert not bennu.is_valid


def test_validate_properties_unknown_body():
    out = validate_properties("Nobody", derive_properties(100.0, "S-type", 0.5))
    assert out.is_valid
    assert out.results[0].property == "all"

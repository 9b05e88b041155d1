# impactsim/data/composition.py
"""
Composition classification and property derivation.

Models are loaded once from config/composition_models.json and treated as
read-only for the lifetime of the process.
"""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from impactsim.config import settings
from impactsim.errors import UnknownCompositionError
from impactsim.physics.uncertain import UncertainValue
from impactsim.physics.uncertainty import Factor, propagate_multiplicative

log = logging.getLogger(__name__)

SPECTRAL_TYPES: Dict[str, Tuple[str, float]] = {
    "C": ("C-type", 0.9),
    "B": ("C-type", 0.85),
    "F": ("C-type", 0.8),
    "G": ("C-type", 0.8),
    "S": ("S-type", 0.9),
    "Q": ("S-type", 0.85),
    "V": ("S-type", 0.8),
    "M": ("M-type", 0.85),
    "E": ("M-type", 0.75),
    "X": ("X-type", 0.7),
}

NAME_PATTERNS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("psyche", "kleopatra"), "M-type"),
    (("ceres", "pallas"), "C-type"),
    (("vesta", "eros", "itokawa"), "S-type"),
)
NAME_MATCH_CONFIDENCE = 0.8
NAME_DEFAULT = ("S-type", 0.3)

ALTERNATIVES: Dict[str, List[Tuple[str, float]]] = {
    "C-type": [("S-type", 0.2), ("X-type", 0.1)],
    "S-type": [("C-type", 0.15), ("M-type", 0.05)],
    "M-type": [("X-type", 0.3), ("S-type", 0.1)],
}

DEFAULT_ALBEDO = 0.15


@dataclass(frozen=True)
class PropertyModel:
    value: float
    uncertainty: float
    min: Optional[float] = None
    max: Optional[float] = None
    unit: str = ""
    source: str = ""
    description: str = ""

    def as_uncertain(self) -> UncertainValue:
        return UncertainValue(self.value, self.uncertainty, self.unit, self.source, self.description)


@dataclass(frozen=True)
class CompositionModel:
    type: str
    description: str
    density: PropertyModel
    porosity: PropertyModel
    strength: PropertyModel
    albedo: PropertyModel
    composition: Mapping[str, float]
    examples: Tuple[str, ...]
    spectral_class: Tuple[str, ...]
    formation_region: str


@dataclass(frozen=True)
class ClassificationResult:
    primary_type: str
    confidence: float
    alternative_types: List[Tuple[str, float]]
    classification_method: str
    evidence_sources: List[str]
    limitations: List[str]

    def as_dict(self) -> Dict[str, object]:
        return {
            "primary_type": self.primary_type,
            "confidence": self.confidence,
            "alternative_types": [{"type": t, "probability": p} for t, p in self.alternative_types],
            "classification_method": self.classification_method,
            "evidence_sources": list(self.evidence_sources),
            "limitations": list(self.limitations),
        }


@dataclass(frozen=True)
class DerivedProperties:
    mass: UncertainValue
    density: UncertainValue
    strength: UncertainValue
    porosity: UncertainValue
    albedo: UncertainValue
    mass_confidence: float
    density_confidence: float

    def as_dict(self) -> Dict[str, object]:
        return {
            "mass": self.mass.as_dict(),
            "density": self.density.as_dict(),
            "strength": self.strength.as_dict(),
            "porosity": self.porosity.as_dict(),
            "albedo": self.albedo.as_dict(),
            "mass_confidence": self.mass_confidence,
            "density_confidence": self.density_confidence,
        }


@dataclass(frozen=True)
class PropertyCheck:
    property: str
    derived: float
    agreement: str  # good | fair | poor
    notes: str
    measured: Optional[float] = None


@dataclass(frozen=True)
class PropertyValidation:
    is_valid: bool
    results: List[PropertyCheck] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Model table
# ---------------------------------------------------------------------------

def _property(raw: Mapping[str, object]) -> PropertyModel:
    return PropertyModel(
        value=float(raw["value"]),
        uncertainty=float(raw["uncertainty"]),
        min=raw.get("min"),
        max=raw.get("max"),
        unit=str(raw.get("unit", "")),
        source=str(raw.get("source", "")),
        description=str(raw.get("description", "")),
    )


@lru_cache(maxsize=None)
def _load_table(path: str = settings.COMPOSITION_MODELS_FILE):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    models: Dict[str, CompositionModel] = {}
    for key, raw in data["asteroid_compositions"].items():
        models[key] = CompositionModel(
            type=raw.get("type", key),
            description=raw.get("description", ""),
            density=_property(raw["density"]),
            porosity=_property(raw["porosity"]),
            strength=_property(raw["strength"]),
            albedo=_property(raw["albedo"]),
            composition=MappingProxyType(dict(raw.get("composition", {}))),
            examples=tuple(raw.get("examples", ())),
            spectral_class=tuple(raw.get("spectralClass", ())),
            formation_region=raw.get("formationRegion", ""),
        )

    reference: Dict[str, Dict[str, PropertyModel]] = {}
    for name, props in data.get("validation_data", {}).get("well_characterized_asteroids", {}).items():
        reference[name] = {k: _property(v) for k, v in props.items()}

    log.debug("Loaded %d composition models from %s", len(models), path)
    return MappingProxyType(models), MappingProxyType(reference)


def composition_types() -> List[str]:
    return list(_load_table()[0].keys())


def get_composition_model(key: str) -> CompositionModel:
    models = _load_table()[0]
    if key not in models:
        raise UnknownCompositionError(key)
    return models[key]


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def _by_spectral_type(spectral_type: str) -> Optional[Tuple[str, float]]:
    if not spectral_type:
        return None
    return SPECTRAL_TYPES.get(spectral_type.strip()[:1].upper())


def _by_size(diameter: float) -> Tuple[str, float]:
    if diameter > 1000:
        return "C-type", 0.7
    if diameter > 100:
        return "S-type", 0.6
    return "S-type", 0.65


def _by_name(name: str) -> Tuple[str, float]:
    lower = (name or "").lower()
    for patterns, ctype in NAME_PATTERNS:
        if any(p in lower for p in patterns):
            return ctype, NAME_MATCH_CONFIDENCE
    return NAME_DEFAULT


def implied_albedo(absolute_magnitude: float, diameter: float) -> float:
    """Invert D = 1329 km * 10^(-0.2 H) / sqrt(albedo) for a diameter in metres."""
    if diameter <= 0:
        return math.inf
    return (1329.0e3 * 10.0 ** (-0.2 * absolute_magnitude) / diameter) ** 2


def albedo_consistent(absolute_magnitude: float, diameter: float, ctype: str) -> Tuple[bool, float, float]:
    models = _load_table()[0]
    expected = models[ctype].albedo.value if ctype in models else DEFAULT_ALBEDO
    implied = implied_albedo(absolute_magnitude, diameter)
    lo, hi = settings.ALBEDO_RATIO_BOUNDS
    ratio = implied / expected
    return lo < ratio < hi, expected, implied


def classify_composition(
    diameter: float,
    absolute_magnitude: float,
    name: str,
    spectral_type: Optional[str] = None,
) -> ClassificationResult:
    evidence: List[str] = []
    limitations: List[str] = []

    primary, confidence = "S-type", 0.3

    if spectral_type:
        hit = _by_spectral_type(spectral_type)
        if hit:
            primary, confidence = hit
            evidence.append("Spectroscopic observations")
    else:
        limitations.append("No spectroscopic data available")
        primary, confidence = _by_size(diameter)
        evidence.append("Size-based statistical model")

    name_type, name_conf = _by_name(name)
    if name_conf > settings.NAME_OVERRIDE_CONFIDENCE and name_conf > confidence:
        primary, confidence = name_type, name_conf
        evidence.append("Name pattern analysis")
    elif name_conf > confidence * 0.5:
        evidence.append("Name pattern analysis")

    ok, _, _ = albedo_consistent(absolute_magnitude, diameter, primary)
    if not ok:
        confidence *= settings.ALBEDO_PENALTY
        limitations.append("Magnitude-diameter relationship suggests different composition")

    alternatives = sorted(ALTERNATIVES.get(primary, []), key=lambda a: a[1], reverse=True)

    return ClassificationResult(
        primary_type=primary,
        confidence=min(confidence, settings.MAX_CLASSIFICATION_CONFIDENCE),
        alternative_types=alternatives,
        classification_method=", ".join(evidence) or "Default heuristic",
        evidence_sources=evidence,
        limitations=limitations,
    )


# ---------------------------------------------------------------------------
# Property derivation
# ---------------------------------------------------------------------------

def _density_factor(diameter: float) -> float:
    # compaction in large bodies, looser small ones
    if diameter > 1000:
        return 1.1
    if diameter < 100:
        return 0.9
    return 1.0


def _strength_factor(diameter: float) -> float:
    return (100.0 / max(diameter, 1.0)) ** 0.2


def _porosity_factor(diameter: float) -> float:
    if diameter < 1000:
        ratio = 1000.0 / diameter if diameter > 0 else math.inf
        return 1.0 + 0.5 * ratio ** 0.3
    return 1.0


def derive_properties(diameter: float, composition_type: str, confidence: float) -> DerivedProperties:
    model = get_composition_model(composition_type)

    df = _density_factor(diameter)
    density = UncertainValue(
        model.density.value * df,
        model.density.uncertainty * (1.0 + abs(df - 1.0)),
        "kg/m³",
        f"{composition_type} composition model with size corrections",
    )

    sf = _strength_factor(diameter)
    strength = UncertainValue(
        model.strength.value * sf,
        model.strength.uncertainty * sf,
        "Pa",
        f"{composition_type} composition model",
        f"{model.strength.description} (size-corrected)",
    )

    pf = _porosity_factor(diameter)
    porosity = UncertainValue(
        min(model.porosity.value * pf, settings.MAX_POROSITY),
        model.porosity.uncertainty * pf,
        "",
        f"{composition_type} composition model",
        f"{model.porosity.description} (size-corrected)",
    )

    albedo = model.albedo.as_uncertain().with_source(f"{composition_type} composition model")

    volume = (4.0 / 3.0) * math.pi * (diameter / 2.0) ** 3
    solid = 1.0 - porosity.value
    bulk = density.value * solid
    bulk_sigma = math.hypot(density.uncertainty * solid, density.value * porosity.uncertainty)
    volume_sigma = 3.0 * volume * settings.DIAMETER_RELATIVE_ERROR

    mass = volume * bulk
    mass_sigma = math.hypot(volume_sigma * bulk, volume * bulk_sigma)

    return DerivedProperties(
        mass=UncertainValue(
            mass,
            mass_sigma,
            "kg",
            f"Volume × bulk density ({composition_type} model with size corrections)",
        ),
        density=density,
        strength=strength,
        porosity=porosity,
        albedo=albedo,
        mass_confidence=confidence * settings.MASS_CONFIDENCE_FACTOR,
        density_confidence=confidence,
    )


def bulk_density(props: DerivedProperties) -> UncertainValue:
    """Grain density times solid fraction, with first-order uncertainty."""
    solid = UncertainValue(1.0 - props.porosity.value, props.porosity.uncertainty)
    out = propagate_multiplicative([Factor.of(props.density), Factor.of(solid)])
    return UncertainValue(out.value, out.uncertainty, "kg/m³", props.density.source, "Bulk density")


# ---------------------------------------------------------------------------
# Validation against measured bodies
# ---------------------------------------------------------------------------

def assess_agreement(measured: float, derived: float, sigma_measured: float, sigma_derived: float) -> str:
    diff = abs(measured - derived)
    combined = math.hypot(sigma_measured, sigma_derived)
    if diff <= settings.PROPERTY_GOOD_SIGMA * combined:
        return "good"
    if diff <= settings.PROPERTY_FAIR_SIGMA * combined:
        return "fair"
    return "poor"


def validate_properties(name: str, derived: DerivedProperties) -> PropertyValidation:
    reference = _load_table()[1].get("_".join((name or "").split()))
    if reference is None:
        return PropertyValidation(
            True,
            [PropertyCheck("all", 0.0, "fair", "No validation data available for this asteroid")],
        )

    checks: List[PropertyCheck] = []
    valid = True
    for prop, unit in (("density", " kg/m³"), ("porosity", "")):
        known = reference.get(prop)
        if known is None:
            continue
        ours: UncertainValue = getattr(derived, prop)
        agreement = assess_agreement(known.value, ours.value, known.uncertainty, ours.uncertainty)
        checks.append(PropertyCheck(
            property=prop,
            measured=known.value,
            derived=ours.value,
            agreement=agreement,
            notes=f"Measured: {known.value:g}±{known.uncertainty:g}{unit}",
        ))
        if agreement == "poor":
            valid = False

    return PropertyValidation(valid, checks)

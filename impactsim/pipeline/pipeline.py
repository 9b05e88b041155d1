import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from impactsim.config import settings
from impactsim.data.composition import (
    DEFAULT_ALBEDO,
    ClassificationResult,
    DerivedProperties,
    classify_composition,
    derive_properties,
)
from impactsim.data.normalize import AsteroidParameters, RawRecord, normalize
from impactsim.engine.deflection import (
    STANDARD_STRATEGIES,
    AsteroidTarget,
    DeflectionResult,
    DeflectionStrategy,
    compare_strategies,
)
from impactsim.engine.impact import EnhancedImpactResult, Location, calculate_enhanced_impact
from impactsim.physics.orbital import CloseApproach, calculate_close_approach

log = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    asteroid: AsteroidParameters
    classification: ClassificationResult
    properties: DerivedProperties
    impact: EnhancedImpactResult
    close_approach: Optional[CloseApproach]
    warning_years: float
    deflection: List[DeflectionResult] = field(default_factory=list)

    @property
    def best_strategy(self) -> Optional[DeflectionResult]:
        return self.deflection[0] if self.deflection else None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "asteroid": self.asteroid.as_dict(),
            "classification": self.classification.as_dict(),
            "properties": self.properties.as_dict(),
            "impact": self.impact.as_dict(),
            "close_approach": self.close_approach.as_dict() if self.close_approach else None,
            "warning_years": self.warning_years,
            "deflection": [d.as_dict() for d in self.deflection],
        }


def _magnitude(asteroid: AsteroidParameters) -> float:
    if asteroid.absolute_magnitude is not None:
        return asteroid.absolute_magnitude
    # H consistent with a middling albedo so a missing magnitude does not bias classification
    return 5.0 * math.log10(1329.0e3 / (asteroid.diameter * math.sqrt(DEFAULT_ALBEDO)))


def years_until(date: Optional[str], now: Optional[datetime] = None) -> float:
    if not date or date == "Unknown":
        return settings.DEFAULT_WARNING_YEARS
    try:
        when = datetime.fromisoformat(date)
    except ValueError:
        log.warning("Unparseable approach date %r, assuming %.0f years", date, settings.DEFAULT_WARNING_YEARS)
        return settings.DEFAULT_WARNING_YEARS
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    years = (when - now).total_seconds() / settings.SECONDS_PER_YEAR
    return max(years, settings.MIN_WARNING_YEARS)


def run_pipeline(
    record: RawRecord,
    location: Location,
    strategies: Optional[Sequence[DeflectionStrategy]] = None,
    warning_years: Optional[float] = None,
    angle: float = 45.0,
) -> PipelineResult:
    # Stage 1: boundary normalization
    asteroid = normalize(record)
    log.info("Normalized %s (%s): completeness %.2f", asteroid.name, asteroid.source, asteroid.data_completeness)

    # Stage 2: composition and derived properties
    classification = classify_composition(
        asteroid.diameter, _magnitude(asteroid), asteroid.name, asteroid.spectral_complex
    )
    properties = derive_properties(asteroid.diameter, classification.primary_type, classification.confidence)

    # Stage 3: impact effects
    impact = calculate_enhanced_impact(asteroid.impact_parameters(angle), location)

    # Stage 4: close approach, when an orbit is known
    approach = None
    if asteroid.orbital_elements is not None:
        epoch = asteroid.orbital_elements.epoch
        approach = calculate_close_approach(asteroid.orbital_elements, epoch, epoch + settings.PIPELINE_SEARCH_DAYS)
        log.info("Closest approach %.6f AU at JD %.2f", approach.distance_au, approach.jd)

    # Stage 5: deflection options
    if approach is not None and math.isfinite(approach.distance_au):
        distance = approach.distance_au
    elif asteroid.close_approach is not None and asteroid.close_approach.distance > 0:
        distance = asteroid.close_approach.distance
    else:
        distance = settings.DEFAULT_TARGET_DISTANCE_AU

    if warning_years is None:
        warning_years = years_until(asteroid.close_approach.date if asteroid.close_approach else None)

    target = AsteroidTarget(
        mass=asteroid.mass,
        velocity=asteroid.velocity * 1000.0,
        size=asteroid.diameter,
        distance_to_earth=distance,
        impact_probability=asteroid.impact_probability or settings.DEFAULT_IMPACT_PROBABILITY,
    )
    options = list(STANDARD_STRATEGIES.values()) if strategies is None else list(strategies)
    ranked = compare_strategies(options, target, warning_years)

    return PipelineResult(
        asteroid=asteroid,
        classification=classification,
        properties=properties,
        impact=impact,
        close_approach=approach,
        warning_years=warning_years,
        deflection=ranked,
    )

# impactsim/validation/benchmarks.py
"""
Orbital-mechanics benchmarks: Kepler solver cases with known answers and
two benchmark asteroids with reference positions and close approaches.

Reference data: JPL Horizons / Small-Body Database; Meeus (1998).
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from impactsim.config.settings import (
    AU_KM,
    BENCHMARK_SEARCH_WINDOW_DAYS,
    KEPLER_PREDICTED_SIGMA,
    PREDICTED_POSITION_SIGMA_AU,
    REFERENCE_POSITION_SIGMA_AU,
)
from impactsim.physics.kepler import solve_kepler
from impactsim.physics.orbital import OrbitalElements, calculate_close_approach, calculate_position
from impactsim.physics.uncertain import UncertainValue
from impactsim.validation.compare import ItemOutcome, evaluate

log = logging.getLogger(__name__)

ELEMENT_FIELDS = (
    "semi_major_axis",
    "eccentricity",
    "inclination",
    "longitude_of_ascending_node",
    "argument_of_periapsis",
    "mean_anomaly",
)

Vector = Tuple[float, float, float]


@dataclass(frozen=True)
class ReferencePosition:
    jd: float
    position: Vector  # AU, J2000 ecliptic
    velocity: Vector  # AU/day
    uncertainty: Optional[Vector] = None  # km


@dataclass(frozen=True)
class ReferenceApproach:
    jd: float
    distance: UncertainValue  # AU
    velocity: UncertainValue  # km/s


@dataclass(frozen=True)
class BenchmarkAsteroid:
    designation: str
    name: str
    reference_elements: Dict[str, UncertainValue]
    epoch: float
    positions: Tuple[ReferencePosition, ...]
    close_approaches: Tuple[ReferenceApproach, ...]
    references: Tuple[str, ...]

    @property
    def label(self) -> str:
        return f"{self.designation} {self.name}".strip()

    @property
    def elements(self) -> OrbitalElements:
        return OrbitalElements(
            epoch=self.epoch,
            **{f: self.reference_elements[f].value for f in ELEMENT_FIELDS},
        )


@dataclass(frozen=True)
class KeplerTestCase:
    eccentricity: float
    mean_anomaly: float
    expected: float
    uncertainty: float = 1e-15


def _elements(source: str, values: Sequence[float], sigmas: Sequence[float]) -> Dict[str, UncertainValue]:
    units = ("AU", "", "degrees", "degrees", "degrees", "degrees")
    return {
        name: UncertainValue(v, s, unit, source)
        for name, v, s, unit in zip(ELEMENT_FIELDS, values, sigmas, units)
    }


BENCHMARK_ASTEROIDS: Tuple[BenchmarkAsteroid, ...] = (
    BenchmarkAsteroid(
        designation="99942",
        name="Apophis",
        reference_elements=_elements(
            "JPL Solution 212",
            (0.9224, 0.1914, 3.3312, 204.446, 126.394, 245.837),
            (1e-8, 1e-6, 1e-4, 1e-4, 1e-4, 1e-4),
        ),
        epoch=2460000.5,
        positions=(
            ReferencePosition(2460000.5, (-0.6089, 0.7932, 0.0892), (-0.0134, -0.0098, -0.0008)),
            ReferencePosition(2460365.5, (0.2156, -1.1234, -0.0456), (0.0187, 0.0034, 0.0012)),
        ),
        close_approaches=(
            # 2029-Apr-13
            ReferenceApproach(
                2462240.5,
                UncertainValue(0.000255, 1e-8, "AU", "JPL Horizons"),
                UncertainValue(7.42, 0.01, "km/s", "JPL Horizons"),
            ),
        ),
        references=(
            "Giorgini, J.D., et al. (2008). Predicting the Earth encounters of (99942) Apophis. Icarus, 193(1), 1-19.",
            "JPL Small-Body Database: https://ssd.jpl.nasa.gov/tools/sbdb_lookup.html#/?sstr=99942",
        ),
    ),
    BenchmarkAsteroid(
        designation="1566",
        name="Icarus",
        reference_elements=_elements(
            "JPL Solution 45",
            (1.0778, 0.8268, 22.8282, 88.0034, 31.3186, 127.6543),
            (1e-7, 1e-6, 1e-4, 1e-4, 1e-4, 1e-4),
        ),
        epoch=2460000.5,
        positions=(
            ReferencePosition(2460000.5, (0.1876, 0.0234, 0.0123), (-0.0045, 0.0298, 0.0089)),
            ReferencePosition(2460365.5, (-0.9876, 0.5432, 0.2345), (-0.0123, -0.0234, -0.0067)),
        ),
        close_approaches=(
            ReferenceApproach(
                2461234.5,
                UncertainValue(0.042, 1e-6, "AU", "JPL Horizons"),
                UncertainValue(12.3, 0.1, "km/s", "JPL Horizons"),
            ),
        ),
        references=(
            "Pettengill, G.H., et al. (1969). Radar observations of Icarus. Icarus, 10(3), 432-435.",
            "JPL Small-Body Database: https://ssd.jpl.nasa.gov/tools/sbdb_lookup.html#/?sstr=1566",
        ),
    ),
)

KEPLER_TEST_CASES: Tuple[KeplerTestCase, ...] = (
    KeplerTestCase(0.0, 0.0, 0.0),
    KeplerTestCase(0.0, math.pi / 2, math.pi / 2),
    KeplerTestCase(0.5, 0.0, 0.0),
    KeplerTestCase(0.5, math.pi, math.pi),
    # four-figure reference value, hence the looser sigma
    KeplerTestCase(0.9, math.pi / 4, 1.6800, 1e-4),
)


def get_benchmark_asteroids() -> List[BenchmarkAsteroid]:
    return list(BENCHMARK_ASTEROIDS)


def get_benchmark_asteroid(designation: str) -> Optional[BenchmarkAsteroid]:
    for asteroid in BENCHMARK_ASTEROIDS:
        if designation in (asteroid.designation, asteroid.name):
            return asteroid
    return None


# (designation) -> elements from an external service, e.g. SBDBFetcher.fetch_elements
ElementsFetcher = Callable[[str], OrbitalElements]


class OrbitalBenchmarker:
    def __init__(
        self,
        asteroids: Optional[Sequence[BenchmarkAsteroid]] = None,
        kepler_cases: Sequence[KeplerTestCase] = KEPLER_TEST_CASES,
        fetch_elements: Optional[ElementsFetcher] = None,
        search_window_days: float = BENCHMARK_SEARCH_WINDOW_DAYS,
    ):
        self.asteroids = list(BENCHMARK_ASTEROIDS if asteroids is None else asteroids)
        self.kepler_cases = list(kepler_cases)
        self.fetch_elements = fetch_elements
        self.search_window_days = float(search_window_days)

    def _failed(self, subject: str, parameter: str, exc: Exception) -> ItemOutcome:
        log.exception("Benchmark %s / %s failed", subject, parameter)
        return ItemOutcome(subject, parameter, error=f"{type(exc).__name__}: {exc}")

    def validate_kepler_solver(self) -> List[ItemOutcome]:
        subject = "Kepler Solver Test"
        outcomes: List[ItemOutcome] = []
        for i, case in enumerate(self.kepler_cases, start=1):
            parameter = f"Test Case {i} (e={case.eccentricity})"
            try:
                E = solve_kepler(case.mean_anomaly, case.eccentricity)
                predicted = UncertainValue(E, KEPLER_PREDICTED_SIGMA, "radians", "Calculated")
                reference = UncertainValue(case.expected, case.uncertainty, "radians", "Analytical/Reference")
                outcomes.append(ItemOutcome(subject, parameter, result=evaluate(subject, parameter, predicted, reference, 0.0)))
            except Exception as exc:
                outcomes.append(self._failed(subject, parameter, exc))
        return outcomes

    def validate_positions(self, asteroid: BenchmarkAsteroid) -> List[ItemOutcome]:
        outcomes: List[ItemOutcome] = []
        elements = asteroid.elements
        for point in asteroid.positions:
            try:
                state = calculate_position(elements, point.jd)
            except Exception as exc:
                outcomes.append(self._failed(asteroid.label, f"Position @ JD {point.jd}", exc))
                continue

            for k, axis in enumerate("XYZ"):
                parameter = f"Position {axis}"
                predicted = UncertainValue(float(state.position_au[k]), PREDICTED_POSITION_SIGMA_AU, "AU", "Calculated")
                ref_sigma = point.uncertainty[k] / AU_KM if point.uncertainty else REFERENCE_POSITION_SIGMA_AU
                reference = UncertainValue(point.position[k], ref_sigma, "AU", "JPL Horizons")
                outcomes.append(
                    ItemOutcome(asteroid.label, parameter, result=evaluate(asteroid.label, parameter, predicted, reference, point.jd))
                )
        return outcomes

    def validate_close_approaches(self, asteroid: BenchmarkAsteroid) -> List[ItemOutcome]:
        outcomes: List[ItemOutcome] = []
        elements = asteroid.elements
        w = self.search_window_days
        for approach in asteroid.close_approaches:
            try:
                found = calculate_close_approach(elements, approach.jd - w, approach.jd + w)
            except Exception as exc:
                outcomes.append(self._failed(asteroid.label, "Close Approach", exc))
                continue

            distance = UncertainValue(found.distance_au, PREDICTED_POSITION_SIGMA_AU, "AU", "Calculated")
            velocity = UncertainValue(found.velocity_km_s, 0.0, "km/s", "Calculated")
            for parameter, predicted, reference in (
                ("Close Approach Distance", distance, approach.distance),
                ("Close Approach Velocity", velocity, approach.velocity),
            ):
                result = evaluate(asteroid.label, parameter, predicted, reference, approach.jd)
                outcomes.append(ItemOutcome(asteroid.label, parameter, result=result, extra={"found_jd": found.jd}))
        return outcomes

    def validate_against_fetched(self, asteroid: BenchmarkAsteroid) -> List[ItemOutcome]:
        """Compare registry elements with the ones returned by fetch_elements."""
        if self.fetch_elements is None:
            return []
        try:
            fetched = self.fetch_elements(asteroid.designation)
        except Exception as exc:
            return [self._failed(asteroid.label, "Fetched Elements", exc)]

        outcomes: List[ItemOutcome] = []
        for name in ELEMENT_FIELDS:
            ref = asteroid.reference_elements[name]
            predicted = UncertainValue(getattr(fetched, name), 0.0, ref.unit, "Fetched")
            parameter = f"Element {name}"
            outcomes.append(
                ItemOutcome(asteroid.label, parameter, result=evaluate(asteroid.label, parameter, predicted, ref, fetched.epoch))
            )
        return outcomes

    def validate_all_orbital_mechanics(self) -> List[ItemOutcome]:
        outcomes = self.validate_kepler_solver()
        for asteroid in self.asteroids:
            outcomes.extend(self.validate_positions(asteroid))
            outcomes.extend(self.validate_close_approaches(asteroid))
            outcomes.extend(self.validate_against_fetched(asteroid))
        log.info("Orbital benchmarks: %d items, %d failed", len(outcomes), sum(not o.ok for o in outcomes))
        return outcomes

# impactsim/physics/orbital.py
"""
Two-body heliocentric propagation and Earth close-approach search.

Frame: J2000 ecliptic, heliocentric. Positions in AU (and km), velocities in
AU/day (and km/s). Elements are never rejected: degenerate input (a <= 0,
e >= 1, odd angles) yields a finite but meaningless state.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from impactsim.config.settings import (
    AU_KM,
    AU_M,
    CLOSE_APPROACH_STEP_DAYS,
    CLOSE_APPROACH_TOLERANCE_DAYS,
    EARTH_ECCENTRICITY,
    J2000_JD,
    MU_SUN,
    SECONDS_PER_DAY,
)
from impactsim.physics.kepler import solve_kepler, validate_orbital_elements

GOLDEN = (math.sqrt(5.0) - 1.0) / 2.0
_MIN_DENOM = 1e-12


@dataclass(frozen=True)
class OrbitalElements:
    semi_major_axis: float  # AU
    eccentricity: float
    inclination: float  # deg
    longitude_of_ascending_node: float  # deg
    argument_of_periapsis: float  # deg
    mean_anomaly: float  # deg, at epoch
    epoch: float = J2000_JD  # JD

    def validate(self) -> Tuple[bool, List[str], List[str]]:
        return validate_orbital_elements(
            self.semi_major_axis, self.eccentricity, self.mean_anomaly, self.inclination
        )

    def as_dict(self) -> Dict[str, float]:
        return {
            "semi_major_axis": self.semi_major_axis,
            "eccentricity": self.eccentricity,
            "inclination": self.inclination,
            "longitude_of_ascending_node": self.longitude_of_ascending_node,
            "argument_of_periapsis": self.argument_of_periapsis,
            "mean_anomaly": self.mean_anomaly,
            "epoch": self.epoch,
        }


@dataclass(frozen=True)
class OrbitalState:
    position_au: np.ndarray
    velocity_au_per_day: np.ndarray
    jd: float

    @property
    def position_km(self) -> np.ndarray:
        return self.position_au * AU_KM

    @property
    def velocity_km_s(self) -> np.ndarray:
        return self.velocity_au_per_day * AU_KM / SECONDS_PER_DAY

    @property
    def distance_au(self) -> float:
        return float(np.linalg.norm(self.position_au))

    def as_dict(self) -> Dict[str, object]:
        return {
            "jd": self.jd,
            "position_au": self.position_au.tolist(),
            "velocity_au_per_day": self.velocity_au_per_day.tolist(),
        }


@dataclass(frozen=True)
class CloseApproach:
    jd: float
    distance_au: float
    velocity_km_s: float

    @property
    def distance_km(self) -> float:
        return self.distance_au * AU_KM

    def as_dict(self) -> Dict[str, float]:
        return {"jd": self.jd, "distance_au": self.distance_au, "velocity_km_s": self.velocity_km_s}


def mean_motion(a_au: float) -> float:
    """rad/s; 0 for a degenerate semi-major axis."""
    a_m = abs(a_au) * AU_M
    if a_m == 0.0:
        return 0.0
    return math.sqrt(MU_SUN / a_m ** 3)


def orbital_period_days(elements: OrbitalElements) -> float:
    n = mean_motion(elements.semi_major_axis)
    return math.inf if n == 0.0 else 2.0 * math.pi / n / SECONDS_PER_DAY


def _rotation(elements: OrbitalElements) -> np.ndarray:
    """Perifocal -> ecliptic: Rz(Omega) Rx(i) Rz(omega)."""
    O = math.radians(elements.longitude_of_ascending_node)
    w = math.radians(elements.argument_of_periapsis)
    i = math.radians(elements.inclination)
    cO, sO = math.cos(O), math.sin(O)
    cw, sw = math.cos(w), math.sin(w)
    ci, si = math.cos(i), math.sin(i)
    return np.array([
        [cO * cw - sO * sw * ci, -cO * sw - sO * cw * ci, sO * si],
        [sO * cw + cO * sw * ci, -sO * sw + cO * cw * ci, -cO * si],
        [sw * si, cw * si, ci],
    ])


def calculate_position(elements: OrbitalElements, jd: float) -> OrbitalState:
    a = abs(elements.semi_major_axis)
    e = elements.eccentricity
    n = mean_motion(a)

    M = math.radians(elements.mean_anomaly) + n * (jd - elements.epoch) * SECONDS_PER_DAY
    E = solve_kepler(M, e)

    cos_e, sin_e = math.cos(E), math.sin(E)
    beta = math.sqrt(abs(1.0 - e * e))
    denom = 1.0 - e * cos_e
    if abs(denom) < _MIN_DENOM:
        denom = math.copysign(_MIN_DENOM, denom)

    # perifocal frame, AU and AU/day
    r_pf = np.array([a * (cos_e - e), a * beta * sin_e, 0.0])
    edot = n * SECONDS_PER_DAY / denom
    v_pf = np.array([-a * sin_e * edot, a * beta * cos_e * edot, 0.0])

    R = _rotation(elements)
    return OrbitalState(position_au=R @ r_pf, velocity_au_per_day=R @ v_pf, jd=float(jd))


def earth_position(jd: float) -> np.ndarray:
    """Heliocentric Earth position (AU) from a truncated VSOP87 mean-longitude model, z = 0."""
    T = (jd - J2000_JD) / 36525.0
    L = 280.4664567 + 36000.76982779 * T + 0.0003032028 * T * T
    M = 357.5291092 + 35999.0502909 * T - 0.0001536667 * T * T
    M_rad = math.radians(M % 360.0)
    C = (
        (1.9146 - 0.004817 * T - 0.000014 * T * T) * math.sin(M_rad)
        + (0.019993 - 0.000101 * T) * math.sin(2.0 * M_rad)
        + 0.000289 * math.sin(3.0 * M_rad)
    )
    lon = math.radians((L + C) % 360.0)
    r = 1.000001018 * (1.0 - EARTH_ECCENTRICITY * math.cos(M_rad))
    return np.array([r * math.cos(lon), r * math.sin(lon), 0.0])


def relative_position(elements: OrbitalElements, jd: float) -> np.ndarray:
    return calculate_position(elements, jd).position_au - earth_position(jd)


def earth_distance(elements: OrbitalElements, jd: float) -> float:
    return float(np.linalg.norm(relative_position(elements, jd)))


def relative_speed_km_s(elements: OrbitalElements, jd: float, h_days: float = 1e-3) -> float:
    d = (relative_position(elements, jd + h_days) - relative_position(elements, jd - h_days)) / (2.0 * h_days)
    return float(np.linalg.norm(d) * AU_KM / SECONDS_PER_DAY)


def _golden_min(f, lo: float, hi: float, tol: float) -> float:
    c = hi - GOLDEN * (hi - lo)
    d = lo + GOLDEN * (hi - lo)
    fc, fd = f(c), f(d)
    while hi - lo > tol:
        if fc < fd:
            hi, d, fd = d, c, fc
            c = hi - GOLDEN * (hi - lo)
            fc = f(c)
        else:
            lo, c, fc = c, d, fd
            d = lo + GOLDEN * (hi - lo)
            fd = f(d)
    return 0.5 * (lo + hi)


def calculate_close_approach(
    elements: OrbitalElements,
    start_jd: float,
    end_jd: float,
    step_days: float = CLOSE_APPROACH_STEP_DAYS,
    tol_days: float = CLOSE_APPROACH_TOLERANCE_DAYS,
) -> CloseApproach:
    """
    Minimum Earth distance inside [start_jd, end_jd].

    Coarse scan on a fixed grid, then golden-section refinement inside the
    two grid intervals around the best sample.
    """
    if not end_jd > start_jd:
        raise ValueError("end_jd must be after start_jd")
    if step_days <= 0:
        raise ValueError("step_days must be > 0")

    times = np.arange(start_jd, end_jd, step_days, dtype=float)
    times = np.append(times, end_jd)
    dists = np.array([earth_distance(elements, t) for t in times])

    if not np.any(np.isfinite(dists)):
        return CloseApproach(float(times[0]), math.nan, math.nan)

    idx = int(np.nanargmin(dists))
    lo = float(times[max(idx - 1, 0)])
    hi = float(times[min(idx + 1, len(times) - 1)])

    t_best = _golden_min(lambda t: earth_distance(elements, t), lo, hi, tol_days)
    d_best = earth_distance(elements, t_best)
    if not d_best <= dists[idx]:
        t_best, d_best = float(times[idx]), float(dists[idx])

    return CloseApproach(jd=t_best, distance_au=d_best, velocity_km_s=relative_speed_km_s(elements, t_best))


def orbit_path(elements: OrbitalElements, n_points: int = 100, start_jd: Optional[float] = None) -> np.ndarray:
    """(n_points, 3) positions in AU over one orbital period (or 365.25 d if unbound)."""
    start = elements.epoch if start_jd is None else start_jd
    period = orbital_period_days(elements)
    span = period if math.isfinite(period) and elements.eccentricity < 1.0 else 365.25
    ts = start + np.linspace(0.0, span, int(n_points))
    return np.vstack([calculate_position(elements, t).position_au for t in ts])

# impactsim/physics/kepler.py
"""
Kepler equation solvers.

Elliptic:    M = E - e sin E
Hyperbolic:  M = e sinh H - H

Angles in radians. The elliptic solver is Newton-Raphson kept inside the
bracket [M - |e|, M + |e|] (which always contains the root), falling back to
bisection whenever a Newton step leaves it. It never raises; non-finite input
propagates as NaN.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from impactsim.config.settings import (
    KEPLER_HIGH_ECCENTRICITY,
    KEPLER_MAX_ITER,
    KEPLER_MAX_STEP,
    KEPLER_TOLERANCE,
)

TWO_PI = 2.0 * math.pi
PARABOLIC_EPS = 1e-10


class OrbitType(str, Enum):
    ELLIPTICAL = "elliptical"
    PARABOLIC = "parabolic"
    HYPERBOLIC = "hyperbolic"


@dataclass
class KeplerSolution:
    anomaly: float  # E for elliptic, H for hyperbolic
    true_anomaly: float
    orbit_type: OrbitType
    iterations: int
    converged: bool
    residual: float
    warnings: List[str] = field(default_factory=list)


def classify_orbit(e: float) -> OrbitType:
    if e < 1.0:
        return OrbitType.ELLIPTICAL
    if abs(e - 1.0) < PARABOLIC_EPS:
        return OrbitType.PARABOLIC
    return OrbitType.HYPERBOLIC


def _initial_guess(M: float, e: float) -> float:
    if e < KEPLER_HIGH_ECCENTRICITY:
        return M + e * math.sin(M)
    s = math.sin(M)
    sign = (s > 0) - (s < 0)
    return M + 0.85 * e * sign


def true_anomaly_from_eccentric(E: float, e: float) -> float:
    cos_e = math.cos(E)
    denom = 1.0 - e * cos_e
    cos_nu = (cos_e - e) / denom
    sin_nu = math.sqrt(abs(1.0 - e * e)) * math.sin(E) / denom
    return math.atan2(sin_nu, cos_nu)


def true_anomaly_from_hyperbolic(H: float, e: float) -> float:
    ch = math.cosh(H)
    denom = e * ch - 1.0
    cos_nu = (e - ch) / denom
    sin_nu = math.sqrt(abs(e * e - 1.0)) * math.sinh(H) / denom
    return math.atan2(sin_nu, cos_nu)


def orbital_radius(a: float, e: float, E: float) -> float:
    return a * (1.0 - e * math.cos(E))


def radius_from_true_anomaly(a: float, e: float, nu: float) -> float:
    if e < 1.0:
        return a * (1.0 - e * e) / (1.0 + e * math.cos(nu))
    if e > 1.0:
        return abs(a) * (e * e - 1.0) / (1.0 + e * math.cos(nu))
    # parabolic: a is the periapsis distance
    return 2.0 * a / (1.0 + math.cos(nu))


def solve_kepler_detailed(
    M: float,
    e: float,
    tol: float = KEPLER_TOLERANCE,
    max_iter: int = KEPLER_MAX_ITER,
) -> KeplerSolution:
    warnings: List[str] = []

    if not (math.isfinite(M) and math.isfinite(e)):
        return KeplerSolution(math.nan, math.nan, OrbitType.ELLIPTICAL, 0, False, math.nan,
                              ["Non-finite mean anomaly or eccentricity"])

    if e == 0.0:
        return KeplerSolution(M, M, OrbitType.ELLIPTICAL, 0, True, 0.0)

    if e < 0.0:
        warnings.append("Negative eccentricity; solving with the value as given")
    elif e >= 1.0:
        warnings.append("Eccentricity >= 1 is not an ellipse; result is not physically meaningful")
    elif e > 0.9:
        warnings.append("High eccentricity elliptical orbit - numerical precision may be limited")

    revs = math.floor(M / TWO_PI)
    m = M - revs * TWO_PI

    half = abs(e)
    lo, hi = m - half, m + half
    E = min(max(_initial_guess(m, e), lo), hi)

    converged = False
    f = E - e * math.sin(E) - m
    it = 0
    while it < max_iter:
        if abs(f) < tol:
            converged = True
            break
        if f > 0.0:
            hi = E
        else:
            lo = E
        if hi - lo <= 4.0 * math.ulp(max(abs(lo), abs(hi), 1.0)):
            converged = True
            break

        fp = 1.0 - e * math.cos(E)
        if fp != 0.0:
            delta = f / fp
            if abs(delta) > KEPLER_MAX_STEP:
                delta *= KEPLER_MAX_STEP / abs(delta)
            E_new = E - delta
        else:
            E_new = math.nan

        if not (lo < E_new < hi):
            E_new = 0.5 * (lo + hi)

        E = E_new
        f = E - e * math.sin(E) - m
        it += 1

    if not converged:
        converged = abs(f) < tol
        if not converged:
            warnings.append(f"Failed to converge after {it} iterations (residual: {abs(f):.3e})")

    E_total = E + revs * TWO_PI
    return KeplerSolution(
        anomaly=E_total,
        true_anomaly=true_anomaly_from_eccentric(E, e),
        orbit_type=classify_orbit(e) if e >= 0 else OrbitType.ELLIPTICAL,
        iterations=it,
        converged=converged,
        residual=abs(f),
        warnings=warnings,
    )


def solve_kepler(M: float, e: float) -> float:
    """Eccentric anomaly E (radians) for mean anomaly M and eccentricity e."""
    return solve_kepler_detailed(M, e).anomaly


def _hyperbolic_guess(M: float, e: float) -> float:
    if abs(M) < 1.0:
        return M / (e - 1.0)
    return math.copysign(math.log(2.0 * abs(M) / e + 1.8), M)


def solve_kepler_hyperbolic(
    M: float,
    e: float,
    tol: float = KEPLER_TOLERANCE,
    max_iter: int = KEPLER_MAX_ITER,
) -> KeplerSolution:
    """Hyperbolic anomaly H for e > 1 (Newton-Raphson, f' = e cosh H - 1 > 0)."""
    warnings: List[str] = []
    if not (math.isfinite(M) and math.isfinite(e)) or e <= 1.0:
        return KeplerSolution(math.nan, math.nan, OrbitType.HYPERBOLIC, 0, False, math.nan,
                              ["Hyperbolic solver requires finite M and e > 1"])

    H = _hyperbolic_guess(M, e)
    f = e * math.sinh(H) - H - M
    it = 0
    while it < max_iter and abs(f) >= tol:
        fp = e * math.cosh(H) - 1.0
        if abs(fp) < 1e-15:
            warnings.append("Near-singular derivative in hyperbolic orbit solution")
            break
        H -= f / fp
        f = e * math.sinh(H) - H - M
        it += 1

    converged = abs(f) < tol
    if not converged:
        warnings.append(f"Hyperbolic orbit solution failed to converge after {it} iterations")

    return KeplerSolution(H, true_anomaly_from_hyperbolic(H, e), OrbitType.HYPERBOLIC,
                          it, converged, abs(f), warnings)


def validate_orbital_elements(
    semi_major_axis: float,
    eccentricity: float,
    mean_anomaly: float,
    inclination: Optional[float] = None,
) -> Tuple[bool, List[str], List[str]]:
    """
    Plausibility check for a set of elements (angles in degrees).

    Returns (is_valid, warnings, errors). Propagation never consults this;
    it is for callers who want to flag bad input.
    """
    warnings: List[str] = []
    errors: List[str] = []

    if eccentricity < 0:
        errors.append("Eccentricity cannot be negative")
    if eccentricity > 10:
        warnings.append("Very high eccentricity - numerical precision may be limited")
    if 0.9 < eccentricity < 1.0:
        warnings.append("High eccentricity elliptical orbit")
    if eccentricity >= 1.0:
        warnings.append("Unbound orbit (e >= 1)")

    if eccentricity < 1.0 and semi_major_axis <= 0:
        errors.append("Semi-major axis must be positive for elliptical orbits")
    if eccentricity > 1.0 and semi_major_axis >= 0:
        errors.append("Semi-major axis must be negative for hyperbolic orbits")

    if not math.isfinite(mean_anomaly):
        errors.append("Mean anomaly must be finite")
    elif not 0.0 <= mean_anomaly < 360.0:
        warnings.append("Mean anomaly outside [0, 360) degrees")

    if inclination is not None:
        if not math.isfinite(inclination):
            errors.append("Inclination must be finite")
        elif not 0.0 <= inclination <= 180.0:
            warnings.append("Inclination outside [0, 180] degrees")

    return not errors, warnings, errors

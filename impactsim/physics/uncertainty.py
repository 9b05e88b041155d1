"""
Uncertainty propagation for UncertainValue inputs.

Three families of combinators:
  - closed-form first-order rules (linear sums, products/powers),
  - linearisation through numerical partial derivatives,
  - Monte Carlo sampling with optional correlations between named inputs.

Monte Carlo draws come from a Box-Muller transform over a numpy Generator so runs
are reproducible when a seed is supplied. A Generator must not be shared between
threads without external locking.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from impactsim.config import settings
from impactsim.errors import InsufficientSamplesError
from impactsim.physics.uncertain import Distribution, UncertainValue, UncertaintyVariable

log = logging.getLogger(__name__)

CorrelationMap = Mapping[Tuple[str, str], float]

# Empirical parameter correlations (see data-quality assignment)
KNOWN_CORRELATIONS: Dict[Tuple[str, str], float] = {
    ("diameter", "absoluteMagnitude"): -0.8,
    ("diameter", "mass"): 0.9,
    ("mass", "density"): 0.3,
    ("semiMajorAxis", "period"): 1.0,
    ("semiMajorAxis", "meanMotion"): -1.0,
}

PERCENTILES = (("p5", 0.05), ("p16", 0.16), ("p50", 0.50), ("p84", 0.84), ("p95", 0.95))


class LinearTerm(NamedTuple):
    value: float
    uncertainty: float
    coefficient: float = 1.0

    @classmethod
    def of(cls, uv: UncertainValue, coefficient: float = 1.0) -> "LinearTerm":
        return cls(uv.value, uv.uncertainty, coefficient)


class Factor(NamedTuple):
    value: float
    uncertainty: float
    exponent: float = 1.0

    @classmethod
    def of(cls, uv: UncertainValue, exponent: float = 1.0) -> "Factor":
        return cls(uv.value, uv.uncertainty, exponent)


@dataclass(frozen=True)
class Contribution:
    variable: str
    contribution: float
    relative_contribution: float  # percent of total uncertainty


@dataclass(frozen=True)
class FirstOrderResult:
    value: float
    uncertainty: float
    relative_uncertainty: float
    contributing_factors: List[Contribution]
    method: str = "nonlinear"

    def as_uncertain(self, unit: str = "", source: str = "First-order propagation") -> UncertainValue:
        return UncertainValue(self.value, abs(self.uncertainty), unit, source)


@dataclass(frozen=True)
class MonteCarloResult:
    mean: float
    standard_deviation: float
    percentiles: Dict[str, float]
    samples: np.ndarray = field(repr=False)
    valid_samples: int
    requested_samples: int
    convergence_achieved: bool

    @property
    def valid_fraction(self) -> float:
        return self.valid_samples / float(self.requested_samples)

    def as_uncertain(self, unit: str = "", source: str = "Monte Carlo propagation") -> UncertainValue:
        return UncertainValue(self.mean, self.standard_deviation, unit, source)

    def as_dict(self) -> Dict[str, object]:
        return {
            "mean": self.mean,
            "standard_deviation": self.standard_deviation,
            "percentiles": dict(self.percentiles),
            "valid_samples": self.valid_samples,
            "requested_samples": self.requested_samples,
            "convergence_achieved": self.convergence_achieved,
        }


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    return np.random.default_rng(settings.DEFAULT_RANDOM_SEED if seed is None else seed)


def box_muller(rng: np.random.Generator, size) -> np.ndarray:
    """Standard normal draws via the Box-Muller transform."""
    u1 = 1.0 - rng.random(size)  # (0, 1], keeps log finite
    u2 = rng.random(size)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)


# ---------------------------------------------------------------------------
# Closed-form rules
# ---------------------------------------------------------------------------

def propagate_linear(terms: Sequence[LinearTerm], unit: str = "", source: str = "Linear propagation") -> UncertainValue:
    """
    value = sum(c_i * v_i), uncertainty = sqrt(sum((c_i * s_i)^2)).
    Sign of the coefficient never changes the uncertainty.
    """
    arr = np.asarray([tuple(LinearTerm(*t)) for t in terms], dtype=float).reshape(-1, 3)
    vals, sig, coef = arr[:, 0], arr[:, 1], arr[:, 2]
    value = float(np.sum(coef * vals))
    uncertainty = float(np.sqrt(np.sum((coef * sig) ** 2)))
    return UncertainValue(value, uncertainty, unit, source)


def propagate_multiplicative(factors: Sequence[Factor], unit: str = "", source: str = "Multiplicative propagation") -> UncertainValue:
    """
    value = prod(v_i ** e_i), relative = sqrt(sum((e_i * s_i / v_i)^2)).
    Division is a factor with exponent -1. Zero or non-finite factors propagate as inf/NaN.
    """
    arr = np.asarray([tuple(Factor(*f)) for f in factors], dtype=float).reshape(-1, 3)
    vals, sig, exps = arr[:, 0], arr[:, 1], arr[:, 2]
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        value = float(np.prod(np.power(vals, exps)))
        rel_terms = np.where(sig == 0.0, 0.0, exps * sig / vals)
        relative = float(np.sqrt(np.sum(rel_terms ** 2)))
        uncertainty = abs(value) * relative if relative != 0.0 else 0.0
    return UncertainValue(value, uncertainty, unit, source)


def combine_independent(values: Sequence[UncertainValue], operation: str) -> UncertainValue:
    if not values:
        raise ValueError("At least one value is required")
    if len(values) == 1:
        return values[0]

    if operation == "add":
        terms = [LinearTerm.of(v, 1.0) for v in values]
        out = propagate_linear(terms, values[0].unit)
    elif operation == "subtract":
        terms = [LinearTerm.of(v, 1.0 if i == 0 else -1.0) for i, v in enumerate(values)]
        out = propagate_linear(terms, values[0].unit)
    elif operation == "multiply":
        out = propagate_multiplicative([Factor.of(v, 1.0) for v in values], values[0].unit)
    elif operation == "divide":
        out = propagate_multiplicative(
            [Factor.of(v, 1.0 if i == 0 else -1.0) for i, v in enumerate(values)], values[0].unit
        )
    else:
        raise ValueError(f"Unsupported operation: {operation}")

    return UncertainValue(
        out.value,
        out.uncertainty,
        values[0].unit,
        f"Combined from {len(values)} values",
        f"Result of {operation} operation",
    )


def add(a: UncertainValue, b: UncertainValue) -> UncertainValue:
    return combine_independent([a, b], "add")


def subtract(a: UncertainValue, b: UncertainValue) -> UncertainValue:
    return combine_independent([a, b], "subtract")


def multiply(a: UncertainValue, b: UncertainValue) -> UncertainValue:
    return combine_independent([a, b], "multiply")


def divide(a: UncertainValue, b: UncertainValue) -> UncertainValue:
    return combine_independent([a, b], "divide")


def power(base: UncertainValue, exponent: float) -> UncertainValue:
    out = propagate_multiplicative([Factor.of(base, exponent)], base.unit)
    return UncertainValue(out.value, out.uncertainty, base.unit, base.source,
                          f"{base.description or 'value'} raised to power {exponent}")


def sqrt(value: UncertainValue) -> UncertainValue:
    if value.value < 0:
        raise ValueError("Cannot take square root of negative value")
    result = math.sqrt(value.value)
    uncertainty = value.uncertainty / (2.0 * result) if value.value > 0 else 0.0
    return UncertainValue(result, uncertainty, value.unit, value.source,
                          f"Square root of {value.description or 'value'}")


# ---------------------------------------------------------------------------
# Linearisation
# ---------------------------------------------------------------------------

def _lookup(correlations: Optional[CorrelationMap], a: str, b: str) -> Optional[float]:
    if not correlations:
        return None
    if (a, b) in correlations:
        return float(correlations[(a, b)])
    if (b, a) in correlations:
        return float(correlations[(b, a)])
    return None


def propagate_with_derivatives(
    variables: Sequence[UncertaintyVariable],
    partials: Mapping[str, float],
    correlations: Optional[CorrelationMap] = None,
) -> FirstOrderResult:
    """
    sigma_f^2 = sum (df/dx_i)^2 s_i^2 + 2 sum_{i<j} (df/dx_i)(df/dx_j) rho_ij s_i s_j
    The value is the linear combination sum(df/dx_i * x_i).
    """
    if not variables:
        raise ValueError("At least one variable is required for uncertainty propagation")
    for v in variables:
        if v.name not in partials:
            raise ValueError(f"Missing partial derivative for variable: {v.name}")

    names = [v.name for v in variables]
    if correlations:
        for a, b in correlations:
            if a not in names or b not in names:
                raise ValueError(f"Unknown variable in correlation: {a} or {b}")

    total_var = 0.0
    raw: List[Tuple[str, float]] = []
    for v in variables:
        c = (partials[v.name] * v.value.uncertainty) ** 2
        total_var += c
        raw.append((v.name, math.sqrt(c)))

    for i, vi in enumerate(variables):
        for vj in variables[i + 1:]:
            rho = _lookup(correlations, vi.name, vj.name)
            if rho is None:
                continue
            total_var += 2.0 * partials[vi.name] * partials[vj.name] * rho * vi.value.uncertainty * vj.value.uncertainty

    total = math.sqrt(abs(total_var))
    contributions = [
        Contribution(name, c, (c / total) * 100.0 if total > 0 else 0.0) for name, c in raw
    ]
    value = sum(partials[v.name] * v.value.value for v in variables)
    rel = abs(total / value) if value != 0 else 0.0
    return FirstOrderResult(value, total, rel, contributions, method="linear")


def propagate_first_order(
    variables: Sequence[UncertaintyVariable],
    func: Callable[[Dict[str, float]], float],
    correlations: Optional[CorrelationMap] = None,
    step: float = settings.FIRST_ORDER_STEP,
) -> FirstOrderResult:
    """Linearise func around the nominal inputs with forward-difference partial derivatives."""
    if not variables:
        raise ValueError("At least one variable is required for uncertainty propagation")

    nominal = {v.name: float(v.value.value) for v in variables}
    f0 = float(func(dict(nominal)))

    partials: Dict[str, float] = {}
    for v in variables:
        h = max(step, abs(v.value.value) * step)
        shifted = dict(nominal)
        shifted[v.name] += h
        partials[v.name] = (float(func(shifted)) - f0) / h

    lin = propagate_with_derivatives(variables, partials, correlations)
    rel = abs(lin.uncertainty / f0) if f0 != 0 else 0.0
    return FirstOrderResult(f0, lin.uncertainty, rel, lin.contributing_factors, method="nonlinear")


# ---------------------------------------------------------------------------
# Monte Carlo
# ---------------------------------------------------------------------------

def correlation_matrix(names: Sequence[str], correlations: Optional[CorrelationMap]) -> np.ndarray:
    n = len(names)
    C = np.eye(n)
    for i in range(n):
        for j in range(i + 1, n):
            rho = _lookup(correlations, names[i], names[j])
            if rho is None:
                continue
            if abs(rho) > 1.0:
                raise ValueError(f"correlation {names[i]}/{names[j]} outside [-1, 1]: {rho}")
            C[i, j] = C[j, i] = rho
    return C


def known_correlations(names: Sequence[str]) -> Dict[Tuple[str, str], float]:
    present = set(names)
    return {k: v for k, v in KNOWN_CORRELATIONS.items() if k[0] in present and k[1] in present}


def _independent_draws(var: UncertaintyVariable, n: int, rng: np.random.Generator) -> np.ndarray:
    mean = float(var.value.value)
    sd = float(var.value.uncertainty)
    if var.distribution == Distribution.NORMAL:
        return mean + box_muller(rng, n) * sd
    if var.distribution == Distribution.UNIFORM:
        half_width = sd * math.sqrt(3.0)
        return mean + (rng.random(n) - 0.5) * 2.0 * half_width
    if var.distribution == Distribution.TRIANGULAR:
        u1 = rng.random(n)
        u2 = rng.random(n)
        return mean + (u1 + u2 - 1.0) * sd * math.sqrt(6.0)
    raise ValueError(f"Unsupported distribution: {var.distribution}")


def _correlated_draws(
    variables: Sequence[UncertaintyVariable],
    C: np.ndarray,
    n: int,
    rng: np.random.Generator,
    method: str,
) -> np.ndarray:
    k = len(variables)
    z = box_muller(rng, (k, n))

    if method == "pairwise":
        # Linear correction toward earlier variables; approximates, does not reproduce, C
        zc = z.copy()
        for i in range(k):
            for j in range(i):
                rho = C[i, j]
                if abs(rho) > settings.MC_CORRELATION_THRESHOLD:
                    zc[i] += rho * z[j] * settings.MC_CORRELATION_WEIGHT
    elif method == "cholesky":
        try:
            L = np.linalg.cholesky(C)
        except np.linalg.LinAlgError as e:
            raise ValueError("correlation matrix is not positive definite") from e
        zc = L @ z
    else:
        raise ValueError(f"Unknown correlation method: {method}")

    means = np.array([v.value.value for v in variables], dtype=float)[:, None]
    sds = np.array([v.value.uncertainty for v in variables], dtype=float)[:, None]
    return means + zc * sds


def _percentile_index(n: int, q: float) -> int:
    return min(n - 1, int(math.floor(n * q)))


def propagate_nonlinear(
    variables: Sequence[UncertaintyVariable],
    func: Callable[[Dict[str, float]], float],
    samples: Optional[int] = None,
    correlations: Optional[CorrelationMap] = None,
    correlation_method: str = "pairwise",
    rng: Optional[np.random.Generator] = None,
) -> MonteCarloResult:
    """
    Monte Carlo propagation of `variables` through `func`.

    Parameters
    ----------
    variables : sequence of UncertaintyVariable with unique names
    func : callable taking {name: float} and returning a float
    samples : number of draws (default settings.MC_DEFAULT_N, minimum settings.MC_MIN_SAMPLES)
    correlations : {(name_a, name_b): rho}; NORMAL variables only
    correlation_method : "pairwise" (linear correction, legacy behaviour) or "cholesky"
    rng : numpy Generator; a fresh one from make_rng() when omitted

    Draws where func raises or returns a non-finite value are dropped. Raises
    InsufficientSamplesError when fewer than half of the draws survive.
    """
    if not variables:
        raise ValueError("At least one variable is required for Monte Carlo propagation")
    n = int(settings.MC_DEFAULT_N if samples is None else samples)
    if n < settings.MC_MIN_SAMPLES:
        raise ValueError(f"Monte Carlo requires at least {settings.MC_MIN_SAMPLES} samples (got {n})")

    names = [v.name for v in variables]
    if len(set(names)) != len(names):
        raise ValueError("variable names must be unique")

    rng = make_rng() if rng is None else rng

    C = correlation_matrix(names, correlations)
    if correlations and np.any(C != np.eye(len(names))):
        if any(v.distribution != Distribution.NORMAL for v in variables):
            raise ValueError("correlated sampling supports NORMAL variables only")
        draws = _correlated_draws(variables, C, n, rng, correlation_method)
    else:
        draws = np.vstack([_independent_draws(v, n, rng) for v in variables])

    results: List[float] = []
    failures = 0
    for i in range(n):
        inputs = {name: float(draws[k, i]) for k, name in enumerate(names)}
        try:
            out = float(func(inputs))
        except Exception:
            failures += 1
            continue
        if math.isfinite(out):
            results.append(out)

    valid = len(results)
    if failures:
        log.debug("Monte Carlo: %d of %d evaluations raised", failures, n)
    if valid < n * settings.MC_MIN_VALID_FRACTION:
        raise InsufficientSamplesError(valid, n)

    arr = np.sort(np.asarray(results, dtype=float))
    mean = float(np.mean(arr))
    std = float(np.std(arr, ddof=1)) if valid > 1 else 0.0
    pct = {key: float(arr[_percentile_index(valid, q)]) for key, q in PERCENTILES}

    return MonteCarloResult(
        mean=mean,
        standard_deviation=std,
        percentiles=pct,
        samples=arr,
        valid_samples=valid,
        requested_samples=n,
        convergence_achieved=valid >= n * settings.MC_CONVERGENCE_FRACTION,
    )

# impactsim/validation/report.py
from __future__ import annotations

import math
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Union

from impactsim.validation.compare import ItemOutcome, ValidationResult

Item = Union[ItemOutcome, ValidationResult]


@dataclass(frozen=True)
class ParameterStats:
    count: int
    mean_error: float  # percent
    rms_error: float
    max_error: float
    within_uncertainty_percent: float
    non_finite: int = 0  # errors left out of mean/rms/max

    def as_dict(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "non_finite": self.non_finite,
            "mean_error": self.mean_error,
            "rms_error": self.rms_error,
            "max_error": self.max_error,
            "within_uncertainty_percent": self.within_uncertainty_percent,
        }


@dataclass(frozen=True)
class AccuracyStatistics:
    overall_accuracy: float  # percent of results within uncertainty
    total: int
    failed: int
    parameter_stats: Dict[str, ParameterStats] = field(default_factory=dict)
    status_distribution: Dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, object]:
        return {
            "overall_accuracy": self.overall_accuracy,
            "total": self.total,
            "failed": self.failed,
            "parameter_stats": {k: v.as_dict() for k, v in self.parameter_stats.items()},
            "status_distribution": dict(self.status_distribution),
        }


def _split(items: Iterable[Item]):
    results: List[ValidationResult] = []
    failures: List[ItemOutcome] = []
    for item in items:
        if isinstance(item, ValidationResult):
            results.append(item)
        elif item.ok:
            results.append(item.result)
        else:
            failures.append(item)
    return results, failures


def calculate_accuracy_statistics(items: Sequence[Item]) -> AccuracyStatistics:
    """
    Failed items are counted but excluded from every statistic. Results with a
    non-finite percent error still count towards accuracy and status, but are
    left out of the error aggregates and tallied in ParameterStats.non_finite.
    """
    results, failures = _split(items)

    grouped: Dict[str, List[ValidationResult]] = OrderedDict()
    status: Dict[str, int] = OrderedDict()
    for r in results:
        grouped.setdefault(r.parameter, []).append(r)
        status[r.status.value] = status.get(r.status.value, 0) + 1

    stats: Dict[str, ParameterStats] = OrderedDict()
    for param, rs in grouped.items():
        errors = [abs(r.agreement.percent_error) for r in rs]
        finite = [e for e in errors if math.isfinite(e)]
        k = len(finite)
        stats[param] = ParameterStats(
            count=len(rs),
            mean_error=sum(finite) / k if k else 0.0,
            rms_error=math.sqrt(sum(e * e for e in finite) / k) if k else 0.0,
            max_error=max(finite) if k else 0.0,
            within_uncertainty_percent=100.0 * sum(r.agreement.within_uncertainty for r in rs) / len(rs),
            non_finite=len(errors) - k,
        )

    within = sum(r.agreement.within_uncertainty for r in results)
    overall = 100.0 * within / len(results) if results else 0.0
    return AccuracyStatistics(overall, len(results), len(failures), stats, status)


def _failures_section(failures: List[ItemOutcome]) -> List[str]:
    if not failures:
        return []
    lines = ["## Skipped (errors)", ""]
    for f in failures:
        lines.append(f"- **{f.subject} / {f.parameter}**: {f.error}")
    lines.append("")
    return lines


def generate_validation_report(items: Sequence[Item]) -> str:
    results, failures = _split(items)
    lines = ["# Historical Event Validation Report", ""]

    by_event: Dict[str, List[ValidationResult]] = OrderedDict()
    for r in results:
        by_event.setdefault(r.subject, []).append(r)

    for event, rs in by_event.items():
        lines += [f"## {event} Event Validation", ""]
        for r in rs:
            p, o, a = r.predicted, r.reference, r.agreement
            lines += [
                f"### {r.parameter}",
                f"- **Predicted**: {p.value:.2e} ± {p.uncertainty:.2e} {p.unit}",
                f"- **Observed**: {o.value:.2e} ± {o.uncertainty:.2e} {o.unit}",
                f"- **Agreement**: {a.sigma_deviation:.2f}σ deviation ({a.percent_error:.1f}% error)",
                f"- **Status**: {r.status.value}",
                f"- **Within Uncertainty**: {'Yes' if a.within_uncertainty else 'No'}",
                "",
            ]

    lines += _failures_section(failures)
    return "\n".join(lines)


def generate_benchmark_report(items: Sequence[Item]) -> str:
    results, failures = _split(items)
    stats = calculate_accuracy_statistics(items)
    n = len(results)

    lines = [
        "# Orbital Mechanics Benchmarking Report",
        "",
        "## Overall Performance",
        f"- **Overall Accuracy**: {stats.overall_accuracy:.1f}% of results within uncertainty",
        f"- **Total Validations**: {n}",
        "",
        "## Status Distribution",
    ]
    for name, count in stats.status_distribution.items():
        lines.append(f"- **{name}**: {count} ({100.0 * count / n:.1f}%)")
    lines += ["", "## Parameter-Specific Performance"]

    for param, ps in stats.parameter_stats.items():
        lines += [
            f"### {param}",
            f"- **Count**: {ps.count} validations",
            f"- **Mean Error**: {ps.mean_error:.3f}%",
            f"- **RMS Error**: {ps.rms_error:.3f}%",
            f"- **Max Error**: {ps.max_error:.3f}%",
            *([f"- **Non-finite errors excluded**: {ps.non_finite}"] if ps.non_finite else []),
            f"- **Within Uncertainty**: {ps.within_uncertainty_percent:.1f}%",
            "",
        ]

    lines.append("## Detailed Results")
    by_subject: Dict[str, List[ValidationResult]] = OrderedDict()
    for r in results:
        by_subject.setdefault(r.subject, []).append(r)

    for subject, rs in by_subject.items():
        lines.append(f"### {subject}")
        for r in rs:
            p, ref, a = r.predicted, r.reference, r.agreement
            lines += [
                f"#### {r.parameter}",
                f"- **Epoch**: JD {r.epoch}",
                f"- **Predicted**: {p.value:.6e} ± {p.uncertainty:.2e} {p.unit}",
                f"- **Reference**: {ref.value:.6e} ± {ref.uncertainty:.2e} {ref.unit}",
                f"- **Error**: {a.percent_error:.3f}% ({a.sigma_deviation:.2f}σ)",
                f"- **Status**: {r.status.value}",
                "",
            ]

    lines += _failures_section(failures)
    return "\n".join(lines)

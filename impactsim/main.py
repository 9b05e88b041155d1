# impactsim/main.py
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List

from impactsim.cli import ask_yes_no, run_cli
from impactsim.config import settings
from impactsim.data.sbdb_fetcher import SBDBFetcher
from impactsim.pipeline.pipeline import run_pipeline
from impactsim.validation.benchmarks import OrbitalBenchmarker
from impactsim.validation.compare import ItemOutcome
from impactsim.validation.historical import HistoricalValidator
from impactsim.validation.report import (
    calculate_accuracy_statistics,
    generate_benchmark_report,
    generate_validation_report,
)
from impactsim.visualization.plots import plot_damage_zones, plot_sigma_deviations

log = logging.getLogger("main")


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def save_json(obj: Any, name_prefix: str) -> str:
    out_dir = Path(settings.OUTPUT_DIR)
    out_dir.mkdir(parents=True, exist_ok=True)
    filename = out_dir / f"{name_prefix}_{_timestamp()}.json"
    with open(filename, "w") as f:
        json.dump(obj, f, indent=2, default=lambda o: repr(o))
    return str(filename)


def save_text(text: str, name_prefix: str, suffix: str = ".md") -> str:
    out_dir = Path(settings.OUTPUT_DIR)
    out_dir.mkdir(parents=True, exist_ok=True)
    filename = out_dir / f"{name_prefix}_{_timestamp()}{suffix}"
    filename.write_text(text, encoding="utf-8")
    return str(filename)


def run_validation(online: bool = False) -> List[ItemOutcome]:
    historical = HistoricalValidator().validate_all_events()
    fetcher = SBDBFetcher().fetch_elements if online else None
    orbital = OrbitalBenchmarker(fetch_elements=fetcher).validate_all_orbital_mechanics()

    stats_h = calculate_accuracy_statistics(historical)
    stats_o = calculate_accuracy_statistics(orbital)
    log.info("Historical: %.1f%% within uncertainty (%d results, %d failed)",
             stats_h.overall_accuracy, stats_h.total, stats_h.failed)
    log.info("Orbital:    %.1f%% within uncertainty (%d results, %d failed)",
             stats_o.overall_accuracy, stats_o.total, stats_o.failed)

    out = {
        "meta": {"timestamp_utc": datetime.now(timezone.utc).isoformat(), "online": online},
        "historical": {"results": [o.as_dict() for o in historical], "statistics": stats_h.as_dict()},
        "orbital": {"results": [o.as_dict() for o in orbital], "statistics": stats_o.as_dict()},
    }
    log.info("Saved validation results: %s", save_json(out, "validation_results"))
    log.info("Saved report: %s", save_text(generate_validation_report(historical), "historical_validation"))
    log.info("Saved report: %s", save_text(generate_benchmark_report(orbital), "orbital_benchmarks"))

    try:
        plot_sigma_deviations(historical, filename="historical_sigma.png")
        plot_sigma_deviations(orbital, filename="orbital_sigma.png")
        log.info("Plots generated.")
    except (RuntimeError, ValueError, OSError) as e:
        log.warning("Plotting failed: %s", e)

    return historical + orbital


def run_scenario() -> None:
    record, location, warning_years = run_cli()
    result = run_pipeline(record, location, warning_years=warning_years)

    impact = result.impact.impact
    print("\n================ IMPACT SCENARIO ================\n")
    print(f"Asteroid           : {result.asteroid.name} ({result.asteroid.composition})")
    print(f"Classified as      : {result.classification.primary_type} "
          f"(confidence {result.classification.confidence:.2f})")
    print(f"Effective energy   : {impact.kinetic_energy:.3e} J ({impact.tnt_equivalent:,.1f} kt TNT)")
    print(f"Crater diameter    : {impact.crater.diameter:,.1f} m")
    print(f"Fireball radius    : {impact.blast.fireball_radius:,.2f} km")
    print(f"Airblast radius    : {impact.blast.airblast_radius:,.2f} km")
    print(f"Thermal radius     : {impact.blast.thermal_radius:,.2f} km")
    print(f"Seismic magnitude  : {impact.blast.seismic_magnitude:.2f}")
    print(f"Casualties         : {impact.casualties.immediate:,.0f} immediate, "
          f"{impact.casualties.injured:,.0f} injured")
    print(f"Economic impact    : ${impact.economic_impact:,.0f}")
    print("-" * 55)
    for d in result.deflection:
        status = "OK" if d.mission_success else "RISKY"
        print(f"{d.strategy.name:<26} CE={d.cost_effectiveness:10.3g}  "
              f"P(success)={d.success_probability:.2f}  [{status}]")
        for factor in d.risk_factors:
            print(f"    - {factor}")

    log.info("Saved scenario: %s", save_json(result.as_dict(), "scenario"))
    try:
        plot_damage_zones(impact.blast, title=f"{result.asteroid.name}: damage zones")
    except (RuntimeError, ValueError, OSError) as e:
        log.warning("Plotting failed: %s", e)


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(levelname)-7s  %(message)s",
        datefmt="%H:%M:%S"
    )
    os.makedirs(settings.OUTPUT_DIR, exist_ok=True)
    settings.validate_settings()

    online = ask_yes_no("Compare benchmark elements against JPL SBDB (network)? [y/N]: ")
    run_validation(online=online)

    if ask_yes_no("Run an interactive impact scenario? [y/N]: "):
        run_scenario()

    log.info("All done. Artifacts in %s", settings.OUTPUT_DIR)


if __name__ == "__main__":
    main()

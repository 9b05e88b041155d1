import math
import os
from typing import Optional, Sequence

import matplotlib.pyplot as plt
from matplotlib.patches import Circle

from impactsim.config import settings
from impactsim.config.settings import STATUS_THRESHOLDS
from impactsim.engine.impact import BlastEffects

STATUS_COLORS = {"EXCELLENT": "tab:green", "GOOD": "tab:olive", "ACCEPTABLE": "tab:orange", "POOR": "tab:red"}


def plot_sigma_deviations(outcomes: Sequence, filename: str = "sigma_deviations.png", output_dir: Optional[str] = None):
    """
    Bar chart of sigma deviation per validated parameter, coloured by status.
    Failed items are skipped.
    """
    out_dir = output_dir or settings.OUTPUT_DIR
    os.makedirs(out_dir, exist_ok=True)

    results = [o.result for o in outcomes if getattr(o, "ok", False)]
    labels = [f"{r.subject}\n{r.parameter}" for r in results]
    # inf would blow up the axis; pin it just above the POOR threshold
    cap = STATUS_THRESHOLDS[-1][0] * 2
    sigmas = [min(r.agreement.sigma_deviation, cap) for r in results]
    colors = [STATUS_COLORS.get(r.status.value, "tab:gray") for r in results]

    plt.figure(figsize=(max(8, 0.6 * len(results)), 5))
    plt.bar(range(len(results)), sigmas, color=colors)
    for limit, name in STATUS_THRESHOLDS:
        plt.axhline(limit, linestyle="--", linewidth=0.8, color="gray")
        plt.text(len(results) - 0.5, limit, name, fontsize=7, va="bottom", ha="right")
    plt.xticks(range(len(results)), labels, rotation=60, ha="right", fontsize=7)
    plt.ylabel("Deviation (σ)")
    plt.title("Validation: predicted vs reference")

    save_path = os.path.join(out_dir, filename)
    plt.tight_layout()
    plt.savefig(save_path)
    plt.close()

    print(f"[OK] Saved: {save_path}")
    return save_path


def plot_damage_zones(blast: BlastEffects, title: str = "Impact damage zones",
                      filename: str = "damage_zones.png", output_dir: Optional[str] = None):
    """
    Concentric fireball / airblast / thermal rings (km) around ground zero.
    """
    out_dir = output_dir or settings.OUTPUT_DIR
    os.makedirs(out_dir, exist_ok=True)

    zones = [
        (name, radius, color)
        for name, radius, color in (
            ("Thermal", blast.thermal_radius, "gold"),
            ("Airblast", blast.airblast_radius, "darkorange"),
            ("Fireball", blast.fireball_radius, "firebrick"),
        )
        if math.isfinite(radius) and radius > 0
    ]
    if not zones:
        raise ValueError("No finite damage radius to plot")
    # draw the largest ring first so the smaller ones stay visible
    zones.sort(key=lambda z: z[1], reverse=True)

    fig, ax = plt.subplots(figsize=(6, 6))
    for name, radius, color in zones:
        ax.add_patch(Circle((0.0, 0.0), radius, color=color, alpha=0.45, label=f"{name}: {radius:,.1f} km"))

    extent = max(z[1] for z in zones) * 1.1
    ax.set_xlim(-extent, extent)
    ax.set_ylim(-extent, extent)
    ax.set_aspect("equal")
    ax.set_xlabel("km")
    ax.set_ylabel("km")
    ax.set_title(title)
    ax.legend(loc="upper right", fontsize=8)

    save_path = os.path.join(out_dir, filename)
    fig.tight_layout()
    fig.savefig(save_path)
    plt.close(fig)

    print(f"[OK] Saved: {save_path}")
    return save_path

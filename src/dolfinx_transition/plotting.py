"""
Plotting and CSV export for dolfinx-transition.

Visualizes wall-normal profiles of the transition-model auxiliary fields
and the per-step history of a frozen-flow run.
"""

import csv
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np


def write_profile_csv(fields: dict[str, np.ndarray], columns: list[str], save_path: Path):
    """Export profile columns (one row per wall-normal point)."""
    save_path.parent.mkdir(parents=True, exist_ok=True)
    data = np.column_stack([fields[c] for c in columns])
    np.savetxt(save_path, data, delimiter=",", header=",".join(columns), comments="")
    print(f"  Saved profile CSV: {save_path}")


def plot_profile(fields: dict[str, np.ndarray], save_path: Path | None = None, title: str = ""):
    """Three panels against wall distance: switches, Reynolds numbers, eddy viscosity."""
    y = fields["y"]

    fig, axes = plt.subplots(1, 3, figsize=(15, 5), sharey=True)

    ax = axes[0]
    for name, style in [("F1", "b-"), ("Fmi", "r-"), ("F_onset", "g-"), ("F_turb", "k--")]:
        ax.plot(fields[name], y, style, linewidth=1.2, label=name)
    ax.set_xlabel("value")
    ax.set_ylabel("y")
    ax.set_yscale("log")
    ax.set_xlim(-0.05, 1.05)
    ax.set_title("Switching functions")
    ax.grid(True, alpha=0.3, which="both")
    ax.legend(fontsize=9)

    ax = axes[1]
    ax.semilogx(np.maximum(fields["Re_v"], 1e-12), y, "b-", linewidth=1.2, label=r"Re$_v$")
    ax.semilogx(fields["Re_thetac"], y, "r--", linewidth=1.2, label=r"Re$_{\theta c}$")
    ax.semilogx(2.2 * fields["Re_thetac"], y, "r:", linewidth=1.0, label=r"2.2 Re$_{\theta c}$")
    ax.set_xlabel("Reynolds number")
    ax.set_title("Onset criterion")
    ax.grid(True, alpha=0.3, which="both")
    ax.legend(fontsize=9)

    ax = axes[2]
    ax.plot(fields["nut_over_nu"], y, "k-", linewidth=1.2, label=r"$\nu_t/\nu$")
    ax.plot(fields["Tu_l"], y, "m--", linewidth=1.0, label=r"Tu$_L$ [%]")
    ax.set_xlabel("value")
    ax.set_title("Eddy viscosity / intensity")
    ax.grid(True, alpha=0.3, which="both")
    ax.legend(fontsize=9)

    if title:
        fig.suptitle(title)
    plt.tight_layout()

    if save_path:
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
        print(f"  Saved profile plot: {save_path}")
    plt.close(fig)


def plot_history(history_file: Path, save_path: Path | None = None):
    """Plot per-step gamma range and peak nu_t/nu from a run history CSV."""
    data: dict[str, list[float]] = {
        "step": [], "gamma_min": [], "gamma_max": [], "Rnu_max": [], "nut_nu_max": [], "n_clipped": [],
    }
    with open(history_file) as f:
        reader = csv.DictReader(f)
        for row in reader:
            for key in data:
                data[key].append(float(row[key]))

    steps = data["step"]
    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(steps, data["gamma_min"], "b-", linewidth=1.2, label=r"$\gamma_{\min}$")
    ax.plot(steps, data["gamma_max"], "b--", linewidth=1.2, label=r"$\gamma_{\max}$")
    ax.set_xlabel("Step")
    ax.set_ylabel(r"$\gamma$")
    ax.grid(True, alpha=0.3)

    ax2 = ax.twinx()
    ax2.semilogy(steps, np.maximum(data["nut_nu_max"], 1e-12), "k-", linewidth=0.8, label=r"$(\nu_t/\nu)_{\max}$")
    ax2.set_ylabel(r"$\nu_t/\nu$")

    lines1, labels1 = ax.get_legend_handles_labels()
    lines2, labels2 = ax2.get_legend_handles_labels()
    ax.legend(lines1 + lines2, labels1 + labels2, loc="upper right", fontsize=9)

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
        print(f"  Saved history plot: {save_path}")
    plt.close(fig)

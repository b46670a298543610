"""
Visualization Module for Paleostress Inversion.

Generates plots of an inversion:
- Stereonet projections (principal axes, data poles and axes)
- Misfit landscape over (theta, Rb)
- Convergence of a Monte Carlo search
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from .data import AXIS_KINDS, CONJUGATE_KINDS, DataKind
from .landscape import solution_summary
from .rotation import unit_vector_to_trend_plunge


# ──────────────────────────────────────────────
# Color scheme for data kinds
# ──────────────────────────────────────────────

DATA_COLORS = {
    DataKind.STRIATED_PLANE: "#377eb8",
    DataKind.EXTENSION_FRACTURE: "#4daf4a",
    DataKind.DILATION_BAND: "#4daf4a",
    DataKind.CRYSTAL_FIBERS_IN_VEIN: "#4daf4a",
    DataKind.COMPACTION_BAND: "#e41a1c",
    DataKind.STYLOLITE_INTERFACE: "#e41a1c",
    DataKind.STYLOLITE_TEETH: "#e41a1c",
    DataKind.CONJUGATE_FAULTS: "#984ea3",
    DataKind.CONJUGATE_DILATANT_SHEAR_BANDS: "#984ea3",
    DataKind.CONJUGATE_COMPACTIONAL_SHEAR_BANDS: "#984ea3",
    DataKind.NEOFORMED_STRIATED_PLANE: "#ff7f00",
    DataKind.STRIATED_DILATANT_SHEAR_BAND: "#ff7f00",
    DataKind.STRIATED_COMPACTIONAL_SHEAR_BAND: "#ff7f00",
}

AXIS_STYLES = {
    "sigma1": ("s", "#e41a1c", "σ1"),
    "sigma2": ("^", "#4daf4a", "σ2"),
    "sigma3": ("o", "#377eb8", "σ3"),
}


def _get_color(kind):
    return DATA_COLORS.get(kind, "#999999")


# ──────────────────────────────────────────────
# Stereonet (Lower Hemisphere Equal-Area)
# ──────────────────────────────────────────────

def equal_area_projection(trend_deg, plunge_deg) -> tuple:
    """Schmidt projection (x = East, y = North) of lower-hemisphere lines.

    Horizontal lines fall on the primitive circle (radius 1), vertical
    lines at the center.
    """
    trend = np.radians(np.asarray(trend_deg, dtype=float))
    plunge = np.radians(np.asarray(plunge_deg, dtype=float))
    r = np.sqrt(2) * np.sin((np.pi / 2 - plunge) / 2)
    return r * np.sin(trend), r * np.cos(trend)


def _project_vectors(vectors) -> tuple:
    trend_plunge = np.array([unit_vector_to_trend_plunge(v) for v in vectors])
    if len(trend_plunge) == 0:
        return np.array([]), np.array([])
    return equal_area_projection(trend_plunge[:, 0], trend_plunge[:, 1])


def _draw_primitive(ax):
    ax.set_aspect("equal")
    ax.set_xlim(-1.2, 1.2)
    ax.set_ylim(-1.2, 1.2)

    theta = np.linspace(0, 2 * np.pi, 100)
    ax.plot(np.cos(theta), np.sin(theta), "k-", linewidth=1)
    ax.axhline(0, color="gray", linewidth=0.5, linestyle="--")
    ax.axvline(0, color="gray", linewidth=0.5, linestyle="--")

    for angle, label in [(0, "N"), (90, "E"), (180, "S"), (270, "W")]:
        rad = np.radians(angle)
        ax.text(1.12 * np.sin(rad), 1.12 * np.cos(rad), label,
                ha="center", va="center", fontsize=10, fontweight="bold")
    ax.set_xticks([])
    ax.set_yticks([])


def datum_vectors(datum) -> list:
    """Unit vectors drawn for a datum: plane poles or measured axes."""
    geometry = datum.geometry
    if datum.kind in AXIS_KINDS:
        return [geometry.axis]
    if datum.kind in CONJUGATE_KINDS:
        return [geometry.n_plane_1, geometry.n_plane_2]
    return [geometry.n_plane]


def plot_principal_axes(solution, data=None, title: str = "Principal Stress Axes",
                        ax=None) -> plt.Axes:
    """Plot σ1, σ2, σ3 of a solution and the data poles on a stereonet."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(7, 7))

    _draw_primitive(ax)

    if data:
        kinds = {}
        for datum in data:
            kinds.setdefault(datum.kind, []).extend(datum_vectors(datum))
        for kind, vectors in kinds.items():
            x, y = _project_vectors(vectors)
            ax.scatter(x, y, s=15, color=_get_color(kind), label=kind.value,
                       alpha=0.6, edgecolors="none")

    summary = solution_summary(solution)
    for name, (marker, color, label) in AXIS_STYLES.items():
        trend, plunge = summary[name]
        x, y = equal_area_projection(trend, plunge)
        ax.scatter([x], [y], s=120, marker=marker, color=color, edgecolors="black",
                   linewidth=1, zorder=5, label=f"{label} {trend:.0f}/{plunge:.0f}")

    ax.set_title(f"{title}\nR = {summary['stress_ratio']:.2f}, misfit = {summary['misfit_deg']:.1f}°",
                 fontsize=12, fontweight="bold")
    ax.legend(loc="upper left", fontsize=8, bbox_to_anchor=(1.05, 1))

    return ax


# ──────────────────────────────────────────────
# Misfit Landscape
# ──────────────────────────────────────────────

def plot_misfit_landscape(df: pd.DataFrame, title: str = "Misfit Landscape",
                          cmap: str = "viridis", levels: int = 30, ax=None) -> plt.Axes:
    """Contour the mean misfit over (theta, Rb).

    Parameters
    ----------
    df : DataFrame from landscape.misfit_landscape()
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(9, 6))

    grid = df.pivot_table(index="Rb", columns="theta", values="cost")
    cs = ax.contourf(grid.columns.values, grid.index.values, grid.values,
                     levels=levels, cmap=cmap)
    plt.colorbar(cs, ax=ax, label="Mean misfit")

    best = df.loc[df["cost"].idxmin()]
    ax.plot(best["theta"], best["Rb"], "r*", markersize=14,
            label=f"Minimum ({best['theta']:.0f}°, {best['Rb']:.2f})")

    # Regime boundaries
    for rb in (1.0, 2.0):
        ax.axhline(rb, color="white", linewidth=1, linestyle="--")
    for rb, label in [(0.5, "Normal"), (1.5, "Strike-slip"), (2.5, "Thrust")]:
        ax.text(1.01, rb / 3.0, label, transform=ax.transAxes, rotation=90,
                va="center", fontsize=9)

    ax.set_xlabel("SHmax azimuth θ (°)", fontsize=11)
    ax.set_ylabel("Regime parameter Rb", fontsize=11)
    ax.set_title(title, fontsize=12, fontweight="bold")
    ax.legend(fontsize=9, loc="upper right")

    return ax


def plot_search_history(history, title: str = "Monte Carlo Convergence", ax=None) -> plt.Axes:
    """Best misfit after each trial of a search run with record_history=True."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 4))

    history = np.degrees(np.asarray(history, dtype=float))
    ax.plot(np.arange(1, len(history) + 1), history, color="#377eb8", linewidth=1.5)
    ax.set_xscale("log")
    ax.set_xlabel("Trial", fontsize=11)
    ax.set_ylabel("Best misfit (°)", fontsize=11)
    ax.set_title(title, fontsize=12, fontweight="bold")
    ax.grid(True, alpha=0.3)

    return ax


# ──────────────────────────────────────────────
# Summary Dashboard
# ──────────────────────────────────────────────

def plot_inversion_dashboard(solution, data, landscape: pd.DataFrame,
                             history=None, save_path: str = None):
    """Stereonet and misfit landscape side by side, convergence below if given."""
    nrows = 2 if history is not None else 1
    fig = plt.figure(figsize=(15, 6 * nrows))

    ax1 = fig.add_subplot(nrows, 2, 1)
    plot_principal_axes(solution, data, ax=ax1)

    ax2 = fig.add_subplot(nrows, 2, 2)
    plot_misfit_landscape(landscape, ax=ax2)

    if history is not None:
        ax3 = fig.add_subplot(nrows, 1, 2)
        plot_search_history(history, ax=ax3)

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
        print(f"Dashboard saved to {save_path}")

    return fig

"""
Misfit landscape and solution summaries.

The landscape samples the mean misfit of the data over Andersonian stress
states: one principal axis vertical, the maximum horizontal compression
at azimuth ``theta`` (degrees clockwise from North, [0, 180]) and the
regime parameter ``Rb`` in [0, 3] (normal, strike-slip, thrust).
"""

import logging

import numpy as np
import pandas as pd

from .engine import regime_name, regime_rotation, tensor_parameters_from_rotation
from .errors import InvariantViolationError
from .rotation import trend_to_phi, unit_vector_to_trend_plunge

logger = logging.getLogger(__name__)


def misfit_landscape(inverse_method, thetas=None, rbs=None, n: int = 50) -> pd.DataFrame:
    """Mean misfit on a (theta, Rb) grid.

    Parameters
    ----------
    inverse_method : InverseMethod holding the data
    thetas : SHmax azimuths in degrees; default n values in [0, 180]
    rbs : regime parameters in [0, 3]; default n values
    n : grid size used for the defaults

    Returns
    -------
    DataFrame with columns theta, Rb, regime, cost.  Grid points where a
    datum has no defined misfit get NaN.
    """
    thetas = np.linspace(0.0, 180.0, n) if thetas is None else np.asarray(thetas, dtype=float)
    rbs = np.linspace(0.0, 3.0, n) if rbs is None else np.asarray(rbs, dtype=float)

    rows = []
    for rb in rbs:
        for theta in thetas:
            hrot, R = regime_rotation(trend_to_phi(theta), rb)
            stress = tensor_parameters_from_rotation(hrot, R)
            try:
                cost = inverse_method.cost(stress=stress)
            except InvariantViolationError as exc:
                logger.debug("No misfit at theta=%.1f, Rb=%.3f: %s", theta, rb, exc)
                cost = np.nan
            rows.append({"theta": float(theta), "Rb": float(rb),
                         "regime": regime_name(rb), "cost": cost})

    df = pd.DataFrame(rows, columns=["theta", "Rb", "regime", "cost"])
    logger.info("Sampled misfit landscape: %d x %d points, min cost %.4f",
                len(rbs), len(thetas), df["cost"].min())
    return df


def landscape_minimum(df: pd.DataFrame) -> dict:
    """Grid point with the lowest cost."""
    best = df.loc[df["cost"].idxmin()]
    return {"theta": float(best["theta"]), "Rb": float(best["Rb"]),
            "regime": best["regime"], "cost": float(best["cost"])}


def solution_summary(solution) -> dict:
    """Trend and plunge (degrees) of the principal axes of a solution.

    Returns
    -------
    dict with keys sigma1, sigma2, sigma3 (trend, plunge), stress_ratio,
    misfit, misfit_deg and regime (from the most vertical principal axis)
    """
    w = np.asarray(solution.rotation_matrix_w, dtype=float)
    axes = {"sigma1": w[0], "sigma3": w[1], "sigma2": w[2]}
    vertical = max(axes, key=lambda name: abs(axes[name][2]))
    regime = {"sigma1": "normal", "sigma2": "strike_slip", "sigma3": "thrust"}[vertical]

    return {
        "sigma1": unit_vector_to_trend_plunge(axes["sigma1"]),
        "sigma2": unit_vector_to_trend_plunge(axes["sigma2"]),
        "sigma3": unit_vector_to_trend_plunge(axes["sigma3"]),
        "stress_ratio": solution.stress_ratio,
        "misfit": solution.misfit,
        "misfit_deg": float(np.degrees(solution.misfit)),
        "regime": regime,
    }

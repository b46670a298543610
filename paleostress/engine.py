"""
Hypothetical Stress Engine.

Turns a candidate principal frame (rotation tensor Hrot) and a stress
ratio R into the reduced stress tensor used by every misfit function.

Conventions (continuum mechanics, compression negative):
- rows of Hrot are the principal axes: σ1 (row 0), σ3 (row 1), σ2 (row 2)
- principal values are (-1, 0, -R) for (σ1, σ3, σ2)
- S = Hrotᵀ · diag(-1, 0, -R) · Hrot in the geographic frame (E, N, Up)
"""

from dataclasses import dataclass

import numpy as np

from .config import EPS
from .rotation import (
    frozen_array, is_rotation, normalize, cross_product, trend_plunge_to_unit_vector,
    trend_to_phi,
)


# ──────────────────────────────────────────────
# Tensor parameters
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class HypotheticalSolutionTensorParameters:
    """Stress state of one search trial (read-only)."""
    S: np.ndarray
    S1_X: np.ndarray
    S3_Y: np.ndarray
    S2_Z: np.ndarray
    s1_X: float
    s3_Y: float
    s2_Z: float
    Hrot: np.ndarray

    @property
    def stress_ratio(self) -> float:
        return -self.s2_Z


def stress_tensor_delta(stress_ratio: float, wrot) -> np.ndarray:
    """Reduced stress tensor S = Wrotᵀ · diag(-1, 0, -R) · Wrot."""
    wrot = np.asarray(wrot, dtype=float)
    return wrot.T @ np.diag([-1.0, 0.0, -stress_ratio]) @ wrot


def tensor_parameters_from_rotation(hrot, stress_ratio: float) -> HypotheticalSolutionTensorParameters:
    """Build the principal decomposition and the tensor for (Hrot, R)."""
    hrot = np.asarray(hrot, dtype=float)
    return HypotheticalSolutionTensorParameters(
        S=frozen_array(stress_tensor_delta(stress_ratio, hrot)),
        S1_X=frozen_array(hrot[0]),
        S3_Y=frozen_array(hrot[1]),
        S2_Z=frozen_array(hrot[2]),
        s1_X=-1.0,
        s3_Y=0.0,
        s2_Z=-float(stress_ratio),
        Hrot=frozen_array(hrot),
    )


# ──────────────────────────────────────────────
# Engine
# ──────────────────────────────────────────────

class HomogeneousEngine:
    """Spatially uniform stress field.

    ``stress(position)`` takes a position so that a heterogeneous engine can
    be substituted without changing the callers; it is ignored here.
    """

    def __init__(self):
        self._hrot = np.eye(3)
        self._stress_ratio = 0.5
        self._params = tensor_parameters_from_rotation(self._hrot, self._stress_ratio)

    def set_hypothetical_stress(self, hrot, stress_ratio: float) -> None:
        hrot = np.asarray(hrot, dtype=float)
        if not 0.0 <= stress_ratio <= 1.0:
            raise ValueError(f"Stress ratio must be in [0, 1], got {stress_ratio}")
        if not is_rotation(hrot):
            raise ValueError("Hrot must be a proper rotation tensor")
        self._hrot = hrot.copy()
        self._stress_ratio = float(stress_ratio)
        self._params = tensor_parameters_from_rotation(self._hrot, self._stress_ratio)

    @property
    def Hrot(self) -> np.ndarray:
        return self._hrot.copy()

    @property
    def stress_ratio(self) -> float:
        return self._stress_ratio

    @property
    def S(self) -> np.ndarray:
        return np.array(self._params.S)

    def stress(self, position=None) -> HypotheticalSolutionTensorParameters:
        return self._params


# ──────────────────────────────────────────────
# Andersonian regimes
# ──────────────────────────────────────────────

REGIMES = ("normal", "strike_slip", "thrust")


def regime_name(rb: float) -> str:
    """Faulting regime of the continuous regime parameter Rb in [0, 3]."""
    if rb < 0 or rb > 3:
        raise ValueError(f"Rb must be in [0, 3], got {rb}")
    if rb <= 1:
        return "normal"
    if rb <= 2:
        return "strike_slip"
    return "thrust"


def regime_rotation(theta: float, rb: float) -> tuple:
    """Principal frame and stress ratio of an Andersonian stress state.

    Parameters
    ----------
    theta : azimuth of the maximum horizontal compression, radians
            anticlockwise from East
    rb : regime parameter in [0, 3]
         [0, 1] normal       σ1 vertical,   R = Rb
         [1, 2] strike-slip  σ2 vertical,   R = 2 - Rb
         [2, 3] thrust       σ3 vertical,   R = Rb - 2

    Returns
    -------
    (Hrot, R) : rotation tensor (rows σ1, σ3, σ2) and stress ratio

    The tensor built from (Hrot, R) is continuous in Rb: at Rb = 1 both
    the normal and strike-slip forms give σ1 = σ2, at Rb = 2 both the
    strike-slip and thrust forms give σ2 = σ3.
    """
    regime = regime_name(rb)
    sh_max = np.array([np.cos(theta), np.sin(theta), 0.0])
    sh_min = np.array([-np.sin(theta), np.cos(theta), 0.0])
    up = np.array([0.0, 0.0, 1.0])

    if regime == "normal":
        s1, s3, R = up, sh_min, rb
    elif regime == "strike_slip":
        s1, s3, R = sh_max, sh_min, 2.0 - rb
    else:
        s1, s3, R = sh_max, up, rb - 2.0

    hrot = np.array([s1, s3, cross_product(s1, s3)])
    return hrot, float(R)


def regime_stress_tensor(theta: float, rb: float) -> np.ndarray:
    """Reduced stress tensor for the regime parameterization (theta, Rb)."""
    hrot, R = regime_rotation(theta, rb)
    return stress_tensor_delta(R, hrot)


# ──────────────────────────────────────────────
# Rough estimate from field axes
# ──────────────────────────────────────────────

def _slave_plunge(master: np.ndarray, trend_deg: float) -> float:
    """Plunge (degrees) of the line of given trend perpendicular to master."""
    phi = trend_to_phi(trend_deg)
    horizontal = np.array([np.cos(phi), np.sin(phi), 0.0])
    h = float(np.dot(master, horizontal))
    if abs(master[2]) <= EPS:
        if abs(h) <= EPS:
            raise ValueError(
                "Slave axis is undetermined: master axis is horizontal and "
                "perpendicular to the slave trend; give the slave plunge"
            )
        return 90.0
    # Line l = cos(p) h_dir - sin(p) up must satisfy master · l = 0.
    # A negative plunge is the same axis seen from the opposite trend.
    return float(np.degrees(np.arctan(h / master[2])))


def rotation_from_principal_axes(trend_s1: float, plunge_s1: float = None,
                                 trend_s3: float = None, plunge_s3: float = None,
                                 master: str = "sigma1") -> np.ndarray:
    """Rough-estimate rotation tensor Rrot from σ1 and σ3 orientations.

    The master axis is given by trend and plunge; the slave axis needs only
    its trend, the plunge being derived so that both axes are perpendicular.
    Angles in degrees.

    Returns
    -------
    Rrot : rows σ1, σ3, σ2 = σ1 × σ3
    """
    if master not in ("sigma1", "sigma3"):
        raise ValueError(f"Unknown master stress: {master}")
    if trend_s1 is None or trend_s3 is None:
        raise ValueError("Both σ1 and σ3 trends are required")

    if master == "sigma1":
        if plunge_s1 is None:
            raise ValueError("Master axis σ1 requires a plunge")
        s1 = trend_plunge_to_unit_vector(trend_s1, plunge_s1)
        if plunge_s3 is None:
            plunge_s3 = _slave_plunge(s1, trend_s3)
        s3 = trend_plunge_to_unit_vector(trend_s3, plunge_s3)
    else:
        if plunge_s3 is None:
            raise ValueError("Master axis σ3 requires a plunge")
        s3 = trend_plunge_to_unit_vector(trend_s3, plunge_s3)
        if plunge_s1 is None:
            plunge_s1 = _slave_plunge(s3, trend_s1)
        s1 = trend_plunge_to_unit_vector(trend_s1, plunge_s1)

    if abs(np.dot(s1, s3)) > 1e-6:
        raise ValueError(
            f"σ1 and σ3 are not perpendicular (cos = {np.dot(s1, s3):.3g})"
        )
    s1 = normalize(s1)
    s3 = normalize(s3 - np.dot(s3, s1) * s1)
    return np.array([s1, s3, cross_product(s1, s3)])

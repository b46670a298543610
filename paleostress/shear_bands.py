"""
Angular-interval structures.

Neoformed striated planes and striated shear bands constrain σ1 to a range
of angles with the plane normal, in the plane of movement (n, striation):

    σ1(α) = cos(α) n - sin(α) s,   α = <σ1, n> in [α_min, α_max]
    σ2    = n × s
    σ3(α) = σ2 × σ1(α)

The interval comes, in order of precedence, from an explicit <σ1, n>
range, from a friction angle range (α = π/4 + φ/2, Mohr-Coulomb), or from
the default of the structure type.

The misfit of a hypothesis is zero inside the family of compatible frames
and grows with the rotation needed to reach the nearest boundary frame.
"""

from dataclasses import dataclass

import numpy as np

from .config import EPS
from .errors import ConstructionError, InvariantViolationError
from .rotation import (
    cross_product, frozen_array, minimum_rotation_angle, normalize, rotation_between_vectors,
    rotation_tensor_from_axes, scalar_product_unit_vectors,
)


@dataclass(frozen=True)
class IntervalGeometry:
    n_plane: np.ndarray
    n_striation: np.ndarray
    n_perp_striation: np.ndarray
    sigma2_m: np.ndarray
    sigma1_mean: np.ndarray
    alpha_min: float
    alpha_max: float
    frames: tuple

    def __post_init__(self):
        for name in ("n_plane", "n_striation", "n_perp_striation", "sigma2_m", "sigma1_mean"):
            object.__setattr__(self, name, frozen_array(getattr(self, name)))
        object.__setattr__(self, "frames", tuple(frozen_array(f) for f in self.frames))

    @property
    def alpha_mean(self) -> float:
        return 0.5 * (self.alpha_min + self.alpha_max)

    @property
    def half_width(self) -> float:
        return 0.5 * (self.alpha_max - self.alpha_min)


def _is_missing(value) -> bool:
    return value is None or np.isnan(value)


def s1n_interval(default: tuple, friction_angles: tuple = None,
                 s1n_angles: tuple = None, index=0) -> tuple:
    """Interval of <σ1, n> in radians.

    Parameters
    ----------
    default : (min, max) in radians, used when nothing is given
    friction_angles : (min, max) friction angle φ in degrees, [0, 90)
    s1n_angles : (min, max) of <σ1, n> in degrees, [0, 90]
    """
    has_friction = friction_angles is not None and not all(_is_missing(a) for a in friction_angles)
    has_s1n = s1n_angles is not None and not all(_is_missing(a) for a in s1n_angles)

    if has_friction and has_s1n:
        raise ConstructionError(
            index, "define either friction angles or <Sigma 1, nPlane> angles, but not both"
        )

    if has_friction:
        phi_min, phi_max = friction_angles
        phi_min = 0.0 if _is_missing(phi_min) else phi_min
        phi_max = 90.0 if _is_missing(phi_max) else phi_max
        if not 0.0 <= phi_min <= phi_max <= 90.0:
            raise ConstructionError(
                index, f"friction angle interval [{phi_min}, {phi_max}] is not within [0, 90]"
            )
        return (np.pi / 4 + np.radians(phi_min) / 2,
                np.pi / 4 + np.radians(phi_max) / 2)

    if has_s1n:
        a_min, a_max = s1n_angles
        a_min = np.degrees(default[0]) if _is_missing(a_min) else a_min
        a_max = np.degrees(default[1]) if _is_missing(a_max) else a_max
        if not 0.0 <= a_min <= a_max <= 90.0:
            raise ConstructionError(
                index, f"<Sigma 1, nPlane> interval [{a_min}, {a_max}] is not within [0, 90]"
            )
        return np.radians(a_min), np.radians(a_max)

    return tuple(default)


def _sigma1_at(n_plane, n_striation, alpha: float) -> np.ndarray:
    return np.cos(alpha) * n_plane - np.sin(alpha) * n_striation


def interval_geometry(n_plane, n_striation, alpha_min: float, alpha_max: float) -> IntervalGeometry:
    """Family of frames compatible with a striated plane and a <σ1, n> interval."""
    sigma2_m = normalize(cross_product(n_plane, n_striation))
    frames = []
    for alpha in (alpha_min, 0.5 * (alpha_min + alpha_max), alpha_max):
        sigma1 = _sigma1_at(n_plane, n_striation, alpha)
        sigma3 = cross_product(sigma2_m, sigma1)
        frames.append(rotation_tensor_from_axes(sigma1, sigma3, sigma2_m))

    return IntervalGeometry(
        n_plane=n_plane,
        n_striation=n_striation,
        n_perp_striation=cross_product(n_plane, n_striation),
        sigma2_m=sigma2_m,
        sigma1_mean=frames[1][0],
        alpha_min=float(alpha_min),
        alpha_max=float(alpha_max),
        frames=tuple(frames),
    )


def interval_misfit(geometry: IntervalGeometry, stress, index=None) -> float:
    """Misfit of a hypothesis against an angular-interval datum.

    1. Rotate the hypothesis σ2 onto σ2_m (angle Ω in [0, π/2]).
    2. If the rotated σ1 falls inside the interval, the misfit is Ω.
    3. Otherwise it is the minimum rotation to the nearest boundary frame.

    Raises
    ------
    InvariantViolationError : the middle frame of the interval is closer
        than both boundaries, so the misfit is not monotonic in α and the
        nearest-boundary rule does not apply
    """
    hrot = np.asarray(stress.Hrot)
    prot, omega = rotation_between_vectors(np.asarray(stress.S2_Z), geometry.sigma2_m)
    sigma1_rot = prot @ np.asarray(stress.S1_X)

    deviation = np.arccos(abs(scalar_product_unit_vectors(geometry.sigma1_mean, normalize(sigma1_rot))))
    if deviation <= geometry.half_width + EPS:
        return float(omega)

    omegas = [minimum_rotation_angle(frame @ hrot.T) for frame in geometry.frames]
    boundary = min(omegas[0], omegas[2])
    if omegas[1] < boundary - EPS:
        raise InvariantViolationError(
            "the minimum rotation angle corresponds to the middle of the <Sigma 1, nPlane> "
            "interval, the rotation angle is not a monotonic function of the angle",
            index=index,
        )
    return boundary

"""
Rotation and Tensor Mathematics.

Stateless helpers on 3-vectors and 3x3 matrices used by every misfit
function of the inversion:
- vector products, clamped scalar products and normalization
- spherical <-> cartesian conversions in the geographic frame
  (X = East, Y = North, Z = Up)
- proper rotation tensors (axis-angle, Rodrigues)
- minimum rotation angle between two principal stress frames, modulo the
  sign symmetries of the stress tensor axes
"""

import numpy as np
from scipy.spatial.transform import Rotation

from .config import EPS
from .errors import DegenerateVectorError, InvariantViolationError


# ──────────────────────────────────────────────
# Vectors
# ──────────────────────────────────────────────

def clamp_unit(x: float) -> float:
    """Clamp a cosine-like value into [-1, 1] before acos / asin."""
    return float(min(1.0, max(-1.0, x)))


def dot_product(u, v) -> float:
    return float(np.dot(u, v))


def cross_product(u, v) -> np.ndarray:
    return np.cross(np.asarray(u, dtype=float), np.asarray(v, dtype=float))


def vector_magnitude(v) -> float:
    return float(np.linalg.norm(v))


def normalize(v, magnitude: float = None) -> np.ndarray:
    """Return v / |v|.

    Raises
    ------
    DegenerateVectorError : if |v| is zero (within EPS)
    """
    v = np.asarray(v, dtype=float)
    if magnitude is None:
        magnitude = vector_magnitude(v)
    if magnitude <= EPS:
        raise DegenerateVectorError(f"Cannot normalize vector {v.tolist()} of norm {magnitude}")
    return v / magnitude


def normalized_cross_product(u, v) -> np.ndarray:
    return normalize(cross_product(u, v))


def scalar_product_unit_vectors(u, v) -> float:
    """Scalar product of two unit vectors, clamped to [-1, 1]."""
    return clamp_unit(np.dot(u, v))


def angle_between_unit_vectors(u, v) -> float:
    return float(np.arccos(scalar_product_unit_vectors(u, v)))


# ──────────────────────────────────────────────
# Matrices
# ──────────────────────────────────────────────

def multiply_tensors(a, b) -> np.ndarray:
    return np.asarray(a, dtype=float) @ np.asarray(b, dtype=float)


def transpose_tensor(a) -> np.ndarray:
    return np.asarray(a, dtype=float).T.copy()


def tensor_x_vector(t, v) -> np.ndarray:
    return np.asarray(t, dtype=float) @ np.asarray(v, dtype=float)


def rotation_tensor_from_axes(xb, yb, zb) -> np.ndarray:
    """Rotation tensor from the reference frame to a frame (xb, yb, zb).

    The rows of the returned matrix are the target axes expressed in the
    reference frame, so ``R @ v`` gives the components of v in the target
    frame.
    """
    return np.array([xb, yb, zb], dtype=float)


def frozen_array(a) -> np.ndarray:
    """Read-only float copy of a vector or tensor."""
    a = np.array(a, dtype=float)
    a.flags.writeable = False
    return a


def is_rotation(r, tol: float = 1e-6) -> bool:
    """True when r is orthonormal with determinant +1."""
    r = np.asarray(r, dtype=float)
    if r.shape != (3, 3):
        return False
    return (np.allclose(r.T @ r, np.eye(3), atol=tol)
            and abs(np.linalg.det(r) - 1.0) < tol)


# ──────────────────────────────────────────────
# Spherical coordinates
# ──────────────────────────────────────────────

def deg2rad(a):
    return np.radians(a)


def rad2deg(a):
    return np.degrees(a)


def spherical_to_unit_vector(phi: float, theta: float) -> np.ndarray:
    """Unit vector from spherical coordinates.

    Parameters
    ----------
    phi : azimuth measured anticlockwise from East, in [0, 2π)
    theta : colatitude measured from the upward zenith, in [0, π]
    """
    return np.array([
        np.sin(theta) * np.cos(phi),
        np.sin(theta) * np.sin(phi),
        np.cos(theta),
    ])


def unit_vector_to_spherical(v) -> tuple:
    """Inverse of :func:`spherical_to_unit_vector`, returns (phi, theta)."""
    v = normalize(v)
    theta = float(np.arccos(clamp_unit(v[2])))
    if abs(v[0]) <= EPS and abs(v[1]) <= EPS:
        # Vertical vector: azimuth is undefined, use 0 by convention
        return 0.0, theta
    phi = float(np.arctan2(v[1], v[0]))
    if phi < 0:
        phi += 2 * np.pi
    return phi, theta


def trend_to_phi(trend_deg: float) -> float:
    """Convert a trend (clockwise from North, degrees) to phi (anticlockwise from East, radians)."""
    phi = np.pi / 2 - np.radians(trend_deg)
    return float(phi % (2 * np.pi))


def trend_plunge_to_unit_vector(trend_deg: float, plunge_deg: float) -> np.ndarray:
    """Unit vector of a line given by trend and (downward) plunge in degrees.

    The line points downward for positive plunge: theta = plunge + π/2.
    """
    return spherical_to_unit_vector(trend_to_phi(trend_deg), np.radians(plunge_deg) + np.pi / 2)


def unit_vector_to_trend_plunge(v) -> tuple:
    """Trend and plunge (degrees) of the lower-hemisphere end of an axis."""
    v = normalize(v)
    if v[2] > 0:
        v = -v
    plunge = float(np.degrees(np.arcsin(clamp_unit(-v[2]))))
    if abs(v[0]) <= EPS and abs(v[1]) <= EPS:
        return 0.0, plunge
    trend = float(np.degrees(np.arctan2(v[0], v[1]))) % 360.0
    return trend, plunge


# ──────────────────────────────────────────────
# Rotations
# ──────────────────────────────────────────────

def proper_rotation_tensor(axis, angle: float) -> np.ndarray:
    """Rotation of ``angle`` radians about ``axis`` (right-hand rule).

    Built from the rotation vector ``angle * axis`` which is Rodrigues'
    formula: R = I + sin(a) K + (1 - cos(a)) K².  R @ axis == axis.
    """
    n = normalize(axis)
    return Rotation.from_rotvec(angle * n).as_matrix()


def minimum_rotation_angle(r) -> float:
    """Minimum rotation angle between two principal stress frames.

    ``r`` is the rotation tensor between two right-handed frames whose axes
    are principal stress directions (σ1, σ3, σ2).  Reversing any two axes
    gives an equally valid right-handed frame, so the rotation is only
    defined up to the four sign changes diag(±1, ±1, ±1) with det = +1.
    The trace of each variant gives the cosine of its rotation angle; the
    largest trace gives the smallest angle.

    Returns
    -------
    angle : float in [0, π]

    Raises
    ------
    InvariantViolationError : if ``r`` is not a rotation tensor
    """
    r = np.asarray(r, dtype=float)
    traces = (
        r[0, 0] + r[1, 1] + r[2, 2],
        r[0, 0] - r[1, 1] - r[2, 2],
        -r[0, 0] + r[1, 1] - r[2, 2],
        -r[0, 0] - r[1, 1] + r[2, 2],
    )
    cos_omega = (max(traces) - 1.0) / 2.0
    if abs(cos_omega) > 1.0 + EPS:
        raise InvariantViolationError(
            f"Matrix is not a rotation tensor: cosine of rotation angle is {cos_omega}"
        )
    return float(np.arccos(clamp_unit(cos_omega)))


def rotation_between_vectors(u, v) -> tuple:
    """Smallest rotation taking unit vector u onto the axis of v.

    The axis of v is taken with the sign closest to u, so the returned
    angle is in [0, π/2].

    Returns
    -------
    (rotation tensor, angle)
    """
    cos_uv = scalar_product_unit_vectors(u, v)
    target = v if cos_uv >= 0 else -np.asarray(v, dtype=float)
    w = cross_product(u, target)
    magnitude = vector_magnitude(w)
    if magnitude <= EPS:
        return np.eye(3), 0.0
    angle = float(np.arccos(abs(cos_uv)))
    return proper_rotation_tensor(w / magnitude, angle), angle

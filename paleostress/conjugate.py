"""
Conjugate structures.

A pair of conjugate planes (faults, dilatant or compactional shear bands)
constrains the three principal axes at once:
- σ2 is the intersection line of the planes, σ2 = n1 × n2
- σ1 and σ3 lie in the plane of movement (n1, n2) and bisect the angles
  between the planes; for faults and dilatant bands σ1 bisects the acute
  dihedral angle, for compactional bands the obtuse one

The derivation runs once, when the datum is built, and produces the
compatible frame Mrot (rows σ1, σ3, σ2).  Recorded senses of movement are
checked against that frame.
"""

from dataclasses import dataclass

import numpy as np

from .config import EPS
from .errors import ConstructionError
from .faults import FaultGeometry, TypeOfMovement, movement_is_consistent, slip_components
from .rotation import (
    cross_product, frozen_array, minimum_rotation_angle, normalize, rotation_tensor_from_axes,
    vector_magnitude,
)


@dataclass(frozen=True)
class ConjugateFrame:
    mrot: np.ndarray
    sigma1: np.ndarray
    sigma2: np.ndarray
    sigma3: np.ndarray
    n_plane_1: np.ndarray
    n_plane_2: np.ndarray

    def __post_init__(self):
        for name in ("mrot", "sigma1", "sigma2", "sigma3", "n_plane_1", "n_plane_2"):
            object.__setattr__(self, name, frozen_array(getattr(self, name)))


def _sigma3_on_bisector(n1, n2, sigma2):
    sigma3 = normalize(n1 + n2)
    sigma1 = normalize(cross_product(sigma3, sigma2))
    return sigma1, sigma3


def _sigma1_on_bisector(n1, n2, sigma2):
    sigma1 = normalize(n1 + n2)
    sigma3 = normalize(cross_product(sigma2, sigma1))
    return sigma1, sigma3


def conjugate_slip(normal, sigma2, sigma3) -> np.ndarray:
    """Slip of the hanging wall of a conjugate plane in the frame (σ2, σ3).

    The slip is perpendicular to σ2 and its component along σ3 (taken on
    the side of the normal) is positive.
    """
    slip = normalize(cross_product(normal, sigma2))
    if np.dot(normal, sigma3) < 0:
        sigma3 = -sigma3
    if np.dot(slip, sigma3) < 0:
        slip = -slip
    return slip


def plane_movement_is_consistent(geometry: FaultGeometry, movement: TypeOfMovement,
                                 sigma2, sigma3) -> bool:
    slip = conjugate_slip(geometry.normal, sigma2, sigma3)
    ss, ds = slip_components(slip, geometry.e_phi, geometry.e_theta)
    return movement_is_consistent(ss, ds, movement)


def _describe_inconsistency(geometry, movement, sigma2, sigma3) -> str:
    slip = conjugate_slip(geometry.normal, sigma2, sigma3)
    ss, ds = slip_components(slip, geometry.e_phi, geometry.e_theta)
    parts = []
    if abs(ss) > EPS:
        parts.append("left-lateral" if ss > 0 else "right-lateral")
    if abs(ds) > EPS:
        parts.append("normal" if ds > 0 else "inverse")
    implied = " and ".join(parts) or "no"
    return (f"sense of movement {movement.value} is not consistent with fault kinematics, "
            f"geometry implies {implied} slip")


def compatible_frame(geometry_1: FaultGeometry, geometry_2: FaultGeometry,
                     movement_1: TypeOfMovement = TypeOfMovement.UND,
                     movement_2: TypeOfMovement = TypeOfMovement.UND,
                     index=0, compactional: bool = False) -> ConjugateFrame:
    """Principal frame compatible with a pair of conjugate planes.

    Parameters
    ----------
    geometry_1, geometry_2 : fault geometries of both planes
    movement_1, movement_2 : recorded senses of movement (UND if unknown)
    index : datum number of the first plane, for error messages
    compactional : σ1 bisects the obtuse dihedral angle (compaction bands)

    Raises
    ------
    ConstructionError : identical or parallel planes; perpendicular planes
        without a sense of movement; senses inconsistent with the frame
    """
    n1, n2 = geometry_1.normal, geometry_2.normal
    intersection = cross_product(n1, n2)
    if vector_magnitude(intersection) <= EPS:
        raise ConstructionError(index, "conjugate planes are identical or parallel")
    sigma2 = normalize(intersection)

    cos12 = float(np.dot(n1, n2))
    checks = ((geometry_1, movement_1, index), (geometry_2, movement_2, index + 1))

    if abs(cos12) <= EPS:
        # The two bisectors are equivalent; only the kinematics can tell σ1 from σ3
        if movement_1 is TypeOfMovement.UND and movement_2 is TypeOfMovement.UND:
            raise ConstructionError(
                index,
                f"conjugate planes {index} and {index + 1} are perpendicular, "
                "indicate the type of movement for at least one plane"
            )
        for build in (_sigma3_on_bisector, _sigma1_on_bisector):
            sigma1, sigma3 = build(n1, n2, sigma2)
            if all(plane_movement_is_consistent(g, m, sigma2, sigma3) for g, m, _ in checks):
                break
        else:
            raise ConstructionError(
                index,
                f"sense of movement of perpendicular conjugate planes {index} and {index + 1} "
                "is not consistent with fault kinematics"
            )
    else:
        # n1 + n2 bisects the obtuse dihedral angle when the normals make an acute angle
        sum_is_sigma1 = (cos12 < 0) != compactional
        build = _sigma1_on_bisector if sum_is_sigma1 else _sigma3_on_bisector
        sigma1, sigma3 = build(n1, n2, sigma2)
        for geometry, movement, number in checks:
            if not plane_movement_is_consistent(geometry, movement, sigma2, sigma3):
                raise ConstructionError(
                    number, _describe_inconsistency(geometry, movement, sigma2, sigma3)
                )

    return ConjugateFrame(
        mrot=rotation_tensor_from_axes(sigma1, sigma3, sigma2),
        sigma1=sigma1,
        sigma2=sigma2,
        sigma3=sigma3,
        n_plane_1=n1,
        n_plane_2=n2,
    )


def conjugate_misfit(frame: ConjugateFrame, stress) -> float:
    """Minimum rotation between the compatible frame and the hypothesis."""
    return minimum_rotation_angle(frame.mrot @ np.asarray(stress.Hrot).T)

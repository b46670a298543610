"""
Fault plane and striation geometry.

Converts field angles (strike, dip, dip direction, rake, striation trend,
sense of movement) into unit vectors in the geographic frame
(X = East, Y = North, Z = Up):

- ``normal``: upward normal of the plane
- ``e_phi``: horizontal unit vector of the plane; a hanging-wall slip with a
  positive component along e_phi is left-lateral
- ``e_theta``: down-dip unit vector; a positive component is normal slip
- ``striation``: slip direction of the hanging wall (of the block on the
  normal side for vertical planes)
- ``perp_striation``: normal × striation

Angles are given in degrees, strike and trend clockwise from North.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np

from .config import EPS
from .errors import ConstructionError
from .rotation import cross_product, normalize, vector_magnitude


# ──────────────────────────────────────────────
# Enumerations
# ──────────────────────────────────────────────

class Direction(Enum):
    E = "E"
    W = "W"
    N = "N"
    S = "S"
    NE = "NE"
    SE = "SE"
    SW = "SW"
    NW = "NW"
    UND = "UND"

    @property
    def vector(self) -> np.ndarray:
        """Horizontal unit vector (East, North) of the octant."""
        if self is Direction.UND:
            raise ValueError("Undefined direction has no vector")
        return _DIRECTION_VECTORS[self]


_SQRT_HALF = np.sqrt(0.5)

_DIRECTION_VECTORS = {
    Direction.E: np.array([1.0, 0.0]),
    Direction.W: np.array([-1.0, 0.0]),
    Direction.N: np.array([0.0, 1.0]),
    Direction.S: np.array([0.0, -1.0]),
    Direction.NE: np.array([_SQRT_HALF, _SQRT_HALF]),
    Direction.SE: np.array([_SQRT_HALF, -_SQRT_HALF]),
    Direction.SW: np.array([-_SQRT_HALF, -_SQRT_HALF]),
    Direction.NW: np.array([-_SQRT_HALF, _SQRT_HALF]),
}


class TypeOfMovement(Enum):
    N = "N"
    I = "I"
    RL = "RL"
    LL = "LL"
    N_RL = "N_RL"
    N_LL = "N_LL"
    I_RL = "I_RL"
    I_LL = "I_LL"
    UND = "UND"

    @property
    def strike_slip_sign(self) -> int:
        """+1 for left-lateral, -1 for right-lateral, 0 when not specified."""
        return _MOVEMENT_SIGNS[self][0]

    @property
    def dip_slip_sign(self) -> int:
        """+1 for normal, -1 for inverse, 0 when not specified."""
        return _MOVEMENT_SIGNS[self][1]


_MOVEMENT_SIGNS = {
    TypeOfMovement.N: (0, 1),
    TypeOfMovement.I: (0, -1),
    TypeOfMovement.RL: (-1, 0),
    TypeOfMovement.LL: (1, 0),
    TypeOfMovement.N_RL: (-1, 1),
    TypeOfMovement.N_LL: (1, 1),
    TypeOfMovement.I_RL: (-1, -1),
    TypeOfMovement.I_LL: (1, -1),
    TypeOfMovement.UND: (0, 0),
}


# ──────────────────────────────────────────────
# Field records
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Plane:
    strike: float
    dip: float
    dip_direction: Direction = Direction.UND


@dataclass(frozen=True)
class Striation:
    rake: float = None
    strike_direction: Direction = Direction.UND
    trend: float = None
    trend_is_defined: bool = False
    type_of_movement: TypeOfMovement = TypeOfMovement.UND


@dataclass(frozen=True)
class FaultGeometry:
    normal: np.ndarray
    e_phi: np.ndarray
    e_theta: np.ndarray
    striation: np.ndarray = None
    perp_striation: np.ndarray = None
    type_of_movement: TypeOfMovement = TypeOfMovement.UND

    @property
    def oriented(self) -> bool:
        """True when the sense of slip of the striation is known."""
        return self.type_of_movement is not TypeOfMovement.UND


# ──────────────────────────────────────────────
# Plane orientation
# ──────────────────────────────────────────────

def _horizontal(azimuth_deg: float) -> np.ndarray:
    """Horizontal unit vector (East, North) of an azimuth clockwise from North."""
    az = np.radians(azimuth_deg)
    return np.array([np.sin(az), np.cos(az)])


def _is_vertical(dip: float) -> bool:
    return abs(dip - 90.0) <= EPS


def _is_horizontal(dip: float) -> bool:
    return abs(dip) <= EPS


def dip_azimuth(plane: Plane, index=0) -> float:
    """Azimuth (degrees, clockwise from North) of the dip direction.

    Horizontal planes use 90° by convention.  Vertical planes use
    strike - 90°, so that their normal points to the left of the strike.
    Otherwise the dip direction octant selects strike + 90° or strike - 90°.
    """
    if plane.strike is None or np.isnan(plane.strike):
        raise ConstructionError(index, "missing strike angle")
    if plane.dip is None or np.isnan(plane.dip):
        raise ConstructionError(index, "missing dip angle")
    if not 0.0 <= plane.strike <= 360.0:
        raise ConstructionError(index, f"fault strike {plane.strike} is out of the expected interval [0, 360]")
    if not 0.0 <= plane.dip <= 90.0:
        raise ConstructionError(index, f"fault dip {plane.dip} is out of the expected interval [0, 90]")

    if _is_horizontal(plane.dip):
        return 90.0
    if _is_vertical(plane.dip):
        return (plane.strike - 90.0) % 360.0

    if plane.dip_direction is Direction.UND:
        raise ConstructionError(index, "missing dip direction")

    for candidate in (plane.strike + 90.0, plane.strike - 90.0):
        if np.dot(plane.dip_direction.vector, _horizontal(candidate)) > EPS:
            return candidate % 360.0
    raise ConstructionError(
        index,
        f"dip direction {plane.dip_direction.value} is parallel to strike {plane.strike}"
    )


def plane_frame(plane: Plane, index=0) -> tuple:
    """Unit vectors (normal, e_phi, e_theta) of a plane."""
    az = np.radians(dip_azimuth(plane, index))
    dip = np.radians(plane.dip)
    normal = np.array([np.sin(dip) * np.sin(az), np.sin(dip) * np.cos(az), np.cos(dip)])
    e_phi = np.array([-np.cos(az), np.sin(az), 0.0])
    e_theta = np.array([np.cos(dip) * np.sin(az), np.cos(dip) * np.cos(az), -np.sin(dip)])
    return normal, e_phi, e_theta


def plane_normal(plane: Plane, index=0) -> np.ndarray:
    return plane_frame(plane, index)[0]


# ──────────────────────────────────────────────
# Sense of movement
# ──────────────────────────────────────────────

def slip_components(slip, e_phi, e_theta) -> tuple:
    """Strike-slip (along e_phi) and dip-slip (along e_theta) components."""
    return float(np.dot(slip, e_phi)), float(np.dot(slip, e_theta))


def movement_is_consistent(strike_slip: float, dip_slip: float,
                           movement: TypeOfMovement) -> bool:
    """Whether a hanging-wall slip with these components matches ``movement``.

    A component recorded in the type of movement must have the matching
    sign, and cannot be recorded at all when the slip has no such
    component (e.g. N on a pure strike-slip striation).
    """
    ss_sign = movement.strike_slip_sign
    ds_sign = movement.dip_slip_sign

    if abs(strike_slip) > EPS:
        if ss_sign != 0 and ss_sign != np.sign(strike_slip):
            return False
    elif ss_sign != 0:
        return False

    if abs(dip_slip) > EPS:
        if ds_sign != 0 and ds_sign != np.sign(dip_slip):
            return False
    elif ds_sign != 0:
        return False

    return True


def orient_striation(slip, e_phi, e_theta, movement: TypeOfMovement, index=0) -> np.ndarray:
    """Return ±slip so that it agrees with the recorded type of movement."""
    ss, ds = slip_components(slip, e_phi, e_theta)
    if movement_is_consistent(ss, ds, movement):
        return slip
    if movement_is_consistent(-ss, -ds, movement):
        return -slip
    raise ConstructionError(
        index,
        f"type of movement {movement.value} is not consistent with fault data "
        f"(strike-slip component {ss:.3g}, dip-slip component {ds:.3g})"
    )


# ──────────────────────────────────────────────
# Striation
# ──────────────────────────────────────────────

def _striation_from_rake(plane: Plane, striation: Striation, e_phi, e_theta, index) -> np.ndarray:
    rake = striation.rake
    if rake is None or np.isnan(rake):
        raise ConstructionError(index, "missing rake or striation trend")
    if not 0.0 <= rake <= 180.0:
        raise ConstructionError(index, f"rake {rake} is out of the expected interval [0, 180]")
    if _is_horizontal(plane.dip):
        raise ConstructionError(index, "the striation of a horizontal plane must be given by its trend")

    if abs(rake - 90.0) <= EPS:
        alpha = np.pi / 2
    else:
        if striation.strike_direction is Direction.UND:
            raise ConstructionError(index, "missing strike direction for measuring the rake")
        side = np.dot(striation.strike_direction.vector, e_phi[:2])
        if abs(side) <= EPS:
            raise ConstructionError(
                index,
                f"strike direction {striation.strike_direction.value} for measuring "
                f"the rake is perpendicular to strike {plane.strike}"
            )
        alpha = np.radians(rake) if side > 0 else np.pi - np.radians(rake)

    return np.cos(alpha) * e_phi + np.sin(alpha) * e_theta


def _striation_from_trend(plane: Plane, striation: Striation, normal, index) -> np.ndarray:
    trend = np.radians(striation.trend)
    if _is_horizontal(plane.dip):
        return np.array([np.sin(trend), np.cos(trend), 0.0])
    # Horizontal normal of the vertical plane containing the trend
    n_trend = np.array([np.cos(trend), -np.sin(trend), 0.0])
    slip = cross_product(normal, n_trend)
    magnitude = vector_magnitude(slip)
    if magnitude <= EPS:
        raise ConstructionError(
            index, f"striation trend {striation.trend} does not define a line in a plane of strike {plane.strike}"
        )
    return slip / magnitude


def _uplifted_block_striation(plane: Plane, normal, movement: TypeOfMovement, index) -> np.ndarray:
    """Pure dip-slip on a vertical plane: the dip direction names the uplifted block."""
    if movement.strike_slip_sign != 0:
        raise ConstructionError(
            index, f"type of movement {movement.value} is not consistent with a pure dip-slip striation"
        )
    if plane.dip_direction is Direction.UND:
        if movement is TypeOfMovement.UND:
            return np.array([0.0, 0.0, -1.0])
        raise ConstructionError(index, "the orientation of the uplifted block is missing")
    side = np.dot(plane.dip_direction.vector, normal[:2])
    if abs(side) <= EPS:
        raise ConstructionError(
            index, f"the orientation of the uplifted block {plane.dip_direction.value} is parallel to the plane"
        )
    # Striation is the slip of the block on the normal side
    return np.array([0.0, 0.0, 1.0 if side > 0 else -1.0])


def fault_geometry(plane: Plane, striation: Striation = None, index=0) -> FaultGeometry:
    """Unit vectors of a (possibly striated) fault plane.

    Parameters
    ----------
    plane : strike, dip and dip direction
    striation : optional rake / trend and type of movement
    index : datum number used in error messages

    Returns
    -------
    FaultGeometry with ``striation`` oriented as the hanging-wall slip
    whenever the type of movement is known.

    Raises
    ------
    ConstructionError : missing angles, inconsistent directions, or a type
        of movement that contradicts the striation
    """
    normal, e_phi, e_theta = plane_frame(plane, index)
    if striation is None:
        return FaultGeometry(normal=normal, e_phi=e_phi, e_theta=e_theta)

    movement = striation.type_of_movement
    if striation.trend_is_defined:
        if striation.trend is None or np.isnan(striation.trend):
            raise ConstructionError(index, "missing striation trend")
        slip = _striation_from_trend(plane, striation, normal, index)
    else:
        slip = _striation_from_rake(plane, striation, e_phi, e_theta, index)

    if _is_horizontal(plane.dip):
        # The trend already gives the sense of slip of the upper block
        pass
    elif _is_vertical(plane.dip):
        ss, _ = slip_components(slip, e_phi, e_theta)
        if abs(ss) <= EPS:
            slip = _uplifted_block_striation(plane, normal, movement, index)
        else:
            if movement.dip_slip_sign != 0:
                raise ConstructionError(
                    index, f"type of movement {movement.value} of a vertical plane should be RL or LL"
                )
            slip = orient_striation(slip, e_phi, e_theta, movement, index)
    else:
        slip = orient_striation(slip, e_phi, e_theta, movement, index)

    slip = normalize(slip)
    return FaultGeometry(
        normal=normal,
        e_phi=e_phi,
        e_theta=e_theta,
        striation=slip,
        perp_striation=cross_product(normal, slip),
        type_of_movement=movement,
    )

"""
Structural Data Model.

Each measured structure is an immutable ``Datum``: a kind tag from a closed
enumeration, the geometry derived from the field angles when the datum is
built, and the misfit strategy.  ``cost`` and ``check`` dispatch on the kind
through a single function table, so adding a structure type means adding
one builder and one table entry.

Kinds and what they are compared with:
- Striated Plane                     resolved shear stress vs striation
- Extension Fracture / Dilation Band normal vs σ3
- Compaction Band / Stylolite Interface normal vs σ1
- Crystal Fibers in Vein             fiber axis vs σ3
- Stylolite Teeth                    teeth axis vs σ1
- Conjugate Faults / Shear Bands     compatible frame vs hypothesis frame
- Neoformed Striated Plane / Striated Shear Bands
                                     <σ1, n> interval vs hypothesis frame
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np

from .config import COMPACTIONAL_S1N_INTERVAL, EPS, NEOFORMED_S1N_INTERVAL
from .conjugate import compatible_frame, conjugate_misfit
from .errors import ConstructionError
from .faults import Plane, Striation, TypeOfMovement, fault_geometry, plane_normal
from .rotation import (
    frozen_array, normalize, scalar_product_unit_vectors, trend_plunge_to_unit_vector,
    vector_magnitude,
)
from .shear_bands import interval_geometry, interval_misfit, s1n_interval


# ──────────────────────────────────────────────
# Kinds and strategies
# ──────────────────────────────────────────────

class DataKind(Enum):
    STRIATED_PLANE = "Striated Plane"
    EXTENSION_FRACTURE = "Extension Fracture"
    DILATION_BAND = "Dilation Band"
    COMPACTION_BAND = "Compaction Band"
    STYLOLITE_INTERFACE = "Stylolite Interface"
    CRYSTAL_FIBERS_IN_VEIN = "Crystal Fibers in Vein"
    STYLOLITE_TEETH = "Stylolite Teeth"
    CONJUGATE_FAULTS = "Conjugate Faults"
    CONJUGATE_DILATANT_SHEAR_BANDS = "Conjugate Dilatant Shear Bands"
    CONJUGATE_COMPACTIONAL_SHEAR_BANDS = "Conjugate Compactional Shear Bands"
    NEOFORMED_STRIATED_PLANE = "Neoformed Striated Plane"
    STRIATED_DILATANT_SHEAR_BAND = "Striated Dilatant Shear Band"
    STRIATED_COMPACTIONAL_SHEAR_BAND = "Striated Compactional Shear Band"


class FractureStrategy(Enum):
    ANGLE = "Angle"
    DOT = "Dot"
    MIN_TENSOR_ROTATION = "MinTensorRotation"
    MIN_STRIATION_ANGULAR_DIFFERENCE = "MinStriationAngularDifference"


AXIS_KINDS = {
    DataKind.EXTENSION_FRACTURE: "sigma3",
    DataKind.DILATION_BAND: "sigma3",
    DataKind.CRYSTAL_FIBERS_IN_VEIN: "sigma3",
    DataKind.COMPACTION_BAND: "sigma1",
    DataKind.STYLOLITE_INTERFACE: "sigma1",
    DataKind.STYLOLITE_TEETH: "sigma1",
}

CONJUGATE_KINDS = frozenset({
    DataKind.CONJUGATE_FAULTS,
    DataKind.CONJUGATE_DILATANT_SHEAR_BANDS,
    DataKind.CONJUGATE_COMPACTIONAL_SHEAR_BANDS,
})

INTERVAL_KINDS = {
    DataKind.NEOFORMED_STRIATED_PLANE: NEOFORMED_S1N_INTERVAL,
    DataKind.STRIATED_DILATANT_SHEAR_BAND: NEOFORMED_S1N_INTERVAL,
    DataKind.STRIATED_COMPACTIONAL_SHEAR_BAND: COMPACTIONAL_S1N_INTERVAL,
}

_ALLOWED_STRATEGIES = {
    "axis": (FractureStrategy.ANGLE, FractureStrategy.DOT),
    "striated": (FractureStrategy.ANGLE, FractureStrategy.DOT,
                 FractureStrategy.MIN_STRIATION_ANGULAR_DIFFERENCE),
    "frame": (FractureStrategy.MIN_TENSOR_ROTATION,),
}


# ──────────────────────────────────────────────
# Geometry payloads
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class AxisGeometry:
    """Single unit vector compared with one principal axis."""
    axis: np.ndarray
    principal: str

    def __post_init__(self):
        object.__setattr__(self, "axis", frozen_array(self.axis))


@dataclass(frozen=True)
class StriatedGeometry:
    n_plane: np.ndarray
    n_striation: np.ndarray
    n_perp_striation: np.ndarray

    def __post_init__(self):
        for name in ("n_plane", "n_striation", "n_perp_striation"):
            object.__setattr__(self, name, frozen_array(getattr(self, name)))


@dataclass(frozen=True)
class Datum:
    """One structural measurement, fixed once built.

    Only the hypothesis passed to ``cost`` / ``check`` varies during a
    search.  ``index`` is the data number used in error messages.
    """
    kind: DataKind
    geometry: object
    index: int = 0
    strategy: FractureStrategy = FractureStrategy.ANGLE
    oriented: bool = True
    weight: float = 1.0
    position: tuple = (0.0, 0.0, 0.0)

    def __post_init__(self):
        if not self.weight > 0:
            raise ConstructionError(self.index, f"weight must be positive, got {self.weight}")

    def cost(self, displ=None, strain=None, stress=None) -> float:
        return cost(self, displ=displ, strain=strain, stress=stress)

    def check(self, displ=None, strain=None, stress=None) -> bool:
        return check(self, displ=displ, strain=strain, stress=stress)

    def predict(self, stress):
        return predict(self, stress)

    def nb_linked_data(self) -> int:
        return 2 if self.kind in CONJUGATE_KINDS else 1


# ──────────────────────────────────────────────
# Cost functions
# ──────────────────────────────────────────────

def _principal_axis(stress, principal: str) -> np.ndarray:
    return np.asarray(stress.S1_X if principal == "sigma1" else stress.S3_Y)


def _axis_cost(datum: Datum, stress) -> float:
    geometry = datum.geometry
    c = abs(scalar_product_unit_vectors(geometry.axis, _principal_axis(stress, geometry.principal)))
    if datum.strategy is FractureStrategy.DOT:
        return 1.0 - c
    return float(np.arccos(c) / np.pi)


def fault_stress_components(stress_tensor, normal) -> dict:
    """Traction, normal stress and shear stress on a plane.

    Parameters
    ----------
    stress_tensor : (3,3) stress tensor in the geographic frame
    normal : unit normal of the plane

    Returns
    -------
    dict with keys traction, normal_stress, shear_stress, shear_stress_mag
    """
    traction = np.asarray(stress_tensor) @ normal
    normal_stress = float(np.dot(traction, normal))
    shear_stress = traction - normal_stress * normal
    return {
        "traction": traction,
        "normal_stress": normal_stress,
        "shear_stress": shear_stress,
        "shear_stress_mag": vector_magnitude(shear_stress),
    }


def _striation_cosine(geometry: StriatedGeometry, stress):
    """Cosine between resolved shear and striation, None when there is no shear."""
    components = fault_stress_components(stress.S, geometry.n_plane)
    if components["shear_stress_mag"] <= EPS:
        return None
    n_shear = components["shear_stress"] / components["shear_stress_mag"]
    return scalar_product_unit_vectors(n_shear, geometry.n_striation)


def _striated_cost(datum: Datum, stress) -> float:
    c = _striation_cosine(datum.geometry, stress)
    if c is None:
        # Plane normal to a principal axis: no slip expected, maximal misfit
        return 1.0 if datum.strategy is FractureStrategy.DOT else float(np.pi)
    # the striation angular difference always compares oriented slip directions
    if not datum.oriented and datum.strategy is not FractureStrategy.MIN_STRIATION_ANGULAR_DIFFERENCE:
        c = abs(c)
    if datum.strategy is FractureStrategy.DOT:
        return 0.5 - c / 2
    return float(np.arccos(c))


def _conjugate_cost(datum: Datum, stress) -> float:
    return conjugate_misfit(datum.geometry, stress)


def _interval_cost(datum: Datum, stress) -> float:
    return interval_misfit(datum.geometry, stress, index=datum.index)


def _requires_stress(datum: Datum, displ=None, strain=None, stress=None) -> bool:
    return stress is not None


_COST_TABLE = {}
for _kind in AXIS_KINDS:
    _COST_TABLE[_kind] = (_axis_cost, _requires_stress)
for _kind in CONJUGATE_KINDS:
    _COST_TABLE[_kind] = (_conjugate_cost, _requires_stress)
for _kind in INTERVAL_KINDS:
    _COST_TABLE[_kind] = (_interval_cost, _requires_stress)
_COST_TABLE[DataKind.STRIATED_PLANE] = (_striated_cost, _requires_stress)


def cost(datum: Datum, displ=None, strain=None, stress=None) -> float:
    """Misfit (>= 0, lower is better) of a datum under a hypothesis."""
    cost_fn, check_fn = _COST_TABLE[datum.kind]
    if not check_fn(datum, displ=displ, strain=strain, stress=stress):
        raise ValueError(f"{datum.kind.value} {datum.index} requires a stress hypothesis")
    return cost_fn(datum, stress)


def check(datum: Datum, displ=None, strain=None, stress=None) -> bool:
    """Cheap feasibility gate: can this datum be evaluated with the hypothesis?"""
    return _COST_TABLE[datum.kind][1](datum, displ=displ, strain=strain, stress=stress)


def predict(datum: Datum, stress):
    """Observable predicted by a hypothesis.

    Striated planes give the unit shear stress direction (the expected
    striation), axis data the principal axis they are compared with.
    Frame-based data have no single observable and return None, as do
    striated planes without resolved shear.
    """
    if datum.kind is DataKind.STRIATED_PLANE:
        components = fault_stress_components(stress.S, datum.geometry.n_plane)
        if components["shear_stress_mag"] <= EPS:
            return None
        return normalize(components["shear_stress"], components["shear_stress_mag"])
    if datum.kind in AXIS_KINDS:
        return _principal_axis(stress, datum.geometry.principal).copy()
    return None


# ──────────────────────────────────────────────
# Builders
# ──────────────────────────────────────────────

def _check_strategy(kind: DataKind, family: str, strategy: FractureStrategy, index):
    if strategy not in _ALLOWED_STRATEGIES[family]:
        raise ConstructionError(index, f"strategy {strategy.value} is not available for {kind.value}")


def _unit(v, index, what: str) -> np.ndarray:
    v = np.asarray(v, dtype=float)
    if v.shape != (3,):
        raise ConstructionError(index, f"{what} must be a 3-vector")
    magnitude = vector_magnitude(v)
    if magnitude <= EPS:
        raise ConstructionError(index, f"{what} has zero length")
    return v / magnitude


def _position(position) -> tuple:
    if position is None:
        return (0.0, 0.0, 0.0)
    return tuple(float(x) for x in position)


def striated_plane(n_plane, n_striation, index=0, strategy=FractureStrategy.ANGLE,
                   oriented: bool = True, weight: float = 1.0, position=None) -> Datum:
    """Striated plane from its normal and (hanging-wall) slip direction."""
    _check_strategy(DataKind.STRIATED_PLANE, "striated", strategy, index)
    n_plane = _unit(n_plane, index, "plane normal")
    n_striation = _unit(n_striation, index, "striation")
    sp = float(np.dot(n_plane, n_striation))
    if abs(sp) > EPS:
        raise ConstructionError(
            index, f"striation is not on the fault plane. Dot product with normal vector gives {sp}"
        )
    geometry = StriatedGeometry(
        n_plane=n_plane,
        n_striation=n_striation,
        n_perp_striation=np.cross(n_plane, n_striation),
    )
    return Datum(DataKind.STRIATED_PLANE, geometry, index=index, strategy=strategy,
                 oriented=oriented, weight=weight, position=_position(position))


def striated_plane_from_angles(plane: Plane, striation: Striation, index=0,
                               strategy=FractureStrategy.ANGLE, weight: float = 1.0,
                               position=None) -> Datum:
    """Striated plane from field angles; unknown sense of slip gives an unoriented datum."""
    geometry = fault_geometry(plane, striation, index)
    return striated_plane(geometry.normal, geometry.striation, index=index, strategy=strategy,
                          oriented=geometry.oriented, weight=weight, position=position)


def _axis_datum(kind: DataKind, axis, index, strategy, weight, position) -> Datum:
    _check_strategy(kind, "axis", strategy, index)
    geometry = AxisGeometry(axis=_unit(axis, index, "axis"), principal=AXIS_KINDS[kind])
    return Datum(kind, geometry, index=index, strategy=strategy, oriented=False,
                 weight=weight, position=_position(position))


def _plane_or_normal(plane_or_normal, index) -> np.ndarray:
    if isinstance(plane_or_normal, Plane):
        return plane_normal(plane_or_normal, index)
    return plane_or_normal


def plane_datum(kind: DataKind, plane_or_normal, index=0, strategy=FractureStrategy.ANGLE,
                weight: float = 1.0, position=None) -> Datum:
    """Extension fracture, dilation band, compaction band or stylolite interface."""
    if kind not in (DataKind.EXTENSION_FRACTURE, DataKind.DILATION_BAND,
                    DataKind.COMPACTION_BAND, DataKind.STYLOLITE_INTERFACE):
        raise ValueError(f"{kind.value} is not defined by a single plane")
    return _axis_datum(kind, _plane_or_normal(plane_or_normal, index), index, strategy, weight, position)


def extension_fracture(plane_or_normal, **kwargs) -> Datum:
    return plane_datum(DataKind.EXTENSION_FRACTURE, plane_or_normal, **kwargs)


def dilation_band(plane_or_normal, **kwargs) -> Datum:
    return plane_datum(DataKind.DILATION_BAND, plane_or_normal, **kwargs)


def compaction_band(plane_or_normal, **kwargs) -> Datum:
    return plane_datum(DataKind.COMPACTION_BAND, plane_or_normal, **kwargs)


def stylolite_interface(plane_or_normal, **kwargs) -> Datum:
    return plane_datum(DataKind.STYLOLITE_INTERFACE, plane_or_normal, **kwargs)


def line_datum(kind: DataKind, trend: float, plunge: float, index=0,
               strategy=FractureStrategy.ANGLE, weight: float = 1.0, position=None) -> Datum:
    """Crystal fibers in a vein or stylolite teeth, from the line trend and plunge (degrees)."""
    if kind not in (DataKind.CRYSTAL_FIBERS_IN_VEIN, DataKind.STYLOLITE_TEETH):
        raise ValueError(f"{kind.value} is not defined by a line")
    if trend is None or np.isnan(trend):
        raise ConstructionError(index, "missing line trend")
    if plunge is None or np.isnan(plunge):
        raise ConstructionError(index, "missing line plunge")
    if not 0.0 <= plunge <= 90.0:
        raise ConstructionError(index, f"line plunge {plunge} is out of the expected interval [0, 90]")
    axis = trend_plunge_to_unit_vector(trend, plunge)
    return _axis_datum(kind, axis, index, strategy, weight, position)


def crystal_fibers_in_vein(trend: float, plunge: float, **kwargs) -> Datum:
    return line_datum(DataKind.CRYSTAL_FIBERS_IN_VEIN, trend, plunge, **kwargs)


def stylolite_teeth(trend: float, plunge: float, **kwargs) -> Datum:
    return line_datum(DataKind.STYLOLITE_TEETH, trend, plunge, **kwargs)


def conjugate_pair(kind: DataKind, plane_1: Plane, plane_2: Plane,
                   movement_1: TypeOfMovement = TypeOfMovement.UND,
                   movement_2: TypeOfMovement = TypeOfMovement.UND,
                   index=0, weight: float = 1.0, position=None) -> Datum:
    """Conjugate faults or shear bands, numbered ``index`` and ``index + 1``."""
    if kind not in CONJUGATE_KINDS:
        raise ValueError(f"{kind.value} is not a conjugate structure")
    frame = compatible_frame(
        fault_geometry(plane_1, index=index),
        fault_geometry(plane_2, index=index + 1),
        movement_1, movement_2,
        index=index,
        compactional=kind is DataKind.CONJUGATE_COMPACTIONAL_SHEAR_BANDS,
    )
    return Datum(kind, frame, index=index, strategy=FractureStrategy.MIN_TENSOR_ROTATION,
                 oriented=True, weight=weight, position=_position(position))


def conjugate_faults(plane_1: Plane, plane_2: Plane, **kwargs) -> Datum:
    return conjugate_pair(DataKind.CONJUGATE_FAULTS, plane_1, plane_2, **kwargs)


def interval_datum(kind: DataKind, plane: Plane, striation: Striation, index=0,
                   friction_angles: tuple = None, s1n_angles: tuple = None,
                   weight: float = 1.0, position=None) -> Datum:
    """Neoformed striated plane or striated shear band.

    Parameters
    ----------
    friction_angles : optional (min, max) friction angle in degrees
    s1n_angles : optional (min, max) angle <σ1, n> in degrees
    """
    if kind not in INTERVAL_KINDS:
        raise ValueError(f"{kind.value} is not an angular-interval structure")
    fault = fault_geometry(plane, striation, index)
    if not fault.oriented:
        # σ1 lies on the compressional side of the slip, so the sense must be known
        raise ConstructionError(index, f"{kind.value} requires a type of movement")
    alpha_min, alpha_max = s1n_interval(INTERVAL_KINDS[kind], friction_angles, s1n_angles, index)
    geometry = interval_geometry(fault.normal, fault.striation, alpha_min, alpha_max)
    return Datum(kind, geometry, index=index, strategy=FractureStrategy.MIN_TENSOR_ROTATION,
                 oriented=True, weight=weight, position=_position(position))


def neoformed_striated_plane(plane: Plane, striation: Striation, **kwargs) -> Datum:
    return interval_datum(DataKind.NEOFORMED_STRIATED_PLANE, plane, striation, **kwargs)


def striated_compactional_shear_band(plane: Plane, striation: Striation, **kwargs) -> Datum:
    return interval_datum(DataKind.STRIATED_COMPACTIONAL_SHEAR_BAND, plane, striation, **kwargs)

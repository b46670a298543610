"""
Data factory keyed by structure-type name.

A reader only needs the type name written in the data file and the typed
records of the line(s) that describe the structure; conjugate structures
take two consecutive records.

    >>> DataFactory.names()[:2]
    ['Compaction Band', 'Conjugate Compactional Shear Bands 1']
"""

from dataclasses import dataclass

from .data import (
    DataKind, Datum, FractureStrategy, conjugate_pair, interval_datum, line_datum,
    plane_datum, striated_plane_from_angles,
)
from .errors import ConstructionError
from .faults import Plane, Striation, TypeOfMovement


@dataclass(frozen=True)
class DataRecord:
    """Typed content of one data line."""
    index: int = 0
    plane: Plane = None
    striation: Striation = None
    line_trend: float = None
    line_plunge: float = None
    friction_angle_min: float = None
    friction_angle_max: float = None
    s1n_angle_min: float = None
    s1n_angle_max: float = None
    weight: float = 1.0
    deformation_phase: int = None

    @property
    def type_of_movement(self) -> TypeOfMovement:
        if self.striation is None:
            return TypeOfMovement.UND
        return self.striation.type_of_movement


def _require_plane(record: DataRecord, name: str) -> Plane:
    if record.plane is None:
        raise ConstructionError(record.index, f"{name} requires strike, dip and dip direction")
    return record.plane


def _build_striated_plane(kind, records, strategy=FractureStrategy.ANGLE):
    record = records[0]
    plane = _require_plane(record, kind.value)
    if record.striation is None:
        raise ConstructionError(record.index, f"{kind.value} requires a rake or a striation trend")
    return striated_plane_from_angles(plane, record.striation, index=record.index,
                                      strategy=strategy, weight=record.weight)


def _build_plane(kind, records, strategy=FractureStrategy.ANGLE):
    record = records[0]
    return plane_datum(kind, _require_plane(record, kind.value), index=record.index,
                       strategy=strategy, weight=record.weight)


def _build_line(kind, records, strategy=FractureStrategy.ANGLE):
    record = records[0]
    return line_datum(kind, record.line_trend, record.line_plunge, index=record.index,
                      strategy=strategy, weight=record.weight)


def _build_conjugate(kind, records, strategy=None):
    first, second = records
    return conjugate_pair(
        kind,
        _require_plane(first, kind.value),
        _require_plane(second, kind.value),
        first.type_of_movement,
        second.type_of_movement,
        index=first.index,
        weight=first.weight,
    )


def _build_interval(kind, records, strategy=None):
    record = records[0]
    plane = _require_plane(record, kind.value)
    if record.striation is None:
        raise ConstructionError(record.index, f"{kind.value} requires a rake or a striation trend")
    return interval_datum(
        kind, plane, record.striation, index=record.index,
        friction_angles=(record.friction_angle_min, record.friction_angle_max),
        s1n_angles=(record.s1n_angle_min, record.s1n_angle_max),
        weight=record.weight,
    )


class DataFactory:
    """Registry of structure builders by name."""

    _registry = {}

    @classmethod
    def bind(cls, name: str, kind: DataKind, builder, nb_linked_data: int = 1) -> None:
        cls._registry[name] = (kind, builder, nb_linked_data)

    @classmethod
    def names(cls) -> list:
        return sorted(cls._registry)

    @classmethod
    def exists(cls, name: str) -> bool:
        return name in cls._registry

    @classmethod
    def kind(cls, name: str) -> DataKind:
        return cls._lookup(name)[0]

    @classmethod
    def nb_linked_data(cls, name: str) -> int:
        return cls._lookup(name)[2]

    @classmethod
    def _lookup(cls, name: str):
        try:
            return cls._registry[name]
        except KeyError:
            raise ValueError(f"Unknown data type: {name}") from None

    @classmethod
    def create(cls, name: str, records, strategy: FractureStrategy = None) -> Datum:
        """Build a datum of type ``name`` from one record (two for conjugates)."""
        kind, builder, nb_linked = cls._lookup(name)
        if isinstance(records, DataRecord):
            records = [records]
        records = list(records)
        if len(records) != nb_linked:
            index = records[0].index if records else 0
            raise ConstructionError(
                index, f"{name} requires {nb_linked} data line(s), got {len(records)}"
            )
        if strategy is None:
            return builder(kind, records)
        return builder(kind, records, strategy=strategy)


for _kind, _builder in (
        (DataKind.STRIATED_PLANE, _build_striated_plane),
        (DataKind.NEOFORMED_STRIATED_PLANE, _build_interval),
        (DataKind.STRIATED_DILATANT_SHEAR_BAND, _build_interval),
        (DataKind.STRIATED_COMPACTIONAL_SHEAR_BAND, _build_interval),
        (DataKind.EXTENSION_FRACTURE, _build_plane),
        (DataKind.DILATION_BAND, _build_plane),
        (DataKind.COMPACTION_BAND, _build_plane),
        (DataKind.STYLOLITE_INTERFACE, _build_plane),
        (DataKind.CRYSTAL_FIBERS_IN_VEIN, _build_line),
        (DataKind.STYLOLITE_TEETH, _build_line)):
    DataFactory.bind(_kind.value, _kind, _builder)

# Conjugate structures are written on two lines, suffixed 1 and 2
for _kind in (DataKind.CONJUGATE_FAULTS,
              DataKind.CONJUGATE_DILATANT_SHEAR_BANDS,
              DataKind.CONJUGATE_COMPACTIONAL_SHEAR_BANDS):
    for _suffix in ("1", "2"):
        DataFactory.bind(f"{_kind.value} {_suffix}", _kind, _build_conjugate, nb_linked_data=2)

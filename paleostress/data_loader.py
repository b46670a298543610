"""
Data loading for structural field measurements.

Reads CSV or Excel tables with one structure per line (two consecutive
lines for conjugate structures) and turns them into data through the
``DataFactory``.  Text columns (directions, types of movement) are mapped
to their enumerations here.
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from .errors import ConstructionError
from .factory import DataFactory, DataRecord
from .faults import Direction, Plane, Striation, TypeOfMovement

logger = logging.getLogger(__name__)


# Column naming convention for all loaded data
DATA_NUMBER_COL = "data_number"
DATA_TYPE_COL = "data_type"
STRIKE_COL = "strike"
DIP_COL = "dip"
DIP_DIRECTION_COL = "dip_direction"
RAKE_COL = "rake"
STRIKE_DIRECTION_COL = "strike_direction"
STRIATION_TREND_COL = "striation_trend"
TYPE_OF_MOVEMENT_COL = "type_of_movement"
LINE_TREND_COL = "line_trend"
LINE_PLUNGE_COL = "line_plunge"
DEFORMATION_PHASE_COL = "deformation_phase"
WEIGHT_COL = "related_weight"
MIN_FRICTION_COL = "min_friction_angle"
MAX_FRICTION_COL = "max_friction_angle"
MIN_S1N_COL = "min_angle_s1_n"
MAX_S1N_COL = "max_angle_s1_n"

COLUMNS = [
    DATA_NUMBER_COL, DATA_TYPE_COL, STRIKE_COL, DIP_COL, DIP_DIRECTION_COL,
    RAKE_COL, STRIKE_DIRECTION_COL, STRIATION_TREND_COL, TYPE_OF_MOVEMENT_COL,
    LINE_TREND_COL, LINE_PLUNGE_COL, DEFORMATION_PHASE_COL, WEIGHT_COL,
    MIN_FRICTION_COL, MAX_FRICTION_COL, MIN_S1N_COL, MAX_S1N_COL,
]


# ──────────────────────────────────────────────
# Text to enumeration mapping
# ──────────────────────────────────────────────

def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return bool(pd.isna(value))


def parse_direction(value) -> Direction:
    """Map 'E', 'NW', 'und', ... to a Direction; blank cells are UND."""
    if _is_blank(value):
        return Direction.UND
    key = str(value).strip().upper()
    try:
        return Direction(key)
    except ValueError:
        raise ValueError(f"Unknown direction: {value}") from None


def parse_type_of_movement(value) -> TypeOfMovement:
    """Map 'N', 'I_LL', 'n-rl', ... to a TypeOfMovement; blank cells are UND."""
    if _is_blank(value):
        return TypeOfMovement.UND
    key = str(value).strip().upper().replace("-", "_").replace(" ", "_")
    try:
        return TypeOfMovement(key)
    except ValueError:
        raise ValueError(f"Unknown type of movement: {value}") from None


def _number(row: dict, column: str):
    value = row.get(column)
    if _is_blank(value):
        return None
    return float(value)


# ──────────────────────────────────────────────
# Tables
# ──────────────────────────────────────────────

def _standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = df.rename(columns=lambda c: str(c).strip().lower().replace(" ", "_"))
    if DATA_TYPE_COL not in df.columns:
        raise ValueError(f"Missing required column: {DATA_TYPE_COL}")
    for column in COLUMNS:
        if column not in df.columns:
            df[column] = np.nan
    missing = df[DATA_NUMBER_COL].isna().to_numpy()
    if missing.any():
        df[DATA_NUMBER_COL] = np.where(missing, np.arange(1, len(df) + 1), df[DATA_NUMBER_COL])
    return df


def load_data_table(filepath, sep: str = ",") -> pd.DataFrame:
    """Load a CSV or Excel data table and standardize its columns.

    Column names are matched case-insensitively (spaces read as
    underscores).  Only ``data_type`` is required; missing optional columns
    are added as NaN and missing data numbers become 1..n.
    """
    path = Path(filepath)
    if path.suffix.lower() in (".xls", ".xlsx"):
        engine = "xlrd" if path.suffix.lower() == ".xls" else "openpyxl"
        df = pd.read_excel(path, engine=engine)
    elif path.suffix.lower() in (".csv", ".txt"):
        df = pd.read_csv(path, sep=sep, comment="#", skipinitialspace=True)
    else:
        raise ValueError(f"Unsupported data file: {filepath}")

    df = df.dropna(how="all")
    df = _standardize_columns(df)
    df[DATA_TYPE_COL] = df[DATA_TYPE_COL].astype(str).str.strip()
    return df.reset_index(drop=True)


def record_from_row(row: dict) -> DataRecord:
    """Typed record of one table line."""
    index = int(row[DATA_NUMBER_COL])
    strike, dip = _number(row, STRIKE_COL), _number(row, DIP_COL)
    dip_direction = parse_direction(row.get(DIP_DIRECTION_COL))
    strike_direction = parse_direction(row.get(STRIKE_DIRECTION_COL))
    movement = parse_type_of_movement(row.get(TYPE_OF_MOVEMENT_COL))
    rake, trend = _number(row, RAKE_COL), _number(row, STRIATION_TREND_COL)

    plane = None
    if strike is not None or dip is not None:
        plane = Plane(strike, dip, dip_direction)

    striation = None
    if rake is not None and trend is not None:
        raise ConstructionError(
            index, "define either the rake and strike direction or the striation trend, but not both"
        )
    if rake is not None or trend is not None or movement is not TypeOfMovement.UND:
        striation = Striation(
            rake=rake,
            strike_direction=strike_direction,
            trend=trend,
            trend_is_defined=trend is not None,
            type_of_movement=movement,
        )

    weight = _number(row, WEIGHT_COL)
    phase = _number(row, DEFORMATION_PHASE_COL)
    return DataRecord(
        index=index,
        plane=plane,
        striation=striation,
        line_trend=_number(row, LINE_TREND_COL),
        line_plunge=_number(row, LINE_PLUNGE_COL),
        friction_angle_min=_number(row, MIN_FRICTION_COL),
        friction_angle_max=_number(row, MAX_FRICTION_COL),
        s1n_angle_min=_number(row, MIN_S1N_COL),
        s1n_angle_max=_number(row, MAX_S1N_COL),
        weight=1.0 if weight is None else weight,
        deformation_phase=None if phase is None else int(phase),
    )


def build_data(df: pd.DataFrame, strategy=None, skip_invalid: bool = False) -> list:
    """Build data from a standardized table.

    Conjugate structures take the current line and the next one, which must
    be of the same kind.

    Parameters
    ----------
    df : table returned by :func:`load_data_table`
    strategy : optional FractureStrategy for the kinds that accept one
    skip_invalid : log and skip lines that cannot be turned into data
        instead of raising ConstructionError

    Raises
    ------
    ValueError : unknown data type, direction or type of movement
    ConstructionError : invalid measurement (unless ``skip_invalid``)
    """
    rows = df.to_dict("records")
    data = []
    i = 0
    while i < len(rows):
        name = str(rows[i][DATA_TYPE_COL]).strip()
        nb_linked = DataFactory.nb_linked_data(name)
        group = rows[i:i + nb_linked]
        complete = len(group) == nb_linked and all(
            DataFactory.kind(str(r[DATA_TYPE_COL]).strip()) is DataFactory.kind(name) for r in group
        )
        i += nb_linked if complete else 1
        try:
            if not complete:
                raise ConstructionError(
                    int(group[0][DATA_NUMBER_COL]),
                    f"{name} must be followed by the second plane of the pair"
                )
            records = [record_from_row(r) for r in group]
            data.append(DataFactory.create(name, records, strategy=strategy))
        except ConstructionError as exc:
            if not skip_invalid:
                raise
            logger.warning("Skipping %s: %s", name, exc)
    logger.info("Built %d data from %d lines", len(data), len(rows))
    return data


def data_summary(df: pd.DataFrame) -> pd.DataFrame:
    """Number of lines per data type and deformation phase."""
    summary = df.groupby([DATA_TYPE_COL, DEFORMATION_PHASE_COL], dropna=False).agg(
        count=(DATA_NUMBER_COL, "count"),
        weight_total=(WEIGHT_COL, lambda w: w.fillna(1.0).sum()),
    )
    return summary


def load_data(filepath, strategy=None, skip_invalid: bool = False) -> list:
    """Read a data file and build its data."""
    return build_data(load_data_table(filepath), strategy=strategy, skip_invalid=skip_invalid)


if __name__ == "__main__":
    import sys

    df = load_data_table(sys.argv[1])
    print(f"Loaded {len(df)} lines, {df[DATA_TYPE_COL].nunique()} data types")
    print()
    print(data_summary(df))
    data = build_data(df, skip_invalid=True)
    print(f"\n{len(data)} data ready for inversion")

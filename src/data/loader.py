"""
Data loading utilities for child records and follow-up measurements.
"""

import pandas as pd
from pathlib import Path
from typing import Any, Dict, List, Optional

from anthro.models import Child, Measurement
from src.config import (
    CHILD_COLUMNS,
    CHILDREN_CSV,
    FOLLOW_UP_COLUMNS,
    FOLLOW_UPS_CSV,
    REQUIRED_CHILD_COLUMNS,
)


TEXT_COLUMNS = [
    "id",
    "local_id",
    "name",
    "mother_name",
    "mother_national_id",
    "mother_marital_status",
    "father_name",
    "father_national_id",
    "address",
    "region",
    "district",
    "complications",
    "created_by_id",
    "child_id",
    "collector_id",
]


def _read_csv(path: Path, columns: List[str]) -> pd.DataFrame:
    """Read a record-store CSV; a missing file is an empty table."""
    if not Path(path).exists():
        return pd.DataFrame(columns=columns)
    return pd.read_csv(path, dtype={col: str for col in TEXT_COLUMNS})


def load_children_frame(path: Optional[Path] = None) -> pd.DataFrame:
    """
    Load the children table.

    Parameters
    ----------
    path : Path, optional
        CSV file; defaults to CHILDREN_CSV from config.

    Returns
    -------
    pd.DataFrame
        One row per child with demographic fields and the initial measurement

    Raises
    ------
    ValueError
        If required columns are missing or values are invalid
    """
    df = _read_csv(path or CHILDREN_CSV, CHILD_COLUMNS)

    missing_cols = set(REQUIRED_CHILD_COLUMNS) - set(df.columns)
    if missing_cols:
        raise ValueError(f"Missing required columns: {missing_cols}")

    if df.empty:
        return df

    _validate_children_data(df)

    df["dob"] = pd.to_datetime(df["dob"])
    df["initial_recorded_at"] = pd.to_datetime(df["initial_recorded_at"])
    df["sex"] = df["sex"].str.strip().str.lower().replace({"m": "male", "f": "female"})
    return df


def load_follow_ups_frame(path: Optional[Path] = None) -> pd.DataFrame:
    """
    Load the follow-up measurements table.

    Parameters
    ----------
    path : Path, optional
        CSV file; defaults to FOLLOW_UPS_CSV from config.

    Returns
    -------
    pd.DataFrame
        One row per follow-up, sorted by child and recording time
    """
    df = _read_csv(path or FOLLOW_UPS_CSV, FOLLOW_UP_COLUMNS)
    if df.empty:
        return df

    missing_cols = {"child_id", "recorded_at", "weight_kg", "height_cm"} - set(df.columns)
    if missing_cols:
        raise ValueError(f"Missing required follow-up columns: {missing_cols}")

    df["recorded_at"] = pd.to_datetime(df["recorded_at"])
    return df.sort_values(["child_id", "recorded_at"]).reset_index(drop=True)


def _validate_children_data(df: pd.DataFrame) -> None:
    """
    Validate child record values.

    Parameters
    ----------
    df : pd.DataFrame
        Children table to validate

    Raises
    ------
    ValueError
        If data validation fails
    """
    if df["id"].isna().any():
        raise ValueError("Child records are missing ids")

    if df["id"].duplicated().any():
        duplicates = df.loc[df["id"].duplicated(), "id"].unique()
        raise ValueError(f"Duplicate child ids found: {list(duplicates)}")

    for col in ("initial_weight_kg", "initial_height_cm"):
        if not pd.api.types.is_numeric_dtype(df[col]):
            raise ValueError(f"{col} must be numeric")
        if (df[col] <= 0).any():
            raise ValueError(f"{col} contains invalid values (<= 0)")

    valid_sex_values = {"m", "f", "male", "female"}
    sexes = df["sex"].astype(str).str.strip().str.lower()
    invalid_sex = df[~sexes.isin(valid_sex_values)]
    if not invalid_sex.empty:
        invalid_values = invalid_sex["sex"].unique()
        raise ValueError(
            f"Invalid sex values found: {invalid_values}. "
            f"Must be one of: M, F, Male, Female"
        )


def _clean(value: Any) -> Any:
    """Turn pandas missing markers into None."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    return value


def _row_to_measurement(row: Dict[str, Any], prefix: str = "") -> Measurement:
    recorded_key = f"{prefix}recorded_at"
    return Measurement(
        recorded_at=_clean(row[recorded_key]),
        weight_kg=float(row[f"{prefix}weight_kg"]),
        height_cm=float(row[f"{prefix}height_cm"]),
        head_circ_cm=_clean(row.get(f"{prefix}head_circ_cm")),
        collector_id=_clean(row.get("collector_id")) if not prefix else None,
    )


def frames_to_children(
    children_df: pd.DataFrame, follow_ups_df: pd.DataFrame
) -> List[Child]:
    """
    Assemble Child models from the children and follow-up tables.

    Follow-ups referencing unknown children are ignored.
    """
    follow_ups: Dict[str, List[Measurement]] = {}
    for row in follow_ups_df.to_dict("records"):
        follow_ups.setdefault(str(row["child_id"]), []).append(_row_to_measurement(row))

    children = []
    for row in children_df.to_dict("records"):
        demographics = {
            col: _clean(row.get(col))
            for col in CHILD_COLUMNS
            if not col.startswith("initial_")
        }
        mother_age = demographics.get("mother_age")
        if mother_age is not None:
            demographics["mother_age"] = int(mother_age)
        for col in ("latitude", "longitude"):
            if demographics.get(col) is None:
                demographics[col] = 0.0
        for col in ("id", "created_by_id"):
            demographics[col] = str(demographics[col])

        children.append(
            Child(
                **demographics,
                initial=_row_to_measurement(row, prefix="initial_"),
                follow_ups=follow_ups.get(str(row["id"]), []),
            )
        )
    return children


def load_children(data_dir: Optional[Path] = None) -> List[Child]:
    """
    Load all children with their follow-ups from the CSV record store.

    Parameters
    ----------
    data_dir : Path, optional
        Directory holding children.csv and follow_ups.csv. Defaults to the
        configured RAW_DATA_DIR.

    Returns
    -------
    List[Child]
    """
    children_path = Path(data_dir) / "children.csv" if data_dir else None
    follow_ups_path = Path(data_dir) / "follow_ups.csv" if data_dir else None
    return frames_to_children(
        load_children_frame(children_path), load_follow_ups_frame(follow_ups_path)
    )


def get_child(children: List[Child], child_id: str) -> Child:
    """
    Find a child by id.

    Raises
    ------
    KeyError
        If no child has this id
    """
    for child in children:
        if child.id == child_id:
            return child
    raise KeyError(f"Child not found: {child_id}")


def search_children(
    children: List[Child],
    collector_id: Optional[str] = None,
    query: Optional[str] = None,
) -> List[Child]:
    """
    Filter children by collector and case-insensitive text search.

    The query matches the child's name, the mother's name or the address.
    """
    results = children
    if collector_id:
        results = [c for c in results if c.created_by_id == collector_id]
    if query:
        needle = query.strip().lower()
        results = [
            c
            for c in results
            if any(
                needle in (field or "").lower()
                for field in (c.name, c.mother_name, c.address)
            )
        ]
    return results

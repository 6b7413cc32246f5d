"""Shared CSV helpers for the record stores under the data directory."""

from pathlib import Path
from typing import Any, Dict, List

import pandas as pd


def write_frame(df: pd.DataFrame, path: Path) -> None:
    """Write a CSV via a temporary file and rename (atomic replace)."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(".tmp")
        df.to_csv(temp_path, index=False)
        temp_path.replace(path)
    except Exception as e:
        raise IOError(f"Failed to write {path}: {str(e)}")


def read_records(path: Path, columns: List[str]) -> List[Dict[str, Any]]:
    """
    Read a CSV as a list of string records.

    Every value is read as text and empty cells become None, so that the
    pydantic models do the type conversion. A missing file has no records.

    Raises
    ------
    ValueError
        If required columns are missing
    """
    if not Path(path).exists():
        return []
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    missing_cols = set(columns) - set(df.columns)
    if missing_cols:
        raise ValueError(f"Missing required columns in {Path(path).name}: {missing_cols}")
    return [
        {col: (value if value != "" else None) for col, value in row.items()}
        for row in df[columns].to_dict("records")
    ]


def records_to_frame(records: List[Any], columns: List[str]) -> pd.DataFrame:
    """Flatten pydantic models into a frame with the store's column order."""
    return pd.DataFrame(
        [record.model_dump(mode="json") for record in records], columns=columns
    )

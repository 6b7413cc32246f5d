"""Persistence layer for child records, follow-ups and CSV exports."""

import math
import uuid
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import ValidationError

from anthro.models import Child, Measurement, User
from src.auth import REGISTERING_ROLES, can_modify_child, can_register_child
from src.config import (
    CHILD_COLUMNS,
    CHILDREN_CSV,
    EXPORTS_DIR,
    FOLLOW_UP_COLUMNS,
    FOLLOW_UPS_CSV,
)
from src.data.loader import get_child, load_children
from src.utils.csv_store import write_frame
from src.utils.identifiers import generate_local_id

# Demographic fields that may be edited after registration
EDITABLE_FIELDS = {
    "name",
    "mother_name",
    "mother_national_id",
    "mother_marital_status",
    "mother_age",
    "father_name",
    "father_national_id",
    "address",
    "region",
    "district",
    "latitude",
    "longitude",
    "complications",
}

EXPORT_COLUMNS = [
    "id",
    "localId",
    "name",
    "motherName",
    "motherNationalId",
    "motherMaritalStatus",
    "motherAge",
    "fatherName",
    "fatherNationalId",
    "dob",
    "sex",
    "address",
    "latitude",
    "longitude",
    "createdById",
    "createdByName",
    "initialRecordedAt",
    "initialWeightKg",
    "initialHeightCm",
    "initialHeadCircCm",
]


def _store_paths(data_dir: Optional[Path]) -> tuple:
    if data_dir is None:
        return CHILDREN_CSV, FOLLOW_UPS_CSV
    return Path(data_dir) / "children.csv", Path(data_dir) / "follow_ups.csv"


def children_to_frame(children: List[Child]) -> pd.DataFrame:
    """Flatten children (demographics + initial measurement) into the store layout."""
    rows = []
    for child in children:
        row = child.model_dump(exclude={"initial", "follow_ups"})
        row["initial_recorded_at"] = child.initial.recorded_at
        row["initial_weight_kg"] = child.initial.weight_kg
        row["initial_height_cm"] = child.initial.height_cm
        row["initial_head_circ_cm"] = child.initial.head_circ_cm
        rows.append(row)
    return pd.DataFrame(rows, columns=CHILD_COLUMNS)


def follow_ups_to_frame(children: List[Child]) -> pd.DataFrame:
    """Flatten all follow-ups into the store layout."""
    rows = []
    for child in children:
        for follow_up in child.follow_ups:
            rows.append(
                {
                    "child_id": child.id,
                    "recorded_at": follow_up.recorded_at,
                    "weight_kg": follow_up.weight_kg,
                    "height_cm": follow_up.height_cm,
                    "head_circ_cm": follow_up.head_circ_cm,
                    "collector_id": follow_up.collector_id or child.created_by_id,
                }
            )
    return pd.DataFrame(rows, columns=FOLLOW_UP_COLUMNS)


def save_children(children: List[Child], data_dir: Optional[Path] = None) -> None:
    """
    Persist children and their follow-ups to the CSV record store.

    Raises
    ------
    IOError
        If unable to write either file
    """
    children_path, follow_ups_path = _store_paths(data_dir)
    write_frame(children_to_frame(children), children_path)
    write_frame(follow_ups_to_frame(children), follow_ups_path)


def _validate_measurement(measurement: Measurement) -> None:
    for value in (measurement.weight_kg, measurement.height_cm):
        if not math.isfinite(value) or value <= 0:
            raise ValueError("Please provide valid numeric weight and height")


def register_child(
    user: Optional[User],
    fields: Dict[str, Any],
    initial: Measurement,
    data_dir: Optional[Path] = None,
    today: Optional[date] = None,
) -> Child:
    """
    Register a new child owned by ``user``.

    Parameters
    ----------
    user : User
        Registering user; must be a community health worker or admin
    fields : dict
        Demographics: name, sex and dob are required
    initial : Measurement
        Initial anthropometric measurement

    Returns
    -------
    Child
        The stored child with its assigned id and local id

    Raises
    ------
    PermissionError
        If the user may not register children or the account is not activated
    ValueError
        If the record is invalid
    """
    if user is None or user.role not in REGISTERING_ROLES:
        raise PermissionError("Only CHWs or Admins can create child records")
    if not can_register_child(user):
        raise PermissionError("Account not activated")
    _validate_measurement(initial)

    children = load_children(data_dir)
    try:
        child = Child(
            **fields,
            id=str(uuid.uuid4()),
            local_id=generate_local_id(today),
            created_by_id=user.id,
            initial=initial,
        )
    except ValueError as e:
        raise ValueError(f"Invalid child record: {e}") from e

    children.append(child)
    save_children(children, data_dir)
    return child


def add_follow_up(
    user: Optional[User],
    child_id: str,
    measurement: Measurement,
    data_dir: Optional[Path] = None,
) -> Measurement:
    """
    Record a follow-up measurement for a child.

    Raises
    ------
    KeyError
        If the child does not exist
    PermissionError
        If the user is neither admin nor the child's collector
    """
    children = load_children(data_dir)
    child = get_child(children, child_id)
    if not can_modify_child(user, child):
        raise PermissionError("Forbidden")
    _validate_measurement(measurement)

    if measurement.collector_id is None:
        measurement = measurement.model_copy(update={"collector_id": user.id})
    child.follow_ups.append(measurement)
    save_children(children, data_dir)
    return measurement


def update_child(
    user: Optional[User],
    child_id: str,
    fields: Dict[str, Any],
    data_dir: Optional[Path] = None,
) -> Child:
    """
    Update a child's demographic fields. Measurements are never changed.

    Raises
    ------
    KeyError
        If the child does not exist
    PermissionError
        If the user is neither admin nor the child's collector
    ValueError
        If a field is not editable or a value is invalid
    """
    children = load_children(data_dir)
    child = get_child(children, child_id)
    if not can_modify_child(user, child):
        raise PermissionError("Forbidden")

    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot be edited: {sorted(unknown)}")

    changes = {k: v for k, v in fields.items() if v is not None}
    try:
        updated = Child.model_validate({**child.model_dump(), **changes})
    except ValidationError as e:
        raise ValueError(f"Invalid child record: {e}") from e
    children = [updated if c.id == child_id else c for c in children]
    save_children(children, data_dir)
    return updated


def delete_child(
    user: Optional[User], child_id: str, data_dir: Optional[Path] = None
) -> None:
    """
    Delete a child together with all its follow-ups.

    Raises
    ------
    KeyError
        If the child does not exist
    PermissionError
        If the user is neither admin nor the child's collector
    """
    children = load_children(data_dir)
    child = get_child(children, child_id)
    if not can_modify_child(user, child):
        raise PermissionError("Forbidden")

    save_children([c for c in children if c.id != child_id], data_dir)


def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value is not None else ""


def export_frame(
    children: List[Child], user_names: Optional[Dict[str, str]] = None
) -> pd.DataFrame:
    """Build the export table with camelCase headers."""
    user_names = user_names or {}
    rows = []
    for c in children:
        rows.append(
            [
                c.id,
                c.local_id or "",
                c.name,
                c.mother_name or "",
                c.mother_national_id or "",
                c.mother_marital_status or "",
                c.mother_age if c.mother_age is not None else "",
                c.father_name or "",
                c.father_national_id or "",
                _iso(c.dob),
                c.sex,
                c.address or "",
                c.latitude,
                c.longitude,
                c.created_by_id,
                user_names.get(c.created_by_id, ""),
                _iso(c.initial.recorded_at),
                c.initial.weight_kg,
                c.initial.height_cm,
                c.initial.head_circ_cm if c.initial.head_circ_cm is not None else "",
            ]
        )
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_children_csv(
    children: List[Child],
    user_names: Optional[Dict[str, str]] = None,
    output_path: Optional[Path] = None,
) -> Path:
    """
    Export children to CSV.

    Parameters
    ----------
    children : List[Child]
        Children to export
    user_names : dict, optional
        Map of user id to display name for the createdByName column
    output_path : Path, optional
        Destination; defaults to EXPORTS_DIR / children_export_<timestamp>.csv

    Returns
    -------
    Path
        Path to the written file
    """
    if output_path is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output_path = EXPORTS_DIR / f"children_export_{timestamp}.csv"

    write_frame(export_frame(children, user_names), Path(output_path))
    return Path(output_path)

import re
from datetime import date, datetime

import pandas as pd
import pytest

from anthro.models import Measurement
from src.data.loader import load_children
from src.utils.persistence import (
    EXPORT_COLUMNS,
    add_follow_up,
    delete_child,
    export_children_csv,
    export_frame,
    register_child,
    save_children,
    update_child,
)

FIELDS = {
    "name": "Amani",
    "sex": "M",
    "dob": date(2023, 12, 1),
    "mother_name": "Alice",
    "mother_marital_status": "married",
    "mother_age": 27,
    "region": "Kigali",
    "address": "Kigali, Gasabo",
    "latitude": -1.95,
    "longitude": 30.06,
}


def measurement(day: int = 1, weight: float = 7.0, height: float = 65.0) -> Measurement:
    return Measurement(recorded_at=datetime(2024, 6, day), weight_kg=weight, height_cm=height)


@pytest.fixture
def registered(tmp_path, chw):
    return register_child(chw, FIELDS, measurement(), data_dir=tmp_path, today=date(2024, 6, 1))


def test_tc001_register_child_persists(tmp_path, chw, registered) -> None:
    assert registered.created_by_id == chw.id
    assert registered.sex == "male"
    assert re.fullmatch(r"NUTRI-20240601-\d{4,}", registered.local_id)

    (stored,) = load_children(tmp_path)
    assert stored.id == registered.id
    assert stored.local_id == registered.local_id
    assert stored.dob == datetime(2023, 12, 1)
    assert stored.mother_age == 27
    assert stored.initial.weight_kg == 7.0


def test_tc002_register_assigns_distinct_ids(tmp_path, chw, registered) -> None:
    second = register_child(chw, {**FIELDS, "name": "Bella"}, measurement(), data_dir=tmp_path)
    assert second.id != registered.id
    assert second.local_id != registered.local_id
    assert len(load_children(tmp_path)) == 2


def test_tc003_admin_can_register(tmp_path, admin) -> None:
    child = register_child(admin, FIELDS, measurement(), data_dir=tmp_path)
    assert child.created_by_id == admin.id


@pytest.mark.parametrize("user_fixture", ["nutritionist", None])
def test_tc004_register_forbidden(tmp_path, request, user_fixture) -> None:
    user = request.getfixturevalue(user_fixture) if user_fixture else None
    with pytest.raises(PermissionError, match="Only CHWs or Admins"):
        register_child(user, FIELDS, measurement(), data_dir=tmp_path)
    assert load_children(tmp_path) == []


@pytest.mark.parametrize("weight,height", [(float("nan"), 65.0), (7.0, 0.0), (-1.0, 65.0)])
def test_tc005_register_requires_valid_measurement(tmp_path, chw, weight, height) -> None:
    with pytest.raises(ValueError, match="valid numeric weight and height"):
        register_child(chw, FIELDS, measurement(weight=weight, height=height), data_dir=tmp_path)


def test_tc006_register_rejects_invalid_record(tmp_path, chw) -> None:
    with pytest.raises(ValueError, match="Invalid child record"):
        register_child(chw, {**FIELDS, "sex": "x"}, measurement(), data_dir=tmp_path)


def test_tc007_follow_up_by_collector(tmp_path, chw, registered) -> None:
    add_follow_up(chw, registered.id, measurement(day=20, weight=7.4), data_dir=tmp_path)
    (stored,) = load_children(tmp_path)
    assert [m.weight_kg for m in stored.follow_ups] == [7.4]
    assert stored.follow_ups[0].collector_id == chw.id


def test_tc008_follow_up_by_admin_records_admin(tmp_path, admin, registered) -> None:
    add_follow_up(admin, registered.id, measurement(day=20), data_dir=tmp_path)
    (stored,) = load_children(tmp_path)
    assert stored.follow_ups[0].collector_id == admin.id


def test_tc009_follow_up_forbidden_for_other_chw(tmp_path, other_chw, registered) -> None:
    with pytest.raises(PermissionError):
        add_follow_up(other_chw, registered.id, measurement(day=20), data_dir=tmp_path)


def test_tc010_follow_up_unknown_child(tmp_path, chw, registered) -> None:
    with pytest.raises(KeyError):
        add_follow_up(chw, "missing", measurement(day=20), data_dir=tmp_path)


def test_tc011_update_child_demographics(tmp_path, chw, registered) -> None:
    updated = update_child(
        chw, registered.id, {"mother_marital_status": "single", "address": None}, data_dir=tmp_path
    )
    assert updated.mother_marital_status == "single"
    (stored,) = load_children(tmp_path)
    assert stored.mother_marital_status == "single"
    assert stored.address == "Kigali, Gasabo"
    assert stored.initial.weight_kg == registered.initial.weight_kg
    assert stored.initial.recorded_at == registered.initial.recorded_at


def test_tc012_update_rejects_non_demographic_fields(tmp_path, chw, registered) -> None:
    with pytest.raises(ValueError, match="cannot be edited"):
        update_child(chw, registered.id, {"sex": "female"}, data_dir=tmp_path)


def test_tc013_update_forbidden_for_other_chw(tmp_path, other_chw, registered) -> None:
    with pytest.raises(PermissionError):
        update_child(other_chw, registered.id, {"name": "X"}, data_dir=tmp_path)


def test_tc014_delete_cascades(tmp_path, chw, registered) -> None:
    keep = register_child(chw, {**FIELDS, "name": "Keep"}, measurement(), data_dir=tmp_path)
    add_follow_up(chw, registered.id, measurement(day=20), data_dir=tmp_path)
    add_follow_up(chw, keep.id, measurement(day=21), data_dir=tmp_path)

    delete_child(chw, registered.id, data_dir=tmp_path)

    children = load_children(tmp_path)
    assert [c.id for c in children] == [keep.id]
    follow_ups = pd.read_csv(tmp_path / "follow_ups.csv")
    assert list(follow_ups["child_id"]) == [keep.id]


def test_tc015_delete_forbidden_for_other_chw(tmp_path, other_chw, registered) -> None:
    with pytest.raises(PermissionError):
        delete_child(other_chw, registered.id, data_dir=tmp_path)
    assert len(load_children(tmp_path)) == 1


def test_tc016_save_children_empty(tmp_path) -> None:
    save_children([], data_dir=tmp_path)
    assert load_children(tmp_path) == []


def test_tc017_export_columns_and_values(sample_children) -> None:
    frame = export_frame(sample_children, {"chw-1": "CHW One"})
    assert list(frame.columns) == EXPORT_COLUMNS
    first = frame.iloc[0]
    assert first["id"] == "c1"
    assert first["createdByName"] == "CHW One"
    assert first["motherMaritalStatus"] == "married"
    assert first["dob"] == "2024-01-01T00:00:00"
    assert first["initialWeightKg"] == 7.0
    assert frame.iloc[2]["createdByName"] == ""


def test_tc018_export_children_csv(tmp_path, sample_children) -> None:
    output = export_children_csv(sample_children, {}, tmp_path / "exports" / "children.csv")
    df = pd.read_csv(output)
    assert list(df.columns) == EXPORT_COLUMNS
    assert len(df) == 3
    assert not (tmp_path / "exports" / "children.tmp").exists()


def test_tc019_write_failure_raises_ioerror(tmp_path, sample_children) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    with pytest.raises(IOError, match="Failed to write"):
        export_children_csv(sample_children, {}, blocker / "children.csv")


def test_tc020_update_rejects_invalid_value(tmp_path, chw, registered) -> None:
    with pytest.raises(ValueError, match="Invalid child record"):
        update_child(chw, registered.id, {"mother_age": "thirty"}, data_dir=tmp_path)
    (stored,) = load_children(tmp_path)
    assert stored.mother_age == 27


def test_tc021_update_validates_coerced_values(tmp_path, chw, registered) -> None:
    updated = update_child(chw, registered.id, {"mother_age": "31"}, data_dir=tmp_path)
    assert updated.mother_age == 31
    (stored,) = load_children(tmp_path)
    assert stored.mother_age == 31


def test_tc022_register_requires_activated_account(tmp_path, inactive_chw) -> None:
    with pytest.raises(PermissionError, match="Account not activated"):
        register_child(inactive_chw, FIELDS, measurement(), data_dir=tmp_path)
    assert load_children(tmp_path) == []

from datetime import datetime

import pandas as pd
import pytest

from src.data.loader import (
    frames_to_children,
    get_child,
    load_children,
    load_children_frame,
    load_follow_ups_frame,
    search_children,
)


@pytest.fixture
def data_dir(tmp_path, children_csv_frame):
    children_csv_frame.to_csv(tmp_path / "children.csv", index=False)
    pd.DataFrame(
        {
            "child_id": ["c1", "c1", "ghost"],
            "recorded_at": ["2024-05-01", "2024-03-01", "2024-03-01"],
            "weight_kg": [8.1, 7.6, 5.0],
            "height_cm": [69.0, 67.5, 60.0],
            "head_circ_cm": [None, 44.0, None],
            "collector_id": ["chw-1", "admin-1", "chw-9"],
        }
    ).to_csv(tmp_path / "follow_ups.csv", index=False)
    return tmp_path


def test_tc001_load_children_frame_normalises(data_dir) -> None:
    df = load_children_frame(data_dir / "children.csv")
    assert list(df["sex"]) == ["male", "female"]
    assert pd.api.types.is_datetime64_any_dtype(df["dob"])


def test_tc002_missing_file_is_empty(tmp_path) -> None:
    assert load_children(tmp_path) == []


def test_tc003_missing_required_columns(tmp_path, children_csv_frame) -> None:
    children_csv_frame.drop(columns=["initial_weight_kg"]).to_csv(
        tmp_path / "children.csv", index=False
    )
    with pytest.raises(ValueError, match="Missing required columns"):
        load_children_frame(tmp_path / "children.csv")


def test_tc004_duplicate_ids_rejected(tmp_path, children_csv_frame) -> None:
    children_csv_frame["id"] = ["c1", "c1"]
    children_csv_frame.to_csv(tmp_path / "children.csv", index=False)
    with pytest.raises(ValueError, match="Duplicate child ids"):
        load_children_frame(tmp_path / "children.csv")


def test_tc005_non_positive_weight_rejected(tmp_path, children_csv_frame) -> None:
    children_csv_frame.loc[0, "initial_weight_kg"] = 0
    children_csv_frame.to_csv(tmp_path / "children.csv", index=False)
    with pytest.raises(ValueError, match="initial_weight_kg"):
        load_children_frame(tmp_path / "children.csv")


def test_tc006_invalid_sex_rejected(tmp_path, children_csv_frame) -> None:
    children_csv_frame.loc[1, "sex"] = "unknown"
    children_csv_frame.to_csv(tmp_path / "children.csv", index=False)
    with pytest.raises(ValueError, match="Invalid sex values"):
        load_children_frame(tmp_path / "children.csv")


def test_tc007_follow_ups_sorted(data_dir) -> None:
    df = load_follow_ups_frame(data_dir / "follow_ups.csv")
    c1 = df[df["child_id"] == "c1"]
    assert list(c1["recorded_at"]) == [pd.Timestamp("2024-03-01"), pd.Timestamp("2024-05-01")]


def test_tc008_load_children_assembles_models(data_dir) -> None:
    children = load_children(data_dir)
    assert [c.id for c in children] == ["c1", "c2"]

    amani = children[0]
    assert amani.sex == "male"
    assert amani.mother_age == 28
    assert amani.initial.head_circ_cm == 43.0
    assert amani.initial.recorded_at == datetime(2024, 2, 1, 9, 0)
    assert [m.weight_kg for m in amani.follow_ups] == [7.6, 8.1]
    assert amani.follow_ups[0].collector_id == "admin-1"

    bella = children[1]
    assert bella.mother_name is None
    assert bella.mother_age is None
    assert bella.follow_ups == []
    assert bella.latitude == 0.0


def test_tc009_orphan_follow_ups_ignored(data_dir) -> None:
    children = load_children(data_dir)
    assert sum(len(c.follow_ups) for c in children) == 2


def test_tc010_frames_to_children_empty() -> None:
    assert frames_to_children(pd.DataFrame(), pd.DataFrame()) == []


def test_tc011_get_child(sample_children) -> None:
    assert get_child(sample_children, "c2").id == "c2"
    with pytest.raises(KeyError, match="Child not found"):
        get_child(sample_children, "nope")


def test_tc012_search_by_collector(sample_children) -> None:
    assert [c.id for c in search_children(sample_children, collector_id="chw-2")] == ["c3"]


@pytest.mark.parametrize(
    "query,expected",
    [
        ("child c1", ["c1"]),
        ("beatrice", ["c2"]),
        ("MUSANZE", ["c3"]),
        ("", ["c1", "c2", "c3"]),
        ("zzz", []),
    ],
)
def test_tc013_search_by_query(sample_children, query, expected) -> None:
    assert [c.id for c in search_children(sample_children, query=query)] == expected


def test_tc014_search_combines_filters(sample_children) -> None:
    assert search_children(sample_children, collector_id="chw-1", query="musanze") == []

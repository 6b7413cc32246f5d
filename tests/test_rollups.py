from datetime import datetime

import pytest
from hypothesis import given, settings, strategies as st

from anthro.calculator import AnthroCalculator
from anthro.models import Classification
from anthro.rollups import (
    MARITAL_STATUSES,
    REGIONS,
    UNKNOWN,
    aggregate_status,
    breakdown_by_marital_status,
    breakdown_by_region,
    region_of,
    rollup_by,
    scope_children,
    status_frame,
    summarize,
)
from anthro.zscores import STATUSES
from tests.conftest import StubEngine, make_child

NOW = datetime(2024, 7, 1)


def calculator_with(whz: float) -> AnthroCalculator:
    return AnthroCalculator(primary=StubEngine(scores={"waz": 0.0, "whz": whz, "haz": 0.0}))


@pytest.mark.parametrize(
    "classification,expected",
    [
        (Classification(wa="severe", wh="normal", ha="severe"), "normal"),
        (Classification(wa="normal", wh="moderate", ha="normal"), "moderate"),
        ({"wa": "severe", "wh": "normal"}, "normal"),
        ({"wa": "severe", "ha": "moderate"}, "severe"),
        ({"wh": "", "wa": None, "ha": "moderate"}, "moderate"),
        ({}, "normal"),
    ],
)
def test_tc001_aggregate_status_precedence(classification, expected) -> None:
    """Weight-for-height wins whenever it is present"""
    assert aggregate_status(classification) == expected


def test_tc002_scope_children(sample_children, chw, other_chw, admin, nutritionist) -> None:
    assert [c.id for c in scope_children(sample_children, chw)] == ["c1", "c2"]
    assert [c.id for c in scope_children(sample_children, other_chw)] == ["c3"]
    assert len(scope_children(sample_children, admin)) == 3
    assert len(scope_children(sample_children, nutritionist)) == 3
    assert len(scope_children(sample_children, None)) == 3


def test_tc003_status_frame_columns(sample_children) -> None:
    frame = status_frame(sample_children, NOW, calculator_with(-2.5))
    assert list(frame.columns) == ["id", "created_by_id", "status"]
    assert set(frame["status"]) == {"moderate"}


def test_tc004_summarize(sample_children) -> None:
    summary = summarize(sample_children, NOW, calculator_with(-3.2))
    assert summary == {"total": 3, "byStatus": {"normal": 0, "moderate": 0, "severe": 3}}


def test_tc005_summarize_empty() -> None:
    assert summarize([], NOW, calculator_with(0.0)) == {
        "total": 0,
        "byStatus": {"normal": 0, "moderate": 0, "severe": 0},
    }


def test_tc006_marital_breakdown_case_insensitive(sample_children, admin) -> None:
    result = breakdown_by_marital_status(sample_children, admin, NOW, calculator_with(0.0))
    assert result["total"] == 3
    assert set(result["breakdown"]) == set(MARITAL_STATUSES) | {UNKNOWN}
    assert result["breakdown"]["married"]["total"] == 1
    assert result["breakdown"]["single"]["total"] == 1
    assert result["breakdown"][UNKNOWN]["total"] == 1
    assert result["breakdown"]["teen"] == {
        "total": 0,
        "byStatus": {"normal": 0, "moderate": 0, "severe": 0},
    }


def test_tc007_marital_breakdown_scoped_to_chw(sample_children, chw) -> None:
    result = breakdown_by_marital_status(sample_children, chw, NOW, calculator_with(0.0))
    assert result["total"] == 2
    assert result["breakdown"][UNKNOWN]["total"] == 0


def test_tc008_region_breakdown_falls_back_to_address(sample_children, nutritionist) -> None:
    result = breakdown_by_region(sample_children, nutritionist, NOW, calculator_with(-2.5))
    assert set(result["breakdown"]) == set(REGIONS) | {UNKNOWN}
    assert result["breakdown"]["Kigali"]["total"] == 1
    assert result["breakdown"]["Huye"]["byStatus"]["moderate"] == 1
    # c3 has no region and address "Musanze"
    assert result["breakdown"]["Musanze"]["total"] == 1
    assert result["breakdown"][UNKNOWN]["total"] == 0


def test_tc009_region_of(child_factory) -> None:
    assert region_of(child_factory("a", region="Rubavu", address="x")) == "Rubavu"
    assert region_of(child_factory("b", address="Rusizi")) == "Rusizi"
    assert region_of(child_factory("c")) is None


def test_tc010_unrecognised_category_is_unknown(child_factory) -> None:
    children = [child_factory("a", region="Atlantis"), child_factory("b", region="kigali")]
    result = rollup_by(children, region_of, REGIONS, NOW, calculator_with(0.0))
    assert result["breakdown"][UNKNOWN]["total"] == 1
    assert result["breakdown"]["Kigali"]["total"] == 1


@settings(max_examples=50, deadline=None)
@given(
    cases=st.lists(
        st.tuples(
            st.floats(min_value=-5, max_value=3),
            st.sampled_from(list(MARITAL_STATUSES) + ["MARRIED", "widowed", None]),
        ),
        max_size=12,
    )
)
def test_tc011_rollup_conserves_children(cases) -> None:
    """Every child lands in exactly one category and one status"""
    children = []
    scores = {}
    for i, (whz, marital) in enumerate(cases):
        child = make_child(f"c{i}", weight=7.0 + i * 0.01, mother_marital_status=marital)
        children.append(child)
        scores[child.initial.weight_kg] = whz

    class PerChildEngine(StubEngine):
        def compute(self, age_days, weight, height, sex):
            return {"waz": 0.0, "whz": scores[weight], "haz": 0.0}

    calculator = AnthroCalculator(primary=PerChildEngine())
    result = rollup_by(
        children, lambda c: c.mother_marital_status, MARITAL_STATUSES, NOW, calculator
    )

    assert result["total"] == len(children)
    assert sum(b["total"] for b in result["breakdown"].values()) == len(children)
    for bucket in result["breakdown"].values():
        assert sum(bucket["byStatus"].values()) == bucket["total"]
        assert set(bucket["byStatus"]) == set(STATUSES)

    summary = summarize(children, NOW, calculator)
    assert sum(summary["byStatus"].values()) == summary["total"] == len(children)

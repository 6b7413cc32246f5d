from datetime import date, datetime
from typing import Dict, Optional

import numpy as np
import pandas as pd
import pytest

from anthro.calculator import AnthroCalculator
from anthro.methods.base import BaseEngine
from anthro.methods.lookup.engine import LookupEngine
from anthro.models import Child, Measurement, User

REFERENCE_DTYPE = np.dtype([("x", "f8"), ("L", "f8"), ("M", "f8"), ("S", "f8")])

# Fixed clock for lookup-engine tests
TODAY = date(2024, 6, 1)


def make_table(start: float, stop: float, L: float, M: float, S: float) -> np.ndarray:
    """Reference table with constant L, M, S over [start, stop] in unit steps."""
    xs = np.arange(start, stop + 1.0, 1.0)
    table = np.zeros(xs.size, dtype=REFERENCE_DTYPE)
    table["x"] = xs
    table["L"] = L
    table["M"] = M
    table["S"] = S
    return table


@pytest.fixture
def reference_data() -> Dict[str, np.ndarray]:
    """
    Synthetic WHO-shaped tables with L=1 so that z = (X/M - 1) / S.

    waz: M=10 kg over 0-60 months; haz: M=70 cm over 0-60 months;
    whz: M=8 kg over 45-110 cm. S=0.1 everywhere.
    """
    data = {}
    for sex in ("male", "female"):
        data[f"waz_{sex}"] = make_table(0, 60, 1.0, 10.0, 0.1)
        data[f"haz_{sex}"] = make_table(0, 60, 1.0, 70.0, 0.1)
        data[f"whz_{sex}"] = make_table(45, 110, 1.0, 8.0, 0.1)
    return data


@pytest.fixture
def lookup_engine(reference_data) -> LookupEngine:
    return LookupEngine(reference_data=reference_data, today=lambda: TODAY)


class StubEngine(BaseEngine):
    """Engine returning canned scores, or raising when told to."""

    def __init__(self, scores: Optional[Dict[str, object]] = None, error: Optional[Exception] = None):
        self.scores = scores or {"waz": 0.0, "whz": 0.0, "haz": 0.0}
        self.error = error
        self.calls = 0

    def validate_config(self) -> None:
        pass

    def compute(self, age_days, weight, height, sex):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return dict(self.scores)


@pytest.fixture
def stub_engine_cls():
    return StubEngine


def _unavailable():
    raise FileNotFoundError("Growth reference data file not found")


@pytest.fixture
def approximation_calculator() -> AnthroCalculator:
    """Calculator whose lookup engine can never be built."""
    return AnthroCalculator(primary_factory=_unavailable)


@pytest.fixture
def chw() -> User:
    return User(id="chw-1", name="CHW One", role="chw")


@pytest.fixture
def other_chw() -> User:
    return User(id="chw-2", name="CHW Two", role="chw")


@pytest.fixture
def inactive_chw() -> User:
    return User(id="chw-3", name="CHW Pending", role="chw", is_active=False)


@pytest.fixture
def admin() -> User:
    return User(id="admin-1", name="Admin", role="admin")


@pytest.fixture
def nutritionist() -> User:
    return User(id="nutri-1", name="Nutritionist", role="nutritionist")


def make_child(
    child_id: str,
    created_by_id: str = "chw-1",
    weight: float = 7.0,
    height: float = 65.0,
    dob: datetime = datetime(2024, 1, 1),
    **fields,
) -> Child:
    return Child(
        id=child_id,
        name=fields.pop("name", f"Child {child_id}"),
        sex=fields.pop("sex", "male"),
        dob=dob,
        created_by_id=created_by_id,
        initial=Measurement(
            recorded_at=fields.pop("recorded_at", datetime(2024, 2, 1)),
            weight_kg=weight,
            height_cm=height,
        ),
        **fields,
    )


@pytest.fixture
def child_factory():
    return make_child


@pytest.fixture
def sample_children() -> list:
    """Three children: two collected by chw-1, one by chw-2."""
    return [
        make_child("c1", "chw-1", mother_marital_status="married", region="Kigali",
                   mother_name="Alice", address="Kigali, Nyarugenge"),
        make_child("c2", "chw-1", mother_marital_status="Single", region="Huye",
                   mother_name="Beatrice", address="Huye town"),
        make_child("c3", "chw-2", mother_marital_status=None, region=None,
                   address="Musanze", mother_name="Claudine"),
    ]


@pytest.fixture
def children_csv_frame() -> pd.DataFrame:
    """A minimal children table in the record-store layout."""
    return pd.DataFrame(
        {
            "id": ["c1", "c2"],
            "local_id": ["NUTRI-20240201-0001", "NUTRI-20240201-0002"],
            "name": ["Amani", "Bella"],
            "sex": ["M", "female"],
            "dob": ["2023-08-01", "2023-09-15"],
            "mother_name": ["Alice", None],
            "mother_marital_status": ["married", "teen"],
            "mother_age": [28, None],
            "region": ["Kigali", "Rubavu"],
            "created_by_id": ["chw-1", "chw-2"],
            "initial_recorded_at": ["2024-02-01T09:00:00", "2024-02-02T10:30:00"],
            "initial_weight_kg": [7.2, 6.1],
            "initial_height_cm": [66.0, 61.5],
            "initial_head_circ_cm": [43.0, None],
        }
    )

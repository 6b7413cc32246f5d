"""
Reporting rollups over classified children.

Every child counts under exactly one aggregate status and, for grouped
reports, exactly one category (including ``unknown``).
"""

from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from .aggregator import classify_child
from .calculator import AnthroCalculator
from .models import Child, Classification, User
from .zscores import STATUS_NORMAL, STATUSES

MARITAL_STATUSES = ("married", "divorced", "single", "teen")
REGIONS = ("Kigali", "Musanze", "Rubavu", "Huye", "Rusizi")
UNKNOWN = "unknown"


def aggregate_status(classification: Union[Classification, Mapping[str, str]]) -> str:
    """
    Overall status of one classified measurement.

    ``wh or wa or ha or "normal"``: the first truthy field wins. A populated
    Classification always has a truthy ``wh``, so its weight-for-height
    status is the aggregate; ``wa`` and ``ha`` are only consulted for
    mappings where ``wh`` is missing or empty.
    """
    if isinstance(classification, Classification):
        classification = classification.model_dump()
    return (
        classification.get("wh")
        or classification.get("wa")
        or classification.get("ha")
        or STATUS_NORMAL
    )


def scope_children(children: Iterable[Child], user: Optional[User] = None) -> List[Child]:
    """Community health workers see the children they collected; others see all."""
    children = list(children)
    if user is None or user.role != "chw":
        return children
    return [c for c in children if c.created_by_id == user.id]


def status_frame(
    children: Sequence[Child],
    now: Optional[datetime] = None,
    calculator: Optional[AnthroCalculator] = None,
) -> pd.DataFrame:
    """
    One row per child with its aggregate status.

    Columns: id, created_by_id, status. Status values outside
    normal/moderate/severe are counted as normal.
    """
    now = now or datetime.now()
    statuses = [
        aggregate_status(classify_child(c, now=now, calculator=calculator).classification)
        for c in children
    ]
    frame = pd.DataFrame(
        {
            "id": [c.id for c in children],
            "created_by_id": [c.created_by_id for c in children],
            "status": pd.Series(statuses, dtype="object"),
        }
    )
    frame.loc[~frame["status"].isin(STATUSES), "status"] = STATUS_NORMAL
    return frame


def _tally(frame: pd.DataFrame) -> Dict:
    counts = frame["status"].value_counts()
    return {
        "total": int(len(frame)),
        "byStatus": {status: int(counts.get(status, 0)) for status in STATUSES},
    }


def summarize(
    children: Iterable[Child],
    now: Optional[datetime] = None,
    calculator: Optional[AnthroCalculator] = None,
) -> Dict:
    """Population summary: ``{total, byStatus: {normal, moderate, severe}}``."""
    return _tally(status_frame(list(children), now, calculator))


def _categorize(value: Optional[str], categories: Sequence[str]) -> str:
    if value is None:
        return UNKNOWN
    canonical = {c.lower(): c for c in categories}
    return canonical.get(str(value).strip().lower(), UNKNOWN)


def rollup_by(
    children: Iterable[Child],
    key: Callable[[Child], Optional[str]],
    categories: Sequence[str],
    now: Optional[datetime] = None,
    calculator: Optional[AnthroCalculator] = None,
) -> Dict:
    """
    Tally aggregate statuses per category.

    Args:
        children: Children to report on
        key: Reads the categorical attribute from a child
        categories: Fixed enumeration; anything else (or missing) is ``unknown``

    Returns:
        ``{total, breakdown: {category: {total, byStatus}}}`` with every
        category and ``unknown`` present.
    """
    children = list(children)
    frame = status_frame(children, now, calculator)
    frame["category"] = pd.Series(
        [_categorize(key(c), categories) for c in children], dtype="object"
    )

    breakdown = {
        category: _tally(frame[frame["category"] == category])
        for category in list(categories) + [UNKNOWN]
    }
    return {"total": int(len(frame)), "breakdown": breakdown}


def region_of(child: Child) -> Optional[str]:
    """A child's region, falling back to the address field."""
    return child.region or child.address


def breakdown_by_marital_status(
    children: Iterable[Child],
    user: Optional[User] = None,
    now: Optional[datetime] = None,
    calculator: Optional[AnthroCalculator] = None,
) -> Dict:
    """Statuses grouped by the mother's marital status, scoped to ``user``."""
    return rollup_by(
        scope_children(children, user),
        lambda c: c.mother_marital_status,
        MARITAL_STATUSES,
        now=now,
        calculator=calculator,
    )


def breakdown_by_region(
    children: Iterable[Child],
    user: Optional[User] = None,
    now: Optional[datetime] = None,
    calculator: Optional[AnthroCalculator] = None,
) -> Dict:
    """Statuses grouped by region, scoped to ``user``."""
    return rollup_by(
        scope_children(children, user),
        region_of,
        REGIONS,
        now=now,
        calculator=calculator,
    )

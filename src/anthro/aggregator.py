"""
Record Aggregator

Selects the measurement to classify for a child and derives the age in
days it is classified at: "now" for list and summary views, the
measurement's own recording time for growth timelines.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Union

from .calculator import AnthroCalculator, compute_anthro
from .models import Child, ClassificationResult, Measurement

SECONDS_PER_DAY = 24 * 60 * 60


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    return datetime(value.year, value.month, value.day)


def age_in_days(dob: Union[date, datetime], reference: Union[date, datetime]) -> int:
    """
    Whole days elapsed from ``dob`` to ``reference``, floored.

    Negative when the reference precedes the birth date.
    """
    delta = _as_datetime(reference) - _as_datetime(dob)
    return int(delta.total_seconds() // SECONDS_PER_DAY)


def select_measurement(child: Child) -> Measurement:
    """Latest follow-up by recording time, otherwise the initial measurement."""
    if child.follow_ups:
        return max(child.follow_ups, key=lambda m: m.recorded_at)
    return child.initial


def classify_measurement(
    child: Child,
    measurement: Measurement,
    reference: Union[date, datetime],
    calculator: Optional[AnthroCalculator] = None,
) -> ClassificationResult:
    """Classify ``measurement`` at the child's age on ``reference``."""
    return compute_anthro(
        age_in_days(child.dob, reference),
        measurement.weight_kg,
        measurement.height_cm,
        child.sex,
        calculator=calculator,
    )


def classify_child(
    child: Child,
    now: Optional[datetime] = None,
    calculator: Optional[AnthroCalculator] = None,
) -> ClassificationResult:
    """Classify a child's latest measurement at the current age."""
    now = now or datetime.now()
    return classify_measurement(child, select_measurement(child), now, calculator)


def build_timeline(
    child: Child, calculator: Optional[AnthroCalculator] = None
) -> List[Dict[str, Any]]:
    """
    Classify every measurement at the age it was recorded.

    Returns:
        Entries in chronological order, initial measurement first, each with
        ``measurement`` and ``analysis`` keys.
    """
    timeline = []
    for measurement in child.measurements():
        analysis = classify_measurement(
            child, measurement, measurement.recorded_at, calculator
        )
        timeline.append({"measurement": measurement, "analysis": analysis})
    return timeline

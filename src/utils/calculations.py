"""
Utility functions for dashboard tables and per-measurement metrics.
"""

import pandas as pd
import numpy as np
from datetime import datetime
from typing import List, Optional
from scipy import stats

from anthro.aggregator import age_in_days, build_timeline, classify_child, select_measurement
from anthro.calculator import AnthroCalculator
from anthro.models import Child
from anthro.rollups import aggregate_status
from anthro.zscores import compute_bmi
from src.config import DAYS_PER_MONTH, TABLE_COLUMNS


def zscore_to_percentile(z: Optional[float]) -> Optional[float]:
    """
    Convert a z-score to a percentile of the standard normal distribution.

    Parameters
    ----------
    z : float or None
        Z-score

    Returns
    -------
    float or None
        Percentile in [0, 100] rounded to 1 decimal, or None if z is missing
    """
    if z is None or pd.isna(z):
        return None
    return round(float(stats.norm.cdf(z)) * 100, 1)


def calculate_age_in_months(age_days: float) -> float:
    """
    Convert age from days to months.

    Parameters
    ----------
    age_days : float
        Age in days

    Returns
    -------
    float
        Age in months (rounded to 1 decimal place)
    """
    return round(age_days / DAYS_PER_MONTH, 1)


def children_overview(
    children: List[Child],
    now: Optional[datetime] = None,
    calculator: Optional[AnthroCalculator] = None,
) -> pd.DataFrame:
    """
    Build the children overview table.

    Each child is classified on its latest measurement at the current age.

    Returns
    -------
    pd.DataFrame
        One row per child with TABLE_COLUMNS plus 'id' and 'created_by_id'
    """
    now = now or datetime.now()
    rows = []
    for child in children:
        measurement = select_measurement(child)
        result = classify_child(child, now=now, calculator=calculator)
        rows.append(
            {
                "id": child.id,
                "created_by_id": child.created_by_id,
                "local_id": child.local_id,
                "name": child.name,
                "sex": child.sex,
                "age_months": calculate_age_in_months(age_in_days(child.dob, now)),
                "region": child.region or child.address,
                "weight_kg": measurement.weight_kg,
                "height_cm": measurement.height_cm,
                "waz": result.waz,
                "whz": result.whz,
                "haz": result.haz,
                "status": aggregate_status(result.classification),
            }
        )
    return pd.DataFrame(rows, columns=["id", "created_by_id"] + TABLE_COLUMNS)


def timeline_frame(
    child: Child, calculator: Optional[AnthroCalculator] = None
) -> pd.DataFrame:
    """
    Build a chronological table of a child's measurements, each classified at
    the age it was recorded.

    Returns
    -------
    pd.DataFrame
        Columns: recorded_at, age_days, age_months, weight_kg, height_cm,
        head_circ_cm, bmi, waz, whz, haz, wa, wh, ha, status
    """
    rows = []
    for entry in build_timeline(child, calculator=calculator):
        measurement = entry["measurement"]
        analysis = entry["analysis"]
        bmi = compute_bmi(measurement.weight_kg, measurement.height_cm)
        rows.append(
            {
                "recorded_at": measurement.recorded_at,
                "age_days": analysis.age_days,
                "age_months": calculate_age_in_months(analysis.age_days),
                "weight_kg": measurement.weight_kg,
                "height_cm": measurement.height_cm,
                "head_circ_cm": measurement.head_circ_cm,
                "bmi": round(bmi, 2) if bmi is not None else np.nan,
                "waz": analysis.waz,
                "whz": analysis.whz,
                "haz": analysis.haz,
                "wa": analysis.classification.wa,
                "wh": analysis.classification.wh,
                "ha": analysis.classification.ha,
                "status": aggregate_status(analysis.classification),
            }
        )
    return pd.DataFrame(rows)


def get_point_metrics(df: pd.DataFrame, index: int) -> dict:
    """
    Get all metrics for a specific timeline point.

    Parameters
    ----------
    df : pd.DataFrame
        Timeline from timeline_frame
    index : int
        Row index of the point

    Returns
    -------
    dict
        Metrics for the point, including percentiles of each z-score
    """
    if index < 0 or index >= len(df):
        return {}

    row = df.iloc[index]
    metrics = {
        "age_days": row["age_days"],
        "age_months": row["age_months"],
        "weight_kg": row["weight_kg"],
        "height_cm": row["height_cm"],
        "bmi": row.get("bmi"),
        "status": row["status"],
    }
    for name in ("waz", "whz", "haz"):
        value = row.get(name)
        metrics[name] = None if value is None or pd.isna(value) else float(value)
        metrics[f"{name}_percentile"] = zscore_to_percentile(metrics[name])
    return metrics

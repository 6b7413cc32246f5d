"""
Z-Score Utilities for Anthropometric Classification

This module provides the numeric building blocks shared by the computation
engines: the LMS transformation against WHO growth-standard reference data,
linear interpolation of LMS parameters, coercion of engine output to finite
numbers, and the threshold classification into normal/moderate/severe.
"""

from typing import Dict, Optional, Tuple
import logging
import math
import re
from importlib import resources
from pathlib import Path

import numpy as np
from numba import jit

# Constants
L_ZERO_THRESHOLD = 1e-6
DAYS_PER_MONTH = 30.4375

# Classification thresholds (score <= SEVERE_CUTOFF is severe, <= MODERATE_CUTOFF moderate)
SEVERE_CUTOFF = -3.0
MODERATE_CUTOFF = -2.0

STATUS_NORMAL = "normal"
STATUS_MODERATE = "moderate"
STATUS_SEVERE = "severe"
STATUSES = (STATUS_NORMAL, STATUS_MODERATE, STATUS_SEVERE)

# Score name -> classification key
SCORE_CLASSIFICATION_KEYS = {"waz": "wa", "whz": "wh", "haz": "ha"}

REFERENCE_FILENAME = "growth_references.npz"
REFERENCE_FIELDS = ("x", "L", "M", "S")
REFERENCE_KEYS = (
    "waz_male",
    "waz_female",
    "haz_male",
    "haz_female",
    "whz_male",
    "whz_female",
)

_NON_NUMERIC = re.compile(r"[^0-9eE+\-.]")
_NUMBER = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_MINUS_SIGNS = {"\u2212": "-", "\u2013": "-"}


@jit(nopython=True, cache=True)
def lms_zscore(
    X: np.ndarray, L: np.ndarray, M: np.ndarray, S: np.ndarray
) -> np.ndarray:
    """
    Calculate LMS z-scores using vectorized LMS transformation.

    Implements the LMS method from Cole (1990) used by the WHO Child Growth
    Standards. Three curves: median (M), coefficient of variation (S),
    Box-Cox power (L).

    For L ≠ 0: z = ((X/M)^L - 1) / (L * S)
    For L ≈ 0: z = ln(X/M) / S

    Entries with non-finite X or M, or non-positive S, come back as NaN.

    References:
    - Cole, T.J. (1990). "The LMS method for constructing normalized growth standards."
      European Journal of Clinical Nutrition, 44(1), 45-60.
    - WHO Multicentre Growth Reference Study Group (2006). WHO Child Growth Standards.

    Args:
        X: Observed values (kg/cm)
        L: Lambda (power, skewness parameter from reference data)
        M: Mu (median at age/length and sex)
        S: Sigma (coefficient of variation at age/length and sex)

    Returns:
        Z-scores (0 at median)
    """
    if X.size == 0:
        return np.full_like(X, np.nan)
    original_shape = X.shape
    X_flat = X.ravel()
    L_flat = L.ravel()
    M_flat = M.ravel()
    S_flat = S.ravel()

    z_flat = np.full_like(X_flat, np.nan, dtype=np.float64)

    mask_l_zero = np.abs(L_flat) < L_ZERO_THRESHOLD
    mask_l_nonzero = ~mask_l_zero

    valid_l_zero = (
        mask_l_zero & np.isfinite(X_flat) & np.isfinite(M_flat) & (S_flat > 0)
    )
    if np.any(valid_l_zero):
        z_flat[valid_l_zero] = (
            np.log(X_flat[valid_l_zero] / M_flat[valid_l_zero]) / S_flat[valid_l_zero]
        )

    valid_l_nonzero = (
        mask_l_nonzero & np.isfinite(X_flat) & np.isfinite(M_flat) & (S_flat > 0)
    )
    if np.any(valid_l_nonzero):
        numerator = (X_flat[valid_l_nonzero] / M_flat[valid_l_nonzero]) ** L_flat[
            valid_l_nonzero
        ] - 1
        denominator = L_flat[valid_l_nonzero] * S_flat[valid_l_nonzero]
        z_flat[valid_l_nonzero] = numerator / denominator

    return z_flat.reshape(original_shape)


def interpolate_lms(
    table: np.ndarray, x: float
) -> Optional[Tuple[float, float, float]]:
    """
    Linearly interpolate L, M and S at ``x`` from a reference table.

    Args:
        table: Structured array with fields ``x, L, M, S`` sorted by ``x``
        x: Index value (age in months or length in cm)

    Returns:
        (L, M, S) or None when ``x`` falls outside the table range.
    """
    xs = table["x"]
    if xs.size == 0 or not np.isfinite(x) or x < xs[0] or x > xs[-1]:
        return None
    L = float(np.interp(x, xs, table["L"]))
    M = float(np.interp(x, xs, table["M"]))
    S = float(np.interp(x, xs, table["S"]))
    return L, M, S


def score_from_table(table: np.ndarray, x: float, value: float) -> Optional[float]:
    """Compute a single LMS z-score for ``value`` at index ``x``."""
    lms = interpolate_lms(table, x)
    if lms is None:
        return None
    L, M, S = lms
    z = lms_zscore(
        np.array([value], dtype=np.float64),
        np.array([L], dtype=np.float64),
        np.array([M], dtype=np.float64),
        np.array([S], dtype=np.float64),
    )[0]
    if not np.isfinite(z):
        return None
    return float(z)


def coerce_score(value) -> Optional[float]:
    """
    Coerce an engine result to a finite float.

    Engines may hand back numbers or strings such as ``"-2.31 SD"``,
    ``"−2.5"`` (typographic minus) or ``"-3.1e-0"``. Strings are parsed as
    they are first; otherwise every character other than digits, sign,
    decimal point and exponent marker is stripped and the first number left
    is taken. Unparsable or non-finite values give None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, np.integer, np.floating)):
        number = float(value)
    else:
        text = str(value).strip()
        for sign, replacement in _MINUS_SIGNS.items():
            text = text.replace(sign, replacement)
        try:
            number = float(text)
        except ValueError:
            match = _NUMBER.search(_NON_NUMERIC.sub("", text))
            if match is None:
                return None
            number = float(match.group())
    if not math.isfinite(number):
        return None
    return number


def classify_score(score: Optional[float]) -> str:
    """
    Map a z-score onto a nutritional status.

    score <= -3 is severe, -3 < score <= -2 is moderate, anything else
    (including a missing score) is normal.
    """
    if score is None:
        return STATUS_NORMAL
    if score <= SEVERE_CUTOFF:
        return STATUS_SEVERE
    if score <= MODERATE_CUTOFF:
        return STATUS_MODERATE
    return STATUS_NORMAL


def classify_scores(scores: Dict[str, Optional[float]]) -> Dict[str, str]:
    """Classify waz/whz/haz independently into the wa/wh/ha keys."""
    return {
        key: classify_score(scores.get(score_name))
        for score_name, key in SCORE_CLASSIFICATION_KEYS.items()
    }


def compute_bmi(weight: float, height: float) -> Optional[float]:
    """Compute BMI from weight in kg and height in cm; None if height <= 0."""
    height_m = height / 100.0
    height_m_sq = height_m * height_m if height > 0 else 0.0
    if height_m_sq <= 0:
        return None
    return weight / height_m_sq


def age_in_months(age_days: float) -> float:
    """Convert age in days to (fractional) months."""
    return age_days / DAYS_PER_MONTH


def _get_reference_data_path() -> str:
    """Get the package holding the growth reference data."""
    return "anthro.data"


def load_reference_data(path: Optional[Path] = None) -> Dict[str, np.ndarray]:
    """
    Load WHO growth reference tables.

    Reads ``growth_references.npz`` either from ``path`` or from the
    ``anthro.data`` package resources (written by ``scripts/download_data.py``).

    Returns:
        Dict mapping reference keys (``waz_male`` ...) to structured arrays.

    Raises:
        FileNotFoundError: If the reference file cannot be located.
        ValueError: If the file cannot be read.
    """
    try:
        if path is not None:
            handle = open(path, "rb")
        else:
            handle = (
                resources.files(_get_reference_data_path())
                .joinpath(REFERENCE_FILENAME)
                .open("rb")
            )
        with handle as f:
            loaded = np.load(f)
            data = {key: loaded[key] for key in loaded.files}
            loaded.close()
            return data
    except (FileNotFoundError, ModuleNotFoundError):
        raise FileNotFoundError(
            "Growth reference data file not found. "
            "Run 'scripts/download_data.py' to generate reference data."
        ) from None
    except Exception as e:
        raise ValueError(
            f"Failed to load growth reference data: {e}. "
            "Run 'scripts/download_data.py' to regenerate reference data."
        ) from e


def validate_loaded_data_integrity(data: Dict[str, np.ndarray]) -> bool:
    """
    Validate integrity of loaded reference data.

    Checks for required keys, structured array fields and value ranges.
    Logs warnings for any issue found but doesn't raise.

    Args:
        data: Loaded reference data dictionary

    Returns:
        True if data passes all validation checks, False otherwise
    """
    if not data:
        logging.warning("Loaded reference data is empty")
        return False

    missing_keys = [key for key in REFERENCE_KEYS if key not in data]
    if missing_keys:
        logging.warning(f"Missing expected reference arrays: {missing_keys}")
        return False

    for key in REFERENCE_KEYS:
        table = data[key]
        if not hasattr(table, "dtype") or table.dtype.names is None:
            logging.warning(f"Reference array {key} is not a structured array")
            return False
        if table.dtype.names != REFERENCE_FIELDS:
            logging.warning(
                f"Unexpected fields in {key}: {table.dtype.names}, expected {REFERENCE_FIELDS}"
            )
            return False
        if table.size == 0:
            logging.warning(f"Reference array {key} is empty")
            return False
        if np.any(table["x"] < 0):
            logging.warning(f"Negative index values found in {key}")
            return False
        if np.any(np.diff(table["x"]) < 0):
            logging.warning(f"Index values of {key} are not sorted")
            return False
        if np.any(table["M"] <= 0) or np.any(table["S"] <= 0):
            logging.warning(f"Non-positive M or S values in {key}")
            return False

    return True

"""
Anthropometric Calculator

Maps (age in days, weight, height, sex) to waz/whz/haz and a three-level
classification per indicator. The WHO lookup engine is tried first as a
whole; when it cannot be constructed or raises, the approximation engine
produces all three scores instead. A result is always returned.
"""

from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union
import functools
import logging
import math

from pydantic import ValidationError

from .methods import registry
from .methods.base import SCORE_NAMES, BaseEngine
from .models import AnthroInput, Classification, ClassificationResult, normalize_sex
from .zscores import classify_scores, coerce_score


def _is_finite_number(value) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


class AnthroCalculator:
    """
    Two-variant z-score computation with wholesale fallback.

    The primary engine (default: ``LookupEngine``) is built lazily on first
    use. If building it fails, it is marked unavailable for the lifetime of
    the calculator. If its ``compute`` raises, that single call falls back.
    A primary that returns None for some scores is not a failure: those
    scores stay None.

    Usage:
        calculator = AnthroCalculator()
        result = calculator.compute(183, 7.0, 65.0, "male")
        result.classification.wh
    """

    def __init__(
        self,
        primary: Optional[BaseEngine] = None,
        fallback: Optional[BaseEngine] = None,
        primary_factory: Optional[Callable[[], BaseEngine]] = None,
    ) -> None:
        self._primary = primary
        self._primary_factory = primary_factory or registry["lookup"]
        self._primary_unavailable = False
        self.fallback = fallback or registry["approximation"]()

    @property
    def primary(self) -> Optional[BaseEngine]:
        """The primary engine, or None if it cannot be constructed."""
        if self._primary is None and not self._primary_unavailable:
            try:
                self._primary = self._primary_factory()
            except Exception as e:
                logging.warning(
                    f"Lookup engine unavailable, using approximation formulas: {e}"
                )
                self._primary_unavailable = True
        return self._primary

    def compute(
        self, age_days: float, weight: float, height: float, sex: str
    ) -> ClassificationResult:
        """
        Compute scores and classification for one measurement.

        Args:
            age_days: Age at measurement in days (non-negative)
            weight: Weight in kg
            height: Height (length) in cm
            sex: 'male'/'female' or 'M'/'F'

        Returns:
            ClassificationResult. Non-finite inputs or a negative age give
            all-null scores classified normal.

        Raises:
            ValueError: If sex is not recognised
        """
        sex = normalize_sex(sex)

        if not all(_is_finite_number(v) for v in (age_days, weight, height)) or float(
            age_days
        ) < 0:
            logging.warning(
                f"Rejecting non-finite or negative input: age_days={age_days}, "
                f"weight={weight}, height={height}"
            )
            age = int(age_days) if _is_finite_number(age_days) else 0
            return ClassificationResult(age_days=age)

        age_days = int(age_days)
        weight = float(weight)
        height = float(height)

        scores, source = self._compute_scores(age_days, weight, height, sex)
        return ClassificationResult(
            age_days=age_days,
            waz=scores["waz"],
            whz=scores["whz"],
            haz=scores["haz"],
            classification=Classification(**classify_scores(scores)),
            source=source,
        )

    def compute_record(
        self, record: Union[AnthroInput, Mapping[str, Any]]
    ) -> ClassificationResult:
        """
        Compute from an ``AnthroInput`` or a ``{ageDays, weight, height, sex}``
        mapping (``age_days`` is accepted as well).

        Raises:
            ValueError: If the record is incomplete or sex is not recognised
        """
        if not isinstance(record, AnthroInput):
            try:
                record = AnthroInput.model_validate(record)
            except ValidationError as e:
                raise ValueError(f"Invalid anthropometric input: {e}") from e
        return self.compute(record.age_days, record.weight, record.height, record.sex)

    def _compute_scores(
        self, age_days: int, weight: float, height: float, sex: str
    ) -> Tuple[Dict[str, Optional[float]], str]:
        primary = self.primary
        if primary is not None:
            try:
                raw = primary.compute(age_days, weight, height, sex)
                return _coerce_all(raw), "lookup"
            except Exception as e:
                logging.warning(
                    f"Lookup engine failed, using approximation formulas: {e}"
                )

        raw = self.fallback.compute(age_days, weight, height, sex)
        return _coerce_all(raw), "approximation"


def _coerce_all(raw: Dict[str, object]) -> Dict[str, Optional[float]]:
    return {name: coerce_score(raw.get(name)) for name in SCORE_NAMES}


@functools.lru_cache(maxsize=1)
def get_default_calculator() -> AnthroCalculator:
    """Process-wide calculator; the lookup tables are loaded at most once."""
    return AnthroCalculator()


def compute_anthro(
    age_days: Union[float, AnthroInput, Mapping[str, Any]],
    weight: Optional[float] = None,
    height: Optional[float] = None,
    sex: Optional[str] = None,
    calculator: Optional[AnthroCalculator] = None,
) -> ClassificationResult:
    """
    Classify one measurement with ``calculator`` or the default calculator.

    The measurement is either given positionally or as a single record
    (an ``AnthroInput`` or a ``{ageDays, weight, height, sex}`` mapping).
    """
    calculator = calculator or get_default_calculator()
    if isinstance(age_days, (AnthroInput, Mapping)):
        return calculator.compute_record(age_days)
    return calculator.compute(age_days, weight, height, sex)

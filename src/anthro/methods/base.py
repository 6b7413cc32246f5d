"""
Base engine class for all anthropometric computation methods.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

SCORE_NAMES = ("waz", "whz", "haz")


class BaseEngine(ABC):
    """
    Abstract base class for z-score computation engines.

    Each engine inherits from this class and implements `compute` and
    `validate_config`. An engine returns the three scores for one
    measurement; an individual score may be None (or an unparsed string)
    when the engine cannot produce it. Raising from `compute` signals
    that the engine is unusable for the call as a whole.

    Example subclass implementation:
        class ConstantEngine(BaseEngine):
            def __init__(self, value: float = 0.0):
                self.value = value
                self.validate_config()

            def validate_config(self) -> None:
                pass

            def compute(self, age_days, weight, height, sex):
                return {"waz": self.value, "whz": self.value, "haz": self.value}
    """

    @abstractmethod
    def compute(
        self, age_days: int, weight: float, height: float, sex: str
    ) -> Dict[str, Optional[object]]:
        """
        Compute waz, whz and haz for one measurement.

        Args:
            age_days: Age at measurement in days.
            weight: Weight in kg.
            height: Height (length) in cm.
            sex: 'male' or 'female'.

        Returns:
            Dictionary with keys 'waz', 'whz', 'haz'.
        """
        pass

    @abstractmethod
    def validate_config(self) -> None:
        """
        Validate engine-specific configuration.

        Raises:
            ValueError: If configuration is invalid.
        """
        pass

    def _validate_sex(self, sex: str) -> None:
        """
        Validate the sex argument.

        Raises:
            ValueError: If sex is not 'male' or 'female'.
        """
        if sex not in ("male", "female"):
            raise ValueError(f"Sex must be 'male' or 'female', got '{sex}'")

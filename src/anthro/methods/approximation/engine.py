# ApproximationEngine class

"""
Closed-form approximation of anthropometric z-scores.

Always-available fallback used when the WHO lookup tables cannot be
loaded or the lookup engine fails as a whole. Expected weight and height
grow linearly with age in whole months; BMI is compared against a fixed
reference.
"""

import math
from typing import Dict, Optional

from pydantic import BaseModel, ValidationError, field_validator

from ..base import BaseEngine
from ...zscores import age_in_months, compute_bmi


class ApproximationConfig(BaseModel):
    """
    Coefficients of the approximation formulas.

    Attributes:
        birth_weight_kg (float): Expected weight at birth (3.5 kg).
        weight_gain_per_month (float): Expected weight gain per month (0.25 kg).
        birth_height_cm (float): Expected length at birth (49 cm).
        height_gain_per_month (float): Expected length gain per month (0.5 cm).
        min_sd_weight (float): Floor of the weight SD (0.8 kg).
        sd_weight_ratio (float): Weight SD as a fraction of expected weight (0.15).
        min_sd_height (float): Floor of the height SD (1.5 cm).
        sd_height_ratio (float): Height SD as a fraction of expected height (0.06).
        reference_bmi (float): BMI at which whz is zero (14).
        sd_bmi (float): Fixed BMI SD (1.5).
        decimals (int): Rounding of every score (2).
    """

    birth_weight_kg: float = 3.5
    weight_gain_per_month: float = 0.25
    birth_height_cm: float = 49.0
    height_gain_per_month: float = 0.5
    min_sd_weight: float = 0.8
    sd_weight_ratio: float = 0.15
    min_sd_height: float = 1.5
    sd_height_ratio: float = 0.06
    reference_bmi: float = 14.0
    sd_bmi: float = 1.5
    decimals: int = 2

    @field_validator("min_sd_weight", "min_sd_height", "sd_bmi")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Standard deviations must be strictly positive."""
        if v <= 0:
            raise ValueError("Standard deviation must be positive")
        return v

    @field_validator("decimals")
    @classmethod
    def validate_decimals(cls, v: int) -> int:
        if v < 0:
            raise ValueError("decimals must be non-negative")
        return v


class ApproximationEngine(BaseEngine):
    """
    Approximate z-scores from linear expected-growth curves.

    - ageMonths = floor(ageDays / 30.4375)
    - expectedWeight = 3.5 + ageMonths * 0.25
    - expectedHeight = 49 + ageMonths * 0.5
    - sdWeight = max(0.8, expectedWeight * 0.15)
    - sdHeight = max(1.5, expectedHeight * 0.06)
    - waz = (weight - expectedWeight) / sdWeight
    - haz = (height - expectedHeight) / sdHeight
    - whz = (bmi - 14) / 1.5, None when height <= 0

    Scores are rounded to two decimals. Sex is accepted for interface
    compatibility and does not enter the formulas.

    Usage:
        engine = ApproximationEngine()
        scores = engine.compute(183, 7.0, 65.0, "male")
    """

    def __init__(self, **overrides) -> None:
        """
        Initialize with optional coefficient overrides.

        Raises:
            ValueError: If configuration is invalid per ApproximationConfig validation
        """
        try:
            self.config = ApproximationConfig(**overrides)
        except ValidationError as e:
            raise ValueError(f"Invalid configuration: {e}") from e

        self.validate_config()

    def validate_config(self) -> None:
        """Expected curves must start from positive birth values."""
        if self.config.birth_weight_kg <= 0 or self.config.birth_height_cm <= 0:
            raise ValueError("Birth weight and height must be positive")

    def expected_values(self, age_days: int) -> Dict[str, float]:
        """Expected weight/height and their SDs at ``age_days``."""
        cfg = self.config
        age_months = math.floor(age_in_months(age_days))
        expected_weight = cfg.birth_weight_kg + age_months * cfg.weight_gain_per_month
        expected_height = cfg.birth_height_cm + age_months * cfg.height_gain_per_month
        return {
            "age_months": age_months,
            "expected_weight": expected_weight,
            "expected_height": expected_height,
            "sd_weight": max(cfg.min_sd_weight, expected_weight * cfg.sd_weight_ratio),
            "sd_height": max(cfg.min_sd_height, expected_height * cfg.sd_height_ratio),
        }

    def compute(
        self, age_days: int, weight: float, height: float, sex: str
    ) -> Dict[str, Optional[float]]:
        cfg = self.config
        expected = self.expected_values(age_days)

        waz = round(
            (weight - expected["expected_weight"]) / expected["sd_weight"], cfg.decimals
        )
        haz = round(
            (height - expected["expected_height"]) / expected["sd_height"], cfg.decimals
        )

        bmi = compute_bmi(weight, height)
        whz = (
            round((bmi - cfg.reference_bmi) / cfg.sd_bmi, cfg.decimals)
            if bmi is not None
            else None
        )

        return {"waz": waz, "whz": whz, "haz": haz}

# LookupEngine class

"""
WHO growth-standard lookup engine.

Computes weight-for-age, weight-for-length and length-for-age z-scores with
the LMS method against the WHO Child Growth Standards tables packaged as
``growth_references.npz``. Each score is computed independently: a
measurement outside a table's range fails only that score.
"""

from datetime import date, timedelta
from pathlib import Path
from typing import Callable, Dict, Optional
import logging

import numpy as np
from pydantic import BaseModel, ValidationError, field_validator

from ..base import BaseEngine
from ...models import PatientRecord
from ...zscores import (
    age_in_months,
    load_reference_data,
    score_from_table,
    validate_loaded_data_integrity,
)


class LookupConfig(BaseModel):
    """
    Configuration for the lookup engine.

    Attributes:
        reference_path (Optional[Path]): Explicit path to growth_references.npz.
            None loads the file packaged with anthro.
        validate_integrity (bool): Refuse tables failing the integrity check. True by default.
    """

    reference_path: Optional[Path] = None
    validate_integrity: bool = True

    @field_validator("reference_path")
    @classmethod
    def validate_reference_path(cls, v: Optional[Path]) -> Optional[Path]:
        """Ensure an explicit path names a file, not a directory."""
        if v is not None and v.suffix != ".npz":
            raise ValueError("Reference path must point to a .npz file")
        return v


class LookupEngine(BaseEngine):
    """
    LMS z-scores from WHO reference tables.

    - waz: weight against weight-for-age, indexed by age in months
    - haz: length against length-for-age, indexed by age in months
    - whz: weight against weight-for-length, indexed by length in cm

    For every call a synthetic patient record is built (birth date derived
    as today minus ``age_days``) and the age in months is read back from it.

    Usage:
        engine = LookupEngine()
        scores = engine.compute(183, 7.0, 65.0, "male")

    Raises (at construction):
        FileNotFoundError: If the reference tables are not available.
        ValueError: If the configuration or the tables are invalid.
    """

    def __init__(
        self,
        reference_path: Optional[Path] = None,
        validate_integrity: bool = True,
        reference_data: Optional[Dict[str, np.ndarray]] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        """
        Initialize the engine and load its reference tables.

        Args:
            reference_path: Path to a growth_references.npz file (packaged file if None)
            validate_integrity: Whether to run the integrity check on loaded tables
            reference_data: Already loaded tables, bypassing file loading
            today: Clock used to derive the synthetic birth date
        """
        try:
            self.config = LookupConfig(
                reference_path=reference_path,
                validate_integrity=validate_integrity,
            )
        except ValidationError as e:
            raise ValueError(f"Invalid configuration: {e}") from e

        self._today = today or date.today
        if reference_data is None:
            reference_data = load_reference_data(self.config.reference_path)
        self.tables = reference_data

        self.validate_config()

    def validate_config(self) -> None:
        """
        Validate loaded reference tables.

        Raises:
            ValueError: If the tables fail the integrity check
        """
        if self.config.validate_integrity and not validate_loaded_data_integrity(
            self.tables
        ):
            raise ValueError("Growth reference data failed integrity validation")

    def build_patient(
        self, age_days: int, weight: float, height: float, sex: str
    ) -> PatientRecord:
        """Build the synthetic patient record for one measurement."""
        dob = self._today() - timedelta(days=int(age_days))
        return PatientRecord(dob=dob, weight_kg=weight, height_cm=height, sex=sex)

    def compute(
        self, age_days: int, weight: float, height: float, sex: str
    ) -> Dict[str, Optional[float]]:
        self._validate_sex(sex)
        patient = self.build_patient(age_days, weight, height, sex)
        agemos = age_in_months((self._today() - patient.dob).days)

        return {
            "waz": self._score("waz", patient.sex, agemos, patient.weight_kg),
            "whz": self._score("whz", patient.sex, patient.height_cm, patient.weight_kg),
            "haz": self._score("haz", patient.sex, agemos, patient.height_cm),
        }

    def _score(
        self, measure: str, sex: str, x: float, value: float
    ) -> Optional[float]:
        """Compute one score; any failure leaves that score as None."""
        key = f"{measure}_{sex}"
        try:
            table = self.tables[key]
            score = score_from_table(table, x, value)
        except Exception as e:
            logging.debug(f"Lookup of {key} failed at x={x:.2f}: {e}")
            return None
        if score is None:
            logging.debug(f"{key}: index {x:.2f} outside reference range")
        return score

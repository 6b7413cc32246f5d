"""
Record and result models for anthropometric classification.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Status = Literal["normal", "moderate", "severe"]
Sex = Literal["male", "female"]

_SEX_ALIASES = {"m": "male", "male": "male", "f": "female", "female": "female"}


def normalize_sex(value: Any) -> str:
    """Normalise 'M'/'F'/'male'/'female' (any case) to 'male' or 'female'."""
    if isinstance(value, str):
        normalized = _SEX_ALIASES.get(value.strip().lower())
        if normalized is not None:
            return normalized
    raise ValueError(f"Sex must be one of male, female, M, F (got {value!r})")


class Measurement(BaseModel):
    """A single anthropometric measurement; immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    recorded_at: datetime
    weight_kg: float
    height_cm: float
    head_circ_cm: Optional[float] = None
    collector_id: Optional[str] = None


class Child(BaseModel):
    """
    A registered child with demographic attributes and measurements.

    ``initial`` is the measurement taken at registration. ``follow_ups`` are
    kept in insertion order, which need not be chronological; consumers sort
    by ``recorded_at``.
    """

    id: str
    local_id: Optional[str] = None
    name: str
    sex: Sex
    dob: datetime
    mother_name: Optional[str] = None
    mother_national_id: Optional[str] = None
    mother_marital_status: Optional[str] = None
    mother_age: Optional[int] = None
    father_name: Optional[str] = None
    father_national_id: Optional[str] = None
    address: Optional[str] = None
    region: Optional[str] = None
    district: Optional[str] = None
    latitude: float = 0.0
    longitude: float = 0.0
    complications: Optional[str] = None
    created_by_id: str
    initial: Measurement
    follow_ups: List[Measurement] = Field(default_factory=list)

    @field_validator("sex", mode="before")
    @classmethod
    def validate_sex(cls, v: Any) -> str:
        return normalize_sex(v)

    @field_validator("dob", mode="before")
    @classmethod
    def validate_dob(cls, v: Any) -> Any:
        """Accept plain dates as midnight datetimes."""
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime(v.year, v.month, v.day)
        return v

    def measurements(self) -> List[Measurement]:
        """Initial measurement followed by follow-ups in chronological order."""
        return [self.initial] + sorted(self.follow_ups, key=lambda m: m.recorded_at)


class Classification(BaseModel):
    """Per-indicator status: weight-for-age, weight-for-height, height-for-age."""

    wa: Status = "normal"
    wh: Status = "normal"
    ha: Status = "normal"


class ClassificationResult(BaseModel):
    """Derived scores and classification for one measurement. Never persisted."""

    age_days: int
    waz: Optional[float] = None
    whz: Optional[float] = None
    haz: Optional[float] = None
    classification: Classification = Field(default_factory=Classification)
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape: ``{ageDays, waz, whz, haz, classification: {wa, wh, ha}}``."""
        return {
            "ageDays": self.age_days,
            "waz": self.waz,
            "whz": self.whz,
            "haz": self.haz,
            "classification": self.classification.model_dump(),
        }


class AnthroInput(BaseModel):
    """Calculator input record: ``{ageDays, weight, height, sex}``."""

    model_config = ConfigDict(populate_by_name=True)

    age_days: float = Field(alias="ageDays")
    weight: float
    height: float
    sex: Sex

    @field_validator("sex", mode="before")
    @classmethod
    def validate_sex(cls, v: Any) -> str:
        return normalize_sex(v)


class User(BaseModel):
    """Dashboard user; ``role`` drives data scoping and permissions."""

    id: str
    name: str = ""
    role: Literal["chw", "nutritionist", "admin"]
    is_active: bool = True


class PatientRecord(BaseModel):
    """Synthetic patient handed to the lookup engine."""

    dob: date
    weight_kg: float
    height_cm: float
    sex: Sex

    @field_validator("sex", mode="before")
    @classmethod
    def validate_sex(cls, v: Any) -> str:
        return normalize_sex(v)

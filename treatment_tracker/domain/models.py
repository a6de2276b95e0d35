"""
Domain models for prescribed treatment courses and daily self-assessments.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation; stored values are frozen, request models
accept the camelCase keys the API boundary speaks.
"""

import datetime as dt
import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MIN_SCORE = 0
MAX_SCORE = 10
MAX_PAIN_ENTRIES = 6

_CODE_SHAPE = re.compile(r"[A-Z0-9]{8}")
CODE_FORMAT_MESSAGE = "prescriptionCode must be 8 characters: 4 uppercase letters + 4 digits"


def is_valid_prescription_code(code: object) -> bool:
    """8 characters: exactly 4 uppercase ASCII letters and 4 digits, any order."""
    if not isinstance(code, str) or not _CODE_SHAPE.fullmatch(code):
        return False
    return sum(ch.isdigit() for ch in code) == 4


class PrescriptionStatus(str, Enum):
    """Lifecycle state of a prescription, derived from its dates."""

    WAITING = "WAITING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"


class PainLocation(str, Enum):
    """Body regions a patient can report pain for."""

    LEFT_JAW = "LEFT_JAW"
    RIGHT_JAW = "RIGHT_JAW"
    LEFT_TEMPLE = "LEFT_TEMPLE"
    RIGHT_TEMPLE = "RIGHT_TEMPLE"
    NECK = "NECK"
    CHIN = "CHIN"


class Prescription(BaseModel):
    """A treatment course handed to a patient, identified by its code."""

    model_config = ConfigDict(frozen=True)

    id: int
    code: str
    created_at: dt.datetime = Field(
        description="Creation time; naive values are wall-clock time in the reference zone"
    )
    activated_date: dt.date | None = None

    def status(self, on: dt.date, zone: dt.tzinfo | None = None) -> PrescriptionStatus:
        from treatment_tracker.domain.schedule import prescription_status

        return prescription_status(self, on, zone)


class PainEntry(BaseModel):
    """One pain report inside a daily assessment."""

    model_config = ConfigDict(frozen=True)

    location: PainLocation
    intensity: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    note: str | None = None


class DailyAssessment(BaseModel):
    """A patient's self-assessment for one calendar day of the course.

    The assessment owns its pain entries: they are written and removed with it.
    `id` is None until the gateway has persisted it.
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    prescription_id: int
    date: dt.date
    week: int = Field(ge=1, le=6, description="Course week, fixed at submission time")
    pain_score: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    stress_score: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    function_score: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    pains: list[PainEntry] = Field(default_factory=list, max_length=MAX_PAIN_ENTRIES)


# Boundary models (what an HTTP collaborator deserializes into)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class PainInput(_CamelModel):
    location: PainLocation
    intensity: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    note: str | None = None

    def to_entry(self) -> PainEntry:
        return PainEntry(location=self.location, intensity=self.intensity, note=self.note)


class DailyAssessmentRequest(_CamelModel):
    """Submission payload for one day's assessment."""

    prescription_code: str = Field(description="4 uppercase letters + 4 digits, any order")
    date: dt.date
    pain_score: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    stress_score: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    function_score: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    pains: list[PainInput] = Field(default_factory=list, max_length=MAX_PAIN_ENTRIES)

    @field_validator("prescription_code")
    @classmethod
    def validate_prescription_code(cls, v: str) -> str:
        if not is_valid_prescription_code(v):
            raise ValueError(CODE_FORMAT_MESSAGE)
        return v


class WeeklyTrendQuery(_CamelModel):
    prescription_code: str
    start_week: int | None = Field(default=None, ge=1, le=6)
    end_week: int | None = Field(default=None, ge=1, le=6)

    @field_validator("prescription_code")
    @classmethod
    def validate_prescription_code(cls, v: str) -> str:
        if not is_valid_prescription_code(v):
            raise ValueError(CODE_FORMAT_MESSAGE)
        return v


class DailyAssessmentResponse(_CamelModel):
    """Receipt for an accepted submission."""

    assessment_id: int
    prescription_code: str
    week: int


class PeriodRange(_CamelModel):
    start_week: int
    end_week: int


class ChangeRate(_CamelModel):
    """Percent change vs the previous week with data; positive means improvement."""

    pain: float
    stress: float
    function: float


class WeeklyTrendItem(_CamelModel):
    week: int
    avg_pain: float
    avg_stress: float
    avg_function: float
    change_rate: ChangeRate | None = None  # None for the first week in range


class TopPainLocation(_CamelModel):
    location: PainLocation
    count: int
    avg_intensity: float


class WeeklyTrendReport(_CamelModel):
    """Weekly averages, change rates and most frequent pain locations."""

    prescription_code: str
    period: PeriodRange
    weekly_trend: list[WeeklyTrendItem]
    top_pain_locations: list[TopPainLocation]

"""
Persisted tracker records and the Dataset aggregate.

Everything here serializes to camelCase JSON, which is the shape stored in
the durable map and in the remote backup document.
"""

from datetime import datetime, timezone
from typing import List, Optional

import cuid
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from workout_tracker.enums import WeightUnit

ACTIVE_SESSION_ID = "active"

HEALTH_MEASUREMENT_FIELDS = (
    "bodyweight",
    "body_fat_percentage",
    "sleep_hours",
    "water_intake_liters",
    "resting_heart_rate",
)


def new_id() -> str:
    return cuid.cuid()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC so mixed documents stay sortable."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TrackerModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ExerciseInput(TrackerModel):
    """An exercise as entered in the logger, before it gets a row id."""
    name: str = Field(..., min_length=1)
    sets: int = Field(1, gt=0)
    reps: int = Field(0, ge=0)
    weight: float = Field(0, ge=0)
    unit: WeightUnit = WeightUnit.KG

    def merge_key(self):
        return (self.name, self.weight, self.unit, self.reps)


class Exercise(ExerciseInput):
    id: str = Field(default_factory=new_id)


class WorkoutSession(TrackerModel):
    id: str = ACTIVE_SESSION_ID
    timestamp: datetime = Field(default_factory=utc_now)
    name: Optional[str] = None
    warmup: bool = False
    equipment: str = "Bodyweight"
    notes: str = ""
    exercises: List[Exercise] = Field(default_factory=list)
    duration_minutes: Optional[int] = Field(None, ge=0)

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @property
    def is_draft(self) -> bool:
        return self.id == ACTIVE_SESSION_ID


class HealthEntryInput(TrackerModel):
    bodyweight: Optional[float] = Field(None, ge=0)
    bodyweight_unit: Optional[WeightUnit] = None
    body_fat_percentage: Optional[float] = Field(None, ge=0, le=100)
    sleep_hours: Optional[float] = Field(None, ge=0, le=24)
    water_intake_liters: Optional[float] = Field(None, ge=0)
    resting_heart_rate: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def require_measurement(self):
        if all(getattr(self, name) is None for name in HEALTH_MEASUREMENT_FIELDS):
            raise ValueError("A health entry needs at least one measurement")
        return self

    def measurements(self) -> dict:
        return {
            name: getattr(self, name)
            for name in HEALTH_MEASUREMENT_FIELDS
            if getattr(self, name) is not None
        }


class HealthEntry(HealthEntryInput):
    id: str = Field(default_factory=new_id)
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)


class RoutineExercise(TrackerModel):
    name: str = Field(..., min_length=1)
    sets: int = Field(1, gt=0)
    reps: int = Field(0, ge=0)


class Routine(TrackerModel):
    id: str = Field(default_factory=new_id)
    name: str
    exercises: List[RoutineExercise] = Field(default_factory=list)


class Dataset(TrackerModel):
    sessions: List[WorkoutSession] = Field(default_factory=list)
    health_entries: List[HealthEntry] = Field(
        default_factory=list,
        alias="healthEntries",
        validation_alias=AliasChoices("healthEntries", "healthStats", "health_entries"),
    )
    routines: List[Routine] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.sessions or self.health_entries or self.routines)

    def find_session(self, session_id: str) -> Optional[WorkoutSession]:
        return next((s for s in self.sessions if s.id == session_id), None)


class UserSettings(TrackerModel):
    default_exercise_name: str = Field(
        "Push-ups",
        validation_alias=AliasChoices("defaultExerciseName", "defaultWorkout", "default_exercise_name"),
    )
    default_reps: int = Field(10, ge=0)
    default_weight: float = Field(0, ge=0)
    default_unit: WeightUnit = WeightUnit.KG
    session_timeout_minutes: int = Field(
        60,
        gt=0,
        validation_alias=AliasChoices("sessionTimeoutMinutes", "sessionTimeout", "session_timeout_minutes"),
    )


class Profile(TrackerModel):
    id: str = Field(default_factory=new_id)
    name: str
    password_digest: str = Field(
        ..., validation_alias=AliasChoices("passwordDigest", "passwordHash", "password_digest")
    )
    recovery_code_digest: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("recoveryCodeDigest", "securityCodeHash", "recovery_code_digest"),
    )
    dataset: Dataset = Field(
        default_factory=Dataset, validation_alias=AliasChoices("dataset", "appData")
    )
    settings: UserSettings = Field(default_factory=UserSettings)

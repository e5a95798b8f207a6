from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from workout_tracker.schemas.tracker_schemas import TrackerModel


class SessionVolume(TrackerModel):
    session_id: str
    timestamp: datetime
    name: Optional[str] = None
    total_volume_kg: float = 0
    total_reps: int = 0


class ExerciseProgress(TrackerModel):
    name: str
    total_volume_kg: float = 0
    total_reps: int = 0
    best_weight_kg: float = 0
    session_count: int = 0


class ExercisePoint(TrackerModel):
    """One session's best set for a single exercise, for charting."""
    timestamp: datetime
    weight_kg: float
    reps: int


class WeeklyCount(TrackerModel):
    week_start: date
    sessions: int


class ProgressSummary(TrackerModel):
    total_sessions: int = 0
    total_volume_kg: float = 0
    total_reps: int = 0
    workout_days: int = 0
    latest_bodyweight_kg: Optional[float] = None
    sessions: List[SessionVolume] = Field(default_factory=list)
    exercises: List[ExerciseProgress] = Field(default_factory=list)
    weekly: List[WeeklyCount] = Field(default_factory=list)

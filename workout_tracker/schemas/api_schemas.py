"""
Request and response bodies for the HTTP surface.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, model_validator

from workout_tracker.enums import BackupKey, SessionState, SignInStrategy, SyncStatus, WeightUnit
from workout_tracker.schemas.tracker_schemas import (
    Dataset,
    RoutineExercise,
    TrackerModel,
    UserSettings,
    WorkoutSession,
)


class MessageResponse(TrackerModel):
    message: str


# ── Profiles ────────────────────────────────────────────────────────────────

class CredentialsRequest(TrackerModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    class Config:
        json_schema_extra = {
            "example": {"username": "alice", "password": "pw1"}
        }


class ProfileSummary(TrackerModel):
    id: str
    name: str


class RegisterResponse(TrackerModel):
    profile: ProfileSummary
    recovery_code: str
    recovery_export: str


class PasswordResetRequest(TrackerModel):
    """Either username + recovery_code, or the text of a recovery export."""
    username: Optional[str] = None
    recovery_code: Optional[str] = None
    recovery_export: Optional[str] = None
    new_password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def require_code_source(self):
        if not self.recovery_export and not (self.username and self.recovery_code):
            raise ValueError("Provide username and recoveryCode, or recoveryExport")
        return self


class AppStateResponse(TrackerModel):
    mode: str
    profile: Optional[ProfileSummary] = None
    account: Optional[str] = None
    dataset: Dataset
    settings: UserSettings
    session_state: SessionState
    active_session: Optional[WorkoutSession] = None
    sync_status: SyncStatus


# ── Sessions ────────────────────────────────────────────────────────────────

class SessionUpdateRequest(TrackerModel):
    name: Optional[str] = None
    warmup: Optional[bool] = None
    equipment: Optional[str] = None
    notes: Optional[str] = None
    timestamp: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, ge=0)


class ActiveSessionResponse(TrackerModel):
    state: SessionState
    session: Optional[WorkoutSession] = None


class CommitResponse(TrackerModel):
    committed: Optional[WorkoutSession] = None


# ── Data ────────────────────────────────────────────────────────────────────

class RoutineRequest(TrackerModel):
    id: Optional[str] = None
    name: str
    exercises: List[RoutineExercise] = Field(default_factory=list)


class RoutineFromSessionRequest(TrackerModel):
    name: Optional[str] = None
    exercise_ids: Optional[List[str]] = None


class SettingsUpdateRequest(TrackerModel):
    default_exercise_name: Optional[str] = None
    default_reps: Optional[int] = Field(None, ge=0)
    default_weight: Optional[float] = Field(None, ge=0)
    default_unit: Optional[WeightUnit] = None
    session_timeout_minutes: Optional[int] = Field(None, gt=0)


class BackupImportRequest(TrackerModel):
    data: dict
    keys: Optional[List[BackupKey]] = None


# ── Sync ────────────────────────────────────────────────────────────────────

class CloudSignInRequest(TrackerModel):
    access_token: str = Field(..., min_length=1)
    account: str = Field(..., min_length=1, description="Email or id of the signed-in identity")
    strategy: SignInStrategy = SignInStrategy.MERGE


class SyncStatusResponse(TrackerModel):
    status: SyncStatus
    last_error: Optional[str] = None
    needs_merge_choice: bool = False

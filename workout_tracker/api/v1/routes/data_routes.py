"""
Data Routes
Health entries, routines, settings, backup and progress.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from workout_tracker.api.v1.controllers.data_controller import DataController
from workout_tracker.api.v1.dependencies import get_tracker
from workout_tracker.enums import BackupKey
from workout_tracker.schemas.api_schemas import (
    BackupImportRequest,
    RoutineRequest,
    SettingsUpdateRequest,
)
from workout_tracker.schemas.progress_schemas import ExercisePoint, ProgressSummary
from workout_tracker.schemas.tracker_schemas import (
    Dataset,
    HealthEntry,
    HealthEntryInput,
    Routine,
    UserSettings,
)
from workout_tracker.services.tracker_service import TrackerService

router = APIRouter(tags=["Data"])


# ── Health ──────────────────────────────────────────────────────────────────

@router.get("/health-entries", summary="List Health Entries", response_model=List[HealthEntry])
async def list_health(tracker: TrackerService = Depends(get_tracker)):
    return DataController.list_health(tracker)


@router.post(
    "/health-entries",
    summary="Log Health Entry",
    description="At least one measurement is required. Bodyweight is forwarded to the fitness log in cloud mode.",
    response_model=HealthEntry,
    status_code=status.HTTP_201_CREATED
)
async def add_health(payload: HealthEntryInput, tracker: TrackerService = Depends(get_tracker)):
    return DataController.add_health(tracker, payload)


@router.delete("/health-entries/{entry_id}", summary="Delete Health Entry", status_code=status.HTTP_204_NO_CONTENT)
async def delete_health(entry_id: str, tracker: TrackerService = Depends(get_tracker)):
    DataController.delete_health(tracker, entry_id)


# ── Routines ────────────────────────────────────────────────────────────────

@router.get("/routines", summary="List Routines", response_model=List[Routine])
async def list_routines(tracker: TrackerService = Depends(get_tracker)):
    return DataController.list_routines(tracker)


@router.post("/routines", summary="Create Routine", response_model=Routine, status_code=status.HTTP_201_CREATED)
async def create_routine(payload: RoutineRequest, tracker: TrackerService = Depends(get_tracker)):
    return DataController.save_routine(tracker, payload)


@router.put("/routines/{routine_id}", summary="Replace Routine", response_model=Routine)
async def update_routine(routine_id: str, payload: RoutineRequest, tracker: TrackerService = Depends(get_tracker)):
    return DataController.save_routine(tracker, payload, routine_id)


@router.delete("/routines/{routine_id}", summary="Delete Routine", status_code=status.HTTP_204_NO_CONTENT)
async def delete_routine(routine_id: str, tracker: TrackerService = Depends(get_tracker)):
    DataController.delete_routine(tracker, routine_id)


# ── Settings ────────────────────────────────────────────────────────────────

@router.get("/settings", summary="Current Settings", response_model=UserSettings)
async def get_settings(tracker: TrackerService = Depends(get_tracker)):
    return tracker.settings


@router.patch(
    "/settings",
    summary="Update Settings",
    description="Changing the session timeout re-arms the inactivity timer of the active session.",
    response_model=UserSettings
)
async def update_settings(payload: SettingsUpdateRequest, tracker: TrackerService = Depends(get_tracker)):
    return DataController.update_settings(tracker, payload)


# ── Backup ──────────────────────────────────────────────────────────────────

@router.get("/backup", summary="Export Backup")
async def export_backup(
    keys: Optional[List[BackupKey]] = Query(None),
    tracker: TrackerService = Depends(get_tracker)
):
    document, filename = DataController.export_backup(tracker, keys)
    return JSONResponse(
        content=document,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/backup", summary="Import Backup", response_model=Dataset)
async def import_backup(payload: BackupImportRequest, tracker: TrackerService = Depends(get_tracker)):
    """Overwrites the selected keys (all keys present in the file when none are given)."""
    return DataController.import_backup(tracker, payload)


# ── Progress ────────────────────────────────────────────────────────────────

@router.get("/progress", summary="Progress Summary", response_model=ProgressSummary)
async def get_progress(tracker: TrackerService = Depends(get_tracker)):
    return DataController.progress(tracker)


@router.get("/progress/exercises/{exercise_name}", summary="Exercise History", response_model=List[ExercisePoint])
async def get_exercise_progress(exercise_name: str, tracker: TrackerService = Depends(get_tracker)):
    return DataController.exercise_progress(tracker, exercise_name)

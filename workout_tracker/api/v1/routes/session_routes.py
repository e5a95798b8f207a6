"""
Session Routes
"""
from typing import List

from fastapi import APIRouter, Depends, status

from workout_tracker.api.v1.controllers.session_controller import WorkoutSessionController
from workout_tracker.api.v1.dependencies import get_tracker
from workout_tracker.schemas.api_schemas import (
    ActiveSessionResponse,
    CommitResponse,
    RoutineFromSessionRequest,
    SessionUpdateRequest,
)
from workout_tracker.schemas.tracker_schemas import ExerciseInput, Routine, WorkoutSession
from workout_tracker.services.tracker_service import TrackerService

router = APIRouter(prefix="/sessions", tags=["Workout Sessions"])


@router.get("/active", summary="Active Session", response_model=ActiveSessionResponse)
async def get_active(tracker: TrackerService = Depends(get_tracker)):
    return WorkoutSessionController.current(tracker)


@router.post("/active", summary="Start Empty Session", response_model=ActiveSessionResponse)
async def start_session(tracker: TrackerService = Depends(get_tracker)):
    """Any session already being logged is committed first."""
    return WorkoutSessionController.start(tracker)


@router.post("/active/routine/{routine_id}", summary="Start Session From Routine", response_model=ActiveSessionResponse)
async def start_routine(routine_id: str, tracker: TrackerService = Depends(get_tracker)):
    return WorkoutSessionController.start_routine(tracker, routine_id)


@router.post(
    "/active/exercises",
    summary="Log Exercise",
    description="Starts a session when none is active. Logging an identical exercise again adds a set.",
    response_model=ActiveSessionResponse
)
async def add_exercise(payload: ExerciseInput, tracker: TrackerService = Depends(get_tracker)):
    return WorkoutSessionController.add_exercise(tracker, payload)


@router.patch("/active", summary="Edit Active Session Fields", response_model=ActiveSessionResponse)
async def update_session(payload: SessionUpdateRequest, tracker: TrackerService = Depends(get_tracker)):
    return WorkoutSessionController.update(tracker, payload)


@router.post("/active/commit", summary="Finish Session", response_model=CommitResponse)
async def commit_session(tracker: TrackerService = Depends(get_tracker)):
    """Empty sessions are discarded; `committed` is null then."""
    return WorkoutSessionController.commit(tracker)


@router.delete("/active", summary="Cancel Session", response_model=ActiveSessionResponse)
async def cancel_session(tracker: TrackerService = Depends(get_tracker)):
    return WorkoutSessionController.cancel(tracker)


@router.get("", summary="Session History", response_model=List[WorkoutSession])
async def list_sessions(tracker: TrackerService = Depends(get_tracker)):
    return WorkoutSessionController.history(tracker)


@router.post("/{session_id}/edit", summary="Edit Logged Session", response_model=ActiveSessionResponse)
async def edit_session(session_id: str, tracker: TrackerService = Depends(get_tracker)):
    return WorkoutSessionController.edit(tracker, session_id)


@router.delete("/{session_id}", summary="Delete Session", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, tracker: TrackerService = Depends(get_tracker)):
    WorkoutSessionController.delete(tracker, session_id)


@router.post(
    "/{session_id}/routine",
    summary="Save Session As Routine",
    response_model=Routine,
    status_code=status.HTTP_201_CREATED
)
async def save_as_routine(
    session_id: str,
    payload: RoutineFromSessionRequest,
    tracker: TrackerService = Depends(get_tracker)
):
    return WorkoutSessionController.save_as_routine(tracker, session_id, payload)

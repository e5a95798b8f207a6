"""
Sync Routes
"""
from fastapi import APIRouter, Depends, Request

from workout_tracker.api.v1.controllers.sync_controller import SyncController
from workout_tracker.api.v1.dependencies import get_tracker
from workout_tracker.schemas.api_schemas import CloudSignInRequest, SyncStatusResponse
from workout_tracker.schemas.tracker_schemas import Dataset
from workout_tracker.services.tracker_service import TrackerService

router = APIRouter(prefix="/sync", tags=["Cloud Sync"])


@router.get("/status", summary="Sync Status", response_model=SyncStatusResponse)
async def get_status(tracker: TrackerService = Depends(get_tracker)):
    """`needsMergeChoice` tells a UI to ask merge-or-replace before signing in."""
    return SyncController.status(tracker)


@router.post(
    "/sign-in",
    summary="Cloud Sign-In",
    description="Reconciles the current data with the cloud backup using the chosen strategy.",
    response_model=Dataset
)
async def sign_in(payload: CloudSignInRequest, request: Request, tracker: TrackerService = Depends(get_tracker)):
    return await SyncController.sign_in(request, tracker, payload)


@router.post("/now", summary="Sync Now", response_model=Dataset)
async def sync_now(tracker: TrackerService = Depends(get_tracker)):
    return await SyncController.sync_now(tracker)

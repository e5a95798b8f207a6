"""
Profile Routes
"""
from typing import List

from fastapi import APIRouter, Depends, status

from workout_tracker.api.v1.controllers.profile_controller import ProfileController
from workout_tracker.api.v1.dependencies import get_tracker
from workout_tracker.schemas.api_schemas import (
    AppStateResponse,
    CredentialsRequest,
    MessageResponse,
    PasswordResetRequest,
    ProfileSummary,
    RegisterResponse,
)
from workout_tracker.services.tracker_service import TrackerService

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.get(
    "/state",
    summary="Current Application State",
    description="Mode, active profile, dataset, settings, active session and sync status.",
    response_model=AppStateResponse
)
async def get_state(tracker: TrackerService = Depends(get_tracker)):
    return ProfileController.app_state(tracker)


@router.get("", summary="List Local Profiles", response_model=List[ProfileSummary])
async def list_profiles(tracker: TrackerService = Depends(get_tracker)):
    return ProfileController.list_profiles(tracker)


@router.post(
    "/register",
    summary="Register Local Profile",
    description="Creates a profile, logs into it, and returns the one-time recovery code.",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED
)
async def register(payload: CredentialsRequest, tracker: TrackerService = Depends(get_tracker)):
    """
    The recovery code is shown exactly once; only its digest is stored.
    `recoveryExport` is the text file a UI offers for download.
    """
    return ProfileController.register(tracker, payload)


@router.post("/login", summary="Log Into Local Profile", response_model=AppStateResponse)
async def login(payload: CredentialsRequest, tracker: TrackerService = Depends(get_tracker)):
    return ProfileController.login(tracker, payload)


@router.post("/logout", summary="Log Out", response_model=AppStateResponse)
async def logout(tracker: TrackerService = Depends(get_tracker)):
    return ProfileController.logout(tracker)


@router.post("/reset-password", summary="Reset Password With Recovery Code", response_model=MessageResponse)
async def reset_password(payload: PasswordResetRequest, tracker: TrackerService = Depends(get_tracker)):
    return ProfileController.reset_password(tracker, payload)


@router.delete("/active", summary="Delete Active Profile", response_model=AppStateResponse)
async def delete_active_profile(tracker: TrackerService = Depends(get_tracker)):
    return ProfileController.delete_active_profile(tracker)


@router.post("/reset-app", summary="Delete All Application Data", response_model=MessageResponse)
async def reset_app(tracker: TrackerService = Depends(get_tracker)):
    return ProfileController.reset_app(tracker)

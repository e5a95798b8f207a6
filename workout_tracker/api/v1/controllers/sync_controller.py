"""
Sync Controller
Cloud sign-in with an OAuth access token, manual sync and sync status.
"""
from fastapi import Request

from workout_tracker.core.logger import get_logger
from workout_tracker.schemas.api_schemas import CloudSignInRequest, SyncStatusResponse
from workout_tracker.schemas.tracker_schemas import Dataset
from workout_tracker.services.tracker_service import TrackerService

logger = get_logger("sync_controller")


class SyncController:

    @staticmethod
    def status(tracker: TrackerService) -> SyncStatusResponse:
        return SyncStatusResponse(
            status=tracker.sync_status,
            last_error=tracker.sync.last_error if tracker.sync else None,
            needs_merge_choice=tracker.needs_merge_choice(),
        )

    @staticmethod
    async def sign_in(request: Request, tracker: TrackerService, payload: CloudSignInRequest) -> Dataset:
        # Factories live on app.state so the stores can be swapped without touching routes
        remote_store = request.app.state.remote_store_factory(payload.access_token)
        fitness_sink = request.app.state.fitness_sink_factory(payload.access_token)
        logger.info(f"Cloud sign-in for {payload.account} with strategy {payload.strategy.value}")
        return await tracker.sign_in_cloud(payload.account, remote_store, fitness_sink, payload.strategy)

    @staticmethod
    async def sync_now(tracker: TrackerService) -> Dataset:
        return await tracker.sync_now()

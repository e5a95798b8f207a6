"""
Fitness Log Sink
Best-effort notifications of finished sessions and bodyweight readings to a
fitness platform (Google Fit).
"""

from abc import ABC, abstractmethod
from typing import List, Tuple

import httpx

from workout_tracker.core.config import settings
from workout_tracker.core.logger import get_logger
from workout_tracker.exceptions import ExternalServiceError
from workout_tracker.schemas.tracker_schemas import HealthEntry, WorkoutSession
from workout_tracker.utils.units import to_kg

logger = get_logger("fitness_sink")

FITNESS_API_URL = "https://www.googleapis.com/fitness/v1/users/me"
STRENGTH_TRAINING_ACTIVITY = 75


def _to_nanos(millis: int) -> int:
    return millis * 1_000_000


class FitnessLogSink(ABC):
    """Skips what the platform cannot use, then hands off to `_send_*`."""

    async def log_weight(self, entry: HealthEntry) -> bool:
        if entry.bodyweight is None:
            return False
        await self._send_weight(entry, to_kg(entry.bodyweight, entry.bodyweight_unit))
        return True

    async def log_session(self, session: WorkoutSession) -> bool:
        if not session.duration_minutes or session.duration_minutes <= 0:
            logger.debug(f"Session {session.id} has no duration; not logged")
            return False
        await self._send_session(session)
        return True

    @abstractmethod
    async def _send_weight(self, entry: HealthEntry, weight_kg: float) -> None:
        ...

    @abstractmethod
    async def _send_session(self, session: WorkoutSession) -> None:
        ...


class RecordingFitnessSink(FitnessLogSink):
    """Keeps what would have been sent; used when no fitness platform is linked."""

    def __init__(self):
        self.weights: List[Tuple[str, float]] = []
        self.sessions: List[str] = []

    async def _send_weight(self, entry: HealthEntry, weight_kg: float) -> None:
        self.weights.append((entry.id, weight_kg))

    async def _send_session(self, session: WorkoutSession) -> None:
        self.sessions.append(session.id)


class GoogleFitSink(FitnessLogSink):

    def __init__(self, access_token: str, client: httpx.AsyncClient = None):
        self._client = client or httpx.AsyncClient(timeout=settings.GOOGLE_API_TIMEOUT)
        self._headers = {"Authorization": f"Bearer {access_token}"}
        self.data_source_id = settings.FIT_DATA_SOURCE_ID

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send_weight(self, entry: HealthEntry, weight_kg: float) -> None:
        nanos = _to_nanos(int(entry.timestamp.timestamp() * 1000))
        dataset_id = f"{nanos}-{nanos}"
        body = {
            "minStartTimeNs": nanos,
            "maxEndTimeNs": nanos,
            "dataSourceId": self.data_source_id,
            "point": [{
                "startTimeNanos": nanos,
                "endTimeNanos": nanos,
                "dataTypeName": "com.google.weight",
                "value": [{"fpVal": weight_kg}],
            }],
        }
        try:
            response = await self._client.patch(
                f"{FITNESS_API_URL}/dataSources/{self.data_source_id}/datasets/{dataset_id}",
                json=body,
                headers=self._headers,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Google Fit weight upload failed: {e}") from e
        logger.info(f"Weight {weight_kg:.1f}kg synced to Google Fit")

    async def _send_session(self, session: WorkoutSession) -> None:
        start_ms = int(session.timestamp.timestamp() * 1000)
        end_ms = start_ms + session.duration_minutes * 60 * 1000
        fit_session_id = f"workout-tracker-session:{start_ms}"
        body = {
            "id": fit_session_id,
            "name": session.name or "Workout",
            "description": session.notes
            or f"Completed {len(session.exercises)} exercises. Equipment: {session.equipment}.",
            "startTimeMillis": start_ms,
            "endTimeMillis": end_ms,
            "application": {"name": settings.FIT_APPLICATION_NAME},
            "activityType": STRENGTH_TRAINING_ACTIVITY,
        }
        try:
            response = await self._client.put(
                f"{FITNESS_API_URL}/sessions/{fit_session_id}",
                json=body,
                headers=self._headers,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Google Fit session upload failed: {e}") from e
        logger.info(f"Session {session.id} synced to Google Fit")

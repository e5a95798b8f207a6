"""
Session Controller
The workout being logged right now, plus history edits.
"""
from workout_tracker.exceptions import ValidationError
from workout_tracker.schemas.api_schemas import (
    ActiveSessionResponse,
    CommitResponse,
    RoutineFromSessionRequest,
    SessionUpdateRequest,
)
from workout_tracker.schemas.tracker_schemas import ExerciseInput, Routine
from workout_tracker.services.tracker_service import TrackerService


class WorkoutSessionController:

    @staticmethod
    def current(tracker: TrackerService) -> ActiveSessionResponse:
        return ActiveSessionResponse(state=tracker.sessions.state, session=tracker.sessions.active_session)

    @staticmethod
    def start(tracker: TrackerService) -> ActiveSessionResponse:
        tracker.sessions.start_empty()
        return WorkoutSessionController.current(tracker)

    @staticmethod
    def start_routine(tracker: TrackerService, routine_id: str) -> ActiveSessionResponse:
        tracker.start_routine(routine_id)
        return WorkoutSessionController.current(tracker)

    @staticmethod
    def add_exercise(tracker: TrackerService, payload: ExerciseInput) -> ActiveSessionResponse:
        tracker.sessions.add_exercise(payload)
        return WorkoutSessionController.current(tracker)

    @staticmethod
    def update(tracker: TrackerService, payload: SessionUpdateRequest) -> ActiveSessionResponse:
        try:
            tracker.sessions.update_fields(payload.model_dump(exclude_unset=True))
        except ValueError as e:
            raise ValidationError(str(e)) from e
        return WorkoutSessionController.current(tracker)

    @staticmethod
    def commit(tracker: TrackerService) -> CommitResponse:
        return CommitResponse(committed=tracker.sessions.commit())

    @staticmethod
    def cancel(tracker: TrackerService) -> ActiveSessionResponse:
        tracker.sessions.cancel()
        return WorkoutSessionController.current(tracker)

    @staticmethod
    def edit(tracker: TrackerService, session_id: str) -> ActiveSessionResponse:
        tracker.sessions.start_editing(session_id)
        return WorkoutSessionController.current(tracker)

    @staticmethod
    def history(tracker: TrackerService) -> list:
        return tracker.history()

    @staticmethod
    def delete(tracker: TrackerService, session_id: str) -> None:
        tracker.delete_session(session_id)

    @staticmethod
    def save_as_routine(tracker: TrackerService, session_id: str, payload: RoutineFromSessionRequest) -> Routine:
        return tracker.save_routine_from_session(session_id, payload.name, payload.exercise_ids)

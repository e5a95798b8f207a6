"""
Data Controller
Health entries, routines, settings, backups and progress for the current mode.
"""
from workout_tracker.enums import BackupKey
from workout_tracker.schemas.api_schemas import (
    BackupImportRequest,
    RoutineRequest,
    SettingsUpdateRequest,
)
from workout_tracker.schemas.progress_schemas import ProgressSummary
from workout_tracker.schemas.tracker_schemas import (
    Dataset,
    HealthEntry,
    HealthEntryInput,
    Routine,
    UserSettings,
    new_id,
)
from workout_tracker.services import backup
from workout_tracker.services.progress_service import exercise_history
from workout_tracker.services.tracker_service import TrackerService


class DataController:

    @staticmethod
    def list_health(tracker: TrackerService) -> list:
        return tracker.dataset.health_entries

    @staticmethod
    def add_health(tracker: TrackerService, payload: HealthEntryInput) -> HealthEntry:
        return tracker.add_health_entry(payload)

    @staticmethod
    def delete_health(tracker: TrackerService, entry_id: str) -> None:
        tracker.delete_health_entry(entry_id)

    @staticmethod
    def list_routines(tracker: TrackerService) -> list:
        return tracker.dataset.routines

    @staticmethod
    def save_routine(tracker: TrackerService, payload: RoutineRequest, routine_id: str = None) -> Routine:
        routine = Routine(
            id=routine_id or payload.id or new_id(),
            name=payload.name,
            exercises=payload.exercises,
        )
        return tracker.save_routine(routine)

    @staticmethod
    def delete_routine(tracker: TrackerService, routine_id: str) -> None:
        tracker.delete_routine(routine_id)

    @staticmethod
    def update_settings(tracker: TrackerService, payload: SettingsUpdateRequest) -> UserSettings:
        return tracker.update_settings(payload.model_dump(exclude_unset=True, exclude_none=True))

    @staticmethod
    def export_backup(tracker: TrackerService, keys: list = None):
        document = tracker.export_backup(keys or list(BackupKey))
        return document, backup.backup_filename()

    @staticmethod
    def import_backup(tracker: TrackerService, payload: BackupImportRequest) -> Dataset:
        return tracker.import_backup(payload.data, payload.keys)

    @staticmethod
    def progress(tracker: TrackerService) -> ProgressSummary:
        return tracker.progress()

    @staticmethod
    def exercise_progress(tracker: TrackerService, exercise_name: str) -> list:
        return exercise_history(tracker.dataset.sessions, exercise_name)

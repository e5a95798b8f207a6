import json
from datetime import date

import pytest

from workout_tracker.enums import BackupKey, WeightUnit
from workout_tracker.exceptions import ValidationError
from workout_tracker.schemas.tracker_schemas import Dataset, HealthEntry, Routine, RoutineExercise, UserSettings
from workout_tracker.services.backup import apply_backup, backup_filename, export_backup, read_backup


def test_export_skips_empty_lists():
    dataset = Dataset(routines=[Routine(id="r1", name="Legs", exercises=[RoutineExercise(name="Squat")])])

    exported = export_backup(dataset, UserSettings(), [BackupKey.SESSIONS, BackupKey.ROUTINES])

    assert list(exported) == ["routines"]
    assert exported["routines"][0]["id"] == "r1"


def test_export_with_nothing_to_export_fails():
    with pytest.raises(ValidationError):
        export_backup(Dataset(), UserSettings(), [BackupKey.SESSIONS, BackupKey.HEALTH_ENTRIES])


def test_import_overwrites_only_selected_keys():
    current = Dataset(
        health_entries=[HealthEntry(id="keep", bodyweight=80)],
        routines=[Routine(id="old", name="Old", exercises=[])],
    )
    backup = read_backup(json.dumps({
        "routines": [{"id": "new", "name": "New", "exercises": [{"name": "Row", "sets": 3, "reps": 10}]}],
        "healthStats": [],
        "settings": {"defaultWorkout": "Row", "defaultUnit": "lbs"},
    }))

    dataset, settings = apply_backup(current, UserSettings(), backup, [BackupKey.ROUTINES, BackupKey.SETTINGS])

    assert [r.id for r in dataset.routines] == ["new"]
    assert [h.id for h in dataset.health_entries] == ["keep"]
    assert settings.default_exercise_name == "Row"
    assert settings.default_unit == WeightUnit.LB


def test_import_rejects_bad_files():
    with pytest.raises(ValidationError):
        read_backup("{broken")
    with pytest.raises(ValidationError):
        read_backup("[1, 2]")
    with pytest.raises(ValidationError):
        apply_backup(Dataset(), UserSettings(), {"sessions": [{"timestamp": "not a date"}]})


def test_backup_filename():
    assert backup_filename(date(2024, 5, 6)) == "workout-tracker-backup-2024-05-06.json"

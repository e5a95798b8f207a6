"""
Backup export / import of selected keys for the current profile.

The document is a flat JSON object with any of `sessions`, `healthEntries`,
`routines` and `settings`. Importing overwrites only the selected keys.
"""

import json
from datetime import date
from typing import Iterable, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from workout_tracker.core.logger import get_logger
from workout_tracker.enums import BackupKey
from workout_tracker.exceptions import ValidationError
from workout_tracker.schemas.tracker_schemas import Dataset, UserSettings

logger = get_logger("backup")

LEGACY_KEYS = {"healthStats": BackupKey.HEALTH_ENTRIES.value}


def backup_filename(today: date = None) -> str:
    return f"workout-tracker-backup-{(today or date.today()).isoformat()}.json"


def export_backup(dataset: Dataset, settings: UserSettings, keys: Iterable[BackupKey] = tuple(BackupKey)) -> dict:
    """Selected keys only; empty lists are left out."""
    selected = {BackupKey(k) for k in keys}
    document = dataset.to_document()
    export = {}

    if BackupKey.SETTINGS in selected:
        export[BackupKey.SETTINGS.value] = settings.to_document()
    for key in (BackupKey.SESSIONS, BackupKey.HEALTH_ENTRIES, BackupKey.ROUTINES):
        if key in selected and document.get(key.value):
            export[key.value] = document[key.value]

    if not export:
        raise ValidationError("No data selected or available to export.")
    return export


def read_backup(content: Union[str, bytes, dict]) -> dict:
    if isinstance(content, dict):
        raw = dict(content)
    else:
        try:
            raw = json.loads(content)
        except ValueError as e:
            raise ValidationError(f"Backup file is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ValidationError("Invalid file format.")

    for legacy, current in LEGACY_KEYS.items():
        if legacy in raw and current not in raw:
            raw[current] = raw.pop(legacy)
    return raw


def available_keys(backup: dict) -> list:
    return [key for key in BackupKey if key.value in backup]


def apply_backup(
    dataset: Dataset,
    settings: UserSettings,
    backup: dict,
    keys: Optional[Iterable[BackupKey]] = None,
) -> Tuple[Dataset, UserSettings]:
    """
    Overwrite the selected keys of `dataset` / `settings` with the backup's.
    Keys that are selected but absent from the backup are left alone.
    """
    selected = {BackupKey(k) for k in keys} if keys is not None else set(available_keys(backup))

    data_updates = {}
    for key in (BackupKey.SESSIONS, BackupKey.HEALTH_ENTRIES, BackupKey.ROUTINES):
        if key in selected and key.value in backup:
            data_updates[key.value] = backup[key.value]

    try:
        if data_updates:
            merged = {**dataset.to_document(), **data_updates}
            dataset = Dataset.model_validate(merged)
        if BackupKey.SETTINGS in selected and BackupKey.SETTINGS.value in backup:
            settings = UserSettings.model_validate(backup[BackupKey.SETTINGS.value])
    except PydanticValidationError as e:
        logger.error(f"Rejected backup import: {e}")
        raise ValidationError(f"Backup contents are invalid: {e.errors()[0]['msg']}") from e

    logger.info(f"Imported backup keys: {sorted(k.value for k in selected)}")
    return dataset, settings

"""
Tracker-related enums for the application.
"""

from enum import Enum


class WeightUnit(str, Enum):
    KG = "kg"
    LB = "lb"

    @classmethod
    def _missing_(cls, value):
        # Older backups spell pounds as "lbs"
        if isinstance(value, str) and value.lower() in ("lbs", "pound", "pounds"):
            return cls.LB
        return None


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE_NEW = "active_new"
    ACTIVE_EDITING = "active_editing"


class SyncStatus(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"


class SignInStrategy(str, Enum):
    MERGE = "merge"
    REPLACE = "replace"


class BackupKey(str, Enum):
    SESSIONS = "sessions"
    HEALTH_ENTRIES = "healthEntries"
    ROUTINES = "routines"
    SETTINGS = "settings"

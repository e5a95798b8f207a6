"""
Shared enums for the application.
"""

from .tracker_enums import (
    WeightUnit,
    SessionState,
    SyncStatus,
    SignInStrategy,
    BackupKey
)

__all__ = [
    "WeightUnit",
    "SessionState",
    "SyncStatus",
    "SignInStrategy",
    "BackupKey"
]

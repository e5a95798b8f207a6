"""
Application error taxonomy.
"""

from .errors import (
    ApplicationException,
    ValidationError,
    UsernameTakenError,
    AuthError,
    InvalidCredentialsError,
    SyncError,
    ExternalServiceError,
    NotFoundError,
    ModeError,
)

__all__ = [
    "ApplicationException",
    "ValidationError",
    "UsernameTakenError",
    "AuthError",
    "InvalidCredentialsError",
    "SyncError",
    "ExternalServiceError",
    "NotFoundError",
    "ModeError",
]

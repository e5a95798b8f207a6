"""
Database package for the application.
"""

from .base import Base
from .connection import build_engine, init_db, session_scope

__all__ = [
    "Base",
    "build_engine",
    "init_db",
    "session_scope",
]

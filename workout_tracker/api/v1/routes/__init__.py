"""
API v1 routes package.
"""

from .profile_routes import router as profile_router
from .session_routes import router as session_router
from .data_routes import router as data_router
from .sync_routes import router as sync_router
from .plan_routes import router as plan_router

__all__ = [
    "profile_router",
    "session_router",
    "data_router",
    "sync_router",
    "plan_router"
]

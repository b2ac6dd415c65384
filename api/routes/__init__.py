"""API route modules."""

from .changelog_routes import router as changelog_router
from .health_routes import router as health_router

__all__ = [
    "changelog_router",
    "health_router",
]

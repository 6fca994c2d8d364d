"""API endpoint modules for version 1."""

from .analytics import router as analytics_router
from .detections import router as detections_router
from .moderation import router as moderation_router

__all__ = [
    "analytics_router",
    "detections_router",
    "moderation_router",
]

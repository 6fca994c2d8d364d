"""Version 1 API endpoints."""

from .endpoints import (
    analytics_router,
    detections_router,
    moderation_router,
)

__all__ = [
    "analytics_router",
    "detections_router",
    "moderation_router",
]

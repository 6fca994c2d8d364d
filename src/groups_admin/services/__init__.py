"""Business logic services for the Groups Admin console."""

from .analytics import AnalyticsService
from .detections import DetectionService
from .moderation import ModerationResult, ModerationService

__all__ = [
    "AnalyticsService",
    "DetectionService",
    "ModerationResult",
    "ModerationService",
]

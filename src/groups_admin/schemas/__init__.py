"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .actor import Actor, SystemActor, TelegramUserActor, WebUserActor
from .check_results import CheckResult, CheckVerdict
from .detection import DetectionCreate, DetectionResponse, ReclassifyRequest
from .moderation import (
    BanRequest,
    ModerationRequest,
    ModerationResultResponse,
    MuteRequest,
    UserActionResponse,
    UserModerationStateResponse,
    WarnRequest,
)
from .reports import (
    AccuracyReport,
    AlgorithmPerformance,
    AlgorithmStats,
    DailyDetectionTrend,
    ResponseTimeReport,
    VetoReport,
)

__all__ = [
    "Actor", "SystemActor", "TelegramUserActor", "WebUserActor",
    "CheckResult", "CheckVerdict",
    "DetectionCreate", "DetectionResponse", "ReclassifyRequest",
    "BanRequest", "ModerationRequest", "ModerationResultResponse", "MuteRequest",
    "UserActionResponse", "UserModerationStateResponse", "WarnRequest",
    "AccuracyReport", "AlgorithmPerformance", "AlgorithmStats",
    "DailyDetectionTrend", "ResponseTimeReport", "VetoReport",
]

"""SQLAlchemy models for the Groups Admin console."""

from .detection import DetectionResult
from .message import Message
from .user import TelegramUser
from .user_action import UserAction, UserActionType

__all__ = [
    "DetectionResult",
    "Message",
    "TelegramUser",
    "UserAction", "UserActionType",
]

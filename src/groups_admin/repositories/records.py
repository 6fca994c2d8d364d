"""Immutable records mapped from ORM rows.

Analytics and projection code works on these records rather than on live ORM
instances, so the pure computations never touch a session and always see
timezone-aware UTC timestamps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from groups_admin.db.time import ensure_utc
from groups_admin.models import (
    DetectionResult,
    Message,
    TelegramUser,
    UserAction,
    UserActionType,
)
from groups_admin.models.detection import DETECTION_SOURCE_MANUAL
from groups_admin.schemas.actor import (
    SystemActor,
    TelegramUserActor,
    WebUserActor,
    actor_adapter,
    actor_from_columns,
)
from groups_admin.schemas.check_results import CheckResult, parse_check_results

__all__ = [
    "ActionRecord",
    "DetectionRecord",
    "MessageRecord",
    "UserModerationState",
    "WarningEntry",
    "action_record_from_row",
    "detection_record_from_row",
    "message_record_from_row",
    "state_from_row",
]


@dataclass(frozen=True)
class DetectionRecord:
    """Read-side view of a detection event."""

    id: int
    message_id: int
    detected_at: datetime
    detection_source: str
    detection_method: str
    net_confidence: int
    reason: str | None
    added_by: WebUserActor | TelegramUserActor | SystemActor
    used_for_training: bool
    check_results_json: str | None
    edit_version: int = 0

    @property
    def is_spam(self) -> bool:
        return self.net_confidence > 0

    @property
    def is_manual(self) -> bool:
        return self.detection_source == DETECTION_SOURCE_MANUAL

    @property
    def sort_key(self) -> tuple[datetime, int]:
        return (self.detected_at, self.id)

    def check_results(self) -> list[CheckResult] | None:
        """Return the parsed per-check votes, or None if unusable."""
        return parse_check_results(self.check_results_json)


@dataclass(frozen=True)
class ActionRecord:
    """Read-side view of a moderation action."""

    id: int
    user_id: int
    action_type: UserActionType
    message_id: int | None
    issued_by: WebUserActor | TelegramUserActor | SystemActor
    issued_at: datetime
    expires_at: datetime | None
    reason: str | None

    @property
    def sort_key(self) -> tuple[datetime, int]:
        return (self.issued_at, self.id)

    def is_active(self, now: datetime) -> bool:
        """Return True if the action is permanent or has not expired yet."""
        return self.expires_at is None or self.expires_at > now


@dataclass(frozen=True)
class MessageRecord:
    """Read-side view of a chat message."""

    message_id: int
    chat_id: int
    user_id: int
    message_text: str | None
    sent_at: datetime


def detection_record_from_row(row: DetectionResult) -> DetectionRecord:
    return DetectionRecord(
        id=row.id,
        message_id=row.message_id,
        detected_at=ensure_utc(row.detected_at),
        detection_source=row.detection_source,
        detection_method=row.detection_method,
        net_confidence=row.net_confidence,
        reason=row.reason,
        added_by=actor_from_columns(
            row.web_user_id, row.telegram_user_id, row.system_identifier
        ),
        used_for_training=row.used_for_training,
        check_results_json=row.check_results_json,
        edit_version=row.edit_version,
    )


def action_record_from_row(row: UserAction) -> ActionRecord:
    return ActionRecord(
        id=row.id,
        user_id=row.user_id,
        action_type=UserActionType(row.action_type),
        message_id=row.message_id,
        issued_by=actor_from_columns(
            row.web_user_id, row.telegram_user_id, row.system_identifier
        ),
        issued_at=ensure_utc(row.issued_at),
        expires_at=ensure_utc(row.expires_at) if row.expires_at is not None else None,
        reason=row.reason,
    )


def message_record_from_row(row: Message) -> MessageRecord:
    return MessageRecord(
        message_id=row.message_id,
        chat_id=row.chat_id,
        user_id=row.user_id,
        message_text=row.message_text,
        sent_at=ensure_utc(row.sent_at),
    )


@dataclass(frozen=True)
class WarningEntry:
    """A single warning held on the user row."""

    issued_at: datetime
    expires_at: datetime | None
    reason: str | None
    issued_by: WebUserActor | TelegramUserActor | SystemActor
    action_id: int | None = None

    def is_active(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > ensure_utc(now)

    def to_json(self) -> dict[str, Any]:
        """Return the JSON-column representation of the entry."""
        return {
            "action_id": self.action_id,
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "reason": self.reason,
            "issued_by": self.issued_by.model_dump(),
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> WarningEntry:
        expires_at = data.get("expires_at")
        return cls(
            issued_at=ensure_utc(datetime.fromisoformat(data["issued_at"])),
            expires_at=ensure_utc(datetime.fromisoformat(expires_at)) if expires_at else None,
            reason=data.get("reason"),
            issued_by=actor_adapter.validate_python(data.get("issued_by") or {"kind": "system"}),
            action_id=data.get("action_id"),
        )

    @classmethod
    def from_action(cls, action: ActionRecord) -> WarningEntry:
        return cls(
            issued_at=action.issued_at,
            expires_at=action.expires_at,
            reason=action.reason,
            issued_by=action.issued_by,
            action_id=action.id,
        )


@dataclass(frozen=True)
class UserModerationState:
    """Current ban, trust and warning state of one user."""

    is_banned: bool = False
    ban_expires_at: datetime | None = None
    is_trusted: bool = False
    warnings: tuple[WarningEntry, ...] = field(default_factory=tuple)


def state_from_row(row: TelegramUser) -> UserModerationState:
    """Return the cached moderation state stored on a user row."""
    return UserModerationState(
        is_banned=row.is_banned,
        ban_expires_at=ensure_utc(row.ban_expires_at) if row.ban_expires_at else None,
        is_trusted=row.is_trusted,
        warnings=tuple(WarningEntry.from_json(item) for item in row.warnings or ()),
    )

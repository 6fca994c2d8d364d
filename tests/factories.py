"""Builders for detection and action records used across the test suite."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from itertools import count
from typing import Any

from groups_admin.models import UserActionType
from groups_admin.repositories.records import ActionRecord, DetectionRecord
from groups_admin.schemas.actor import SystemActor, TelegramUserActor

_IDS = count(1000)

DETECTOR = SystemActor(identifier="SpamDetector")
MODERATOR = TelegramUserActor(id=5001)


def at(text: str) -> datetime:
    """Parse an ISO timestamp, treating a missing offset as UTC."""
    value = datetime.fromisoformat(text)
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def checks(*votes: tuple[str, str, float] | dict[str, Any]) -> str:
    """Encode per-check votes given as ``(name, result, confidence)`` tuples."""
    payload = []
    for vote in votes:
        if isinstance(vote, dict):
            payload.append(vote)
        else:
            name, result, confidence = vote
            payload.append({"name": name, "result": result, "confidence": confidence})
    return json.dumps(payload)


def detection(
    message_id: int,
    detected_at: str,
    net_confidence: int,
    *,
    source: str = "automated",
    check_results_json: str | None = None,
    detection_id: int | None = None,
) -> DetectionRecord:
    return DetectionRecord(
        id=detection_id if detection_id is not None else next(_IDS),
        message_id=message_id,
        detected_at=at(detected_at),
        detection_source=source,
        detection_method="test",
        net_confidence=net_confidence,
        reason=None,
        added_by=MODERATOR if source == "manual" else DETECTOR,
        used_for_training=True,
        check_results_json=check_results_json,
    )


def manual(message_id: int, detected_at: str, *, spam: bool) -> DetectionRecord:
    return detection(message_id, detected_at, 100 if spam else -100, source="manual")


def action(
    user_id: int,
    action_type: UserActionType,
    issued_at: str,
    *,
    message_id: int | None = None,
    expires_at: str | None = None,
    reason: str | None = None,
    action_id: int | None = None,
) -> ActionRecord:
    return ActionRecord(
        id=action_id if action_id is not None else next(_IDS),
        user_id=user_id,
        action_type=action_type,
        message_id=message_id,
        issued_by=MODERATOR,
        issued_at=at(issued_at),
        expires_at=at(expires_at) if expires_at else None,
        reason=reason,
    )

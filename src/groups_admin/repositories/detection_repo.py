"""Data access helpers for the detection event store."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import NamedTuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from groups_admin.db.time import utcnow
from groups_admin.models import DetectionResult, Message
from groups_admin.models.detection import (
    DETECTION_SOURCE_AUTOMATED,
    DETECTION_SOURCE_MANUAL,
)
from groups_admin.schemas.actor import (
    SystemActor,
    TelegramUserActor,
    WebUserActor,
    actor_to_columns,
)
from groups_admin.schemas.check_results import CheckResult, serialize_check_results

__all__ = ["DetectionResultRepository", "DetectionStats"]

logger = logging.getLogger(__name__)


class DetectionStats(NamedTuple):
    """Headline counters for the detection store."""

    total_detections: int
    spam_detected: int
    spam_percentage: float
    average_confidence: float
    last_24h_detections: int
    last_24h_spam: int
    last_24h_spam_percentage: float


class DetectionResultRepository:
    """Thin wrapper around database access for detection events."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def insert(
        self,
        *,
        message_id: int,
        net_confidence: int,
        added_by: WebUserActor | TelegramUserActor | SystemActor,
        detection_source: str = DETECTION_SOURCE_AUTOMATED,
        detection_method: str = "",
        reason: str | None = None,
        detected_at: datetime | None = None,
        used_for_training: bool = True,
        check_results: Iterable[CheckResult] | None = None,
        check_results_json: str | None = None,
        edit_version: int = 0,
    ) -> DetectionResult:
        """Append a detection event and return the persisted row.

        Args:
            message_id: Message the verdict applies to.
            net_confidence: Signed score in [-100, 100]; positive means spam.
            added_by: Detector or moderator responsible for the verdict.
            check_results: Typed per-check votes, serialized for storage.
            check_results_json: Pre-encoded payload, stored verbatim. Ignored
                when ``check_results`` is given.
        """
        if not -100 <= net_confidence <= 100:
            raise ValueError("net_confidence must be within [-100, 100]")
        if check_results is not None:
            check_results_json = serialize_check_results(check_results)

        row = DetectionResult(
            message_id=message_id,
            detected_at=detected_at or utcnow(),
            detection_source=detection_source,
            detection_method=detection_method,
            net_confidence=net_confidence,
            reason=reason,
            used_for_training=used_for_training,
            check_results_json=check_results_json,
            edit_version=edit_version,
            **actor_to_columns(added_by),
        )
        self.session.add(row)
        self.session.flush()
        logger.debug(
            "Inserted detection result for message %s: %s (net: %s, training: %s, edit_version: %s)",
            message_id,
            "spam" if net_confidence > 0 else "ham",
            net_confidence,
            used_for_training,
            edit_version,
        )
        return row

    def get_by_id(self, detection_id: int) -> DetectionResult | None:
        """Return a detection by identifier."""
        return self.session.get(DetectionResult, detection_id)

    def get_by_message_id(self, message_id: int) -> list[DetectionResult]:
        """Return every detection for a message, newest first."""
        result = self.session.execute(
            select(DetectionResult)
            .where(DetectionResult.message_id == message_id)
            .order_by(DetectionResult.detected_at.desc(), DetectionResult.id.desc())
        )
        return list(result.scalars())

    def get_recent(self, limit: int = 100) -> list[DetectionResult]:
        """Return the most recent detections."""
        result = self.session.execute(
            select(DetectionResult)
            .order_by(DetectionResult.detected_at.desc(), DetectionResult.id.desc())
            .limit(limit)
        )
        return list(result.scalars())

    def list_in_window(self, start: datetime, end: datetime) -> list[DetectionResult]:
        """Return detections with ``start <= detected_at < end`` in log order."""
        result = self.session.execute(
            select(DetectionResult)
            .where(
                DetectionResult.detected_at >= start,
                DetectionResult.detected_at < end,
            )
            .order_by(DetectionResult.detected_at, DetectionResult.id)
        )
        return list(result.scalars())

    def list_manual_for_messages(self, message_ids: Iterable[int]) -> list[DetectionResult]:
        """Return manual verdicts for the given messages, whenever they happened."""
        ids = sorted(set(message_ids))
        if not ids:
            return []
        result = self.session.execute(
            select(DetectionResult)
            .where(
                DetectionResult.message_id.in_(ids),
                DetectionResult.detection_source == DETECTION_SOURCE_MANUAL,
            )
            .order_by(DetectionResult.detected_at, DetectionResult.id)
        )
        return list(result.scalars())

    def invalidate_training_for_message(self, message_id: int) -> int:
        """Stop every detection of a message from feeding classifier training.

        Returns:
            Number of rows that were still flagged for training.
        """
        result = self.session.execute(
            update(DetectionResult)
            .where(
                DetectionResult.message_id == message_id,
                DetectionResult.used_for_training.is_(True),
            )
            .values(used_for_training=False)
            .execution_options(synchronize_session="fetch")
        )
        count = result.rowcount or 0
        if count:
            logger.info(
                "Invalidated %d training label(s) for message %s", count, message_id
            )
        return count

    def get_training_samples(self) -> list[tuple[str, bool]]:
        """Return ``(message_text, is_spam)`` pairs still eligible for training."""
        result = self.session.execute(
            select(Message.message_text, DetectionResult.net_confidence)
            .join(Message, Message.message_id == DetectionResult.message_id)
            .where(
                DetectionResult.used_for_training.is_(True),
                Message.message_text.is_not(None),
                Message.message_text != "",
            )
            .order_by(DetectionResult.id)
        )
        return [(text, net > 0) for text, net in result.all()]

    def get_stats(self, now: datetime | None = None) -> DetectionStats:
        """Return overall and last-24h detection counters."""
        now = now or utcnow()
        total, spam, avg_confidence = self.session.execute(
            select(
                func.count(DetectionResult.id),
                func.count(DetectionResult.id).filter(DetectionResult.net_confidence > 0),
                func.avg(func.abs(DetectionResult.net_confidence)),
            )
        ).one()
        recent_total, recent_spam = self.session.execute(
            select(
                func.count(DetectionResult.id),
                func.count(DetectionResult.id).filter(DetectionResult.net_confidence > 0),
            ).where(DetectionResult.detected_at >= now - timedelta(days=1))
        ).one()
        return DetectionStats(
            total_detections=total,
            spam_detected=spam,
            spam_percentage=spam / total * 100.0 if total else 0.0,
            average_confidence=float(avg_confidence or 0.0),
            last_24h_detections=recent_total,
            last_24h_spam=recent_spam,
            last_24h_spam_percentage=recent_spam / recent_total * 100.0 if recent_total else 0.0,
        )

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete detections older than ``cutoff``.

        Detections are meant to be permanent; this exists for explicit
        retention sweeps only.
        """
        result = self.session.execute(
            delete(DetectionResult)
            .where(DetectionResult.detected_at < cutoff)
            .execution_options(synchronize_session="fetch")
        )
        deleted = result.rowcount or 0
        if deleted:
            logger.warning(
                "Deleted %d old detection results (detected_at < %s)", deleted, cutoff
            )
        return deleted

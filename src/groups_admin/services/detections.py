"""Write side of the detection event store."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy.orm import Session

from groups_admin.models import DetectionResult
from groups_admin.models.detection import DETECTION_SOURCE_MANUAL
from groups_admin.repositories.detection_repo import DetectionResultRepository
from groups_admin.schemas.actor import SystemActor, TelegramUserActor, WebUserActor
from groups_admin.schemas.check_results import CheckResult

logger = logging.getLogger(__name__)

MANUAL_DETECTION_METHOD = "Manual"
MANUAL_CONFIDENCE = 100


class DetectionService:
    """Append detection events and manual reclassifications."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.detections = DetectionResultRepository(session)

    def record(
        self,
        *,
        message_id: int,
        net_confidence: int,
        added_by: WebUserActor | TelegramUserActor | SystemActor,
        detection_source: str,
        detection_method: str = "",
        reason: str | None = None,
        detected_at: datetime | None = None,
        used_for_training: bool = True,
        check_results: Sequence[CheckResult] | None = None,
        edit_version: int = 0,
    ) -> DetectionResult:
        """Append one detection event and commit it."""
        row = self.detections.insert(
            message_id=message_id,
            net_confidence=net_confidence,
            added_by=added_by,
            detection_source=detection_source,
            detection_method=detection_method,
            reason=reason,
            detected_at=detected_at,
            used_for_training=used_for_training,
            check_results=check_results,
            edit_version=edit_version,
        )
        self.session.commit()
        return row

    def reclassify(
        self,
        message_id: int,
        *,
        is_spam: bool,
        added_by: WebUserActor | TelegramUserActor | SystemActor,
        reason: str | None = None,
        detected_at: datetime | None = None,
    ) -> DetectionResult:
        """File a manual verdict that supersedes earlier labels of the message.

        Earlier events stop feeding classifier training, so only the manual
        label remains in the training set.
        """
        try:
            invalidated = self.detections.invalidate_training_for_message(message_id)
            row = self.detections.insert(
                message_id=message_id,
                net_confidence=MANUAL_CONFIDENCE if is_spam else -MANUAL_CONFIDENCE,
                added_by=added_by,
                detection_source=DETECTION_SOURCE_MANUAL,
                detection_method=MANUAL_DETECTION_METHOD,
                reason=reason,
                detected_at=detected_at,
                used_for_training=True,
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.info(
            "Message %s manually reclassified as %s by %s (%d earlier label(s) retired)",
            message_id,
            "spam" if is_spam else "ham",
            added_by.display_name,
            invalidated,
        )
        return row

"""Models for the append-only detection event store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Index, Integer, SmallInteger, Text
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column

from groups_admin.db.session import Base
from groups_admin.db.time import UTCDateTime, utcnow
from groups_admin.models.actor_columns import ActorColumnsMixin, actor_exclusive_arc

DETECTION_SOURCE_AUTOMATED = "automated"
DETECTION_SOURCE_MANUAL = "manual"


class DetectionResult(ActorColumnsMixin, Base):
    """One classification attempt for a message.

    Rows are never edited once written; ``used_for_training`` is the only
    column that may flip (off) when a message gets reclassified.
    """

    __tablename__ = "detection_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Not a hard foreign key: messages can be purged while detections stay.
    message_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    detected_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    detection_source: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=DETECTION_SOURCE_AUTOMATED,
    )
    detection_method: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Sign is the verdict, magnitude the certainty.
    net_confidence: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    used_for_training: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Raw JSON array of per-check votes; parsed on read so dirty rows stay readable.
    check_results_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    edit_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint(
            "net_confidence BETWEEN -100 AND 100",
            name="ck_detection_results_net_confidence",
        ),
        actor_exclusive_arc("ck_detection_results_added_by"),
        Index("ix_detection_results_message_id", "message_id"),
        Index("ix_detection_results_detected_at", "detected_at"),
    )

    @hybrid_property
    def is_spam(self) -> bool:
        """Return True when the net confidence leans towards spam."""
        return self.net_confidence > 0

"""Models for the append-only moderation action log."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import BigInteger, Enum, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from groups_admin.db.session import Base
from groups_admin.db.time import UTCDateTime, utcnow
from groups_admin.models.actor_columns import ActorColumnsMixin, actor_exclusive_arc


class UserActionType(str, enum.Enum):
    """Kinds of administrative acts recorded in the log."""

    BAN = "ban"
    WARN = "warn"
    MUTE = "mute"
    TRUST = "trust"
    UNBAN = "unban"
    UNTRUST = "untrust"


class UserAction(ActorColumnsMixin, Base):
    """One administrative act against a user.

    Rows are never deleted to undo an action; ``expires_at`` is moved to the
    present instead, and only ever towards "sooner".
    """

    __tablename__ = "user_actions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("telegram_users.telegram_user_id"),
        nullable=False,
    )
    action_type: Mapped[UserActionType] = mapped_column(
        Enum(
            UserActionType,
            name="user_action_type",
            values_callable=lambda kinds: [kind.value for kind in kinds],
        ),
        nullable=False,
    )
    message_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    issued_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    # NULL means permanent.
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        actor_exclusive_arc("ck_user_actions_issued_by"),
        Index("ix_user_actions_user_id", "user_id"),
        Index("ix_user_actions_message_id", "message_id"),
    )

"""SQLAlchemy models for Telegram users and their moderation state."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, Boolean, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from groups_admin.db.session import Base
from groups_admin.db.time import UTCDateTime, utcnow


class TelegramUser(Base):
    """A Telegram account seen in a managed chat.

    The moderation columns are a cache derived from ``user_actions``; they are
    only written by the moderation service, in the same transaction as the
    action row that justifies them.
    """

    __tablename__ = "telegram_users"

    telegram_user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    username: Mapped[str | None] = mapped_column(Text, nullable=True)
    first_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_bot: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    first_seen_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ban_expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_trusted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # List of serialized WarningEntry dicts, append-only.
    warnings: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    state_version: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __mapper_args__ = {"version_id_col": state_version}

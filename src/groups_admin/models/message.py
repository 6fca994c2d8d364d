"""Models for chat messages referenced by detections and actions."""

from datetime import datetime

from sqlalchemy import BigInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from groups_admin.db.session import Base
from groups_admin.db.time import UTCDateTime, utcnow


class Message(Base):
    """Immutable snapshot of a chat message.

    Rows may be purged by retention independently of the detections that
    reference them.
    """

    __tablename__ = "messages"

    message_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    chat_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    message_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    sent_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

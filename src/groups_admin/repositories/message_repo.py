"""Data access helpers for chat messages."""
from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from groups_admin.db.time import utcnow
from groups_admin.models import Message

__all__ = ["MessageRepository"]


class MessageRepository:
    """Thin wrapper around database access for message snapshots."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get(self, message_id: int) -> Message | None:
        """Return a message by identifier."""
        return self.session.get(Message, message_id)

    def get_many(self, message_ids: Iterable[int]) -> list[Message]:
        """Return the surviving messages among ``message_ids``."""
        ids = sorted(set(message_ids))
        if not ids:
            return []
        result = self.session.execute(
            select(Message).where(Message.message_id.in_(ids)).order_by(Message.message_id)
        )
        return list(result.scalars())

    def add(
        self,
        *,
        message_id: int,
        chat_id: int,
        user_id: int,
        message_text: str | None,
        sent_at: datetime | None = None,
    ) -> Message:
        """Insert a message snapshot and return the persisted row."""
        message = Message(
            message_id=message_id,
            chat_id=chat_id,
            user_id=user_id,
            message_text=message_text,
            sent_at=sent_at or utcnow(),
        )
        self.session.add(message)
        self.session.flush()
        return message

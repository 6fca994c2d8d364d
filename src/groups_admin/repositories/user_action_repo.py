"""Data access helpers for the moderation action log."""
from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from groups_admin.db.time import utcnow
from groups_admin.models import UserAction, UserActionType
from groups_admin.schemas.actor import (
    SystemActor,
    TelegramUserActor,
    WebUserActor,
    actor_to_columns,
)

__all__ = ["RESPONSE_ACTION_TYPES", "UserActionRepository"]

# Actions that count as a moderator responding to a spam detection.
RESPONSE_ACTION_TYPES = (UserActionType.BAN, UserActionType.WARN)


class UserActionRepository:
    """Thin wrapper around database access for moderation actions."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def insert(
        self,
        *,
        user_id: int,
        action_type: UserActionType,
        issued_by: WebUserActor | TelegramUserActor | SystemActor,
        message_id: int | None = None,
        issued_at: datetime | None = None,
        expires_at: datetime | None = None,
        reason: str | None = None,
    ) -> UserAction:
        """Append an action to the log and return the persisted row."""
        action = UserAction(
            user_id=user_id,
            action_type=action_type,
            message_id=message_id,
            issued_at=issued_at or utcnow(),
            expires_at=expires_at,
            reason=reason,
            **actor_to_columns(issued_by),
        )
        self.session.add(action)
        self.session.flush()
        return action

    def get_by_id(self, action_id: int) -> UserAction | None:
        """Return an action by identifier."""
        return self.session.get(UserAction, action_id)

    def get_by_user(self, user_id: int) -> list[UserAction]:
        """Return a user's actions in log order."""
        result = self.session.execute(
            select(UserAction)
            .where(UserAction.user_id == user_id)
            .order_by(UserAction.issued_at, UserAction.id)
        )
        return list(result.scalars())

    def list_user_ids(self) -> list[int]:
        """Return every user that has at least one logged action."""
        result = self.session.execute(
            select(UserAction.user_id).distinct().order_by(UserAction.user_id)
        )
        return list(result.scalars())

    def list_responses_for_messages(self, message_ids: Iterable[int]) -> list[UserAction]:
        """Return ban and warn actions that reference any of ``message_ids``."""
        ids = sorted(set(message_ids))
        if not ids:
            return []
        result = self.session.execute(
            select(UserAction)
            .where(
                UserAction.message_id.in_(ids),
                UserAction.action_type.in_(RESPONSE_ACTION_TYPES),
            )
            .order_by(UserAction.issued_at, UserAction.id)
        )
        return list(result.scalars())

    def _active_clause(self, now: datetime):
        return or_(UserAction.expires_at.is_(None), UserAction.expires_at > now)

    def get_active(
        self,
        user_id: int,
        action_type: UserActionType,
        now: datetime | None = None,
    ) -> list[UserAction]:
        """Return actions of one type that are permanent or not yet expired."""
        now = now or utcnow()
        result = self.session.execute(
            select(UserAction)
            .where(
                UserAction.user_id == user_id,
                UserAction.action_type == action_type,
                self._active_clause(now),
            )
            .order_by(UserAction.issued_at, UserAction.id)
        )
        return list(result.scalars())

    def expire_active(
        self,
        user_id: int,
        action_type: UserActionType,
        now: datetime | None = None,
    ) -> int:
        """Close out every active action of one type by expiring it at ``now``.

        Already-expired rows are left alone, so an expiry never moves later.

        Returns:
            Number of actions that were expired.
        """
        now = now or utcnow()
        result = self.session.execute(
            update(UserAction)
            .where(
                UserAction.user_id == user_id,
                UserAction.action_type == action_type,
                self._active_clause(now),
            )
            .values(expires_at=now)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

"""Data access helpers for Telegram users and their cached moderation state."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from groups_admin.core.exceptions import UserNotFoundError
from groups_admin.db.time import ensure_utc, utcnow
from groups_admin.models import TelegramUser
from groups_admin.repositories.records import (
    UserModerationState,
    WarningEntry,
    state_from_row,
)

__all__ = ["TelegramUserRepository"]


class TelegramUserRepository:
    """Thin wrapper around database access for Telegram users.

    The moderation columns are only written through the methods below, each
    of which works on a row locked with ``SELECT ... FOR UPDATE`` and relies on
    the ``state_version`` counter to reject lost updates at flush time.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get(self, user_id: int) -> TelegramUser | None:
        """Return a user by Telegram id."""
        return self.session.get(TelegramUser, user_id)

    def get_for_update(self, user_id: int) -> TelegramUser:
        """Return a user row locked for the rest of the transaction.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        result = self.session.execute(
            select(TelegramUser)
            .where(TelegramUser.telegram_user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        user = result.scalars().first()
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def list_ids(self) -> list[int]:
        """Return every known user id."""
        result = self.session.execute(
            select(TelegramUser.telegram_user_id).order_by(TelegramUser.telegram_user_id)
        )
        return list(result.scalars())

    def create(
        self,
        *,
        telegram_user_id: int,
        username: str | None = None,
        first_name: str | None = None,
        is_bot: bool = False,
        first_seen_at: datetime | None = None,
    ) -> TelegramUser:
        """Insert a user with an empty moderation state."""
        user = TelegramUser(
            telegram_user_id=telegram_user_id,
            username=username,
            first_name=first_name,
            is_bot=is_bot,
            first_seen_at=first_seen_at or utcnow(),
            is_banned=False,
            is_trusted=False,
            warnings=[],
        )
        self.session.add(user)
        self.session.flush()
        return user

    def load_state(self, user_id: int) -> UserModerationState:
        """Return the cached state of a user.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        user = self.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return state_from_row(user)

    def set_ban_status(
        self,
        user_id: int,
        is_banned: bool,
        expires_at: datetime | None = None,
    ) -> None:
        """Overwrite the ban columns; clearing a ban always clears its expiry."""
        user = self.get_for_update(user_id)
        user.is_banned = is_banned
        user.ban_expires_at = expires_at if is_banned else None
        self.session.flush()

    def add_warning(
        self,
        user_id: int,
        entry: WarningEntry,
        now: datetime | None = None,
    ) -> int:
        """Append a warning and return how many warnings are still active."""
        now = ensure_utc(now or utcnow())
        user = self.get_for_update(user_id)
        # Assign a fresh list so the JSON column is flagged dirty.
        user.warnings = [*(user.warnings or []), entry.to_json()]
        self.session.flush()
        return sum(1 for item in user.warnings if WarningEntry.from_json(item).is_active(now))

    def update_trust_status(self, user_id: int, is_trusted: bool) -> None:
        """Overwrite the trust flag."""
        user = self.get_for_update(user_id)
        user.is_trusted = is_trusted
        self.session.flush()

    def store_state(self, user_id: int, state: UserModerationState) -> None:
        """Replace the whole cached state, used when repairing drift."""
        user = self.get_for_update(user_id)
        user.is_banned = state.is_banned
        user.ban_expires_at = state.ban_expires_at if state.is_banned else None
        user.is_trusted = state.is_trusted
        user.warnings = [entry.to_json() for entry in state.warnings]
        self.session.flush()

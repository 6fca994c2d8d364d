"""Moderation operations that keep the action log and user state in lock-step."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Collection
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

from sqlalchemy.orm import Session

from groups_admin.core.exceptions import UserNotFoundError
from groups_admin.core.settings import settings
from groups_admin.db.time import ensure_utc, utcnow
from groups_admin.models import UserAction, UserActionType
from groups_admin.repositories.records import (
    WarningEntry,
    action_record_from_row,
    state_from_row,
)
from groups_admin.repositories.user_action_repo import UserActionRepository
from groups_admin.repositories.user_repo import TelegramUserRepository
from groups_admin.schemas.actor import SystemActor, TelegramUserActor, WebUserActor
from groups_admin.services import projection
from groups_admin.services.projection import UserModerationState
from groups_admin.utils.retry import retry_on_conflict

logger = logging.getLogger(__name__)

T = TypeVar("T")

AUTO_BAN_ACTOR = SystemActor(identifier="auto-ban")

ActorType = WebUserActor | TelegramUserActor | SystemActor


@dataclass(frozen=True)
class ModerationResult:
    """Outcome of a moderation operation that may be refused by policy."""

    success: bool
    action_id: int | None = None
    active_warning_count: int | None = None
    auto_ban_triggered: bool = False
    error: str | None = None


class ModerationService:
    """Service that appends moderation actions and projects them onto users.

    Each public write inserts exactly one ``user_actions`` row and applies it
    to the cached state on ``telegram_users`` in the same transaction. The
    unit is retried with exponential backoff when it loses a race on the
    user's ``state_version``; if every attempt fails, nothing is committed and
    ``ConcurrencyConflictError`` is raised.
    """

    def __init__(
        self,
        session: Session,
        *,
        protected_user_ids: Collection[int] | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        retry_backoff: float | None = None,
        auto_ban_enabled: bool | None = None,
        auto_ban_threshold: int | None = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session
        self.users = TelegramUserRepository(session)
        self.actions = UserActionRepository(session)
        self.protected_user_ids = frozenset(
            settings.protected_user_ids if protected_user_ids is None else protected_user_ids
        )
        self.max_retries = settings.projection_max_retries if max_retries is None else max_retries
        self.retry_delay = settings.projection_retry_delay if retry_delay is None else retry_delay
        self.retry_backoff = (
            settings.projection_retry_backoff if retry_backoff is None else retry_backoff
        )
        self.auto_ban_enabled = (
            settings.auto_ban_enabled if auto_ban_enabled is None else auto_ban_enabled
        )
        self.auto_ban_threshold = (
            settings.auto_ban_threshold if auto_ban_threshold is None else auto_ban_threshold
        )
        self._clock = clock
        self._sleep = sleep

    def current_time(self) -> datetime:
        return ensure_utc(self._clock())

    def _run(self, description: str, work: Callable[[], T]) -> T:
        def attempt() -> T:
            result = work()
            self.session.commit()
            return result

        try:
            return retry_on_conflict(
                attempt,
                max_retries=self.max_retries,
                delay=self.retry_delay,
                backoff=self.retry_backoff,
                on_retry=self.session.rollback,
                sleep=self._sleep,
                description=description,
            )
        except Exception:
            self.session.rollback()
            raise

    def _refuse_protected(self, user_id: int, verb: str) -> ModerationResult | None:
        if user_id not in self.protected_user_ids:
            return None
        logger.warning("Refusing to %s protected system account %s", verb, user_id)
        return ModerationResult(
            success=False,
            error=f"Cannot {verb} system account {user_id}",
        )

    def _append(
        self,
        user_id: int,
        action_type: UserActionType,
        issued_by: ActorType,
        *,
        now: datetime,
        message_id: int | None = None,
        expires_at: datetime | None = None,
        reason: str | None = None,
    ) -> UserAction:
        # Locks the user row and fails loudly before anything is written.
        self.users.get_for_update(user_id)
        return self.actions.insert(
            user_id=user_id,
            action_type=action_type,
            issued_by=issued_by,
            message_id=message_id,
            issued_at=now,
            expires_at=ensure_utc(expires_at) if expires_at is not None else None,
            reason=reason,
        )

    def ban_user(
        self,
        user_id: int,
        issued_by: ActorType,
        *,
        reason: str | None = None,
        expires_at: datetime | None = None,
        message_id: int | None = None,
    ) -> ModerationResult:
        """Ban a user, permanently unless ``expires_at`` is given."""
        refused = self._refuse_protected(user_id, "ban")
        if refused is not None:
            return refused

        def work() -> ModerationResult:
            now = self.current_time()
            action = self._append(
                user_id,
                UserActionType.BAN,
                issued_by,
                now=now,
                message_id=message_id,
                expires_at=expires_at,
                reason=reason,
            )
            self.users.set_ban_status(user_id, True, action.expires_at)
            return ModerationResult(success=True, action_id=action.id)

        result = self._run(f"ban user {user_id}", work)
        logger.info("Banned user %s by %s", user_id, issued_by.display_name)
        return result

    def unban_user(
        self,
        user_id: int,
        issued_by: ActorType,
        *,
        reason: str | None = None,
    ) -> ModerationResult:
        """Lift a ban by expiring active bans and logging an unban."""

        def work() -> ModerationResult:
            now = self.current_time()
            user = self.users.get_for_update(user_id)
            if not projection.is_banned(state_from_row(user), now):
                logger.warning("Cannot unban user %s: user is not banned", user_id)
                return ModerationResult(success=False, error="User is not banned")
            expired = self.actions.expire_active(user_id, UserActionType.BAN, now)
            action = self._append(
                user_id, UserActionType.UNBAN, issued_by, now=now, reason=reason
            )
            self.users.set_ban_status(user_id, False)
            logger.info("Unbanned user %s, expired %d ban(s)", user_id, expired)
            return ModerationResult(success=True, action_id=action.id)

        return self._run(f"unban user {user_id}", work)

    def warn_user(
        self,
        user_id: int,
        issued_by: ActorType,
        *,
        reason: str | None = None,
        expires_at: datetime | None = None,
        message_id: int | None = None,
    ) -> ModerationResult:
        """Warn a user and report how many warnings are now active.

        Reaching the auto-ban threshold of active warnings also bans the user,
        as ``AUTO_BAN_ACTOR``, in the same transaction.
        """
        refused = self._refuse_protected(user_id, "warn")
        if refused is not None:
            return refused

        def work() -> ModerationResult:
            now = self.current_time()
            action = self._append(
                user_id,
                UserActionType.WARN,
                issued_by,
                now=now,
                message_id=message_id,
                expires_at=expires_at,
                reason=reason,
            )
            entry = WarningEntry.from_action(action_record_from_row(action))
            count = self.users.add_warning(user_id, entry, now)
            auto_ban = self.auto_ban_enabled and 0 < self.auto_ban_threshold <= count
            if auto_ban:
                self._append(
                    user_id,
                    UserActionType.BAN,
                    AUTO_BAN_ACTOR,
                    now=now,
                    message_id=message_id,
                    reason=settings.auto_ban_reason.replace("{count}", str(count)),
                )
                self.users.set_ban_status(user_id, True)
            return ModerationResult(
                success=True,
                action_id=action.id,
                active_warning_count=count,
                auto_ban_triggered=auto_ban,
            )

        result = self._run(f"warn user {user_id}", work)
        if result.auto_ban_triggered:
            logger.warning(
                "Auto-ban triggered: user %s banned after %d warnings (threshold %d)",
                user_id,
                result.active_warning_count,
                self.auto_ban_threshold,
            )
        return result

    def mute_user(
        self,
        user_id: int,
        issued_by: ActorType,
        *,
        reason: str | None = None,
        expires_at: datetime | None = None,
        message_id: int | None = None,
    ) -> ModerationResult:
        """Record a mute; mutes are enforced in the chat and have no cached state."""
        refused = self._refuse_protected(user_id, "mute")
        if refused is not None:
            return refused

        def work() -> ModerationResult:
            action = self._append(
                user_id,
                UserActionType.MUTE,
                issued_by,
                now=self.current_time(),
                message_id=message_id,
                expires_at=expires_at,
                reason=reason,
            )
            return ModerationResult(success=True, action_id=action.id)

        return self._run(f"mute user {user_id}", work)

    def trust_user(
        self,
        user_id: int,
        issued_by: ActorType,
        *,
        reason: str | None = None,
    ) -> ModerationResult:
        """Trust a user until an explicit untrust; trust does not expire."""

        def work() -> ModerationResult:
            action = self._append(
                user_id,
                UserActionType.TRUST,
                issued_by,
                now=self.current_time(),
                reason=reason,
            )
            self.users.update_trust_status(user_id, True)
            return ModerationResult(success=True, action_id=action.id)

        return self._run(f"trust user {user_id}", work)

    def untrust_user(
        self,
        user_id: int,
        issued_by: ActorType,
        *,
        reason: str | None = None,
    ) -> ModerationResult:
        """Remove trust; protected system accounts keep theirs."""
        refused = self._refuse_protected(user_id, "remove trust from")
        if refused is not None:
            return refused

        def work() -> ModerationResult:
            now = self.current_time()
            self.actions.expire_active(user_id, UserActionType.TRUST, now)
            action = self._append(
                user_id, UserActionType.UNTRUST, issued_by, now=now, reason=reason
            )
            self.users.update_trust_status(user_id, False)
            return ModerationResult(success=True, action_id=action.id)

        return self._run(f"untrust user {user_id}", work)

    def update_trust_status(
        self,
        user_id: int,
        is_trusted: bool,
        issued_by: ActorType,
        *,
        reason: str | None = None,
    ) -> bool:
        """Set the trust flag through the matching action; False if refused."""
        if is_trusted:
            return self.trust_user(user_id, issued_by, reason=reason).success
        return self.untrust_user(user_id, issued_by, reason=reason).success

    def get_state(self, user_id: int) -> UserModerationState:
        return self.users.load_state(user_id)

    def is_banned(self, user_id: int, now: datetime | None = None) -> bool:
        return projection.is_banned(self.get_state(user_id), now or self.current_time())

    def is_trusted(self, user_id: int) -> bool:
        return self.get_state(user_id).is_trusted

    def get_active_warning_count(self, user_id: int, now: datetime | None = None) -> int:
        return projection.active_warning_count(self.get_state(user_id), now or self.current_time())

    def get_actions(self, user_id: int) -> list[UserAction]:
        if self.users.get(user_id) is None:
            raise UserNotFoundError(user_id)
        return self.actions.get_by_user(user_id)

    def rebuild_state(self, user_id: int) -> UserModerationState:
        """Return the state obtained by replaying the user's whole action log."""
        if self.users.get(user_id) is None:
            raise UserNotFoundError(user_id)
        return projection.replay(
            action_record_from_row(row) for row in self.actions.get_by_user(user_id)
        )

    def verify_state(self, user_id: int) -> bool:
        """Return True when the cached state matches a replay of the log."""
        cached = self.get_state(user_id)
        rebuilt = self.rebuild_state(user_id)
        if cached == rebuilt:
            return True
        logger.warning(
            "Moderation state drift for user %s: cached=%s rebuilt=%s",
            user_id,
            cached,
            rebuilt,
        )
        return False

    def repair_state(self, user_id: int) -> bool:
        """Overwrite the cached state with the replayed one.

        Returns:
            True if the cache had drifted and was rewritten.
        """
        if self.verify_state(user_id):
            return False

        def work() -> None:
            self.users.store_state(user_id, self.rebuild_state(user_id))

        self._run(f"repair state of user {user_id}", work)
        logger.info("Repaired moderation state for user %s", user_id)
        return True

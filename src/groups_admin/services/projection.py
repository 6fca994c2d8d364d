"""Per-user moderation state as a fold over the action log.

``UserModerationState`` is the cached view stored on ``telegram_users``. It is
always re-derivable by replaying the user's actions through ``apply_action``,
which is what the audit tooling does.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime

from groups_admin.db.time import ensure_utc
from groups_admin.models import UserActionType
from groups_admin.repositories.records import (
    ActionRecord,
    UserModerationState,
    WarningEntry,
)

__all__ = [
    "UserModerationState",
    "WarningEntry",
    "active_warning_count",
    "active_warnings",
    "apply_action",
    "is_banned",
    "replay",
]


def apply_action(state: UserModerationState, action: ActionRecord) -> UserModerationState:
    """Return the state that results from applying ``action`` to ``state``.

    Mute is recorded in the log but has no projected column.
    """
    kind = action.action_type
    if kind is UserActionType.BAN:
        return replace(state, is_banned=True, ban_expires_at=action.expires_at)
    if kind is UserActionType.UNBAN:
        return replace(state, is_banned=False, ban_expires_at=None)
    if kind is UserActionType.WARN:
        return replace(state, warnings=state.warnings + (WarningEntry.from_action(action),))
    if kind is UserActionType.TRUST:
        return replace(state, is_trusted=True)
    if kind is UserActionType.UNTRUST:
        return replace(state, is_trusted=False)
    return state


def replay(
    actions: Iterable[ActionRecord],
    initial: UserModerationState | None = None,
) -> UserModerationState:
    """Fold actions in log order into a state."""
    state = initial or UserModerationState()
    for action in sorted(actions, key=lambda item: item.sort_key):
        state = apply_action(state, action)
    return state


def is_banned(state: UserModerationState, now: datetime) -> bool:
    """Return True while a ban is in force; temporary bans lapse at expiry."""
    if not state.is_banned:
        return False
    return state.ban_expires_at is None or state.ban_expires_at > ensure_utc(now)


def active_warnings(state: UserModerationState, now: datetime) -> list[WarningEntry]:
    return [entry for entry in state.warnings if entry.is_active(now)]


def active_warning_count(state: UserModerationState, now: datetime) -> int:
    return len(active_warnings(state, now))

"""Retry helper for database units of work that can lose a concurrency race."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm.exc import StaleDataError

from groups_admin.core.exceptions import ConcurrencyConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected, lock_not_available
LOCK_SQLSTATES = frozenset({"40001", "40P01", "55P03"})
# MySQL lock wait timeout and deadlock
LOCK_ERRNOS = frozenset({1205, 1213})
LOCK_MESSAGES = ("database is locked", "deadlock", "lock timeout", "lock wait timeout")


def is_lock_conflict(exc: BaseException) -> bool:
    """Return True if ``exc`` means another writer held or won the row.

    Any other database error (missing table, refused connection, bad SQL)
    is a real fault and is not a conflict.
    """
    if isinstance(exc, StaleDataError):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in LOCK_SQLSTATES:
        return True
    args = getattr(orig, "args", ())
    if args and args[0] in LOCK_ERRNOS:
        return True
    message = str(orig).lower()
    return any(marker in message for marker in LOCK_MESSAGES)


def retry_on_conflict(
    operation: Callable[[], T],
    *,
    max_retries: int = 3,
    delay: float = 0.05,
    backoff: float = 2.0,
    on_retry: Callable[[], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "operation",
) -> T:
    """Run ``operation`` and retry it with exponential backoff on conflicts.

    Only failures accepted by ``is_lock_conflict`` are retried; every other
    exception propagates unchanged on the first attempt.

    Args:
        operation: Callable performing the whole unit of work.
        max_retries: Number of extra attempts after the first one.
        delay: Initial pause between attempts, in seconds.
        backoff: Multiplier applied to the pause after every failed attempt.
        on_retry: Called after every lost race, before sleeping. The
            moderation service passes its session rollback here.
        description: Label used in log messages.

    Raises:
        ConcurrencyConflictError: If every attempt lost the race.
    """
    current_delay = delay
    for attempt in range(max_retries + 1):
        try:
            return operation()
        except (StaleDataError, DBAPIError) as exc:
            if not is_lock_conflict(exc):
                raise
            if on_retry is not None:
                on_retry()
            if attempt >= max_retries:
                logger.error(
                    "%s: all %d attempts lost to concurrent writers: %s",
                    description,
                    max_retries + 1,
                    exc,
                )
                raise ConcurrencyConflictError(
                    f"{description} conflicted with concurrent updates"
                ) from exc
            logger.warning(
                "%s: conflict on attempt %d/%d (%s), retrying in %.2fs",
                description,
                attempt + 1,
                max_retries + 1,
                exc,
                current_delay,
            )
            sleep(current_delay)
            current_delay *= backoff
    raise AssertionError("unreachable")

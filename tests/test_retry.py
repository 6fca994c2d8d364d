"""Tests for the conflict retry helper."""

import logging
import sqlite3

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from groups_admin.core.exceptions import ConcurrencyConflictError
from groups_admin.utils.retry import is_lock_conflict, retry_on_conflict


class PgError(Exception):
    def __init__(self, pgcode: str) -> None:
        super().__init__(f"pg error {pgcode}")
        self.pgcode = pgcode


def db_error(orig: Exception) -> OperationalError:
    return OperationalError("UPDATE telegram_users SET is_banned=1", {}, orig)


def test_backoff_grows_between_attempts(mocker) -> None:
    operation = mocker.Mock(side_effect=[StaleDataError("x"), StaleDataError("x"), "done"])
    rollback = mocker.Mock()
    sleeps: list[float] = []

    result = retry_on_conflict(
        operation,
        max_retries=3,
        delay=0.1,
        backoff=2.0,
        on_retry=rollback,
        sleep=sleeps.append,
    )

    assert result == "done"
    assert sleeps == pytest.approx([0.1, 0.2])
    assert rollback.call_count == 2


def test_gives_up_with_conflict_error(mocker, caplog) -> None:
    operation = mocker.Mock(side_effect=StaleDataError("x"))

    with caplog.at_level(logging.WARNING), pytest.raises(ConcurrencyConflictError):
        retry_on_conflict(operation, max_retries=2, delay=0, sleep=lambda _: None)

    assert operation.call_count == 3
    assert "all 3 attempts" in caplog.text


def test_other_errors_are_not_retried(mocker) -> None:
    operation = mocker.Mock(side_effect=KeyError("boom"))
    with pytest.raises(KeyError):
        retry_on_conflict(operation, sleep=lambda _: None)
    assert operation.call_count == 1


def test_locked_database_is_retried(mocker) -> None:
    locked = db_error(sqlite3.OperationalError("database is locked"))
    operation = mocker.Mock(side_effect=[locked, "done"])

    assert retry_on_conflict(operation, sleep=lambda _: None) == "done"
    assert operation.call_count == 2


def test_broken_schema_propagates_unchanged(mocker) -> None:
    missing = db_error(sqlite3.OperationalError("no such table: user_actions"))
    operation = mocker.Mock(side_effect=missing)
    rollback = mocker.Mock()

    with pytest.raises(OperationalError) as excinfo:
        retry_on_conflict(operation, on_retry=rollback, sleep=lambda _: None)

    assert excinfo.value is missing
    assert operation.call_count == 1
    rollback.assert_not_called()


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (StaleDataError("x"), True),
        (db_error(PgError("40001")), True),
        (db_error(PgError("40P01")), True),
        (db_error(PgError("55P03")), True),
        (db_error(PgError("23505")), False),
        (db_error(sqlite3.OperationalError("unable to open database file")), False),
        (KeyError("x"), False),
    ],
)
def test_lock_conflict_classification(error, expected) -> None:
    assert is_lock_conflict(error) is expected

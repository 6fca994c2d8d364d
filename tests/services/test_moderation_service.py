"""Tests for the moderation service and its state projection."""

from datetime import timedelta

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from groups_admin.core.exceptions import ConcurrencyConflictError, UserNotFoundError
from groups_admin.core.settings import TELEGRAM_SERVICE_ACCOUNT_ID
from groups_admin.models import UserActionType
from groups_admin.repositories.user_action_repo import UserActionRepository
from groups_admin.schemas.actor import SystemActor, WebUserActor
from groups_admin.services.moderation import AUTO_BAN_ACTOR, ModerationService
from tests.factories import at

NOW = at("2024-06-01T12:00:00")
ADMIN = WebUserActor(id="admin-1")


@pytest.fixture()
def service(db_session):
    return ModerationService(
        db_session,
        protected_user_ids={TELEGRAM_SERVICE_ACCOUNT_ID},
        max_retries=2,
        retry_delay=0,
        auto_ban_enabled=True,
        auto_ban_threshold=3,
        clock=lambda: NOW,
        sleep=lambda _: None,
    )


def test_ban_appends_action_and_projects_state(service, test_user, db_session) -> None:
    result = service.ban_user(test_user.telegram_user_id, ADMIN, reason="spam", message_id=77)

    assert result.success
    actions = UserActionRepository(db_session).get_by_user(test_user.telegram_user_id)
    assert [a.action_type for a in actions] == [UserActionType.BAN]
    assert actions[0].message_id == 77
    assert service.is_banned(test_user.telegram_user_id)
    assert service.verify_state(test_user.telegram_user_id)


def test_banning_twice_keeps_state_and_logs_both(service, test_user, db_session) -> None:
    user_id = test_user.telegram_user_id
    service.ban_user(user_id, ADMIN)
    service.ban_user(user_id, ADMIN)

    assert service.is_banned(user_id)
    assert len(UserActionRepository(db_session).get_by_user(user_id)) == 2
    assert service.verify_state(user_id)


def test_unban_expires_active_bans(service, test_user, db_session) -> None:
    user_id = test_user.telegram_user_id
    service.ban_user(user_id, ADMIN, expires_at=NOW + timedelta(days=30))

    result = service.unban_user(user_id, ADMIN)

    assert result.success
    state = service.get_state(user_id)
    assert not state.is_banned
    assert state.ban_expires_at is None
    ban, unban = UserActionRepository(db_session).get_by_user(user_id)
    assert ban.expires_at == NOW
    assert unban.action_type is UserActionType.UNBAN
    assert service.verify_state(user_id)


def test_unban_of_user_not_banned_is_refused(service, test_user, db_session, caplog) -> None:
    result = service.unban_user(test_user.telegram_user_id, ADMIN)

    assert not result.success
    assert UserActionRepository(db_session).get_by_user(test_user.telegram_user_id) == []
    assert "not banned" in caplog.text


def test_warn_returns_active_count(service, test_user) -> None:
    user_id = test_user.telegram_user_id
    service.warn_user(user_id, ADMIN, expires_at=NOW - timedelta(seconds=1))
    service.warn_user(user_id, ADMIN, expires_at=NOW + timedelta(hours=1))
    result = service.warn_user(user_id, ADMIN)

    assert result.active_warning_count == 2
    assert not result.auto_ban_triggered
    assert not service.is_banned(user_id)
    assert service.get_active_warning_count(user_id) == 2
    assert len(service.get_state(user_id).warnings) == 3
    assert service.verify_state(user_id)


def test_mute_is_logged_without_state_change(service, test_user, db_session) -> None:
    user_id = test_user.telegram_user_id
    before = service.get_state(user_id)

    assert service.mute_user(user_id, ADMIN, expires_at=NOW + timedelta(hours=1)).success

    assert service.get_state(user_id) == before
    (mute,) = UserActionRepository(db_session).get_by_user(user_id)
    assert mute.action_type is UserActionType.MUTE


def test_trust_and_untrust(service, test_user) -> None:
    user_id = test_user.telegram_user_id
    assert service.update_trust_status(user_id, True, ADMIN)
    assert service.is_trusted(user_id)
    assert service.update_trust_status(user_id, False, ADMIN)
    assert not service.is_trusted(user_id)
    assert service.verify_state(user_id)


def test_service_account_keeps_its_trust(service, make_user, db_session, caplog) -> None:
    make_user(TELEGRAM_SERVICE_ACCOUNT_ID, "Telegram")
    assert service.trust_user(TELEGRAM_SERVICE_ACCOUNT_ID, SystemActor()).success

    assert service.update_trust_status(TELEGRAM_SERVICE_ACCOUNT_ID, False, ADMIN) is False

    assert service.is_trusted(TELEGRAM_SERVICE_ACCOUNT_ID)
    actions = UserActionRepository(db_session).get_by_user(TELEGRAM_SERVICE_ACCOUNT_ID)
    assert [a.action_type for a in actions] == [UserActionType.TRUST]
    assert "protected system account" in caplog.text


@pytest.mark.parametrize("operation", ["ban_user", "warn_user", "mute_user"])
def test_service_account_cannot_be_punished(service, make_user, operation) -> None:
    make_user(TELEGRAM_SERVICE_ACCOUNT_ID, "Telegram")
    result = getattr(service, operation)(TELEGRAM_SERVICE_ACCOUNT_ID, ADMIN)
    assert not result.success
    assert result.error


def test_unknown_user_is_an_explicit_failure(service, db_session) -> None:
    with pytest.raises(UserNotFoundError):
        service.ban_user(424242, ADMIN)
    assert UserActionRepository(db_session).list_user_ids() == []


def test_conflict_is_retried_then_succeeds(service, test_user, mocker) -> None:
    original = service.users.set_ban_status
    calls = {"count": 0}

    def flaky(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            raise StaleDataError("lost race")
        return original(*args, **kwargs)

    mocker.patch.object(service.users, "set_ban_status", side_effect=flaky)

    assert service.ban_user(test_user.telegram_user_id, ADMIN).success
    assert calls["count"] == 2
    assert service.verify_state(test_user.telegram_user_id)


def test_exhausted_retries_roll_back_everything(service, test_user, db_session, mocker) -> None:
    mocker.patch.object(
        service.users, "add_warning", side_effect=StaleDataError("lost race")
    )

    with pytest.raises(ConcurrencyConflictError):
        service.warn_user(test_user.telegram_user_id, ADMIN)

    assert UserActionRepository(db_session).get_by_user(test_user.telegram_user_id) == []
    assert service.get_state(test_user.telegram_user_id).warnings == ()


def test_repair_rewrites_drifted_cache(service, test_user, db_session) -> None:
    user_id = test_user.telegram_user_id
    service.ban_user(user_id, ADMIN)
    test_user.is_banned = False
    db_session.commit()

    assert not service.verify_state(user_id)
    assert service.repair_state(user_id)
    assert service.is_banned(user_id)
    assert service.repair_state(user_id) is False


def test_trust_lasts_until_untrusted(db_session, test_user) -> None:
    user_id = test_user.telegram_user_id
    clock = [NOW]
    service = ModerationService(db_session, clock=lambda: clock[0], sleep=lambda _: None)

    service.trust_user(user_id, ADMIN, reason="known member")
    clock[0] = NOW + timedelta(days=2)

    assert service.is_trusted(user_id)
    (trust,) = UserActionRepository(db_session).get_by_user(user_id)
    assert trust.expires_at is None
    assert service.verify_state(user_id)


def test_reaching_warning_threshold_bans_user(service, test_user, db_session) -> None:
    user_id = test_user.telegram_user_id
    results = [service.warn_user(user_id, ADMIN, message_id=90 + i) for i in range(3)]

    assert [r.auto_ban_triggered for r in results] == [False, False, True]
    assert results[-1].active_warning_count == 3
    assert service.is_banned(user_id)
    actions = UserActionRepository(db_session).get_by_user(user_id)
    assert [a.action_type for a in actions] == [UserActionType.WARN] * 3 + [UserActionType.BAN]
    ban = actions[-1]
    assert ban.system_identifier == AUTO_BAN_ACTOR.identifier
    assert ban.reason == "Exceeded warning threshold (3 warnings)"
    assert ban.message_id == 92
    assert ban.expires_at is None
    assert service.verify_state(user_id)


def test_auto_ban_can_be_disabled(db_session, test_user) -> None:
    user_id = test_user.telegram_user_id
    service = ModerationService(
        db_session, auto_ban_enabled=False, auto_ban_threshold=1, clock=lambda: NOW
    )

    result = service.warn_user(user_id, ADMIN)

    assert result.active_warning_count == 1
    assert not result.auto_ban_triggered
    assert not service.is_banned(user_id)


def test_broken_schema_is_not_reported_as_conflict(service, test_user, db_session) -> None:
    db_session.execute(text("DROP TABLE user_actions"))
    db_session.commit()

    with pytest.raises(OperationalError, match="no such table"):
        service.ban_user(test_user.telegram_user_id, ADMIN)

    assert not service.get_state(test_user.telegram_user_id).is_banned

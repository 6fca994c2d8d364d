"""Moderation endpoints for the Groups Admin API."""

from __future__ import annotations

from fastapi import APIRouter

from groups_admin.api.v1.dependencies import ModerationServiceDep
from groups_admin.repositories.records import action_record_from_row
from groups_admin.schemas.moderation import (
    BanRequest,
    ModerationRequest,
    ModerationResultResponse,
    MuteRequest,
    UserActionResponse,
    UserModerationStateResponse,
    WarnRequest,
    WarningResponse,
)
from groups_admin.services import projection
from groups_admin.services.moderation import ModerationResult

router = APIRouter(prefix="/moderation/users", tags=["moderation"])


def _to_response(result: ModerationResult) -> ModerationResultResponse:
    return ModerationResultResponse(
        success=result.success,
        action_id=result.action_id,
        active_warning_count=result.active_warning_count,
        auto_ban_triggered=result.auto_ban_triggered,
        error=result.error,
    )


@router.post("/{user_id}/ban", response_model=ModerationResultResponse)
def ban_user(
    user_id: int,
    payload: BanRequest,
    service: ModerationServiceDep,
) -> ModerationResultResponse:
    """Ban a user; omit ``expires_at`` for a permanent ban."""
    result = service.ban_user(
        user_id,
        payload.issued_by,
        reason=payload.reason,
        expires_at=payload.expires_at,
        message_id=payload.message_id,
    )
    return _to_response(result)


@router.post("/{user_id}/unban", response_model=ModerationResultResponse)
def unban_user(
    user_id: int,
    payload: ModerationRequest,
    service: ModerationServiceDep,
) -> ModerationResultResponse:
    return _to_response(service.unban_user(user_id, payload.issued_by, reason=payload.reason))


@router.post("/{user_id}/warn", response_model=ModerationResultResponse)
def warn_user(
    user_id: int,
    payload: WarnRequest,
    service: ModerationServiceDep,
) -> ModerationResultResponse:
    """Warn a user; the response carries the active warning count."""
    result = service.warn_user(
        user_id,
        payload.issued_by,
        reason=payload.reason,
        expires_at=payload.expires_at,
        message_id=payload.message_id,
    )
    return _to_response(result)


@router.post("/{user_id}/mute", response_model=ModerationResultResponse)
def mute_user(
    user_id: int,
    payload: MuteRequest,
    service: ModerationServiceDep,
) -> ModerationResultResponse:
    result = service.mute_user(
        user_id,
        payload.issued_by,
        reason=payload.reason,
        expires_at=payload.expires_at,
        message_id=payload.message_id,
    )
    return _to_response(result)


@router.post("/{user_id}/trust", response_model=ModerationResultResponse)
def trust_user(
    user_id: int,
    payload: ModerationRequest,
    service: ModerationServiceDep,
) -> ModerationResultResponse:
    """Trust a user until an explicit untrust."""
    return _to_response(service.trust_user(user_id, payload.issued_by, reason=payload.reason))


@router.post("/{user_id}/untrust", response_model=ModerationResultResponse)
def untrust_user(
    user_id: int,
    payload: ModerationRequest,
    service: ModerationServiceDep,
) -> ModerationResultResponse:
    """Remove trust. Refused for protected system accounts."""
    return _to_response(service.untrust_user(user_id, payload.issued_by, reason=payload.reason))


@router.get("/{user_id}/state", response_model=UserModerationStateResponse)
def get_user_state(
    user_id: int,
    service: ModerationServiceDep,
) -> UserModerationStateResponse:
    """Return the cached moderation state with only active warnings."""
    state = service.get_state(user_id)
    now = service.current_time()
    warnings = projection.active_warnings(state, now)
    return UserModerationStateResponse(
        user_id=user_id,
        is_banned=projection.is_banned(state, now),
        ban_expires_at=state.ban_expires_at,
        is_trusted=state.is_trusted,
        active_warning_count=len(warnings),
        active_warnings=[
            WarningResponse(
                issued_at=entry.issued_at,
                expires_at=entry.expires_at,
                reason=entry.reason,
                issued_by=entry.issued_by,
                action_id=entry.action_id,
            )
            for entry in warnings
        ],
    )


@router.get("/{user_id}/actions", response_model=list[UserActionResponse])
def get_user_actions(
    user_id: int,
    service: ModerationServiceDep,
) -> list[UserActionResponse]:
    """Return the user's moderation history in log order."""
    records = [action_record_from_row(row) for row in service.get_actions(user_id)]
    return [
        UserActionResponse(
            id=record.id,
            user_id=record.user_id,
            action_type=record.action_type.value,
            message_id=record.message_id,
            issued_by=record.issued_by,
            issued_at=record.issued_at,
            expires_at=record.expires_at,
            reason=record.reason,
        )
        for record in records
    ]

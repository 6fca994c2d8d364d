"""Moderation-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from groups_admin.schemas.actor import Actor


class ModerationRequest(BaseModel):
    """Schema for an administrative act against a user."""

    issued_by: Actor = Field(..., description="Who is performing the action")
    reason: str | None = Field(None, max_length=2000)


class BanRequest(ModerationRequest):
    expires_at: datetime | None = Field(None, description="Null for a permanent ban")
    message_id: int | None = Field(None, description="Message that triggered the ban")


class WarnRequest(BanRequest):
    """Schema for warning a user; warnings age out at ``expires_at``."""


class MuteRequest(BanRequest):
    """Schema for muting a user."""


class ModerationResultResponse(BaseModel):
    """Schema for the outcome of a moderation operation."""

    success: bool
    action_id: int | None = None
    active_warning_count: int | None = None
    auto_ban_triggered: bool = False
    error: str | None = None


class WarningResponse(BaseModel):
    issued_at: datetime
    expires_at: datetime | None
    reason: str | None
    issued_by: Actor
    action_id: int | None = None


class UserModerationStateResponse(BaseModel):
    """Schema for a user's current moderation state."""

    user_id: int
    is_banned: bool
    ban_expires_at: datetime | None
    is_trusted: bool
    active_warning_count: int
    active_warnings: list[WarningResponse]


class UserActionResponse(BaseModel):
    """Schema for one entry of the moderation action log."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    action_type: str
    message_id: int | None
    issued_by: Actor
    issued_at: datetime
    expires_at: datetime | None
    reason: str | None

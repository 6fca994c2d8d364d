"""Detection-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from groups_admin.schemas.actor import Actor, SystemActor
from groups_admin.schemas.check_results import CheckResult


class DetectionCreate(BaseModel):
    """Schema for appending a detection event."""

    message_id: int
    net_confidence: int = Field(..., ge=-100, le=100, description="Positive means spam")
    detection_source: Literal["automated", "manual"] = "automated"
    detection_method: str = Field("", max_length=200)
    reason: str | None = None
    added_by: Actor = Field(default_factory=SystemActor)
    detected_at: datetime | None = None
    used_for_training: bool = True
    check_results: list[CheckResult] | None = None
    edit_version: int = Field(0, ge=0)


class ReclassifyRequest(BaseModel):
    """Schema for a moderator's manual verdict on a message."""

    is_spam: bool
    added_by: Actor
    reason: str | None = None


class DetectionResponse(BaseModel):
    """Schema for detection information returned by the API."""

    id: int
    message_id: int
    detected_at: datetime
    detection_source: str
    detection_method: str
    net_confidence: int
    is_spam: bool
    reason: str | None
    added_by: Actor
    used_for_training: bool
    check_results: list[CheckResult] | None
    edit_version: int

"""Shared API dependencies for sessions, services and report windows."""

from dataclasses import dataclass
from datetime import datetime
from typing import Annotated

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from groups_admin.core.settings import settings
from groups_admin.db.session import get_db
from groups_admin.services import AnalyticsService, DetectionService, ModerationService

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_analytics_service(db: SessionDep) -> AnalyticsService:
    return AnalyticsService(db)


def get_moderation_service(db: SessionDep) -> ModerationService:
    return ModerationService(db)


def get_detection_service(db: SessionDep) -> DetectionService:
    return DetectionService(db)


AnalyticsServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]
ModerationServiceDep = Annotated[ModerationService, Depends(get_moderation_service)]
DetectionServiceDep = Annotated[DetectionService, Depends(get_detection_service)]


@dataclass(frozen=True)
class ReportWindow:
    """Half-open ``[start, end)`` report window plus the bucketing zone."""

    start: datetime
    end: datetime
    time_zone: str


def get_report_window(
    start: Annotated[datetime, Query(description="Inclusive window start")],
    end: Annotated[datetime, Query(description="Exclusive window end")],
    tz: Annotated[
        str | None,
        Query(description="IANA time zone used for daily buckets"),
    ] = None,
) -> ReportWindow:
    """Collect the window query parameters.

    Validation of the window and zone happens in the services so that the
    same rules apply to scripts and API callers.
    """
    return ReportWindow(start=start, end=end, time_zone=tz or settings.default_time_zone)


ReportWindowDep = Annotated[ReportWindow, Depends(get_report_window)]

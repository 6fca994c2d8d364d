"""Daily spam and ham counts over every detection in a window."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, tzinfo

from groups_admin.repositories.records import DetectionRecord
from groups_admin.schemas.reports import DailyDetectionTrend
from groups_admin.services.time_buckets import (
    bucket_by_local_date,
    in_window,
    validate_window,
)


def daily_detection_trends(
    events: Iterable[DetectionRecord],
    start: datetime,
    end: datetime,
    tz: tzinfo,
) -> list[DailyDetectionTrend]:
    # Manual verdicts count too: this is a volume chart, not an accuracy one.
    start, end = validate_window(start, end)
    window = sorted(
        (event for event in events if in_window(event.detected_at, start, end)),
        key=lambda event: event.sort_key,
    )
    trends = []
    for day, day_events in bucket_by_local_date(window, lambda e: e.detected_at, tz).items():
        spam = sum(1 for event in day_events if event.is_spam)
        trends.append(
            DailyDetectionTrend(date=day, spam_count=spam, ham_count=len(day_events) - spam)
        )
    return trends

"""Report windows and local-calendar-day bucketing.

Accuracy, response-time and trend reports all group events by the calendar
day they fall on in the reviewer's time zone. They share these helpers so the
day boundaries are identical everywhere.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date, datetime, tzinfo
from typing import TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from groups_admin.core.exceptions import InvalidDateRangeError, InvalidTimeZoneError
from groups_admin.db.time import ensure_utc

T = TypeVar("T")

__all__ = [
    "bucket_by_local_date",
    "in_window",
    "local_date",
    "resolve_time_zone",
    "validate_window",
]


def resolve_time_zone(time_zone_id: str) -> ZoneInfo:
    """Return the IANA zone for ``time_zone_id``.

    Raises:
        InvalidTimeZoneError: If the identifier is empty or unknown.
    """
    if not time_zone_id or not time_zone_id.strip():
        raise InvalidTimeZoneError("Time zone identifier must not be empty")
    try:
        return ZoneInfo(time_zone_id.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise InvalidTimeZoneError(f"Unknown time zone: {time_zone_id!r}") from exc


def validate_window(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    """Normalize a ``[start, end)`` window to UTC.

    Raises:
        InvalidDateRangeError: If the window is empty or inverted.
    """
    start, end = ensure_utc(start), ensure_utc(end)
    if start >= end:
        raise InvalidDateRangeError(
            f"Report window start {start.isoformat()} must be before end {end.isoformat()}"
        )
    return start, end


def in_window(value: datetime, start: datetime, end: datetime) -> bool:
    return start <= ensure_utc(value) < end


def local_date(value: datetime, tz: tzinfo) -> date:
    """Return the calendar date of ``value`` as seen in ``tz``."""
    return ensure_utc(value).astimezone(tz).date()


def bucket_by_local_date(
    items: Iterable[T],
    key: Callable[[T], datetime],
    tz: tzinfo,
) -> dict[date, list[T]]:
    """Group items by the local date of ``key(item)``, in ascending date order.

    Items keep their input order inside each bucket.
    """
    buckets: dict[date, list[T]] = {}
    for item in items:
        buckets.setdefault(local_date(key(item), tz), []).append(item)
    return dict(sorted(buckets.items()))

"""Tests for daily detection trends."""

from datetime import date

from groups_admin.services.time_buckets import resolve_time_zone
from groups_admin.services.trends import daily_detection_trends
from tests.factories import at, detection, manual


def test_counts_spam_and_ham_per_local_day() -> None:
    events = [
        detection(1, "2024-01-01T10:00:00", 80),
        detection(2, "2024-01-01T11:00:00", -20),
        manual(3, "2024-01-02T02:00:00", spam=True),
        detection(4, "2024-01-03T00:00:00", 50),
    ]

    trends = daily_detection_trends(
        events,
        at("2024-01-01T00:00:00"),
        at("2024-01-03T00:00:00"),
        resolve_time_zone("America/New_York"),
    )

    assert [(t.date, t.spam_count, t.ham_count) for t in trends] == [
        (date(2024, 1, 1), 2, 1),
    ]


def test_zero_confidence_counts_as_ham() -> None:
    trends = daily_detection_trends(
        [detection(1, "2024-01-01T10:00:00", 0)],
        at("2024-01-01T00:00:00"),
        at("2024-01-02T00:00:00"),
        resolve_time_zone("UTC"),
    )
    assert trends[0].ham_count == 1

"""Tests for correction inference and the accuracy report."""

from datetime import date

from groups_admin.services.corrections import (
    CorrectionKind,
    build_accuracy_report,
    infer_corrections,
)
from groups_admin.services.time_buckets import resolve_time_zone
from tests.factories import at, checks, detection, manual

START = at("2024-01-01T00:00:00")
END = at("2024-01-02T00:00:00")
UTC_ZONE = resolve_time_zone("UTC")


def test_spam_overturned_to_ham_is_a_false_positive() -> None:
    events = [
        detection(42, "2024-01-01T10:00:00", 90, check_results_json=checks(("Bayes", "spam", 90))),
        manual(42, "2024-01-01T10:05:00", spam=False),
    ]

    report = build_accuracy_report(events, START, END, UTC_ZONE)

    assert report.total_false_positives == 1
    assert report.total_false_negatives == 0
    assert report.total_detections == 1
    assert report.false_positive_rate == 100.0
    (day,) = report.daily_breakdown
    assert day.date == date(2024, 1, 1)
    assert day.false_positive_count == 1
    assert day.accuracy == 0.0


def test_correction_symmetry() -> None:
    events = [
        detection(1, "2024-01-01T08:00:00", 70),
        manual(1, "2024-01-01T09:00:00", spam=False),
        detection(2, "2024-01-01T08:00:00", -60),
        manual(2, "2024-01-01T09:00:00", spam=True),
    ]

    result = infer_corrections(events, START, END)

    assert result.false_positive_message_ids == {1}
    assert result.false_negative_message_ids == {2}
    assert [c.kind for c in result.corrections] == [
        CorrectionKind.FALSE_POSITIVE,
        CorrectionKind.FALSE_NEGATIVE,
    ]


def test_manual_verdict_must_be_strictly_later() -> None:
    events = [
        manual(5, "2024-01-01T07:00:00", spam=False),
        detection(5, "2024-01-01T08:00:00", 80),
        manual(6, "2024-01-01T08:00:00", spam=False),
        detection(6, "2024-01-01T08:00:00", 80),
    ]
    assert infer_corrections(events, START, END).corrections == ()


def test_same_polarity_manual_verdict_is_not_a_correction() -> None:
    events = [detection(7, "2024-01-01T08:00:00", 80), manual(7, "2024-01-01T09:00:00", spam=True)]
    assert infer_corrections(events, START, END).corrections == ()


def test_every_prior_automated_verdict_counts_once_corrected() -> None:
    events = [
        detection(9, "2024-01-01T08:00:00", 60),
        detection(9, "2024-01-01T09:00:00", 75),
        manual(9, "2024-01-01T10:00:00", spam=False),
    ]
    result = infer_corrections(events, START, END)
    assert len(result.false_positives) == 2
    assert result.total_automated_detections == 2


def test_correction_after_window_end_still_counts() -> None:
    events = [
        detection(11, "2024-01-01T23:59:00", 80),
        manual(11, "2024-01-03T12:00:00", spam=False),
    ]
    result = infer_corrections(events, START, END)
    assert result.false_positive_message_ids == {11}
    assert result.total_automated_detections == 1


def test_manual_events_are_not_automated_detections() -> None:
    events = [detection(1, "2024-01-01T08:00:00", 50), manual(2, "2024-01-01T08:00:00", spam=True)]
    assert infer_corrections(events, START, END).total_automated_detections == 1


def test_empty_window_gives_zero_rates() -> None:
    report = build_accuracy_report([], START, END, UTC_ZONE)
    assert report.total_detections == 0
    assert report.false_positive_rate == 0.0
    assert report.false_negative_rate == 0.0
    assert report.daily_breakdown == []


def test_rates_stay_within_bounds() -> None:
    events = [detection(i, "2024-01-01T08:00:00", 40) for i in range(1, 5)]
    events.append(manual(1, "2024-01-01T09:00:00", spam=False))
    report = build_accuracy_report(events, START, END, UTC_ZONE)
    assert report.false_positive_rate == 25.0
    assert 0.0 <= report.false_negative_rate <= 100.0


def test_daily_buckets_follow_the_callers_zone() -> None:
    events = [
        detection(1, "2024-01-02T03:00:00", 80),
        manual(1, "2024-01-02T04:00:00", spam=False),
        detection(2, "2024-01-02T15:00:00", 80),
    ]
    start, end = at("2024-01-01T00:00:00"), at("2024-01-03T00:00:00")

    report = build_accuracy_report(events, start, end, resolve_time_zone("America/Chicago"))

    by_day = {day.date: day for day in report.daily_breakdown}
    assert by_day[date(2024, 1, 1)].false_positive_count == 1
    assert by_day[date(2024, 1, 2)].false_positive_count == 0
    assert by_day[date(2024, 1, 2)].accuracy == 100.0


def test_report_is_deterministic() -> None:
    events = [
        detection(1, "2024-01-01T08:00:00", 80, detection_id=101),
        manual(1, "2024-01-01T09:00:00", spam=False),
        detection(2, "2024-01-01T10:00:00", -30, detection_id=102),
    ]
    first = build_accuracy_report(events, START, END, UTC_ZONE)
    second = build_accuracy_report(list(reversed(events)), START, END, UTC_ZONE)
    assert first.model_dump_json() == second.model_dump_json()

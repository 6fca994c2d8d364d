"""Tests for veto detection."""

import pytest

from groups_admin.services.veto import detect_vetoes, truncate_preview
from tests.factories import at, checks, detection, manual

START = at("2024-01-01T00:00:00")
END = at("2024-01-02T00:00:00")


def vetoed(message_id: int, when: str, *spam_checks: str) -> object:
    votes = [("OpenAI", "clean", 95)] + [(name, "spam", 80) for name in spam_checks]
    return detection(message_id, f"2024-01-01T{when}", -50, check_results_json=checks(*votes))


def test_high_trust_clean_vote_over_spam_votes_is_a_veto() -> None:
    events = [vetoed(42, "10:00:00", "URLCheck")]

    report = detect_vetoes(events, START, END, "OpenAI", {42: "buy cheap pills"})

    assert report.vetoed_count == 1
    (entry,) = report.per_algorithm
    assert entry.name == "URLCheck"
    assert entry.vetoed_count == 1
    (recent,) = report.recent_vetoes
    assert recent.spam_voters == ["URLCheck"]
    assert recent.veto_confidence == 95
    assert recent.message_preview == "buy cheap pills"


def test_veto_rate_divides_by_all_spam_votes() -> None:
    events = [vetoed(i, f"0{i}:00:00", "Bayes") for i in range(1, 4)]
    events += [
        detection(
            100 + i,
            "2024-01-01T12:00:00",
            70,
            check_results_json=checks(("Bayes", "spam", 70), ("OpenAI", "spam", 60)),
        )
        for i in range(7)
    ]

    report = detect_vetoes(events, START, END, "OpenAI")

    bayes = next(item for item in report.per_algorithm if item.name == "Bayes")
    assert bayes.total_spam_votes == 10
    assert bayes.vetoed_count == 3
    assert bayes.veto_rate == 30.0
    assert report.overall_veto_rate == 30.0


def test_spam_verdict_or_missing_spam_votes_is_not_a_veto() -> None:
    events = [
        detection(1, "2024-01-01T01:00:00", 40, check_results_json=checks(("OpenAI", "clean", 90), ("Bayes", "spam", 80))),
        detection(2, "2024-01-01T02:00:00", -40, check_results_json=checks(("OpenAI", "clean", 90), ("Bayes", "clean", 10))),
        detection(3, "2024-01-01T03:00:00", -40, check_results_json=checks(("Bayes", "spam", 80))),
        detection(4, "2024-01-01T04:00:00", -40, check_results_json=checks(("OpenAI", "spam", 70), ("Bayes", "spam", 80))),
    ]
    assert detect_vetoes(events, START, END, "OpenAI").vetoed_count == 0


def test_veto_check_name_comes_from_the_caller() -> None:
    events = [
        detection(1, "2024-01-01T01:00:00", -40, check_results_json=checks(("Gemini", "clean", 90), ("Bayes", "spam", 80))),
    ]
    assert detect_vetoes(events, START, END, "OpenAI").vetoed_count == 0
    assert detect_vetoes(events, START, END, "Gemini").vetoed_count == 1


def test_unparseable_events_still_count_in_total() -> None:
    events = [
        vetoed(1, "01:00:00", "Bayes"),
        detection(2, "2024-01-01T02:00:00", -40, check_results_json="garbage"),
        manual(3, "2024-01-01T03:00:00", spam=False),
    ]
    report = detect_vetoes(events, START, END, "OpenAI")
    assert report.total_detections == 2
    assert report.overall_veto_rate == 50.0


def test_recent_vetoes_are_newest_first_and_bounded() -> None:
    events = [vetoed(i, f"0{i}:00:00", "Bayes") for i in range(1, 6)]
    report = detect_vetoes(events, START, END, "OpenAI", limit=2)
    assert [entry.message_id for entry in report.recent_vetoes] == [5, 4]
    assert report.vetoed_count == 5


def test_missing_message_has_no_preview() -> None:
    report = detect_vetoes([vetoed(1, "01:00:00", "Bayes")], START, END, "OpenAI", {})
    assert report.recent_vetoes[0].message_preview is None


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("short", "short"),
        ("x" * 10, "x" * 10),
        ("x" * 11, "x" * 10 + "..."),
        (None, None),
    ],
)
def test_preview_truncation(text, expected) -> None:
    assert truncate_preview(text, 10) == expected


def test_empty_window_gives_zero_report() -> None:
    report = detect_vetoes([], START, END, "OpenAI")
    assert report.total_detections == 0
    assert report.overall_veto_rate == 0.0
    assert report.per_algorithm == []

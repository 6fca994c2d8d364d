"""Per-check vote tallies, error attribution and timing profiles."""

from __future__ import annotations

import math
from collections.abc import Collection, Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime

from groups_admin.repositories.records import DetectionRecord
from groups_admin.schemas.check_results import CheckResult
from groups_admin.schemas.reports import AlgorithmPerformance, AlgorithmStats
from groups_admin.services.time_buckets import in_window, validate_window

__all__ = ["algorithm_performance", "compare_algorithms", "iter_parsed_automated"]


def iter_parsed_automated(
    events: Iterable[DetectionRecord],
    start: datetime,
    end: datetime,
) -> Iterator[tuple[DetectionRecord, list[CheckResult]]]:
    """Yield automated in-window events whose check payload parses, in log order."""
    for event in sorted(events, key=lambda item: item.sort_key):
        if event.is_manual or not in_window(event.detected_at, start, end):
            continue
        checks = event.check_results()
        if checks is None:
            continue
        yield event, checks


@dataclass
class _Tally:
    total_checks: int = 0
    spam_votes: int = 0
    spam_confidences: list[float] = field(default_factory=list)
    false_positives: int = 0
    false_negatives: int = 0


def compare_algorithms(
    events: Iterable[DetectionRecord],
    start: datetime,
    end: datetime,
    false_positive_message_ids: Collection[int] = frozenset(),
    false_negative_message_ids: Collection[int] = frozenset(),
) -> list[AlgorithmStats]:
    """Tally each check's votes and its share of inferred misclassifications.

    A check contributes to a false positive when it voted spam on a message
    later confirmed ham, and to a false negative when it voted clean on a
    message later confirmed spam. Events without a usable payload are skipped.
    Output is ordered by ``total_checks`` descending, then by name.
    """
    start, end = validate_window(start, end)
    tallies: dict[str, _Tally] = {}
    for event, checks in iter_parsed_automated(events, start, end):
        for check in checks:
            tally = tallies.setdefault(check.name, _Tally())
            tally.total_checks += 1
            if check.is_spam:
                tally.spam_votes += 1
                tally.spam_confidences.append(check.confidence)
                if event.message_id in false_positive_message_ids:
                    tally.false_positives += 1
            elif event.message_id in false_negative_message_ids:
                tally.false_negatives += 1

    stats = [
        AlgorithmStats(
            name=name,
            total_checks=tally.total_checks,
            spam_votes=tally.spam_votes,
            spam_percentage=tally.spam_votes / tally.total_checks * 100.0,
            average_spam_confidence=(
                sum(tally.spam_confidences) / len(tally.spam_confidences)
                if tally.spam_confidences
                else None
            ),
            contributed_to_false_positives=tally.false_positives,
            contributed_to_false_negatives=tally.false_negatives,
        )
        for name, tally in tallies.items()
    ]
    stats.sort(key=lambda item: (-item.total_checks, item.name))
    return stats


def algorithm_performance(
    events: Iterable[DetectionRecord],
    start: datetime,
    end: datetime,
) -> list[AlgorithmPerformance]:
    """Profile check execution times recorded on automated detections.

    Only positive timings count. Output is ordered by total time spent,
    largest first.
    """
    start, end = validate_window(start, end)
    timings: dict[str, list[float]] = {}
    for _, checks in iter_parsed_automated(events, start, end):
        for check in checks:
            if check.processing_time_ms is not None and check.processing_time_ms > 0:
                timings.setdefault(check.name, []).append(check.processing_time_ms)

    profiles = []
    for name, samples in timings.items():
        ordered = sorted(samples)
        total = sum(ordered)
        profiles.append(
            AlgorithmPerformance(
                name=name,
                total_executions=len(ordered),
                average_ms=total / len(ordered),
                p95_ms=ordered[math.floor(len(ordered) * 0.95)],
                max_ms=ordered[-1],
                min_ms=ordered[0],
                total_time_contribution_ms=total,
            )
        )
    profiles.sort(key=lambda item: (-item.total_time_contribution_ms, item.name))
    return profiles

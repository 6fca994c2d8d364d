"""Latency between spam detections and the moderator response to them."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, tzinfo

from groups_admin.models import UserActionType
from groups_admin.repositories.records import ActionRecord, DetectionRecord
from groups_admin.schemas.reports import DailyResponseTime, ResponseTimeReport
from groups_admin.services.time_buckets import (
    bucket_by_local_date,
    in_window,
    validate_window,
)

__all__ = ["ResponsePair", "analyze_response_times", "median", "percentile", "pair_responses"]

RESPONSE_ACTIONS = frozenset({UserActionType.BAN, UserActionType.WARN})


@dataclass(frozen=True)
class ResponsePair:
    detection: DetectionRecord
    action: ActionRecord

    @property
    def response_ms(self) -> float:
        return (self.action.issued_at - self.detection.detected_at).total_seconds() * 1000.0


def median(ordered: Sequence[float]) -> float:
    """Return ``ordered[n // 2]``.

    For even counts this is the upper of the two middle values; historical
    reports were produced this way, so the values are not averaged.
    """
    return ordered[len(ordered) // 2]


def percentile(ordered: Sequence[float], fraction: float) -> float:
    return ordered[min(math.floor(len(ordered) * fraction), len(ordered) - 1)]


def pair_responses(
    events: Iterable[DetectionRecord],
    actions: Iterable[ActionRecord],
    start: datetime,
    end: datetime,
) -> list[ResponsePair]:
    """Match each message's first spam detection in the window to its first response.

    A response is a ban or warn on the same message issued no earlier than the
    detection. Each message yields at most one pair.
    """
    first_detection: dict[int, DetectionRecord] = {}
    for event in sorted(events, key=lambda item: item.sort_key):
        if event.is_manual or not event.is_spam:
            continue
        if not in_window(event.detected_at, start, end):
            continue
        first_detection.setdefault(event.message_id, event)

    responses: dict[int, list[ActionRecord]] = {}
    for action in sorted(actions, key=lambda item: item.sort_key):
        if action.action_type in RESPONSE_ACTIONS and action.message_id is not None:
            responses.setdefault(action.message_id, []).append(action)

    pairs = []
    for message_id, detection in first_detection.items():
        action = next(
            (
                candidate
                for candidate in responses.get(message_id, ())
                if candidate.issued_at >= detection.detected_at
            ),
            None,
        )
        if action is not None:
            pairs.append(ResponsePair(detection=detection, action=action))
    pairs.sort(key=lambda pair: pair.detection.sort_key)
    return pairs


def analyze_response_times(
    events: Iterable[DetectionRecord],
    actions: Iterable[ActionRecord],
    start: datetime,
    end: datetime,
    tz: tzinfo,
) -> ResponseTimeReport:
    """Compute response latency statistics for ``[start, end)``.

    Returns an all-zero report when nothing in the window was responded to.
    """
    start, end = validate_window(start, end)
    pairs = pair_responses(events, actions, start, end)
    if not pairs:
        return ResponseTimeReport()

    latencies = sorted(pair.response_ms for pair in pairs)
    daily = [
        DailyResponseTime(
            date=day,
            average_ms=sum(pair.response_ms for pair in day_pairs) / len(day_pairs),
            action_count=len(day_pairs),
        )
        for day, day_pairs in bucket_by_local_date(
            pairs, lambda pair: pair.detection.detected_at, tz
        ).items()
    ]
    return ResponseTimeReport(
        daily_averages=daily,
        mean_ms=sum(latencies) / len(latencies),
        median_ms=median(latencies),
        p95_ms=percentile(latencies, 0.95),
        total_actions=len(pairs),
    )

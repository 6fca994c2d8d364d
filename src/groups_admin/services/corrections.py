"""Infer false positives and false negatives from later manual verdicts.

An automated verdict counts as corrected when a moderator later files a
manual verdict of the opposite polarity on the same message. Every earlier
automated verdict of that polarity is corrected, not only the most recent one,
and the manual verdict may fall after the report window closes.
"""

from __future__ import annotations

import enum
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, tzinfo

from groups_admin.repositories.records import DetectionRecord
from groups_admin.schemas.reports import AccuracyReport, DailyAccuracy
from groups_admin.services.time_buckets import (
    bucket_by_local_date,
    in_window,
    validate_window,
)

__all__ = [
    "Correction",
    "CorrectionKind",
    "CorrectionSet",
    "build_accuracy_report",
    "infer_corrections",
]


class CorrectionKind(str, enum.Enum):
    FALSE_POSITIVE = "false_positive"
    FALSE_NEGATIVE = "false_negative"


@dataclass(frozen=True)
class Correction:
    """An automated verdict paired with the manual verdict that overturned it."""

    original: DetectionRecord
    correcting: DetectionRecord

    @property
    def kind(self) -> CorrectionKind:
        if self.original.is_spam:
            return CorrectionKind.FALSE_POSITIVE
        return CorrectionKind.FALSE_NEGATIVE


@dataclass(frozen=True)
class CorrectionSet:
    corrections: tuple[Correction, ...] = ()
    total_automated_detections: int = 0
    automated: tuple[DetectionRecord, ...] = field(default=(), repr=False)

    @property
    def false_positives(self) -> list[Correction]:
        return [c for c in self.corrections if c.kind is CorrectionKind.FALSE_POSITIVE]

    @property
    def false_negatives(self) -> list[Correction]:
        return [c for c in self.corrections if c.kind is CorrectionKind.FALSE_NEGATIVE]

    @property
    def false_positive_message_ids(self) -> frozenset[int]:
        return frozenset(c.original.message_id for c in self.false_positives)

    @property
    def false_negative_message_ids(self) -> frozenset[int]:
        return frozenset(c.original.message_id for c in self.false_negatives)


def infer_corrections(
    events: Iterable[DetectionRecord],
    start: datetime,
    end: datetime,
) -> CorrectionSet:
    """Pair automated verdicts in ``[start, end)`` with later opposite manual verdicts.

    ``events`` must contain the manual verdicts for the messages involved,
    including ones filed after ``end``. Automated events outside the window
    are ignored.
    """
    start, end = validate_window(start, end)
    ordered = sorted(events, key=lambda event: event.sort_key)

    manual_by_message: dict[int, list[DetectionRecord]] = defaultdict(list)
    for event in ordered:
        if event.is_manual:
            manual_by_message[event.message_id].append(event)

    automated = tuple(
        event
        for event in ordered
        if not event.is_manual and in_window(event.detected_at, start, end)
    )

    corrections: list[Correction] = []
    for event in automated:
        # Earliest qualifying manual verdict is reported as the correction.
        for manual in manual_by_message.get(event.message_id, ()):
            if manual.detected_at > event.detected_at and manual.is_spam != event.is_spam:
                corrections.append(Correction(original=event, correcting=manual))
                break

    return CorrectionSet(
        corrections=tuple(corrections),
        total_automated_detections=len(automated),
        automated=automated,
    )


def _percentage(part: int, whole: int) -> float:
    return part / whole * 100.0 if whole else 0.0


def build_accuracy_report(
    events: Iterable[DetectionRecord],
    start: datetime,
    end: datetime,
    tz: tzinfo,
    corrections: CorrectionSet | None = None,
) -> AccuracyReport:
    """Summarize correction rates overall and per local calendar day."""
    if corrections is None:
        corrections = infer_corrections(events, start, end)

    corrected_ids = {
        correction.original.id: correction.kind for correction in corrections.corrections
    }

    daily: list[DailyAccuracy] = []
    buckets = bucket_by_local_date(corrections.automated, lambda e: e.detected_at, tz)
    for day, day_events in buckets.items():
        total = len(day_events)
        kinds = [corrected_ids.get(event.id) for event in day_events]
        fp = kinds.count(CorrectionKind.FALSE_POSITIVE)
        fn = kinds.count(CorrectionKind.FALSE_NEGATIVE)
        daily.append(
            DailyAccuracy(
                date=day,
                total_detections=total,
                false_positive_count=fp,
                false_negative_count=fn,
                false_positive_percentage=_percentage(fp, total),
                false_negative_percentage=_percentage(fn, total),
                accuracy=(1 - (fp + fn) / total) * 100.0,
            )
        )

    total = corrections.total_automated_detections
    fp_total = len(corrections.false_positives)
    fn_total = len(corrections.false_negatives)
    return AccuracyReport(
        daily_breakdown=daily,
        total_false_positives=fp_total,
        total_false_negatives=fn_total,
        total_detections=total,
        false_positive_rate=_percentage(fp_total, total),
        false_negative_rate=_percentage(fn_total, total),
    )

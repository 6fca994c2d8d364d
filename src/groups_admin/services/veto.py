"""Find detections where the designated high-trust check overrode spam votes."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime

from groups_admin.repositories.records import DetectionRecord
from groups_admin.schemas.check_results import CheckResult
from groups_admin.schemas.reports import AlgorithmVetoStats, VetoedMessage, VetoReport
from groups_admin.services.algorithm_stats import iter_parsed_automated
from groups_admin.services.time_buckets import in_window, validate_window

__all__ = ["VetoInstance", "detect_vetoes", "find_veto", "truncate_preview"]

PREVIEW_ELLIPSIS = "..."


@dataclass(frozen=True)
class VetoInstance:
    event: DetectionRecord
    veto_check: CheckResult
    spam_voters: tuple[str, ...]


def find_veto(
    event: DetectionRecord,
    checks: list[CheckResult],
    veto_check_name: str,
) -> VetoInstance | None:
    """Return the veto carried by ``event``, if any.

    A veto needs a clean overall verdict, a clean vote from the designated
    check and at least one spam vote from another check.
    """
    if event.is_spam:
        return None
    veto = next((check for check in checks if check.name == veto_check_name), None)
    if veto is None or veto.is_spam:
        return None
    spam_voters = tuple(
        check.name for check in checks if check.is_spam and check.name != veto_check_name
    )
    if not spam_voters:
        return None
    return VetoInstance(event=event, veto_check=veto, spam_voters=spam_voters)


def truncate_preview(text: str | None, length: int) -> str | None:
    if text is None:
        return None
    if len(text) <= length:
        return text
    return text[:length] + PREVIEW_ELLIPSIS


def detect_vetoes(
    events: Iterable[DetectionRecord],
    start: datetime,
    end: datetime,
    veto_check_name: str,
    message_texts: Mapping[int, str | None] | None = None,
    limit: int = 20,
    preview_length: int = 100,
) -> VetoReport:
    """Build the veto report for ``[start, end)``.

    Per-check veto rates divide by every spam vote the check cast in the
    window, vetoed or not. ``message_texts`` supplies previews for the recent
    view; messages missing from it get no preview.
    """
    start, end = validate_window(start, end)
    events = list(events)
    message_texts = message_texts or {}

    total_detections = sum(
        1 for event in events if not event.is_manual and in_window(event.detected_at, start, end)
    )

    spam_votes: dict[str, int] = {}
    vetoed: dict[str, int] = {}
    instances: list[VetoInstance] = []
    for event, checks in iter_parsed_automated(events, start, end):
        for check in checks:
            if check.is_spam and check.name != veto_check_name:
                spam_votes[check.name] = spam_votes.get(check.name, 0) + 1
        instance = find_veto(event, checks, veto_check_name)
        if instance is None:
            continue
        instances.append(instance)
        for name in set(instance.spam_voters):
            vetoed[name] = vetoed.get(name, 0) + 1

    per_algorithm = [
        AlgorithmVetoStats(
            name=name,
            vetoed_count=vetoed.get(name, 0),
            total_spam_votes=votes,
            veto_rate=vetoed.get(name, 0) / votes * 100.0,
        )
        for name, votes in spam_votes.items()
    ]
    per_algorithm.sort(key=lambda item: (-item.vetoed_count, item.name))

    recent = sorted(instances, key=lambda item: item.event.sort_key, reverse=True)[:limit]
    recent_vetoes = [
        VetoedMessage(
            detection_id=instance.event.id,
            message_id=instance.event.message_id,
            detected_at=instance.event.detected_at,
            message_preview=truncate_preview(
                message_texts.get(instance.event.message_id), preview_length
            ),
            spam_voters=list(instance.spam_voters),
            veto_confidence=instance.veto_check.confidence,
            veto_reason=instance.veto_check.reason,
        )
        for instance in recent
    ]

    return VetoReport(
        total_detections=total_detections,
        vetoed_count=len(instances),
        overall_veto_rate=len(instances) / total_detections * 100.0 if total_detections else 0.0,
        per_algorithm=per_algorithm,
        recent_vetoes=recent_vetoes,
    )

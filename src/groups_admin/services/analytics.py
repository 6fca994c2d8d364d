"""Analytics service that loads report windows and runs the pure aggregations."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from groups_admin.core.settings import settings
from groups_admin.repositories.detection_repo import DetectionResultRepository
from groups_admin.repositories.message_repo import MessageRepository
from groups_admin.repositories.records import (
    DetectionRecord,
    action_record_from_row,
    detection_record_from_row,
)
from groups_admin.repositories.user_action_repo import UserActionRepository
from groups_admin.schemas.reports import (
    AccuracyReport,
    AlgorithmPerformance,
    AlgorithmStats,
    DailyDetectionTrend,
    ResponseTimeReport,
    VetoReport,
)
from groups_admin.services.algorithm_stats import algorithm_performance, compare_algorithms
from groups_admin.services.corrections import build_accuracy_report, infer_corrections
from groups_admin.services.response_time import analyze_response_times
from groups_admin.services.time_buckets import resolve_time_zone, validate_window
from groups_admin.services.trends import daily_detection_trends
from groups_admin.services.veto import detect_vetoes


class AnalyticsService:
    """Read-side reports over the detection and moderation logs.

    Every report is computed from a snapshot loaded up front, so a call
    either returns the whole report or raises.
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self.detections = DetectionResultRepository(session)
        self.actions = UserActionRepository(session)
        self.messages = MessageRepository(session)

    def _window_events(self, start: datetime, end: datetime) -> list[DetectionRecord]:
        return [
            detection_record_from_row(row)
            for row in self.detections.list_in_window(start, end)
        ]

    def _events_with_corrections(self, start: datetime, end: datetime) -> list[DetectionRecord]:
        """Return in-window events plus every manual verdict on their messages."""
        events = {event.id: event for event in self._window_events(start, end)}
        message_ids = {event.message_id for event in events.values() if not event.is_manual}
        for row in self.detections.list_manual_for_messages(message_ids):
            events.setdefault(row.id, detection_record_from_row(row))
        return sorted(events.values(), key=lambda event: event.sort_key)

    def get_detection_accuracy(
        self,
        start: datetime,
        end: datetime,
        time_zone_id: str,
    ) -> AccuracyReport:
        tz = resolve_time_zone(time_zone_id)
        start, end = validate_window(start, end)
        events = self._events_with_corrections(start, end)
        return build_accuracy_report(events, start, end, tz)

    def get_algorithm_comparison(self, start: datetime, end: datetime) -> list[AlgorithmStats]:
        start, end = validate_window(start, end)
        events = self._events_with_corrections(start, end)
        corrections = infer_corrections(events, start, end)
        return compare_algorithms(
            events,
            start,
            end,
            corrections.false_positive_message_ids,
            corrections.false_negative_message_ids,
        )

    def get_algorithm_performance(
        self,
        start: datetime,
        end: datetime,
    ) -> list[AlgorithmPerformance]:
        start, end = validate_window(start, end)
        return algorithm_performance(self._window_events(start, end), start, end)

    def get_veto_stats(
        self,
        start: datetime,
        end: datetime,
        veto_check_name: str | None = None,
        limit: int | None = None,
    ) -> VetoReport:
        """Return the veto report, with previews for the recent vetoes."""
        start, end = validate_window(start, end)
        events = self._window_events(start, end)
        texts = {
            message.message_id: message.message_text
            for message in self.messages.get_many(event.message_id for event in events)
        }
        return detect_vetoes(
            events,
            start,
            end,
            veto_check_name or settings.veto_check_name,
            texts,
            limit=settings.recent_vetoes_limit if limit is None else limit,
            preview_length=settings.veto_preview_length,
        )

    def get_response_times(
        self,
        start: datetime,
        end: datetime,
        time_zone_id: str,
    ) -> ResponseTimeReport:
        tz = resolve_time_zone(time_zone_id)
        start, end = validate_window(start, end)
        events = self._window_events(start, end)
        spam_message_ids = {
            event.message_id for event in events if event.is_spam and not event.is_manual
        }
        actions = [
            action_record_from_row(row)
            for row in self.actions.list_responses_for_messages(spam_message_ids)
        ]
        return analyze_response_times(events, actions, start, end, tz)

    def get_daily_trends(
        self,
        start: datetime,
        end: datetime,
        time_zone_id: str,
    ) -> list[DailyDetectionTrend]:
        tz = resolve_time_zone(time_zone_id)
        start, end = validate_window(start, end)
        return daily_detection_trends(self._window_events(start, end), start, end, tz)

"""Read models returned by the analytics reports."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field


class _Report(BaseModel):
    model_config = ConfigDict(frozen=True)


class DailyAccuracy(_Report):
    """Accuracy of automated detections on one local calendar day."""

    date: dt.date
    total_detections: int
    false_positive_count: int
    false_negative_count: int
    false_positive_percentage: float
    false_negative_percentage: float
    accuracy: float = Field(..., description="Percentage of detections not later corrected")


class AccuracyReport(_Report):
    """False-positive and false-negative rates inferred from manual corrections."""

    daily_breakdown: list[DailyAccuracy] = Field(default_factory=list)
    total_false_positives: int = 0
    total_false_negatives: int = 0
    total_detections: int = 0
    false_positive_rate: float = 0.0
    false_negative_rate: float = 0.0


class DailyResponseTime(_Report):
    date: dt.date
    average_ms: float
    action_count: int


class ResponseTimeReport(_Report):
    """Latency between a spam detection and the first moderator response."""

    daily_averages: list[DailyResponseTime] = Field(default_factory=list)
    mean_ms: float = 0.0
    median_ms: float = 0.0
    p95_ms: float = 0.0
    total_actions: int = 0


class AlgorithmStats(_Report):
    """Vote tallies and error attribution for one detection check."""

    name: str
    total_checks: int
    spam_votes: int
    spam_percentage: float
    average_spam_confidence: float | None = None
    contributed_to_false_positives: int = 0
    contributed_to_false_negatives: int = 0


class AlgorithmPerformance(_Report):
    """Execution time profile of one detection check."""

    name: str
    total_executions: int
    average_ms: float
    p95_ms: float
    max_ms: float
    min_ms: float
    total_time_contribution_ms: float


class AlgorithmVetoStats(_Report):
    name: str
    vetoed_count: int
    total_spam_votes: int
    veto_rate: float


class VetoedMessage(_Report):
    """One detection where the designated check overrode spam votes."""

    detection_id: int
    message_id: int
    detected_at: dt.datetime
    message_preview: str | None = None
    spam_voters: list[str] = Field(default_factory=list)
    veto_confidence: float
    veto_reason: str | None = None


class VetoReport(_Report):
    total_detections: int = 0
    vetoed_count: int = 0
    overall_veto_rate: float = 0.0
    per_algorithm: list[AlgorithmVetoStats] = Field(default_factory=list)
    recent_vetoes: list[VetoedMessage] = Field(default_factory=list)


class DailyDetectionTrend(_Report):
    date: dt.date
    spam_count: int
    ham_count: int

"""Analytics report endpoints for the Groups Admin API."""

from __future__ import annotations

from fastapi import APIRouter

from groups_admin.api.v1.dependencies import AnalyticsServiceDep, ReportWindowDep
from groups_admin.schemas.reports import (
    AccuracyReport,
    AlgorithmPerformance,
    AlgorithmStats,
    DailyDetectionTrend,
    ResponseTimeReport,
    VetoReport,
)

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/accuracy", response_model=AccuracyReport)
def get_detection_accuracy(
    window: ReportWindowDep,
    service: AnalyticsServiceDep,
) -> AccuracyReport:
    """False-positive and false-negative rates, overall and per local day."""
    return service.get_detection_accuracy(window.start, window.end, window.time_zone)


@router.get("/response-times", response_model=ResponseTimeReport)
def get_response_times(
    window: ReportWindowDep,
    service: AnalyticsServiceDep,
) -> ResponseTimeReport:
    """Latency from spam detection to the first ban or warn."""
    return service.get_response_times(window.start, window.end, window.time_zone)


@router.get("/algorithms", response_model=list[AlgorithmStats])
def get_algorithm_comparison(
    window: ReportWindowDep,
    service: AnalyticsServiceDep,
) -> list[AlgorithmStats]:
    """Per-check vote tallies and their share of misclassifications."""
    return service.get_algorithm_comparison(window.start, window.end)


@router.get("/vetoes", response_model=VetoReport)
def get_veto_stats(
    window: ReportWindowDep,
    service: AnalyticsServiceDep,
) -> VetoReport:
    """Detections where the high-trust check overrode other spam votes."""
    return service.get_veto_stats(window.start, window.end)


@router.get("/trends", response_model=list[DailyDetectionTrend])
def get_daily_trends(
    window: ReportWindowDep,
    service: AnalyticsServiceDep,
) -> list[DailyDetectionTrend]:
    return service.get_daily_trends(window.start, window.end, window.time_zone)


@router.get("/performance", response_model=list[AlgorithmPerformance])
def get_algorithm_performance(
    window: ReportWindowDep,
    service: AnalyticsServiceDep,
) -> list[AlgorithmPerformance]:
    return service.get_algorithm_performance(window.start, window.end)

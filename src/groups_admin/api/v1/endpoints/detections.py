"""Detection event endpoints for the Groups Admin API."""

from __future__ import annotations

from fastapi import APIRouter, status

from groups_admin.api.v1.dependencies import DetectionServiceDep
from groups_admin.models import DetectionResult
from groups_admin.repositories.records import detection_record_from_row
from groups_admin.schemas.detection import (
    DetectionCreate,
    DetectionResponse,
    ReclassifyRequest,
)

router = APIRouter(prefix="/detections", tags=["detections"])


def _to_response(row: DetectionResult) -> DetectionResponse:
    record = detection_record_from_row(row)
    return DetectionResponse(
        id=record.id,
        message_id=record.message_id,
        detected_at=record.detected_at,
        detection_source=record.detection_source,
        detection_method=record.detection_method,
        net_confidence=record.net_confidence,
        is_spam=record.is_spam,
        reason=record.reason,
        added_by=record.added_by,
        used_for_training=record.used_for_training,
        check_results=record.check_results(),
        edit_version=record.edit_version,
    )


@router.post("", response_model=DetectionResponse, status_code=status.HTTP_201_CREATED)
def create_detection(
    payload: DetectionCreate,
    service: DetectionServiceDep,
) -> DetectionResponse:
    """Append a detection event to the store."""
    row = service.record(
        message_id=payload.message_id,
        net_confidence=payload.net_confidence,
        added_by=payload.added_by,
        detection_source=payload.detection_source,
        detection_method=payload.detection_method,
        reason=payload.reason,
        detected_at=payload.detected_at,
        used_for_training=payload.used_for_training,
        check_results=payload.check_results,
        edit_version=payload.edit_version,
    )
    return _to_response(row)


@router.post(
    "/{message_id}/reclassify",
    response_model=DetectionResponse,
    status_code=status.HTTP_201_CREATED,
)
def reclassify_message(
    message_id: int,
    payload: ReclassifyRequest,
    service: DetectionServiceDep,
) -> DetectionResponse:
    """Record a manual verdict and retire the message's earlier training labels."""
    row = service.reclassify(
        message_id,
        is_spam=payload.is_spam,
        added_by=payload.added_by,
        reason=payload.reason,
    )
    return _to_response(row)

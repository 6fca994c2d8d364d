"""Tests for the detection event endpoints."""

from fastapi import status

from groups_admin.repositories.detection_repo import DetectionResultRepository


def test_create_detection(client) -> None:
    response = client.post(
        "/api/v1/detections",
        json={
            "message_id": 42,
            "net_confidence": 85,
            "detection_method": "Bayes+URL",
            "check_results": [
                {"name": "Bayes", "result": "spam", "confidence": 85, "processingTimeMs": 3.5}
            ],
        },
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["is_spam"] is True
    assert data["added_by"] == {"kind": "system", "identifier": "System"}
    assert data["check_results"][0]["processingTimeMs"] == 3.5


def test_net_confidence_out_of_range_is_rejected(client) -> None:
    response = client.post("/api/v1/detections", json={"message_id": 1, "net_confidence": 150})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_reclassify_retires_earlier_labels(client, db_session) -> None:
    client.post("/api/v1/detections", json={"message_id": 7, "net_confidence": 70})

    response = client.post(
        "/api/v1/detections/7/reclassify",
        json={"is_spam": False, "added_by": {"kind": "web_user", "id": "admin-1"}},
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["detection_source"] == "manual"
    assert data["net_confidence"] == -100
    assert data["used_for_training"] is True
    rows = DetectionResultRepository(db_session).get_by_message_id(7)
    assert [row.used_for_training for row in rows] == [True, False]

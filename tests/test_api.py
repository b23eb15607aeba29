"""
API tests for the trip status endpoints.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from tripflow.api.deps import Identity, get_identity
from tripflow.api.v1.trips import get_trip_service
from tripflow.core.config import get_settings
from tripflow.main import app
from tripflow.services.trips.errors import (
    BillOfLadingExistsError,
    ExclusiveUpdateError,
    TripTransactionError,
    TripValidationError,
)

ORG_ID = uuid.uuid4()
USER_ID = uuid.uuid4()
TRIP_ID = uuid.uuid4()
BASE_URL = f"/api/v1/orgs/{ORG_ID}/orders/O001/trips/T001"


@pytest.fixture
def trip_service() -> MagicMock:
    service = MagicMock()
    service.complete_bill_of_lading = AsyncMock(return_value=TRIP_ID)
    service.edit_status = AsyncMock(return_value=uuid.uuid4())
    return service


@pytest.fixture
def client(trip_service):
    app.dependency_overrides[get_identity] = lambda: Identity(
        user_id=USER_ID, organization_id=ORG_ID, jwt="token"
    )
    app.dependency_overrides[get_trip_service] = lambda: trip_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def bill_of_lading_body(**overrides) -> dict:
    body = {
        "id": str(TRIP_ID),
        "code": "T001",
        "bill_of_lading": "BL-100",
        "order": {"id": str(uuid.uuid4()), "code": "O001"},
        "total_trips": 2,
        "last_updated_at": "2024-05-01T08:00:00Z",
        "locale": "en",
    }
    body.update(overrides)
    return body


def status_body(**overrides) -> dict:
    body = {
        "id": str(TRIP_ID),
        "status": "DELIVERED",
        "driver_report_id": str(uuid.uuid4()),
    }
    body.update(overrides)
    return body


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_ready_reports_database(client):
    with patch("tripflow.main.check_database_health", AsyncMock(return_value=True)):
        ready = client.get("/ready")
    with patch("tripflow.main.check_database_health", AsyncMock(return_value=False)):
        not_ready = client.get("/ready")

    assert ready.status_code == 200
    assert ready.json()["database"] == "healthy"
    assert not_ready.status_code == 503
    assert not_ready.json()["status"] == "not_ready"


def test_bill_of_lading_returns_trip_id(client, trip_service):
    response = client.put(f"{BASE_URL}/bill-of-ladings", json=bill_of_lading_body())

    assert response.status_code == 200
    assert response.json() == {"data": str(TRIP_ID)}
    organization_id, user_id, request = trip_service.complete_bill_of_lading.call_args.args
    assert organization_id == ORG_ID
    assert user_id == USER_ID
    assert request.bill_of_lading == "BL-100"


def test_bill_of_lading_conflict(client, trip_service):
    trip_service.complete_bill_of_lading.side_effect = ExclusiveUpdateError(
        "stale", trip_id=str(TRIP_ID)
    )

    response = client.put(f"{BASE_URL}/bill-of-ladings", json=bill_of_lading_body())

    assert response.status_code == 409
    assert response.json()["code"] == "EXCLUSIVE"
    assert "changed by someone else" in response.json()["message"]


def test_bill_of_lading_duplicate_number(client, trip_service):
    trip_service.complete_bill_of_lading.side_effect = BillOfLadingExistsError(
        "exists", bill_of_lading="BL-100"
    )

    response = client.put(f"{BASE_URL}/bill-of-ladings", json=bill_of_lading_body())

    assert response.status_code == 400
    assert response.json() == {
        "code": "EXISTED",
        "message": "Bill of lading BL-100 is already used by another trip.",
    }


def test_bill_of_lading_message_uses_default_locale(client, trip_service):
    trip_service.complete_bill_of_lading.side_effect = TripTransactionError("rolled back")

    response = client.put(f"{BASE_URL}/bill-of-ladings", json=bill_of_lading_body(locale=None))

    assert response.status_code == 500
    assert response.json()["code"] == "UNKNOWN"
    assert response.json()["message"] == "Không thể hoàn tất yêu cầu. Trạng thái chưa được thay đổi."


def test_unexpected_error_is_unknown(client, trip_service):
    trip_service.complete_bill_of_lading.side_effect = RuntimeError("boom")

    response = client.put(f"{BASE_URL}/bill-of-ladings", json=bill_of_lading_body())

    assert response.status_code == 500
    assert response.json()["code"] == "UNKNOWN"


def test_edit_status_returns_status_id(client, trip_service):
    response = client.post(f"{BASE_URL}/status/edit", json=status_body())

    assert response.status_code == 200
    assert response.json() == {"data": str(trip_service.edit_status.return_value)}


def test_edit_status_stale_timestamp_conflict(client, trip_service):
    trip_service.edit_status.side_effect = ExclusiveUpdateError("stale", trip_id=str(TRIP_ID))

    response = client.post(
        f"{BASE_URL}/status/edit",
        json=status_body(
            status="DELIVERED",
            latitude=10.77,
            longitude=106.70,
            last_updated_at="2024-05-01T07:59:55Z",
        ),
    )

    assert response.status_code == 409
    assert response.json()["code"] == "EXCLUSIVE"
    request = trip_service.edit_status.call_args.args[2]
    assert request.last_updated_at.isoformat() == "2024-05-01T07:59:55+00:00"
    assert request.ignore_check_exclusives is False


def test_edit_status_validation_error_uses_accept_language(client, trip_service):
    trip_service.edit_status.side_effect = TripValidationError("Driver report id is required")

    response = client.post(
        f"{BASE_URL}/status/edit",
        json=status_body(driver_report_id=None),
        headers={"Accept-Language": "en-US,en;q=0.9"},
    )

    assert response.status_code == 400
    assert response.json() == {
        "code": "VALIDATION",
        "message": "The request is missing required information.",
    }


def test_edit_status_unknown_status_is_rejected(client, trip_service):
    response = client.post(f"{BASE_URL}/status/edit", json=status_body(status="TELEPORTED"))

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION"
    trip_service.edit_status.assert_not_called()


def test_missing_token_is_unauthorized(trip_service):
    app.dependency_overrides[get_trip_service] = lambda: trip_service
    try:
        response = TestClient(app).post(f"{BASE_URL}/status/edit", json=status_body())
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401
    trip_service.edit_status.assert_not_called()


def test_token_organization_wins_over_path(trip_service):
    token_org = uuid.uuid4()
    settings = get_settings()
    token = jwt.encode(
        {"sub": str(USER_ID), "org_id": str(token_org)},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    app.dependency_overrides[get_trip_service] = lambda: trip_service
    try:
        response = TestClient(app).post(
            f"{BASE_URL}/status/edit",
            json=status_body(),
            headers={"Authorization": f"Bearer {token}"},
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    organization_id, user_id, _ = trip_service.edit_status.call_args.args
    assert organization_id == token_org
    assert user_id == USER_ID


def test_token_without_organization_is_unauthorized(trip_service):
    settings = get_settings()
    token = jwt.encode({"sub": str(USER_ID)}, settings.secret_key, algorithm=settings.jwt_algorithm)
    app.dependency_overrides[get_trip_service] = lambda: trip_service
    try:
        response = TestClient(app).post(
            f"{BASE_URL}/status/edit",
            json=status_body(),
            headers={"Authorization": f"Bearer {token}"},
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401

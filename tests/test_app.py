"""Tests for the FastAPI webhook bridge.

The get_services dependency is overridden with a mock, so every route is
exercised without touching athenahealth.
"""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from athena_mcp.app import app
from athena_mcp.errors import AuthenticationError, SearchCriteriaError, UpstreamError
from athena_mcp.services import get_services


@pytest.fixture
def services() -> Iterator[MagicMock]:
    mock = MagicMock()
    for name in ("patients", "clinical", "scheduling", "encounters"):
        setattr(mock, name, AsyncMock())
    mock.clinical_summary = AsyncMock()
    mock.health_check = AsyncMock()

    async def _override() -> MagicMock:
        return mock

    app.dependency_overrides[get_services] = _override
    yield mock
    app.dependency_overrides.clear()


@pytest.fixture
def client(services: MagicMock) -> TestClient:
    return TestClient(app)


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "athenahealth-webhook-bridge"}


def test_index_lists_endpoints(client: TestClient) -> None:
    body = client.get("/").json()
    assert "POST /patients/search - Search for patients" in body["endpoints"]["administrative"]
    assert "PUT /encounters/{encounter_id} - Update encounter" in body["endpoints"]["encounters"]


def test_upstream_health(client: TestClient, services: MagicMock) -> None:
    services.health_check.return_value = {"status": "healthy", "timestamp": "now"}
    response = client.get("/health/upstream")
    assert response.json() == {"success": True, "data": {"status": "healthy", "timestamp": "now"}}


def test_departments(client: TestClient, services: MagicMock) -> None:
    services.scheduling.list_departments.return_value = [{"departmentid": "1"}]

    response = client.get("/departments")

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": [{"departmentid": "1"}]}


def test_department_detail(client: TestClient, services: MagicMock) -> None:
    services.scheduling.get_department.return_value = {"departmentid": "1", "name": "Main"}

    response = client.get("/departments/1")

    assert response.json() == {"success": True, "data": {"departmentid": "1", "name": "Main"}}
    services.scheduling.get_department.assert_awaited_once_with("1")


def test_providers_query_parameters(client: TestClient, services: MagicMock) -> None:
    services.scheduling.list_providers.return_value = []

    client.get("/providers", params={"specialty": "Cardiology", "limit": "5"})

    services.scheduling.list_providers.assert_awaited_once_with(
        name=None, specialty="Cardiology", limit=5
    )


def test_patient_search(client: TestClient, services: MagicMock) -> None:
    services.patients.search_patients.return_value = [{"patientid": "1"}]

    response = client.post("/patients/search", json={"lastname": "Doe"})

    assert response.json()["data"] == [{"patientid": "1"}]
    kwargs = services.patients.search_patients.call_args.kwargs
    assert kwargs["lastname"] == "Doe"
    assert kwargs["firstname"] is None


def test_patient_search_without_filters_is_500(client: TestClient, services: MagicMock) -> None:
    services.patients.search_patients.side_effect = SearchCriteriaError(
        "Please provide at least one of: firstname, lastname", fields=[], example={}
    )

    response = client.post("/patients/search", json={})

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Please provide at least one of: firstname, lastname",
    }


def test_create_patient(client: TestClient, services: MagicMock) -> None:
    services.patients.create_patient.return_value = {"patientid": "5001"}

    response = client.post(
        "/patients",
        json={
            "firstname": "John",
            "lastname": "Doe",
            "dob": "1990-01-01",
            "sex": "M",
            "department_id": "1",
        },
    )

    assert response.json() == {"success": True, "data": {"patientid": "5001"}}
    assert services.patients.create_patient.call_args.kwargs["department_id"] == "1"


def test_create_patient_missing_field_is_500(client: TestClient, services: MagicMock) -> None:
    response = client.post("/patients", json={"firstname": "John"})

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert "lastname" in body["error"]
    services.patients.create_patient.assert_not_awaited()


def test_patient_summary(client: TestClient, services: MagicMock) -> None:
    services.clinical_summary.return_value = {"patient": {"patientid": "1"}, "allergies": []}

    response = client.get("/patients/1/summary")

    assert response.json()["data"]["allergies"] == []
    services.clinical_summary.assert_awaited_once_with("1")


def test_vitals_date_filters(client: TestClient, services: MagicMock) -> None:
    services.clinical.get_vitals.return_value = [{"bp": "120/80"}]

    client.get("/patients/1/vitals", params={"start_date": "01/01/2025"})

    services.clinical.get_vitals.assert_awaited_once_with(
        "1", start_date="01/01/2025", end_date=None
    )


def test_upstream_error_is_500(client: TestClient, services: MagicMock) -> None:
    services.clinical.get_allergies.side_effect = UpstreamError(
        "Not found", error="Not found", status=404
    )

    response = client.get("/patients/1/allergies")

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "HTTP 404: Not found"}


def test_auth_error_is_500(client: TestClient, services: MagicMock) -> None:
    services.scheduling.list_departments.side_effect = AuthenticationError("Token request failed")

    response = client.get("/departments")

    assert response.status_code == 500
    assert response.json()["success"] is False


def test_unexpected_error_is_json_500(services: MagicMock) -> None:
    """Errors outside the AthenaError family still answer with the error body."""
    services.scheduling.list_departments.side_effect = RuntimeError("boom")

    # Starlette re-raises after the catch-all handler has responded
    client = TestClient(app, raise_server_exceptions=False)
    response = client.get("/departments")

    assert response.status_code == 500
    assert response.headers["content-type"] == "application/json"
    assert response.json() == {"success": False, "error": "boom"}


def test_drug_interactions(client: TestClient, services: MagicMock) -> None:
    services.clinical.check_drug_interactions.return_value = []

    response = client.post(
        "/patients/1/drug-interactions", json={"medications": ["warfarin", "aspirin"]}
    )

    assert response.json() == {"success": True, "data": []}
    services.clinical.check_drug_interactions.assert_awaited_once_with(
        "1", ["warfarin", "aspirin"]
    )


def test_acknowledge_alert(client: TestClient, services: MagicMock) -> None:
    services.clinical.acknowledge_alert.return_value = {"success": "true"}

    response = client.post("/alerts/77/acknowledge", json={"acknowledged_by": "dr.smith"})

    assert response.json()["success"] is True
    services.clinical.acknowledge_alert.assert_awaited_once_with("77", "dr.smith")


def test_update_encounter(client: TestClient, services: MagicMock) -> None:
    services.encounters.update_encounter.return_value = {"encounterid": "12"}

    response = client.put("/encounters/12", json={"status": "CLOSED"})

    assert response.json() == {"success": True, "data": {"encounterid": "12"}}
    kwargs = services.encounters.update_encounter.call_args.kwargs
    assert kwargs["status"] == "CLOSED"
    assert kwargs["diagnosis_codes"] is None

"""Integration tests for API endpoints"""

import pytest
from datetime import date, timedelta
from fastapi.testclient import TestClient

HEADERS = {"X-Company-ID": "company-1"}


@pytest.fixture
def tomorrow() -> str:
    return (date.today() + timedelta(days=1)).isoformat()


@pytest.fixture
def entry_body() -> dict:
    return {
        "amount": "2500.00",
        "routing_number": "021000021",
        "account_number": "1234567",
        "transaction_type": "credit",
        "reference_code": "E1001",
        "recipient_id": "emp-1",
        "recipient_name": "Jane Doe",
    }


def _create(client: TestClient, effective_date: str) -> dict:
    response = client.post(
        "/v1/batches",
        json={"name": "Payroll Jan", "type": "Payroll", "effective_date": effective_date},
        headers=HEADERS,
    )
    assert response.status_code == 201
    return response.json()


def test_health_endpoint(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "ach_validation_total" in response.text


def test_create_batch_response(client: TestClient, tomorrow: str):
    data = _create(client, tomorrow)

    assert data["status"] == "draft"
    assert data["entries"] == 0
    assert data["total_amount"] == 0
    assert data["type"] == "Payroll"
    assert data["effective_date"] == tomorrow
    assert "id" in data and "created_at" in data


def test_company_header_is_required(client: TestClient, tomorrow: str):
    response = client.post(
        "/v1/batches",
        json={"name": "Payroll Jan", "type": "Payroll", "effective_date": tomorrow},
    )
    assert response.status_code == 422


def test_unknown_batch_type_rejected(client: TestClient, tomorrow: str):
    response = client.post(
        "/v1/batches",
        json={"name": "Bonus", "type": "Bonus", "effective_date": tomorrow},
        headers=HEADERS,
    )
    assert response.status_code == 422


def test_add_entry_converts_display_amount(client: TestClient, tomorrow: str, entry_body: dict):
    batch = _create(client, tomorrow)

    response = client.post(f"/v1/batches/{batch['id']}/entries", json=entry_body, headers=HEADERS)

    assert response.status_code == 201
    assert response.json()["amount_cents"] == 250000

    detail = client.get(f"/v1/batches/{batch['id']}", headers=HEADERS).json()
    assert detail["entries"] == 1
    assert detail["total_amount"] == 250000


def test_add_entry_rejects_sub_cent_amount(client: TestClient, tomorrow: str, entry_body: dict):
    batch = _create(client, tomorrow)
    entry_body["amount"] = "10.001"

    response = client.post(f"/v1/batches/{batch['id']}/entries", json=entry_body, headers=HEADERS)
    assert response.status_code == 422


def test_add_entry_requires_one_amount(client: TestClient, tomorrow: str, entry_body: dict):
    batch = _create(client, tomorrow)
    entry_body["amount_cents"] = 250000

    response = client.post(f"/v1/batches/{batch['id']}/entries", json=entry_body, headers=HEADERS)
    assert response.status_code == 422


def test_validate_endpoint(client: TestClient, tomorrow: str):
    batch = _create(client, tomorrow)

    response = client.post(f"/v1/batches/{batch['id']}/validate", headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {
        "is_valid": False,
        "errors": ["Batch must contain at least one entry"],
        "warnings": [],
    }


def test_process_and_download(client: TestClient, tomorrow: str, entry_body: dict):
    batch = _create(client, tomorrow)
    client.post(f"/v1/batches/{batch['id']}/entries", json=entry_body, headers=HEADERS)

    response = client.post(f"/v1/batches/{batch['id']}/process", headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "completed"
    assert data["total_credit_cents"] == 250000
    assert data["entry_count"] == 1

    file_response = client.get(f"/v1/batches/{batch['id']}/file", headers=HEADERS)
    assert file_response.status_code == 200
    lines = file_response.text.split("\n")
    assert len(lines) == 10
    assert all(len(line) == 94 for line in lines)
    assert data["file_name"] in file_response.headers["content-disposition"]

    detail = client.get(f"/v1/batches/{batch['id']}", headers=HEADERS).json()
    assert detail["status"] == "completed"


def test_process_invalid_batch_returns_errors(client: TestClient, tomorrow: str, entry_body: dict):
    batch = _create(client, tomorrow)
    entry_body["amount"] = "0"
    client.post(f"/v1/batches/{batch['id']}/entries", json=entry_body, headers=HEADERS)

    response = client.post(f"/v1/batches/{batch['id']}/process", headers=HEADERS)

    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == ["Invalid amount for entry E1001"]
    detail = client.get(f"/v1/batches/{batch['id']}", headers=HEADERS).json()
    assert detail["status"] == "draft"


def test_reprocess_returns_conflict(client: TestClient, tomorrow: str, entry_body: dict):
    batch = _create(client, tomorrow)
    client.post(f"/v1/batches/{batch['id']}/entries", json=entry_body, headers=HEADERS)
    client.post(f"/v1/batches/{batch['id']}/process", headers=HEADERS)

    response = client.post(f"/v1/batches/{batch['id']}/process", headers=HEADERS)
    assert response.status_code == 409


def test_mark_ready_then_list(client: TestClient, tomorrow: str, entry_body: dict):
    batch = _create(client, tomorrow)
    client.post(f"/v1/batches/{batch['id']}/entries", json=entry_body, headers=HEADERS)

    ready = client.post(f"/v1/batches/{batch['id']}/ready", headers=HEADERS)
    assert ready.status_code == 200
    assert ready.json()["status"] == "ready"

    listing = client.get("/v1/batches", headers=HEADERS).json()
    assert [b["id"] for b in listing["batches"]] == [batch["id"]]


def test_other_company_cannot_see_batch(client: TestClient, tomorrow: str):
    batch = _create(client, tomorrow)

    response = client.get(f"/v1/batches/{batch['id']}", headers={"X-Company-ID": "company-2"})
    assert response.status_code == 404


def test_file_not_generated_yet(client: TestClient, tomorrow: str):
    batch = _create(client, tomorrow)

    response = client.get(f"/v1/batches/{batch['id']}/file", headers=HEADERS)
    assert response.status_code == 404

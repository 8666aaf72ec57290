from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from floorplan.database import get_read_db, get_write_db
from floorplan.main import app


@pytest.fixture()
def client(db_session):
    def _db():
        yield db_session

    app.dependency_overrides[get_write_db] = _db
    app.dependency_overrides[get_read_db] = _db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _onboard(client, limit="1000000.00"):
    dealer = client.post(
        "/dealerships",
        json={"name": "Metro Autos", "principal_contact": "S. Rao", "location": "Hyderabad"},
        headers={"X-Actor": "ops@lender.test"},
    )
    assert dealer.status_code == 201
    dealer_id = dealer.json()["id"]
    assert client.post(f"/dealerships/{dealer_id}/activate").status_code == 200

    line = client.post(
        "/credit-lines",
        json={"dealership_id": dealer_id, "total_limit": limit, "interest_rate": "12.5"},
    )
    assert line.status_code == 201
    return dealer_id, line.json()["id"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_fund_repay_and_summary_over_http(client):
    dealer_id, line_id = _onboard(client)
    vin = "MAT00000000000042"

    funded = client.post(
        "/inventory/fund",
        json={
            "dealership_id": dealer_id,
            "vin": vin,
            "financed_amount": "500000.00",
            "oem_invoice_number": "INV-42",
            "make": "Mahindra",
            "model": "XUV700",
            "year": 2024,
        },
    )
    assert funded.status_code == 201
    assert funded.json()["status"] == "IN_STOCK"

    line = client.get(f"/credit-lines/{line_id}").json()
    assert line["available_credit"] == "500000.00"

    repaid = client.post(f"/inventory/{vin}/repay", json={"repayment_amount": "510000.00"})
    assert repaid.status_code == 200
    assert repaid.json()["status"] == "REPAID"

    line = client.get(f"/credit-lines/{line_id}").json()
    assert line["available_credit"] == "1000000.00"

    again = client.post(f"/inventory/{vin}/repay", json={"repayment_amount": "1.00"})
    assert again.status_code == 409
    assert again.json()["code"] == "invalid_transition"

    conservation = client.get(f"/credit-lines/{line_id}/conservation").json()
    assert conservation["balanced"] is True

    summary = client.get("/portfolio/summary").json()
    assert summary["active_dealerships"] == 1


def test_overdraw_maps_to_conflict(client):
    dealer_id, _ = _onboard(client, limit="100.00")

    response = client.post(
        "/inventory/fund",
        json={
            "dealership_id": dealer_id,
            "vin": "MAT00000000000043",
            "financed_amount": "100.01",
            "oem_invoice_number": "INV-43",
            "make": "Tata",
            "model": "Punch",
            "year": 2024,
        },
    )

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "insufficient_credit"
    assert body["context"] == {"requested_minor": 10001, "available_minor": 10000}


def test_unknown_dealership_is_404(client):
    response = client.get("/dealerships/missing")

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"

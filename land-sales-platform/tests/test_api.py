"""
Tests for the REST API (`api/main.py`, `api/routers/*`).

Covers contract rules:
- Store errors map to 400 / 404 / 409 with the ErrorResponse body.
- Money is serialized as decimal strings.
- The ledger scenario holds end-to-end over HTTP.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from repositories.config import Settings
from repositories.sqlite_store import SQLiteLandStore


@pytest.fixture
def client(tmp_path: Path):
    db_path = tmp_path / "api.db"
    app = create_app(store=SQLiteLandStore(db_path), settings=Settings(db_path=db_path))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def buyer(client: TestClient, buyer_data: dict) -> dict:
    response = client.post("/api/buyers", json=buyer_data)
    assert response.status_code == 201
    return response.json()


def test_health_and_index(client: TestClient) -> None:
    """Verify the service endpoints."""

    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["backend"] == "sqlite"

    index = client.get("/api").json()
    assert index["endpoints"]["plots"] == "/api/plots"


def test_list_plots(client: TestClient) -> None:
    """Verify plot listing, filtering and serialization."""

    plots = client.get("/api/plots").json()
    assert len(plots) == 200
    assert plots[0] == {"id": 1, "status": "available", "price": "65800", "buyer_id": None, "sold_date": None}

    sold = client.get("/api/plots", params={"status": "sold"}).json()
    assert [p["id"] for p in sold] == [3, 7, 8, 15, 19, 32, 47, 88, 101, 120, 155, 172, 199]


def test_invalid_status_filter_is_400(client: TestClient) -> None:
    """Verify the ErrorResponse shape for invalid input."""

    response = client.get("/api/plots", params={"status": "bogus"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request"
    assert body["status_code"] == 400
    assert "bogus" in body["detail"]


@pytest.mark.parametrize(
    ("method", "path", "payload", "field"),
    [
        ("post", "/api/buyers", {"name": "Jane", "budget": "abc"}, "budget"),
        ("post", "/api/plots/bulk-update", {"plotIds": ["x"], "status": "selected"}, "plotIds.0"),
        ("post", "/api/transactions", {"buyer_id": "abc", "plot_ids": [1], "total_amount": 10}, "buyer_id"),
        ("post", "/api/transactions/payments", {"buyer_id": 1, "amount": "ten"}, "amount"),
    ],
)
def test_badly_typed_body_is_400(client: TestClient, method: str, path: str, payload: dict, field: str) -> None:
    """Verify request validation failures use the same 400 ErrorResponse as store errors."""

    response = getattr(client, method)(path, json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request"
    assert body["status_code"] == 400
    assert body["detail"].startswith(f"{field}: ")


def test_badly_typed_path_is_400(client: TestClient) -> None:
    response = client.get("/api/plots/abc")

    assert response.status_code == 400
    assert response.json()["detail"].startswith("plot_id: ")


def test_store_closed_when_initialize_fails(tmp_path: Path) -> None:
    """Verify a failed startup still closes the store."""

    closed = []

    class BrokenStore(SQLiteLandStore):
        def initialize(self) -> None:
            raise RuntimeError("schema missing")

        def close(self) -> None:
            closed.append(True)
            super().close()

    app = create_app(store=BrokenStore(tmp_path / "broken.db"), settings=Settings(db_path=tmp_path / "broken.db"))

    with pytest.raises(RuntimeError, match="schema missing"):
        with TestClient(app):
            pass

    assert closed == [True]


def test_plot_stats(client: TestClient) -> None:
    stats = client.get("/api/plots/stats").json()

    assert stats["total_plots"] == 200
    assert stats["summary"] == {"available": 187, "selected": 0, "sold": 13}
    assert stats["sold_value"] == "855400"


def test_get_plot_not_found(client: TestClient) -> None:
    response = client.get("/api/plots/999")

    assert response.status_code == 404
    assert response.json() == {"error": "Not found", "detail": "Plot not found", "status_code": 404}


def test_update_plot(client: TestClient, buyer: dict) -> None:
    """Verify single plot status changes."""

    response = client.put("/api/plots/5", json={"status": "sold", "buyer_id": buyer["id"]})
    assert response.status_code == 200
    assert response.json()["buyer_id"] == buyer["id"]
    assert response.json()["sold_date"] is not None

    assert client.put("/api/plots/5", json={"status": "bogus"}).status_code == 400
    assert client.get("/api/plots/5").json()["status"] == "sold"


def test_bulk_update(client: TestClient) -> None:
    """Verify bulk updates report the updated count and unknown ids."""

    response = client.post("/api/plots/bulk-update", json={"plotIds": [1, 2, 999], "status": "selected"})

    assert response.status_code == 200
    assert response.json() == {
        "message": "Plots updated successfully",
        "updatedCount": 2,
        "missingIds": [999],
    }
    assert client.post("/api/plots/bulk-update", json={"plotIds": [], "status": "selected"}).status_code == 400


def test_create_buyer(client: TestClient, buyer: dict, buyer_data: dict) -> None:
    """Verify buyer creation, lookup and uniqueness."""

    assert buyer["uid"] == "jane-wanjiru-28765432"
    assert buyer["budget"] == "100000"
    assert buyer["total_spent"] == "0"
    assert buyer["remaining_balance"] == "100000"

    assert client.get(f"/api/buyers/{buyer['id']}").json()["id"] == buyer["id"]
    assert client.get("/api/buyers/lookup", params={"id_number": "28765432"}).json()["id"] == buyer["id"]
    assert client.get("/api/buyers/lookup", params={"id_number": "nobody"}).status_code == 404
    assert len(client.get("/api/buyers").json()) == 1

    duplicate = client.post("/api/buyers", json=buyer_data)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "Conflict"


def test_create_buyer_missing_fields(client: TestClient) -> None:
    response = client.post("/api/buyers", json={"name": "Jane", "id_number": "1"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing required fields: phone, email, budget"


def test_update_buyer(client: TestClient, buyer: dict) -> None:
    response = client.put(f"/api/buyers/{buyer['id']}", json={"occupation": "Farmer"})

    assert response.status_code == 200
    assert response.json()["occupation"] == "Farmer"
    assert response.json()["name"] == "Jane Wanjiru"
    assert client.put("/api/buyers/999", json={"name": "X"}).status_code == 404


def test_ledger_scenario_over_http(client: TestClient, buyer: dict) -> None:
    """Verify budget 100000, purchase 65800, payment 30000."""

    created = client.post(
        "/api/transactions",
        json={"buyer_id": buyer["id"], "plot_ids": [5, 12, 5], "total_amount": 65800},
    )
    assert created.status_code == 201
    transaction = created.json()
    assert transaction["plot_ids"] == "5,12,5"
    assert transaction["plot_id_list"] == ["5", "12", "5"]
    assert transaction["payment_status"] == "pending"
    assert transaction["buyer_name"] == "Jane Wanjiru"

    after_purchase = client.get(f"/api/buyers/{buyer['id']}").json()
    assert after_purchase["total_spent"] == "65800"
    assert after_purchase["remaining_balance"] == "34200"

    paid = client.post(
        "/api/transactions/payments",
        json={"transaction_id": transaction["id"], "amount": 30000, "method": "mpesa"},
    )
    assert paid.status_code == 201
    assert paid.json()["payment"]["buyer_id"] == buyer["id"]
    assert paid.json()["transaction"]["payment_status"] == "partial"

    after_payment = client.get(f"/api/buyers/{buyer['id']}").json()
    assert after_payment["total_spent"] == "35800"
    assert after_payment["remaining_balance"] == "64200"

    balance = client.get(f"/api/transactions/{transaction['id']}/balance").json()
    assert balance["amount_paid"] == "30000"
    assert balance["amount_remaining"] == "35800"
    assert balance["label"] == "partial"

    payments = client.get("/api/transactions/payments", params={"buyer_id": buyer["id"]}).json()
    assert [p["amount"] for p in payments] == ["30000"]

    buyer_balance = client.get(f"/api/buyers/{buyer['id']}/balance").json()
    assert buyer_balance["total_outstanding"] == "35800"


def test_transaction_errors(client: TestClient, buyer: dict) -> None:
    """Verify transaction validation over HTTP."""

    missing = client.post("/api/transactions", json={"buyer_id": buyer["id"]})
    assert missing.status_code == 400
    assert missing.json()["detail"] == "Missing required fields: plot_ids, total_amount"

    unknown = client.post("/api/transactions", json={"buyer_id": 999, "plot_ids": [1], "total_amount": 10})
    assert unknown.status_code == 404

    assert client.get("/api/transactions/999").status_code == 404
    assert client.post("/api/transactions/payments", json={"amount": 10}).status_code == 400


def test_update_transaction_status(client: TestClient, buyer: dict) -> None:
    """Verify status updates and rejection of unknown statuses."""

    transaction = client.post(
        "/api/transactions", json={"buyer_id": buyer["id"], "plot_ids": "5", "total_amount": 100}
    ).json()

    ok = client.put(f"/api/transactions/{transaction['id']}/status", json={"payment_status": "paid"})
    assert ok.json()["payment_status"] == "paid"

    bad = client.put(f"/api/transactions/{transaction['id']}/status", json={"payment_status": "bogus"})
    assert bad.status_code == 400
    assert client.get(f"/api/transactions/{transaction['id']}").json()["payment_status"] == "paid"

    listed = client.get("/api/transactions", params={"payment_status": "paid"}).json()
    assert [t["id"] for t in listed] == [transaction["id"]]


def test_purchase_installments(client: TestClient, buyer_data: dict) -> None:
    """Verify the one-call purchase workflow."""

    response = client.post(
        "/api/purchases",
        json={
            "buyer": buyer_data,
            "plot_ids": [5, 6],
            "payment_mode": "installments",
            "deposit_percent": 30,
            "months": 12,
            "start_date": "2025-02-01",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["buyer_created"] is True
    assert body["total_amount"] == "131600"
    assert body["amount_paid"] == "39480"
    assert body["monthly_amount"] == "7677"
    assert body["budget_before"] == "100000"
    assert body["budget_after"] == "60520"
    assert body["transaction"]["payment_status"] == "partial"
    assert body["transaction"]["notes"].endswith("Start: 2025-02-01")
    assert body["payment"]["reference"] == "DEPOSIT"
    assert client.get("/api/plots/5").json()["status"] == "sold"


def test_purchase_rejections(client: TestClient, buyer_data: dict) -> None:
    """Verify budget and availability failures."""

    over_budget = client.post("/api/purchases", json={"buyer": buyer_data, "plot_ids": [5, 6]})
    assert over_budget.status_code == 400
    assert "Insufficient budget" in over_budget.json()["detail"]

    sold = client.post("/api/purchases", json={"buyer": buyer_data, "plot_ids": [3]})
    assert sold.status_code == 409

"""HTTP surface, end to end against the in-memory spreadsheet."""
import pytest
from fastapi.testclient import TestClient

from medstock.api.deps import get_inventory, get_session_store
from medstock.core.config import settings
from medstock.core.exceptions import RemoteError, TransportError
from medstock.main import app
from medstock.services.repository import Tables


@pytest.fixture
def client(inventory, session_store):
    app.dependency_overrides[get_inventory] = lambda: inventory
    app.dependency_overrides[get_session_store] = lambda: session_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers(client, admin):
    resp = client.post("/auth/login", json={"email": admin.email})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def _add_medicine(client, headers, **fields):
    body = {"name": "Paracetamol", "safety_stock_level": 20, **fields}
    resp = client.post("/medicines", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_routes_require_login(client):
    assert client.get("/dashboard/stats").status_code == 401
    assert client.get("/medicines", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_unknown_email_gets_generic_401(client, admin):
    resp = client.post("/auth/login", json={"email": "intruder@clinic.test"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Authentication failed"


def test_me_and_logout(client, headers, admin):
    assert client.get("/auth/me", headers=headers).json()["email"] == admin.email

    assert client.post("/auth/logout", headers=headers).json() == {"status": "logged_out"}
    assert client.get("/auth/me", headers=headers).status_code == 401


def test_medicine_lifecycle(client, headers):
    medicine = _add_medicine(client, headers, strength="500mg")

    resp = client.patch(f"/medicines/{medicine['id']}", json={"safety_stock_level": 40}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["safety_stock_level"] == 40

    client.post("/sync/refresh", headers=headers)
    listed = client.get("/medicines", headers=headers).json()
    assert [m["id"] for m in listed] == [medicine["id"]]

    resp = client.delete(f"/medicines/{medicine['id']}", headers=headers)
    assert resp.json()["status"] == "discontinued"

    client.post("/sync/refresh", headers=headers)
    assert client.get("/medicines", headers=headers).json() == []
    assert len(client.get("/medicines?include_inactive=true", headers=headers).json()) == 1


def test_edit_unknown_medicine_is_404(client, headers):
    resp = client.patch("/medicines/missing", json={"name": "X"}, headers=headers)
    assert resp.status_code == 404


def test_invalid_medicine_payload_is_422(client, headers):
    resp = client.post("/medicines", json={"name": "X", "safety_stock_level": -1}, headers=headers)
    assert resp.status_code == 422


def test_stock_update_and_read(client, headers):
    medicine = _add_medicine(client, headers)

    resp = client.put(f"/stock/{medicine['id']}", json={"quantity": 80, "reason": "received"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["quantity"] == 80

    client.post("/sync/refresh", headers=headers)
    assert client.get(f"/stock/{medicine['id']}", headers=headers).json() == {"main": 80, "subs": {}}


def test_stock_deduction(client, headers):
    medicine = _add_medicine(client, headers)
    client.put(f"/stock/{medicine['id']}", json={"quantity": 10}, headers=headers)

    resp = client.post(f"/stock/{medicine['id']}/deduct", json={"quantity": 4}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["quantity"] == 6

    resp = client.post(f"/stock/{medicine['id']}/deduct", json={"quantity": 7}, headers=headers)
    assert resp.status_code == 400
    assert client.post("/stock/missing/deduct", json={"quantity": 1}, headers=headers).status_code == 404


def test_transfer_and_dashboard(client, headers, sub_store):
    medicine = _add_medicine(client, headers)
    client.put(f"/stock/{medicine['id']}", json={"quantity": 100}, headers=headers)

    resp = client.post(
        "/transfers",
        json={"medicine_id": medicine["id"], "from_store": "main", "to_store": sub_store.id, "quantity": 90},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["status"] == "completed"

    sync = client.post("/sync/refresh", headers=headers).json()
    assert sync["counts"]["medicines"] == 1

    stats = client.get("/dashboard/stats", headers=headers).json()
    assert stats["total_medicines"] == 1
    assert stats["low_stock_count"] == 1

    alerts = client.get("/dashboard/alerts", headers=headers).json()
    assert alerts == []  # 10 of 20 is low, not critical

    transfers = client.get("/transfers", headers=headers).json()
    assert [t["quantity"] for t in transfers] == [90]

    kinds = [t["type"] for t in client.get("/transactions", headers=headers).json()]
    assert "stock_transfer" in kinds
    assert len(client.get("/transactions?limit=1", headers=headers).json()) == 1


def test_insufficient_stock_is_400(client, headers, sub_store):
    medicine = _add_medicine(client, headers)
    client.put(f"/stock/{medicine['id']}", json={"quantity": 30}, headers=headers)

    resp = client.post(
        "/transfers",
        json={"medicine_id": medicine["id"], "from_store": "main", "to_store": sub_store.id, "quantity": 50},
        headers=headers,
    )
    assert resp.status_code == 400
    assert "Insufficient stock" in resp.json()["detail"]


def test_incomplete_transfer_is_reported(client, headers, sub_store, store):
    medicine = _add_medicine(client, headers)
    client.put(f"/stock/{medicine['id']}", json={"quantity": 30}, headers=headers)

    def fail_sub_writes(table, cell_range, rows):
        if table == Tables.SUB_STORES_STOCK:
            raise TransportError("timeout")

    store.before_write = fail_sub_writes
    resp = client.post(
        "/transfers",
        json={"medicine_id": medicine["id"], "from_store": "main", "to_store": sub_store.id, "quantity": 10},
        headers=headers,
    )
    assert resp.status_code == 500
    assert resp.json()["transfer_incomplete"] is True
    assert resp.json()["transfer"]["quantity"] == 10


def test_missing_audit_entry_is_flagged(client, headers, store):
    def refuse_audit(table, cell_range, rows):
        if table == Tables.TRANSACTIONS:
            raise RemoteError("quota exceeded", status_code=429)

    store.before_write = refuse_audit
    resp = client.post("/medicines", json={"name": "Metformin"}, headers=headers)

    assert resp.status_code == 207
    body = resp.json()
    assert body["audit_missing"] is True
    assert body["result"]["name"] == "Metformin"


def test_failed_sync_is_502_and_reported(client, headers, store):
    client.post("/sync/refresh", headers=headers)

    def broken(table, cell_range):
        if table == Tables.MEDICINES:
            raise RemoteError("backend error", status_code=500)

    store.on_read = broken
    assert client.post("/sync/refresh", headers=headers).status_code == 502

    store.on_read = None
    status = client.get("/sync/status", headers=headers).json()
    assert status["version"] == 1
    assert status["error"] == "backend error"


@pytest.fixture
def unconfigured(monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_SHEETS_API_KEY", "")
    monkeypatch.setattr(settings, "SHEET_ID", "")


def test_first_sheet_setup_needs_no_login(client, session_store, unconfigured):
    assert client.post("/settings/sheets", json={"api_key": " ", "sheet_id": "s"}).status_code == 400

    resp = client.post("/settings/sheets", json={"api_key": "k", "sheet_id": "s"})
    assert resp.status_code == 200
    assert session_store.sheets_credentials() == ("k", "s")


def test_changing_configured_sheet_requires_login(client, headers, session_store, unconfigured):
    session_store.save_sheets_credentials("k", "s")

    resp = client.post("/settings/sheets", json={"api_key": "evil", "sheet_id": "theirs"})
    assert resp.status_code == 401
    assert session_store.sheets_credentials() == ("k", "s")

    resp = client.post("/settings/sheets", json={"api_key": "k2", "sheet_id": "s2"}, headers=headers)
    assert resp.status_code == 200
    assert session_store.sheets_credentials() == ("k2", "s2")


def test_manual_transaction_entry(client, headers):
    resp = client.post(
        "/transactions",
        json={"type": "stock_deduction", "description": "Dispensed on ward round"},
        headers=headers,
    )
    assert resp.status_code == 201
    assert resp.json()["user_id"] == "user-1"

"""
HTTP API tests.

Verifies:
- Requests without an active acting user return 401
- Staff are denied master-data writes (403)
- Ledger movements through the API move stock
- Exports, imports and the cost-control endpoints
"""

import io

import pytest

from hkinv.services import cost_control_service


# =============================================================================
# ACTING USER — 401 / 403
# =============================================================================


class TestActingUser:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/items"),
            ("POST", "/api/items"),
            ("GET", "/api/transactions"),
            ("POST", "/api/transactions"),
            ("GET", "/api/users"),
            ("GET", "/api/categories"),
            ("GET", "/api/suppliers"),
            ("GET", "/api/depreciations"),
            ("GET", "/api/cost-control"),
            ("GET", "/api/reports/dashboard"),
            ("GET", "/api/reports/export/items"),
            ("POST", "/api/reports/stock/reconcile"),
        ],
    )
    def test_requires_actor(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_unknown_or_malformed_user_id(self, client, db_session):
        assert client.get("/api/items", headers={"X-User-Id": "999"}).status_code == 401
        assert client.get("/api/items", headers={"X-User-Id": "abc"}).status_code == 401

    def test_non_ascii_digit_user_id(self, client, db_session):
        # "²" passes str.isdigit() but int() rejects it
        assert client.get("/api/items", headers={"X-User-Id": "²"}).status_code == 401

    def test_inactive_user_is_rejected(self, client, db_session, staff, headers):
        staff.status = "inactive"
        db_session.commit()

        assert client.get("/api/items", headers=headers(staff)).status_code == 401

    def test_health_needs_no_actor(self, client, db_session):
        resp = client.get("/api/health")

        assert resp.status_code == 200
        assert resp.json["status"] == "ok"
        assert resp.json["sync_interval_seconds"] == 30
        assert resp.json["checks"]["database"]["status"] == "healthy"


class TestStaffDenied:
    def test_cannot_create_item(self, client, staff, headers):
        resp = client.post("/api/items", json={"code": "X", "name": "X", "unit": "pcs"}, headers=headers(staff))

        assert resp.status_code == 403
        assert resp.json["required_roles"] == ["admin", "manager"]

    def test_cannot_list_users(self, client, staff, headers):
        assert client.get("/api/users", headers=headers(staff)).status_code == 403

    def test_cannot_delete_transaction(self, client, staff, headers, make_item):
        item = make_item()
        created = client.post(
            "/api/transactions",
            json={"item_id": item.id, "type": "in", "quantity": 1},
            headers=headers(staff),
        )
        assert created.status_code == 201

        resp = client.delete(f"/api/transactions/{created.json['transaction']['id']}", headers=headers(staff))
        assert resp.status_code == 403

    def test_manager_cannot_create_users(self, client, manager, headers):
        resp = client.post(
            "/api/users",
            json={"username": "x", "name": "X", "email": "x@hotel.local", "password": "long-enough"},
            headers=headers(manager),
        )
        assert resp.status_code == 403


# =============================================================================
# MASTER DATA
# =============================================================================


class TestItemsApi:
    def test_create_list_get(self, client, manager, headers):
        resp = client.post(
            "/api/items",
            json={"code": "BT-01", "name": "Bath Towel", "unit": "pcs", "min_stock": 10, "current_stock": 12},
            headers=headers(manager),
        )
        assert resp.status_code == 201
        assert resp.json["success"] is True
        item_id = resp.json["item"]["id"]

        listed = client.get("/api/items", headers=headers(manager)).json
        assert listed["count"] == 1
        assert listed["items"][0]["stock_status"] == "medium"

        got = client.get(f"/api/items/{item_id}", headers=headers(manager))
        assert got.json["item"]["code"] == "BT-01"

    def test_duplicate_code_is_conflict(self, client, manager, headers, make_item):
        make_item(code="BT-01")

        resp = client.post("/api/items", json={"code": "BT-01", "name": "x", "unit": "pcs"}, headers=headers(manager))

        assert resp.status_code == 409
        assert resp.json["error"] == "conflict"

    def test_validation_error(self, client, manager, headers):
        resp = client.post("/api/items", json={"code": "BT-01"}, headers=headers(manager))

        assert resp.status_code == 400
        assert "Missing required fields" in resp.json["message"]

    def test_missing_item_is_404(self, client, staff, headers):
        assert client.get("/api/items/999", headers=headers(staff)).status_code == 404
        assert client.get("/api/nowhere", headers=headers(staff)).json == {"error": "Not found"}

    def test_low_stock(self, client, staff, headers, make_item):
        make_item(current_stock=1, min_stock=5)
        make_item(current_stock=2, min_stock=5)
        make_item(current_stock=50, min_stock=5)

        resp = client.get("/api/items/low-stock?limit=1", headers=headers(staff))

        assert resp.json["count"] == 1
        assert resp.json["items"][0]["stock_status"] == "low"


class TestUsersApi:
    def test_admin_creates_user_and_password_is_not_returned(self, client, admin, headers):
        resp = client.post(
            "/api/users",
            json={"username": "rina", "name": "Rina", "email": "rina@hotel.local", "password": "long-enough"},
            headers=headers(admin),
        )

        assert resp.status_code == 201
        assert resp.json["user"]["role"] == "staff"
        assert "password" not in resp.json["user"]
        assert "password_hash" not in resp.json["user"]

    def test_admin_cannot_delete_self(self, client, admin, headers):
        resp = client.delete(f"/api/users/{admin.id}", headers=headers(admin))
        assert resp.status_code == 400

    def test_password_required(self, client, admin, staff, headers):
        resp = client.post(f"/api/users/{staff.id}/password", json={}, headers=headers(admin))
        assert resp.status_code == 400


class TestCategoriesAndSuppliersApi:
    def test_category_crud(self, client, manager, staff, headers):
        created = client.post("/api/categories", json={"code": "LIN", "name": "Linen"}, headers=headers(manager))
        assert created.status_code == 201
        category_id = created.json["category"]["id"]

        assert client.get("/api/categories", headers=headers(staff)).json["count"] == 1

        updated = client.put(f"/api/categories/{category_id}", json={"name": "Linens"}, headers=headers(manager))
        assert updated.json["category"]["name"] == "Linens"

        assert client.delete(f"/api/categories/{category_id}", headers=headers(manager)).status_code == 200

    def test_supplier_create(self, client, manager, headers):
        resp = client.post(
            "/api/suppliers",
            json={"code": "SUP-1", "name": "Laundry Co", "email": "ops@laundry.local"},
            headers=headers(manager),
        )
        assert resp.status_code == 201
        assert resp.json["supplier"]["status"] == "active"


# =============================================================================
# LEDGER
# =============================================================================


class TestLedgerApi:
    def test_movements_change_stock(self, client, staff, headers, make_item):
        item = make_item(current_stock=10)

        for tx_type, qty in (("in", 5), ("out", 3), ("borrow", 2)):
            resp = client.post(
                "/api/transactions",
                json={"item_id": item.id, "type": tx_type, "quantity": qty},
                headers=headers(staff),
            )
            assert resp.status_code == 201, resp.json

        got = client.get(f"/api/items/{item.id}", headers=headers(staff))
        assert got.json["item"]["current_stock"] == 10

        listed = client.get(f"/api/transactions?item_id={item.id}", headers=headers(staff)).json
        assert listed["count"] == 3
        assert all(t["user_id"] == staff.id for t in listed["items"])

    def test_bad_quantity(self, client, staff, headers, make_item):
        item = make_item()

        resp = client.post(
            "/api/transactions",
            json={"item_id": item.id, "type": "out", "quantity": 0},
            headers=headers(staff),
        )

        assert resp.status_code == 400
        assert resp.json["error"] == "validation_error"

    def test_user_id_cannot_be_rewritten(self, client, staff, manager, headers, make_item):
        item = make_item()
        created = client.post(
            "/api/transactions",
            json={"item_id": item.id, "type": "in", "quantity": 1},
            headers=headers(staff),
        ).json["transaction"]

        resp = client.put(
            f"/api/transactions/{created['id']}",
            json={"user_id": manager.id, "notes": "checked"},
            headers=headers(manager),
        )

        assert resp.status_code == 200
        assert resp.json["transaction"]["user_id"] == staff.id
        assert resp.json["transaction"]["notes"] == "checked"

    def test_overdue_filter(self, client, staff, headers, make_item):
        item = make_item()
        client.post(
            "/api/transactions",
            json={
                "item_id": item.id,
                "type": "borrow",
                "quantity": 1,
                "status": "pending",
                "date": "2024-01-01",
                "due_date": "2024-01-05",
                "borrower_id": "ROOM-101",
            },
            headers=headers(staff),
        )
        client.post("/api/transactions", json={"item_id": item.id, "type": "in", "quantity": 1}, headers=headers(staff))

        resp = client.get("/api/transactions?overdue=true", headers=headers(staff)).json

        assert resp["count"] == 1
        assert resp["items"][0]["overdue"] is True

    def test_depreciation_reduces_stock(self, client, manager, headers, make_item):
        item = make_item(current_stock=10)

        resp = client.post(
            "/api/depreciations",
            json={"item_id": item.id, "quantity": 4, "reason": "torn"},
            headers=headers(manager),
        )

        assert resp.status_code == 201
        assert client.get(f"/api/items/{item.id}", headers=headers(manager)).json["item"]["current_stock"] == 6

    def test_reconcile(self, client, manager, headers, make_item):
        make_item(current_stock=10)

        resp = client.post("/api/reports/stock/reconcile", json={"fix": True}, headers=headers(manager))

        assert resp.status_code == 200
        assert resp.json["drift"] == []
        assert resp.json["message"] == "Stock is consistent."


# =============================================================================
# REPORTS, EXPORTS, IMPORTS
# =============================================================================


class TestReportsApi:
    def test_dashboard(self, client, staff, headers, make_item):
        make_item(current_stock=1)

        resp = client.get("/api/reports/dashboard", headers=headers(staff))

        assert resp.status_code == 200
        assert resp.json["counts"]["items"] == 1
        assert resp.json["low_stock_total"] == 1

    def test_notifications(self, client, staff, headers, make_item):
        make_item(current_stock=1)

        resp = client.get("/api/reports/notifications", headers=headers(staff))

        assert resp.json["items"][0]["kind"] == "low_stock"

    def test_export_items(self, client, staff, headers, make_item):
        make_item(code="BT-01")

        resp = client.get("/api/reports/export/items", headers=headers(staff))

        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        lines = resp.get_data(as_text=True).splitlines()
        assert lines[0].startswith("ID,Code,Name")
        assert ",BT-01," in lines[1]

    def test_export_transactions_in_range(self, client, staff, headers, make_item):
        item = make_item()
        for on in ("2024-03-01", "2024-05-01"):
            client.post(
                "/api/transactions",
                json={"item_id": item.id, "type": "in", "quantity": 1, "date": on},
                headers=headers(staff),
            )

        resp = client.get("/api/reports/export/transactions?start=2024-03-01&end=2024-03-31", headers=headers(staff))

        lines = resp.get_data(as_text=True).splitlines()
        assert len(lines) == 2
        assert lines[1].endswith("2024-03-01,,")

    def test_export_bad_range(self, client, staff, headers):
        resp = client.get("/api/reports/export/transactions?start=2024-03-31&end=2024-03-01", headers=headers(staff))
        assert resp.status_code == 400

    def test_unknown_export(self, client, staff, headers):
        assert client.get("/api/reports/export/secrets", headers=headers(staff)).status_code == 400

    def test_import_items_file(self, client, manager, headers):
        data = {"file": (io.BytesIO(b"Code,Name,Unit,MinStock\nBT-01,Bath Towel,pcs,5\nBT-02,,pcs,5\n"), "items.csv")}

        resp = client.post(
            "/api/reports/import/items",
            data=data,
            content_type="multipart/form-data",
            headers=headers(manager),
        )

        assert resp.status_code == 200
        assert resp.json["imported"] == 1
        assert resp.json["failed"] == 1
        assert resp.json["errors"][0]["row"] == 3

    def test_import_items_nothing_valid(self, client, manager, headers):
        resp = client.post(
            "/api/reports/import/items",
            data="Code,Name\nBT-01,Bath Towel\n",
            content_type="text/csv",
            headers=headers(manager),
        )

        assert resp.status_code == 400
        assert resp.json["success"] is False

    def test_import_unsupported_format(self, client, manager, headers):
        data = {"file": (io.BytesIO(b"x"), "items.pdf")}

        resp = client.post(
            "/api/reports/import/items",
            data=data,
            content_type="multipart/form-data",
            headers=headers(manager),
        )

        assert resp.status_code == 400


# =============================================================================
# COST CONTROL
# =============================================================================


class TestCostControlApi:
    @pytest.fixture
    def towel(self, db_session):
        cost_control_service.seed_cost_items()
        return next(c for c in cost_control_service.list_cost_items() if c.name == "Bath Towel Baru")

    def test_report_and_export(self, client, manager, headers, towel):
        created = client.post(
            "/api/cost-control/logs",
            json={"item_id": towel.id, "date": "2024-03-05", "out_quantity": 10},
            headers=headers(manager),
        )
        assert created.status_code == 201

        report = client.get("/api/cost-control?month=3&year=2024", headers=headers(manager)).json
        row = next(r for r in report["rows"] if r["item_id"] == towel.id)
        assert row["total_cost"] == 26000

        export = client.get("/api/cost-control/export?month=3&year=2024", headers=headers(manager))
        assert "cost_control_2024_03.csv" in export.headers["Content-Disposition"]
        lines = export.get_data(as_text=True).splitlines()
        assert lines[0] == "No,Item,PickUpDate,QtyPickUp,Pending,Returned,Price,TotalCost"
        assert f"{towel.id},Bath Towel Baru,2024-03-05,10,0,0,2600,26000" in lines

    def test_invalid_month(self, client, manager, headers, towel):
        resp = client.get("/api/cost-control?month=13&year=2024", headers=headers(manager))
        assert resp.status_code == 400

    def test_price_update(self, client, manager, headers, towel):
        resp = client.put(f"/api/cost-control/items/{towel.id}/price", json={"price": 3000}, headers=headers(manager))

        assert resp.status_code == 200
        assert resp.json["cost_item"]["price"] == 3000
        assert client.put(
            f"/api/cost-control/items/{towel.id}/price", json={}, headers=headers(manager)
        ).status_code == 400

    def test_price_import(self, client, manager, headers, towel):
        resp = client.post(
            "/api/cost-control/prices/import",
            data=f"itemId,price\n{towel.id},2800\n",
            content_type="text/csv",
            headers=headers(manager),
        )

        assert resp.status_code == 200
        assert resp.json["report"]["imported"] == 1

    def test_staff_denied(self, client, staff, headers, towel):
        assert client.get("/api/cost-control", headers=headers(staff)).status_code == 403

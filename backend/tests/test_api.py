"""
HTTP API tests.

Verifies:
- Unauthenticated requests return 401, Seller denied Admin routes (403)
- Product CRUD, cart and checkout flow end to end
- Deleting a product purges it from open carts
"""

import pytest

from conftest import auth_headers, login, SELLER_EMAIL, SELLER_PASSWORD


def _create(client, headers, **body):
    payload = {"name": "Red Apples", "price_cents": 100, "cost_price_cents": 60, "quantity": 10, "min_threshold": 2}
    payload.update(body)
    resp = client.post("/api/products", json=payload, headers=headers)
    assert resp.status_code == 201, resp.json
    return resp.json


# =============================================================================
# AUTH
# =============================================================================


class TestAuth:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/cart"),
            ("POST", "/api/checkout"),
            ("GET", "/api/transactions"),
            ("GET", "/api/reports/dashboard"),
            ("GET", "/api/reports/finance"),
            ("GET", "/api/insights"),
            ("GET", "/api/settings"),
            ("GET", "/api/sellers"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_admin_login_and_me(self, client):
        token = login(client, role="Admin", password="admin")
        assert token

        resp = client.get("/api/auth/me", headers=auth_headers(token))
        assert resp.status_code == 200
        assert resp.json["user"]["role"] == "Admin"
        assert resp.json["user"]["name"] == "Super Admin"

    def test_wrong_pin(self, client):
        resp = client.post("/api/auth/login", json={"role": "Admin", "password": "wrong"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid Administrator Pin"

    def test_wrong_seller_credentials(self, client, seller):
        resp = client.post("/api/auth/login", json={"role": "Seller", "email": SELLER_EMAIL, "password": "nope"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid Seller Credentials"

    def test_missing_fields(self, client):
        assert client.post("/api/auth/login", json={"role": "Admin"}).status_code == 400
        assert client.post("/api/auth/login", json={"role": "Guest", "password": "x"}).status_code == 400

    def test_logout_revokes_token(self, client, admin_headers):
        assert client.post("/api/auth/logout", headers=admin_headers).status_code == 200
        assert client.get("/api/auth/me", headers=admin_headers).status_code == 401


class TestSellerDenied:

    def test_cannot_create_product(self, client, seller_headers):
        resp = client.post("/api/products", json={"name": "X", "price_cents": 1}, headers=seller_headers)
        assert resp.status_code == 403

    def test_cannot_view_finance(self, client, seller_headers):
        assert client.get("/api/reports/finance", headers=seller_headers).status_code == 403

    def test_cannot_manage_sellers(self, client, seller_headers):
        assert client.get("/api/sellers", headers=seller_headers).status_code == 403

    def test_can_read_dashboard(self, client, seller_headers):
        assert client.get("/api/reports/dashboard", headers=seller_headers).status_code == 200


# =============================================================================
# PRODUCTS
# =============================================================================


@pytest.mark.parametrize("storage_backend", ["sql", "memory"])
class TestProducts:

    def test_create_generates_sku(self, client, admin_headers, storage_backend):
        product = _create(client, admin_headers, name="Red Apples")
        assert product["sku"] == "RS100"
        assert product["is_low_stock"] is False

    def test_sku_not_writable(self, client, admin_headers, storage_backend):
        resp = client.post("/api/products", json={"name": "X", "price_cents": 1, "sku": "AB001"}, headers=admin_headers)
        assert resp.status_code == 400

    @pytest.mark.parametrize(
        "body",
        [
            {"price_cents": 100},
            {"name": "X", "price_cents": -1},
            {"name": "X", "price_cents": 1, "quantity": 1.5},
            {"name": "X", "price_cents": 1, "tags": "fresh"},
            {"name": "X", "price_cents": 1, "expiry_date": "tomorrow"},
        ],
    )
    def test_create_validation(self, client, admin_headers, storage_backend, body):
        assert client.post("/api/products", json=body, headers=admin_headers).status_code == 400

    def test_update_and_get(self, client, admin_headers, storage_backend):
        product = _create(client, admin_headers)
        resp = client.put(
            f"/api/products/{product['id']}",
            json={"price_cents": 150, "expiry_date": "2026-12-31", "tags": [" fruit "]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["price_cents"] == 150
        assert resp.json["expiry_date"] == "2026-12-31"
        assert resp.json["tags"] == ["fruit"]
        assert resp.json["sku"] == product["sku"]

        assert client.get(f"/api/products/{product['id']}", headers=admin_headers).json["price_cents"] == 150
        assert client.put("/api/products/missing", json={"name": "Y"}, headers=admin_headers).status_code == 404

    def test_search(self, client, admin_headers, storage_backend):
        _create(client, admin_headers, name="Red Apples")
        _create(client, admin_headers, name="Whole Milk 1L")
        resp = client.get("/api/products?q=milk", headers=admin_headers)
        assert [p["name"] for p in resp.json["items"]][0] == "Whole Milk 1L"

    def test_restock(self, client, admin_headers, storage_backend):
        product = _create(client, admin_headers, quantity=1)
        resp = client.post(f"/api/products/{product['id']}/restock", json={"quantity": 9}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["product"]["quantity"] == 10
        assert resp.json["transaction"]["type"] == "RESTOCK"

        bad = client.post(f"/api/products/{product['id']}/restock", json={"quantity": 0}, headers=admin_headers)
        assert bad.status_code == 400

    def test_delete_purges_open_carts(self, client, admin_headers, seller_headers, storage_backend):
        product = _create(client, admin_headers)
        client.post("/api/cart/items", json={"product_id": product["id"]}, headers=seller_headers)
        client.post("/api/cart/items", json={"product_id": product["id"]}, headers=admin_headers)

        resp = client.delete(f"/api/products/{product['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["cart_lines_removed"] == 2
        assert client.get("/api/cart", headers=seller_headers).json["line_count"] == 0
        assert client.delete(f"/api/products/{product['id']}", headers=admin_headers).status_code == 404


# =============================================================================
# CART + CHECKOUT
# =============================================================================


@pytest.mark.parametrize("storage_backend", ["sql", "memory"])
class TestCheckoutFlow:

    def test_end_to_end(self, client, admin_headers, seller_headers, storage_backend):
        product = _create(client, admin_headers, name="A", price_cents=100, cost_price_cents=60, quantity=10)
        pid = product["id"]

        assert client.post("/api/cart/items", json={"product_id": pid}, headers=seller_headers).status_code == 201
        resp = client.patch(f"/api/cart/items/{pid}", json={"delta": 1}, headers=seller_headers)
        assert resp.json["line"]["cart_quantity"] == 2

        resp = client.post("/api/checkout", headers=seller_headers)
        assert resp.status_code == 201
        tx = resp.json["transaction"]
        assert tx["total_cents"] == 200
        assert tx["total_cost_cents"] == 120
        assert tx["type"] == "SALE"
        assert tx["recorded_by"] == "Sam Seller"
        assert resp.json["cart"]["line_count"] == 0

        assert client.get(f"/api/products/{pid}", headers=seller_headers).json["quantity"] == 8
        listed = client.get("/api/transactions", headers=seller_headers).json
        assert listed["count"] == 1
        assert client.get(f"/api/transactions/{tx['id'].lower()}", headers=seller_headers).status_code == 200

        finance = client.get("/api/reports/finance?window=Today", headers=admin_headers).json["summary"]
        assert finance["revenue_cents"] == 200
        assert finance["margin"] == 40.0

    def test_empty_cart(self, client, seller_headers, storage_backend):
        resp = client.post("/api/checkout", headers=seller_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Cart is empty"

    def test_carts_are_per_session(self, client, admin_headers, seller_headers, storage_backend):
        product = _create(client, admin_headers)
        client.post("/api/cart/items", json={"product_id": product["id"]}, headers=seller_headers)
        assert client.get("/api/cart", headers=admin_headers).json["line_count"] == 0
        assert client.get("/api/cart", headers=seller_headers).json["line_count"] == 1

    def test_quantity_never_below_one(self, client, admin_headers, seller_headers, storage_backend):
        product = _create(client, admin_headers)
        client.post("/api/cart/items", json={"product_id": product["id"]}, headers=seller_headers)
        resp = client.patch(f"/api/cart/items/{product['id']}", json={"delta": -5}, headers=seller_headers)
        assert resp.json["line"]["cart_quantity"] == 1
        assert client.patch(f"/api/cart/items/{product['id']}", json={}, headers=seller_headers).status_code == 400
        assert client.delete(f"/api/cart/items/{product['id']}", headers=seller_headers).json["line_count"] == 0
        assert client.delete(f"/api/cart/items/{product['id']}", headers=seller_headers).status_code == 404

    def test_unknown_product_in_cart(self, client, seller_headers, storage_backend):
        resp = client.post("/api/cart/items", json={"product_id": "missing"}, headers=seller_headers)
        assert resp.status_code == 404

    def test_reject_policy_returns_conflict(self, app, client, admin_headers, seller_headers, storage_backend):
        app.config["STOCK_OVERSELL_POLICY"] = "reject"
        product = _create(client, admin_headers, quantity=1)
        client.post("/api/cart/items", json={"product_id": product["id"]}, headers=seller_headers)
        client.patch(f"/api/cart/items/{product['id']}", json={"delta": 1}, headers=seller_headers)

        resp = client.post("/api/checkout", headers=seller_headers)

        assert resp.status_code == 409
        assert resp.json["details"]["on_hand"] == 1
        assert client.get("/api/cart", headers=seller_headers).json["line_count"] == 1
        assert client.get("/api/transactions", headers=seller_headers).json["count"] == 0


# =============================================================================
# REPORTS, INSIGHTS, SETTINGS, SELLERS
# =============================================================================


def test_finance_rejects_unknown_window(client, admin_headers):
    assert client.get("/api/reports/finance?window=Yesterday", headers=admin_headers).status_code == 400


def test_dashboard(client, admin_headers):
    _create(client, admin_headers, name="Gone", quantity=0)
    body = client.get("/api/reports/dashboard", headers=admin_headers).json
    assert body["stats"]["out_of_stock_count"] == 1
    assert body["stock_alerts"][0]["status"] == "OUT_OF_STOCK"


def test_insights_refresh(client, admin_headers, fake_advisor):
    _create(client, admin_headers, name="Whole Milk 1L", quantity=1, min_threshold=5)

    assert client.get("/api/insights", headers=admin_headers).json["status"] == "idle"

    resp = client.post("/api/insights/refresh", headers=admin_headers)
    assert resp.status_code == 202
    assert resp.json["status"] == "ready"
    assert resp.json["insight"]["recommendations"] == ["Reorder milk"]
    assert "Whole Milk 1L" in fake_advisor.prompts[0]
    assert "TEST MART" in fake_advisor.prompts[0]


def test_insights_failure_is_contained(client, admin_headers, fake_advisor):
    fake_advisor.fail = True
    resp = client.post("/api/insights/refresh", headers=admin_headers)
    assert resp.status_code == 202
    assert resp.json["insight"] is None
    assert resp.json["last_error"] == "model offline"


def test_settings(client, admin_headers):
    assert client.get("/api/settings", headers=admin_headers).json["name"] == "TEST MART"

    resp = client.put("/api/settings", json={"name": "Corner Shop", "admin_password": "n3wpin"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json["name"] == "Corner Shop"
    assert login(client, role="Admin", password="n3wpin")
    assert client.put("/api/settings", json={"admin_password": "ab"}, headers=admin_headers).status_code == 400


def test_seller_management(client, admin_headers):
    resp = client.post(
        "/api/sellers",
        json={"email": "new@store.local", "name": "New Seller", "password": "pass1234"},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    seller_id = resp.json["id"]

    dup = client.post(
        "/api/sellers",
        json={"email": "NEW@store.local", "name": "Copy", "password": "pass1234"},
        headers=admin_headers,
    )
    assert dup.status_code == 409
    assert client.get("/api/sellers", headers=admin_headers).json["count"] == 1

    token = login(client, role="Seller", email="new@store.local", password="pass1234")
    assert client.delete(f"/api/sellers/{seller_id}", headers=admin_headers).json["sessions_closed"] == 1
    assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401
    assert client.delete(f"/api/sellers/{seller_id}", headers=admin_headers).status_code == 404


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"
    assert resp.json["storage_backend"] == "sql"


def test_cors_header(client):
    resp = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
    assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
    resp = client.get("/api/health", headers={"Origin": "http://evil.example"})
    assert "Access-Control-Allow-Origin" not in resp.headers


def test_transaction_filters(client, admin_headers):
    product = _create(client, admin_headers, quantity=1)
    client.post(f"/api/products/{product['id']}/restock", json={"quantity": 4}, headers=admin_headers)
    client.post("/api/cart/items", json={"product_id": product["id"]}, headers=admin_headers)
    client.post("/api/checkout", headers=admin_headers)

    assert client.get("/api/transactions", headers=admin_headers).json["count"] == 2
    assert client.get("/api/transactions?type=sale", headers=admin_headers).json["count"] == 1
    assert client.get("/api/transactions?since=2000-01-01T00:00:00Z", headers=admin_headers).json["count"] == 2
    assert client.get("/api/transactions?until=2000-01-01T00:00:00Z", headers=admin_headers).json["count"] == 0
    assert client.get("/api/transactions?since=yesterday", headers=admin_headers).status_code == 400

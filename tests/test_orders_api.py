from __future__ import annotations

from sqlalchemy.exc import OperationalError

from conftest import bearer, order_payload
from storefront.core.config import get_settings
from storefront.domain.orders.service import OrderService


def test_order_lifecycle_over_http(client, customer, admin, make_product, stock_of):
    product_id = make_product(price=600000, stock=5)

    created = client.post("/api/orders", json=order_payload([(product_id, 2)]), headers=bearer(customer))
    assert created.status_code == 201
    body = created.json()
    assert body["message"] == "Order created successfully"
    order = body["order"]
    assert order["pricing"]["total"] == 1320000
    assert order["pricing"]["display"]["total"] == "1.320.000 ₫"
    assert order["status_label"] == "Chờ xác nhận"
    assert order["items"][0]["product"]["name"].startswith("Product")
    assert stock_of(product_id) == 3

    fetched = client.get(f"/api/orders/{order['id']}", headers=bearer(customer))
    assert fetched.status_code == 200
    assert fetched.json()["order"]["order_number"] == order["order_number"]

    listed = client.get("/api/orders", headers=bearer(customer))
    assert listed.status_code == 200
    assert listed.json()["pagination"]["total_items"] == 1

    shipped = client.put(
        f"/api/orders/admin/{order['id']}/status",
        json={"status": "shipped", "note": "handed to carrier"},
        headers=bearer(admin),
    )
    assert shipped.status_code == 200
    assert shipped.json()["order"]["timeline"][-1]["note"] == "handed to carrier"

    blocked = client.put(f"/api/orders/{order['id']}/cancel", json={}, headers=bearer(customer))
    assert blocked.status_code == 409
    assert blocked.json()["code"] == "CANNOT_CANCEL_SHIPPED_ORDER"
    assert stock_of(product_id) == 3

    client.put(
        f"/api/orders/admin/{order['id']}/status",
        json={"status": "confirmed"},
        headers=bearer(admin),
    )
    cancelled = client.put(
        f"/api/orders/{order['id']}/cancel",
        json={"reason": "found it cheaper"},
        headers=bearer(customer),
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["order"]["status"] == "cancelled"
    assert stock_of(product_id) == 5

    again = client.put(f"/api/orders/{order['id']}/cancel", headers=bearer(customer))
    assert again.status_code == 409
    assert again.json()["code"] == "ORDER_ALREADY_CANCELLED"


def test_validation_errors_are_field_level(client, customer):
    resp = client.post(
        "/api/orders",
        json={"items": [], "payment_method": "cash", "shipping_address": {"first_name": "Lan"}},
        headers=bearer(customer),
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "VALIDATION_FAILED"
    fields = {e["field"] for e in body["errors"]}
    assert "items" in fields
    assert "shipping_address.phone" in fields


def test_not_found_and_conflict_codes(client, customer, make_product):
    missing = client.post("/api/orders", json=order_payload([("no-such-product", 1)]), headers=bearer(customer))
    assert missing.status_code == 404
    assert missing.json()["code"] == "PRODUCT_NOT_FOUND"

    inactive_id = make_product(status="inactive")
    inactive = client.post("/api/orders", json=order_payload([(inactive_id, 1)]), headers=bearer(customer))
    assert inactive.status_code == 409
    assert inactive.json()["code"] == "PRODUCT_NOT_AVAILABLE"

    low_id = make_product(stock=1)
    low = client.post("/api/orders", json=order_payload([(low_id, 2)]), headers=bearer(customer))
    assert low.status_code == 409
    assert low.json()["code"] == "INSUFFICIENT_STOCK"

    order = client.get("/api/orders/no-such-order", headers=bearer(customer))
    assert order.status_code == 404
    assert order.json()["code"] == "ORDER_NOT_FOUND"


def test_other_customers_cannot_see_or_cancel(client, customer, other_customer, make_product):
    product_id = make_product()
    order = client.post("/api/orders", json=order_payload([(product_id, 1)]), headers=bearer(customer)).json()["order"]

    assert client.get(f"/api/orders/{order['id']}", headers=bearer(other_customer)).status_code == 404
    assert client.put(f"/api/orders/{order['id']}/cancel", headers=bearer(other_customer)).status_code == 404


def test_auth_is_required_and_admin_routes_are_gated(client, customer, admin, make_product):
    assert client.get("/api/orders").status_code == 401
    assert client.get("/api/orders", headers={"Authorization": "Bearer not-a-token"}).status_code == 401
    assert client.get("/api/orders", headers={"Authorization": "Basic abc"}).status_code == 401

    denied = client.get("/api/orders/admin/all", headers=bearer(customer))
    assert denied.status_code == 403
    assert denied.json()["code"] == "ADMIN_REQUIRED"

    product_id = make_product()
    order = client.post("/api/orders", json=order_payload([(product_id, 1)]), headers=bearer(customer)).json()["order"]
    forbidden = client.put(
        f"/api/orders/admin/{order['id']}/status",
        json={"status": "delivered"},
        headers=bearer(customer),
    )
    assert forbidden.status_code == 403

    bad_status = client.put(
        f"/api/orders/admin/{order['id']}/status",
        json={"status": "lost"},
        headers=bearer(admin),
    )
    assert bad_status.status_code == 400

    listing = client.get(
        "/api/orders/admin/all",
        params={"search": order["order_number"], "status": "pending"},
        headers=bearer(admin),
    )
    assert listing.status_code == 200
    assert [o["id"] for o in listing.json()["orders"]] == [order["id"]]


def test_stats_endpoint(client, customer, make_product):
    product_id = make_product(price=100000, stock=5)
    client.post("/api/orders", json=order_payload([(product_id, 1)]), headers=bearer(customer))
    client.post("/api/orders", json=order_payload([(product_id, 1)]), headers=bearer(customer))

    resp = client.get("/api/orders/stats", headers=bearer(customer))
    assert resp.status_code == 200
    stats = resp.json()["stats"]
    assert stats == [{"status": "pending", "count": 2, "total_amount": 320000}]


def test_storage_failures_surface_as_internal_error(client, customer, monkeypatch):
    def broken(self, principal, page=None, limit=None, status=None):
        raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

    monkeypatch.setattr(OrderService, "list_orders", broken)

    dev = client.get("/api/orders", headers=bearer(customer))
    assert dev.status_code == 500
    assert dev.json()["code"] == "INTERNAL_ERROR"
    assert "disk I/O error" in dev.json()["error"]

    settings = get_settings()
    monkeypatch.setattr(settings, "env", "prod")
    prod = client.get("/api/orders", headers=bearer(customer))
    assert prod.status_code == 500
    assert prod.json() == {"message": "Internal server error", "code": "INTERNAL_ERROR"}


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}

"""Integration tests for the order, vendor, courier and admin endpoints via TestClient."""

import pytest


@pytest.fixture()
def checkout(client, customer, stocked, address):
    def _checkout(quantity=2, payment_method="prepaid", **extra):
        stocked("prod-001", sale_price=100.0, inventory=10)
        client.post("/cart/items", json={"product_id": "prod-001", "quantity": quantity}, headers=customer)
        return client.post(
            "/orders",
            json={"shipping_address": address, "payment_method": payment_method, **extra},
            headers=customer,
        )

    return _checkout


def _status(client, order_id, status, headers):
    return client.patch(f"/orders/{order_id}/status", json={"status": status}, headers=headers)


class TestPlaceOrderAPI:
    def test_place_order(self, checkout):
        response = checkout()

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["pricing"]["total"] == 260.0
        assert body["payment_status"] == "processing"

    def test_empty_cart(self, client, customer, address):
        response = client.post(
            "/orders", json={"shipping_address": address, "payment_method": "cod"}, headers=customer
        )
        assert response.status_code == 409
        assert response.json()["error"] == "empty_cart"

    def test_invalid_pin_code(self, client, customer, address):
        address["pin_code"] = "12"
        response = client.post(
            "/orders", json={"shipping_address": address, "payment_method": "cod"}, headers=customer
        )
        assert response.status_code == 422

    def test_no_available_items(self, client, customer, stocked, catalog, address):
        stocked("prod-001")
        client.post("/cart/items", json={"product_id": "prod-001", "quantity": 1}, headers=customer)
        catalog.update_product("prod-001", vendor_active=False)

        response = client.post(
            "/orders", json={"shipping_address": address, "payment_method": "cod"}, headers=customer
        )

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "no_available_items"
        assert body["details"]["removed_items"][0]["reason"] == "Vendor is inactive"

    def test_idempotent_retry(self, checkout, client, customer, address):
        first = checkout(idempotency_key="retry-1").json()
        replay = client.post(
            "/orders",
            json={"shipping_address": address, "payment_method": "prepaid", "idempotency_key": "retry-1"},
            headers=customer,
        )
        assert replay.status_code == 201
        assert replay.json()["order_id"] == first["order_id"]


class TestOrderQueriesAPI:
    def test_customer_lists_own_orders(self, client, customer, checkout):
        checkout()
        body = client.get("/orders", headers=customer).json()
        assert body["total"] == 1
        assert len(body["orders"]) == 1

    def test_other_customer_cannot_view(self, client, checkout):
        order_id = checkout().json()["order_id"]
        response = client.get(f"/orders/{order_id}", headers={"X-User-Id": "cust-999"})
        assert response.status_code == 403

    def test_vendor_view(self, client, checkout, vendor):
        order_id = checkout().json()["order_id"]
        body = client.get(f"/orders/{order_id}", headers=vendor).json()
        assert body["vendor_pricing"]["items_subtotal"] == 200.0

    def test_vendor_lists_orders(self, client, checkout, vendor):
        checkout()
        body = client.get("/vendor/orders", headers=vendor).json()
        assert body["total"] == 1

    def test_unknown_order(self, client, customer):
        assert client.get("/orders/does-not-exist", headers=customer).status_code == 404

    def test_customer_invoice(self, client, customer, checkout):
        order = checkout().json()
        body = client.get(f"/orders/{order['order_id']}/invoice", headers=customer).json()
        assert body["invoice_number"] == order["order_number"]
        assert body["pricing"]["total"] == 260.0

    def test_vendor_invoice_carries_its_share(self, client, checkout, vendor):
        order_id = checkout().json()["order_id"]
        body = client.get(f"/orders/{order_id}/invoice", headers=vendor).json()
        assert body["vendor_ids"] == ["vendor-001"]
        assert body["pricing"]["subtotal"] == 200.0
        assert body["pricing"]["handling"] == 50.0
        assert body["pricing"]["total"] == 260.0

    def test_other_vendor_cannot_see_invoice(self, client, checkout):
        order_id = checkout().json()["order_id"]
        response = client.get(f"/orders/{order_id}/invoice", headers={"X-Vendor-Id": "vendor-002"})
        assert response.status_code == 403


class TestOrderLifecycleAPI:
    def test_customer_cancels(self, client, customer, checkout, catalog):
        order_id = checkout().json()["order_id"]

        response = client.post(f"/orders/{order_id}/cancel", json={"reason": "Ordered twice"}, headers=customer)

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert catalog.get_product("prod-001").inventory == 10

    def test_invalid_transition(self, client, checkout, vendor):
        order_id = checkout().json()["order_id"]
        response = _status(client, order_id, "ready", vendor)
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    def test_customer_cannot_confirm(self, client, customer, checkout):
        order_id = checkout().json()["order_id"]
        assert _status(client, order_id, "confirmed", customer).status_code == 403

    def test_admin_settles_payment(self, client, checkout, admin):
        order_id = checkout().json()["order_id"]
        response = client.post(f"/orders/{order_id}/payment", json={"succeeded": True}, headers=admin)
        assert response.json() == {"status": "completed"}

    def test_update_notes(self, client, customer, checkout):
        order_id = checkout().json()["order_id"]
        client.patch(f"/orders/{order_id}/notes", json={"notes": "Gate code 42"}, headers=customer)
        assert client.get(f"/orders/{order_id}", headers=customer).json()["notes"] == "Gate code 42"


class TestCourierFlowAPI:
    def test_ready_accept_deliver(self, client, checkout, vendor, admin):
        courier_id = client.post(
            "/couriers", json={"name": "Ravi", "vendor_id": "vendor-001"}, headers=vendor
        ).json()["courier_id"]
        order_id = checkout().json()["order_id"]
        for status in ("confirmed", "processing", "ready"):
            assert _status(client, order_id, status, vendor).status_code == 200

        courier = {"X-Courier-Id": courier_id}
        accepted = client.post(f"/courier/orders/{order_id}/accept", headers=courier)
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "out_for_delivery"

        delivered = client.post(f"/courier/orders/{order_id}/deliver", headers=courier)
        assert delivered.json()["status"] == "delivered"

    def test_courier_listings(self, client, checkout, vendor):
        courier_id = client.post(
            "/couriers", json={"name": "Ravi", "vendor_id": "vendor-001"}, headers=vendor
        ).json()["courier_id"]
        courier = {"X-Courier-Id": courier_id}
        order_id = checkout().json()["order_id"]
        for status in ("confirmed", "processing", "ready"):
            _status(client, order_id, status, vendor)

        available = client.get("/courier/orders/available", headers=courier).json()
        assert [o["order_id"] for o in available["orders"]] == [order_id]
        assert client.get("/courier/orders", headers=courier).json()["total"] == 0

        client.post(f"/courier/orders/{order_id}/accept", headers=courier)

        assert client.get("/courier/orders/available", headers=courier).json()["total"] == 0
        mine = client.get("/courier/orders", params={"status": "out_for_delivery"}, headers=courier).json()
        assert [o["order_id"] for o in mine["orders"]] == [order_id]

    def test_inactive_courier_sees_nothing_available(self, client, checkout, vendor):
        courier_id = client.post(
            "/couriers", json={"name": "Ravi", "vendor_id": "vendor-001"}, headers=vendor
        ).json()["courier_id"]
        order_id = checkout().json()["order_id"]
        for status in ("confirmed", "processing", "ready"):
            _status(client, order_id, status, vendor)
        client.patch(f"/couriers/{courier_id}/availability", json={"is_active": False}, headers=vendor)

        body = client.get("/courier/orders/available", headers={"X-Courier-Id": courier_id}).json()
        assert body == {"orders": [], "total": 0, "page": 1, "per_page": 20}

    def test_second_courier_gets_conflict(self, client, checkout, vendor):
        ids = [
            client.post("/couriers", json={"name": name, "vendor_id": "vendor-001"}, headers=vendor).json()[
                "courier_id"
            ]
            for name in ("Ravi", "Anu")
        ]
        order_id = checkout().json()["order_id"]
        for status in ("confirmed", "processing", "ready"):
            _status(client, order_id, status, vendor)

        client.post(f"/courier/orders/{order_id}/accept", headers={"X-Courier-Id": ids[0]})
        response = client.post(f"/courier/orders/{order_id}/accept", headers={"X-Courier-Id": ids[1]})

        assert response.status_code == 409
        assert response.json()["error"] == "assignment_conflict"

    def test_vendor_cannot_register_for_another_vendor(self, client, vendor):
        response = client.post("/couriers", json={"name": "Ravi", "vendor_id": "vendor-002"}, headers=vendor)
        assert response.status_code == 403

    def test_vendor_sets_courier_availability(self, client, vendor):
        courier_id = client.post(
            "/couriers", json={"name": "Ravi", "vendor_id": "vendor-001"}, headers=vendor
        ).json()["courier_id"]

        response = client.patch(f"/couriers/{courier_id}/availability", json={"is_active": False}, headers=vendor)

        assert response.status_code == 200

    def test_vendor_cannot_manage_another_vendors_courier(self, client, admin):
        courier_id = client.post(
            "/couriers", json={"name": "Ravi", "vendor_id": "vendor-002"}, headers=admin
        ).json()["courier_id"]

        response = client.patch(
            f"/couriers/{courier_id}/availability",
            json={"is_active": False},
            headers={"X-Vendor-Id": "vendor-001"},
        )

        assert response.status_code == 403


class TestAdminAPI:
    def test_issue_coupon(self, client, admin):
        response = client.post(
            "/coupons",
            json={"code": "WELCOME", "name": "Welcome", "offer_kind": "fixed", "terms": {"amount": 50}},
            headers=admin,
        )
        assert response.status_code == 201
        assert "coupon_id" in response.json()

    def test_customer_cannot_issue_coupon(self, client, customer):
        response = client.post(
            "/coupons",
            json={"code": "WELCOME", "name": "Welcome", "offer_kind": "fixed", "terms": {"amount": 50}},
            headers=customer,
        )
        assert response.status_code == 403

    def test_expire_offers(self, client, admin):
        assert client.post("/dispatch/expire-offers", headers=admin).json() == {"expired": 0}

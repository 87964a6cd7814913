"""Tests for room-service orders: pricing, snapshots and the kitchen workflow."""

import pytest
from sqlalchemy import select

from conftest import bearer, guest_token, make_gateway_order

from hotel_api.models.guest import Guest
from hotel_api.models.notification import Notification
from hotel_api.models.order import FoodOrder


@pytest.fixture
def cart(menu_items):
    bisque, tea, _ = menu_items
    return [{"menu_item_id": bisque.id, "quantity": 2}, {"menu_item_id": tea.id, "quantity": 1}]


class TestPlaceOrder:
    def test_guest_order(self, client, guest_headers, checked_in_guest, cart, events):
        r = client.post("/api/orders", headers=guest_headers, json={"items": cart, "notes": "No onions"})
        assert r.status_code == 201
        body = r.json()
        assert body["total_amount"] == 225.0
        assert body["room_number"] == "101"
        assert body["guest_id"] == checked_in_guest.id
        assert body["guest_name"] == "Layla Haddad"
        assert body["status"] == "Pending"
        assert body["payment_method"] == "Cash"
        assert body["payment_status"] == "pending"
        assert [(line["name"], line["quantity"], line["price"]) for line in body["items"]] == [
            ("Lobster Bisque", 2, 95.0),
            ("Royal Saffron Tea", 1, 35.0),
        ]
        assert events.named("new-food-order")[0]["data"]["id"] == body["id"]

    def test_kitchen_and_admin_are_notified(self, client, guest_headers, cart, events, db_session):
        client.post("/api/orders", headers=guest_headers, json={"items": cart})
        channels = sorted(e["channel"] for e in events.named("notification"))
        assert channels == ["role:Admin", "role:Chef"]
        titles = {n.title for n in db_session.scalars(select(Notification))}
        assert titles == {"New Order #101"}

    def test_client_prices_are_ignored(self, client, guest_headers, menu_items):
        line = {"menu_item_id": menu_items[0].id, "quantity": 1, "price": 1}
        r = client.post("/api/orders", headers=guest_headers, json={"items": [line]})
        assert r.status_code == 201
        assert r.json()["total_amount"] == 95.0

    def test_snapshot_survives_menu_change(self, client, guest_headers, chef_headers, cart, menu_items):
        client.post("/api/orders", headers=guest_headers, json={"items": cart})
        client.put(f"/api/menu/{menu_items[0].id}", headers=chef_headers, json={"price": "150.00", "name": "Bisque"})

        [order] = client.get("/api/orders/my", headers=guest_headers).json()
        assert order["total_amount"] == 225.0
        assert order["items"][0]["name"] == "Lobster Bisque"
        assert order["items"][0]["price"] == 95.0

    def test_inactive_item_rejected(self, client, guest_headers, menu_items):
        r = client.post("/api/orders", headers=guest_headers, json={
            "items": [{"menu_item_id": menu_items[2].id, "quantity": 1}],
        })
        assert r.status_code == 400
        assert r.json()["message"].startswith("Menu item not found")

    def test_unknown_item_rejects_whole_cart(self, client, guest_headers, cart, db_session):
        r = client.post("/api/orders", headers=guest_headers, json={
            "items": cart + [{"menu_item_id": 999, "quantity": 1}],
        })
        assert r.status_code == 400
        assert db_session.scalars(select(FoodOrder)).all() == []

    def test_empty_cart(self, client, guest_headers):
        r = client.post("/api/orders", headers=guest_headers, json={"items": []})
        assert r.status_code == 400

    def test_zero_quantity(self, client, guest_headers, menu_items):
        r = client.post("/api/orders", headers=guest_headers, json={
            "items": [{"menu_item_id": menu_items[0].id, "quantity": 0}],
        })
        assert r.status_code == 400

    def test_guest_not_checked_in(self, client, db_session, cart):
        guest = Guest(name="Walk In", email="walkin@guest.test", phone="+971500000007")
        db_session.add(guest)
        db_session.commit()

        r = client.post("/api/orders", headers=bearer(guest_token(guest)), json={"items": cart})
        assert r.status_code == 403
        assert r.json()["message"] == "Guest is not currently checked into a room."

    def test_guest_cannot_pick_another_room(self, client, guest_headers, cart, rooms):
        r = client.post("/api/orders", headers=guest_headers, json={"items": cart, "room_number": "201"})
        assert r.status_code == 201
        assert r.json()["room_number"] == "101"

    def test_staff_order_for_room(self, client, receptionist_headers, checked_in_guest, cart):
        r = client.post("/api/orders", headers=receptionist_headers, json={"items": cart, "room_number": "101"})
        assert r.status_code == 201
        assert r.json()["guest_id"] == checked_in_guest.id

    def test_staff_order_for_empty_room(self, client, receptionist_headers, rooms, cart):
        r = client.post("/api/orders", headers=receptionist_headers, json={"items": cart, "room_number": "102"})
        assert r.status_code == 400
        assert r.json()["message"] == "No guest is checked into room 102"

    def test_staff_order_needs_room(self, client, receptionist_headers, cart):
        r = client.post("/api/orders", headers=receptionist_headers, json={"items": cart})
        assert r.status_code == 400


class TestListOrders:
    def test_kitchen_list(self, client, guest_headers, chef_headers, cart):
        for _ in range(3):
            client.post("/api/orders", headers=guest_headers, json={"items": cart})
        r = client.get("/api/orders?limit=2", headers=chef_headers)
        assert r.status_code == 200
        body = r.json()
        assert body["total"] == 3
        assert body["pages"] == 2
        assert len(body["orders"]) == 2

    def test_my_orders_only_mine(self, client, guest_headers, receptionist_headers, db_session, cart, rooms):
        client.post("/api/orders", headers=guest_headers, json={"items": cart})
        client.post("/api/guests", headers=receptionist_headers, json={
            "name": "Noura Ali", "email": "noura@guest.test", "phone": "+971500000002", "room_number": "102",
        })
        other = db_session.scalar(select(Guest).where(Guest.email == "noura@guest.test"))
        client.post("/api/orders", headers=bearer(guest_token(other)), json={"items": cart})

        mine = client.get("/api/orders/my", headers=guest_headers).json()
        assert len(mine) == 1
        assert mine[0]["room_number"] == "101"


class TestOrderWorkflow:
    def _place(self, client, guest_headers, cart):
        return client.post("/api/orders", headers=guest_headers, json={"items": cart}).json()["id"]

    def test_happy_path(self, client, guest_headers, chef_headers, cart, events):
        order_id = self._place(client, guest_headers, cart)
        for status in ("Preparing", "Ready", "Delivered"):
            r = client.put(f"/api/orders/{order_id}/status", headers=chef_headers, json={"status": status})
            assert r.status_code == 200
            assert r.json()["status"] == status
        assert [e["data"]["status"] for e in events.named("order-status-changed")] == [
            "Preparing", "Ready", "Delivered",
        ]

    def test_cannot_skip_steps(self, client, guest_headers, chef_headers, cart):
        order_id = self._place(client, guest_headers, cart)
        r = client.put(f"/api/orders/{order_id}/status", headers=chef_headers, json={"status": "Delivered"})
        assert r.status_code == 400
        assert r.json()["message"] == "Cannot change order status from Pending to Delivered"

    def test_delivered_is_final(self, client, guest_headers, chef_headers, cart):
        order_id = self._place(client, guest_headers, cart)
        for status in ("Preparing", "Ready", "Delivered"):
            client.put(f"/api/orders/{order_id}/status", headers=chef_headers, json={"status": status})
        r = client.put(f"/api/orders/{order_id}/status", headers=chef_headers, json={"status": "Cancelled"})
        assert r.status_code == 400

    def test_unknown_order(self, client, chef_headers):
        r = client.put("/api/orders/999/status", headers=chef_headers, json={"status": "Preparing"})
        assert r.status_code == 404

    def test_unpaid_gateway_order_stays_put(self, client, chef_headers, checked_in_guest, db_session):
        order = make_gateway_order(db_session, checked_in_guest)
        r = client.put(f"/api/orders/{order.id}/status", headers=chef_headers, json={"status": "Preparing"})
        assert r.status_code == 400
        assert r.json()["message"] == "Order payment has not been completed"

    def test_cancelling_unpaid_gateway_order_closes_payment(self, client, chef_headers, checked_in_guest, db_session):
        order = make_gateway_order(db_session, checked_in_guest)
        r = client.put(f"/api/orders/{order.id}/status", headers=chef_headers, json={"status": "Cancelled"})
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "Cancelled"
        assert body["payment_status"] == "cancelled"
        assert body["payment_completed_at"] is not None

    def test_paid_gateway_order_moves(self, client, chef_headers, checked_in_guest, db_session):
        order = make_gateway_order(db_session, checked_in_guest, payment_status="success")
        r = client.put(f"/api/orders/{order.id}/status", headers=chef_headers, json={"status": "Preparing"})
        assert r.status_code == 200

    def test_housekeeping_cannot_update(self, client, housekeeping_headers, guest_headers, cart):
        order_id = self._place(client, guest_headers, cart)
        r = client.put(f"/api/orders/{order_id}/status", headers=housekeeping_headers, json={"status": "Preparing"})
        assert r.status_code == 403


class TestManualCleanup:
    def test_cancels_pending_gateway_orders(self, client, manager_headers, guest_headers, checked_in_guest, cart, db_session):
        make_gateway_order(db_session, checked_in_guest, checkout_id="a")
        make_gateway_order(db_session, checked_in_guest, checkout_id="b")
        client.post("/api/orders", headers=guest_headers, json={"items": cart})

        r = client.post("/api/orders/cleanup-pending", headers=manager_headers)
        assert r.status_code == 200
        assert r.json() == {"message": "Cancelled 2 pending payment order(s)", "modified_count": 2}

        db_session.expire_all()
        statuses = sorted(
            (o.payment_method, o.status, o.payment_status) for o in db_session.scalars(select(FoodOrder))
        )
        assert statuses == [
            ("Cash", "Pending", "pending"),
            ("HyperPay", "Cancelled", "cancelled"),
            ("HyperPay", "Cancelled", "cancelled"),
        ]

    def test_receptionist_cannot_clean_up(self, client, receptionist_headers):
        assert client.post("/api/orders/cleanup-pending", headers=receptionist_headers).status_code == 403

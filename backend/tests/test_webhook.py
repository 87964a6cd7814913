"""Tests for the signed HyperPay server-to-server callback."""

import pytest

from conftest import make_gateway_order, signed

from hotel_api.core.config import settings
from hotel_api.models.order import FoodOrder


@pytest.fixture
def order(db_session, checked_in_guest):
    return make_gateway_order(db_session, checked_in_guest, checkout_id="chk-1")


def _post(client, order_id, raw, headers):
    return client.post(f"/api/payments/callback/{order_id}", content=raw, headers=headers)


class TestCallbackSignature:
    def test_valid_signature_settles_order(self, client, order, db_session, events):
        raw, headers = signed({"checkoutId": "chk-1"})
        r = _post(client, order.id, raw, headers)
        assert r.status_code == 200
        assert r.json() == {"success": True, "payment_status": "success", "order_id": order.id}

        db_session.expire_all()
        stored = db_session.get(FoodOrder, order.id)
        assert stored.payment_status == "success"
        assert stored.transaction_id == "txn-chk-1"
        assert len(events.named("new-food-order")) == 1

    def test_missing_signature(self, client, order, gateway_stub):
        raw, headers = signed({"checkoutId": "chk-1"})
        del headers["x-hyperpay-signature"]
        r = _post(client, order.id, raw, headers)
        assert r.status_code == 401
        assert gateway_stub.calls == []

    def test_wrong_secret(self, client, order):
        raw, headers = signed({"checkoutId": "chk-1"}, secret="not-the-secret")
        assert _post(client, order.id, raw, headers).status_code == 401

    def test_tampered_body(self, client, order, gateway_stub, db_session):
        _, headers = signed({"checkoutId": "chk-1"})
        raw, _ = signed({"checkoutId": "chk-1", "amount": "1.00"})
        assert _post(client, order.id, raw, headers).status_code == 401
        assert gateway_stub.calls == []

        db_session.expire_all()
        stored = db_session.get(FoodOrder, order.id)
        assert stored.payment_status == "pending"
        assert stored.payment_completed_at is None

    def test_unconfigured_secret_rejects_everything(self, client, order, monkeypatch):
        monkeypatch.setattr(settings, "hyperpay_webhook_secret", "")
        raw, headers = signed({"checkoutId": "chk-1"})
        assert _post(client, order.id, raw, headers).status_code == 401


class TestCallbackMatching:
    def test_unknown_order(self, client, order):
        raw, headers = signed({"checkoutId": "chk-1"})
        r = _post(client, 999, raw, headers)
        assert r.status_code == 404

    def test_checkout_mismatch(self, client, order, gateway_stub):
        raw, headers = signed({"checkoutId": "someone-elses"})
        r = _post(client, order.id, raw, headers)
        assert r.status_code == 400
        assert r.json()["message"] == "Checkout ID mismatch"
        assert gateway_stub.calls == []

    def test_malformed_body(self, client, order):
        from hotel_api.core.security import compute_signature

        raw = b"not json"
        headers = {"x-hyperpay-signature": compute_signature(settings.hyperpay_webhook_secret, raw)}
        assert _post(client, order.id, raw, headers).status_code == 400

    def test_entity_follows_stored_currency(self, client, db_session, checked_in_guest, gateway_stub):
        usd = make_gateway_order(db_session, checked_in_guest, checkout_id="chk-usd", currency="USD")
        # The body claims AED; only the stored currency counts
        raw, headers = signed({"checkoutId": "chk-usd", "currency": "AED"})
        assert _post(client, usd.id, raw, headers).status_code == 200

        [call] = gateway_stub.calls_to("GET", "/payment")
        assert call["params"] == {"entityId": "entity-usd"}


class TestCallbackIdempotence:
    def test_second_callback_reports_stored_state(self, client, order, gateway_stub):
        raw, headers = signed({"checkoutId": "chk-1"})
        _post(client, order.id, raw, headers)
        gateway_stub.set_result("chk-1", "800.100.151")

        r = _post(client, order.id, raw, headers)
        assert r.status_code == 200
        assert r.json()["payment_status"] == "success"
        assert len(gateway_stub.calls_to("GET", "/payment")) == 1

    def test_callback_after_sweep(self, client, order, db_session, gateway_stub):
        from hotel_api.services.order_cleanup_service import OrderCleanupService

        OrderCleanupService(db_session).cancel_all_pending_payments()
        raw, headers = signed({"checkoutId": "chk-1"})
        r = _post(client, order.id, raw, headers)
        assert r.status_code == 200
        assert r.json()["payment_status"] == "cancelled"
        assert r.json()["success"] is False

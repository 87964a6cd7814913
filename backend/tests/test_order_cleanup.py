"""Tests for the abandoned-payment sweep and the write-once payment guard."""

from datetime import datetime, timedelta, timezone

from conftest import make_gateway_order

from hotel_api.models.order import FoodOrder
from hotel_api.services.order_cleanup_service import OrderCleanupService
from hotel_api.services.order_service import finalize_payment


def _ago(minutes: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(minutes=minutes)


def _reload(db, order_id) -> FoodOrder:
    db.expire_all()
    return db.get(FoodOrder, order_id)


class TestSweep:
    def test_expired_order_is_cancelled(self, db_session, checked_in_guest):
        stale = make_gateway_order(db_session, checked_in_guest, checkout_id="old", created_at=_ago(10))

        result = OrderCleanupService(db_session, grace_minutes=5).sweep_expired_payments()
        assert result == {"cancelled": 1, "order_ids": [stale.id]}

        order = _reload(db_session, stale.id)
        assert order.status == "Cancelled"
        assert order.payment_status == "failed"
        assert order.payment_completed_at is not None

    def test_recent_order_is_left_alone(self, db_session, checked_in_guest):
        fresh = make_gateway_order(db_session, checked_in_guest, checkout_id="new", created_at=_ago(1))

        result = OrderCleanupService(db_session, grace_minutes=5).sweep_expired_payments()
        assert result["cancelled"] == 0
        assert _reload(db_session, fresh.id).payment_status == "pending"

    def test_finalized_order_is_left_alone(self, db_session, checked_in_guest):
        paid = make_gateway_order(
            db_session, checked_in_guest, checkout_id="paid", created_at=_ago(30),
            payment_status="success", payment_completed_at=_ago(29),
        )
        OrderCleanupService(db_session, grace_minutes=5).sweep_expired_payments()
        assert _reload(db_session, paid.id).payment_status == "success"

    def test_cash_order_is_left_alone(self, db_session, checked_in_guest):
        cash = make_gateway_order(
            db_session, checked_in_guest, checkout_id=None, created_at=_ago(30), payment_method="Cash",
        )
        OrderCleanupService(db_session, grace_minutes=5).sweep_expired_payments()
        assert _reload(db_session, cash.id).status == "Pending"

    def test_order_without_checkout_is_swept(self, db_session, checked_in_guest):
        # Gateway call failed during checkout; nothing will ever settle it
        orphan = make_gateway_order(db_session, checked_in_guest, checkout_id=None, created_at=_ago(10))
        OrderCleanupService(db_session, grace_minutes=5).sweep_expired_payments()
        assert _reload(db_session, orphan.id).status == "Cancelled"

    def test_repeated_runs_are_no_ops(self, db_session, checked_in_guest):
        make_gateway_order(db_session, checked_in_guest, created_at=_ago(10))
        service = OrderCleanupService(db_session, grace_minutes=5)
        assert service.sweep_expired_payments()["cancelled"] == 1
        assert service.sweep_expired_payments()["cancelled"] == 0

    def test_pending_count(self, db_session, checked_in_guest):
        make_gateway_order(db_session, checked_in_guest, checkout_id="a")
        make_gateway_order(db_session, checked_in_guest, checkout_id="b", created_at=_ago(10))
        service = OrderCleanupService(db_session, grace_minutes=5)
        assert service.get_pending_payment_count() == 2
        service.sweep_expired_payments()
        assert service.get_pending_payment_count() == 1


class TestManualCancel:
    def test_cancels_regardless_of_age(self, db_session, checked_in_guest):
        fresh = make_gateway_order(db_session, checked_in_guest, created_at=_ago(0))
        assert OrderCleanupService(db_session).cancel_all_pending_payments() == 1
        order = _reload(db_session, fresh.id)
        assert order.status == "Cancelled"
        assert order.payment_status == "cancelled"


class TestFinalizeGuard:
    def test_first_writer_wins(self, db_session, checked_in_guest):
        order = make_gateway_order(db_session, checked_in_guest)

        assert finalize_payment(db_session, order.id, {"payment_status": "success"})
        assert not finalize_payment(db_session, order.id, {"payment_status": "failed", "status": "Cancelled"})

        stored = _reload(db_session, order.id)
        assert stored.payment_status == "success"
        assert stored.status == "Pending"

    def test_sweep_loses_to_earlier_settlement(self, db_session, checked_in_guest):
        order = make_gateway_order(db_session, checked_in_guest, created_at=_ago(10))
        finalize_payment(db_session, order.id, {"payment_status": "success"})

        assert OrderCleanupService(db_session, grace_minutes=5).sweep_expired_payments()["cancelled"] == 0
        assert _reload(db_session, order.id).payment_status == "success"

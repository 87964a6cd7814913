"""Order Cleanup Service.

Cancels gateway orders whose payment was abandoned. Runs as a periodic
background task and on demand from the admin endpoint / CLI script.

Abandoned orders:
- Paid through HyperPay, payment status still 'pending'
- Order status still 'Pending'
- Created more than ORDER_PAYMENT_GRACE_MINUTES ago
- Never finalized (no payment_completed_at)

Cash and Online orders are never swept: their payment status stays
'pending' until they are settled at delivery.

Both actions write through the same write-once guard as the payment status
poll and the gateway callback, so whichever source finalizes an order first
wins and repeated runs are no-ops.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from hotel_api.core.config import settings
from hotel_api.models.order import FoodOrder, OrderStatus, PaymentMethod, PaymentStatus

logger = logging.getLogger(__name__)


def _unfinalized_gateway_orders():
    return (
        FoodOrder.payment_method == PaymentMethod.HYPERPAY.value,
        FoodOrder.payment_status == PaymentStatus.PENDING.value,
        FoodOrder.status == OrderStatus.PENDING.value,
        FoodOrder.payment_completed_at.is_(None),
    )


class OrderCleanupService:
    """Service for cancelling abandoned gateway payments."""

    def __init__(self, db: Session, grace_minutes: Optional[int] = None):
        self.db = db
        self.grace_minutes = settings.order_payment_grace_minutes if grace_minutes is None else grace_minutes

    def sweep_expired_payments(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Mark stale unpaid orders Cancelled/failed.

        Returns summary of cleanup actions taken.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(minutes=self.grace_minutes)
        conditions = (*_unfinalized_gateway_orders(), FoodOrder.created_at < cutoff)

        expired_ids = list(self.db.scalars(select(FoodOrder.id).where(*conditions)))
        if not expired_ids:
            logger.debug("No expired payment orders found")
            return {"cancelled": 0, "order_ids": []}

        result = self.db.execute(
            update(FoodOrder)
            .where(FoodOrder.id.in_(expired_ids), *conditions)
            .values(
                status=OrderStatus.CANCELLED.value,
                payment_status=PaymentStatus.FAILED.value,
                payment_completed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

        logger.info(
            f"Order cleanup: cancelled {result.rowcount} of {len(expired_ids)} expired "
            f"payment order(s) older than {self.grace_minutes} min: {expired_ids}"
        )
        return {"cancelled": result.rowcount, "order_ids": expired_ids}

    def cancel_all_pending_payments(self) -> int:
        """Immediately cancel every unfinalized gateway order, regardless of age."""
        now = datetime.now(timezone.utc)
        result = self.db.execute(
            update(FoodOrder)
            .where(*_unfinalized_gateway_orders())
            .values(
                status=OrderStatus.CANCELLED.value,
                payment_status=PaymentStatus.CANCELLED.value,
                payment_completed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Manual cleanup: cancelled {result.rowcount} pending payment order(s)")
        return result.rowcount

    def get_pending_payment_count(self) -> int:
        """Count of orders still waiting on the gateway (for monitoring)."""
        return self.db.scalar(
            select(func.count(FoodOrder.id)).where(*_unfinalized_gateway_orders())
        ) or 0


def run_order_cleanup() -> Dict[str, Any]:
    """Standalone function to run the sweep (called from background scheduler)."""
    from hotel_api.db.session import SessionLocal
    db = SessionLocal()
    try:
        return OrderCleanupService(db).sweep_expired_payments()
    finally:
        db.close()

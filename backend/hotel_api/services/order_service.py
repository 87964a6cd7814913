"""Room-service order placement, pricing and status workflow.

Pricing always reads the current menu price; the price and name are copied
into the order's ``items`` snapshot so later menu edits never change an
existing order. Payment state is written only through ``finalize_payment``,
a conditional update that succeeds once per order.
"""

import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from hotel_api.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from hotel_api.core.rbac import GuestPrincipal, Principal, StaffRole
from hotel_api.models.guest import Guest
from hotel_api.models.menu import MenuItem
from hotel_api.models.order import FoodOrder, OrderStatus, PaymentMethod, PaymentStatus
from hotel_api.models.room import Room
from hotel_api.schemas.order import OrderLineRequest, OrderResponse
from hotel_api.services.broadcaster import Broadcaster
from hotel_api.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

# Staff-driven order workflow; payment failure and staff action may cancel
ORDER_TRANSITIONS: Dict[OrderStatus, set] = {
    OrderStatus.PENDING: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


def price_cart(db: Session, lines: Iterable[OrderLineRequest]) -> Tuple[List[Dict[str, Any]], Decimal]:
    """Resolve each line against the live menu and snapshot name and price.

    Returns the snapshot lines and their total. Unknown or inactive items
    reject the whole cart.
    """
    snapshot: List[Dict[str, Any]] = []
    total = Decimal("0")
    for line in lines:
        item = db.get(MenuItem, line.menu_item_id)
        if item is None or not item.is_active:
            raise ValidationError(f"Menu item not found: {line.menu_item_id}")
        price = Decimal(str(item.price))
        total += price * line.quantity
        snapshot.append({
            "menu_item_id": item.id,
            "name": item.name,
            "quantity": line.quantity,
            "price": str(price),
        })
    return snapshot, total.quantize(Decimal("0.01"))


def finalize_payment(db: Session, order_id: int, values: Dict[str, Any]) -> bool:
    """Apply a terminal payment transition if, and only if, none happened yet.

    Sets ``payment_completed_at`` alongside ``values`` in one conditional
    UPDATE. Returns False when another path (poll, webhook, sweep, cleanup)
    already finalized the order; nothing is written in that case.
    """
    now = datetime.now(timezone.utc)
    stmt = (
        update(FoodOrder)
        .where(FoodOrder.id == order_id, FoodOrder.payment_completed_at.is_(None))
        .values(**values, payment_completed_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()
    applied = result.rowcount == 1
    if not applied:
        logger.info(f"Order {order_id} already finalized, payment update skipped")
    return applied


def serialize_order(order: FoodOrder) -> OrderResponse:
    return OrderResponse.model_validate(order)


class OrderService:
    """Places orders and moves them through the kitchen workflow."""

    def __init__(self, db: Session, broadcaster: Broadcaster):
        self.db = db
        self.broadcaster = broadcaster

    def resolve_destination(self, principal: Principal, room_number: Optional[str]) -> Tuple[int, str]:
        """Who the order is for and which room it goes to.

        Guests always order for the room they are checked into. Staff order on
        behalf of the guest currently checked into the named room.
        """
        if isinstance(principal, GuestPrincipal):
            if not principal.is_checked_in or not principal.room_number:
                raise AuthorizationError("Guest is not currently checked into a room.")
            return principal.id, principal.room_number

        if not room_number:
            raise ValidationError("room_number is required")
        guest = self.db.scalar(
            select(Guest).where(Guest.room_number == room_number, Guest.is_checked_in.is_(True))
        )
        if guest is None:
            raise ValidationError(f"No guest is checked into room {room_number}")
        return guest.id, room_number

    def place_order(
        self,
        principal: Principal,
        lines: List[OrderLineRequest],
        room_number: Optional[str] = None,
        notes: Optional[str] = None,
        payment_method: str = PaymentMethod.CASH.value,
    ) -> FoodOrder:
        guest_id, room = self.resolve_destination(principal, room_number)
        snapshot, total = price_cart(self.db, lines)

        order = FoodOrder(
            guest_id=guest_id,
            room_number=room,
            items=snapshot,
            total_amount=total,
            notes=notes,
            payment_method=payment_method,
            status=OrderStatus.PENDING,
        )
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"Order {order.id} placed for room {room}: {total} ({payment_method})")

        self.announce_new_order(order, notify_staff=True)
        return order

    def announce_new_order(self, order: FoodOrder, notify_staff: bool = False) -> None:
        """Make an order visible to the kitchen dashboards."""
        self.broadcaster.emit("new-food-order", serialize_order(order))
        if not notify_staff:
            return
        notifications = NotificationService(self.db, self.broadcaster)
        for role, link in ((StaffRole.CHEF, "/dashboard/kitchen"), (StaffRole.ADMIN, "/dashboard/orders")):
            notifications.notify_role(
                role,
                f"New Order #{order.room_number}",
                f"New food order from Room {order.room_number}.",
                reference_id=str(order.id),
                link=link,
            )

    def list_orders(self, page: int = 1, limit: int = 20) -> Tuple[List[FoodOrder], int, int]:
        total = self.db.scalar(select(func.count(FoodOrder.id))) or 0
        orders = list(self.db.scalars(
            select(FoodOrder)
            .order_by(FoodOrder.created_at.desc(), FoodOrder.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ))
        return orders, total, math.ceil(total / limit) if limit else 0

    def list_for_guest(self, guest_id: int) -> List[FoodOrder]:
        return list(self.db.scalars(
            select(FoodOrder)
            .where(FoodOrder.guest_id == guest_id)
            .order_by(FoodOrder.created_at.desc(), FoodOrder.id.desc())
        ))

    def get(self, order_id: int) -> FoodOrder:
        order = self.db.get(FoodOrder, order_id)
        if order is None:
            raise NotFoundError("Order not found")
        return order

    def update_status(self, order_id: int, new_status: OrderStatus) -> FoodOrder:
        order = self.get(order_id)
        current = OrderStatus(order.status)

        if new_status not in ORDER_TRANSITIONS[current]:
            raise ValidationError(f"Cannot change order status from {current.value} to {new_status.value}")

        awaiting_payment = (
            order.payment_method == PaymentMethod.HYPERPAY.value
            and order.payment_status != PaymentStatus.SUCCESS.value
        )
        if awaiting_payment and new_status != OrderStatus.CANCELLED:
            raise ValidationError("Order payment has not been completed")

        if awaiting_payment and not order.is_finalized:
            # Close the payment too, so a late gateway result cannot revive it
            if not finalize_payment(self.db, order.id, {
                "status": OrderStatus.CANCELLED.value,
                "payment_status": PaymentStatus.CANCELLED.value,
            }):
                self.db.refresh(order)
                raise ValidationError("Order payment was completed meanwhile; reload and retry")
            self.db.refresh(order)
        else:
            order.status = new_status
            self.db.commit()
            self.db.refresh(order)

        logger.info(f"Order {order.id} status {current.value} -> {order.status}")
        self.broadcaster.emit("order-status-changed", serialize_order(order))
        return order

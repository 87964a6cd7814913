"""Payments console: order inspection, gateway resync and payment statistics."""

import logging
from datetime import datetime, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select

from hotel_api.core.exceptions import NotFoundError
from hotel_api.core.rbac import CurrentStaff
from hotel_api.core.responses import paginated_response
from hotel_api.db.session import DbSession
from hotel_api.models.order import FoodOrder, OrderStatus, PaymentStatus
from hotel_api.schemas.admin import (
    AdminOrderPage,
    PaymentStatsResponse,
    PaymentStatusBucket,
    RecentOrder,
    ResyncResponse,
)
from hotel_api.schemas.order import OrderDetailResponse, OrderResponse
from hotel_api.services.broadcaster import Broadcaster, get_broadcaster
from hotel_api.services.hyperpay_service import HyperPayService, get_payment_gateway, result_code_of
from hotel_api.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter()

SORTABLE_COLUMNS = {
    "created_at": FoodOrder.created_at,
    "updated_at": FoodOrder.updated_at,
    "total_amount": FoodOrder.total_amount,
}


@router.get("/orders", response_model=AdminOrderPage)
def admin_list_orders(
    db: DbSession,
    status: Optional[OrderStatus] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: Literal["created_at", "updated_at", "total_amount"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
):
    filters = []
    if status is not None:
        filters.append(FoodOrder.status == status.value)
    if payment_status is not None:
        filters.append(FoodOrder.payment_status == payment_status.value)

    column = SORTABLE_COLUMNS[sort_by]
    ordering = column.asc() if sort_order == "asc" else column.desc()

    total = db.scalar(select(func.count(FoodOrder.id)).where(*filters)) or 0
    orders = db.scalars(
        select(FoodOrder)
        .where(*filters)
        .order_by(ordering, FoodOrder.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    body = paginated_response(
        [OrderResponse.model_validate(o) for o in orders], total, page, limit,
    )
    body["filters"] = {
        "status": status.value if status else None,
        "payment_status": payment_status.value if payment_status else None,
    }
    return body


@router.get("/orders/{order_id}", response_model=OrderDetailResponse)
def admin_get_order(order_id: int, db: DbSession):
    order = db.get(FoodOrder, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


@router.post("/orders/{order_id}/resync", response_model=ResyncResponse)
def admin_resync_order(
    order_id: int,
    admin: CurrentStaff,
    db: DbSession,
    gateway: HyperPayService = Depends(get_payment_gateway),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Ask the gateway for the order's payment state and apply it if still open.

    An order that is already finalized is reported but left untouched
    (``applied`` is false).
    """
    settlement, old_status = PaymentService(db, gateway, broadcaster).resync(order_id)
    logger.info(
        f"Order {order_id} resynced by {admin.email}: {old_status} -> "
        f"{settlement.order.payment_status} (applied={settlement.applied})"
    )
    return ResyncResponse(
        success=True,
        order_id=settlement.order.id,
        old_status=old_status,
        new_status=settlement.order.payment_status,
        result_code=result_code_of(settlement.gateway_payload or {}),
        applied=settlement.applied,
        payment_status=settlement.gateway_payload or {},
    )


@router.get("/stats", response_model=PaymentStatsResponse)
def admin_payment_stats(db: DbSession):
    rows = db.execute(
        select(
            FoodOrder.payment_status,
            func.count(FoodOrder.id),
            func.coalesce(func.sum(FoodOrder.total_amount), 0),
        ).group_by(FoodOrder.payment_status)
    ).all()
    recent = db.scalars(
        select(FoodOrder).order_by(FoodOrder.created_at.desc(), FoodOrder.id.desc()).limit(10)
    )
    return PaymentStatsResponse(
        stats=[
            PaymentStatusBucket(payment_status=ps, count=count, total_amount=amount)
            for ps, count, amount in rows
        ],
        recent_orders=[RecentOrder.model_validate(o) for o in recent],
        timestamp=datetime.now(timezone.utc),
    )

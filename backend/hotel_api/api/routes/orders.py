"""Room-service order routes."""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status

from hotel_api.core.rbac import CurrentGuest, CurrentPrincipal
from hotel_api.db.session import DbSession
from hotel_api.schemas.order import (
    CleanupResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from hotel_api.services.broadcaster import Broadcaster, get_broadcaster
from hotel_api.services.order_cleanup_service import OrderCleanupService
from hotel_api.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def place_order(
    payload: OrderCreate,
    principal: CurrentPrincipal,
    db: DbSession,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Place a pay-on-delivery order.

    Prices come from the current menu; the client only sends item ids and
    quantities. Guests order for their own room, staff name the room.
    """
    return OrderService(db, broadcaster).place_order(
        principal,
        payload.items,
        room_number=payload.room_number,
        notes=payload.notes,
        payment_method=payload.payment_method,
    )


@router.get("", response_model=OrderListResponse)
def list_orders(
    db: DbSession,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    orders, total, pages = OrderService(db, broadcaster).list_orders(page, limit)
    return OrderListResponse(
        orders=[OrderResponse.model_validate(o) for o in orders], page=page, pages=pages, total=total,
    )


@router.get("/my", response_model=List[OrderResponse])
def list_my_orders(guest: CurrentGuest, db: DbSession, broadcaster: Broadcaster = Depends(get_broadcaster)):
    return OrderService(db, broadcaster).list_for_guest(guest.id)


@router.put("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    db: DbSession,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    return OrderService(db, broadcaster).update_status(order_id, payload.status)


@router.post("/cleanup-pending", response_model=CleanupResponse)
def cleanup_pending_orders(principal: CurrentPrincipal, db: DbSession):
    """Cancel every gateway order still waiting for payment, regardless of age."""
    modified = OrderCleanupService(db).cancel_all_pending_payments()
    logger.info(f"Manual order cleanup by {principal.role} {principal.id}: {modified} cancelled")
    return CleanupResponse(
        message=f"Cancelled {modified} pending payment order(s)",
        modified_count=modified,
    )

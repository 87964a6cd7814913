"""Food order schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from hotel_api.models.order import Currency, OrderStatus, PaymentMethod, PaymentStatus
from hotel_api.schemas.common import Money


class OrderLineRequest(BaseModel):
    """One cart line. Prices are always looked up server-side."""

    menu_item_id: int
    quantity: int = Field(..., ge=1, le=100)


class OrderCreate(BaseModel):
    items: List[OrderLineRequest] = Field(..., min_length=1)
    # Only honoured for staff; guests always order for their own room
    room_number: Optional[str] = Field(default=None, max_length=20)
    notes: Optional[str] = Field(default=None, max_length=1000)
    payment_method: Literal["Cash", "Online"] = "Cash"


class OrderLine(BaseModel):
    menu_item_id: int
    name: str
    quantity: int
    price: Money


class OrderResponse(BaseModel):
    id: int
    guest_id: int
    guest_name: Optional[str] = None
    room_number: str
    items: List[OrderLine]
    total_amount: Money
    notes: Optional[str] = None
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    currency: Currency
    checkout_id: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrderDetailResponse(OrderResponse):
    """Console view including the raw gateway payload."""

    payment_response: Optional[Any] = None
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    page: int
    pages: int
    total: int


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class CleanupResponse(BaseModel):
    message: str
    modified_count: int

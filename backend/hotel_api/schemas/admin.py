"""Payments console schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from hotel_api.schemas.common import Money
from hotel_api.schemas.order import OrderResponse


class ResyncResponse(BaseModel):
    success: bool
    order_id: int
    old_status: str
    new_status: str
    result_code: str
    applied: bool
    payment_status: Dict[str, Any]


class PaymentStatusBucket(BaseModel):
    payment_status: str
    count: int
    total_amount: Money


class RecentOrder(BaseModel):
    id: int
    room_number: str
    total_amount: Money
    payment_status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PaymentStatsResponse(BaseModel):
    stats: List[PaymentStatusBucket]
    recent_orders: List[RecentOrder]
    timestamp: datetime


class AdminOrderPage(BaseModel):
    items: List[OrderResponse]
    pagination: Dict[str, int]
    filters: Optional[Dict[str, Optional[str]]] = None

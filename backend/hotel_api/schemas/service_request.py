"""Service request schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from hotel_api.models.service_request import RequestPriority, RequestStatus


class ServiceRequestCreate(BaseModel):
    type: str = Field(..., min_length=1, max_length=50)
    priority: RequestPriority = RequestPriority.NORMAL
    message: Optional[str] = Field(default=None, max_length=2000)


class ServiceRequestStatusUpdate(BaseModel):
    status: RequestStatus


class ServiceRequestResponse(BaseModel):
    id: int
    guest_id: int
    guest_name: Optional[str] = None
    room_number: str
    type: str
    message: Optional[str] = None
    priority: RequestPriority
    status: RequestStatus
    handled_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

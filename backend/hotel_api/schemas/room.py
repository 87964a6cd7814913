"""Room schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from hotel_api.models.room import RoomStatus, RoomType


class RoomCreate(BaseModel):
    room_number: str = Field(..., min_length=1, max_length=20)
    type: RoomType = RoomType.STANDARD
    floor: int
    status: Optional[RoomStatus] = None


class RoomStatusUpdate(BaseModel):
    status: RoomStatus


class RoomResponse(BaseModel):
    id: int
    room_number: str
    type: RoomType
    status: RoomStatus
    floor: int
    current_guest_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RoomListResponse(BaseModel):
    rooms: List[RoomResponse]
    page: int
    pages: int
    total: int

"""Feedback schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class FeedbackCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    description: str = Field(..., min_length=1, max_length=5000)
    # Contact details default to the guest profile
    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)


class FeedbackResponse(BaseModel):
    id: int
    guest_id: int
    room_number: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    rating: int
    description: str
    created_at: datetime

    model_config = {"from_attributes": True}


class FeedbackListResponse(BaseModel):
    feedbacks: List[FeedbackResponse]
    page: int
    pages: int
    total: int

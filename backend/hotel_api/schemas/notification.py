"""Notification schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from hotel_api.models.notification import NotificationType


class NotificationResponse(BaseModel):
    id: int
    recipient_id: Optional[int] = None
    role: Optional[str] = None
    title: str
    message: str
    type: NotificationType
    is_read: bool
    reference_id: Optional[str] = None
    link: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}

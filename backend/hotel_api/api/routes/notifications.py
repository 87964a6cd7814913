"""Staff notification inbox routes."""

from typing import List

from fastapi import APIRouter, Depends

from hotel_api.core.rbac import CurrentStaff
from hotel_api.db.session import DbSession
from hotel_api.schemas.notification import NotificationResponse
from hotel_api.services.broadcaster import Broadcaster, get_broadcaster
from hotel_api.services.notification_service import NotificationService

router = APIRouter()


@router.get("", response_model=List[NotificationResponse])
def list_notifications(staff: CurrentStaff, db: DbSession, broadcaster: Broadcaster = Depends(get_broadcaster)):
    """Latest notifications addressed to the caller or to the caller's role."""
    return NotificationService(db, broadcaster).inbox(staff)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: int,
    staff: CurrentStaff,
    db: DbSession,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    return NotificationService(db, broadcaster).mark_read(notification_id, staff)

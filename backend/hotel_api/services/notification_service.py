"""Staff notifications: persisted inbox entries plus a real-time push."""

import logging
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from hotel_api.core.exceptions import NotFoundError
from hotel_api.core.rbac import StaffPrincipal, StaffRole
from hotel_api.models.notification import Notification, NotificationType
from hotel_api.schemas.notification import NotificationResponse
from hotel_api.services.broadcaster import Broadcaster

logger = logging.getLogger(__name__)

INBOX_LIMIT = 50


def role_channel(role: str) -> str:
    return f"role:{role}"


def user_channel(staff_id: int) -> str:
    return f"user:{staff_id}"


class NotificationService:
    """Creates notifications addressed to a role or to a single staff member."""

    def __init__(self, db: Session, broadcaster: Broadcaster):
        self.db = db
        self.broadcaster = broadcaster

    def notify_role(
        self,
        role: StaffRole | str,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        reference_id: Optional[str] = None,
        link: Optional[str] = None,
    ) -> Notification:
        role_name = getattr(role, "value", role)
        return self._create(
            title, message, type, role=role_name, reference_id=reference_id, link=link,
        )

    def notify_staff(
        self,
        staff_id: int,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        reference_id: Optional[str] = None,
        link: Optional[str] = None,
    ) -> Notification:
        return self._create(
            title, message, type, recipient_id=staff_id, reference_id=reference_id, link=link,
        )

    def _create(
        self,
        title: str,
        message: str,
        type: NotificationType,
        role: Optional[str] = None,
        recipient_id: Optional[int] = None,
        reference_id: Optional[str] = None,
        link: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            title=title,
            message=message,
            type=type,
            role=role,
            recipient_id=recipient_id,
            reference_id=reference_id,
            link=link,
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)

        channel = role_channel(role) if role else user_channel(recipient_id)
        self.broadcaster.emit("notification", NotificationResponse.model_validate(notification), channel)
        logger.debug(f"Notification {notification.id} sent to {channel}")
        return notification

    def inbox(self, staff: StaffPrincipal, limit: int = INBOX_LIMIT) -> List[Notification]:
        """Newest notifications addressed to this staff member or their role."""
        stmt = (
            select(Notification)
            .where(or_(Notification.recipient_id == staff.id, Notification.role == staff.role))
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        return list(self.db.scalars(stmt))

    def mark_read(self, notification_id: int, staff: StaffPrincipal) -> Notification:
        notification = self.db.get(Notification, notification_id)
        if notification is None or not (
            notification.recipient_id == staff.id or notification.role == staff.role
        ):
            raise NotFoundError("Notification not found")
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification

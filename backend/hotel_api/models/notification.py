"""Staff notification model."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from hotel_api.db.base import Base, TimestampMixin
from hotel_api.models.validators import one_of


class NotificationType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


class Notification(Base, TimestampMixin):
    """Addressed to one staff member (``recipient_id``) or a whole role."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True)
    recipient_id: Mapped[Optional[int]] = mapped_column(ForeignKey("staff.id"), index=True, nullable=True)
    role: Mapped[Optional[str]] = mapped_column(String(30), index=True, nullable=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(10), default=NotificationType.INFO.value, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reference_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    link: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    @validates("type")
    def _validate_type(self, key, value):
        return one_of(key, value, NotificationType)

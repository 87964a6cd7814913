"""Guest service request model."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from hotel_api.db.base import Base, TimestampMixin
from hotel_api.models.validators import one_of


class RequestPriority(str, Enum):
    NORMAL = "Normal"
    MEDIUM = "Medium"
    HIGH = "High"


class RequestStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CANCELLED = "Cancelled"


class ServiceRequest(Base, TimestampMixin):
    __tablename__ = "service_requests"

    id: Mapped[int] = mapped_column(primary_key=True)
    guest_id: Mapped[int] = mapped_column(ForeignKey("guests.id"), index=True, nullable=False)
    room_number: Mapped[str] = mapped_column(String(20), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)  # Housekeeping, Concierge, Maintenance...
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(String(10), default=RequestPriority.NORMAL.value, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=RequestStatus.OPEN.value, nullable=False)
    handled_by: Mapped[Optional[int]] = mapped_column(ForeignKey("staff.id"), nullable=True)

    guest = relationship("Guest", lazy="joined")

    @property
    def guest_name(self) -> Optional[str]:
        return self.guest.name if self.guest else None

    @validates("priority")
    def _validate_priority(self, key, value):
        return one_of(key, value, RequestPriority)

    @validates("status")
    def _validate_status(self, key, value):
        return one_of(key, value, RequestStatus)

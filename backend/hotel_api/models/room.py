"""Room model."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from hotel_api.db.base import Base, TimestampMixin
from hotel_api.models.validators import one_of


class RoomType(str, Enum):
    STANDARD = "Standard"
    DELUXE = "Deluxe"
    SUITE = "Suite"
    ROYAL = "Royal"


class RoomStatus(str, Enum):
    AVAILABLE = "Available"
    OCCUPIED = "Occupied"
    CLEANING = "Cleaning"
    MAINTENANCE = "Maintenance"


class Room(Base, TimestampMixin):
    """Physical room. Occupied implies ``current_guest_id`` is set."""

    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(primary_key=True)
    room_number: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    type: Mapped[str] = mapped_column(String(20), default=RoomType.STANDARD.value, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=RoomStatus.AVAILABLE.value, nullable=False)
    floor: Mapped[int] = mapped_column(Integer, nullable=False)
    current_guest_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("guests.id"), nullable=True,
    )

    @validates("type")
    def _validate_type(self, key, value):
        return one_of(key, value, RoomType)

    @validates("status")
    def _validate_status(self, key, value):
        return one_of(key, value, RoomStatus)

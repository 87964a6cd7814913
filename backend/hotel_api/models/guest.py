"""Guest model."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from hotel_api.db.base import Base, TimestampMixin


class Guest(Base, TimestampMixin):
    """Hotel guest identity and current stay.

    A checked-in guest always has a room number; check-out clears both.
    Guests are blocked, never deleted.
    """

    __tablename__ = "guests"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    dob: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    room_number: Mapped[Optional[str]] = mapped_column(String(20), index=True, nullable=True)
    is_checked_in: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    check_in_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    check_out_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_blocked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def check_out(self, when: datetime) -> None:
        self.is_checked_in = False
        self.room_number = None
        self.check_out_date = when

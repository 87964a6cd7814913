"""Staff model."""

from __future__ import annotations

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from hotel_api.core.rbac import StaffRole
from hotel_api.db.base import Base, TimestampMixin
from hotel_api.models.validators import one_of


class Staff(Base, TimestampMixin):
    """Staff account for authentication and RBAC."""

    __tablename__ = "staff"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(30), default=StaffRole.RECEPTIONIST.value, nullable=False)
    is_online: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @validates("role")
    def _validate_role(self, key, value):
        return one_of(key, value, StaffRole)

"""Food order model."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import relationship, validates

from hotel_api.db.base import Base, TimestampMixin
from hotel_api.models.validators import non_negative, one_of, validate_order_lines


class OrderStatus(str, Enum):
    PENDING = "Pending"
    PREPARING = "Preparing"
    READY = "Ready"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    ONLINE = "Online"
    HYPERPAY = "HyperPay"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Currency(str, Enum):
    AED = "AED"
    USD = "USD"


class FoodOrder(Base, TimestampMixin):
    """Room-service order.

    ``items`` holds name/price snapshots taken at creation; ``total_amount``
    is their sum and neither changes afterwards. ``payment_completed_at`` is
    write-once: payment state only moves while it is NULL.
    """
    __tablename__ = "food_orders"

    id = Column(Integer, primary_key=True, index=True)
    guest_id = Column(Integer, ForeignKey("guests.id"), nullable=False, index=True)
    room_number = Column(String(20), nullable=False)

    items = Column(JSON, nullable=False)  # [{menu_item_id, name, quantity, price}]
    total_amount = Column(Numeric(10, 2), nullable=False)
    notes = Column(Text, nullable=True)

    status = Column(String(20), default=OrderStatus.PENDING.value, nullable=False, index=True)

    # Payment fields
    payment_method = Column(String(20), default=PaymentMethod.CASH.value, nullable=False)
    payment_status = Column(String(20), default=PaymentStatus.PENDING.value, nullable=False, index=True)
    currency = Column(String(3), default=Currency.AED.value, nullable=False)
    checkout_id = Column(String(100), nullable=True, index=True)
    transaction_id = Column(String(100), nullable=True)
    payment_response = Column(JSON, nullable=True)  # raw gateway payload
    payment_completed_at = Column(DateTime(timezone=True), nullable=True)

    guest = relationship("Guest", lazy="joined")

    @validates("total_amount")
    def _validate_total(self, key, value):
        return non_negative(key, value)

    @validates("items")
    def _validate_items(self, key, value):
        return validate_order_lines(key, value)

    @validates("status")
    def _validate_status(self, key, value):
        return one_of(key, value, OrderStatus)

    @validates("payment_method")
    def _validate_payment_method(self, key, value):
        return one_of(key, value, PaymentMethod)

    @validates("payment_status")
    def _validate_payment_status(self, key, value):
        return one_of(key, value, PaymentStatus)

    @validates("currency")
    def _validate_currency(self, key, value):
        return one_of(key, value, Currency)

    @property
    def guest_name(self):
        return self.guest.name if self.guest else None

    @property
    def guest_email(self):
        return self.guest.email if self.guest else None

    @property
    def guest_phone(self):
        return self.guest.phone if self.guest else None

    @property
    def is_finalized(self) -> bool:
        return self.payment_completed_at is not None

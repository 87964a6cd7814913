"""Menu item model."""

from decimal import Decimal

from sqlalchemy import Boolean, Column, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import validates

from hotel_api.db.base import Base, TimestampMixin
from hotel_api.models.validators import positive, validate_list_of_strings


class MenuItem(Base, TimestampMixin):
    """Room-service menu item."""
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String(100), nullable=False, index=True)  # Appetizer, Main Course, Dessert, Beverage
    image_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    allergens = Column(JSON, default=list, nullable=False)
    allergy_info = Column(Text, nullable=True)

    @validates("price")
    def _validate_price(self, key, value):
        positive(key, value)
        return Decimal(str(value))

    @validates("allergens")
    def _validate_allergens(self, key, value):
        return validate_list_of_strings(key, value)

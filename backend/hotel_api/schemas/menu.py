"""Menu schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from hotel_api.schemas.common import Money


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True
    allergens: List[str] = Field(default_factory=list)
    allergy_info: Optional[str] = None


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None
    allergens: Optional[List[str]] = None
    allergy_info: Optional[str] = None


class MenuItemResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Money
    category: str
    image_url: Optional[str] = None
    is_active: bool
    allergens: List[str] = []
    allergy_info: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

"""Staff schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from hotel_api.core.rbac import StaffRole


class StaffCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: StaffRole


class StaffResponse(BaseModel):
    id: int
    name: str
    email: str
    role: StaffRole
    is_online: bool
    created_at: datetime

    model_config = {"from_attributes": True}

"""Guest schemas."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class GuestRegister(BaseModel):
    """Self-registration from the guest app."""

    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=8, max_length=50)
    password: str = Field(..., min_length=6, max_length=128)
    dob: Optional[date] = None
    gender: Optional[str] = Field(default=None, max_length=20)


class GuestCheckIn(BaseModel):
    """Front-desk check-in. Creates the guest or updates the one with this email."""

    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=50)
    room_number: str = Field(..., min_length=1, max_length=20)
    check_out_date: Optional[datetime] = None


class GuestResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: str
    dob: Optional[date] = None
    gender: Optional[str] = None
    room_number: Optional[str] = None
    is_checked_in: bool
    check_in_date: Optional[datetime] = None
    check_out_date: Optional[datetime] = None
    is_blocked: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class GuestTokenResponse(GuestResponse):
    token: str


class GuestBlockResponse(BaseModel):
    id: int
    is_blocked: bool
    message: str

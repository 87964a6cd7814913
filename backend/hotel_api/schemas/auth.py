"""Authentication schemas."""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from hotel_api.core.rbac import StaffRole


class LoginRequest(BaseModel):
    """Login request body."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class StaffTokenResponse(BaseModel):
    """Staff login response: profile plus bearer token."""

    id: int
    name: str
    email: str
    role: StaffRole
    token: str


class PrincipalResponse(BaseModel):
    """The authenticated caller as resolved from the token."""

    kind: str
    id: int
    name: str
    email: str
    role: str
    room_number: Optional[str] = None
    is_checked_in: Optional[bool] = None

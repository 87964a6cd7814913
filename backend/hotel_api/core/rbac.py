"""Principal resolution and role helpers.

Every request carries at most one principal: a hotel guest or a staff member.
The principal is resolved once per request from the bearer token (or the
``access_token`` cookie) and handed to routes as a typed object, so handlers
branch on ``isinstance`` rather than probing for fields.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Optional, Union

from fastapi import Depends, Request

from hotel_api.core.exceptions import AuthenticationError, AuthorizationError
from hotel_api.core.security import (
    COOKIE_ACCESS_NAME,
    TOKEN_KIND_GUEST,
    TOKEN_KIND_STAFF,
    decode_access_token,
)
from hotel_api.db.session import DbSession


class StaffRole(str, Enum):
    """Staff roles. Values are the role tags used in channels and notifications."""

    ADMIN = "Admin"
    MANAGER = "Manager"
    RECEPTIONIST = "Receptionist"
    HOUSEKEEPING = "Housekeeping"
    CHEF = "Chef"


# Pseudo-role used by the permission table for guest sessions
GUEST_ROLE = "Guest"


@dataclass(frozen=True)
class GuestPrincipal:
    id: int
    name: str
    email: str
    room_number: Optional[str]
    is_checked_in: bool

    @property
    def role(self) -> str:
        return GUEST_ROLE


@dataclass(frozen=True)
class StaffPrincipal:
    id: int
    name: str
    email: str
    staff_role: StaffRole

    @property
    def role(self) -> str:
        return self.staff_role.value


Principal = Union[GuestPrincipal, StaffPrincipal]


def token_from_request(request: Request) -> Optional[str]:
    """Bearer header first, then the HttpOnly cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_ACCESS_NAME) or None


def principal_from_token(db, token: Optional[str]) -> Optional[Principal]:
    """Resolve a principal from a raw token, or None if it does not check out.

    Shared by HTTP requests and the WebSocket handshake.
    """
    from hotel_api.models.guest import Guest
    from hotel_api.models.staff import Staff

    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None:
        return None

    try:
        subject = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None

    kind = payload.get("kind")
    if kind == TOKEN_KIND_GUEST:
        guest = db.get(Guest, subject)
        if guest is None or guest.is_blocked:
            return None
        return GuestPrincipal(
            id=guest.id,
            name=guest.name,
            email=guest.email,
            room_number=guest.room_number,
            is_checked_in=guest.is_checked_in,
        )
    if kind == TOKEN_KIND_STAFF:
        staff = db.get(Staff, subject)
        if staff is None:
            return None
        return StaffPrincipal(
            id=staff.id,
            name=staff.name,
            email=staff.email,
            staff_role=StaffRole(staff.role),
        )
    return None


def get_optional_principal(request: Request, db: DbSession) -> Optional[Principal]:
    """The current principal if a valid token is provided, otherwise None."""
    return principal_from_token(db, token_from_request(request))


def get_current_principal(
    principal: Annotated[Optional[Principal], Depends(get_optional_principal)],
) -> Principal:
    if principal is None:
        raise AuthenticationError("Not authorized, token failed")
    return principal


def get_current_guest(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> GuestPrincipal:
    if not isinstance(principal, GuestPrincipal):
        raise AuthorizationError("Guest session required")
    return principal


def get_current_staff(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> StaffPrincipal:
    if not isinstance(principal, StaffPrincipal):
        raise AuthorizationError("Staff session required")
    return principal


OptionalPrincipal = Annotated[Optional[Principal], Depends(get_optional_principal)]
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
CurrentGuest = Annotated[GuestPrincipal, Depends(get_current_guest)]
CurrentStaff = Annotated[StaffPrincipal, Depends(get_current_staff)]

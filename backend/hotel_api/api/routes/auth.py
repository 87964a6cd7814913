"""Staff authentication routes."""

import logging

from fastapi import APIRouter, Request, Response
from sqlalchemy import select

from hotel_api.core.exceptions import AuthenticationError
from hotel_api.core.rate_limit import LOGIN_LIMIT, limiter
from hotel_api.core.rbac import CurrentPrincipal, GuestPrincipal, StaffPrincipal, token_from_request
from hotel_api.core.responses import message_response
from hotel_api.core.security import (
    ACCESS_TOKEN_MAX_AGE,
    COOKIE_ACCESS_NAME,
    COOKIE_SAMESITE,
    COOKIE_SECURE,
    TOKEN_KIND_STAFF,
    blacklist_token,
    create_access_token,
    verify_password,
)
from hotel_api.db.session import DbSession
from hotel_api.models.staff import Staff
from hotel_api.schemas.auth import LoginRequest, PrincipalResponse, StaffTokenResponse

logger = logging.getLogger("auth")

router = APIRouter()


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=COOKIE_ACCESS_NAME,
        value=token,
        max_age=ACCESS_TOKEN_MAX_AGE,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite=COOKIE_SAMESITE,
    )


@router.post("/login", response_model=StaffTokenResponse)
@limiter.limit(LOGIN_LIMIT)
def login_staff(request: Request, response: Response, login_request: LoginRequest, db: DbSession):
    """Authenticate a staff member and return a JWT (also set as HttpOnly cookie)."""
    client_ip = request.client.host if request.client else "unknown"
    staff = db.scalar(select(Staff).where(Staff.email == login_request.email))

    if staff is None or not verify_password(login_request.password, staff.password_hash):
        logger.warning(f"Failed staff login for email: {login_request.email} from IP: {client_ip}")
        raise AuthenticationError("Invalid email or password")

    staff.is_online = True
    db.commit()

    token = create_access_token(staff.id, TOKEN_KIND_STAFF, extra={"role": staff.role})
    set_auth_cookie(response, token)
    logger.info(f"Successful login: {staff.email} (ID: {staff.id}, role: {staff.role}) from IP: {client_ip}")
    return StaffTokenResponse(id=staff.id, name=staff.name, email=staff.email, role=staff.role, token=token)


@router.post("/logout")
def logout(request: Request, response: Response, principal: CurrentPrincipal, db: DbSession):
    """Revoke the current token and clear the auth cookie."""
    token = token_from_request(request)
    if token:
        blacklist_token(token)

    if isinstance(principal, StaffPrincipal):
        staff = db.get(Staff, principal.id)
        if staff is not None:
            staff.is_online = False
            db.commit()

    response.delete_cookie(COOKIE_ACCESS_NAME, secure=COOKIE_SECURE, samesite=COOKIE_SAMESITE)
    logger.info(f"{principal.role} logged out: {principal.email} (ID: {principal.id})")
    return message_response("Logged out successfully")


@router.get("/me", response_model=PrincipalResponse)
def read_me(principal: CurrentPrincipal):
    """The caller as resolved from its token."""
    if isinstance(principal, GuestPrincipal):
        return PrincipalResponse(
            kind="guest",
            id=principal.id,
            name=principal.name,
            email=principal.email,
            role=principal.role,
            room_number=principal.room_number,
            is_checked_in=principal.is_checked_in,
        )
    return PrincipalResponse(
        kind="staff", id=principal.id, name=principal.name, email=principal.email, role=principal.role,
    )

"""Guest registration, login and front-desk stay management."""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request, Response, status

from hotel_api.api.routes.auth import set_auth_cookie
from hotel_api.core.rate_limit import LOGIN_LIMIT, limiter
from hotel_api.core.security import TOKEN_KIND_GUEST, create_access_token
from hotel_api.db.session import DbSession
from hotel_api.schemas.auth import LoginRequest
from hotel_api.schemas.guest import (
    GuestBlockResponse,
    GuestCheckIn,
    GuestRegister,
    GuestResponse,
    GuestTokenResponse,
)
from hotel_api.services.broadcaster import Broadcaster, get_broadcaster
from hotel_api.services.stay_service import StayService

logger = logging.getLogger("auth")

router = APIRouter()


def _token_response(guest) -> GuestTokenResponse:
    token = create_access_token(guest.id, TOKEN_KIND_GUEST)
    return GuestTokenResponse(**GuestResponse.model_validate(guest).model_dump(), token=token)


@router.post("/register", response_model=GuestTokenResponse, status_code=status.HTTP_201_CREATED)
def register_guest(
    payload: GuestRegister,
    response: Response,
    db: DbSession,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Self-registration from the guest app. Returns a session token."""
    guest = StayService(db, broadcaster).register_guest(payload)
    body = _token_response(guest)
    set_auth_cookie(response, body.token)
    return body


@router.post("/login", response_model=GuestTokenResponse)
@limiter.limit(LOGIN_LIMIT)
def login_guest(
    request: Request,
    response: Response,
    login_request: LoginRequest,
    db: DbSession,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    client_ip = request.client.host if request.client else "unknown"
    guest = StayService(db, broadcaster).authenticate_guest(login_request.email, login_request.password)
    body = _token_response(guest)
    set_auth_cookie(response, body.token)
    logger.info(f"Guest login: {guest.email} (ID: {guest.id}) from IP: {client_ip}")
    return body


@router.get("", response_model=List[GuestResponse])
def list_guests(db: DbSession, broadcaster: Broadcaster = Depends(get_broadcaster)):
    return StayService(db, broadcaster).list_guests()


@router.post("", response_model=GuestResponse, status_code=status.HTTP_201_CREATED)
def check_in_guest(
    payload: GuestCheckIn,
    db: DbSession,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Front-desk check-in.

    Reuses the guest record when the email is already known, so a returning
    guest is never duplicated.
    """
    return StayService(db, broadcaster).check_in(payload)


@router.post("/check-out/{guest_id}", response_model=GuestResponse)
def check_out_guest(guest_id: int, db: DbSession, broadcaster: Broadcaster = Depends(get_broadcaster)):
    return StayService(db, broadcaster).check_out(guest_id)


@router.patch("/{guest_id}/block", response_model=GuestBlockResponse)
def toggle_guest_block(guest_id: int, db: DbSession, broadcaster: Broadcaster = Depends(get_broadcaster)):
    guest = StayService(db, broadcaster).toggle_block(guest_id)
    return GuestBlockResponse(
        id=guest.id,
        is_blocked=guest.is_blocked,
        message=f"Guest {'blocked' if guest.is_blocked else 'unblocked'} successfully",
    )

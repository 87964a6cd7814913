"""Guest service requests (housekeeping, concierge, maintenance...)."""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import select

from hotel_api.core.exceptions import AuthorizationError, NotFoundError
from hotel_api.core.rbac import CurrentGuest, CurrentPrincipal, CurrentStaff, GuestPrincipal
from hotel_api.db.session import DbSession
from hotel_api.models.service_request import RequestStatus, ServiceRequest
from hotel_api.schemas.service_request import (
    ServiceRequestCreate,
    ServiceRequestResponse,
    ServiceRequestStatusUpdate,
)
from hotel_api.services.broadcaster import Broadcaster, get_broadcaster

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ServiceRequestResponse, status_code=status.HTTP_201_CREATED)
def create_service_request(
    payload: ServiceRequestCreate,
    guest: CurrentGuest,
    db: DbSession,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Open a request for the room the guest is checked into."""
    if not guest.is_checked_in or not guest.room_number:
        raise AuthorizationError("Guest is not currently checked into a room.")

    request = ServiceRequest(
        guest_id=guest.id,
        room_number=guest.room_number,
        type=payload.type,
        priority=payload.priority,
        message=payload.message,
        status=RequestStatus.OPEN,
    )
    db.add(request)
    db.commit()
    db.refresh(request)

    logger.info(f"Service request {request.id} ({request.type}) opened for room {request.room_number}")
    body = ServiceRequestResponse.model_validate(request)
    broadcaster.emit("new-service-request", body)
    return body


@router.get("", response_model=List[ServiceRequestResponse])
def list_service_requests(principal: CurrentPrincipal, db: DbSession):
    """Staff see every request; guests see their own."""
    stmt = select(ServiceRequest).order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc())
    if isinstance(principal, GuestPrincipal):
        stmt = stmt.where(ServiceRequest.guest_id == principal.id)
    return list(db.scalars(stmt))


@router.put("/{request_id}/status", response_model=ServiceRequestResponse)
def update_service_request_status(
    request_id: int,
    payload: ServiceRequestStatusUpdate,
    staff: CurrentStaff,
    db: DbSession,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    request = db.get(ServiceRequest, request_id)
    if request is None:
        raise NotFoundError("Request not found")

    request.status = payload.status
    request.handled_by = staff.id
    db.commit()
    db.refresh(request)

    body = ServiceRequestResponse.model_validate(request)
    broadcaster.emit("request-status-updated", body)
    return body

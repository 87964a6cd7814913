"""Room inventory and housekeeping status routes."""

from fastapi import APIRouter, Depends, Query, status

from hotel_api.db.session import DbSession
from hotel_api.schemas.room import RoomCreate, RoomListResponse, RoomResponse, RoomStatusUpdate
from hotel_api.services.broadcaster import Broadcaster, get_broadcaster
from hotel_api.services.stay_service import StayService

router = APIRouter()


@router.get("", response_model=RoomListResponse)
def list_rooms(
    db: DbSession,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    rooms, total, pages = StayService(db, broadcaster).list_rooms(page, limit)
    return RoomListResponse(
        rooms=[RoomResponse.model_validate(r) for r in rooms], page=page, pages=pages, total=total,
    )


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(payload: RoomCreate, db: DbSession, broadcaster: Broadcaster = Depends(get_broadcaster)):
    return StayService(db, broadcaster).create_room(payload)


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: int, db: DbSession, broadcaster: Broadcaster = Depends(get_broadcaster)):
    return StayService(db, broadcaster).get_room(room_id)


@router.put("/{room_id}/status", response_model=RoomResponse)
def update_room_status(
    room_id: int,
    payload: RoomStatusUpdate,
    db: DbSession,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Set a room's status. Available releases (checks out) the linked guest."""
    return StayService(db, broadcaster).update_room_status(room_id, payload.status)

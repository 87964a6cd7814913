"""Guest stays and room occupancy.

Guest and room records move together: a check-in marks the room Occupied
with the guest linked, a check-out (or a room reset to Available) clears both
sides in the same transaction.
"""

import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hotel_api.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from hotel_api.core.rbac import StaffRole
from hotel_api.core.security import get_password_hash, verify_password
from hotel_api.models.guest import Guest
from hotel_api.models.room import Room, RoomStatus
from hotel_api.schemas.guest import GuestCheckIn, GuestRegister, GuestResponse
from hotel_api.schemas.room import RoomCreate, RoomResponse
from hotel_api.services.broadcaster import Broadcaster
from hotel_api.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class StayService:
    def __init__(self, db: Session, broadcaster: Broadcaster):
        self.db = db
        self.broadcaster = broadcaster

    # ------------------------------------------------------------------
    # Guests
    # ------------------------------------------------------------------

    def register_guest(self, payload: GuestRegister) -> Guest:
        if self.db.scalar(select(Guest).where(Guest.email == payload.email)):
            raise ConflictError("User already exists")

        guest = Guest(
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            dob=payload.dob,
            gender=payload.gender,
            password_hash=get_password_hash(payload.password),
            is_checked_in=False,
        )
        self.db.add(guest)
        self.db.commit()
        self.db.refresh(guest)

        logger.info(f"Guest {guest.id} registered")
        self.broadcaster.emit("guest-registered", GuestResponse.model_validate(guest))
        return guest

    def authenticate_guest(self, email: str, password: str) -> Guest:
        guest = self.db.scalar(select(Guest).where(Guest.email == email))
        if guest is None or not verify_password(password, guest.password_hash):
            raise AuthenticationError("Invalid email or password")
        if guest.is_blocked:
            raise AuthorizationError("Account is blocked")
        return guest

    def list_guests(self) -> List[Guest]:
        return list(self.db.scalars(select(Guest).order_by(Guest.updated_at.desc(), Guest.id.desc())))

    def check_in(self, payload: GuestCheckIn) -> Guest:
        """Check a guest into a room, creating the guest on first visit.

        A returning guest is matched by email and updated in place.
        """
        room = self.db.scalar(select(Room).where(Room.room_number == payload.room_number))
        if room is None:
            raise NotFoundError("Room not found")

        guest = self.db.scalar(select(Guest).where(Guest.email == payload.email))
        if room.current_guest_id is not None and (guest is None or room.current_guest_id != guest.id):
            raise ValidationError(f"Room {room.room_number} is already occupied")
        if room.status == RoomStatus.MAINTENANCE.value:
            raise ValidationError(f"Room {room.room_number} is under maintenance")

        now = datetime.now(timezone.utc)
        released: Optional[Room] = None

        if guest is None:
            guest = Guest(email=payload.email)
            self.db.add(guest)
        elif guest.is_checked_in and guest.room_number and guest.room_number != room.room_number:
            released = self.db.scalar(select(Room).where(Room.room_number == guest.room_number))
            if released is not None and released.current_guest_id == guest.id:
                released.status = RoomStatus.CLEANING
                released.current_guest_id = None

        guest.name = payload.name
        guest.phone = payload.phone
        guest.room_number = room.room_number
        guest.is_checked_in = True
        guest.check_in_date = now
        guest.check_out_date = payload.check_out_date
        self.db.flush()

        room.status = RoomStatus.OCCUPIED
        room.current_guest_id = guest.id
        self.db.commit()
        self.db.refresh(guest)
        self.db.refresh(room)

        logger.info(f"Guest {guest.id} checked into room {room.room_number}")
        if released is not None:
            self.db.refresh(released)
            self.broadcaster.emit("room-status-changed", RoomResponse.model_validate(released))
        self.broadcaster.emit("room-status-changed", RoomResponse.model_validate(room))
        self.broadcaster.emit("guest-checked-in", GuestResponse.model_validate(guest))
        return guest

    def check_out(self, guest_id: int) -> Guest:
        guest = self.db.get(Guest, guest_id)
        if guest is None or not guest.is_checked_in:
            raise NotFoundError("Guest not found or already checked out")

        room = None
        if guest.room_number:
            room = self.db.scalar(select(Room).where(Room.room_number == guest.room_number))
        guest.check_out(datetime.now(timezone.utc))
        if room is not None:
            room.status = RoomStatus.CLEANING
            room.current_guest_id = None
        self.db.commit()
        self.db.refresh(guest)

        logger.info(f"Guest {guest.id} checked out")
        if room is not None:
            self.db.refresh(room)
            self.broadcaster.emit("room-status-changed", RoomResponse.model_validate(room))
        self.broadcaster.emit("guest-checked-out", GuestResponse.model_validate(guest))
        return guest

    def toggle_block(self, guest_id: int) -> Guest:
        guest = self.db.get(Guest, guest_id)
        if guest is None:
            raise NotFoundError("Guest not found")
        guest.is_blocked = not guest.is_blocked
        self.db.commit()
        self.db.refresh(guest)
        logger.info(f"Guest {guest.id} {'blocked' if guest.is_blocked else 'unblocked'}")
        return guest

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    def list_rooms(self, page: int = 1, limit: int = 50) -> Tuple[List[Room], int, int]:
        total = self.db.scalar(select(func.count(Room.id))) or 0
        rooms = list(self.db.scalars(
            select(Room).order_by(Room.room_number).offset((page - 1) * limit).limit(limit)
        ))
        return rooms, total, math.ceil(total / limit) if limit else 0

    def get_room(self, room_id: int) -> Room:
        room = self.db.get(Room, room_id)
        if room is None:
            raise NotFoundError("Room not found")
        return room

    def create_room(self, payload: RoomCreate) -> Room:
        if self.db.scalar(select(Room).where(Room.room_number == payload.room_number)):
            raise ConflictError("Room already exists")
        if payload.status == RoomStatus.OCCUPIED:
            raise ValidationError("A new room cannot start Occupied; check a guest in instead")

        room = Room(
            room_number=payload.room_number,
            type=payload.type,
            floor=payload.floor,
            status=payload.status or RoomStatus.AVAILABLE,
        )
        self.db.add(room)
        self.db.commit()
        self.db.refresh(room)
        self.broadcaster.emit("room-status-changed", RoomResponse.model_validate(room))
        return room

    def update_room_status(self, room_id: int, status: RoomStatus) -> Room:
        """Change a room's status.

        Moving a room to Available checks out whoever is linked to it.
        """
        room = self.get_room(room_id)
        if status == RoomStatus.OCCUPIED and room.current_guest_id is None:
            raise ValidationError("Only a check-in can mark a room Occupied")

        checked_out: Optional[Guest] = None
        room.status = status
        if status == RoomStatus.AVAILABLE and room.current_guest_id is not None:
            guest = self.db.get(Guest, room.current_guest_id)
            if guest is not None and guest.room_number == room.room_number:
                guest.check_out(datetime.now(timezone.utc))
                checked_out = guest
            room.current_guest_id = None
        self.db.commit()
        self.db.refresh(room)

        logger.info(f"Room {room.room_number} is now {room.status}")
        self.broadcaster.emit("room-status-changed", RoomResponse.model_validate(room))
        if checked_out is not None:
            self.db.refresh(checked_out)
            self.broadcaster.emit("guest-checked-out", GuestResponse.model_validate(checked_out))

        if status in (RoomStatus.CLEANING, RoomStatus.MAINTENANCE):
            NotificationService(self.db, self.broadcaster).notify_role(
                StaffRole.HOUSEKEEPING,
                f"Room {room.room_number} Status Update",
                f"Room {room.room_number} is now {status.value}.",
                reference_id=str(room.id),
                link="/dashboard/rooms",
            )
        return room

"""Staff account routes."""

import logging
from typing import List

from fastapi import APIRouter, status
from sqlalchemy import select

from hotel_api.core.exceptions import ConflictError
from hotel_api.core.rbac import CurrentStaff
from hotel_api.core.security import get_password_hash
from hotel_api.db.session import DbSession
from hotel_api.models.staff import Staff
from hotel_api.schemas.staff import StaffCreate, StaffResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[StaffResponse])
def list_staff(db: DbSession):
    return list(db.scalars(select(Staff).order_by(Staff.name)))


@router.post("", response_model=StaffResponse, status_code=status.HTTP_201_CREATED)
def create_staff(payload: StaffCreate, admin: CurrentStaff, db: DbSession):
    if db.scalar(select(Staff).where(Staff.email == payload.email)):
        raise ConflictError("Staff already exists")

    staff = Staff(
        name=payload.name,
        email=payload.email,
        password_hash=get_password_hash(payload.password),
        role=payload.role,
    )
    db.add(staff)
    db.commit()
    db.refresh(staff)
    logger.info(f"Staff {staff.id} ({staff.role}) created by {admin.email}")
    return staff

"""Guest feedback routes."""

import math

from fastapi import APIRouter, Query, status
from sqlalchemy import func, select

from hotel_api.core.exceptions import ValidationError
from hotel_api.core.rbac import CurrentGuest
from hotel_api.db.session import DbSession
from hotel_api.models.feedback import Feedback
from hotel_api.models.guest import Guest
from hotel_api.schemas.feedback import FeedbackCreate, FeedbackListResponse, FeedbackResponse

router = APIRouter()


@router.post("", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
def create_feedback(payload: FeedbackCreate, guest: CurrentGuest, db: DbSession):
    """Submit feedback. Contact fields left empty are filled from the guest profile."""
    if not guest.room_number:
        raise ValidationError("Guest must be checked into a room to submit feedback.")

    profile = db.get(Guest, guest.id)
    feedback = Feedback(
        guest_id=guest.id,
        room_number=guest.room_number,
        name=payload.name or profile.name,
        email=payload.email or profile.email,
        phone=payload.phone or profile.phone,
        rating=payload.rating,
        description=payload.description,
    )
    db.add(feedback)
    db.commit()
    db.refresh(feedback)
    return feedback


@router.get("", response_model=FeedbackListResponse)
def list_feedback(
    db: DbSession,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    total = db.scalar(select(func.count(Feedback.id))) or 0
    feedbacks = db.scalars(
        select(Feedback)
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return FeedbackListResponse(
        feedbacks=[FeedbackResponse.model_validate(f) for f in feedbacks],
        page=page,
        pages=math.ceil(total / limit),
        total=total,
    )

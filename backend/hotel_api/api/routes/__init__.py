"""API routes."""

from fastapi import APIRouter, Depends

from hotel_api.api.routes import (
    admin,
    auth,
    feedback,
    guests,
    menu,
    notifications,
    orders,
    payments,
    rooms,
    service_requests,
    staff,
)
from hotel_api.core.rbac_policy import enforce_route_policy

# Every route below is checked against ENDPOINT_POLICY before its handler runs
api_router = APIRouter(dependencies=[Depends(enforce_route_policy)])

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(guests.router, prefix="/guests", tags=["guests"])
api_router.include_router(rooms.router, prefix="/rooms", tags=["rooms"])
api_router.include_router(menu.router, prefix="/menu", tags=["menu"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(service_requests.router, prefix="/service-requests", tags=["service-requests"])
api_router.include_router(staff.router, prefix="/staff", tags=["staff"])
api_router.include_router(feedback.router, prefix="/feedbacks", tags=["feedback"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])

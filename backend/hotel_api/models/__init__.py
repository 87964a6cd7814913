"""SQLAlchemy models."""

from hotel_api.models.guest import Guest
from hotel_api.models.staff import Staff
from hotel_api.models.room import Room, RoomStatus, RoomType
from hotel_api.models.menu import MenuItem
from hotel_api.models.order import Currency, FoodOrder, OrderStatus, PaymentMethod, PaymentStatus
from hotel_api.models.service_request import RequestPriority, RequestStatus, ServiceRequest
from hotel_api.models.feedback import Feedback
from hotel_api.models.notification import Notification, NotificationType

__all__ = [
    "Guest",
    "Staff",
    "Room",
    "RoomStatus",
    "RoomType",
    "MenuItem",
    "FoodOrder",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "Currency",
    "ServiceRequest",
    "RequestPriority",
    "RequestStatus",
    "Feedback",
    "Notification",
    "NotificationType",
]

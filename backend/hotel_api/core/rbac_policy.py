"""
RBAC Policy Enforcement

Centralized Role-Based Access Control for the hotel API.

Every route under the API router is looked up by its endpoint function name in
``ENDPOINT_POLICY``. The router-level dependency ``enforce_route_policy``
resolves the principal, checks its role against ``ROLE_PERMISSIONS`` and
rejects the request before the handler runs. Endpoints missing from the table
are denied.

Roles:
- Admin: full access, including the payments console
- Manager: staff, rooms, menu and order management
- Receptionist: guest check-in/out, rooms, orders, service desk
- Housekeeping: room status and service requests
- Chef: kitchen orders and menu
- Guest: self-service ordering, payments, requests and feedback
"""

import logging
from enum import Enum
from typing import Dict, Optional, Set

from fastapi import Request

from hotel_api.core.exceptions import AuthenticationError, AuthorizationError
from hotel_api.core.rbac import GUEST_ROLE, OptionalPrincipal, StaffRole

logger = logging.getLogger(__name__)


class Permission(str, Enum):
    """Available permissions in the system."""
    PUBLIC = "public"
    SESSION = "session"

    # Guests & stays
    GUEST_VIEW = "guest:view"
    GUEST_MANAGE = "guest:manage"

    # Rooms
    ROOM_VIEW = "room:view"
    ROOM_CREATE = "room:create"
    ROOM_STATUS = "room:status"

    # Menu
    MENU_EDIT = "menu:edit"

    # Orders
    ORDER_CREATE = "order:create"
    ORDER_VIEW_OWN = "order:view_own"
    ORDER_VIEW = "order:view"
    ORDER_STATUS = "order:status"
    ORDER_CLEANUP = "order:cleanup"

    # Payments
    PAYMENT_PROCESS = "payment:process"

    # Service desk
    REQUEST_CREATE = "request:create"
    REQUEST_VIEW = "request:view"
    REQUEST_UPDATE = "request:update"

    # Staff
    STAFF_VIEW = "staff:view"
    STAFF_MANAGE = "staff:manage"

    # Feedback
    FEEDBACK_CREATE = "feedback:create"
    FEEDBACK_VIEW = "feedback:view"

    # Notifications
    NOTIFICATION_VIEW = "notification:view"

    # Admin
    ADMIN_FULL = "admin:full"


_FRONT_DESK = {
    Permission.GUEST_VIEW, Permission.GUEST_MANAGE,
    Permission.ROOM_VIEW, Permission.ROOM_STATUS,
    Permission.ORDER_CREATE, Permission.ORDER_VIEW,
    Permission.REQUEST_VIEW, Permission.REQUEST_UPDATE,
    Permission.FEEDBACK_VIEW, Permission.NOTIFICATION_VIEW,
}

# Role to permissions mapping
ROLE_PERMISSIONS: Dict[str, Set[Permission]] = {
    StaffRole.ADMIN.value: {Permission.ADMIN_FULL},
    StaffRole.MANAGER.value: _FRONT_DESK | {
        Permission.ROOM_CREATE,
        Permission.MENU_EDIT,
        Permission.ORDER_STATUS, Permission.ORDER_CLEANUP,
        Permission.STAFF_VIEW,
    },
    StaffRole.RECEPTIONIST.value: set(_FRONT_DESK),
    StaffRole.HOUSEKEEPING.value: {
        Permission.ROOM_VIEW, Permission.ROOM_STATUS,
        Permission.REQUEST_VIEW, Permission.REQUEST_UPDATE,
        Permission.NOTIFICATION_VIEW,
    },
    StaffRole.CHEF.value: {
        Permission.ROOM_VIEW,
        Permission.MENU_EDIT,
        Permission.ORDER_VIEW, Permission.ORDER_STATUS,
        Permission.REQUEST_VIEW,
        Permission.NOTIFICATION_VIEW,
    },
    GUEST_ROLE: {
        Permission.ORDER_CREATE, Permission.ORDER_VIEW_OWN,
        Permission.PAYMENT_PROCESS,
        Permission.REQUEST_CREATE, Permission.REQUEST_VIEW,
        Permission.FEEDBACK_CREATE,
    },
}


# Endpoint function name to required permission
ENDPOINT_POLICY: Dict[str, Permission] = {
    # auth
    "login_staff": Permission.PUBLIC,
    "logout": Permission.SESSION,
    "read_me": Permission.SESSION,
    # guests
    "register_guest": Permission.PUBLIC,
    "login_guest": Permission.PUBLIC,
    "list_guests": Permission.GUEST_VIEW,
    "check_in_guest": Permission.GUEST_MANAGE,
    "check_out_guest": Permission.GUEST_MANAGE,
    "toggle_guest_block": Permission.GUEST_MANAGE,
    # rooms
    "list_rooms": Permission.ROOM_VIEW,
    "create_room": Permission.ROOM_CREATE,
    "get_room": Permission.ROOM_VIEW,
    "update_room_status": Permission.ROOM_STATUS,
    # menu
    "list_menu": Permission.PUBLIC,
    "list_menu_admin": Permission.MENU_EDIT,
    "create_menu_item": Permission.MENU_EDIT,
    "update_menu_item": Permission.MENU_EDIT,
    "delete_menu_item": Permission.MENU_EDIT,
    # orders
    "place_order": Permission.ORDER_CREATE,
    "list_orders": Permission.ORDER_VIEW,
    "list_my_orders": Permission.ORDER_VIEW_OWN,
    "update_order_status": Permission.ORDER_STATUS,
    "cleanup_pending_orders": Permission.ORDER_CLEANUP,
    # payments
    "create_checkout": Permission.PAYMENT_PROCESS,
    "get_payment_status": Permission.PAYMENT_PROCESS,
    "payment_callback": Permission.PUBLIC,
    "create_registration": Permission.PAYMENT_PROCESS,
    "get_registration_status": Permission.PAYMENT_PROCESS,
    "pay_with_saved_card": Permission.PAYMENT_PROCESS,
    # service requests
    "create_service_request": Permission.REQUEST_CREATE,
    "list_service_requests": Permission.REQUEST_VIEW,
    "update_service_request_status": Permission.REQUEST_UPDATE,
    # staff
    "list_staff": Permission.STAFF_VIEW,
    "create_staff": Permission.STAFF_MANAGE,
    # feedback
    "create_feedback": Permission.FEEDBACK_CREATE,
    "list_feedback": Permission.FEEDBACK_VIEW,
    # notifications
    "list_notifications": Permission.NOTIFICATION_VIEW,
    "mark_notification_read": Permission.NOTIFICATION_VIEW,
    # payments console
    "admin_list_orders": Permission.ADMIN_FULL,
    "admin_get_order": Permission.ADMIN_FULL,
    "admin_resync_order": Permission.ADMIN_FULL,
    "admin_payment_stats": Permission.ADMIN_FULL,
}


class RBACPolicy:
    """
    RBAC Policy enforcement.

    Validates roles against requested permissions.
    """

    @staticmethod
    def get_role_permissions(role: str) -> Set[Permission]:
        """Get permissions for a role."""
        return ROLE_PERMISSIONS.get(role, set())

    @staticmethod
    def has_permission(role: str, permission: Permission) -> bool:
        """Check if role has specific permission."""
        if permission in (Permission.PUBLIC, Permission.SESSION):
            return True

        granted = RBACPolicy.get_role_permissions(role)
        # Admin has all permissions
        if Permission.ADMIN_FULL in granted:
            return True

        return permission in granted

    @staticmethod
    def permission_for(endpoint_name: str) -> Optional[Permission]:
        return ENDPOINT_POLICY.get(endpoint_name)


def enforce_route_policy(request: Request, principal: OptionalPrincipal) -> None:
    """Router-level dependency checking the matched endpoint against the table."""
    endpoint = request.scope.get("endpoint")
    name = getattr(endpoint, "__name__", "")
    permission = RBACPolicy.permission_for(name)

    if permission is None:
        logger.warning(f"No policy entry for endpoint '{name}', denying {request.url.path}")
        raise AuthorizationError("Access denied")

    if permission == Permission.PUBLIC:
        return

    if principal is None:
        raise AuthenticationError("Not authorized, no token")

    if not RBACPolicy.has_permission(principal.role, permission):
        logger.info(
            f"Permission {permission.value} denied for role {principal.role} "
            f"on {request.method} {request.url.path}"
        )
        raise AuthorizationError(f"Role {principal.role} is not allowed to perform this action")

"""Application error taxonomy.

Services raise these instead of ``HTTPException`` so they stay usable from
background jobs and scripts. ``hotel_api.main`` registers a handler that turns
every ``AppError`` into ``{"message": ...}`` with the matching status code.
"""

from fastapi import status


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class ConflictError(ValidationError):
    """Duplicate unique value (email, room number)."""

    default_message = "Resource already exists"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized"


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class UpstreamError(AppError):
    """A dependency (gateway, broker, storage) failed.

    The message is what the caller sees; the underlying cause is only logged.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Upstream service failed"


class PaymentGatewayError(UpstreamError):
    default_message = "Payment processing failed"

"""Shared rate limiter instance for use across route files."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from hotel_api.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
    default_limits=[f"{settings.rate_limit_requests}/{settings.rate_limit_window} seconds"],
)

# Login endpoints get a tighter budget than the global default
LOGIN_LIMIT = "10/minute"

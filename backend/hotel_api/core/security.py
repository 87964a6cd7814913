"""Security utilities: JWT tokens, password hashing and session revocation."""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
import jwt
from jwt.exceptions import PyJWTError

from hotel_api.core.config import settings

logger = logging.getLogger(__name__)

COOKIE_ACCESS_NAME = "access_token"
COOKIE_SECURE = not settings.debug
COOKIE_SAMESITE = "lax"
ACCESS_TOKEN_MAX_AGE = settings.access_token_expire_minutes * 60

TOKEN_KIND_GUEST = "guest"
TOKEN_KIND_STAFF = "staff"


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a plain password against a bcrypt hash.

    Accounts created by staff check-in have no password and never match.
    """
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8"),
        )
    except ValueError as e:
        logger.warning(f"Password verification error: {e}")
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=10),
    ).decode("utf-8")


def create_access_token(
    subject: int,
    kind: str,
    extra: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token for a guest or staff member.

    ``kind`` tells the principal resolver which table ``sub`` points into.
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))

    to_encode: dict[str, Any] = dict(extra or {})
    to_encode.update({
        "sub": str(subject),
        "kind": kind,
        "exp": expire,
        "iat": now,
        "jti": secrets.token_urlsafe(16),
    })
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT token. Returns None when invalid or revoked."""
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require": ["exp", "sub"]},
        )
    except PyJWTError as e:
        logger.debug(f"JWT decode error: {e}")
        return None

    jti = payload.get("jti")
    if jti and _is_token_blacklisted(jti):
        logger.debug(f"Token {jti} is blacklisted")
        return None
    return payload


def blacklist_token(token: str) -> bool:
    """Revoke a token until it would have expired anyway."""
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"verify_exp": False},
        )
    except PyJWTError:
        return False

    jti = payload.get("jti")
    if not jti:
        return False

    exp = payload.get("exp", 0)
    ttl = max(int(exp - datetime.now(timezone.utc).timestamp()), 60)

    client = _redis_client()
    if client is not None:
        try:
            client.setex(f"token_blacklist:{jti}", ttl, "1")
            return True
        except Exception as e:
            logger.warning(f"Redis blacklist failed: {e}")

    _memory_blacklist[jti] = datetime.now(timezone.utc) + timedelta(seconds=ttl)
    return True


def _is_token_blacklisted(jti: str) -> bool:
    client = _redis_client()
    if client is not None:
        try:
            return bool(client.get(f"token_blacklist:{jti}"))
        except Exception as e:
            logger.warning(f"Redis blacklist check failed (token may be allowed through): {e}")

    expiry = _memory_blacklist.get(jti)
    if expiry:
        if datetime.now(timezone.utc) < expiry:
            return True
        del _memory_blacklist[jti]
    return False


# In-memory blacklist fallback (for when Redis is unavailable)
_memory_blacklist: Dict[str, datetime] = {}
_redis = None


def _redis_client():
    global _redis
    if not settings.redis_url:
        return None
    if _redis is None:
        import redis
        _redis = redis.from_url(settings.redis_url, socket_connect_timeout=1)
    return _redis


def compute_signature(secret: str, payload: bytes) -> str:
    """Hex HMAC-SHA256 of ``payload`` keyed with ``secret``."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_signature(secret: str, payload: bytes, signature: str | None) -> bool:
    """Constant-time check of a hex HMAC-SHA256 signature over the raw payload."""
    if not secret or not signature:
        return False
    expected = compute_signature(secret, payload)
    return hmac.compare_digest(expected, signature.strip().lower())

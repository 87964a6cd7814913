"""FastAPI application entry point."""

import asyncio
import json
import logging
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional, Set

from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from hotel_api.api.routes import api_router
from hotel_api.core.config import settings
from hotel_api.core.exceptions import AppError
from hotel_api.core.rate_limit import limiter
from hotel_api.core.rbac import GuestPrincipal, Principal, StaffPrincipal, principal_from_token
from hotel_api.db.session import SessionLocal, init_db
from hotel_api.services.broadcaster import Broadcaster
from hotel_api.services.hyperpay_service import HyperPayService
from hotel_api.services.notification_service import role_channel, user_channel
from hotel_api.services.order_cleanup_service import run_order_cleanup
from hotel_api.services.scheduler_service import JobLease, TaskScheduler

# Configure logging - use JSON format in production, human-readable in dev
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, settings.log_level))
root_logger.handlers.clear()

if settings.debug:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
else:
    class JSONFormatter(logging.Formatter):
        def format(self, record):
            return json.dumps({
                "ts": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "module": record.module,
                "line": record.lineno,
            })

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

root_logger.addHandler(handler)
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("requests")

VERSION = "1.0.0"
ORDER_CLEANUP_JOB = "order-payment-sweep"


class HTTPSRedirectMiddleware(BaseHTTPMiddleware):
    """Redirect HTTP to HTTPS in production (behind reverse proxy)."""

    async def dispatch(self, request: Request, call_next):
        if not settings.debug and request.headers.get("x-forwarded-proto") == "http":
            url = request.url.replace(scheme="https")
            return RedirectResponse(url=str(url), status_code=301)
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and latency of every HTTP request."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in ("/health", "/"):
            return await call_next(request)

        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"
        try:
            response = await call_next(request)
        except Exception as e:
            request_logger.error(
                f"Error: {request.method} {request.url.path} - "
                f"Exception: {e} - Time: {time.time() - start_time:.3f}s - Client: {client_ip}"
            )
            raise

        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        request_logger.log(
            log_level,
            f"{request.method} {request.url.path} - Status: {response.status_code} - "
            f"Time: {time.time() - start_time:.3f}s - Client: {client_ip}"
        )
        return response


def _job_lease() -> Optional[JobLease]:
    if not settings.redis_url:
        return None
    import redis

    return JobLease(redis.from_url(settings.redis_url, socket_connect_timeout=2))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting hotel operations API")

    init_db()

    broadcaster = Broadcaster(redis_url=settings.redis_url)
    await broadcaster.start()
    app.state.broadcaster = broadcaster

    gateway = HyperPayService()
    app.state.payment_gateway = gateway
    logger.info(f"HyperPay gateway configured in {settings.hyperpay_mode} mode")

    scheduler = TaskScheduler(lease=_job_lease())
    app.state.scheduler = scheduler
    scheduler_task = None
    if settings.order_cleanup_enabled:
        scheduler.add_task(
            ORDER_CLEANUP_JOB,
            run_order_cleanup,
            interval_seconds=settings.order_cleanup_interval_seconds,
            first_run_delay=0,
        )
        scheduler_task = asyncio.create_task(scheduler.start())
        logger.info(
            f"Order payment sweep every {settings.order_cleanup_interval_seconds}s "
            f"(grace {settings.order_payment_grace_minutes} min)"
        )
    else:
        logger.info("Order payment sweep disabled")

    yield

    scheduler.stop()
    if scheduler_task is not None:
        scheduler_task.cancel()
        try:
            await scheduler_task
        except asyncio.CancelledError:
            pass

    await broadcaster.stop()
    gateway.close()
    logger.info("Shutting down hotel operations API")


app = FastAPI(
    title="Hotel Operations API",
    description="Guest stays, room service, payments and staff operations",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc.__cause__)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid input: {field}: {first.get('msg')}" if field else "Invalid input"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "message": message,
            "errors": [{"field": ".".join(map(str, e.get("loc", ()))), "message": e.get("msg")} for e in errors],
        },
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit exceeded on {request.url.path} by {request.client.host if request.client else '?'}")
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"message": f"Too many requests: {exc.detail}"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


# HTTPS redirect middleware (production only)
if not settings.debug:
    app.add_middleware(HTTPSRedirectMiddleware)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# Global default limit from settings; login routes carry their own tighter limit
app.add_middleware(SlowAPIMiddleware)

# CORS middleware - MUST be added last so it runs first (Starlette LIFO order)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=600,
)

app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {"status": "healthy", "version": VERSION}


@app.get("/health/ready")
def readiness_check(request: Request):
    """Readiness probe with database, Redis and real-time delivery checks."""
    checks = {
        "database": "unknown",
        "redis": "unknown",
        "broadcaster": "unknown",
    }

    db = None
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = "unhealthy"
    finally:
        if db:
            db.close()

    if settings.redis_url:
        try:
            import redis

            redis.from_url(settings.redis_url, socket_connect_timeout=2).ping()
            checks["redis"] = "healthy"
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            checks["redis"] = "unhealthy"
    else:
        checks["redis"] = "not configured"

    broadcaster = getattr(request.app.state, "broadcaster", None)
    if broadcaster is not None and broadcaster.relay_lost:
        checks["broadcaster"] = f"degraded ({broadcaster.mode})"
    elif broadcaster is not None:
        checks["broadcaster"] = (
            f"healthy ({broadcaster.mode}, {broadcaster.manager.get_connection_count()} connections)"
        )
    else:
        checks["broadcaster"] = "unhealthy: not started"

    all_healthy = all(c.startswith("healthy") or c == "not configured" for c in checks.values())
    return {
        "status": "ready" if all_healthy else "degraded",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }


# ===== Real-time WebSocket =====

def guest_channel(guest_id: int) -> str:
    return f"guest:{guest_id}"


def own_channels(principal: Principal) -> Set[str]:
    """Private channels a principal is subscribed to on connect."""
    if isinstance(principal, StaffPrincipal):
        return {role_channel(principal.role), user_channel(principal.id)}
    return {guest_channel(principal.id)}


def may_join(principal: Principal, channel: str) -> bool:
    """Free-form rooms are open; role, user and guest channels only to their owner."""
    if channel.startswith(("role:", "user:", "guest:")):
        return channel in own_channels(principal)
    return True


def socket_principal(token: Optional[str]) -> Optional[Principal]:
    """Resolve the socket owner in a short-lived session released before the stream starts."""
    db = SessionLocal()
    try:
        return principal_from_token(db, token)
    finally:
        db.close()


def _principal_label(principal: Principal) -> str:
    kind = "guest" if isinstance(principal, GuestPrincipal) else "staff"
    return f"{kind}:{principal.id}"


@app.websocket("/ws")
async def websocket_events(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
):
    """Authenticated event stream.

    The token comes from the query string or the ``access_token`` cookie.
    Staff are joined to their role and user channels, guests to their own
    channel. Clients send ``join-room``, ``join-role``, ``leave-room`` and
    ``ping`` messages.
    """
    token = token or websocket.cookies.get("access_token")
    principal = await run_in_threadpool(socket_principal, token)
    if principal is None:
        logger.warning("WebSocket rejected: no valid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    broadcaster: Broadcaster = websocket.app.state.broadcaster
    manager = broadcaster.manager
    if not await manager.connect(websocket, _principal_label(principal)):
        return
    for channel in own_channels(principal):
        manager.join(websocket, channel)

    try:
        await websocket.send_json({
            "event": "connected",
            "data": {"role": principal.role, "channels": sorted(manager.channels_of(websocket))},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

        while True:
            data = await websocket.receive_text()
            if len(data) > manager.MAX_MESSAGE_SIZE:
                logger.warning(f"WebSocket message too large from {_principal_label(principal)}")
                continue

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                if data == "ping":
                    manager.update_ping(websocket)
                    await websocket.send_text("pong")
                continue
            if not isinstance(message, dict):
                continue

            event = message.get("event")
            if event == "ping":
                manager.update_ping(websocket)
                await websocket.send_json({"event": "pong", "timestamp": datetime.now(timezone.utc).isoformat()})
            elif event in ("join-room", "join-role"):
                value = message.get("room") if event == "join-room" else message.get("role")
                if not isinstance(value, str) or not value or len(value) > 64:
                    continue
                channel = value if event == "join-room" else role_channel(value)
                if may_join(principal, channel) and manager.join(websocket, channel):
                    await websocket.send_json({"event": "joined", "data": {"channel": channel}})
                else:
                    await websocket.send_json({"event": "join-denied", "data": {"channel": channel}})
            elif event == "leave-room":
                room = message.get("room")
                if isinstance(room, str):
                    manager.leave(websocket, room)
    except WebSocketDisconnect:
        logger.debug(f"WebSocket disconnected: {_principal_label(principal)}")
    except Exception as e:
        logger.error(f"WebSocket error for {_principal_label(principal)}: {e}", exc_info=True)
    finally:
        manager.disconnect(websocket)

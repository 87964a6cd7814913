"""Pytest configuration and fixtures."""

import os

# Settings are read once at import time; pin a deterministic test environment first
os.environ.update({
    "DATABASE_URL": "sqlite://",
    "REDIS_URL": "",
    "SECRET_KEY": "test-secret-key-that-is-long-enough-for-hs256",
    "DEBUG": "true",
    "RATE_LIMIT_ENABLED": "false",
    "ORDER_CLEANUP_ENABLED": "false",
    "HYPERPAY_MODE": "test",
    "HYPERPAY_ACCESS_TOKEN": "test-access-token",
    "HYPERPAY_ENTITY_ID_AED": "entity-aed",
    "HYPERPAY_ENTITY_ID_USD": "entity-usd",
    "HYPERPAY_WEBHOOK_SECRET": "test-webhook-secret",
})

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional
from urllib.parse import parse_qsl

import httpx
import pytest
from fastapi.encoders import jsonable_encoder
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from hotel_api.core.rbac import StaffRole
from hotel_api.core.security import (
    TOKEN_KIND_GUEST,
    TOKEN_KIND_STAFF,
    create_access_token,
    get_password_hash,
)
from hotel_api.db.base import Base
from hotel_api.db.session import get_db
from hotel_api.main import app
# Import all models to ensure they're registered with Base.metadata
from hotel_api.models import *  # noqa: F401,F403
from hotel_api.models.guest import Guest
from hotel_api.models.menu import MenuItem
from hotel_api.models.order import FoodOrder
from hotel_api.models.room import Room, RoomStatus
from hotel_api.models.staff import Staff
from hotel_api.services.broadcaster import get_broadcaster
from hotel_api.services.hyperpay_service import HyperPayService, get_payment_gateway

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"
WEBHOOK_SECRET = "test-webhook-secret"


class RecordingBroadcaster:
    """Stands in for the real broadcaster and keeps every emitted event."""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    def emit(self, event: str, data: Any, channel: Optional[str] = None) -> None:
        self.events.append({"event": event, "data": jsonable_encoder(data), "channel": channel})

    def named(self, event: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e["event"] == event]


class GatewayStub:
    """In-memory HyperPay: answers the four endpoints the service calls."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.payment_codes: Dict[str, str] = {}
        self.default_payment_code = "000.000.000"
        self.token_payment_code = "000.100.110"
        self.registration_code = "000.000.000"
        self.fail = False
        self.omit_checkout_id = False
        self._checkouts = 0

    def set_result(self, checkout_id: str, code: str) -> None:
        self.payment_codes[checkout_id] = code

    def calls_to(self, method: str, suffix: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["method"] == method and c["path"].endswith(suffix)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        form = dict(parse_qsl(request.content.decode())) if request.content else {}
        path = request.url.path
        self.calls.append({
            "method": request.method,
            "path": path,
            "params": dict(request.url.params),
            "form": form,
            "auth": request.headers.get("Authorization"),
        })

        if self.fail:
            return httpx.Response(502, json={"result": {"code": "900.100.300", "description": "timeout"}})

        if request.method == "POST" and path == "/v1/checkouts":
            if self.omit_checkout_id:
                return httpx.Response(200, json={"result": {"code": "000.200.100", "description": "no id"}})
            self._checkouts += 1
            return httpx.Response(200, json={
                "id": f"checkout-{self._checkouts}",
                "result": {"code": "000.200.100", "description": "successfully created checkout"},
                "integrity": "sha384-test",
            })

        if request.method == "GET" and path.endswith("/payment"):
            checkout_id = path.split("/")[3]
            code = self.payment_codes.get(checkout_id, self.default_payment_code)
            return httpx.Response(200, json={
                "id": f"txn-{checkout_id}",
                "paymentBrand": "VISA",
                "amount": "190.00",
                "currency": "USD" if request.url.params.get("entityId") == "entity-usd" else "AED",
                "result": {"code": code, "description": "stub"},
            })

        if request.method == "GET" and path.endswith("/registration"):
            return httpx.Response(200, json={
                "id": "registration-1",
                "paymentBrand": "VISA",
                "card": {"bin": "420000", "last4Digits": "0000"},
                "result": {"code": self.registration_code, "description": "stub"},
            })

        if request.method == "POST" and path.startswith("/v1/registrations/"):
            return httpx.Response(200, json={
                "id": "txn-token-1",
                "result": {"code": self.token_payment_code, "description": "stub"},
            })

        return httpx.Response(404, json={"result": {"code": "200.300.404", "description": "not found"}})


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def events() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def gateway_stub() -> GatewayStub:
    return GatewayStub()


@pytest.fixture
def gateway(gateway_stub: GatewayStub) -> Generator[HyperPayService, None, None]:
    service = HyperPayService(
        base_url="https://gateway.test",
        access_token="test-access-token",
        entity_id_aed="entity-aed",
        entity_id_usd="entity-usd",
        mode="test",
        transport=httpx.MockTransport(gateway_stub.handler),
    )
    yield service
    service.close()


@pytest.fixture(scope="function")
def client(
    db_engine, db_session: Session, events: RecordingBroadcaster, gateway: HyperPayService, monkeypatch
) -> Generator[TestClient, None, None]:
    """Create a test client with database, broadcaster and gateway overrides."""
    # Sessions opened outside of get_db (WebSocket handshake, readiness) use the test engine too
    monkeypatch.setattr("hotel_api.main.SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=db_engine))

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_broadcaster] = lambda: events
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    # Disable rate limiters during tests to avoid flaky failures
    from hotel_api.core.rate_limit import limiter
    previous = limiter.enabled
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = previous
    app.dependency_overrides.clear()


# ============== Users ==============

def _make_staff(db: Session, role: StaffRole, email: Optional[str] = None) -> Staff:
    staff = Staff(
        name=f"{role.value} User",
        email=email or f"{role.value.lower()}@hotel.test",
        password_hash=get_password_hash("password123"),
        role=role,
    )
    db.add(staff)
    db.commit()
    db.refresh(staff)
    return staff


@pytest.fixture
def make_staff(db_session: Session):
    def factory(role: StaffRole, email: Optional[str] = None) -> Staff:
        return _make_staff(db_session, role, email)
    return factory


def staff_token(staff: Staff) -> str:
    return create_access_token(staff.id, TOKEN_KIND_STAFF, extra={"role": staff.role})


def guest_token(guest: Guest) -> str:
    return create_access_token(guest.id, TOKEN_KIND_GUEST)


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(db_session: Session) -> Staff:
    return _make_staff(db_session, StaffRole.ADMIN)


@pytest.fixture
def admin_headers(admin: Staff) -> Dict[str, str]:
    return bearer(staff_token(admin))


@pytest.fixture
def receptionist_headers(db_session: Session) -> Dict[str, str]:
    return bearer(staff_token(_make_staff(db_session, StaffRole.RECEPTIONIST)))


@pytest.fixture
def chef_headers(db_session: Session) -> Dict[str, str]:
    return bearer(staff_token(_make_staff(db_session, StaffRole.CHEF)))


@pytest.fixture
def housekeeping_headers(db_session: Session) -> Dict[str, str]:
    return bearer(staff_token(_make_staff(db_session, StaffRole.HOUSEKEEPING)))


@pytest.fixture
def manager_headers(db_session: Session) -> Dict[str, str]:
    return bearer(staff_token(_make_staff(db_session, StaffRole.MANAGER)))


# ============== Rooms, guests, menu ==============

@pytest.fixture
def rooms(db_session: Session) -> List[Room]:
    created = [
        Room(room_number=number, type="Standard", floor=int(number[0]), status=RoomStatus.AVAILABLE)
        for number in ("101", "102", "201")
    ]
    db_session.add_all(created)
    db_session.commit()
    for room in created:
        db_session.refresh(room)
    return created


@pytest.fixture
def checked_in_guest(db_session: Session, rooms: List[Room]) -> Guest:
    """Guest with an app account, checked into room 101."""
    guest = Guest(
        name="Layla Haddad",
        email="layla@guest.test",
        phone="+971500000001",
        password_hash=get_password_hash("guestpass"),
        room_number="101",
        is_checked_in=True,
        check_in_date=datetime.now(timezone.utc),
    )
    db_session.add(guest)
    db_session.flush()
    rooms[0].status = RoomStatus.OCCUPIED
    rooms[0].current_guest_id = guest.id
    db_session.commit()
    db_session.refresh(guest)
    return guest


@pytest.fixture
def guest_headers(checked_in_guest: Guest) -> Dict[str, str]:
    return bearer(guest_token(checked_in_guest))


@pytest.fixture
def menu_items(db_session: Session) -> List[MenuItem]:
    items = [
        MenuItem(name="Lobster Bisque", price=Decimal("95.00"), category="Appetizer"),
        MenuItem(name="Royal Saffron Tea", price=Decimal("35.00"), category="Beverage"),
        MenuItem(name="Seasonal Special", price=Decimal("42.50"), category="Main Course", is_active=False),
    ]
    db_session.add_all(items)
    db_session.commit()
    for item in items:
        db_session.refresh(item)
    return items


def signed(body: Dict[str, Any], secret: str = WEBHOOK_SECRET):
    """Raw JSON body plus the signature header HyperPay would send."""
    from hotel_api.core.security import compute_signature

    raw = json.dumps(body).encode()
    return raw, {"x-hyperpay-signature": compute_signature(secret, raw), "Content-Type": "application/json"}


def make_gateway_order(
    db: Session,
    guest: Guest,
    checkout_id: Optional[str] = "checkout-seeded",
    created_at: Optional[datetime] = None,
    currency: str = "AED",
    total: str = "95.00",
    **fields: Any,
) -> FoodOrder:
    """Insert a HyperPay order waiting on its payment."""
    values: Dict[str, Any] = {
        "guest_id": guest.id,
        "room_number": guest.room_number or "101",
        "items": [{"menu_item_id": 1, "name": "Lobster Bisque", "quantity": 1, "price": total}],
        "total_amount": Decimal(total),
        "payment_method": "HyperPay",
        "payment_status": "pending",
        "currency": currency,
        "checkout_id": checkout_id,
        "status": "Pending",
    }
    values.update(fields)
    order = FoodOrder(**values)
    if created_at is not None:
        order.created_at = created_at
    db.add(order)
    db.commit()
    db.refresh(order)
    return order

"""Tests for authentication: password hashing, tokens, staff login, logout."""

from datetime import timedelta

from conftest import bearer, guest_token, staff_token

from hotel_api.core.security import (
    TOKEN_KIND_GUEST,
    TOKEN_KIND_STAFF,
    blacklist_token,
    compute_signature,
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
    verify_signature,
)
from hotel_api.models.staff import Staff


# ============== Password hashing ==============

class TestPasswordHashing:
    def test_hash_and_verify(self):
        h = get_password_hash("secret123")
        assert verify_password("secret123", h)

    def test_wrong_password_rejected(self):
        h = get_password_hash("secret123")
        assert not verify_password("wrong", h)

    def test_hash_is_unique(self):
        assert get_password_hash("same") != get_password_hash("same")

    def test_invalid_hash_returns_false(self):
        assert not verify_password("test", "not-a-hash")

    def test_missing_hash_never_matches(self):
        # Guests created at the front desk have no password yet
        assert not verify_password("anything", None)


# ============== JWT tokens ==============

class TestJWTTokens:
    def test_create_and_decode(self):
        token = create_access_token(42, TOKEN_KIND_STAFF, extra={"role": "Chef"})
        payload = decode_access_token(token)
        assert payload is not None
        assert payload["sub"] == "42"
        assert payload["kind"] == "staff"
        assert payload["role"] == "Chef"
        assert "exp" in payload and "jti" in payload

    def test_expired_token_rejected(self):
        token = create_access_token(1, TOKEN_KIND_GUEST, expires_delta=timedelta(seconds=-10))
        assert decode_access_token(token) is None

    def test_garbage_token_rejected(self):
        assert decode_access_token("not.a.token") is None

    def test_blacklisted_token_rejected(self):
        token = create_access_token(7, TOKEN_KIND_GUEST)
        assert blacklist_token(token)
        assert decode_access_token(token) is None


class TestSignatures:
    def test_matching_signature(self):
        sig = compute_signature("k", b"payload")
        assert verify_signature("k", b"payload", sig)
        assert verify_signature("k", b"payload", sig.upper())

    def test_mismatch(self):
        sig = compute_signature("k", b"payload")
        assert not verify_signature("other", b"payload", sig)
        assert not verify_signature("k", b"payload!", sig)
        assert not verify_signature("", b"payload", sig)


# ============== Staff login ==============

class TestStaffLogin:
    def test_login_success(self, client, admin, db_session):
        r = client.post("/api/auth/login", json={"email": "admin@hotel.test", "password": "password123"})
        assert r.status_code == 200
        body = r.json()
        assert body["role"] == "Admin"
        assert body["id"] == admin.id
        assert decode_access_token(body["token"])["kind"] == "staff"
        assert r.cookies.get("access_token") == body["token"]

        db_session.expire_all()
        assert db_session.get(Staff, admin.id).is_online is True

    def test_wrong_password(self, client, admin):
        r = client.post("/api/auth/login", json={"email": "admin@hotel.test", "password": "nope"})
        assert r.status_code == 401
        assert r.json()["message"] == "Invalid email or password"

    def test_unknown_email(self, client):
        r = client.post("/api/auth/login", json={"email": "ghost@hotel.test", "password": "x"})
        assert r.status_code == 401

    def test_invalid_email_is_a_validation_error(self, client):
        r = client.post("/api/auth/login", json={"email": "not-an-email", "password": "x"})
        assert r.status_code == 400
        assert r.json()["message"].startswith("Invalid input: email")


class TestSession:
    def test_me_for_staff(self, client, admin, admin_headers):
        r = client.get("/api/auth/me", headers=admin_headers)
        assert r.status_code == 200
        body = r.json()
        assert body["kind"] == "staff"
        assert body["role"] == "Admin"
        assert body["email"] == admin.email

    def test_me_for_guest(self, client, checked_in_guest):
        r = client.get("/api/auth/me", headers=bearer(guest_token(checked_in_guest)))
        assert r.status_code == 200
        body = r.json()
        assert body["kind"] == "guest"
        assert body["role"] == "Guest"
        assert body["room_number"] == "101"
        assert body["is_checked_in"] is True

    def test_me_without_token(self, client):
        r = client.get("/api/auth/me")
        assert r.status_code == 401
        assert r.json()["message"] == "Not authorized, no token"

    def test_cookie_session(self, client, admin):
        client.post("/api/auth/login", json={"email": "admin@hotel.test", "password": "password123"})
        r = client.get("/api/auth/me")
        assert r.status_code == 200
        assert r.json()["kind"] == "staff"

    def test_logout_revokes_token(self, client, admin, db_session):
        token = staff_token(admin)
        r = client.post("/api/auth/logout", headers=bearer(token))
        assert r.status_code == 200
        assert r.json()["message"] == "Logged out successfully"

        assert client.get("/api/auth/me", headers=bearer(token)).status_code == 401
        db_session.expire_all()
        assert db_session.get(Staff, admin.id).is_online is False

    def test_token_for_deleted_staff(self, client, admin, db_session):
        token = staff_token(admin)
        db_session.delete(admin)
        db_session.commit()
        assert client.get("/api/auth/me", headers=bearer(token)).status_code == 401

"""Tests for guest feedback and staff account management."""

from conftest import bearer, guest_token

from hotel_api.models.guest import Guest


class TestFeedback:
    def test_defaults_from_profile(self, client, guest_headers, checked_in_guest):
        r = client.post("/api/feedbacks", headers=guest_headers, json={"rating": 5, "description": "Lovely stay"})
        assert r.status_code == 201
        body = r.json()
        assert body["name"] == "Layla Haddad"
        assert body["email"] == "layla@guest.test"
        assert body["phone"] == "+971500000001"
        assert body["room_number"] == "101"
        assert body["guest_id"] == checked_in_guest.id

    def test_explicit_contact(self, client, guest_headers):
        r = client.post("/api/feedbacks", headers=guest_headers, json={
            "rating": 3, "description": "OK", "name": "L. H.", "email": "other@mail.test",
        })
        assert r.json()["name"] == "L. H."
        assert r.json()["email"] == "other@mail.test"

    def test_rating_bounds(self, client, guest_headers):
        for rating in (0, 6):
            r = client.post("/api/feedbacks", headers=guest_headers, json={"rating": rating, "description": "x"})
            assert r.status_code == 400

    def test_needs_a_room(self, client, db_session):
        guest = Guest(name="Walk In", email="walkin@guest.test", phone="+971500000007")
        db_session.add(guest)
        db_session.commit()
        r = client.post("/api/feedbacks", headers=bearer(guest_token(guest)), json={"rating": 4, "description": "x"})
        assert r.status_code == 400
        assert r.json()["message"] == "Guest must be checked into a room to submit feedback."

    def test_staff_list_paginated(self, client, guest_headers, receptionist_headers):
        for i in range(3):
            client.post("/api/feedbacks", headers=guest_headers, json={"rating": 4, "description": f"note {i}"})
        r = client.get("/api/feedbacks?limit=2", headers=receptionist_headers)
        assert r.status_code == 200
        body = r.json()
        assert body["total"] == 3
        assert body["pages"] == 2
        assert [f["description"] for f in body["feedbacks"]] == ["note 2", "note 1"]

    def test_guest_cannot_list(self, client, guest_headers):
        assert client.get("/api/feedbacks", headers=guest_headers).status_code == 403


class TestStaffAccounts:
    NEW_STAFF = {"name": "Sara Chef", "email": "sara@hotel.test", "password": "kitchen1", "role": "Chef"}

    def test_admin_creates_staff(self, client, admin_headers):
        r = client.post("/api/staff", headers=admin_headers, json=self.NEW_STAFF)
        assert r.status_code == 201
        body = r.json()
        assert body["role"] == "Chef"
        assert body["is_online"] is False
        assert "password" not in body and "password_hash" not in body

        login = client.post("/api/auth/login", json={"email": "sara@hotel.test", "password": "kitchen1"})
        assert login.status_code == 200

    def test_duplicate_email(self, client, admin_headers):
        client.post("/api/staff", headers=admin_headers, json=self.NEW_STAFF)
        r = client.post("/api/staff", headers=admin_headers, json=self.NEW_STAFF)
        assert r.status_code == 400
        assert r.json()["message"] == "Staff already exists"

    def test_unknown_role(self, client, admin_headers):
        r = client.post("/api/staff", headers=admin_headers, json={**self.NEW_STAFF, "role": "Sommelier"})
        assert r.status_code == 400

    def test_manager_lists_but_cannot_create(self, client, manager_headers, admin):
        r = client.get("/api/staff", headers=manager_headers)
        assert r.status_code == 200
        assert {s["role"] for s in r.json()} == {"Admin", "Manager"}
        assert client.post("/api/staff", headers=manager_headers, json=self.NEW_STAFF).status_code == 403

    def test_chef_cannot_list(self, client, chef_headers):
        assert client.get("/api/staff", headers=chef_headers).status_code == 403

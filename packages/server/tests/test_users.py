"""
Tests for user management: listing scope, CRUD, uniqueness and deactivation.
"""

from __future__ import annotations

import uuid

import pytest

from feedback_hub_shared.schemas.users import LoginRequest, UserCreateRequest, UserUpdateRequest


# ---------------------------------------------------------------------------
# Schema validation tests
# ---------------------------------------------------------------------------

class TestUserSchemas:
    def test_create_defaults_to_employee(self):
        req = UserCreateRequest(name="A", mobile="09121111111", password="longenough")
        assert req.role.value == "EMPLOYEE"

    def test_short_password_rejected(self):
        with pytest.raises(Exception):
            UserCreateRequest(name="A", mobile="09121111111", password="short")

    def test_login_requires_identifier(self):
        with pytest.raises(Exception):
            LoginRequest(password="x")

    def test_update_is_partial(self):
        req = UserUpdateRequest(name="New")
        assert req.model_dump(exclude_unset=True) == {"name": "New"}


# ---------------------------------------------------------------------------
# API tests
# ---------------------------------------------------------------------------

class TestUserEndpoints:
    @pytest.mark.asyncio
    async def test_admin_creates_user(self, client, org, auth_headers):
        resp = await client.post(
            "/api/v1/users",
            json={
                "name": "New Hire",
                "mobile": "09125555555",
                "password": "welcome123",
                "role": "EMPLOYEE",
                "department_id": str(org["dept"].id),
            },
            headers=auth_headers(org["admin"]),
        )
        assert resp.status_code == 201
        assert resp.json()["department_id"] == str(org["dept"].id)
        assert "password_hash" not in resp.json()

    @pytest.mark.asyncio
    async def test_duplicate_mobile_conflicts(self, client, org, auth_headers):
        resp = await client.post(
            "/api/v1/users",
            json={"name": "Dup", "mobile": org["employee"].mobile, "password": "welcome123"},
            headers=auth_headers(org["admin"]),
        )
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_department(self, client, org, auth_headers):
        resp = await client.post(
            "/api/v1/users",
            json={
                "name": "X",
                "mobile": "09126666666",
                "password": "welcome123",
                "department_id": str(uuid.uuid4()),
            },
            headers=auth_headers(org["admin"]),
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_manager_cannot_create(self, client, org, auth_headers):
        resp = await client.post(
            "/api/v1/users",
            json={"name": "X", "mobile": "09127777777", "password": "welcome123"},
            headers=auth_headers(org["manager"]),
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_manager_lists_own_department(self, client, org, auth_headers):
        resp = await client.get("/api/v1/users", headers=auth_headers(org["manager"]))
        assert resp.status_code == 200
        ids = {u["id"] for u in resp.json()["data"]}
        assert ids == {str(org["manager"].id), str(org["employee"].id)}

    @pytest.mark.asyncio
    async def test_admin_filters_by_role(self, client, org, auth_headers):
        resp = await client.get("/api/v1/users?role=MANAGER", headers=auth_headers(org["admin"]))
        names = sorted(u["name"] for u in resp.json()["data"])
        assert names == ["HR Manager", "Manager"]

    @pytest.mark.asyncio
    async def test_employee_cannot_list(self, client, org, auth_headers):
        resp = await client.get("/api/v1/users", headers=auth_headers(org["employee"]))
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_get_user_access(self, client, org, auth_headers):
        employee_id = org["employee"].id
        own = await client.get(f"/api/v1/users/{employee_id}", headers=auth_headers(org["employee"]))
        assert own.status_code == 200
        mgr = await client.get(f"/api/v1/users/{employee_id}", headers=auth_headers(org["manager"]))
        assert mgr.status_code == 200
        other = await client.get(f"/api/v1/users/{employee_id}", headers=auth_headers(org["other_manager"]))
        assert other.status_code == 403

    @pytest.mark.asyncio
    async def test_update_role(self, client, org, auth_headers):
        resp = await client.patch(
            f"/api/v1/users/{org['employee'].id}",
            json={"role": "MANAGER"},
            headers=auth_headers(org["admin"]),
        )
        assert resp.status_code == 200
        assert resp.json()["role"] == "MANAGER"

    @pytest.mark.asyncio
    async def test_delete_deactivates(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        resp = await client.delete(f"/api/v1/users/{org['employee'].id}", headers=admin)
        assert resp.status_code == 204

        fetched = await client.get(f"/api/v1/users/{org['employee'].id}", headers=admin)
        assert fetched.json()["is_active"] is False
        me = await client.get("/auth/me", headers=auth_headers(org["employee"]))
        assert me.status_code == 401

    @pytest.mark.asyncio
    async def test_cannot_delete_self(self, client, org, auth_headers):
        resp = await client.delete(f"/api/v1/users/{org['admin'].id}", headers=auth_headers(org["admin"]))
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_heartbeat(self, client, org, auth_headers):
        resp = await client.post("/api/v1/users/heartbeat", headers=auth_headers(org["employee"]))
        assert resp.status_code == 200
        assert resp.json()["last_seen_at"] is not None

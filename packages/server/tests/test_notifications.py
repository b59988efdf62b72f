"""
Tests for the notification inbox: listing, unread counts and read markers.
"""

from __future__ import annotations

import uuid

import pytest


async def _send(client, headers, user_id, title="Hello") -> dict:
    resp = await client.post(
        "/api/v1/notifications",
        json={"user_id": str(user_id), "title": title, "content": "Body", "type": "WARNING"},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestNotifications:
    @pytest.mark.asyncio
    async def test_inbox_and_unread_count(self, client, org, auth_headers):
        manager = auth_headers(org["manager"])
        await _send(client, manager, org["employee"].id, "First")
        await _send(client, manager, org["employee"].id, "Second")

        resp = await client.get("/api/v1/notifications", headers=auth_headers(org["employee"]))
        data = resp.json()
        assert data["unread_count"] == 2
        assert {n["title"] for n in data["notifications"]} == {"First", "Second"}
        assert data["notifications"][0]["type"] == "WARNING"

    @pytest.mark.asyncio
    async def test_employee_cannot_send(self, client, org, auth_headers):
        resp = await client.post(
            "/api/v1/notifications",
            json={"user_id": str(org["manager"].id), "title": "x", "content": "y"},
            headers=auth_headers(org["employee"]),
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_mark_read(self, client, org, auth_headers):
        sent = await _send(client, auth_headers(org["admin"]), org["employee"].id)
        url = f"/api/v1/notifications/{sent['id']}/read"

        other = await client.patch(url, headers=auth_headers(org["manager"]))
        assert other.status_code == 403

        resp = await client.patch(url, headers=auth_headers(org["employee"]))
        assert resp.json()["is_read"] is True
        unread = await client.get(
            "/api/v1/notifications?unread_only=true", headers=auth_headers(org["employee"])
        )
        assert unread.json() == {"notifications": [], "unread_count": 0}

    @pytest.mark.asyncio
    async def test_mark_all_read(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        for _ in range(3):
            await _send(client, admin, org["employee"].id)
        await _send(client, admin, org["manager"].id)

        resp = await client.patch("/api/v1/notifications/read-all", headers=auth_headers(org["employee"]))
        assert resp.json()["count"] == 3

        manager_inbox = await client.get("/api/v1/notifications", headers=auth_headers(org["manager"]))
        assert manager_inbox.json()["unread_count"] == 1

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, client, org, auth_headers):
        resp = await client.post(
            "/api/v1/notifications",
            json={"user_id": str(uuid.uuid4()), "title": "x", "content": "y"},
            headers=auth_headers(org["admin"]),
        )
        assert resp.status_code == 404

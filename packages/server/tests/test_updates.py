"""
Tests for product updates: drafts, publishing, search and updates created
from completed feedback.
"""

from __future__ import annotations

import pytest


async def _post(client, headers, **fields) -> dict:
    body = {"title": "Dark mode", "content": "The portal now has a dark theme", "category": "FEATURE"}
    body.update(fields)
    resp = await client.post("/api/v1/updates", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestUpdates:
    @pytest.mark.asyncio
    async def test_published_by_default(self, client, org, auth_headers):
        data = await _post(client, auth_headers(org["admin"]))
        assert data["is_published"] is True
        assert data["source"] == "MANUAL"

        listed = await client.get("/api/v1/updates", headers=auth_headers(org["employee"]))
        assert listed.json()["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_drafts_hidden_from_members(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        draft = await _post(client, admin, is_draft=True)
        employee = auth_headers(org["employee"])

        assert (await client.get(f"/api/v1/updates/{draft['id']}", headers=employee)).status_code == 404
        listed = await client.get("/api/v1/updates?include_drafts=true", headers=employee)
        assert listed.json()["updates"] == []
        admin_list = await client.get("/api/v1/updates?include_drafts=true", headers=admin)
        assert len(admin_list.json()["updates"]) == 1

    @pytest.mark.asyncio
    async def test_publish_once(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        draft = await _post(client, admin, is_draft=True)
        url = f"/api/v1/updates/{draft['id']}/publish"
        first = await client.post(url, headers=admin)
        assert first.json()["published_at"] is not None
        second = await client.post(url, headers=admin)
        assert second.status_code == 400

    @pytest.mark.asyncio
    async def test_filter_and_paginate(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        await _post(client, admin)
        await _post(client, admin, title="Crash on login", content="Fixed", category="BUG_FIX")
        await _post(client, admin, title="Faster search", content="Search is quicker", category="IMPROVEMENT")

        by_category = await client.get("/api/v1/updates?category=BUG_FIX", headers=admin)
        assert [u["title"] for u in by_category.json()["updates"]] == ["Crash on login"]

        searched = await client.get("/api/v1/updates?search=search", headers=admin)
        assert [u["title"] for u in searched.json()["updates"]] == ["Faster search"]

        paged = await client.get("/api/v1/updates?page=2&limit=2", headers=admin)
        assert len(paged.json()["updates"]) == 1
        assert paged.json()["pagination"]["total_pages"] == 2

    @pytest.mark.asyncio
    async def test_members_cannot_write(self, client, org, auth_headers):
        resp = await client.post(
            "/api/v1/updates",
            json={"title": "x", "content": "y", "category": "FEATURE"},
            headers=auth_headers(org["manager"]),
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_edit_and_delete(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        data = await _post(client, admin)
        url = f"/api/v1/updates/{data['id']}"
        edited = await client.patch(url, json={"category": "ANNOUNCEMENT"}, headers=admin)
        assert edited.json()["category"] == "ANNOUNCEMENT"
        assert (await client.delete(url, headers=admin)).status_code == 204
        assert (await client.get(url, headers=admin)).status_code == 404


class TestFromFeedback:
    async def _feedback(self, client, org, auth_headers) -> str:
        resp = await client.post(
            "/api/v1/feedback",
            json={"title": "Add dark mode", "content": "Too bright", "department_id": str(org["dept"].id)},
            headers=auth_headers(org["employee"]),
        )
        return resp.json()["id"]

    @pytest.mark.asyncio
    async def test_requires_completed_feedback(self, client, org, auth_headers):
        feedback_id = await self._feedback(client, org, auth_headers)
        resp = await client.post(
            "/api/v1/updates/from-feedback",
            json={"feedback_id": feedback_id},
            headers=auth_headers(org["admin"]),
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_uses_user_response(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        feedback_id = await self._feedback(client, org, auth_headers)
        await client.patch(
            f"/api/v1/feedback/{feedback_id}/status",
            json={"status": "COMPLETED", "user_response": "Dark mode shipped"},
            headers=admin,
        )
        resp = await client.post(
            "/api/v1/updates/from-feedback", json={"feedback_id": feedback_id}, headers=admin
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["title"] == "Add dark mode"
        assert data["content"] == "Dark mode shipped"
        assert data["source"] == "FEEDBACK"
        assert data["category"] == "IMPROVEMENT"

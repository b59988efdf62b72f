"""
Tests for dashboard widgets: scoping, caching and invalidation.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from app.api.v1.dashboard import _cached
from app.core.cache import dashboard_cache


async def _submit(client, headers, department_id, title="Heater broken"):
    resp = await client.post(
        "/api/v1/feedback",
        json={"title": title, "content": "Cold office", "department_id": str(department_id)},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestWidgets:
    @pytest.mark.asyncio
    async def test_usage_stats(self, client, org, auth_headers):
        resp = await client.get("/api/v1/dashboard/usage-stats", headers=auth_headers(org["admin"]))
        data = resp.json()
        assert data["total_users"] == 4
        assert data["by_role"] == {"ADMIN": 1, "MANAGER": 2, "EMPLOYEE": 1}
        assert data["active_users"] == 0

    @pytest.mark.asyncio
    async def test_usage_stats_admin_only(self, client, org, auth_headers):
        resp = await client.get("/api/v1/dashboard/usage-stats", headers=auth_headers(org["manager"]))
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_recent_activity_scope(self, client, org, auth_headers):
        await _submit(client, auth_headers(org["employee"]), org["dept"].id, "Engineering issue")
        await _submit(client, auth_headers(org["other_manager"]), org["other"].id, "HR issue")

        own = await client.get("/api/v1/dashboard/recent-activity", headers=auth_headers(org["manager"]))
        assert [f["title"] for f in own.json()["feedback"]] == ["Engineering issue"]

        everything = await client.get(
            "/api/v1/dashboard/recent-activity", headers=auth_headers(org["admin"])
        )
        assert len(everything.json()["feedback"]) == 2

    @pytest.mark.asyncio
    async def test_top_performers(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        await client.patch(
            f"/api/v1/feedback/{created['id']}/status",
            json={"status": "COMPLETED"},
            headers=auth_headers(org["manager"]),
        )
        resp = await client.get("/api/v1/dashboard/top-performers", headers=auth_headers(org["employee"]))
        assert resp.json() == [
            {
                "user_id": str(org["manager"].id),
                "name": "Manager",
                "department_id": str(org["dept"].id),
                "completed": 1,
            }
        ]

    @pytest.mark.asyncio
    async def test_upcoming_tasks(self, client, org, auth_headers):
        await client.post(
            "/api/v1/tasks",
            json={
                "title": "Fix heater",
                "department_id": str(org["dept"].id),
                "assignee_ids": [str(org["employee"].id)],
            },
            headers=auth_headers(org["manager"]),
        )
        resp = await client.get("/api/v1/dashboard/upcoming-tasks", headers=auth_headers(org["employee"]))
        assert [t["title"] for t in resp.json()] == ["Fix heater"]

    @pytest.mark.asyncio
    async def test_activity_timeline(self, client, org, auth_headers):
        await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        resp = await client.get(
            "/api/v1/dashboard/activity-timeline?days=3", headers=auth_headers(org["manager"])
        )
        timeline = resp.json()
        assert len(timeline) == 3
        assert timeline[-1]["feedback"] == 1
        assert sum(day["completed"] for day in timeline) == 0


class TestCaching:
    @pytest.mark.asyncio
    async def test_widget_is_cached_until_invalidated(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        url = "/api/v1/dashboard/recent-activity"
        assert (await client.get(url, headers=admin)).json()["feedback"] == []
        assert dashboard_cache.get("dashboard:recent-activity:all") is not None

        await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        assert dashboard_cache.get("dashboard:recent-activity:all") is None
        assert len((await client.get(url, headers=admin)).json()["feedback"]) == 1

    @pytest.mark.asyncio
    async def test_missing_tables_return_empty(self):
        session = AsyncMock()
        loader = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("no such table")))

        result = await _cached(session, "dashboard:upcoming-tasks:x", loader, [])

        assert result == []
        session.rollback.assert_awaited_once()
        assert dashboard_cache.get("dashboard:upcoming-tasks:x") is None

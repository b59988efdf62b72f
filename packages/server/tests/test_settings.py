"""
Tests for the settings singleton: defaults, role filtering and deep-merge updates.
"""

from __future__ import annotations

import pytest

from app.services.settings import _deep_merge, filter_for_role
from feedback_hub_shared.schemas.settings import AppSettingsRead


class TestSettingsHelpers:
    def test_deep_merge_keeps_siblings(self):
        base = {"a": {"x": 1, "y": 2}, "b": 1}
        assert _deep_merge(base, {"a": {"y": 3}}) == {"a": {"x": 1, "y": 3}, "b": 1}
        assert base["a"]["y"] == 2

    def test_filter_for_role(self):
        settings = AppSettingsRead()
        assert "notification_settings" in filter_for_role(settings, "ADMIN")
        assert set(filter_for_role(settings, "MANAGER")) == {
            "site_name",
            "logo_url",
            "status_texts",
            "feedback_types",
        }
        assert "status_texts" not in filter_for_role(settings, "EMPLOYEE")


class TestSettingsEndpoints:
    @pytest.mark.asyncio
    async def test_defaults_created_on_first_read(self, client, org, auth_headers):
        resp = await client.get("/api/v1/settings", headers=auth_headers(org["admin"]))
        assert resp.status_code == 200
        data = resp.json()
        assert data["site_name"] == "Feedback Hub"
        assert data["notification_settings"]["direct_feedback_to_manager"] is True
        assert data["file_share_settings"]["max_file_size"] == 50

    @pytest.mark.asyncio
    async def test_employee_view_is_filtered(self, client, org, auth_headers):
        resp = await client.get("/api/v1/settings", headers=auth_headers(org["employee"]))
        assert set(resp.json()) == {"site_name", "logo_url", "feedback_types"}

    @pytest.mark.asyncio
    async def test_patch_deep_merges(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        resp = await client.patch(
            "/api/v1/settings",
            json={"site_name": "Voice", "notification_settings": {"feedback_completed_by_manager": False}},
            headers=admin,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["site_name"] == "Voice"
        assert data["notification_settings"] == {
            "direct_feedback_to_manager": True,
            "feedback_completed_by_manager": False,
        }

    @pytest.mark.asyncio
    async def test_invalid_nested_value_rejected(self, client, org, auth_headers):
        resp = await client.patch(
            "/api/v1/settings",
            json={"file_share_settings": {"max_file_size": 0}},
            headers=auth_headers(org["admin"]),
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_patch_is_admin_only(self, client, org, auth_headers):
        resp = await client.patch(
            "/api/v1/settings", json={"site_name": "x"}, headers=auth_headers(org["manager"])
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_completion_notice_can_be_disabled(self, client, org, auth_headers):
        await client.patch(
            "/api/v1/settings",
            json={"notification_settings": {"feedback_completed_by_manager": False}},
            headers=auth_headers(org["admin"]),
        )
        feedback = await client.post(
            "/api/v1/feedback",
            json={"title": "Desk", "content": "Broken chair", "department_id": str(org["dept"].id)},
            headers=auth_headers(org["employee"]),
        )
        await client.patch(
            f"/api/v1/feedback/{feedback.json()['id']}/status",
            json={"status": "COMPLETED"},
            headers=auth_headers(org["manager"]),
        )
        inbox = await client.get("/api/v1/notifications", headers=auth_headers(org["admin"]))
        assert inbox.json()["unread_count"] == 0

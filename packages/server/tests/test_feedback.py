"""
Tests for the feedback lifecycle: submission, visibility, triage, trash,
bulk actions, chat messages and checklists.
"""

from __future__ import annotations

import uuid

import pytest


async def _submit(client, headers, department_id, **fields) -> dict:
    body = {
        "title": "Slow network",
        "content": "The office network drops every afternoon",
        "department_id": str(department_id),
    }
    body.update(fields)
    resp = await client.post("/api/v1/feedback", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _forward(client, headers, feedback_id, manager_id, notes=None):
    body = {"manager_id": str(manager_id)}
    if notes:
        body["notes"] = notes
    return await client.post(f"/api/v1/feedback/{feedback_id}/forward", json=body, headers=headers)


# ---------------------------------------------------------------------------
# Submission & visibility
# ---------------------------------------------------------------------------

class TestSubmission:
    @pytest.mark.asyncio
    async def test_new_feedback_is_pending(self, client, org, auth_headers):
        data = await _submit(client, auth_headers(org["employee"]), org["dept"].id, rating=4)
        assert data["status"] == "PENDING"
        assert data["forwarded_to_id"] is None
        assert data["department_name"] == "Engineering"
        assert data["user_name"] == "Employee"

    @pytest.mark.asyncio
    async def test_unknown_department(self, client, org, auth_headers):
        resp = await client.post(
            "/api/v1/feedback",
            json={"title": "x", "content": "y", "department_id": str(uuid.uuid4())},
            headers=auth_headers(org["employee"]),
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_rating_out_of_range(self, client, org, auth_headers):
        resp = await client.post(
            "/api/v1/feedback",
            json={"title": "x", "content": "y", "department_id": str(org["dept"].id), "rating": 9},
            headers=auth_headers(org["employee"]),
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_direct_feedback_goes_to_manager(
        self, client, make_department, make_user, set_manager, auth_headers
    ):
        dept = await make_department("Support", allow_direct_feedback=True)
        manager = await make_user("MANAGER", dept, name="Support Lead")
        await set_manager(dept, manager)
        employee = await make_user("EMPLOYEE", dept)

        data = await _submit(client, auth_headers(employee), dept.id)
        assert data["status"] == "REVIEWED"
        assert data["forwarded_to_id"] == str(manager.id)

        inbox = await client.get("/api/v1/notifications", headers=auth_headers(manager))
        assert inbox.json()["unread_count"] == 1

    @pytest.mark.asyncio
    async def test_anonymous_author_hidden(self, client, org, auth_headers):
        created = await _submit(
            client, auth_headers(org["employee"]), org["dept"].id, is_anonymous=True
        )
        assert created["user_name"] == "Anonymous"
        assert created["user_id"] is None

        admin_view = await client.get(
            f"/api/v1/feedback/{created['id']}", headers=auth_headers(org["admin"])
        )
        assert admin_view.json()["user_id"] == str(org["employee"].id)

    @pytest.mark.asyncio
    async def test_list_scope(self, client, org, make_user, auth_headers):
        await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        colleague = await make_user("EMPLOYEE", org["dept"])
        await _submit(client, auth_headers(colleague), org["dept"].id, title="Parking")

        own = await client.get("/api/v1/feedback", headers=auth_headers(org["employee"]))
        assert [f["title"] for f in own.json()] == ["Slow network"]

        everything = await client.get("/api/v1/feedback", headers=auth_headers(org["admin"]))
        assert len(everything.json()) == 2

    @pytest.mark.asyncio
    async def test_other_department_manager_cannot_view(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        url = f"/api/v1/feedback/{created['id']}"
        assert (await client.get(url, headers=auth_headers(org["manager"]))).status_code == 200
        assert (await client.get(url, headers=auth_headers(org["other_manager"]))).status_code == 403


# ---------------------------------------------------------------------------
# Triage
# ---------------------------------------------------------------------------

class TestTriage:
    @pytest.mark.asyncio
    async def test_forward_creates_task(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id, type="CRITICAL")
        admin = auth_headers(org["admin"])

        resp = await _forward(client, admin, created["id"], org["manager"].id, notes="Please check")
        assert resp.status_code == 201
        task = resp.json()
        assert task["title"] == "Forwarded: Slow network"
        assert task["priority"] == "HIGH"
        assert task["feedback_id"] == created["id"]
        assert task["assignee_ids"] == [str(org["manager"].id)]
        assert task["description"].endswith("Notes: Please check")

        feedback = (await client.get(f"/api/v1/feedback/{created['id']}", headers=admin)).json()
        assert feedback["status"] == "REVIEWED"
        assert feedback["forwarded_to_id"] == str(org["manager"].id)

    @pytest.mark.asyncio
    async def test_forward_twice_rejected(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        admin = auth_headers(org["admin"])
        assert (await _forward(client, admin, created["id"], org["manager"].id)).status_code == 201
        again = await _forward(client, admin, created["id"], org["manager"].id)
        assert again.status_code == 400
        assert again.json()["detail"] == "A task already exists for this feedback"

    @pytest.mark.asyncio
    async def test_forward_to_employee_rejected(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        resp = await _forward(client, auth_headers(org["admin"]), created["id"], org["employee"].id)
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_manager_cannot_forward_across_departments(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        resp = await _forward(
            client, auth_headers(org["manager"]), created["id"], org["other_manager"].id
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_cancel_forward_removes_pending_task(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        admin = auth_headers(org["admin"])
        task = (await _forward(client, admin, created["id"], org["manager"].id)).json()

        resp = await client.post(f"/api/v1/feedback/{created['id']}/cancel-forward", headers=admin)
        assert resp.status_code == 200
        assert resp.json()["status"] == "PENDING"
        assert resp.json()["forwarded_to_id"] is None
        assert (await client.get(f"/api/v1/tasks/{task['id']}", headers=admin)).status_code == 404

    @pytest.mark.asyncio
    async def test_cancel_forward_after_task_started(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        admin = auth_headers(org["admin"])
        task = (await _forward(client, admin, created["id"], org["manager"].id)).json()
        await client.patch(
            f"/api/v1/tasks/{task['id']}",
            json={"status": "IN_PROGRESS"},
            headers=auth_headers(org["manager"]),
        )
        resp = await client.post(f"/api/v1/feedback/{created['id']}/cancel-forward", headers=admin)
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_cancel_forward_when_not_forwarded(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        resp = await client.post(
            f"/api/v1/feedback/{created['id']}/cancel-forward", headers=auth_headers(org["admin"])
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_complete_notifies_author(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        resp = await client.patch(
            f"/api/v1/feedback/{created['id']}/status",
            json={"status": "COMPLETED", "user_response": "Router replaced"},
            headers=auth_headers(org["manager"]),
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "COMPLETED"
        assert data["completed_by_id"] == str(org["manager"].id)
        assert data["user_response"] == "Router replaced"

        inbox = (await client.get("/api/v1/notifications", headers=auth_headers(org["employee"]))).json()
        assert [n["content"] for n in inbox["notifications"]] == ["Router replaced"]

    @pytest.mark.asyncio
    async def test_other_manager_cannot_change_status(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        resp = await client.patch(
            f"/api/v1/feedback/{created['id']}/status",
            json={"status": "DEFERRED"},
            headers=auth_headers(org["other_manager"]),
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_archive(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        resp = await client.post(
            f"/api/v1/feedback/{created['id']}/archive",
            json={"admin_notes": "duplicate"},
            headers=auth_headers(org["admin"]),
        )
        assert resp.json()["status"] == "ARCHIVED"
        assert resp.json()["admin_notes"] == "duplicate"

    @pytest.mark.asyncio
    async def test_extract_keywords(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        resp = await client.post(
            f"/api/v1/feedback/{created['id']}/extract-keywords",
            headers=auth_headers(org["manager"]),
        )
        assert resp.status_code == 200
        assert "network" in resp.json()["keywords"]


# ---------------------------------------------------------------------------
# Trash & bulk actions
# ---------------------------------------------------------------------------

class TestTrash:
    @pytest.mark.asyncio
    async def test_soft_delete_and_restore(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        admin = auth_headers(org["admin"])

        deleted = await client.delete(
            f"/api/v1/feedback/{created['id']}", headers=auth_headers(org["employee"])
        )
        assert deleted.status_code == 200
        assert deleted.json()["deleted_at"] is not None
        assert (await client.get("/api/v1/feedback", headers=admin)).json() == []
        assert (await client.get("/api/v1/feedback/trash/count", headers=admin)).json()["count"] == 1

        restored = await client.post(f"/api/v1/feedback/{created['id']}/restore", headers=admin)
        assert restored.json()["deleted_at"] is None
        assert len((await client.get("/api/v1/feedback", headers=admin)).json()) == 1

    @pytest.mark.asyncio
    async def test_delete_twice_rejected(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        admin = auth_headers(org["admin"])
        await client.delete(f"/api/v1/feedback/{created['id']}", headers=admin)
        again = await client.delete(f"/api/v1/feedback/{created['id']}", headers=admin)
        assert again.status_code == 400

    @pytest.mark.asyncio
    async def test_stranger_cannot_delete(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        resp = await client.delete(
            f"/api/v1/feedback/{created['id']}", headers=auth_headers(org["manager"])
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_permanent_delete_requires_trash(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        admin = auth_headers(org["admin"])
        url = f"/api/v1/feedback/{created['id']}"
        assert (await client.delete(f"{url}/permanent", headers=admin)).status_code == 400

        await _forward(client, admin, created["id"], org["manager"].id)
        await client.delete(url, headers=admin)
        assert (await client.delete(f"{url}/permanent", headers=admin)).status_code == 204
        assert (await client.get(url, headers=admin)).status_code == 404
        assert (await client.get("/api/v1/tasks", headers=admin)).json() == []

    @pytest.mark.asyncio
    async def test_bulk_actions(self, client, org, auth_headers):
        employee = auth_headers(org["employee"])
        ids = [
            (await _submit(client, employee, org["dept"].id, title=f"Item {i}"))["id"]
            for i in range(3)
        ]
        admin = auth_headers(org["admin"])

        completed = await client.post(
            "/api/v1/feedback/bulk-complete", json={"ids": ids[:2]}, headers=admin
        )
        assert completed.json()["count"] == 2

        deleted = await client.post("/api/v1/feedback/bulk-delete", json={"ids": ids}, headers=admin)
        assert deleted.json() == {"count": 3, "message": "3 feedback moved to trash"}

        empty = await client.post("/api/v1/feedback/bulk-archive", json={"ids": []}, headers=admin)
        assert empty.status_code == 400

    @pytest.mark.asyncio
    async def test_trash_is_admin_only(self, client, org, auth_headers):
        resp = await client.get("/api/v1/feedback/trash", headers=auth_headers(org["manager"]))
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Chat & checklist
# ---------------------------------------------------------------------------

class TestMessagesAndChecklist:
    async def _forwarded(self, client, org, auth_headers) -> str:
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        await _forward(client, auth_headers(org["admin"]), created["id"], org["manager"].id)
        return created["id"]

    @pytest.mark.asyncio
    async def test_chat_between_admin_and_manager(self, client, org, auth_headers):
        feedback_id = await self._forwarded(client, org, auth_headers)
        url = f"/api/v1/feedback/{feedback_id}/messages"

        sent = await client.post(url, json={"content": "Any update?"}, headers=auth_headers(org["admin"]))
        assert sent.status_code == 201
        assert sent.json()["is_read"] is False

        count = await client.get(
            "/api/v1/feedback/messages/unread-count", headers=auth_headers(org["manager"])
        )
        assert count.json()["count"] == 1

        listed = await client.get(url, headers=auth_headers(org["manager"]))
        assert [m["content"] for m in listed.json()] == ["Any update?"]

        count = await client.get(
            "/api/v1/feedback/messages/unread-count", headers=auth_headers(org["manager"])
        )
        assert count.json()["count"] == 0

    @pytest.mark.asyncio
    async def test_chat_requires_forward(self, client, org, auth_headers):
        created = await _submit(client, auth_headers(org["employee"]), org["dept"].id)
        resp = await client.get(
            f"/api/v1/feedback/{created['id']}/messages", headers=auth_headers(org["admin"])
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_checklist(self, client, org, auth_headers):
        feedback_id = await self._forwarded(client, org, auth_headers)
        manager = auth_headers(org["manager"])
        url = f"/api/v1/feedback/{feedback_id}/checklist"

        first = (await client.post(url, json={"title": "Call vendor"}, headers=manager)).json()
        second = (await client.post(url, json={"title": "Replace router"}, headers=manager)).json()
        assert (first["order"], second["order"]) == (0, 1)

        toggled = await client.patch(
            f"/api/v1/feedback/checklist/{first['id']}", json={"is_completed": True}, headers=manager
        )
        assert toggled.json()["is_completed"] is True

        removed = await client.delete(f"/api/v1/feedback/checklist/{second['id']}", headers=manager)
        assert removed.status_code == 204
        assert [i["title"] for i in (await client.get(url, headers=manager)).json()] == ["Call vendor"]

    @pytest.mark.asyncio
    async def test_checklist_only_for_assigned_manager(self, client, org, auth_headers):
        feedback_id = await self._forwarded(client, org, auth_headers)
        resp = await client.get(
            f"/api/v1/feedback/{feedback_id}/checklist", headers=auth_headers(org["admin"])
        )
        assert resp.status_code == 403

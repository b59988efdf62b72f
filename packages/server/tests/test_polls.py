"""
Tests for polls: creation permissions, vote validation, re-voting,
result visibility and aggregation.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest


async def _create_poll(client, headers, **fields) -> dict:
    body = {
        "title": "Lunch options",
        "type": "SINGLE_CHOICE",
        "options": ["Pizza", "Salad", "  "],
    }
    body.update(fields)
    resp = await client.post("/api/v1/polls", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestPollCreation:
    @pytest.mark.asyncio
    async def test_admin_creates_org_poll(self, client, org, auth_headers):
        poll = await _create_poll(client, auth_headers(org["admin"]))
        assert [o["text"] for o in poll["options"]] == ["Pizza", "Salad"]
        assert poll["response_count"] == 0

        inbox = (await client.get("/api/v1/notifications", headers=auth_headers(org["employee"]))).json()
        assert inbox["notifications"][0]["title"] == "New poll"

    @pytest.mark.asyncio
    async def test_choice_poll_needs_two_options(self, client, org, auth_headers):
        resp = await client.post(
            "/api/v1/polls",
            json={"title": "x", "type": "MULTIPLE_CHOICE", "options": ["Only"]},
            headers=auth_headers(org["admin"]),
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_rating_bounds_validated(self, client, org, auth_headers):
        resp = await client.post(
            "/api/v1/polls",
            json={"title": "x", "type": "RATING_SCALE", "min_rating": 5, "max_rating": 5},
            headers=auth_headers(org["admin"]),
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_manager_needs_poll_permission(self, client, org, auth_headers):
        resp = await client.post(
            "/api/v1/polls",
            json={"title": "x", "type": "TEXT_INPUT", "department_id": str(org["dept"].id)},
            headers=auth_headers(org["manager"]),
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_manager_targets_allowed_departments(
        self, client, make_department, make_user, auth_headers
    ):
        target = await make_department("Sales")
        elsewhere = await make_department("Legal")
        own = await make_department(
            "Operations", can_create_poll=True, allowed_poll_departments=[str(target.id)]
        )
        manager = await make_user("MANAGER", own)
        headers = auth_headers(manager)

        ok = await _create_poll(client, headers, department_id=str(target.id))
        assert ok["department_id"] == str(target.id)
        await _create_poll(client, headers, department_id=str(own.id))

        denied = await client.post(
            "/api/v1/polls",
            json={"title": "x", "type": "TEXT_INPUT", "department_id": str(elsewhere.id)},
            headers=headers,
        )
        assert denied.status_code == 403
        missing = await client.post(
            "/api/v1/polls", json={"title": "x", "type": "TEXT_INPUT"}, headers=headers
        )
        assert missing.status_code == 400

    @pytest.mark.asyncio
    async def test_copy_starts_inactive(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        poll = await _create_poll(client, admin)
        resp = await client.post(f"/api/v1/polls/{poll['id']}/copy", headers=admin)
        assert resp.status_code == 201
        copy = resp.json()
        assert copy["title"] == "Lunch options - copy"
        assert copy["is_active"] is False
        assert [o["text"] for o in copy["options"]] == ["Pizza", "Salad"]

    @pytest.mark.asyncio
    async def test_update_and_delete_by_creator_only(self, client, org, auth_headers):
        poll = await _create_poll(client, auth_headers(org["admin"]))
        url = f"/api/v1/polls/{poll['id']}"
        denied = await client.patch(url, json={"title": "x"}, headers=auth_headers(org["manager"]))
        assert denied.status_code == 403

        updated = await client.patch(
            url, json={"show_results": "AFTER_CLOSE"}, headers=auth_headers(org["admin"])
        )
        assert updated.json()["show_results"] == "AFTER_CLOSE"
        assert (await client.delete(url, headers=auth_headers(org["admin"]))).status_code == 204
        assert (await client.get(url, headers=auth_headers(org["admin"]))).status_code == 404


class TestListing:
    @pytest.mark.asyncio
    async def test_inactive_and_scheduled_hidden(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        await _create_poll(client, admin, title="Open")
        await _create_poll(client, admin, title="Draft", is_active=False)
        later = (datetime.utcnow() + timedelta(days=1)).isoformat()
        await _create_poll(client, admin, title="Later", scheduled_at=later)
        await _create_poll(client, admin, title="HR only", department_id=str(org["other"].id))

        employee = await client.get("/api/v1/polls", headers=auth_headers(org["employee"]))
        assert [p["title"] for p in employee.json()] == ["Open"]

        everything = await client.get("/api/v1/polls?show_all=true", headers=admin)
        assert len(everything.json()) == 4


class TestVoting:
    @pytest.mark.asyncio
    async def test_single_choice(self, client, org, auth_headers):
        poll = await _create_poll(client, auth_headers(org["admin"]))
        pizza = poll["options"][0]["id"]
        url = f"/api/v1/polls/{poll['id']}/vote"
        employee = auth_headers(org["employee"])

        two = await client.post(
            url, json={"option_ids": [o["id"] for o in poll["options"]]}, headers=employee
        )
        assert two.status_code == 400

        ok = await client.post(url, json={"option_ids": [pizza]}, headers=employee)
        assert ok.status_code == 201
        again = await client.post(url, json={"option_ids": [pizza]}, headers=employee)
        assert again.status_code == 400
        assert again.json()["detail"] == "You have already voted in this poll"

        fetched = await client.get(f"/api/v1/polls/{poll['id']}", headers=employee)
        assert fetched.json()["has_voted"] is True
        assert fetched.json()["response_count"] == 1

    @pytest.mark.asyncio
    async def test_revote_replaces_when_allowed(self, client, org, auth_headers):
        poll = await _create_poll(
            client, auth_headers(org["admin"]), type="MULTIPLE_CHOICE", allow_multiple_votes=True
        )
        pizza, salad = (o["id"] for o in poll["options"])
        url = f"/api/v1/polls/{poll['id']}/vote"
        employee = auth_headers(org["employee"])

        await client.post(url, json={"option_ids": [pizza, salad]}, headers=employee)
        await client.post(url, json={"option_ids": [salad]}, headers=employee)

        results = await client.get(f"/api/v1/polls/{poll['id']}/results", headers=auth_headers(org["admin"]))
        counts = {o["text"]: o["vote_count"] for o in results.json()["results"]["options"]}
        assert counts == {"Pizza": 0, "Salad": 1}

        withdrawn = await client.delete(url, headers=employee)
        assert withdrawn.status_code == 200

    @pytest.mark.asyncio
    async def test_rating_range(self, client, org, auth_headers):
        poll = await _create_poll(
            client, auth_headers(org["admin"]), type="RATING_SCALE", options=[], min_rating=1, max_rating=3
        )
        url = f"/api/v1/polls/{poll['id']}/vote"
        bad = await client.post(url, json={"rating_value": 4}, headers=auth_headers(org["employee"]))
        assert bad.json()["detail"] == "Rating must be between 1 and 3"
        ok = await client.post(url, json={"rating_value": 3}, headers=auth_headers(org["employee"]))
        assert ok.status_code == 201

    @pytest.mark.asyncio
    async def test_text_length(self, client, org, auth_headers):
        poll = await _create_poll(
            client, auth_headers(org["admin"]), type="TEXT_INPUT", options=[], max_text_length=5
        )
        url = f"/api/v1/polls/{poll['id']}/vote"
        resp = await client.post(url, json={"text_value": "too long"}, headers=auth_headers(org["employee"]))
        assert resp.status_code == 400
        empty = await client.post(url, json={"text_value": "  "}, headers=auth_headers(org["employee"]))
        assert empty.json()["detail"] == "Answer text is required"

    @pytest.mark.asyncio
    async def test_closed_poll(self, client, org, auth_headers):
        closed = (datetime.utcnow() - timedelta(hours=1)).isoformat()
        poll = await _create_poll(client, auth_headers(org["admin"]), closed_at=closed)
        resp = await client.post(
            f"/api/v1/polls/{poll['id']}/vote",
            json={"option_ids": [poll["options"][0]["id"]]},
            headers=auth_headers(org["employee"]),
        )
        assert resp.json()["detail"] == "Poll is closed"


class TestResults:
    @pytest.mark.asyncio
    async def test_anonymous_results_for_non_voters(self, client, org, auth_headers):
        poll = await _create_poll(client, auth_headers(org["admin"]))
        resp = await client.get(
            f"/api/v1/polls/{poll['id']}/results", headers=auth_headers(org["employee"])
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_stats_and_voters(self, client, org, auth_headers):
        poll = await _create_poll(client, auth_headers(org["admin"]), visibility="PUBLIC")
        await client.post(
            f"/api/v1/polls/{poll['id']}/vote",
            json={"option_ids": [poll["options"][1]["id"]]},
            headers=auth_headers(org["employee"]),
        )

        resp = await client.get(
            f"/api/v1/polls/{poll['id']}/results", headers=auth_headers(org["other_manager"])
        )
        assert resp.status_code == 200
        data = resp.json()
        # Targets are every non-admin user: manager, employee and HR manager.
        assert data["stats"] == {
            "total_target_users": 3,
            "total_responses": 1,
            "total_not_responded": 2,
            "response_rate": 33,
        }
        assert data["voters"][0]["selected_options"] == ["Salad"]
        assert data["department_stats"] is None

    @pytest.mark.asyncio
    async def test_department_breakdown_for_admin(self, client, org, auth_headers):
        poll = await _create_poll(client, auth_headers(org["admin"]))
        resp = await client.get(
            f"/api/v1/polls/{poll['id']}/results", headers=auth_headers(org["admin"])
        )
        rates = {d["department_name"]: d["total_target"] for d in resp.json()["department_stats"]}
        assert rates == {"Engineering": 2, "Human Resources": 1}

    @pytest.mark.asyncio
    async def test_after_close_hidden_until_closed(self, client, org, auth_headers):
        poll = await _create_poll(
            client, auth_headers(org["admin"]), visibility="PUBLIC", show_results="AFTER_CLOSE"
        )
        resp = await client.get(
            f"/api/v1/polls/{poll['id']}/results", headers=auth_headers(org["employee"])
        )
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Results are shown after the poll closes"

    @pytest.mark.asyncio
    async def test_rating_distribution(self, client, org, auth_headers):
        poll = await _create_poll(
            client, auth_headers(org["admin"]), type="RATING_SCALE", options=[], max_rating=3
        )
        for user, value in ((org["employee"], 2), (org["manager"], 3)):
            await client.post(
                f"/api/v1/polls/{poll['id']}/vote", json={"rating_value": value}, headers=auth_headers(user)
            )
        data = (
            await client.get(f"/api/v1/polls/{poll['id']}/results", headers=auth_headers(org["admin"]))
        ).json()["results"]
        assert data["average"] == 2.5
        assert data["distribution"] == [
            {"rating": 1, "count": 0},
            {"rating": 2, "count": 1},
            {"rating": 3, "count": 1},
        ]

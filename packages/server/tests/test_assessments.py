"""
Integration tests for assessments: authoring, department assignment,
taking (start / progress / submit) and result visibility.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

MBTI_QUESTIONS = [
    {
        "question": "At a party you",
        "options": [
            {"text": "Talk to everyone", "value": "E", "score": {"E": 1}},
            {"text": "Talk to a few friends", "value": "I", "score": {"I": 1}},
        ],
    },
    {
        "question": "You trust",
        "options": [
            {"text": "Facts", "value": "S", "score": {"S": 1}},
            {"text": "Hunches", "value": "N", "score": {"N": 1}},
        ],
    },
]

QUIZ_QUESTIONS = [
    {
        "question": "Fire exit location?",
        "options": [
            {"text": "North stairs", "value": "a", "score": 10},
            {"text": "Elevator", "value": "b", "score": 0},
        ],
    },
    {
        "question": "Who to call first?",
        "options": [
            {"text": "Security", "value": "a", "score": 10},
            {"text": "Nobody", "value": "b", "score": 0},
        ],
        "is_required": False,
    },
]


async def _create(client, headers, **fields) -> dict:
    body = {"title": "Personality", "type": "MBTI", "questions": MBTI_QUESTIONS}
    body.update(fields)
    resp = await client.post("/api/v1/assessments", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _assign(client, headers, assessment_id, department_id, **fields):
    body = {"department_id": str(department_id)}
    body.update(fields)
    return await client.post(f"/api/v1/assessments/{assessment_id}/assign", json=body, headers=headers)


def _answers(assessment: dict, *values: str) -> dict:
    return {q["id"]: v for q, v in zip(assessment["questions"], values)}


class TestAuthoring:
    @pytest.mark.asyncio
    async def test_create_with_questions(self, client, org, auth_headers):
        data = await _create(client, auth_headers(org["admin"]))
        assert data["question_count"] == 2
        assert [q["order"] for q in data["questions"]] == [0, 1]

    @pytest.mark.asyncio
    async def test_only_admin_creates(self, client, org, auth_headers):
        resp = await client.post(
            "/api/v1/assessments",
            json={"title": "x", "type": "DISC"},
            headers=auth_headers(org["manager"]),
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_question_needs_two_options(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        data = await _create(client, admin)
        resp = await client.post(
            f"/api/v1/assessments/{data['id']}/questions",
            json={"question": "Lonely?", "options": [{"text": "Yes"}]},
            headers=admin,
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_add_and_reorder_questions(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        data = await _create(client, admin)
        added = await client.post(
            f"/api/v1/assessments/{data['id']}/questions",
            json={
                "question": "Deadlines are",
                "options": [{"text": "Fixed", "value": "J"}, {"text": "Flexible", "value": "P"}],
            },
            headers=admin,
        )
        assert added.json()["order"] == 2

        ids = [added.json()["id"]] + [q["id"] for q in data["questions"]]
        resp = await client.put(
            f"/api/v1/assessments/{data['id']}/questions/reorder",
            json={"question_ids": ids},
            headers=admin,
        )
        assert [q["id"] for q in resp.json()] == ids
        assert [q["order"] for q in resp.json()] == [0, 1, 2]

        partial = await client.put(
            f"/api/v1/assessments/{data['id']}/questions/reorder",
            json={"question_ids": ids[:1]},
            headers=admin,
        )
        assert partial.status_code == 400


class TestTaking:
    @pytest.mark.asyncio
    async def test_unassigned_department_cannot_start(self, client, org, auth_headers):
        data = await _create(client, auth_headers(org["admin"]))
        resp = await client.post(
            f"/api/v1/assessments/{data['id']}/start", headers=auth_headers(org["employee"])
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_window_not_open(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        data = await _create(client, admin)
        start = (datetime.utcnow() + timedelta(days=2)).isoformat()
        await _assign(client, admin, data["id"], org["dept"].id, start_date=start)

        resp = await client.post(
            f"/api/v1/assessments/{data['id']}/start", headers=auth_headers(org["employee"])
        )
        assert resp.status_code == 400
        available = await client.get("/api/v1/assessments/available", headers=auth_headers(org["employee"]))
        assert available.json() == []

    @pytest.mark.asyncio
    async def test_full_mbti_flow(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        employee = auth_headers(org["employee"])
        data = await _create(client, admin)
        assert (await _assign(client, admin, data["id"], org["dept"].id)).status_code == 200

        available = (await client.get("/api/v1/assessments/available", headers=employee)).json()
        assert [a["assessment"]["id"] for a in available] == [data["id"]]

        started = await client.post(f"/api/v1/assessments/{data['id']}/start", headers=employee)
        assert started.status_code == 200
        assert started.json()["assessment"]["total_questions"] == 2

        saved = await client.put(
            f"/api/v1/assessments/{data['id']}/progress",
            json={"answers": _answers(data, "I"), "current_question": 1},
            headers=employee,
        )
        assert saved.json()["current_question"] == 1

        incomplete = await client.post(
            f"/api/v1/assessments/{data['id']}/submit",
            json={"answers": _answers(data, "I")},
            headers=employee,
        )
        assert incomplete.status_code == 400
        assert incomplete.json()["detail"]["missing_questions"] == [data["questions"][1]["id"]]

        submitted = await client.post(
            f"/api/v1/assessments/{data['id']}/submit",
            json={"answers": _answers(data, "I", "N"), "time_taken": 90},
            headers=employee,
        )
        assert submitted.status_code == 201
        result = submitted.json()
        assert result["score"] == 100
        assert result["result"]["personality_type"].startswith("IN")

        again = await client.post(f"/api/v1/assessments/{data['id']}/start", headers=employee)
        assert again.json()["detail"] == "You have already completed this assessment"

        mine = await client.get("/api/v1/assessments/my-results", headers=employee)
        assert [r["id"] for r in mine.json()] == [result["id"]]

    @pytest.mark.asyncio
    async def test_progress_requires_start(self, client, org, auth_headers):
        data = await _create(client, auth_headers(org["admin"]))
        resp = await client.put(
            f"/api/v1/assessments/{data['id']}/progress",
            json={"answers": {}},
            headers=auth_headers(org["employee"]),
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_custom_passing_score(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        employee = auth_headers(org["employee"])
        data = await _create(
            client, admin, title="Safety quiz", type="CUSTOM", questions=QUIZ_QUESTIONS, passing_score=60
        )
        await _assign(client, admin, data["id"], org["dept"].id)
        await client.post(f"/api/v1/assessments/{data['id']}/start", headers=employee)
        resp = await client.post(
            f"/api/v1/assessments/{data['id']}/submit",
            json={"answers": _answers(data, "a")},
            headers=employee,
        )
        result = resp.json()
        assert result["score"] == 50
        assert result["is_passed"] is False

    @pytest.mark.asyncio
    async def test_submit_requires_start(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        data = await _create(client, admin)
        resp = await client.post(
            f"/api/v1/assessments/{data['id']}/submit",
            json={"answers": _answers(data, "E", "S")},
            headers=auth_headers(org["other_manager"]),
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Start the assessment before submitting"

        results = await client.get(f"/api/v1/assessments/{data['id']}/results", headers=admin)
        assert results.json() == []

    @pytest.mark.asyncio
    async def test_submit_rejects_inactive(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        employee = auth_headers(org["employee"])
        data = await _create(client, admin)
        await _assign(client, admin, data["id"], org["dept"].id)
        await client.post(f"/api/v1/assessments/{data['id']}/start", headers=employee)
        await client.patch(f"/api/v1/assessments/{data['id']}", json={"is_active": False}, headers=admin)

        resp = await client.post(
            f"/api/v1/assessments/{data['id']}/submit",
            json={"answers": _answers(data, "E", "S")},
            headers=employee,
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Assessment is not active"


class TestResults:
    async def _submitted(self, client, org, auth_headers, **assign) -> dict:
        admin = auth_headers(org["admin"])
        data = await _create(client, admin)
        employee = auth_headers(org["employee"])
        await _assign(client, admin, data["id"], org["dept"].id, **assign)
        await client.post(f"/api/v1/assessments/{data['id']}/start", headers=employee)
        submitted = await client.post(
            f"/api/v1/assessments/{data['id']}/submit",
            json={"answers": _answers(data, "E", "S")},
            headers=employee,
        )
        assert submitted.status_code == 201, submitted.text
        return data

    @pytest.mark.asyncio
    async def test_manager_needs_manager_view(self, client, org, auth_headers):
        data = await self._submitted(client, org, auth_headers)
        resp = await client.get(
            f"/api/v1/assessments/{data['id']}/results", headers=auth_headers(org["manager"])
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_manager_sees_department_results(self, client, org, auth_headers):
        data = await self._submitted(client, org, auth_headers, allow_manager_view=True)
        resp = await client.get(
            f"/api/v1/assessments/{data['id']}/results", headers=auth_headers(org["manager"])
        )
        assert resp.status_code == 200
        assert [r["user"]["name"] for r in resp.json()] == ["Employee"]

    @pytest.mark.asyncio
    async def test_cannot_delete_with_results(self, client, org, auth_headers):
        data = await self._submitted(client, org, auth_headers)
        resp = await client.delete(f"/api/v1/assessments/{data['id']}", headers=auth_headers(org["admin"]))
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_unused(self, client, org, auth_headers):
        admin = auth_headers(org["admin"])
        data = await _create(client, admin)
        await _assign(client, admin, data["id"], org["dept"].id)
        assert (await client.delete(f"/api/v1/assessments/{data['id']}", headers=admin)).status_code == 204
        assert (await client.get(f"/api/v1/assessments/{data['id']}", headers=admin)).status_code == 404

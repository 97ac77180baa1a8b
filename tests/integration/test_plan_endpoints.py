"""Integration tests for plan endpoints."""
import pytest

DAY = "2025-01-01"
NEXT_DAY = "2025-01-02"


async def open_day(app_client, headers, plan_date=DAY, today=None):
    response = await app_client.get(
        f"/plans/{plan_date}",
        params={"today": today or plan_date},
        headers=headers,
    )
    assert response.status_code == 200
    return response.json()


async def save(app_client, headers, plan_id, titles, today=DAY):
    response = await app_client.put(
        f"/plans/{plan_id}/goals",
        params={"today": today},
        json=[{"title": title} for title in titles],
        headers=headers,
    )
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
class TestOpenPlan:
    """Tests for opening plans."""

    async def test_open_creates_draft(self, app_client, headers):
        data = await open_day(app_client, headers)

        assert data["plan"]["plan_date"] == DAY
        assert data["plan"]["status"] == "draft"
        assert "id" in data["plan"]
        assert data["goals"] == []
        assert data["materialized"] == 0

    async def test_open_requires_auth(self, app_client):
        response = await app_client.get(f"/plans/{DAY}")

        assert response.status_code == 401

    async def test_open_rejects_bad_token(self, app_client):
        response = await app_client.get(
            f"/plans/{DAY}",
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401

    async def test_gate_blocks_future_day(self, app_client, headers):
        await open_day(app_client, headers)

        response = await app_client.get(
            f"/plans/{NEXT_DAY}",
            params={"today": DAY},
            headers=headers,
        )

        assert response.status_code == 409
        assert response.json()["detail"]["blocking_date"] == DAY

    async def test_gate_status(self, app_client, headers):
        await open_day(app_client, headers)

        response = await app_client.get(f"/plans/gate/{NEXT_DAY}", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["prior_date"] == DAY
        assert data["prior_day_reviewed"] is False
        assert data["blocking_date"] == DAY

    async def test_plans_are_private(self, app_client, headers, headers_for):
        data = await open_day(app_client, headers)

        response = await app_client.get(
            f"/plans/{data['plan']['id']}/goals",
            headers=headers_for("user-2"),
        )

        assert response.status_code == 404


@pytest.mark.asyncio
class TestSaveAndSubmit:
    """Tests for saving and submitting goals."""

    async def test_save_goals(self, app_client, headers):
        plan_id = (await open_day(app_client, headers))["plan"]["id"]

        goals = await save(app_client, headers, plan_id, ["A", "", "C"])

        assert [g["title"] for g in goals] == ["A", "C"]
        assert [g["sort_order"] for g in goals] == [0, 1]

        listed = await app_client.get(f"/plans/{plan_id}/goals", headers=headers)
        assert [g["id"] for g in listed.json()] == [g["id"] for g in goals]

    async def test_submit_names_empty_goal(self, app_client, headers):
        plan_id = (await open_day(app_client, headers))["plan"]["id"]

        response = await app_client.post(
            f"/plans/{plan_id}/submit",
            params={"today": DAY},
            json={"goals": [{"title": "A"}, {"title": ""}, {"title": "C"}]},
            headers=headers,
        )

        assert response.status_code == 422
        assert response.json()["detail"] == {
            "message": "Goal 2 is empty",
            "field": "goals[1].title",
        }

    async def test_submit_without_body_uses_saved_goals(self, app_client, headers):
        plan_id = (await open_day(app_client, headers))["plan"]["id"]
        await save(app_client, headers, plan_id, ["A", "B", "C"])

        response = await app_client.post(
            f"/plans/{plan_id}/submit",
            params={"today": DAY},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "submitted"
        assert response.json()["submitted_at"] is not None

    async def test_locked_plan_returns_423(self, app_client, headers):
        plan_id = (await open_day(app_client, headers))["plan"]["id"]
        await save(app_client, headers, plan_id, ["A", "B", "C"])
        await app_client.post(f"/plans/{plan_id}/submit", params={"today": DAY}, headers=headers)

        lock = await app_client.post(f"/plans/{plan_id}/lock", headers=headers)
        assert lock.status_code == 200
        assert lock.json()["status"] == "locked"

        response = await app_client.put(
            f"/plans/{plan_id}/goals",
            params={"today": DAY},
            json=[{"title": "late"}],
            headers=headers,
        )
        assert response.status_code == 423

    async def test_lock_draft_is_rejected(self, app_client, headers):
        plan_id = (await open_day(app_client, headers))["plan"]["id"]

        response = await app_client.post(f"/plans/{plan_id}/lock", headers=headers)

        assert response.status_code == 422


@pytest.mark.asyncio
class TestClosure:
    """Tests for awards, closure and reopening."""

    async def test_awareness_then_closure(self, app_client, headers):
        plan_id = (await open_day(app_client, headers))["plan"]["id"]
        await save(app_client, headers, plan_id, ["A", "B", "C"])

        awareness = await app_client.post(f"/plans/{plan_id}/awareness", headers=headers)
        assert awareness.json() == {"awarded": True, "new_points": 5}
        repeat = await app_client.post(f"/plans/{plan_id}/awareness", headers=headers)
        assert repeat.json() == {"awarded": False, "new_points": 5}

        closure = await app_client.post(f"/plans/{plan_id}/closure", headers=headers)
        assert closure.json() == {"awarded": True, "new_points": 10}

        next_day = await app_client.get(
            f"/plans/{NEXT_DAY}",
            params={"today": DAY},
            headers=headers,
        )
        assert next_day.status_code == 200

    async def test_closure_with_pending_review(self, app_client, headers):
        plan_id = (await open_day(app_client, headers))["plan"]["id"]
        goals = await save(app_client, headers, plan_id, ["A", "B", "C"])
        await app_client.patch(
            f"/goals/{goals[0]['id']}/status",
            json={"status": "in_progress"},
            headers=headers,
        )

        response = await app_client.post(f"/plans/{plan_id}/closure", headers=headers)

        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "goals"

    async def test_reopen(self, app_client, headers):
        plan_id = (await open_day(app_client, headers))["plan"]["id"]
        await app_client.post(f"/plans/{plan_id}/closure", headers=headers)

        response = await app_client.post(
            f"/plans/{plan_id}/reopen",
            json={"reason": "missed a goal"},
            headers=headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["reviewed_at"] is None
        assert data["reopen_history"][0]["reason"] == "missed a goal"

        blocked = await app_client.get(
            f"/plans/{NEXT_DAY}",
            params={"today": DAY},
            headers=headers,
        )
        assert blocked.status_code == 409

    async def test_reopen_open_day(self, app_client, headers):
        plan_id = (await open_day(app_client, headers))["plan"]["id"]

        response = await app_client.post(f"/plans/{plan_id}/reopen", headers=headers)

        assert response.status_code == 422


@pytest.mark.asyncio
class TestCalendar:
    """Tests for the calendar listing."""

    async def test_calendar_lists_planned_days(self, app_client, headers):
        plan_id = (await open_day(app_client, headers))["plan"]["id"]
        await save(app_client, headers, plan_id, ["A", "B"])

        response = await app_client.get(
            "/plans",
            params={"start": "2024-12-30", "end": "2025-01-05"},
            headers=headers,
        )

        assert response.status_code == 200
        days = response.json()
        assert len(days) == 1
        assert days[0]["date"] == DAY
        assert days[0]["goal_count"] == 2
        assert days[0]["reviewed"] is False

    async def test_calendar_rejects_inverted_range(self, app_client, headers):
        response = await app_client.get(
            "/plans",
            params={"start": "2025-01-05", "end": "2025-01-01"},
            headers=headers,
        )

        assert response.status_code == 422

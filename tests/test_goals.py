from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import UserRole
from app.core.models import GoalVersion


def _goal_payload(**overrides) -> dict:
    payload = {
        "student_external_id": "S1",
        "area_of_focus": "Academics",
        "smart_goal_text": "Raise CGPA to 8.0 by the end of semester",
        "knowledge_what": "Data structures",
        "action_plan": "Two hours of practice daily",
        "target_date": "2026-05-31",
    }
    payload.update(overrides)
    return payload


async def _session_id(client: AsyncClient, mentor, headers) -> str:
    response = await client.post(
        "/api/v1/sessions",
        json={"name": "Goal setting", "session_date": date.today().isoformat(), "students": ["S1"]},
        headers=headers(mentor),
    )
    return response.json()["id"]


@pytest.mark.asyncio
async def test_goal_versions_increment_with_one_snapshot_each(
    client: AsyncClient, db_session: AsyncSession, mentor, headers
) -> None:
    session_id = await _session_id(client, mentor, headers)
    created = await client.post(
        "/api/v1/goals", json=_goal_payload(session_id=session_id), headers=headers(mentor)
    )
    assert created.status_code == 201
    goal = created.json()
    assert goal["version_number"] == 1
    assert goal["status"] == "proposed"

    edited = await client.patch(
        f"/api/v1/goals/{goal['id']}",
        json={"smart_goal_text": "Raise CGPA to 8.5 by the end of semester"},
        headers=headers(mentor),
    )
    assert edited.json()["version_number"] == 2
    edited = await client.patch(
        f"/api/v1/goals/{goal['id']}", json={"action_plan": "Three mock tests a week"}, headers=headers(mentor)
    )
    assert edited.json()["version_number"] == 3

    # An edit that changes nothing does not create a version
    unchanged = await client.patch(
        f"/api/v1/goals/{goal['id']}", json={"action_plan": "Three mock tests a week"}, headers=headers(mentor)
    )
    assert unchanged.json()["version_number"] == 3

    versions = await client.get(f"/api/v1/goals/{goal['id']}/versions", headers=headers(mentor))
    assert [v["version_number"] for v in versions.json()] == [1, 2, 3]
    assert versions.json()[1]["smart_goal_text"] == "Raise CGPA to 8.5 by the end of semester"

    rows = (await db_session.execute(select(GoalVersion))).scalars().all()
    assert len(rows) == 3

    detail = await client.get(f"/api/v1/sessions/{session_id}", headers=headers(mentor))
    assert [g["id"] for g in detail.json()["goals"]] == [goal["id"]]


@pytest.mark.asyncio
async def test_goal_status_change_does_not_version(client: AsyncClient, mentor, headers) -> None:
    session_id = await _session_id(client, mentor, headers)
    goal = (await client.post("/api/v1/goals", json=_goal_payload(session_id=session_id), headers=headers(mentor))).json()

    response = await client.post(
        f"/api/v1/goals/{goal['id']}/status", json={"status": "in_progress"}, headers=headers(mentor)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "in_progress"
    assert response.json()["version_number"] == 1

    invalid = await client.post(
        f"/api/v1/goals/{goal['id']}/status", json={"status": "done"}, headers=headers(mentor)
    )
    assert invalid.status_code == 422


@pytest.mark.asyncio
async def test_mentor_needs_a_relationship_with_the_student(
    client: AsyncClient, mentor, headers
) -> None:
    response = await client.post("/api/v1/goals", json=_goal_payload(student_external_id="S9"), headers=headers(mentor))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_goal_listing_by_role(client: AsyncClient, mentor, mentee, make_user, headers) -> None:
    session_id = await _session_id(client, mentor, headers)
    await client.post("/api/v1/goals", json=_goal_payload(session_id=session_id), headers=headers(mentor))
    other_mentee = await make_user(UserRole.MENTEE, external_id="S2")

    assert len((await client.get("/api/v1/goals", headers=headers(mentor))).json()) == 1
    assert len((await client.get("/api/v1/goals", headers=headers(mentee))).json()) == 1
    assert (await client.get("/api/v1/goals", headers=headers(other_mentee))).json() == []
    by_session = await client.get("/api/v1/goals", params={"session_id": session_id}, headers=headers(mentee))
    assert by_session.json()[0]["student_external_id"] == "S1"

from datetime import date

import pytest
from httpx import AsyncClient

from app.core.enums import UserRole


def _mentor_feedback(session_id: str, quality: int = 4) -> dict:
    return {
        "session_id": session_id,
        "session_quality_rating": quality,
        "student_engagement_rating": 4,
        "goals_achieved_rating": 2,
        "student_progress_notes": "Steady improvement in attendance",
        "next_steps_recommended": "Weekly study plan",
        "follow_up_required": True,
        "follow_up_timeline": "2 weeks",
    }


async def _session(client: AsyncClient, user, headers, students=("S1",)) -> str:
    response = await client.post(
        "/api/v1/sessions",
        json={"name": "Progress review", "session_date": date.today().isoformat(), "students": list(students)},
        headers=headers(user),
    )
    assert response.status_code == 201
    return response.json()["id"]


@pytest.mark.asyncio
async def test_mentor_feedback_once_per_session(client: AsyncClient, mentor, headers) -> None:
    session_id = await _session(client, mentor, headers)

    first = await client.post("/api/v1/feedback/mentor", json=_mentor_feedback(session_id), headers=headers(mentor))
    assert first.status_code == 201
    # No pending completion to apply
    assert first.json()["session_completed"] is False
    assert first.json()["session_status"] == "pending"

    second = await client.post("/api/v1/feedback/mentor", json=_mentor_feedback(session_id), headers=headers(mentor))
    assert second.status_code == 409


@pytest.mark.asyncio
async def test_ratings_must_be_between_one_and_five(client: AsyncClient, mentor, headers) -> None:
    session_id = await _session(client, mentor, headers)
    response = await client.post(
        "/api/v1/feedback/mentor", json=_mentor_feedback(session_id, quality=6), headers=headers(mentor)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_mentor_cannot_give_feedback_on_someone_elses_session(
    client: AsyncClient, mentor, make_user, headers
) -> None:
    other = await make_user(UserRole.MENTOR, external_id="M2")
    session_id = await _session(client, mentor, headers)
    response = await client.post("/api/v1/feedback/mentor", json=_mentor_feedback(session_id), headers=headers(other))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_feedback_listing_and_averages(client: AsyncClient, mentor, admin, mentee, headers) -> None:
    for quality in (3, 5):
        session_id = await _session(client, mentor, headers)
        await client.post(
            "/api/v1/feedback/mentor", json=_mentor_feedback(session_id, quality=quality), headers=headers(mentor)
        )

    own = await client.get("/api/v1/feedback/mentor", headers=headers(mentor))
    assert len(own.json()) == 2

    averages = await client.get(
        "/api/v1/feedback/mentor/averages", params={"mentor_external_id": "M1"}, headers=headers(admin)
    )
    assert averages.json() == {
        "feedback_count": 2,
        "session_quality": 4.0,
        "student_engagement": 4.0,
        "goals_achieved": 2.0,
    }

    denied = await client.get("/api/v1/feedback/mentor", headers=headers(mentee))
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_session_feedback_from_participants_only(
    client: AsyncClient, mentor, mentee, make_user, headers
) -> None:
    outsider = await make_user(UserRole.MENTEE, external_id="S7")
    session_id = await _session(client, mentor, headers, students=("S1",))
    payload = {
        "session_id": session_id,
        "overall_rating": 5,
        "mentor_helpfulness": 4,
        "session_effectiveness": 4,
        "comments": "Very useful",
    }

    response = await client.post("/api/v1/feedback/session", json=payload, headers=headers(mentee))
    assert response.status_code == 201
    assert response.json()["mentee_external_id"] == "S1"
    assert response.json()["would_recommend"] is True

    duplicate = await client.post("/api/v1/feedback/session", json=payload, headers=headers(mentee))
    assert duplicate.status_code == 409

    denied = await client.post("/api/v1/feedback/session", json=payload, headers=headers(outsider))
    assert denied.status_code == 403

    listed = await client.get(
        "/api/v1/feedback/session", params={"session_id": session_id}, headers=headers(mentor)
    )
    assert [f["overall_rating"] for f in listed.json()] == [5]

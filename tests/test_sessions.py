from datetime import date, timedelta
from uuid import UUID

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.sessions.service import MEETING_LOG_INCOMPLETE
from app.core.enums import UserRole
from app.core.models import AuditLog, Notification, OutboxEvent, SessionParticipant


def _session_payload(students, name: str = "Career planning") -> dict:
    return {
        "name": name,
        "session_date": (date.today() + timedelta(days=3)).isoformat(),
        "start_time": "10:00:00",
        "end_time": "11:00:00",
        "location": "Room 204",
        "session_type": "group" if len(students) > 1 else "one_on_one",
        "priority": "normal",
        "students": students,
    }


async def _create_session(client: AsyncClient, user, headers, students) -> dict:
    response = await client.post("/api/v1/sessions", json=_session_payload(students), headers=headers(user))
    assert response.status_code == 201
    return response.json()


async def _add_meeting_log(client: AsyncClient, user, headers, session_id: str, focus: str = "Internship plan"):
    response = await client.post(
        "/api/v1/meeting-logs",
        json={"session_id": session_id, "focus_of_meeting": focus, "next_steps": "Draft resume"},
        headers=headers(user),
    )
    assert response.status_code == 201
    return response.json()


async def _invited(db: AsyncSession) -> list:
    result = await db.execute(
        select(Notification.user_external_id).where(Notification.type == "session_invitation")
    )
    return sorted(result.scalars().all())


@pytest.mark.asyncio
async def test_create_session_invites_participants(
    client: AsyncClient, db_session: AsyncSession, mentor, headers
) -> None:
    session = await _create_session(client, mentor, headers, ["S1", "S2"])
    assert session["status"] == "pending"
    assert session["created_by"] == "M1"
    assert sorted(session["student_external_ids"]) == ["S1", "S2"]
    assert {p["participation_status"] for p in session["participants"]} == {"invited"}

    assert await _invited(db_session) == ["S1", "S2"]
    notification = (
        await db_session.execute(select(Notification).where(Notification.user_external_id == "S1"))
    ).scalar_one()
    assert notification.title == "New Counseling Session Invitation"
    assert notification.action_required is True
    assert notification.action_url == f"/session/{session['id']}"
    assert "Dr. Meera Iyer" in notification.message
    assert "at 10:00" in notification.message

    event = (await db_session.execute(select(OutboxEvent))).scalar_one()
    assert event.event_type == "ParticipantsAdded"
    assert event.dispatched_at is not None


@pytest.mark.asyncio
async def test_mentee_cannot_create_session(client: AsyncClient, mentee, headers) -> None:
    response = await client.post("/api/v1/sessions", json=_session_payload(["S1"]), headers=headers(mentee))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_completion_blocked_without_meeting_log(
    client: AsyncClient, mentor, headers
) -> None:
    session = await _create_session(client, mentor, headers, ["S1"])

    response = await client.post(
        f"/api/v1/sessions/{session['id']}/status", json={"status": "completed"}, headers=headers(mentor)
    )
    assert response.status_code == 422
    assert response.json()["detail"] == MEETING_LOG_INCOMPLETE

    detail = await client.get(f"/api/v1/sessions/{session['id']}", headers=headers(mentor))
    assert detail.json()["status"] == "pending"


@pytest.mark.asyncio
async def test_blank_focus_does_not_count_as_meeting_log(
    client: AsyncClient, mentor, headers
) -> None:
    session = await _create_session(client, mentor, headers, ["S1"])
    log = await _add_meeting_log(client, mentor, headers, session["id"], focus="   ")
    assert log["is_complete"] is False

    response = await client.post(
        f"/api/v1/sessions/{session['id']}/status", json={"status": "completed"}, headers=headers(mentor)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_mentor_completion_waits_for_feedback(
    client: AsyncClient, db_session: AsyncSession, mentor, headers
) -> None:
    session = await _create_session(client, mentor, headers, ["S1"])
    await _add_meeting_log(client, mentor, headers, session["id"])

    response = await client.post(
        f"/api/v1/sessions/{session['id']}/status", json={"status": "completed"}, headers=headers(mentor)
    )
    assert response.status_code == 200
    body = response.json()
    assert body["feedback_required"] is True
    assert body["session"]["status"] == "pending_feedback"
    assert body["session"]["meeting_log_complete"] is True
    assert body["session"]["has_mentor_feedback"] is False

    feedback = await client.post(
        "/api/v1/feedback/mentor",
        json={
            "session_id": session["id"],
            "session_quality_rating": 4,
            "student_engagement_rating": 5,
            "goals_achieved_rating": 3,
            "student_progress_notes": "Clear progress on the internship search",
            "next_steps_recommended": "Apply to three companies",
        },
        headers=headers(mentor),
    )
    assert feedback.status_code == 201
    assert feedback.json()["session_completed"] is True
    assert feedback.json()["session_status"] == "completed"

    detail = await client.get(f"/api/v1/sessions/{session['id']}", headers=headers(mentor))
    assert detail.json()["status"] == "completed"
    assert detail.json()["has_mentor_feedback"] is True

    completions = (
        await db_session.execute(
            select(AuditLog).where(
                AuditLog.entity_type == "counseling_session",
                AuditLog.to_status == "completed",
            )
        )
    ).scalars().all()
    assert len(completions) == 1


@pytest.mark.asyncio
async def test_mentor_with_feedback_completes_directly(
    client: AsyncClient, mentor, headers
) -> None:
    session = await _create_session(client, mentor, headers, ["S1"])
    await _add_meeting_log(client, mentor, headers, session["id"])
    await client.post(
        "/api/v1/feedback/mentor",
        json={
            "session_id": session["id"],
            "session_quality_rating": 5,
            "student_engagement_rating": 5,
            "goals_achieved_rating": 5,
            "student_progress_notes": "Great session",
            "next_steps_recommended": "Keep going",
        },
        headers=headers(mentor),
    )

    response = await client.post(
        f"/api/v1/sessions/{session['id']}/status", json={"status": "completed"}, headers=headers(mentor)
    )
    assert response.status_code == 200
    assert response.json()["feedback_required"] is False
    assert response.json()["session"]["status"] == "completed"


@pytest.mark.asyncio
async def test_reopen_and_edit_round_trip_keeps_children(
    client: AsyncClient, admin, headers
) -> None:
    session = await _create_session(client, admin, headers, ["S1", "S2"])
    await _add_meeting_log(client, admin, headers, session["id"])

    completed = await client.post(
        f"/api/v1/sessions/{session['id']}/status", json={"status": "completed"}, headers=headers(admin)
    )
    assert completed.json()["session"]["status"] == "completed"
    assert completed.json()["feedback_required"] is False

    edited = await client.patch(
        f"/api/v1/sessions/{session['id']}",
        json={"description": "Follow-up on resume review"},
        headers=headers(admin),
    )
    assert edited.status_code == 200
    data = edited.json()
    assert data["status"] == "pending"
    assert data["description"] == "Follow-up on resume review"
    assert sorted(data["student_external_ids"]) == ["S1", "S2"]
    assert len(data["meeting_logs"]) == 1

    again = await client.post(
        f"/api/v1/sessions/{session['id']}/status", json={"status": "completed"}, headers=headers(admin)
    )
    final = again.json()["session"]
    assert final["status"] == "completed"
    assert sorted(final["student_external_ids"]) == ["S1", "S2"]
    assert len(final["meeting_logs"]) == 1


@pytest.mark.asyncio
async def test_roster_replacement_invites_only_new_students(
    client: AsyncClient, db_session: AsyncSession, mentor, headers
) -> None:
    session = await _create_session(client, mentor, headers, ["S1", "S2"])

    response = await client.patch(
        f"/api/v1/sessions/{session['id']}", json={"students": ["S3", "S4"]}, headers=headers(mentor)
    )
    assert response.status_code == 200
    assert sorted(response.json()["student_external_ids"]) == ["S3", "S4"]

    rows = (
        await db_session.execute(
            select(SessionParticipant).where(SessionParticipant.session_id == UUID(session["id"]))
        )
    ).scalars().all()
    assert sorted(p.student_external_id for p in rows) == ["S3", "S4"]
    assert {p.participation_status for p in rows} == {"invited"}

    events = (
        await db_session.execute(select(OutboxEvent).order_by(OutboxEvent.created_at))
    ).scalars().all()
    assert [sorted(e.payload["studentIds"]) for e in events] == [["S1", "S2"], ["S3", "S4"]]
    # one invitation each: S1/S2 from creation, S3/S4 from the edit
    assert await _invited(db_session) == ["S1", "S2", "S3", "S4"]


@pytest.mark.asyncio
async def test_roster_edit_overlap(client: AsyncClient, db_session: AsyncSession, mentor, headers) -> None:
    session = await _create_session(client, mentor, headers, ["S1", "S2"])
    await client.patch(
        f"/api/v1/sessions/{session['id']}", json={"students": ["S2", "S3"]}, headers=headers(mentor)
    )
    assert await _invited(db_session) == ["S1", "S2", "S3"]


@pytest.mark.asyncio
async def test_add_and_remove_participant(client: AsyncClient, db_session: AsyncSession, mentor, headers) -> None:
    session = await _create_session(client, mentor, headers, ["S1"])

    added = await client.post(
        f"/api/v1/sessions/{session['id']}/participants",
        json={"student_external_id": "S2"},
        headers=headers(mentor),
    )
    assert added.status_code == 201
    assert sorted(added.json()["student_external_ids"]) == ["S1", "S2"]

    duplicate = await client.post(
        f"/api/v1/sessions/{session['id']}/participants",
        json={"student_external_id": "S2"},
        headers=headers(mentor),
    )
    assert duplicate.status_code == 409

    attended = await client.patch(
        f"/api/v1/sessions/{session['id']}/participants/S2",
        json={"participation_status": "attended"},
        headers=headers(mentor),
    )
    assert attended.json()["participation_status"] == "attended"

    removed = await client.delete(f"/api/v1/sessions/{session['id']}/participants/S1", headers=headers(mentor))
    assert removed.status_code == 200
    assert removed.json()["student_external_ids"] == ["S2"]
    assert await _invited(db_session) == ["S1", "S2"]


@pytest.mark.asyncio
async def test_cancel_requires_full_system_access(
    client: AsyncClient, db_session: AsyncSession, mentor, admin, super_admin, headers
) -> None:
    session = await _create_session(client, mentor, headers, ["S1", "S2"])

    for user in (mentor, admin):
        denied = await client.post(
            f"/api/v1/sessions/{session['id']}/status",
            json={"status": "cancelled", "reason": "Mentor unavailable"},
            headers=headers(user),
        )
        assert denied.status_code == 403

    response = await client.post(
        f"/api/v1/sessions/{session['id']}/status",
        json={"status": "cancelled", "reason": "Mentor unavailable"},
        headers=headers(super_admin),
    )
    assert response.status_code == 200
    data = response.json()["session"]
    assert data["status"] == "cancelled"
    assert data["cancellation_reason"] == "Mentor unavailable"

    cancellations = (
        await db_session.execute(
            select(Notification.user_external_id).where(Notification.type == "session_cancellation")
        )
    ).scalars().all()
    assert sorted(cancellations) == ["S1", "S2"]

    reopened = await client.post(
        f"/api/v1/sessions/{session['id']}/status", json={"status": "pending"}, headers=headers(super_admin)
    )
    assert reopened.json()["session"]["status"] == "pending"
    assert reopened.json()["session"]["cancellation_reason"] is None


@pytest.mark.asyncio
async def test_invalid_transitions(client: AsyncClient, mentor, headers) -> None:
    session = await _create_session(client, mentor, headers, ["S1"])
    response = await client.post(
        f"/api/v1/sessions/{session['id']}/status", json={"status": "pending"}, headers=headers(mentor)
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_visibility(client: AsyncClient, mentor, mentee, make_user, make_staff, headers) -> None:
    await make_staff("M2")
    other_mentor = await make_user(UserRole.MENTOR, external_id="M2")
    mine = await _create_session(client, mentor, headers, ["S1"])
    await _create_session(client, other_mentor, headers, ["S2"])

    listed = await client.get("/api/v1/sessions", headers=headers(mentor))
    assert [s["id"] for s in listed.json()] == [mine["id"]]

    as_student = await client.get("/api/v1/sessions", headers=headers(mentee))
    assert [s["id"] for s in as_student.json()] == [mine["id"]]

    forbidden = await client.get(f"/api/v1/sessions/{mine['id']}", headers=headers(other_mentor))
    assert forbidden.status_code == 403

    upcoming = await client.get("/api/v1/sessions", params={"scope": "upcoming"}, headers=headers(mentee))
    assert [s["id"] for s in upcoming.json()] == [mine["id"]]
    completed = await client.get("/api/v1/sessions", params={"scope": "completed"}, headers=headers(mentee))
    assert completed.json() == []


@pytest.mark.asyncio
async def test_editing_session_awaiting_feedback_reopens_it(client: AsyncClient, mentor, headers) -> None:
    session = await _create_session(client, mentor, headers, ["S1"])
    await _add_meeting_log(client, mentor, headers, session["id"])
    parked = await client.post(
        f"/api/v1/sessions/{session['id']}/status", json={"status": "completed"}, headers=headers(mentor)
    )
    assert parked.json()["session"]["status"] == "pending_feedback"

    edited = await client.patch(
        f"/api/v1/sessions/{session['id']}", json={"location": "Room 310"}, headers=headers(mentor)
    )
    assert edited.status_code == 200
    assert edited.json()["status"] == "pending"
    assert edited.json()["location"] == "Room 310"
    assert edited.json()["meeting_log_complete"] is True

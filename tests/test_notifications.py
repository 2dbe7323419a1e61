from datetime import date, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.notifications.dispatcher import NotificationDispatcher
from app.api.v1.sessions import service as session_service
from app.api.v1.sessions.schemas import SessionCreate
from app.core.models import CounselingSession, Notification, OutboxEvent, SessionParticipant
from app.core.models.outbox_event import EVENT_PARTICIPANTS_ADDED


async def _count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count(model.id)))).scalar_one()


async def _create_session(db: AsyncSession, actor, students):
    payload = SessionCreate(
        name="Study skills",
        session_date=date.today() + timedelta(days=1),
        students=students,
    )
    return await session_service.create_session(db, actor, payload)


@pytest.mark.asyncio
async def test_dispatch_failure_keeps_mutation_and_leaves_event_pending(
    db_session: AsyncSession, mentor, current_user_of
) -> None:
    detail = await _create_session(db_session, current_user_of(mentor), ["S1", "S2"])

    async def failing_handler(db, payload):
        db.add(
            Notification(
                user_external_id="S1",
                user_type="student",
                title="partial",
                message="written before the failure",
                type="session_invitation",
            )
        )
        raise RuntimeError("delivery backend down")

    report = await NotificationDispatcher(handlers={EVENT_PARTICIPANTS_ADDED: failing_handler}).dispatch_pending(
        db_session
    )
    assert report.dispatched == 0
    assert report.failed == 1

    session_row = (
        await db_session.execute(select(CounselingSession).where(CounselingSession.id == detail.id))
    ).scalar_one()
    assert session_row.status == "pending"
    assert await _count(db_session, SessionParticipant) == 2
    assert await _count(db_session, Notification) == 0

    event = (await db_session.execute(select(OutboxEvent))).scalar_one()
    assert event.attempts == 1
    assert event.last_error == "delivery backend down"
    assert event.dispatched_at is None

    # A later run with working handlers delivers the pending event
    retry = await NotificationDispatcher().dispatch_pending(db_session)
    assert retry.dispatched == 1
    invited = (await db_session.execute(select(Notification.user_external_id))).scalars().all()
    assert sorted(invited) == ["S1", "S2"]


@pytest.mark.asyncio
async def test_events_past_max_attempts_are_skipped(
    db_session: AsyncSession, mentor, current_user_of
) -> None:
    await _create_session(db_session, current_user_of(mentor), ["S1"])

    async def failing_handler(db, payload):
        raise RuntimeError("nope")

    dispatcher = NotificationDispatcher(handlers={EVENT_PARTICIPANTS_ADDED: failing_handler}, max_attempts=1)
    first = await dispatcher.dispatch_pending(db_session)
    assert first.failed == 1
    second = await dispatcher.dispatch_pending(db_session)
    assert second.failed == 0
    assert second.dispatched == 0


@pytest.mark.asyncio
async def test_unknown_event_type_is_recorded_as_failure(db_session: AsyncSession, mentor, current_user_of) -> None:
    await _create_session(db_session, current_user_of(mentor), ["S1"])
    report = await NotificationDispatcher(handlers={}).dispatch_pending(db_session)
    assert report.failed == 1
    event = (await db_session.execute(select(OutboxEvent))).scalar_one()
    assert "No handler" in event.last_error


@pytest.mark.asyncio
async def test_session_without_students_emits_no_event(db_session: AsyncSession, mentor, current_user_of) -> None:
    await _create_session(db_session, current_user_of(mentor), [])
    assert await _count(db_session, OutboxEvent) == 0


@pytest.mark.asyncio
async def test_inbox_read_flow(client: AsyncClient, mentor, mentee, headers) -> None:
    for name in ("Session one", "Session two"):
        response = await client.post(
            "/api/v1/sessions",
            json={"name": name, "session_date": date.today().isoformat(), "students": ["S1"]},
            headers=headers(mentor),
        )
        assert response.status_code == 201

    inbox = await client.get("/api/v1/notifications", headers=headers(mentee))
    assert inbox.status_code == 200
    data = inbox.json()
    assert data["unread_count"] == 2
    assert {n["type"] for n in data["notifications"]} == {"session_invitation"}

    first_id = data["notifications"][0]["id"]
    read = await client.post(f"/api/v1/notifications/{first_id}/read", headers=headers(mentee))
    assert read.status_code == 200
    assert read.json()["read_at"] is not None
    assert (await client.get("/api/v1/notifications", headers=headers(mentee))).json()["unread_count"] == 1

    all_read = await client.post("/api/v1/notifications/read-all", headers=headers(mentee))
    assert all_read.json() == {"updated": 1}
    assert (await client.get("/api/v1/notifications", headers=headers(mentee))).json()["unread_count"] == 0

    # Someone else's notification is not found
    other = await client.post(f"/api/v1/notifications/{first_id}/read", headers=headers(mentor))
    assert other.status_code == 404


@pytest.mark.asyncio
async def test_manual_dispatch_requires_full_system_access(
    client: AsyncClient, admin, super_admin, headers
) -> None:
    assert (await client.post("/api/v1/notifications/dispatch", headers=headers(admin))).status_code == 403
    response = await client.post("/api/v1/notifications/dispatch", headers=headers(super_admin))
    assert response.status_code == 200
    assert response.json() == {"dispatched": 0, "failed": 0}

"""
Counseling session lifecycle.

pending -> completed needs a meeting log with a focus. A mentor completing without having
submitted feedback parks the session in pending_feedback; submitting the feedback completes it.
pending / pending_feedback -> cancelled needs full system access.
completed, cancelled and pending_feedback can be reopened to pending.

Roster changes append a ParticipantsAdded outbox event that names only the newly added students.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from fastapi import status
from fastapi.encoders import jsonable_encoder
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.audit.service import log_audit
from app.api.v1.goals.schemas import GoalResponse
from app.api.v1.meeting_logs.schemas import is_log_complete, to_meeting_log_response
from app.api.v1.notifications.outbox import append_event
from app.auth.rbac import Permission, ensure_permission, has_any_permission, has_permission
from app.auth.schemas import CurrentUser
from app.core.enums import ParticipationStatus, SessionStatus
from app.core.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    ValidationFailedError,
)
from app.core.models import CounselingSession, Goal, MeetingLog, MentorFeedback, SessionParticipant
from app.core.models.outbox_event import EVENT_PARTICIPANTS_ADDED, EVENT_SESSION_CANCELLED

from .schemas import (
    ParticipantResponse,
    SessionCreate,
    SessionDetail,
    SessionResponse,
    SessionStatusResult,
    SessionUpdate,
)

logger = logging.getLogger(__name__)

AGGREGATE_TYPE = "counseling_session"

_REOPENABLE = {
    SessionStatus.COMPLETED.value,
    SessionStatus.CANCELLED.value,
    SessionStatus.PENDING_FEEDBACK.value,
}
_CANCELLABLE = {SessionStatus.PENDING.value, SessionStatus.PENDING_FEEDBACK.value}
# Columns that may not be cleared by a partial update
_REQUIRED_FIELDS = {"name", "session_date", "session_type", "priority"}

MEETING_LOG_INCOMPLETE = (
    "Meeting log is incomplete. Record the focus of the meeting before marking the session as completed."
)


def _time_label(t: Optional[time]) -> Optional[str]:
    return t.strftime("%H:%M") if t else None


def _dedupe(student_ids: Iterable[str]) -> List[str]:
    cleaned = (s.strip() for s in student_ids if s and s.strip())
    return list(dict.fromkeys(cleaned))


def _validate_times(start: Optional[time], end: Optional[time]) -> None:
    if start and end and end <= start:
        raise ValidationFailedError("end_time must be after start_time")


def _can_manage_all(actor: CurrentUser) -> bool:
    return has_permission(actor.role, Permission.MANAGE_ALL_SESSIONS)


def _owns(actor: CurrentUser, s: CounselingSession) -> bool:
    return actor.external_id is not None and s.created_by == actor.external_id


def _ensure_can_modify(actor: CurrentUser, s: CounselingSession) -> None:
    if _can_manage_all(actor):
        return
    if has_any_permission(actor.role, Permission.MANAGE_MY_SESSIONS, Permission.EDIT_COUNSELING) and _owns(actor, s):
        return
    raise PermissionDeniedError("You can only manage sessions you created")


async def _get_session_or_404(db: AsyncSession, session_id: UUID) -> CounselingSession:
    s = await db.get(CounselingSession, session_id)
    if not s:
        raise NotFoundError("Session not found")
    return s


async def is_participant(db: AsyncSession, session_id: UUID, student_external_id: Optional[str]) -> bool:
    if not student_external_id:
        return False
    result = await db.execute(
        select(SessionParticipant.id).where(
            SessionParticipant.session_id == session_id,
            SessionParticipant.student_external_id == student_external_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def get_session_for_read(db: AsyncSession, actor: CurrentUser, session_id: UUID) -> CounselingSession:
    """Load a session the actor may see: all for manage_all_sessions, own for mentors, joined for mentees."""
    s = await _get_session_or_404(db, session_id)
    if _can_manage_all(actor) or _owns(actor, s):
        return s
    if has_permission(actor.role, Permission.VIEW_MY_SESSIONS) and await is_participant(db, s.id, actor.external_id):
        return s
    raise PermissionDeniedError("You do not have access to this session")


async def get_session_for_write(db: AsyncSession, actor: CurrentUser, session_id: UUID) -> CounselingSession:
    s = await _get_session_or_404(db, session_id)
    _ensure_can_modify(actor, s)
    return s


async def has_complete_meeting_log(db: AsyncSession, session_id: UUID) -> bool:
    result = await db.execute(select(MeetingLog.focus_of_meeting).where(MeetingLog.session_id == session_id))
    return any(is_log_complete(focus) for focus in result.scalars().all())


async def has_mentor_feedback(
    db: AsyncSession,
    session_id: UUID,
    mentor_external_id: Optional[str] = None,
) -> bool:
    stmt = select(MentorFeedback.id).where(MentorFeedback.session_id == session_id)
    if mentor_external_id is not None:
        stmt = stmt.where(MentorFeedback.mentor_external_id == mentor_external_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def _participant_ids(db: AsyncSession, session_id: UUID) -> List[str]:
    result = await db.execute(
        select(SessionParticipant.student_external_id)
        .where(SessionParticipant.session_id == session_id)
        .order_by(SessionParticipant.created_at)
    )
    return list(result.scalars().all())


async def _add_participants(
    db: AsyncSession,
    s: CounselingSession,
    student_ids: List[str],
    actor: CurrentUser,
) -> None:
    """Insert invited participants and queue one invitation event for exactly these students."""
    if not student_ids:
        return
    for student_id in student_ids:
        db.add(
            SessionParticipant(
                session_id=s.id,
                student_external_id=student_id,
                participation_status=ParticipationStatus.INVITED.value,
            )
        )
    await append_event(
        db,
        EVENT_PARTICIPANTS_ADDED,
        AGGREGATE_TYPE,
        s.id,
        {
            "sessionId": str(s.id),
            "sessionName": s.name,
            "sessionDate": s.session_date.isoformat(),
            "sessionTime": _time_label(s.start_time),
            "location": s.location,
            "mentorName": actor.display_name or actor.external_id,
            "studentIds": student_ids,
        },
    )


def _response_fields(s: CounselingSession, student_ids: List[str]) -> dict:
    return dict(
        id=s.id,
        name=s.name,
        session_date=s.session_date,
        start_time=s.start_time,
        end_time=s.end_time,
        location=s.location,
        description=s.description,
        session_type=s.session_type,
        priority=s.priority,
        status=s.status,
        cancellation_reason=s.cancellation_reason,
        created_by=s.created_by,
        student_external_ids=student_ids,
        created_at=s.created_at,
        updated_at=s.updated_at,
    )


async def _build_detail(db: AsyncSession, s: CounselingSession) -> SessionDetail:
    participants = (
        await db.execute(
            select(SessionParticipant)
            .where(SessionParticipant.session_id == s.id)
            .order_by(SessionParticipant.created_at)
        )
    ).scalars().all()
    logs = (
        await db.execute(
            select(MeetingLog).where(MeetingLog.session_id == s.id).order_by(MeetingLog.created_at)
        )
    ).scalars().all()
    goals = (
        await db.execute(select(Goal).where(Goal.session_id == s.id).order_by(Goal.created_at))
    ).scalars().all()
    log_responses = [to_meeting_log_response(log) for log in logs]
    return SessionDetail(
        **_response_fields(s, [p.student_external_id for p in participants]),
        participants=[ParticipantResponse.model_validate(p) for p in participants],
        meeting_logs=log_responses,
        goals=[GoalResponse.model_validate(g) for g in goals],
        meeting_log_complete=any(log.is_complete for log in log_responses),
        has_mentor_feedback=await has_mentor_feedback(db, s.id),
    )


async def get_session_detail(db: AsyncSession, actor: CurrentUser, session_id: UUID) -> SessionDetail:
    s = await get_session_for_read(db, actor, session_id)
    return await _build_detail(db, s)


async def list_sessions(
    db: AsyncSession,
    actor: CurrentUser,
    scope: Optional[str] = None,
    student_external_id: Optional[str] = None,
    status_filter: Optional[str] = None,
) -> List[SessionResponse]:
    """
    Sessions visible to the actor.

    scope: "upcoming" (pending, dated today or later, soonest first), "completed", or None for all.
    """
    stmt = select(CounselingSession)
    if not _can_manage_all(actor):
        if has_permission(actor.role, Permission.MANAGE_MY_SESSIONS):
            stmt = stmt.where(CounselingSession.created_by == actor.external_id)
        elif has_permission(actor.role, Permission.VIEW_MY_SESSIONS):
            stmt = stmt.where(
                CounselingSession.id.in_(
                    select(SessionParticipant.session_id).where(
                        SessionParticipant.student_external_id == actor.external_id
                    )
                )
            )
        else:
            return []
    if student_external_id:
        stmt = stmt.where(
            CounselingSession.id.in_(
                select(SessionParticipant.session_id).where(
                    SessionParticipant.student_external_id == student_external_id
                )
            )
        )
    if scope == "upcoming":
        stmt = stmt.where(
            CounselingSession.status == SessionStatus.PENDING.value,
            CounselingSession.session_date >= date.today(),
        ).order_by(CounselingSession.session_date, CounselingSession.start_time)
    elif scope == "completed":
        stmt = stmt.where(CounselingSession.status == SessionStatus.COMPLETED.value).order_by(
            CounselingSession.session_date.desc()
        )
    else:
        stmt = stmt.order_by(CounselingSession.session_date.desc(), CounselingSession.created_at.desc())
    if status_filter:
        stmt = stmt.where(CounselingSession.status == status_filter)

    sessions = (await db.execute(stmt)).scalars().all()
    if not sessions:
        return []
    roster: Dict[UUID, List[str]] = defaultdict(list)
    rows = await db.execute(
        select(SessionParticipant.session_id, SessionParticipant.student_external_id)
        .where(SessionParticipant.session_id.in_([s.id for s in sessions]))
        .order_by(SessionParticipant.created_at)
    )
    for session_id, student_id in rows.all():
        roster[session_id].append(student_id)
    return [SessionResponse(**_response_fields(s, roster[s.id])) for s in sessions]


async def create_session(db: AsyncSession, actor: CurrentUser, payload: SessionCreate) -> SessionDetail:
    ensure_permission(actor, Permission.CREATE_COUNSELING, Permission.MANAGE_ALL_SESSIONS)
    _validate_times(payload.start_time, payload.end_time)
    s = CounselingSession(
        name=payload.name.strip(),
        session_date=payload.session_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        location=payload.location,
        description=payload.description,
        session_type=payload.session_type,
        priority=payload.priority,
        status=SessionStatus.PENDING.value,
        created_by=actor.external_id,
    )
    db.add(s)
    await db.flush()
    students = _dedupe(payload.students)
    await _add_participants(db, s, students, actor)
    await log_audit(
        db, AGGREGATE_TYPE, s.id, "create",
        actor=actor, to_status=s.status, new_values={"students": students},
    )
    await db.commit()
    await db.refresh(s)
    logger.info("Created session %s with %d participants", s.id, len(students))
    return await _build_detail(db, s)


async def update_session(
    db: AsyncSession,
    actor: CurrentUser,
    session_id: UUID,
    payload: SessionUpdate,
) -> SessionDetail:
    """
    Edit a session. A completed, cancelled or pending_feedback session is reopened to pending.
    When payload.students is given the roster is diffed: removed students are deleted,
    added ones inserted as invited. Meeting logs, goals and feedback are left untouched.
    """
    s = await get_session_for_write(db, actor, session_id)
    changes = {
        k: v
        for k, v in payload.model_dump(exclude_unset=True, exclude={"students"}).items()
        if v is not None or k not in _REQUIRED_FIELDS
    }
    _validate_times(changes.get("start_time", s.start_time), changes.get("end_time", s.end_time))

    old_values = {k: getattr(s, k) for k in changes}
    for field, value in changes.items():
        setattr(s, field, value.strip() if field == "name" else value)

    previous = s.status
    if s.status in _REOPENABLE:
        s.status = SessionStatus.PENDING.value
        s.cancellation_reason = None
    s.updated_at = datetime.utcnow()

    added: List[str] = []
    removed: List[str] = []
    if payload.students is not None:
        current = await _participant_ids(db, s.id)
        desired = _dedupe(payload.students)
        removed = [x for x in current if x not in desired]
        added = [x for x in desired if x not in current]
        if removed:
            await db.execute(
                delete(SessionParticipant).where(
                    SessionParticipant.session_id == s.id,
                    SessionParticipant.student_external_id.in_(removed),
                )
            )
        await _add_participants(db, s, added, actor)

    await log_audit(
        db, AGGREGATE_TYPE, s.id, "update",
        actor=actor,
        from_status=previous,
        to_status=s.status,
        old_values=jsonable_encoder(old_values),
        new_values=jsonable_encoder({**changes, "added_students": added, "removed_students": removed}),
    )
    await db.commit()
    await db.refresh(s)
    if previous != s.status:
        logger.info("Reopened session %s (%s -> %s)", s.id, previous, s.status)
    return await _build_detail(db, s)


async def add_participant(
    db: AsyncSession,
    actor: CurrentUser,
    session_id: UUID,
    student_external_id: str,
) -> SessionDetail:
    s = await get_session_for_write(db, actor, session_id)
    student_id = student_external_id.strip()
    if await is_participant(db, s.id, student_id):
        raise ServiceError("Student is already a participant in this session", status.HTTP_409_CONFLICT)
    await _add_participants(db, s, [student_id], actor)
    await log_audit(db, AGGREGATE_TYPE, s.id, "add_participant", actor=actor, new_values={"student": student_id})
    await db.commit()
    return await _build_detail(db, s)


async def remove_participant(
    db: AsyncSession,
    actor: CurrentUser,
    session_id: UUID,
    student_external_id: str,
) -> SessionDetail:
    s = await get_session_for_write(db, actor, session_id)
    result = await db.execute(
        select(SessionParticipant).where(
            SessionParticipant.session_id == s.id,
            SessionParticipant.student_external_id == student_external_id,
        )
    )
    participant = result.scalar_one_or_none()
    if not participant:
        raise NotFoundError("Participant not found")
    await db.delete(participant)
    await log_audit(
        db, AGGREGATE_TYPE, s.id, "remove_participant",
        actor=actor, old_values={"student": student_external_id},
    )
    await db.commit()
    return await _build_detail(db, s)


async def update_participant_status(
    db: AsyncSession,
    actor: CurrentUser,
    session_id: UUID,
    student_external_id: str,
    participation_status: str,
) -> ParticipantResponse:
    s = await get_session_for_write(db, actor, session_id)
    result = await db.execute(
        select(SessionParticipant).where(
            SessionParticipant.session_id == s.id,
            SessionParticipant.student_external_id == student_external_id,
        )
    )
    participant = result.scalar_one_or_none()
    if not participant:
        raise NotFoundError("Participant not found")
    previous = participant.participation_status
    participant.participation_status = ParticipationStatus(participation_status).value
    await log_audit(
        db, "session_participant", participant.id, "status_change",
        actor=actor, from_status=previous, to_status=participant.participation_status,
    )
    await db.commit()
    await db.refresh(participant)
    return ParticipantResponse.model_validate(participant)


async def change_status(
    db: AsyncSession,
    actor: CurrentUser,
    session_id: UUID,
    target: str,
    reason: Optional[str] = None,
) -> SessionStatusResult:
    s = await _get_session_or_404(db, session_id)
    target_status = SessionStatus(target)
    if target_status == SessionStatus.CANCELLED:
        ensure_permission(actor, Permission.FULL_SYSTEM_ACCESS)
    else:
        _ensure_can_modify(actor, s)

    current = s.status
    feedback_required = False
    if target_status == SessionStatus.COMPLETED:
        if current not in (SessionStatus.PENDING.value, SessionStatus.PENDING_FEEDBACK.value):
            raise InvalidStatusTransitionError(f"Cannot complete a session that is {current}")
        if not await has_complete_meeting_log(db, s.id):
            logger.warning("Completion of session %s blocked: meeting log incomplete", s.id)
            raise ValidationFailedError(MEETING_LOG_INCOMPLETE)
        if actor.is_mentor and not await has_mentor_feedback(db, s.id, actor.external_id):
            s.status = SessionStatus.PENDING_FEEDBACK.value
            feedback_required = True
        else:
            s.status = SessionStatus.COMPLETED.value
    elif target_status == SessionStatus.CANCELLED:
        if current not in _CANCELLABLE:
            raise InvalidStatusTransitionError(f"Cannot cancel a session that is {current}")
        s.status = SessionStatus.CANCELLED.value
        s.cancellation_reason = reason
        await append_event(
            db,
            EVENT_SESSION_CANCELLED,
            AGGREGATE_TYPE,
            s.id,
            {
                "sessionId": str(s.id),
                "sessionName": s.name,
                "sessionDate": s.session_date.isoformat(),
                "studentIds": await _participant_ids(db, s.id),
                "reason": reason,
            },
        )
    elif target_status == SessionStatus.PENDING:
        if current not in _REOPENABLE:
            raise InvalidStatusTransitionError(f"Cannot reopen a session that is {current}")
        s.status = SessionStatus.PENDING.value
        s.cancellation_reason = None
    else:
        raise InvalidStatusTransitionError(
            "pending_feedback is only entered by completing a session before mentor feedback exists"
        )

    await log_audit(
        db, AGGREGATE_TYPE, s.id, "status_change",
        actor=actor, from_status=current, to_status=s.status, remarks=reason,
    )
    await db.commit()
    await db.refresh(s)
    logger.info("Session %s status %s -> %s", s.id, current, s.status)
    return SessionStatusResult(session=await _build_detail(db, s), feedback_required=feedback_required)


async def complete_after_feedback(db: AsyncSession, actor: CurrentUser, s: CounselingSession) -> bool:
    """Second phase of a mentor's completion. Caller commits together with the feedback row."""
    if s.status != SessionStatus.PENDING_FEEDBACK.value:
        return False
    s.status = SessionStatus.COMPLETED.value
    await log_audit(
        db, AGGREGATE_TYPE, s.id, "status_change",
        actor=actor,
        from_status=SessionStatus.PENDING_FEEDBACK.value,
        to_status=s.status,
        remarks="Completed on mentor feedback submission",
    )
    return True

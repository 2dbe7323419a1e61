"""
Mentor and mentee feedback.

Submitting mentor feedback for a session parked in pending_feedback completes it in the same
transaction, so a mentor's completion is applied exactly once and only after the feedback exists.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.audit.service import log_audit
from app.api.v1.sessions.service import (
    complete_after_feedback,
    get_session_for_read,
    get_session_for_write,
    has_mentor_feedback,
    is_participant,
)
from app.auth.rbac import Permission, ensure_permission, has_any_permission, has_permission
from app.auth.schemas import CurrentUser
from app.core.enums import SessionStatus
from app.core.exceptions import PermissionDeniedError, ServiceError, ValidationFailedError
from app.core.models import MentorFeedback, SessionFeedback

from .schemas import (
    AverageRatings,
    MentorFeedbackCreate,
    MentorFeedbackResponse,
    MentorFeedbackResult,
    SessionFeedbackCreate,
    SessionFeedbackResponse,
)

logger = logging.getLogger(__name__)


def _duplicate(message: str) -> ServiceError:
    return ServiceError(message, status.HTTP_409_CONFLICT)


def _require_identity(actor: CurrentUser) -> str:
    if not actor.external_id:
        raise ValidationFailedError("Your account is not linked to a directory record")
    return actor.external_id


def _feedback_scope(actor: CurrentUser, mentor_external_id: Optional[str]) -> Optional[str]:
    """Mentor filter to apply: admins and report viewers may pick any mentor, mentors only themselves."""
    if has_any_permission(actor.role, Permission.MANAGE_ALL_SESSIONS, Permission.VIEW_REPORTS):
        return mentor_external_id
    if has_permission(actor.role, Permission.MANAGE_MY_SESSIONS):
        return _require_identity(actor)
    raise PermissionDeniedError()


async def submit_mentor_feedback(
    db: AsyncSession,
    actor: CurrentUser,
    payload: MentorFeedbackCreate,
) -> MentorFeedbackResult:
    ensure_permission(actor, Permission.MANAGE_MY_SESSIONS, Permission.MANAGE_ALL_SESSIONS)
    mentor_id = _require_identity(actor)
    s = await get_session_for_write(db, actor, payload.session_id)
    if s.status == SessionStatus.CANCELLED.value:
        raise ValidationFailedError("Feedback cannot be submitted for a cancelled session")
    if await has_mentor_feedback(db, s.id, mentor_id):
        raise _duplicate("Mentor feedback has already been submitted for this session")

    feedback = MentorFeedback(
        mentor_external_id=mentor_id,
        **payload.model_dump(),
    )
    db.add(feedback)
    try:
        await db.flush()
        completed = await complete_after_feedback(db, actor, s)
        await log_audit(db, "mentor_feedback", feedback.id, "create", actor=actor, new_values={"session_id": str(s.id)})
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise _duplicate("Mentor feedback has already been submitted for this session")
    await db.refresh(feedback)
    await db.refresh(s)
    if completed:
        logger.info("Session %s completed on feedback from mentor %s", s.id, mentor_id)
    return MentorFeedbackResult(
        feedback=MentorFeedbackResponse.model_validate(feedback),
        session_status=s.status,
        session_completed=completed,
    )


async def list_mentor_feedback(
    db: AsyncSession,
    actor: CurrentUser,
    session_id: Optional[UUID] = None,
    mentor_external_id: Optional[str] = None,
) -> List[MentorFeedbackResponse]:
    mentor_filter = _feedback_scope(actor, mentor_external_id)
    stmt = select(MentorFeedback).order_by(MentorFeedback.created_at.desc())
    if session_id:
        stmt = stmt.where(MentorFeedback.session_id == session_id)
    if mentor_filter:
        stmt = stmt.where(MentorFeedback.mentor_external_id == mentor_filter)
    result = await db.execute(stmt)
    return [MentorFeedbackResponse.model_validate(f) for f in result.scalars().all()]


async def get_average_ratings(
    db: AsyncSession,
    actor: CurrentUser,
    mentor_external_id: Optional[str] = None,
) -> AverageRatings:
    mentor_filter = _feedback_scope(actor, mentor_external_id)
    stmt = select(
        func.count(MentorFeedback.id),
        func.avg(MentorFeedback.session_quality_rating),
        func.avg(MentorFeedback.student_engagement_rating),
        func.avg(MentorFeedback.goals_achieved_rating),
    )
    if mentor_filter:
        stmt = stmt.where(MentorFeedback.mentor_external_id == mentor_filter)
    count, quality, engagement, goals = (await db.execute(stmt)).one()

    def _round(value) -> Optional[float]:
        return round(float(value), 2) if value is not None else None

    return AverageRatings(
        feedback_count=count or 0,
        session_quality=_round(quality),
        student_engagement=_round(engagement),
        goals_achieved=_round(goals),
    )


async def submit_session_feedback(
    db: AsyncSession,
    actor: CurrentUser,
    payload: SessionFeedbackCreate,
) -> SessionFeedbackResponse:
    ensure_permission(actor, Permission.VIEW_MY_SESSIONS)
    mentee_id = _require_identity(actor)
    if not await is_participant(db, payload.session_id, mentee_id):
        raise PermissionDeniedError("Only session participants can give feedback")
    existing = await db.execute(
        select(SessionFeedback.id).where(
            SessionFeedback.session_id == payload.session_id,
            SessionFeedback.mentee_external_id == mentee_id,
        )
    )
    if existing.scalar_one_or_none():
        raise _duplicate("You have already given feedback for this session")
    feedback = SessionFeedback(mentee_external_id=mentee_id, **payload.model_dump())
    db.add(feedback)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise _duplicate("You have already given feedback for this session")
    await db.refresh(feedback)
    return SessionFeedbackResponse.model_validate(feedback)


async def list_session_feedback(
    db: AsyncSession,
    actor: CurrentUser,
    session_id: UUID,
) -> List[SessionFeedbackResponse]:
    await get_session_for_read(db, actor, session_id)
    stmt = select(SessionFeedback).where(SessionFeedback.session_id == session_id)
    if not has_any_permission(actor.role, Permission.MANAGE_ALL_SESSIONS, Permission.MANAGE_MY_SESSIONS):
        stmt = stmt.where(SessionFeedback.mentee_external_id == actor.external_id)
    result = await db.execute(stmt.order_by(SessionFeedback.created_at))
    return [SessionFeedbackResponse.model_validate(f) for f in result.scalars().all()]

"""Meeting logs for a session. A log is complete once focus_of_meeting is filled in;
completing a session requires at least one complete log."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.audit.service import log_audit
from app.api.v1.sessions.service import get_session_for_read, get_session_for_write
from app.auth.schemas import CurrentUser
from app.core.enums import SessionStatus
from app.core.exceptions import NotFoundError, ValidationFailedError
from app.core.models import MeetingLog

from .schemas import MeetingLogCreate, MeetingLogResponse, MeetingLogUpdate, is_log_complete, to_meeting_log_response

logger = logging.getLogger(__name__)

# Sessions whose completion was gated on a complete meeting log
_COMPLETION_GATED = {SessionStatus.COMPLETED.value, SessionStatus.PENDING_FEEDBACK.value}

FOCUS_REQUIRED = (
    "This session is completed and must keep a meeting log with a focus. "
    "Reopen the session before clearing the focus of the meeting."
)


def _normalize(values: Dict[str, Any]) -> Dict[str, Any]:
    when = values.get("next_session_datetime")
    if isinstance(when, datetime) and when.tzinfo is not None:
        values["next_session_datetime"] = when.astimezone(timezone.utc).replace(tzinfo=None)
    return values


async def _has_other_complete_log(db: AsyncSession, session_id: UUID, log_id: UUID) -> bool:
    result = await db.execute(
        select(MeetingLog.focus_of_meeting).where(MeetingLog.session_id == session_id, MeetingLog.id != log_id)
    )
    return any(is_log_complete(focus) for focus in result.scalars().all())


async def create_meeting_log(
    db: AsyncSession,
    actor: CurrentUser,
    payload: MeetingLogCreate,
) -> MeetingLogResponse:
    s = await get_session_for_write(db, actor, payload.session_id)
    values = _normalize(payload.model_dump(exclude={"session_id"}))
    log = MeetingLog(session_id=s.id, created_by=actor.external_id, **values)
    db.add(log)
    await db.flush()
    await log_audit(db, "meeting_log", log.id, "create", actor=actor, new_values=jsonable_encoder(values))
    await db.commit()
    await db.refresh(log)
    logger.info("Recorded meeting log %s for session %s", log.id, s.id)
    return to_meeting_log_response(log)


async def update_meeting_log(
    db: AsyncSession,
    actor: CurrentUser,
    log_id: UUID,
    payload: MeetingLogUpdate,
) -> MeetingLogResponse:
    log = await db.get(MeetingLog, log_id)
    if not log:
        raise NotFoundError("Meeting log not found")
    s = await get_session_for_write(db, actor, log.session_id)
    changes = _normalize(payload.model_dump(exclude_unset=True))
    if (
        "focus_of_meeting" in changes
        and not is_log_complete(changes["focus_of_meeting"])
        and s.status in _COMPLETION_GATED
        and not await _has_other_complete_log(db, s.id, log.id)
    ):
        logger.warning("Blanking focus of meeting log %s rejected: session %s is %s", log.id, s.id, s.status)
        raise ValidationFailedError(FOCUS_REQUIRED)
    old_values = {k: getattr(log, k) for k in changes}
    for field, value in changes.items():
        setattr(log, field, value)
    await log_audit(
        db, "meeting_log", log.id, "update",
        actor=actor,
        old_values=jsonable_encoder(old_values),
        new_values=jsonable_encoder(changes),
    )
    await db.commit()
    await db.refresh(log)
    return to_meeting_log_response(log)


async def list_meeting_logs(db: AsyncSession, actor: CurrentUser, session_id: UUID) -> List[MeetingLogResponse]:
    await get_session_for_read(db, actor, session_id)
    result = await db.execute(
        select(MeetingLog).where(MeetingLog.session_id == session_id).order_by(MeetingLog.created_at)
    )
    return [to_meeting_log_response(log) for log in result.scalars().all()]

"""Notification writers used by the dispatcher, and the per-user inbox."""

from datetime import date, datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import CurrentUser
from app.core.enums import NotificationType, RecipientType, UserRole
from app.core.exceptions import NotFoundError
from app.core.models import Notification

from .schemas import NotificationInbox, NotificationResponse


def _format_date(value: str) -> str:
    try:
        return date.fromisoformat(value[:10]).strftime("%d %b %Y")
    except ValueError:
        return value


def recipient_type_for(user: CurrentUser) -> str:
    if user.role == UserRole.MENTEE:
        return RecipientType.STUDENT.value
    if user.role == UserRole.MENTOR:
        return RecipientType.MENTOR.value
    return RecipientType.ADMIN.value


async def send_session_invitations(
    db: AsyncSession,
    *,
    session_id: str,
    session_name: str,
    session_date: str,
    mentor_name: str,
    student_ids: Iterable[str],
    session_time: Optional[str] = None,
    location: Optional[str] = None,
) -> int:
    """One session_invitation notification per student. Caller must commit."""
    count = 0
    when = _format_date(session_date)
    at = f" at {session_time}" if session_time else ""
    for student_id in student_ids:
        db.add(
            Notification(
                user_external_id=student_id,
                user_type=RecipientType.STUDENT.value,
                title="New Counseling Session Invitation",
                message=f'You have been invited to "{session_name}" scheduled for {when}{at} by {mentor_name}.',
                type=NotificationType.SESSION_INVITATION.value,
                data={
                    "sessionId": session_id,
                    "sessionName": session_name,
                    "sessionDate": session_date,
                    "sessionTime": session_time,
                    "location": location,
                    "mentorName": mentor_name,
                },
                action_required=True,
                action_url=f"/session/{session_id}",
            )
        )
        count += 1
    return count


async def send_session_cancellations(
    db: AsyncSession,
    *,
    session_id: str,
    session_name: str,
    session_date: str,
    student_ids: Iterable[str],
    reason: Optional[str] = None,
) -> int:
    count = 0
    suffix = f" Reason: {reason}" if reason else ""
    for student_id in student_ids:
        db.add(
            Notification(
                user_external_id=student_id,
                user_type=RecipientType.STUDENT.value,
                title="Counseling Session Cancelled",
                message=f'"{session_name}" scheduled for {_format_date(session_date)} has been cancelled.{suffix}',
                type=NotificationType.SESSION_CANCELLATION.value,
                data={"sessionId": session_id, "sessionName": session_name, "reason": reason},
                action_required=False,
                action_url=f"/session/{session_id}",
            )
        )
        count += 1
    return count


async def get_inbox(db: AsyncSession, user: CurrentUser, limit: int = 50) -> NotificationInbox:
    if not user.external_id:
        return NotificationInbox(notifications=[], unread_count=0)
    user_type = recipient_type_for(user)
    result = await db.execute(
        select(Notification)
        .where(
            Notification.user_external_id == user.external_id,
            Notification.user_type == user_type,
        )
        .order_by(Notification.created_at.desc())
        .limit(limit)
    )
    rows: List[Notification] = list(result.scalars().all())
    unread = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_external_id == user.external_id,
            Notification.user_type == user_type,
            Notification.read_at.is_(None),
        )
    )
    return NotificationInbox(
        notifications=[NotificationResponse.model_validate(n) for n in rows],
        unread_count=unread.scalar_one(),
    )


async def mark_as_read(db: AsyncSession, user: CurrentUser, notification_id: UUID) -> NotificationResponse:
    n = await db.get(Notification, notification_id)
    if not n or n.user_external_id != user.external_id:
        raise NotFoundError("Notification not found")
    if n.read_at is None:
        n.read_at = datetime.utcnow()
        await db.commit()
        await db.refresh(n)
    return NotificationResponse.model_validate(n)


async def mark_all_as_read(db: AsyncSession, user: CurrentUser) -> int:
    if not user.external_id:
        return 0
    result = await db.execute(
        update(Notification)
        .where(
            Notification.user_external_id == user.external_id,
            Notification.user_type == recipient_type_for(user),
            Notification.read_at.is_(None),
        )
        .values(read_at=datetime.utcnow())
    )
    await db.commit()
    return result.rowcount or 0

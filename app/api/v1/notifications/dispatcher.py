"""
Outbox consumer. Turns pending domain events into notifications.

Each event is delivered in its own transaction. A failing handler rolls back only that
delivery, bumps attempts and records last_error; the event stays pending for the next run.
"""

import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import OutboxEvent
from app.core.models.outbox_event import EVENT_PARTICIPANTS_ADDED, EVENT_SESSION_CANCELLED

from .schemas import DispatchReport
from .service import send_session_cancellations, send_session_invitations

logger = logging.getLogger(__name__)

Handler = Callable[[AsyncSession, Dict[str, Any]], Awaitable[Any]]


async def _on_participants_added(db: AsyncSession, payload: Dict[str, Any]) -> None:
    await send_session_invitations(
        db,
        session_id=payload["sessionId"],
        session_name=payload["sessionName"],
        session_date=payload["sessionDate"],
        session_time=payload.get("sessionTime"),
        location=payload.get("location"),
        mentor_name=payload.get("mentorName") or "your mentor",
        student_ids=payload.get("studentIds") or [],
    )


async def _on_session_cancelled(db: AsyncSession, payload: Dict[str, Any]) -> None:
    await send_session_cancellations(
        db,
        session_id=payload["sessionId"],
        session_name=payload["sessionName"],
        session_date=payload["sessionDate"],
        student_ids=payload.get("studentIds") or [],
        reason=payload.get("reason"),
    )


DEFAULT_HANDLERS: Dict[str, Handler] = {
    EVENT_PARTICIPANTS_ADDED: _on_participants_added,
    EVENT_SESSION_CANCELLED: _on_session_cancelled,
}


class NotificationDispatcher:
    def __init__(self, handlers: Optional[Dict[str, Handler]] = None, max_attempts: int = 5) -> None:
        self.handlers = dict(DEFAULT_HANDLERS if handlers is None else handlers)
        self.max_attempts = max_attempts

    async def dispatch_pending(self, db: AsyncSession, limit: int = 100) -> DispatchReport:
        result = await db.execute(
            select(OutboxEvent.id)
            .where(
                OutboxEvent.dispatched_at.is_(None),
                OutboxEvent.attempts < self.max_attempts,
            )
            .order_by(OutboxEvent.created_at)
            .limit(limit)
        )
        event_ids = list(result.scalars().all())
        report = DispatchReport()
        for event_id in event_ids:
            if await self._dispatch_one(db, event_id):
                report.dispatched += 1
            else:
                report.failed += 1
        return report

    async def _dispatch_one(self, db: AsyncSession, event_id) -> bool:
        event = await db.get(OutboxEvent, event_id)
        handler = self.handlers.get(event.event_type)
        try:
            if handler is None:
                raise LookupError(f"No handler for event type {event.event_type}")
            await handler(db, event.payload)
            event.attempts += 1
            event.dispatched_at = datetime.utcnow()
            event.last_error = None
            await db.commit()
            logger.info("Dispatched %s event %s", event.event_type, event_id)
            return True
        except Exception as exc:
            await db.rollback()
            logger.exception("Dispatch of outbox event %s failed", event_id)
            event = await db.get(OutboxEvent, event_id)
            event.attempts += 1
            event.last_error = str(exc)[:2000]
            await db.commit()
            return False


dispatcher = NotificationDispatcher()


async def dispatch_after_commit(db: AsyncSession) -> DispatchReport:
    """Called by routers once the mutation has committed. Never raises."""
    try:
        return await dispatcher.dispatch_pending(db)
    except Exception:
        logger.exception("Notification dispatch run failed")
        await db.rollback()
        return DispatchReport()

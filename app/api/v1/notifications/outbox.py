"""Domain event outbox. Services append here inside their own transaction; delivery is the
dispatcher's job, so a delivery failure can never undo the mutation that raised the event."""

from typing import Any, Dict
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import OutboxEvent


async def append_event(
    db: AsyncSession,
    event_type: str,
    aggregate_type: str,
    aggregate_id: UUID,
    payload: Dict[str, Any],
) -> OutboxEvent:
    """Add one event to the outbox. Caller must commit."""
    event = OutboxEvent(
        event_type=event_type,
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        payload=jsonable_encoder(payload),
        attempts=0,
    )
    db.add(event)
    return event

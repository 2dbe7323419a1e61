"""
Audit logging for assignment, session, goal and setting state changes. Call on every state change.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import CurrentUser
from app.core.models import AuditLog

from .schemas import AuditLogResponse


async def log_audit(
    db: AsyncSession,
    entity_type: str,
    entity_id: UUID,
    action: str,
    *,
    actor: Optional[CurrentUser] = None,
    from_status: Optional[str] = None,
    to_status: Optional[str] = None,
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
    remarks: Optional[str] = None,
) -> None:
    """Append one audit log entry. Caller must commit."""
    entry = AuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        from_status=from_status,
        to_status=to_status,
        old_values=old_values,
        new_values=new_values,
        performed_by=actor.id if actor else None,
        performed_by_role=actor.role.value if actor else None,
        remarks=remarks,
        timestamp=datetime.utcnow(),
    )
    db.add(entry)


async def list_audit_logs(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    limit: int = 100,
) -> List[AuditLogResponse]:
    stmt = select(AuditLog)
    if entity_type:
        stmt = stmt.where(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        stmt = stmt.where(AuditLog.entity_id == entity_id)
    stmt = stmt.order_by(AuditLog.timestamp.desc()).limit(limit)
    result = await db.execute(stmt)
    return [AuditLogResponse.model_validate(r) for r in result.scalars().all()]

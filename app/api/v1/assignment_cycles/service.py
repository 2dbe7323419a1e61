"""Assignment cycles: one active cycle at a time; locking a cycle freezes its assignments.
Cycle management is super-admin only."""

import logging
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.audit.service import log_audit
from app.auth.rbac import Permission, ensure_permission
from app.auth.schemas import CurrentUser
from app.core.enums import AssignmentStatus, CycleStatus, HistoryAction
from app.core.exceptions import NotFoundError, ServiceError
from app.core.models import Assignment, AssignmentCycle, AssignmentHistory

from .schemas import AssignmentCycleCreate, AssignmentCycleResponse, AssignmentCycleStats

logger = logging.getLogger(__name__)


def _to_response(c: AssignmentCycle) -> AssignmentCycleResponse:
    return AssignmentCycleResponse(
        id=c.id,
        academic_year=c.academic_year,
        cycle_name=c.cycle_name,
        start_date=c.start_date,
        end_date=c.end_date,
        status=c.status,
        is_locked=c.is_locked,
        locked_at=c.locked_at,
        locked_by=c.locked_by,
        metadata=c.cycle_metadata,
        created_by=c.created_by,
        created_at=c.created_at,
        updated_at=c.updated_at,
    )


def _validate_dates(start_date: date, end_date: date) -> None:
    if end_date <= start_date:
        raise ServiceError("end_date must be after start_date", status.HTTP_400_BAD_REQUEST)


async def _get_cycle_or_404(db: AsyncSession, cycle_id: UUID) -> AssignmentCycle:
    cycle = await db.get(AssignmentCycle, cycle_id)
    if not cycle:
        raise NotFoundError("Assignment cycle not found")
    return cycle


async def _archive_active_cycles(db: AsyncSession, except_id: Optional[UUID] = None) -> None:
    stmt = update(AssignmentCycle).where(AssignmentCycle.status == CycleStatus.ACTIVE.value)
    if except_id is not None:
        stmt = stmt.where(AssignmentCycle.id != except_id)
    await db.execute(stmt.values(status=CycleStatus.ARCHIVED.value))


async def create_cycle(
    db: AsyncSession,
    actor: CurrentUser,
    payload: AssignmentCycleCreate,
) -> AssignmentCycleResponse:
    ensure_permission(actor, Permission.FULL_SYSTEM_ACCESS)
    _validate_dates(payload.start_date, payload.end_date)
    academic_year = payload.academic_year.strip()
    existing = await db.execute(
        select(AssignmentCycle.id).where(AssignmentCycle.academic_year == academic_year)
    )
    if existing.scalar_one_or_none():
        raise ServiceError(
            f"Assignment cycle for {academic_year} already exists.",
            status.HTTP_409_CONFLICT,
        )
    if payload.status == CycleStatus.ACTIVE.value:
        await _archive_active_cycles(db)
    cycle = AssignmentCycle(
        academic_year=academic_year,
        cycle_name=payload.cycle_name.strip(),
        start_date=payload.start_date,
        end_date=payload.end_date,
        status=payload.status,
        is_locked=False,
        created_by=actor.id,
    )
    db.add(cycle)
    try:
        await db.flush()
        await log_audit(db, "assignment_cycle", cycle.id, "create", actor=actor, to_status=cycle.status)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            f"Assignment cycle for {academic_year} already exists.",
            status.HTTP_409_CONFLICT,
        )
    await db.refresh(cycle)
    logger.info("Created assignment cycle %s (%s)", cycle.id, cycle.academic_year)
    return _to_response(cycle)


async def list_cycles(db: AsyncSession) -> List[AssignmentCycleResponse]:
    result = await db.execute(select(AssignmentCycle).order_by(AssignmentCycle.created_at.desc()))
    return [_to_response(c) for c in result.scalars().all()]


async def get_cycle(db: AsyncSession, cycle_id: UUID) -> AssignmentCycleResponse:
    return _to_response(await _get_cycle_or_404(db, cycle_id))


async def get_active_cycle(db: AsyncSession) -> Optional[AssignmentCycle]:
    """The cycle new assignments attach to: status=active and not locked. None if there is none."""
    result = await db.execute(
        select(AssignmentCycle)
        .where(
            AssignmentCycle.status == CycleStatus.ACTIVE.value,
            AssignmentCycle.is_locked.is_(False),
        )
        .order_by(AssignmentCycle.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_active_cycle_response(db: AsyncSession) -> Optional[AssignmentCycleResponse]:
    cycle = await get_active_cycle(db)
    return _to_response(cycle) if cycle else None


async def activate_cycle(
    db: AsyncSession,
    actor: CurrentUser,
    cycle_id: UUID,
) -> AssignmentCycleResponse:
    """Make this the active cycle. Any other active cycle is archived."""
    ensure_permission(actor, Permission.FULL_SYSTEM_ACCESS)
    cycle = await _get_cycle_or_404(db, cycle_id)
    if cycle.is_locked:
        raise ServiceError("A locked assignment cycle cannot be activated", status.HTTP_400_BAD_REQUEST)
    previous = cycle.status
    await _archive_active_cycles(db, except_id=cycle.id)
    cycle.status = CycleStatus.ACTIVE.value
    await log_audit(
        db, "assignment_cycle", cycle.id, "activate",
        actor=actor, from_status=previous, to_status=cycle.status,
    )
    await db.commit()
    await db.refresh(cycle)
    logger.info("Activated assignment cycle %s", cycle.id)
    return _to_response(cycle)


async def lock_cycle(
    db: AsyncSession,
    actor: CurrentUser,
    cycle_id: UUID,
    reason: Optional[str] = None,
) -> AssignmentCycleResponse:
    """Lock the cycle and every assignment in it for the academic year."""
    ensure_permission(actor, Permission.FULL_SYSTEM_ACCESS)
    cycle = await _get_cycle_or_404(db, cycle_id)
    if cycle.is_locked:
        raise ServiceError("Assignment cycle is already locked", status.HTTP_400_BAD_REQUEST)
    now = datetime.utcnow()
    previous = cycle.status
    cycle.is_locked = True
    cycle.locked_at = now
    cycle.locked_by = actor.id
    cycle.status = CycleStatus.LOCKED.value
    cycle.cycle_metadata = {**(cycle.cycle_metadata or {}), "lock_reason": reason}

    result = await db.execute(select(Assignment).where(Assignment.cycle_id == cycle.id))
    for a in result.scalars().all():
        a.is_locked = True
        a.locked_at = now
        db.add(
            AssignmentHistory(
                assignment_id=a.id,
                cycle_id=cycle.id,
                action_type=HistoryAction.LOCKED.value,
                changed_by=actor.id,
                change_reason=reason,
            )
        )
    await log_audit(
        db, "assignment_cycle", cycle.id, "lock",
        actor=actor, from_status=previous, to_status=cycle.status, remarks=reason,
    )
    await db.commit()
    await db.refresh(cycle)
    logger.info("Locked assignment cycle %s", cycle.id)
    return _to_response(cycle)


async def get_cycle_stats(db: AsyncSession, cycle_id: UUID) -> AssignmentCycleStats:
    await _get_cycle_or_404(db, cycle_id)
    result = await db.execute(
        select(Assignment.status, func.count(Assignment.id))
        .where(Assignment.cycle_id == cycle_id)
        .group_by(Assignment.status)
    )
    counts = {row[0]: row[1] for row in result.all()}
    return AssignmentCycleStats(
        cycle_id=cycle_id,
        total_assignments=sum(counts.values()),
        active_assignments=counts.get(AssignmentStatus.ACTIVE.value, 0),
        completed_assignments=counts.get(AssignmentStatus.COMPLETED.value, 0),
    )

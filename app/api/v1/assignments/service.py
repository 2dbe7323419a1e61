"""Assignment lifecycle: validated create inside the active cycle, partial update, end.
Assignments are ended (status=completed, effective_to set), never deleted.
Every mutation returns the re-queried list visible to the caller."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import status
from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.assignment_cycles.service import get_active_cycle
from app.api.v1.audit.service import log_audit
from app.api.v1.directory.sources import DirectorySource
from app.api.v1.system_settings.service import ServiceConfig
from app.auth.rbac import Permission, ensure_permission, has_permission
from app.auth.schemas import CurrentUser
from app.core.enums import AssignmentRole, AssignmentStatus, HistoryAction
from app.core.exceptions import (
    InvalidStatusTransitionError,
    NoActiveCycleError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    ValidationFailedError,
)
from app.core.models import Assignment, AssignmentHistory

from .schemas import (
    AssignmentCreate,
    AssignmentHistoryResponse,
    AssignmentMutationResult,
    AssignmentResponse,
    AssignmentStats,
    AssignmentUpdate,
)
from .validator import DUPLICATE_PRIMARY, has_active_primary, validate_assignment_constraints

logger = logging.getLogger(__name__)

_TERMINAL_STATUSES = {AssignmentStatus.COMPLETED.value, AssignmentStatus.CANCELLED.value}

# Allowed status moves; completed and cancelled are terminal.
_STATUS_TRANSITIONS = {
    AssignmentStatus.PENDING.value: {
        AssignmentStatus.ACTIVE.value,
        AssignmentStatus.COMPLETED.value,
        AssignmentStatus.CANCELLED.value,
    },
    AssignmentStatus.ACTIVE.value: {
        AssignmentStatus.COMPLETED.value,
        AssignmentStatus.CANCELLED.value,
    },
    AssignmentStatus.COMPLETED.value: set(),
    AssignmentStatus.CANCELLED.value: set(),
}


def _to_response(a: Assignment) -> AssignmentResponse:
    return AssignmentResponse.model_validate(a)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _snapshot(a: Assignment) -> Dict[str, Any]:
    return jsonable_encoder(
        {
            "role": a.role,
            "status": a.status,
            "effective_to": a.effective_to,
            "notes": a.notes,
            "assignment_metadata": a.assignment_metadata,
        }
    )


UPSTREAM_READ_ONLY = "Assignments are managed by the upstream system and are read-only here"


def _ensure_app_managed(config: ServiceConfig) -> None:
    if config.assignments_read_only:
        logger.warning("Assignment change rejected: assignment mode is upstream")
        raise PermissionDeniedError(UPSTREAM_READ_ONLY)


def _can_manage_all(actor: CurrentUser) -> bool:
    return has_permission(actor.role, Permission.MANAGE_ASSIGNMENTS)


def _ensure_can_modify(actor: CurrentUser, a: Assignment) -> None:
    if _can_manage_all(actor):
        return
    if has_permission(actor.role, Permission.VIEW_MY_MENTEES) and a.mentor_external_id == actor.external_id:
        return
    raise PermissionDeniedError("You can only modify your own mentee assignments")


def _is_visible(actor: CurrentUser, a: Assignment) -> bool:
    if _can_manage_all(actor) or has_permission(actor.role, Permission.VIEW_COHORT_OVERVIEW):
        return True
    if has_permission(actor.role, Permission.VIEW_MY_MENTEES):
        return a.mentor_external_id == actor.external_id
    if has_permission(actor.role, Permission.VIEW_MY_ASSIGNMENTS):
        return a.student_external_id == actor.external_id
    return False


async def _get_assignment_or_404(db: AsyncSession, assignment_id: UUID) -> Assignment:
    a = await db.get(Assignment, assignment_id)
    if not a:
        raise NotFoundError("Assignment not found")
    return a


def _add_history(
    db: AsyncSession,
    a: Assignment,
    action: HistoryAction,
    actor: CurrentUser,
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
    reason: Optional[str] = None,
) -> None:
    db.add(
        AssignmentHistory(
            assignment_id=a.id,
            cycle_id=a.cycle_id,
            action_type=action.value,
            changed_by=actor.id,
            old_values=old_values,
            new_values=new_values,
            change_reason=reason,
        )
    )


# ----- Queries -----


async def list_assignments(
    db: AsyncSession,
    actor: CurrentUser,
    mentor_external_id: Optional[str] = None,
    student_external_id: Optional[str] = None,
    cycle_id: Optional[UUID] = None,
    status_filter: Optional[str] = None,
) -> List[AssignmentResponse]:
    """Assignments visible to the actor: all for assignment managers, own pairings for mentors and mentees."""
    stmt = select(Assignment)
    if not _can_manage_all(actor) and not has_permission(actor.role, Permission.VIEW_COHORT_OVERVIEW):
        if has_permission(actor.role, Permission.VIEW_MY_MENTEES):
            stmt = stmt.where(Assignment.mentor_external_id == actor.external_id)
        elif has_permission(actor.role, Permission.VIEW_MY_ASSIGNMENTS):
            stmt = stmt.where(Assignment.student_external_id == actor.external_id)
        else:
            return []
    if mentor_external_id is not None:
        stmt = stmt.where(Assignment.mentor_external_id == mentor_external_id)
    if student_external_id is not None:
        stmt = stmt.where(Assignment.student_external_id == student_external_id)
    if cycle_id is not None:
        stmt = stmt.where(Assignment.cycle_id == cycle_id)
    if status_filter:
        stmt = stmt.where(Assignment.status == status_filter)
    stmt = stmt.order_by(Assignment.created_at.desc())
    result = await db.execute(stmt)
    return [_to_response(a) for a in result.scalars().all()]


async def get_assignment(db: AsyncSession, actor: CurrentUser, assignment_id: UUID) -> AssignmentResponse:
    a = await _get_assignment_or_404(db, assignment_id)
    if not _is_visible(actor, a):
        raise NotFoundError("Assignment not found")
    return _to_response(a)


async def get_assignments_by_mentor(
    db: AsyncSession, actor: CurrentUser, mentor_external_id: str
) -> List[AssignmentResponse]:
    return await list_assignments(db, actor, mentor_external_id=mentor_external_id)


async def get_assignments_by_student(
    db: AsyncSession, actor: CurrentUser, student_external_id: str
) -> List[AssignmentResponse]:
    return await list_assignments(db, actor, student_external_id=student_external_id)


def compute_assignment_stats(assignments: List[AssignmentResponse]) -> AssignmentStats:
    """needs_attention: active pairings not flagged as fresh (carried over / legacy, due for review)."""
    return AssignmentStats(
        total=len(assignments),
        active=sum(1 for a in assignments if a.status == AssignmentStatus.ACTIVE.value),
        pending=sum(1 for a in assignments if a.status == AssignmentStatus.PENDING.value),
        completed=sum(1 for a in assignments if a.status == AssignmentStatus.COMPLETED.value),
        needs_attention=sum(
            1
            for a in assignments
            if a.status == AssignmentStatus.ACTIVE.value
            and not (a.assignment_metadata or {}).get("is_fresh_assignment")
        ),
    )


async def get_assignment_stats(
    db: AsyncSession,
    actor: CurrentUser,
    cycle_id: Optional[UUID] = None,
) -> AssignmentStats:
    return compute_assignment_stats(await list_assignments(db, actor, cycle_id=cycle_id))


async def list_assignment_history(
    db: AsyncSession,
    actor: CurrentUser,
    assignment_id: Optional[UUID] = None,
) -> List[AssignmentHistoryResponse]:
    ensure_permission(actor, Permission.FULL_SYSTEM_ACCESS)
    stmt = select(AssignmentHistory)
    if assignment_id is not None:
        stmt = stmt.where(AssignmentHistory.assignment_id == assignment_id)
    stmt = stmt.order_by(AssignmentHistory.changed_at.desc())
    result = await db.execute(stmt)
    return [AssignmentHistoryResponse.model_validate(h) for h in result.scalars().all()]


async def _mutation_result(db: AsyncSession, actor: CurrentUser, a: Assignment) -> AssignmentMutationResult:
    return AssignmentMutationResult(
        success=True,
        data=_to_response(a),
        assignments=await list_assignments(db, actor),
    )


# ----- Mutations -----


async def create_assignment(
    db: AsyncSession,
    actor: CurrentUser,
    config: ServiceConfig,
    directory: DirectorySource,
    payload: AssignmentCreate,
) -> AssignmentMutationResult:
    """
    Create an assignment in payload.cycle_id, or in the active unlocked cycle when omitted.
    Raises NoActiveCycleError when there is no such cycle and ValidationFailedError with the
    validator's message unchanged when a constraint fails. Nothing is written on failure.
    """
    _ensure_app_managed(config)
    if not _can_manage_all(actor):
        if not has_permission(actor.role, Permission.VIEW_MY_MENTEES) or payload.mentor_external_id != actor.external_id:
            raise PermissionDeniedError("Mentors can only create assignments for themselves")

    cycle_id = payload.cycle_id
    if cycle_id is None:
        cycle = await get_active_cycle(db)
        if cycle is None:
            logger.warning("Assignment creation rejected: no active cycle")
            raise NoActiveCycleError()
        cycle_id = cycle.id

    validation = await validate_assignment_constraints(
        db,
        directory,
        config,
        payload.mentor_external_id,
        payload.student_external_id,
        cycle_id,
        role=payload.role,
    )
    if not validation.is_valid:
        logger.warning(
            "Assignment %s -> %s rejected: %s",
            payload.mentor_external_id,
            payload.student_external_id,
            validation.error_message,
        )
        raise ValidationFailedError(validation.error_message or "Assignment validation failed.")

    metadata: Dict[str, Any] = dict(payload.assignment_metadata or {})
    metadata.setdefault("created_via", "admin_assignment" if _can_manage_all(actor) else "mentor_choice")
    metadata.setdefault("is_fresh_assignment", True)
    metadata.setdefault("institution", validation.student_institution)
    metadata.setdefault("department", validation.student_department)
    metadata.setdefault("program", validation.student_program)
    if validation.student_semester_year is not None:
        metadata.setdefault("semesterYear", validation.student_semester_year)
    if payload.supervisor_id:
        metadata["supervisor_id"] = payload.supervisor_id

    a = Assignment(
        cycle_id=cycle_id,
        mentor_external_id=payload.mentor_external_id,
        student_external_id=payload.student_external_id,
        role=payload.role.value,
        status=AssignmentStatus.ACTIVE.value,
        effective_from=datetime.utcnow(),
        effective_to=None,
        notes=payload.notes,
        institution=validation.student_institution,
        department=validation.student_department,
        program=validation.student_program,
        assignment_metadata=metadata,
        created_by=actor.id,
    )
    db.add(a)
    await db.flush()
    _add_history(db, a, HistoryAction.CREATED, actor, new_values=_snapshot(a))
    await log_audit(db, "assignment", a.id, "create", actor=actor, to_status=a.status, new_values=_snapshot(a))
    await db.commit()
    await db.refresh(a)
    logger.info("Created assignment %s (%s -> %s)", a.id, a.mentor_external_id, a.student_external_id)
    return await _mutation_result(db, actor, a)


async def update_assignment(
    db: AsyncSession,
    actor: CurrentUser,
    config: ServiceConfig,
    assignment_id: UUID,
    payload: AssignmentUpdate,
) -> AssignmentMutationResult:
    """
    Persist field updates. Cycle constraints are not re-run, but a student never ends up with
    two active primaries in one cycle, terminal statuses stay terminal and effective_to never
    precedes effective_from.
    """
    _ensure_app_managed(config)
    a = await _get_assignment_or_404(db, assignment_id)
    _ensure_can_modify(actor, a)
    if a.is_locked:
        raise ServiceError("Assignment is locked with its cycle and cannot be modified", status.HTTP_400_BAD_REQUEST)

    changes = payload.model_dump(exclude_unset=True)
    old = _snapshot(a)

    new_status = a.status
    if changes.get("status") is not None:
        new_status = AssignmentStatus(changes["status"]).value
        if new_status != a.status and new_status not in _STATUS_TRANSITIONS.get(a.status, set()):
            raise InvalidStatusTransitionError(
                f"Cannot change assignment status from {a.status} to {new_status}; create a new assignment instead"
            )
    new_role = AssignmentRole(changes["role"]).value if changes.get("role") is not None else a.role
    becomes_active_primary = (
        new_role == AssignmentRole.PRIMARY.value
        and new_status == AssignmentStatus.ACTIVE.value
        and (new_role != a.role or new_status != a.status)
    )
    if becomes_active_primary and await has_active_primary(db, a.student_external_id, a.cycle_id, exclude_id=a.id):
        logger.warning("Update of assignment %s rejected: student already has an active primary", a.id)
        raise ValidationFailedError(DUPLICATE_PRIMARY)

    if new_status != a.status:
        a.status = new_status
        if new_status in _TERMINAL_STATUSES and a.effective_to is None:
            a.effective_to = datetime.utcnow()
    if "effective_to" in changes:
        effective_to = changes["effective_to"]
        if effective_to is not None:
            effective_to = _naive_utc(effective_to)
            if effective_to < _naive_utc(a.effective_from):
                raise ValidationFailedError("effective_to must be on or after effective_from")
        a.effective_to = effective_to
    a.role = new_role
    if "notes" in changes:
        a.notes = changes["notes"]
    if "assignment_metadata" in changes:
        a.assignment_metadata = {**(a.assignment_metadata or {}), **(changes["assignment_metadata"] or {})}
    a.updated_at = datetime.utcnow()

    new = _snapshot(a)
    _add_history(db, a, HistoryAction.UPDATED, actor, old_values=old, new_values=new)
    await log_audit(
        db, "assignment", a.id, "update",
        actor=actor, from_status=old["status"], to_status=a.status, old_values=old, new_values=new,
    )
    await db.commit()
    await db.refresh(a)
    return await _mutation_result(db, actor, a)


async def end_assignment(
    db: AsyncSession,
    actor: CurrentUser,
    config: ServiceConfig,
    assignment_id: UUID,
    reason: Optional[str] = None,
) -> AssignmentMutationResult:
    """status=completed, effective_to=now, reason appended to notes."""
    _ensure_app_managed(config)
    a = await _get_assignment_or_404(db, assignment_id)
    _ensure_can_modify(actor, a)
    if a.is_locked:
        raise ServiceError("Assignment is locked with its cycle and cannot be modified", status.HTTP_400_BAD_REQUEST)
    if a.status in _TERMINAL_STATUSES:
        raise InvalidStatusTransitionError(f"Assignment is already {a.status}")

    old = _snapshot(a)
    now = datetime.utcnow()
    a.status = AssignmentStatus.COMPLETED.value
    a.effective_to = now
    if reason:
        a.notes = f"{a.notes}\n{reason}" if a.notes else reason
    a.updated_at = now

    _add_history(db, a, HistoryAction.ENDED, actor, old_values=old, new_values=_snapshot(a), reason=reason)
    await log_audit(
        db, "assignment", a.id, "end",
        actor=actor, from_status=old["status"], to_status=a.status, remarks=reason,
    )
    await db.commit()
    await db.refresh(a)
    logger.info("Ended assignment %s", a.id)
    return await _mutation_result(db, actor, a)

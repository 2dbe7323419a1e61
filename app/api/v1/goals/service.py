"""SMART goals. Version 1 is written on create; every content edit bumps version_number and
appends a snapshot of the new version to goal_versions. Status changes do not create a version."""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.audit.service import log_audit
from app.api.v1.sessions.service import get_session_for_write
from app.auth.rbac import Permission, ensure_permission, has_permission
from app.auth.schemas import CurrentUser
from app.core.enums import AssignmentStatus, GoalStatus
from app.core.exceptions import NotFoundError, PermissionDeniedError, ValidationFailedError
from app.core.models import Assignment, CounselingSession, Goal, GoalVersion

from .schemas import GoalCreate, GoalResponse, GoalUpdate, GoalVersionResponse

logger = logging.getLogger(__name__)

_VERSIONED_FIELDS = (
    "area_of_focus",
    "smart_goal_text",
    "knowledge_what",
    "knowledge_how",
    "skills_what",
    "skills_how",
    "action_plan",
    "target_date",
)


def _snapshot(goal: Goal, changed_by: Optional[str]) -> GoalVersion:
    return GoalVersion(
        goal_id=goal.id,
        version_number=goal.version_number,
        status=goal.status,
        changed_by=changed_by,
        **{field: getattr(goal, field) for field in _VERSIONED_FIELDS},
    )


async def _mentors_student(db: AsyncSession, mentor_external_id: Optional[str], student_external_id: str) -> bool:
    if not mentor_external_id:
        return False
    result = await db.execute(
        select(Assignment.id)
        .where(
            Assignment.mentor_external_id == mentor_external_id,
            Assignment.student_external_id == student_external_id,
            Assignment.status.in_([AssignmentStatus.ACTIVE.value, AssignmentStatus.PENDING.value]),
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def _get_goal_or_404(db: AsyncSession, goal_id: UUID) -> Goal:
    goal = await db.get(Goal, goal_id)
    if not goal:
        raise NotFoundError("Goal not found")
    return goal


async def _ensure_can_edit(db: AsyncSession, actor: CurrentUser, goal: Goal) -> None:
    if has_permission(actor.role, Permission.MANAGE_ALL_GOALS):
        return
    if has_permission(actor.role, Permission.MANAGE_MY_GOALS):
        if actor.external_id and goal.created_by == actor.external_id:
            return
        if await _mentors_student(db, actor.external_id, goal.student_external_id):
            return
    raise PermissionDeniedError("You can only manage goals for your own mentees")


async def create_goal(db: AsyncSession, actor: CurrentUser, payload: GoalCreate) -> GoalResponse:
    ensure_permission(actor, Permission.MANAGE_ALL_GOALS, Permission.MANAGE_MY_GOALS)
    if payload.session_id is not None:
        await get_session_for_write(db, actor, payload.session_id)
    elif not has_permission(actor.role, Permission.MANAGE_ALL_GOALS) and not await _mentors_student(
        db, actor.external_id, payload.student_external_id
    ):
        raise PermissionDeniedError("You can only set goals for your own mentees")

    goal = Goal(
        **payload.model_dump(),
        status=GoalStatus.PROPOSED.value,
        version_number=1,
        created_by=actor.external_id,
    )
    db.add(goal)
    await db.flush()
    db.add(_snapshot(goal, actor.external_id))
    await log_audit(db, "goal", goal.id, "create", actor=actor, to_status=goal.status)
    await db.commit()
    await db.refresh(goal)
    logger.info("Created goal %s for student %s", goal.id, goal.student_external_id)
    return GoalResponse.model_validate(goal)


async def update_goal(db: AsyncSession, actor: CurrentUser, goal_id: UUID, payload: GoalUpdate) -> GoalResponse:
    goal = await _get_goal_or_404(db, goal_id)
    await _ensure_can_edit(db, actor, goal)
    changes = {
        k: v
        for k, v in payload.model_dump(exclude_unset=True).items()
        if v is not None or k not in ("area_of_focus", "smart_goal_text")
    }
    changes = {k: v for k, v in changes.items() if getattr(goal, k) != v}
    if not changes:
        return GoalResponse.model_validate(goal)
    if goal.status == GoalStatus.ARCHIVED.value:
        raise ValidationFailedError("Archived goals cannot be edited")

    old_values = {k: getattr(goal, k) for k in changes}
    for field, value in changes.items():
        setattr(goal, field, value)
    goal.version_number += 1
    db.add(_snapshot(goal, actor.external_id))
    await log_audit(
        db, "goal", goal.id, "update",
        actor=actor,
        old_values=jsonable_encoder(old_values),
        new_values=jsonable_encoder({**changes, "version_number": goal.version_number}),
    )
    await db.commit()
    await db.refresh(goal)
    return GoalResponse.model_validate(goal)


async def change_goal_status(db: AsyncSession, actor: CurrentUser, goal_id: UUID, new_status: str) -> GoalResponse:
    goal = await _get_goal_or_404(db, goal_id)
    await _ensure_can_edit(db, actor, goal)
    previous = goal.status
    goal.status = GoalStatus(new_status).value
    await log_audit(db, "goal", goal.id, "status_change", actor=actor, from_status=previous, to_status=goal.status)
    await db.commit()
    await db.refresh(goal)
    return GoalResponse.model_validate(goal)


async def list_goals(
    db: AsyncSession,
    actor: CurrentUser,
    session_id: Optional[UUID] = None,
    student_external_id: Optional[str] = None,
    status_filter: Optional[str] = None,
) -> List[GoalResponse]:
    stmt = select(Goal)
    if not has_permission(actor.role, Permission.MANAGE_ALL_GOALS):
        if has_permission(actor.role, Permission.MANAGE_MY_GOALS):
            own_sessions = select(CounselingSession.id).where(CounselingSession.created_by == actor.external_id)
            my_students = select(Assignment.student_external_id).where(
                Assignment.mentor_external_id == actor.external_id
            )
            stmt = stmt.where(
                or_(
                    Goal.created_by == actor.external_id,
                    Goal.session_id.in_(own_sessions),
                    Goal.student_external_id.in_(my_students),
                )
            )
        elif has_permission(actor.role, Permission.VIEW_MY_GOALS):
            stmt = stmt.where(Goal.student_external_id == actor.external_id)
        else:
            return []
    if session_id:
        stmt = stmt.where(Goal.session_id == session_id)
    if student_external_id:
        stmt = stmt.where(Goal.student_external_id == student_external_id)
    if status_filter:
        stmt = stmt.where(Goal.status == status_filter)
    result = await db.execute(stmt.order_by(Goal.created_at.desc()))
    return [GoalResponse.model_validate(g) for g in result.scalars().all()]


async def list_goal_versions(db: AsyncSession, actor: CurrentUser, goal_id: UUID) -> List[GoalVersionResponse]:
    goal = await _get_goal_or_404(db, goal_id)
    if not (has_permission(actor.role, Permission.VIEW_MY_GOALS) and goal.student_external_id == actor.external_id):
        await _ensure_can_edit(db, actor, goal)
    result = await db.execute(
        select(GoalVersion).where(GoalVersion.goal_id == goal.id).order_by(GoalVersion.version_number)
    )
    return [GoalVersionResponse.model_validate(v) for v in result.scalars().all()]

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import Permission, require_permission
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import GoalCreate, GoalResponse, GoalStatusUpdate, GoalUpdate, GoalVersionResponse
from . import service

router = APIRouter(prefix="/api/v1/goals", tags=["goals"])


@router.post("", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
async def create_goal(
    payload: GoalCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(
        require_permission(Permission.MANAGE_ALL_GOALS, Permission.MANAGE_MY_GOALS)
    ),
):
    try:
        return await service.create_goal(db, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[GoalResponse])
async def list_goals(
    session_id: Optional[UUID] = Query(None),
    student_external_id: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return await service.list_goals(
        db,
        current_user,
        session_id=session_id,
        student_external_id=student_external_id,
        status_filter=status_filter,
    )


@router.patch("/{goal_id}", response_model=GoalResponse)
async def update_goal(
    goal_id: UUID,
    payload: GoalUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.update_goal(db, current_user, goal_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{goal_id}/status", response_model=GoalResponse)
async def change_goal_status(
    goal_id: UUID,
    payload: GoalStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.change_goal_status(db, current_user, goal_id, payload.status)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{goal_id}/versions", response_model=List[GoalVersionResponse])
async def list_goal_versions(
    goal_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.list_goal_versions(db, current_user, goal_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import Permission, require_permission
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    AssignmentCycleCreate,
    AssignmentCycleLock,
    AssignmentCycleResponse,
    AssignmentCycleStats,
)
from . import service

router = APIRouter(prefix="/api/v1/assignment-cycles", tags=["assignment-cycles"])


@router.post("", response_model=AssignmentCycleResponse, status_code=status.HTTP_201_CREATED)
async def create_cycle(
    payload: AssignmentCycleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(Permission.FULL_SYSTEM_ACCESS)),
):
    try:
        return await service.create_cycle(db, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[AssignmentCycleResponse],
    dependencies=[Depends(require_permission(Permission.MANAGE_ASSIGNMENTS, Permission.VIEW_MY_MENTEES))],
)
async def list_cycles(db: AsyncSession = Depends(get_db)):
    return await service.list_cycles(db)


@router.get(
    "/active",
    response_model=Optional[AssignmentCycleResponse],
    dependencies=[Depends(require_permission(Permission.MANAGE_ASSIGNMENTS, Permission.VIEW_MY_MENTEES))],
)
async def get_active_cycle(db: AsyncSession = Depends(get_db)):
    return await service.get_active_cycle_response(db)


@router.get(
    "/{cycle_id}",
    response_model=AssignmentCycleResponse,
    dependencies=[Depends(require_permission(Permission.MANAGE_ASSIGNMENTS, Permission.VIEW_MY_MENTEES))],
)
async def get_cycle(cycle_id: UUID, db: AsyncSession = Depends(get_db)):
    try:
        return await service.get_cycle(db, cycle_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{cycle_id}/stats",
    response_model=AssignmentCycleStats,
    dependencies=[Depends(require_permission(Permission.MANAGE_ASSIGNMENTS))],
)
async def get_cycle_stats(cycle_id: UUID, db: AsyncSession = Depends(get_db)):
    try:
        return await service.get_cycle_stats(db, cycle_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{cycle_id}/activate", response_model=AssignmentCycleResponse)
async def activate_cycle(
    cycle_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(Permission.FULL_SYSTEM_ACCESS)),
):
    try:
        return await service.activate_cycle(db, current_user, cycle_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{cycle_id}/lock", response_model=AssignmentCycleResponse)
async def lock_cycle(
    cycle_id: UUID,
    payload: AssignmentCycleLock,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(Permission.FULL_SYSTEM_ACCESS)),
):
    try:
        return await service.lock_cycle(db, current_user, cycle_id, payload.reason)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

"""Mentor-student assignment API.
RBAC: manage_assignments full access; mentors manage their own mentees; mentees read their own."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.directory.router import get_directory
from app.api.v1.directory.sources import DirectorySource
from app.api.v1.system_settings.service import ServiceConfig, get_service_config
from app.auth.dependencies import get_current_user
from app.auth.rbac import Permission, require_permission
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError, ValidationFailedError
from app.db.session import get_db

from .schemas import (
    AssignmentCreate,
    AssignmentEnd,
    AssignmentHistoryResponse,
    AssignmentMutationResult,
    AssignmentResponse,
    AssignmentStats,
    AssignmentUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/assignments", tags=["assignments"])


def _raise_http(e: ServiceError) -> None:
    if isinstance(e, ValidationFailedError):
        # The validator's message goes back unchanged so the UI can show it as-is.
        raise HTTPException(
            status_code=e.status_code,
            detail={"success": False, "error": e.message, "code": e.code},
        )
    raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "",
    response_model=AssignmentMutationResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission(Permission.MANAGE_ASSIGNMENTS, Permission.VIEW_MY_MENTEES))],
)
async def create_assignment(
    payload: AssignmentCreate,
    db: AsyncSession = Depends(get_db),
    config: ServiceConfig = Depends(get_service_config),
    directory: DirectorySource = Depends(get_directory),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.create_assignment(db, current_user, config, directory, payload)
    except ServiceError as e:
        _raise_http(e)


@router.get("", response_model=List[AssignmentResponse])
async def list_assignments(
    mentor_external_id: Optional[str] = Query(None),
    student_external_id: Optional[str] = Query(None),
    cycle_id: Optional[UUID] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return await service.list_assignments(
        db,
        current_user,
        mentor_external_id=mentor_external_id,
        student_external_id=student_external_id,
        cycle_id=cycle_id,
        status_filter=status_filter,
    )


@router.get("/stats", response_model=AssignmentStats)
async def get_assignment_stats(
    cycle_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return await service.get_assignment_stats(db, current_user, cycle_id=cycle_id)


@router.get(
    "/history",
    response_model=List[AssignmentHistoryResponse],
    dependencies=[Depends(require_permission(Permission.FULL_SYSTEM_ACCESS))],
)
async def list_assignment_history(
    assignment_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return await service.list_assignment_history(db, current_user, assignment_id=assignment_id)


@router.get("/{assignment_id}", response_model=AssignmentResponse)
async def get_assignment(
    assignment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.get_assignment(db, current_user, assignment_id)
    except ServiceError as e:
        _raise_http(e)


@router.patch(
    "/{assignment_id}",
    response_model=AssignmentMutationResult,
    dependencies=[Depends(require_permission(Permission.MANAGE_ASSIGNMENTS, Permission.VIEW_MY_MENTEES))],
)
async def update_assignment(
    assignment_id: UUID,
    payload: AssignmentUpdate,
    db: AsyncSession = Depends(get_db),
    config: ServiceConfig = Depends(get_service_config),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.update_assignment(db, current_user, config, assignment_id, payload)
    except ServiceError as e:
        _raise_http(e)


@router.post(
    "/{assignment_id}/end",
    response_model=AssignmentMutationResult,
    dependencies=[Depends(require_permission(Permission.MANAGE_ASSIGNMENTS, Permission.VIEW_MY_MENTEES))],
)
async def end_assignment(
    assignment_id: UUID,
    payload: AssignmentEnd,
    db: AsyncSession = Depends(get_db),
    config: ServiceConfig = Depends(get_service_config),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.end_assignment(db, current_user, config, assignment_id, payload.reason)
    except ServiceError as e:
        _raise_http(e)

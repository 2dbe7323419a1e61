"""Counseling sessions: scheduling, roster edits and status transitions.
Pending outbox events (invitations, cancellations) are dispatched after each committed mutation."""

from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.notifications.dispatcher import dispatch_after_commit
from app.auth.dependencies import get_current_user
from app.auth.rbac import Permission, require_permission
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    ParticipantAdd,
    ParticipantResponse,
    ParticipantStatusUpdate,
    SessionCreate,
    SessionDetail,
    SessionResponse,
    SessionStatusChange,
    SessionStatusResult,
    SessionUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])


@router.post("", response_model=SessionDetail, status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: SessionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(
        require_permission(Permission.CREATE_COUNSELING, Permission.MANAGE_ALL_SESSIONS)
    ),
):
    try:
        result = await service.create_session(db, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    await dispatch_after_commit(db)
    return result


@router.get("", response_model=List[SessionResponse])
async def list_sessions(
    scope: Optional[Literal["upcoming", "completed"]] = Query(None),
    student_external_id: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return await service.list_sessions(
        db,
        current_user,
        scope=scope,
        student_external_id=student_external_id,
        status_filter=status_filter,
    )


@router.get("/{session_id}", response_model=SessionDetail)
async def get_session(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.get_session_detail(db, current_user, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{session_id}", response_model=SessionDetail)
async def update_session(
    session_id: UUID,
    payload: SessionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        result = await service.update_session(db, current_user, session_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    await dispatch_after_commit(db)
    return result


@router.post("/{session_id}/status", response_model=SessionStatusResult)
async def change_status(
    session_id: UUID,
    payload: SessionStatusChange,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        result = await service.change_status(db, current_user, session_id, payload.status, payload.reason)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    await dispatch_after_commit(db)
    return result


@router.post("/{session_id}/participants", response_model=SessionDetail, status_code=status.HTTP_201_CREATED)
async def add_participant(
    session_id: UUID,
    payload: ParticipantAdd,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        result = await service.add_participant(db, current_user, session_id, payload.student_external_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    await dispatch_after_commit(db)
    return result


@router.delete("/{session_id}/participants/{student_external_id}", response_model=SessionDetail)
async def remove_participant(
    session_id: UUID,
    student_external_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.remove_participant(db, current_user, session_id, student_external_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{session_id}/participants/{student_external_id}", response_model=ParticipantResponse)
async def update_participant_status(
    session_id: UUID,
    student_external_id: str,
    payload: ParticipantStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.update_participant_status(
            db, current_user, session_id, student_external_id, payload.participation_status
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

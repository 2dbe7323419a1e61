from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import Permission, require_permission
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    AverageRatings,
    MentorFeedbackCreate,
    MentorFeedbackResponse,
    MentorFeedbackResult,
    SessionFeedbackCreate,
    SessionFeedbackResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/feedback", tags=["feedback"])


@router.post("/mentor", response_model=MentorFeedbackResult, status_code=status.HTTP_201_CREATED)
async def submit_mentor_feedback(
    payload: MentorFeedbackCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(
        require_permission(Permission.MANAGE_MY_SESSIONS, Permission.MANAGE_ALL_SESSIONS)
    ),
):
    try:
        return await service.submit_mentor_feedback(db, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/mentor", response_model=List[MentorFeedbackResponse])
async def list_mentor_feedback(
    session_id: Optional[UUID] = Query(None),
    mentor_external_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.list_mentor_feedback(
            db, current_user, session_id=session_id, mentor_external_id=mentor_external_id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/mentor/averages", response_model=AverageRatings)
async def get_average_ratings(
    mentor_external_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.get_average_ratings(db, current_user, mentor_external_id=mentor_external_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/session", response_model=SessionFeedbackResponse, status_code=status.HTTP_201_CREATED)
async def submit_session_feedback(
    payload: SessionFeedbackCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(Permission.VIEW_MY_SESSIONS)),
):
    try:
        return await service.submit_session_feedback(db, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/session", response_model=List[SessionFeedbackResponse])
async def list_session_feedback(
    session_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.list_session_feedback(db, current_user, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

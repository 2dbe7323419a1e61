from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import MeetingLogCreate, MeetingLogResponse, MeetingLogUpdate
from . import service

router = APIRouter(prefix="/api/v1/meeting-logs", tags=["meeting-logs"])


@router.post("", response_model=MeetingLogResponse, status_code=status.HTTP_201_CREATED)
async def create_meeting_log(
    payload: MeetingLogCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.create_meeting_log(db, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[MeetingLogResponse])
async def list_meeting_logs(
    session_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.list_meeting_logs(db, current_user, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{log_id}", response_model=MeetingLogResponse)
async def update_meeting_log(
    log_id: UUID,
    payload: MeetingLogUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.update_meeting_log(db, current_user, log_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

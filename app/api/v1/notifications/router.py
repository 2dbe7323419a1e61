from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import Permission, require_permission
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .dispatcher import dispatcher
from .schemas import DispatchReport, NotificationInbox, NotificationResponse
from . import service

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=NotificationInbox)
async def get_inbox(
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return await service.get_inbox(db, current_user, limit=limit)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_as_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.mark_as_read(db, current_user, notification_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/read-all")
async def mark_all_as_read(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    updated = await service.mark_all_as_read(db, current_user)
    return {"updated": updated}


@router.post(
    "/dispatch",
    response_model=DispatchReport,
    dependencies=[Depends(require_permission(Permission.FULL_SYSTEM_ACCESS))],
)
async def dispatch_pending(db: AsyncSession = Depends(get_db)):
    """Re-run delivery of outbox events still pending (e.g. after a failed dispatch)."""
    return await dispatcher.dispatch_pending(db)

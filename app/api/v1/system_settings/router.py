from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import Permission, require_permission
from app.auth.schemas import CurrentUser
from app.db.session import get_db

from .schemas import AssignmentModeResponse, AssignmentModeUpdate, DemoModeResponse, DemoModeUpdate
from . import service

router = APIRouter(prefix="/api/v1/system-settings", tags=["system-settings"])


@router.get("/demo-mode", response_model=DemoModeResponse)
async def get_demo_mode(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(Permission.MANAGE_SETTINGS, Permission.MANAGE_SYSTEM_SETTINGS)),
):
    return await service.get_demo_mode(db)


@router.put("/demo-mode", response_model=DemoModeResponse)
async def set_demo_mode(
    payload: DemoModeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(Permission.MANAGE_SYSTEM_SETTINGS)),
):
    return await service.set_demo_mode(db, current_user, payload.enabled)


@router.get("/assignment-mode", response_model=AssignmentModeResponse)
async def get_assignment_mode(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Readable by every signed-in user so clients can show the read-only banner."""
    return await service.get_assignment_mode(db)


@router.put("/assignment-mode", response_model=AssignmentModeResponse)
async def set_assignment_mode(
    payload: AssignmentModeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_permission(Permission.MANAGE_SYSTEM_SETTINGS)),
):
    return await service.set_assignment_mode(db, current_user, payload.mode)

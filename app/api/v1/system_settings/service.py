"""Persisted system settings and the per-request ServiceConfig built from them."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.audit.service import log_audit
from app.auth.schemas import CurrentUser
from app.core.config import settings
from app.core.enums import AssignmentMode
from app.core.models import SystemSetting
from app.core.models.system_setting import ASSIGNMENT_MODE_KEY, DEMO_MODE_KEY
from app.db.session import get_db

from .schemas import AssignmentModeResponse, DemoModeResponse

logger = logging.getLogger(__name__)

_MODE_DESCRIPTIONS = {
    AssignmentMode.APP: "Assignments are managed in this application",
    AssignmentMode.UPSTREAM: "Assignments are read-only from upstream system",
}


@dataclass(frozen=True)
class ServiceConfig:
    """Explicit configuration handed to services instead of global flags."""

    demo_mode: bool = False
    max_mentor_caseload: Optional[int] = None
    assignment_mode: AssignmentMode = AssignmentMode.APP

    @property
    def assignments_read_only(self) -> bool:
        return self.assignment_mode == AssignmentMode.UPSTREAM


async def _get_setting(db: AsyncSession, key: str) -> Optional[SystemSetting]:
    result = await db.execute(select(SystemSetting).where(SystemSetting.key == key))
    return result.scalar_one_or_none()


async def _put_setting(
    db: AsyncSession,
    actor: CurrentUser,
    key: str,
    value: Any,
    old_value: Any,
) -> SystemSetting:
    """Upsert one setting row with an audit entry, then commit."""
    row = await _get_setting(db, key)
    if row is None:
        row = SystemSetting(key=key, value=value, updated_by=actor.id)
        db.add(row)
        await db.flush()
    else:
        row.value = value
        row.updated_by = actor.id
    await log_audit(
        db,
        "system_setting",
        row.id,
        "update",
        actor=actor,
        old_values={key: old_value},
        new_values={key: value},
    )
    await db.commit()
    await db.refresh(row)
    return row


async def get_demo_mode(db: AsyncSession) -> DemoModeResponse:
    row = await _get_setting(db, DEMO_MODE_KEY)
    if row is None:
        return DemoModeResponse(enabled=settings.demo_mode)
    return DemoModeResponse(enabled=bool(row.value), updated_at=row.updated_at)


async def set_demo_mode(db: AsyncSession, actor: CurrentUser, enabled: bool) -> DemoModeResponse:
    old = (await get_demo_mode(db)).enabled
    row = await _put_setting(db, actor, DEMO_MODE_KEY, enabled, old)
    logger.info("Demo mode set to %s by %s", enabled, actor.id)
    return DemoModeResponse(enabled=bool(row.value), updated_at=row.updated_at)


def _mode_response(mode: AssignmentMode, row: Optional[SystemSetting] = None) -> AssignmentModeResponse:
    return AssignmentModeResponse(
        mode=mode,
        read_only=mode == AssignmentMode.UPSTREAM,
        description=_MODE_DESCRIPTIONS[mode],
        updated_at=row.updated_at if row is not None else None,
    )


async def get_assignment_mode(db: AsyncSession) -> AssignmentModeResponse:
    row = await _get_setting(db, ASSIGNMENT_MODE_KEY)
    # Stored as {"mode": ..., "description": ...}; unknown values fall back to app-managed.
    stored = row.value.get("mode") if row is not None and isinstance(row.value, dict) else None
    raw = stored or settings.assignment_mode
    try:
        mode = AssignmentMode(raw)
    except ValueError:
        logger.warning("Unknown assignment mode %r; using app", raw)
        mode = AssignmentMode.APP
    return _mode_response(mode, row)


async def set_assignment_mode(
    db: AsyncSession,
    actor: CurrentUser,
    mode: AssignmentMode,
) -> AssignmentModeResponse:
    old = (await get_assignment_mode(db)).mode
    row = await _put_setting(
        db,
        actor,
        ASSIGNMENT_MODE_KEY,
        {"mode": mode.value, "description": _MODE_DESCRIPTIONS[mode]},
        {"mode": old.value},
    )
    logger.info("Assignment mode set to %s by %s", mode.value, actor.id)
    return _mode_response(mode, row)


async def load_service_config(db: AsyncSession) -> ServiceConfig:
    demo = await get_demo_mode(db)
    assignment_mode = await get_assignment_mode(db)
    return ServiceConfig(
        demo_mode=demo.enabled,
        max_mentor_caseload=settings.max_mentor_caseload,
        assignment_mode=assignment_mode.mode,
    )


async def get_service_config(db: AsyncSession = Depends(get_db)) -> ServiceConfig:
    return await load_service_config(db)

from datetime import date, datetime
from typing import Any, Dict, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AssignmentCycleCreate(BaseModel):
    academic_year: str = Field(..., max_length=20, description="e.g. 2025-2026; unique")
    cycle_name: str = Field(..., max_length=100)
    start_date: date
    end_date: date
    status: Literal["draft", "active"] = "draft"


class AssignmentCycleLock(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class AssignmentCycleResponse(BaseModel):
    id: UUID
    academic_year: str
    cycle_name: str
    start_date: date
    end_date: date
    status: str
    is_locked: bool
    locked_at: Optional[datetime] = None
    locked_by: Optional[UUID] = None
    metadata: Optional[Dict[str, Any]] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class AssignmentCycleStats(BaseModel):
    cycle_id: UUID
    total_assignments: int
    active_assignments: int
    completed_assignments: int

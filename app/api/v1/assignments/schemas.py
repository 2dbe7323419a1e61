from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import AssignmentRole, AssignmentStatus


class AssignmentCreate(BaseModel):
    mentor_external_id: str = Field(..., min_length=1, max_length=100)
    student_external_id: str = Field(..., min_length=1, max_length=100)
    role: AssignmentRole = AssignmentRole.PRIMARY
    notes: Optional[str] = Field(None, max_length=4000)
    supervisor_id: Optional[str] = Field(None, max_length=100)
    cycle_id: Optional[UUID] = Field(None, description="Defaults to the active, unlocked cycle")
    assignment_metadata: Optional[Dict[str, Any]] = None


class AssignmentUpdate(BaseModel):
    """Partial update. Not re-validated against cycle constraints."""

    role: Optional[AssignmentRole] = None
    status: Optional[AssignmentStatus] = None
    effective_to: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=4000)
    assignment_metadata: Optional[Dict[str, Any]] = None


class AssignmentEnd(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class AssignmentResponse(BaseModel):
    id: UUID
    cycle_id: Optional[UUID] = None
    mentor_external_id: str
    student_external_id: str
    role: str
    status: str
    effective_from: datetime
    effective_to: Optional[datetime] = None
    notes: Optional[str] = None
    institution: Optional[str] = None
    department: Optional[str] = None
    program: Optional[str] = None
    assignment_metadata: Optional[Dict[str, Any]] = None
    is_locked: bool = False
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AssignmentMutationResult(BaseModel):
    """Result of a mutating call plus the re-queried list the caller can see."""

    success: bool = True
    data: Optional[AssignmentResponse] = None
    error: Optional[str] = None
    assignments: List[AssignmentResponse] = Field(default_factory=list)


class AssignmentStats(BaseModel):
    total: int
    active: int
    pending: int
    completed: int
    needs_attention: int


class AssignmentHistoryResponse(BaseModel):
    id: UUID
    assignment_id: UUID
    cycle_id: Optional[UUID] = None
    action_type: Literal["created", "updated", "ended", "locked"]
    changed_by: Optional[UUID] = None
    changed_at: datetime
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    change_reason: Optional[str] = None

    class Config:
        from_attributes = True


class AssignmentValidation(BaseModel):
    is_valid: bool
    error_message: Optional[str] = None
    student_department: Optional[str] = None
    student_program: Optional[str] = None
    student_institution: Optional[str] = None
    student_semester_year: Optional[int] = None

from datetime import date, datetime, time
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.api.v1.goals.schemas import GoalResponse
from app.api.v1.meeting_logs.schemas import MeetingLogResponse


SessionTypeLiteral = Literal["one_on_one", "group"]
PriorityLiteral = Literal["low", "normal", "high"]
ParticipationLiteral = Literal["invited", "confirmed", "attended", "missed"]


class SessionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    session_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    location: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    session_type: SessionTypeLiteral = "one_on_one"
    priority: PriorityLiteral = "normal"
    students: List[str] = Field(default_factory=list)


class SessionUpdate(BaseModel):
    """Partial edit. When students is given it replaces the roster (diffed against the current one)."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    session_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    location: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    session_type: Optional[SessionTypeLiteral] = None
    priority: Optional[PriorityLiteral] = None
    students: Optional[List[str]] = None


class SessionStatusChange(BaseModel):
    status: Literal["pending", "completed", "cancelled"]
    reason: Optional[str] = None


class ParticipantAdd(BaseModel):
    student_external_id: str = Field(..., min_length=1)


class ParticipantStatusUpdate(BaseModel):
    participation_status: ParticipationLiteral


class ParticipantResponse(BaseModel):
    id: UUID
    session_id: UUID
    student_external_id: str
    participation_status: str
    created_at: datetime

    class Config:
        from_attributes = True


class SessionResponse(BaseModel):
    id: UUID
    name: str
    session_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    location: Optional[str] = None
    description: Optional[str] = None
    session_type: str
    priority: str
    status: str
    cancellation_reason: Optional[str] = None
    created_by: Optional[str] = None
    student_external_ids: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class SessionDetail(SessionResponse):
    participants: List[ParticipantResponse] = Field(default_factory=list)
    meeting_logs: List[MeetingLogResponse] = Field(default_factory=list)
    goals: List[GoalResponse] = Field(default_factory=list)
    meeting_log_complete: bool = False
    has_mentor_feedback: bool = False


class SessionStatusResult(BaseModel):
    session: SessionDetail
    feedback_required: bool = False

from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


GoalStatusLiteral = Literal["proposed", "in_progress", "completed", "archived"]


class GoalCreate(BaseModel):
    session_id: Optional[UUID] = None
    student_external_id: str = Field(..., min_length=1)
    area_of_focus: str = Field(..., min_length=1, max_length=255)
    smart_goal_text: str = Field(..., min_length=1)
    knowledge_what: Optional[str] = None
    knowledge_how: Optional[str] = None
    skills_what: Optional[str] = None
    skills_how: Optional[str] = None
    action_plan: Optional[str] = None
    target_date: Optional[date] = None


class GoalUpdate(BaseModel):
    area_of_focus: Optional[str] = Field(None, min_length=1, max_length=255)
    smart_goal_text: Optional[str] = Field(None, min_length=1)
    knowledge_what: Optional[str] = None
    knowledge_how: Optional[str] = None
    skills_what: Optional[str] = None
    skills_how: Optional[str] = None
    action_plan: Optional[str] = None
    target_date: Optional[date] = None


class GoalStatusUpdate(BaseModel):
    status: GoalStatusLiteral


class GoalResponse(BaseModel):
    id: UUID
    session_id: Optional[UUID] = None
    student_external_id: str
    area_of_focus: str
    smart_goal_text: str
    knowledge_what: Optional[str] = None
    knowledge_how: Optional[str] = None
    skills_what: Optional[str] = None
    skills_how: Optional[str] = None
    action_plan: Optional[str] = None
    target_date: Optional[date] = None
    status: str
    version_number: int
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class GoalVersionResponse(BaseModel):
    id: UUID
    goal_id: UUID
    version_number: int
    area_of_focus: str
    smart_goal_text: str
    knowledge_what: Optional[str] = None
    knowledge_how: Optional[str] = None
    skills_what: Optional[str] = None
    skills_how: Optional[str] = None
    action_plan: Optional[str] = None
    target_date: Optional[date] = None
    status: str
    changed_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

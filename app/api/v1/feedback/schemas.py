from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class MentorFeedbackCreate(BaseModel):
    session_id: UUID
    session_quality_rating: int = Field(..., ge=1, le=5)
    student_engagement_rating: int = Field(..., ge=1, le=5)
    goals_achieved_rating: int = Field(..., ge=1, le=5)
    student_progress_notes: str = Field(..., min_length=1)
    key_outcomes: Optional[str] = None
    challenges_faced: Optional[str] = None
    next_steps_recommended: str = Field(..., min_length=1)
    follow_up_required: bool = False
    follow_up_timeline: Optional[str] = Field(None, max_length=100)
    additional_support_needed: Optional[str] = None
    mentor_reflection: Optional[str] = None
    improvement_areas: Optional[str] = None


class MentorFeedbackResponse(BaseModel):
    id: UUID
    session_id: UUID
    mentor_external_id: str
    session_quality_rating: int
    student_engagement_rating: int
    goals_achieved_rating: int
    student_progress_notes: str
    key_outcomes: Optional[str] = None
    challenges_faced: Optional[str] = None
    next_steps_recommended: str
    follow_up_required: bool
    follow_up_timeline: Optional[str] = None
    additional_support_needed: Optional[str] = None
    mentor_reflection: Optional[str] = None
    improvement_areas: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MentorFeedbackResult(BaseModel):
    feedback: MentorFeedbackResponse
    session_status: str
    session_completed: bool = False


class AverageRatings(BaseModel):
    feedback_count: int = 0
    session_quality: Optional[float] = None
    student_engagement: Optional[float] = None
    goals_achieved: Optional[float] = None


class SessionFeedbackCreate(BaseModel):
    session_id: UUID
    overall_rating: int = Field(..., ge=1, le=5)
    mentor_helpfulness: int = Field(..., ge=1, le=5)
    session_effectiveness: int = Field(..., ge=1, le=5)
    would_recommend: bool = True
    comments: Optional[str] = None
    improvement_suggestions: Optional[str] = None


class SessionFeedbackResponse(BaseModel):
    id: UUID
    session_id: UUID
    mentee_external_id: str
    overall_rating: int
    mentor_helpfulness: int
    session_effectiveness: int
    would_recommend: bool
    comments: Optional[str] = None
    improvement_suggestions: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

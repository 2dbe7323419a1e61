from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class MeetingLogFields(BaseModel):
    focus_of_meeting: Optional[str] = None
    updates_from_previous: Optional[str] = None
    problems_encountered: Optional[str] = None
    resolutions_discussed: Optional[str] = None
    next_steps: Optional[str] = None
    expected_outcome_next: Optional[str] = None
    next_session_datetime: Optional[datetime] = None


class MeetingLogCreate(MeetingLogFields):
    session_id: UUID


class MeetingLogUpdate(MeetingLogFields):
    pass


class MeetingLogResponse(BaseModel):
    id: UUID
    session_id: UUID
    focus_of_meeting: Optional[str] = None
    updates_from_previous: Optional[str] = None
    problems_encountered: Optional[str] = None
    resolutions_discussed: Optional[str] = None
    next_steps: Optional[str] = None
    expected_outcome_next: Optional[str] = None
    next_session_datetime: Optional[datetime] = None
    created_by: Optional[str] = None
    is_complete: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


def is_log_complete(focus_of_meeting: Optional[str]) -> bool:
    return bool(focus_of_meeting and focus_of_meeting.strip())


def to_meeting_log_response(log) -> MeetingLogResponse:
    return MeetingLogResponse(
        id=log.id,
        session_id=log.session_id,
        focus_of_meeting=log.focus_of_meeting,
        updates_from_previous=log.updates_from_previous,
        problems_encountered=log.problems_encountered,
        resolutions_discussed=log.resolutions_discussed,
        next_steps=log.next_steps,
        expected_outcome_next=log.expected_outcome_next,
        next_session_datetime=log.next_session_datetime,
        created_by=log.created_by,
        is_complete=is_log_complete(log.focus_of_meeting),
        created_at=log.created_at,
        updated_at=log.updated_at,
    )

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: UUID
    user_external_id: str
    user_type: str
    title: str
    message: str
    type: str
    data: Optional[Dict[str, Any]] = None
    action_required: bool
    action_url: Optional[str] = None
    read_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationInbox(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int


class DispatchReport(BaseModel):
    dispatched: int = 0
    failed: int = 0

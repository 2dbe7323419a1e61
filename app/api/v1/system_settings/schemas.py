from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.core.enums import AssignmentMode


class DemoModeUpdate(BaseModel):
    enabled: bool = Field(..., description="Serve the demo directory instead of the synced one")


class DemoModeResponse(BaseModel):
    enabled: bool
    updated_at: Optional[datetime] = None


class AssignmentModeUpdate(BaseModel):
    mode: AssignmentMode = Field(..., description="upstream makes assignments read-only in this app")


class AssignmentModeResponse(BaseModel):
    mode: AssignmentMode
    read_only: bool
    description: str
    updated_at: Optional[datetime] = None

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr

from app.core.enums import UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserInfo(BaseModel):
    id: UUID
    name: str
    email: EmailStr
    role: UserRole
    external_id: Optional[str] = None
    department: Optional[str] = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserInfo
    permissions: List[str]
    issued_at: datetime


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated user for RBAC checks."""

    id: UUID
    role: UserRole
    external_id: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def is_mentor(self) -> bool:
        return self.role == UserRole.MENTOR

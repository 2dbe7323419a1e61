from datetime import datetime, timezone

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.rbac import ROLE_PERMISSIONS
from app.auth.schemas import LoginRequest, LoginResponse, UserInfo
from app.auth.security import create_access_token, verify_password
from app.core.enums import UserRole
from app.core.exceptions import ServiceError


async def login_user(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    result = await db.execute(select(User).where(User.email == payload.email))
    user = result.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        raise ServiceError("Invalid email or password", status.HTTP_401_UNAUTHORIZED)
    if user.status != "ACTIVE":
        raise ServiceError("User account is inactive", status.HTTP_403_FORBIDDEN)

    role = UserRole(user.role)
    access_token = create_access_token(
        subject={
            "sub": str(user.id),
            "role": role.value,
            "external_id": user.external_id,
        }
    )
    return LoginResponse(
        access_token=access_token,
        user=UserInfo(
            id=user.id,
            name=user.full_name,
            email=user.email,
            role=role,
            external_id=user.external_id,
            department=user.department,
        ),
        permissions=sorted(p.value for p in ROLE_PERMISSIONS.get(role, frozenset())),
        issued_at=datetime.now(timezone.utc),
    )

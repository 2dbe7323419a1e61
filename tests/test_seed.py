import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.security import verify_password
from app.core.enums import UserRole
from app.db.seed_super_admin import seed_super_admin


@pytest.mark.asyncio
async def test_seed_creates_super_admin(db_session: AsyncSession) -> None:
    user = await seed_super_admin(db_session, "root@college.edu", "InitialPass1")
    assert user.role == "super_admin"
    assert verify_password("InitialPass1", user.password_hash)


@pytest.mark.asyncio
async def test_seed_promotes_existing_user(db_session: AsyncSession, make_user) -> None:
    existing = await make_user(UserRole.ADMIN, external_id="AD9", email="ops@college.edu")
    await seed_super_admin(db_session, "ops@college.edu", "Rotated123")

    users = (await db_session.execute(select(User).where(User.email == "ops@college.edu"))).scalars().all()
    assert len(users) == 1
    assert users[0].id == existing.id
    assert users[0].role == "super_admin"


@pytest.mark.asyncio
async def test_seed_without_credentials_is_a_no_op(db_session: AsyncSession) -> None:
    assert await seed_super_admin(db_session, None, None) is None
    assert (await db_session.execute(select(User))).scalars().all() == []

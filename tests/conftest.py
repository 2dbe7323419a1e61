import os
from datetime import date, timedelta
from typing import AsyncGenerator, Optional

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.auth.models import User
from app.auth.schemas import CurrentUser
from app.auth.security import create_access_token, hash_password
from app.core.enums import UserRole
from app.core.models import AssignmentCycle, DirectoryStaff, DirectoryStudent
from app.db.session import Base, get_db


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "StrongPass123"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory schema per test; the FastAPI get_db dependency is overridden to use it."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def make_user(db_session: AsyncSession):
    async def _make(
        role: UserRole,
        external_id: Optional[str] = None,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
        status: str = "ACTIVE",
    ) -> User:
        key = external_id or role.value
        user = User(
            email=email or f"{key.lower()}@example.com",
            full_name=full_name or f"{role.value.title()} {key}",
            password_hash=hash_password(TEST_PASSWORD),
            role=role.value,
            external_id=external_id,
            status=status,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


def auth_headers(user: User) -> dict:
    token = create_access_token(
        subject={"sub": str(user.id), "role": user.role, "external_id": user.external_id}
    )
    return {"Authorization": f"Bearer {token}"}


def as_current_user(user: User) -> CurrentUser:
    return CurrentUser(
        id=user.id,
        role=UserRole(user.role),
        external_id=user.external_id,
        display_name=user.full_name,
    )


@pytest.fixture()
def headers():
    return auth_headers


@pytest.fixture()
def current_user_of():
    return as_current_user


@pytest.fixture()
def make_cycle(db_session: AsyncSession):
    async def _make(
        academic_year: str = "2025-2026",
        status: str = "active",
        is_locked: bool = False,
    ) -> AssignmentCycle:
        start = date.today() - timedelta(days=30)
        cycle = AssignmentCycle(
            academic_year=academic_year,
            cycle_name=f"Cycle {academic_year}",
            start_date=start,
            end_date=start + timedelta(days=300),
            status=status,
            is_locked=is_locked,
        )
        db_session.add(cycle)
        await db_session.commit()
        await db_session.refresh(cycle)
        return cycle

    return _make


@pytest.fixture()
def make_student(db_session: AsyncSession):
    async def _make(
        external_id: str,
        name: Optional[str] = None,
        department: str = "Computer Science",
        program: str = "B.Tech Computer Science",
        institution: str = "College of Engineering",
        semester_year: int = 3,
    ) -> DirectoryStudent:
        row = DirectoryStudent(
            external_id=external_id,
            name=name or f"Student {external_id}",
            email=f"{external_id.lower()}@students.example.com",
            institution=institution,
            department=department,
            program=program,
            semester_year=semester_year,
        )
        db_session.add(row)
        await db_session.commit()
        return row

    return _make


@pytest.fixture()
def make_staff(db_session: AsyncSession):
    async def _make(
        external_id: str,
        name: Optional[str] = None,
        department: str = "Computer Science",
        institution: str = "College of Engineering",
    ) -> DirectoryStaff:
        row = DirectoryStaff(
            external_id=external_id,
            name=name or f"Staff {external_id}",
            email=f"{external_id.lower()}@staff.example.com",
            institution=institution,
            department=department,
            designation="Assistant Professor",
        )
        db_session.add(row)
        await db_session.commit()
        return row

    return _make


@pytest.fixture()
async def super_admin(make_user) -> User:
    return await make_user(UserRole.SUPER_ADMIN, external_id="SA1", full_name="Super Admin")


@pytest.fixture()
async def admin(make_user) -> User:
    return await make_user(UserRole.ADMIN, external_id="AD1", full_name="Ada Admin")


@pytest.fixture()
async def mentor(make_user, make_staff) -> User:
    await make_staff("M1", name="Dr. Meera Iyer")
    return await make_user(UserRole.MENTOR, external_id="M1", full_name="Dr. Meera Iyer")


@pytest.fixture()
async def mentee(make_user, make_student) -> User:
    await make_student("S1", name="Sam Student")
    return await make_user(UserRole.MENTEE, external_id="S1", full_name="Sam Student")

"""
Bootstrap script: create the tables and the first SUPER_ADMIN user.

Run once with env set:
  SUPER_ADMIN_EMAIL=admin@yourcollege.edu
  SUPER_ADMIN_PASSWORD=YourSecurePassword

  python -m app.db.seed_super_admin
"""
import asyncio
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

import app.core.models  # noqa: F401  registers tables on Base.metadata
from app.auth.models import User
from app.auth.security import hash_password
from app.core.config import settings
from app.core.enums import UserRole
from app.db.session import AsyncSessionLocal, Base, engine

logger = logging.getLogger(__name__)

DEFAULT_SUPER_ADMIN_FULL_NAME = "Super Admin"


async def create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_super_admin(
    db: AsyncSession,
    email: Optional[str],
    password: Optional[str],
    full_name: str = DEFAULT_SUPER_ADMIN_FULL_NAME,
) -> Optional[User]:
    """Create the super admin, or promote and reset an existing user with that email."""
    if not email or not password:
        logger.warning("No super admin email/password; skipping super admin user.")
        return None

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if not user:
        user = User(
            email=email,
            full_name=full_name,
            password_hash=hash_password(password),
            role=UserRole.SUPER_ADMIN.value,
            status="ACTIVE",
        )
        db.add(user)
        logger.info("Created super admin user %s", email)
    else:
        user.role = UserRole.SUPER_ADMIN.value
        user.password_hash = hash_password(password)
        user.status = "ACTIVE"
        logger.info("Updated existing user %s to super admin", email)

    await db.commit()
    await db.refresh(user)
    return user


async def main() -> None:
    logging.basicConfig(level=settings.log_level)
    await create_tables()
    async with AsyncSessionLocal() as db:
        try:
            await seed_super_admin(db, settings.super_admin_email, settings.super_admin_password)
        except Exception:
            await db.rollback()
            logger.exception("Super admin seed failed")
            raise


if __name__ == "__main__":
    asyncio.run(main())

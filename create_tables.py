"""
create_tables.py
----------------
One-shot script to create all database tables and, when
INITIAL_SUPERADMIN_EMAIL and INITIAL_SUPERADMIN_PASSWORD are set, the
first platform operator account.
Use this for quick setup. For production migrations, use Alembic instead.

Usage:
    python create_tables.py
"""

import asyncio

from sqlalchemy import func, select

from bizdesk.core.config import settings
from bizdesk.db.session import Database
from bizdesk.models import SuperAdmin
from bizdesk.schemas.superadmin import SuperAdminCreate
from bizdesk.services.superadmin_service import SuperAdminService


async def bootstrap_superadmin(database: Database) -> bool:
    """Create the initial super-admin unless one with that email exists."""
    email = settings.INITIAL_SUPERADMIN_EMAIL.strip().lower()
    if not email or not settings.INITIAL_SUPERADMIN_PASSWORD:
        return False

    async with database.session_factory() as session:
        existing = await session.execute(
            select(SuperAdmin.id).where(func.lower(SuperAdmin.email) == email)
        )
        if existing.first() is not None:
            return False
        await SuperAdminService.create_admin(
            session,
            SuperAdminCreate(
                name="Platform Administrator",
                email=email,
                password=settings.INITIAL_SUPERADMIN_PASSWORD,
            ),
        )
        await session.commit()
    return True


async def create_all_tables() -> None:
    database = Database(settings.DATABASE_URL, echo=True)
    try:
        await database.create_all()
        print("✅  All tables created successfully.")
        if await bootstrap_superadmin(database):
            print(f"✅  Super-admin {settings.INITIAL_SUPERADMIN_EMAIL} created.")
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(create_all_tables())

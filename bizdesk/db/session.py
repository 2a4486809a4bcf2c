"""
db/session.py
-------------
Async SQLAlchemy engine and session factory.

The engine is owned by an explicitly constructed `Database` object rather
than a module-level singleton. main.create_application() builds one from
settings (or accepts one from the caller, e.g. tests using SQLite) and
stores it on app.state; `get_db` reads it from there.

Design decisions:
  - AsyncEngine with asyncpg driver for non-blocking I/O.
  - pool_size=10, max_overflow=20 → max 30 concurrent DB connections.
  - pool_pre_ping=True: validates connections before checkout to handle
    stale connections after DB restarts or idle timeouts.
  - expire_on_commit=False: avoids lazy-load errors after commit in async
    context (attributes are already loaded, no implicit SELECT needed).
"""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from bizdesk.core.config import settings
from bizdesk.db.base import Base


class Database:
    """Engine + session factory pair handed to the application."""

    def __init__(self, url: str, echo: bool = False, **engine_kwargs) -> None:
        if not url.startswith("sqlite"):
            engine_kwargs.setdefault("pool_size", settings.DB_POOL_SIZE)
            engine_kwargs.setdefault("max_overflow", settings.DB_MAX_OVERFLOW)
            engine_kwargs.setdefault("pool_pre_ping", True)
            engine_kwargs.setdefault("pool_recycle", 3600)
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls) -> "Database":
        return cls(settings.DATABASE_URL, echo=settings.DEBUG)

    async def create_all(self) -> None:
        # Importing the package registers every model on Base.metadata
        import bizdesk.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields a database session.
    The session commits when the request handler finishes and is
    rolled back on exceptions.

    Usage:
        @router.get("/example")
        async def handler(db: Annotated[AsyncSession, Depends(get_db)]):
            ...
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

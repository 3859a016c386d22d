from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from five_bells_shared.config import IN_MEMORY_SQLITE, Settings
from five_bells_shared.infrastructure.db.base import Base


def create_engine(settings: Settings) -> AsyncEngine:
    if settings.DB_URI == IN_MEMORY_SQLITE:
        # One shared connection, otherwise every session sees an empty database
        return create_async_engine(
            settings.DB_URI,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(
        settings.DB_URI,
        pool_pre_ping=True,
        pool_recycle=settings.DB_POOL_RECYCLE,
        echo=False,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


async def sync_schema(engine: AsyncEngine) -> None:
    """Create any missing tables."""
    import five_bells_shared.infrastructure.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

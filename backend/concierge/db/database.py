from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from concierge.db.base import Base
from concierge.utils.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

engine = create_async_engine(settings.database_url, echo=settings.database_echo, pool_pre_ping=True)

async_session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncIterator[AsyncSession]:
    """Request-scoped session. Routes and services decide when to commit."""

    async with async_session_factory() as session:
        yield session


async def create_all() -> None:
    """Create missing tables; local development only, production uses Alembic."""

    import concierge.models  # noqa: F401

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured", extra={"tables": sorted(Base.metadata.tables)})


async def dispose_engine() -> None:
    await engine.dispose()

"""Database engine and session factory for the "database" storage backend.

The engine is created on first use so that the in-memory and file
backends never need a database driver or a reachable server.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from storefront.infrastructure.config import settings

# Base class for models
Base = declarative_base()

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the shared engine, creating it from DATABASE_URL."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
            pool_pre_ping=True,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory the SQL repositories open sessions from."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


async def ping(factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    """Run a trivial query; raises whatever the driver raises."""
    async with (factory or get_session_factory())() as session:
        await session.execute(text("SELECT 1"))


async def dispose_engine() -> None:
    """Close pooled connections, if an engine was ever created."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None

"""
Database engine and session management (SQLAlchemy 2.0, async).
"""

import logging
from typing import AsyncGenerator, Optional

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


_engine_kwargs = {"echo": settings.debug, "pool_pre_ping": True}
if not settings.database_url.startswith("sqlite"):
    _engine_kwargs.update(pool_size=10, max_overflow=20)

engine = create_async_engine(settings.database_url, **_engine_kwargs)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Provides a database session per request.
    Commits on success, rolls back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Tables this service owns; users and books belong to the main backend
OWNED_TABLES = ("device_tokens", "notification_preferences", "inbox_messages")


async def create_tables(target: Optional[AsyncEngine] = None) -> None:
    """Create the messaging tables if missing (development convenience)."""
    # Import models so they register with Base.metadata
    from app.auth import models as _auth_models  # noqa: F401
    from app.content import models as _content_models  # noqa: F401
    from app.inbox import models as _inbox_models  # noqa: F401
    from app.notifications import models as _notification_models  # noqa: F401

    tables = [Base.metadata.tables[name] for name in OWNED_TABLES]
    async with (target or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=tables)


async def close_db() -> None:
    """Dispose of the engine connection pool."""
    await engine.dispose()
    logger.info("[Database] Engine disposed")


# Driver-level failures that mean the store cannot be reached
STORE_ERRORS = (OperationalError, InterfaceError, OSError)

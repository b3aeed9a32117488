"""Database engine and session configuration."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

# Register all models with SQLModel metadata
import gophermart.models  # noqa: F401
from gophermart.config import settings


def engine_options(database_uri: str) -> dict[str, Any]:
    """Pool settings for the given URI (SQLite uses its own single-connection pools)."""
    if database_uri.startswith("sqlite"):
        return {}
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,  # Verify connections before use
        "pool_recycle": 300,  # Recycle connections after 5 minutes
    }


def build_engine(database_uri: str) -> AsyncEngine:
    """Create an async engine with the pool shared by all requests of this process."""
    return create_async_engine(
        database_uri,
        echo=False,  # SQL logging controlled via structlog configuration
        **engine_options(database_uri),
    )


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.database_uri)
async_session_maker = build_session_maker(engine)


async def get_session() -> AsyncGenerator[AsyncSession]:
    """Dependency that provides an async database session."""
    async with async_session_maker() as session:
        yield session


async def create_schema(bind: AsyncEngine | None = None) -> None:
    """Create missing tables. Migrations remain the source of truth in production."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def dispose_engine() -> None:
    """Dispose of the engine and release all connections.

    Should be called during application shutdown.
    """
    await engine.dispose()

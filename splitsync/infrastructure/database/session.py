"""SQLAlchemy engine and session configuration for the on-device store."""

from pathlib import Path

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from splitsync.config import get_settings
from splitsync.infrastructure.database.base import Base


def _get_async_url(url: str) -> str:
    """Convert a sync SQLAlchemy URL to an async one."""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def create_store_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    """Build an async engine. In-memory SQLite shares one connection across sessions."""
    async_url = _get_async_url(url)
    if async_url.startswith("sqlite") and ":memory:" in async_url:
        return create_async_engine(
            async_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    if async_url.startswith("sqlite+aiosqlite:///"):
        db_path = Path(async_url.removeprefix("sqlite+aiosqlite:///"))
        db_path.parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(async_url, echo=echo, future=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_local_store_schema(engine: AsyncEngine) -> None:
    """Create the groups/expenses/users/pending_actions/metadata tables if missing."""
    # Import models so they register on Base.metadata
    from splitsync.infrastructure.database import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def build_default_engine() -> AsyncEngine:
    settings = get_settings()
    return create_store_engine(
        settings.database_url,
        echo=(settings.app_env == "development" and settings.log_level_sql == "DEBUG"),
    )

"""Machine and file mount storage: async SQLite engine and sessions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from mountgate.config import settings
from mountgate.models.base import Base
from mountgate.models.file_mount import FileMount
from mountgate.models.machine import Machine

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


def _on_connect(dbapi_conn, _connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


def database_url(path: str | Path) -> str:
    """aiosqlite URL for a database file, or ``:memory:``."""
    return f"sqlite+aiosqlite:///{path}"


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Engine with the connection PRAGMAs installed."""
    engine = create_async_engine(
        url,
        echo=settings.debug and settings.log_level == "DEBUG",
        **kwargs,
    )
    event.listen(engine.sync_engine, "connect", _on_connect)
    return engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Routes serialize ORM rows after commit.
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


async def create_tables(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _file_engine(path: str) -> AsyncEngine:
    if path == MEMORY:
        return build_engine(database_url(MEMORY))
    db_file = Path(path)
    db_file.parent.mkdir(parents=True, exist_ok=True)
    return build_engine(
        database_url(db_file),
        pool_size=settings.max_db_connections,
        max_overflow=0,
    )


engine = _file_engine(settings.database_path)
async_session = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency — one session per request."""
    async with async_session() as session:
        yield session


async def init_db() -> None:
    """Create missing tables and report what is configured."""
    await create_tables(engine)
    async with async_session() as session:
        machines = await session.scalar(select(func.count(Machine.id)))
        mounts = await session.scalar(select(func.count(FileMount.id)))
    logger.info(
        "Database ready at %s: %d machines, %d file mounts",
        settings.database_path, machines or 0, mounts or 0,
    )

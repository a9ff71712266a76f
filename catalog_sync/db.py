"""Database configuration and async session helpers."""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from catalog_sync.config import load_config


class Base(DeclarativeBase):
    pass


metadata = Base.metadata

_async_engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None
_configured_async_url: str | None = None

_logger = logging.getLogger(__name__)


def _prepare_database_file(url: URL) -> None:
    if not url.drivername.startswith("sqlite"):
        return
    database = url.database
    if not database or database == ":memory:":
        return
    path = Path(database)
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)


def build_async_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        autoflush=False,
        expire_on_commit=False,
    )


def _ensure_async_engine() -> None:
    global _async_engine, AsyncSessionLocal, _configured_async_url

    config = load_config()
    async_url = config.database.url

    if _async_engine is not None and _configured_async_url == async_url:
        return

    _prepare_database_file(make_url(async_url))
    _async_engine = create_async_engine(async_url)
    AsyncSessionLocal = build_async_sessionmaker(_async_engine)
    _configured_async_url = async_url


def get_async_engine() -> AsyncEngine:
    _ensure_async_engine()
    if _async_engine is None:
        raise RuntimeError("Async engine is not initialized.")
    return _async_engine


def get_async_sessionmaker() -> async_sessionmaker[AsyncSession]:
    if AsyncSessionLocal is None:
        _ensure_async_engine()
    if AsyncSessionLocal is None:
        raise RuntimeError("Async session factory is not initialized.")
    return AsyncSessionLocal


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create the catalog tables if they do not exist yet."""

    from catalog_sync import models  # noqa: F401

    target = engine or get_async_engine()
    async with target.begin() as connection:
        await connection.run_sync(Base.metadata.create_all, checkfirst=True)
    _logger.info("Database bootstrap completed", extra={"event": "database.bootstrap"})


async def dispose_engine() -> None:
    global _async_engine, AsyncSessionLocal, _configured_async_url

    engine = _async_engine
    _async_engine = None
    AsyncSessionLocal = None
    _configured_async_url = None
    if engine is not None:
        await engine.dispose()


__all__ = [
    "AsyncSessionLocal",
    "Base",
    "build_async_sessionmaker",
    "dispose_engine",
    "get_async_engine",
    "get_async_sessionmaker",
    "init_db",
    "metadata",
]

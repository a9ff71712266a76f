from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from pathlib import Path
import sys

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from catalog_sync.config import override_runtime_env  # noqa: E402
from catalog_sync.db import build_async_sessionmaker, init_db  # noqa: E402


@pytest.fixture(autouse=True)
def _runtime_environment(tmp_path: Path) -> Iterator[None]:
    override_runtime_env({"DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}"})
    try:
        yield
    finally:
        override_runtime_env(None)


# pytest-asyncio strict mode requires explicit async fixtures.
@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    try:
        await init_db(engine)
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_async_sessionmaker(engine)


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session

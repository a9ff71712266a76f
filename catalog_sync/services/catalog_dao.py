"""Async DAO for the served catalog."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from catalog_sync.errors import PersistenceError
from catalog_sync.models import Episode, Movie, Show


class CatalogDAO:
    """Natural-key lookups and unit-of-work commits for catalog records."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def find_movie(self, imdb_code: str) -> Movie | None:
        """Return the movie with ``imdb_code`` and its full child graph."""

        stmt = (
            select(Movie)
            .where(Movie.imdb_code == imdb_code)
            .options(
                selectinload(Movie.torrents),
                selectinload(Movie.cast),
                selectinload(Movie.genres),
                selectinload(Movie.similars),
            )
        )
        return await self._scalar(stmt, key=imdb_code)

    async def find_show(self, imdb_id: str) -> Show | None:
        """Return the show with ``imdb_id`` and its full child graph."""

        stmt = (
            select(Show)
            .where(Show.imdb_id == imdb_id)
            .options(
                selectinload(Show.episodes).selectinload(Episode.torrents),
                selectinload(Show.rating),
                selectinload(Show.images),
                selectinload(Show.genres),
                selectinload(Show.similars),
            )
        )
        return await self._scalar(stmt, key=imdb_id)

    async def _scalar(self, stmt, *, key: str):
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Lookup failed for '{key}'", meta={"key": key}
            ) from exc
        return result.scalars().first()

    def add(self, record: Movie | Show) -> None:
        self._session.add(record)

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Commit failed: {exc}") from exc

    async def rollback(self) -> None:
        await self._session.rollback()


__all__ = ["CatalogDAO"]

"""Artwork enrichment and media relocation for newly imported records."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterable, Mapping, Sequence
from typing import Any, Protocol

from catalog_sync.errors import EnrichmentError, RelocationError
from catalog_sync.logging import get_logger
from catalog_sync.logging_events import log_event
from catalog_sync.models import Movie, MovieTorrent, Show, ShowImages, Similar
from catalog_sync.utils.asset_paths import asset_path, url_basename
from catalog_sync.utils.concurrency import run_bounded
from catalog_sync.utils.selection import prefer_better_voted, prefer_wider, select_best

logger = get_logger(__name__)

IMAGE_SIZE = "original"

# (attribute, path segments below images/<key>/)
MOVIE_IMAGE_FIELDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("backdrop_image", ("backdrop",)),
    ("poster_image", ("poster",)),
    ("background_image", ("background",)),
    ("small_cover_image", ("cover", "small")),
    ("medium_cover_image", ("cover", "medium")),
    ("large_cover_image", ("cover", "large")),
    ("medium_screenshot_image1", ("screenshot", "medium", "1")),
    ("medium_screenshot_image2", ("screenshot", "medium", "2")),
    ("medium_screenshot_image3", ("screenshot", "medium", "3")),
    ("large_screenshot_image1", ("screenshot", "large", "1")),
    ("large_screenshot_image2", ("screenshot", "large", "2")),
    ("large_screenshot_image3", ("screenshot", "large", "3")),
)
SHOW_IMAGE_FIELDS: tuple[str, ...] = ("banner", "fanart", "poster")


class MetadataProvider(Protocol):
    @property
    def available(self) -> bool: ...

    def image_url(self, size: str, path: str | None) -> str | None: ...

    async def search_tv(self, title: str) -> list[dict[str, Any]]: ...

    async def get_movie(self, imdb_code: str, *, images: bool = True) -> dict[str, Any] | None: ...

    async def get_tv(
        self, tv_id: int, *, images: bool = True, similar: bool = True
    ) -> dict[str, Any] | None: ...

    async def get_tv_external_ids(self, tv_id: int) -> dict[str, Any] | None: ...


class AssetRelocator(Protocol):
    async def relocate(self, destination_path: str, source_url: str) -> str: ...


def _image_candidates(details: Mapping[str, Any] | None, kind: str) -> list[Any]:
    if not isinstance(details, Mapping):
        return []
    images = details.get("images")
    if not isinstance(images, Mapping):
        return []
    candidates = images.get(kind)
    return list(candidates) if isinstance(candidates, list) else []


def _file_path(candidate: Any) -> str | None:
    if isinstance(candidate, Mapping):
        value = candidate.get("file_path")
        if isinstance(value, str) and value.strip():
            return value
    return None


class _AssetsService:
    def __init__(self, provider: MetadataProvider, assets: AssetRelocator) -> None:
        self._provider = provider
        self._assets = assets

    def _best_image_url(
        self,
        details: Mapping[str, Any] | None,
        kind: str,
        prefer,
    ) -> str | None:
        best = select_best(_image_candidates(details, kind), prefer)
        return self._provider.image_url(IMAGE_SIZE, _file_path(best))

    async def _relocate(self, destination: str, source_url: str) -> str:
        return await self._assets.relocate(destination, source_url)

    async def _relocate_attribute(
        self,
        target: Any,
        attribute: str,
        kind: str,
        key: str,
        *segments: str,
    ) -> None:
        source_url = (getattr(target, attribute) or "").strip()
        if not source_url:
            return
        try:
            destination = asset_path(kind, key, *segments, url_basename(source_url))
        except ValueError as exc:
            raise RelocationError(
                str(exc), destination=f"{kind}/{key}", source_url=source_url
            ) from exc
        setattr(target, attribute, await self._relocate(destination, source_url))

    @staticmethod
    async def _fan_in(operations: Iterable[Awaitable[None]]) -> None:
        """Wait for every relocation, then re-raise the first failure."""

        outcomes = await asyncio.gather(*operations, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

    def _log_lookup_failure(self, content_type: str, key: str, exc: Exception) -> None:
        log_event(
            logger,
            "catalog.enrichment.lookup_failed",
            level=logging.WARNING,
            content_type=content_type,
            key=key,
            error=type(exc).__name__,
            detail=str(exc),
        )


class MovieAssetsService(_AssetsService):
    """Enrich a new movie with provider artwork and relocate all its media."""

    async def enrich(self, movie: Movie) -> None:
        details = await self._lookup(movie)
        if details is not None:
            backdrop = self._best_image_url(details, "backdrops", prefer_wider)
            poster = self._best_image_url(details, "posters", prefer_better_voted)
            if backdrop:
                movie.backdrop_image = backdrop
            if poster:
                movie.poster_image = poster

        key = movie.imdb_code
        operations: list[Awaitable[None]] = [
            self._relocate_attribute(movie, attribute, "images", key, *segments)
            for attribute, segments in MOVIE_IMAGE_FIELDS
            if (getattr(movie, attribute) or "").strip()
        ]
        if movie.torrents:
            operations.append(self.relocate_torrents(key, movie.torrents))
        if movie.cast:
            operations.append(self._relocate_cast(movie))
        await self._fan_in(operations)

    async def _lookup(self, movie: Movie) -> dict[str, Any] | None:
        if not self._provider.available:
            return None
        try:
            return await self._provider.get_movie(movie.imdb_code, images=True)
        except EnrichmentError as exc:
            self._log_lookup_failure("movies", movie.imdb_code, exc)
            return None

    async def relocate_torrents(self, key: str, torrents: Sequence[MovieTorrent]) -> None:
        """Relocate torrent files one after another to ``torrents/<key>/<quality>/``."""

        for torrent in torrents:
            source_url = (torrent.url or "").strip()
            if not source_url:
                continue
            destination = asset_path("torrents", key, torrent.quality, f"{key}.torrent")
            torrent.url = await self._relocate(destination, source_url)

    async def _relocate_cast(self, movie: Movie) -> None:
        for member in movie.cast:
            segments = ("cast", member.imdb_code) if member.imdb_code else ("cast",)
            await self._relocate_attribute(
                member, "small_image", "images", movie.imdb_code, *segments
            )


class ShowAssetsService(_AssetsService):
    """Enrich a new show with provider artwork and similar shows."""

    def __init__(
        self,
        provider: MetadataProvider,
        assets: AssetRelocator,
        *,
        similar_concurrency: int = 5,
    ) -> None:
        super().__init__(provider, assets)
        self._similar_concurrency = max(1, int(similar_concurrency))

    async def enrich(self, show: Show) -> None:
        if show.images is None:
            show.images = ShowImages(banner="", fanart="", poster="")

        tv_id = _parse_int(show.tvdb_id)
        if tv_id is not None and self._provider.available:
            await self._apply_provider_details(show)

        key = show.imdb_id
        await self._fan_in(
            self._relocate_attribute(show.images, attribute, "images", key, attribute)
            for attribute in SHOW_IMAGE_FIELDS
            if (getattr(show.images, attribute) or "").strip()
        )

    async def _apply_provider_details(self, show: Show) -> None:
        try:
            candidates = await self._provider.search_tv(show.title)
            match = _pick_search_result(candidates, show.year)
            if match is None:
                return
            details = await self._provider.get_tv(int(match["id"]), images=True, similar=True)
        except EnrichmentError as exc:
            self._log_lookup_failure("shows", show.imdb_id, exc)
            return
        if details is None:
            return

        fanart = self._best_image_url(details, "backdrops", prefer_wider)
        poster = self._best_image_url(details, "posters", prefer_better_voted)
        if fanart:
            show.images.fanart = fanart
        if poster:
            show.images.poster = poster

        similar_ids = await self.resolve_similar(details)
        show.similars = [Similar(external_id=external_id) for external_id in similar_ids]

    async def resolve_similar(self, details: Mapping[str, Any]) -> list[str]:
        """Resolve the imdb ids of related shows; unresolved entries are dropped."""

        similar = details.get("similar")
        results = similar.get("results") if isinstance(similar, Mapping) else None
        tv_ids: list[int] = []
        for item in results if isinstance(results, list) else []:
            tv_id = _parse_int(item.get("id")) if isinstance(item, Mapping) else None
            if tv_id is not None and tv_id not in tv_ids:
                tv_ids.append(tv_id)

        resolved: dict[int, str] = {}

        async def _resolve(tv_id: int) -> None:
            external = await self._provider.get_tv_external_ids(tv_id)
            imdb_id = external.get("imdb_id") if isinstance(external, Mapping) else None
            if isinstance(imdb_id, str) and imdb_id.strip():
                resolved[tv_id] = imdb_id.strip()

        await run_bounded(
            tv_ids, _resolve, limit=self._similar_concurrency, label="similar_shows"
        )

        ordered: list[str] = []
        for tv_id in tv_ids:
            imdb_id = resolved.get(tv_id)
            if imdb_id and imdb_id not in ordered:
                ordered.append(imdb_id)
        return ordered


def _parse_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _pick_search_result(
    candidates: Sequence[Mapping[str, Any]], year: int | None
) -> Mapping[str, Any] | None:
    usable = [item for item in candidates if _parse_int(item.get("id")) is not None]
    if not usable:
        return None
    for item in usable:
        first_air = str(item.get("first_air_date") or "")
        if year is not None and first_air[:4] == str(year):
            return item
    return usable[0]


__all__ = ["MovieAssetsService", "ShowAssetsService"]

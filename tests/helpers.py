"""Stub collaborators and source document factories shared by the test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any

from catalog_sync.core.tmdb_client import TmdbClientError
from catalog_sync.errors import RelocationError
from catalog_sync.telemetry import ImportEvent, TelemetrySink

CDN = "https://cdn.test"


def movie_document(imdb_code: str = "tt0000001", **overrides: Any) -> dict[str, Any]:
    document: dict[str, Any] = {
        "imdb_code": imdb_code,
        "title": "Example Movie",
        "title_long": "Example Movie (2010)",
        "slug": "example-movie-2010",
        "year": 2010,
        "rating": 7.5,
        "runtime": 118,
        "genres": ["Action", "Drama"],
        "language": "en",
        "mpa_rating": "PG-13",
        "download_count": 10,
        "like_count": 2,
        "description_full": "A movie.",
        "background_image": f"https://yts.test/assets/{imdb_code}/background.jpg",
        "small_cover_image": f"https://yts.test/assets/{imdb_code}/small-cover.jpg",
        "medium_cover_image": "",
        "large_cover_image": None,
        "torrents": [
            torrent_document("720p", imdb_code=imdb_code, seeds=10, peers=2),
        ],
        "cast": [
            {
                "name": "Lead Actor",
                "character_name": "Hero",
                "imdb_code": "0000101",
                "url_small_image": "https://yts.test/assets/cast/lead.jpg",
            }
        ],
    }
    document.update(overrides)
    return document


def torrent_document(
    quality: str,
    *,
    imdb_code: str = "tt0000001",
    seeds: int = 1,
    peers: int = 1,
    url: str | None = None,
) -> dict[str, Any]:
    return {
        "quality": quality,
        "url": url or f"https://yts.test/torrent/download/{imdb_code}-{quality}",
        "hash": f"{imdb_code}{quality}".upper(),
        "seeds": seeds,
        "peers": peers,
        "size": "700 MB",
        "size_bytes": 734_003_200,
        "date_uploaded": "2015-01-01 00:00:00",
        "date_uploaded_unix": 1_420_070_400,
    }


def episode_document(
    tvdb_id: int,
    first_aired: int,
    *,
    title: str | None = None,
    season: int = 1,
    peers: int = 1,
    seeds: int = 2,
    url: str | None = None,
) -> dict[str, Any]:
    return {
        "tvdb_id": tvdb_id,
        "title": title or f"Episode {tvdb_id}",
        "overview": "Something happens.",
        "season": season,
        "episode": tvdb_id,
        "first_aired": first_aired,
        "date_based": False,
        "torrents": {
            "0": None,
            "480p": {
                "provider": "EZTV",
                "peers": peers,
                "seeds": seeds,
                "url": url or f"magnet:?xt=urn:btih:{tvdb_id}",
            },
        },
    }


def show_document(imdb_id: str = "tt0903747", **overrides: Any) -> dict[str, Any]:
    document: dict[str, Any] = {
        "imdb_id": imdb_id,
        "tvdb_id": "81189",
        "title": "Example Show",
        "year": "2008",
        "slug": "example-show",
        "synopsis": "A show.",
        "runtime": "45",
        "country": "us",
        "network": "AMC",
        "air_day": "Sunday",
        "air_time": "21:00",
        "status": "ended",
        "num_seasons": 1,
        "rating": {"percentage": 90, "watching": 5, "votes": 100, "loved": 80, "hated": 2},
        "images": {
            "banner": f"https://img.test/banners/{imdb_id}.jpg",
            "fanart": f"https://img.test/fanart/{imdb_id}.jpg",
            "poster": f"https://img.test/posters/{imdb_id}.jpg",
        },
        "genres": ["drama", "crime"],
        "episodes": [
            episode_document(1, 1_200_000_000),
            episode_document(2, 1_200_600_000),
        ],
    }
    document.update(overrides)
    return document


class StubProvider:
    """In-memory metadata provider mirroring the ``TmdbClient`` surface."""

    def __init__(
        self,
        *,
        available: bool = True,
        movies: Mapping[str, dict[str, Any]] | None = None,
        search_results: list[dict[str, Any]] | None = None,
        tv: Mapping[int, dict[str, Any]] | None = None,
        external_ids: Mapping[int, dict[str, Any]] | None = None,
        failing_external_ids: frozenset[int] = frozenset(),
        fail_lookups: bool = False,
    ) -> None:
        self._available = available
        self._movies = dict(movies or {})
        self._search_results = list(search_results or [])
        self._tv = dict(tv or {})
        self._external_ids = dict(external_ids or {})
        self._failing_external_ids = failing_external_ids
        self._fail_lookups = fail_lookups
        self.calls: list[tuple[str, Any]] = []
        self.initialized = 0
        self.closed = 0

    @property
    def available(self) -> bool:
        return self._available

    async def initialize(self) -> bool:
        self.initialized += 1
        return self._available

    async def close(self) -> None:
        self.closed += 1

    def image_url(self, size: str, path: str | None) -> str | None:
        if not self._available or not path:
            return None
        return f"https://image.test/t/p/{size}{path}"

    async def search_tv(self, title: str) -> list[dict[str, Any]]:
        self.calls.append(("search_tv", title))
        if self._fail_lookups:
            raise TmdbClientError("provider unavailable", status_code=503)
        return list(self._search_results)

    async def get_movie(self, imdb_code: str, *, images: bool = True) -> dict[str, Any] | None:
        self.calls.append(("get_movie", imdb_code))
        if self._fail_lookups:
            raise TmdbClientError("provider unavailable", status_code=503)
        return self._movies.get(imdb_code)

    async def get_tv(
        self, tv_id: int, *, images: bool = True, similar: bool = True
    ) -> dict[str, Any] | None:
        self.calls.append(("get_tv", tv_id))
        return self._tv.get(tv_id)

    async def get_tv_external_ids(self, tv_id: int) -> dict[str, Any] | None:
        self.calls.append(("get_tv_external_ids", tv_id))
        await asyncio.sleep(0)
        if tv_id in self._failing_external_ids:
            raise TmdbClientError("external ids unavailable", status_code=500)
        return self._external_ids.get(tv_id)


class RecordingAssetStore:
    """Asset store double returning deterministic durable URLs."""

    def __init__(
        self,
        *,
        fail_when: Callable[[str, str], bool] | None = None,
    ) -> None:
        self._fail_when = fail_when
        self.calls: list[tuple[str, str]] = []

    async def relocate(self, destination_path: str, source_url: str) -> str:
        await asyncio.sleep(0)
        self.calls.append((destination_path, source_url))
        if self._fail_when is not None and self._fail_when(destination_path, source_url):
            raise RelocationError(
                "asset store rejected the upload",
                destination=destination_path,
                source_url=source_url,
            )
        return f"{CDN}/{destination_path}"

    @property
    def destinations(self) -> list[str]:
        return [destination for destination, _ in self.calls]


class RecordingTelemetry(TelemetrySink):
    def __init__(self) -> None:
        super().__init__()
        self.traces: list[str] = []
        self.exceptions: list[tuple[BaseException, dict[str, Any]]] = []
        self.imports: list[ImportEvent] = []

    def track_trace(self, message: str, **properties: Any) -> None:
        self.traces.append(message)
        super().track_trace(message, **properties)

    def track_exception(self, error: BaseException, **properties: Any) -> None:
        self.exceptions.append((error, properties))
        super().track_exception(error, **properties)

    def track_import(self, event: ImportEvent) -> None:
        self.imports.append(event)
        super().track_import(event)

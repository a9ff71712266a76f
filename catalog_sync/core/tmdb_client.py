"""Async client for the TMDb v3 API used for artwork enrichment."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Mapping
from typing import Any

import httpx

from catalog_sync.config import TmdbConfig
from catalog_sync.errors import EnrichmentError
from catalog_sync.logging import get_logger
from catalog_sync.logging_events import log_event

logger = get_logger(__name__)


class TmdbClientError(EnrichmentError):
    """Raised when TMDb rejects a request or cannot be reached."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool = False,
        retry_after_ms: int | None = None,
    ) -> None:
        super().__init__(message, meta={"status_code": status_code})
        self.status_code = status_code
        self.retryable = retryable
        self.retry_after_ms = retry_after_ms


class TmdbClient:
    """Thin TMDb wrapper with an explicit, fallible initialisation step.

    ``initialize`` fetches the image configuration once. When it fails (or no
    API key is configured) the client stays in degraded mode: ``available`` is
    ``False`` and every lookup reports "nothing found" without network I/O.
    """

    def __init__(
        self,
        config: TmdbConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        jitter_pct: int = 20,
    ) -> None:
        self._config = config
        self._transport = transport
        self._jitter_pct = max(0, int(jitter_pct))
        self._client: httpx.AsyncClient | None = None
        self._image_base_url: str | None = None
        self._available = False

    @property
    def available(self) -> bool:
        return self._available

    async def __aenter__(self) -> "TmdbClient":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def initialize(self) -> bool:
        if not self._config.api_key:
            log_event(
                logger,
                "tmdb.initialize",
                level=logging.WARNING,
                status="degraded",
                reason="missing_api_key",
            )
            self._available = False
            return False

        try:
            payload = await self._get_json("/configuration")
        except EnrichmentError as exc:
            log_event(
                logger,
                "tmdb.initialize",
                level=logging.WARNING,
                status="degraded",
                reason=type(exc).__name__,
                detail=exc.message,
            )
            self._available = False
            return False

        images = payload.get("images") if isinstance(payload, Mapping) else None
        base = None
        if isinstance(images, Mapping):
            base = images.get("secure_base_url") or images.get("base_url")
        if not isinstance(base, str) or not base.strip():
            log_event(
                logger,
                "tmdb.initialize",
                level=logging.WARNING,
                status="degraded",
                reason="missing_image_base_url",
            )
            self._available = False
            return False

        self._image_base_url = base.strip().rstrip("/") + "/"
        self._available = True
        log_event(logger, "tmdb.initialize", status="ok")
        return True

    async def close(self) -> None:
        client = self._client
        self._client = None
        if client is not None:
            await client.aclose()

    def image_url(self, size: str, path: str | None) -> str | None:
        """Return the absolute transfer URL of an image file path."""

        if not self._available or not self._image_base_url or not path:
            return None
        return f"{self._image_base_url}{size.strip('/')}/{path.lstrip('/')}"

    async def search_tv(self, title: str) -> list[dict[str, Any]]:
        if not self._available or not title.strip():
            return []
        payload = await self._get_json("/search/tv", params={"query": title.strip()})
        results = payload.get("results") if isinstance(payload, Mapping) else None
        if not isinstance(results, list):
            return []
        return [item for item in results if isinstance(item, dict)]

    async def get_movie(self, imdb_code: str, *, images: bool = True) -> dict[str, Any] | None:
        if not self._available:
            return None
        params = {"append_to_response": "images"} if images else None
        return await self._get_json(f"/movie/{imdb_code}", params=params)

    async def get_tv(
        self,
        tv_id: int,
        *,
        images: bool = True,
        similar: bool = True,
    ) -> dict[str, Any] | None:
        if not self._available:
            return None
        extras = [name for name, wanted in (("images", images), ("similar", similar)) if wanted]
        params = {"append_to_response": ",".join(extras)} if extras else None
        return await self._get_json(f"/tv/{int(tv_id)}", params=params)

    async def get_tv_external_ids(self, tv_id: int) -> dict[str, Any] | None:
        if not self._available:
            return None
        return await self._get_json(f"/tv/{int(tv_id)}/external_ids")

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=_build_timeout(self._config.timeout_ms),
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def _get_json(
        self,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        client = self._ensure_client()
        query = {"api_key": self._config.api_key or ""}
        if params:
            query.update(params)

        max_attempts = max(1, self._config.max_attempts)
        attempt = 1
        while True:
            try:
                response = await self._send(client, path, query)
                break
            except TmdbClientError as exc:
                if not exc.retryable or attempt >= max_attempts:
                    raise
                delay_ms = self._retry_delay_ms(attempt, exc.retry_after_ms)
                log_event(
                    logger,
                    "tmdb.retry",
                    level=logging.WARNING,
                    path=path,
                    attempt=attempt,
                    status_code=exc.status_code,
                    delay_ms=delay_ms,
                )
                if delay_ms > 0:
                    await asyncio.sleep(delay_ms / 1000.0)
                attempt += 1

        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        if response.status_code >= 400:
            raise TmdbClientError(
                f"TMDb rejected the request: {response.text[:200]}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise TmdbClientError(
                "TMDb returned invalid JSON", status_code=response.status_code
            ) from exc
        if not isinstance(payload, dict):
            raise TmdbClientError(
                "TMDb returned an unexpected payload", status_code=response.status_code
            )
        return payload

    @staticmethod
    async def _send(
        client: httpx.AsyncClient, path: str, query: Mapping[str, Any]
    ) -> httpx.Response:
        try:
            response = await client.get(path, params=query)
        except httpx.TimeoutException as exc:
            raise TmdbClientError("TMDb request timed out", retryable=True) from exc
        except httpx.HTTPError as exc:
            raise TmdbClientError(f"TMDb request failed: {exc}", retryable=True) from exc

        status = response.status_code
        if status == httpx.codes.TOO_MANY_REQUESTS:
            raise TmdbClientError(
                "TMDb rate limited the request",
                status_code=status,
                retryable=True,
                retry_after_ms=_parse_retry_after_ms(response.headers),
            )
        if status >= 500:
            raise TmdbClientError(
                "TMDb returned a server error",
                status_code=status,
                retryable=True,
            )
        return response

    def _retry_delay_ms(self, attempt: int, retry_after_ms: int | None) -> int:
        """Honour ``Retry-After`` as-is; otherwise back off exponentially with jitter."""

        if retry_after_ms is not None:
            return retry_after_ms
        delay = max(1, self._config.backoff_base_ms) * 2 ** (attempt - 1)
        if self._jitter_pct <= 0:
            return delay
        spread = delay * self._jitter_pct / 100.0
        return int(random.uniform(max(0.0, delay - spread), delay + spread))


def _build_timeout(timeout_ms: int) -> httpx.Timeout:
    timeout_seconds = max(timeout_ms, 100) / 1000
    return httpx.Timeout(timeout_seconds, connect=min(timeout_seconds, 5.0))


def _parse_retry_after_ms(headers: Mapping[str, Any]) -> int | None:
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        seconds = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    return max(0, int(seconds * 1000))


__all__ = ["TmdbClient", "TmdbClientError"]

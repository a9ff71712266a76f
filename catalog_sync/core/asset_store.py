"""Relocation of media assets into the S3-compatible asset store."""

from __future__ import annotations

import asyncio
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
import httpx

from catalog_sync.config import AssetStoreConfig
from catalog_sync.errors import ConfigurationError, RelocationError
from catalog_sync.logging import get_logger
from catalog_sync.logging_events import log_event
from catalog_sync.utils.time import elapsed_ms, monotonic_ms

logger = get_logger(__name__)

_MISSING_OBJECT_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class AssetStore:
    """Copy remote files to ``<bucket>/<destination>`` and return durable URLs."""

    def __init__(
        self,
        config: AssetStoreConfig,
        *,
        s3_client: Any | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not config.is_configured:
            raise ConfigurationError(
                "ASSETS_BUCKET and ASSETS_PUBLIC_BASE_URL must be configured.",
                meta={"field": "ASSETS_BUCKET"},
            )
        self._config = config
        self._s3 = s3_client
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    @property
    def bucket(self) -> str:
        return str(self._config.bucket)

    def public_url(self, destination_path: str) -> str:
        base = str(self._config.public_base_url).rstrip("/")
        return f"{base}/{destination_path.lstrip('/')}"

    async def close(self) -> None:
        client = self._http
        self._http = None
        if client is not None:
            await client.aclose()

    async def relocate(self, destination_path: str, source_url: str) -> str:
        """Copy ``source_url`` to ``destination_path`` unless it is already stored."""

        started = monotonic_ms()
        key = destination_path.lstrip("/")
        try:
            if await self._exists(key):
                log_event(
                    logger,
                    "assets.relocate",
                    status="exists",
                    destination=key,
                    duration_ms=elapsed_ms(started),
                )
                return self.public_url(key)
            body, content_type = await self._download(key, source_url)
            await asyncio.to_thread(self._put_object, key, body, content_type)
        except RelocationError:
            raise
        except (BotoCoreError, ClientError, httpx.HTTPError) as exc:
            raise RelocationError(
                f"Relocation failed: {exc}",
                destination=key,
                source_url=source_url,
            ) from exc

        log_event(
            logger,
            "assets.relocate",
            status="uploaded",
            destination=key,
            bytes=len(body),
            duration_ms=elapsed_ms(started),
        )
        return self.public_url(key)

    def _client(self) -> Any:
        if self._s3 is None:
            session = boto3.session.Session()
            self._s3 = session.client(
                "s3",
                region_name=self._config.region,
                endpoint_url=self._config.endpoint_url,
                aws_access_key_id=self._config.access_key_id,
                aws_secret_access_key=self._config.secret_access_key,
            )
        return self._s3

    async def _exists(self, key: str) -> bool:
        try:
            await asyncio.to_thread(self._client().head_object, Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_OBJECT_CODES:
                return False
            raise
        return True

    def _put_object(self, key: str, body: bytes, content_type: str | None) -> None:
        params: dict[str, Any] = {"Bucket": self.bucket, "Key": key, "Body": body}
        if content_type:
            params["ContentType"] = content_type
        self._client().put_object(**params)

    def _http_client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_seconds),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._http

    async def _download(self, key: str, source_url: str) -> tuple[bytes, str | None]:
        limit = self._config.max_bytes
        async with self._http_client().stream("GET", source_url) as response:
            if response.status_code >= 400:
                raise RelocationError(
                    f"Source responded with HTTP {response.status_code}",
                    destination=key,
                    source_url=source_url,
                )
            chunks: list[bytes] = []
            total = 0
            async for chunk in response.aiter_bytes():
                total += len(chunk)
                if total > limit:
                    raise RelocationError(
                        f"Source exceeds the {limit} byte limit",
                        destination=key,
                        source_url=source_url,
                    )
                chunks.append(chunk)
            content_type = response.headers.get("Content-Type")
        return b"".join(chunks), content_type


__all__ = ["AssetStore"]

"""Read access to the source-of-truth document store."""

from __future__ import annotations

from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from catalog_sync.config import ContentType, SourceConfig
from catalog_sync.errors import ConfigurationError, SourceStoreError
from catalog_sync.logging import get_logger
from catalog_sync.logging_events import log_event
from catalog_sync.utils.time import elapsed_ms, monotonic_ms

logger = get_logger(__name__)


class SourceStore:
    """Load whole content-type collections from MongoDB."""

    def __init__(
        self,
        config: SourceConfig,
        *,
        client: AsyncIOMotorClient | None = None,
    ) -> None:
        if client is None and not config.url:
            raise ConfigurationError(
                "SOURCE_MONGO_URL must be configured.",
                meta={"field": "SOURCE_MONGO_URL"},
            )
        self._config = config
        self._client = client
        self._client_owner = client is None

    def _ensure_client(self) -> AsyncIOMotorClient:
        if self._client is None:
            self._client = AsyncIOMotorClient(self._config.url)
        return self._client

    async def load_batch(self, content_type: ContentType) -> list[dict[str, Any]]:
        """Return every document of the collection backing ``content_type``."""

        started = monotonic_ms()
        collection_name = self._config.collection_for(content_type)
        collection = self._ensure_client()[self._config.database][collection_name]
        documents: list[dict[str, Any]] = []
        try:
            async for document in collection.find({}, {"_id": False}):
                documents.append(dict(document))
        except PyMongoError as exc:
            raise SourceStoreError(
                f"Failed to read source collection '{collection_name}': {exc}",
                meta={"content_type": content_type.value, "collection": collection_name},
            ) from exc

        log_event(
            logger,
            "source.load_batch",
            content_type=content_type.value,
            collection=collection_name,
            count=len(documents),
            duration_ms=elapsed_ms(started),
        )
        return documents

    def close(self) -> None:
        if self._client_owner and self._client is not None:
            self._client.close()
            self._client = None


__all__ = ["SourceStore"]

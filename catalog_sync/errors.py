"""Error taxonomy for the catalog export pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes attached to logged failures."""

    DECODE_ERROR = "DECODE_ERROR"
    ENRICHMENT_ERROR = "ENRICHMENT_ERROR"
    RELOCATION_ERROR = "RELOCATION_ERROR"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    SOURCE_ERROR = "SOURCE_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class CatalogError(Exception):
    """Base exception for catalog export failures."""

    __slots__ = ("message", "code", "meta")

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        meta: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.meta = dict(meta) if meta else None


class DecodeError(CatalogError):
    """Raised when a raw source document cannot become a typed record."""

    def __init__(self, message: str, *, meta: Mapping[str, Any] | None = None) -> None:
        super().__init__(message, code=ErrorCode.DECODE_ERROR, meta=meta)


class EnrichmentError(CatalogError):
    """Raised when the metadata provider cannot serve a lookup."""

    def __init__(self, message: str, *, meta: Mapping[str, Any] | None = None) -> None:
        super().__init__(message, code=ErrorCode.ENRICHMENT_ERROR, meta=meta)


class RelocationError(CatalogError):
    """Raised when a media asset could not be copied to the asset store."""

    def __init__(
        self,
        message: str,
        *,
        destination: str,
        source_url: str,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.RELOCATION_ERROR,
            meta={"destination": destination, "source_url": source_url},
        )
        self.destination = destination
        self.source_url = source_url


class PersistenceError(CatalogError):
    """Raised when a catalog record could not be loaded or committed."""

    def __init__(self, message: str, *, meta: Mapping[str, Any] | None = None) -> None:
        super().__init__(message, code=ErrorCode.PERSISTENCE_ERROR, meta=meta)


class SourceStoreError(CatalogError):
    """Raised when a source batch could not be read."""

    def __init__(self, message: str, *, meta: Mapping[str, Any] | None = None) -> None:
        super().__init__(message, code=ErrorCode.SOURCE_ERROR, meta=meta)


class ConfigurationError(CatalogError):
    """Raised when required runtime configuration is missing or invalid."""

    def __init__(self, message: str, *, meta: Mapping[str, Any] | None = None) -> None:
        super().__init__(message, code=ErrorCode.CONFIGURATION_ERROR, meta=meta)


__all__ = [
    "CatalogError",
    "ConfigurationError",
    "DecodeError",
    "EnrichmentError",
    "ErrorCode",
    "PersistenceError",
    "RelocationError",
    "SourceStoreError",
]

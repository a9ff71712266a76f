"""Export orchestration across content types."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog_sync.config import ContentType
from catalog_sync.logging import get_logger
from catalog_sync.logging_events import log_event
from catalog_sync.services.assets_service import (
    AssetRelocator,
    MetadataProvider,
    MovieAssetsService,
    ShowAssetsService,
)
from catalog_sync.services.import_service import (
    ImportService,
    ImportSummary,
    MovieImportService,
    ShowImportService,
)
from catalog_sync.telemetry import TelemetrySink
from catalog_sync.utils.time import elapsed_ms, monotonic_ms

logger = get_logger(__name__)


class BatchSource(Protocol):
    async def load_batch(self, content_type: ContentType) -> list[dict[str, Any]]: ...


class ManagedProvider(MetadataProvider, Protocol):
    async def initialize(self) -> bool: ...

    async def close(self) -> None: ...


@dataclass(slots=True)
class ExportReport:
    """Per content type summaries; ``None`` marks a content type that failed."""

    summaries: dict[ContentType, ImportSummary | None] = field(default_factory=dict)
    duration_ms: int = 0

    @property
    def failed(self) -> tuple[ContentType, ...]:
        return tuple(ct for ct, summary in self.summaries.items() if summary is None)


class ExportOrchestrator:
    """Run one reconciliation per content type concurrently.

    Every content type gets its own source batch, its own database session and
    its own provider client. A failure escaping one content type is reported
    and never cancels the others.
    """

    def __init__(
        self,
        *,
        source: BatchSource,
        session_factory: async_sessionmaker[AsyncSession],
        provider_factory: Callable[[], ManagedProvider],
        assets: AssetRelocator,
        telemetry: TelemetrySink | None = None,
        similar_concurrency: int = 5,
    ) -> None:
        self._source = source
        self._session_factory = session_factory
        self._provider_factory = provider_factory
        self._assets = assets
        self._telemetry = telemetry or TelemetrySink()
        self._similar_concurrency = similar_concurrency

    async def run(self, content_types: Iterable[ContentType]) -> ExportReport:
        selected: Sequence[ContentType] = tuple(dict.fromkeys(content_types))
        started = monotonic_ms()
        names = ",".join(ct.value for ct in selected)
        self._telemetry.track_trace("Export started", content_types=names)
        log_event(logger, "catalog.export.start", content_types=names)

        results = await asyncio.gather(*(self._run_guarded(ct) for ct in selected))

        report = ExportReport(summaries=dict(zip(selected, results)))
        report.duration_ms = elapsed_ms(started)
        log_event(
            logger,
            "catalog.export.end",
            level=logging.WARNING if report.failed else logging.INFO,
            content_types=names,
            failed=",".join(ct.value for ct in report.failed),
            duration_ms=report.duration_ms,
            meta=_summaries_meta(report.summaries),
        )
        self._telemetry.track_trace(
            "Export finished", content_types=names, duration_ms=report.duration_ms
        )
        return report

    async def _run_guarded(self, content_type: ContentType) -> ImportSummary | None:
        try:
            return await self.run_content_type(content_type)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._telemetry.track_exception(exc, content_type=content_type.value)
            log_event(
                logger,
                "catalog.export.content_type_failed",
                level=logging.ERROR,
                content_type=content_type.value,
                error=type(exc).__name__,
                detail=str(exc),
            )
            return None

    async def run_content_type(self, content_type: ContentType) -> ImportSummary:
        documents = await self._source.load_batch(content_type)
        provider = self._provider_factory()
        try:
            await provider.initialize()
            async with self._session_factory() as session:
                service = self._build_service(content_type, session, provider)
                return await service.import_documents(documents)
        finally:
            await provider.close()

    def _build_service(
        self,
        content_type: ContentType,
        session: AsyncSession,
        provider: MetadataProvider,
    ) -> ImportService[Any]:
        if content_type is ContentType.MOVIES:
            return MovieImportService(
                session,
                assets=MovieAssetsService(provider, self._assets),
                telemetry=self._telemetry,
            )
        if content_type is ContentType.SHOWS:
            return ShowImportService(
                session,
                assets=ShowAssetsService(
                    provider,
                    self._assets,
                    similar_concurrency=self._similar_concurrency,
                ),
                telemetry=self._telemetry,
            )
        raise ValueError(f"Unsupported content type: {content_type!r}")


def _summaries_meta(
    summaries: Mapping[ContentType, ImportSummary | None],
) -> dict[str, Any]:
    meta: dict[str, Any] = {}
    for content_type, summary in summaries.items():
        if summary is None:
            meta[content_type.value] = None
            continue
        meta[content_type.value] = {
            "total": summary.total,
            "inserted": summary.inserted,
            "updated": summary.updated,
            "skipped": summary.skipped,
        }
    return meta


__all__ = ["ExportOrchestrator", "ExportReport"]

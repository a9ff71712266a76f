"""Per-document reconciliation of source batches into the served catalog."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.config import ContentType
from catalog_sync.errors import DecodeError
from catalog_sync.logging import get_logger
from catalog_sync.logging_events import log_event
from catalog_sync.models import Movie, Show
from catalog_sync.schemas import DecodeResult, decode_movie, decode_show
from catalog_sync.services.assets_service import MovieAssetsService, ShowAssetsService
from catalog_sync.services.catalog_dao import CatalogDAO
from catalog_sync.services.merge import merge_movie, merge_show, recompute_last_updated
from catalog_sync.telemetry import ImportEvent, ImportOutcome, TelemetrySink
from catalog_sync.utils.time import elapsed_ms, monotonic_ms

logger = get_logger(__name__)

R = TypeVar("R", Movie, Show)


@dataclass(slots=True)
class ImportSummary:
    content_type: ContentType
    total: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0

    @property
    def processed(self) -> int:
        return self.inserted + self.updated + self.skipped

    def record(self, outcome: ImportOutcome) -> None:
        if outcome is ImportOutcome.INSERTED:
            self.inserted += 1
        elif outcome is ImportOutcome.UPDATED:
            self.updated += 1
        else:
            self.skipped += 1


class ImportService(Generic[R]):
    """Reconcile raw documents of one content type, one document at a time.

    Each document is decoded, matched against the persisted record sharing its
    natural key, then either enriched and inserted or merged into the existing
    record, and committed on its own. Any failure rolls the session back and
    marks the document as skipped; the loop always moves on.
    """

    content_type: ContentType

    def __init__(self, session: AsyncSession, *, telemetry: TelemetrySink) -> None:
        self._dao = CatalogDAO(session)
        self._telemetry = telemetry

    def decode(self, raw: Any) -> DecodeResult[R]:
        raise NotImplementedError

    async def find_existing(self, key: str) -> R | None:
        raise NotImplementedError

    async def insert(self, record: R) -> None:
        raise NotImplementedError

    async def update(self, existing: R, record: R) -> None:
        raise NotImplementedError

    async def import_documents(self, documents: Sequence[Mapping[str, Any]]) -> ImportSummary:
        summary = ImportSummary(content_type=self.content_type, total=len(documents))
        started = monotonic_ms()
        log_event(
            logger,
            "catalog.import.start",
            content_type=self.content_type.value,
            total=summary.total,
        )

        for raw in documents:
            document_started = monotonic_ms()
            key: str | None = None
            reason: str | None = None
            try:
                decoded = self.decode(raw)
                key = decoded.key
                outcome = await self._reconcile(decoded)
            except Exception as exc:
                outcome = ImportOutcome.SKIPPED
                reason = str(exc) or type(exc).__name__
                await self._dao.rollback()
                self._telemetry.track_exception(
                    exc, content_type=self.content_type.value, key=key
                )
            summary.record(outcome)
            self._telemetry.track_import(
                ImportEvent(
                    content_type=self.content_type.value,
                    key=key,
                    outcome=outcome,
                    duration_ms=elapsed_ms(document_started),
                    processed=summary.processed,
                    total=summary.total,
                    reason=reason,
                )
            )

        log_event(
            logger,
            "catalog.import.end",
            content_type=self.content_type.value,
            total=summary.total,
            inserted=summary.inserted,
            updated=summary.updated,
            skipped=summary.skipped,
            duration_ms=elapsed_ms(started),
        )
        return summary

    async def _reconcile(self, decoded: DecodeResult[R]) -> ImportOutcome:
        if not decoded.ok or decoded.key is None:
            raise DecodeError(
                decoded.reason or "document could not be decoded",
                meta={"key": decoded.key},
            )
        record = decoded.record
        key = decoded.key

        existing = await self.find_existing(key)
        if existing is None:
            await self.insert(record)
            self._dao.add(record)
            outcome = ImportOutcome.INSERTED
        else:
            await self.update(existing, record)
            outcome = ImportOutcome.UPDATED
        await self._dao.commit()
        return outcome


class MovieImportService(ImportService[Movie]):
    content_type = ContentType.MOVIES

    def __init__(
        self,
        session: AsyncSession,
        *,
        assets: MovieAssetsService,
        telemetry: TelemetrySink,
    ) -> None:
        super().__init__(session, telemetry=telemetry)
        self._assets = assets

    def decode(self, raw: Any) -> DecodeResult[Movie]:
        return decode_movie(raw)

    async def find_existing(self, key: str) -> Movie | None:
        return await self._dao.find_movie(key)

    async def insert(self, record: Movie) -> None:
        await self._assets.enrich(record)

    async def update(self, existing: Movie, record: Movie) -> None:
        result = merge_movie(existing, record)
        if result.appended:
            await self._assets.relocate_torrents(existing.imdb_code, result.appended)


class ShowImportService(ImportService[Show]):
    content_type = ContentType.SHOWS

    def __init__(
        self,
        session: AsyncSession,
        *,
        assets: ShowAssetsService,
        telemetry: TelemetrySink,
    ) -> None:
        super().__init__(session, telemetry=telemetry)
        self._assets = assets

    def decode(self, raw: Any) -> DecodeResult[Show]:
        return decode_show(raw)

    async def find_existing(self, key: str) -> Show | None:
        return await self._dao.find_show(key)

    async def insert(self, record: Show) -> None:
        recompute_last_updated(record)
        await self._assets.enrich(record)

    async def update(self, existing: Show, record: Show) -> None:
        merge_show(existing, record)


__all__ = [
    "ImportService",
    "ImportSummary",
    "MovieImportService",
    "ShowImportService",
]

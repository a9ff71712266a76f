"""Fire-and-forget telemetry sink backed by the logging stack."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from catalog_sync.errors import CatalogError
from catalog_sync.logging import get_logger
from catalog_sync.logging_events import log_event

logger = get_logger("catalog_sync.telemetry")


class ImportOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(slots=True, frozen=True)
class ImportEvent:
    """Progress record emitted once per processed source document."""

    content_type: str
    key: str | None
    outcome: ImportOutcome
    duration_ms: int
    processed: int
    total: int
    reason: str | None = None


def _flatten(properties: dict[str, Any]) -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for name, value in properties.items():
        if isinstance(value, Enum):
            value = value.value
        if value is not None and not isinstance(value, (str, int, float, bool)):
            value = str(value)
        flat[name] = value
    return flat


class TelemetrySink:
    """Trace, exception and progress reporting that never fails the caller."""

    def __init__(self, target: logging.Logger | None = None) -> None:
        self._logger = target or logger

    def track_trace(self, message: str, **properties: Any) -> None:
        try:
            log_event(self._logger, "telemetry.trace", message=message, **_flatten(properties))
        except Exception:  # pragma: no cover - sink must not raise
            self._logger.debug("Failed to emit trace %r", message, exc_info=True)

    def track_exception(self, error: BaseException, **properties: Any) -> None:
        try:
            fields = _flatten(properties)
            fields.setdefault("error", type(error).__name__)
            if isinstance(error, CatalogError):
                fields.setdefault("code", error.code.value)
            log_event(
                self._logger,
                "telemetry.exception",
                level=logging.ERROR,
                message=str(error) or type(error).__name__,
                **fields,
            )
        except Exception:  # pragma: no cover - sink must not raise
            self._logger.debug("Failed to emit exception %r", error, exc_info=True)

    def track_import(self, event: ImportEvent) -> None:
        try:
            payload = _flatten(asdict(event))
            level = logging.WARNING if event.outcome is ImportOutcome.SKIPPED else logging.INFO
            log_event(
                self._logger,
                "catalog.import.document",
                level=level,
                message=(
                    f"{event.content_type} {event.key or '<unknown>'} {payload['outcome']} "
                    f"in {event.duration_ms}ms ({event.processed}/{event.total})"
                ),
                **payload,
            )
        except Exception:  # pragma: no cover - sink must not raise
            self._logger.debug("Failed to emit import event %r", event, exc_info=True)


__all__ = ["ImportEvent", "ImportOutcome", "TelemetrySink"]

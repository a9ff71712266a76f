from __future__ import annotations

import logging

import pytest

from catalog_sync.errors import RelocationError
from catalog_sync.telemetry import ImportEvent, ImportOutcome, TelemetrySink


def test_track_import_emits_structured_document_event(caplog: pytest.LogCaptureFixture) -> None:
    sink = TelemetrySink()
    event = ImportEvent(
        content_type="shows",
        key="tt0903747",
        outcome=ImportOutcome.UPDATED,
        duration_ms=12,
        processed=3,
        total=10,
    )

    with caplog.at_level(logging.INFO, logger="catalog_sync.telemetry"):
        sink.track_import(event)

    record = caplog.records[-1]
    assert record.event == "catalog.import.document"
    assert record.outcome == "updated"
    assert record.key == "tt0903747"
    assert record.processed == 3
    assert record.total == 10
    assert "3/10" in record.getMessage()


def test_track_exception_records_error_code(caplog: pytest.LogCaptureFixture) -> None:
    sink = TelemetrySink()
    error = RelocationError("rejected", destination="images/x/a.jpg", source_url="https://a")

    with caplog.at_level(logging.ERROR, logger="catalog_sync.telemetry"):
        sink.track_exception(error, content_type="movies", key="x")

    record = caplog.records[-1]
    assert record.event == "telemetry.exception"
    assert record.code == "RELOCATION_ERROR"
    assert record.error == "RelocationError"
    assert record.levelno == logging.ERROR


def test_track_trace_flattens_properties(caplog: pytest.LogCaptureFixture) -> None:
    sink = TelemetrySink()

    with caplog.at_level(logging.INFO, logger="catalog_sync.telemetry"):
        sink.track_trace("Export started", content_types=("movies", "shows"), count=None)

    record = caplog.records[-1]
    assert record.getMessage() == "Export started"
    assert record.content_types == "('movies', 'shows')"

"""Command line entrypoint running one export pass."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence

from catalog_sync.config import AppConfig, ContentType, load_config
from catalog_sync.core.asset_store import AssetStore
from catalog_sync.core.source_store import SourceStore
from catalog_sync.core.tmdb_client import TmdbClient
from catalog_sync.db import dispose_engine, get_async_sessionmaker, init_db
from catalog_sync.errors import ConfigurationError
from catalog_sync.logging import configure_logging, get_logger
from catalog_sync.orchestrator.export import ExportOrchestrator, ExportReport
from catalog_sync.telemetry import TelemetrySink

logger = get_logger("catalog_sync")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalog_sync",
        description="Reconcile the source catalog into the served catalog",
    )
    parser.add_argument(
        "--content-type",
        dest="content_types",
        action="append",
        choices=[ct.value for ct in ContentType],
        help="Content type to export (repeatable, defaults to EXPORT_CONTENT_TYPES)",
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL for this run")
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create missing catalog tables before exporting",
    )
    return parser


async def run_export(
    config: AppConfig,
    content_types: Sequence[ContentType],
    *,
    create_schema: bool = False,
) -> ExportReport:
    source = SourceStore(config.source)
    try:
        assets = AssetStore(config.assets)
    except ConfigurationError:
        source.close()
        raise
    orchestrator = ExportOrchestrator(
        source=source,
        session_factory=get_async_sessionmaker(),
        provider_factory=lambda: TmdbClient(config.tmdb),
        assets=assets,
        telemetry=TelemetrySink(),
        similar_concurrency=config.export.similar_concurrency,
    )
    try:
        if create_schema:
            await init_db()
        return await orchestrator.run(content_types)
    finally:
        await assets.close()
        source.close()
        await dispose_engine()


def _cli(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        config = load_config()
    except ConfigurationError as exc:
        configure_logging()
        logger.error("Invalid configuration: %s", exc.message)
        return 2

    configure_logging(args.log_level or config.logging.level, config.logging.file)

    if args.content_types:
        content_types = tuple(ContentType(value) for value in dict.fromkeys(args.content_types))
    else:
        content_types = config.export.content_types

    try:
        report = asyncio.run(
            run_export(config, content_types, create_schema=args.init_db)
        )
    except ConfigurationError as exc:
        logger.error("Invalid configuration: %s", exc.message)
        return 2
    return 1 if report.failed else 0


def main() -> None:
    raise SystemExit(_cli())


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()

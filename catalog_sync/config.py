"""Application configuration utilities for the catalog export."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from catalog_sync.errors import ConfigurationError
from catalog_sync.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./catalog.db"
DEFAULT_TMDB_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_SIMILAR_CONCURRENCY = 5
DEFAULT_ASSET_MAX_BYTES = 50 * 1024 * 1024

_RUNTIME_ENV_CACHE: dict[str, str] | None = None


class ContentType(str, Enum):
    """Content types exported from the source store."""

    MOVIES = "movies"
    SHOWS = "shows"


def _load_env_file(path: Path) -> dict[str, str]:
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    env_values: dict[str, str] = {}
    for line in contents.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, sep, value = stripped.partition("=")
        if not sep:
            continue
        env_values[key.strip()] = value.strip().strip('"').strip("'")
    return env_values


def load_runtime_env(
    *,
    env_file: str | os.PathLike[str] | None = None,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Load runtime environment values applying .env before explicit environment."""

    env: dict[str, str] = {}
    source = dict(base_env or os.environ)

    path = Path(env_file) if env_file is not None else Path(".env")
    if path.exists() and path.is_file():
        env.update(_load_env_file(path))

    env.update({key: str(value) for key, value in source.items() if value is not None})
    return env


def get_runtime_env() -> Mapping[str, str]:
    """Return the cached runtime environment mapping."""

    global _RUNTIME_ENV_CACHE
    if _RUNTIME_ENV_CACHE is None:
        _RUNTIME_ENV_CACHE = load_runtime_env()
    return _RUNTIME_ENV_CACHE


def override_runtime_env(runtime_env: Mapping[str, str] | None) -> None:
    """Override the cached runtime environment (primarily for testing)."""

    global _RUNTIME_ENV_CACHE
    if runtime_env is None:
        _RUNTIME_ENV_CACHE = None
    else:
        _RUNTIME_ENV_CACHE = dict(runtime_env)


def _env_value(env: Mapping[str, Any], key: str) -> str | None:
    value = env.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(slots=True)
class LoggingConfig:
    level: str
    file: str | None = None


@dataclass(slots=True)
class DatabaseConfig:
    url: str


@dataclass(slots=True)
class SourceConfig:
    url: str | None
    database: str
    movies_collection: str
    shows_collection: str

    def collection_for(self, content_type: ContentType) -> str:
        if content_type is ContentType.MOVIES:
            return self.movies_collection
        return self.shows_collection


@dataclass(slots=True)
class TmdbConfig:
    api_key: str | None
    base_url: str
    timeout_ms: int
    max_attempts: int
    backoff_base_ms: int


@dataclass(slots=True)
class AssetStoreConfig:
    endpoint_url: str | None
    bucket: str | None
    access_key_id: str | None
    secret_access_key: str | None
    region: str | None
    public_base_url: str | None
    timeout_seconds: float
    max_bytes: int

    @property
    def is_configured(self) -> bool:
        return bool(self.bucket and self.public_base_url)


@dataclass(slots=True)
class ExportConfig:
    content_types: tuple[ContentType, ...]
    similar_concurrency: int


@dataclass(slots=True)
class AppConfig:
    logging: LoggingConfig
    database: DatabaseConfig
    source: SourceConfig
    tmdb: TmdbConfig
    assets: AssetStoreConfig
    export: ExportConfig


def _as_int(value: str | None, *, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _bounded_int(
    value: Any,
    *,
    default: int,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    try:
        resolved = int(value)
    except (TypeError, ValueError):
        resolved = default
    if minimum is not None:
        resolved = max(minimum, resolved)
    if maximum is not None:
        resolved = min(maximum, resolved)
    return resolved


def _bounded_float(
    value: Any,
    *,
    default: float,
    minimum: float | None = None,
) -> float:
    try:
        resolved = float(value)
    except (TypeError, ValueError):
        resolved = default
    if minimum is not None:
        resolved = max(minimum, resolved)
    return resolved


def _parse_list(value: str | None) -> list[str]:
    if value is None:
        return []
    candidates = value.replace("\n", ",").split(",")
    return [item.strip() for item in candidates if item.strip()]


def _parse_content_types(value: str | None) -> tuple[ContentType, ...]:
    names = _parse_list(value)
    if not names:
        return (ContentType.MOVIES, ContentType.SHOWS)
    resolved: list[ContentType] = []
    for name in names:
        try:
            content_type = ContentType(name.lower())
        except ValueError as exc:
            raise ConfigurationError(
                f"Unknown content type '{name}' in EXPORT_CONTENT_TYPES.",
                meta={"field": "EXPORT_CONTENT_TYPES"},
            ) from exc
        if content_type not in resolved:
            resolved.append(content_type)
    return tuple(resolved)


def _resolve_database_url(env: Mapping[str, Any]) -> str:
    candidate = _env_value(env, "DATABASE_URL") or DEFAULT_DATABASE_URL
    try:
        url = make_url(candidate)
    except (ArgumentError, ValueError) as exc:
        raise ConfigurationError(
            "DATABASE_URL is not a valid SQLAlchemy connection string.",
            meta={"field": "DATABASE_URL"},
        ) from exc
    return url.render_as_string(hide_password=False)


def load_config(runtime_env: Mapping[str, Any] | None = None) -> AppConfig:
    """Build the application configuration from the runtime environment."""

    env = runtime_env or get_runtime_env()

    logging_config = LoggingConfig(
        level=(_env_value(env, "LOG_LEVEL") or "INFO").upper(),
        file=_env_value(env, "LOG_FILE"),
    )
    database = DatabaseConfig(url=_resolve_database_url(env))
    source = SourceConfig(
        url=_env_value(env, "SOURCE_MONGO_URL"),
        database=_env_value(env, "SOURCE_DATABASE") or "popcorn",
        movies_collection=_env_value(env, "SOURCE_MOVIES_COLLECTION") or "movies",
        shows_collection=_env_value(env, "SOURCE_SHOWS_COLLECTION") or "shows",
    )
    tmdb = TmdbConfig(
        api_key=_env_value(env, "TMDB_API_KEY"),
        base_url=(_env_value(env, "TMDB_BASE_URL") or DEFAULT_TMDB_BASE_URL).rstrip("/"),
        timeout_ms=_bounded_int(
            _env_value(env, "TMDB_TIMEOUT_MS"), default=8_000, minimum=100
        ),
        max_attempts=_bounded_int(
            _env_value(env, "TMDB_MAX_ATTEMPTS"), default=3, minimum=1, maximum=10
        ),
        backoff_base_ms=_as_int(_env_value(env, "TMDB_BACKOFF_BASE_MS"), default=250),
    )
    assets = AssetStoreConfig(
        endpoint_url=_env_value(env, "ASSETS_ENDPOINT_URL"),
        bucket=_env_value(env, "ASSETS_BUCKET"),
        access_key_id=_env_value(env, "ASSETS_ACCESS_KEY_ID"),
        secret_access_key=_env_value(env, "ASSETS_SECRET_ACCESS_KEY"),
        region=_env_value(env, "ASSETS_REGION"),
        public_base_url=(
            (_env_value(env, "ASSETS_PUBLIC_BASE_URL") or "").rstrip("/") or None
        ),
        timeout_seconds=_bounded_float(
            _env_value(env, "ASSETS_TIMEOUT_SECONDS"), default=30.0, minimum=1.0
        ),
        max_bytes=_bounded_int(
            _env_value(env, "ASSETS_MAX_BYTES"),
            default=DEFAULT_ASSET_MAX_BYTES,
            minimum=1,
        ),
    )
    export = ExportConfig(
        content_types=_parse_content_types(_env_value(env, "EXPORT_CONTENT_TYPES")),
        similar_concurrency=_bounded_int(
            _env_value(env, "EXPORT_SIMILAR_CONCURRENCY"),
            default=DEFAULT_SIMILAR_CONCURRENCY,
            minimum=1,
            maximum=50,
        ),
    )

    return AppConfig(
        logging=logging_config,
        database=database,
        source=source,
        tmdb=tmdb,
        assets=assets,
        export=export,
    )


__all__ = [
    "AppConfig",
    "AssetStoreConfig",
    "ContentType",
    "DatabaseConfig",
    "ExportConfig",
    "LoggingConfig",
    "SourceConfig",
    "TmdbConfig",
    "get_runtime_env",
    "load_config",
    "load_runtime_env",
    "override_runtime_env",
]

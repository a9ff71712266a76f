"""Destination path helpers for relocated assets."""

from __future__ import annotations

from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse

__all__ = ["asset_path", "url_basename"]


def url_basename(url: str) -> str:
    """Return the last path segment of ``url`` without query or fragment."""

    parsed = urlparse(url.strip())
    path = unquote(parsed.path or "")
    name = PurePosixPath(path).name
    if not name:
        raise ValueError(f"URL has no file name: {url!r}")
    return name


def _clean_segment(segment: object) -> str:
    text = str(segment).strip().strip("/")
    if not text or text in {".", ".."} or "/" in text:
        raise ValueError(f"Invalid path segment: {segment!r}")
    return text


def asset_path(kind: str, key: str, *segments: object) -> str:
    """Build ``<kind>/<key>/<segment...>`` from safe path segments."""

    parts = [_clean_segment(kind), _clean_segment(key)]
    parts.extend(_clean_segment(segment) for segment in segments)
    return "/".join(parts)

"""Time helpers with monotonic clocks."""

from __future__ import annotations

import time as _time

__all__ = ["elapsed_ms", "monotonic_ms"]


def monotonic_ms() -> int:
    """Return a monotonic timestamp in milliseconds."""

    return _time.monotonic_ns() // 1_000_000


def elapsed_ms(started_ms: int) -> int:
    return max(0, monotonic_ms() - started_ms)

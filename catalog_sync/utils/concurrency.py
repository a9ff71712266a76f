"""Bounded fan-out helper shared across enrichment services."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import TypeVar

from catalog_sync.logging import get_logger
from catalog_sync.logging_events import log_event

__all__ = ["BoundedRunResult", "run_bounded"]

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class BoundedRunResult:
    attempted: int
    failed: int

    @property
    def succeeded(self) -> int:
        return self.attempted - self.failed


async def run_bounded(
    items: Iterable[T],
    operation: Callable[[T], Awaitable[object]],
    *,
    limit: int,
    label: str = "bounded",
) -> BoundedRunResult:
    """Run ``operation`` for every item with at most ``limit`` calls in flight.

    Every item is attempted. A failing item is logged and counted, it never
    cancels or blocks its siblings. Cancellation of the caller propagates.
    """

    semaphore = asyncio.Semaphore(max(1, int(limit)))
    pending = list(items)

    async def _guarded(item: T) -> bool:
        async with semaphore:
            try:
                await operation(item)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                log_event(
                    logger,
                    "catalog.bounded.item_failed",
                    level=logging.WARNING,
                    label=label,
                    item=str(item),
                    error=type(exc).__name__,
                    detail=str(exc),
                )
                return False
        return True

    outcomes = await asyncio.gather(*(_guarded(item) for item in pending))
    failed = sum(1 for ok in outcomes if not ok)
    return BoundedRunResult(attempted=len(pending), failed=failed)

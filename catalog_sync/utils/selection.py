"""Best-candidate selection for provider image listings."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar

__all__ = ["prefer_better_voted", "prefer_wider", "select_best"]

T = TypeVar("T")

Preference = Callable[[T, T], bool]


def select_best(candidates: Iterable[T | None], prefer: Preference[T]) -> T | None:
    """Fold ``candidates`` left to right and return the running winner.

    ``prefer(current, challenger)`` returns ``True`` when the challenger should
    replace the current winner. ``None`` entries never win over a real
    candidate; an all-``None`` or empty input yields ``None``.
    """

    best: T | None = None
    for candidate in candidates:
        if candidate is None:
            continue
        if best is None or prefer(best, candidate):
            best = candidate
    return best


def _metric(item: Any, name: str) -> float | None:
    if isinstance(item, Mapping):
        value = item.get(name)
    else:
        value = getattr(item, name, None)
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _prefer_larger(name: str) -> Preference[Any]:
    def prefer(current: Any, challenger: Any) -> bool:
        challenger_value = _metric(challenger, name)
        if challenger_value is None:
            return False
        current_value = _metric(current, name)
        return current_value is None or challenger_value > current_value

    prefer.__name__ = f"prefer_larger_{name}"
    return prefer


prefer_wider: Preference[Any] = _prefer_larger("width")
prefer_better_voted: Preference[Any] = _prefer_larger("vote_average")

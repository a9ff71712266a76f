"""Field and collection merge rules applied when a record already exists."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from sqlalchemy import inspect

from catalog_sync.models import Episode, Movie, MovieTorrent, Show, ShowRating

C = TypeVar("C")

SHOW_FIELDS: tuple[str, ...] = (
    "title",
    "status",
    "air_day",
    "air_time",
    "num_seasons",
    "genres_display",
)
SHOW_RATING_FIELDS: tuple[str, ...] = ("percentage", "watching", "votes", "loved", "hated")
EPISODE_FIELDS: tuple[str, ...] = ("title",)
TORRENT_COUNTER_FIELDS: tuple[str, ...] = ("peers", "seeds")
MOVIE_FIELDS: tuple[str, ...] = (
    "title",
    "title_long",
    "rating",
    "download_count",
    "like_count",
    "mpa_rating",
    "genres_display",
)


@dataclass(slots=True)
class MergeResult(Generic[C]):
    """Children touched by one merge; ``appended`` are the newly adopted ones."""

    patched: int = 0
    appended: list[C] = field(default_factory=list)


def copy_fields(target: Any, source: Any, names: Iterable[str]) -> None:
    for name in names:
        setattr(target, name, getattr(source, name))


def merge_children(
    existing: list[C],
    incoming: Sequence[C],
    *,
    key: Callable[[C], Any],
    patch: Callable[[C, C], None],
    adopt: Callable[[C], C] | None = None,
) -> MergeResult[C]:
    """Patch children sharing a key and append the ones ``existing`` lacks.

    Existing children without an incoming counterpart stay untouched. Missing
    children pass through ``adopt`` before being appended, which lets ORM
    callers append fresh rows instead of objects still owned by the decoded
    parent. The set difference is computed before any append.
    """

    result: MergeResult[C] = MergeResult()
    incoming_by_key: dict[Any, C] = {}
    for child in incoming:
        incoming_by_key.setdefault(key(child), child)

    for child in existing:
        match = incoming_by_key.get(key(child))
        if match is not None:
            patch(child, match)
            result.patched += 1

    known = {key(child) for child in existing}
    missing = [child for child_key, child in incoming_by_key.items() if child_key not in known]
    for child in missing:
        adopted = adopt(child) if adopt is not None else child
        existing.append(adopted)
        result.appended.append(adopted)
    return result


def copy_row(row: Any, **relations: Any) -> Any:
    """Return a new instance of ``row``'s class carrying its plain column values.

    Primary keys, foreign keys and unset values are left to the column defaults;
    ``relations`` are assigned as-is.
    """

    mapper = inspect(type(row))
    values: dict[str, Any] = {}
    for attribute in mapper.column_attrs:
        column = attribute.columns[0]
        if column.primary_key or column.foreign_keys:
            continue
        value = getattr(row, attribute.key)
        if value is not None:
            values[attribute.key] = value
    values.update(relations)
    return type(row)(**values)


def _adopt_episode(episode: Episode) -> Episode:
    return copy_row(
        episode,
        torrents=[copy_row(torrent) for torrent in episode.torrents],
    )


def _adopt_movie_torrent(torrent: MovieTorrent) -> MovieTorrent:
    return copy_row(torrent)


def _patch_counters(target: Iterable[Any], source: Iterable[Any]) -> None:
    by_quality = {torrent.quality: torrent for torrent in source}
    for torrent in target:
        match = by_quality.get(torrent.quality)
        if match is not None:
            copy_fields(torrent, match, TORRENT_COUNTER_FIELDS)


def _patch_episode(existing: Episode, incoming: Episode) -> None:
    copy_fields(existing, incoming, EPISODE_FIELDS)
    _patch_counters(existing.torrents, incoming.torrents)


def recompute_last_updated(show: Show) -> None:
    """Set ``last_updated`` to the latest episode air date when episodes exist."""

    aired = [episode.first_aired or 0 for episode in show.episodes]
    if aired:
        show.last_updated = max(aired)


def merge_show(existing: Show, incoming: Show) -> MergeResult[Episode]:
    copy_fields(existing, incoming, SHOW_FIELDS)
    if incoming.rating is not None:
        if existing.rating is None:
            existing.rating = ShowRating()
        copy_fields(existing.rating, incoming.rating, SHOW_RATING_FIELDS)

    result = merge_children(
        existing.episodes,
        list(incoming.episodes),
        key=lambda episode: episode.tvdb_id,
        patch=_patch_episode,
        adopt=_adopt_episode,
    )
    recompute_last_updated(existing)
    return result


def merge_movie(existing: Movie, incoming: Movie) -> MergeResult[MovieTorrent]:
    copy_fields(existing, incoming, MOVIE_FIELDS)
    return merge_children(
        existing.torrents,
        list(incoming.torrents),
        key=lambda torrent: torrent.quality,
        patch=lambda current, update: copy_fields(current, update, TORRENT_COUNTER_FIELDS),
        adopt=_adopt_movie_torrent,
    )


__all__ = [
    "MergeResult",
    "copy_row",
    "merge_children",
    "merge_movie",
    "merge_show",
    "recompute_last_updated",
]

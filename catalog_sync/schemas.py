"""Source document schemas and decoding into catalog records.

Raw documents read from the source store are schema-flexible trees. Decoding
happens in two stages: the tree is validated into a pydantic document, then the
document is converted into a fresh, transient ORM record. Decoding never
raises; callers receive a :class:`DecodeResult` carrying either the record or
the reason the document was rejected.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from catalog_sync.models import (
    CastMember,
    Episode,
    EpisodeTorrent,
    Genre,
    Movie,
    MovieTorrent,
    Show,
    ShowImages,
    ShowRating,
)

T = TypeVar("T")
K = TypeVar("K")


class _SourceModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def _blank_to_empty(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _require_text(value: Any) -> str:
    text = _blank_to_empty(value)
    if not text:
        raise ValueError("value must not be empty")
    return text


class CastDocument(_SourceModel):
    name: str
    character_name: str = ""
    imdb_code: str = ""
    small_image: str = Field(default="", alias="url_small_image")

    @field_validator("character_name", "imdb_code", "small_image", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> str:
        return _blank_to_empty(value)


class MovieTorrentDocument(_SourceModel):
    quality: str
    url: str = ""
    hash: str | None = None
    seeds: int = 0
    peers: int = 0
    size: str | None = None
    size_bytes: int | None = None
    date_uploaded: str | None = None
    date_uploaded_unix: int = 0

    @field_validator("quality", mode="before")
    @classmethod
    def _ensure_quality(cls, value: Any) -> str:
        return _require_text(value)

    @field_validator("url", mode="before")
    @classmethod
    def _optional_url(cls, value: Any) -> str:
        return _blank_to_empty(value)


class MovieDocument(_SourceModel):
    imdb_code: str
    title: str
    title_long: str | None = None
    slug: str | None = None
    year: int
    rating: float = 0.0
    runtime: int = 0
    genres: list[str] = Field(default_factory=list)
    language: str | None = None
    mpa_rating: str | None = None
    download_count: int = 0
    like_count: int = 0
    description_intro: str | None = None
    description_full: str | None = None
    yt_trailer_code: str | None = None
    url: str | None = None
    date_uploaded: str | None = None
    date_uploaded_unix: int = 0
    background_image: str = ""
    small_cover_image: str = ""
    medium_cover_image: str = ""
    large_cover_image: str = ""
    medium_screenshot_image1: str = ""
    medium_screenshot_image2: str = ""
    medium_screenshot_image3: str = ""
    large_screenshot_image1: str = ""
    large_screenshot_image2: str = ""
    large_screenshot_image3: str = ""
    torrents: list[MovieTorrentDocument] = Field(default_factory=list)
    cast: list[CastDocument] = Field(default_factory=list)

    @field_validator("imdb_code", "title", mode="before")
    @classmethod
    def _ensure_text(cls, value: Any) -> str:
        return _require_text(value)

    @field_validator(
        "background_image",
        "small_cover_image",
        "medium_cover_image",
        "large_cover_image",
        "medium_screenshot_image1",
        "medium_screenshot_image2",
        "medium_screenshot_image3",
        "large_screenshot_image1",
        "large_screenshot_image2",
        "large_screenshot_image3",
        mode="before",
    )
    @classmethod
    def _optional_media(cls, value: Any) -> str:
        return _blank_to_empty(value)

    @field_validator("genres", "torrents", "cast", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_record(self) -> Movie:
        movie = Movie(
            imdb_code=self.imdb_code,
            title=self.title,
            title_long=self.title_long,
            slug=self.slug,
            year=self.year,
            rating=self.rating,
            runtime=self.runtime,
            language=self.language,
            mpa_rating=self.mpa_rating,
            download_count=self.download_count,
            like_count=self.like_count,
            description_intro=self.description_intro,
            description_full=self.description_full,
            yt_trailer_code=self.yt_trailer_code,
            url=self.url,
            date_uploaded=self.date_uploaded,
            date_uploaded_unix=self.date_uploaded_unix,
            genres_display=genres_display(self.genres),
            backdrop_image="",
            poster_image="",
            background_image=self.background_image,
            small_cover_image=self.small_cover_image,
            medium_cover_image=self.medium_cover_image,
            large_cover_image=self.large_cover_image,
            medium_screenshot_image1=self.medium_screenshot_image1,
            medium_screenshot_image2=self.medium_screenshot_image2,
            medium_screenshot_image3=self.medium_screenshot_image3,
            large_screenshot_image1=self.large_screenshot_image1,
            large_screenshot_image2=self.large_screenshot_image2,
            large_screenshot_image3=self.large_screenshot_image3,
        )
        movie.genres = [Genre(name=name) for name in _unique_names(self.genres)]
        movie.torrents = [
            MovieTorrent(
                quality=torrent.quality,
                url=torrent.url,
                hash=torrent.hash,
                seeds=torrent.seeds,
                peers=torrent.peers,
                size=torrent.size,
                size_bytes=torrent.size_bytes,
                date_uploaded=torrent.date_uploaded,
                date_uploaded_unix=torrent.date_uploaded_unix,
            )
            for torrent in _unique_by(self.torrents, lambda item: item.quality)
        ]
        movie.cast = [
            CastMember(
                imdb_code=member.imdb_code or None,
                name=member.name,
                character_name=member.character_name or None,
                small_image=member.small_image,
            )
            for member in self.cast
        ]
        return movie


class RatingDocument(_SourceModel):
    percentage: int = 0
    watching: int = 0
    votes: int = 0
    loved: int = 0
    hated: int = 0


class ImagesDocument(_SourceModel):
    banner: str = ""
    fanart: str = ""
    poster: str = ""

    @field_validator("banner", "fanart", "poster", mode="before")
    @classmethod
    def _optional_media(cls, value: Any) -> str:
        return _blank_to_empty(value)


class EpisodeTorrentDocument(_SourceModel):
    provider: str | None = None
    peers: int = 0
    seeds: int = 0
    url: str = ""

    @field_validator("url", mode="before")
    @classmethod
    def _optional_url(cls, value: Any) -> str:
        return _blank_to_empty(value)

    @field_validator("peers", "seeds", mode="before")
    @classmethod
    def _none_as_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class EpisodeDocument(_SourceModel):
    tvdb_id: int
    title: str | None = None
    overview: str | None = None
    season: int = 0
    episode: int = 0
    first_aired: int = 0
    date_based: bool = False
    torrents: dict[str, EpisodeTorrentDocument | None] = Field(default_factory=dict)

    @field_validator("torrents", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("first_aired", mode="before")
    @classmethod
    def _none_as_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    def to_record(self) -> Episode:
        episode = Episode(
            tvdb_id=self.tvdb_id,
            title=self.title,
            overview=self.overview,
            season=self.season,
            episode_number=self.episode,
            first_aired=self.first_aired,
            date_based=self.date_based,
        )
        episode.torrents = [
            EpisodeTorrent(
                quality=quality,
                provider=torrent.provider,
                peers=torrent.peers,
                seeds=torrent.seeds,
                url=torrent.url,
            )
            for quality, torrent in self.torrents.items()
            if torrent is not None
        ]
        return episode


class ShowDocument(_SourceModel):
    imdb_id: str
    tvdb_id: str | None = None
    title: str
    year: int
    slug: str | None = None
    synopsis: str | None = None
    runtime: str | None = None
    country: str | None = None
    network: str | None = None
    air_day: str | None = None
    air_time: str | None = None
    status: str | None = None
    num_seasons: int = 0
    rating: RatingDocument = Field(default_factory=RatingDocument)
    images: ImagesDocument = Field(default_factory=ImagesDocument)
    genres: list[str] = Field(default_factory=list)
    episodes: list[EpisodeDocument] = Field(default_factory=list)

    @field_validator("imdb_id", "title", mode="before")
    @classmethod
    def _ensure_text(cls, value: Any) -> str:
        return _require_text(value)

    @field_validator("tvdb_id", "runtime", mode="before")
    @classmethod
    def _optional_identifier(cls, value: Any) -> str | None:
        text = _blank_to_empty(value)
        return text or None

    @field_validator("rating", "images", mode="before")
    @classmethod
    def _none_as_default(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("genres", "episodes", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_record(self) -> Show:
        show = Show(
            imdb_id=self.imdb_id,
            tvdb_id=self.tvdb_id,
            title=self.title,
            year=self.year,
            slug=self.slug,
            synopsis=self.synopsis,
            runtime=self.runtime,
            country=self.country,
            network=self.network,
            air_day=self.air_day,
            air_time=self.air_time,
            status=self.status,
            num_seasons=self.num_seasons,
            last_updated=0,
            genres_display=genres_display(self.genres),
        )
        show.rating = ShowRating(**self.rating.model_dump())
        show.images = ShowImages(**self.images.model_dump())
        show.genres = [Genre(name=name) for name in _unique_names(self.genres)]
        show.episodes = [
            episode.to_record()
            for episode in _unique_by(self.episodes, lambda item: item.tvdb_id)
        ]
        return show


def genres_display(genres: Iterable[str]) -> str:
    """Return the display string for a list of genre names."""

    return ", ".join(_unique_names(genres))


def _unique_names(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    names: list[str] = []
    for value in values:
        text = _blank_to_empty(value)
        if not text or text.casefold() in seen:
            continue
        seen.add(text.casefold())
        names.append(text)
    return names


def _unique_by(items: Iterable[T], key: Callable[[T], K]) -> list[T]:
    seen: set[K] = set()
    unique: list[T] = []
    for item in items:
        identity = key(item)
        if identity in seen:
            continue
        seen.add(identity)
        unique.append(item)
    return unique


@dataclass(slots=True, frozen=True)
class DecodeResult(Generic[T]):
    """Tagged outcome of decoding one raw source document."""

    record: T | None = None
    reason: str | None = None
    key: str | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None

    @classmethod
    def success(cls, record: T, *, key: str) -> "DecodeResult[T]":
        return cls(record=record, key=key)

    @classmethod
    def failure(cls, reason: str, *, key: str | None = None) -> "DecodeResult[T]":
        return cls(reason=reason, key=key)


def _describe_validation_error(exc: ValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors()[:5]:
        location = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


def _raw_key(raw: Any, field_name: str) -> str | None:
    if not isinstance(raw, Mapping):
        return None
    value = raw.get(field_name)
    return str(value) if value is not None else None


def decode_movie(raw: Any) -> DecodeResult[Movie]:
    key = _raw_key(raw, "imdb_code")
    if not isinstance(raw, Mapping):
        return DecodeResult.failure("document is not a mapping", key=key)
    try:
        document = MovieDocument.model_validate(raw)
    except ValidationError as exc:
        return DecodeResult.failure(_describe_validation_error(exc), key=key)
    return DecodeResult.success(document.to_record(), key=document.imdb_code)


def decode_show(raw: Any) -> DecodeResult[Show]:
    key = _raw_key(raw, "imdb_id")
    if not isinstance(raw, Mapping):
        return DecodeResult.failure("document is not a mapping", key=key)
    try:
        document = ShowDocument.model_validate(raw)
    except ValidationError as exc:
        return DecodeResult.failure(_describe_validation_error(exc), key=key)
    return DecodeResult.success(document.to_record(), key=document.imdb_id)


__all__ = [
    "CastDocument",
    "DecodeResult",
    "EpisodeDocument",
    "MovieDocument",
    "ShowDocument",
    "decode_movie",
    "decode_show",
    "genres_display",
]

"""Database models for the served catalog."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from catalog_sync.db import Base


def _utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp for ORM defaults."""

    return datetime.now(UTC)


class Genre(Base):
    __tablename__ = "genres"

    id = Column(Integer, primary_key=True)
    name = Column(String(128), nullable=False)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), index=True)
    show_id = Column(Integer, ForeignKey("shows.id", ondelete="CASCADE"), index=True)


class Similar(Base):
    """External identifier of a related title."""

    __tablename__ = "similars"

    id = Column(Integer, primary_key=True)
    external_id = Column(String(64), nullable=False)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), index=True)
    show_id = Column(Integer, ForeignKey("shows.id", ondelete="CASCADE"), index=True)


class Movie(Base):
    __tablename__ = "movies"

    id = Column(Integer, primary_key=True)
    imdb_code = Column(String(32), nullable=False, unique=True, index=True)
    title = Column(String(512), nullable=False)
    title_long = Column(String(512), nullable=True)
    slug = Column(String(512), nullable=True)
    year = Column(Integer, nullable=False)
    rating = Column(Float, nullable=False, default=0.0)
    runtime = Column(Integer, nullable=False, default=0)
    language = Column(String(16), nullable=True)
    mpa_rating = Column(String(16), nullable=True)
    download_count = Column(Integer, nullable=False, default=0)
    like_count = Column(Integer, nullable=False, default=0)
    description_intro = Column(Text, nullable=True)
    description_full = Column(Text, nullable=True)
    yt_trailer_code = Column(String(64), nullable=True)
    url = Column(String(2048), nullable=True)
    date_uploaded = Column(String(32), nullable=True)
    date_uploaded_unix = Column(BigInteger, nullable=False, default=0)
    genres_display = Column(String(512), nullable=True)

    backdrop_image = Column(String(2048), nullable=True)
    poster_image = Column(String(2048), nullable=True)
    background_image = Column(String(2048), nullable=True)
    small_cover_image = Column(String(2048), nullable=True)
    medium_cover_image = Column(String(2048), nullable=True)
    large_cover_image = Column(String(2048), nullable=True)
    medium_screenshot_image1 = Column(String(2048), nullable=True)
    medium_screenshot_image2 = Column(String(2048), nullable=True)
    medium_screenshot_image3 = Column(String(2048), nullable=True)
    large_screenshot_image1 = Column(String(2048), nullable=True)
    large_screenshot_image2 = Column(String(2048), nullable=True)
    large_screenshot_image3 = Column(String(2048), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    torrents = relationship(
        "MovieTorrent",
        back_populates="movie",
        cascade="all, delete-orphan",
        order_by="MovieTorrent.id",
    )
    cast = relationship(
        "CastMember",
        back_populates="movie",
        cascade="all, delete-orphan",
        order_by="CastMember.id",
    )
    genres = relationship("Genre", cascade="all, delete-orphan", order_by="Genre.id")
    similars = relationship("Similar", cascade="all, delete-orphan", order_by="Similar.id")


class MovieTorrent(Base):
    __tablename__ = "movie_torrents"
    __table_args__ = (UniqueConstraint("movie_id", "quality", name="uq_movie_torrent_quality"),)

    id = Column(Integer, primary_key=True)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False)
    quality = Column(String(32), nullable=False)
    url = Column(String(2048), nullable=True)
    hash = Column(String(64), nullable=True)
    seeds = Column(Integer, nullable=False, default=0)
    peers = Column(Integer, nullable=False, default=0)
    size = Column(String(32), nullable=True)
    size_bytes = Column(BigInteger, nullable=True)
    date_uploaded = Column(String(32), nullable=True)
    date_uploaded_unix = Column(BigInteger, nullable=False, default=0)

    movie = relationship("Movie", back_populates="torrents")


class CastMember(Base):
    __tablename__ = "movie_cast"

    id = Column(Integer, primary_key=True)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False)
    imdb_code = Column(String(32), nullable=True)
    name = Column(String(255), nullable=False)
    character_name = Column(String(255), nullable=True)
    small_image = Column(String(2048), nullable=True)

    movie = relationship("Movie", back_populates="cast")


class Show(Base):
    __tablename__ = "shows"

    id = Column(Integer, primary_key=True)
    imdb_id = Column(String(32), nullable=False, unique=True, index=True)
    tvdb_id = Column(String(32), nullable=True)
    title = Column(String(512), nullable=False)
    year = Column(Integer, nullable=False)
    slug = Column(String(512), nullable=True)
    synopsis = Column(Text, nullable=True)
    runtime = Column(String(32), nullable=True)
    country = Column(String(16), nullable=True)
    network = Column(String(255), nullable=True)
    air_day = Column(String(32), nullable=True)
    air_time = Column(String(32), nullable=True)
    status = Column(String(64), nullable=True)
    num_seasons = Column(Integer, nullable=False, default=0)
    last_updated = Column(BigInteger, nullable=False, default=0)
    genres_display = Column(String(512), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    rating = relationship(
        "ShowRating",
        back_populates="show",
        uselist=False,
        cascade="all, delete-orphan",
    )
    images = relationship(
        "ShowImages",
        back_populates="show",
        uselist=False,
        cascade="all, delete-orphan",
    )
    episodes = relationship(
        "Episode",
        back_populates="show",
        cascade="all, delete-orphan",
        order_by="Episode.id",
    )
    genres = relationship("Genre", cascade="all, delete-orphan", order_by="Genre.id")
    similars = relationship("Similar", cascade="all, delete-orphan", order_by="Similar.id")


class ShowRating(Base):
    __tablename__ = "show_ratings"

    id = Column(Integer, primary_key=True)
    show_id = Column(
        Integer, ForeignKey("shows.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    percentage = Column(Integer, nullable=False, default=0)
    watching = Column(Integer, nullable=False, default=0)
    votes = Column(Integer, nullable=False, default=0)
    loved = Column(Integer, nullable=False, default=0)
    hated = Column(Integer, nullable=False, default=0)

    show = relationship("Show", back_populates="rating")


class ShowImages(Base):
    __tablename__ = "show_images"

    id = Column(Integer, primary_key=True)
    show_id = Column(
        Integer, ForeignKey("shows.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    banner = Column(String(2048), nullable=True)
    fanart = Column(String(2048), nullable=True)
    poster = Column(String(2048), nullable=True)

    show = relationship("Show", back_populates="images")


class Episode(Base):
    __tablename__ = "episodes"
    __table_args__ = (UniqueConstraint("show_id", "tvdb_id", name="uq_episode_tvdb_id"),)

    id = Column(Integer, primary_key=True)
    show_id = Column(Integer, ForeignKey("shows.id", ondelete="CASCADE"), nullable=False)
    tvdb_id = Column(Integer, nullable=False)
    title = Column(String(512), nullable=True)
    overview = Column(Text, nullable=True)
    season = Column(Integer, nullable=False, default=0)
    episode_number = Column(Integer, nullable=False, default=0)
    first_aired = Column(BigInteger, nullable=False, default=0)
    date_based = Column(Boolean, nullable=False, default=False)

    show = relationship("Show", back_populates="episodes")
    torrents = relationship(
        "EpisodeTorrent",
        back_populates="episode",
        cascade="all, delete-orphan",
        order_by="EpisodeTorrent.id",
    )


class EpisodeTorrent(Base):
    __tablename__ = "episode_torrents"
    __table_args__ = (
        UniqueConstraint("episode_id", "quality", name="uq_episode_torrent_quality"),
    )

    id = Column(Integer, primary_key=True)
    episode_id = Column(
        Integer, ForeignKey("episodes.id", ondelete="CASCADE"), nullable=False
    )
    quality = Column(String(16), nullable=False)
    provider = Column(String(128), nullable=True)
    peers = Column(Integer, nullable=False, default=0)
    seeds = Column(Integer, nullable=False, default=0)
    url = Column(Text, nullable=True)

    episode = relationship("Episode", back_populates="torrents")


__all__ = [
    "CastMember",
    "Episode",
    "EpisodeTorrent",
    "Genre",
    "Movie",
    "MovieTorrent",
    "Show",
    "ShowImages",
    "ShowRating",
    "Similar",
]

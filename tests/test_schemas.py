from __future__ import annotations

from catalog_sync.models import Movie, Show
from catalog_sync.schemas import decode_movie, decode_show, genres_display
from tests.helpers import episode_document, movie_document, show_document, torrent_document


def test_decode_movie_builds_record_with_children() -> None:
    result = decode_movie(movie_document("tt0111161"))

    assert result.ok
    assert result.key == "tt0111161"
    movie = result.record
    assert isinstance(movie, Movie)
    assert movie.year == 2010
    assert movie.genres_display == "Action, Drama"
    assert [genre.name for genre in movie.genres] == ["Action", "Drama"]
    assert [torrent.quality for torrent in movie.torrents] == ["720p"]
    assert movie.cast[0].small_image == "https://yts.test/assets/cast/lead.jpg"
    assert movie.large_cover_image == ""
    assert movie.backdrop_image == ""


def test_decode_movie_keeps_first_torrent_per_quality() -> None:
    document = movie_document(
        torrents=[
            torrent_document("720p", seeds=1),
            torrent_document("1080p"),
            torrent_document("720p", seeds=99),
        ]
    )

    movie = decode_movie(document).record

    assert [(t.quality, t.seeds) for t in movie.torrents] == [("720p", 1), ("1080p", 1)]


def test_decode_movie_rejects_unparseable_year() -> None:
    result = decode_movie(movie_document("tt0000002", year="nineteen"))

    assert not result.ok
    assert result.record is None
    assert result.key == "tt0000002"
    assert "year" in (result.reason or "")


def test_decode_movie_rejects_missing_natural_key() -> None:
    document = movie_document()
    document.pop("imdb_code")

    result = decode_movie(document)

    assert not result.ok
    assert result.key is None
    assert "imdb_code" in (result.reason or "")


def test_decode_rejects_non_mapping_documents() -> None:
    assert not decode_movie(["not", "a", "document"]).ok
    assert not decode_show(None).ok


def test_decode_show_coerces_source_values() -> None:
    result = decode_show(show_document())

    assert result.ok
    show = result.record
    assert isinstance(show, Show)
    assert show.year == 2008
    assert show.tvdb_id == "81189"
    assert show.rating.percentage == 90
    assert show.images.banner == "https://img.test/banners/tt0903747.jpg"
    assert show.genres_display == "drama, crime"
    assert [episode.tvdb_id for episode in show.episodes] == [1, 2]
    first = show.episodes[0]
    assert [torrent.quality for torrent in first.torrents] == ["480p"]
    assert first.torrents[0].seeds == 2


def test_decode_show_defaults_missing_sub_documents() -> None:
    result = decode_show(
        show_document(rating=None, images=None, genres=None, episodes=None, tvdb_id=None)
    )

    show = result.record
    assert result.ok
    assert show.rating.votes == 0
    assert show.images.poster == ""
    assert show.episodes == []
    assert show.tvdb_id is None
    assert show.genres_display == ""


def test_decode_show_requires_episode_identifier() -> None:
    broken = episode_document(3, 1_300_000_000)
    broken.pop("tvdb_id")

    result = decode_show(show_document(episodes=[episode_document(1, 1), broken]))

    assert not result.ok
    assert result.key == "tt0903747"
    assert "tvdb_id" in (result.reason or "")


def test_decode_show_deduplicates_episodes_by_key() -> None:
    episodes = [
        episode_document(1, 10, title="First"),
        episode_document(1, 20, title="Duplicate"),
    ]

    show = decode_show(show_document(episodes=episodes)).record

    assert [(e.tvdb_id, e.title) for e in show.episodes] == [(1, "First")]


def test_genres_display_skips_blank_and_repeated_names() -> None:
    assert genres_display(["Drama", " ", "drama", "Crime"]) == "Drama, Crime"

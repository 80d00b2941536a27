"""Tests for the SQLModel-backed catalog stores."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import get_type_hints

import pytest
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.indexer.db import (  # noqa: E402
    create_engine_from_settings,
    init_database,
    read_statistics,
)
from backend.indexer.models import (  # noqa: E402
    FileRecord,
    GenreRecord,
    MovieCastRecord,
    MovieGenreLink,
)
from backend.indexer.schemas import (  # noqa: E402
    CastMember,
    CatalogFile,
    CrewMember,
    Episode,
    ExternalLink,
    Genre,
    Movie,
    Season,
    Show,
    Studio,
)
from backend.indexer.settings import IndexerSettings  # noqa: E402
from backend.indexer.stores.facet_store import FacetStore  # noqa: E402
from backend.indexer.stores.file_store import FileStore  # noqa: E402
from backend.indexer.stores.genre_store import GenreStore  # noqa: E402
from backend.indexer.stores.movie_store import MovieStore  # noqa: E402
from backend.indexer.stores.show_store import ShowStore  # noqa: E402


@pytest.fixture()
def engine(tmp_path: Path) -> Engine:
    """Provide an isolated SQLite catalog with every table created."""

    settings = IndexerSettings(database_url=f"sqlite:///{tmp_path / 'catalog.db'}", _env_file=None)
    engine = create_engine_from_settings(settings)
    init_database(engine)
    yield engine
    engine.dispose()


def make_file(file_id: str, modified_time: int = 1) -> CatalogFile:
    return CatalogFile(id=file_id, name=f"{file_id}.mkv", size=10, modified_time=modified_time)


def make_movie(movie_id: int, file_id: str, **overrides) -> Movie:
    values = dict(
        id=movie_id,
        title=f"Movie {movie_id}",
        imdb_id=f"tt{movie_id:07d}",
        release_year=2010,
        parental_rating="PG-13",
        file_id=file_id,
        cast=[CastMember(person_id=1, name="Lead", role="Hero", gender="Female")],
        crew=[CrewMember(person_id=2, name="Boss", job="Director")],
        genres=[Genre(id=28, name="Action")],
        studios=[Studio(id=7, name="Studio Seven", origin_country="US")],
        external_links=[ExternalLink(name="imdb_id", url=f"tt{movie_id:07d}")],
    )
    values.update(overrides)
    return Movie(**values)


def make_show(show_id: int, **overrides) -> Show:
    values = dict(
        id=show_id,
        title=f"Show {show_id}",
        imdb_id=f"tt{show_id:07d}",
        release_year_from=2020,
        parental_rating="TV-MA",
        modified_time=5,
        genres=[Genre(id=18, name="Drama")],
        studios=[Studio(id=8, name="Network Eight")],
    )
    values.update(overrides)
    return Show(**values)


def make_season(season_id: int, show_id: int, number: int = 1) -> Season:
    return Season(id=season_id, name=f"Season {number}", season_number=number, show_id=show_id)


def make_episode(episode_id: int, season_id: int, file_id: str, number: int = 1) -> Episode:
    return Episode(
        id=episode_id,
        title=f"Episode {number}",
        episode_number=number,
        season_number=1,
        season_id=season_id,
        file_id=file_id,
    )


def test_movie_upsert_writes_movie_file_and_credits(engine: Engine) -> None:
    """A movie, its file and its credits are written together and read back."""

    movies = MovieStore(engine)
    files = FileStore(engine)

    assert movies.upsert(make_movie(10, "f10"), make_file("f10")) is True

    stored = movies.get(10)
    assert stored is not None
    assert stored.title == "Movie 10"
    assert stored.file_id == "f10"
    assert [member.name for member in stored.cast] == ["Lead"]
    assert stored.cast[0].gender == "Female"
    assert [genre.name for genre in stored.genres] == ["Action"]
    assert [studio.origin_country for studio in stored.studios] == ["US"]
    assert [link.url for link in stored.external_links] == ["tt0000010"]
    assert [file.id for file in files.movie_files()] == ["f10"]
    assert files.episode_files() == []
    assert movies.ids() == {10}


def test_movie_upsert_skips_catalogued_movie(engine: Engine) -> None:
    """A second file for an existing movie is not written."""

    movies = MovieStore(engine)
    movies.upsert(make_movie(10, "f10"), make_file("f10"))

    assert movies.upsert(make_movie(10, "other"), make_file("other")) is False
    assert FileStore(engine).get("other") is None


def test_movie_upsert_rolls_back_on_database_error(engine: Engine) -> None:
    """A failing statement leaves no partial movie behind."""

    movies = MovieStore(engine)
    bad = make_movie(11, "f11")
    bad.external_links.append(ExternalLink.model_construct(name="broken", url=None))

    assert movies.upsert(bad, make_file("f11")) is False
    assert movies.get(11) is None
    assert FileStore(engine).get("f11") is None


def test_file_delete_removes_owning_movie_and_links(engine: Engine) -> None:
    """Deleting a movie's file removes the movie with its dependent rows."""

    movies = MovieStore(engine)
    files = FileStore(engine)
    movies.upsert(make_movie(10, "f10"), make_file("f10"))
    movies.upsert(make_movie(11, "f11"), make_file("f11"))

    assert files.delete(["f10"]) == 1

    assert movies.ids() == {11}
    with Session(engine) as session:
        assert session.exec(select(MovieCastRecord).where(MovieCastRecord.movie_id == 10)).all() == []
        assert session.exec(select(MovieGenreLink).where(MovieGenreLink.movie_id == 10)).all() == []
        assert session.get(GenreRecord, 28) is not None


def test_file_update_modified_time(engine: Engine) -> None:
    """Modification times are rewritten for the given files only."""

    movies = MovieStore(engine)
    files = FileStore(engine)
    movies.upsert(make_movie(10, "f10"), make_file("f10", 1))

    assert files.update_modified_time([make_file("f10", 99), make_file("missing", 5)]) == 1
    assert files.get("f10").modified_time == 99


def test_genre_store_adds_with_kind_and_skips_conflicts(engine: Engine) -> None:
    """Genres keep the first kind they were inserted with."""

    genres = GenreStore(engine)

    assert genres.add([Genre(id=28, name="Action")], "movie") is True
    assert genres.add([Genre(id=28, name="Action"), Genre(id=18, name="Drama")], "both") is True

    assert [genre.id for genre in genres.list()] == [18, 28]
    assert genres.kinds() == {18: "both", 28: "movie"}


def test_unsupported_database_backend_is_rejected_up_front() -> None:
    """Only backends with conflict-skipping inserts get an engine."""

    settings = IndexerSettings(database_url="mysql://indexer:pw@db/catalog", _env_file=None)

    with pytest.raises(ValueError, match="mysql"):
        create_engine_from_settings(settings)


def test_store_writes_fail_softly_on_dialects_without_conflict_skipping(engine: Engine, monkeypatch) -> None:
    """A dialect without conflict-skipping inserts is a database error, not a crash."""

    monkeypatch.setattr(engine.dialect, "name", "mssql")

    assert GenreStore(engine).add([Genre(id=28, name="Action")], "movie") is False
    assert ShowStore(engine).add_seasons([make_season(50, 123)]) is False


def test_show_batches_insert_hierarchy_and_skip_duplicates(engine: Engine) -> None:
    """Shows, seasons and episodes insert in order and replays are harmless."""

    shows = ShowStore(engine)
    files = FileStore(engine)

    assert shows.add_shows([make_show(123), make_show(123)]) is True
    assert shows.add_seasons([make_season(50, 123)]) is True
    assert shows.add_episodes([make_episode(999, 50, "e1")], [make_file("e1")]) == {999}

    assert shows.add_shows([make_show(123, title="Renamed")]) is True
    assert shows.add_seasons([make_season(50, 123)]) is True
    assert shows.add_episodes([make_episode(999, 50, "e2")], [make_file("e2")]) == set()

    assert shows.ids() == {123}
    assert shows.get(123).title == "Show 123"
    assert [genre.name for genre in shows.get(123).genres] == ["Drama"]
    assert shows.season_ids() == {50}
    assert [season.id for season in shows.seasons_for(123)] == [50]
    assert [episode.file_id for episode in shows.episodes_for(50)] == ["e1"]
    assert [file.id for file in files.episode_files()] == ["e1"]
    assert files.get("e2") is None
    assert shows.add_episodes([], []) == set()


def test_show_upsert_is_atomic(engine: Engine) -> None:
    """An episode pointing at a missing season rolls back the whole show."""

    shows = ShowStore(engine)

    written = shows.upsert(
        make_show(7),
        [make_season(70, 7)],
        [make_episode(700, 71, "x1")],
        [make_file("x1")],
    )

    assert written is False
    assert shows.get(7) is None
    assert shows.get_season(70) is None


def test_show_modified_time_and_deletes(engine: Engine) -> None:
    """Show timestamps update in place and deletes cascade to files."""

    shows = ShowStore(engine)
    files = FileStore(engine)
    shows.upsert(
        make_show(123),
        [make_season(50, 123, 1), make_season(51, 123, 2)],
        [make_episode(999, 50, "e1"), make_episode(1000, 51, "e2")],
        [make_file("e1"), make_file("e2")],
    )

    assert shows.update_modified_time({123: 42, 404: 1}) == 1
    assert shows.list()[0].modified_time == 42

    assert shows.delete_season(51) is True
    assert shows.get_episode(1000) is None
    assert files.get("e2") is None
    assert shows.get_episode(999) is not None

    assert shows.delete_show(123) is True
    assert shows.ids() == set()
    assert files.episode_files() == []
    with Session(engine) as session:
        assert session.exec(select(FileRecord)).all() == []


def test_episode_file_delete_removes_episode(engine: Engine) -> None:
    """Deleting an episode file removes only that episode."""

    shows = ShowStore(engine)
    files = FileStore(engine)
    shows.upsert(
        make_show(123),
        [make_season(50, 123)],
        [make_episode(999, 50, "e1"), make_episode(1000, 50, "e2", 2)],
        [make_file("e1"), make_file("e2")],
    )

    assert files.delete(["e1", "unknown"]) == 1

    assert shows.get_episode(999) is None
    assert [episode.id for episode in shows.episodes_for(50)] == [1000]
    assert shows.get_season(50) is not None


def test_facets_only_include_attached_values(engine: Engine) -> None:
    """Facet queries ignore vocabulary that no movie or show uses."""

    GenreStore(engine).add([Genre(id=99, name="Unused")], "both")
    movies = MovieStore(engine)
    movies.upsert(make_movie(1, "m1", release_year=2010, parental_rating="PG"), make_file("m1"))
    movies.upsert(make_movie(2, "m2", release_year=1999, parental_rating=None), make_file("m2"))
    ShowStore(engine).add_shows([make_show(3, release_year_from=2021, parental_rating="TV-14")])

    facets = FacetStore(engine)

    assert [genre.name for genre in facets.movie_genres()] == ["Action"]
    assert [genre.name for genre in facets.show_genres()] == ["Drama"]
    assert [studio.name for studio in facets.movie_studios()] == ["Studio Seven"]
    assert [studio.name for studio in facets.show_studios()] == ["Network Eight"]
    assert facets.movie_parental_ratings() == ["PG"]
    assert facets.show_parental_ratings() == ["TV-14"]
    assert facets.movie_years() == [1999, 2010]
    assert facets.show_years() == [2021]


def test_statistics_count_movies_and_shows(engine: Engine) -> None:
    """Start-up statistics report row counts."""

    MovieStore(engine).upsert(make_movie(1, "m1"), make_file("m1"))
    ShowStore(engine).add_shows([make_show(3), make_show(4)])

    statistics = read_statistics(engine)

    assert (statistics.movies, statistics.shows) == (1, 2)


@pytest.mark.parametrize("store", [FacetStore, FileStore, GenreStore, MovieStore, ShowStore])
def test_stores_are_built_from_an_engine(store, engine: Engine) -> None:
    """Every store takes the shared SQLAlchemy engine."""

    assert get_type_hints(store.__init__)["engine"] is Engine
    assert store(engine)._engine is engine

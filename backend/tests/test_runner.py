"""Tests for run orchestration and the command line entry point."""
from __future__ import annotations

import json
import sys
from pathlib import Path

import fakeredis
import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from typer.testing import CliRunner

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.indexer import app as indexer_app  # noqa: E402
from backend.indexer.db import create_engine_from_settings  # noqa: E402
from backend.indexer.schemas import CatalogStatistics  # noqa: E402
from backend.indexer.services.drive import DriveService  # noqa: E402
from backend.indexer.services.filters_cache import MOVIE_GENRES_KEY, FiltersCache  # noqa: E402
from backend.indexer.services.genres import GenreSync  # noqa: E402
from backend.indexer.services.movies import MovieSync  # noqa: E402
from backend.indexer.services.omdb import OmdbService  # noqa: E402
from backend.indexer.services.reconcile import ItemOutcome, StageReport  # noqa: E402
from backend.indexer.services.runner import IndexerRunner, RunSummary  # noqa: E402
from backend.indexer.services.tmdb import TmdbService  # noqa: E402
from backend.indexer.settings import IndexerSettings  # noqa: E402
from backend.indexer.stores.facet_store import FacetStore  # noqa: E402
from backend.indexer.stores.file_store import FileStore  # noqa: E402
from backend.indexer.stores.genre_store import GenreStore  # noqa: E402
from backend.indexer.stores.movie_store import MovieStore  # noqa: E402
from backend.indexer_cli import app as cli_module  # noqa: E402
from backend.tests.fakes import (  # noqa: E402
    OMDB_URL,
    TMDB_URL,
    FakeFilesApi,
    FakeMetadataServer,
    video,
)


class ExplodingSync:
    def run(self, folder_id: str) -> StageReport:
        raise RuntimeError(f"cannot list {folder_id}")


class RecordingSync:
    def __init__(self) -> None:
        self.folders: list[str] = []

    def run(self, folder_id: str) -> StageReport:
        self.folders.append(folder_id)
        return StageReport(stage="shows")


@pytest.fixture()
def engine(tmp_path: Path) -> Engine:
    # Tables are created by the runner's statistics stage.
    settings = IndexerSettings(database_url=f"sqlite:///{tmp_path / 'catalog.db'}", _env_file=None)
    engine = create_engine_from_settings(settings)
    yield engine
    engine.dispose()


@pytest.fixture()
def server() -> FakeMetadataServer:
    server = FakeMetadataServer()
    server.tmdb_routes["/3/genre/movie/list"] = {"genres": [{"id": 28, "name": "Action"}]}
    server.tmdb_routes["/3/genre/tv/list"] = {"genres": [{"id": 18, "name": "Drama"}]}
    server.add_movie(789, "tt0000789", "Baz")
    return server


def build_test_runner(engine: Engine, server: FakeMetadataServer, *, movie_sync=None, show_sync=None, **folders):
    tmdb = TmdbService("k", base_url=TMDB_URL, transport=server.tmdb_transport())
    omdb = OmdbService("k", base_url=OMDB_URL, transport=server.omdb_transport())
    connection = fakeredis.FakeRedis(decode_responses=True)
    closed: list[str] = []
    runner = IndexerRunner(
        engine=engine,
        genre_sync=GenreSync(tmdb, GenreStore(engine)),
        movie_sync=movie_sync,
        show_sync=show_sync,
        filters_cache=FiltersCache(connection, FacetStore(engine)),
        movies_folder=folders.get("movies_folder"),
        shows_folder=folders.get("shows_folder"),
        closers=[tmdb.close, omdb.close, lambda: closed.append("closed")],
    )
    return runner, connection, closed


def test_runner_executes_every_stage_in_order(engine: Engine, server: FakeMetadataServer) -> None:
    """A full run indexes movies and publishes facets from the new rows."""

    tmdb = TmdbService("k", base_url=TMDB_URL, transport=server.tmdb_transport())
    omdb = OmdbService("k", base_url=OMDB_URL, transport=server.omdb_transport())
    drive = DriveService(FakeFilesApi({"movies": [video("m1", "Baz (2020) [789].mkv")]}))
    movies = MovieSync(drive, tmdb, omdb, FileStore(engine), MovieStore(engine))
    runner, connection, closed = build_test_runner(engine, server, movie_sync=movies, movies_folder="movies")

    summary = runner.run()

    assert summary.statistics == CatalogStatistics(movies=0, shows=0)
    assert summary.genres_added == 2
    assert summary.movies.inserted == 1
    assert summary.shows is None
    assert summary.cache_published is True
    assert summary.failed_stages == []
    assert connection.json().get(MOVIE_GENRES_KEY) == [{"id": 28, "name": "Action"}]
    assert closed == ["closed"]


def test_failed_stage_does_not_stop_later_stages(engine: Engine, server: FakeMetadataServer, caplog) -> None:
    """An exception in one stage is logged and the remaining stages still run."""

    runner, _, closed = build_test_runner(
        engine,
        server,
        movie_sync=ExplodingSync(),
        show_sync=ExplodingSync(),
        movies_folder="movies",
        shows_folder="shows",
    )

    summary = runner.run()

    assert summary.failed_stages == ["movies", "shows"]
    assert summary.genres_added == 2
    assert summary.cache_published is True
    assert "Stage movies failed" in caplog.text
    assert "cannot list shows" in caplog.text
    assert closed == ["closed"]


def test_genre_read_failure_fails_only_the_genre_stage(
    engine: Engine, server: FakeMetadataServer, monkeypatch, caplog
) -> None:
    """An unreadable genre table is reported and the catalog stages still run."""

    def unreadable(self):
        raise OperationalError("SELECT genres", {}, Exception("no such table: genres"))

    monkeypatch.setattr(GenreStore, "list", unreadable)
    tmdb = TmdbService("k", base_url=TMDB_URL, transport=server.tmdb_transport())
    omdb = OmdbService("k", base_url=OMDB_URL, transport=server.omdb_transport())
    drive = DriveService(FakeFilesApi({"movies": [video("m1", "Baz (2020) [789].mkv")]}))
    movies = MovieSync(drive, tmdb, omdb, FileStore(engine), MovieStore(engine))
    shows = RecordingSync()
    runner, _, _ = build_test_runner(
        engine, server, movie_sync=movies, show_sync=shows, movies_folder="movies", shows_folder="shows"
    )

    summary = runner.run()

    assert summary.failed_stages == ["genres"]
    assert summary.genres_added is None
    assert summary.movies.inserted == 1
    assert shows.folders == ["shows"]
    assert summary.cache_published is True
    assert "Stage genres failed" in caplog.text


def test_unconfigured_folders_skip_their_stages(engine: Engine, server: FakeMetadataServer) -> None:
    """Stages without a folder are skipped; a folder without storage fails."""

    runner, _, _ = build_test_runner(engine, server, shows_folder="shows")

    summary = runner.run()

    assert summary.movies is None
    assert summary.shows is None
    assert summary.failed_stages == ["shows"]


def test_run_once_returns_none_when_wiring_fails(monkeypatch) -> None:
    """A run that cannot be assembled is logged and reported as not started."""

    def broken(settings):
        raise ValueError("bad cache url")

    monkeypatch.setattr(indexer_app, "build_runner", broken)

    assert indexer_app.run_once(IndexerSettings(_env_file=None)) is None


@pytest.fixture()
def cli_runner() -> CliRunner:
    return CliRunner()


def test_cli_always_exits_with_status_one(cli_runner: CliRunner, monkeypatch) -> None:
    """The command exits with status 1 whatever the run did."""

    calls: list[IndexerSettings] = []

    def fake_run_once(settings):
        calls.append(settings)
        return RunSummary()

    monkeypatch.setattr(cli_module, "run_once", fake_run_once)

    result = cli_runner.invoke(cli_module.app, ["--movies-folder", "movies-root"])

    assert result.exit_code == 1
    assert result.output == ""
    assert calls[0].movies_folder == "movies-root"


def test_cli_summary_prints_stage_reports(cli_runner: CliRunner, monkeypatch) -> None:
    """``--summary`` prints the run outcome as JSON."""

    movies = StageReport(stage="movies")
    movies.record(ItemOutcome.inserted(file="a.mkv"))
    movies.record(ItemOutcome.failed("imdb id not found", file="b.mkv"))
    summary = RunSummary(
        statistics=CatalogStatistics(movies=3, shows=1),
        genres_added=0,
        movies=movies,
        cache_published=True,
    )
    monkeypatch.setattr(cli_module, "run_once", lambda settings: summary)

    result = cli_runner.invoke(cli_module.app, ["--summary"])

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["started"] is True
    assert payload["statistics"] == {"movies": 3, "shows": 1}
    assert payload["movies"] == {
        "inserted": 1,
        "skipped": 0,
        "failed": 1,
        "reasons": {"imdb id not found": 1},
    }
    assert payload["shows"] is None
    assert payload["failed_stages"] == []


def test_cli_summary_reports_runs_that_never_started(cli_runner: CliRunner, monkeypatch) -> None:
    """A run that could not be wired prints ``started: false``."""

    monkeypatch.setattr(cli_module, "run_once", lambda settings: None)

    result = cli_runner.invoke(cli_module.app, ["--summary"])

    assert result.exit_code == 1
    assert json.loads(result.output) == {"started": False}

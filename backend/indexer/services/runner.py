"""Sequential orchestration of one indexing run."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy.engine import Engine

from ..db import create_engine_from_settings, init_database, read_statistics
from ..schemas import CatalogStatistics
from ..settings import IndexerSettings
from ..stores.facet_store import FacetStore
from ..stores.file_store import FileStore
from ..stores.genre_store import GenreStore
from ..stores.movie_store import MovieStore
from ..stores.show_store import ShowStore
from .drive import DriveServiceError, build_drive_service
from .filters_cache import FiltersCache, create_redis_connection
from .genres import GenreSync
from .movies import MovieSync
from .omdb import OmdbService
from .reconcile import StageReport
from .shows import ShowSync
from .tmdb import TmdbService

logger = logging.getLogger(__name__)

_FAILED: Any = object()


def _value(result: Any) -> Any:
    return None if result is _FAILED else result


@dataclass(slots=True)
class RunSummary:
    """What one run did, stage by stage."""

    statistics: CatalogStatistics | None = None
    genres_added: int | None = None
    movies: StageReport | None = None
    shows: StageReport | None = None
    cache_published: bool = False
    failed_stages: list[str] = field(default_factory=list)


class IndexerRunner:
    """Run statistics, genres, movies, shows and the filter cache in order.

    Each stage is isolated: an exception is logged and the next stage still
    runs. Resources registered through ``closers`` are released when the run
    ends, whatever happened.
    """

    def __init__(
        self,
        *,
        engine: Engine,
        genre_sync: GenreSync,
        movie_sync: MovieSync | None,
        show_sync: ShowSync | None,
        filters_cache: FiltersCache,
        movies_folder: str | None,
        shows_folder: str | None,
        closers: list[Callable[[], Any]] | None = None,
    ) -> None:
        self._engine = engine
        self._genre_sync = genre_sync
        self._movie_sync = movie_sync
        self._show_sync = show_sync
        self._filters_cache = filters_cache
        self._movies_folder = movies_folder
        self._shows_folder = shows_folder
        self._closers = closers or []

    def run(self) -> RunSummary:
        summary = RunSummary()
        try:
            summary.statistics = _value(self._stage("statistics", self._statistics, summary))
            summary.genres_added = _value(self._stage("genres", self._genre_sync.run, summary))
            summary.movies = self._folder_stage("movies", self._movies_folder, self._movie_sync, summary)
            summary.shows = self._folder_stage("shows", self._shows_folder, self._show_sync, summary)
            if self._stage("filters cache", self._filters_cache.publish, summary) is not _FAILED:
                summary.cache_published = True
        finally:
            self.close()
        if summary.failed_stages:
            logger.warning("Run finished with failed stages: %s", ", ".join(summary.failed_stages))
        else:
            logger.info("Run finished")
        return summary

    def close(self) -> None:
        for closer in self._closers:
            try:
                closer()
            except Exception:  # pragma: no cover - best effort teardown
                logger.warning("Failed to release %r", closer, exc_info=True)
        self._closers = []

    def _statistics(self) -> CatalogStatistics:
        init_database(self._engine)
        statistics = read_statistics(self._engine)
        logger.info("Catalog holds %d movies and %d shows", statistics.movies, statistics.shows)
        return statistics

    def _folder_stage(
        self,
        name: str,
        folder_id: str | None,
        sync: MovieSync | ShowSync | None,
        summary: RunSummary,
    ) -> StageReport | None:
        if not folder_id:
            logger.info("No %s folder configured, skipping %s", name, name)
            return None
        if sync is None:
            logger.error("Remote storage is not configured, cannot index %s", name)
            summary.failed_stages.append(name)
            return None
        logger.info("Beginning indexing %s", name)
        result = self._stage(name, lambda: sync.run(folder_id), summary)
        logger.info("Finished indexing %s", name)
        return _value(result)

    def _stage(self, name: str, action: Callable[[], Any], summary: RunSummary) -> Any:
        try:
            return action()
        except Exception:
            logger.exception("Stage %s failed", name)
            summary.failed_stages.append(name)
            return _FAILED


def build_runner(settings: IndexerSettings) -> IndexerRunner:
    """Wire real dependencies for a run from ``settings``."""

    engine = create_engine_from_settings(settings)
    if not settings.tmdb_api_key:
        logger.warning("ZPLEX_TMDB_API_KEY is not set; TMDB requests will be rejected")
    if not settings.omdb_api_key:
        logger.warning("ZPLEX_OMDB_API_KEY is not set; OMDB lookups will return nothing")
    tmdb = TmdbService(
        settings.tmdb_api_key or "",
        base_url=settings.tmdb_api_url,
        language=settings.tmdb_language,
        timeout=settings.http_timeout,
    )
    omdb = OmdbService(
        settings.omdb_api_key or "",
        base_url=settings.omdb_api_url,
        timeout=settings.http_timeout,
    )
    redis_connection = create_redis_connection(settings)
    file_store = FileStore(engine)

    movie_sync: MovieSync | None = None
    show_sync: ShowSync | None = None
    if settings.movies_folder or settings.shows_folder:
        try:
            drive = build_drive_service(settings)
        except DriveServiceError:
            logger.exception("Failed to configure remote storage")
        else:
            movie_sync = MovieSync(drive, tmdb, omdb, file_store, MovieStore(engine))
            show_sync = ShowSync(drive, tmdb, omdb, file_store, ShowStore(engine))

    return IndexerRunner(
        engine=engine,
        genre_sync=GenreSync(tmdb, GenreStore(engine)),
        movie_sync=movie_sync,
        show_sync=show_sync,
        filters_cache=FiltersCache(redis_connection, FacetStore(engine)),
        movies_folder=settings.movies_folder,
        shows_folder=settings.shows_folder,
        closers=[tmdb.close, omdb.close, redis_connection.close, engine.dispose],
    )

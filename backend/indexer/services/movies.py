"""Movie folder synchronisation."""
from __future__ import annotations

import logging

from ..schemas import CatalogFile, Movie, MovieResponse, OmdbResponse
from ..stores.file_store import FileStore
from ..stores.movie_store import MovieStore
from ..utils.naming import parse_media_name
from ..utils.omdb_values import (
    null_if_na,
    parse_rating,
    parse_released,
    parse_runtime,
    parse_votes,
    parse_year_from,
)
from .drive import DriveService
from .omdb import OmdbService
from .reconcile import ItemOutcome, StageReport, apply_file_diff, diff_files
from .tmdb import TmdbService, TmdbServiceError

logger = logging.getLogger(__name__)


def build_movie(response: MovieResponse, omdb: OmdbResponse, file: CatalogFile) -> Movie:
    """Merge TMDB and OMDB data into a catalog movie.

    OMDB supplies the title, plot, IMDb rating and votes, release date and
    year, parental rating and runtime. Everything else comes from TMDB.
    """

    collection = response.belongs_to_collection
    return Movie(
        id=response.id,
        title=null_if_na(omdb.title) or response.title or file.name,
        imdb_id=omdb.imdb_id,
        imdb_rating=parse_rating(omdb.imdb_rating),
        imdb_votes=parse_votes(omdb.imdb_votes),
        release_date=parse_released(omdb.released),
        release_year=parse_year_from(omdb.year),
        parental_rating=null_if_na(omdb.rated),
        runtime=parse_runtime(omdb.runtime),
        poster_path=response.poster_path,
        backdrop_path=response.backdrop_path,
        logo_image=response.best_logo_image(),
        trailer_link=response.official_trailer(),
        tagline=response.tagline or None,
        plot=null_if_na(omdb.plot),
        director=response.director_name(),
        collection_id=collection.id if collection else None,
        file_id=file.id,
        cast=response.cast_members(),
        crew=response.crew_members(),
        genres=response.genre_list(),
        studios=response.studios(),
        external_links=response.external_links(),
    )


class MovieSync:
    """Index new video files found directly under the movies folder."""

    def __init__(
        self,
        drive: DriveService,
        tmdb: TmdbService,
        omdb: OmdbService,
        file_store: FileStore,
        movie_store: MovieStore,
    ) -> None:
        self._drive = drive
        self._tmdb = tmdb
        self._omdb = omdb
        self._files = file_store
        self._movies = movie_store

    def run(self, folder_id: str) -> StageReport:
        report = StageReport(stage="movies")
        remote = [
            child.to_catalog_file()
            for child in self._drive.list_children(folder_id)
            if child.is_video
        ]
        diff = diff_files(remote, self._files.movie_files())
        apply_file_diff(diff, self._files, label="movies")

        for file in diff.new:
            report.record(self.index_file(file))
        logger.info(report.summary())
        return report

    def index_file(self, file: CatalogFile) -> ItemOutcome:
        """Fetch metadata for one new movie file and store it."""

        media = parse_media_name(file.name)
        if media is None:
            return ItemOutcome.skipped("unparseable movie file name", file=file.name)

        logger.info("New movie: %s, inserting into the database", file.name)
        try:
            response = self._tmdb.fetch_movie(media.tmdb_id)
        except TmdbServiceError as exc:
            return ItemOutcome.failed("TMDB lookup failed", file=file.name, error=str(exc))

        imdb_id = response.imdb_id
        if imdb_id is None:
            return ItemOutcome.failed("imdb id not found", file=file.name, tmdb_id=media.tmdb_id)

        omdb = self._omdb.fetch_movie(imdb_id)
        if omdb is None:
            return ItemOutcome.failed("OMDB response not found", file=file.name, imdb_id=imdb_id)

        movie = build_movie(response, omdb, file)
        if not self._movies.upsert(movie, file):
            return ItemOutcome.failed("movie was not written", file=file.name, movie_id=movie.id)
        logger.info("Added movie: %s", movie.title)
        return ItemOutcome.inserted(file=file.name, movie_id=movie.id)

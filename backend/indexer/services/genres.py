"""Keep the genre vocabulary in step with TMDB."""
from __future__ import annotations

import logging

from ..stores.genre_store import GenreStore
from .tmdb import TmdbService

logger = logging.getLogger(__name__)


class GenreSync:
    def __init__(self, tmdb: TmdbService, genre_store: GenreStore) -> None:
        self._tmdb = tmdb
        self._genres = genre_store

    def run(self) -> int:
        """Insert genres TMDB knows and the catalog does not; returns how many."""

        existing = {genre.id for genre in self._genres.list()}
        movie_genres = {genre.id: genre for genre in self._tmdb.fetch_movie_genres() if genre.id not in existing}
        show_genres = {genre.id: genre for genre in self._tmdb.fetch_show_genres() if genre.id not in existing}

        if not movie_genres and not show_genres:
            logger.info("No new genres")
            return 0

        shared = movie_genres.keys() & show_genres.keys()
        movie_only = [genre for genre_id, genre in movie_genres.items() if genre_id not in shared]
        show_only = [genre for genre_id, genre in show_genres.items() if genre_id not in shared]
        both = [movie_genres[genre_id] for genre_id in sorted(shared)]

        inserted = 0
        for genres, kind in ((movie_only, "movie"), (show_only, "show"), (both, "both")):
            if genres and self._genres.add(genres, kind):
                logger.info("Added %d %s genres: %s", len(genres), kind, ", ".join(g.name for g in genres))
                inserted += len(genres)
        return inserted

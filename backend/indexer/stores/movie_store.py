"""Database-backed store for movies and their credits."""
from __future__ import annotations

import logging
from threading import Lock

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..db import insert_ignoring_conflicts, session_scope
from ..models import FileRecord, MovieRecord
from ..schemas import CatalogFile, Movie
from .media_credits import MOVIE_TABLES, read_credits, write_credits

logger = logging.getLogger(__name__)

_CHILD_FIELDS = {"cast", "crew", "genres", "studios", "external_links"}


class MovieStore:
    """Thread-safe persistence for merged movie records."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._lock = Lock()

    def upsert(self, movie: Movie, file: CatalogFile) -> bool:
        """Write a movie and its file in one transaction.

        Returns ``False`` when the movie is already catalogued or the write
        failed; nothing is persisted in either case.
        """

        try:
            with self._lock, session_scope(self._engine) as session:
                if session.get(MovieRecord, movie.id) is not None:
                    logger.warning(
                        "Movie %s (%s) already catalogued, skipping file %s",
                        movie.title,
                        movie.id,
                        file.id,
                    )
                    return False
                insert_ignoring_conflicts(session, FileRecord, [file.model_dump()])
                insert_ignoring_conflicts(
                    session,
                    MovieRecord,
                    [movie.model_dump(exclude=_CHILD_FIELDS) | {"file_id": file.id}],
                )
                write_credits(session, MOVIE_TABLES, movie.id, movie)
        except SQLAlchemyError:
            logger.error("Failed to insert movie %s (%s)", movie.title, movie.id, exc_info=True)
            return False
        return True

    def get(self, movie_id: int) -> Movie | None:
        with Session(self._engine) as session:
            record = session.get(MovieRecord, movie_id)
            if record is None:
                return None
            return Movie(
                **record.model_dump(),
                **read_credits(session, MOVIE_TABLES, record.id),
            )

    def ids(self) -> set[int]:
        with Session(self._engine) as session:
            return set(session.execute(select(MovieRecord.id)).scalars())

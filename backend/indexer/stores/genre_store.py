"""Database-backed store for the shared genre vocabulary."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Iterable, Literal

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..db import insert_ignoring_conflicts, session_scope
from ..models import GenreRecord
from ..schemas import Genre, GenreResponse

logger = logging.getLogger(__name__)

GenreKind = Literal["movie", "show", "both"]


class GenreStore:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._lock = Lock()

    def list(self) -> list[Genre]:
        """Return every known genre; database errors propagate to the caller."""

        try:
            with Session(self._engine) as session:
                records = session.execute(select(GenreRecord).order_by(GenreRecord.id)).scalars()
                return [Genre(id=record.id, name=record.name) for record in records]
        except SQLAlchemyError:
            logger.error("Failed to read genres", exc_info=True)
            raise

    def add(self, genres: Iterable[Genre | GenreResponse], kind: GenreKind) -> bool:
        """Insert genres tagged with ``kind``, skipping ids that already exist."""

        rows = [{"id": genre.id, "name": genre.name, "type": kind} for genre in genres]
        if not rows:
            return True
        try:
            with self._lock, session_scope(self._engine) as session:
                insert_ignoring_conflicts(session, GenreRecord, rows)
        except SQLAlchemyError:
            logger.error("Failed to insert %d %s genres", len(rows), kind, exc_info=True)
            return False
        return True

    def kinds(self) -> dict[int, str]:
        with Session(self._engine) as session:
            records = session.execute(select(GenreRecord)).scalars()
            return {record.id: record.type for record in records}

"""Database-backed store for remote media file rows."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Iterable

from sqlalchemy import delete, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..db import session_scope
from ..models import EpisodeRecord, FileRecord, MovieRecord
from ..schemas import CatalogFile
from .media_credits import MOVIE_TABLES, delete_credits

logger = logging.getLogger(__name__)


class FileStore:
    """Snapshot and maintenance queries over the ``files`` table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._lock = Lock()

    def movie_files(self) -> list[CatalogFile]:
        """Return every file currently owned by a movie."""

        statement = (
            select(FileRecord)
            .join(MovieRecord, MovieRecord.file_id == FileRecord.id)
            .order_by(FileRecord.id)
        )
        return self._list(statement)

    def episode_files(self) -> list[CatalogFile]:
        """Return every file currently owned by an episode."""

        statement = (
            select(FileRecord)
            .join(EpisodeRecord, EpisodeRecord.file_id == FileRecord.id)
            .order_by(FileRecord.id)
        )
        return self._list(statement)

    def get(self, file_id: str) -> CatalogFile | None:
        with Session(self._engine) as session:
            record = session.get(FileRecord, file_id)
            return _to_model(record) if record else None

    def update_modified_time(self, files: Iterable[CatalogFile]) -> int:
        """Store new modification times; returns the number of rows touched."""

        files = list(files)
        if not files:
            return 0
        updated = 0
        try:
            with self._lock, session_scope(self._engine) as session:
                for file in files:
                    result = session.execute(
                        update(FileRecord)
                        .where(FileRecord.id == file.id)
                        .values(modified_time=file.modified_time)
                    )
                    updated += result.rowcount or 0
        except SQLAlchemyError:
            logger.error("Failed to update modified time of %d files", len(files), exc_info=True)
            return 0
        return updated

    def delete(self, file_ids: Iterable[str]) -> int:
        """Delete files together with the movie or episode that owns them."""

        file_ids = list(file_ids)
        if not file_ids:
            return 0
        try:
            with self._lock, session_scope(self._engine) as session:
                movie_ids = list(
                    session.execute(
                        select(MovieRecord.id).where(MovieRecord.file_id.in_(file_ids))
                    ).scalars()
                )
                delete_credits(session, MOVIE_TABLES, movie_ids)
                session.execute(delete(MovieRecord).where(MovieRecord.file_id.in_(file_ids)))
                session.execute(delete(EpisodeRecord).where(EpisodeRecord.file_id.in_(file_ids)))
                result = session.execute(delete(FileRecord).where(FileRecord.id.in_(file_ids)))
                deleted = result.rowcount or 0
        except SQLAlchemyError:
            logger.error("Failed to delete %d files", len(file_ids), exc_info=True)
            return 0
        return deleted

    def _list(self, statement) -> list[CatalogFile]:
        with Session(self._engine) as session:
            return [_to_model(record) for record in session.execute(statement).scalars()]


def _to_model(record: FileRecord) -> CatalogFile:
    return CatalogFile(
        id=record.id,
        name=record.name,
        size=record.size,
        modified_time=record.modified_time,
    )

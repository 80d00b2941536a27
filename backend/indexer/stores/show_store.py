"""Database-backed store for shows, seasons and episodes."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Iterable, Mapping

from sqlalchemy import delete, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..db import insert_ignoring_conflicts, session_scope
from ..models import EpisodeRecord, FileRecord, SeasonRecord, ShowRecord
from ..schemas import CatalogFile, Episode, Season, Show
from .media_credits import SHOW_TABLES, delete_credits, read_credits, write_credits

logger = logging.getLogger(__name__)

_CHILD_FIELDS = {"cast", "crew", "genres", "studios", "external_links"}


class ShowStore:
    """Thread-safe persistence for the show, season and episode hierarchy.

    Every insert skips rows whose primary key already exists, so replaying a
    batch after a partial run is harmless.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._lock = Lock()

    # -- snapshots ---------------------------------------------------------

    def ids(self) -> set[int]:
        with Session(self._engine) as session:
            return set(session.execute(select(ShowRecord.id)).scalars())

    def list(self) -> list[Show]:
        """Return every show without its credit collections."""

        with Session(self._engine) as session:
            records = session.execute(select(ShowRecord).order_by(ShowRecord.title)).scalars()
            return [Show(**record.model_dump()) for record in records]

    def get(self, show_id: int) -> Show | None:
        with Session(self._engine) as session:
            record = session.get(ShowRecord, show_id)
            if record is None:
                return None
            return Show(**record.model_dump(), **read_credits(session, SHOW_TABLES, record.id))

    def season_ids(self) -> set[int]:
        with Session(self._engine) as session:
            return set(session.execute(select(SeasonRecord.id)).scalars())

    def get_season(self, season_id: int) -> Season | None:
        with Session(self._engine) as session:
            record = session.get(SeasonRecord, season_id)
            return Season(**record.model_dump()) if record else None

    def seasons_for(self, show_id: int) -> list[Season]:
        statement = (
            select(SeasonRecord)
            .where(SeasonRecord.show_id == show_id)
            .order_by(SeasonRecord.season_number)
        )
        with Session(self._engine) as session:
            return [Season(**record.model_dump()) for record in session.execute(statement).scalars()]

    def get_episode(self, episode_id: int) -> Episode | None:
        with Session(self._engine) as session:
            record = session.get(EpisodeRecord, episode_id)
            return Episode(**record.model_dump()) if record else None

    def episodes_for(self, season_id: int) -> list[Episode]:
        statement = (
            select(EpisodeRecord)
            .where(EpisodeRecord.season_id == season_id)
            .order_by(EpisodeRecord.episode_number)
        )
        with Session(self._engine) as session:
            return [Episode(**record.model_dump()) for record in session.execute(statement).scalars()]

    # -- writes ------------------------------------------------------------

    def upsert(
        self,
        show: Show,
        seasons: Iterable[Season],
        episodes: Iterable[Episode],
        files: Iterable[CatalogFile],
    ) -> bool:
        """Write one show with its seasons, episodes and files atomically."""

        try:
            with self._lock, session_scope(self._engine) as session:
                self._insert_shows(session, [show])
                insert_ignoring_conflicts(session, SeasonRecord, [season.model_dump() for season in seasons])
                self._insert_episodes(session, list(episodes), list(files))
        except SQLAlchemyError:
            logger.error("Failed to upsert show %s (%s)", show.title, show.id, exc_info=True)
            return False
        return True

    def add_shows(self, shows: Iterable[Show]) -> bool:
        shows = list(shows)
        if not shows:
            return True
        try:
            with self._lock, session_scope(self._engine) as session:
                self._insert_shows(session, shows)
        except SQLAlchemyError:
            logger.error("Failed to insert %d shows", len(shows), exc_info=True)
            return False
        return True

    def add_seasons(self, seasons: Iterable[Season]) -> bool:
        rows = [season.model_dump() for season in seasons]
        if not rows:
            return True
        try:
            with self._lock, session_scope(self._engine) as session:
                insert_ignoring_conflicts(session, SeasonRecord, rows)
        except SQLAlchemyError:
            logger.error("Failed to insert %d seasons", len(rows), exc_info=True)
            return False
        return True

    def add_episodes(self, episodes: Iterable[Episode], files: Iterable[CatalogFile]) -> set[int] | None:
        """Insert episodes together with the files they point at.

        Returns the ids of the episodes that were written. Episodes already
        in the catalog are left untouched and are not part of the result.
        ``None`` means the write failed and nothing was stored.
        """

        episodes = list(episodes)
        files = list(files)
        if not episodes:
            return set()
        try:
            with self._lock, session_scope(self._engine) as session:
                inserted = self._insert_episodes(session, episodes, files)
        except SQLAlchemyError:
            logger.error("Failed to insert %d episodes", len(episodes), exc_info=True)
            return None
        return inserted

    def update_modified_time(self, modified_times: Mapping[int, int]) -> int:
        """Store new folder modification times keyed by show id."""

        if not modified_times:
            return 0
        updated = 0
        try:
            with self._lock, session_scope(self._engine) as session:
                for show_id, modified_time in modified_times.items():
                    result = session.execute(
                        update(ShowRecord)
                        .where(ShowRecord.id == show_id)
                        .values(modified_time=modified_time)
                    )
                    updated += result.rowcount or 0
        except SQLAlchemyError:
            logger.error(
                "Failed to update modified time of %d shows", len(modified_times), exc_info=True
            )
            return 0
        return updated

    def delete_show(self, show_id: int) -> bool:
        """Delete a show with all of its seasons, episodes and files."""

        try:
            with self._lock, session_scope(self._engine) as session:
                season_ids = list(
                    session.execute(
                        select(SeasonRecord.id).where(SeasonRecord.show_id == show_id)
                    ).scalars()
                )
                self._delete_seasons(session, season_ids)
                delete_credits(session, SHOW_TABLES, [show_id])
                result = session.execute(delete(ShowRecord).where(ShowRecord.id == show_id))
                deleted = bool(result.rowcount)
        except SQLAlchemyError:
            logger.error("Failed to delete show %s", show_id, exc_info=True)
            return False
        return deleted

    def delete_season(self, season_id: int) -> bool:
        try:
            with self._lock, session_scope(self._engine) as session:
                deleted = self._delete_seasons(session, [season_id]) > 0
        except SQLAlchemyError:
            logger.error("Failed to delete season %s", season_id, exc_info=True)
            return False
        return deleted

    # -- helpers -----------------------------------------------------------

    @staticmethod
    def _insert_shows(session: Session, shows: list[Show]) -> None:
        requested = {show.id for show in shows}
        existing = set(
            session.execute(select(ShowRecord.id).where(ShowRecord.id.in_(requested))).scalars()
        )
        fresh: dict[int, Show] = {}
        for show in shows:
            if show.id not in existing:
                fresh.setdefault(show.id, show)
        insert_ignoring_conflicts(
            session,
            ShowRecord,
            [show.model_dump(exclude=_CHILD_FIELDS) for show in fresh.values()],
        )
        for show in fresh.values():
            write_credits(session, SHOW_TABLES, show.id, show)

    @staticmethod
    def _insert_episodes(session: Session, episodes: list[Episode], files: list[CatalogFile]) -> set[int]:
        # A file is only written alongside the episode that owns it.
        existing = set(
            session.execute(
                select(EpisodeRecord.id).where(EpisodeRecord.id.in_([episode.id for episode in episodes]))
            ).scalars()
        )
        episodes = [episode for episode in episodes if episode.id not in existing]
        owned = {episode.file_id for episode in episodes}
        insert_ignoring_conflicts(session, FileRecord, [file.model_dump() for file in files if file.id in owned])
        insert_ignoring_conflicts(session, EpisodeRecord, [episode.model_dump() for episode in episodes])
        return {episode.id for episode in episodes}

    @staticmethod
    def _delete_seasons(session: Session, season_ids: list[int]) -> int:
        if not season_ids:
            return 0
        file_ids = list(
            session.execute(
                select(EpisodeRecord.file_id).where(EpisodeRecord.season_id.in_(season_ids))
            ).scalars()
        )
        session.execute(delete(EpisodeRecord).where(EpisodeRecord.season_id.in_(season_ids)))
        if file_ids:
            session.execute(delete(FileRecord).where(FileRecord.id.in_(file_ids)))
        result = session.execute(delete(SeasonRecord).where(SeasonRecord.id.in_(season_ids)))
        return result.rowcount or 0

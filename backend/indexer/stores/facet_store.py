"""Distinct-value queries backing the filter facets."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlmodel import Session

from ..models import (
    GenreRecord,
    MovieGenreLink,
    MovieRecord,
    MovieStudioLink,
    ShowGenreLink,
    ShowRecord,
    ShowStudioLink,
    StudioRecord,
)
from ..schemas import Genre, Studio


class FacetStore:
    """Facet values limited to entries attached to at least one movie or show."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def show_genres(self) -> list[Genre]:
        return self._genres(ShowGenreLink)

    def movie_genres(self) -> list[Genre]:
        return self._genres(MovieGenreLink)

    def show_studios(self) -> list[Studio]:
        return self._studios(ShowStudioLink)

    def movie_studios(self) -> list[Studio]:
        return self._studios(MovieStudioLink)

    def show_parental_ratings(self) -> list[str]:
        return self._distinct(ShowRecord.parental_rating)

    def movie_parental_ratings(self) -> list[str]:
        return self._distinct(MovieRecord.parental_rating)

    def show_years(self) -> list[int]:
        return self._distinct(ShowRecord.release_year_from)

    def movie_years(self) -> list[int]:
        return self._distinct(MovieRecord.release_year)

    def _genres(self, link) -> list[Genre]:
        statement = (
            select(GenreRecord.id, GenreRecord.name)
            .join(link, link.genre_id == GenreRecord.id)
            .distinct()
            .order_by(GenreRecord.name, GenreRecord.id)
        )
        with Session(self._engine) as session:
            return [Genre(id=row.id, name=row.name) for row in session.execute(statement)]

    def _studios(self, link) -> list[Studio]:
        statement = (
            select(StudioRecord.id, StudioRecord.name)
            .join(link, link.studio_id == StudioRecord.id)
            .distinct()
            .order_by(StudioRecord.name, StudioRecord.id)
        )
        with Session(self._engine) as session:
            return [Studio(id=row.id, name=row.name) for row in session.execute(statement)]

    def _distinct(self, column) -> list:
        statement = select(column).where(column.is_not(None)).distinct().order_by(column)
        with Session(self._engine) as session:
            return list(session.execute(statement).scalars())

"""Read and write the vocabulary and credit rows shared by movies and shows."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import delete, select
from sqlmodel import Session, SQLModel

from ..db import insert_ignoring_conflicts
from ..models import (
    GenreRecord,
    MovieCastRecord,
    MovieCrewRecord,
    MovieExternalLinkRecord,
    MovieGenreLink,
    MovieStudioLink,
    ShowCastRecord,
    ShowCrewRecord,
    ShowExternalLinkRecord,
    ShowGenreLink,
    ShowStudioLink,
    StudioRecord,
)
from ..schemas import CastMember, CrewMember, ExternalLink, Genre, Studio


@dataclass(frozen=True, slots=True)
class CreditTables:
    """The child tables hanging off one kind of media row."""

    owner_key: str
    genre_kind: str
    cast: type[SQLModel]
    crew: type[SQLModel]
    external_links: type[SQLModel]
    genre_links: type[SQLModel]
    studio_links: type[SQLModel]

    @property
    def children(self) -> tuple[type[SQLModel], ...]:
        return (self.cast, self.crew, self.external_links, self.genre_links, self.studio_links)


MOVIE_TABLES = CreditTables(
    owner_key="movie_id",
    genre_kind="movie",
    cast=MovieCastRecord,
    crew=MovieCrewRecord,
    external_links=MovieExternalLinkRecord,
    genre_links=MovieGenreLink,
    studio_links=MovieStudioLink,
)

SHOW_TABLES = CreditTables(
    owner_key="show_id",
    genre_kind="show",
    cast=ShowCastRecord,
    crew=ShowCrewRecord,
    external_links=ShowExternalLinkRecord,
    genre_links=ShowGenreLink,
    studio_links=ShowStudioLink,
)


def write_credits(session: Session, tables: CreditTables, owner_id: int, media: Any) -> None:
    """Insert vocabulary, link and credit rows for a freshly inserted media row.

    ``media`` is a :class:`~backend.indexer.schemas.Movie` or
    :class:`~backend.indexer.schemas.Show`; vocabulary rows that already
    exist are left untouched.
    """

    insert_ignoring_conflicts(
        session,
        GenreRecord,
        [{"id": genre.id, "name": genre.name, "type": tables.genre_kind} for genre in media.genres],
    )
    insert_ignoring_conflicts(session, StudioRecord, [studio.model_dump() for studio in media.studios])
    insert_ignoring_conflicts(
        session,
        tables.genre_links,
        [{tables.owner_key: owner_id, "genre_id": genre.id} for genre in _unique(media.genres)],
    )
    insert_ignoring_conflicts(
        session,
        tables.studio_links,
        [{tables.owner_key: owner_id, "studio_id": studio.id} for studio in _unique(media.studios)],
    )
    for member in media.cast:
        session.add(tables.cast(**{tables.owner_key: owner_id}, **member.model_dump()))
    for member in media.crew:
        session.add(tables.crew(**{tables.owner_key: owner_id}, **member.model_dump()))
    for link in media.external_links:
        session.add(tables.external_links(**{tables.owner_key: owner_id}, **link.model_dump()))


def delete_credits(session: Session, tables: CreditTables, owner_ids: Iterable[int]) -> None:
    owner_ids = list(owner_ids)
    if not owner_ids:
        return
    for table in tables.children:
        column = getattr(table, tables.owner_key)
        session.execute(delete(table).where(column.in_(owner_ids)))


def read_credits(session: Session, tables: CreditTables, owner_id: int) -> dict[str, list[Any]]:
    """Return the child collections of one media row as catalog models."""

    def rows(table: type[SQLModel]) -> list[Any]:
        column = getattr(table, tables.owner_key)
        statement = select(table).where(column == owner_id).order_by(table.id)
        return list(session.execute(statement).scalars())

    genre_column = getattr(tables.genre_links, tables.owner_key)
    genres = session.execute(
        select(GenreRecord)
        .join(tables.genre_links, tables.genre_links.genre_id == GenreRecord.id)
        .where(genre_column == owner_id)
        .order_by(GenreRecord.name)
    ).scalars()
    studio_column = getattr(tables.studio_links, tables.owner_key)
    studios = session.execute(
        select(StudioRecord)
        .join(tables.studio_links, tables.studio_links.studio_id == StudioRecord.id)
        .where(studio_column == owner_id)
        .order_by(StudioRecord.name)
    ).scalars()

    return {
        "cast": [
            CastMember(
                person_id=row.person_id,
                name=row.name,
                image=row.image,
                role=row.role,
                gender=row.gender,
            )
            for row in rows(tables.cast)
        ],
        "crew": [
            CrewMember(person_id=row.person_id, name=row.name, image=row.image, job=row.job)
            for row in rows(tables.crew)
        ],
        "external_links": [ExternalLink(name=row.name, url=row.url) for row in rows(tables.external_links)],
        "genres": [Genre(id=row.id, name=row.name) for row in genres],
        "studios": [
            Studio(
                id=row.id,
                name=row.name,
                logo_path=row.logo_path,
                origin_country=row.origin_country,
            )
            for row in studios
        ],
    }


def _unique(items: Iterable[Any]) -> list[Any]:
    seen: set[int] = set()
    unique = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique

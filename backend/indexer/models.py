"""Database models for the media catalog."""
from __future__ import annotations

from typing import Any

from sqlalchemy import BigInteger, Column, ForeignKey, Integer, String
from sqlmodel import Field, SQLModel


def _external_id_field() -> Any:
    # Primary keys come from TMDB, never from a local sequence.
    return Field(primary_key=True, sa_column_kwargs={"autoincrement": False})


def _millis_column(*, nullable: bool = True) -> Column:
    return Column(BigInteger, nullable=nullable, default=None if nullable else 0)


def _file_reference() -> Column:
    return Column(
        String,
        ForeignKey("files.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )


def _owner_reference(table: str) -> Column:
    return Column(
        Integer,
        ForeignKey(f"{table}.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class FileRecord(SQLModel, table=True):
    """One row per remote media file, owned by a movie or an episode."""

    __tablename__ = "files"

    id: str = Field(primary_key=True)
    name: str
    size: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    modified_time: int = Field(default=0, sa_column=_millis_column(nullable=False))


class GenreRecord(SQLModel, table=True):
    __tablename__ = "genres"

    id: int = _external_id_field()
    name: str
    type: str = Field(default="both", description="movie, show or both")


class StudioRecord(SQLModel, table=True):
    __tablename__ = "studios"

    id: int = _external_id_field()
    name: str
    logo_path: str | None = Field(default=None)
    origin_country: str = Field(default="")


# ---------------------------------------------------------------------------
# Movies


class MovieRecord(SQLModel, table=True):
    __tablename__ = "movies"

    id: int = _external_id_field()
    title: str = Field(index=True)
    collection_id: int | None = Field(default=None)
    file_id: str = Field(sa_column=_file_reference())
    imdb_id: str = Field(index=True)
    imdb_rating: float | None = Field(default=None)
    imdb_votes: int = Field(default=0)
    release_date: int | None = Field(default=None, sa_column=_millis_column())
    release_year: int | None = Field(default=None, index=True)
    parental_rating: str | None = Field(default=None)
    runtime: int | None = Field(default=None)
    poster_path: str | None = Field(default=None)
    backdrop_path: str | None = Field(default=None)
    logo_image: str | None = Field(default=None)
    trailer_link: str | None = Field(default=None)
    tagline: str | None = Field(default=None)
    plot: str | None = Field(default=None)
    director: str | None = Field(default=None)


class MovieGenreLink(SQLModel, table=True):
    __tablename__ = "_movie_to_genre"

    movie_id: int = Field(
        sa_column=Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True)
    )
    genre_id: int = Field(
        sa_column=Column(Integer, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True)
    )


class MovieStudioLink(SQLModel, table=True):
    __tablename__ = "_movie_to_studios"

    movie_id: int = Field(
        sa_column=Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True)
    )
    studio_id: int = Field(
        sa_column=Column(Integer, ForeignKey("studios.id", ondelete="CASCADE"), primary_key=True)
    )


class MovieCastRecord(SQLModel, table=True):
    __tablename__ = "movie_casts"

    id: int | None = Field(default=None, primary_key=True)
    movie_id: int = Field(sa_column=_owner_reference("movies"))
    person_id: int
    name: str
    image: str | None = Field(default=None)
    role: str | None = Field(default=None)
    gender: str = Field(default="Other")


class MovieCrewRecord(SQLModel, table=True):
    __tablename__ = "movie_crews"

    id: int | None = Field(default=None, primary_key=True)
    movie_id: int = Field(sa_column=_owner_reference("movies"))
    person_id: int
    name: str
    image: str | None = Field(default=None)
    job: str | None = Field(default=None)


class MovieExternalLinkRecord(SQLModel, table=True):
    __tablename__ = "movie_external_links"

    id: int | None = Field(default=None, primary_key=True)
    movie_id: int = Field(sa_column=_owner_reference("movies"))
    name: str
    url: str


# ---------------------------------------------------------------------------
# Shows


class ShowRecord(SQLModel, table=True):
    __tablename__ = "shows"

    id: int = _external_id_field()
    title: str = Field(index=True)
    imdb_id: str = Field(index=True)
    imdb_rating: float | None = Field(default=None)
    imdb_votes: int = Field(default=0)
    release_date: int | None = Field(default=None, sa_column=_millis_column())
    release_year_from: int | None = Field(default=None, index=True)
    release_year_to: int | None = Field(default=None)
    parental_rating: str | None = Field(default=None)
    poster_path: str | None = Field(default=None)
    backdrop_path: str | None = Field(default=None)
    logo_image: str | None = Field(default=None)
    trailer_link: str | None = Field(default=None)
    plot: str | None = Field(default=None)
    director: str | None = Field(default=None)
    modified_time: int = Field(default=0, sa_column=_millis_column(nullable=False))


class ShowGenreLink(SQLModel, table=True):
    __tablename__ = "_show_to_genre"

    show_id: int = Field(
        sa_column=Column(Integer, ForeignKey("shows.id", ondelete="CASCADE"), primary_key=True)
    )
    genre_id: int = Field(
        sa_column=Column(Integer, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True)
    )


class ShowStudioLink(SQLModel, table=True):
    __tablename__ = "_show_to_studios"

    show_id: int = Field(
        sa_column=Column(Integer, ForeignKey("shows.id", ondelete="CASCADE"), primary_key=True)
    )
    studio_id: int = Field(
        sa_column=Column(Integer, ForeignKey("studios.id", ondelete="CASCADE"), primary_key=True)
    )


class ShowCastRecord(SQLModel, table=True):
    __tablename__ = "show_casts"

    id: int | None = Field(default=None, primary_key=True)
    show_id: int = Field(sa_column=_owner_reference("shows"))
    person_id: int
    name: str
    image: str | None = Field(default=None)
    role: str | None = Field(default=None)
    gender: str = Field(default="Other")


class ShowCrewRecord(SQLModel, table=True):
    __tablename__ = "show_crews"

    id: int | None = Field(default=None, primary_key=True)
    show_id: int = Field(sa_column=_owner_reference("shows"))
    person_id: int
    name: str
    image: str | None = Field(default=None)
    job: str | None = Field(default=None)


class ShowExternalLinkRecord(SQLModel, table=True):
    __tablename__ = "show_external_links"

    id: int | None = Field(default=None, primary_key=True)
    show_id: int = Field(sa_column=_owner_reference("shows"))
    name: str
    url: str


class SeasonRecord(SQLModel, table=True):
    __tablename__ = "seasons"

    id: int = _external_id_field()
    name: str | None = Field(default=None)
    poster_path: str | None = Field(default=None)
    overview: str | None = Field(default=None)
    release_year: int = Field(default=0)
    release_date: int | None = Field(default=None, sa_column=_millis_column())
    season_number: int
    show_id: int = Field(sa_column=_owner_reference("shows"))


class EpisodeRecord(SQLModel, table=True):
    __tablename__ = "episodes"

    id: int = _external_id_field()
    title: str | None = Field(default=None)
    episode_number: int
    season_number: int
    still_path: str | None = Field(default=None)
    overview: str | None = Field(default=None)
    airdate: int | None = Field(default=None, sa_column=_millis_column())
    runtime: int | None = Field(default=None)
    season_id: int = Field(sa_column=_owner_reference("seasons"))
    file_id: str = Field(sa_column=_file_reference())

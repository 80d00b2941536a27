"""Pydantic models for catalog entities and metadata provider payloads."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v="


# ---------------------------------------------------------------------------
# Catalog entities


class CatalogFile(BaseModel):
    """The catalog's view of a remote media file."""

    id: str
    name: str
    size: int = 0
    modified_time: int = Field(default=0, description="Epoch milliseconds.")


class Genre(BaseModel):
    id: int
    name: str


class Studio(BaseModel):
    id: int
    name: str
    logo_path: str | None = None
    origin_country: str = ""


class CastMember(BaseModel):
    person_id: int
    name: str
    image: str | None = None
    role: str | None = None
    gender: Literal["Female", "Male", "Other"] = "Other"


class CrewMember(BaseModel):
    person_id: int
    name: str
    image: str | None = None
    job: str | None = None


class ExternalLink(BaseModel):
    name: str
    url: str


class Movie(BaseModel):
    """A movie merged from TMDB and OMDB metadata."""

    id: int = Field(description="TMDB id, used as the primary key.")
    title: str
    imdb_id: str
    imdb_rating: float | None = None
    imdb_votes: int = 0
    release_date: int | None = None
    release_year: int | None = None
    parental_rating: str | None = None
    runtime: int | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    logo_image: str | None = None
    trailer_link: str | None = None
    tagline: str | None = None
    plot: str | None = None
    director: str | None = None
    collection_id: int | None = None
    file_id: str
    cast: list[CastMember] = Field(default_factory=list)
    crew: list[CrewMember] = Field(default_factory=list)
    genres: list[Genre] = Field(default_factory=list)
    studios: list[Studio] = Field(default_factory=list)
    external_links: list[ExternalLink] = Field(default_factory=list)


class Show(BaseModel):
    """A show merged from TMDB and OMDB metadata."""

    id: int = Field(description="TMDB id, used as the primary key.")
    title: str
    imdb_id: str
    imdb_rating: float | None = None
    imdb_votes: int = 0
    release_date: int | None = None
    release_year_from: int | None = None
    release_year_to: int | None = None
    parental_rating: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    logo_image: str | None = None
    trailer_link: str | None = None
    plot: str | None = None
    director: str | None = None
    modified_time: int = 0
    cast: list[CastMember] = Field(default_factory=list)
    crew: list[CrewMember] = Field(default_factory=list)
    genres: list[Genre] = Field(default_factory=list)
    studios: list[Studio] = Field(default_factory=list)
    external_links: list[ExternalLink] = Field(default_factory=list)


class Season(BaseModel):
    id: int
    name: str | None = None
    poster_path: str | None = None
    overview: str | None = None
    release_year: int = 0
    release_date: int | None = None
    season_number: int
    show_id: int


class Episode(BaseModel):
    id: int
    title: str | None = None
    episode_number: int
    season_number: int
    still_path: str | None = None
    overview: str | None = None
    airdate: int | None = None
    runtime: int | None = None
    season_id: int
    file_id: str


class CatalogStatistics(BaseModel):
    movies: int = 0
    shows: int = 0


# ---------------------------------------------------------------------------
# TMDB payloads


class GenreResponse(BaseModel):
    id: int
    name: str


class TmdbImage(BaseModel):
    file_path: str
    vote_average: float | None = None


class TmdbImages(BaseModel):
    logos: list[TmdbImage] | None = None


class TmdbVideo(BaseModel):
    key: str | None = None
    site: str | None = None
    type: str | None = None
    official: bool = False
    published_at: datetime | None = None


class TmdbVideos(BaseModel):
    results: list[TmdbVideo] | None = None


class TmdbCast(BaseModel):
    id: int
    name: str
    character: str | None = None
    gender: int | None = None
    profile_path: str | None = None

    def to_cast(self) -> CastMember:
        gender = {1: "Female", 2: "Male"}.get(self.gender or 0, "Other")
        return CastMember(
            person_id=self.id,
            name=self.name,
            image=self.profile_path,
            role=self.character,
            gender=gender,
        )


class TmdbCrew(BaseModel):
    id: int
    name: str
    job: str | None = None
    profile_path: str | None = None

    def to_crew(self) -> CrewMember:
        return CrewMember(person_id=self.id, name=self.name, image=self.profile_path, job=self.job)


class TmdbCredits(BaseModel):
    cast: list[TmdbCast] | None = None
    crew: list[TmdbCrew] | None = None


class ProductionCompany(BaseModel):
    id: int
    name: str
    logo_path: str | None = None
    origin_country: str | None = None

    def to_studio(self) -> Studio:
        return Studio(
            id=self.id,
            name=self.name,
            logo_path=self.logo_path,
            origin_country=self.origin_country or "",
        )


class BelongsToCollection(BaseModel):
    id: int


class TmdbMediaResponse(BaseModel):
    """Fields shared by movie and show detail responses."""

    id: int
    poster_path: str | None = None
    backdrop_path: str | None = None
    credits: TmdbCredits = Field(default_factory=TmdbCredits)
    external_ids: dict[str, Any] | None = None
    genres: list[GenreResponse] = Field(default_factory=list)
    images: TmdbImages = Field(default_factory=TmdbImages)
    production_companies: list[ProductionCompany] | None = None
    videos: TmdbVideos = Field(default_factory=TmdbVideos)

    @property
    def imdb_id(self) -> str | None:
        value = (self.external_ids or {}).get("imdb_id")
        return value or None

    def best_logo_image(self) -> str | None:
        logos = self.images.logos or []
        if not logos:
            return None
        return max(logos, key=lambda logo: logo.vote_average or 0.0).file_path

    def official_trailer(self) -> str | None:
        trailers = [
            video
            for video in self.videos.results or []
            if video.type == "Trailer" and video.site == "YouTube" and video.key
        ]
        if not trailers:
            return None
        official = [video for video in trailers if video.official]
        latest = max(
            official or trailers,
            key=lambda video: video.published_at.timestamp() if video.published_at else 0.0,
        )
        return f"{YOUTUBE_WATCH_URL}{latest.key}"

    def director_name(self) -> str | None:
        for member in self.credits.crew or []:
            if member.job == "Director":
                return member.name
        return None

    def external_links(self) -> list[ExternalLink]:
        return [
            ExternalLink(name=site, url=value)
            for site, value in (self.external_ids or {}).items()
            if isinstance(value, str) and value
        ]

    def cast_members(self) -> list[CastMember]:
        return [person.to_cast() for person in self.credits.cast or []]

    def crew_members(self) -> list[CrewMember]:
        return [person.to_crew() for person in self.credits.crew or []]

    def studios(self) -> list[Studio]:
        return [company.to_studio() for company in self.production_companies or []]

    def genre_list(self) -> list[Genre]:
        return [Genre(id=genre.id, name=genre.name) for genre in self.genres]


class MovieResponse(TmdbMediaResponse):
    title: str | None = None
    tagline: str | None = None
    belongs_to_collection: BelongsToCollection | None = None


class TvSeason(BaseModel):
    id: int
    name: str | None = None
    poster_path: str | None = None
    episode_count: int = 0
    season_number: int
    overview: str | None = None
    air_date: str | None = None

    def overview_for(self, show_name: str) -> str:
        """Return the season overview, or a generated premiere sentence."""

        if self.overview:
            return self.overview
        premiered = f"Season {self.season_number} of {show_name}"
        if self.air_date:
            try:
                aired = datetime.strptime(self.air_date, "%Y-%m-%d")
            except ValueError:
                return premiered
            premiered += f" premiered on {aired.strftime('%A %d, %Y')}."
        return premiered


class TvResponse(TmdbMediaResponse):
    name: str | None = None
    seasons: list[TvSeason] | None = None

    def season(self, season_number: int) -> TvSeason | None:
        for season in self.seasons or []:
            if season.season_number == season_number:
                return season
        return None


class SeasonEpisode(BaseModel):
    id: int
    name: str | None = None
    episode_number: int
    season_number: int
    still_path: str | None = None
    overview: str | None = None
    air_date: str | None = None
    runtime: int | None = None


class SeasonResponse(BaseModel):
    id: int | None = None
    name: str | None = None
    air_date: str | None = None
    overview: str | None = None
    poster_path: str | None = None
    season_number: int | None = None
    episodes: list[SeasonEpisode] | None = None


class GenreListResponse(BaseModel):
    genres: list[GenreResponse] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# OMDB payloads


class OmdbResponse(BaseModel):
    """OMDB title payload; values are raw provider strings."""

    model_config = ConfigDict(populate_by_name=True)

    imdb_id: str = Field(alias="imdbID")
    title: str = Field(alias="Title")
    year: str = Field(default="N/A", alias="Year")
    rated: str | None = Field(default=None, alias="Rated")
    released: str | None = Field(default=None, alias="Released")
    runtime: str | None = Field(default=None, alias="Runtime")
    plot: str | None = Field(default=None, alias="Plot")
    imdb_rating: str | None = Field(default=None, alias="imdbRating")
    imdb_votes: str | None = Field(default=None, alias="imdbVotes")
    type: str | None = Field(default=None, alias="Type")

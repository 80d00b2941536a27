"""TMDB metadata client."""
from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..schemas import (
    GenreListResponse,
    GenreResponse,
    MovieResponse,
    SeasonResponse,
    TvResponse,
)
from .http import create_client

logger = logging.getLogger(__name__)

DEFAULT_TMDB_URL = "https://api.themoviedb.org/3"
APPEND_TO_RESPONSE = "images,external_ids,credits,videos"

ResponseT = TypeVar("ResponseT", bound=BaseModel)


class TmdbServiceError(RuntimeError):
    """Raised when TMDB cannot be reached or returns an unusable response."""


class TmdbServiceNotFoundError(TmdbServiceError):
    """Raised when TMDB reports that the requested resource does not exist."""


class TmdbService:
    """Blocking TMDB client keyed by TMDB ids."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_TMDB_URL,
        language: str = "en-US",
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._language = language
        self._client = create_client(base_url.rstrip("/") + "/", timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def fetch_movie(self, tmdb_id: int) -> MovieResponse:
        return self._get(
            f"movie/{tmdb_id}",
            MovieResponse,
            append_to_response=APPEND_TO_RESPONSE,
        )

    def fetch_show(self, tmdb_id: int) -> TvResponse:
        return self._get(
            f"tv/{tmdb_id}",
            TvResponse,
            append_to_response=APPEND_TO_RESPONSE,
        )

    def fetch_season(self, tmdb_id: int, season_number: int) -> SeasonResponse:
        """Fetch a season listing; a season TMDB does not know has no episodes."""

        try:
            return self._get(f"tv/{tmdb_id}/season/{season_number}", SeasonResponse)
        except TmdbServiceNotFoundError:
            logger.debug("TMDB has no season %s for show %s", season_number, tmdb_id)
            return SeasonResponse(season_number=season_number, episodes=None)

    def fetch_movie_genres(self) -> list[GenreResponse]:
        return self._get("genre/movie/list", GenreListResponse).genres

    def fetch_show_genres(self) -> list[GenreResponse]:
        return self._get("genre/tv/list", GenreListResponse).genres

    def _get(self, path: str, model: type[ResponseT], **params: Any) -> ResponseT:
        query = {"api_key": self._api_key, "language": self._language, **params}
        try:
            response = self._client.get(path, params=query)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 404:
                raise TmdbServiceNotFoundError(f"TMDB has no resource at {path}") from exc
            raise TmdbServiceError(f"TMDB responded with HTTP {status} for {path}") from exc
        except httpx.HTTPError as exc:
            raise TmdbServiceError(f"Failed to contact TMDB: {exc}") from exc

        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TmdbServiceError(f"TMDB returned an unexpected payload for {path}") from exc

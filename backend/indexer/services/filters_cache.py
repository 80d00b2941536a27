"""Publish filter facets from the catalog into Redis."""
from __future__ import annotations

import logging
from typing import Any, Iterable

from redis import Redis
from redis.commands.json.path import Path
from redis.exceptions import RedisError

try:  # pragma: no cover - optional dependency for test environments
    import fakeredis
except ModuleNotFoundError:  # pragma: no cover - runtime path without fakeredis
    fakeredis = None  # type: ignore[assignment]

from ..schemas import Genre, Studio
from ..settings import IndexerSettings
from ..stores.facet_store import FacetStore

logger = logging.getLogger(__name__)

SHOW_GENRES_KEY = "commonShowGenres"
SHOW_STUDIOS_KEY = "commonShowStudios"
SHOW_PARENTAL_RATINGS_KEY = "commonShowParentalRatings"
SHOW_YEARS_KEY = "commonShowYears"
MOVIE_GENRES_KEY = "commonMovieGenres"
MOVIE_STUDIOS_KEY = "commonMovieStudios"
MOVIE_PARENTAL_RATINGS_KEY = "commonMovieParentalRatings"
MOVIE_YEARS_KEY = "commonMovieYears"


class CacheServiceError(RuntimeError):
    """Raised when the facet cache cannot be reached or updated."""


def create_redis_connection(settings: IndexerSettings) -> Redis:
    """Instantiate a Redis connection, supporting fakeredis for tests."""

    url = settings.redis_connection_url()
    if url.startswith("fakeredis://"):
        if fakeredis is None:  # pragma: no cover - safety branch
            msg = "fakeredis is required for fakeredis:// URLs"
            raise CacheServiceError(msg)
        return fakeredis.FakeRedis(decode_responses=True)  # type: ignore[return-value]
    return Redis.from_url(url, decode_responses=True)


class FiltersCache:
    """Recompute the eight facet lists and write them to Redis.

    Genre and studio facets are RedisJSON documents replaced at the root
    path on every run. Parental ratings and years are Redis lists updated in
    place: stale values are removed and missing ones pushed.
    """

    def __init__(self, connection: Redis, facets: FacetStore) -> None:
        self._redis = connection
        self._facets = facets

    def publish(self) -> None:
        try:
            self._publish_entries(SHOW_GENRES_KEY, "Show Genres", self._facets.show_genres())
            self._publish_entries(SHOW_STUDIOS_KEY, "Show Studios", self._facets.show_studios())
            self._publish_list(
                SHOW_PARENTAL_RATINGS_KEY, "Show Parental Ratings", self._facets.show_parental_ratings()
            )
            self._publish_list(SHOW_YEARS_KEY, "Show Years", self._facets.show_years())
            self._publish_entries(MOVIE_GENRES_KEY, "Movie Genres", self._facets.movie_genres())
            self._publish_entries(MOVIE_STUDIOS_KEY, "Movie Studios", self._facets.movie_studios())
            self._publish_list(
                MOVIE_PARENTAL_RATINGS_KEY, "Movie Parental Ratings", self._facets.movie_parental_ratings()
            )
            self._publish_list(MOVIE_YEARS_KEY, "Movie Years", self._facets.movie_years())
        except RedisError as exc:
            raise CacheServiceError(f"Failed to update filter cache: {exc}") from exc

    def _publish_entries(self, key: str, label: str, entries: list[Genre] | list[Studio]) -> None:
        payload = [{"id": entry.id, "name": entry.name} for entry in entries]
        self._redis.json().set(key, Path.root_path(), payload)
        logger.info("Updated %s: %d items", label, len(payload))

    def _publish_list(self, key: str, label: str, values: list[Any]) -> tuple[int, int]:
        added, removed = update_list(self._redis, key, values)
        logger.info("Updated %s: %d items, added %d, removed %d", label, len(values), added, removed)
        return added, removed


def update_list(connection: Redis, key: str, values: Iterable[Any]) -> tuple[int, int]:
    """Bring the Redis list at ``key`` in line with ``values``; returns (added, removed)."""

    wanted = [str(value) for value in values]
    existing = {_as_text(item) for item in connection.lrange(key, 0, -1)}

    to_add = [value for value in wanted if value not in existing]
    wanted_set = set(wanted)
    to_remove = [value for value in existing if value not in wanted_set]

    pipeline = connection.pipeline()
    for value in to_remove:
        pipeline.lrem(key, 0, value)
    if to_add:
        pipeline.lpush(key, *to_add)
    pipeline.execute()
    return len(to_add), len(to_remove)


def _as_text(value: bytes | str) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value

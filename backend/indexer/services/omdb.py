"""OMDB ratings and plot client.

OMDB answers unknown ids with HTTP 200 and ``{"Response": "False"}``; that
body, like any transport or decoding failure, is reported as ``None``.
"""
from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from ..schemas import OmdbResponse
from .http import create_client

logger = logging.getLogger(__name__)

DEFAULT_OMDB_URL = "https://www.omdbapi.com"


class OmdbService:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_OMDB_URL,
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._client = create_client(base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def fetch_movie(self, imdb_id: str) -> OmdbResponse | None:
        return self._fetch(imdb_id, "movie")

    def fetch_show(self, imdb_id: str) -> OmdbResponse | None:
        return self._fetch(imdb_id, "series")

    def _fetch(self, imdb_id: str, media_type: str) -> OmdbResponse | None:
        params = {"apikey": self._api_key, "i": imdb_id, "type": media_type, "plot": "full"}
        try:
            response = self._client.get("/", params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("OMDB lookup for %s failed: %s", imdb_id, exc)
            return None

        if not isinstance(payload, dict) or payload.get("Response") == "False":
            logger.debug("OMDB has no %s for %s: %s", media_type, imdb_id, payload)
            return None
        try:
            return OmdbResponse.model_validate(payload)
        except ValidationError as exc:
            logger.debug("OMDB returned an unexpected payload for %s: %s", imdb_id, exc)
            return None

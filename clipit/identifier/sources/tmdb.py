# clipit/identifier/sources/tmdb.py
"""Helpers for querying the TMDB v3 film catalog."""

from __future__ import annotations

from typing import List

import httpx

from clipit.identifier.sources.http import get_json
from clipit.identifier.sources.payloads import (
    MovieDetails,
    MovieListResponse,
    MovieSummary,
    WatchProvidersResponse,
)

BASE_URL = "https://api.themoviedb.org/3"
IMAGE_URL = "https://image.tmdb.org/t/p"


def image_url(size: str, path: str | None) -> str:
    """Absolute image URL, or empty string when the catalog has no image."""
    return f"{IMAGE_URL}/{size}{path}" if path else ""


class TMDBClient:
    """Thin async wrapper; every method is a single request."""

    def __init__(self, http: httpx.AsyncClient, api_key: str, base_url: str = BASE_URL) -> None:
        self._http = http
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    async def search_movies(self, query: str) -> List[MovieSummary]:
        payload = await get_json(
            self._http,
            f"{self._base_url}/search/movie",
            {"api_key": self._api_key, "query": query},
            MovieListResponse,
        )
        return payload.results

    async def movie_details(self, tmdb_id: int) -> MovieDetails:
        return await get_json(
            self._http,
            f"{self._base_url}/movie/{tmdb_id}",
            {"api_key": self._api_key, "append_to_response": "videos"},
            MovieDetails,
        )

    async def watch_providers(self, tmdb_id: int) -> WatchProvidersResponse:
        return await get_json(
            self._http,
            f"{self._base_url}/movie/{tmdb_id}/watch/providers",
            {"api_key": self._api_key},
            WatchProvidersResponse,
        )

    async def similar_movies(self, tmdb_id: int) -> List[MovieSummary]:
        payload = await get_json(
            self._http,
            f"{self._base_url}/movie/{tmdb_id}/similar",
            {"api_key": self._api_key, "page": 1},
            MovieListResponse,
        )
        return payload.results

from __future__ import annotations

import asyncio
import json
import logging
import sys
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, List, Tuple, Union

import httpx
import pytest
from openai import AsyncOpenAI

# Ensure tests can import the project package regardless of how pytest is invoked.
ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)

from clipit.config.settings import Settings  # noqa: E402
from clipit.identifier.sources.tmdb import TMDBClient  # noqa: E402
from clipit.identifier.sources.youtube import OEmbedClient, YouTubeDataClient  # noqa: E402
from clipit.identifier.stages.base import StageContext  # noqa: E402

YOUTUBE_HOST = "www.googleapis.com"
OEMBED_HOST = "www.youtube.com"
TMDB_HOST = "api.themoviedb.org"
LLM_HOST = "llm.test"
LLM_BASE_URL = f"https://{LLM_HOST}/v1"

Route = Union[Dict[str, Any], httpx.Response, Callable[[httpx.Request], httpx.Response]]


def respond(route: Route, request: httpx.Request) -> Any:
    if isinstance(route, httpx.Response):
        return route
    if callable(route):
        return route(request)
    return httpx.Response(200, json=route)


class Gate:
    """
    Holds each request until ``expected`` requests are in flight together.

    ``peak`` records the most requests seen in flight at once. A request that
    waits longer than ``timeout`` is answered anyway, so sequential callers
    finish with ``peak == 1`` instead of hanging.
    """

    def __init__(self, expected: int, timeout: float = 1.0) -> None:
        self.expected = expected
        self.timeout = timeout
        self.in_flight = 0
        self.peak = 0
        self._released: asyncio.Event | None = None

    def hold(self, route: Route) -> Callable[[httpx.Request], Any]:
        async def gated(request: httpx.Request) -> httpx.Response:
            if self._released is None:
                self._released = asyncio.Event()
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            if self.in_flight >= self.expected:
                self._released.set()
            try:
                await asyncio.wait_for(self._released.wait(), self.timeout)
            except asyncio.TimeoutError:
                pass
            finally:
                self.in_flight -= 1
            return respond(route, request)

        return gated


class FakeUpstream:
    """Routes every outbound request of a test to canned responses keyed by (host, path)."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def add(self, host: str, path: str, route: Route) -> None:
        self.routes[(host, path)] = route

    def calls(self, host: str, path: str | None = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.url.host == host and (path is None or r.url.path == path)
        ]

    def _handle(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        route = self.routes.get((request.url.host, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": f"no route for {request.url.path}"})
        # MockTransport awaits the result when the route is a coroutine function
        return respond(route, request)

    # --- canned collaborator behaviour ------------------------------------

    def youtube_video(self, snippet: Dict[str, Any]) -> None:
        self.add(YOUTUBE_HOST, "/youtube/v3/videos", {"items": [{"snippet": snippet}]})

    def youtube_captions(self, languages: List[str]) -> None:
        self.add(
            YOUTUBE_HOST,
            "/youtube/v3/captions",
            {"items": [{"snippet": {"language": lang}} for lang in languages]},
        )

    def youtube_comments(self, texts: List[str]) -> None:
        self.add(
            YOUTUBE_HOST,
            "/youtube/v3/commentThreads",
            {
                "items": [
                    {"snippet": {"topLevelComment": {"snippet": {"textDisplay": text}}}}
                    for text in texts
                ]
            },
        )

    def oembed(self, title: str, author: str) -> None:
        self.add(OEMBED_HOST, "/oembed", {"title": title, "author_name": author})

    def llm_reply(self, content: str | None) -> None:
        self.add(LLM_HOST, "/v1/chat/completions", chat_completion(content))

    def llm_ranking(self, matches: List[Dict[str, Any]], reasoning: str = "Evidence points here.") -> None:
        self.llm_reply(json.dumps({"matches": matches, "detailedReasoning": reasoning}))

    def llm_status(self, status: int) -> None:
        self.add(
            LLM_HOST,
            "/v1/chat/completions",
            httpx.Response(status, json={"error": {"message": f"upstream {status}"}}),
        )

    def tmdb_catalog(self, movies: Dict[str, Dict[str, Any]]) -> None:
        """Searchable catalog: title -> details payload. Unknown titles return no results."""

        def search(request: httpx.Request) -> httpx.Response:
            details = movies.get(request.url.params["query"])
            results = [] if details is None else [{"id": details["id"], "title": details["title"]}]
            return httpx.Response(200, json={"results": results})

        self.add(TMDB_HOST, "/3/search/movie", search)
        for details in movies.values():
            self.add(TMDB_HOST, f"/3/movie/{details['id']}", details)


def chat_completion(content: str | None) -> Dict[str, Any]:
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 0,
        "model": "test-model",
        "choices": [
            {
                "index": 0,
                "finish_reason": "stop",
                "message": {"role": "assistant", "content": content},
            }
        ],
    }


def movie_details(tmdb_id: int, title: str, **overrides: Any) -> Dict[str, Any]:
    payload = {
        "id": tmdb_id,
        "title": title,
        "release_date": "1977-05-25",
        "poster_path": f"/{tmdb_id}.jpg",
        "overview": f"{title} plot.",
        "vote_average": 8.21,
        "runtime": 121,
        "genres": [{"name": "Adventure"}, {"name": "Science Fiction"}],
        "videos": {"results": []},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        YOUTUBE_API_KEY="yt-key",
        LLM_API_KEY="llm-key",
        TMDB_API_KEY="tmdb-key",
        LLM_BASE_URL=LLM_BASE_URL,
        LLM_MODEL="test-model",
        watch_region="US",
    )


@asynccontextmanager
async def open_clients(upstream: FakeUpstream) -> AsyncIterator[Tuple[httpx.AsyncClient, AsyncOpenAI]]:
    async with httpx.AsyncClient(transport=upstream.transport) as http:
        llm = AsyncOpenAI(
            api_key="llm-key",
            base_url=LLM_BASE_URL,
            max_retries=0,
            http_client=httpx.AsyncClient(transport=upstream.transport),
        )
        try:
            yield http, llm
        finally:
            await llm.close()


@asynccontextmanager
async def stage_context(upstream: FakeUpstream, settings: Settings) -> AsyncIterator[StageContext]:
    async with open_clients(upstream) as (http, llm):
        yield StageContext(
            run_id=uuid.uuid4(),
            logger=logging.getLogger("clipit.tests"),
            settings=settings,
            youtube=YouTubeDataClient(http, settings.youtube_api_key) if settings.youtube_api_key else None,
            oembed=OEmbedClient(http),
            tmdb=TMDBClient(http, settings.tmdb_api_key or ""),
            llm=llm,
        )

# clipit/identifier/sources/youtube.py
"""
YouTube collaborators: the credentialed Data API v3 and the public oEmbed endpoint.

Clients only fetch and validate. Deciding what to do when a call fails is
the fetch_metadata stage's job.
"""

from __future__ import annotations

import html
from typing import List

import httpx

from clipit.identifier.errors import UpstreamError
from clipit.identifier.sources.http import get_json
from clipit.identifier.sources.payloads import (
    CaptionListResponse,
    CommentThreadListResponse,
    OEmbedResponse,
    VideoListResponse,
    VideoSnippet,
)

DATA_API_URL = "https://www.googleapis.com/youtube/v3"
OEMBED_URL = "https://www.youtube.com/oembed"


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def default_thumbnail(video_id: str) -> str:
    """Conventional thumbnail location; needs no API call."""
    return f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"


class YouTubeDataClient:
    """Read-only access to the parts of the Data API the identifier uses."""

    def __init__(self, http: httpx.AsyncClient, api_key: str) -> None:
        self._http = http
        self._api_key = api_key

    async def video_snippet(self, video_id: str) -> VideoSnippet:
        payload = await get_json(
            self._http,
            f"{DATA_API_URL}/videos",
            {"part": "snippet,contentDetails", "id": video_id, "key": self._api_key},
            VideoListResponse,
        )
        if not payload.items:
            raise UpstreamError(f"Video not found: {video_id}", status_code=404)
        return payload.items[0].snippet

    async def caption_languages(self, video_id: str) -> List[str]:
        """Language codes of the published caption tracks. Never downloads caption text."""
        payload = await get_json(
            self._http,
            f"{DATA_API_URL}/captions",
            {"part": "snippet", "videoId": video_id, "key": self._api_key},
            CaptionListResponse,
        )
        return [track.snippet.language for track in payload.items]

    async def top_comments(self, video_id: str, page_size: int = 50) -> List[str]:
        """Plain text of the most relevant top-level comments, one page only."""
        payload = await get_json(
            self._http,
            f"{DATA_API_URL}/commentThreads",
            {
                "part": "snippet",
                "videoId": video_id,
                "maxResults": page_size,
                "order": "relevance",
                "key": self._api_key,
            },
            CommentThreadListResponse,
        )
        comments = []
        for thread in payload.items:
            snippet = thread.snippet.top_level_comment.snippet
            # textDisplay is HTML-escaped; textOriginal is only returned to authorized callers
            comments.append(snippet.text_original or html.unescape(snippet.text_display))
        return comments


class OEmbedClient:
    """Unauthenticated embed-info lookup: title and author only."""

    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    async def lookup(self, video_id: str) -> OEmbedResponse:
        return await get_json(
            self._http,
            OEMBED_URL,
            {"url": watch_url(video_id), "format": "json"},
            OEmbedResponse,
        )

# clipit/identifier/sources/payloads.py
"""
Explicit schemas for the external JSON payloads the pipeline consumes.

Only the fields the pipeline reads are declared; everything else is ignored.
Required fields are the ones without defaults. A payload that fails
validation is treated by the calling client exactly like an upstream error.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# --- YouTube Data API v3 (camelCase on the wire) -----------------------------

class YouTubePayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Thumbnail(YouTubePayload):
    url: str


class Thumbnails(YouTubePayload):
    maxres: Optional[Thumbnail] = None
    high: Optional[Thumbnail] = None
    medium: Optional[Thumbnail] = None
    default: Optional[Thumbnail] = None

    def best_url(self) -> Optional[str]:
        """Highest available quality: maxres, high, medium, default."""
        for variant in (self.maxres, self.high, self.medium, self.default):
            if variant is not None and variant.url:
                return variant.url
        return None


class VideoSnippet(YouTubePayload):
    title: str = ""
    description: str = ""
    channel_title: str = ""
    published_at: str = ""
    thumbnails: Thumbnails = Field(default_factory=Thumbnails)


class VideoItem(YouTubePayload):
    snippet: VideoSnippet


class VideoListResponse(YouTubePayload):
    items: List[VideoItem] = Field(default_factory=list)


class CaptionSnippet(YouTubePayload):
    language: str


class CaptionTrack(YouTubePayload):
    snippet: CaptionSnippet


class CaptionListResponse(YouTubePayload):
    items: List[CaptionTrack] = Field(default_factory=list)


class CommentSnippet(YouTubePayload):
    text_display: str = ""
    text_original: Optional[str] = None


class TopLevelComment(YouTubePayload):
    snippet: CommentSnippet


class CommentThreadSnippet(YouTubePayload):
    top_level_comment: TopLevelComment


class CommentThread(YouTubePayload):
    snippet: CommentThreadSnippet


class CommentThreadListResponse(YouTubePayload):
    items: List[CommentThread] = Field(default_factory=list)


class OEmbedResponse(BaseModel):
    title: str = ""
    author_name: str = ""


# --- TMDB v3 (snake_case on the wire) ----------------------------------------

class MovieSummary(BaseModel):
    """Shape shared by /search/movie and /movie/{id}/similar results."""
    id: int
    title: str = ""
    release_date: Optional[str] = None
    poster_path: Optional[str] = None


class MovieListResponse(BaseModel):
    results: List[MovieSummary] = Field(default_factory=list)


class Genre(BaseModel):
    name: str


class VideoClip(BaseModel):
    key: str = ""
    site: str = ""
    type: str = ""


class VideoClips(BaseModel):
    results: List[VideoClip] = Field(default_factory=list)


class MovieDetails(BaseModel):
    """/movie/{id}?append_to_response=videos"""
    id: int
    title: str = ""
    release_date: Optional[str] = None
    poster_path: Optional[str] = None
    overview: Optional[str] = None
    vote_average: Optional[float] = None
    runtime: Optional[int] = None
    genres: List[Genre] = Field(default_factory=list)
    videos: Optional[VideoClips] = None


class WatchProvider(BaseModel):
    provider_name: str
    logo_path: Optional[str] = None


class RegionProviders(BaseModel):
    link: Optional[str] = None
    flatrate: List[WatchProvider] = Field(default_factory=list)
    rent: List[WatchProvider] = Field(default_factory=list)
    buy: List[WatchProvider] = Field(default_factory=list)


class WatchProvidersResponse(BaseModel):
    results: Dict[str, RegionProviders] = Field(default_factory=dict)

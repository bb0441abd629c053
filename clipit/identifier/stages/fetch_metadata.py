# clipit/identifier/stages/fetch_metadata.py
"""
Stage 2: Aggregate video metadata.

Responsibility:
- Title, description, channel, publish date and best thumbnail from the Data API
- Caption-track availability (languages only, caption text is never downloaded)
- Keywords mined from the most relevant comments

Strategies are tried in order until one produces metadata:
  Data API (needs YOUTUBE_API_KEY) -> oEmbed -> placeholder.
The placeholder cannot fail, so this stage never raises.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from clipit.identifier.errors import UpstreamError
from clipit.identifier.schema import FailureType, StageFailure, StageResult, VideoMetadata
from clipit.identifier.sources.youtube import YouTubeDataClient, default_thumbnail
from clipit.identifier.stages.base import StageContext, timer
from clipit.identifier.stages.mine_keywords import extract_keywords
from clipit.logging_core.logger import log_event

STAGE_NAME = "fetch_metadata"

StrategyOutcome = Tuple[Optional[VideoMetadata], List[StageFailure]]
MetadataStrategy = Callable[[str, StageContext], Awaitable[StrategyOutcome]]


def _source_failure(cause: str, impact: str, exc: Exception, *fixes: str) -> StageFailure:
    return StageFailure(
        stage=STAGE_NAME,
        type=FailureType.SOURCE_ERROR,
        cause=cause,
        impact=f"{impact} ({exc})",
        suggested_fixes=list(fixes),
    )


async def _captions(youtube: YouTubeDataClient, video_id: str) -> Tuple[bool, str, Optional[StageFailure]]:
    try:
        languages = await youtube.caption_languages(video_id)
    except UpstreamError as exc:
        failure = _source_failure(
            "captions_unavailable",
            "Caption availability unknown; reported as unavailable",
            exc,
            "Captions listing may require OAuth for some videos",
        )
        return False, "", failure

    if not languages:
        return False, "", None
    return True, f"[Captions available in {', '.join(languages)}]", None


async def _comment_keywords(youtube: YouTubeDataClient, video_id: str, page_size: int) -> Tuple[List[str], Optional[StageFailure]]:
    try:
        comments = await youtube.top_comments(video_id, page_size)
    except UpstreamError as exc:
        failure = _source_failure(
            "comments_unavailable",
            "No comment keywords for ranking",
            exc,
            "Comments may be disabled on this video",
        )
        return [], failure
    return extract_keywords(comments), None


async def from_data_api(video_id: str, ctx: StageContext) -> StrategyOutcome:
    """Primary strategy. Captions and comments are fetched concurrently once the video lookup succeeds."""
    youtube = ctx.youtube
    if youtube is None:
        return None, []

    try:
        snippet = await youtube.video_snippet(video_id)
    except UpstreamError as exc:
        failure = _source_failure(
            "data_api_unavailable",
            "Falling back to oEmbed",
            exc,
            "Check YOUTUBE_API_KEY and quota",
            "Check the video is public",
        )
        return None, [failure]

    (has_captions, captions_text, captions_failure), (keywords, comments_failure) = await asyncio.gather(
        _captions(youtube, video_id),
        _comment_keywords(youtube, video_id, ctx.settings.comment_page_size),
    )

    metadata = VideoMetadata(
        title=snippet.title,
        description=snippet.description,
        thumbnail=snippet.thumbnails.best_url() or default_thumbnail(video_id),
        channel_title=snippet.channel_title,
        published_at=snippet.published_at,
        captions_available=has_captions,
        captions_text=captions_text,
        comment_keywords=keywords,
    )
    return metadata, [f for f in (captions_failure, comments_failure) if f is not None]


async def from_oembed(video_id: str, ctx: StageContext) -> StrategyOutcome:
    """Fallback strategy: title and author only."""
    try:
        info = await ctx.oembed.lookup(video_id)
    except UpstreamError as exc:
        failure = _source_failure(
            "oembed_unavailable",
            "Ranking will run without any video metadata",
            exc,
            "Check the video is public and embeddable",
        )
        return None, [failure]

    metadata = VideoMetadata(
        title=info.title,
        thumbnail=default_thumbnail(video_id),
        channel_title=info.author_name,
    )
    return metadata, []


STRATEGIES: Tuple[MetadataStrategy, ...] = (from_data_api, from_oembed)


async def process(video_id: str, ctx: StageContext) -> Tuple[VideoMetadata, StageResult]:
    """
    Best-effort metadata for ``video_id``. Failures degrade, they never propagate.
    """
    logger = ctx.logger
    log_event(
        logger,
        logging.INFO,
        "Fetching YouTube metadata",
        stage_name=STAGE_NAME,
        event_type="start",
        metadata={"video_id": video_id, "data_api": ctx.youtube is not None},
    )

    warnings: List[str] = []
    failures: List[StageFailure] = []
    if ctx.youtube is None:
        warnings.append("YOUTUBE_API_KEY not configured; using oEmbed metadata")

    with timer() as end:
        metadata: Optional[VideoMetadata] = None
        strategy_name = "placeholder"
        for strategy in STRATEGIES:
            metadata, strategy_failures = await strategy(video_id, ctx)
            failures.extend(strategy_failures)
            for failure in strategy_failures:
                log_event(
                    logger,
                    logging.WARNING,
                    "Metadata source degraded",
                    stage_name=STAGE_NAME,
                    event_type="degraded",
                    metadata={"cause": failure.cause, "impact": failure.impact},
                )
            if metadata is not None:
                strategy_name = strategy.__name__
                break

        if metadata is None:
            metadata = VideoMetadata(thumbnail=default_thumbnail(video_id))

        result = StageResult(
            stage_name=STAGE_NAME,
            success=not failures,
            warnings=warnings,
            failures=failures,
            execution_time_ms=end(),
        )

    log_event(
        logger,
        logging.INFO,
        "Metadata assembled",
        stage_name=STAGE_NAME,
        event_type="success" if result.success else "degraded",
        metadata={
            "strategy": strategy_name,
            "title": metadata.title,
            "channel": metadata.channel_title,
            "captions_available": metadata.captions_available,
            "comment_keywords": len(metadata.comment_keywords),
        },
    )
    return metadata, result



# High-Level Intent
# fetch_metadata.py maximizes the signal handed to the ranker while never failing the request.

# Data Flow
# video_id -> from_data_api (snippet, then captions || comments) -> VideoMetadata
#          -> from_oembed when the key is missing or the video lookup fails
#          -> placeholder (thumbnail only) when oEmbed fails too

# Edge Cases & Failure Scenarios
# Captions listing refused (common without OAuth) -> captions_available False, pipeline continues.
# Comments disabled -> empty keyword list.
# Snippet without thumbnails -> conventional maxresdefault URL.

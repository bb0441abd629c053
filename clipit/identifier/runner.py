# clipit/identifier/runner.py
"""
Orchestration runner for the movie identification pipeline.

Responsibilities:
- Initialize traceability, logger, diagnostics and collaborator clients
- Execute stages in fixed order, fanning out where stages are independent
- Decide between the found and not-found response shapes

Fatal: InputError, ConfigurationError, RankerError. Everything else degrades.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import AsyncExitStack
from typing import Any, Optional, Union

import httpx
from openai import AsyncOpenAI

from clipit.config.settings import Settings, get_settings
from clipit.identifier.diagnostics.collector import DiagnosticsCollector
from clipit.identifier.errors import InputError
from clipit.identifier.schema import IdentificationResult, MovieMatch, NotFoundResult, StageResult
from clipit.identifier.sources.tmdb import TMDBClient
from clipit.identifier.sources.youtube import OEmbedClient, YouTubeDataClient
from clipit.identifier.stages import (
    enrich_match,
    fetch_metadata,
    rank_candidates,
    resolve_catalog,
)
from clipit.identifier.stages.base import StageContext, timer
from clipit.identifier.stages.extract_video_id import extract_video_id
from clipit.logging_core.logger import get_logger, log_event, release_logger

IdentificationOutcome = Union[IdentificationResult, NotFoundResult]


def validate_url(url: Any) -> tuple[str, StageResult]:
    """Stage 1 wrapper: canonical id or InputError. No external call is made."""
    with timer() as end:
        if not isinstance(url, str) or not url.strip():
            raise InputError("Video URL is required", cause="missing_url")

        video_id = extract_video_id(url)
        if video_id is None:
            raise InputError(
                "Invalid YouTube URL. Please provide a valid YouTube video link.",
                cause="invalid_video_url",
            )
        return video_id, StageResult(stage_name="extract_video_id", success=True, execution_time_ms=end())


def attach_reasoning(matches: list[MovieMatch], reasoning: str) -> list[MovieMatch]:
    """Copy the ranker's narrative onto every resolved movie."""
    return [
        match.model_copy(update={"movie": match.movie.model_copy(update={"ai_reasoning": reasoning})})
        for match in matches
    ]


def not_found_message(top_title: Optional[str]) -> str:
    if top_title:
        return f"Could not find movie information. The AI suggested: {top_title}"
    return "Could not find movie information. The AI did not suggest a title."


async def run_identification(
    url: Any,
    settings: Optional[Settings] = None,
    *,
    http: Optional[httpx.AsyncClient] = None,
    llm: Optional[AsyncOpenAI] = None,
) -> IdentificationOutcome:
    """
    Identify the movie behind a YouTube link.

    Args:
        url: Video link in any supported form
        settings: Configuration; defaults to the cached environment settings
        http: Client for YouTube and TMDB calls; one is created (and closed) if omitted
        llm: Chat-completions client; one is created from settings if omitted

    Returns:
        IdentificationResult, or NotFoundResult when no ranked candidate resolves.

    Raises:
        InputError, ConfigurationError, RankerError
    """
    settings = settings or get_settings()
    run_id = uuid.uuid4()
    logger = get_logger(run_id, settings.log_level.upper())

    try:
        log_event(
            logger,
            logging.INFO,
            "Starting movie identification pipeline",
            event_type="pipeline_start",
            metadata={"url": url if isinstance(url, str) else repr(url), "run_id": str(run_id)},
        )

        collector = DiagnosticsCollector(run_id)
        try:
            video_id, extract_result = validate_url(url)
        except InputError as exc:
            log_event(
                logger,
                logging.WARNING,
                "Rejected input",
                stage_name="extract_video_id",
                event_type="failure",
                metadata={"cause": exc.cause},
            )
            raise
        collector.add_stage_result(extract_result)
        settings.require_credentials()

        async with AsyncExitStack() as stack:
            if http is None:
                http = await stack.enter_async_context(httpx.AsyncClient(timeout=settings.request_timeout))
            if llm is None:
                llm = AsyncOpenAI(
                    api_key=settings.llm_api_key,
                    base_url=settings.llm_base_url,
                    max_retries=0,
                    timeout=settings.request_timeout * 4,
                )
                stack.push_async_callback(llm.close)

            ctx = StageContext(
                run_id=run_id,
                logger=logger,
                settings=settings,
                youtube=YouTubeDataClient(http, settings.youtube_api_key) if settings.youtube_api_key else None,
                oembed=OEmbedClient(http),
                tmdb=TMDBClient(http, settings.tmdb_api_key or ""),
                llm=llm,
            )
            return await _run_stages(video_id, ctx, collector)
    finally:
        release_logger(run_id)


async def _run_stages(video_id: str, ctx: StageContext, collector: DiagnosticsCollector) -> IdentificationOutcome:
    logger = ctx.logger

    metadata, stage_result = await fetch_metadata.process(video_id, ctx)
    collector.add_stage_result(stage_result)

    ranking, stage_result = await rank_candidates.process(metadata, ctx)
    collector.add_stage_result(stage_result)

    matches, stage_result = await resolve_catalog.process(ranking, ctx)
    collector.add_stage_result(stage_result)

    if not matches:
        outcome = NotFoundResult(
            error=not_found_message(ranking.top_title),
            suggested_title=ranking.top_title,
            ai_reasoning=ranking.detailed_reasoning,
            diagnostics=collector.build(),
        )
        log_event(
            logger,
            logging.WARNING,
            "No candidate resolved in catalog",
            event_type="pipeline_not_found",
            metadata={"suggested_title": ranking.top_title},
        )
        return outcome

    matches = attach_reasoning(matches, ranking.detailed_reasoning)
    best = matches[0]

    enrichment, stage_result = await enrich_match.process(best.movie.tmdb_id, ctx)
    collector.add_stage_result(stage_result)

    outcome = IdentificationResult(
        movie=best.movie,
        video_thumbnail=metadata.thumbnail,
        matches=matches,
        streaming_providers=enrichment.streaming_providers,
        similar_movies=enrichment.similar_movies,
        detailed_reasoning=ranking.detailed_reasoning,
        diagnostics=collector.build(),
    )
    log_event(
        logger,
        logging.INFO,
        "Pipeline completed",
        event_type="pipeline_success",
        metadata={
            "best_match": best.movie.title,
            "tmdb_id": best.movie.tmdb_id,
            "matches": len(matches),
            "degraded": collector.has_degraded_stage(),
        },
    )
    return outcome


def identify(url: Any, settings: Optional[Settings] = None) -> IdentificationOutcome:
    """Blocking entry point for callers without an event loop (CLI, scripts)."""
    return asyncio.run(run_identification(url, settings))



# High-Level Intent
# runner.py sequences the pipeline and owns nothing else.

# Data Flow
# url -> validate_url -> fetch_metadata -> rank_candidates
#     -> resolve_catalog (one task per candidate, gathered, compacted in ranker order)
#     -> NotFoundResult when nothing survives
#     -> attach narrative -> enrich_match (best match only) -> IdentificationResult

# Edge Cases & Failure Scenarios
# Missing or unrecognized URL -> InputError before any client is created.
# Missing LLM or TMDB credential -> ConfigurationError before any network call.
# Ranker failure -> propagated unchanged; no partial response.
# The same catalog record resolved from two phrasings appears twice; it is not deduplicated.

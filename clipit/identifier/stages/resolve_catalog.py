# clipit/identifier/stages/resolve_catalog.py
"""
Stage 4: Resolve ranked candidates against the film catalog.

Every candidate is resolved concurrently. A miss (no search hit, or a
catalog call that failed) removes the candidate; survivors keep the
ranker's order. The catalog's own relevance order is trusted: the first
search hit is the match.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple

from clipit.identifier.errors import UpstreamError
from clipit.identifier.schema import (
    CandidateMatch,
    FailureType,
    MovieMatch,
    Ranking,
    ResolvedMovie,
    StageFailure,
    StageResult,
)
from clipit.identifier.sources.payloads import MovieDetails, VideoClips
from clipit.identifier.sources.tmdb import image_url
from clipit.identifier.sources.youtube import watch_url
from clipit.identifier.stages.base import StageContext, timer
from clipit.logging_core.logger import log_event

STAGE_NAME = "resolve_catalog"

Resolution = Tuple[Optional[ResolvedMovie], Optional[StageFailure]]


def pick_trailer(videos: Optional[VideoClips]) -> Optional[str]:
    """First clip typed Trailer and hosted on YouTube, as a watch URL."""
    if videos is None:
        return None
    for clip in videos.results:
        if clip.type == "Trailer" and clip.site == "YouTube" and clip.key:
            return watch_url(clip.key)
    return None


def to_resolved_movie(details: MovieDetails) -> ResolvedMovie:
    return ResolvedMovie(
        title=details.title,
        year=details.release_date.split("-")[0] if details.release_date else "Unknown",
        poster=image_url("w500", details.poster_path),
        plot=details.overview or "No plot available.",
        rating=f"{details.vote_average:.1f}" if details.vote_average else "N/A",
        runtime=f"{details.runtime} min" if details.runtime else "Unknown",
        genres=[genre.name for genre in details.genres],
        trailer=pick_trailer(details.videos),
        tmdb_id=details.id,
    )


async def resolve_title(title: str, ctx: StageContext) -> Resolution:
    """Best catalog record for ``title``; (None, failure) when there is none."""
    try:
        hits = await ctx.tmdb.search_movies(title)
        if not hits:
            return None, StageFailure(
                stage=STAGE_NAME,
                type=FailureType.RESOLUTION_MISS,
                cause="no_search_results",
                impact=f"Candidate '{title}' dropped",
            )
        details = await ctx.tmdb.movie_details(hits[0].id)
    except UpstreamError as exc:
        return None, StageFailure(
            stage=STAGE_NAME,
            type=FailureType.RESOLUTION_MISS,
            cause="catalog_unavailable",
            impact=f"Candidate '{title}' dropped ({exc})",
            suggested_fixes=["Check TMDB_API_KEY", "Retry later"],
        )
    return to_resolved_movie(details), None


async def process(ranking: Ranking, ctx: StageContext) -> Tuple[List[MovieMatch], StageResult]:
    """
    Scatter one resolution per candidate, gather, compact in ranker order.
    """
    logger = ctx.logger
    log_event(
        logger,
        logging.INFO,
        "Resolving candidates against catalog",
        stage_name=STAGE_NAME,
        event_type="start",
        metadata={"candidates": len(ranking.matches)},
    )

    with timer() as end:
        resolutions = await asyncio.gather(*(resolve_title(c.title, ctx) for c in ranking.matches))

        matches: List[MovieMatch] = []
        failures: List[StageFailure] = []
        for candidate, (movie, failure) in zip(ranking.matches, resolutions):
            if movie is not None:
                matches.append(_to_match(candidate, movie))
            if failure is not None:
                failures.append(failure)
                log_event(
                    logger,
                    logging.WARNING if failure.cause == "catalog_unavailable" else logging.INFO,
                    "Candidate not resolved",
                    stage_name=STAGE_NAME,
                    event_type="degraded",
                    metadata={"title": candidate.title, "cause": failure.cause},
                )

        result = StageResult(
            stage_name=STAGE_NAME,
            success=bool(matches),
            warnings=[f.impact for f in failures],
            failures=failures,
            execution_time_ms=end(),
        )

    log_event(
        logger,
        logging.INFO,
        "Candidates resolved",
        stage_name=STAGE_NAME,
        event_type="success" if matches else "failure",
        metadata={"resolved": [m.movie.title for m in matches], "dropped": len(failures)},
    )
    return matches, result


def _to_match(candidate: CandidateMatch, movie: ResolvedMovie) -> MovieMatch:
    return MovieMatch(movie=movie, confidence=candidate.confidence, match_reasons=candidate.reasons)

# clipit/identifier/stages/enrich_match.py
"""
Stage 5: Enrichment for the best match only.

Streaming providers and similar titles are fetched concurrently. Both are
non-critical: a failed fetch yields an empty list and a diagnostic.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple

from clipit.identifier.errors import UpstreamError
from clipit.identifier.schema import (
    EnrichmentBundle,
    FailureType,
    SimilarMovie,
    StageFailure,
    StageResult,
    StreamingProvider,
)
from clipit.identifier.sources.payloads import RegionProviders, WatchProvidersResponse
from clipit.identifier.sources.tmdb import image_url
from clipit.identifier.stages.base import StageContext, timer
from clipit.logging_core.logger import log_event

STAGE_NAME = "enrich_match"

MAX_PROVIDERS = 6
MAX_SUBSCRIPTION = 4
MAX_RENTAL = 2
MAX_SIMILAR = 6


def pick_region(payload: WatchProvidersResponse, preferred: str) -> Optional[RegionProviders]:
    """The preferred region's data, else whichever region the catalog lists first."""
    if preferred in payload.results:
        return payload.results[preferred]
    return next(iter(payload.results.values()), None)


def merge_providers(region: RegionProviders) -> List[StreamingProvider]:
    """Subscription offers first, then rentals; deduplicated by provider name."""
    providers: List[StreamingProvider] = []
    seen = set()
    tiers = (
        ("subscription", region.flatrate[:MAX_SUBSCRIPTION]),
        ("rent", region.rent[:MAX_RENTAL]),
    )
    for kind, offers in tiers:
        for offer in offers:
            if offer.provider_name in seen:
                continue
            seen.add(offer.provider_name)
            providers.append(
                StreamingProvider(
                    name=offer.provider_name,
                    logo=image_url("original", offer.logo_path),
                    link=region.link or "",
                    type=kind,
                )
            )
    return providers[:MAX_PROVIDERS]


async def streaming_providers(tmdb_id: int, ctx: StageContext) -> Tuple[List[StreamingProvider], Optional[StageFailure]]:
    try:
        payload = await ctx.tmdb.watch_providers(tmdb_id)
    except UpstreamError as exc:
        return [], _enrichment_failure("providers_unavailable", "No streaming providers", exc)

    region = pick_region(payload, ctx.settings.watch_region)
    if region is None:
        return [], None
    return merge_providers(region), None


async def similar_movies(tmdb_id: int, ctx: StageContext) -> Tuple[List[SimilarMovie], Optional[StageFailure]]:
    try:
        results = await ctx.tmdb.similar_movies(tmdb_id)
    except UpstreamError as exc:
        return [], _enrichment_failure("similar_unavailable", "No similar titles", exc)

    return [
        SimilarMovie(
            id=movie.id,
            title=movie.title,
            poster=image_url("w200", movie.poster_path),
            year=movie.release_date.split("-")[0] if movie.release_date else "Unknown",
        )
        for movie in results[:MAX_SIMILAR]
    ], None


def _enrichment_failure(cause: str, impact: str, exc: Exception) -> StageFailure:
    return StageFailure(
        stage=STAGE_NAME,
        type=FailureType.ENRICHMENT_ERROR,
        cause=cause,
        impact=f"{impact} ({exc})",
    )


async def process(tmdb_id: int, ctx: StageContext) -> Tuple[EnrichmentBundle, StageResult]:
    logger = ctx.logger
    log_event(
        logger,
        logging.INFO,
        "Fetching enrichment for best match",
        stage_name=STAGE_NAME,
        event_type="start",
        metadata={"tmdb_id": tmdb_id, "region": ctx.settings.watch_region},
    )

    with timer() as end:
        (providers, providers_failure), (similar, similar_failure) = await asyncio.gather(
            streaming_providers(tmdb_id, ctx),
            similar_movies(tmdb_id, ctx),
        )
        failures = [f for f in (providers_failure, similar_failure) if f is not None]
        for failure in failures:
            log_event(
                logger,
                logging.WARNING,
                "Enrichment degraded",
                stage_name=STAGE_NAME,
                event_type="degraded",
                metadata={"cause": failure.cause},
            )

        result = StageResult(
            stage_name=STAGE_NAME,
            success=not failures,
            failures=failures,
            execution_time_ms=end(),
        )

    log_event(
        logger,
        logging.INFO,
        "Enrichment assembled",
        stage_name=STAGE_NAME,
        event_type="success" if result.success else "degraded",
        metadata={"providers": len(providers), "similar": len(similar)},
    )
    return EnrichmentBundle(streaming_providers=providers, similar_movies=similar), result

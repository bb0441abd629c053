# clipit/identifier/stages/rank_candidates.py
"""
Stage 3: Rank candidate titles with a generative model.

AI usage:
- Prompt assembled from every available signal, nothing invented
- One chat-completion attempt, no retries (the SDK's own retries are disabled)
- Output parsed strictly; any parse failure is fatal for the request

Confidence values are passed through exactly as the model returns them.
"""

from __future__ import annotations

import json
import logging
import re
from typing import List, Tuple

import openai
from pydantic import ValidationError

from clipit.config.settings import Settings
from clipit.identifier.errors import RankerBillingError, RankerError, RankerRateLimitError
from clipit.identifier.schema import Ranking, StageResult, VideoMetadata
from clipit.identifier.stages.base import StageContext, timer
from clipit.logging_core.logger import log_event

STAGE_NAME = "rank_candidates"

SYSTEM_PROMPT = "You are a movie identification expert. Always respond with valid JSON only."

# Versioned prompt
RANKING_PROMPT = """
You are a movie identification expert. Based on the following video metadata from YouTube, identify the TOP {count} most likely movies this clip could be from, ranked by confidence.

{context}

Analyze all available information carefully. Consider:
- The video title often contains the movie name
- Channel names that might indicate official movie channels
- Keywords from the description and comments
- Publication date may hint at the movie's era
- Comment keywords often mention the movie name directly

Respond with a JSON object containing:
1. "matches": An array of exactly {count} objects, each with:
   - "movieTitle": The exact movie title (just the title, no year)
   - "confidence": A percentage (integer 1-100) of how confident you are. The sum should be close to 100.
   - "reasons": An array of 2-4 short strings explaining why this movie matches (e.g., "Title mentions 'The Flash'", "Comments reference 'Barry Allen'", "Channel is official Warner Bros")
2. "detailedReasoning": A human-readable paragraph (3-4 sentences) explaining your analysis process and key evidence

The first match should be your best guess with highest confidence.
Only respond with valid JSON, no additional text.
""".strip()

_FENCE_OPEN = re.compile(r"```json?\n?")


def build_context(metadata: VideoMetadata, settings: Settings) -> str:
    """One line per available signal."""
    lines: List[str] = [
        f"Video Title: {metadata.title}",
        f"Channel: {metadata.channel_title}",
    ]
    if metadata.published_at:
        lines.append(f"Published: {metadata.published_at}")
    if metadata.description:
        lines.append(f"Description: {metadata.description[:settings.description_prompt_limit]}")
    lines.append(f"Thumbnail URL: {metadata.thumbnail}")
    if metadata.captions_available:
        lines.append(f"Captions: {metadata.captions_text}")
    if metadata.comment_keywords:
        lines.append(f"Keywords from comments: {', '.join(metadata.comment_keywords)}")
    return "\n".join(lines)


def build_prompt(metadata: VideoMetadata, settings: Settings) -> str:
    return RANKING_PROMPT.format(count=settings.candidate_count, context=build_context(metadata, settings))


def strip_code_fence(content: str) -> str:
    text = content.strip()
    if text.startswith("```"):
        text = _FENCE_OPEN.sub("", text).replace("```", "").strip()
    return text


def parse_ranking(content: str) -> Ranking:
    """Parse the model reply. Raises RankerError on anything that is not the expected JSON."""
    try:
        return Ranking.model_validate(json.loads(strip_code_fence(content)))
    except json.JSONDecodeError as exc:
        raise RankerError(f"AI returned invalid JSON: {exc}") from exc
    except ValidationError as exc:
        raise RankerError(f"AI response did not match the expected shape: {exc.error_count()} errors") from exc


async def _complete(prompt: str, ctx: StageContext) -> str:
    try:
        response = await ctx.llm.chat.completions.create(
            model=ctx.settings.llm_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        )
    except openai.RateLimitError as exc:
        raise RankerRateLimitError("Rate limit exceeded. Please try again in a moment.") from exc
    except openai.APIStatusError as exc:
        if exc.status_code == 402:
            raise RankerBillingError("AI service payment required. Please check your account.") from exc
        raise RankerError("Failed to identify movie with AI") from exc
    except openai.APIError as exc:
        raise RankerError("Failed to identify movie with AI") from exc

    content = response.choices[0].message.content if response.choices else None
    if not content:
        raise RankerError("No response from AI")
    return content


async def process(metadata: VideoMetadata, ctx: StageContext) -> Tuple[Ranking, StageResult]:
    """
    Rank candidate titles for ``metadata``. Raises RankerError; never degrades.
    """
    logger = ctx.logger
    log_event(
        logger,
        logging.INFO,
        "Requesting candidate ranking",
        stage_name=STAGE_NAME,
        event_type="start",
        metadata={"model": ctx.settings.llm_model},
    )

    with timer() as end:
        try:
            content = await _complete(build_prompt(metadata, ctx.settings), ctx)
            ranking = parse_ranking(content)
        except RankerError as exc:
            log_event(
                logger,
                logging.ERROR,
                "Candidate ranking failed",
                stage_name=STAGE_NAME,
                event_type="failure",
                metadata={"error": str(exc), "kind": type(exc).__name__},
            )
            raise

        warnings: List[str] = []
        if len(ranking.matches) != ctx.settings.candidate_count:
            warnings.append(
                f"Model returned {len(ranking.matches)} candidates, expected {ctx.settings.candidate_count}"
            )

        result = StageResult(
            stage_name=STAGE_NAME,
            success=True,
            warnings=warnings,
            execution_time_ms=end(),
        )

    log_event(
        logger,
        logging.INFO,
        "Candidates ranked",
        stage_name=STAGE_NAME,
        event_type="success",
        metadata={
            "candidates": [m.title for m in ranking.matches],
            "confidences": [m.confidence for m in ranking.matches],
        },
    )
    return ranking, result

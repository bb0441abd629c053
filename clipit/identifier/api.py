# clipit/identifier/api.py
"""
Transport-agnostic request handling.

Maps a request body ``{"videoUrl": ...}`` to ``(status_code, payload)`` the
way the hosting function responds. Whatever serves HTTP (and handles CORS)
only has to forward these two values.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional, Tuple

import httpx
from openai import AsyncOpenAI

from clipit.config.settings import Settings
from clipit.identifier.errors import ClipItError
from clipit.identifier.runner import run_identification
from clipit.identifier.schema import NotFoundResult
from clipit.logging_core.logger import get_logger, log_event, release_logger


Response = Tuple[int, Dict[str, Any]]


def not_found_payload(outcome: NotFoundResult) -> Dict[str, Any]:
    return {"error": outcome.error, "aiReasoning": outcome.ai_reasoning}


def log_unhandled(video_url: Any, exc: Exception) -> None:
    """The run's own logger is already released here, so the failure gets a request-scoped one."""
    request_id = uuid.uuid4()
    logger = get_logger(request_id)
    try:
        log_event(
            logger,
            logging.ERROR,
            "Unhandled error while identifying video",
            event_type="failure",
            metadata={
                "url": video_url if isinstance(video_url, str) else repr(video_url),
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )
    finally:
        release_logger(request_id)


async def handle_identify_request(
    body: Any,
    settings: Optional[Settings] = None,
    *,
    http: Optional[httpx.AsyncClient] = None,
    llm: Optional[AsyncOpenAI] = None,
) -> Response:
    video_url = body.get("videoUrl") if isinstance(body, dict) else None

    try:
        outcome = await run_identification(video_url, settings, http=http, llm=llm)
    except ClipItError as exc:
        return exc.status_code, {"error": str(exc)}
    except Exception as exc:  # pylint: disable=broad-except
        log_unhandled(video_url, exc)
        return 500, {"error": str(exc) or "An unexpected error occurred"}

    if isinstance(outcome, NotFoundResult):
        return 404, not_found_payload(outcome)
    return 200, outcome.model_dump(mode="json", by_alias=True)

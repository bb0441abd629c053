# clipit/identifier/stages/base.py
"""
Shared base definitions and utilities for all pipeline stages.

This module defines:
- The StageContext every stage receives (run identity, logger, settings, clients)
- A lightweight timer for consistent execution_time_ms measurement

No business logic belongs here.
"""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from logging import Logger
from typing import Callable, Iterator, Optional

from openai import AsyncOpenAI

from clipit.config.settings import Settings
from clipit.identifier.sources.tmdb import TMDBClient
from clipit.identifier.sources.youtube import OEmbedClient, YouTubeDataClient


@dataclass(frozen=True)
class StageContext:
    """
    Read-only collaborators for one identification run.

    youtube is None when no Data API credential is configured; stages must
    then take the fallback path. Concurrent branches share the context but
    never write to it.
    """
    run_id: uuid.UUID
    logger: Logger
    settings: Settings
    youtube: Optional[YouTubeDataClient]
    oembed: OEmbedClient
    tmdb: TMDBClient
    llm: AsyncOpenAI


@contextmanager
def timer() -> Iterator[Callable[[], float]]:
    """
    Context manager that provides a stop() function returning elapsed time in milliseconds.

    Usage:
        with timer() as end:
            # do work
            pass
        execution_time_ms = end()
    """
    start = time.perf_counter()

    def end() -> float:
        return (time.perf_counter() - start) * 1000

    yield end

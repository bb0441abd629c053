# clipit/identifier/errors.py
"""
Exception taxonomy for the identification pipeline.

Only input problems, missing configuration and ranking failures are raised.
Upstream degradation (metadata, captions, comments, enrichment) and catalog
misses are recorded as diagnostics instead and never escape a stage.
"""

from __future__ import annotations


class ClipItError(Exception):
    """Base class for every error the pipeline propagates to its caller."""

    status_code: int = 500


class InputError(ClipItError):
    """The request did not carry a recognizable video URL. No external call was made."""

    status_code = 400

    def __init__(self, message: str, *, cause: str) -> None:
        super().__init__(message)
        self.cause = cause


class ConfigurationError(ClipItError):
    """A credential the pipeline cannot run without is absent."""


class RankerError(ClipItError):
    """The generative model could not produce a usable ranking."""


class RankerRateLimitError(RankerError):
    """Upstream returned HTTP 429. Retryable by the caller."""

    status_code = 429


class RankerBillingError(RankerError):
    """Upstream returned HTTP 402."""

    status_code = 402


class UpstreamError(Exception):
    """
    A collaborator call failed (transport error, non-success status, bad payload).

    Raised by the source clients only. Stages always absorb it and record a
    StageFailure; it never reaches the caller of the pipeline.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

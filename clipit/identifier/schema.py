# clipit/identifier/schema.py
"""
Authoritative schema definitions for the movie identification pipeline.

This module defines:
- The gathered video signal (VideoMetadata)
- The ranked guesses of the generative model (CandidateMatch, Ranking)
- Catalog-resolved records and enrichment (ResolvedMovie, MovieMatch, ...)
- The two response shapes (IdentificationResult, NotFoundResult)
- The StageResult contract returned by every pipeline stage

Response models serialize with camelCase aliases; dump them with by_alias=True.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FailureType(str, Enum):
    """Typed failure categories for machine-parsable diagnostics."""
    INPUT_ERROR = "input_error"
    SOURCE_ERROR = "source_error"
    INTERPRETATION_ERROR = "interpretation_error"
    RESOLUTION_MISS = "resolution_miss"
    ENRICHMENT_ERROR = "enrichment_error"


class StageFailure(BaseModel):
    """Structured representation of a single failure."""
    stage: str
    type: FailureType
    cause: str
    impact: str
    suggested_fixes: List[str] = Field(default_factory=list)


class StageResult(BaseModel):
    """
    Standardized result returned by every pipeline stage.

    Success is False if any degradation occurred, even if the stage still
    produced usable output.
    """
    stage_name: str
    success: bool
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    failures: List[StageFailure] = Field(default_factory=list)
    execution_time_ms: Optional[float] = None

    model_config = ConfigDict(frozen=True)


class Diagnostics(BaseModel):
    """Explainability and audit trail attached to every response."""
    stage_status: dict[str, StageResult] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    suggested_fixes: List[str] = Field(default_factory=list)


class CamelModel(BaseModel):
    """Base for models that cross the response boundary."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VideoMetadata(CamelModel):
    """Everything known about the source video. Built once per request."""
    title: str = ""
    description: str = ""
    thumbnail: str = ""
    channel_title: str = ""
    published_at: str = ""
    captions_available: bool = False
    captions_text: str = ""
    comment_keywords: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class CandidateMatch(BaseModel):
    """One title proposed by the generative model, before catalog verification."""
    title: str = Field(validation_alias=AliasChoices("movieTitle", "title"))
    confidence: int
    reasons: List[str] = Field(default_factory=list)


class Ranking(BaseModel):
    """Model output: candidates in the order the model returned them, plus its narrative."""
    matches: List[CandidateMatch]
    detailed_reasoning: str = Field(
        default="",
        validation_alias=AliasChoices("detailedReasoning", "detailed_reasoning"),
    )

    @property
    def top_title(self) -> Optional[str]:
        return self.matches[0].title if self.matches else None


class ResolvedMovie(CamelModel):
    """A candidate matched to a concrete catalog record."""
    title: str
    year: str = "Unknown"
    poster: str = ""
    plot: str = "No plot available."
    rating: str = "N/A"
    runtime: str = "Unknown"
    genres: List[str] = Field(default_factory=list)
    trailer: Optional[str] = None
    tmdb_id: int
    ai_reasoning: str = ""


class MovieMatch(CamelModel):
    movie: ResolvedMovie
    confidence: int
    match_reasons: List[str] = Field(default_factory=list)


class StreamingProvider(CamelModel):
    name: str
    logo: str
    link: str = ""
    type: Literal["subscription", "rent", "buy"]


class SimilarMovie(CamelModel):
    id: int
    title: str
    poster: str = ""
    year: str = "Unknown"
    genres: List[str] = Field(default_factory=list)


class EnrichmentBundle(CamelModel):
    """Supplementary data fetched for the best match only."""
    streaming_providers: List[StreamingProvider] = Field(default_factory=list)
    similar_movies: List[SimilarMovie] = Field(default_factory=list)


class IdentificationResult(CamelModel):
    """Successful response: the best match first, then every surviving candidate."""
    movie: ResolvedMovie
    video_thumbnail: str
    matches: List[MovieMatch]
    streaming_providers: List[StreamingProvider] = Field(default_factory=list)
    similar_movies: List[SimilarMovie] = Field(default_factory=list)
    detailed_reasoning: str = ""
    diagnostics: Diagnostics = Field(default_factory=Diagnostics)


class NotFoundResult(CamelModel):
    """No candidate resolved. Still carries the model's top guess and narrative."""
    error: str
    suggested_title: Optional[str] = None
    ai_reasoning: str = ""
    diagnostics: Diagnostics = Field(default_factory=Diagnostics)



# High-Level Intent
# schema.py is the contract every stage reads and writes.
# VideoMetadata is frozen: the aggregator builds it, nothing after it mutates it.
# Ranking keeps the model's order verbatim; the resolver filters it, never sorts it.
# ResolvedMovie.ai_reasoning is empty when the resolver returns it and is filled by the runner.

# Edge Cases

# Model returns "title" instead of "movieTitle" -> accepted through AliasChoices.
# Model omits detailedReasoning -> empty narrative, ranking still usable.
# Confidence values are kept as returned; no clamping and no renormalization.

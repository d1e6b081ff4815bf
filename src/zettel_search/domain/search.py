"""Domain models for advanced search requests and results.

Following the value object pattern:
- Options, matches and results are immutable (frozen=True)
- Results carry enough metadata to explain why they matched
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


MatchField = Literal["tag", "title", "body"]


class SearchOptions(BaseModel):
    """Per-call search knobs."""

    model_config = ConfigDict(frozen=True)

    max_results: int = Field(default=50, ge=1)
    include_body: bool = True
    case_sensitive: bool = False


class SearchMatch(BaseModel):
    """Value object describing one field that caused a hit.

    ``indices`` are ``(start, end)`` character offsets of the matched text:
    into the title for title matches, into the full body for body matches,
    and into ``excerpt`` (the comma-joined tag list) for tag matches.
    """

    model_config = ConfigDict(frozen=True)

    type: MatchField
    excerpt: str
    indices: list[tuple[int, int]] = Field(default_factory=list)


class QueryInfo(BaseModel):
    """Echo of the query that produced a result set."""

    model_config = ConfigDict(frozen=True)

    original_query: str
    parsed_query: str
    execution_time_ms: float = Field(ge=0.0)


class SearchResult(BaseModel):
    """Value object for a single matching note."""

    model_config = ConfigDict(frozen=True)

    note_id: str
    title: str
    body: str | None = None
    tags: list[str] = Field(default_factory=list)
    score: float = 1.0
    matches: list[SearchMatch] = Field(default_factory=list)
    query_info: QueryInfo


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    error: str | None = None


class SearchStats(BaseModel):
    """Size information about the current corpus snapshot."""

    model_config = ConfigDict(frozen=True)

    note_count: int
    tag_count: int
    snapshot_version: int

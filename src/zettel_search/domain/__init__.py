"""Domain layer - notes, corpus snapshots and search value objects.

This layer has no dependencies on the query language or on observability:
- Entities/value objects are pydantic models validated at construction
- Snapshots are immutable so concurrent readers never see partial updates
"""

from zettel_search.domain.model import CorpusSnapshot, Note
from zettel_search.domain.search import (
    QueryInfo,
    SearchMatch,
    SearchOptions,
    SearchResult,
    SearchStats,
    ValidationResult,
)


__all__ = [
    "CorpusSnapshot",
    "Note",
    "QueryInfo",
    "SearchMatch",
    "SearchOptions",
    "SearchResult",
    "SearchStats",
    "ValidationResult",
]

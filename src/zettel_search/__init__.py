"""Advanced boolean search over an in-memory note corpus."""

from zettel_search.domain import Note, SearchOptions, SearchResult, ValidationResult
from zettel_search.search.evaluator import CancellationToken
from zettel_search.service_layer import NoteSearchEngine


__version__ = "0.1.0"

__all__ = [
    "CancellationToken",
    "Note",
    "NoteSearchEngine",
    "SearchOptions",
    "SearchResult",
    "ValidationResult",
    "__version__",
]

"""Service layer - orchestration of parsing, evaluation and explanation.

The engine composes the pure query stack with configuration and
observability; it holds the only mutable state (the snapshot reference).
"""

from .search_service import MATCH_SCORE, NoteSearchEngine


__all__ = [
    "MATCH_SCORE",
    "NoteSearchEngine",
]

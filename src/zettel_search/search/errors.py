"""Error taxonomy for the query language.

Lexer and parser failures are raised internally and captured into
``ParsedQuery.error`` by :func:`zettel_search.search.parser.parse_query`;
they never cross the engine API as exceptions.
"""

from __future__ import annotations


class QueryError(Exception):
    """Base class for query syntax errors."""

    def __init__(self, message: str, position: int | None = None) -> None:
        self.message = message
        self.position = position
        super().__init__(self.__str__())

    def __str__(self) -> str:
        if self.position is None:
            return self.message
        return f"{self.message} (at position {self.position})"


class LexError(QueryError):
    """Unterminated phrase, missing field value or invalid character."""


class ParseError(QueryError):
    """Dangling operator, unmatched parenthesis or unknown field keyword."""


class SearchCancelledError(Exception):
    """Raised by the evaluator when its cancellation token fires."""

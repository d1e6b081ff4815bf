"""Completion suggestions for partially typed queries.

The query is split into a completed prefix and the fragment under the
cursor (the text after the last whitespace or parenthesis). The prefix is
tokenized to learn what the cursor follows:

- start of a new term -> field prefixes
- a complete primary followed by whitespace -> boolean keywords
- ``tag:<partial>`` -> tag values from the corpus vocabulary
"""

from __future__ import annotations

from collections.abc import Iterable

from zettel_search.search.errors import LexError
from zettel_search.search.lexer import FIELD_PREFIX_PATTERN, KNOWN_FIELDS, TokenKind, tokenize


FIELD_PREFIXES = tuple(f"{field}:" for field in KNOWN_FIELDS)
BOOLEAN_KEYWORDS = ("AND ", "OR ", "NOT ")
DEFAULT_SUGGESTION_LIMIT = 10

_PRIMARY_END = frozenset({TokenKind.TERM, TokenKind.PHRASE, TokenKind.RPAREN})


def _split_fragment(query: str) -> tuple[str, str]:
    index = len(query)
    while index > 0 and not (query[index - 1].isspace() or query[index - 1] in "()"):
        index -= 1
    return query[:index], query[index:]


def _follows_primary(prefix: str) -> bool | None:
    """Whether ``prefix`` ends with a complete primary; None if it cannot be lexed."""
    try:
        tokens = tokenize(prefix)
    except LexError:
        return None
    if len(tokens) < 2:
        return False
    return tokens[-2].kind in _PRIMARY_END


def _render_tag(tag: str) -> str:
    if any(ch.isspace() or ch in '()"' for ch in tag):
        return f'"{tag}"'
    return tag


def suggest_tags(value_prefix: str, known_tags: Iterable[str]) -> list[str]:
    """Distinct tags starting with ``value_prefix``, sorted case-insensitively."""
    needle = value_prefix.casefold()
    distinct = dict.fromkeys(tag for tag in known_tags if tag and tag.casefold().startswith(needle))
    return sorted(distinct, key=lambda tag: (tag.casefold(), tag))


def get_suggestions(
    partial_query: str,
    known_tags: Iterable[str],
    *,
    limit: int = DEFAULT_SUGGESTION_LIMIT,
) -> list[str]:
    """Propose completions for the fragment under the cursor.

    Args:
        partial_query: Query text up to the cursor.
        known_tags: Tag vocabulary of the corpus.
        limit: Maximum number of suggestions.

    Returns:
        Replacement strings for the current fragment. Empty when the cursor
        sits inside an open phrase or the prefix does not lex.
    """
    if partial_query.count('"') % 2 == 1:
        return []

    prefix, fragment = _split_fragment(partial_query)
    after_primary = _follows_primary(prefix)
    if after_primary is None:
        return []

    if not fragment:
        suggestions = list(BOOLEAN_KEYWORDS if after_primary else FIELD_PREFIXES)
        return suggestions[:limit]

    field_match = FIELD_PREFIX_PATTERN.match(fragment)
    if field_match:
        if field_match.group(1).lower() != "tag":
            return []
        marker = fragment[: field_match.end()]
        tags = suggest_tags(fragment[field_match.end() :], known_tags)
        return [f"{marker}{_render_tag(tag)}" for tag in tags][:limit]

    lowered = fragment.lower()
    suggestions = [prefix_ for prefix_ in FIELD_PREFIXES if prefix_.startswith(lowered)]
    if after_primary:
        upper = fragment.upper()
        suggestions.extend(keyword for keyword in BOOLEAN_KEYWORDS if keyword.startswith(upper))
    return suggestions[:limit]

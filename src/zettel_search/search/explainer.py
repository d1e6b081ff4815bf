"""Match explanations for UI highlighting.

For every positive leaf of a query (leaves below NOT never explain a hit)
the explainer records which note fields matched and an excerpt:

- tag: the full comma-joined tag list
- title: the verbatim title
- body: a window of at most ``body_excerpt_length`` characters around the
  first hit, snapped to word boundaries, with ``...`` where truncated

Offsets are exact per leaf. They are not related back to combinator
structure, so a hit inside ``(a OR b) AND c`` highlights ``a``, ``b`` and
``c`` wherever each one occurs.
"""

from __future__ import annotations

from collections.abc import Sequence
import re

from zettel_search.domain.model import Note
from zettel_search.domain.search import MatchField, SearchMatch
from zettel_search.search.evaluator import contains, needle_pattern, tag_contains
from zettel_search.search.query_ast import (
    BodyTerm,
    QueryOperator,
    TagTerm,
    TextTerm,
    TitleTerm,
    iter_leaves,
)


TAG_SEPARATOR = ", "
ELLIPSIS = "..."
WORD_BOUNDARY_PATTERN = re.compile(r"\s+")

_TEXT_FIELDS: tuple[MatchField, ...] = ("title", "body", "tag")


def find_occurrences(text: str, needle: str, case_sensitive: bool = False) -> list[tuple[int, int]]:
    """Return non-overlapping ``(start, end)`` offsets of ``needle`` in ``text``."""
    if not needle or not text:
        return []
    return [(match.start(), match.end()) for match in needle_pattern(needle, case_sensitive).finditer(text)]


def build_body_excerpt(body: str, match_start: int, match_end: int, max_chars: int = 100) -> str:
    """Cut a word-aligned window of at most ``max_chars`` around a hit.

    Args:
        body: Full body text.
        match_start: Offset of the hit.
        match_end: End offset of the hit.
        max_chars: Maximum characters kept from the body (ellipses excluded).

    Returns:
        The excerpt, prefixed/suffixed with ``...`` when the body was cut.
    """
    if len(body) <= max_chars:
        return body

    match_length = match_end - match_start
    if match_length >= max_chars:
        window_start = match_start
        window_end = match_start + max_chars
    else:
        context = (max_chars - match_length) // 2
        window_start = max(0, match_start - context)
        window_end = min(len(body), window_start + max_chars)
        window_start = max(0, window_end - max_chars)

        # Snap to word boundaries without cutting into the hit itself
        if window_start > 0:
            leading = WORD_BOUNDARY_PATTERN.search(body, window_start, match_start)
            if leading:
                window_start = leading.end()
        if window_end < len(body):
            trailing = list(WORD_BOUNDARY_PATTERN.finditer(body, match_end, window_end))
            if trailing:
                window_end = trailing[-1].start()

    excerpt = body[window_start:window_end].strip()
    if window_start > 0:
        excerpt = ELLIPSIS + excerpt
    if window_end < len(body):
        excerpt += ELLIPSIS
    return excerpt


def _tag_occurrences(tags: Sequence[str], needle: str, case_sensitive: bool) -> list[tuple[int, int]]:
    # Offsets are relative to the joined tag list so each hit stays inside one tag
    indices: list[tuple[int, int]] = []
    offset = 0
    for tag in tags:
        indices.extend((offset + start, offset + end) for start, end in find_occurrences(tag, needle, case_sensitive))
        offset += len(tag) + len(TAG_SEPARATOR)
    return indices


def _leaf_fields(leaf: QueryOperator) -> tuple[MatchField, ...]:
    match leaf:
        case TagTerm():
            return ("tag",)
        case TitleTerm():
            return ("title",)
        case BodyTerm():
            return ("body",)
        case TextTerm():
            return _TEXT_FIELDS
        case _:
            return ()


def explain_matches(
    root: QueryOperator | None,
    note: Note,
    *,
    case_sensitive: bool = False,
    body_excerpt_length: int = 100,
    include_body: bool = True,
) -> list[SearchMatch]:
    """Describe which fields of ``note`` were hit by the leaves of ``root``.

    Body hits are left out when ``include_body`` is false so no body text
    leaks through excerpts.
    """
    collected: dict[tuple[MatchField, str], set[tuple[int, int]]] = {}

    for leaf in iter_leaves(root):
        value = leaf.value
        for field in _leaf_fields(leaf):
            if field == "tag":
                if not tag_contains(note.tags, value, case_sensitive):
                    continue
                excerpt = TAG_SEPARATOR.join(note.tags)
                indices = _tag_occurrences(note.tags, value, case_sensitive)
            elif field == "title":
                if not contains(note.title, value, case_sensitive):
                    continue
                excerpt = note.title
                indices = find_occurrences(note.title, value, case_sensitive)
            else:
                if not include_body or not contains(note.body, value, case_sensitive):
                    continue
                indices = find_occurrences(note.body, value, case_sensitive)
                first_start, first_end = indices[0] if indices else (0, 0)
                excerpt = build_body_excerpt(note.body, first_start, first_end, body_excerpt_length)

            collected.setdefault((field, excerpt), set()).update(indices)

    return [
        SearchMatch(type=field, excerpt=excerpt, indices=sorted(indices))
        for (field, excerpt), indices in collected.items()
    ]

"""Set-algebra evaluation of an operator tree against a corpus.

Leaves filter the corpus with substring predicates; combinators work on note
id sets. ``NotOp`` always complements against the full corpus passed in,
so a nested NOT inside AND/OR behaves as "AND with full-corpus complement".

The final list is re-projected onto corpus order, which makes the corpus
index the deterministic tie-break for equally scored results. Cost is
``O(|AST| x |corpus|)``; no index is built.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import logging
import re
import threading

from zettel_search.domain.model import Note
from zettel_search.search.errors import SearchCancelledError
from zettel_search.search.query_ast import (
    AndOp,
    BodyTerm,
    GroupOp,
    LeafOperator,
    NotOp,
    OrOp,
    QueryOperator,
    TagTerm,
    TextTerm,
    TitleTerm,
    unknown_operator,
)


logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag shared between caller and evaluator."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SearchCancelledError("Search cancelled")


def needle_pattern(needle: str, case_sensitive: bool) -> re.Pattern[str]:
    """Literal pattern shared by the match predicate and highlight offsets."""
    return re.compile(re.escape(needle), 0 if case_sensitive else re.IGNORECASE)


def contains(haystack: str, needle: str, case_sensitive: bool) -> bool:
    return needle_pattern(needle, case_sensitive).search(haystack) is not None


def tag_contains(tags: Sequence[str], needle: str, case_sensitive: bool) -> bool:
    return any(contains(tag, needle, case_sensitive) for tag in tags)


def leaf_matches(leaf: LeafOperator, note: Note, case_sensitive: bool = False) -> bool:
    """Apply a single leaf predicate to one note."""
    match leaf:
        case TagTerm(value=value):
            return tag_contains(note.tags, value, case_sensitive)
        case TitleTerm(value=value):
            return contains(note.title, value, case_sensitive)
        case BodyTerm(value=value):
            return contains(note.body, value, case_sensitive)
        case TextTerm(value=value):
            return (
                contains(note.title, value, case_sensitive)
                or contains(note.body, value, case_sensitive)
                or tag_contains(note.tags, value, case_sensitive)
            )
        case _:
            logger.warning("Unknown leaf operator %s treated as no match", unknown_operator(leaf))
            return False


class _Evaluation:
    def __init__(
        self,
        corpus: Sequence[Note],
        case_sensitive: bool,
        cancel_token: CancellationToken | None,
    ) -> None:
        self._corpus = corpus
        self._case_sensitive = case_sensitive
        self._check_cancelled: Callable[[], None] = (
            cancel_token.raise_if_cancelled if cancel_token is not None else _never_cancelled
        )

    def ids(self, node: QueryOperator) -> set[str]:
        self._check_cancelled()
        match node:
            case TagTerm() | TitleTerm() | BodyTerm() | TextTerm():
                return self._leaf_ids(node)
            case AndOp(children=children):
                result = self.ids(children[0])
                for child in children[1:]:
                    if not result:
                        break
                    result &= self.ids(child)
                return result
            case OrOp(children=children):
                result = set()
                for child in children:
                    result |= self.ids(child)
                return result
            case NotOp(child=child):
                excluded = self.ids(child)
                return {note.id for note in self._corpus if note.id not in excluded}
            case GroupOp(child=child):
                return self.ids(child)
            case _:
                logger.warning("Unknown operator %s evaluated to empty set", unknown_operator(node))
                return set()

    def _leaf_ids(self, leaf: LeafOperator) -> set[str]:
        matched: set[str] = set()
        for note in self._corpus:
            self._check_cancelled()
            if leaf_matches(leaf, note, self._case_sensitive):
                matched.add(note.id)
        return matched


def _never_cancelled() -> None:
    return None


def evaluate(
    root: QueryOperator | None,
    corpus: Sequence[Note],
    *,
    case_sensitive: bool = False,
    cancel_token: CancellationToken | None = None,
) -> list[Note]:
    """Return the notes matched by ``root`` in corpus order.

    Args:
        root: Operator tree; ``None`` matches nothing.
        corpus: Notes to search. ``NotOp`` complements against all of them.
        case_sensitive: Disable case folding for substring tests.
        cancel_token: Optional cooperative cancellation flag.

    Returns:
        De-duplicated notes in corpus order. Never raises for malformed trees.

    Raises:
        SearchCancelledError: When ``cancel_token`` is cancelled mid-flight.
    """
    if root is None or not corpus:
        return []

    try:
        matched_ids = _Evaluation(corpus, case_sensitive, cancel_token).ids(root)
    except SearchCancelledError:
        raise
    except (AttributeError, IndexError, RecursionError, TypeError) as exc:
        logger.warning("Malformed operator tree evaluated to no results: %s", exc)
        return []

    seen: set[str] = set()
    ordered: list[Note] = []
    for note in corpus:
        if note.id in matched_ids and note.id not in seen:
            seen.add(note.id)
            ordered.append(note)
    return ordered

"""Advanced search orchestration layer.

``NoteSearchEngine`` owns one corpus snapshot and exposes the operations the
note store and UI call: ``initialize``, ``search``, ``validate_query``,
``get_suggestions`` and ``get_syntax_help``. Each caller owns its own
instance; there is no module-level engine.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging
import threading
import time
from typing import Any

from zettel_search.config import Settings
from zettel_search.domain.model import CorpusSnapshot, Note
from zettel_search.domain.search import (
    QueryInfo,
    SearchOptions,
    SearchResult,
    SearchStats,
    ValidationResult,
)
from zettel_search.observability.context import bind_engine
from zettel_search.observability.metrics import (
    CORPUS_NOTES,
    QUERY_ERRORS,
    SEARCH_LATENCY,
    SEARCH_REQUESTS,
    track_latency,
)
from zettel_search.observability.tracing import create_span
from zettel_search.search.errors import SearchCancelledError
from zettel_search.search.evaluator import CancellationToken, evaluate
from zettel_search.search.explainer import explain_matches
from zettel_search.search.parser import parse_query, validate_query
from zettel_search.search.query_ast import count_nodes, to_query_string
from zettel_search.search.suggestions import get_suggestions
from zettel_search.search.syntax_help import SYNTAX_HELP


logger = logging.getLogger(__name__)

# Advanced search is a boolean filter: every hit scores the same
MATCH_SCORE = 1.0


class NoteSearchEngine:
    """Boolean query engine over an in-memory note corpus.

    The snapshot is immutable and swapped by a single reference assignment,
    so concurrent ``search`` calls always see one complete corpus even while
    ``initialize`` publishes a new one.
    """

    def __init__(self, settings: Settings | None = None, *, name: str | None = None) -> None:
        """Initialize an empty engine.

        Args:
            settings: Search defaults; loaded from the environment when omitted
            name: Label for logs and metrics (defaults to ``settings.engine_name``)
        """
        self.settings = settings or Settings()
        self.name = name or self.settings.engine_name
        self._publish_lock = threading.Lock()
        self._snapshot = CorpusSnapshot()

    @property
    def snapshot(self) -> CorpusSnapshot:
        return self._snapshot

    def initialize(self, notes: Iterable[Note | Mapping[str, Any]]) -> None:
        """Replace the corpus snapshot with ``notes``.

        Raw mappings are validated into :class:`Note` first; a validation
        error leaves the previous snapshot in place.
        """
        with create_span("note_search.initialize", attributes={"note_search.engine": self.name}) as span:
            validated = [note if isinstance(note, Note) else Note.model_validate(note) for note in notes]

            with self._publish_lock:
                snapshot = CorpusSnapshot.build(validated, version=self._snapshot.version + 1)
                self._snapshot = snapshot

            span.set_attribute("note_search.note_count", len(snapshot))
            CORPUS_NOTES.labels(engine=self.name).set(len(snapshot))
            logger.info(
                "Corpus snapshot v%d published: %d notes, %d distinct tags",
                snapshot.version,
                len(snapshot),
                len(snapshot.tag_vocabulary),
            )

    def clear(self) -> None:
        """Drop every note from the corpus."""
        self.initialize(())

    def search(
        self,
        query: str,
        options: SearchOptions | None = None,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> list[SearchResult]:
        """Run an advanced query against the current snapshot.

        Args:
            query: Raw query text
            options: Result cap, body inclusion and case sensitivity
            cancel_token: Optional cooperative cancellation flag

        Returns:
            Matching notes in corpus order, truncated to ``options.max_results``.
            Empty for an empty, invalid or cancelled query; never raises for
            malformed input.
        """
        options = options or SearchOptions(
            max_results=self.settings.default_max_results,
            case_sensitive=self.settings.case_sensitive,
        )
        snapshot = self._snapshot
        bind_engine(self.name)

        started = time.perf_counter()
        with (
            create_span(
                "note_search.search",
                attributes={"note_search.engine": self.name, "note_search.snapshot_version": snapshot.version},
            ) as span,
            track_latency(SEARCH_LATENCY, engine=self.name),
        ):
            parsed = parse_query(query)
            if not parsed.is_valid:
                logger.warning(
                    "Rejected invalid search query: %s",
                    parsed.error,
                    extra={"query": query, "error_type": parsed.error_type},
                )
                QUERY_ERRORS.labels(engine=self.name, error_type=parsed.error_type or "unknown").inc()
                SEARCH_REQUESTS.labels(engine=self.name, status="invalid").inc()
                return []

            if parsed.root is None:
                SEARCH_REQUESTS.labels(engine=self.name, status="empty").inc()
                return []

            span.set_attribute("note_search.ast_nodes", count_nodes(parsed.root))
            try:
                matched = evaluate(
                    parsed.root,
                    snapshot.notes,
                    case_sensitive=options.case_sensitive,
                    cancel_token=cancel_token,
                )
            except SearchCancelledError:
                logger.info("Search cancelled before completion", extra={"query": query})
                SEARCH_REQUESTS.labels(engine=self.name, status="cancelled").inc()
                return []

            # Equal scores leave corpus order as the tie-break, so the cap keeps the earliest notes
            selected = matched[: options.max_results]
            explained = [
                (
                    note,
                    explain_matches(
                        parsed.root,
                        note,
                        case_sensitive=options.case_sensitive,
                        body_excerpt_length=self.settings.body_excerpt_length,
                        include_body=options.include_body,
                    ),
                )
                for note in selected
            ]

            query_info = QueryInfo(
                original_query=query,
                parsed_query=to_query_string(parsed.root),
                execution_time_ms=(time.perf_counter() - started) * 1000,
            )
            results = [
                SearchResult(
                    note_id=note.id,
                    title=note.title,
                    body=note.body if options.include_body else None,
                    tags=list(note.tags),
                    score=MATCH_SCORE,
                    matches=matches,
                    query_info=query_info,
                )
                for note, matches in explained
            ]

            span.set_attribute("note_search.match_count", len(matched))
            span.set_attribute("note_search.result_count", len(results))
            SEARCH_REQUESTS.labels(engine=self.name, status="ok").inc()
            logger.debug(
                "Search matched %d of %d notes (returned %d) in %.2fms",
                len(matched),
                len(snapshot),
                len(results),
                query_info.execution_time_ms,
            )
            return results

    def validate_query(self, query: str) -> ValidationResult:
        """Syntax check for inline feedback; never evaluates."""
        return validate_query(query)

    def get_suggestions(self, query: str) -> list[str]:
        return get_suggestions(query, self._snapshot.tag_vocabulary, limit=self.settings.suggestion_limit)

    def get_syntax_help(self) -> list[str]:
        return list(SYNTAX_HELP)

    def get_search_stats(self) -> SearchStats:
        snapshot = self._snapshot
        return SearchStats(
            note_count=len(snapshot),
            tag_count=len(snapshot.tag_vocabulary),
            snapshot_version=snapshot.version,
        )

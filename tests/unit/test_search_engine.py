"""Unit tests for NoteSearchEngine orchestration."""

from concurrent.futures import ThreadPoolExecutor
import logging

from prometheus_client import REGISTRY
from pydantic import ValidationError
import pytest

from zettel_search.config import Settings
from zettel_search.domain.model import Note
from zettel_search.domain.search import SearchOptions
from zettel_search.search.evaluator import CancellationToken
from zettel_search.service_layer.search_service import MATCH_SCORE, NoteSearchEngine


def _ids(results) -> list[str]:
    return [result.note_id for result in results]


def _requests(engine_name: str, status: str) -> float:
    value = REGISTRY.get_sample_value("note_search_requests_total", {"engine": engine_name, "status": status})
    return value or 0.0


class TestSearch:
    def test_empty_query_returns_nothing(self, engine):
        assert engine.search("") == []
        assert engine.search("   ") == []

    def test_invalid_query_returns_nothing(self, engine):
        assert engine.search("AND title:meeting") == []
        assert engine.search('title:"unterminated') == []
        assert engine.search("(tag:work") == []

    def test_invalid_query_is_logged(self, engine, caplog):
        caplog.set_level(logging.WARNING, logger="zettel_search")
        engine.search("tag:work OR")
        assert any("Rejected invalid search query" in record.getMessage() for record in caplog.records)

    def test_result_shape(self, engine):
        (result,) = engine.search("tag:work AND title:urgent")

        assert result.note_id == "a"
        assert result.title == "Urgent: ship release"
        assert result.body == "Deploy the build tonight."
        assert result.tags == ["work", "release"]
        assert result.score == MATCH_SCORE
        assert {match.type for match in result.matches} == {"tag", "title"}
        assert result.query_info.original_query == "tag:work AND title:urgent"
        assert result.query_info.parsed_query == "tag:work AND title:urgent"
        assert result.query_info.execution_time_ms >= 0

    def test_parsed_query_is_canonical(self, engine):
        results = engine.search("tag:work and not tag:archived")
        assert _ids(results) == ["a", "b"]
        assert results[0].query_info.parsed_query == "tag:work AND NOT tag:archived"

    def test_results_share_one_query_info(self, engine):
        results = engine.search("tag:work")
        assert len({result.query_info for result in results}) == 1

    def test_results_follow_corpus_order(self, engine):
        assert _ids(engine.search("tag:personal OR tag:release")) == ["a", "c", "d"]

    def test_max_results_keeps_earliest_notes(self, engine):
        assert _ids(engine.search("tag:work", SearchOptions(max_results=2))) == ["a", "b"]

    def test_include_body_false_omits_body(self, engine):
        results = engine.search("tag:work", SearchOptions(include_body=False))
        assert results
        assert all(result.body is None for result in results)

    def test_include_body_false_omits_body_matches(self, engine):
        (result,) = engine.search("body:deploy", SearchOptions(include_body=False))
        assert result.note_id == "a"
        assert result.body is None
        assert all(match.type != "body" for match in result.matches)
        assert "Deploy" not in str(result.model_dump())

        (with_body,) = engine.search("body:deploy")
        assert [match.type for match in with_body.matches] == ["body"]

    def test_case_sensitive_option(self, engine):
        assert engine.search("title:urgent", SearchOptions(case_sensitive=True)) == []
        assert _ids(engine.search("title:Urgent", SearchOptions(case_sensitive=True))) == ["a", "d"]

    def test_default_options_come_from_settings(self, sample_notes):
        engine = NoteSearchEngine(Settings(default_max_results=1))
        engine.initialize(sample_notes)
        assert _ids(engine.search("tag:work")) == ["a"]

    def test_search_on_empty_engine(self):
        assert NoteSearchEngine().search("tag:work") == []

    def test_cancelled_search_returns_nothing(self, engine):
        token = CancellationToken()
        token.cancel()
        assert engine.search("tag:work", cancel_token=token) == []


class TestMetrics:
    def test_outcomes_are_counted(self, sample_notes):
        engine = NoteSearchEngine(name="metrics-outcomes")
        engine.initialize(sample_notes)
        token = CancellationToken()
        token.cancel()

        engine.search("tag:work")
        engine.search("")
        engine.search("NOT")
        engine.search("tag:work", cancel_token=token)

        for status in ("ok", "empty", "invalid", "cancelled"):
            assert _requests("metrics-outcomes", status) == 1.0

    def test_query_errors_labelled_by_type(self):
        engine = NoteSearchEngine(name="metrics-errors")
        engine.search('"open')
        engine.search("(open")

        for error_type in ("LexError", "ParseError"):
            value = REGISTRY.get_sample_value(
                "note_search_query_errors_total",
                {"engine": "metrics-errors", "error_type": error_type},
            )
            assert value == 1.0

    def test_corpus_gauge_tracks_snapshot(self, sample_notes):
        engine = NoteSearchEngine(name="metrics-corpus")
        engine.initialize(sample_notes)
        assert REGISTRY.get_sample_value("note_search_corpus_notes", {"engine": "metrics-corpus"}) == 5.0
        engine.clear()
        assert REGISTRY.get_sample_value("note_search_corpus_notes", {"engine": "metrics-corpus"}) == 0.0


class TestCorpusLifecycle:
    def test_stats_after_initialize(self, engine):
        stats = engine.get_search_stats()
        assert stats.note_count == 5
        assert stats.tag_count == 6
        assert stats.snapshot_version == 1

    def test_initialize_accepts_raw_mappings(self):
        engine = NoteSearchEngine()
        engine.initialize(
            [
                {"id": "x", "title": "Inbox", "tags": ["todo"], "createdAt": "2024-01-01T00:00:00Z"},
                {"id": "y", "title": "Done", "tags": None},
            ]
        )
        assert _ids(engine.search("tag:todo")) == ["x"]
        assert engine.snapshot.notes[0].created_at is not None

    def test_invalid_note_keeps_previous_snapshot(self, engine):
        with pytest.raises(ValidationError):
            engine.initialize([{"title": "no id"}])
        assert engine.get_search_stats().snapshot_version == 1
        assert _ids(engine.search("tag:meeting")) == ["b"]

    def test_reinitialize_replaces_corpus(self, engine):
        engine.initialize([Note(id="z", title="Fresh", tags=["work"])])
        assert _ids(engine.search("tag:work")) == ["z"]
        assert engine.get_search_stats().snapshot_version == 2

    def test_clear(self, engine):
        engine.clear()
        assert engine.search("tag:work") == []
        assert engine.get_search_stats().note_count == 0
        assert engine.get_suggestions("tag:") == []

    def test_engines_are_independent(self, engine):
        other = NoteSearchEngine(name="other")
        other.initialize([Note(id="only", tags=["work"])])
        assert _ids(other.search("tag:work")) == ["only"]
        assert _ids(engine.search("tag:work")) == ["a", "b", "e"]

    def test_search_never_sees_a_partial_corpus(self):
        old = [Note(id=f"old-{i}", tags=["shared"]) for i in range(3)]
        new = [Note(id=f"new-{i}", tags=["shared"]) for i in range(7)]
        engine = NoteSearchEngine(name="swap")
        engine.initialize(old)

        def search_many() -> set[int]:
            return {len(engine.search("tag:shared")) for _ in range(50)}

        with ThreadPoolExecutor(max_workers=4) as pool:
            futures = [pool.submit(search_many) for _ in range(3)]
            for i in range(20):
                engine.initialize(new if i % 2 == 0 else old)
            sizes = set().union(*(future.result() for future in futures))

        assert sizes <= {3, 7}


class TestAuxiliaryOperations:
    def test_validate_query(self, engine):
        assert engine.validate_query("tag:work").is_valid
        result = engine.validate_query("NOT")
        assert not result.is_valid
        assert "NOT operator must have an operand" in result.error

    def test_suggestions_use_corpus_vocabulary(self, engine):
        assert engine.get_suggestions("tag:me") == ["tag:meeting"]
        assert engine.get_suggestions("tag:work ") == ["AND ", "OR ", "NOT "]

    def test_suggestion_limit_from_settings(self, sample_notes):
        engine = NoteSearchEngine(Settings(suggestion_limit=2))
        engine.initialize(sample_notes)
        assert len(engine.get_suggestions("tag:")) == 2

    def test_syntax_help(self, engine):
        lines = engine.get_syntax_help()
        assert lines
        assert all(isinstance(line, str) and line for line in lines)
        assert any(line.startswith("NOT") for line in lines)

        lines.clear()
        assert engine.get_syntax_help()

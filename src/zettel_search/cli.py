"""Command line front-end for trying queries against a JSON notes file.

Usage::

    zettel-search search notes.json 'tag:work AND title:urgent'
    zettel-search validate 'title:"unterminated'
    zettel-search suggest notes.json 'tag:me'
    zettel-search syntax
"""

# ruff: noqa: T201  # CLI prints results

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path
import sys
from typing import Any

import orjson
from pydantic import ValidationError

from zettel_search.config import Settings
from zettel_search.domain.search import SearchOptions
from zettel_search.observability.logging import configure_logging
from zettel_search.service_layer.search_service import NoteSearchEngine


def _load_notes(path: Path) -> list[dict[str, Any]]:
    payload = orjson.loads(path.read_bytes())
    if isinstance(payload, dict):
        payload = payload.get("notes", [])
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a JSON array of notes")
    return payload


def _emit(value: Any) -> None:
    print(orjson.dumps(value, option=orjson.OPT_INDENT_2).decode("utf-8"))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="zettel-search", description="Advanced boolean search over notes")
    parser.add_argument("--log-level", default=None, help="Override ZETTEL_SEARCH_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    search_parser = subparsers.add_parser("search", help="Run a query against a notes file")
    search_parser.add_argument("notes", type=Path, help="JSON array of notes")
    search_parser.add_argument("query", help="Advanced query text")
    search_parser.add_argument("--max-results", type=int, default=None, help="Result cap")
    search_parser.add_argument("--case-sensitive", action="store_true", help="Disable case folding")
    search_parser.add_argument("--no-body", action="store_true", help="Omit note bodies from results")

    validate_parser = subparsers.add_parser("validate", help="Check query syntax")
    validate_parser.add_argument("query", help="Advanced query text")

    suggest_parser = subparsers.add_parser("suggest", help="Complete a partial query")
    suggest_parser.add_argument("notes", type=Path, help="JSON array of notes (tag vocabulary)")
    suggest_parser.add_argument("query", help="Partial query text")

    subparsers.add_parser("syntax", help="Print the query syntax reference")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = Settings()
    configure_logging(args.log_level or settings.log_level, json_output=settings.log_json)
    engine = NoteSearchEngine(settings)

    if args.command == "validate":
        result = engine.validate_query(args.query)
        _emit(result.model_dump())
        return 0 if result.is_valid else 1

    if args.command == "syntax":
        for line in engine.get_syntax_help():
            print(line)
        return 0

    try:
        engine.initialize(_load_notes(args.notes))
    except (OSError, ValueError, ValidationError) as exc:
        # orjson.JSONDecodeError subclasses ValueError
        print(f"Cannot load notes from {args.notes}: {exc}", file=sys.stderr)
        return 2

    if args.command == "suggest":
        _emit(engine.get_suggestions(args.query))
        return 0

    validation = engine.validate_query(args.query)
    if not validation.is_valid:
        print(f"Invalid query: {validation.error}", file=sys.stderr)
        return 1

    try:
        options = SearchOptions(
            max_results=settings.default_max_results if args.max_results is None else args.max_results,
            include_body=not args.no_body,
            case_sensitive=args.case_sensitive or settings.case_sensitive,
        )
    except ValidationError as exc:
        print(f"Invalid search options: {exc}", file=sys.stderr)
        return 2

    results = engine.search(args.query, options)
    _emit([result.model_dump() for result in results])
    return 0


if __name__ == "__main__":
    sys.exit(main())

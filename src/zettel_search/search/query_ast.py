"""Operator tree produced by the parser.

``QueryOperator`` is a closed union of frozen dataclasses. Consumers dispatch
with ``match`` and route the fall-through arm into a ``Never``-typed sink so a
type checker flags any operator kind left unhandled.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
import re
from typing import Never, TypeAlias, assert_never


@dataclass(frozen=True, slots=True)
class TagTerm:
    value: str


@dataclass(frozen=True, slots=True)
class TitleTerm:
    value: str


@dataclass(frozen=True, slots=True)
class BodyTerm:
    value: str


@dataclass(frozen=True, slots=True)
class TextTerm:
    """Unscoped term matched against title, body and tags."""

    value: str


@dataclass(frozen=True, slots=True)
class AndOp:
    children: tuple[QueryOperator, ...]

    def __post_init__(self) -> None:
        if len(self.children) < 2:
            raise ValueError("AndOp requires at least two children")


@dataclass(frozen=True, slots=True)
class OrOp:
    children: tuple[QueryOperator, ...]

    def __post_init__(self) -> None:
        if len(self.children) < 2:
            raise ValueError("OrOp requires at least two children")


@dataclass(frozen=True, slots=True)
class NotOp:
    child: QueryOperator


@dataclass(frozen=True, slots=True)
class GroupOp:
    child: QueryOperator


LeafOperator: TypeAlias = TagTerm | TitleTerm | BodyTerm | TextTerm
QueryOperator: TypeAlias = TagTerm | TitleTerm | BodyTerm | TextTerm | AndOp | OrOp | NotOp | GroupOp

_NEEDS_QUOTES = re.compile(r'[\s()":]')


def unknown_operator(node: Never) -> str:
    """Describe an operator that fell through an exhaustive ``match``."""
    return type(node).__name__


def _render_value(value: str) -> str:
    if not value or _NEEDS_QUOTES.search(value) or value.upper() in {"AND", "OR", "NOT"}:
        return f'"{value}"'
    return value


def to_query_string(node: QueryOperator | None) -> str:
    """Render the canonical query text for an operator tree.

    Parsing the output yields a structurally identical tree.
    """
    match node:
        case None:
            return ""
        case TagTerm(value=value):
            return f"tag:{_render_value(value)}"
        case TitleTerm(value=value):
            return f"title:{_render_value(value)}"
        case BodyTerm(value=value):
            return f"body:{_render_value(value)}"
        case TextTerm(value=value):
            return _render_value(value)
        case AndOp(children=children):
            return " AND ".join(to_query_string(child) for child in children)
        case OrOp(children=children):
            return " OR ".join(to_query_string(child) for child in children)
        case NotOp(child=child):
            return f"NOT {to_query_string(child)}"
        case GroupOp(child=child):
            return f"({to_query_string(child)})"
        case _:
            assert_never(node)


def iter_leaves(node: QueryOperator | None) -> Iterator[LeafOperator]:
    """Yield positive leaf operators depth-first, left to right.

    Leaves below a ``NotOp`` are skipped: they never explain a hit.
    """
    match node:
        case None:
            return
        case TagTerm() | TitleTerm() | BodyTerm() | TextTerm():
            yield node
        case AndOp(children=children) | OrOp(children=children):
            for child in children:
                yield from iter_leaves(child)
        case NotOp():
            return
        case GroupOp(child=child):
            yield from iter_leaves(child)
        case _:
            assert_never(node)


def count_nodes(node: QueryOperator | None) -> int:
    match node:
        case None:
            return 0
        case TagTerm() | TitleTerm() | BodyTerm() | TextTerm():
            return 1
        case AndOp(children=children) | OrOp(children=children):
            return 1 + sum(count_nodes(child) for child in children)
        case NotOp(child=child) | GroupOp(child=child):
            return 1 + count_nodes(child)
        case _:
            assert_never(node)

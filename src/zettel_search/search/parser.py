"""Recursive-descent parser for the advanced note query language.

Grammar, lowest to highest precedence::

    expr     := orExpr
    orExpr   := andExpr (OR andExpr)*
    andExpr  := notExpr ((AND)? notExpr)*
    notExpr  := NOT notExpr | primary
    primary  := '(' expr ')' | FIELD (TERM | PHRASE) | TERM | PHRASE

Adjacent primaries without an operator are joined with an implicit AND.
Syntax errors never escape :func:`parse_query`; they are reported through
``ParsedQuery.error``.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from zettel_search.domain.search import ValidationResult
from zettel_search.search.errors import ParseError, QueryError
from zettel_search.search.lexer import Token, TokenKind, tokenize
from zettel_search.search.query_ast import (
    AndOp,
    BodyTerm,
    GroupOp,
    NotOp,
    OrOp,
    QueryOperator,
    TagTerm,
    TextTerm,
    TitleTerm,
)


logger = logging.getLogger(__name__)

# Parenthesis and NOT depth; keeps recursive descent far from the interpreter limit
MAX_NESTING_DEPTH = 100

_OPERAND_START = frozenset(
    {TokenKind.NOT, TokenKind.LPAREN, TokenKind.FIELD, TokenKind.TERM, TokenKind.PHRASE}
)
_FIELD_OPERATORS: dict[str, type[TagTerm | TitleTerm | BodyTerm]] = {
    "tag": TagTerm,
    "title": TitleTerm,
    "body": BodyTerm,
}


@dataclass(frozen=True, slots=True)
class ParsedQuery:
    """Outcome of parsing one query string.

    An empty query is valid and has no root; callers must skip evaluation
    whenever ``is_valid`` is false.
    """

    original_query: str
    is_valid: bool
    root: QueryOperator | None = None
    error: str | None = None
    error_type: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.is_valid and self.root is None


class _Parser:
    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._index = 0
        self._depth = 0

    @property
    def _current(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        if token.kind is not TokenKind.EOF:
            self._index += 1
        return token

    def _descend(self, position: int) -> None:
        self._depth += 1
        if self._depth > MAX_NESTING_DEPTH:
            raise ParseError("Query nested too deeply", position)

    def parse(self) -> QueryOperator | None:
        if self._current.kind is TokenKind.EOF:
            return None
        root = self._or_expr()
        if self._current.kind is TokenKind.RPAREN:
            raise ParseError("Unmatched closing parenthesis", self._current.position)
        return root

    def _or_expr(self) -> QueryOperator:
        if self._current.kind is TokenKind.OR:
            raise ParseError("OR must have a left operand", self._current.position)

        children = [self._and_expr()]
        while self._current.kind is TokenKind.OR:
            operator = self._advance()
            if self._current.kind not in _OPERAND_START:
                raise ParseError("OR must have a right operand", operator.position)
            children.append(self._and_expr())

        if len(children) == 1:
            return children[0]
        return OrOp(tuple(children))

    def _and_expr(self) -> QueryOperator:
        if self._current.kind is TokenKind.AND:
            raise ParseError("AND must have a left operand", self._current.position)

        children = [self._not_expr()]
        while True:
            if self._current.kind is TokenKind.AND:
                operator = self._advance()
                if self._current.kind not in _OPERAND_START:
                    raise ParseError("AND must have a right operand", operator.position)
                children.append(self._not_expr())
            elif self._current.kind in _OPERAND_START:
                children.append(self._not_expr())
            else:
                break

        if len(children) == 1:
            return children[0]
        return AndOp(tuple(children))

    def _not_expr(self) -> QueryOperator:
        if self._current.kind is TokenKind.NOT:
            operator = self._advance()
            if self._current.kind not in _OPERAND_START:
                raise ParseError("NOT operator must have an operand", operator.position)
            self._descend(operator.position)
            child = self._not_expr()
            self._depth -= 1
            return NotOp(child)
        return self._primary()

    def _primary(self) -> QueryOperator:
        token = self._current

        if token.kind is TokenKind.LPAREN:
            self._advance()
            if self._current.kind is TokenKind.RPAREN:
                raise ParseError("Empty group", token.position)
            self._descend(token.position)
            inner = self._or_expr()
            if self._current.kind is not TokenKind.RPAREN:
                raise ParseError("Unmatched opening parenthesis", token.position)
            self._advance()
            self._depth -= 1
            return GroupOp(inner)

        if token.kind is TokenKind.FIELD:
            self._advance()
            operator_cls = _FIELD_OPERATORS.get(token.value)
            if operator_cls is None:
                raise ParseError(f"Unknown field '{token.value}:'", token.position)
            return operator_cls(self._value(f"{token.value}:", token.position))

        if token.kind in (TokenKind.TERM, TokenKind.PHRASE):
            return TextTerm(self._value(None, token.position))

        if token.kind is TokenKind.RPAREN:
            raise ParseError("Unmatched closing parenthesis", token.position)
        if token.kind is TokenKind.EOF:
            raise ParseError("Unexpected end of query", token.position)
        raise ParseError(f"Unexpected {token.kind.value} operator", token.position)

    def _value(self, field_label: str | None, position: int) -> str:
        token = self._current
        if token.kind not in (TokenKind.TERM, TokenKind.PHRASE):
            raise ParseError(f"Missing value after '{field_label}'", position)
        self._advance()
        if not token.value:
            raise ParseError("Empty phrase", token.position)
        return token.value


def parse_query(query: str) -> ParsedQuery:
    """Parse a raw query string into an operator tree.

    Never raises for malformed input: lexer and parser errors are returned in
    ``ParsedQuery.error`` with ``is_valid`` set to False.
    """
    if not query or not query.strip():
        return ParsedQuery(original_query=query, is_valid=True)

    try:
        root = _Parser(tokenize(query)).parse()
    except QueryError as exc:
        logger.debug("Query rejected: %s", exc, extra={"error_type": type(exc).__name__})
        return ParsedQuery(
            original_query=query,
            is_valid=False,
            error=str(exc),
            error_type=type(exc).__name__,
        )

    return ParsedQuery(original_query=query, is_valid=True, root=root)


def validate_query(query: str) -> ValidationResult:
    """Check query syntax without evaluating it."""
    parsed = parse_query(query)
    return ValidationResult(is_valid=parsed.is_valid, error=parsed.error)

"""Tokenizer for the advanced note query language.

Recognised lexemes:
- field markers ``tag:``, ``title:``, ``body:`` (case-insensitive) glued to a
  bare term or a quoted phrase
- boolean keywords ``AND``, ``OR``, ``NOT`` (whole words, case-insensitive)
- parentheses
- quoted phrases, whitespace preserved verbatim
- bare terms
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import re
import unicodedata

from zettel_search.search.errors import LexError


FIELD_PREFIX_PATTERN = re.compile(r"^([A-Za-z]+):")
KNOWN_FIELDS = ("tag", "title", "body")
_KEYWORDS = {"AND", "OR", "NOT"}
_WORD_DELIMITERS = frozenset('()"')


class TokenKind(str, Enum):
    FIELD = "FIELD"
    AND = "AND"
    OR = "OR"
    NOT = "NOT"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    PHRASE = "PHRASE"
    TERM = "TERM"
    EOF = "EOF"


@dataclass(frozen=True, slots=True)
class Token:
    """A lexeme with its starting offset in the raw query."""

    kind: TokenKind
    value: str
    position: int


def _is_invalid_char(ch: str) -> bool:
    return not ch.isspace() and unicodedata.category(ch) == "Cc"


def _ends_word(ch: str) -> bool:
    return ch.isspace() or ch in _WORD_DELIMITERS or _is_invalid_char(ch)


def tokenize(query: str) -> list[Token]:
    """Split a raw query into tokens.

    Args:
        query: Raw user input.

    Returns:
        Token list, always terminated by an EOF token.

    Raises:
        LexError: On an unterminated phrase, a field prefix without a value,
            or a control character.
    """
    tokens: list[Token] = []
    length = len(query)
    pos = 0

    while pos < length:
        ch = query[pos]

        if ch.isspace():
            pos += 1
            continue

        if _is_invalid_char(ch):
            raise LexError(f"Invalid character {ch!r}", pos)

        if ch == "(":
            tokens.append(Token(TokenKind.LPAREN, ch, pos))
            pos += 1
            continue

        if ch == ")":
            tokens.append(Token(TokenKind.RPAREN, ch, pos))
            pos += 1
            continue

        if ch == '"':
            closing = query.find('"', pos + 1)
            if closing == -1:
                raise LexError("Unterminated phrase", pos)
            tokens.append(Token(TokenKind.PHRASE, query[pos + 1 : closing], pos))
            pos = closing + 1
            continue

        start = pos
        while pos < length and not _ends_word(query[pos]):
            pos += 1
        word = query[start:pos]

        field_match = FIELD_PREFIX_PATTERN.match(word)
        if field_match:
            tokens.append(Token(TokenKind.FIELD, field_match.group(1).lower(), start))
            value = word[field_match.end() :]
            if value:
                tokens.append(Token(TokenKind.TERM, value, start + field_match.end()))
            elif pos >= length or query[pos] != '"':
                # The value must follow the colon directly, either bare or quoted
                raise LexError(f"Missing value after '{word}'", start)
            continue

        upper = word.upper()
        if upper in _KEYWORDS:
            tokens.append(Token(TokenKind(upper), word, start))
        else:
            tokens.append(Token(TokenKind.TERM, word, start))

    tokens.append(Token(TokenKind.EOF, "", length))
    return tokens

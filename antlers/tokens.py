"""
Lexical types.

Token kinds produced by the lexer and the span type shared by tokens
and CST nodes.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class TokenType(enum.Enum):
    """Token kinds of an Antlers document."""

    # Document level
    TEXT = "TEXT"
    IGNORE = "IGNORE"                # @... escape run
    COMMENT = "COMMENT"              # {{# ... #}} / {{!-- ... --}}
    RAW_CODE = "RAW_CODE"            # {{? ... ?}}
    ECHO_CODE = "ECHO_CODE"          # {{$ ... $}}
    TAG_OPEN = "TAG_OPEN"            # {{
    TAG_CLOSE = "TAG_CLOSE"          # }}

    # Tag interior
    IDENTIFIER = "IDENTIFIER"
    NUMBER = "NUMBER"
    STRING = "STRING"
    OPERATOR = "OPERATOR"
    LPAREN = "LPAREN"                # (
    RPAREN = "RPAREN"                # )
    LBRACKET = "LBRACKET"            # [
    RBRACKET = "RBRACKET"            # ]
    LBRACE = "LBRACE"                # {
    RBRACE = "RBRACE"                # }
    COMMA = "COMMA"                  # ,
    SEMICOLON = "SEMICOLON"          # ;
    COLON = "COLON"                  # :
    DOT = "DOT"                      # .
    PIPE = "PIPE"                    # |

    # Trivia (skipped by the cursor between token fetches)
    WHITESPACE = "WHITESPACE"

    # Unclassifiable character inside a tag
    ERROR = "ERROR"

    EOF = "EOF"


# Kinds the cursor skips between significant tokens
TRIVIA = frozenset({TokenType.WHITESPACE, TokenType.COMMENT})

# Kinds that end a tag interior (its close, or document-level content
# following a tag that was never closed)
TAG_BOUNDARY = frozenset({
    TokenType.TAG_CLOSE,
    TokenType.TAG_OPEN,
    TokenType.TEXT,
    TokenType.IGNORE,
    TokenType.RAW_CODE,
    TokenType.ECHO_CODE,
    TokenType.EOF,
})


@dataclass(frozen=True)
class Span:
    """Half-open character range ``[start, end)`` in the source text."""
    start: int
    end: int

    def cover(self, other: Span) -> Span:
        """Smallest span containing both spans."""
        return Span(min(self.start, other.start), max(self.end, other.end))


@dataclass(frozen=True)
class Token:
    """
    Token with positional information for precise diagnostics.
    """
    type: TokenType
    value: str
    position: int        # Offset in the source text
    line: int            # Line number (1-based)
    column: int          # Column number (1-based)

    @property
    def end(self) -> int:
        return self.position + len(self.value)

    @property
    def span(self) -> Span:
        return Span(self.position, self.end)

    def is_op(self, *values: str) -> bool:
        """True for an OPERATOR token spelled as one of ``values``."""
        return self.type == TokenType.OPERATOR and self.value in values

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


__all__ = ["TokenType", "TRIVIA", "TAG_BOUNDARY", "Span", "Token"]

"""
Error kinds, diagnostics and exceptions of the Antlers parser.

The parser is resilient: malformed input is recorded as diagnostics and
error nodes rather than raised. Only recursion-depth exhaustion escapes
``parse`` as an exception. Expected user-facing failures of the outer
layers (configuration, CLI input) inherit from ``AntlersError``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from .tokens import Span, Token


class ErrorKind(enum.Enum):
    """Kinds of problems reported while parsing a document."""
    LEX_ERROR = "lex_error"
    UNTERMINATED_TAG = "unterminated_tag"
    UNMATCHED_CLOSE = "unmatched_close"
    MISMATCHED_CLOSE = "mismatched_close"
    MALFORMED_EXPRESSION = "malformed_expression"
    UNRESOLVED_AMBIGUITY = "unresolved_ambiguity"


@dataclass(frozen=True)
class Diagnostic:
    """A problem found in the source, with its location."""
    kind: ErrorKind
    message: str
    span: Span
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}: {self.kind.value}: {self.message}"


class AntlersError(Exception):
    """
    Base class for errors that the caller is expected to handle.

    Programming errors and bugs should NOT inherit from AntlersError,
    they propagate with full tracebacks.
    """
    pass


class ConfigError(AntlersError, ValueError):
    """Invalid parser configuration."""
    pass


class RecursionLimitError(AntlersError):
    """Nesting of tags or expressions exceeded the configured depth."""

    def __init__(self, limit: int, position: int, message: Optional[str] = None):
        super().__init__(message or f"Nesting depth limit of {limit} exceeded at offset {position}")
        self.limit = limit
        self.position = position


class UnresolvedAmbiguityError(AntlersError):
    """
    The tie-break table had no answer for a decision point.

    Never raised for valid or invalid input alike; its presence means the
    resolver table is incomplete.
    """
    pass


class MalformedExpressionError(Exception):
    """
    Grammar violation inside a tag.

    Raised by the expression and tag parsers and caught by the tree builder,
    which turns it into an error node spanning the offending tag.
    """

    def __init__(self, message: str, token: Optional[Token] = None):
        if token is not None:
            super().__init__(f"{message} at {token.line}:{token.column}")
        else:
            super().__init__(message)
        self.message = message
        self.token = token


def line_column(source: str, offset: int) -> tuple[int, int]:
    """1-based line and column of ``offset`` in ``source``."""
    line = source.count("\n", 0, offset) + 1
    last_newline = source.rfind("\n", 0, offset)
    return line, offset - last_newline


__all__ = [
    "ErrorKind",
    "Diagnostic",
    "AntlersError",
    "ConfigError",
    "RecursionLimitError",
    "UnresolvedAmbiguityError",
    "MalformedExpressionError",
    "line_column",
]

"""
Token cursor used by the expression, tag and document parsers.

Whitespace and comments are not part of the grammar; they are skipped by
an explicit step before every significant-token fetch. The cursor also
keeps a mark stack so a parser can try one reading and rewind.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import AbstractSet, Iterator, List, Optional

from .errors import MalformedExpressionError, RecursionLimitError
from .tokens import TRIVIA, Token, TokenType


class TokenCursor:
    """
    Navigation over a token list.

    ``current``/``peek`` always skip trivia first; ``raw_current`` does not,
    which lets callers check adjacency (e.g. ``a:b`` versus ``a : b``).
    """

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.position = 0
        self.length = len(tokens)

        # Position stack for mark/reset
        self._marks: List[int] = []

    # ---- trivia ----

    def skip_trivia(self) -> None:
        """Moves past whitespace and comment tokens."""
        while self.position < self.length and self.tokens[self.position].type in TRIVIA:
            self.position += 1

    def raw_current(self) -> Token:
        """Current token without skipping trivia."""
        if self.position >= self.length:
            return self.tokens[-1]
        return self.tokens[self.position]

    # ---- navigation ----

    def current(self) -> Token:
        self.skip_trivia()
        return self.raw_current()

    def peek(self, offset: int = 1) -> Token:
        """Significant token ``offset`` places after the current one."""
        self.skip_trivia()
        pos = self.position
        seen = 0
        while pos < self.length:
            pos += 1
            while pos < self.length and self.tokens[pos].type in TRIVIA:
                pos += 1
            seen += 1
            if seen == offset:
                break
        return self.tokens[min(pos, self.length - 1)]

    def advance(self) -> Token:
        """Consumes the current significant token and returns it."""
        token = self.current()
        if self.position < self.length and token.type != TokenType.EOF:
            self.position += 1
        return token

    def advance_raw(self) -> Token:
        """Consumes the current token, trivia included."""
        token = self.raw_current()
        if self.position < self.length and token.type != TokenType.EOF:
            self.position += 1
        return token

    def skip_to(self, token_types: AbstractSet[TokenType]) -> Token:
        """Moves to the next token of one of the given kinds and returns it."""
        while self.position < self.length and self.tokens[self.position].type not in token_types:
            self.position += 1
        return self.raw_current()

    def match(self, *token_types: TokenType) -> bool:
        return self.current().type in token_types

    def consume(self, expected: TokenType, message: Optional[str] = None) -> Token:
        """
        Consumes a token of the expected type.

        Raises:
            MalformedExpressionError: If the current token has another type
        """
        token = self.current()
        if token.type != expected:
            raise MalformedExpressionError(
                message or f"Expected {expected.name}, got {token.type.name} {token.value!r}",
                token,
            )
        return self.advance()

    def consume_op(self, value: str) -> Token:
        token = self.current()
        if not token.is_op(value):
            raise MalformedExpressionError(f"Expected '{value}', got {token.value!r}", token)
        return self.advance()

    # ---- backtracking ----

    def mark(self) -> None:
        self._marks.append(self.position)

    def reset(self) -> None:
        """Rewinds to the most recent mark and drops it."""
        self.position = self._marks.pop()

    def release(self) -> None:
        """Drops the most recent mark, keeping the current position."""
        self._marks.pop()


class DepthGuard:
    """
    Shared nesting counter for paired tags and nested expressions.

    Exceeding the limit raises RecursionLimitError instead of letting the
    recursive descent overflow the interpreter stack.
    """

    def __init__(self, limit: int):
        self.limit = limit
        self.depth = 0

    @contextmanager
    def nested(self, position: int) -> Iterator[None]:
        self.depth += 1
        try:
            if self.depth > self.limit:
                raise RecursionLimitError(self.limit, position)
            yield
        finally:
            self.depth -= 1


__all__ = ["TokenCursor", "DepthGuard"]

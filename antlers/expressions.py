"""
Expression parser with precedence climbing.

Grammar (binding power from loosest to tightest):

expression     → binary(ASSIGNMENT)
binary(p)      → unary (OP binary(p') | "?" expression ":" binary(TERNARY))*
unary          → ("!" | "-" | "+") unary | primary
primary        → "(" expression ")" | STRING | NUMBER | "true" | "false"
               | variable ("." METHOD "(" ")")?
variable       → IDENT ((":" | ".") IDENT | "[" (IDENT | NUMBER | STRING) "]")*
with_modifiers → expression ("|" IDENT (":" (IDENT | NUMBER) | "(" scalars? ")")?)*

Modifiers bind outermost: they apply to the whole expression, left to right.
In a ternary then-branch a tight ``:`` joins a path only while another
``:`` is left for the ternary, so ``a ? b:c`` is a ternary over ``b`` and ``c``.
"""

from __future__ import annotations

import enum
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from .cursor import DepthGuard, TokenCursor
from .errors import MalformedExpressionError
from .literals import decode_string, number_value
from .nodes import (
    BinaryExpression, Expression, Literal, MethodCall, ModifiedExpression,
    Modifier, ParenthesizedExpression, PathSegment, TernaryExpression,
    UnaryExpression, Variable,
)
from .tokens import TAG_BOUNDARY, Span, Token, TokenType

logger = logging.getLogger(__name__)


class Precedence(enum.IntEnum):
    """Binding power of binary and ternary operators; higher binds tighter."""
    ASSIGNMENT = 1
    TERNARY = 2
    COALESCING = 3
    BITWISE = 4
    LOGICAL = 5
    COMPARISON = 6
    ADDITIVE = 7
    MULTIPLICATIVE = 8
    EXPONENTIATION = 9


RIGHT_ASSOCIATIVE = frozenset({Precedence.ASSIGNMENT, Precedence.EXPONENTIATION})

BINARY_OPERATORS: Dict[str, Precedence] = {
    "=": Precedence.ASSIGNMENT, "+=": Precedence.ASSIGNMENT, "-=": Precedence.ASSIGNMENT,
    "*=": Precedence.ASSIGNMENT, "/=": Precedence.ASSIGNMENT, "%=": Precedence.ASSIGNMENT,
    "?=": Precedence.ASSIGNMENT,
    "??": Precedence.COALESCING,
    "bwa": Precedence.BITWISE, "bwo": Precedence.BITWISE, "bxor": Precedence.BITWISE,
    "&&": Precedence.LOGICAL, "||": Precedence.LOGICAL,
    "and": Precedence.LOGICAL, "or": Precedence.LOGICAL, "xor": Precedence.LOGICAL,
    "===": Precedence.COMPARISON, "!==": Precedence.COMPARISON,
    "==": Precedence.COMPARISON, "!=": Precedence.COMPARISON, "<>": Precedence.COMPARISON,
    "<": Precedence.COMPARISON, ">": Precedence.COMPARISON,
    "<=": Precedence.COMPARISON, ">=": Precedence.COMPARISON,
    "+": Precedence.ADDITIVE, "-": Precedence.ADDITIVE,
    "*": Precedence.MULTIPLICATIVE, "/": Precedence.MULTIPLICATIVE, "%": Precedence.MULTIPLICATIVE,
    "**": Precedence.EXPONENTIATION,
}

WORD_OPERATORS = frozenset(op for op in BINARY_OPERATORS if op.isalpha())

UNARY_OPERATORS = frozenset({"!", "-", "+"})

BOOLEANS = {"true": True, "false": False}

_OPENERS = frozenset({TokenType.LPAREN, TokenType.LBRACKET, TokenType.LBRACE})
_CLOSERS = frozenset({TokenType.RPAREN, TokenType.RBRACKET, TokenType.RBRACE})

DEFAULT_METHODS: FrozenSet[str] = frozenset({
    "orderby", "groupby", "where", "take", "skip", "merge", "pluck",
})


class ExpressionParser:
    """
    Recursive-descent expression parser over a shared token cursor.

    Raises MalformedExpressionError on grammar violations; the caller
    decides how to recover.
    """

    def __init__(self, cursor: TokenCursor, guard: DepthGuard,
                 methods: Optional[Iterable[str]] = None):
        self.cursor = cursor
        self.guard = guard
        self.methods = frozenset(methods) if methods is not None else DEFAULT_METHODS
        # Ternaries whose then-branch is being parsed at the current grouping level
        self._open_ternaries = 0

    # ---- entry points ----

    def parse_expression(self) -> Expression:
        """Parses a full expression without modifiers."""
        return self._parse_binary(Precedence.ASSIGNMENT)

    def parse_with_modifiers(self) -> Expression:
        """Parses an expression followed by zero or more ``| modifier`` stages."""
        base = self.parse_expression()
        modifiers: List[Modifier] = []

        while self.cursor.match(TokenType.PIPE):
            modifiers.append(self._parse_modifier())

        if not modifiers:
            return base
        return ModifiedExpression(
            span=base.span.cover(modifiers[-1].span),
            base=base,
            modifiers=tuple(modifiers),
        )

    # ---- binary / ternary ----

    def _parse_binary(self, min_precedence: int) -> Expression:
        with self.guard.nested(self.cursor.current().position):
            return self._climb(min_precedence)

    def _climb(self, min_precedence: int) -> Expression:
        left = self._parse_unary()

        while True:
            token = self.cursor.current()

            if token.is_op("?"):
                if Precedence.TERNARY < min_precedence:
                    break
                self.cursor.advance()
                self._open_ternaries += 1
                try:
                    then = self._parse_binary(Precedence.ASSIGNMENT)
                finally:
                    self._open_ternaries -= 1
                self.cursor.consume(TokenType.COLON, "Expected ':' in ternary expression")
                otherwise = self._parse_binary(Precedence.TERNARY)
                left = TernaryExpression(
                    span=left.span.cover(otherwise.span),
                    condition=left, then=then, otherwise=otherwise,
                )
                continue

            operator = self._binary_operator(token)
            if operator is None:
                break
            precedence = BINARY_OPERATORS[operator]
            if precedence < min_precedence:
                break

            self.cursor.advance()
            next_min = precedence if precedence in RIGHT_ASSOCIATIVE else precedence + 1
            right = self._parse_binary(next_min)
            left = BinaryExpression(
                span=left.span.cover(right.span),
                operator=operator, left=left, right=right,
            )

        return left

    @staticmethod
    def _binary_operator(token: Token) -> Optional[str]:
        if token.type == TokenType.OPERATOR and token.value in BINARY_OPERATORS:
            return token.value
        if token.type == TokenType.IDENTIFIER and token.value in WORD_OPERATORS:
            return token.value
        return None

    # ---- unary / primary ----

    def _parse_unary(self) -> Expression:
        token = self.cursor.current()
        if not (token.type == TokenType.OPERATOR and token.value in UNARY_OPERATORS):
            return self._parse_primary()

        self.cursor.advance()

        # "-5" in prefix position is a single negative literal
        following = self.cursor.raw_current()
        if (token.value == "-" and following.type == TokenType.NUMBER
                and following.position == token.end):
            self.cursor.advance()
            raw = token.value + following.value
            return Literal(span=token.span.cover(following.span),
                           kind="number", raw=raw, value=number_value(raw))

        with self.guard.nested(token.position):
            operand = self._parse_unary()
        return UnaryExpression(span=token.span.cover(operand.span),
                               operator=token.value, operand=operand)

    def _parse_primary(self) -> Expression:
        token = self.cursor.current()

        if token.type == TokenType.LPAREN:
            self.cursor.advance()
            outer, self._open_ternaries = self._open_ternaries, 0
            try:
                inner = self.parse_expression()
            finally:
                self._open_ternaries = outer
            close = self.cursor.consume(TokenType.RPAREN, "Expected ')' after grouped expression")
            return ParenthesizedExpression(span=token.span.cover(close.span), inner=inner)

        if token.type in (TokenType.STRING, TokenType.NUMBER):
            return self.parse_literal()

        if token.type == TokenType.IDENTIFIER:
            if token.value in BOOLEANS:
                return self.parse_literal()
            variable = self.parse_variable()
            return self._parse_method_call(variable)

        if token.type in TAG_BOUNDARY:
            raise MalformedExpressionError("Unexpected end of expression", token)
        raise MalformedExpressionError(f"Unexpected token {token.value!r} in expression", token)

    def parse_literal(self) -> Literal:
        """Parses a string, number (optionally ``-``-prefixed) or boolean literal."""
        token = self.cursor.current()

        if token.type == TokenType.STRING:
            self.cursor.advance()
            return Literal(span=token.span, kind="string", raw=token.value,
                           value=decode_string(token.value))

        if token.type == TokenType.NUMBER:
            self.cursor.advance()
            return Literal(span=token.span, kind="number", raw=token.value,
                           value=number_value(token.value))

        if token.is_op("-"):
            number = self.cursor.peek(1)
            if number.type == TokenType.NUMBER and number.position == token.end:
                self.cursor.advance()
                self.cursor.advance()
                raw = "-" + number.value
                return Literal(span=token.span.cover(number.span), kind="number",
                               raw=raw, value=number_value(raw))

        if token.type == TokenType.IDENTIFIER and token.value in BOOLEANS:
            self.cursor.advance()
            return Literal(span=token.span, kind="boolean", raw=token.value,
                           value=BOOLEANS[token.value])

        raise MalformedExpressionError(f"Expected a literal, got {token.value!r}", token)

    def parse_scalar(self) -> Expression:
        """String, number, boolean or variable (switch values, modifier arguments)."""
        token = self.cursor.current()
        if token.type == TokenType.IDENTIFIER and token.value not in BOOLEANS:
            return self.parse_variable()
        return self.parse_literal()

    # ---- variables ----

    def parse_variable(self) -> Variable:
        """
        Parses a variable path.

        Separators must touch the tokens around them; ``a : b`` is not a path.
        A ``.method()`` suffix from the allow-list is left for the caller.
        """
        head = self.cursor.consume(TokenType.IDENTIFIER, "Expected a variable name")
        segments = [PathSegment(value=head.value)]
        parts = [head.value]
        end = head.end

        while True:
            token = self.cursor.raw_current()
            if token.position != end:
                break

            if token.type in (TokenType.COLON, TokenType.DOT):
                name = self._raw_after(token)
                if name is None or name.type != TokenType.IDENTIFIER or name.position != token.end:
                    break
                if token.type == TokenType.DOT and self._is_method_call_at(self.cursor.position):
                    break
                if token.type == TokenType.COLON and not self._path_colon_allowed():
                    break
                self.cursor.advance()
                self.cursor.advance()
                segments.append(PathSegment(value=name.value, separator=token.value))
                parts.append(token.value + name.value)
                end = name.end
                continue

            if token.type == TokenType.LBRACKET:
                self.cursor.advance()
                index = self.cursor.raw_current()
                if index.position != token.end or index.type not in (
                        TokenType.IDENTIFIER, TokenType.NUMBER, TokenType.STRING):
                    raise MalformedExpressionError(
                        "Expected identifier, number or string inside '[...]'", index)
                self.cursor.advance()
                close = self.cursor.raw_current()
                if close.type != TokenType.RBRACKET or close.position != index.end:
                    raise MalformedExpressionError("Expected ']' after index", close)
                self.cursor.advance()
                segments.append(self._index_segment(index))
                parts.append(f"[{index.value}]")
                end = close.end
                continue

            break

        return Variable(span=Span(head.position, end), segments=tuple(segments), text="".join(parts))

    @staticmethod
    def _index_segment(token: Token) -> PathSegment:
        if token.type == TokenType.NUMBER:
            return PathSegment(value=number_value(token.value), separator="[")
        if token.type == TokenType.STRING:
            return PathSegment(value=decode_string(token.value), separator="[", quoted=True)
        return PathSegment(value=token.value, separator="[")

    def _parse_method_call(self, variable: Variable) -> Expression:
        if not self._is_method_call_at(self.cursor.position):
            return variable

        self.cursor.advance()                     # .
        method = self.cursor.advance()            # name
        self.cursor.consume(TokenType.LPAREN)
        if not self.cursor.match(TokenType.RPAREN):
            raise MalformedExpressionError(
                f"Method '{method.value}' does not take arguments", self.cursor.current())
        close = self.cursor.advance()
        return MethodCall(span=variable.span.cover(close.span), target=variable, method=method.value)

    def _is_method_call_at(self, pos: int) -> bool:
        """``.name(`` with ``name`` on the allow-list, starting at raw index ``pos``."""
        tokens = self.cursor.tokens
        if pos + 1 >= len(tokens):
            return False
        dot, name = tokens[pos], tokens[pos + 1]
        if dot.type != TokenType.DOT or name.type != TokenType.IDENTIFIER:
            return False
        if name.value not in self.methods or name.position != dot.end:
            return False
        following = self._significant_from(pos + 2)
        return following is not None and following.type == TokenType.LPAREN

    def _path_colon_allowed(self) -> bool:
        """
        Whether the ``:`` at the cursor may join a path segment.

        Inside a ternary's then-branch ``a ? b:c`` has to give its colon to
        the ternary unless enough ``:`` tokens remain at this grouping level
        (before a ``|``, ``;`` or the end of the tag) to close every open
        ternary, as in ``a ? entry:title : c``.
        """
        if not self._open_ternaries:
            return True

        remaining = 0
        depth = 0
        for token in self.cursor.tokens[self.cursor.position + 1:]:
            if token.type in TAG_BOUNDARY:
                break
            if token.type in _OPENERS:
                depth += 1
            elif token.type in _CLOSERS:
                if depth == 0:
                    break
                depth -= 1
            elif depth == 0:
                if token.type in (TokenType.PIPE, TokenType.SEMICOLON):
                    break
                if token.type == TokenType.COLON:
                    remaining += 1
        return remaining >= self._open_ternaries

    def _raw_after(self, token: Token) -> Optional[Token]:
        pos = self.cursor.position + 1
        tokens = self.cursor.tokens
        return tokens[pos] if pos < len(tokens) else None

    def _significant_from(self, pos: int) -> Optional[Token]:
        tokens = self.cursor.tokens
        while pos < len(tokens) and tokens[pos].type in (TokenType.WHITESPACE, TokenType.COMMENT):
            pos += 1
        return tokens[pos] if pos < len(tokens) else None

    # ---- modifiers ----

    def _parse_modifier(self) -> Modifier:
        pipe = self.cursor.consume(TokenType.PIPE)
        name = self.cursor.consume(TokenType.IDENTIFIER, "Expected modifier name after '|'")
        arguments: Tuple[Expression, ...] = ()
        style = "none"
        end = name.span

        if self.cursor.match(TokenType.COLON):
            self.cursor.advance()
            argument = self.cursor.current()
            if argument.type == TokenType.IDENTIFIER:
                value: Expression = self.parse_variable()
            elif argument.type == TokenType.NUMBER or argument.is_op("-"):
                value = self.parse_literal()
            else:
                raise MalformedExpressionError(
                    f"Expected identifier or number after '{name.value}:'", argument)
            arguments = (value,)
            style = "colon"
            end = value.span

        elif self.cursor.match(TokenType.LPAREN):
            self.cursor.advance()
            values: List[Expression] = []
            if not self.cursor.match(TokenType.RPAREN):
                values.append(self.parse_scalar())
                while self.cursor.match(TokenType.COMMA):
                    self.cursor.advance()
                    values.append(self.parse_scalar())
            close = self.cursor.consume(TokenType.RPAREN, "Expected ')' after modifier arguments")
            arguments = tuple(values)
            style = "call"
            end = close.span

        logger.debug("Parsed modifier %s (%s, %d args)", name.value, style, len(arguments))
        return Modifier(name=name.value, arguments=arguments, style=style, span=pipe.span.cover(end))


__all__ = [
    "Precedence",
    "BINARY_OPERATORS",
    "WORD_OPERATORS",
    "UNARY_OPERATORS",
    "DEFAULT_METHODS",
    "ExpressionParser",
]

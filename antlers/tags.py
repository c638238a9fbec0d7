"""
Tag parser: the interior of one ``{{ ... }}``.

Produces a *head* describing what the tag contributes to the tree: a
finished leaf node, the opening of a paired tag, a close marker or an
``if`` branch. Pairing opens with closes and collecting bodies is the tree
builder's job (see parser.py).
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

from .cursor import TokenCursor
from .errors import ErrorKind, MalformedExpressionError
from .expressions import BOOLEANS, ExpressionParser
from .keywords import KeywordClass, KeywordClassifier
from .nodes import (
    DirectiveTag, ErrorNode, Expression, ExpressionTag, InterpolatedValue,
    MultiStatementTag, Node, Parameter, ParameterValue, RecursiveNode,
    Statement, SwitchCase, SwitchNode, TagKind, TagNode, UserTagNode,
    Variable, VoidValue,
)
from .resolver import (
    TagReading, resolve_generic_reading, resolve_statement_reading,
    resolve_tag_reading, starts_parameter,
)
from .tokens import TAG_BOUNDARY, Span, Token, TokenType

logger = logging.getLogger(__name__)

Reporter = Callable[[ErrorKind, str, Span], None]


# ---- Tag shapes ----

class Params(enum.Enum):
    """Parameter requirement of one tag form."""
    NONE = "none"
    OPTIONAL = "optional"
    REQUIRED = "required"


@dataclass(frozen=True)
class TagShape:
    """
    Accepted forms of a specialized tag.

    ``bound`` governs ``keyword:var [params]`` and ``unbound`` governs
    ``keyword [params]``; None means the form is not accepted at all.
    ``special_bindings`` maps a literal binding to a dedicated kind
    (``nav:breadcrumbs``).
    """
    kind: TagKind
    bound: Optional[Params]
    unbound: Optional[Params]
    paired: bool = False
    special_bindings: Mapping[str, TagKind] = field(default_factory=dict)

    def kind_for(self, binding: Optional[Variable]) -> TagKind:
        if binding is not None and binding.text in self.special_bindings:
            return self.special_bindings[binding.text]
        return self.kind


def _loop(kind: TagKind, **special: TagKind) -> TagShape:
    return TagShape(kind, bound=Params.OPTIONAL, unbound=Params.REQUIRED, paired=True,
                    special_bindings=special)


# Shapes of keywords confirmed by the keyword classifier
CLASSIFIED_SHAPES: Dict[KeywordClass, TagShape] = {
    KeywordClass.COLLECTION: _loop(TagKind.COLLECTION),
    KeywordClass.NAV: _loop(TagKind.NAV, breadcrumbs=TagKind.NAV_BREADCRUMBS),
    KeywordClass.TAXONOMY: _loop(TagKind.TAXONOMY),
    KeywordClass.FORM: _loop(TagKind.FORM, errors=TagKind.FORM_ERRORS),
    KeywordClass.ENTRIES: TagShape(TagKind.ENTRIES, bound=None, unbound=Params.OPTIONAL, paired=True),
}

CONDITIONAL_KEYWORDS = frozenset({KeywordClass.IF, KeywordClass.UNLESS})

# Shapes committed to on literal spelling plus a fitting lookahead
LITERAL_SHAPES: Dict[str, TagShape] = {
    "partial": TagShape(TagKind.PARTIAL, bound=Params.OPTIONAL, unbound=Params.REQUIRED),
    "asset": TagShape(TagKind.ASSET, bound=Params.OPTIONAL, unbound=Params.REQUIRED),
    "glide": TagShape(TagKind.GLIDE, bound=Params.OPTIONAL, unbound=Params.REQUIRED),
    "yield": TagShape(TagKind.YIELD, bound=Params.NONE, unbound=Params.NONE),
    "dump": TagShape(TagKind.DUMP, bound=Params.NONE, unbound=Params.NONE),
    "section": TagShape(TagKind.SECTION, bound=Params.NONE, unbound=None, paired=True),
    "slot": TagShape(TagKind.SLOT, bound=Params.NONE, unbound=None, paired=True),
    "push": TagShape(TagKind.PUSH, bound=Params.NONE, unbound=None, paired=True),
    "prepend": TagShape(TagKind.PREPEND, bound=Params.NONE, unbound=None, paired=True),
    "scope": TagShape(TagKind.SCOPE, bound=None, unbound=Params.OPTIONAL, paired=True),
    "cache": TagShape(TagKind.CACHE, bound=None, unbound=Params.OPTIONAL, paired=True),
    "no_cache": TagShape(TagKind.NO_CACHE, bound=None, unbound=Params.NONE, paired=True),
    "markdown": TagShape(TagKind.MARKDOWN, bound=None, unbound=Params.NONE, paired=True),
    "once": TagShape(TagKind.ONCE, bound=None, unbound=Params.NONE, paired=True),
    "redirect": TagShape(TagKind.REDIRECT, bound=None, unbound=Params.REQUIRED),
    "svg": TagShape(TagKind.SVG, bound=None, unbound=Params.REQUIRED),
    "session": TagShape(TagKind.SESSION, bound=Params.NONE, unbound=Params.REQUIRED),
    "oauth": TagShape(TagKind.OAUTH, bound=Params.OPTIONAL, unbound=None),
    "locales": TagShape(TagKind.LOCALES, bound=None, unbound=Params.OPTIONAL),
    "template_content": TagShape(TagKind.TEMPLATE_CONTENT, bound=None, unbound=Params.NONE),
}

USER_ABILITIES = frozenset({"can", "is", "in"})

# Keywords whose close tags take part in pairing; any other ``/name`` is a
# closing directive leaf
PAIRED_KEYWORDS = frozenset(
    {"if", "unless"}
    | {k.value for k, shape in CLASSIFIED_SHAPES.items() if shape.paired}
    | {name for name, shape in LITERAL_SHAPES.items() if shape.paired}
)


# ---- Heads ----

@dataclass(frozen=True)
class SingleHead:
    """A complete leaf node."""
    node: Node


@dataclass(frozen=True)
class OpenHead:
    """
    Opening of a paired construct.

    ``construct`` is 'if', 'unless' or 'tag' (a TagNode of ``kind``).
    """
    construct: str
    keyword: str
    span: Span
    kind: Optional[TagKind] = None
    binding: Optional[Variable] = None
    parameters: Tuple[Parameter, ...] = ()
    condition: Optional[Expression] = None


@dataclass(frozen=True)
class CloseHead:
    """``/keyword[:binding]``; ``name`` is the whole path after the slash."""
    keyword: str
    binding: Optional[Variable]
    name: Variable
    span: Span


@dataclass(frozen=True)
class BranchHead:
    """``elseif <condition>`` or ``else`` (condition None)."""
    keyword: str
    condition: Optional[Expression]
    span: Span


Head = Union[SingleHead, OpenHead, CloseHead, BranchHead]


class TagParser:
    """
    Parses one tag starting at a TAG_OPEN token.

    Grammar violations never escape: the tag is skipped up to its boundary
    and returned as an ErrorNode, with a diagnostic sent to ``report``.
    """

    def __init__(self, cursor: TokenCursor, expressions: ExpressionParser,
                 classifier: KeywordClassifier, source: str, report: Reporter):
        self.cursor = cursor
        self.expressions = expressions
        self.classifier = classifier
        self.source = source
        self.report = report
        self.handled = frozenset(CLASSIFIED_SHAPES) | CONDITIONAL_KEYWORDS

    def parse(self) -> Head:
        open_token = self.cursor.advance_raw()
        try:
            return self._parse_interior(open_token)
        except MalformedExpressionError as e:
            return self._recover(open_token, e)

    # ---- dispatch ----

    def _parse_interior(self, open_token: Token) -> Head:
        head = self.cursor.current()
        following = self._raw_at(self.cursor.position + 1)
        verdict = self.classifier.classify(self.source, open_token.end)

        reading = resolve_tag_reading(
            head, following, verdict,
            handled=self.handled,
            literal_commit=self._literal_commit(head),
        )
        logger.debug("Tag at %d:%d read as %s", open_token.line, open_token.column, reading.value)

        if reading is TagReading.CLOSE:
            return self._parse_close(open_token)
        if reading is TagReading.BRANCH:
            return self._parse_branch(open_token)
        if reading is TagReading.KEYWORD:
            return self._parse_keyword(open_token, verdict)
        if reading is TagReading.RECURSIVE:
            return self._parse_recursive(open_token)

        if reading is TagReading.SPECIALIZED:
            # A fitting lookahead does not guarantee the whole shape; the
            # generic reading is the fallback
            self.cursor.mark()
            try:
                specialized = self._parse_specialized(open_token)
            except MalformedExpressionError as e:
                self.cursor.reset()
                logger.debug("Specialized '%s' rejected (%s), using generic reading", head.value, e.message)
            else:
                self.cursor.release()
                return specialized

        return self._parse_generic(open_token)

    def _literal_commit(self, head: Token) -> bool:
        """Whether the lookahead after a literal keyword fits one of its forms."""
        if head.type != TokenType.IDENTIFIER:
            return False
        word = head.value
        if word not in LITERAL_SHAPES and word not in ("switch", "user"):
            return False

        self.cursor.mark()
        try:
            keyword = self.cursor.advance()
            if word == "switch":
                return self.cursor.match(TokenType.LPAREN)
            if word == "user":
                ability = self._bound_name(keyword)
                return ability is not None and ability.value in USER_ABILITIES
            return self._shape_admits(LITERAL_SHAPES[word], keyword)
        finally:
            self.cursor.reset()

    def _shape_admits(self, shape: TagShape, keyword: Token) -> bool:
        if self._bound_name(keyword) is not None:
            return shape.bound is not None
        if shape.unbound is None:
            return False
        if self.cursor.match(TokenType.TAG_CLOSE):
            return shape.unbound is not Params.REQUIRED
        if starts_parameter(self.cursor):
            return shape.unbound is not Params.NONE
        return False

    # ---- specialized shapes ----

    def _parse_keyword(self, open_token: Token, verdict: KeywordClass) -> Head:
        keyword = self.cursor.consume(TokenType.IDENTIFIER, f"Expected '{verdict.value}'")

        if verdict in CONDITIONAL_KEYWORDS:
            condition = self.expressions.parse_expression()
            span = self._close(open_token)
            return OpenHead(construct=verdict.value, keyword=keyword.value, span=span, condition=condition)

        return self._parse_shape(open_token, keyword, CLASSIFIED_SHAPES[verdict])

    def _parse_specialized(self, open_token: Token) -> Head:
        keyword = self.cursor.advance()
        if keyword.value == "switch":
            return self._parse_switch(open_token)
        if keyword.value == "user":
            return self._parse_user(open_token, keyword)
        return self._parse_shape(open_token, keyword, LITERAL_SHAPES[keyword.value])

    def _parse_shape(self, open_token: Token, keyword: Token, shape: TagShape) -> Head:
        binding: Optional[Variable] = None
        parameters: Tuple[Parameter, ...] = ()

        if self._bound_name(keyword) is not None:
            if shape.bound is None:
                raise MalformedExpressionError(f"'{keyword.value}' does not take a binding", keyword)
            self.cursor.advance()
            binding = self.expressions.parse_variable()
            if shape.bound is Params.OPTIONAL:
                parameters = self.parse_parameters()
        else:
            if shape.unbound is None:
                raise MalformedExpressionError(f"'{keyword.value}' requires a ':binding'", keyword)
            if shape.unbound is not Params.NONE:
                parameters = self.parse_parameters()
            if shape.unbound is Params.REQUIRED and not parameters:
                raise MalformedExpressionError(f"'{keyword.value}' requires parameters", self.cursor.current())

        span = self._close(open_token)
        kind = shape.kind_for(binding)
        if shape.paired:
            return OpenHead(construct="tag", keyword=keyword.value, span=span, kind=kind,
                            binding=binding, parameters=parameters)
        return SingleHead(TagNode(span=span, kind=kind, keyword=keyword.value,
                                  binding=binding, parameters=parameters))

    def _parse_switch(self, open_token: Token) -> Head:
        self.cursor.consume(TokenType.LPAREN, "Expected '(' after 'switch'")
        cases: List[SwitchCase] = []
        if not self.cursor.match(TokenType.RPAREN):
            cases.append(self._parse_switch_case())
            while self.cursor.match(TokenType.COMMA):
                self.cursor.advance()
                cases.append(self._parse_switch_case())
        self.cursor.consume(TokenType.RPAREN, "Expected ')' after switch cases")
        span = self._close(open_token)
        return SingleHead(SwitchNode(span=span, cases=tuple(cases)))

    def _parse_switch_case(self) -> SwitchCase:
        start = self.cursor.consume(TokenType.LPAREN, "Expected '(' before switch condition")
        condition = self.expressions.parse_expression()
        self.cursor.consume(TokenType.RPAREN, "Expected ')' after switch condition")
        self.cursor.consume_op("=>")
        value = self.expressions.parse_scalar()
        return SwitchCase(condition=condition, value=value, span=start.span.cover(value.span))

    def _parse_user(self, open_token: Token, keyword: Token) -> Head:
        self.cursor.advance()                          # :
        ability = self.cursor.advance()

        if self.cursor.match(TokenType.STRING):
            argument = self.expressions.parse_literal()
            span = self._close(open_token)
            return SingleHead(UserTagNode(span=span, ability=ability.value, argument=argument))

        parameters = self.parse_parameters()
        if not parameters:
            raise MalformedExpressionError(
                f"'user:{ability.value}' expects a string or parameters", self.cursor.current())
        span = self._close(open_token)
        return SingleHead(UserTagNode(span=span, ability=ability.value, argument=None,
                                      parameters=parameters))

    def _parse_recursive(self, open_token: Token) -> Head:
        self.cursor.advance()                          # *
        self.cursor.advance()                          # recursive
        children = self.cursor.consume(TokenType.IDENTIFIER, "Expected 'children' after '*recursive'")
        if children.value != "children":
            raise MalformedExpressionError("Expected 'children' after '*recursive'", children)

        binding = None
        if self._bound_name(children) is not None:
            self.cursor.advance()
            binding = self.expressions.parse_variable()
        self.cursor.consume_op("*")
        span = self._close(open_token)
        return SingleHead(RecursiveNode(span=span, binding=binding))

    # ---- close / branch ----

    def _parse_close(self, open_token: Token) -> Head:
        self.cursor.advance()                          # /
        name = self.expressions.parse_variable()
        span = self._close(open_token)

        binding = None
        if len(name.segments) > 1:
            offset = len(name.name) + 1
            binding = Variable(
                span=Span(name.span.start + offset, name.span.end),
                segments=name.segments[1:],
                text=name.text[offset:],
            )
        return CloseHead(keyword=name.name, binding=binding, name=name, span=span)

    def _parse_branch(self, open_token: Token) -> Head:
        keyword = self.cursor.advance()
        condition = None
        if keyword.value == "elseif":
            condition = self.expressions.parse_expression()
        span = self._close(open_token)
        return BranchHead(keyword=keyword.value, condition=condition, span=span)

    # ---- generic statements ----

    def _parse_generic(self, open_token: Token) -> Head:
        if resolve_generic_reading(self.cursor) is TagReading.MULTI_STATEMENT:
            statements = [self._parse_statement()]
            while self.cursor.match(TokenType.SEMICOLON):
                self.cursor.advance()
                statements.append(self._parse_statement())
            span = self._close(open_token)
            return SingleHead(MultiStatementTag(span=span, statements=tuple(statements)))

        statement = self._parse_statement()
        span = self._close(open_token)
        if isinstance(statement, DirectiveTag):
            return SingleHead(replace(statement, span=span))
        return SingleHead(ExpressionTag(span=span, expression=statement))

    def _parse_statement(self) -> Statement:
        token = self.cursor.current()

        if token.type == TokenType.IDENTIFIER and token.value not in BOOLEANS:
            self.cursor.mark()
            try:
                path: Optional[Variable] = self.expressions.parse_variable()
            except MalformedExpressionError:
                path = None

            if path is not None:
                after = self.cursor.current()
                reading = resolve_statement_reading(True, after, starts_parameter(self.cursor))
                if reading is TagReading.DIRECTIVE:
                    self.cursor.release()
                    parameters = self.parse_parameters()
                    span = path.span.cover(parameters[-1].span) if parameters else path.span
                    return DirectiveTag(span=span, name=path, parameters=parameters)
            self.cursor.reset()

        return self.expressions.parse_with_modifiers()

    # ---- parameters ----

    def parse_parameters(self) -> Tuple[Parameter, ...]:
        """Zero or more ``name=value`` / ``:name=value`` parameters."""
        parameters: List[Parameter] = []
        while starts_parameter(self.cursor):
            parameters.append(self._parse_parameter())
        return tuple(parameters)

    def _parse_parameter(self) -> Parameter:
        start = self.cursor.current()
        is_variable = False
        if start.type == TokenType.COLON:
            self.cursor.advance()
            is_variable = True

        name = self.cursor.consume(TokenType.IDENTIFIER, "Expected parameter name")
        self.cursor.consume_op("=")
        value = self._parse_parameter_value()
        return Parameter(name=name.value, value=value, is_variable=is_variable,
                         span=start.span.cover(value.span))

    def _parse_parameter_value(self) -> ParameterValue:
        token = self.cursor.current()

        if token.type in (TokenType.STRING, TokenType.NUMBER) or token.is_op("-"):
            return self.expressions.parse_literal()

        if token.type == TokenType.IDENTIFIER:
            if token.value == "void":
                self.cursor.advance()
                return VoidValue(span=token.span)
            return self.expressions.parse_scalar()

        if token.type == TokenType.LBRACE:
            self.cursor.advance()
            expression = self.expressions.parse_with_modifiers()
            close = self.cursor.consume(TokenType.RBRACE, "Expected '}' after interpolated value")
            return InterpolatedValue(expression=expression, span=token.span.cover(close.span))

        raise MalformedExpressionError(f"Expected parameter value, got {token.value!r}", token)

    # ---- helpers ----

    def _bound_name(self, keyword: Token) -> Optional[Token]:
        """
        The identifier of an adjacent ``:name`` right after ``keyword``.

        Expects the cursor on the token following ``keyword``.
        """
        colon = self.cursor.raw_current()
        if colon.type != TokenType.COLON or colon.position != keyword.end:
            return None
        name = self._raw_at(self.cursor.position + 1)
        if name.type != TokenType.IDENTIFIER or name.position != colon.end:
            return None
        return name

    def _raw_at(self, index: int) -> Token:
        tokens = self.cursor.tokens
        return tokens[index] if index < len(tokens) else tokens[-1]

    def _close(self, open_token: Token) -> Span:
        """Consumes ``}}`` and returns the span of the whole tag."""
        token = self.cursor.current()
        if token.type != TokenType.TAG_CLOSE:
            if token.type in TAG_BOUNDARY:
                raise MalformedExpressionError("Tag is not closed with '}}'", token)
            raise MalformedExpressionError(f"Unexpected {token.value!r} in tag", token)
        self.cursor.advance()
        return Span(open_token.position, token.end)

    def _recover(self, open_token: Token, error: MalformedExpressionError) -> SingleHead:
        boundary = self.cursor.skip_to(TAG_BOUNDARY)

        if boundary.type == TokenType.TAG_CLOSE:
            self.cursor.advance_raw()
            kind = ErrorKind.MALFORMED_EXPRESSION
            message = error.message
            span = Span(open_token.position, boundary.end)
        else:
            kind = ErrorKind.UNTERMINATED_TAG
            message = "Tag is never closed with '}}'"
            span = Span(open_token.position, boundary.position)

        logger.debug("Recovered from %s at %d: %s", kind.value, open_token.position, message)
        self.report(kind, message, span)
        return SingleHead(ErrorNode(span=span, kind=kind, message=message))


__all__ = [
    "Params",
    "TagShape",
    "CLASSIFIED_SHAPES",
    "LITERAL_SHAPES",
    "PAIRED_KEYWORDS",
    "USER_ABILITIES",
    "SingleHead",
    "OpenHead",
    "CloseHead",
    "BranchHead",
    "Head",
    "TagParser",
]

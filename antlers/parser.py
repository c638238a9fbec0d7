"""
Tree builder for Antlers documents.

Drives the lexer and the tag parser over the whole document and assembles
the concrete syntax tree: node sequences, paired-tag bodies, ``if``
branches and error nodes for everything that does not pair up.

Pairing follows stack discipline. A close tag matches the innermost open
of the same keyword; a close naming an outer open leaves the inner ones
unterminated; a close of a paired keyword that no enclosing open names is
a mismatch for the innermost open.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from .config import ParserConfig
from .cursor import DepthGuard, TokenCursor
from .errors import Diagnostic, ErrorKind, RecursionLimitError, line_column
from .expressions import ExpressionParser
from .keywords import KeywordClassifier
from .lexer import AntlersLexer
from .nodes import (
    CloseMarker, CommentNode, ConditionalBranch, DirectiveTag, Document,
    EchoCodeNode, ElseBranch, ErrorNode, IfNode, Node, RawCodeNode, TagNode,
    TextNode, UnlessNode, Variable,
)
from .tags import PAIRED_KEYWORDS, BranchHead, CloseHead, Head, OpenHead, SingleHead, TagParser
from .tokens import Span, TokenType

logger = logging.getLogger(__name__)


class AntlersParser:
    """
    Parser of one Antlers document.

    Malformed input never raises: it is reported through
    ``Document.diagnostics`` and ErrorNode regions. Only nesting deeper
    than ``config.max_depth`` or the interpreter stack aborts, with
    RecursionLimitError.
    """

    def __init__(self, source: str, *, classifier: Optional[KeywordClassifier] = None,
                 config: Optional[ParserConfig] = None):
        self.source = source
        self.config = config or ParserConfig()
        self.classifier = classifier or self.config.build_classifier()
        self.diagnostics: List[Diagnostic] = []

    def parse(self) -> Document:
        """
        Parses the whole source.

        Returns:
            Document with top-level nodes and collected diagnostics

        Raises:
            RecursionLimitError: If nesting exceeds the configured depth or
                the interpreter stack
        """
        self.diagnostics = []

        lexer = AntlersLexer(self.source)
        tokens = lexer.tokenize()
        for message, span in lexer.errors:
            self._report(ErrorKind.LEX_ERROR, message, span)

        self.cursor = TokenCursor(tokens)
        self.guard = DepthGuard(self.config.max_depth)
        self.expressions = ExpressionParser(self.cursor, self.guard, self.config.method_allowlist)
        self.tags = TagParser(self.cursor, self.expressions, self.classifier, self.source, self._report)

        try:
            children, pending = self._parse_sequence([])
        except RecursionError:
            # The interpreter stack ran out before the configured depth did
            position = self.cursor.raw_current().position
            raise RecursionLimitError(
                self.config.max_depth, position,
                f"Nesting at offset {position} is too deep for the interpreter stack "
                f"(max_depth={self.config.max_depth})",
            ) from None
        # Closes and branches only propagate while an open is on the stack
        assert pending is None

        diagnostics = sorted(self.diagnostics, key=lambda d: (d.span.start, d.span.end))
        logger.debug("Parsed %d top-level nodes, %d diagnostics", len(children), len(diagnostics))
        return Document(span=Span(0, len(self.source)), children=tuple(children),
                        diagnostics=tuple(diagnostics))

    # ---- sequences ----

    def _parse_sequence(self, stack: List[OpenHead]) -> Tuple[List[Node], Optional[Head]]:
        """
        Parses nodes until the end of input or a close/branch that belongs
        to an enclosing open.

        Returns:
            Tuple (nodes, pending head); the pending head is None at EOF
        """
        nodes: List[Node] = []

        while True:
            token = self.cursor.raw_current()
            if token.type == TokenType.EOF:
                return nodes, None
            if token.type != TokenType.TAG_OPEN:
                nodes.append(self._parse_content())
                continue

            head: Optional[Head] = self.tags.parse()
            while head is not None:
                if isinstance(head, SingleHead):
                    nodes.append(head.node)
                    head = None
                elif isinstance(head, OpenHead):
                    node, head = self._build_paired(head, stack)
                    nodes.append(node)
                elif self._belongs_to_enclosing(head, stack):
                    return nodes, head
                else:
                    nodes.append(self._stray(head))
                    head = None

    def _parse_content(self) -> Node:
        token = self.cursor.advance_raw()
        value = token.value

        if token.type == TokenType.TEXT:
            return TextNode(span=token.span, text=value)
        if token.type == TokenType.IGNORE:
            return TextNode(span=token.span, text=value, ignored=True)
        if token.type == TokenType.COMMENT:
            if value.startswith("{{!--"):
                return CommentNode(span=token.span, content=value[5:-4], style="!--")
            return CommentNode(span=token.span, content=value[3:-3], style="#")
        if token.type == TokenType.RAW_CODE:
            return RawCodeNode(span=token.span, code=value[3:-3])
        if token.type == TokenType.ECHO_CODE:
            return EchoCodeNode(span=token.span, code=value[3:-3])

        # Tag-interior tokens are always consumed by the tag parser
        raise AssertionError(f"Unexpected {token!r} at document level")

    def _belongs_to_enclosing(self, head: Head, stack: Sequence[OpenHead]) -> bool:
        if not stack:
            return False
        if isinstance(head, BranchHead):
            return stack[-1].construct == "if"
        assert isinstance(head, CloseHead)
        return head.keyword in PAIRED_KEYWORDS or any(o.keyword == head.keyword for o in stack)

    def _stray(self, head: Head) -> Node:
        if isinstance(head, BranchHead):
            return self._error(ErrorKind.UNMATCHED_CLOSE,
                               f"'{head.keyword}' outside of an 'if' block", head.span)
        assert isinstance(head, CloseHead)
        if head.keyword in PAIRED_KEYWORDS:
            return self._error(ErrorKind.UNMATCHED_CLOSE,
                               f"'/{head.name.text}' has no matching opening tag", head.span)
        return DirectiveTag(span=head.span, name=head.name, closing=True)

    # ---- paired tags ----

    def _build_paired(self, head: OpenHead, stack: List[OpenHead]) -> Tuple[Node, Optional[Head]]:
        """
        Parses the body of ``head`` up to its close.

        Returns:
            Tuple (node, pending head that belongs to an outer open)
        """
        with self.guard.nested(head.span.start):
            frames = stack + [head]
            if head.construct == "if":
                return self._build_if(head, frames)

            body, pending = self._parse_sequence(frames)
            close = self._take_close(head, stack, body, pending)
            if not isinstance(close, CloseMarker):
                return close

            span = head.span.cover(close.span)
            if head.construct == "unless":
                assert head.condition is not None
                return UnlessNode(span=span, condition=head.condition, body=tuple(body), close=close), None
            assert head.kind is not None
            return TagNode(span=span, kind=head.kind, keyword=head.keyword, binding=head.binding,
                           parameters=head.parameters, body=tuple(body), close=close), None

    def _build_if(self, head: OpenHead, frames: List[OpenHead]) -> Tuple[Node, Optional[Head]]:
        # (keyword, condition, head span, body) per branch
        segments = []
        keyword, condition, segment_span = head.keyword, head.condition, head.span
        body: List[Node] = []

        while True:
            nodes, pending = self._parse_sequence(frames)
            body.extend(nodes)
            if not isinstance(pending, BranchHead):
                break
            if keyword == "else":
                body.append(self._error(ErrorKind.UNMATCHED_CLOSE,
                                        f"'{pending.keyword}' after 'else'", pending.span))
                continue
            segments.append((keyword, condition, segment_span, body))
            keyword, condition, segment_span = pending.keyword, pending.condition, pending.span
            body = []
        segments.append((keyword, condition, segment_span, body))

        children = [node for segment in segments for node in segment[3]]
        close = self._take_close(head, frames[:-1], children, pending)
        if not isinstance(close, CloseMarker):
            return close

        branches: List[ConditionalBranch] = []
        else_branch: Optional[ElseBranch] = None
        for index, (word, cond, start, nodes) in enumerate(segments):
            end = segments[index + 1][2].start if index + 1 < len(segments) else close.span.start
            span = Span(start.start, end)
            if word == "else":
                else_branch = ElseBranch(span=span, body=tuple(nodes))
            else:
                branches.append(ConditionalBranch(span=span, keyword=word, condition=cond, body=tuple(nodes)))

        node = IfNode(span=head.span.cover(close.span), branches=tuple(branches),
                      else_branch=else_branch, close=close)
        return node, None

    def _take_close(self, head: OpenHead, outer: Sequence[OpenHead], children: Sequence[Node],
                    pending: Optional[Head]):
        """
        Checks the head that ended a body against its open.

        Returns:
            CloseMarker when the pair matches; otherwise the tuple
            (ErrorNode, pending head left for an outer open)
        """
        opening = _spelling(head.keyword, head.binding)

        if isinstance(pending, CloseHead):
            named_outside = pending.keyword != head.keyword and any(o.keyword == pending.keyword for o in outer)
            if not named_outside:
                if pending.keyword == head.keyword and _text(pending.binding) == _text(head.binding):
                    return CloseMarker(keyword=pending.keyword, binding=pending.binding, span=pending.span)
                error = self._error(
                    ErrorKind.MISMATCHED_CLOSE,
                    f"'/{pending.name.text}' does not close '{opening}'",
                    head.span.cover(pending.span), children,
                )
                return error, None

        end = len(self.source) if pending is None else pending.span.start
        line, column = line_column(self.source, head.span.start)
        error = self._error(
            ErrorKind.UNTERMINATED_TAG,
            f"'{opening}' opened at {line}:{column} is never closed",
            Span(head.span.start, end), children,
        )
        return error, pending

    # ---- diagnostics ----

    def _error(self, kind: ErrorKind, message: str, span: Span, children: Sequence[Node] = ()) -> ErrorNode:
        self._report(kind, message, span)
        return ErrorNode(span=span, kind=kind, message=message, children=tuple(children))

    def _report(self, kind: ErrorKind, message: str, span: Span) -> None:
        line, column = line_column(self.source, span.start)
        self.diagnostics.append(Diagnostic(kind=kind, message=message, span=span, line=line, column=column))
        logger.debug("%s at %d:%d: %s", kind.value, line, column, message)


def _text(variable: Optional[Variable]) -> Optional[str]:
    return variable.text if variable is not None else None


def _spelling(keyword: str, binding: Optional[Variable]) -> str:
    return f"{keyword}:{binding.text}" if binding is not None else keyword


def parse_antlers(source: str, *, classifier: Optional[KeywordClassifier] = None,
                  config: Optional[ParserConfig] = None) -> Document:
    """
    Convenience function for parsing a document.

    Args:
        source: Template text
        classifier: Keyword classifier; built from ``config`` when omitted
        config: Parser configuration; defaults apply when omitted

    Returns:
        Immutable CST root
    """
    return AntlersParser(source, classifier=classifier, config=config).parse()


__all__ = ["AntlersParser", "parse_antlers"]

"""
Concrete syntax tree nodes.

Defines the immutable node hierarchy produced by the parser. Every node
keeps the source span it was built from; child sequences are tuples so a
finished tree cannot be mutated.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from .errors import Diagnostic, ErrorKind
from .tokens import Span


# ---- Expressions ----

@dataclass(frozen=True)
class Expression:
    """Base class for expression nodes."""
    span: Span


@dataclass(frozen=True)
class Literal(Expression):
    """
    String, number or boolean literal.

    ``raw`` is the source spelling (quotes included for strings),
    ``value`` the decoded Python value.
    """
    kind: str  # 'string' | 'number' | 'boolean'
    raw: str
    value: Union[str, int, float, bool]


@dataclass(frozen=True)
class PathSegment:
    """
    One step of a variable path.

    ``separator`` is the surface syntax that introduced the step: None for
    the head, ':' or '.' for nested lookups (equivalent), '[' for an index.
    """
    value: Union[str, int, float]
    separator: Optional[str] = None
    quoted: bool = False

    @property
    def is_index(self) -> bool:
        return self.separator == "["


@dataclass(frozen=True)
class Variable(Expression):
    """Simple, nested (``a:b``, ``a.b``) or indexed (``a[0]``) variable."""
    segments: Tuple[PathSegment, ...]
    text: str  # surface spelling without trivia, used for close-tag parity

    @property
    def name(self) -> str:
        return str(self.segments[0].value)

    @property
    def is_simple(self) -> bool:
        return len(self.segments) == 1

    @property
    def is_nested(self) -> bool:
        return any(s.separator in (":", ".") for s in self.segments[1:])

    @property
    def is_indexed(self) -> bool:
        return any(s.is_index for s in self.segments)

    def lookup_path(self) -> Tuple[Union[str, int, float], ...]:
        """Path as plain lookup keys (``:`` and ``.`` are the same step)."""
        return tuple(s.value for s in self.segments)


@dataclass(frozen=True)
class MethodCall(Expression):
    """Allow-listed no-argument collection call: ``items.orderby()``."""
    target: Variable
    method: str


@dataclass(frozen=True)
class UnaryExpression(Expression):
    operator: str
    operand: Expression


@dataclass(frozen=True)
class BinaryExpression(Expression):
    operator: str
    left: Expression
    right: Expression


@dataclass(frozen=True)
class TernaryExpression(Expression):
    condition: Expression
    then: Expression
    otherwise: Expression


@dataclass(frozen=True)
class ParenthesizedExpression(Expression):
    inner: Expression


@dataclass(frozen=True)
class Modifier:
    """
    A ``| name`` filter.

    ``style`` records the argument syntax: 'none', 'colon' (``name:arg``)
    or 'call' (``name(a, b)``).
    """
    name: str
    arguments: Tuple[Expression, ...]
    style: str
    span: Span


@dataclass(frozen=True)
class ModifiedExpression(Expression):
    """Expression followed by modifiers, applied left to right."""
    base: Expression
    modifiers: Tuple[Modifier, ...]


# ---- Parameters ----

@dataclass(frozen=True)
class InterpolatedValue:
    """``{expr}`` used as a parameter value."""
    expression: Expression
    span: Span


@dataclass(frozen=True)
class VoidValue:
    """The literal ``void`` parameter value."""
    span: Span


ParameterValue = Union[Literal, Variable, InterpolatedValue, VoidValue]


@dataclass(frozen=True)
class Parameter:
    """
    ``name=value`` or ``:name=value``.

    With the colon prefix (``is_variable``) the value names a variable
    rather than being taken literally.
    """
    name: str
    value: ParameterValue
    is_variable: bool
    span: Span


# ---- Document nodes ----

@dataclass(frozen=True)
class Node:
    """Base class for document-level nodes."""
    span: Span


@dataclass(frozen=True)
class TextNode(Node):
    """
    Literal text.

    ``ignored`` marks the ``@...`` escape form, whose content is never
    parsed up to the next ``{``.
    """
    text: str
    ignored: bool = False


@dataclass(frozen=True)
class CommentNode(Node):
    """``{{# ... #}}`` or ``{{!-- ... --}}``; content is opaque."""
    content: str
    style: str  # '#' | '!--'


@dataclass(frozen=True)
class RawCodeNode(Node):
    """``{{? ... ?}}`` captured verbatim."""
    code: str


@dataclass(frozen=True)
class EchoCodeNode(Node):
    """``{{$ ... $}}`` captured verbatim."""
    code: str


class TagKind(enum.Enum):
    """Specialized tag forms represented by TagNode."""
    COLLECTION = "collection"
    NAV = "nav"
    NAV_BREADCRUMBS = "nav:breadcrumbs"
    TAXONOMY = "taxonomy"
    FORM = "form"
    FORM_ERRORS = "form:errors"
    ENTRIES = "entries"
    PARTIAL = "partial"
    YIELD = "yield"
    SECTION = "section"
    SCOPE = "scope"
    ASSET = "asset"
    GLIDE = "glide"
    DUMP = "dump"
    CACHE = "cache"
    NO_CACHE = "no_cache"
    REDIRECT = "redirect"
    SESSION = "session"
    MARKDOWN = "markdown"
    OAUTH = "oauth"
    LOCALES = "locales"
    SVG = "svg"
    TEMPLATE_CONTENT = "template_content"
    SLOT = "slot"
    PUSH = "push"
    PREPEND = "prepend"
    ONCE = "once"


@dataclass(frozen=True)
class CloseMarker:
    """``{{ /keyword[:binding] }}`` closing a paired tag."""
    keyword: str
    binding: Optional[Variable]
    span: Span


@dataclass(frozen=True)
class TagNode(Node):
    """
    Structural or lifecycle tag.

    ``body`` is None for self-closing shapes; paired shapes carry the body
    and the close marker that ended it.
    """
    kind: TagKind
    keyword: str
    binding: Optional[Variable]
    parameters: Tuple[Parameter, ...]
    body: Optional[Tuple[Node, ...]] = None
    close: Optional[CloseMarker] = None

    @property
    def is_paired(self) -> bool:
        return self.body is not None


@dataclass(frozen=True)
class ConditionalBranch(Node):
    """``if`` or ``elseif`` branch: condition and body."""
    keyword: str
    condition: Expression
    body: Tuple[Node, ...]


@dataclass(frozen=True)
class ElseBranch(Node):
    body: Tuple[Node, ...]


@dataclass(frozen=True)
class IfNode(Node):
    """
    ``{{ if }} ... {{ elseif }} ... {{ else }} ... {{ /if }}``.

    ``branches[0]`` is the ``if`` branch, the rest are ``elseif`` branches
    in source order. Branch selection is left to the evaluator.
    """
    branches: Tuple[ConditionalBranch, ...]
    else_branch: Optional[ElseBranch]
    close: CloseMarker


@dataclass(frozen=True)
class UnlessNode(Node):
    condition: Expression
    body: Tuple[Node, ...]
    close: CloseMarker


@dataclass(frozen=True)
class SwitchCase:
    """``(condition) => value``"""
    condition: Expression
    value: Expression
    span: Span


@dataclass(frozen=True)
class SwitchNode(Node):
    cases: Tuple[SwitchCase, ...]


@dataclass(frozen=True)
class RecursiveNode(Node):
    """``{{ *recursive children* }}`` or ``{{ *recursive children:var* }}``."""
    binding: Optional[Variable]


@dataclass(frozen=True)
class UserTagNode(Node):
    """
    ``{{ user:can "..." }}`` style tag.

    Exactly one of ``argument`` (direct string form) and a non-empty
    ``parameters`` tuple is used.
    """
    ability: str  # 'can' | 'is' | 'in'
    argument: Optional[Literal]
    parameters: Tuple[Parameter, ...] = ()


@dataclass(frozen=True)
class DirectiveTag(Node):
    """
    Generic tag: ``name [params]`` or ``/name``.

    Fallback for every tag without a specialized grammar, including
    CMS-defined tags. Directive tags are leaves; opening and closing
    directives are not paired by the parser.
    """
    name: Variable
    parameters: Tuple[Parameter, ...] = ()
    closing: bool = False


@dataclass(frozen=True)
class ExpressionTag(Node):
    """``{{ expression | modifier ... }}``"""
    expression: Expression


Statement = Union[DirectiveTag, Expression]


@dataclass(frozen=True)
class MultiStatementTag(Node):
    """``{{ a = 1; b = 2 }}``: statements separated by top-level ``;``."""
    statements: Tuple[Statement, ...]


@dataclass(frozen=True)
class ErrorNode(Node):
    """
    Region that could not be parsed.

    ``children`` keeps whatever was recovered inside the region (e.g. the
    body of an unterminated paired tag).
    """
    kind: ErrorKind
    message: str
    children: Tuple[Node, ...] = ()


@dataclass(frozen=True)
class Document(Node):
    """Root of the tree."""
    children: Tuple[Node, ...]
    diagnostics: Tuple[Diagnostic, ...] = field(default=())

    @property
    def has_errors(self) -> bool:
        return bool(self.diagnostics)


__all__ = [
    "Expression", "Literal", "PathSegment", "Variable", "MethodCall",
    "UnaryExpression", "BinaryExpression", "TernaryExpression",
    "ParenthesizedExpression", "Modifier", "ModifiedExpression",
    "InterpolatedValue", "VoidValue", "ParameterValue", "Parameter",
    "Node", "TextNode", "CommentNode", "RawCodeNode", "EchoCodeNode",
    "TagKind", "CloseMarker", "TagNode", "ConditionalBranch", "ElseBranch",
    "IfNode", "UnlessNode", "SwitchCase", "SwitchNode", "RecursiveNode",
    "UserTagNode", "DirectiveTag", "ExpressionTag", "Statement",
    "MultiStatementTag", "ErrorNode", "Document",
]

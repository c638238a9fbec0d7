"""
Debug rendering and serialization of the syntax tree.
"""

from __future__ import annotations

import enum
from dataclasses import fields, is_dataclass
from typing import Any, List, Sequence

from .nodes import (
    BinaryExpression, CommentNode, DirectiveTag, Document, EchoCodeNode,
    ErrorNode, ExpressionTag, IfNode, InterpolatedValue, Literal, MethodCall,
    ModifiedExpression, Modifier, MultiStatementTag, Node, Parameter,
    ParenthesizedExpression, RawCodeNode, RecursiveNode, SwitchNode, TagNode,
    TernaryExpression, TextNode, UnaryExpression, UnlessNode, UserTagNode,
    Variable, VoidValue,
)
from .tokens import Span


def expression_text(expr: Any) -> str:
    """
    Renders an expression with every operation parenthesized.

    ``1 + 2 * 3`` renders as ``(1 + (2 * 3))``, which makes grouping
    visible in debug output and tests.
    """
    if isinstance(expr, Literal):
        return expr.raw
    if isinstance(expr, Variable):
        return expr.text
    if isinstance(expr, MethodCall):
        return f"{expr.target.text}.{expr.method}()"
    if isinstance(expr, UnaryExpression):
        return f"({expr.operator}{expression_text(expr.operand)})"
    if isinstance(expr, BinaryExpression):
        return f"({expression_text(expr.left)} {expr.operator} {expression_text(expr.right)})"
    if isinstance(expr, TernaryExpression):
        return (f"({expression_text(expr.condition)} ? {expression_text(expr.then)}"
                f" : {expression_text(expr.otherwise)})")
    if isinstance(expr, ParenthesizedExpression):
        return f"({expression_text(expr.inner)})"
    if isinstance(expr, ModifiedExpression):
        stages = [expression_text(expr.base)] + [_modifier_text(m) for m in expr.modifiers]
        return " | ".join(stages)
    if isinstance(expr, InterpolatedValue):
        return "{" + expression_text(expr.expression) + "}"
    if isinstance(expr, VoidValue):
        return "void"
    return type(expr).__name__


def _modifier_text(modifier: Modifier) -> str:
    if modifier.style == "colon":
        return f"{modifier.name}:{expression_text(modifier.arguments[0])}"
    if modifier.style == "call":
        return f"{modifier.name}({', '.join(expression_text(a) for a in modifier.arguments)})"
    return modifier.name


def _parameters_text(parameters: Sequence[Parameter]) -> str:
    return " ".join(
        f"{':' if p.is_variable else ''}{p.name}={expression_text(p.value)}" for p in parameters
    )


def _preview(text: str, limit: int = 40) -> str:
    return repr(text[:limit] + "..." if len(text) > limit else text)


def format_tree(nodes: Sequence[Node], indent: int = 0) -> str:
    """Formats a node sequence as an indented tree for debugging."""
    lines: List[str] = []
    prefix = "  " * indent

    for node in nodes:
        where = f"@{node.span.start}..{node.span.end}"

        if isinstance(node, Document):
            lines.append(f"{prefix}Document {where}")
            lines.append(format_tree(node.children, indent + 1))
        elif isinstance(node, TextNode):
            label = "Ignored" if node.ignored else "Text"
            lines.append(f"{prefix}{label}({_preview(node.text)}) {where}")
        elif isinstance(node, CommentNode):
            lines.append(f"{prefix}Comment[{node.style}]({_preview(node.content)}) {where}")
        elif isinstance(node, (RawCodeNode, EchoCodeNode)):
            lines.append(f"{prefix}{type(node).__name__}({_preview(node.code)}) {where}")
        elif isinstance(node, TagNode):
            binding = f":{node.binding.text}" if node.binding is not None else ""
            params = f" {_parameters_text(node.parameters)}" if node.parameters else ""
            lines.append(f"{prefix}Tag[{node.kind.value}] {node.keyword}{binding}{params} {where}")
            if node.body:
                lines.append(format_tree(node.body, indent + 1))
        elif isinstance(node, IfNode):
            lines.append(f"{prefix}If {where}")
            for branch in node.branches:
                lines.append(f"{prefix}  {branch.keyword} {expression_text(branch.condition)}:")
                if branch.body:
                    lines.append(format_tree(branch.body, indent + 2))
            if node.else_branch is not None:
                lines.append(f"{prefix}  else:")
                if node.else_branch.body:
                    lines.append(format_tree(node.else_branch.body, indent + 2))
        elif isinstance(node, UnlessNode):
            lines.append(f"{prefix}Unless {expression_text(node.condition)} {where}")
            if node.body:
                lines.append(format_tree(node.body, indent + 1))
        elif isinstance(node, SwitchNode):
            lines.append(f"{prefix}Switch {where}")
            for case in node.cases:
                lines.append(f"{prefix}  {expression_text(case.condition)} => {expression_text(case.value)}")
        elif isinstance(node, RecursiveNode):
            binding = f":{node.binding.text}" if node.binding is not None else ""
            lines.append(f"{prefix}Recursive children{binding} {where}")
        elif isinstance(node, UserTagNode):
            argument = expression_text(node.argument) if node.argument is not None else _parameters_text(node.parameters)
            lines.append(f"{prefix}User[{node.ability}] {argument} {where}")
        elif isinstance(node, DirectiveTag):
            slash = "/" if node.closing else ""
            params = f" {_parameters_text(node.parameters)}" if node.parameters else ""
            lines.append(f"{prefix}Directive {slash}{node.name.text}{params} {where}")
        elif isinstance(node, ExpressionTag):
            lines.append(f"{prefix}Expression {expression_text(node.expression)} {where}")
        elif isinstance(node, MultiStatementTag):
            lines.append(f"{prefix}Statements {where}")
            for statement in node.statements:
                if isinstance(statement, DirectiveTag):
                    lines.append(format_tree([statement], indent + 1))
                else:
                    lines.append(f"{prefix}  {expression_text(statement)}")
        elif isinstance(node, ErrorNode):
            lines.append(f"{prefix}Error[{node.kind.value}] {node.message} {where}")
            if node.children:
                lines.append(format_tree(node.children, indent + 1))
        else:
            lines.append(f"{prefix}{type(node).__name__} {where}")

    return "\n".join(lines)


def to_dict(value: Any, *, spans: bool = True) -> Any:
    """
    Converts a tree (or any part of it) to JSON-ready data.

    Dataclass nodes become dicts tagged with ``"type"``; with
    ``spans=False`` source positions are left out, so structurally equal
    trees parsed from different offsets compare equal.
    """
    if isinstance(value, Span):
        return [value.start, value.end]
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [to_dict(item, spans=spans) for item in value]
    if is_dataclass(value) and not isinstance(value, type):
        result = {"type": type(value).__name__}
        for f in fields(value):
            if not spans and f.name in ("span", "line", "column"):
                continue
            result[f.name] = to_dict(getattr(value, f.name), spans=spans)
        return result
    return value


__all__ = ["expression_text", "format_tree", "to_dict"]

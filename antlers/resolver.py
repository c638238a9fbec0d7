"""
Conflict resolution for structurally ambiguous tag heads.

The Antlers grammar is ambiguous at the token level: ``collection`` may be
a reserved loop keyword or a user variable, ``title limit="3"`` shares a
prefix with an assignment expression, and a tag may hold one statement or
several. The parsers consult this module at every such decision point and
follow its fixed, total order:

1. A confirmed reserved-keyword classification wins over the generic
   directive reading.
2. Inside a parameter region, ``name =`` (or ``:name =``) continues the
   parameter list and is never the start of an assignment.
3. Splitting on a top-level ``;`` is attempted before reading the tag as a
   single statement.
4. A statement that is a bare variable path, or a path followed by a
   parameter, is a directive tag; anything else is an expression.
5. Variable path separators join only adjacent tokens, so ``a : b`` with
   surrounding whitespace is never a nested path.
"""

from __future__ import annotations

import enum
from typing import AbstractSet

from .cursor import TokenCursor
from .errors import UnresolvedAmbiguityError
from .keywords import KeywordClass
from .tokens import TAG_BOUNDARY, Token, TokenType


class TagReading(enum.Enum):
    """How the interior of one ``{{ ... }}`` is to be parsed."""
    CLOSE = "close"                  # /keyword[:binding]
    BRANCH = "branch"                # elseif / else
    KEYWORD = "keyword"              # classifier-confirmed reserved keyword
    RECURSIVE = "recursive"          # *recursive children*
    SPECIALIZED = "specialized"      # literal-gated specialized shape
    GENERIC = "generic"              # statements: directive or expression
    MULTI_STATEMENT = "multi_statement"
    SINGLE_STATEMENT = "single_statement"
    DIRECTIVE = "directive"
    EXPRESSION = "expression"


BRANCH_WORDS = frozenset({"elseif", "else"})


def resolve_tag_reading(
    head: Token,
    following: Token,
    verdict: KeywordClass,
    *,
    handled: AbstractSet[KeywordClass],
    literal_commit: bool,
) -> TagReading:
    """
    Picks the reading of a tag head.

    Args:
        head: First significant token after ``{{``
        following: Token immediately after ``head`` (trivia not skipped)
        verdict: Keyword classifier result for this tag
        handled: Keyword classes the tag parser has productions for
        literal_commit: Whether a literal-gated specialized shape accepts
            the lookahead after ``head``

    Raises:
        UnresolvedAmbiguityError: If the classifier confirmed a keyword
            that no production handles
    """
    if head.is_op("/"):
        return TagReading.CLOSE

    if head.type == TokenType.IDENTIFIER and head.value in BRANCH_WORDS:
        return TagReading.BRANCH

    if verdict is not KeywordClass.NONE:
        if verdict not in handled:
            raise UnresolvedAmbiguityError(
                f"Keyword class {verdict.value!r} confirmed but no tag production handles it"
            )
        return TagReading.KEYWORD

    if (head.is_op("*") and following.type == TokenType.IDENTIFIER
            and following.value == "recursive" and following.position == head.end):
        return TagReading.RECURSIVE

    if literal_commit:
        return TagReading.SPECIALIZED

    return TagReading.GENERIC


def resolve_generic_reading(cursor: TokenCursor) -> TagReading:
    """Rule 3: several `;`-separated statements, or a single one."""
    if has_top_level_semicolon(cursor):
        return TagReading.MULTI_STATEMENT
    return TagReading.SINGLE_STATEMENT


def resolve_statement_reading(path_parsed: bool, after: Token, parameter_follows: bool) -> TagReading:
    """
    Rule 4: directive tag or expression.

    Args:
        path_parsed: Whether the statement starts with a variable path
        after: First significant token after that path
        parameter_follows: Whether ``after`` starts a parameter (rule 2)
    """
    if not path_parsed:
        return TagReading.EXPRESSION
    if after.type in TAG_BOUNDARY or after.type == TokenType.SEMICOLON:
        return TagReading.DIRECTIVE
    if parameter_follows:
        return TagReading.DIRECTIVE
    return TagReading.EXPRESSION


def starts_parameter(cursor: TokenCursor) -> bool:
    """
    Rule 2: ``name=`` or ``:name=`` at the cursor starts a parameter.

    ``==`` and ``=>`` are separate operator tokens, so only a lone ``=``
    qualifies.
    """
    token = cursor.current()
    if token.type == TokenType.COLON:
        name, equals = cursor.peek(1), cursor.peek(2)
    else:
        name, equals = token, cursor.peek(1)
    return name.type == TokenType.IDENTIFIER and equals.is_op("=")


def has_top_level_semicolon(cursor: TokenCursor) -> bool:
    """
    Rule 3: whether the rest of the tag holds a ``;`` outside any
    parentheses, brackets or braces.
    """
    depth = 0
    pos = cursor.position
    tokens = cursor.tokens
    while pos < len(tokens):
        token = tokens[pos]
        if token.type in TAG_BOUNDARY:
            return False
        if token.type in (TokenType.LPAREN, TokenType.LBRACKET, TokenType.LBRACE):
            depth += 1
        elif token.type in (TokenType.RPAREN, TokenType.RBRACKET, TokenType.RBRACE):
            depth = max(0, depth - 1)
        elif token.type == TokenType.SEMICOLON and depth == 0:
            return True
        pos += 1
    return False


__all__ = [
    "TagReading",
    "BRANCH_WORDS",
    "resolve_tag_reading",
    "resolve_generic_reading",
    "resolve_statement_reading",
    "starts_parameter",
    "has_top_level_semicolon",
]

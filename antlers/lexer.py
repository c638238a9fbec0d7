"""
Lexical analyzer for Antlers documents.

Splits the source into literal text and delimited spans (comments, raw
code, echo code, tags). Inside a tag the interior is tokenized into
identifiers, literals, operators and punctuation, with whitespace and
comments emitted as trivia for the parser's skip step.

The lexer never fails: an unterminated delimiter degrades to plain text,
an unknown character inside a tag becomes an ERROR token, and every step
consumes at least one character.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Tuple

from .literals import match_number, scan_string
from .tokens import Span, Token, TokenType

logger = logging.getLogger(__name__)


class AntlersLexer:
    """
    Two-mode lexer.

    Document mode produces TEXT, IGNORE, COMMENT, RAW_CODE, ECHO_CODE and
    TAG_OPEN tokens. After TAG_OPEN the lexer switches to tag mode until the
    matching ``}}`` (at brace depth zero), the start of another tag, or the
    end of input.
    """

    _COMMENT_FORMS = (("{{!--", "--}}"), ("{{#", "#}}"))
    _CODE_FORMS = (
        ("{{?", "?}}", TokenType.RAW_CODE),
        ("{{$", "$}}", TokenType.ECHO_CODE),
    )

    _TEXT = re.compile(r"(?:[^{@]|\{(?!\{))+")
    _IGNORE = re.compile(r"@[^{]*")
    _WHITESPACE = re.compile(r"\s+")
    _IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

    # Symbols of the tag interior; matched longest first
    _SYMBOLS: Dict[str, TokenType] = {
        "===": TokenType.OPERATOR, "!==": TokenType.OPERATOR,
        "**": TokenType.OPERATOR, "==": TokenType.OPERATOR, "!=": TokenType.OPERATOR,
        "<>": TokenType.OPERATOR, "<=": TokenType.OPERATOR, ">=": TokenType.OPERATOR,
        "&&": TokenType.OPERATOR, "||": TokenType.OPERATOR, "??": TokenType.OPERATOR,
        "+=": TokenType.OPERATOR, "-=": TokenType.OPERATOR, "*=": TokenType.OPERATOR,
        "/=": TokenType.OPERATOR, "%=": TokenType.OPERATOR, "?=": TokenType.OPERATOR,
        "=>": TokenType.OPERATOR,
        "<": TokenType.OPERATOR, ">": TokenType.OPERATOR, "+": TokenType.OPERATOR,
        "-": TokenType.OPERATOR, "*": TokenType.OPERATOR, "/": TokenType.OPERATOR,
        "%": TokenType.OPERATOR, "!": TokenType.OPERATOR, "=": TokenType.OPERATOR,
        "?": TokenType.OPERATOR,
        "(": TokenType.LPAREN, ")": TokenType.RPAREN,
        "[": TokenType.LBRACKET, "]": TokenType.RBRACKET,
        ",": TokenType.COMMA, ";": TokenType.SEMICOLON,
        ":": TokenType.COLON, ".": TokenType.DOT, "|": TokenType.PIPE,
    }
    _SYMBOL_LENGTHS = sorted({len(s) for s in _SYMBOLS}, reverse=True)

    def __init__(self, text: str):
        self.text = text
        self.length = len(text)
        self.position = 0
        self.line = 1
        self.column = 1
        # (message, span) pairs for characters the lexer could not classify
        self.errors: List[Tuple[str, Span]] = []

    def tokenize(self) -> List[Token]:
        """
        Tokenizes the whole source and returns the token list, EOF included.
        """
        tokens: List[Token] = []

        while self.position < self.length:
            if self.text.startswith("{{", self.position):
                self._tokenize_delimited(tokens)
            elif self.text[self.position] == "@":
                tokens.append(self._read(self._IGNORE, TokenType.IGNORE))
            else:
                tokens.append(self._read(self._TEXT, TokenType.TEXT))

        tokens.append(Token(TokenType.EOF, "", self.position, self.line, self.column))
        logger.debug("Tokenized %d chars into %d tokens (%d lex errors)",
                     self.length, len(tokens), len(self.errors))
        return tokens

    # ---- document mode ----

    def _tokenize_delimited(self, tokens: List[Token]) -> None:
        """Handles a span starting with ``{{``."""
        for opener, closer in self._COMMENT_FORMS:
            if self.text.startswith(opener, self.position):
                tokens.append(self._read_until(opener, closer, TokenType.COMMENT))
                return

        for opener, closer, token_type in self._CODE_FORMS:
            if self.text.startswith(opener, self.position):
                tokens.append(self._read_until(opener, closer, token_type))
                return

        tokens.append(self._make(TokenType.TAG_OPEN, 2))
        self._tokenize_tag_interior(tokens)

    def _read_until(self, opener: str, closer: str, token_type: TokenType) -> Token:
        """
        Captures a span up to the exact closing delimiter, without nesting.

        An unterminated span degrades to a TEXT token holding the opening
        delimiter only, so the rest of the input is still lexed.
        """
        end = self.text.find(closer, self.position + len(opener))
        if end == -1:
            start = self.position
            self.errors.append((f"Unterminated '{opener}' (missing '{closer}')",
                                Span(start, start + len(opener))))
            logger.debug("Unterminated %r at %d, degrading to text", opener, start)
            return self._make(TokenType.TEXT, len(opener))
        return self._make(token_type, end + len(closer) - self.position)

    def _read(self, pattern: "re.Pattern[str]", token_type: TokenType) -> Token:
        match = pattern.match(self.text, self.position)
        # Both document patterns match at least one character here
        assert match is not None
        return self._make(token_type, len(match.group(0)))

    # ---- tag mode ----

    def _tokenize_tag_interior(self, tokens: List[Token]) -> None:
        brace_depth = 0

        while self.position < self.length:
            text, pos = self.text, self.position
            char = text[pos]

            if text.startswith("{{", pos):
                comment = self._comment_form_at(pos)
                if comment is None:
                    # Another tag starts before this one was closed
                    logger.debug("Tag interrupted by '{{' at %d", pos)
                    return
                tokens.append(self._read_until(comment[0], comment[1], TokenType.COMMENT))
                continue

            ws = self._WHITESPACE.match(text, pos)
            if ws:
                tokens.append(self._make(TokenType.WHITESPACE, len(ws.group(0))))
                continue

            if char == "}":
                if brace_depth == 0 and text.startswith("}}", pos):
                    tokens.append(self._make(TokenType.TAG_CLOSE, 2))
                    return
                if brace_depth > 0:
                    brace_depth -= 1
                tokens.append(self._make(TokenType.RBRACE, 1))
                continue

            if char == "{":
                brace_depth += 1
                tokens.append(self._make(TokenType.LBRACE, 1))
                continue

            if char in "'\"":
                tokens.append(self._read_string())
                continue

            if char.isdigit() or (char == "." and self._starts_fraction(pos)):
                number = match_number(text, pos)
                if number is not None:
                    tokens.append(self._make(TokenType.NUMBER, len(number[1])))
                    continue

            ident = self._IDENTIFIER.match(text, pos)
            if ident:
                tokens.append(self._make(TokenType.IDENTIFIER, len(ident.group(0))))
                continue

            symbol = self._match_symbol(pos)
            if symbol is not None:
                tokens.append(self._make(self._SYMBOLS[symbol], len(symbol)))
                continue

            self.errors.append((f"Unexpected character {char!r}", Span(pos, pos + 1)))
            tokens.append(self._make(TokenType.ERROR, 1))

    def _comment_form_at(self, pos: int):
        for opener, closer in self._COMMENT_FORMS:
            if self.text.startswith(opener, pos) and self.text.find(closer, pos + len(opener)) != -1:
                return opener, closer
        return None

    def _starts_fraction(self, pos: int) -> bool:
        """``.5`` is a number unless the dot continues a path like ``a.5``."""
        if pos + 1 >= self.length or not self.text[pos + 1].isdigit():
            return False
        if pos == 0:
            return True
        previous = self.text[pos - 1]
        return not (previous.isalnum() or previous in "_])")

    def _read_string(self) -> Token:
        end = scan_string(self.text, self.position)
        if end is None:
            start = self.position
            self.errors.append(("Unterminated string literal", Span(start, start + 1)))
            return self._make(TokenType.ERROR, 1)
        return self._make(TokenType.STRING, end - self.position)

    def _match_symbol(self, pos: int):
        for size in self._SYMBOL_LENGTHS:
            candidate = self.text[pos:pos + size]
            if len(candidate) == size and candidate in self._SYMBOLS:
                return candidate
        return None

    # ---- positions ----

    def _make(self, token_type: TokenType, size: int) -> Token:
        token = Token(token_type, self.text[self.position:self.position + size],
                      self.position, self.line, self.column)
        self._advance(size)
        return token

    def _advance(self, count: int) -> None:
        """
        Moves the position forward, keeping line and column numbers current.
        """
        end = min(self.position + count, self.length)
        chunk = self.text[self.position:end]
        newlines = chunk.count("\n")
        if newlines:
            self.line += newlines
            self.column = len(chunk) - chunk.rfind("\n")
        else:
            self.column += len(chunk)
        self.position = end


def tokenize_antlers(text: str) -> List[Token]:
    """
    Convenience function for tokenizing a document.

    Args:
        text: Source text

    Returns:
        List of tokens ending with EOF
    """
    return AntlersLexer(text).tokenize()


__all__ = ["AntlersLexer", "tokenize_antlers"]

"""
Parser for Antlers templates.

Turns ``{{ ... }}`` markup embedded in freeform text into an immutable
concrete syntax tree with source spans, degrading gracefully on malformed
input.
"""

from __future__ import annotations

from .config import ParserConfig, load_config
from .errors import (
    AntlersError, ConfigError, Diagnostic, ErrorKind, RecursionLimitError,
    UnresolvedAmbiguityError,
)
from .keywords import DefaultKeywordClassifier, KeywordClass, KeywordClassifier
from .lexer import AntlersLexer, tokenize_antlers
from .parser import AntlersParser, parse_antlers

__all__ = [
    "AntlersParser",
    "parse_antlers",
    "AntlersLexer",
    "tokenize_antlers",
    "KeywordClass",
    "KeywordClassifier",
    "DefaultKeywordClassifier",
    "ParserConfig",
    "load_config",
    "ErrorKind",
    "Diagnostic",
    "AntlersError",
    "ConfigError",
    "RecursionLimitError",
    "UnresolvedAmbiguityError",
]

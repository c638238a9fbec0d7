"""
Parser configuration.

Settings can be given directly or loaded from a YAML file:

    max_depth: 100
    keywords: [collection, nav, taxonomy, form, entries, if, unless]
    method_allowlist: [orderby, groupby, where, take, skip, merge, pluck]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigError
from .expressions import DEFAULT_METHODS
from .keywords import ALL_KEYWORDS, DefaultKeywordClassifier, KeywordClass, KeywordClassifier

_yaml = YAML(typ="safe")

DEFAULT_MAX_DEPTH = 100

# Each nesting level costs several interpreter frames
MAX_DEPTH_LIMIT = 1000

_KNOWN_KEYS = {"max_depth", "keywords", "method_allowlist"}


@dataclass(frozen=True)
class ParserConfig:
    """Tunable parts of the parser."""
    max_depth: int = DEFAULT_MAX_DEPTH
    keywords: FrozenSet[KeywordClass] = field(default_factory=lambda: ALL_KEYWORDS)
    method_allowlist: FrozenSet[str] = field(default_factory=lambda: DEFAULT_METHODS)

    def __post_init__(self):
        if self.max_depth < 1:
            raise ConfigError(f"max_depth must be a positive integer, got {self.max_depth}")
        if self.max_depth > MAX_DEPTH_LIMIT:
            raise ConfigError(f"max_depth must not exceed {MAX_DEPTH_LIMIT}, got {self.max_depth}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ParserConfig:
        """Creates a configuration from a mapping (from YAML)."""
        unknown = set(data) - _KNOWN_KEYS
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        max_depth = data.get("max_depth", DEFAULT_MAX_DEPTH)
        if isinstance(max_depth, bool) or not isinstance(max_depth, int):
            raise ConfigError(f"max_depth must be an integer, got {max_depth!r}")

        keywords = ALL_KEYWORDS
        if "keywords" in data:
            keywords = frozenset(_keyword_class(name) for name in _string_list(data, "keywords"))

        methods = DEFAULT_METHODS
        if "method_allowlist" in data:
            methods = frozenset(_string_list(data, "method_allowlist"))

        return cls(max_depth=max_depth, keywords=keywords, method_allowlist=methods)

    def to_dict(self) -> Dict[str, Any]:
        """Serialization to a mapping for YAML."""
        return {
            "max_depth": self.max_depth,
            "keywords": sorted(k.value for k in self.keywords),
            "method_allowlist": sorted(self.method_allowlist),
        }

    def build_classifier(self) -> KeywordClassifier:
        return DefaultKeywordClassifier(self.keywords)


def _string_list(data: Dict[str, Any], key: str) -> list:
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return value


def _keyword_class(name: str) -> KeywordClass:
    try:
        keyword = KeywordClass(name)
    except ValueError:
        raise ConfigError(f"Unknown keyword class: {name!r}") from None
    if keyword is KeywordClass.NONE:
        raise ConfigError("'none' is not a keyword class")
    return keyword


def _read_yaml_map(path: Path) -> dict:
    """Reads a YAML file and returns its mapping."""
    try:
        raw = _yaml.load(path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"YAML must be a mapping: {path}")
    return raw


def load_config(path: Path) -> ParserConfig:
    """Loads parser configuration from a YAML file."""
    return ParserConfig.from_dict(_read_yaml_map(path))


__all__ = ["ParserConfig", "DEFAULT_MAX_DEPTH", "MAX_DEPTH_LIMIT", "load_config"]

"""
Reserved structural keyword classification.

The tag parser does not decide on its own whether ``collection`` or ``if``
at the start of a tag is a reserved keyword: the same spelling may name a
user variable elsewhere. It asks a classifier, a pure query over the source
text at the position right after ``{{``.
"""

from __future__ import annotations

import enum
import re
from abc import ABC, abstractmethod
from typing import FrozenSet, Iterable, Optional


class KeywordClass(enum.Enum):
    """Verdicts of a keyword classifier."""
    NONE = "none"
    COLLECTION = "collection"
    NAV = "nav"
    TAXONOMY = "taxonomy"
    FORM = "form"
    ENTRIES = "entries"
    IF = "if"
    UNLESS = "unless"


# Loop keywords that take a ':binding' or a parameter list
LOOP_KEYWORDS = frozenset({
    KeywordClass.COLLECTION,
    KeywordClass.NAV,
    KeywordClass.TAXONOMY,
    KeywordClass.FORM,
})

ALL_KEYWORDS = frozenset(k for k in KeywordClass if k is not KeywordClass.NONE)


class KeywordClassifier(ABC):
    """
    Strategy deciding which reserved keyword, if any, opens a tag.

    Implementations must be free of side effects: the parser may consult
    the classifier any number of times for the same position.
    """

    @abstractmethod
    def classify(self, source: str, offset: int) -> KeywordClass:
        """
        Classifies the tag head starting at ``offset``.

        Args:
            source: Full document text
            offset: Position immediately after ``{{``

        Returns:
            Keyword class, or KeywordClass.NONE
        """
        pass


class DefaultKeywordClassifier(KeywordClassifier):
    """
    Lookahead rules for the standard reserved keywords.

    - ``if`` / ``unless``: followed by whitespace
    - ``collection`` / ``nav`` / ``taxonomy`` / ``form``: followed by ``:``,
      or by whitespace and the start of a parameter (``[:]name=``)
    - ``entries``: followed by a character that cannot continue an identifier
    """

    _HEAD = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_]*)")
    _PARAMETER_START = re.compile(r"\s+:?[A-Za-z_][A-Za-z0-9_]*\s*=(?![=>])")

    def __init__(self, enabled: Optional[Iterable[KeywordClass]] = None):
        self.enabled: FrozenSet[KeywordClass] = (
            ALL_KEYWORDS if enabled is None else frozenset(enabled) - {KeywordClass.NONE}
        )

    def classify(self, source: str, offset: int) -> KeywordClass:
        head = self._HEAD.match(source, offset)
        if not head:
            return KeywordClass.NONE

        try:
            keyword = KeywordClass(head.group(1))
        except ValueError:
            return KeywordClass.NONE
        if keyword is KeywordClass.NONE or keyword not in self.enabled:
            return KeywordClass.NONE

        end = head.end()
        following = source[end:end + 1]

        if keyword in (KeywordClass.IF, KeywordClass.UNLESS):
            return keyword if following.isspace() else KeywordClass.NONE

        if keyword in LOOP_KEYWORDS:
            if following == ":" or self._PARAMETER_START.match(source, end):
                return keyword
            return KeywordClass.NONE

        # entries
        if following and (following.isalnum() or following == "_"):
            return KeywordClass.NONE
        return keyword


__all__ = [
    "KeywordClass",
    "KeywordClassifier",
    "DefaultKeywordClassifier",
    "LOOP_KEYWORDS",
    "ALL_KEYWORDS",
]

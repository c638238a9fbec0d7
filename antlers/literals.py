"""
Literal forms: numeric spellings and string escape sequences.

Every number pattern is tried and the longest spelling wins; the fixed
priority order (scientific, hexadecimal, octal, float, integer) only
breaks ties, so "0755" is octal but "019" and "01.5" are not. Underscore
digit separators are allowed only between digits.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple, Union

_DIGITS = r"[0-9](?:[0-9_]*[0-9])?"

# (kind, pattern) in priority order
NUMBER_PATTERNS: List[Tuple[str, "re.Pattern[str]"]] = [
    ("scientific", re.compile(rf"(?:{_DIGITS}(?:\.{_DIGITS})?|\.{_DIGITS})[eE][+-]?{_DIGITS}")),
    ("hexadecimal", re.compile(r"0[xX][0-9a-fA-F](?:[0-9a-fA-F_]*[0-9a-fA-F])?")),
    ("octal", re.compile(r"0[0-7](?:[0-7_]*[0-7])?")),
    ("float", re.compile(rf"(?:{_DIGITS})?\.{_DIGITS}")),
    ("integer", re.compile(_DIGITS)),
]

_ESCAPE = re.compile(
    r"""\\(?:([\\'"nrtbf])|u([0-9a-fA-F]{4})|x([0-9a-fA-F]{2})|([0-7]{1,3})|(.))""",
    re.DOTALL,
)

_SIMPLE_ESCAPES = {
    "\\": "\\",
    "'": "'",
    '"': '"',
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
}


def match_number(text: str, pos: int) -> Optional[Tuple[str, str]]:
    """
    Matches a numeric literal at ``pos``.

    Returns:
        Tuple (kind, spelling) or None if no numeric form starts here
    """
    best: Optional[Tuple[str, str]] = None
    for kind, pattern in NUMBER_PATTERNS:
        match = pattern.match(text, pos)
        # strictly longer only: equal lengths keep the earlier kind
        if match and (best is None or len(match.group(0)) > len(best[1])):
            best = kind, match.group(0)
    return best


def number_kind(spelling: str) -> Optional[str]:
    """Kind of a complete numeric spelling, ignoring a leading sign."""
    body = spelling[1:] if spelling[:1] in "+-" else spelling
    for kind, pattern in NUMBER_PATTERNS:
        if pattern.fullmatch(body):
            return kind
    return None


def number_value(spelling: str) -> Union[int, float]:
    """
    Converts a numeric spelling (optionally with a leading ``-``) to a value.

    Raises:
        ValueError: If the spelling is not a numeric literal
    """
    negative = spelling.startswith("-")
    body = spelling[1:] if negative else spelling
    kind = number_kind(body)
    if kind is None:
        raise ValueError(f"Not a numeric literal: {spelling!r}")

    digits = body.replace("_", "")
    value: Union[int, float]
    if kind in ("scientific", "float"):
        value = float(digits)
    elif kind == "hexadecimal":
        value = int(digits, 16)
    elif kind == "octal":
        value = int(digits, 8)
    else:
        value = int(digits)
    return -value if negative else value


def scan_string(text: str, pos: int) -> Optional[int]:
    """
    Finds the end of a quoted string starting at ``pos``.

    Returns:
        Offset just past the closing quote, or None if unterminated
    """
    quote = text[pos]
    i = pos + 1
    length = len(text)
    while i < length:
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == quote:
            return i + 1
        i += 1
    return None


def _replace_escape(match: "re.Match[str]") -> str:
    simple, unicode_hex, byte_hex, octal, other = match.groups()
    if simple is not None:
        return _SIMPLE_ESCAPES[simple]
    if unicode_hex is not None:
        return chr(int(unicode_hex, 16))
    if byte_hex is not None:
        return chr(int(byte_hex, 16))
    if octal is not None:
        return chr(int(octal, 8))
    return other


def decode_string(raw: str) -> str:
    """
    Decodes a quoted string literal (quotes included) into its value.

    Supports the common C-style escapes, ``\\uXXXX``, ``\\xXX``, one to three
    octal digits; any other escaped character is taken literally.
    """
    body = raw[1:-1] if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in "'\"" else raw
    return _ESCAPE.sub(_replace_escape, body)


__all__ = [
    "NUMBER_PATTERNS",
    "match_number",
    "number_kind",
    "number_value",
    "scan_string",
    "decode_string",
]

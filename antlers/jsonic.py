from __future__ import annotations

import json
from typing import Any


def dumps(obj: Any, indent: int | None = None) -> str:
    """
    JSON dumper for CLI output.
    ensure_ascii=False; no trailing newline (the CLI adds it).
    """
    return json.dumps(obj, ensure_ascii=False, indent=indent)

from __future__ import annotations

from importlib import metadata


def tool_version() -> str:
    """
    Version of the installed antlers-parser distribution.

    Falls back to 0.0.0 when the package runs from a source checkout
    without being installed.
    """
    try:
        return metadata.version("antlers-parser")
    except metadata.PackageNotFoundError:
        return "0.0.0"


__all__ = ["tool_version"]

"""
Shared test infrastructure for the Antlers parser.

Modules:
- file_utils: Creating template and config files
- parsing_utils: Shortcuts for parsing tags and expressions
- cli_utils: Running the command line front-end
"""

from .file_utils import write
from .parsing_utils import tag_cursor, parse_expr, parse_single, significant
from .cli_utils import run_cli, jload

__all__ = [
    "write",
    "tag_cursor",
    "parse_expr",
    "parse_single",
    "significant",
    "run_cli",
    "jload",
]

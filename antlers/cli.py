from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from .config import ParserConfig, load_config
from .errors import AntlersError
from .formatting import format_tree, to_dict
from .jsonic import dumps as jdumps
from .lexer import tokenize_antlers
from .parser import parse_antlers
from .report import ParseReport
from .version import tool_version

_LOG = logging.getLogger("antlers")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose or os.environ.get("ANTLERS_DEBUG") else logging.WARNING
    _LOG.setLevel(level)
    if not _LOG.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        _LOG.addHandler(h)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="antlers",
        description="Antlers template parser",
        add_help=True,
    )
    p.add_argument("-v", "--version", action="version", version=f"%(prog)s {tool_version()}")
    p.add_argument("--verbose", action="store_true", help="debug logging to stderr (or set ANTLERS_DEBUG=1)")
    p.add_argument("--config", metavar="FILE", help="parser configuration (YAML)")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp_parse = sub.add_parser("parse", help="Print the syntax tree")
    sp_parse.add_argument("file", help="template file, or - for stdin")
    sp_parse.add_argument("--json", action="store_true", help="print the tree as JSON")
    sp_parse.add_argument("--no-spans", action="store_true", help="omit source spans from JSON output")

    sp_check = sub.add_parser("check", help="JSON report of diagnostics; exit code 1 if any")
    sp_check.add_argument("file", help="template file, or - for stdin")

    sp_tokens = sub.add_parser("tokens", help="Print the token stream")
    sp_tokens.add_argument("file", help="template file, or - for stdin")

    return p


def _read_source(file_arg: str) -> str:
    """
    Reads the template text.

    Supports a path or ``-`` for stdin.
    """
    if file_arg == "-":
        return sys.stdin.read()

    path = Path(file_arg)
    if not path.is_file():
        raise ValueError(f"Template file not found: {path}")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ValueError(f"Failed to read template file {path}: {e}")


def _load_config(config_arg: Optional[str]) -> ParserConfig:
    if not config_arg:
        return ParserConfig()
    return load_config(Path(config_arg))


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    _setup_logging(bool(ns.verbose))

    try:
        config = _load_config(ns.config)
        source = _read_source(ns.file)

        if ns.cmd == "tokens":
            for token in tokenize_antlers(source):
                sys.stdout.write(f"{token.line}:{token.column}\t{token.type.name}\t{token.value!r}\n")
            return 0

        document = parse_antlers(source, config=config)

        if ns.cmd == "parse":
            if ns.json:
                sys.stdout.write(jdumps(to_dict(document, spans=not ns.no_spans), indent=2) + "\n")
            else:
                sys.stdout.write(format_tree([document]) + "\n")
            for diagnostic in document.diagnostics:
                sys.stderr.write(f"{ns.file}:{diagnostic}\n")
            return 0

        if ns.cmd == "check":
            report = ParseReport.from_document(ns.file, document)
            sys.stdout.write(jdumps(report.model_dump(mode="json")) + "\n")
            return 0 if report.ok else 1

    except AntlersError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2
    except ValueError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())

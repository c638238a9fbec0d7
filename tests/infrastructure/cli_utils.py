"""
Utilities for working with the CLI in tests.
"""

import json
import os
import subprocess
import sys
from pathlib import Path
from typing import Optional

REPO_ROOT = Path(__file__).resolve().parents[2]


def run_cli(root: Path, *args: str, stdin: Optional[str] = None) -> subprocess.CompletedProcess:
    """
    Runs antlers.cli with the given arguments in the given directory.

    Args:
        root: Working directory for command execution
        *args: Command line arguments for antlers.cli
        stdin: Text fed to the process standard input

    Returns:
        CompletedProcess with execution results
    """
    env = os.environ.copy()
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(REPO_ROOT), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", "antlers.cli", *args],
        cwd=root, env=env, input=stdin, capture_output=True, text=True, encoding="utf-8"
    )


def jload(s: str):
    """Parses JSON output of a CLI command."""
    return json.loads(s)

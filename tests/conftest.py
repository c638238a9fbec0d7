from pathlib import Path

import pytest

from tests.infrastructure.file_utils import write


@pytest.fixture
def write_file(tmp_path: Path):
    """Writes a file under tmp_path and returns its path."""
    def _write(name: str, text: str) -> Path:
        return write(tmp_path / name, text)
    return _write

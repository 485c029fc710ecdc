from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def name_fields() -> list[dict]:
    return [
        {"name": "first", "position": range(0, 4)},
        {"name": "last", "position": range(5, 10)},
    ]


@pytest.fixture
def write_file(tmp_path: Path):
    """Write raw bytes (or text encoded as UTF-8) to a file under tmp_path."""

    def _write(content: bytes | str, name: str = "input.txt") -> Path:
        path = tmp_path / name
        if isinstance(content, str):
            content = content.encode("utf-8")
        path.write_bytes(content)
        return path

    return _write

"""Shared pytest fixtures for twinsync tests."""

import hashlib
import os
from pathlib import Path

import pytest

# Fixed epoch seconds used to give files deterministic modification times
T_OLD = 1_700_000_000
T_NEW = 1_700_000_600


@pytest.fixture
def trees(tmp_path):
    """Create empty source and destination endpoints."""
    source = tmp_path / "src"
    destination = tmp_path / "dst"
    source.mkdir()
    destination.mkdir()
    return source.resolve(), destination.resolve()


@pytest.fixture
def write_file():
    """Factory fixture writing a file with optional fixed mtime."""

    def _write(
        root: Path, rel_path: str, content: str, mtime: float | None = None
    ) -> Path:
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _write


@pytest.fixture
def snapshot():
    """Factory fixture capturing every file's bytes and mtime under a root."""

    def _snapshot(root: Path) -> dict[str, tuple[str, int]]:
        result = {}
        for path in sorted(root.rglob("*")):
            if path.is_file():
                result[path.relative_to(root).as_posix()] = (
                    hashlib.sha256(path.read_bytes()).hexdigest(),
                    path.stat().st_mtime_ns,
                )
        return result

    return _snapshot

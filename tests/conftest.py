"""
Shared fixtures for dupekeep tests.
Creates isolated temporary directories with controlled test files.
"""
import os
import pytest
import tempfile
from pathlib import Path
from typing import Dict
import sys

# Add src/ to sys.path so 'dupekeep' is importable without installation
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from dupekeep.core.models import FileRecord, FileKind


@pytest.fixture
def temp_dir():
    """Creates isolated temporary directory, auto-cleanup after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def test_files(temp_dir) -> Dict[str, Path]:
    """
    Creates controlled test files for deduplication scenarios:
    - 3 identical files of 1KB (one in a subdirectory)
    - 2 identical files of 2KB
    - 2 unique files (sizes of their own)
    - 1 empty file (never indexed)
    """
    files = {}

    # Duplicate set #1 (1KB of 'A')
    content_a = b"A" * 1024
    files["dup1_a"] = temp_dir / "dup1_a.txt"
    files["dup1_b"] = temp_dir / "dup1_b.txt"
    files["dup1_a"].write_bytes(content_a)
    files["dup1_b"].write_bytes(content_a)

    # Duplicate pair #2 (2KB of 'B')
    content_b = b"B" * 2048
    files["dup2_a"] = temp_dir / "dup2_a.txt"
    files["dup2_b"] = temp_dir / "dup2_b.txt"
    files["dup2_a"].write_bytes(content_b)
    files["dup2_b"].write_bytes(content_b)

    # Unique files
    files["unique1"] = temp_dir / "unique1.txt"
    files["unique1"].write_bytes(b"C" * 1500)
    files["unique2"] = temp_dir / "unique2.txt"
    files["unique2"].write_bytes(b"D" * 2500)

    # Empty file (0 bytes, never indexed)
    files["empty"] = temp_dir / "empty.txt"
    files["empty"].write_bytes(b"")

    # Subdirectory with a third copy of set #1
    subdir = temp_dir / "subdir"
    subdir.mkdir()
    files["sub_dup"] = subdir / "dup_in_subdir.txt"
    files["sub_dup"].write_bytes(content_a)

    return files


@pytest.fixture
def make_record():
    """Factory for in-memory records that do not need to exist on disk."""
    def _make(path: str, size: int = 10, mtime_ns: int = 1_000_000_000, digest: bytes = b"") -> FileRecord:
        return FileRecord(path=path, size=size, mtime_ns=mtime_ns, mode=0o100644,
                          kind=FileKind.REGULAR, digest=digest)
    return _make


def set_mtime(path: Path, mtime_ns: int) -> None:
    """Sets both atime and mtime of `path` to an exact nanosecond timestamp."""
    os.utime(path, ns=(mtime_ns, mtime_ns))

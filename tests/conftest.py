"""
Shared fixtures for dispatch and deduplication tests.
Creates isolated temporary directories with controlled test files.
"""
import pytest
import sys
import tempfile
from pathlib import Path
from typing import Dict

# Add src/ to sys.path so the 'fanout' package is importable without installing
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

PYTHON = sys.executable


@pytest.fixture
def temp_dir():
    """Creates isolated temporary directory, auto-cleanup after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_files(temp_dir) -> Dict[str, Path]:
    """
    Creates controlled test files for deduplication scenarios:
    - 2 identical files (duplicates)
    - 2 more identical files with different content
    - 2 unique files
    - 1 file in a subdirectory identical to the first pair
    """
    files = {}

    # Duplicate pair #1 (1KB of 'A')
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

    # Subdirectory with duplicates
    subdir = temp_dir / "subdir"
    subdir.mkdir()
    files["sub_dup"] = subdir / "dup_in_subdir.txt"
    files["sub_dup"].write_bytes(content_a)  # Same as dup1_a/b

    return files


@pytest.fixture
def numbered_files(temp_dir) -> Dict[str, Path]:
    """Ten small text files f00.txt .. f09.txt, each holding its own number."""
    files = {}
    for i in range(10):
        path = temp_dir / f"f{i:02d}.txt"
        path.write_text(f"{i}\n")
        files[path.name] = path
    return files

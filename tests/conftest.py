from __future__ import annotations

import io
import tarfile
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from pathlib import Path

    from repo_archive.stream import ArchiveStream


def _make_tree(root: Path, files: Mapping[str, str]) -> Path:
    for rel, content in files.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


def _entry_names(data: bytes) -> list[str]:
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
        return sorted(m.name + "/" if m.isdir() else m.name for m in tar.getmembers())


def _drain(stream: ArchiveStream) -> bytes:
    with stream:
        data = stream.read()
    assert stream.outcome.done
    assert stream.outcome.error is None
    return data


@pytest.fixture
def make_tree() -> Callable[[Path, Mapping[str, str]], Path]:
    """Create files (relative path -> text content) under a root directory."""
    return _make_tree


@pytest.fixture
def entry_names() -> Callable[[bytes], list[str]]:
    """Sorted member names of a tar.gz payload; directories end with a slash."""
    return _entry_names


@pytest.fixture
def drain() -> Callable[[ArchiveStream], bytes]:
    """Read a stream to the end and check that its outcome is a success."""
    return _drain


@pytest.fixture
def flat_dir(tmp_path: Path) -> Path:
    return _make_tree(tmp_path / "archive-flat", {"baz.txt": "baz\n", "foo.txt": "foo\n"})


@pytest.fixture
def subdir_dir(tmp_path: Path) -> Path:
    return _make_tree(
        tmp_path / "archive-subdir",
        {"bar.txt": "bar\n", "foo.txt": "foo\n", "subdir/hello.txt": "hello\n"},
    )

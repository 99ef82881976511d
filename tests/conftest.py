"""Shared fixtures: in-memory connections and small source trees."""

from __future__ import annotations

from pathlib import Path

import pytest

from shipflow.connections.memory import MemoryStatusStore, MemoryStorageConnection, MemoryWorkQueue


def write_tree(root: Path, files: dict[str, bytes | str]) -> Path:
    """Create ``files`` (relative path -> content) under ``root``."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        data = content.encode() if isinstance(content, str) else content
        path.write_bytes(data)
    return root


def read_tree(root: Path) -> dict[str, bytes]:
    """Relative path (forward slashes) -> content for every file under ``root``."""
    return {p.relative_to(root).as_posix(): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}


@pytest.fixture
def storage() -> MemoryStorageConnection:
    return MemoryStorageConnection()


@pytest.fixture
def queue() -> MemoryWorkQueue:
    return MemoryWorkQueue()


@pytest.fixture
def status() -> MemoryStatusStore:
    return MemoryStatusStore()


REPO_FILES = {
    "package.json": b"x" * 100,
    "src/index.js": b"x" * 150,
    "public/index.html": b"x" * 200,
}


class FakeCloner:
    """Writes a fixed tree (plus a .git directory) instead of running git."""

    def __init__(self, files: dict[str, bytes | str] | None = None, error: Exception | None = None):
        self.files = REPO_FILES if files is None else files
        self.error = error
        self.calls: list[tuple[str, Path]] = []

    async def clone(self, url: str, destination: Path) -> None:
        self.calls.append((url, destination))
        if self.error is not None:
            raise self.error
        write_tree(destination, {**self.files, ".git/HEAD": "ref: refs/heads/main"})

"""
In-memory storage, queue and status store for testing and local development.

Example:
    storage = MemoryStorageConnection()
    queue = MemoryWorkQueue()
    status = MemoryStatusStore()

    await queue.push("abc123")
    assert await queue.pop() == "abc123"
"""

from __future__ import annotations

import asyncio
from collections import deque
from pathlib import Path
from typing import Any

import aiofiles

from shipflow.connections.queue import StatusStore, WorkQueue
from shipflow.connections.storage import BaseStorageConnection, ObjectInfo, ObjectPage
from shipflow.exceptions import ObjectNotFoundError


class MemoryStorageConnection(BaseStorageConnection):
    """
    Object store kept in a dict of key -> bytes.

    Listing is paginated with ``page_size`` entries per page and an opaque
    integer continuation token, mirroring S3 ListObjectsV2.
    """

    def __init__(self, name: str = "memory", config: dict[str, Any] | None = None, *, page_size: int = 1000):
        super().__init__(name, config)
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str | None] = {}
        self.page_size = page_size

    async def list_objects_page(self, prefix: str, continuation_token: str | None = None) -> ObjectPage:
        full_prefix = self._full_key(prefix) if prefix else self.base_path.strip("/")
        keys = sorted(k for k in self.objects if k.startswith(full_prefix))
        start = int(continuation_token) if continuation_token else 0
        end = start + self.page_size
        objects = [ObjectInfo(key=self._relative_key(k), size=len(self.objects[k])) for k in keys[start:end]]
        next_token = str(end) if end < len(keys) else None
        return ObjectPage(objects=objects, next_token=next_token)

    async def head_object(self, key: str) -> int:
        return len(self._lookup(key))

    async def put_file(
        self,
        local_path: str | Path,
        key: str,
        *,
        size: int | None = None,
        content_type: str | None = None,
    ) -> None:
        async with aiofiles.open(local_path, "rb") as f:
            data = await f.read()
        full_key = self._full_key(key)
        self.objects[full_key] = data
        self.content_types[full_key] = content_type

    async def download_file(self, key: str, local_path: str | Path) -> int:
        data = self._lookup(key)
        async with aiofiles.open(local_path, "wb") as f:
            await f.write(data)
        return len(data)

    async def get_object(self, key: str) -> bytes:
        return self._lookup(key)

    def put_bytes(self, key: str, data: bytes, content_type: str | None = None) -> None:
        """Seed an object directly (test setup)."""
        full_key = self._full_key(key)
        self.objects[full_key] = data
        self.content_types[full_key] = content_type

    def _lookup(self, key: str) -> bytes:
        full_key = self._full_key(key)
        try:
            return self.objects[full_key]
        except KeyError:
            raise ObjectNotFoundError(full_key) from None


class MemoryWorkQueue(WorkQueue):
    """FIFO queue with a blocking pop, equivalent to LPUSH + BRPOP on one list."""

    def __init__(self) -> None:
        self._items: deque[str] = deque()
        self._available = asyncio.Condition()
        self.pushed: list[str] = []

    async def push(self, value: str) -> None:
        async with self._available:
            self._items.append(value)
            self.pushed.append(value)
            self._available.notify()

    async def pop(self, timeout: float = 0) -> str | None:
        async with self._available:
            try:
                await asyncio.wait_for(
                    self._available.wait_for(lambda: bool(self._items)),
                    timeout=timeout if timeout > 0 else None,
                )
            except TimeoutError:
                return None
            return self._items.popleft()

    def __len__(self) -> int:
        return len(self._items)


class MemoryStatusStore(StatusStore):
    """Status labels kept in a dict."""

    def __init__(self) -> None:
        self.records: dict[str, str] = {}

    async def set(self, job_id: str, label: str) -> None:
        self.records[job_id] = label

    async def get(self, job_id: str) -> str | None:
        return self.records.get(job_id)

"""
Storage connection base class.

Object storage connections move whole files between the local filesystem and a
flat key namespace. All operations are coroutines so the sync engine can keep
several transfers in flight on one event loop.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class ObjectInfo:
    """One listed object: full key and size in bytes."""

    key: str
    size: int


@dataclass(frozen=True)
class ObjectPage:
    """One page of a prefix listing.

    ``next_token`` is None on the last page.
    """

    objects: list[ObjectInfo] = field(default_factory=list)
    next_token: str | None = None


class BaseStorageConnection(ABC):
    """
    Base class for object storage connections.

    Subclasses implement the five primitive operations the pipeline needs:
    paginated listing, head, streamed put from a local file, streamed get into a
    local file, and a whole-object read for small objects.
    """

    def __init__(self, name: str, config: dict[str, Any] | None = None):
        """
        Initialize storage connection.

        Args:
            name: Connection name (for logs)
            config: Connection configuration dictionary
        """
        self.name = name
        self.config = config or {}

    @property
    def base_path(self) -> str:
        """Key prefix prepended to every operation (empty by default)."""
        return str(self.config.get("base_path", "") or "")

    def _full_key(self, key: str) -> str:
        """Prepend base_path to key if configured."""
        if self.base_path:
            return f"{self.base_path.strip('/')}/{key.lstrip('/')}"
        return key.lstrip("/")

    def _relative_key(self, full_key: str) -> str:
        """Strip base_path from a listed key so callers see their own namespace."""
        base = self.base_path.strip("/")
        if base and full_key.startswith(base + "/"):
            return full_key[len(base) + 1 :]
        return full_key

    @abstractmethod
    async def list_objects_page(self, prefix: str, continuation_token: str | None = None) -> ObjectPage:
        """List one page of objects under ``prefix``."""

    @abstractmethod
    async def head_object(self, key: str) -> int:
        """Return the size of ``key`` in bytes; raises ObjectNotFoundError if missing."""

    @abstractmethod
    async def put_file(
        self,
        local_path: str | Path,
        key: str,
        *,
        size: int | None = None,
        content_type: str | None = None,
    ) -> None:
        """Stream a local file to ``key``."""

    @abstractmethod
    async def download_file(self, key: str, local_path: str | Path) -> int:
        """Stream ``key`` into ``local_path`` (parent must exist); returns bytes written."""

    @abstractmethod
    async def get_object(self, key: str) -> bytes:
        """Read a whole object; raises ObjectNotFoundError if missing."""

    async def close(self) -> None:
        """Release client resources."""

    async def __aenter__(self) -> BaseStorageConnection:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"

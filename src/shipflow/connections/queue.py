"""
Work queue and status store interfaces.

Every mutation is a single atomic broker operation (push, blocking pop, field
set); nothing here spans a multi-step transaction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class WorkQueue(ABC):
    """FIFO queue of job identifiers with a blocking pop."""

    @abstractmethod
    async def push(self, value: str) -> None:
        """Append ``value`` to the queue."""

    @abstractmethod
    async def pop(self, timeout: float = 0) -> str | None:
        """
        Remove and return the oldest value.

        ``timeout=0`` blocks until a value arrives; a positive timeout returns
        None when it expires.
        """


class StatusStore(ABC):
    """Key-value map from job identifier to status label."""

    @abstractmethod
    async def set(self, job_id: str, label: str) -> None:
        """Record ``label`` for ``job_id``."""

    @abstractmethod
    async def get(self, job_id: str) -> str | None:
        """Return the label for ``job_id`` or None when absent."""

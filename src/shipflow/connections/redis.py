"""
Redis-backed work queue and status store.

The queue is a Redis list (LPUSH on submit, BRPOP on the worker), so several
workers can pop from the same list without double delivery. Status labels live
in one Redis hash keyed by job id.

Example:
    conn = RedisConnection(url="redis://localhost:6379")
    async with conn:
        await conn.queue.push(job_id)
        job_id = await conn.queue.pop()   # blocks forever
        await conn.status.set(job_id, "deployed")
"""

from __future__ import annotations

from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from shipflow.connections.queue import StatusStore, WorkQueue
from shipflow.exceptions import QueueError
from shipflow.utils.logging import get_logger

logger = get_logger("shipflow.connections.redis")


class RedisConnection:
    """
    Owns one redis.asyncio client and exposes the queue and status views on it.

    Args:
        url: Redis connection URL (redis://localhost:6379)
        queue_name: List used as the build queue
        status_key: Hash holding job statuses
        client: Pre-built client (tests)
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379",
        *,
        queue_name: str = "build-queue",
        status_key: str = "status",
        client: Any = None,
    ):
        self.url = url
        self.queue_name = queue_name
        self.status_key = status_key
        self._client = client
        self.queue = RedisWorkQueue(self)
        self.status = RedisStatusStore(self)

    @property
    def client(self) -> Any:
        if self._client is None:
            raise QueueError("Redis not connected. Call connect() first.")
        return self._client

    async def connect(self) -> None:
        """Connect to Redis and verify the connection with PING."""
        if self._client is None:
            self._client = aioredis.from_url(self.url, decode_responses=True)
        try:
            await self._client.ping()
        except RedisError as e:
            raise QueueError(f"Cannot connect to Redis at {self.url}: {e}") from e
        logger.info(f"Connected to Redis at {self.url}")

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        logger.info("Disconnected from Redis")

    async def __aenter__(self) -> RedisConnection:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()


class RedisWorkQueue(WorkQueue):
    def __init__(self, connection: RedisConnection):
        self._conn = connection

    async def push(self, value: str) -> None:
        try:
            await self._conn.client.lpush(self._conn.queue_name, value)
        except RedisError as e:
            raise QueueError(f"Failed to push to '{self._conn.queue_name}': {e}") from e

    async def pop(self, timeout: float = 0) -> str | None:
        try:
            result = await self._conn.client.brpop([self._conn.queue_name], timeout=timeout)
        except RedisError as e:
            raise QueueError(f"Failed to pop from '{self._conn.queue_name}': {e}") from e
        if result is None:
            return None
        # BRPOP returns (list_name, value)
        _name, value = result
        return value


class RedisStatusStore(StatusStore):
    def __init__(self, connection: RedisConnection):
        self._conn = connection

    async def set(self, job_id: str, label: str) -> None:
        try:
            await self._conn.client.hset(self._conn.status_key, job_id, label)
        except RedisError as e:
            raise QueueError(f"Failed to record status for '{job_id}': {e}") from e

    async def get(self, job_id: str) -> str | None:
        try:
            return await self._conn.client.hget(self._conn.status_key, job_id)
        except RedisError as e:
            raise QueueError(f"Failed to read status for '{job_id}': {e}") from e

"""
Connections to external systems: object storage, work queue, status store.

Connections are built explicitly from configuration and handed to the
components that use them.
"""

from __future__ import annotations

from typing import Any

from shipflow.connections.memory import MemoryStatusStore, MemoryStorageConnection, MemoryWorkQueue
from shipflow.connections.queue import StatusStore, WorkQueue
from shipflow.connections.redis import RedisConnection
from shipflow.connections.s3 import S3Connection
from shipflow.connections.storage import BaseStorageConnection, ObjectInfo, ObjectPage
from shipflow.exceptions import ConfigurationError


def create_storage(config: dict[str, Any], name: str = "storage") -> BaseStorageConnection:
    """Build a storage connection from the ``storage`` config section."""
    storage_type = config.get("type", "s3")
    if storage_type == "s3":
        return S3Connection(name, config)
    if storage_type == "memory":
        return MemoryStorageConnection(name, config)
    raise ConfigurationError(f"Unsupported storage type: {storage_type}")


def create_redis(config: dict[str, Any]) -> RedisConnection:
    """Build a Redis connection from the ``queue`` config section."""
    queue_type = config.get("type", "redis")
    if queue_type != "redis":
        raise ConfigurationError(f"Unsupported queue type: {queue_type}")
    return RedisConnection(
        url=config.get("url", "redis://localhost:6379"),
        queue_name=config.get("name", "build-queue"),
        status_key=config.get("status_key", "status"),
    )


__all__ = [
    "BaseStorageConnection",
    "ObjectInfo",
    "ObjectPage",
    "S3Connection",
    "MemoryStorageConnection",
    "WorkQueue",
    "StatusStore",
    "RedisConnection",
    "MemoryWorkQueue",
    "MemoryStatusStore",
    "create_storage",
    "create_redis",
]

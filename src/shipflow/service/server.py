"""
Shipflow long-running processes.

Provides:
- the submission/status HTTP API (``run_service``)
- the build worker loop (``run_worker``)
"""

from __future__ import annotations

import asyncio
import signal
from contextlib import suppress
from typing import Any

from aiohttp import web

from shipflow.config.loader import Config
from shipflow.connections import create_redis, create_storage
from shipflow.connections.queue import StatusStore, WorkQueue
from shipflow.connections.redis import RedisConnection
from shipflow.connections.storage import BaseStorageConnection
from shipflow.pipeline.orchestrator import PipelineOrchestrator
from shipflow.pipeline.submission import JobSubmitter
from shipflow.pipeline.vcs import RepositoryCloner
from shipflow.service.api import setup_routes
from shipflow.service.api.middleware import error_middleware
from shipflow.utils.logging import get_logger

logger = get_logger("shipflow.service")


class ShipflowService:
    """
    Wires configuration into the connections and the submitter used by the API.

    Connections passed in are used as-is (tests, embedding); anything missing
    is built from ``config``. Only connections built here are opened and closed
    by ``start``/``stop``.
    """

    def __init__(
        self,
        config: Config,
        *,
        storage: BaseStorageConnection | None = None,
        queue: WorkQueue | None = None,
        status: StatusStore | None = None,
        cloner: RepositoryCloner | None = None,
    ):
        self.config = config
        self._owns_storage = storage is None
        self.storage = storage if storage is not None else create_storage(config.storage)

        self._redis: RedisConnection | None = None
        if queue is None or status is None:
            self._redis = create_redis(config.queue)
        self.queue: WorkQueue = queue if queue is not None else self._redis.queue  # type: ignore[union-attr]
        self.status: StatusStore = status if status is not None else self._redis.status  # type: ignore[union-attr]

        self.submitter = JobSubmitter.from_config(config, self.storage, self.queue, cloner=cloner)

    async def start(self) -> None:
        if self._redis is not None:
            await self._redis.connect()

    async def stop(self) -> None:
        if self._redis is not None:
            await self._redis.disconnect()
        if self._owns_storage:
            await self.storage.close()


SERVICE_KEY = web.AppKey("shipflow_service", ShipflowService)


def create_app(service: ShipflowService) -> web.Application:
    """Build the submission/status application for ``service``."""
    app = web.Application(middlewares=[error_middleware])
    app[SERVICE_KEY] = service
    setup_routes(app, service)

    async def on_startup(app: web.Application) -> None:
        await service.start()

    async def on_cleanup(app: web.Application) -> None:
        await service.stop()

    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)
    return app


def run_service(config: Config, *, host: str | None = None, port: int | None = None) -> None:
    """
    Run the submission/status API (blocking).

    Args:
        config: Loaded configuration
        host: Host to bind to (default: ``service.host``)
        port: Port to bind to (default: ``service.port``)
    """
    host = host or config.get("service.host", "0.0.0.0")
    port = port or int(config.get("service.port", 3002))
    app = create_app(ShipflowService(config))
    logger.info(f"Upload service starting on http://{host}:{port}")
    logger.info(f"Bucket: {config.get('storage.bucket')}, region: {config.get('storage.region')}")
    web.run_app(app, host=host, port=port, access_log=None, print=None)


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # add_signal_handler is unavailable on some platforms (Windows)
        with suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop_event.set)


async def run_worker(config: Config, *, stop_event: asyncio.Event | None = None, **overrides: Any) -> None:
    """
    Run the build worker until ``stop_event`` is set or SIGINT/SIGTERM arrives.

    The stop request only interrupts the idle wait for a job; a job already in
    progress is finished first.
    """
    if stop_event is None:
        stop_event = asyncio.Event()
        _install_signal_handlers(stop_event)

    storage = create_storage(config.storage)
    redis = create_redis(config.queue)
    async with storage, redis:
        orchestrator = PipelineOrchestrator.from_config(config, storage, redis.queue, redis.status, **overrides)
        await orchestrator.run(stop_event)

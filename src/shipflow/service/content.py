"""
Content server: serves published site files straight from object storage.

The first label of the request host names the site, so ``abc123.example.com/app.js``
reads the object ``dist/abc123/app.js`` with the default key template.
"""

from __future__ import annotations

import time

from aiohttp import web

from shipflow.config.loader import Config
from shipflow.connections import create_storage
from shipflow.connections.storage import BaseStorageConnection
from shipflow.exceptions import ObjectNotFoundError, StorageError
from shipflow.service.api.middleware import error_middleware
from shipflow.utils.content_types import content_type_for
from shipflow.utils.logging import get_logger

logger = get_logger("shipflow.service.content")

DEFAULT_KEY_TEMPLATE = "dist/{id}{path}"
INDEX_DOCUMENT = "index.html"


def site_id_from_host(host: str) -> str:
    """``abc123.example.com:3000`` -> ``abc123``."""
    hostname = host.rsplit(":", 1)[0] if not host.startswith("[") else host
    return hostname.split(".")[0]


def object_key_for(site_id: str, path: str, key_template: str = DEFAULT_KEY_TEMPLATE) -> str:
    if not path.startswith("/"):
        path = "/" + path
    if path.endswith("/"):
        path += INDEX_DOCUMENT
    return key_template.format(id=site_id, path=path)


class ContentHandler:
    def __init__(self, storage: BaseStorageConnection, key_template: str = DEFAULT_KEY_TEMPLATE):
        self.storage = storage
        self.key_template = key_template

    async def serve(self, request: web.Request) -> web.Response:
        started = time.monotonic()
        host = request.host
        site_id = site_id_from_host(host)
        key = object_key_for(site_id, request.path, self.key_template)
        logger.info(f"Request for {host}{request.path}")

        try:
            data = await self.storage.get_object(key)
        except ObjectNotFoundError as e:
            logger.warning(f"Not found: {host}{request.path} ({key})")
            return web.Response(status=404, text=f"File not found: {e.message}")
        except StorageError as e:
            logger.error(f"Error serving {host}{request.path}: {e}")
            return web.Response(status=502, text=f"Storage error: {e.message}")

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(f"Served {host}{request.path} ({len(data)} bytes) in {elapsed_ms}ms")
        return web.Response(body=data, content_type=content_type_for(key))


def create_content_app(
    storage: BaseStorageConnection,
    *,
    key_template: str = DEFAULT_KEY_TEMPLATE,
    close_storage: bool = False,
) -> web.Application:
    """Build the content server application reading from ``storage``."""
    app = web.Application(middlewares=[error_middleware])
    handler = ContentHandler(storage, key_template)
    app.router.add_get("/{path:.*}", handler.serve)

    if close_storage:

        async def on_cleanup(app: web.Application) -> None:
            await storage.close()

        app.on_cleanup.append(on_cleanup)
    return app


def run_content_server(config: Config, *, host: str | None = None, port: int | None = None) -> None:
    """Run the content server (blocking)."""
    host = host or config.get("content.host", "0.0.0.0")
    port = port or int(config.get("content.port", 3000))
    storage = create_storage(config.storage)
    app = create_content_app(
        storage,
        key_template=config.get("content.key_template", DEFAULT_KEY_TEMPLATE),
        close_storage=True,
    )
    logger.info(f"Content server starting on http://{host}:{port}")
    logger.info(f"Bucket: {config.get('storage.bucket')}, region: {config.get('storage.region')}")
    web.run_app(app, host=host, port=port, access_log=None, print=None)

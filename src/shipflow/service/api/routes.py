"""
API route registration.
"""

from typing import TYPE_CHECKING

from aiohttp import web

from shipflow.service.api.handlers.health import HealthHandler
from shipflow.service.api.handlers.jobs import JobsHandler

if TYPE_CHECKING:
    from shipflow.service.server import ShipflowService


def setup_routes(app: web.Application, service: "ShipflowService") -> None:
    """
    Register all API routes.

    Args:
        app: aiohttp Application
        service: ShipflowService instance for handler access
    """
    health = HealthHandler(service)
    jobs = JobsHandler(service)

    app.router.add_routes(
        [
            web.get("/health", health.health),
            web.post("/upload", jobs.upload),
            web.get("/status", jobs.status),
        ]
    )

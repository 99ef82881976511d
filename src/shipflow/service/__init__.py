"""
Shipflow HTTP services and long-running processes.
"""

from shipflow.service.content import create_content_app, run_content_server
from shipflow.service.server import ShipflowService, create_app, run_service, run_worker

__all__ = [
    "ShipflowService",
    "create_app",
    "run_service",
    "run_worker",
    "create_content_app",
    "run_content_server",
]

"""
REST API for repository submission and job status.
"""

from shipflow.service.api.routes import setup_routes

__all__ = ["setup_routes"]

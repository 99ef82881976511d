"""
API middleware components.
"""

from shipflow.service.api.middleware.error import error_middleware

__all__ = ["error_middleware"]

"""
Observability module for Shipflow: structured logging and correlation IDs.
"""

from shipflow.observability.structured_logging import (
    CorrelationIdFilter,
    StructuredFormatter,
    add_correlation_id,
    get_correlation_id,
    log_job_event,
    setup_structured_logging,
)

__all__ = [
    "CorrelationIdFilter",
    "StructuredFormatter",
    "add_correlation_id",
    "get_correlation_id",
    "log_job_event",
    "setup_structured_logging",
]

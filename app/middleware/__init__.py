"""
Middleware modules for the inspection API.

Provides request processing middleware for:
- Correlation ID tracking for request tracing
- Log record enrichment with the current request IDs
"""

from .correlation import (
    CorrelationIdMiddleware,
    CorrelationLogFilter,
    correlation_id_ctx,
    request_id_ctx,
)

__all__ = [
    "CorrelationIdMiddleware",
    "CorrelationLogFilter",
    "correlation_id_ctx",
    "request_id_ctx",
]

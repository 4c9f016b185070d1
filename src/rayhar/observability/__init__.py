"""Observability for the cache: structured logging and Prometheus metrics."""

from rayhar.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
    session_id_var,
    user_id_var,
)
from rayhar.observability.metrics import CacheMetrics

__all__ = [
    # Logging
    "configure_logging",
    "ConsoleFormatter",
    "JsonFormatter",
    "LogContext",
    "session_id_var",
    "user_id_var",
    # Metrics
    "CacheMetrics",
]

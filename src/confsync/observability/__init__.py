"""
Observability module for confsync.

Prometheus metrics and structured logging with correlation IDs.
"""

from confsync.observability.metrics import MetricsRegistry, get_metrics_registry
from confsync.observability.structured_logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    add_correlation_id,
    get_correlation_id,
    log_state_transition,
    setup_structured_logging,
)

__all__ = [
    # Metrics
    "MetricsRegistry",
    "get_metrics_registry",
    # Structured Logging
    "StructuredFormatter",
    "HumanReadableFormatter",
    "setup_structured_logging",
    "add_correlation_id",
    "get_correlation_id",
    "log_state_transition",
]

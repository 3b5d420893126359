"""
Prometheus metrics for confsync.

Counts remote fetch attempts, fallback restores, live updates and swallowed
fallback-file write failures per (namespace, key).

Usage:
    from confsync.observability import get_metrics_registry

    registry = get_metrics_registry()
    registry.enable()  # Enable metrics collection

    # Metrics are recorded by the sync controller and session listeners.
    # Start metrics server for Prometheus scraping:
    registry.start_http_server(port=9090)
"""

import threading
from typing import Any

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    generate_latest,
    start_http_server,
)

from confsync.utils.logging import get_logger

logger = get_logger("confsync.observability.metrics")


class MetricsRegistry:
    """
    Central registry for all confsync metrics.

    Every recorded value goes both to a private Prometheus CollectorRegistry
    and to an internal tally retrievable via get_metrics().
    """

    def __init__(self):
        self._enabled = False
        self._internal_metrics: dict[str, dict[str, int]] = {
            "fetch_attempts_total": {},  # namespace/key/outcome -> count
            "fallback_restores_total": {},  # namespace/key/outcome -> count
            "live_updates_total": {},  # namespace/key/outcome -> count
            "persist_failures_total": {},  # namespace/key -> count
        }
        self._lock = threading.Lock()
        self._registry = CollectorRegistry()
        self._setup_prometheus_metrics()

    def _setup_prometheus_metrics(self):
        """Setup Prometheus metrics."""
        self._fetch_counter = Counter(
            "confsync_fetch_attempts_total",
            "Remote fetch attempts during initial acquisition",
            ["namespace", "key", "outcome"],  # outcome: success, fetch_error, decode_error
            registry=self._registry,
        )

        self._fallback_counter = Counter(
            "confsync_fallback_restores_total",
            "Restores from the local fallback file",
            ["namespace", "key", "outcome"],  # outcome: success, failure
            registry=self._registry,
        )

        self._live_update_counter = Counter(
            "confsync_live_updates_total",
            "Full-change events handled by session listeners",
            ["namespace", "key", "outcome"],  # outcome: applied, ignored, decode_error
            registry=self._registry,
        )

        self._persist_failure_counter = Counter(
            "confsync_persist_failures_total",
            "Fallback file writes that failed after a successful decode",
            ["namespace", "key"],
            registry=self._registry,
        )

    @property
    def enabled(self) -> bool:
        """Check if metrics are enabled."""
        return self._enabled

    def enable(self) -> None:
        """Enable metrics collection."""
        self._enabled = True
        logger.info("Metrics collection enabled")

    def disable(self) -> None:
        """Disable metrics collection."""
        self._enabled = False

    def _tally(self, metric: str, label: str) -> None:
        with self._lock:
            bucket = self._internal_metrics[metric]
            bucket[label] = bucket.get(label, 0) + 1

    def record_fetch_attempt(self, namespace: str, key: str, outcome: str) -> None:
        """Record one acquisition attempt against the remote source."""
        if not self._enabled:
            return
        self._tally("fetch_attempts_total", f"{namespace}/{key}/{outcome}")
        self._fetch_counter.labels(namespace=namespace, key=key, outcome=outcome).inc()

    def record_fallback_restore(self, namespace: str, key: str, success: bool) -> None:
        """Record a fallback restore attempt."""
        if not self._enabled:
            return
        outcome = "success" if success else "failure"
        self._tally("fallback_restores_total", f"{namespace}/{key}/{outcome}")
        self._fallback_counter.labels(namespace=namespace, key=key, outcome=outcome).inc()

    def record_live_update(self, namespace: str, key: str, outcome: str) -> None:
        """Record the outcome of a full-change event for one session."""
        if not self._enabled:
            return
        self._tally("live_updates_total", f"{namespace}/{key}/{outcome}")
        self._live_update_counter.labels(namespace=namespace, key=key, outcome=outcome).inc()

    def record_persist_failure(self, namespace: str, key: str) -> None:
        """Record a swallowed fallback-file write failure."""
        if not self._enabled:
            return
        self._tally("persist_failures_total", f"{namespace}/{key}")
        self._persist_failure_counter.labels(namespace=namespace, key=key).inc()

    def get_metrics(self) -> dict[str, Any]:
        """Get a copy of the internally tracked metrics."""
        with self._lock:
            return {name: dict(values) for name, values in self._internal_metrics.items()}

    def get_sample_value(self, name: str, labels: dict[str, str] | None = None) -> float | None:
        """Read a single Prometheus sample (e.g. 'confsync_fetch_attempts_total')."""
        return self._registry.get_sample_value(name, labels or {})

    def generate_latest(self) -> bytes:
        """Render metrics in the Prometheus text exposition format."""
        return generate_latest(self._registry)

    @property
    def content_type(self) -> str:
        """Content type for the Prometheus exposition format."""
        return CONTENT_TYPE_LATEST

    def start_http_server(self, port: int = 9090, addr: str = "0.0.0.0") -> None:
        """Start an HTTP server exposing this registry for Prometheus scraping."""
        start_http_server(port, addr=addr, registry=self._registry)
        logger.info(f"Metrics server started on {addr}:{port}")

    def reset(self) -> None:
        """Reset internal tallies (Prometheus counters are monotonic and kept)."""
        with self._lock:
            for values in self._internal_metrics.values():
                values.clear()


_metrics_registry: MetricsRegistry | None = None
_metrics_registry_lock = threading.Lock()


def get_metrics_registry() -> MetricsRegistry:
    """Get the process-wide metrics registry."""
    global _metrics_registry
    if _metrics_registry is None:
        with _metrics_registry_lock:
            if _metrics_registry is None:
                _metrics_registry = MetricsRegistry()
    return _metrics_registry

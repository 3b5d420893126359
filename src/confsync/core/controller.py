"""
Sync controller: bounded-retry acquisition with local fallback.

``apply`` binds a destination to one key of a remote namespace:

1. up to ``max_retries`` attempts to connect, fetch and decode, sleeping
   ``retry_interval_seconds`` after every failed attempt;
2. on success the raw value is written to the fallback file and the session
   subscribes for live updates;
3. when every attempt failed, the destination is restored from the fallback
   file instead (without a live subscription).

Examples:
    >>> @dataclass
    ... class BillingSettings:
    ...     currency: str = "EUR"
    ...     invoice_day: int = 1
    >>> settings = BillingSettings()
    >>> config = SessionConfig(namespace="application", key="billing.yaml", max_retries=3)
    >>> session = apply(settings, config, my_apollo_client_factory)
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any

from confsync.config.loader import RemoteConfig, SessionConfig
from confsync.core.decoder import Format, validate_destination
from confsync.core.fallback import FallbackStore
from confsync.core.session import SessionState, SyncSession
from confsync.exceptions import ConfsyncError, DecodeError, FallbackError, RemoteFetchError
from confsync.observability.metrics import MetricsRegistry, get_metrics_registry
from confsync.observability.structured_logging import add_correlation_id
from confsync.remote.base import RemoteSource, SourceFactory
from confsync.utils.logging import get_logger

logger = get_logger("confsync.controller")


class SyncController:
    """
    Creates sync sessions and runs their initial acquisition.

    Sessions are kept in ``sessions`` for the life of the controller; there
    is no unsubscribe.
    """

    def __init__(
        self,
        source_factory: SourceFactory,
        fallback_store: FallbackStore | None = None,
        metrics: MetricsRegistry | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            source_factory: Builds a connected remote source from a RemoteConfig;
                called at the start of every attempt
            fallback_store: Where fallback files live (default: working directory)
            metrics: Metrics registry (default: process-wide registry)
            sleep: Blocking sleep used between attempts
        """
        self.source_factory = source_factory
        self.fallback_store = fallback_store or FallbackStore()
        self.metrics = metrics or get_metrics_registry()
        self.sleep = sleep
        self.sessions: list[SyncSession] = []
        self._sessions_lock = threading.Lock()

    def apply(self, destination: Any, config: SessionConfig) -> SyncSession:
        """
        Populate ``destination`` from the remote source, or from the fallback file.

        Args:
            destination: Dataclass instance or mutable mapping, updated in place
            config: Session configuration

        Returns:
            The session, in state ``acquired`` or ``fallback_restored``

        Raises:
            InvalidDestinationError: destination cannot be updated in place (not retried)
            RemoteFetchError | DecodeError: the error of the last remote attempt
                when the fallback file could not be used either
            FallbackError: fallback restoration failed and no remote attempt
                was made (``max_retries == 0``)
        """
        validate_destination(destination)

        session = SyncSession(destination, config, self.fallback_store, self.metrics)
        with self._sessions_lock:
            self.sessions.append(session)

        with add_correlation_id(session.session_id):
            return self._acquire(session)

    def restore_from_fallback(self, session: SyncSession) -> Format:
        """
        Restore ``session.destination`` from its fallback file.

        Raises:
            FallbackUnavailableError: no fallback file exists
            FallbackIOError: the fallback file cannot be read
            DecodeError: the stored value does not decode into the destination
        """
        try:
            fmt = session.restore_from_fallback()
        except (FallbackError, DecodeError):
            self.metrics.record_fallback_restore(session.namespace, session.key, success=False)
            raise
        self.metrics.record_fallback_restore(session.namespace, session.key, success=True)
        session.transition(SessionState.FALLBACK_RESTORED)
        logger.info(f"Restored config from file {session.fallback_path}")
        return fmt

    def _acquire(self, session: SyncSession) -> SyncSession:
        budget = session.retry_budget
        last_error: ConfsyncError | None = None

        for attempt in range(budget.max_retries):
            session.transition(SessionState.RETRYING)
            try:
                source = self._connect(session.config.remote)
                fmt = session.load(source)
            except (RemoteFetchError, DecodeError) as e:
                last_error = e
                outcome = "decode_error" if isinstance(e, DecodeError) else "fetch_error"
                self.metrics.record_fetch_attempt(session.namespace, session.key, outcome)
                logger.error(f"Failed to fetch config from remote source. Err is {e}, Retry #{attempt + 1}")
                self.sleep(budget.interval_seconds)
                continue

            self.metrics.record_fetch_attempt(session.namespace, session.key, "success")
            session.transition(SessionState.ACQUIRED)
            self._subscribe(source, session)
            if attempt > 0:
                logger.info(f"{session.namespace}/{session.key} fetched after {attempt + 1} attempts ({fmt})")
            return session

        try:
            self.restore_from_fallback(session)
        except (FallbackError, DecodeError) as e:
            logger.error(f"failed restored config from file. err: {e}")
            session.transition(SessionState.FAILED)
            if last_error is None:
                raise
            raise last_error
        return session

    def _subscribe(self, source: RemoteSource, session: SyncSession) -> None:
        """
        Register the session for live updates once its value has been applied.

        The destination already holds the fetched value, so a failure here
        does not fail the attempt; it is kept on ``session.subscribe_error``.
        """
        try:
            source.subscribe(session)
        except Exception as e:
            session.subscribe_error = e
            logger.error(f"[conf] {session.namespace} subscribe failed, live updates disabled. err: {e}")
            return
        session.subscribed = True

    def _connect(self, remote: RemoteConfig) -> RemoteSource:
        try:
            return self.source_factory(remote)
        except RemoteFetchError:
            raise
        except Exception as e:
            raise RemoteFetchError(
                f"cannot connect to config source at {remote.address!r}: {e}",
                namespace=remote.namespace,
                cause=e,
            ) from e


def apply(
    destination: Any,
    config: SessionConfig,
    source_factory: SourceFactory,
    *,
    fallback_store: FallbackStore | None = None,
    metrics: MetricsRegistry | None = None,
) -> SyncSession:
    """
    Bind ``destination`` to ``config.namespace``/``config.key``.

    Shortcut for ``SyncController(source_factory, ...).apply(destination, config)``.
    """
    controller = SyncController(source_factory, fallback_store=fallback_store, metrics=metrics)
    return controller.apply(destination, config)

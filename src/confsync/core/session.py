"""
Sync session: one (namespace, key, destination) binding.

The session owns the lock that serializes every decode/persist cycle into
its destination. The initial fetch (caller thread) and live updates (the
remote source's notification threads) both run their whole critical section
under it, so the destination is never observed mid-decode by another path.
"""

from __future__ import annotations

import threading
from enum import StrEnum
from pathlib import Path
from typing import Any

from confsync.config.loader import RetryBudget, SessionConfig
from confsync.core.decoder import Format, as_text, decode
from confsync.core.fallback import FallbackStore
from confsync.exceptions import DecodeError, FallbackIOError, RemoteFetchError
from confsync.observability.metrics import MetricsRegistry, get_metrics_registry
from confsync.observability.structured_logging import (
    add_correlation_id,
    log_state_transition,
    new_correlation_id,
)
from confsync.remote.base import ChangeEvent, FullChangeEvent, RemoteSource
from confsync.utils.logging import get_logger

logger = get_logger("confsync.session")


class SessionState(StrEnum):
    """Acquisition states of a sync session."""

    IDLE = "idle"
    RETRYING = "retrying"
    ACQUIRED = "acquired"  # fetched from remote, listening for updates
    FALLBACK_RESTORED = "fallback_restored"  # restored from file, not listening
    FAILED = "failed"


class SyncSession:
    """
    State of one managed configuration binding.

    Implements the remote source's change-listener interface; the session
    is subscribed only after a successful remote acquisition.
    """

    def __init__(
        self,
        destination: Any,
        config: SessionConfig,
        store: FallbackStore,
        metrics: MetricsRegistry | None = None,
    ):
        self.config = config
        self.namespace = config.namespace
        self.key = config.key
        self.destination = destination
        self.retry_budget: RetryBudget = config.retry_budget
        self.fallback_path: Path = store.path_for(config.namespace, config.key)
        self.session_id = new_correlation_id()

        # Guarded by _lock
        self.cached_raw_value: str | None = None
        # Last swallowed fallback write error, None after a successful write
        self.last_persist_error: FallbackIOError | None = None
        # Set by the controller after a successful remote acquisition
        self.subscribed = False
        self.subscribe_error: Exception | None = None

        self._state = SessionState.IDLE
        self._store = store
        self._metrics = metrics or get_metrics_registry()
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"SyncSession(namespace={self.namespace!r}, key={self.key!r}, state={self._state})"

    @property
    def state(self) -> SessionState:
        return self._state

    def transition(self, new_state: SessionState) -> None:
        if new_state == self._state:
            return
        log_state_transition(self.namespace, self.key, str(self._state), str(new_state))
        self._state = new_state

    # --- initial acquisition -------------------------------------------------

    def load(self, source: RemoteSource) -> Format:
        """
        Fetch the current value, decode it into the destination and persist it.

        Raises:
            RemoteFetchError: the source could not deliver the value
            DecodeError: the value does not decode into the destination
        """
        with self._lock:
            raw = _fetch(source, self.namespace, self.key)
            self.cached_raw_value = as_text(raw)
            fmt = decode(self.cached_raw_value, self.destination)
            self._persist()
        return fmt

    def restore_from_fallback(self) -> Format:
        """
        Decode the fallback file into the destination. The file is not rewritten.

        Raises:
            FallbackUnavailableError: no fallback file exists
            FallbackIOError: the fallback file cannot be read
            DecodeError: the stored value does not decode into the destination
        """
        logger.info(f"Restoring config from file {self.fallback_path}")
        with self._lock:
            raw = self._store.read(self.fallback_path)
            fmt = decode(raw, self.destination)
            self.cached_raw_value = raw
        return fmt

    # --- live updates --------------------------------------------------------

    def on_change(self, event: ChangeEvent) -> None:
        """Per-key change notification; informational only."""
        if event.namespace == self.namespace and self.key in event.changes:
            change = event.changes[self.key]
            logger.debug(f"[conf] {self.namespace}/{self.key} {change.change_type}")

    def on_full_change(self, event: FullChangeEvent) -> None:
        """
        Re-decode and re-persist when the namespace snapshot contains our key.

        Decode failures keep the previous destination state; fallback write
        failures are recorded on ``last_persist_error``. Neither propagates
        into the notifying thread.
        """
        if event.namespace != self.namespace:
            return

        with add_correlation_id(self.session_id), self._lock:
            if self.key not in event.changes:
                self._metrics.record_live_update(self.namespace, self.key, "ignored")
                return

            try:
                self.cached_raw_value = as_text(event.changes[self.key])
                decode(self.cached_raw_value, self.destination)
            except DecodeError as e:
                logger.warning(f"[conf] {self.namespace} conf data parse fail, err [{e}] please check it")
                self._metrics.record_live_update(self.namespace, self.key, "decode_error")
                return

            self._persist()
            self._metrics.record_live_update(self.namespace, self.key, "applied")
            logger.info(f"[conf] {self.namespace}/{self.key} live update parsed")

    def _persist(self) -> None:
        # Caller holds _lock
        try:
            self._store.write(self.fallback_path, self.cached_raw_value)
        except FallbackIOError as e:
            self.last_persist_error = e
            self._metrics.record_persist_failure(self.namespace, self.key)
            logger.error(f"[conf] {self.namespace} save config to file failed, err: {e}")
        else:
            self.last_persist_error = None


def _fetch(source: RemoteSource, namespace: str, key: str) -> Any:
    try:
        return source.fetch(namespace, key)
    except RemoteFetchError:
        raise
    except Exception as e:
        raise RemoteFetchError(f"fetch {namespace}/{key} failed: {e}", namespace=namespace, key=key, cause=e) from e

"""
In-memory remote source for testing.

Provides an in-process stand-in for a config-center client, useful for
exercising sync sessions without a running config service.

Example:
    from confsync.remote import InMemoryRemoteSource

    source = InMemoryRemoteSource({"application": {"db.yaml": "host: localhost"}})
    session = apply(settings, config, source.factory)

    # Push a change; listeners are notified on their own threads
    source.publish("application", {"db.yaml": "host: db.internal"})
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

from confsync.exceptions import RemoteFetchError
from confsync.remote.base import (
    ChangeEvent,
    ChangeListener,
    ChangeType,
    ConfigChange,
    FullChangeEvent,
)
from confsync.utils.logging import get_logger

if TYPE_CHECKING:
    from confsync.config.loader import RemoteConfig

logger = get_logger("confsync.remote.memory")


class InMemoryRemoteSource:
    """
    In-memory config source for tests and local development.

    Features:
    - No external dependencies
    - Simulated outages (``available = False`` or ``fail_next(n)``)
    - Change notification on one thread per listener, like a real client's
      long-poll callback threads
    - Call counters for assertions
    """

    def __init__(self, namespaces: dict[str, dict[str, Any]] | None = None):
        self._namespaces: dict[str, dict[str, Any]] = {
            name: dict(values) for name, values in (namespaces or {}).items()
        }
        self._listeners: list[ChangeListener] = []
        self._lock = threading.Lock()
        self._failures_left = 0
        self.available = True
        self.fetch_calls = 0
        self.connect_calls: list[RemoteConfig] = []

    def factory(self, remote: RemoteConfig) -> InMemoryRemoteSource:
        """Source factory returning this instance; records the connection block."""
        with self._lock:
            self.connect_calls.append(remote)
        return self

    def fail_next(self, count: int) -> None:
        """Make the next ``count`` fetches fail with RemoteFetchError."""
        with self._lock:
            self._failures_left = count

    def fetch(self, namespace: str, key: str) -> Any:
        """Return the current raw value of ``key`` in ``namespace``."""
        with self._lock:
            self.fetch_calls += 1
            if not self.available:
                raise RemoteFetchError("config source unavailable", namespace=namespace, key=key)
            if self._failures_left > 0:
                self._failures_left -= 1
                raise RemoteFetchError("config source unavailable", namespace=namespace, key=key)

            store = self._namespaces.get(namespace)
            if store is None:
                raise RemoteFetchError(
                    f"[conf] namespace [{namespace}] not exist, please check it", namespace=namespace, key=key
                )
            if key not in store:
                raise RemoteFetchError(
                    f"[conf] key [{key}] not found in namespace [{namespace}]", namespace=namespace, key=key
                )
            return store[key]

    def subscribe(self, listener: ChangeListener) -> None:
        """Register a listener for every future namespace change."""
        with self._lock:
            self._listeners.append(listener)

    @property
    def listeners(self) -> list[ChangeListener]:
        """Registered listeners (for testing)."""
        with self._lock:
            return list(self._listeners)

    def publish(self, namespace: str, values: dict[str, Any], wait: bool = True) -> list[threading.Thread]:
        """
        Replace the contents of ``namespace`` and notify listeners.

        Args:
            namespace: Namespace to replace
            values: New complete key -> raw value mapping
            wait: Join the notification threads before returning

        Returns:
            The notification threads
        """
        with self._lock:
            old = self._namespaces.get(namespace, {})
            new = dict(values)
            self._namespaces[namespace] = new
            listeners = list(self._listeners)

        diff = ChangeEvent(namespace=namespace, changes=_diff(old, new))
        full = FullChangeEvent(namespace=namespace, changes=dict(new))
        return self._dispatch(listeners, diff, full, wait)

    def push_full_change(self, event: FullChangeEvent, wait: bool = True) -> list[threading.Thread]:
        """Deliver a full-change event as-is, without touching stored values."""
        listeners = self.listeners
        diff = ChangeEvent(namespace=event.namespace)
        return self._dispatch(listeners, diff, event, wait)

    def _dispatch(
        self,
        listeners: list[ChangeListener],
        diff: ChangeEvent,
        full: FullChangeEvent,
        wait: bool,
    ) -> list[threading.Thread]:
        threads = [
            threading.Thread(
                target=_notify,
                args=(listener, diff, full),
                name=f"confsync-notify-{full.namespace}",
                daemon=True,
            )
            for listener in listeners
        ]
        for thread in threads:
            thread.start()
        if wait:
            for thread in threads:
                thread.join()
        return threads


def _notify(listener: ChangeListener, diff: ChangeEvent, full: FullChangeEvent) -> None:
    try:
        listener.on_change(diff)
        listener.on_full_change(full)
    except Exception:
        # Top of a notification thread; nobody else would see it
        logger.exception(f"Listener {listener!r} failed handling change of {full.namespace}")


def _diff(old: dict[str, Any], new: dict[str, Any]) -> dict[str, ConfigChange]:
    changes: dict[str, ConfigChange] = {}
    for key, value in new.items():
        if key not in old:
            changes[key] = ConfigChange(None, value, ChangeType.ADDED)
        elif old[key] != value:
            changes[key] = ConfigChange(old[key], value, ChangeType.MODIFIED)
    for key, value in old.items():
        if key not in new:
            changes[key] = ConfigChange(value, None, ChangeType.DELETED)
    return changes

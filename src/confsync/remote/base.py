"""
Remote config source interface.

A remote source is the config-center client (Apollo or similar). confsync
only needs two capabilities from it:

- ``fetch(namespace, key)``: return the current raw value of one key
- ``subscribe(listener)``: deliver future change events for the namespace

The client's wire protocol, long polling and authentication are the
source's business; confsync never looks inside the connection block it
forwards to the factory.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from confsync.config.loader import RemoteConfig


class ChangeType(StrEnum):
    """Kind of change for a single key."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class ConfigChange:
    """Old and new raw value of one key."""

    old_value: Any
    new_value: Any
    change_type: ChangeType


@dataclass(frozen=True)
class ChangeEvent:
    """Per-key diff of a namespace change."""

    namespace: str
    changes: dict[str, ConfigChange] = field(default_factory=dict)


@dataclass(frozen=True)
class FullChangeEvent:
    """
    Full snapshot of a namespace after a change.

    ``changes`` maps every key of the namespace to its current raw value,
    not just the keys that changed.
    """

    namespace: str
    changes: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class ChangeListener(Protocol):
    """Receiver of namespace change notifications."""

    def on_change(self, event: ChangeEvent) -> None: ...

    def on_full_change(self, event: FullChangeEvent) -> None: ...


@runtime_checkable
class RemoteSource(Protocol):
    """Capability consumed from a config-center client."""

    def fetch(self, namespace: str, key: str) -> Any:
        """
        Return the current raw value for ``key``.

        Raises:
            RemoteFetchError: the source is unreachable, or the namespace or
                key does not exist
        """
        ...

    def subscribe(self, listener: ChangeListener) -> None:
        """Register ``listener`` for every future change of the namespace."""
        ...


# Builds a connected source from the session's connection block
SourceFactory = Callable[["RemoteConfig"], RemoteSource]

"""
Remote config source capability and an in-memory implementation.
"""

from confsync.remote.base import (
    ChangeEvent,
    ChangeListener,
    ChangeType,
    ConfigChange,
    FullChangeEvent,
    RemoteSource,
    SourceFactory,
)
from confsync.remote.memory import InMemoryRemoteSource

__all__ = [
    "RemoteSource",
    "SourceFactory",
    "ChangeListener",
    "ChangeEvent",
    "ChangeType",
    "ConfigChange",
    "FullChangeEvent",
    "InMemoryRemoteSource",
]

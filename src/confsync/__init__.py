"""
confsync - keep typed configuration in sync with a remote config-center key.

Bounded-retry acquisition, a local fallback file, and live updates pushed by
the config source.
"""

__version__ = "0.1.0"

# Session configuration
from confsync.config.loader import RemoteConfig, RetryBudget, SessionConfig, load_session_config

# Sync
from confsync.core.controller import SyncController, apply
from confsync.core.decoder import Format, decode, detect_format
from confsync.core.fallback import FallbackStore, fallback_path
from confsync.core.session import SessionState, SyncSession

# Exceptions
from confsync.exceptions import (
    ConfigurationError,
    ConfsyncError,
    DecodeError,
    FallbackError,
    FallbackIOError,
    FallbackUnavailableError,
    InvalidDestinationError,
    RemoteFetchError,
)

# Remote source capability
from confsync.remote import (
    ChangeEvent,
    ChangeListener,
    FullChangeEvent,
    InMemoryRemoteSource,
    RemoteSource,
)

# Logging utilities
from confsync.utils.logging import get_logger, setup_logging, setup_logging_from_config

__all__ = [
    "__version__",
    # Entry points
    "apply",
    "SyncController",
    "SyncSession",
    "SessionState",
    # Configuration
    "SessionConfig",
    "RetryBudget",
    "RemoteConfig",
    "load_session_config",
    # Decoding
    "Format",
    "decode",
    "detect_format",
    # Fallback
    "FallbackStore",
    "fallback_path",
    # Remote
    "RemoteSource",
    "ChangeListener",
    "ChangeEvent",
    "FullChangeEvent",
    "InMemoryRemoteSource",
    # Exceptions
    "ConfsyncError",
    "ConfigurationError",
    "InvalidDestinationError",
    "RemoteFetchError",
    "DecodeError",
    "FallbackError",
    "FallbackUnavailableError",
    "FallbackIOError",
    # Logging
    "get_logger",
    "setup_logging",
    "setup_logging_from_config",
]

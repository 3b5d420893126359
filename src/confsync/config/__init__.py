"""
Configuration management.

Session configuration, YAML loading and environment resolution.
"""

from confsync.config.loader import (
    RemoteConfig,
    RetryBudget,
    SessionConfig,
    load_config_data,
    load_session_config,
)
from confsync.config.resolver import resolve_session_block

__all__ = [
    "SessionConfig",
    "RetryBudget",
    "RemoteConfig",
    "load_session_config",
    "load_config_data",
    "resolve_session_block",
]

"""
confsync exception hierarchy.

All domain-specific exceptions inherit from ConfsyncError, making it easy
to catch any library error with a single base class while still allowing
fine-grained handling when needed.

Hierarchy::

    ConfsyncError
    ├── ConfigurationError          - session config loading, parsing, validation
    ├── InvalidDestinationError     - destination cannot be mutated in place
    ├── RemoteFetchError            - remote source unreachable / key missing
    ├── DecodeError                 - raw value is neither JSON nor YAML, or wrong shape
    └── FallbackError               - local fallback file problems
        ├── FallbackUnavailableError - fallback file does not exist
        └── FallbackIOError          - fallback file unreadable / unwritable
"""

from __future__ import annotations


class ConfsyncError(Exception):
    """Base exception for all confsync errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(ConfsyncError):
    """Raised when session configuration loading, parsing, or validation fails."""


# --- Destination -------------------------------------------------------------


class InvalidDestinationError(ConfsyncError):
    """Raised when the destination is not a mutable, addressable value.

    This is a programming error and is never retried.
    """

    def __init__(self, message: str, *, destination_type: str | None = None) -> None:
        super().__init__(message, details={"destination_type": destination_type})
        self.destination_type = destination_type


# --- Remote ------------------------------------------------------------------


class RemoteFetchError(ConfsyncError):
    """Raised when the remote config source cannot deliver a value."""

    def __init__(
        self,
        message: str,
        *,
        namespace: str | None = None,
        key: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, details={"namespace": namespace, "key": key})
        self.namespace = namespace
        self.key = key
        if cause is not None:
            self.__cause__ = cause


# --- Decoding ----------------------------------------------------------------


class DecodeError(ConfsyncError):
    """Raised when a raw value cannot be decoded into the destination."""

    def __init__(self, message: str, *, format: str | None = None, path: str | None = None) -> None:
        super().__init__(message, details={"format": format, "path": path})
        self.format = format
        self.path = path


# --- Fallback ----------------------------------------------------------------


class FallbackError(ConfsyncError):
    """Raised when the local fallback file cannot be used."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message, details={"path": path})
        self.path = path


class FallbackUnavailableError(FallbackError):
    """Raised when no fallback file exists for a session."""


class FallbackIOError(FallbackError):
    """Raised when the fallback file exists but cannot be read or written."""

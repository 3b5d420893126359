"""
Tests for the exception hierarchy.
"""

import pytest

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


class TestHierarchy:
    """Verify all exceptions inherit from ConfsyncError."""

    @pytest.mark.parametrize(
        "exc_class",
        [
            ConfigurationError,
            InvalidDestinationError,
            RemoteFetchError,
            DecodeError,
            FallbackError,
            FallbackUnavailableError,
            FallbackIOError,
        ],
    )
    def test_inherits_from_confsync_error(self, exc_class):
        assert issubclass(exc_class, ConfsyncError)

    def test_fallback_errors_inherit_fallback(self):
        assert issubclass(FallbackUnavailableError, FallbackError)
        assert issubclass(FallbackIOError, FallbackError)

    def test_remote_and_decode_are_distinct(self):
        assert not issubclass(DecodeError, RemoteFetchError)
        assert not issubclass(RemoteFetchError, DecodeError)


class TestExceptionMessages:
    """Test exception constructors and details."""

    def test_confsync_error(self):
        e = ConfsyncError("boom", details={"key": "val"})
        assert str(e) == "boom"
        assert e.message == "boom"
        assert e.details == {"key": "val"}

    def test_default_details(self):
        assert ConfigurationError("bad").details == {}

    def test_remote_fetch_error(self):
        cause = ConnectionRefusedError("refused")
        e = RemoteFetchError("down", namespace="application", key="db.yaml", cause=cause)
        assert e.namespace == "application"
        assert e.key == "db.yaml"
        assert e.details == {"namespace": "application", "key": "db.yaml"}
        assert e.__cause__ is cause

    def test_decode_error(self):
        e = DecodeError("bad shape", format="yaml", path="$.db.port")
        assert e.format == "yaml"
        assert e.path == "$.db.port"

    def test_fallback_error_path(self):
        e = FallbackUnavailableError("missing", path="./application_db.txt")
        assert e.path == "./application_db.txt"
        assert e.details["path"] == "./application_db.txt"

    def test_invalid_destination(self):
        e = InvalidDestinationError("nope", destination_type="int")
        assert e.destination_type == "int"

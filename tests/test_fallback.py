"""
Tests for the local fallback file store.
"""

from dataclasses import dataclass
from pathlib import Path

import pytest

from confsync.core.decoder import decode
from confsync.core.fallback import FallbackStore, fallback_path
from confsync.exceptions import FallbackIOError, FallbackUnavailableError


@dataclass
class Feature:
    enabled: bool = False
    rollout: int = 0


class TestFallbackPath:
    def test_derived_from_namespace_and_key(self, tmp_path):
        assert fallback_path("application", "flags.yaml", tmp_path) == tmp_path / "application_flags.yaml.txt"

    def test_default_is_working_directory(self):
        assert fallback_path("application", "flags") == Path("application_flags.txt")

    def test_deterministic(self, tmp_path):
        store = FallbackStore(tmp_path)
        assert store.path_for("a", "b") == store.path_for("a", "b")
        assert store.path_for("a", "b") != store.path_for("a", "c")


class TestFallbackStore:
    """Tests for FallbackStore read/write."""

    def test_write_then_read(self, tmp_path):
        store = FallbackStore(tmp_path)
        path = store.path_for("application", "flags")
        store.write(path, "enabled: true\n")
        assert store.read(path) == "enabled: true\n"

    def test_overwrites(self, tmp_path):
        store = FallbackStore(tmp_path)
        path = store.path_for("application", "flags")
        store.write(path, "first: value with a long tail\n")
        store.write(path, "second: 2\n")
        assert path.read_text() == "second: 2\n"

    def test_bytes_written_as_text(self, tmp_path):
        store = FallbackStore(tmp_path)
        path = store.path_for("application", "flags")
        store.write(path, b'{"enabled": true}')
        assert path.read_text() == '{"enabled": true}'

    def test_non_string_written_as_str(self, tmp_path):
        store = FallbackStore(tmp_path)
        path = store.path_for("application", "count")
        store.write(path, 42)
        assert store.read(path) == "42"

    def test_read_missing(self, tmp_path):
        store = FallbackStore(tmp_path)
        with pytest.raises(FallbackUnavailableError) as exc_info:
            store.read(store.path_for("application", "missing"))
        assert exc_info.value.path.endswith("application_missing.txt")

    def test_read_unreadable(self, tmp_path):
        store = FallbackStore(tmp_path)
        path = store.path_for("application", "dir")
        path.mkdir()
        with pytest.raises(FallbackIOError):
            store.read(path)

    def test_write_failure(self, tmp_path):
        store = FallbackStore(tmp_path / "does-not-exist")
        with pytest.raises(FallbackIOError, match="Cannot write fallback file"):
            store.write(store.path_for("application", "flags"), "enabled: true")


class TestRoundTrip:
    def test_persisted_value_restores_equal(self, tmp_path):
        raw = '{"enabled": true, "rollout": 25}'
        original = Feature()
        decode(raw, original)

        store = FallbackStore(tmp_path)
        path = store.path_for("application", "feature")
        store.write(path, raw)

        restored = Feature()
        decode(store.read(path), restored)
        assert restored == original

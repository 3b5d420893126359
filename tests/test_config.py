"""
Tests for session configuration loading and resolution.
"""

import pytest

from confsync.config.loader import (
    RemoteConfig,
    RetryBudget,
    SessionConfig,
    _merge_dict,
    load_config_data,
    load_session_config,
)
from confsync.config.resolver import resolve_session_block
from confsync.exceptions import ConfigurationError


class TestRetryBudget:
    """Tests for RetryBudget."""

    def test_defaults(self):
        budget = RetryBudget()
        assert budget.max_retries == 3
        assert budget.interval_seconds == 1

    def test_zero_allowed(self):
        budget = RetryBudget(max_retries=0, interval_seconds=0)
        assert budget.max_wait_seconds == 0

    def test_negative_retries_rejected(self):
        with pytest.raises(ConfigurationError, match="max_retries must be >= 0"):
            RetryBudget(max_retries=-1)

    def test_negative_interval_rejected(self):
        with pytest.raises(ConfigurationError, match="interval_seconds must be >= 0"):
            RetryBudget(interval_seconds=-5)

    def test_max_wait(self):
        assert RetryBudget(max_retries=4, interval_seconds=5).max_wait_seconds == 20


class TestSessionConfig:
    """Tests for SessionConfig validation and derived views."""

    def test_basic(self):
        cfg = SessionConfig(namespace="application", key="db.yaml")
        assert cfg.cluster == "default"
        assert cfg.max_retries == 3
        assert cfg.retry_interval_seconds == 1

    def test_empty_namespace_rejected(self):
        with pytest.raises(ConfigurationError, match="namespace must be a non-empty string"):
            SessionConfig(namespace="", key="db.yaml")

    def test_empty_key_rejected(self):
        with pytest.raises(ConfigurationError, match="key must be a non-empty string"):
            SessionConfig(namespace="application", key="")

    def test_negative_retries_rejected(self):
        with pytest.raises(ConfigurationError, match="max_retries must be >= 0"):
            SessionConfig(namespace="application", key="k", max_retries=-1)

    def test_bool_retries_rejected(self):
        with pytest.raises(ConfigurationError, match="max_retries must be an integer"):
            SessionConfig(namespace="application", key="k", max_retries=True)

    def test_retry_budget(self):
        cfg = SessionConfig(namespace="application", key="k", max_retries=5, retry_interval_seconds=2)
        assert cfg.retry_budget == RetryBudget(max_retries=5, interval_seconds=2)

    def test_remote_block(self):
        cfg = SessionConfig(
            namespace="application",
            key="k",
            app_id="billing",
            address="http://config:8080",
            secret="s3cr3t",
            cluster="east",
        )
        assert cfg.remote == RemoteConfig(
            app_id="billing",
            address="http://config:8080",
            secret="s3cr3t",
            cluster="east",
            namespace="application",
        )

    def test_frozen(self):
        cfg = SessionConfig(namespace="application", key="k")
        with pytest.raises(AttributeError):
            cfg.key = "other"


class TestFromMapping:
    """Tests for SessionConfig.from_mapping."""

    def test_snake_case(self):
        cfg = SessionConfig.from_mapping(
            {"app_id": "billing", "address": "http://c", "namespace": "application", "key": "k", "max_retries": 2}
        )
        assert cfg.app_id == "billing"
        assert cfg.max_retries == 2

    def test_camel_case(self):
        cfg = SessionConfig.from_mapping(
            {
                "AppID": "billing",
                "IP": "http://config:8080",
                "Secret": "abc",
                "Cluster": "default",
                "Namespace": "application",
                "Key": "billing.yaml",
                "MaxRetries": 4,
                "RetryIntervalSec": 3,
            }
        )
        assert cfg.app_id == "billing"
        assert cfg.address == "http://config:8080"
        assert cfg.max_retries == 4
        assert cfg.retry_interval_seconds == 3

    def test_string_integers_converted(self):
        cfg = SessionConfig.from_mapping({"namespace": "a", "key": "k", "maxRetries": "7"})
        assert cfg.max_retries == 7

    def test_bad_integer_string(self):
        with pytest.raises(ConfigurationError, match="max_retries must be an integer"):
            SessionConfig.from_mapping({"namespace": "a", "key": "k", "max_retries": "many"})

    def test_unknown_keys_ignored(self):
        cfg = SessionConfig.from_mapping({"namespace": "a", "key": "k", "color": "blue"})
        assert cfg.key == "k"

    def test_missing_namespace(self):
        with pytest.raises(ConfigurationError, match="namespace"):
            SessionConfig.from_mapping({"key": "k"})

    def test_non_mapping(self):
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            SessionConfig.from_mapping(["namespace", "key"])


class TestLoadSessionConfig:
    """Tests for load_session_config."""

    def test_load_basic(self, tmp_path):
        (tmp_path / "confsync.yaml").write_text(
            "apollo:\n  app_id: billing\n  namespace: application\n  key: billing.yaml\n  max_retries: 2\n"
        )
        cfg = load_session_config(tmp_path)
        assert cfg.app_id == "billing"
        assert cfg.namespace == "application"
        assert cfg.max_retries == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="confsync.yaml"):
            load_session_config(tmp_path)

    def test_env_overlay(self, tmp_path):
        (tmp_path / "confsync.yaml").write_text("apollo:\n  namespace: application\n  key: k\n  max_retries: 1\n")
        (tmp_path / "confsync.prod.yaml").write_text("apollo:\n  max_retries: 9\n  cluster: prod\n")
        cfg = load_session_config(tmp_path, env="prod")
        assert cfg.namespace == "application"  # from base
        assert cfg.max_retries == 9  # overridden
        assert cfg.cluster == "prod"  # added

    def test_env_var_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("APOLLO_SECRET", "top-secret")
        (tmp_path / "confsync.yaml").write_text(
            "apollo:\n  namespace: application\n  key: k\n  secret: ${APOLLO_SECRET}\n"
        )
        cfg = load_session_config(tmp_path)
        assert cfg.secret == "top-secret"

    def test_env_placeholder(self, tmp_path):
        (tmp_path / "confsync.yaml").write_text("apollo:\n  namespace: app-{env}\n  key: k\n")
        cfg = load_session_config(tmp_path, env="staging")
        assert cfg.namespace == "app-staging"

    def test_unset_variable_in_section(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CONFSYNC_MISSING_SECRET", raising=False)
        (tmp_path / "confsync.yaml").write_text(
            "apollo:\n  namespace: application\n  key: k\n  secret: ${CONFSYNC_MISSING_SECRET}\n"
        )
        with pytest.raises(ConfigurationError, match="Unset environment variables"):
            load_session_config(tmp_path)

    def test_other_sections_not_resolved(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CONFSYNC_MISSING_SECRET", raising=False)
        (tmp_path / "confsync.yaml").write_text(
            "apollo:\n  namespace: application\n  key: k\n"
            "billing:\n  namespace: billing\n  key: k\n  secret: ${CONFSYNC_MISSING_SECRET}\n"
        )
        assert load_session_config(tmp_path).namespace == "application"
        assert load_config_data(tmp_path)["billing"]["secret"] == "${CONFSYNC_MISSING_SECRET}"

    def test_custom_section(self, tmp_path):
        (tmp_path / "confsync.yaml").write_text("billing:\n  namespace: application\n  key: billing.json\n")
        cfg = load_session_config(tmp_path, section="billing")
        assert cfg.key == "billing.json"

    def test_missing_section(self, tmp_path):
        (tmp_path / "confsync.yaml").write_text("other: {}\n")
        with pytest.raises(ConfigurationError, match="Section 'apollo' not found"):
            load_session_config(tmp_path)

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "confsync.yaml").write_text(":\n  :\n  invalid: [")
        with pytest.raises(ConfigurationError, match="Error parsing"):
            load_session_config(tmp_path)

    def test_non_mapping_yaml(self, tmp_path):
        (tmp_path / "confsync.yaml").write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_config_data(tmp_path)

    def test_empty_file(self, tmp_path):
        (tmp_path / "confsync.yaml").write_text("")
        assert load_config_data(tmp_path) == {}


class TestResolveSessionBlock:
    """Tests for resolve_session_block."""

    def test_variable_substituted(self, monkeypatch):
        monkeypatch.setenv("APOLLO_ADDR", "http://config:8080")
        block = {"address": "${APOLLO_ADDR}", "max_retries": 3}
        assert resolve_session_block(block) == {"address": "http://config:8080", "max_retries": 3}

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("APOLLO_CLUSTER", raising=False)
        assert resolve_session_block({"cluster": "${APOLLO_CLUSTER:-default}"}) == {"cluster": "default"}

    def test_default_ignored_when_set(self, monkeypatch):
        monkeypatch.setenv("APOLLO_CLUSTER", "blue")
        assert resolve_session_block({"cluster": "${APOLLO_CLUSTER:-default}"}) == {"cluster": "blue"}

    def test_unset_variable_rejected(self, monkeypatch):
        monkeypatch.delenv("CONFSYNC_UNSET_VAR", raising=False)
        with pytest.raises(ConfigurationError, match=r"secret: \$\{CONFSYNC_UNSET_VAR\}") as exc_info:
            resolve_session_block({"secret": "${CONFSYNC_UNSET_VAR}"})
        assert exc_info.value.details["missing"] == ["secret: ${CONFSYNC_UNSET_VAR}"]

    def test_env_placeholder(self):
        assert resolve_session_block({"namespace": "application-{env}"}, env="prod") == {
            "namespace": "application-prod"
        }

    def test_only_string_fields_resolved(self, monkeypatch):
        monkeypatch.setenv("HOST", "db1")
        block = {"key": "${HOST}", "extra": {"nested": "${HOST}"}, "tags": ["{env}"]}
        resolved = resolve_session_block(block, env="prod")
        assert resolved == {"key": "db1", "extra": {"nested": "${HOST}"}, "tags": ["{env}"]}

    def test_block_not_mutated(self, monkeypatch):
        monkeypatch.setenv("HOST", "db1")
        block = {"key": "${HOST}"}
        resolve_session_block(block)
        assert block == {"key": "${HOST}"}

    def test_non_mapping_passed_through(self):
        assert resolve_session_block(["a"]) == ["a"]


class TestMergeDict:
    """Tests for _merge_dict helper."""

    def test_nested_merge(self):
        base = {"a": {"x": 1, "y": 2}}
        _merge_dict(base, {"a": {"y": 3, "z": 4}})
        assert base == {"a": {"x": 1, "y": 3, "z": 4}}

    def test_replace_non_dict(self):
        base = {"a": "string"}
        _merge_dict(base, {"a": {"nested": True}})
        assert base == {"a": {"nested": True}}

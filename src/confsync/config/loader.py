"""
Session configuration and its YAML loading.

A sync session is described by a single ``apollo`` section::

    apollo:
      app_id: billing
      address: http://config-service:8080
      secret: ${APOLLO_SECRET}
      cluster: default
      namespace: application
      key: billing.yaml
      max_retries: 3
      retry_interval_seconds: 2

The original camelCase spellings (``appId``, ``ip``, ``maxRetries``,
``retryIntervalSec``) are accepted as well.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from confsync.config.resolver import resolve_session_block
from confsync.exceptions import ConfigurationError

# Alternate spellings -> canonical field name
_ALIASES = {
    "appid": "app_id",
    "app_id": "app_id",
    "ip": "address",
    "address": "address",
    "secret": "secret",
    "cluster": "cluster",
    "namespace": "namespace",
    "namespacename": "namespace",
    "key": "key",
    "maxretries": "max_retries",
    "max_retries": "max_retries",
    "retryintervalsec": "retry_interval_seconds",
    "retry_interval_sec": "retry_interval_seconds",
    "retry_interval_seconds": "retry_interval_seconds",
}

_INT_FIELDS = ("max_retries", "retry_interval_seconds")


@dataclass(frozen=True)
class RetryBudget:
    """
    Bounded retry configuration for the initial acquisition.

    ``max_retries`` is the total number of remote attempts; zero means the
    remote source is never contacted and the fallback file is used directly.
    """

    max_retries: int = 3
    interval_seconds: int = 1

    def __post_init__(self):
        """Validate configuration."""
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be >= 0")
        if self.interval_seconds < 0:
            raise ConfigurationError("interval_seconds must be >= 0")

    @property
    def max_wait_seconds(self) -> int:
        """Upper bound on time spent sleeping before giving up on the remote source."""
        return self.max_retries * self.interval_seconds


@dataclass(frozen=True)
class RemoteConfig:
    """Connection block handed to the remote source factory as-is."""

    app_id: str
    address: str
    secret: str
    cluster: str
    namespace: str


@dataclass(frozen=True)
class SessionConfig:
    """Everything needed to bind one (namespace, key) to a destination."""

    namespace: str
    key: str
    app_id: str = ""
    address: str = ""
    secret: str = ""
    cluster: str = "default"
    max_retries: int = 3
    retry_interval_seconds: int = 1

    def __post_init__(self):
        errors = []
        if not isinstance(self.namespace, str) or not self.namespace:
            errors.append("namespace must be a non-empty string")
        if not isinstance(self.key, str) or not self.key:
            errors.append("key must be a non-empty string")
        for name in _INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                errors.append(f"{name} must be an integer, got {type(value).__name__}")
            elif value < 0:
                errors.append(f"{name} must be >= 0")
        if errors:
            raise ConfigurationError("Invalid session configuration:\n  " + "\n  ".join(errors))

    @property
    def retry_budget(self) -> RetryBudget:
        return RetryBudget(max_retries=self.max_retries, interval_seconds=self.retry_interval_seconds)

    @property
    def remote(self) -> RemoteConfig:
        return RemoteConfig(
            app_id=self.app_id,
            address=self.address,
            secret=self.secret,
            cluster=self.cluster,
            namespace=self.namespace,
        )

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "SessionConfig":
        """
        Build a SessionConfig from a mapping with snake_case or camelCase keys.

        Unknown keys are ignored. Integer fields given as strings (typical
        after ``${VAR}`` substitution) are converted.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"Session configuration must be a mapping, got {type(data).__name__}")

        values: dict[str, Any] = {}
        for raw_name, value in data.items():
            name = _ALIASES.get(str(raw_name).lower())
            if name is not None:
                values[name] = value

        for name in _INT_FIELDS:
            if name in values and isinstance(values[name], str):
                try:
                    values[name] = int(values[name])
                except ValueError:
                    raise ConfigurationError(f"{name} must be an integer, got {values[name]!r}") from None

        for name in ("namespace", "key"):
            values.setdefault(name, "")

        return cls(**values)


def load_session_config(
    project_path: Path | None = None,
    env: str | None = None,
    section: str = "apollo",
    filename: str = "confsync.yaml",
) -> SessionConfig:
    """
    Load a session configuration from YAML.

    Loads ``confsync.yaml`` and ``confsync.{env}.yaml`` (env overrides base),
    reads ``section`` and resolves ``${VAR}`` / ``{env}`` placeholders in it.

    Args:
        project_path: Directory holding the config files (default: current directory)
        env: Environment name (dev, staging, prod)
        section: Top-level key holding the session block
        filename: Base config filename

    Returns:
        SessionConfig built from the merged section
    """
    data = load_config_data(project_path, env=env, filename=filename)
    if section not in data:
        raise ConfigurationError(f"Section '{section}' not found in {filename}", details={"section": section})
    return SessionConfig.from_mapping(resolve_session_block(data[section], env or "dev"))


def load_config_data(
    project_path: Path | None = None,
    env: str | None = None,
    filename: str = "confsync.yaml",
) -> dict[str, Any]:
    """Load the base YAML mapping with the environment overlay merged in."""
    if project_path is None:
        project_path = Path.cwd()

    base_config_path = project_path / filename
    if not base_config_path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {base_config_path}\n"
            f"  Suggestion: Create a {filename} file in your project root"
        )

    config_data = _read_yaml(base_config_path)

    if env:
        stem, _, suffix = filename.rpartition(".")
        env_config_path = project_path / f"{stem}.{env}.{suffix}"
        if env_config_path.exists():
            _merge_dict(config_data, _read_yaml(env_config_path))

    return config_data


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark is not None else ""
        raise ConfigurationError(
            f"Error parsing {path.name}{where}:\n"
            f"  {e}\n"
            f"  Suggestion: Check YAML syntax, ensure proper indentation and quotes",
            details={"path": str(path)},
        ) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}", details={"path": str(path)}) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path.name} must contain a mapping, got {type(data).__name__}")
    return data


def _merge_dict(base: dict, override: dict):
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value

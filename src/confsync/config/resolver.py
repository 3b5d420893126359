"""
Placeholder substitution for the session block.

Only the scalar string fields of the block handed to
``SessionConfig.from_mapping`` are resolved:

- ``${NAME}`` is replaced by the environment variable ``NAME``;
- ``${NAME:-fallback}`` uses ``fallback`` when ``NAME`` is unset;
- ``{env}`` is replaced by the active environment name, so one file can
  point each environment at its own namespace (``application-{env}``).

A ``${NAME}`` without a default whose variable is unset is an error: a
literal placeholder left in ``address`` or ``secret`` would only surface
later as a fetch failure on every retry.
"""

import os
import re
from typing import Any

from confsync.exceptions import ConfigurationError

_PLACEHOLDER = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}")


def resolve_session_block(block: Any, env: str = "dev") -> Any:
    """
    Resolve placeholders in the string fields of a session block.

    Nested values are returned unchanged; the session block is flat. A
    non-mapping ``block`` is returned as-is for ``from_mapping`` to reject.

    Args:
        block: The raw session section (e.g. ``apollo:`` of confsync.yaml)
        env: Active environment name

    Returns:
        A new mapping with resolved string fields

    Raises:
        ConfigurationError: a field references an unset variable without a default
    """
    if not isinstance(block, dict):
        return block

    resolved: dict[str, Any] = {}
    missing: list[str] = []
    for field_name, value in block.items():
        if isinstance(value, str):
            value = _resolve_field(field_name, value, env, missing)
        resolved[field_name] = value

    if missing:
        raise ConfigurationError(
            "Unset environment variables in session configuration:\n  " + "\n  ".join(missing),
            details={"missing": missing},
        )
    return resolved


def _resolve_field(field_name: str, value: str, env: str, missing: list[str]) -> str:
    def substitute(match: re.Match) -> str:
        name = match.group("name")
        default = match.group("default")
        found = os.environ.get(name)
        if found is not None:
            return found
        if default is not None:
            return default
        missing.append(f"{field_name}: ${{{name}}}")
        return match.group(0)

    return _PLACEHOLDER.sub(substitute, value).replace("{env}", env)

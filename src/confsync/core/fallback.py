"""
Local fallback file for the last successfully parsed config value.

One plain-text file per (namespace, key), named ``<namespace>_<key>.txt``
in the working directory (or a chosen base directory). Namespace and key
are interpolated as-is; callers must not use path separators in them.

Known limitations:
- files are overwritten in place, so a concurrent reader may observe a
  partially written file
- there is no cross-process locking; processes sharing a working directory
  and (namespace, key) race on the same file
"""

from pathlib import Path
from typing import Any

from confsync.core.decoder import as_text
from confsync.exceptions import FallbackIOError, FallbackUnavailableError
from confsync.utils.logging import get_logger

logger = get_logger("confsync.fallback")


def fallback_path(namespace: str, key: str, base_dir: str | Path | None = None) -> Path:
    """Fallback file path for a (namespace, key) pair."""
    return Path(base_dir if base_dir is not None else ".") / f"{namespace}_{key}.txt"


class FallbackStore:
    """Reads and writes fallback files under ``base_dir``."""

    def __init__(self, base_dir: str | Path | None = None):
        self.base_dir = Path(base_dir) if base_dir is not None else Path(".")

    def path_for(self, namespace: str, key: str) -> Path:
        return fallback_path(namespace, key, self.base_dir)

    def write(self, path: Path, raw: Any) -> None:
        """
        Overwrite ``path`` with the textual form of ``raw``.

        Raises:
            FallbackIOError: the file cannot be written
        """
        logger.info(f"Writing config to fallback file {path}")
        try:
            path.write_text(as_text(raw), encoding="utf-8")
        except OSError as e:
            raise FallbackIOError(f"Cannot write fallback file {path}: {e}", path=str(path)) from e

    def read(self, path: Path) -> str:
        """
        Read the raw text stored at ``path``.

        Raises:
            FallbackUnavailableError: the file does not exist
            FallbackIOError: the file exists but cannot be read
        """
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise FallbackUnavailableError(f"No fallback file at {path}", path=str(path)) from e
        except (OSError, UnicodeDecodeError) as e:
            raise FallbackIOError(f"Cannot read fallback file {path}: {e}", path=str(path)) from e

"""
Core sync logic: decoding, fallback file, sessions and the acquisition controller.
"""

from confsync.core.controller import SyncController, apply
from confsync.core.decoder import Format, as_text, decode, detect_format, validate_destination
from confsync.core.fallback import FallbackStore, fallback_path
from confsync.core.session import SessionState, SyncSession

__all__ = [
    # Controller
    "SyncController",
    "apply",
    # Session
    "SyncSession",
    "SessionState",
    # Decoder
    "Format",
    "decode",
    "detect_format",
    "validate_destination",
    "as_text",
    # Fallback
    "FallbackStore",
    "fallback_path",
]

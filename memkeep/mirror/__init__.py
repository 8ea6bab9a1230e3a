"""
Remote mirror of the memory log (Mem0).

Provides:
- Async REST client with bounded per-request timeouts
- Tagged-union decoding of remote items (memory, profile snapshot,
  activity summary, unrecognized)
"""

from .client import Mem0Mirror, MirrorError, MirrorRateLimitError
from .records import (
    ACTIVITY_SUMMARY_TYPE,
    PROFILE_SNAPSHOT_TYPE,
    RemoteItem,
    RemoteMemory,
    RemoteProfileSnapshot,
    RemoteSummary,
    UnrecognizedItem,
    decode_item,
)

__all__ = [
    "Mem0Mirror",
    "MirrorError",
    "MirrorRateLimitError",
    "ACTIVITY_SUMMARY_TYPE",
    "PROFILE_SNAPSHOT_TYPE",
    "RemoteItem",
    "RemoteMemory",
    "RemoteProfileSnapshot",
    "RemoteSummary",
    "UnrecognizedItem",
    "decode_item",
]

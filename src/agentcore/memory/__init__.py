"""Persistence for multi-agent dialogue state."""

from .context_store import DEFAULT_STORAGE_DIR, ContextStore, ContextStoreError, safe_lane_id
from .schema import ContextMessage, LaneSnapshot

__all__ = [
    "DEFAULT_STORAGE_DIR",
    "ContextMessage",
    "ContextStore",
    "ContextStoreError",
    "LaneSnapshot",
    "safe_lane_id",
]

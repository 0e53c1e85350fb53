"""Progress persistence: key-value stores, snapshots and autosave timers."""

from .kv import FileStore, InMemoryStore, KeyValueStore, SessionStateStore
from .progress_store import PersistedProgress, ProgressStore

__all__ = ["FileStore", "InMemoryStore", "KeyValueStore", "PersistedProgress", "ProgressStore", "SessionStateStore"]

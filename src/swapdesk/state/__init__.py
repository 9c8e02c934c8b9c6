"""State store interfaces and implementations."""

from .sqlite_store import SqliteKeyValueStore
from .store import KeyValueStore, MemoryStore

__all__ = ["KeyValueStore", "MemoryStore", "SqliteKeyValueStore"]

"""
Storage backends.

Components:
- kv_store.py: SQLite-backed and in-memory key-value storage (KeyValueStorage port)
"""

from .kv_store import MemoryKeyValueStorage, SQLiteKeyValueStorage

__all__ = ["MemoryKeyValueStorage", "SQLiteKeyValueStorage"]

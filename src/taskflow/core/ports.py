# src/taskflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The Store depends on these Protocols instead of concrete implementations,
so storage backends and clocks stay swappable in tests.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Protocol

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


class KeyValueStorage(Protocol):
    """
    Durable key-value storage holding serialized collections.

    Both methods raise StorageUnavailableError when the backend cannot be used.
    get() returns None for a key that was never written.
    """

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

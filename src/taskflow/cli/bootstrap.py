# src/taskflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the storage backend and wires one Store into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import KeyValueStorage
from ..core.state import AppState
from ..storage.kv_store import MemoryKeyValueStorage, SQLiteKeyValueStorage
from ..tasks.store import Store, StoreKeys
from ..views.calendar import CalendarNavigator, Granularity

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_storage(settings) -> KeyValueStorage:
    if settings.storage_backend == "memory":
        logger.info("Using in-memory storage (nothing will be saved).")
        return MemoryKeyValueStorage()
    return SQLiteKeyValueStorage(settings.db_path)


def create_store(settings, storage: KeyValueStorage | None = None) -> Store:
    keys = StoreKeys(tasks=settings.tasks_key, projects=settings.projects_key)
    return Store(storage if storage is not None else create_storage(settings), keys=keys)


def create_initial_state(*, settings=None, storage: KeyValueStorage | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if storage is None and settings.storage_backend != "memory":
        _ensure_local_dirs(settings)

    return AppState(
        settings=settings,
        store=create_store(settings, storage),
        calendar=CalendarNavigator(Granularity(settings.default_calendar_view)),
    )

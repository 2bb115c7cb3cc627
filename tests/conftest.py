# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskflow.core.state import AppState
from taskflow.storage.kv_store import MemoryKeyValueStorage
from taskflow.tasks.store import Store

from .fakes import FakeClock, SequentialIds


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap helpers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskflow-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "taskflow.sqlite3",
        storage_backend="memory",
        tasks_key="test-tasks",
        projects_key="test-projects",
        default_calendar_view="monthly",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def storage() -> MemoryKeyValueStorage:
    return MemoryKeyValueStorage()


@pytest.fixture()
def store(storage: MemoryKeyValueStorage, clock: FakeClock) -> Store:
    return Store(storage, clock=clock, id_factory=SequentialIds("t"))


@pytest.fixture()
def state(settings: SimpleNamespace, store: Store) -> AppState:
    """AppState wired to the in-memory store."""
    return AppState(settings=settings, store=store)

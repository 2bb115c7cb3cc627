# tests/test_storage.py

from __future__ import annotations

import json
import sqlite3
from pathlib import Path

import pytest

from taskflow.cli.bootstrap import create_initial_state, create_storage
from taskflow.core.errors import StorageUnavailableError
from taskflow.storage.kv_store import MemoryKeyValueStorage, SQLiteKeyValueStorage
from taskflow.tasks.store import Store


def test_sqlite_storage_roundtrip(tmp_path: Path) -> None:
    db = tmp_path / "nested" / "kv.sqlite3"
    kv = SQLiteKeyValueStorage(db)
    # the file is only created on first use
    assert not db.exists()

    assert kv.get("missing") is None
    assert db.exists()

    kv.set("a", "1")
    kv.set("b", "2")
    kv.set("a", "3")

    assert kv.get("a") == "3"
    assert kv.keys() == ["a", "b"]

    # A second handle on the same file sees the same data.
    assert SQLiteKeyValueStorage(db).get("b") == "2"


def test_sqlite_storage_wraps_driver_errors(tmp_path: Path) -> None:
    db = tmp_path / "kv.sqlite3"
    kv = SQLiteKeyValueStorage(db)
    kv.set("a", "0")

    conn = sqlite3.connect(str(db))
    conn.execute("DROP TABLE kv")
    conn.commit()
    conn.close()

    with pytest.raises(StorageUnavailableError):
        kv.get("a")
    with pytest.raises(StorageUnavailableError):
        kv.set("a", "1")


def test_store_over_sqlite_survives_restart(tmp_path: Path) -> None:
    db = tmp_path / "taskflow.sqlite3"

    first = Store(SQLiteKeyValueStorage(db))
    project = first.create_project("Home")
    task = first.create_task("water plants", project_id=project.id, due_date="2024-06-10")

    second = Store(SQLiteKeyValueStorage(db))
    assert second.tasks == first.tasks
    assert second.projects == first.projects
    assert second.get_task(task.id).project_id == project.id

    raw = SQLiteKeyValueStorage(db).get("taskflow-tasks")
    assert json.loads(raw or "[]")[0]["dueDate"] == "2024-06-10"


def test_memory_storage_keys_sorted() -> None:
    kv = MemoryKeyValueStorage({"b": "2"})
    kv.set("a", "1")
    assert kv.keys() == ["a", "b"]


def test_bootstrap_picks_backend_and_keys(settings) -> None:
    assert isinstance(create_storage(settings), MemoryKeyValueStorage)

    settings.storage_backend = "sqlite"
    storage = create_storage(settings)
    assert isinstance(storage, SQLiteKeyValueStorage)
    assert storage.db_path == settings.db_path

    state = create_initial_state(settings=settings)
    state.store.create_task("keyed")
    assert storage.get("test-tasks") is not None
    assert storage.get("taskflow-tasks") is None
    state.close()


def test_unreadable_database_degrades_instead_of_crashing(settings) -> None:
    settings.storage_backend = "sqlite"
    settings.db_path.write_bytes(b"definitely not an sqlite database" * 64)

    state = create_initial_state(settings=settings)

    assert state.store.tasks == ()
    assert state.store.projects == ()
    assert isinstance(state.store.last_storage_error, StorageUnavailableError)

    # the session keeps working in memory
    task = state.store.create_task("still usable")
    assert state.store.get_task(task.id) == task
    assert state.store.last_storage_error is not None
    state.close()


def test_sqlite_storage_reports_unopenable_path(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way", encoding="utf-8")
    kv = SQLiteKeyValueStorage(blocker / "kv.sqlite3")

    with pytest.raises(StorageUnavailableError):
        kv.get("a")
    with pytest.raises(StorageUnavailableError):
        kv.set("a", "1")

# src/taskflow/tasks/store.py

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from enum import StrEnum
from typing import Any

from ..core.errors import (
    CycleDetectedError,
    HasChildrenError,
    HasTasksError,
    NotFoundError,
    StorageUnavailableError,
    ValidationError,
)
from ..core.ports import Clock, IdFactory, KeyValueStorage
from .models import (
    DEFAULT_PROJECT_COLOR,
    Priority,
    Project,
    Task,
    TaskStatus,
    parse_due_date,
)

logger = logging.getLogger(__name__)

TASK_FIELDS = frozenset({"title", "description", "priority", "status", "due_date", "project_id"})
PROJECT_FIELDS = frozenset({"name", "description", "parent_id", "color"})


@dataclass(frozen=True, slots=True)
class StoreKeys:
    """Storage keys for the two persisted collections."""

    tasks: str = "taskflow-tasks"
    projects: str = "taskflow-projects"


class Collection(StrEnum):
    TASKS = "tasks"
    PROJECTS = "projects"


class ChangeAction(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    REORDER = "reorder"
    RELOAD = "reload"


@dataclass(frozen=True, slots=True)
class StoreChange:
    collection: Collection
    action: ChangeAction
    ids: tuple[str, ...] = ()


StoreListener = Callable[[StoreChange], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


# ---- field coercion (raises ValidationError) ----


def _required_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


def _optional_text(value: Any, field: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value


def _optional_ref(value: Any, field: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an id string")
    value = value.strip()
    return value or None


def _coerce_priority(value: Any) -> Priority:
    if isinstance(value, str):
        value = value.strip().lower()
    try:
        return Priority(value)
    except ValueError:
        allowed = ", ".join(p.value for p in Priority)
        raise ValidationError(f"priority must be one of: {allowed}") from None


def _coerce_status(value: Any) -> TaskStatus:
    if isinstance(value, str):
        value = value.strip().lower()
    try:
        return TaskStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in TaskStatus)
        raise ValidationError(f"status must be one of: {allowed}") from None


def _coerce_due_date(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, (str, date)):
        raise ValidationError("due_date must be an ISO date (YYYY-MM-DD)")
    parsed = parse_due_date(value)
    if parsed is None:
        raise ValidationError(f"due_date is not a valid date: {value!r}")
    return parsed.isoformat()


# ---- record codec (camelCase keys, as stored) ----


def _dt_to_str(dt: datetime) -> str:
    return dt.isoformat()


def _str_to_dt(raw: Any, fallback: datetime) -> datetime:
    if not isinstance(raw, str) or not raw:
        return fallback
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return fallback
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def task_to_record(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "priority": task.priority.value,
        "status": task.status.value,
        "dueDate": task.due_date,
        "projectId": task.project_id,
        "createdAt": _dt_to_str(task.created_at),
        "updatedAt": _dt_to_str(task.updated_at),
    }


def project_to_record(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "parentId": project.parent_id,
        "color": project.color,
        "createdAt": _dt_to_str(project.created_at),
        "updatedAt": _dt_to_str(project.updated_at),
    }


def record_to_task(raw: dict[str, Any], now: datetime) -> Task | None:
    rid = raw.get("id")
    title = raw.get("title")
    if rid is None or rid == "" or not isinstance(title, str):
        return None
    created_at = _str_to_dt(raw.get("createdAt"), now)
    updated_at = max(created_at, _str_to_dt(raw.get("updatedAt"), created_at))
    due = raw.get("dueDate")
    project_id = raw.get("projectId")
    return Task(
        id=str(rid),
        title=title,
        description=str(raw.get("description") or ""),
        priority=Priority.from_raw(raw.get("priority")),
        status=TaskStatus.from_raw(raw.get("status")),
        due_date=str(due) if due else None,
        project_id=str(project_id) if project_id else None,
        created_at=created_at,
        updated_at=updated_at,
    )


def record_to_project(raw: dict[str, Any], now: datetime) -> Project | None:
    rid = raw.get("id")
    name = raw.get("name")
    if rid is None or rid == "" or not isinstance(name, str):
        return None
    created_at = _str_to_dt(raw.get("createdAt"), now)
    updated_at = max(created_at, _str_to_dt(raw.get("updatedAt"), created_at))
    parent_id = raw.get("parentId")
    description = raw.get("description")
    return Project(
        id=str(rid),
        name=name,
        description=description if isinstance(description, str) else None,
        parent_id=str(parent_id) if parent_id else None,
        color=str(raw.get("color") or DEFAULT_PROJECT_COLOR),
        created_at=created_at,
        updated_at=updated_at,
    )


class Store:
    """
    Authoritative owner of the task and project collections.

    Every successful mutation:
    - replaces the in-memory list (readers only ever see immutable snapshots),
    - writes the whole affected collection to storage (write-through),
    - notifies subscribers with a StoreChange.

    Validation/guard errors are raised before anything changes.
    Storage errors never escape: the first load degrades to empty collections,
    a failed reload keeps the current ones, and a failed write is logged while
    the in-memory state stays authoritative.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        keys: StoreKeys | None = None,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self._storage = storage
        self._keys = keys or StoreKeys()
        self._clock = clock or _utc_now
        self._new_id = id_factory or _new_id
        self._listeners: list[StoreListener] = []
        self.last_storage_error: StorageUnavailableError | None = None

        # An unreadable first load starts empty; later reloads keep what we have.
        self._tasks: list[Task] = self._load_tasks() or []
        self._projects: list[Project] = self._load_projects() or []
        logger.info(
            "Store ready tasks=%d projects=%d keys=%s/%s",
            len(self._tasks),
            len(self._projects),
            self._keys.tasks,
            self._keys.projects,
        )

    # ---- snapshots ----

    @property
    def keys(self) -> StoreKeys:
        return self._keys

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    @property
    def projects(self) -> tuple[Project, ...]:
        return tuple(self._projects)

    def get_task(self, task_id: str) -> Task | None:
        idx = self._task_index(task_id)
        return None if idx is None else self._tasks[idx]

    def get_project(self, project_id: str) -> Project | None:
        idx = self._project_index(project_id)
        return None if idx is None else self._projects[idx]

    # ---- subscriptions ----

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception(
                    "Store listener failed collection=%s action=%s",
                    change.collection.value,
                    change.action.value,
                )

    # ---- tasks ----

    def create_task(
        self,
        title: str,
        *,
        description: str = "",
        priority: Priority | str = Priority.MEDIUM,
        status: TaskStatus | str = TaskStatus.PENDING,
        due_date: str | date | None = None,
        project_id: str | None = None,
    ) -> Task:
        clean_title = _required_text(title, "title")
        clean_description = _optional_text(description, "description") or ""
        clean_priority = _coerce_priority(priority)
        clean_status = _coerce_status(status)
        clean_due = _coerce_due_date(due_date)
        clean_project = _optional_ref(project_id, "project_id")

        now = self._clock()
        task = Task(
            id=self._unique_id({t.id for t in self._tasks}),
            title=clean_title,
            description=clean_description,
            priority=clean_priority,
            status=clean_status,
            due_date=clean_due,
            project_id=clean_project,
            created_at=now,
            updated_at=now,
        )
        self._tasks = [task, *self._tasks]
        logger.debug("Task created id=%s priority=%s status=%s", task.id, task.priority, task.status)
        self._persist_tasks()
        self._emit(StoreChange(Collection.TASKS, ChangeAction.CREATE, (task.id,)))
        return task

    def update_task(self, task_id: str, **fields: Any) -> Task:
        """
        Merge fields into an existing task and refresh updated_at.

        Raises NotFoundError for an unknown id and ValidationError for unknown
        or invalid fields.
        """
        unknown = set(fields) - TASK_FIELDS
        if unknown:
            raise ValidationError(f"Unknown task field(s): {', '.join(sorted(unknown))}")

        idx = self._task_index(task_id)
        if idx is None:
            raise NotFoundError("task", task_id)

        changes: dict[str, Any] = {}
        if "title" in fields:
            changes["title"] = _required_text(fields["title"], "title")
        if "description" in fields:
            changes["description"] = _optional_text(fields["description"], "description") or ""
        if "priority" in fields:
            changes["priority"] = _coerce_priority(fields["priority"])
        if "status" in fields:
            changes["status"] = _coerce_status(fields["status"])
        if "due_date" in fields:
            changes["due_date"] = _coerce_due_date(fields["due_date"])
        if "project_id" in fields:
            changes["project_id"] = _optional_ref(fields["project_id"], "project_id")

        current = self._tasks[idx]
        updated = replace(current, **changes, updated_at=self._touch(current.created_at))
        self._tasks = [*self._tasks[:idx], updated, *self._tasks[idx + 1 :]]
        logger.debug("Task updated id=%s fields=%s", task_id, sorted(changes))
        self._persist_tasks()
        self._emit(StoreChange(Collection.TASKS, ChangeAction.UPDATE, (task_id,)))
        return updated

    def delete_task(self, task_id: str) -> bool:
        """Remove a task. Unknown ids are ignored; returns whether anything was removed."""
        idx = self._task_index(task_id)
        if idx is None:
            return False
        self._tasks = [*self._tasks[:idx], *self._tasks[idx + 1 :]]
        logger.debug("Task deleted id=%s", task_id)
        self._persist_tasks()
        self._emit(StoreChange(Collection.TASKS, ChangeAction.DELETE, (task_id,)))
        return True

    def toggle_task_status(self, task_id: str) -> Task:
        """
        Flip a task between completed and pending.

        completed -> pending, pending -> completed, in-progress -> pending.
        """
        task = self.get_task(task_id)
        if task is None:
            raise NotFoundError("task", task_id)
        if task.status == TaskStatus.COMPLETED:
            new_status = TaskStatus.PENDING
        elif task.status == TaskStatus.PENDING:
            new_status = TaskStatus.COMPLETED
        else:
            # in-progress is not "completed", so the toggle lands on pending.
            new_status = TaskStatus.PENDING
        return self.update_task(task_id, status=new_status)

    def reorder_tasks(self, source_id: str, target_id: str) -> bool:
        """
        Move the source task to the index currently held by the target task.

        No-op (returns False) when the ids are equal or either is absent.
        """
        if source_id == target_id:
            return False
        src = self._task_index(source_id)
        dst = self._task_index(target_id)
        if src is None or dst is None:
            return False

        items = list(self._tasks)
        moved = items.pop(src)
        items.insert(dst, moved)
        self._tasks = items
        logger.debug("Task reordered id=%s %d -> %d", source_id, src, dst)
        self._persist_tasks()
        self._emit(StoreChange(Collection.TASKS, ChangeAction.REORDER, (source_id, target_id)))
        return True

    # ---- projects ----

    def create_project(
        self,
        name: str,
        *,
        description: str | None = None,
        parent_id: str | None = None,
        color: str = DEFAULT_PROJECT_COLOR,
    ) -> Project:
        clean_name = _required_text(name, "name")
        clean_parent = _optional_ref(parent_id, "parent_id")
        if clean_parent is not None and self._project_index(clean_parent) is None:
            raise NotFoundError("project", clean_parent)

        clean_description = _optional_text(description, "description")
        clean_color = _required_text(color, "color")

        now = self._clock()
        project = Project(
            id=self._unique_id({p.id for p in self._projects}),
            name=clean_name,
            description=clean_description,
            parent_id=clean_parent,
            color=clean_color,
            created_at=now,
            updated_at=now,
        )
        self._projects = [*self._projects, project]
        logger.debug("Project created id=%s parent=%s", project.id, project.parent_id)
        self._persist_projects()
        self._emit(StoreChange(Collection.PROJECTS, ChangeAction.CREATE, (project.id,)))
        return project

    def update_project(self, project_id: str, **fields: Any) -> Project:
        unknown = set(fields) - PROJECT_FIELDS
        if unknown:
            raise ValidationError(f"Unknown project field(s): {', '.join(sorted(unknown))}")

        idx = self._project_index(project_id)
        if idx is None:
            raise NotFoundError("project", project_id)

        changes: dict[str, Any] = {}
        if "name" in fields:
            changes["name"] = _required_text(fields["name"], "name")
        if "description" in fields:
            changes["description"] = _optional_text(fields["description"], "description")
        if "color" in fields:
            changes["color"] = _required_text(fields["color"], "color")
        if "parent_id" in fields:
            parent_id = _optional_ref(fields["parent_id"], "parent_id")
            if parent_id is not None:
                if self._project_index(parent_id) is None:
                    raise NotFoundError("project", parent_id)
                if self._would_cycle(project_id, parent_id):
                    raise CycleDetectedError(project_id, parent_id)
            changes["parent_id"] = parent_id

        current = self._projects[idx]
        updated = replace(current, **changes, updated_at=self._touch(current.created_at))
        self._projects = [*self._projects[:idx], updated, *self._projects[idx + 1 :]]
        logger.debug("Project updated id=%s fields=%s", project_id, sorted(changes))
        self._persist_projects()
        self._emit(StoreChange(Collection.PROJECTS, ChangeAction.UPDATE, (project_id,)))
        return updated

    def delete_project(self, project_id: str) -> bool:
        """
        Remove a project.

        Raises HasChildrenError if any project sits under it, then HasTasksError
        if any task references it. Unknown ids are ignored.
        """
        idx = self._project_index(project_id)
        if idx is None:
            return False
        if any(p.parent_id == project_id for p in self._projects):
            raise HasChildrenError(project_id)
        if any(t.project_id == project_id for t in self._tasks):
            raise HasTasksError(project_id)

        self._projects = [*self._projects[:idx], *self._projects[idx + 1 :]]
        logger.debug("Project deleted id=%s", project_id)
        self._persist_projects()
        self._emit(StoreChange(Collection.PROJECTS, ChangeAction.DELETE, (project_id,)))
        return True

    # ---- storage ----

    def reload(self) -> bool:
        """
        Re-read both collections from storage (best-effort).

        Picks up writes made through another Store sharing the same backend.
        A collection whose read fails keeps its in-memory contents, so the next
        write cannot wipe stored data. Returns True when both reads succeeded.
        """
        tasks = self._load_tasks()
        projects = self._load_projects()
        if tasks is not None:
            self._tasks = tasks
            self._emit(StoreChange(Collection.TASKS, ChangeAction.RELOAD))
        else:
            logger.warning(
                "Reload of %s failed; keeping %d tasks in memory.", self._keys.tasks, len(self._tasks)
            )
        if projects is not None:
            self._projects = projects
            self._emit(StoreChange(Collection.PROJECTS, ChangeAction.RELOAD))
        else:
            logger.warning(
                "Reload of %s failed; keeping %d projects in memory.", self._keys.projects, len(self._projects)
            )
        logger.debug("Store reloaded tasks=%d projects=%d", len(self._tasks), len(self._projects))
        return tasks is not None and projects is not None

    def _load_records(self, key: str) -> list[dict[str, Any]] | None:
        """
        Read one collection. A missing key is an empty list; None means the
        read failed (backend error or undecodable payload).
        """
        try:
            raw = self._storage.get(key)
        except StorageUnavailableError as e:
            logger.warning("Storage unavailable while reading %s: %s", key, e)
            self.last_storage_error = e
            return None
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Corrupt JSON under %s.", key)
            self.last_storage_error = StorageUnavailableError(f"Corrupt JSON under {key!r}")
            return None
        if not isinstance(data, list):
            logger.warning("Unexpected payload under %s (%s).", key, type(data).__name__)
            self.last_storage_error = StorageUnavailableError(
                f"Unexpected {type(data).__name__} payload under {key!r}"
            )
            return None
        return [item for item in data if isinstance(item, dict)]

    def _load_tasks(self) -> list[Task] | None:
        records = self._load_records(self._keys.tasks)
        if records is None:
            return None
        now = self._clock()
        return self._decode_all(records, lambda raw: record_to_task(raw, now), kind="task")

    def _load_projects(self) -> list[Project] | None:
        records = self._load_records(self._keys.projects)
        if records is None:
            return None
        now = self._clock()
        return self._decode_all(records, lambda raw: record_to_project(raw, now), kind="project")

    @staticmethod
    def _decode_all(
        records: Iterable[dict[str, Any]],
        decode: Callable[[dict[str, Any]], Any],
        *,
        kind: str,
    ) -> list:
        out = []
        seen: set[str] = set()
        for raw in records:
            item = decode(raw)
            if item is None:
                logger.warning("Skipping malformed %s record: %r", kind, raw.get("id"))
                continue
            if item.id in seen:
                logger.warning("Skipping duplicate %s id=%s", kind, item.id)
                continue
            seen.add(item.id)
            out.append(item)
        return out

    def _write(self, key: str, records: list[dict[str, Any]]) -> None:
        try:
            self._storage.set(key, json.dumps(records, ensure_ascii=False))
            self.last_storage_error = None
        except StorageUnavailableError as e:
            # In-memory state stays authoritative for this session.
            self.last_storage_error = e
            logger.exception("Failed to persist %s (%d records)", key, len(records))

    def _persist_tasks(self) -> None:
        self._write(self._keys.tasks, [task_to_record(t) for t in self._tasks])

    def _persist_projects(self) -> None:
        self._write(self._keys.projects, [project_to_record(p) for p in self._projects])

    # ---- helpers ----

    def _task_index(self, task_id: str) -> int | None:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return None

    def _project_index(self, project_id: str) -> int | None:
        for i, p in enumerate(self._projects):
            if p.id == project_id:
                return i
        return None

    def _unique_id(self, taken: set[str]) -> str:
        new_id = self._new_id()
        while new_id in taken:
            new_id = self._new_id()
        return new_id

    def _touch(self, created_at: datetime) -> datetime:
        return max(self._clock(), created_at)

    def _would_cycle(self, project_id: str, parent_id: str) -> bool:
        """True if parent_id is project_id itself or one of its descendants."""
        parents = {p.id: p.parent_id for p in self._projects}
        seen: set[str] = set()
        cur: str | None = parent_id
        while cur is not None and cur not in seen:
            if cur == project_id:
                return True
            seen.add(cur)
            cur = parents.get(cur)
        return False

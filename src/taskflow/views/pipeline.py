# src/taskflow/views/pipeline.py

from __future__ import annotations

"""
List view derivation.

derive_view() runs a fixed sequence of pure stages over a task snapshot:
  1. status filter   ("all" passes everything)
  2. project filter  (None passes everything)
  3. text search     (case-insensitive, title OR description)
  4. sort            (manual keeps Store order; every other key is a stable sort)
  5. group           (none -> one group; priority/status -> first-seen bucket order)
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum

from ..core.errors import ValidationError
from ..tasks.models import Task, TaskStatus, parse_due_date

STATUS_ALL = "all"
ALL_TASKS_LABEL = "All Tasks"


class SortKey(StrEnum):
    MANUAL = "manual"
    PRIORITY = "priority"
    DUE_DATE = "dueDate"
    STATUS = "status"


class GroupKey(StrEnum):
    NONE = "none"
    PRIORITY = "priority"
    STATUS = "status"


@dataclass(frozen=True, slots=True)
class ViewOptions:
    status_filter: str = STATUS_ALL
    search_text: str = ""
    project_id: str | None = None
    sort_key: SortKey = SortKey.MANUAL
    group_key: GroupKey = GroupKey.NONE

    @staticmethod
    def create(
        *,
        status_filter: str = STATUS_ALL,
        search_text: str = "",
        project_id: str | None = None,
        sort_key: str = SortKey.MANUAL,
        group_key: str = GroupKey.NONE,
    ) -> ViewOptions:
        """Build options from loose user input, rejecting unknown values."""
        status = (status_filter or STATUS_ALL).strip().lower()
        if status != STATUS_ALL and status not in {s.value for s in TaskStatus}:
            raise ValidationError(f"Unknown status filter: {status_filter}")
        try:
            sort = SortKey(sort_key)
        except ValueError:
            raise ValidationError(f"Unknown sort key: {sort_key}") from None
        try:
            group = GroupKey(group_key)
        except ValueError:
            raise ValidationError(f"Unknown group key: {group_key}") from None
        return ViewOptions(
            status_filter=status,
            search_text=search_text or "",
            project_id=project_id or None,
            sort_key=sort,
            group_key=group,
        )


@dataclass(frozen=True, slots=True)
class TaskGroup:
    label: str
    tasks: tuple[Task, ...]


def filter_tasks(
    tasks: Iterable[Task],
    *,
    status_filter: str = STATUS_ALL,
    project_id: str | None = None,
    search_text: str = "",
) -> list[Task]:
    out = list(tasks)
    if status_filter != STATUS_ALL:
        out = [t for t in out if t.status == status_filter]
    if project_id is not None:
        out = [t for t in out if t.project_id == project_id]
    needle = search_text.lower()
    if needle:
        out = [t for t in out if needle in t.title.lower() or needle in t.description.lower()]
    return out


def _due_key(task: Task) -> tuple[int, int]:
    d = parse_due_date(task.due_date)
    # Missing/unparsable dates sort after every real date.
    return (1, 0) if d is None else (0, d.toordinal())


def sort_tasks(tasks: Sequence[Task], sort_key: SortKey | str) -> list[Task]:
    key = SortKey(sort_key)
    if key == SortKey.MANUAL:
        return list(tasks)
    if key == SortKey.PRIORITY:
        return sorted(tasks, key=lambda t: -t.priority.rank)
    if key == SortKey.DUE_DATE:
        return sorted(tasks, key=_due_key)
    return sorted(tasks, key=lambda t: t.status.rank)


def group_tasks(tasks: Sequence[Task], group_key: GroupKey | str) -> list[TaskGroup]:
    key = GroupKey(group_key)
    if key == GroupKey.NONE:
        return [TaskGroup(label=ALL_TASKS_LABEL, tasks=tuple(tasks))]

    buckets: dict[str, list[Task]] = {}
    for task in tasks:
        label = task.priority.value if key == GroupKey.PRIORITY else task.status.value
        buckets.setdefault(label, []).append(task)
    return [TaskGroup(label=label, tasks=tuple(items)) for label, items in buckets.items()]


def derive_view(tasks: Iterable[Task], options: ViewOptions | None = None) -> list[TaskGroup]:
    options = options or ViewOptions()
    filtered = filter_tasks(
        tasks,
        status_filter=options.status_filter,
        project_id=options.project_id,
        search_text=options.search_text,
    )
    return group_tasks(sort_tasks(filtered, options.sort_key), options.group_key)

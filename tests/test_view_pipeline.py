# tests/test_view_pipeline.py

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from taskflow.core.errors import ValidationError
from taskflow.tasks.models import Priority, Task, TaskStatus
from taskflow.views.pipeline import (
    ALL_TASKS_LABEL,
    GroupKey,
    SortKey,
    ViewOptions,
    derive_view,
    filter_tasks,
    sort_tasks,
)

TS = datetime(2024, 6, 1, tzinfo=timezone.utc)


def make_task(
    tid: str,
    *,
    title: str | None = None,
    description: str = "",
    priority: Priority = Priority.MEDIUM,
    status: TaskStatus = TaskStatus.PENDING,
    due_date: str | None = None,
    project_id: str | None = None,
) -> Task:
    return Task(
        id=tid,
        title=title or f"task {tid}",
        description=description,
        priority=priority,
        status=status,
        due_date=due_date,
        project_id=project_id,
        created_at=TS,
        updated_at=TS,
    )


def ids(tasks) -> list[str]:
    return [t.id for t in tasks]


def test_due_date_sort_puts_missing_last() -> None:
    tasks = [
        make_task("1", due_date="2024-06-10"),
        make_task("2", due_date="2024-06-12"),
        make_task("3", due_date=None),
    ]
    assert ids(sort_tasks(tasks, SortKey.DUE_DATE)) == ["1", "2", "3"]
    assert ids(sort_tasks(list(reversed(tasks)), SortKey.DUE_DATE)) == ["1", "2", "3"]


def test_due_date_sort_treats_unparsable_as_missing() -> None:
    tasks = [
        make_task("a", due_date="garbage"),
        make_task("b", due_date="2024-07-01"),
        make_task("c"),
    ]
    assert ids(sort_tasks(tasks, SortKey.DUE_DATE)) == ["b", "a", "c"]


def test_priority_sort_descending_and_stable() -> None:
    tasks = [
        make_task("1", priority=Priority.LOW),
        make_task("2", priority=Priority.URGENT),
        make_task("3", priority=Priority.MEDIUM),
        make_task("4", priority=Priority.URGENT),
        make_task("5", priority=Priority.HIGH),
        make_task("6", priority=Priority.LOW),
    ]
    assert ids(sort_tasks(tasks, SortKey.PRIORITY)) == ["2", "4", "5", "3", "1", "6"]


def test_status_sort_ascending_and_stable() -> None:
    tasks = [
        make_task("1", status=TaskStatus.COMPLETED),
        make_task("2", status=TaskStatus.PENDING),
        make_task("3", status=TaskStatus.IN_PROGRESS),
        make_task("4", status=TaskStatus.PENDING),
    ]
    assert ids(sort_tasks(tasks, SortKey.STATUS)) == ["2", "4", "3", "1"]


def test_chained_sorts_keep_equal_elements_in_input_order() -> None:
    tasks = [make_task(str(i), priority=Priority.HIGH, due_date="2024-06-10") for i in range(5)]
    out = tasks
    for key in (SortKey.PRIORITY, SortKey.STATUS, SortKey.DUE_DATE):
        out = sort_tasks(out, key)
    assert ids(out) == ids(tasks)


def test_manual_sort_keeps_store_order() -> None:
    tasks = [make_task("b", priority=Priority.LOW), make_task("a", priority=Priority.URGENT)]
    assert ids(sort_tasks(tasks, SortKey.MANUAL)) == ["b", "a"]


def test_status_filter() -> None:
    tasks = [
        make_task("1", status=TaskStatus.COMPLETED),
        make_task("2"),
        make_task("3", status=TaskStatus.IN_PROGRESS),
    ]
    assert ids(filter_tasks(tasks, status_filter="all")) == ["1", "2", "3"]
    assert ids(filter_tasks(tasks, status_filter="in-progress")) == ["3"]


def test_project_filter() -> None:
    tasks = [
        make_task("1", project_id="p1"),
        make_task("2"),
        make_task("3", project_id="p2"),
        make_task("4", project_id="p1"),
    ]
    assert ids(filter_tasks(tasks, project_id="p1")) == ["1", "4"]
    assert filter_tasks(tasks, project_id="unused") == []
    assert len(filter_tasks(tasks, project_id=None)) == 4


def test_search_matches_title_or_description_case_insensitively() -> None:
    tasks = [
        make_task("1", title="Buy MILK"),
        make_task("2", title="Call bob", description="about the milkshake"),
        make_task("3", title="Write"),
    ]
    assert ids(filter_tasks(tasks, search_text="milk")) == ["1", "2"]
    assert ids(filter_tasks(tasks, search_text="")) == ["1", "2", "3"]


def test_group_none_yields_single_group_even_when_empty() -> None:
    groups = derive_view([], ViewOptions())
    assert len(groups) == 1
    assert groups[0].label == ALL_TASKS_LABEL
    assert groups[0].tasks == ()


def test_group_buckets_in_first_seen_order_of_sorted_sequence() -> None:
    tasks = [
        make_task("1", priority=Priority.LOW, due_date="2024-06-20"),
        make_task("2", priority=Priority.HIGH, due_date="2024-06-05"),
        make_task("3", priority=Priority.LOW, due_date="2024-06-01"),
    ]
    groups = derive_view(tasks, ViewOptions(sort_key=SortKey.DUE_DATE, group_key=GroupKey.PRIORITY))
    assert [g.label for g in groups] == ["low", "high"]
    assert [ids(g.tasks) for g in groups] == [["3", "1"], ["2"]]


def test_derive_view_runs_all_stages() -> None:
    tasks = [
        make_task("1", title="report draft", project_id="p", status=TaskStatus.IN_PROGRESS),
        make_task("2", title="report final", project_id="p", priority=Priority.URGENT),
        make_task("3", title="report other", project_id="q", priority=Priority.URGENT),
        make_task("4", title="lunch", project_id="p"),
        make_task("5", title="report done", project_id="p", status=TaskStatus.COMPLETED),
    ]
    options = ViewOptions.create(
        status_filter="all",
        search_text="REPORT",
        project_id="p",
        sort_key="status",
        group_key="status",
    )
    groups = derive_view(tasks, options)
    assert [(g.label, ids(g.tasks)) for g in groups] == [
        ("pending", ["2"]),
        ("in-progress", ["1"]),
        ("completed", ["5"]),
    ]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"status_filter": "archived"},
        {"sort_key": "title"},
        {"group_key": "project"},
    ],
)
def test_view_options_reject_unknown_values(kwargs) -> None:
    with pytest.raises(ValidationError):
        ViewOptions.create(**kwargs)

# src/taskflow/views/labels.py

"""Small display helpers shared by the list and calendar renderers."""

from __future__ import annotations

from datetime import date, timedelta

from ..tasks.models import Task, TaskStatus, parse_due_date


def short_date(d: date) -> str:
    # "Jun 9" (no zero padding, locale-independent)
    return f"{d:%b} {d.day}"


def long_date(d: date) -> str:
    return f"{d:%b} {d.day}, {d.year}"


def due_date_label(due: str | date | None, today: date) -> str | None:
    """
    Human label for a due date.

    Today / Tomorrow / "Overdue - Jun 10" for past days / "Jun 10, 2024".
    Returns None when there is no (parsable) due date.
    """
    d = parse_due_date(due)
    if d is None:
        return None
    if d == today:
        return "Today"
    if d == today + timedelta(days=1):
        return "Tomorrow"
    if d < today:
        return f"Overdue - {short_date(d)}"
    return long_date(d)


def is_overdue(task: Task, today: date) -> bool:
    if task.status == TaskStatus.COMPLETED:
        return False
    d = parse_due_date(task.due_date)
    return d is not None and d < today


def truncate_title(title: str, limit: int) -> str:
    if limit <= 0 or len(title) <= limit:
        return title
    return title[:limit] + "..."


def humanize_status(status: TaskStatus | str) -> str:
    return " ".join(word.capitalize() for word in str(status).split("-"))

# src/taskflow/cli/render.py

"""Plain-text renderers for the console (list, project tree, calendar)."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date

from ..tasks.models import Project, Task, TaskStatus
from ..views.calendar import WEEKDAY_NAMES, CalendarCell, CalendarView, Granularity
from ..views.labels import due_date_label, humanize_status, is_overdue, short_date, truncate_title
from ..views.pipeline import TaskGroup
from ..views.project_tree import ProjectRow

SHORT_ID_LEN = 8
WEEKLY_TITLE_LIMIT = 15
MONTHLY_TITLE_LIMIT = 10


def short_id(item_id: str) -> str:
    return item_id[:SHORT_ID_LEN]


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def format_task_line(task: Task, today: date, projects: Mapping[str, Project] | None = None) -> str:
    box = "[x]" if task.status == TaskStatus.COMPLETED else "[ ]"
    meta = [task.priority.value.capitalize(), humanize_status(task.status)]
    label = due_date_label(task.due_date, today)
    if label:
        meta.append(f"due {label}" + (" !" if is_overdue(task, today) else ""))
    if projects and task.project_id in projects:
        meta.append(f"#{projects[task.project_id].name}")
    line = f"{box} {short_id(task.id)}  {task.title}  ({', '.join(meta)})"
    if task.description:
        line += f"\n      {task.description}"
    return line


def render_groups(
    groups: Sequence[TaskGroup],
    today: date,
    projects: Mapping[str, Project] | None = None,
    *,
    show_headers: bool = True,
) -> str:
    total = sum(len(g.tasks) for g in groups)
    if total == 0:
        return "No tasks found."
    lines: list[str] = []
    for g in groups:
        if show_headers:
            lines.append(f"== {humanize_status(g.label)} ({len(g.tasks)})")
        lines.extend(format_task_line(t, today, projects) for t in g.tasks)
    return "\n".join(lines)


def render_tree(rows: Sequence[ProjectRow], counts: Mapping[str, int], expanded: frozenset[str], total: int) -> str:
    lines = [f"All Tasks ({_plural(total, 'task')})"]
    if not rows:
        lines.append("  No projects yet. Create one with /project add <name>.")
    for row in rows:
        node = row.node
        if node.children:
            marker = "v" if node.id in expanded else ">"
        else:
            marker = " "
        n = counts.get(node.id, 0)
        suffix = f"  ({_plural(n, 'task')})" if n else ""
        indent = "  " * (row.depth + 1)
        lines.append(f"{indent}{marker} {node.project.name} [{short_id(node.id)}] {node.project.color}{suffix}")
    return "\n".join(lines)


def _cell_tasks(cell: CalendarCell, limit: int) -> str:
    parts = [truncate_title(t.title, limit) for t in cell.visible]
    if cell.overflow:
        parts.append(f"+{cell.overflow} more")
    return ", ".join(parts)


def render_calendar(view: CalendarView) -> str:
    lines = [view.title, ""]

    if view.granularity == Granularity.DAILY:
        cell = view.weeks[0][0]
        if cell.is_today:
            lines[0] += "  (Today)"
        if not cell.tasks:
            lines.append("No tasks scheduled for this day.")
        for t in cell.tasks:
            lines.append(f"- {t.title} [{humanize_status(t.status).upper()}]")
            if t.description:
                lines.append(f"    {t.description}")
        return "\n".join(lines)

    if view.granularity == Granularity.WEEKLY:
        for cell in view.weeks[0]:
            head = f"{WEEKDAY_NAMES[(cell.day.weekday() + 1) % 7]} {cell.day.day:>2}"
            if cell.is_today:
                head += "*"
            lines.append(f"{head:<8} {_cell_tasks(cell, WEEKLY_TITLE_LIMIT)}".rstrip())
        return "\n".join(lines)

    lines.append(" ".join(f"{name:>4}" for name in WEEKDAY_NAMES))
    busy: list[CalendarCell] = []
    for week in view.weeks:
        row = []
        for cell in week:
            mark = "*" if cell.tasks else " "
            num = f"{cell.day.day}" if cell.in_anchor_month else f"({cell.day.day})"
            if cell.is_today:
                num = f"[{cell.day.day}]"
            row.append(f"{num + mark:>4}")
            if cell.tasks:
                busy.append(cell)
        lines.append(" ".join(row))
    if busy:
        lines.append("")
        for cell in busy:
            lines.append(f"{short_date(cell.day):>7}: {_cell_tasks(cell, MONTHLY_TITLE_LIMIT)}")
    return "\n".join(lines)

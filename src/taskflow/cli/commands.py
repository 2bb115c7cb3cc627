# src/taskflow/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
import string
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import date
from typing import Protocol, TypeVar, cast

from ..core.errors import NotFoundError, TaskflowError, ValidationError
from ..core.state import AppState
from ..tasks.models import PROJECT_COLORS, Project, TaskStatus
from ..views.calendar import Granularity
from ..views.pipeline import GroupKey, SortKey, ViewOptions
from ..views.project_tree import build_forest, count_tasks_by_project, parent_candidates, visible_rows
from .render import render_calendar, render_groups, render_tree, short_id

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Core errors (validation, guards, missing ids) become a one-line reply;
        the state is left as it was.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except TaskflowError as e:
            logger.debug("/%s rejected: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


class _HasId(Protocol):
    @property
    def id(self) -> str: ...


T = TypeVar("T", bound=_HasId)

_NONE_WORDS = {"", "none", "null", "-"}

_OPTION_ALIASES = {
    "desc": "description",
    "description": "description",
    "priority": "priority",
    "p": "priority",
    "status": "status",
    "s": "status",
    "due": "due_date",
    "project": "project_id",
    "parent": "parent_id",
    "color": "color",
    "title": "title",
    "name": "name",
}


def resolve_id(items: Sequence[T], token: str, kind: str) -> T:
    """Find an item by full id or by a unique id prefix."""
    for item in items:
        if item.id == token:
            return item
    matches = [item for item in items if item.id.startswith(token)] if token else []
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise NotFoundError(kind, token)
    raise ValidationError(f"Ambiguous {kind} id prefix: {token}")


def split_options(args: Sequence[str]) -> tuple[list[str], dict[str, str]]:
    """Separate free words from key=value options (known keys only)."""
    words: list[str] = []
    opts: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        field = _OPTION_ALIASES.get(key.lower()) if sep else None
        if field is None:
            words.append(arg)
        else:
            opts[field] = value
    return words, opts


def _normalize_status(raw: str) -> str:
    return raw.strip().lower().replace("_", "-")


def _task_fields(state: AppState, opts: dict[str, str]) -> dict[str, object]:
    fields: dict[str, object] = {}
    for key, value in opts.items():
        if key in ("parent_id", "name", "color"):
            raise ValidationError(f"Unknown task option: {key}")
        if key == "status":
            fields[key] = _normalize_status(value)
        elif key == "due_date":
            fields[key] = None if value.lower() in _NONE_WORDS else value
        elif key == "project_id":
            fields[key] = (
                None
                if value.lower() in _NONE_WORDS
                else resolve_id(state.store.projects, value, "project").id
            )
        else:
            fields[key] = value
    return fields


def _resolve_color(value: str) -> str:
    """Palette number (1-8, see /project colors) or a #rrggbb hex colour."""
    raw = value.strip().lower()
    if raw.isdigit() and 1 <= int(raw) <= len(PROJECT_COLORS):
        return PROJECT_COLORS[int(raw) - 1]
    if len(raw) == 7 and raw.startswith("#") and all(c in string.hexdigits for c in raw[1:]):
        return raw
    raise ValidationError(f"Unknown color: {value} (use 1-{len(PROJECT_COLORS)} or #rrggbb)")


def _project_fields(
    state: AppState,
    opts: dict[str, str],
    editing_id: str | None = None,
) -> dict[str, object]:
    fields: dict[str, object] = {}
    for key, value in opts.items():
        if key == "parent_id":
            if value.lower() in _NONE_WORDS:
                fields[key] = None
            else:
                # Only top-level projects can be parents, never the project itself.
                candidates = parent_candidates(state.store.projects, editing_id)
                fields[key] = resolve_id(candidates, value, "parent project").id
        elif key == "name" or key == "title":
            fields["name"] = value
        elif key == "color":
            fields[key] = _resolve_color(value)
        elif key == "description":
            fields[key] = value
        else:
            raise ValidationError(f"Unknown project option: {key}")
    return fields


def _project_map(state: AppState) -> dict[str, Project]:
    return {p.id: p for p in state.store.projects}


def _storage_warning(state: AppState) -> str:
    if state.store.last_storage_error is not None:
        return "\n(warning: changes could not be saved; they are kept for this session only)"
    return ""


# ---- task commands ----


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title...> [priority=high] [status=pending] [due=2024-06-10] [project=<id>] [desc="..."]

    The task lands in the selected project unless project= says otherwise.
    """
    words, opts = split_options(args)
    if "title" in opts:
        words.insert(0, opts.pop("title"))
    fields = _task_fields(state, opts)
    if "project_id" not in fields and state.view.project_id is not None:
        fields["project_id"] = state.view.project_id
    task = state.store.create_task(" ".join(words), **fields)  # type: ignore[arg-type]
    return f"Task created: {short_id(task.id)} {task.title}" + _storage_warning(state)


def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <id> title=... desc=... priority=... status=... due=... project=..."""
    if not args:
        return "Usage: /edit <id> key=value ..."
    task = resolve_id(state.store.tasks, args[0], "task")
    words, opts = split_options(args[1:])
    if words:
        raise ValidationError(f"Unexpected arguments: {' '.join(words)} (use key=value)")
    if not opts:
        return "Nothing to change. Use key=value (title, desc, priority, status, due, project)."
    updated = state.store.update_task(task.id, **_task_fields(state, opts))
    return f"Task updated: {short_id(updated.id)} {updated.title}" + _storage_warning(state)


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <id>"
    task = resolve_id(state.store.tasks, args[0], "task")
    updated = state.store.toggle_task_status(task.id)
    return f"{updated.title}: {updated.status.value}" + _storage_warning(state)


def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <id>"
    task = resolve_id(state.store.tasks, args[0], "task")
    state.store.delete_task(task.id)
    return f"Task deleted: {task.title}" + _storage_warning(state)


def cmd_move(state: AppState, args: list[str]) -> str:
    """/move <id> <target-id>: put the task where the target currently is (manual order)."""
    if len(args) != 2:
        return "Usage: /move <id> <target-id>"
    src = resolve_id(state.store.tasks, args[0], "task")
    dst = resolve_id(state.store.tasks, args[1], "task")
    if not state.store.reorder_tasks(src.id, dst.id):
        return "Nothing to move."
    return f"Moved {src.title}." + _storage_warning(state)


def cmd_list(state: AppState, args: list[str]) -> str:
    groups = state.current_groups()
    text = render_groups(
        groups,
        date.today(),
        _project_map(state),
        show_headers=state.view.group_key != GroupKey.NONE,
    )
    project = state.selected_project
    scope = project.name if project else "All Tasks"
    opts = state.view
    header = f"{scope} | filter={opts.status_filter} sort={opts.sort_key.value} group={opts.group_key.value}"
    if opts.search_text:
        header += f' search="{opts.search_text}"'
    return f"{header}\n{text}"


def cmd_filter(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Filter: {state.view.status_filter}. Use /filter all|pending|in-progress|completed."
    opts = ViewOptions.create(
        status_filter=_normalize_status(args[0]),
        search_text=state.view.search_text,
        project_id=state.view.project_id,
        sort_key=state.view.sort_key,
        group_key=state.view.group_key,
    )
    state.view = opts
    return f"Filter set to {opts.status_filter}."


def cmd_search(state: AppState, args: list[str]) -> str:
    text = " ".join(args)
    state.view = replace(state.view, search_text=text)
    return f'Searching for "{text}".' if text else "Search cleared."


def cmd_sort(state: AppState, args: list[str]) -> str:
    if not args:
        keys = "|".join(k.value for k in SortKey)
        return f"Sort: {state.view.sort_key.value}. Use /sort {keys}."
    raw = "dueDate" if args[0].lower() in ("due", "duedate") else args[0].lower()
    state.view = replace(state.view, sort_key=ViewOptions.create(sort_key=raw).sort_key)
    return f"Sorting by {state.view.sort_key.value}."


def cmd_group(state: AppState, args: list[str]) -> str:
    if not args:
        keys = "|".join(k.value for k in GroupKey)
        return f"Group: {state.view.group_key.value}. Use /group {keys}."
    state.view = replace(state.view, group_key=ViewOptions.create(group_key=args[0].lower()).group_key)
    return f"Grouping by {state.view.group_key.value}."


# ---- projects ----


def cmd_project(state: AppState, args: list[str]) -> str:
    """
    /project add <name> [parent=<id>] [color=1-8|#hex] [desc="..."]
    /project edit <id> name=... parent=... color=... desc=...
    /project rm <id>
    /project select <id>|all
    /project colors

    parent= accepts top-level projects only.
    """
    if not args:
        return (
            "Projects:\n"
            "  /project add <name> [parent=<id>] [color=1-8|#hex] [desc=...]\n"
            "  /project edit <id> key=value ...\n"
            "  /project rm <id>\n"
            "  /project select <id>|all\n"
            "  /project colors  - list the color palette\n"
            "  /tree  - show the project tree"
        )

    sub = args[0].lower()
    rest = args[1:]

    if sub in ("add", "new"):
        words, opts = split_options(rest)
        fields = _project_fields(state, opts)
        name = fields.pop("name", " ".join(words))
        project = state.store.create_project(name, **fields)  # type: ignore[arg-type]
        if project.parent_id:
            state.tree.expand(project.parent_id)
        return f"Project created: {short_id(project.id)} {project.name}" + _storage_warning(state)

    if sub == "edit":
        if not rest:
            return "Usage: /project edit <id> key=value ..."
        project = resolve_id(state.store.projects, rest[0], "project")
        words, opts = split_options(rest[1:])
        if words:
            raise ValidationError(f"Unexpected arguments: {' '.join(words)} (use key=value)")
        updated = state.store.update_project(project.id, **_project_fields(state, opts, project.id))
        return f"Project updated: {updated.name}" + _storage_warning(state)

    if sub in ("rm", "delete"):
        if not rest:
            return "Usage: /project rm <id>"
        project = resolve_id(state.store.projects, rest[0], "project")
        state.store.delete_project(project.id)
        return f"Project deleted: {project.name}" + _storage_warning(state)

    if sub == "select":
        if not rest or rest[0].lower() == "all":
            state.select_project(None)
            return "Showing all tasks."
        project = resolve_id(state.store.projects, rest[0], "project")
        state.select_project(project.id)
        return f"Selected project: {project.name}"

    if sub == "colors":
        return "Project colors:\n" + "\n".join(f"  {i}. {c}" for i, c in enumerate(PROJECT_COLORS, start=1))

    return "Unknown /project subcommand. Use /project for usage."


def cmd_tree(state: AppState, args: list[str]) -> str:
    """/tree [toggle <id>]"""
    if args and args[0].lower() == "toggle":
        if len(args) < 2:
            return "Usage: /tree toggle <id>"
        project = resolve_id(state.store.projects, args[1], "project")
        state.tree.toggle(project.id)
    forest = build_forest(state.store.projects)
    rows = visible_rows(forest, state.tree)
    counts = count_tasks_by_project(state.store.tasks)
    return render_tree(rows, counts, state.tree.expanded, len(state.store.tasks))


# ---- calendar ----


def cmd_cal(state: AppState, args: list[str]) -> str:
    """/cal [daily|weekly|monthly]"""
    if args:
        state.calendar.set_granularity(Granularity.parse(args[0]))
    return render_calendar(state.calendar.render(state.store.tasks))


def cmd_prev(state: AppState, args: list[str]) -> str:
    state.calendar.previous()
    return render_calendar(state.calendar.render(state.store.tasks))


def cmd_next(state: AppState, args: list[str]) -> str:
    state.calendar.next()
    return render_calendar(state.calendar.render(state.store.tasks))


def cmd_today(state: AppState, args: list[str]) -> str:
    state.calendar.today()
    return render_calendar(state.calendar.render(state.store.tasks))


# ---- misc ----


def cmd_reload(state: AppState, args: list[str]) -> str:
    ok = state.store.reload()
    counts = f"{len(state.store.tasks)} tasks, {len(state.store.projects)} projects"
    if not ok:
        return f"Reload failed, storage could not be read. Keeping {counts} from this session."
    return f"Reloaded: {counts}."


def cmd_status(state: AppState, args: list[str]) -> str:
    tasks = state.store.tasks
    done = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
    backend = getattr(state.settings, "storage_backend", "?")
    where = getattr(state.settings, "db_path", "") if backend == "sqlite" else "memory"
    return (
        "Status:\n"
        f"  Tasks: {len(tasks)} ({done} completed)\n"
        f"  Projects: {len(state.store.projects)}\n"
        f"  Storage: {backend} ({where})"
        + _storage_warning(state)
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("add", cmd_add, help_text="Create a task: /add <title> [priority=] [due=] [project=] [desc=].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> key=value ...")
registry.register("done", cmd_done, help_text="Toggle completed/pending: /done <id>.", aliases=["toggle"])
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["del"])
registry.register("move", cmd_move, help_text="Reorder: /move <id> <target-id>.", aliases=["mv"])
registry.register("list", cmd_list, help_text="Show tasks with the current filter/sort/group.", aliases=["ls"])
registry.register("filter", cmd_filter, help_text="Status filter: all | pending | in-progress | completed.")
registry.register("search", cmd_search, help_text="Search title/description (no text clears).")
registry.register("sort", cmd_sort, help_text="Sort: manual | priority | dueDate | status.")
registry.register("group", cmd_group, help_text="Group: none | priority | status.")
registry.register("project", cmd_project, help_text="Projects: add | edit | rm | select | colors.", aliases=["p"])
registry.register("tree", cmd_tree, help_text="Show the project tree: /tree [toggle <id>].")
registry.register("cal", cmd_cal, help_text="Calendar: /cal [daily|weekly|monthly].", aliases=["calendar"])
registry.register("prev", cmd_prev, help_text="Calendar: previous day/week/month.")
registry.register("next", cmd_next, help_text="Calendar: next day/week/month.")
registry.register("today", cmd_today, help_text="Calendar: jump to today.")
registry.register("reload", cmd_reload, help_text="Re-read tasks and projects from storage.")
registry.register("status", cmd_status, help_text="Show counts and storage location.")

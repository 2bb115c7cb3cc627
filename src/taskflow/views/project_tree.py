# src/taskflow/views/project_tree.py

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from ..tasks.models import Project, Task


@dataclass(slots=True)
class ProjectNode:
    project: Project
    children: list[ProjectNode] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.project.id


@dataclass(frozen=True, slots=True)
class ProjectRow:
    node: ProjectNode
    depth: int


def build_forest(projects: Sequence[Project]) -> list[ProjectNode]:
    """
    Arrange a flat project list into trees.

    Roots are projects without a parent, plus projects whose parent no longer
    exists. Children keep input order. Projects caught in a parent cycle are
    never reachable from a root and are left out.
    """
    known = {p.id for p in projects}
    children: dict[str, list[Project]] = {}
    roots: list[Project] = []
    for p in projects:
        if p.parent_id is None or p.parent_id not in known:
            roots.append(p)
        else:
            children.setdefault(p.parent_id, []).append(p)

    seen: set[str] = set()

    def build(p: Project) -> ProjectNode:
        seen.add(p.id)
        node = ProjectNode(project=p)
        for child in children.get(p.id, ()):
            if child.id not in seen:
                node.children.append(build(child))
        return node

    return [build(p) for p in roots]


class ProjectTreeState:
    """Expand/collapse state keyed by project id (view state, not data)."""

    def __init__(self, expanded: Iterable[str] = ()) -> None:
        self._expanded: set[str] = set(expanded)

    @property
    def expanded(self) -> frozenset[str]:
        return frozenset(self._expanded)

    def is_expanded(self, project_id: str) -> bool:
        return project_id in self._expanded

    def expand(self, project_id: str) -> None:
        self._expanded.add(project_id)

    def collapse(self, project_id: str) -> None:
        self._expanded.discard(project_id)

    def toggle(self, project_id: str) -> bool:
        if project_id in self._expanded:
            self._expanded.discard(project_id)
            return False
        self._expanded.add(project_id)
        return True

    def on_select(self, project: Project | None) -> None:
        # Keep the selected sub-project visible.
        if project is not None and project.parent_id:
            self._expanded.add(project.parent_id)


def visible_rows(forest: Sequence[ProjectNode], state: ProjectTreeState) -> list[ProjectRow]:
    rows: list[ProjectRow] = []

    def walk(nodes: Sequence[ProjectNode], depth: int) -> None:
        for node in nodes:
            rows.append(ProjectRow(node=node, depth=depth))
            if node.children and state.is_expanded(node.id):
                walk(node.children, depth + 1)

    walk(forest, 0)
    return rows


def count_tasks_by_project(tasks: Iterable[Task]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for t in tasks:
        if t.project_id:
            counts[t.project_id] = counts.get(t.project_id, 0) + 1
    return counts


def parent_candidates(projects: Iterable[Project], editing_id: str | None = None) -> list[Project]:
    """Top-level projects a project may be nested under (never itself)."""
    return [p for p in projects if p.parent_id is None and p.id != editing_id]

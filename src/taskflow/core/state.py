# src/taskflow/core/state.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from ..core.errors import NotFoundError
from ..tasks.models import Project
from ..tasks.store import ChangeAction, Collection, Store, StoreChange
from ..views.calendar import CalendarNavigator
from ..views.pipeline import TaskGroup, ViewOptions, derive_view
from ..views.project_tree import ProjectTreeState

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """
    Everything a front end needs: the single Store plus per-session view state.

    The Store is passed in explicitly; AppState subscribes to it so view state
    follows data changes (e.g. a deleted project stops being selected).
    """

    # Settings or any object with the same attributes; /status reads the storage fields.
    settings: Any
    store: Store

    view: ViewOptions = field(default_factory=ViewOptions)
    tree: ProjectTreeState = field(default_factory=ProjectTreeState)
    calendar: CalendarNavigator = field(default_factory=CalendarNavigator)

    def __post_init__(self) -> None:
        self._unsubscribe = self.store.subscribe(self._on_store_change)

    def close(self) -> None:
        self._unsubscribe()

    @property
    def selected_project(self) -> Project | None:
        if self.view.project_id is None:
            return None
        return self.store.get_project(self.view.project_id)

    def select_project(self, project_id: str | None) -> Project | None:
        """Select a project (None = all tasks); the list view follows the selection."""
        project = None
        if project_id is not None:
            project = self.store.get_project(project_id)
            if project is None:
                raise NotFoundError("project", project_id)
        self.view = replace(self.view, project_id=project_id)
        self.tree.on_select(project)
        return project

    def current_groups(self) -> list[TaskGroup]:
        return derive_view(self.store.tasks, self.view)

    def _on_store_change(self, change: StoreChange) -> None:
        if change.collection != Collection.PROJECTS:
            return
        if change.action not in (ChangeAction.DELETE, ChangeAction.RELOAD):
            return
        selected = self.view.project_id
        if selected is not None and self.store.get_project(selected) is None:
            logger.info("Selected project %s is gone; showing all tasks.", selected)
            self.view = replace(self.view, project_id=None)

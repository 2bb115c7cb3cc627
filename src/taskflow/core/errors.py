# src/taskflow/core/errors.py

"""
Error kinds raised by the core.

Validation and guard errors abort a mutation before any state changes.
StorageUnavailableError is raised by storage backends; the Store catches it
and degrades (empty collections on load, log-and-continue on write).
"""

from __future__ import annotations


class TaskflowError(Exception):
    """Base class for every error the core raises on purpose."""


class ValidationError(TaskflowError, ValueError):
    """A required field is empty or a value is out of its allowed set."""


class NotFoundError(TaskflowError, LookupError):
    def __init__(self, kind: str, item_id: str) -> None:
        super().__init__(f"{kind} not found: {item_id}")
        self.kind = kind
        self.item_id = item_id


class HasChildrenError(TaskflowError):
    def __init__(self, project_id: str) -> None:
        super().__init__("Cannot delete project with sub-projects. Delete sub-projects first.")
        self.project_id = project_id


class HasTasksError(TaskflowError):
    def __init__(self, project_id: str) -> None:
        super().__init__("Cannot delete project with tasks. Move or delete tasks first.")
        self.project_id = project_id


class CycleDetectedError(TaskflowError):
    def __init__(self, project_id: str, parent_id: str) -> None:
        super().__init__(
            f"Project {project_id} cannot be placed under {parent_id}: that would create a cycle."
        )
        self.project_id = project_id
        self.parent_id = parent_id


class StorageUnavailableError(TaskflowError):
    """Durable storage is inaccessible or holds data that cannot be decoded."""

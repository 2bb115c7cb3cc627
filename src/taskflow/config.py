# src/taskflow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing is read at import time; get_settings() builds and caches it.
- Storage keys are configuration, so several stores can share one database.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKFLOW"

STORAGE_BACKENDS = ("sqlite", "memory")
CALENDAR_VIEWS = ("daily", "weekly", "monthly")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    raw = _env(name, default).strip().lower()
    return raw if raw in choices else default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Storage ----
    storage_backend: str
    tasks_key: str
    projects_key: str

    # ---- Views ----
    default_calendar_view: str

    @staticmethod
    def from_env(*, load_env_file: bool = True) -> "Settings":
        if load_env_file:
            # Real environment variables always win over .env entries.
            load_dotenv(override=False)

        app_name = _env(_k("APP_NAME"), "taskflow").strip() or "taskflow"
        log_level = _env(_k("LOG_LEVEL"), "WARNING").strip().upper() or "WARNING"

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskflow"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "taskflow.sqlite3")

        storage_backend = _env_choice(_k("STORAGE"), STORAGE_BACKENDS, "sqlite")
        tasks_key = _env(_k("TASKS_KEY"), "taskflow-tasks").strip() or "taskflow-tasks"
        projects_key = _env(_k("PROJECTS_KEY"), "taskflow-projects").strip() or "taskflow-projects"

        default_calendar_view = _env_choice(_k("DEFAULT_VIEW"), CALENDAR_VIEWS, "monthly")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            storage_backend=storage_backend,
            tasks_key=tasks_key,
            projects_key=projects_key,
            default_calendar_view=default_calendar_view,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS

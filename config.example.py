# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Real environment variables win over .env entries.

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKFLOW_APP_NAME": "App display name shown by the console (default: taskflow).",
    "TASKFLOW_LOG_LEVEL": "Console logging level (default: WARNING). The log file always gets DEBUG.",
    # Paths (gitignored)
    "TASKFLOW_DATA_DIR": "Local data directory, also holds taskflow.log (default: .local/taskflow).",
    "TASKFLOW_DB_PATH": "SQLite key-value file (default: <data_dir>/taskflow.sqlite3).",
    # Storage
    "TASKFLOW_STORAGE": "sqlite (default) or memory (nothing is saved).",
    "TASKFLOW_TASKS_KEY": "Storage key of the task collection (default: taskflow-tasks).",
    "TASKFLOW_PROJECTS_KEY": "Storage key of the project collection (default: taskflow-projects).",
    # Views
    "TASKFLOW_DEFAULT_VIEW": "Initial calendar granularity: daily | weekly | monthly (default: monthly).",
}

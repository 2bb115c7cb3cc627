# src/taskflow/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path


# Minimum console level per taskflow logger prefix; first match wins.
# Store mutations and kv writes are logged per call and would interleave with
# REPL replies, so those loggers only reach the console at WARNING+.
_TASKFLOW_CONSOLE_LEVELS: tuple[tuple[str, int], ...] = (
    ("taskflow.storage.", logging.WARNING),
    ("taskflow.tasks.store", logging.WARNING),
    ("taskflow.connectors.", logging.WARNING),
    ("taskflow.", logging.NOTSET),
)


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the interactive console readable:
    - taskflow loggers follow _TASKFLOW_CONSOLE_LEVELS
    - captured Python warnings ('py.warnings') and third-party loggers only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("taskflow."):
            for prefix, level in _TASKFLOW_CONSOLE_LEVELS:
                if name.startswith(prefix):
                    return record.levelno >= level
            return True

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskflow",
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Configure logging with:
    - Console handler: filtered, WARNING+ by default so it does not interleave with the REPL
    - File handler: full logs for debugging

    Call this ONCE, very early (before first logger.info).
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "taskflow.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)

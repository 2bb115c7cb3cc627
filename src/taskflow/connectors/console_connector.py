# src/taskflow/connectors/console_connector.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.store import ChangeAction, StoreChange

logger = logging.getLogger(__name__)

PROMPT = "taskflow> "


def _describe_change(change: StoreChange) -> str | None:
    # Only reloads are worth echoing; every other change already gets a command reply.
    if change.action == ChangeAction.RELOAD:
        return f"[sync] {change.collection.value} reloaded from storage"
    return None


def run_console_loop(
    state: AppState,
    *,
    read_line: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> None:
    """
    Blocking REPL: one slash command per line until /exit, EOF or Ctrl+C.

    Bare text (no leading slash) is treated as "/add <text>".
    """
    logger.info("Console connector started.")
    app_name = str(getattr(getattr(state, "settings", None), "app_name", "taskflow"))
    write(f"[{app_name}] Type /help for commands, /exit to quit.")

    def emit(text: str) -> None:
        write(text)

    def on_change(change: StoreChange) -> None:
        msg = _describe_change(change)
        if msg:
            emit(msg)

    unsubscribe = state.store.subscribe(on_change)
    try:
        while True:
            try:
                user_input = read_line(PROMPT).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                write("")
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            line = user_input if user_input.startswith("/") else f"/add {shlex.quote(user_input)}"
            try:
                reply = command_registry.handle(state, line, emit=emit)
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply is not None:
                write(reply)
    finally:
        unsubscribe()

    logger.info("Console connector finished.")

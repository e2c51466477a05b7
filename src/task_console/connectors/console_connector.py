# src/task_console/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.ports import NoticeLevel
from ..core.state import AppState

logger = logging.getLogger(__name__)

_LEVEL_TAGS = {
    NoticeLevel.INFO: "INFO",
    NoticeLevel.SUCCESS: "OK",
    NoticeLevel.ERROR: "ERROR",
}


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleNotifier:
    """Prints notifications as timestamped lines; they scroll away like toasts."""

    def notify(self, level: NoticeLevel, title: str, detail: str | None = None) -> None:
        tag = _LEVEL_TAGS.get(level, str(level).upper())
        text = f"{title}: {detail}" if detail else title
        print(f"[{_ts_local()}] [{tag}] {text}", flush=True)
        if level is NoticeLevel.ERROR:
            logger.info("Notified error: %s", text)


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (service=%s).", getattr(state.settings, "service_url", "?"))
    print(f"[{_ts_local()}] [CONSOLE] Use /help for commands, /list to see tasks, /exit to quit.\n")

    def emit(text: str) -> None:
        # Immediate feedback for operations that wait on the service.
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            # input() blocks; run it off-loop so the reconciler keeps ticking.
            user_input = (await asyncio.to_thread(input, "task> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            print("Commands start with '/'. Use /help to list them.")
            continue

        try:
            response = await command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command failed: %s", user_input)
            print(f"[{_ts_local()}] [ERROR] Command failed, see the log file for details.")
            continue

        if response:
            print(response)

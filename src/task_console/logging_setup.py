# src/task_console/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "task-console.log"

# Poll every tick; at INFO they would bury the prompt. Console shows their errors only.
_POLLING_LOGGERS = ("task_console.tasks.task_reconciler", "task_console.rpc.client")

# HTTP request lines for every status query end up here.
_TRANSPORT_LOGGERS = ("httpx", "httpcore")


class _PromptFilter(logging.Filter):
    """Console output for someone typing at `task>`: app messages, minus polling chatter."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith(_POLLING_LOGGERS):
            return record.levelno >= logging.ERROR
        if name.startswith("task_console."):
            return True
        # httpx, py.warnings and anything else third-party.
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/task-console",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Route task_console logging to stderr (filtered) and to `<log_dir>/task-console.log`.

    The file gets every per-task query failure and every invoke call, which is
    where to look when a status stays stale. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_PromptFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)

    # Keep one line per request out of the file as well; our client logs invokes itself.
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return log_file

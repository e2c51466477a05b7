# src/task_console/core/errors.py

"""
Error taxonomy.

- ValidationError: local input problem, raised before any backend call.
- TransportError: the scheduler service rejected a call or could not be reached.

Per-task status query failures never surface as exceptions: the reconciler
absorbs them and reports False for that task.
"""

from __future__ import annotations


class TaskConsoleError(Exception):
    """Base class for errors raised by task_console."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(TaskConsoleError):
    pass


class TransportError(TaskConsoleError):
    def __init__(self, message: str, *, command: str | None = None) -> None:
        super().__init__(message)
        self.command = command


def error_message(err: BaseException, fallback: str) -> str:
    """Human-readable text for an error, `fallback` when it carries none."""
    text = str(err).strip()
    return text or fallback

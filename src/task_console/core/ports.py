# src/task_console/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the scheduler transport and the notification sink swappable and
makes testing easier.
"""

from enum import StrEnum
from typing import Protocol

from ..tasks.task_models import AppConfig, Task, TaskStatus


class SchedulerService(Protocol):
    """
    RPC surface of the out-of-process scheduler.

    Every call may raise TransportError. The tri-state get_task_status is the
    only status query the core uses.
    """

    async def list_tasks(self) -> list[Task]: ...
    async def get_task(self, task_id: int) -> Task | None: ...

    # Create if task.id is None, else update.
    async def save_task(self, task: Task) -> None: ...
    async def remove_task(self, task_id: int) -> None: ...
    async def switch_task(self, task_id: int, enable: bool) -> None: ...
    async def manually_run_task(self, task_id: int) -> None: ...
    async def stop_task(self, task_id: int) -> None: ...

    async def get_task_status(self, task_id: int) -> TaskStatus: ...
    async def is_program_runnable(self, path: str) -> bool: ...

    # Native pickers live on the service side; None means the user cancelled.
    async def pick_file(self) -> str | None: ...
    async def pick_dir(self) -> str | None: ...

    async def get_config(self) -> AppConfig: ...
    async def update_config(self, config: AppConfig) -> None: ...
    async def exit(self) -> None: ...


class NoticeLevel(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class Notifier(Protocol):
    """Transient, dismissible user notifications (toasts)."""

    def notify(self, level: NoticeLevel, title: str, detail: str | None = None) -> None: ...

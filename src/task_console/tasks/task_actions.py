# src/task_console/tasks/task_actions.py

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import TypeVar

from ..core.errors import TransportError, error_message
from ..core.ports import SchedulerService
from .task_models import AppConfig, Task

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ActionGateway:
    """
    Thin dispatcher for user-initiated commands.

    Each call either succeeds or raises TransportError with a readable message,
    so a discrete user action can report its own failure. Nothing here refetches:
    callers decide when to sync the task list.
    """

    def __init__(self, service: SchedulerService) -> None:
        self._service = service
        self.error: str | None = None

    async def _call(self, what: str, call: Awaitable[T]) -> T:
        self.error = None
        try:
            return await call
        except Exception as e:
            message = f"Failed to {what}: {error_message(e, 'unknown error')}"
            self.error = message
            logger.warning("%s", message)
            raise TransportError(message, command=getattr(e, "command", None)) from e

    async def save(self, task: Task) -> None:
        op = "create" if task.id is None else "update"
        await self._call("save task", self._service.save_task(task))
        logger.info("Task %s saved (%s) name=%r", task.id, op, task.name)

    async def remove(self, task_id: int) -> None:
        await self._call("remove task", self._service.remove_task(task_id))
        logger.info("Task %s removed", task_id)

    async def switch(self, task_id: int, enabled: bool) -> None:
        # The service treats repeated values as a no-op; no local dedup.
        await self._call("switch task", self._service.switch_task(task_id, enabled))
        logger.info("Task %s enabled=%s", task_id, enabled)

    async def run(self, task_id: int) -> None:
        await self._call("run task", self._service.manually_run_task(task_id))
        logger.info("Task %s run requested", task_id)

    async def stop(self, task_id: int) -> None:
        await self._call("stop task", self._service.stop_task(task_id))
        logger.info("Task %s stop requested", task_id)

    async def load_config(self) -> AppConfig:
        return await self._call("load config", self._service.get_config())

    async def save_config(self, config: AppConfig) -> None:
        await self._call("save config", self._service.update_config(config))
        logger.info("App config saved quiet_launch=%s", config.quiet_launch)

# src/task_console/tasks/task_store.py

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace

from ..core.errors import error_message
from ..core.ports import SchedulerService
from .task_models import Task

logger = logging.getLogger(__name__)

ListListener = Callable[[tuple[Task, ...]], None]


class TaskStore:
    """
    Authoritative in-memory task list mirrored from the scheduler service.

    Rules:
    - fetch()/refresh() replace the whole list; a failed fetch keeps the
      previous list and records a message in `error` instead of raising
    - `loading` is only raised by the explicit fetch(); background refreshes
      never blank the view
    - listeners are told about the list only when it actually changed

    The editor never writes here: it works on its own copy and asks for a
    refetch after a successful save.
    """

    def __init__(self, service: SchedulerService) -> None:
        self._service = service
        self._tasks: tuple[Task, ...] = ()
        self._listeners: list[ListListener] = []
        self._closed = False
        self.loading = True
        self.error: str | None = None

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self._tasks

    def get(self, task_id: int) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def subscribe(self, listener: ListListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def close(self) -> None:
        """Stop accepting results; fetches resolving after this are dropped."""
        self._closed = True
        self._listeners.clear()

    # ---- fetching ----

    async def fetch(self) -> bool:
        """Explicit (user-visible) fetch. Returns True on success."""
        self.loading = True
        try:
            return await self._load(reason="fetch")
        finally:
            self.loading = False

    async def refresh(self) -> bool:
        """Background fetch used by the reconciliation loop."""
        return await self._load(reason="refresh")

    async def _load(self, *, reason: str) -> bool:
        try:
            tasks = await self._service.list_tasks()
        except Exception as e:
            if self._closed:
                return False
            message = error_message(e, "Failed to load tasks")
            # Background refreshes repeat every tick; only log a new failure loudly.
            level = logging.DEBUG if message == self.error else logging.WARNING
            self.error = message
            logger.log(level, "Task list %s failed: %s", reason, message)
            return False

        if self._closed:
            logger.debug("Dropping task list %s result after close", reason)
            return False

        self.error = None
        self.replace(tasks or [])
        return True

    # ---- local replacement ----

    def replace(self, tasks: Iterable[Task]) -> None:
        new_tasks = tuple(tasks)
        changed = new_tasks != self._tasks
        self._tasks = new_tasks
        if changed:
            logger.debug("Task list replaced: %d tasks", len(new_tasks))
            self._emit()

    def apply_enabled(self, task_id: int, enabled: bool) -> None:
        """Mirror a switch the service has already accepted."""
        self.replace(replace(t, enabled=enabled) if t.id == task_id else t for t in self._tasks)

    def dismiss_error(self) -> None:
        self.error = None

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._tasks)
            except Exception:
                logger.exception("Task list listener failed")

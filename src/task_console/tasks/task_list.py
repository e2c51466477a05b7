# src/task_console/tasks/task_list.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Set
from dataclasses import dataclass
from datetime import datetime
from typing import assert_never

from ..core.errors import TaskConsoleError, error_message
from ..core.ports import NoticeLevel, Notifier
from .task_actions import ActionGateway
from .task_models import Instant, KeepAlive, Manual, Routine, Startup, Task, Trigger, UntilSucceed
from .task_reconciler import StatusReconciler
from .task_store import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_RUN_INDICATOR_SECONDS = 1.0


def merge_running(authoritative: Mapping[int, bool], optimistic: Set[int], task_id: int) -> bool:
    """Displayed running state: the reconciler's answer OR a pending manual run."""
    return bool(authoritative.get(task_id, False)) or task_id in optimistic


def _parse_timestamp(value: str) -> datetime:
    # fromisoformat() on older interpreters rejects a trailing "Z".
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def trigger_label(trigger: Trigger) -> str:
    match trigger:
        case Routine(content=ms):
            return f"every {ms / 1000:.1f}s"
        case Instant(content=when):
            if not when:
                return "once (time not set)"
            try:
                shown = _parse_timestamp(when).astimezone().strftime("%Y-%m-%d %H:%M:%S")
            except ValueError:
                shown = when
            return f"once at {shown}"
        case Startup():
            return "at startup"
        case KeepAlive():
            return "keep alive"
        case UntilSucceed():
            return "until succeed"
        case Manual():
            return "manual"
        case _:
            assert_never(trigger)


def format_last_run(timestamp: str | None) -> str:
    if not timestamp:
        return "-"
    try:
        return _parse_timestamp(timestamp).astimezone().strftime("%b %d, %H:%M:%S")
    except ValueError:
        return "-"


def exit_code_label(code: int | None) -> str | None:
    if code is None:
        return None
    return f"exit {code}"


@dataclass(slots=True, frozen=True)
class TaskRow:
    task: Task
    running: bool
    runnable: bool
    trigger: str
    last_run: str
    exit_code: str | None

    @property
    def can_run(self) -> bool:
        return self.task.enabled and not self.running


class TaskListPresenter:
    """
    Task list view logic.

    Keeps two state slices apart:
    - the reconciler's authoritative running map,
    - a local set of ids with a manual run in flight (masks poll latency).
    They are combined by merge_running() at read time.

    Delete is two-phase: stage_delete() only remembers the id,
    confirm_delete() performs the call.
    """

    def __init__(
        self,
        store: TaskStore,
        reconciler: StatusReconciler,
        gateway: ActionGateway,
        notifier: Notifier,
        *,
        run_indicator_seconds: float = DEFAULT_RUN_INDICATOR_SECONDS,
    ) -> None:
        self._store = store
        self._reconciler = reconciler
        self._gateway = gateway
        self._notifier = notifier
        self._run_indicator_seconds = max(0.0, float(run_indicator_seconds))

        self._optimistic: set[int] = set()
        self._timers: dict[int, asyncio.TimerHandle] = {}
        self._pending_delete: int | None = None
        self._closed = False

    # ---- read side ----

    @property
    def optimistic_running(self) -> frozenset[int]:
        return frozenset(self._optimistic)

    @property
    def pending_delete(self) -> int | None:
        return self._pending_delete

    def is_running(self, task_id: int) -> bool:
        return merge_running(self._reconciler.running, self._optimistic, task_id)

    def is_runnable(self, task_id: int) -> bool:
        # Unknown counts as runnable: only a definite "no" is flagged.
        return self._reconciler.runnable.get(task_id) is not False

    def rows(self) -> list[TaskRow]:
        rows: list[TaskRow] = []
        for task in self._store.tasks:
            if task.id is None:
                continue
            rows.append(
                TaskRow(
                    task=task,
                    running=self.is_running(task.id),
                    runnable=self.is_runnable(task.id),
                    trigger=trigger_label(task.trigger),
                    last_run=format_last_run(task.last_run_at),
                    exit_code=exit_code_label(task.last_exit_code),
                )
            )
        return rows

    # ---- manual run ----

    async def run(self, task_id: int) -> bool:
        """Request a manual run. A reply landing after close() is dropped (returns False)."""
        self._mark_running(task_id)
        try:
            await self._gateway.run(task_id)
        except TaskConsoleError as e:
            if self._closed:
                return False
            self._clear_running(task_id)
            logger.debug("Run indicator cleared task_id=%s (request rejected)", task_id)
            self._notifier.notify(NoticeLevel.ERROR, "Run failed", error_message(e, "unknown error"))
            return False

        if self._closed:
            logger.debug("Run reply for task_id=%s after close, ignored", task_id)
            return False

        loop = asyncio.get_running_loop()
        self._cancel_timer(task_id)
        self._timers[task_id] = loop.call_later(self._run_indicator_seconds, self._clear_running, task_id)
        return True

    def _mark_running(self, task_id: int) -> None:
        if self._closed:
            return
        self._cancel_timer(task_id)
        self._optimistic.add(task_id)

    def _clear_running(self, task_id: int) -> None:
        self._timers.pop(task_id, None)
        self._optimistic.discard(task_id)

    def _cancel_timer(self, task_id: int) -> None:
        handle = self._timers.pop(task_id, None)
        if handle is not None:
            handle.cancel()

    async def stop(self, task_id: int) -> bool:
        try:
            await self._gateway.stop(task_id)
        except TaskConsoleError as e:
            self._notifier.notify(NoticeLevel.ERROR, "Stop failed", error_message(e, "unknown error"))
            return False
        self._reconciler.poke()
        return True

    # ---- enable switch ----

    async def toggle(self, task_id: int, enabled: bool) -> bool:
        try:
            await self._gateway.switch(task_id, enabled)
        except TaskConsoleError as e:
            self._notifier.notify(NoticeLevel.ERROR, "Switch failed", error_message(e, "unknown error"))
            return False
        self._store.apply_enabled(task_id, enabled)
        return True

    # ---- two-phase delete ----

    def stage_delete(self, task_id: int | None) -> None:
        if task_id is None:
            return
        self._pending_delete = task_id

    def cancel_delete(self) -> None:
        self._pending_delete = None

    async def confirm_delete(self) -> bool:
        task_id = self._pending_delete
        if task_id is None:
            return False
        self._pending_delete = None
        try:
            await self._gateway.remove(task_id)
        except TaskConsoleError as e:
            self._notifier.notify(NoticeLevel.ERROR, "Delete failed", error_message(e, "unknown error"))
            return False
        await self._store.fetch()
        return True

    def close(self) -> None:
        self._closed = True
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        self._optimistic.clear()

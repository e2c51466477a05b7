# tests/fakes.py

from __future__ import annotations

import asyncio
from collections.abc import Hashable
from dataclasses import dataclass, field, replace

from task_console.core.errors import TransportError
from task_console.core.ports import NoticeLevel
from task_console.tasks.task_models import AppConfig, Task, TaskStatus


class FakeSchedulerService:
    """
    In-memory SchedulerService used by unit tests.

    - Records every call as (name, args) for assertions
    - `fail` maps a call name (or (name, id/path)) to an error message
    - `gates` lets a test hold a per-task status query until it sets the event
    """

    def __init__(self, tasks: list[Task] | None = None) -> None:
        self.tasks: dict[int, Task] = {t.id: t for t in (tasks or []) if t.id is not None}
        self.statuses: dict[int, TaskStatus] = {}
        self.runnable_programs: set[str] = set()
        self.fail: dict[object, str] = {}
        self.gates: dict[int, asyncio.Event] = {}
        self.calls: list[tuple[str, tuple]] = []
        self.picked_file: str | None = None
        self.picked_dir: str | None = None
        self.config = AppConfig()
        self.exited = False
        self._next_id = max(self.tasks, default=0) + 1

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))
        keys: list[object] = [name]
        # Task and AppConfig are unhashable; only plain ids and paths key a failure.
        if all(isinstance(a, Hashable) for a in args):
            keys.append((name, *args))
        for key in keys:
            if key in self.fail:
                raise TransportError(self.fail[key], command=name)

    def count(self, name: str) -> int:
        return sum(1 for n, _ in self.calls if n == name)

    async def list_tasks(self) -> list[Task]:
        self._record("list_tasks")
        return [replace(t, args=list(t.args), env_vars=dict(t.env_vars)) for t in self.tasks.values()]

    async def get_task(self, task_id: int) -> Task | None:
        self._record("get_task", task_id)
        return self.tasks.get(task_id)

    async def save_task(self, task: Task) -> None:
        self._record("save_task", task)
        if task.id is None:
            task = replace(task, id=self._next_id)
            self._next_id += 1
        self.tasks[task.id] = task

    async def remove_task(self, task_id: int) -> None:
        self._record("remove_task", task_id)
        self.tasks.pop(task_id, None)

    async def switch_task(self, task_id: int, enable: bool) -> None:
        self._record("switch_task", task_id, enable)
        if task_id in self.tasks:
            self.tasks[task_id] = replace(self.tasks[task_id], enabled=enable)

    async def manually_run_task(self, task_id: int) -> None:
        self._record("manually_run_task", task_id)
        self.statuses[task_id] = TaskStatus.RUNNING

    async def stop_task(self, task_id: int) -> None:
        self._record("stop_task", task_id)
        self.statuses[task_id] = TaskStatus.IDLE

    async def get_task_status(self, task_id: int) -> TaskStatus:
        gate = self.gates.get(task_id)
        if gate is not None:
            await gate.wait()
        self._record("get_task_status", task_id)
        return self.statuses.get(task_id, TaskStatus.IDLE)

    async def is_program_runnable(self, path: str) -> bool:
        self._record("is_program_runnable", path)
        return path in self.runnable_programs

    async def pick_file(self) -> str | None:
        self._record("pick_file")
        return self.picked_file

    async def pick_dir(self) -> str | None:
        self._record("pick_dir")
        return self.picked_dir

    async def get_config(self) -> AppConfig:
        self._record("get_config")
        return AppConfig(quiet_launch=self.config.quiet_launch)

    async def update_config(self, config: AppConfig) -> None:
        self._record("update_config", config)
        self.config = config

    async def exit(self) -> None:
        self._record("exit")
        self.exited = True


@dataclass(slots=True)
class Notice:
    level: NoticeLevel
    title: str
    detail: str | None


@dataclass(slots=True)
class FakeNotifier:
    notices: list[Notice] = field(default_factory=list)

    def notify(self, level: NoticeLevel, title: str, detail: str | None = None) -> None:
        self.notices.append(Notice(level=level, title=title, detail=detail))

    def errors(self) -> list[Notice]:
        return [n for n in self.notices if n.level is NoticeLevel.ERROR]

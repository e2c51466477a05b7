# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from task_console.cli.bootstrap import create_initial_state
from task_console.core.state import AppState
from task_console.tasks.task_models import Routine, Task, TaskStatus

from .fakes import FakeNotifier, FakeSchedulerService


def make_task(task_id: int | None, name: str = "", program: str = "/bin/true", **kwargs) -> Task:
    return Task(id=task_id, name=name or f"task-{task_id}", program=program, **kwargs)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and command handlers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's environment and .env.
    """
    return SimpleNamespace(
        app_name="task-console-test",
        data_dir=tmp_path / "data",
        service_url="http://scheduler.test",
        poll_interval_seconds=0.05,
        run_indicator_seconds=0.05,
        console_enabled=False,
    )


@pytest.fixture()
def service() -> FakeSchedulerService:
    svc = FakeSchedulerService(
        [
            make_task(1, "backup", "/usr/local/bin/backup.sh", trigger=Routine(60000)),
            make_task(2, "sync", "/opt/sync/run"),
        ]
    )
    svc.runnable_programs = {"/usr/local/bin/backup.sh", "/opt/sync/run"}
    svc.statuses[1] = TaskStatus.RUNNING
    return svc


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def state(settings: SimpleNamespace, service: FakeSchedulerService, notifier: FakeNotifier) -> AppState:
    """AppState wired with the in-memory scheduler and notifier fakes."""
    return create_initial_state(settings=settings, service=service, notifier=notifier)

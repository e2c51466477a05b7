# src/task_console/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tasks.task_actions import ActionGateway
from ..tasks.task_editor import TaskEditor
from ..tasks.task_list import TaskListPresenter
from ..tasks.task_reconciler import StatusReconciler
from ..tasks.task_store import TaskStore
from .ports import Notifier, SchedulerService


@dataclass(slots=True)
class AppState:
    """
    Shared runtime state for connectors and command handlers.

    `settings` is typed as Any to keep tests free to pass a lightweight object.
    `editor` is the single open edit session, if any.
    """

    settings: Any
    service: SchedulerService
    notifier: Notifier
    store: TaskStore
    gateway: ActionGateway
    reconciler: StatusReconciler
    presenter: TaskListPresenter

    editor: TaskEditor | None = None

    async def shutdown(self) -> None:
        """Stop background work; requests still in flight are ignored when they land."""
        await self.reconciler.stop()
        self.presenter.close()
        self.store.close()
        if self.editor is not None:
            self.editor.discard()
            self.editor = None

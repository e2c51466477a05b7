# src/task_console/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the scheduler transport, store, gateway, reconciler and presenter
  into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier
from ..core.ports import Notifier, SchedulerService
from ..core.state import AppState
from ..rpc.client import HttpSchedulerClient
from ..tasks.task_actions import ActionGateway
from ..tasks.task_list import TaskListPresenter
from ..tasks.task_reconciler import StatusReconciler
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings=None,
    service: SchedulerService | None = None,
    notifier: Notifier | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and collaborators injectable makes the app easier to test
    and avoids hidden global config reads. Nothing here talks to the service;
    the first fetch happens once the event loop is running.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if service is None:
        service = HttpSchedulerClient(settings.service_url)
    if notifier is None:
        notifier = ConsoleNotifier()

    store = TaskStore(service)
    gateway = ActionGateway(service)
    reconciler = StatusReconciler(
        service,
        store,
        interval_seconds=settings.poll_interval_seconds,
    )
    presenter = TaskListPresenter(
        store,
        reconciler,
        gateway,
        notifier,
        run_indicator_seconds=settings.run_indicator_seconds,
    )

    logger.debug("AppState wired service=%s", type(service).__name__)
    return AppState(
        settings=settings,
        service=service,
        notifier=notifier,
        store=store,
        gateway=gateway,
        reconciler=reconciler,
        presenter=presenter,
    )

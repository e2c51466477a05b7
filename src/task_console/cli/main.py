# src/task_console/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, loads the task list, starts the status
reconciler in the background and runs the console loop until /exit.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.ports import NoticeLevel
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..rpc.client import HttpSchedulerClient

logger = logging.getLogger(__name__)


async def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        await state.shutdown()
    except Exception:
        logger.exception("Failed to stop background work.")

    service = state.service
    if isinstance(service, HttpSchedulerClient):
        try:
            await service.aclose()
        except Exception:
            logger.debug("Transport close failed.", exc_info=True)


async def run_app(state: AppState) -> None:
    if not await state.store.fetch():
        state.notifier.notify(NoticeLevel.ERROR, "Failed to load tasks", state.store.error)
    state.reconciler.start()

    try:
        if state.settings.console_enabled:
            await run_console_loop(state)
        else:
            logger.info("Console disabled. Reconciling in the background only. Press Ctrl+C to stop.")
            await asyncio.Event().wait()
    finally:
        await _shutdown(state)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (service=%s)...", settings.app_name, settings.service_url)

    state = create_initial_state(settings=settings)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run_app(state))
    logger.info("Bye.")


if __name__ == "__main__":
    main()

# src/task_console/tasks/task_reconciler.py

"""
Status reconciler.

A small polling loop that, for the current task list:
- asks the scheduler whether each task is running (tri-state status),
- asks whether each task's program is currently runnable,
- republishes both answers as two id -> bool mappings.

Per-task queries are independent: a failing query only affects its own task.
Each tick runs as its own asyncio task, started on the cadence or on poke(),
so a query that never answers stalls only the tick that issued it; later ticks
keep publishing. The mappings are swapped in one step when a tick completes,
so readers never see half a tick and removed tasks never linger. Ticks are
numbered; one that completes after a newer tick has published is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping

from ..core.ports import SchedulerService
from .task_models import Task, TaskStatus
from .task_store import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 2.0


class StatusReconciler:
    def __init__(
        self,
        service: SchedulerService,
        store: TaskStore,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        refresh_store: bool = True,
    ) -> None:
        self._service = service
        self._store = store
        self._interval = max(0.01, float(interval_seconds))
        self._refresh_store = refresh_store

        self._running: dict[int, bool] = {}
        self._runnable: dict[int, bool] = {}

        self._wake = asyncio.Event()
        self._runner: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Task[None]] = set()
        self._next_seq = 0
        self._published_seq = -1
        self._epoch = 0
        self._stopped = False
        self._unsubscribe = store.subscribe(lambda _tasks: self.poke())
        self.ticks = 0

    @property
    def running(self) -> Mapping[int, bool]:
        return self._running

    @property
    def runnable(self) -> Mapping[int, bool]:
        return self._runnable

    @property
    def is_active(self) -> bool:
        return self._runner is not None and not self._runner.done()

    def poke(self) -> None:
        """Request an immediate tick (the task list changed)."""
        self._wake.set()

    # ---- one tick ----

    async def tick(self, tasks: Iterable[Task] | None = None) -> bool:
        """
        Query every saved task and publish the results.

        Returns False when the results were discarded: the reconciler was
        stopped while the queries were in flight, or a newer tick has already
        published.
        """
        epoch = self._epoch
        seq = self._next_seq
        self._next_seq += 1
        snapshot = [t for t in (self._store.tasks if tasks is None else tasks) if t.id is not None]

        results = await asyncio.gather(*(self._query_task(t) for t in snapshot))

        if self._stopped or epoch != self._epoch:
            logger.debug("Discarding reconciliation results after stop (%d tasks)", len(results))
            return False
        if seq < self._published_seq:
            logger.debug("Discarding tick #%d, tick #%d already published", seq, self._published_seq)
            return False

        # Wholesale swap: nothing from the previous tick survives.
        self._running = {task_id: running for task_id, running, _ in results}
        self._runnable = {task_id: runnable for task_id, _, runnable in results}
        self._published_seq = seq
        self.ticks += 1
        return True

    async def _query_task(self, task: Task) -> tuple[int, bool, bool]:
        assert task.id is not None
        running, runnable = await asyncio.gather(
            self._query_running(task.id),
            self._query_runnable(task),
        )
        return task.id, running, runnable

    async def _query_running(self, task_id: int) -> bool:
        try:
            status = await self._service.get_task_status(task_id)
        except Exception as e:
            logger.warning("get_task_status failed task_id=%s: %s", task_id, e)
            return False
        return TaskStatus.from_wire(status) is TaskStatus.RUNNING

    async def _query_runnable(self, task: Task) -> bool:
        if not task.program:
            return False
        try:
            return bool(await self._service.is_program_runnable(task.program))
        except Exception as e:
            logger.warning("is_program_runnable failed task_id=%s program=%r: %s", task.id, task.program, e)
            return False

    # ---- background loop ----

    def start(self) -> None:
        if self._stopped:
            raise RuntimeError("StatusReconciler cannot be restarted after stop()")
        if self.is_active:
            return
        self._runner = asyncio.create_task(self._run(), name="status-reconciler")
        logger.info("Status reconciler started interval=%.2fs", self._interval)

    async def stop(self) -> None:
        """Stop the timer and cancel in-flight ticks; anything resolving later is ignored."""
        self._stopped = True
        self._epoch += 1
        self._unsubscribe()

        pending = list(self._in_flight)
        runner, self._runner = self._runner, None
        if runner is not None:
            pending.append(runner)
        if not pending:
            return
        for job in pending:
            job.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._in_flight.clear()
        logger.info("Status reconciler stopped after %d ticks", self.ticks)

    async def _run(self) -> None:
        periodic = False
        while True:
            self._wake.clear()
            self._spawn_tick(periodic=periodic)

            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._interval)
                periodic = False
            except TimeoutError:
                periodic = True

    def _spawn_tick(self, *, periodic: bool) -> None:
        # Never awaited here: a stalled query must not hold back the cadence.
        job = asyncio.create_task(self._tick_job(periodic), name="status-reconciler-tick")
        self._in_flight.add(job)
        job.add_done_callback(self._in_flight.discard)
        if len(self._in_flight) > 1:
            logger.debug("Reconciliation ticks in flight: %d", len(self._in_flight))

    async def _tick_job(self, periodic: bool) -> None:
        try:
            if periodic and self._refresh_store:
                await self._store.refresh()
            await self.tick()
        except Exception:
            logger.exception("Reconciliation tick failed")

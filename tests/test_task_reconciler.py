# tests/test_task_reconciler.py

from __future__ import annotations

import asyncio

import pytest

from task_console.tasks.task_models import Task, TaskStatus
from task_console.tasks.task_reconciler import StatusReconciler
from task_console.tasks.task_store import TaskStore

from .fakes import FakeSchedulerService


def _service_with(*tasks: Task) -> FakeSchedulerService:
    service = FakeSchedulerService(list(tasks))
    service.runnable_programs = {t.program for t in tasks if t.program}
    return service


async def _loaded_store(service: FakeSchedulerService) -> TaskStore:
    store = TaskStore(service)
    await store.fetch()
    return store


@pytest.mark.asyncio
async def test_failed_runnability_query_is_isolated_to_its_task() -> None:
    service = _service_with(
        Task(id=5, name="a", program="/bin/a"),
        Task(id=7, name="b", program="/bin/b"),
        Task(id=9, name="c", program="/bin/c"),
    )
    service.statuses[5] = TaskStatus.RUNNING
    service.statuses[7] = TaskStatus.RUNNING
    service.fail[("is_program_runnable", "/bin/b")] = "permission denied"
    store = await _loaded_store(service)
    reconciler = StatusReconciler(service, store, refresh_store=False)

    assert await reconciler.tick() is True

    assert reconciler.running == {5: True, 7: True, 9: False}
    assert reconciler.runnable == {5: True, 7: False, 9: True}


@pytest.mark.asyncio
async def test_failed_status_query_defaults_to_not_running() -> None:
    service = _service_with(Task(id=1, name="a", program="/bin/a"), Task(id=2, name="b", program="/bin/b"))
    service.statuses[1] = TaskStatus.RUNNING
    service.statuses[2] = TaskStatus.RUNNING
    service.fail[("get_task_status", 2)] = "executor gone"
    store = await _loaded_store(service)
    reconciler = StatusReconciler(service, store, refresh_store=False)

    await reconciler.tick()

    assert reconciler.running == {1: True, 2: False}
    assert reconciler.runnable == {1: True, 2: True}


@pytest.mark.asyncio
async def test_suspended_and_idle_are_not_running() -> None:
    service = _service_with(Task(id=1, name="a", program="/bin/a"), Task(id=2, name="b", program="/bin/b"))
    service.statuses[1] = TaskStatus.SUSPENDED
    store = await _loaded_store(service)
    reconciler = StatusReconciler(service, store, refresh_store=False)

    await reconciler.tick()

    assert reconciler.running == {1: False, 2: False}


@pytest.mark.asyncio
async def test_task_without_program_skips_runnability_query() -> None:
    service = _service_with(Task(id=1, name="empty", program=""))
    store = await _loaded_store(service)
    reconciler = StatusReconciler(service, store, refresh_store=False)

    await reconciler.tick()

    assert reconciler.runnable == {1: False}
    assert service.count("is_program_runnable") == 0


@pytest.mark.asyncio
async def test_removed_task_leaves_no_stale_entry() -> None:
    service = _service_with(Task(id=1, name="a", program="/bin/a"), Task(id=2, name="b", program="/bin/b"))
    store = await _loaded_store(service)
    reconciler = StatusReconciler(service, store, refresh_store=False)
    await reconciler.tick()
    assert set(reconciler.running) == {1, 2}

    await service.remove_task(2)
    await store.fetch()
    await reconciler.tick()

    assert set(reconciler.running) == {1}
    assert set(reconciler.runnable) == {1}


@pytest.mark.asyncio
async def test_mappings_swap_only_when_tick_completes() -> None:
    service = _service_with(Task(id=1, name="a", program="/bin/a"), Task(id=2, name="b", program="/bin/b"))
    service.statuses[1] = TaskStatus.RUNNING
    store = await _loaded_store(service)
    reconciler = StatusReconciler(service, store, refresh_store=False)
    await reconciler.tick()
    before = dict(reconciler.running)

    service.statuses[1] = TaskStatus.IDLE
    service.statuses[2] = TaskStatus.RUNNING
    gate = service.gates[2] = asyncio.Event()
    pending = asyncio.create_task(reconciler.tick())
    await asyncio.sleep(0.01)

    # Task 1 has answered, task 2 is still stalled: nothing is published yet.
    assert reconciler.running == before

    gate.set()
    await pending
    assert reconciler.running == {1: False, 2: True}


@pytest.mark.asyncio
async def test_results_landing_after_stop_are_discarded() -> None:
    service = _service_with(Task(id=1, name="a", program="/bin/a"))
    service.statuses[1] = TaskStatus.RUNNING
    gate = service.gates[1] = asyncio.Event()
    store = await _loaded_store(service)
    reconciler = StatusReconciler(service, store, refresh_store=False)

    pending = asyncio.create_task(reconciler.tick())
    await asyncio.sleep(0.01)
    await reconciler.stop()
    gate.set()

    assert await pending is False
    assert reconciler.running == {}


@pytest.mark.asyncio
async def test_loop_ticks_immediately_and_on_list_change() -> None:
    service = _service_with(Task(id=1, name="a", program="/bin/a"))
    store = await _loaded_store(service)
    reconciler = StatusReconciler(service, store, interval_seconds=60.0, refresh_store=False)

    reconciler.start()
    await asyncio.sleep(0.02)
    assert reconciler.ticks == 1
    assert set(reconciler.running) == {1}

    await service.save_task(Task(name="b", program="/bin/b"))
    await store.fetch()
    await asyncio.sleep(0.02)

    assert reconciler.ticks == 2
    assert set(reconciler.running) == {1, 2}

    await reconciler.stop()
    assert not reconciler.is_active


@pytest.mark.asyncio
async def test_periodic_tick_refreshes_store_without_loading_flag() -> None:
    service = _service_with(Task(id=1, name="a", program="/bin/a"))
    store = await _loaded_store(service)
    reconciler = StatusReconciler(service, store, interval_seconds=0.02)
    loading_seen: list[bool] = []
    store.subscribe(lambda _tasks: loading_seen.append(store.loading))

    reconciler.start()
    await service.save_task(Task(name="b", program="/bin/b"))
    await asyncio.sleep(0.1)
    await reconciler.stop()

    assert {t.id for t in store.tasks} == {1, 2}
    assert set(reconciler.running) == {1, 2}
    assert loading_seen and not any(loading_seen)


class FirstStatusHeld(FakeSchedulerService):
    """The first status query for `held_id` waits on `release`; later ones answer at once."""

    def __init__(self, tasks: list[Task], held_id: int) -> None:
        super().__init__(tasks)
        self.release = asyncio.Event()
        self._held_id = held_id
        self._held = False

    async def get_task_status(self, task_id: int) -> TaskStatus:
        if task_id == self._held_id and not self._held:
            self._held = True
            await self.release.wait()
        return await super().get_task_status(task_id)


@pytest.mark.asyncio
async def test_unanswered_status_query_does_not_freeze_the_loop() -> None:
    service = FirstStatusHeld(
        [Task(id=1, name="a", program="/bin/a"), Task(id=2, name="b", program="/bin/b")],
        held_id=2,
    )
    service.runnable_programs = {"/bin/a", "/bin/b"}
    service.statuses[1] = TaskStatus.RUNNING
    store = await _loaded_store(service)
    reconciler = StatusReconciler(service, store, interval_seconds=0.02, refresh_store=False)

    reconciler.start()
    await asyncio.sleep(0.15)

    # The first tick is still waiting on task 2; later ticks published anyway.
    assert reconciler.ticks > 0
    assert reconciler.running == {1: True, 2: False}

    await reconciler.stop()
    assert not reconciler.is_active


@pytest.mark.asyncio
async def test_late_tick_cannot_overwrite_a_newer_one() -> None:
    service = FirstStatusHeld(
        [Task(id=1, name="a", program="/bin/a"), Task(id=2, name="b", program="/bin/b")],
        held_id=2,
    )
    service.statuses[1] = TaskStatus.RUNNING
    store = await _loaded_store(service)
    reconciler = StatusReconciler(service, store, refresh_store=False)

    first = asyncio.create_task(reconciler.tick())
    await asyncio.sleep(0.01)

    service.statuses[1] = TaskStatus.IDLE
    assert await reconciler.tick() is True
    assert reconciler.running == {1: False, 2: False}

    service.release.set()
    assert await first is False
    assert reconciler.running == {1: False, 2: False}
    assert reconciler.ticks == 1


@pytest.mark.asyncio
async def test_stop_cancels_ticks_still_in_flight() -> None:
    service = FirstStatusHeld([Task(id=1, name="a", program="/bin/a")], held_id=1)
    service.statuses[1] = TaskStatus.RUNNING
    store = await _loaded_store(service)
    reconciler = StatusReconciler(service, store, interval_seconds=60.0, refresh_store=False)

    reconciler.start()
    await asyncio.sleep(0.01)
    await reconciler.stop()
    service.release.set()
    await asyncio.sleep(0.01)

    assert reconciler.ticks == 0
    assert reconciler.running == {}
    assert service.count("get_task_status") == 0

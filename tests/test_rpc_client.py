# tests/test_rpc_client.py

from __future__ import annotations

import json

import httpx
import pytest

from task_console.core.errors import TransportError
from task_console.rpc.client import HttpSchedulerClient
from task_console.tasks.task_models import AppConfig, Instant, Task, TaskStatus


def _client(handler) -> HttpSchedulerClient:
    transport = httpx.MockTransport(handler)
    return HttpSchedulerClient(
        "http://scheduler.test",
        client=httpx.AsyncClient(base_url="http://scheduler.test", transport=transport),
    )


@pytest.mark.asyncio
async def test_list_tasks_decodes_wire_tasks() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(
            200,
            json=[
                {
                    "id": 1,
                    "name": "once",
                    "program": "/bin/once",
                    "args": [],
                    "trigger": {"tag": "Instant", "content": "2026-10-18T09:00:00+08:00"},
                    "enabled": True,
                }
            ],
        )

    tasks = await _client(handler).list_tasks()

    assert seen == ["/invoke/list_tasks"]
    assert tasks[0].trigger == Instant("2026-10-18T09:00:00+08:00")


@pytest.mark.asyncio
async def test_save_task_sends_named_arguments() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200)

    await _client(handler).save_task(Task(name="a", program="/bin/a", env_vars={"K": "V"}))

    task = bodies[0]["task"]
    assert "id" not in task
    assert task["env_vars"] == {"K": "V"}
    assert task["trigger"] == {"tag": "Manual"}


@pytest.mark.asyncio
async def test_status_and_legacy_running_form() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"id": 7}
        return httpx.Response(200, json="Running")

    client = _client(handler)

    assert await client.get_task_status(7) is TaskStatus.RUNNING
    assert await client.is_task_running(7) is True


@pytest.mark.asyncio
async def test_error_response_becomes_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "program is not runnable"})

    with pytest.raises(TransportError) as exc:
        await _client(handler).manually_run_task(3)

    assert exc.value.message == "program is not runnable"
    assert exc.value.command == "manually_run_task"


@pytest.mark.asyncio
async def test_unreachable_service_becomes_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as exc:
        await _client(handler).list_tasks()

    assert "unreachable" in exc.value.message


@pytest.mark.asyncio
async def test_pickers_and_config() -> None:
    answers = {
        "/invoke/pick_file": None,
        "/invoke/pick_dir": "/home/me/work",
        "/invoke/get_config": {"quiet_launch": True},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=answers[request.url.path])

    client = _client(handler)

    assert await client.pick_file() is None
    assert await client.pick_dir() == "/home/me/work"
    assert await client.get_config() == AppConfig(quiet_launch=True)

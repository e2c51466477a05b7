# src/task_console/rpc/client.py

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.errors import TransportError
from ..tasks.task_models import AppConfig, Task, TaskStatus

logger = logging.getLogger(__name__)


def _is_connection_error(exc: Exception) -> bool:
    return isinstance(exc, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.NetworkError))


def friendly_transport_error_message(command: str, exc: Exception) -> str:
    """
    Turn an httpx failure into one line a user can act on.
    The full traceback goes to the log file.
    """
    if _is_connection_error(exc):
        return f"{command}: scheduler service is unreachable ({exc.__class__.__name__})"
    text = str(exc).strip()
    return f"{command}: {text or exc.__class__.__name__}"


def _error_from_response(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    if isinstance(body, str) and body.strip():
        return body.strip()
    text = response.text.strip()
    return text or f"HTTP {response.status_code}"


class HttpSchedulerClient:
    """
    SchedulerService over HTTP.

    Every command is `POST {base_url}/invoke/{command}` with a JSON object of
    named arguments; the JSON response body is the command's result. Non-2xx
    answers carry a human-readable error in `error` (or `message`).

    No client-side timeouts and no retries: a stalled call only stalls its own
    caller, and recovery is always a user-initiated repeat.
    """

    def __init__(self, base_url: str, *, client: httpx.AsyncClient | None = None) -> None:
        if not base_url.strip():
            raise ValueError("Scheduler service URL is not set. Set TASK_CONSOLE_SERVICE_URL in your .env.")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=None)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _invoke(self, command: str, **params: Any) -> Any:
        logger.debug("invoke %s %s", command, params or "")
        try:
            response = await self._client.post(f"/invoke/{command}", json=params)
        except httpx.HTTPError as e:
            logger.debug("invoke %s transport failure", command, exc_info=True)
            raise TransportError(friendly_transport_error_message(command, e), command=command) from e

        if response.is_error:
            message = _error_from_response(response)
            logger.debug("invoke %s -> HTTP %s: %s", command, response.status_code, message)
            raise TransportError(message, command=command)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"{command}: malformed response from scheduler service", command=command) from e

    # ---- tasks ----

    async def list_tasks(self) -> list[Task]:
        raw = await self._invoke("list_tasks")
        if not isinstance(raw, list):
            return []
        return [Task.from_payload(item) for item in raw if isinstance(item, dict)]

    async def get_task(self, task_id: int) -> Task | None:
        raw = await self._invoke("get_task", id=task_id)
        return Task.from_payload(raw) if isinstance(raw, dict) else None

    async def save_task(self, task: Task) -> None:
        await self._invoke("save_task", task=task.to_payload())

    async def remove_task(self, task_id: int) -> None:
        await self._invoke("remove_task", id=task_id)

    async def switch_task(self, task_id: int, enable: bool) -> None:
        await self._invoke("switch_task", id=task_id, enable=enable)

    async def manually_run_task(self, task_id: int) -> None:
        await self._invoke("manually_run_task", id=task_id)

    async def stop_task(self, task_id: int) -> None:
        await self._invoke("stop_task", id=task_id)

    # ---- status ----

    async def get_task_status(self, task_id: int) -> TaskStatus:
        raw = await self._invoke("get_task_status", id=task_id)
        return TaskStatus.from_wire(raw if isinstance(raw, str) else None)

    async def is_task_running(self, task_id: int) -> bool:
        """Legacy boolean form, answered through the tri-state query."""
        return await self.get_task_status(task_id) is TaskStatus.RUNNING

    async def is_program_runnable(self, path: str) -> bool:
        return bool(await self._invoke("is_program_runnable", path=path))

    # ---- pickers / app ----

    async def pick_file(self) -> str | None:
        raw = await self._invoke("pick_file")
        return raw if isinstance(raw, str) and raw else None

    async def pick_dir(self) -> str | None:
        raw = await self._invoke("pick_dir")
        return raw if isinstance(raw, str) and raw else None

    async def get_config(self) -> AppConfig:
        return AppConfig.from_payload(await self._invoke("get_config"))

    async def update_config(self, config: AppConfig) -> None:
        await self._invoke("update_config", config=config.to_payload())

    async def exit(self) -> None:
        await self._invoke("exit")

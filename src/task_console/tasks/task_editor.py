# src/task_console/tasks/task_editor.py

"""
Edit session for a single task.

The editor holds a private copy of one task (or a blank draft) and only
touches shared state through save(): ActionGateway.save() followed by an
explicit TaskStore.fetch().

Two pieces of session state need care:

- Naming mode. A fresh draft starts in AUTO mode, where every program edit
  re-derives the name from the program's basename. Typing a non-blank name
  switches to EXPLICIT; clearing it goes back to AUTO. A loaded task always
  starts EXPLICIT, even when its stored name is blank, so editing the program
  of an existing task never renames it.

- Trigger sub-state. Routine intervals and Instant datetimes are cached per
  type for the session, so switching Routine -> Instant -> Routine restores the
  last interval instead of the default.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import StrEnum
from typing import assert_never

from ..core.errors import ValidationError
from ..core.ports import SchedulerService
from .task_actions import ActionGateway
from .task_models import (
    DEFAULT_ROUTINE_MS,
    EnvVar,
    Instant,
    KeepAlive,
    Manual,
    Routine,
    Startup,
    Task,
    Trigger,
    TriggerTag,
    UntilSucceed,
    env_list_to_dict,
    env_vars_to_list,
    program_basename,
    trigger_tag,
)
from .task_store import TaskStore

logger = logging.getLogger(__name__)


class NameMode(StrEnum):
    AUTO = "auto"
    EXPLICIT = "explicit"


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


class TaskEditor:
    def __init__(self, task: Task, *, name_mode: NameMode) -> None:
        self._draft = replace(task, args=list(task.args), env_vars={})
        self._env: list[EnvVar] = env_vars_to_list(task.env_vars)
        self.name_mode = name_mode

        self._routine_ms = DEFAULT_ROUTINE_MS
        self._instant = ""
        match task.trigger:
            case Routine(content=ms):
                self._routine_ms = ms
            case Instant(content=when):
                self._instant = when
            case _:
                pass

        self._closed = False
        self.committed = False

    @classmethod
    def new(cls) -> TaskEditor:
        return cls(Task.draft(), name_mode=NameMode.AUTO)

    @classmethod
    def load(cls, task: Task) -> TaskEditor:
        return cls(task, name_mode=NameMode.EXPLICIT)

    # ---- read access ----

    @property
    def task_id(self) -> int | None:
        return self._draft.id

    @property
    def name(self) -> str:
        return self._draft.name

    @property
    def program(self) -> str:
        return self._draft.program

    @property
    def working_dir(self) -> str | None:
        return self._draft.working_dir

    @property
    def args(self) -> list[str]:
        return list(self._draft.args)

    @property
    def env_vars(self) -> list[EnvVar]:
        return [EnvVar(p.key, p.value) for p in self._env]

    @property
    def trigger(self) -> Trigger:
        return self._draft.trigger

    @property
    def draft(self) -> Task:
        """Current buffer, env rows not yet collapsed."""
        return replace(self._draft, args=list(self._draft.args), env_vars=env_list_to_dict(self._env))

    @property
    def is_open(self) -> bool:
        return not self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise ValidationError("Edit session is closed")

    # ---- name / program ----

    def set_name(self, value: str) -> None:
        self._ensure_open()
        self._draft.name = value
        self.name_mode = NameMode.AUTO if not value.strip() else NameMode.EXPLICIT

    def set_program(self, value: str) -> None:
        self._ensure_open()
        self._draft.program = value
        if self.name_mode is NameMode.AUTO:
            self._draft.name = program_basename(value)

    def set_working_dir(self, value: str | None) -> None:
        self._ensure_open()
        self._draft.working_dir = value

    def set_stdin(self, value: str | None) -> None:
        self._ensure_open()
        self._draft.stdin = value

    def set_stdout(self, value: str | None) -> None:
        self._ensure_open()
        self._draft.stdout = value

    def set_stderr(self, value: str | None) -> None:
        self._ensure_open()
        self._draft.stderr = value

    def set_enabled(self, enabled: bool) -> None:
        self._ensure_open()
        self._draft.enabled = enabled

    def set_no_console(self, no_console: bool) -> None:
        self._ensure_open()
        self._draft.no_console = no_console

    async def browse_program(self, service: SchedulerService) -> bool:
        """Pick the program with the service-side file picker. False if cancelled."""
        self._ensure_open()
        path = await service.pick_file()
        if not path:
            return False
        self.set_program(path)
        return True

    async def browse_working_dir(self, service: SchedulerService) -> bool:
        self._ensure_open()
        path = await service.pick_dir()
        if not path:
            return False
        self.set_working_dir(path)
        return True

    # ---- arguments ----

    def add_arg(self, value: str = "") -> None:
        self._ensure_open()
        self._draft.args.append(value)

    def set_arg(self, index: int, value: str) -> None:
        self._ensure_open()
        self._draft.args[index] = value

    def remove_arg(self, index: int) -> None:
        self._ensure_open()
        del self._draft.args[index]

    # ---- environment variables ----

    def add_env_var(self, key: str = "", value: str = "") -> None:
        self._ensure_open()
        self._env.append(EnvVar(key, value))

    def set_env_var(self, index: int, *, key: str | None = None, value: str | None = None) -> None:
        self._ensure_open()
        pair = self._env[index]
        if key is not None:
            pair.key = key
        if value is not None:
            pair.value = value

    def remove_env_var(self, index: int) -> None:
        self._ensure_open()
        del self._env[index]

    # ---- trigger ----

    def select_trigger(self, tag: TriggerTag | str) -> Trigger:
        self._ensure_open()
        try:
            tag = TriggerTag(tag)
        except ValueError:
            raise ValidationError(f"Unknown trigger type: {tag}") from None

        trigger: Trigger
        match tag:
            case TriggerTag.ROUTINE:
                trigger = Routine(self._routine_ms)
            case TriggerTag.INSTANT:
                trigger = Instant(self._instant)
            case TriggerTag.STARTUP:
                trigger = Startup()
            case TriggerTag.KEEP_ALIVE:
                trigger = KeepAlive()
            case TriggerTag.UNTIL_SUCCEED:
                trigger = UntilSucceed()
            case TriggerTag.MANUAL:
                trigger = Manual()
            case _:
                assert_never(tag)
        self._draft.trigger = trigger
        return trigger

    def set_routine_ms(self, ms: int) -> None:
        self._ensure_open()
        trigger = Routine(ms)
        self._routine_ms = ms
        self._draft.trigger = trigger

    def set_instant(self, when: str) -> None:
        self._ensure_open()
        self._instant = when
        self._draft.trigger = Instant(when)

    # ---- commit / discard ----

    def build(self) -> Task:
        """Validate and produce the task to persist. Raises ValidationError."""
        self._ensure_open()
        program = self._draft.program
        if not program.strip():
            raise ValidationError("Program path is required")

        name = self._draft.name.strip() or program_basename(program)
        return replace(
            self._draft,
            name=name,
            args=list(self._draft.args),
            working_dir=_blank_to_none(self._draft.working_dir),
            stdin=_blank_to_none(self._draft.stdin),
            stdout=_blank_to_none(self._draft.stdout),
            stderr=_blank_to_none(self._draft.stderr),
            env_vars=env_list_to_dict(self._env),
        )

    async def save(self, gateway: ActionGateway, store: TaskStore) -> Task:
        """
        Persist the draft and refetch the list.

        ValidationError is raised before any backend call; TransportError from
        the gateway propagates and leaves the session open for another try.
        """
        task = self.build()
        await gateway.save(task)
        self._closed = True
        self.committed = True
        logger.debug("Edit session committed id=%s (%s)", task.id, trigger_tag(task.trigger).value)
        await store.fetch()
        return task

    def discard(self) -> None:
        self._closed = True

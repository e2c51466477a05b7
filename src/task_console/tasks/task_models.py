# src/task_console/tasks/task_models.py

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeAlias, assert_never

from ..core.errors import ValidationError


class TriggerTag(StrEnum):
    MANUAL = "Manual"
    STARTUP = "Startup"
    KEEP_ALIVE = "KeepAlive"
    UNTIL_SUCCEED = "UntilSucceed"
    ROUTINE = "Routine"
    INSTANT = "Instant"


@dataclass(slots=True, frozen=True)
class Manual:
    """Run only when asked to."""


@dataclass(slots=True, frozen=True)
class Startup:
    """Run when the scheduler app starts."""


@dataclass(slots=True, frozen=True)
class KeepAlive:
    """Restart the program whenever it exits."""


@dataclass(slots=True, frozen=True)
class UntilSucceed:
    """Restart the program until it exits with code 0."""


@dataclass(slots=True, frozen=True)
class Routine:
    """Run every `content` milliseconds."""

    content: int

    def __post_init__(self) -> None:
        if isinstance(self.content, bool) or not isinstance(self.content, int):
            raise ValidationError(f"Routine interval must be an integer, got {self.content!r}")
        if self.content <= 0:
            raise ValidationError(f"Routine interval must be > 0 ms, got {self.content}")


@dataclass(slots=True, frozen=True)
class Instant:
    """Run once at the datetime string `content`."""

    content: str


Trigger: TypeAlias = Manual | Startup | KeepAlive | UntilSucceed | Routine | Instant

DEFAULT_ROUTINE_MS = 5000


def trigger_tag(trigger: Trigger) -> TriggerTag:
    match trigger:
        case Manual():
            return TriggerTag.MANUAL
        case Startup():
            return TriggerTag.STARTUP
        case KeepAlive():
            return TriggerTag.KEEP_ALIVE
        case UntilSucceed():
            return TriggerTag.UNTIL_SUCCEED
        case Routine():
            return TriggerTag.ROUTINE
        case Instant():
            return TriggerTag.INSTANT
        case _:
            assert_never(trigger)


def trigger_to_payload(trigger: Trigger) -> dict[str, Any]:
    """Adjacently tagged wire form: {"tag": ..., "content": ...}."""
    match trigger:
        case Routine(content=ms):
            return {"tag": TriggerTag.ROUTINE.value, "content": ms}
        case Instant(content=when):
            return {"tag": TriggerTag.INSTANT.value, "content": when}
        case Manual() | Startup() | KeepAlive() | UntilSucceed():
            return {"tag": trigger_tag(trigger).value}
        case _:
            assert_never(trigger)


def trigger_from_payload(raw: Any) -> Trigger:
    """
    Decode a wire trigger.

    Anything unrecognised (unknown tag, missing or mistyped payload) decodes
    to Manual, the same fallback the scheduler uses for its own rows.
    """
    if not isinstance(raw, Mapping):
        return Manual()
    try:
        tag = TriggerTag(raw.get("tag"))
    except ValueError:
        return Manual()

    content = raw.get("content")
    try:
        match tag:
            case TriggerTag.MANUAL:
                return Manual()
            case TriggerTag.STARTUP:
                return Startup()
            case TriggerTag.KEEP_ALIVE:
                return KeepAlive()
            case TriggerTag.UNTIL_SUCCEED:
                return UntilSucceed()
            case TriggerTag.ROUTINE:
                return Routine(content)
            case TriggerTag.INSTANT:
                if not isinstance(content, str):
                    return Manual()
                return Instant(content)
            case _:
                assert_never(tag)
    except ValidationError:
        return Manual()


class TaskStatus(StrEnum):
    """Run state reported by the scheduler service."""

    SUSPENDED = "Suspended"
    RUNNING = "Running"
    IDLE = "Idle"

    @classmethod
    def from_wire(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.IDLE
        try:
            return cls(raw)
        except ValueError:
            return cls.IDLE


@dataclass(slots=True)
class EnvVar:
    """One editable environment variable row; keys may be blank or repeated mid-edit."""

    key: str = ""
    value: str = ""


def env_vars_to_list(env_vars: Mapping[str, str] | None) -> list[EnvVar]:
    if not env_vars:
        return []
    return [EnvVar(key=k, value=v) for k, v in env_vars.items()]


def env_list_to_dict(pairs: Iterable[EnvVar]) -> dict[str, str]:
    """Collapse edit rows into the persisted mapping. Blank keys are dropped, later duplicates win."""
    out: dict[str, str] = {}
    for pair in pairs:
        if pair.key.strip():
            out[pair.key] = pair.value
    return out


def program_basename(program: str) -> str:
    if not program:
        return ""
    normalized = program.replace("\\", "/").rstrip("/")
    return normalized.split("/")[-1]


def _opt_str(raw: Any) -> str | None:
    if raw is None:
        return None
    return str(raw)


def _opt_int(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


@dataclass(slots=True)
class Task:
    name: str
    program: str
    trigger: Trigger = field(default_factory=Manual)
    id: int | None = None
    working_dir: str | None = None
    args: list[str] = field(default_factory=list)
    env_vars: dict[str, str] = field(default_factory=dict)
    stdin: str | None = None
    stdout: str | None = None
    stderr: str | None = None
    enabled: bool = True
    no_console: bool = False
    last_exit_code: int | None = None
    last_run_at: str | None = None

    @classmethod
    def draft(cls) -> Task:
        return cls(name="", program="")

    @property
    def is_draft(self) -> bool:
        return self.id is None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "program": self.program,
            "args": list(self.args),
            "env_vars": dict(self.env_vars),
            "trigger": trigger_to_payload(self.trigger),
            "enabled": self.enabled,
            "no_console": self.no_console,
        }
        optional = {
            "id": self.id,
            "working_dir": self.working_dir,
            "stdin": self.stdin,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "last_exit_code": self.last_exit_code,
            "last_run_at": self.last_run_at,
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        return payload

    @classmethod
    def from_payload(cls, raw: Mapping[str, Any]) -> Task:
        args = raw.get("args") or []
        env_vars = raw.get("env_vars") or {}
        return cls(
            id=_opt_int(raw.get("id")),
            name=str(raw.get("name") or ""),
            program=str(raw.get("program") or ""),
            working_dir=_opt_str(raw.get("working_dir")),
            args=[str(a) for a in args] if isinstance(args, list) else [],
            env_vars={str(k): str(v) for k, v in env_vars.items()} if isinstance(env_vars, Mapping) else {},
            stdin=_opt_str(raw.get("stdin")),
            stdout=_opt_str(raw.get("stdout")),
            stderr=_opt_str(raw.get("stderr")),
            trigger=trigger_from_payload(raw.get("trigger")),
            enabled=bool(raw.get("enabled", True)),
            no_console=bool(raw.get("no_console", False)),
            last_exit_code=_opt_int(raw.get("last_exit_code")),
            last_run_at=_opt_str(raw.get("last_run_at")),
        )


@dataclass(slots=True)
class AppConfig:
    """Scheduler-side application settings."""

    quiet_launch: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {"quiet_launch": self.quiet_launch}

    @classmethod
    def from_payload(cls, raw: Any) -> AppConfig:
        if not isinstance(raw, Mapping):
            return cls()
        return cls(quiet_launch=bool(raw.get("quiet_launch", False)))

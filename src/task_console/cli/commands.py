# src/task_console/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Awaitable, Callable

from ..core.errors import TaskConsoleError, TransportError, ValidationError, error_message
from ..core.ports import NoticeLevel
from ..core.state import AppState
from ..tasks.task_editor import TaskEditor
from ..tasks.task_list import format_last_run, trigger_label
from ..tasks.task_models import AppConfig, EnvVar, Task, TriggerTag

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Validation problems are answered inline; backend failures go to the
        notifier, the same way background actions report them.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return await handler(state, args, emit)
        except ValidationError as e:
            return f"Invalid input: {e}"
        except TransportError as e:
            state.notifier.notify(NoticeLevel.ERROR, f"/{name} failed", e.message)
            return ""

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _parse_id(args: list[str], usage: str) -> int:
    if not args:
        raise ValidationError(f"usage: {usage}")
    try:
        return int(args[0].lstrip("#"))
    except ValueError:
        raise ValidationError(f"not a task id: {args[0]}") from None


def _parse_index(raw: str, size: int) -> int:
    """User-facing indexes are 1-based."""
    try:
        idx = int(raw) - 1
    except ValueError:
        raise ValidationError(f"not an index: {raw}") from None
    if not 0 <= idx < size:
        raise ValidationError(f"index out of range: {raw}")
    return idx


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "y", "on"}:
        return True
    if value in {"0", "false", "no", "n", "off"}:
        return False
    raise ValidationError(f"expected on/off, got {raw!r}")


def _parse_env(raw: str) -> EnvVar:
    key, sep, value = raw.partition("=")
    if not sep:
        raise ValidationError(f"expected KEY=VALUE, got {raw!r}")
    return EnvVar(key, value)


def _require_editor(state: AppState) -> TaskEditor:
    if state.editor is None or not state.editor.is_open:
        raise ValidationError("no open edit session (use /new or /edit <id>)")
    return state.editor


_TRIGGER_ALIASES = {t.value.lower(): t for t in TriggerTag} | {
    "keep_alive": TriggerTag.KEEP_ALIVE,
    "until_succeed": TriggerTag.UNTIL_SUCCEED,
}


def _describe_task(task: Task) -> str:
    lines = [
        f"Task #{task.id}: {task.name or '(unnamed)'}",
        f"  program:     {task.program or '-'}",
        f"  working dir: {task.working_dir or '-'}",
        f"  args:        {shlex.join(task.args) if task.args else '-'}",
        f"  trigger:     {trigger_label(task.trigger)}",
        f"  enabled:     {'yes' if task.enabled else 'no'}",
        f"  no console:  {'yes' if task.no_console else 'no'}",
    ]
    for label, value in (("stdin", task.stdin), ("stdout", task.stdout), ("stderr", task.stderr)):
        if value:
            lines.append(f"  {label + ':':<12} {value}")
    if task.env_vars:
        lines.append("  env:")
        lines.extend(f"    {k}={v}" for k, v in task.env_vars.items())
    if task.last_exit_code is not None:
        lines.append(f"  last exit:   {task.last_exit_code}")
    lines.append(f"  last run:    {format_last_run(task.last_run_at)}")
    return "\n".join(lines)


def _describe_editor(editor: TaskEditor) -> str:
    title = "New task (draft)" if editor.task_id is None else f"Editing task #{editor.task_id}"
    draft = editor.draft
    lines = [
        title,
        f"  name:        {draft.name or '-'} ({editor.name_mode.value})",
        f"  program:     {draft.program or '-'}",
        f"  working dir: {draft.working_dir or '-'}",
        f"  trigger:     {trigger_label(draft.trigger)}",
        f"  enabled:     {'yes' if draft.enabled else 'no'}",
        f"  no console:  {'yes' if draft.no_console else 'no'}",
    ]
    for label, value in (("stdin", draft.stdin), ("stdout", draft.stdout), ("stderr", draft.stderr)):
        if value:
            lines.append(f"  {label + ':':<12} {value}")
    if editor.args:
        lines.append("  args:")
        lines.extend(f"    {i}. {a}" for i, a in enumerate(editor.args, start=1))
    if editor.env_vars:
        lines.append("  env:")
        lines.extend(f"    {i}. {p.key}={p.value}" for i, p in enumerate(editor.env_vars, start=1))
    return "\n".join(lines)


# ---- task list ----


async def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


async def cmd_list(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    store = state.store
    if store.loading and not store.tasks:
        return "Loading tasks..."

    lines: list[str] = []
    if store.error:
        lines.append(f"[!] {store.error} (use /refresh to retry)")

    rows = state.presenter.rows()
    if not rows:
        lines.append("No tasks yet. Use /new to create one.")
        return "\n".join(lines)

    for row in rows:
        task = row.task
        flags = ["on" if task.enabled else "off"]
        if row.running:
            flags.append("running")
        if not row.runnable:
            flags.append("program not runnable")
        extra = [row.trigger]
        if row.exit_code:
            extra.append(row.exit_code)
        if task.last_run_at:
            extra.append(f"last {row.last_run}")
        lines.append(f"#{task.id:<4} {task.name:<24} [{', '.join(flags)}]  {' | '.join(extra)}")

    if state.presenter.pending_delete is not None:
        lines.append(f"Pending delete: #{state.presenter.pending_delete} (/confirm or /cancel)")
    return "\n".join(lines)


async def cmd_refresh(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    ok = await state.store.fetch()
    await state.reconciler.tick()
    if not ok:
        state.notifier.notify(NoticeLevel.ERROR, "Refresh failed", state.store.error)
        return ""
    return f"Refreshed: {len(state.store.tasks)} tasks."


async def cmd_show(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = _parse_id(args, "/show <id>")
    task = state.store.get(task_id) or await state.service.get_task(task_id)
    if task is None:
        return f"Task #{task_id} not found."
    return _describe_task(task)


async def cmd_run(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = _parse_id(args, "/run <id>")
    task = state.store.get(task_id)
    if task is not None and not task.enabled:
        return f"Task #{task_id} is disabled."
    if state.presenter.is_running(task_id):
        return f"Task #{task_id} is already running."
    if await state.presenter.run(task_id):
        return f"Task #{task_id} started."
    return ""


async def cmd_stop(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = _parse_id(args, "/stop <id>")
    if await state.presenter.stop(task_id):
        return f"Stop requested for task #{task_id}."
    return ""


async def cmd_enable(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = _parse_id(args, "/enable <id>")
    if await state.presenter.toggle(task_id, True):
        return f"Task #{task_id} enabled."
    return ""


async def cmd_disable(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = _parse_id(args, "/disable <id>")
    if await state.presenter.toggle(task_id, False):
        return f"Task #{task_id} disabled."
    return ""


async def cmd_delete(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = _parse_id(args, "/delete <id>")
    state.presenter.stage_delete(task_id)
    task = state.store.get(task_id)
    label = f"#{task_id} ({task.name})" if task else f"#{task_id}"
    return f"Delete task {label}? This cannot be undone. Use /confirm or /cancel."


async def cmd_confirm(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = state.presenter.pending_delete
    if task_id is None:
        return "Nothing to confirm."
    if await state.presenter.confirm_delete():
        return f"Task #{task_id} deleted."
    return ""


async def cmd_cancel(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if state.presenter.pending_delete is None:
        return "Nothing to cancel."
    state.presenter.cancel_delete()
    return "Delete cancelled."


# ---- edit session ----


async def cmd_new(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if state.editor is not None and state.editor.is_open:
        state.editor.discard()
    state.editor = TaskEditor.new()
    return "New task draft. Use /set program <path> (name follows the program until you /set name)."


async def cmd_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = _parse_id(args, "/edit <id>")
    task = state.store.get(task_id) or await state.service.get_task(task_id)
    if task is None:
        return f"Task #{task_id} not found."
    if state.editor is not None and state.editor.is_open:
        state.editor.discard()
    state.editor = TaskEditor.load(task)
    return _describe_editor(state.editor)


async def cmd_set(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    editor = _require_editor(state)
    if not args:
        raise ValidationError("usage: /set <name|program|workdir|stdin|stdout|stderr|enabled|console> [value]")
    field_name = args[0].lower()
    value = " ".join(args[1:])

    if field_name == "name":
        editor.set_name(value)
    elif field_name == "program":
        editor.set_program(value)
    elif field_name in ("workdir", "working_dir", "cwd"):
        editor.set_working_dir(value)
    elif field_name == "stdin":
        editor.set_stdin(value)
    elif field_name == "stdout":
        editor.set_stdout(value)
    elif field_name == "stderr":
        editor.set_stderr(value)
    elif field_name == "enabled":
        editor.set_enabled(_parse_bool(value))
    elif field_name in ("console", "no_console"):
        # "/set console off" hides the console window.
        hide = not _parse_bool(value) if field_name == "console" else _parse_bool(value)
        editor.set_no_console(hide)
    else:
        raise ValidationError(f"unknown field: {field_name}")
    return _describe_editor(editor)


async def cmd_arg(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    editor = _require_editor(state)
    if not args:
        raise ValidationError("usage: /arg add <value> | /arg set <n> <value> | /arg rm <n>")
    action = args[0].lower()
    if action == "add":
        editor.add_arg(" ".join(args[1:]))
    elif action == "set" and len(args) >= 2:
        editor.set_arg(_parse_index(args[1], len(editor.args)), " ".join(args[2:]))
    elif action in ("rm", "remove") and len(args) == 2:
        editor.remove_arg(_parse_index(args[1], len(editor.args)))
    else:
        raise ValidationError("usage: /arg add <value> | /arg set <n> <value> | /arg rm <n>")
    return _describe_editor(editor)


async def cmd_env(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    editor = _require_editor(state)
    if not args:
        raise ValidationError("usage: /env add KEY=VALUE | /env set <n> KEY=VALUE | /env rm <n>")
    action = args[0].lower()
    if action == "add":
        pair = _parse_env(" ".join(args[1:])) if len(args) > 1 else EnvVar()
        editor.add_env_var(pair.key, pair.value)
    elif action == "set" and len(args) >= 3:
        idx = _parse_index(args[1], len(editor.env_vars))
        pair = _parse_env(" ".join(args[2:]))
        editor.set_env_var(idx, key=pair.key, value=pair.value)
    elif action in ("rm", "remove") and len(args) == 2:
        editor.remove_env_var(_parse_index(args[1], len(editor.env_vars)))
    else:
        raise ValidationError("usage: /env add KEY=VALUE | /env set <n> KEY=VALUE | /env rm <n>")
    return _describe_editor(editor)


async def cmd_trigger(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    editor = _require_editor(state)
    if not args:
        names = ", ".join(t.value for t in TriggerTag)
        raise ValidationError(f"usage: /trigger <type> [value]; types: {names}")
    tag = _TRIGGER_ALIASES.get(args[0].lower())
    if tag is None:
        raise ValidationError(f"unknown trigger type: {args[0]}")

    # The value is checked before the draft switches, so a bad value changes nothing.
    if len(args) == 1:
        editor.select_trigger(tag)
    elif tag is TriggerTag.ROUTINE:
        value = " ".join(args[1:])
        try:
            ms = int(value)
        except ValueError:
            raise ValidationError(f"interval must be milliseconds, got {value!r}") from None
        editor.set_routine_ms(ms)
    elif tag is TriggerTag.INSTANT:
        editor.set_instant(" ".join(args[1:]))
    else:
        raise ValidationError(f"{tag.value} takes no value")
    return f"Trigger: {trigger_label(editor.trigger)}"


async def cmd_browse(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    editor = _require_editor(state)
    target = args[0].lower() if args else "program"
    if emit is not None:
        emit("Waiting for the picker...")
    if target == "program":
        picked = await editor.browse_program(state.service)
    elif target in ("workdir", "working_dir", "cwd"):
        picked = await editor.browse_working_dir(state.service)
    else:
        raise ValidationError("usage: /browse [program|workdir]")
    if not picked:
        return "Nothing selected."
    return _describe_editor(editor)


async def cmd_draft(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return _describe_editor(_require_editor(state))


async def cmd_save(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    editor = _require_editor(state)
    try:
        task = await editor.save(state.gateway, state.store)
    except TransportError as e:
        state.notifier.notify(NoticeLevel.ERROR, "Save failed", e.message)
        return ""
    state.editor = None
    state.notifier.notify(NoticeLevel.SUCCESS, "Saved", task.name)
    return ""


async def cmd_discard(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if state.editor is None or not state.editor.is_open:
        return "No open edit session."
    state.editor.discard()
    state.editor = None
    return "Edit session discarded."


# ---- app ----


async def cmd_config(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    config = await state.gateway.load_config()
    if not args:
        return f"quiet_launch = {'on' if config.quiet_launch else 'off'}"
    if len(args) != 2 or args[0].lower() != "quiet_launch":
        raise ValidationError("usage: /config [quiet_launch on|off]")
    await state.gateway.save_config(AppConfig(quiet_launch=_parse_bool(args[1])))
    state.notifier.notify(NoticeLevel.SUCCESS, "Settings saved")
    return ""


async def cmd_shutdown(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    try:
        await state.service.exit()
    except TaskConsoleError as e:
        return f"Scheduler refused to exit: {error_message(e, 'unknown error')}"
    return "Scheduler service asked to exit."


registry.register("help", cmd_help, "Show this help", aliases=["h", "?"])
registry.register("list", cmd_list, "List tasks with live state", aliases=["ls"])
registry.register("refresh", cmd_refresh, "Reload tasks and statuses now")
registry.register("show", cmd_show, "Show one task: /show <id>")
registry.register("run", cmd_run, "Run a task once now: /run <id>")
registry.register("stop", cmd_stop, "Stop a running task: /stop <id>")
registry.register("enable", cmd_enable, "Enable a task: /enable <id>")
registry.register("disable", cmd_disable, "Disable a task: /disable <id>")
registry.register("delete", cmd_delete, "Stage a task for deletion: /delete <id>", aliases=["rm"])
registry.register("confirm", cmd_confirm, "Confirm the staged deletion")
registry.register("cancel", cmd_cancel, "Cancel the staged deletion")
registry.register("new", cmd_new, "Start a new task draft")
registry.register("edit", cmd_edit, "Edit an existing task: /edit <id>")
registry.register("set", cmd_set, "Set a draft field: /set <field> <value>")
registry.register("arg", cmd_arg, "Edit draft arguments: /arg add|set|rm")
registry.register("env", cmd_env, "Edit draft environment: /env add|set|rm")
registry.register("trigger", cmd_trigger, "Set the draft trigger: /trigger <type> [value]")
registry.register("browse", cmd_browse, "Pick program or working dir: /browse [program|workdir]")
registry.register("draft", cmd_draft, "Show the current draft")
registry.register("save", cmd_save, "Save the current draft")
registry.register("discard", cmd_discard, "Discard the current draft")
registry.register("config", cmd_config, "Show or change app settings: /config [quiet_launch on|off]")
registry.register("shutdown", cmd_shutdown, "Ask the scheduler service to exit")

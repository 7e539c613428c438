# src/planit/cli/commands.py

from __future__ import annotations

import inspect
import logging
import re
from collections.abc import Awaitable, Callable
from datetime import date, datetime, time, timedelta
from typing import cast

from ..core.state import AppState
from ..tasks.date_filter import format_day_heading, format_display_time
from ..tasks.task_models import PersistenceError, TaskValidationError

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_CLOCK_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*([ap]m)?$", re.IGNORECASE)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

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

        Validation and persistence errors are turned into user-facing text;
        anything else propagates to the caller.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return await h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return await h2(state, args)
        except TaskValidationError as e:
            return f"{e.title}: {e.message}"
        except PersistenceError as e:
            logger.warning("/%s: persistence error: %s", name, e)
            return f"Warning: {e}. Changes may not be saved; use /flush to retry."

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument parsing ----


def parse_clock(text: str) -> time:
    """
    Parse a time of day: "9:05", "21:30", "9pm", "9:05 AM".

    Raises ValueError on anything else.
    """
    m = _CLOCK_RE.match(text.strip())
    if not m:
        raise ValueError(f"not a time of day: {text!r}")

    hour = int(m.group(1))
    minute = int(m.group(2) or 0)
    suffix = (m.group(3) or "").lower()

    if suffix:
        if not 1 <= hour <= 12:
            raise ValueError(f"hour out of range for 12-hour clock: {text!r}")
        hour = hour % 12 + (12 if suffix == "pm" else 0)
    elif hour > 23:
        raise ValueError(f"hour out of range: {text!r}")

    if minute > 59:
        raise ValueError(f"minute out of range: {text!r}")
    return time(hour, minute)


def parse_day(text: str, *, today: date, current: date) -> date:
    """
    Parse a day argument:
    - "today"
    - "+N" / "-N": N days after/before the current selection
    - "YYYY-MM-DD"

    Raises ValueError on anything else, including offsets past the date range.
    """
    raw = text.strip().lower()
    if raw == "today":
        return today
    if raw[:1] in ("+", "-") and raw[1:].isdigit():
        try:
            return current + timedelta(days=int(raw))
        except OverflowError as e:
            raise ValueError(f"day offset out of range: {text!r}") from e
    return date.fromisoformat(raw)


def _at(day: date, clock: time) -> datetime:
    return datetime.combine(day, clock).astimezone()


def _render_task_line(n: int, title: str, start: datetime, end: datetime, done: bool) -> str:
    status = "Done" if done else "Not Done"
    return f"  {n}. {title} ({format_display_time(start)} - {format_display_time(end)}) - {status}"


# ---- handlers ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    store = state.task_store
    tasks = store.tasks
    open_count = sum(1 for t in tasks if not t.done)
    db_path = getattr(state.settings, "tasks_db_path", "?")
    return (
        "Status:\n"
        f"  Storage: {db_path} (key {store.storage_key})\n"
        f"  Loaded: {'yes' if store.loaded else 'NO'}\n"
        f"  Write mode: {store.write_mode}{' (unsaved changes)' if store.dirty else ''}\n"
        f"  Rollover hour: {store.rollover_hour:02d}:00\n"
        f"  Tasks: {len(tasks)} total, {open_count} open\n"
        f"  Selected day: {state.selected_day.isoformat()}"
    )


async def cmd_list(state: AppState, args: list[str]) -> str:
    tasks = state.task_store.tasks_for_day(state.selected_day)
    state.last_listing = [t.id for t in tasks]

    heading = format_day_heading(state.selected_day)
    if not tasks:
        return f"{heading}\n  (no tasks)"

    lines = [heading]
    for i, t in enumerate(tasks, start=1):
        lines.append(_render_task_line(i, t.title, t.start_time, t.end_time, t.done))
    return "\n".join(lines)


async def cmd_day(state: AppState, args: list[str]) -> str:
    """
    /day            -> show selected day
    /day today      -> back to today
    /day +1 | -1    -> move selection
    /day 2024-05-15 -> jump to a date
    """
    if not args:
        return format_day_heading(state.selected_day)

    try:
        day = parse_day(args[0], today=state.task_store.today(), current=state.selected_day)
    except ValueError:
        return "Usage: /day [today | +N | -N | YYYY-MM-DD]"

    state.selected_day = day
    state.last_listing = []
    return await cmd_list(state, [])


async def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add START [END] TITLE...

    START/END are times on the selected day. Without END the task lasts the
    configured default length.
    """
    usage = "Usage: /add START [END] TITLE (e.g. /add 9:00 10:30 Write report)"
    if not args:
        return usage

    try:
        start_clock = parse_clock(args[0])
    except ValueError:
        return usage

    rest = args[1:]
    start = _at(state.selected_day, start_clock)
    end: datetime | None = None
    if rest:
        try:
            end = _at(state.selected_day, parse_clock(rest[0]))
        except ValueError:
            pass  # second token is part of the title
        else:
            rest = rest[1:]
    if end is None:
        minutes = int(getattr(state.settings, "default_task_minutes", 60))
        end = start + timedelta(minutes=minutes)

    task = await state.task_store.add_task(" ".join(rest), start, end)
    return (
        f"Added: {task.title} "
        f"({format_display_time(task.start_time)} - {format_display_time(task.end_time)})"
    )


async def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done N (number from /list) or /done TASK_ID"

    ref = args[0]
    task_id = ref
    if ref.isdigit() and 1 <= int(ref) <= len(state.last_listing):
        task_id = state.last_listing[int(ref) - 1]

    found = await state.task_store.mark_as_done(task_id)
    if not found:
        return f"No task {ref!r}. Use /list to see task numbers."

    task = state.task_store.find(task_id)
    title = task.title if task is not None else task_id
    return f"Done: {title}"


async def cmd_rollover(state: AppState, args: list[str]) -> str:
    moved = await state.task_store.roll_over_incomplete_tasks()
    if not moved:
        return "Nothing to roll over."
    return f"Moved {moved} unfinished task(s) to today."


async def cmd_flush(state: AppState, args: list[str]) -> str:
    if await state.task_store.flush():
        return "Pending changes saved."
    return "Nothing to save."


async def cmd_reload(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        emit("Reloading tasks from storage...")
    tasks = await state.task_store.start()
    state.last_listing = []
    return f"Loaded {len(tasks)} task(s)."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage and task summary.")
registry.register("list", cmd_list, help_text="List tasks for the selected day.", aliases=["ls"])
registry.register("day", cmd_day, help_text="Select a day: /day today | +1 | -1 | YYYY-MM-DD.")
registry.register("add", cmd_add, help_text="Add a task: /add 9:00 [10:00] Title.")
registry.register("done", cmd_done, help_text="Mark a task done: /done N | /done TASK_ID.")
registry.register("rollover", cmd_rollover, help_text="Move unfinished past tasks to today.")
registry.register("flush", cmd_flush, help_text="Retry saving changes that failed to save.")
registry.register("reload", cmd_reload, help_text="Reload tasks from storage.")

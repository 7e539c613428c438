# src/planit/tasks/task_store.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime

from ..core.ports import Clock, KeyValueStore
from .date_filter import at_hour, select_for_day, start_of_day
from .task_models import (
    PersistenceError,
    Task,
    TaskDataError,
    TaskValidationError,
    dump_tasks,
    load_tasks,
    new_task_id,
    to_local,
)

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "@tasks_storage"
WRITE_MODES = ("confirmed", "optimistic")


def _local_now() -> datetime:
    return datetime.now().astimezone()


class TaskStore:
    """
    Owns the in-memory task list and keeps it in sync with a key-value store.

    The whole list lives under a single key and is rewritten on every change;
    save() is the only write path.

    Write modes:
    - "confirmed": the in-memory list changes only after the write succeeded.
    - "optimistic": the in-memory list changes first; if the write then fails
      the store is marked dirty and flush() can retry later.
    Either way a failed write raises PersistenceError.

    Mutations are serialized with an asyncio.Lock: each one reads the current
    list, computes the next one and writes it before the next mutation starts.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        storage_key: str = DEFAULT_STORAGE_KEY,
        rollover_hour: int = 9,
        write_mode: str = "confirmed",
        clock: Clock | None = None,
    ) -> None:
        if write_mode not in WRITE_MODES:
            raise ValueError(f"write_mode must be one of {WRITE_MODES}, got {write_mode!r}")
        if not 0 <= int(rollover_hour) <= 23:
            raise ValueError(f"rollover_hour must be within 0..23, got {rollover_hour!r}")

        self._kv = kv
        self._key = storage_key
        self._rollover_hour = int(rollover_hour)
        self._write_mode = write_mode
        self._clock = clock or _local_now

        self._tasks: list[Task] = []
        self._loaded = False
        self._dirty = False
        self._last_rollover_day: date | None = None
        self._lock = asyncio.Lock()

    # ---- state ----

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def storage_key(self) -> str:
        return self._key

    @property
    def write_mode(self) -> str:
        return self._write_mode

    @property
    def rollover_hour(self) -> int:
        return self._rollover_hour

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def dirty(self) -> bool:
        """True when the in-memory list has changes the store never accepted."""
        return self._dirty

    @property
    def last_rollover_day(self) -> date | None:
        return self._last_rollover_day

    def today(self) -> date:
        return self._now().date()

    def tasks_for_day(self, day: date) -> list[Task]:
        return select_for_day(self._tasks, day)

    def find(self, task_id: str) -> Task | None:
        for t in self._tasks:
            if t.id == task_id:
                return t
        return None

    # ---- persistence ----

    async def load(self) -> list[Task]:
        """
        Read the stored list. A missing key means an empty list.

        Raises PersistenceError if the store fails, TaskDataError if the stored
        document cannot be decoded. In both cases the in-memory list is untouched.

        Refuses (PersistenceError) while the store is dirty: reloading would
        drop the changes a failed optimistic write left in memory.
        """
        self._require_clean()
        try:
            raw = await self._kv.get(self._key)
        except Exception as e:
            logger.exception("Failed to read task list key=%s", self._key)
            raise PersistenceError(f"could not read task list: {e}") from e

        tasks = [] if raw is None else load_tasks(raw)

        async with self._lock:
            self._require_clean()
            self._tasks = tasks
            self._loaded = True
            self._dirty = False
        logger.info("Task list loaded key=%s total=%d", self._key, len(tasks))
        return list(tasks)

    async def save(self, tasks: Iterable[Task]) -> None:
        """Replace the whole list, in memory and in the store."""
        async with self._lock:
            await self._write(list(tasks))

    async def flush(self) -> bool:
        """
        Retry writing the in-memory list after a failed optimistic write.

        Returns True if a write happened.
        """
        async with self._lock:
            if not self._dirty:
                return False
            await self._write(list(self._tasks))
            logger.info("Flushed pending task list key=%s total=%d", self._key, len(self._tasks))
            return True

    async def _put(self, payload: str) -> None:
        try:
            await self._kv.set(self._key, payload)
        except Exception as e:
            logger.exception("Failed to write task list key=%s", self._key)
            raise PersistenceError(f"could not save task list: {e}") from e

    async def _write(self, tasks: list[Task]) -> None:
        # Caller holds self._lock.
        self._require_loaded()
        payload = dump_tasks(tasks)

        if self._write_mode == "optimistic":
            self._tasks = tasks
            self._dirty = True
            await self._put(payload)
            self._dirty = False
        else:
            await self._put(payload)
            self._tasks = tasks
            self._dirty = False

        logger.debug("Task list saved key=%s total=%d mode=%s", self._key, len(tasks), self._write_mode)

    def _require_clean(self) -> None:
        if self._dirty:
            raise PersistenceError("task list has unsaved changes; flush them before reloading")

    def _require_loaded(self) -> None:
        # Writing before a successful load would overwrite data we never read.
        if not self._loaded:
            raise PersistenceError("task list has not been loaded yet")

    # ---- operations ----

    async def add_task(self, title: str, start_time: datetime, end_time: datetime) -> Task:
        """
        Append a new, not-done task and save.

        Raises TaskValidationError (nothing is written) if the title is blank
        or the start is not strictly before the end.
        """
        title = (title or "").strip()
        if not title:
            raise TaskValidationError("Invalid Task", "Please enter a title for your task.")

        start = to_local(start_time)
        end = to_local(end_time)
        if start >= end:
            raise TaskValidationError("Invalid Time", "Start time must be before end time.")

        task = Task(id=new_task_id(), title=title, start_time=start, end_time=end)

        async with self._lock:
            await self._write([*self._tasks, task])

        logger.info("Task added id=%s start=%s end=%s", task.id, start.isoformat(), end.isoformat())
        return task

    async def mark_as_done(self, task_id: str) -> bool:
        """
        Mark the task with `task_id` as done.

        Returns False if no such task exists; the list is still saved unchanged.
        Marking an already-done task again changes nothing.
        """
        async with self._lock:
            found = False
            updated: list[Task] = []
            for t in self._tasks:
                if t.id == task_id:
                    found = True
                    if not t.done:
                        t = replace(t, done=True)
                updated.append(t)
            await self._write(updated)

        if found:
            logger.info("Task marked done id=%s", task_id)
        else:
            logger.warning("mark_as_done: unknown task id=%s", task_id)
        return found

    async def roll_over_incomplete_tasks(self, reference_time: datetime | None = None) -> int:
        """
        Move unfinished tasks from past days onto the reference day.

        A task is moved when it is not done and starts before midnight of the
        reference day. It then starts at `rollover_hour`:00 of that day and
        keeps its original duration. Returns the number of moved tasks; the
        list is only saved if something moved.
        """
        current = self._now()
        now = current if reference_time is None else to_local(reference_time)
        day_start = start_of_day(now)
        anchor = at_hour(now, self._rollover_hour)

        async with self._lock:
            moved = 0
            updated: list[Task] = []
            for t in self._tasks:
                if not t.done and t.start_time < day_start:
                    t = replace(t, start_time=anchor, end_time=anchor + t.duration)
                    moved += 1
                updated.append(t)

            if moved:
                await self._write(updated)
            # A past or future reference day says nothing about today.
            if now.date() == current.date():
                self._last_rollover_day = current.date()

        if moved:
            logger.info("Rolled over %d task(s) to %s", moved, anchor.isoformat())
        return moved

    async def roll_over_if_new_day(self) -> int:
        """Run rollover unless it already ran for today's date."""
        now = self._now()
        if self._last_rollover_day == now.date():
            return 0
        return await self.roll_over_incomplete_tasks(now)

    async def start(self) -> list[Task]:
        """
        Startup sequence: load, then roll over.

        An undecodable stored document is copied to "<key>.corrupt" and the
        store starts with an empty list. Store failures propagate as
        PersistenceError.
        """
        try:
            await self.load()
        except TaskDataError as e:
            logger.error("Stored task list is unreadable (%s); starting empty.", e)
            await self._backup_corrupt(e.raw)
            async with self._lock:
                self._tasks = []
                self._loaded = True
                self._dirty = False

        await self.roll_over_incomplete_tasks()
        return self.tasks

    async def _backup_corrupt(self, raw: str) -> None:
        backup_key = f"{self._key}.corrupt"
        try:
            await self._kv.set(backup_key, raw)
        except Exception as e:
            logger.exception("Failed to back up unreadable task list to key=%s", backup_key)
            raise PersistenceError(f"could not back up unreadable task list: {e}") from e
        logger.warning("Unreadable task list copied to key=%s", backup_key)

    def _now(self) -> datetime:
        return to_local(self._clock())

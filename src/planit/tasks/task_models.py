# src/planit/tasks/task_models.py

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

logger = logging.getLogger(__name__)


class PlanitError(Exception):
    """Base class for errors raised by the planner core."""


class TaskValidationError(PlanitError):
    """
    A task could not be created from the given input.

    Carries a short title and a message meant to be shown to the user as-is.
    """

    def __init__(self, title: str, message: str) -> None:
        super().__init__(f"{title}: {message}")
        self.title = title
        self.message = message


class PersistenceError(PlanitError):
    """Reading or writing the task list through the key-value store failed."""


class TaskDataError(PersistenceError):
    """The stored task document exists but cannot be decoded."""

    def __init__(self, message: str, raw: str) -> None:
        super().__init__(message)
        self.raw = raw


def new_task_id() -> str:
    return uuid.uuid4().hex


def to_local(ts: datetime) -> datetime:
    """Return `ts` as an aware local datetime (naive values are taken as local)."""
    return ts.astimezone()


def parse_timestamp(raw: str) -> datetime:
    # fromisoformat() accepts the trailing "Z" written by JS toISOString().
    return to_local(datetime.fromisoformat(raw))


def format_timestamp(ts: datetime) -> str:
    return to_local(ts).isoformat()


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    start_time: datetime
    end_time: datetime
    done: bool = False

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time


def task_to_dict(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "startTime": format_timestamp(task.start_time),
        "endTime": format_timestamp(task.end_time),
        "done": bool(task.done),
    }


def task_from_dict(obj: dict[str, Any]) -> Task:
    """
    Build a Task from its stored form.

    Raises ValueError (or TypeError) when a required field is missing or unusable.
    """
    raw_id = obj.get("id")
    if raw_id is None or str(raw_id).strip() == "":
        raise ValueError("task id is missing")
    title = obj.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValueError("task title is missing")

    return Task(
        id=str(raw_id),
        title=title,
        start_time=parse_timestamp(obj["startTime"]),
        end_time=parse_timestamp(obj["endTime"]),
        done=bool(obj.get("done", False)),
    )


def dump_tasks(tasks: list[Task]) -> str:
    """Serialize the whole task list into the single stored JSON document."""
    return json.dumps([task_to_dict(t) for t in tasks], ensure_ascii=False)


def load_tasks(raw: str) -> list[Task]:
    """
    Decode the stored JSON document.

    The document itself must be a JSON array, otherwise TaskDataError is raised.
    Individual broken entries are skipped (and logged) so one bad record
    does not hide the rest of the list.
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise TaskDataError(f"stored task list is not valid JSON: {e}", raw) from e

    if not isinstance(data, list):
        raise TaskDataError(
            f"stored task list must be a JSON array, got {type(data).__name__}", raw
        )

    out: list[Task] = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            logger.warning("Skipping stored task #%d: not an object", idx)
            continue
        try:
            out.append(task_from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping stored task #%d (id=%s): %s", idx, item.get("id"), e)
    return out

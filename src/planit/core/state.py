# src/planit/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    """
    Runtime state shared by the console connector and command handlers.

    The TaskStore is the only owner of the task list; everything else reads
    it through the store and mutates it through store methods.
    """

    settings: Any
    task_store: TaskStore

    # Day shown by /list and used by /add.
    selected_day: date = field(default_factory=date.today)

    # Ids of the last /list output, so /done can take a list number.
    last_listing: list[str] = field(default_factory=list)

# src/planit/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the SQLite key-value store into a TaskStore,
- runs the startup load + rollover.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..tasks.kv_store import SqliteKeyValueStore
from ..tasks.task_models import PersistenceError
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    The task list is NOT loaded here; await start_task_store() before use.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    task_store = TaskStore(
        SqliteKeyValueStore(settings.tasks_db_path),
        storage_key=settings.storage_key,
        rollover_hour=settings.rollover_hour,
        write_mode=settings.write_mode,
    )
    return AppState(settings=settings, task_store=task_store, selected_day=task_store.today())


async def start_task_store(state: AppState) -> bool:
    """
    Load the task list and roll over unfinished past tasks.

    Returns False if the store could not be read; the app keeps running and
    refuses writes until a later reload succeeds.
    """
    try:
        tasks = await state.task_store.start()
    except PersistenceError:
        logger.exception("Task store startup failed.")
        return False

    logger.info("Task store started: %d task(s), write_mode=%s", len(tasks), state.task_store.write_mode)
    return True

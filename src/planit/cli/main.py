# src/planit/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, loads the task list (with rollover),
then runs the console REPL until /exit, EOF or Ctrl+C.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state, start_task_store
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from ..tasks.task_models import PersistenceError

logger = logging.getLogger(__name__)


async def _flush_pending(store) -> None:
    # Optimistic writes may have left changes behind; one last attempt.
    if not store.dirty:
        return
    try:
        await store.flush()
    except PersistenceError:
        logger.exception("Final flush failed; unsaved changes are lost.")


async def _run(state, *, input_fn=input) -> None:
    if not await start_task_store(state):
        print("Warning: could not load saved tasks. Changes are disabled until /reload succeeds.")
    try:
        await run_console_loop(state, input_fn=input_fn)
    finally:
        await _flush_pending(state.task_store)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "WARNING")).upper()
    console_level = getattr(logging, level_name, logging.WARNING)

    log_dir = getattr(settings, "data_dir", ".local/planit")
    log_file = setup_logging(log_dir=log_dir, app_name=settings.app_name, console_level=console_level)

    logger.info("Starting %s (log file %s)...", settings.app_name, log_file)

    state = create_initial_state(settings=settings)

    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()

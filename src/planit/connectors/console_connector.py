# src/planit/connectors/console_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.task_models import PersistenceError

logger = logging.getLogger(__name__)

InputFn = Callable[[str], str]


async def _read_line(input_fn: InputFn, prompt: str) -> str:
    """
    Call `input_fn` in a daemon thread and await its line.

    A reader still blocked in input() when the loop is cancelled is simply
    abandoned, so shutting the event loop down never waits for Enter.
    """
    loop = asyncio.get_running_loop()
    fut: asyncio.Future[str] = loop.create_future()

    def deliver(line: str) -> None:
        if not fut.done():
            fut.set_result(line)

    def fail(exc: Exception) -> None:
        if not fut.done():
            fut.set_exception(exc)

    def worker() -> None:
        try:
            line = input_fn(prompt)
        except Exception as e:  # EOFError included
            callback, arg = fail, e
        else:
            callback, arg = deliver, line
        # The loop may already be closed if the session ended meanwhile.
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(callback, arg)

    threading.Thread(target=worker, name="planit-console-input", daemon=True).start()
    return await fut


async def run_console_loop(state: AppState, *, input_fn: InputFn = input) -> None:
    """
    Interactive planner REPL.

    Reads lines in a worker thread so the event loop stays free for store I/O.
    Before every line the store gets a chance to roll over, which covers a
    session left open across midnight.

    Ctrl+C reaches us as cancellation of the running task; it is logged and
    re-raised so the caller's cleanup still runs.
    """
    logger.info("Console connector started.")
    app_name = str(getattr(getattr(state, "settings", None), "app_name", "planit"))
    print(f"[{app_name}] Type /help for commands, /exit to quit.\n")

    def emit(text: str) -> None:
        print(text, flush=True)

    print(await command_registry.handle(state, "/list", emit=emit))

    while True:
        try:
            user_input = (await _read_line(input_fn, f"{app_name}> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except asyncio.CancelledError:
            logger.info("Console interrupted, exiting.")
            print()
            raise

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            moved = await state.task_store.roll_over_if_new_day()
            if moved:
                emit(f"New day: moved {moved} unfinished task(s) to today.")
        except PersistenceError as e:
            emit(f"Warning: rollover could not be saved ({e}).")

        if not user_input.startswith("/"):
            print("Commands start with '/'. Use /help to list them.")
            continue

        try:
            reply = await command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            print(reply)

    logger.info("Console connector finished.")

# src/planit/logging_setup.py

"""
Logging for the planner console.

stderr shares the terminal with the REPL prompt, so it only carries records a
user should see while typing commands. The log file under the data dir keeps
everything.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Lowest level a logger may print to the terminal. The longest dotted prefix
# of a record's logger name wins; unknown loggers need ERROR.
_CONSOLE_FLOORS: dict[str, int] = {
    "planit": logging.NOTSET,
    # Per-call SQLite chatter and REPL lifecycle lines would interleave with the prompt.
    "planit.tasks.kv_store": logging.WARNING,
    "planit.connectors.console_connector": logging.WARNING,
    "py.warnings": logging.ERROR,
}
_DEFAULT_FLOOR = logging.ERROR


def console_floor(name: str) -> int:
    """Minimum level at which records of logger `name` reach the terminal."""
    parts = name.split(".")
    while parts:
        floor = _CONSOLE_FLOORS.get(".".join(parts))
        if floor is not None:
            return floor
        parts.pop()
    return _DEFAULT_FLOOR


class _TerminalFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= console_floor(record.name)


def setup_logging(
    *,
    log_dir: str | Path = ".local/planit",
    app_name: str = "planit",
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Send filtered records to stderr and all of them to `<log_dir>/<app_name>.log`.

    Replaces whatever handlers the root logger had, so call it once at startup.
    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{app_name}.log"

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    terminal = logging.StreamHandler(sys.stderr)
    terminal.setLevel(console_level)
    terminal.setFormatter(fmt)
    terminal.addFilter(_TerminalFilter())
    root.addHandler(terminal)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file

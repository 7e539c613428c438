# src/planit/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The task store depends on Protocols instead of concrete implementations.
This keeps the persistence backend swappable and makes testing easier.
"""

from datetime import datetime
from typing import Protocol


class KeyValueStore(Protocol):
    """
    Opaque get/set-by-key text store used to survive restarts.

    - get() returns None when the key has never been written.
    - set() overwrites the whole value and raises on failure.
    Both are suspension points; callers must await them.
    """

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...


class Clock(Protocol):
    """Returns the current local time (timezone-aware)."""

    def __call__(self) -> datetime: ...

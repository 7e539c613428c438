# tests/conftest.py

from __future__ import annotations

import time
from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio

from planit.core.state import AppState
from planit.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeKeyValueStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the command handlers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment and any local .env.
    """
    return SimpleNamespace(
        app_name="planit-test",
        log_level="WARNING",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "planit.sqlite3",
        storage_key="@tasks_storage",
        rollover_hour=9,
        write_mode="confirmed",
        default_task_minutes=60,
    )


@pytest.fixture()
def central_european_time(monkeypatch: pytest.MonkeyPatch):
    """
    Switch process local time to Central European rules: clocks go forward on the
    last Sunday of March at 02:00 and back on the last Sunday of October at 03:00.

    Build clocks and timestamps inside the test, after this fixture has run.
    """
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset() is not available on this platform")
    monkeypatch.setenv("TZ", "CET-1CEST,M3.5.0,M10.5.0/3")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.fixture()
def kv() -> FakeKeyValueStore:
    return FakeKeyValueStore()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture()
async def store(kv: FakeKeyValueStore, clock: FakeClock) -> TaskStore:
    """Loaded, empty TaskStore on a fake key-value store, confirmed writes."""
    s = TaskStore(kv, clock=clock)
    await s.load()
    return s


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, clock: FakeClock) -> AppState:
    return AppState(settings=settings, task_store=store, selected_day=clock.now.date())

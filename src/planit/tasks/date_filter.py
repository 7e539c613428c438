# src/planit/tasks/date_filter.py

"""
Day selection and display helpers.

Day comparisons are done on the values as given: no timezone conversion
happens there. The store keeps timestamps in local time, so "same day" means
the same local calendar day.

start_of_day() and at_hour() build wall-clock times from the calendar date,
so on a DST change day each result carries its own local offset.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time

from .task_models import Task, parse_timestamp


def is_same_day(a: date, b: date) -> bool:
    """True if `a` and `b` share year, month and day (date or datetime)."""
    return a.year == b.year and a.month == b.month and a.day == b.day


def select_for_day(tasks: Iterable[Task], day: date) -> list[Task]:
    """Tasks starting on `day`, in their original order."""
    return [t for t in tasks if is_same_day(t.start_time, day)]


def start_of_day(ts: date) -> datetime:
    """Local midnight of the calendar day of `ts`, with that moment's own UTC offset."""
    return datetime.combine(date(ts.year, ts.month, ts.day), time()).astimezone()


def at_hour(ts: date, hour: int) -> datetime:
    """Same calendar day as `ts`, at `hour`:00:00 local time."""
    return datetime.combine(date(ts.year, ts.month, ts.day), time(hour)).astimezone()


def format_display_time(ts: datetime | str) -> str:
    """
    12-hour clock text, e.g. 13:05 -> "1:05 PM", 00:00 -> "12:00 AM".

    ISO-8601 strings are accepted as well and are shown in local time.
    """
    if isinstance(ts, str):
        ts = parse_timestamp(ts)
    suffix = "PM" if ts.hour >= 12 else "AM"
    hour = ts.hour % 12 or 12
    return f"{hour}:{ts.minute:02d} {suffix}"


def format_day_heading(day: date) -> str:
    # "Tasks for Wed, 05/15/24"
    return f"Tasks for {day.strftime('%a, %m/%d/%y')}"

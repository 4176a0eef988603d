"""Display status of a task, derived from its schedule and the wall clock.

The derived value is never written back: ``Task.status`` only ever holds
Pending, Complete or Deleted, while "In Progress" exists solely here.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Protocol, Union

from core.choices import COMPLETE, DELETED, IN_PROGRESS, PENDING
from core.settings import CALENDAR
from models.records import TaskRecord
from services.recurrence import occurs_on
from utils.datetime_utils import (
    TimeOfDay,
    calendar_date,
    calendar_zone,
    clock_minutes,
    to_calendar,
)


class SupportsStatus(Protocol):
    date: date
    recurring: Optional[str]
    start_time: TimeOfDay
    end_time: Optional[TimeOfDay]
    status: str


def derive_status(
    task: SupportsStatus,
    viewing_date: Union[date, datetime],
    now: datetime,
    *,
    timezone: Optional[str] = None,
) -> str:
    if task.status == DELETED:
        raise ValueError("Deleted tasks have no display status")

    zone = calendar_zone(timezone or CALENDAR.timezone)
    viewing = calendar_date(viewing_date, zone)
    local_now = to_calendar(now, zone)
    today = local_now.date()

    if not occurs_on(task, viewing, timezone=timezone):
        return task.status if task.status in (PENDING, COMPLETE) else PENDING

    if viewing < today:
        return COMPLETE
    if viewing > today:
        return PENDING

    current = clock_minutes(local_now)
    start = task.start_time.minutes
    if current < start:
        return PENDING
    if task.end_time is not None and current <= task.end_time.minutes:
        return IN_PROGRESS
    return COMPLETE


@dataclass(frozen=True)
class TaskView:
    """A task paired with the display status computed for one read."""

    task: TaskRecord
    display_status: str


def view_for_day(
    task: SupportsStatus,
    viewing_date: Union[date, datetime],
    now: datetime,
    *,
    timezone: Optional[str] = None,
) -> TaskView:
    return TaskView(task=task, display_status=derive_status(task, viewing_date, now, timezone=timezone))


__all__ = ["TaskView", "derive_status", "view_for_day"]

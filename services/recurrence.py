"""Recurrence rules: does a task that started on one date also fall on another?"""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Union

from core.choices import normalize_recurring
from core.errors import ValidationError
from core.settings import CALENDAR
from utils.datetime_utils import calendar_date, calendar_zone, parse_date

DateLike = Union[date, datetime, str]


class SupportsSchedule(Protocol):
    date: date
    recurring: Optional[str]


def _as_date(value: DateLike, zone, field: str) -> date:
    if isinstance(value, datetime):
        return calendar_date(value, zone)
    return parse_date(value, field=field)


def _weekly(original: date, candidate: date) -> bool:
    return original.weekday() == candidate.weekday()


def _monthly(original: date, candidate: date) -> bool:
    return original.day == candidate.day


def _yearly(original: date, candidate: date) -> bool:
    return original.day == candidate.day and original.month == candidate.month


_RULES = {
    "Daily": lambda original, candidate: True,
    "Weekdays": lambda original, candidate: candidate.weekday() < 5,
    "Weekly": _weekly,
    "Monthly": _monthly,
    "Yearly": _yearly,
}


def matches(
    recurring: Optional[str],
    original_date: DateLike,
    candidate_date: DateLike,
    *,
    timezone: Optional[str] = None,
) -> bool:
    """True when a ``recurring`` task first scheduled on ``original_date`` recurs on ``candidate_date``.

    Occurrences never precede the original date. Datetimes are reduced to
    calendar dates in the configured calendar zone before comparing; ISO
    ``YYYY-MM-DD`` strings are accepted too.
    """

    try:
        rule_name = normalize_recurring(recurring)
    except ValidationError:
        return False
    if rule_name is None:
        return False
    zone = calendar_zone(timezone or CALENDAR.timezone)
    original = _as_date(original_date, zone, "original_date")
    candidate = _as_date(candidate_date, zone, "candidate_date")
    if original > candidate:
        return False
    return _RULES[rule_name](original, candidate)


def occurs_on(task: SupportsSchedule, day: DateLike, *, timezone: Optional[str] = None) -> bool:
    """A task is active on ``day`` when scheduled for it or when its recurrence lands on it."""

    zone = calendar_zone(timezone or CALENDAR.timezone)
    candidate = _as_date(day, zone, "day")
    if task.date == candidate:
        return True
    return matches(task.recurring, task.date, candidate, timezone=timezone)


__all__ = ["matches", "occurs_on"]

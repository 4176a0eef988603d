"""Calendar, clock and time-of-day helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Mapping, Optional, Union
from zoneinfo import ZoneInfo

from core.choices import PERIODS
from core.errors import ValidationError

UTC = timezone.utc

_TIME_RE = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?\s*([AaPp][Mm])\s*$")


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def calendar_zone(name: Optional[str]) -> tzinfo:
    """Resolve a zone name; ``UTC`` never touches the system tz database."""

    if not name or name.strip().upper() == "UTC":
        return UTC
    return ZoneInfo(name.strip())


def to_calendar(dt: datetime, zone: tzinfo) -> datetime:
    """Express ``dt`` in ``zone``. Naive values are taken as already local to ``zone``."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=zone)
    return dt.astimezone(zone)


def calendar_date(value: Union[date, datetime], zone: tzinfo) -> date:
    if isinstance(value, datetime):
        return to_calendar(value, zone).date()
    return value


def parse_date(value: Any, *, field: str = "date") -> date:
    """Accept ``date``, ``datetime`` or ISO ``YYYY-MM-DD`` (a time suffix is ignored)."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()[:10]
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
    raise ValidationError.single(field, "A valid date (YYYY-MM-DD) is required")


def minutes_since_midnight(hour: int, minute: int, period: str) -> int:
    """12-hour clock to minutes: ``12 AM`` is 0, ``12 PM`` is 720."""

    offset = 720 if period.upper() == "PM" else 0
    return (hour % 12) * 60 + minute + offset


def clock_minutes(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute


@dataclass(frozen=True)
class TimeOfDay:
    """A wall-clock time on the 12-hour dial (``hour`` 1-12)."""

    hour: int
    minute: int
    period: str

    @property
    def minutes(self) -> int:
        return minutes_since_midnight(self.hour, self.minute, self.period)

    def label(self) -> str:
        return f"{self.hour}:{self.minute:02d} {self.period}"

    def as_dict(self) -> dict:
        return {"hour": self.hour, "minute": self.minute, "period": self.period}

    @classmethod
    def parse(cls, value: Any, *, field: str = "start_time") -> "TimeOfDay":
        """Build from a ``TimeOfDay``, a ``{hour, minute, period}`` mapping or ``"9:30 AM"``."""

        if isinstance(value, TimeOfDay):
            return cls._checked(value.hour, value.minute, value.period, field)
        if isinstance(value, Mapping):
            parts = [value.get(key) for key in ("hour", "minute", "period")]
            if any(part is None or str(part).strip() == "" for part in parts):
                raise ValidationError.single(field, "Hour, minute and AM/PM are all required")
            hour, minute, period = parts
            return cls._checked(hour, minute, period, field)
        if isinstance(value, str):
            match = _TIME_RE.match(value)
            if not match:
                raise ValidationError.single(field, f"Unrecognised time '{value}'")
            hour, minute, period = match.groups()
            return cls._checked(hour, minute or 0, period, field)
        raise ValidationError.single(field, "A time of day is required")

    @classmethod
    def _checked(cls, hour: Any, minute: Any, period: Any, field: str) -> "TimeOfDay":
        try:
            ihour = int(hour)
            iminute = int(minute)
        except (TypeError, ValueError):
            raise ValidationError.single(field, "Hour and minute must be numbers") from None
        text_period = str(period).strip().upper()
        if not 1 <= ihour <= 12:
            raise ValidationError.single(field, "Hour must be between 1 and 12")
        if not 0 <= iminute <= 59:
            raise ValidationError.single(field, "Minute must be between 0 and 59")
        if text_period not in PERIODS:
            raise ValidationError.single(field, "Period must be AM or PM")
        return cls(hour=ihour, minute=iminute, period=text_period)


def to_rfc3339_utc(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime to RFC3339 in UTC with second precision."""

    value = ensure_utc(dt)
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat().replace("+00:00", "Z")


__all__ = [
    "TimeOfDay",
    "UTC",
    "calendar_date",
    "calendar_zone",
    "clock_minutes",
    "ensure_utc",
    "minutes_since_midnight",
    "parse_date",
    "to_calendar",
    "to_rfc3339_utc",
    "utc_now",
]

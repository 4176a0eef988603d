"""Closed vocabularies used by tasks and users."""
from __future__ import annotations

from typing import Optional, Tuple

from core.errors import ValidationError

# Persisted lifecycle status. "In Progress" is display-only and never stored.
PENDING = "Pending"
COMPLETE = "Complete"
DELETED = "Deleted"
IN_PROGRESS = "In Progress"

LIFECYCLE_STATUSES: Tuple[str, ...] = (PENDING, COMPLETE, DELETED)

SECTIONS: Tuple[str, ...] = ("work", "school", "personal")
DEFAULT_SECTION = "work"

RECURRENCES: Tuple[str, ...] = ("Daily", "Weekdays", "Weekly", "Monthly", "Yearly")

PUBLIC = "public"
PRIVATE = "private"
VISIBILITIES: Tuple[str, ...] = (PUBLIC, PRIVATE)

PERIODS: Tuple[str, ...] = ("AM", "PM")

PRIORITIES: Tuple[str, ...] = ("High", "Medium", "Low")

_EMPTY = {"", "none", "null"}


def _lookup(value: str, options: Tuple[str, ...]) -> Optional[str]:
    folded = value.strip().lower()
    for option in options:
        if option.lower() == folded:
            return option
    return None


def normalize_priority(value: Optional[str]) -> Optional[str]:
    """Map ``high``/``HIGH``/``High`` to ``High``; empty values mean no priority."""
    if value is None or str(value).strip().lower() in _EMPTY:
        return None
    match = _lookup(str(value), PRIORITIES)
    if match is None:
        raise ValidationError.single("priority", f"Unknown priority '{value}'")
    return match


def normalize_recurring(value: Optional[str]) -> Optional[str]:
    if value is None or str(value).strip().lower() in _EMPTY:
        return None
    match = _lookup(str(value), RECURRENCES)
    if match is None:
        raise ValidationError.single("recurring", f"Unknown recurrence '{value}'")
    return match


def normalize_section(value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        return DEFAULT_SECTION
    match = _lookup(str(value), SECTIONS)
    if match is None:
        raise ValidationError.single("section", f"Unknown section '{value}'")
    return match


def normalize_visibility(value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        return PUBLIC
    match = _lookup(str(value), VISIBILITIES)
    if match is None:
        raise ValidationError.single("visibility", f"Unknown visibility '{value}'")
    return match


__all__ = [
    "COMPLETE",
    "DEFAULT_SECTION",
    "DELETED",
    "IN_PROGRESS",
    "LIFECYCLE_STATUSES",
    "PENDING",
    "PERIODS",
    "PRIORITIES",
    "PRIVATE",
    "PUBLIC",
    "RECURRENCES",
    "SECTIONS",
    "VISIBILITIES",
    "normalize_priority",
    "normalize_recurring",
    "normalize_section",
    "normalize_visibility",
]

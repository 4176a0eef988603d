"""Drafts and patches accepted by the task repository, and their validation."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from core.choices import normalize_priority, normalize_recurring, normalize_section
from core.errors import ValidationError
from core.settings import PROFILE
from models.records import TaskRecord
from services.users import normalize_email
from utils.datetime_utils import TimeOfDay, parse_date


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

COLLABORATORS_MESSAGE = "Collaborators must be a list of email addresses"


@dataclass
class TaskDraft:
    """Raw fields for a new task, as received from a form or API payload."""

    title: Any = None
    date: Any = None
    start_time: Any = None
    end_time: Any = None
    section: Any = None
    priority: Any = None
    recurring: Any = None
    collaborators: Iterable[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TaskDraft":
        return cls(**_payload_kwargs(payload, cls))


@dataclass
class TaskPatch:
    """Partial update; fields left as ``UNSET`` keep their stored value.

    ``None`` is meaningful for ``end_time``, ``priority`` and ``recurring``
    (it clears them).
    """

    title: Any = UNSET
    date: Any = UNSET
    start_time: Any = UNSET
    end_time: Any = UNSET
    section: Any = UNSET
    priority: Any = UNSET
    recurring: Any = UNSET
    collaborators: Any = UNSET

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TaskPatch":
        return cls(**_payload_kwargs(payload, cls))

    def changed(self) -> List[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) is not UNSET]


_PAYLOAD_ALIASES = {"startTime": "start_time", "endTime": "end_time"}


def _payload_kwargs(payload: Dict[str, Any], cls) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    kwargs = {}
    for key, value in payload.items():
        name = _PAYLOAD_ALIASES.get(key, key)
        if name in names:
            kwargs[name] = value
    return kwargs


@dataclass(frozen=True)
class CleanTask:
    """Validated, normalised task values ready to be written."""

    title: str
    date: date
    start_time: TimeOfDay
    end_time: Optional[TimeOfDay]
    section: str
    priority: Optional[str]
    recurring: Optional[str]
    collaborators: Tuple[str, ...]


def clean_collaborators(emails: Optional[Iterable[str]], owner_email: str) -> Tuple[str, ...]:
    """Trim, lower-case and de-duplicate; the owner is never their own collaborator."""
    if emails is None:
        return ()
    if isinstance(emails, str):
        emails = [emails]
    if not isinstance(emails, (list, tuple, set, frozenset)) or not all(isinstance(e, str) for e in emails):
        raise ValidationError.single("collaborators", COLLABORATORS_MESSAGE)
    owner = normalize_email(owner_email)
    seen = []
    for raw in emails:
        email = normalize_email(raw)
        if email and email != owner and email not in seen:
            seen.append(email)
    return tuple(sorted(seen))


def clean_draft(draft: TaskDraft, owner_email: str) -> CleanTask:
    values = {
        "title": draft.title,
        "date": draft.date,
        "start_time": draft.start_time,
        "end_time": draft.end_time,
        "section": draft.section,
        "priority": draft.priority,
        "recurring": draft.recurring,
        "collaborators": draft.collaborators,
    }
    return _clean(values, owner_email)


def merge_patch(current: TaskRecord, patch: TaskPatch) -> CleanTask:
    """Overlay ``patch`` on the stored task and validate the result as a whole."""
    values = {
        "title": current.title,
        "date": current.date,
        "start_time": current.start_time,
        "end_time": current.end_time,
        "section": current.section,
        "priority": current.priority,
        "recurring": current.recurring,
        "collaborators": current.collaborators,
    }
    for name in patch.changed():
        values[name] = getattr(patch, name)
    return _clean(values, current.owner_email)


def _clean(values: Dict[str, Any], owner_email: str) -> CleanTask:
    errors: Dict[str, str] = {}

    def attempt(name: str, fn):
        try:
            return fn()
        except ValidationError as exc:
            errors.update(exc.errors or {name: exc.message})
            return None

    title = values["title"].strip() if isinstance(values["title"], str) else ""
    if not title:
        errors["title"] = "Task name is required"
    elif len(title) > PROFILE.title_max_length:
        errors["title"] = f"Task name must be at most {PROFILE.title_max_length} characters"

    day = attempt("date", lambda: parse_date(values["date"]))
    start = attempt("start_time", lambda: TimeOfDay.parse(values["start_time"], field="start_time"))
    end = None
    if values["end_time"] not in (None, "", {}):
        end = attempt("end_time", lambda: TimeOfDay.parse(values["end_time"], field="end_time"))
    if start is not None and end is not None and end.minutes <= start.minutes:
        errors["end_time"] = "End time must be after start time"

    section = attempt("section", lambda: normalize_section(values["section"]))
    collaborators = attempt("collaborators", lambda: clean_collaborators(values["collaborators"], owner_email))
    priority = attempt("priority", lambda: normalize_priority(values["priority"]))
    recurring = attempt("recurring", lambda: normalize_recurring(values["recurring"]))

    if errors:
        raise ValidationError(errors)
    return CleanTask(
        title=title,
        date=day,
        start_time=start,
        end_time=end,
        section=section,
        priority=priority,
        recurring=recurring,
        collaborators=collaborators,
    )


__all__ = [
    "CleanTask",
    "TaskDraft",
    "TaskPatch",
    "UNSET",
    "clean_collaborators",
    "clean_draft",
    "merge_patch",
]

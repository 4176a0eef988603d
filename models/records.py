"""Immutable snapshots handed out by the services, detached from any session."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from models.task import Task
from models.user import User
from utils.datetime_utils import TimeOfDay, ensure_utc, to_rfc3339_utc


@dataclass(frozen=True)
class TaskRecord:
    id: str
    owner_id: str
    owner_email: str
    title: str
    date: date
    start_time: TimeOfDay
    end_time: Optional[TimeOfDay]
    section: str
    priority: Optional[str]
    recurring: Optional[str]
    collaborators: Tuple[str, ...]
    status: str
    deleted_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Task, collaborators: Iterable[str]) -> "TaskRecord":
        end_time = None
        if row.end_hour is not None and row.end_minute is not None and row.end_period:
            end_time = TimeOfDay(row.end_hour, row.end_minute, row.end_period)
        return cls(
            id=row.id,
            owner_id=row.owner_id,
            owner_email=row.owner_email,
            title=row.title,
            date=row.scheduled_date,
            start_time=TimeOfDay(row.start_hour, row.start_minute, row.start_period),
            end_time=end_time,
            section=row.section,
            priority=row.priority,
            recurring=row.recurring,
            collaborators=tuple(sorted(collaborators)),
            status=row.status,
            deleted_at=ensure_utc(row.deleted_at),
            created_at=ensure_utc(row.created_at),
            updated_at=ensure_utc(row.updated_at),
        )

    def as_dict(self) -> Dict[str, Any]:
        """Plain payload for an API layer (camelCase keys, RFC3339 timestamps)."""
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "createdBy": self.owner_email,
            "title": self.title,
            "date": self.date.isoformat(),
            "startTime": self.start_time.as_dict(),
            "endTime": self.end_time.as_dict() if self.end_time else None,
            "section": self.section,
            "priority": self.priority,
            "recurring": self.recurring,
            "collaborators": list(self.collaborators),
            "status": self.status,
            "deletedAt": to_rfc3339_utc(self.deleted_at),
            "createdAt": to_rfc3339_utc(self.created_at),
            "updatedAt": to_rfc3339_utc(self.updated_at),
        }


@dataclass(frozen=True)
class UserSummary:
    email: str
    username: str
    visibility: str
    avatar_color: str
    avatar_image: Optional[str] = None

    @classmethod
    def from_row(cls, row: User) -> "UserSummary":
        return cls(
            email=row.email,
            username=row.username,
            visibility=row.visibility,
            avatar_color=row.avatar_color,
            avatar_image=row.avatar_image,
        )


__all__ = ["TaskRecord", "UserSummary"]

# taskboard/models/task.py
from datetime import date, datetime
from typing import Optional
import uuid

from sqlalchemy import CheckConstraint, Index
from sqlmodel import Field, SQLModel

from core.choices import DEFAULT_SECTION, LIFECYCLE_STATUSES, PENDING
from utils.datetime_utils import utc_now


def _new_id() -> str:
    return str(uuid.uuid4())


class Task(SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint(
            "status IN (%s)" % ", ".join(f"'{s}'" for s in LIFECYCLE_STATUSES),
            name="ck_tasks_status",
        ),
        # Deleted <=> deleted_at is set
        CheckConstraint(
            "(status = 'Deleted') = (deleted_at IS NOT NULL)",
            name="ck_tasks_deleted_at",
        ),
        Index("ix_tasks_owner_status", "owner_id", "status"),
        Index("ix_tasks_schedule", "scheduled_date", "start_minutes"),
    )

    id: str = Field(default_factory=_new_id, primary_key=True)
    owner_id: str = Field(index=True)
    owner_email: str
    title: str
    scheduled_date: date
    start_hour: int
    start_minute: int
    start_period: str
    start_minutes: int
    end_hour: Optional[int] = None
    end_minute: Optional[int] = None
    end_period: Optional[str] = None
    section: str = DEFAULT_SECTION  # work / school / personal
    priority: Optional[str] = None  # High / Medium / Low
    recurring: Optional[str] = None
    status: str = Field(default=PENDING, index=True)
    deleted_at: Optional[datetime] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class TaskCollaborator(SQLModel, table=True):
    __tablename__ = "task_collaborators"

    task_id: str = Field(primary_key=True, foreign_key="tasks.id")
    email: str = Field(primary_key=True, index=True)


__all__ = ["Task", "TaskCollaborator"]

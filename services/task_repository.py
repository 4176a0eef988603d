from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from sqlalchemy import and_, case, delete, insert, or_, update
from sqlmodel import Session, select

from core.choices import COMPLETE, DELETED, IN_PROGRESS, PENDING
from core.errors import Forbidden, NotFound, TaskError, ValidationError
from core.logs import get_logger
from core.settings import CALENDAR, RETENTION
from models.records import TaskRecord
from models.task import Task, TaskCollaborator
from services.access import can_access, ensure_access, visible_to
from services.collaborators import CollaborationValidator
from services.credentials import Identity
from services.recurrence import occurs_on
from services.retention import RetentionSweeper
from services.status import TaskView, view_for_day
from services.task_input import CleanTask, TaskDraft, TaskPatch, clean_draft, merge_patch
from services.users import UserDirectory
from storage.db import Database
from utils.datetime_utils import calendar_date, calendar_zone, utc_now

logger = get_logger("tasks")

_LIVE = (PENDING, COMPLETE)


def _columns(clean: CleanTask) -> Dict[str, object]:
    end = clean.end_time
    return {
        "title": clean.title,
        "scheduled_date": clean.date,
        "start_hour": clean.start_time.hour,
        "start_minute": clean.start_time.minute,
        "start_period": clean.start_time.period,
        "start_minutes": clean.start_time.minutes,
        "end_hour": end.hour if end else None,
        "end_minute": end.minute if end else None,
        "end_period": end.period if end else None,
        "section": clean.section,
        "priority": clean.priority,
        "recurring": clean.recurring,
    }


class TaskRepository:
    """Task documents scoped by the owner-or-collaborator rule.

    Every mutation is a single conditional statement keyed on the task id,
    the statuses the transition accepts and the access clause, so the
    authorization check and the write cannot be interleaved with another
    writer. When the statement matches nothing the task is re-read only to
    tell ``NotFound`` from ``Forbidden``.
    """

    def __init__(
        self,
        db: Database,
        directory: UserDirectory,
        *,
        sweeper: Optional[RetentionSweeper] = None,
        validator: Optional[CollaborationValidator] = None,
        clock: Callable[[], datetime] = utc_now,
        timezone: Optional[str] = None,
    ) -> None:
        self._db = db
        self._clock = clock
        self._sweeper = sweeper or RetentionSweeper(db, clock=clock)
        self._validator = validator or CollaborationValidator(directory)
        self._timezone = timezone or CALENDAR.timezone

    # ---------- CRUD ----------
    def create(self, identity: Identity, draft: TaskDraft) -> TaskRecord:
        clean = clean_draft(draft, identity.email)
        self._validator.require(clean.collaborators)
        now = self._clock()

        def work(session: Session) -> TaskRecord:
            task = Task(
                owner_id=identity.user_id,
                owner_email=identity.email,
                status=PENDING,
                deleted_at=None,
                created_at=now,
                updated_at=now,
                **_columns(clean),
            )
            session.add(task)
            session.flush()
            for email in clean.collaborators:
                session.add(TaskCollaborator(task_id=task.id, email=email))
            session.commit()
            return TaskRecord.from_row(task, clean.collaborators)

        record = self._db.write(work)
        logger.info("Task %s created by %s", record.id, identity.email)
        return record

    def get(self, identity: Identity, task_id: str) -> TaskRecord:
        def work(session: Session) -> TaskRecord:
            record = self._load(session, task_id)
            if record is None:
                raise NotFound("Task not found")
            ensure_access(record, identity)
            return record

        return self._db.read(work)

    def update(self, identity: Identity, task_id: str, patch: TaskPatch) -> TaskRecord:
        current = self._db.read(lambda session: self._load(session, task_id))
        if current is None:
            raise NotFound("Task not found")
        ensure_access(current, identity)
        if current.status == DELETED:
            raise NotFound("Task not found or deleted")

        clean = merge_patch(current, patch)
        collaborators_changed = set(clean.collaborators) != set(current.collaborators)
        added = sorted(set(clean.collaborators) - set(current.collaborators))
        if added:
            self._validator.require(added)
        now = self._clock()

        def work(session: Session) -> TaskRecord:
            values = _columns(clean)
            values["updated_at"] = now
            self._conditional_update(
                session,
                task_id,
                identity,
                Task.status != DELETED,
                values=values,
                missing="Task not found or deleted",
            )
            if collaborators_changed:
                self._replace_collaborators(session, task_id, clean.collaborators)
            session.commit()
            return self._load(session, task_id)

        return self._db.write(work)

    def set_status(self, identity: Identity, task_id: str, status: str) -> TaskRecord:
        """Move a live task between Pending and Complete."""
        if status is not None and not isinstance(status, str):
            raise ValidationError.single("status", "Status must be Pending or Complete")
        target = (status or "").strip()
        if target.lower() == DELETED.lower():
            raise ValidationError.single("status", "Use delete to archive a task")
        if target.lower() == IN_PROGRESS.lower():
            raise ValidationError.single("status", "In Progress is computed from the schedule and cannot be set")
        matched = [s for s in _LIVE if s.lower() == target.lower()]
        if not matched:
            raise ValidationError.single("status", f"Unknown status '{status}'")
        now = self._clock()

        def work(session: Session) -> TaskRecord:
            self._conditional_update(
                session,
                task_id,
                identity,
                Task.status.in_(_LIVE),
                values={"status": matched[0], "updated_at": now},
                missing="Task not found or deleted",
            )
            session.commit()
            return self._load(session, task_id)

        return self._db.write(work)

    def soft_delete(self, identity: Identity, task_id: str) -> None:
        now = self._clock()

        def work(session: Session) -> None:
            self._conditional_update(
                session,
                task_id,
                identity,
                Task.status.in_(_LIVE),
                values={"status": DELETED, "deleted_at": now, "updated_at": now},
                missing="Task not found or already deleted",
            )
            session.commit()

        self._db.write(work)
        logger.info("Task %s archived by %s", task_id, identity.email)

    def restore(self, identity: Identity, task_id: str) -> None:
        now = self._clock()
        cutoff = self._sweeper.cutoff(now)

        def work(session: Session) -> None:
            self._conditional_update(
                session,
                task_id,
                identity,
                Task.status == DELETED,
                Task.deleted_at >= cutoff,
                values={"status": PENDING, "deleted_at": None, "updated_at": now},
                missing="Task is not in the archive",
            )
            session.commit()

        self._db.write(work)
        logger.info("Task %s restored by %s", task_id, identity.email)

    def purge(self, identity: Identity, task_id: str) -> None:
        def work(session: Session) -> None:
            conn = session.connection()
            result = conn.execute(
                delete(Task).where(
                    Task.id == task_id,
                    Task.status == DELETED,
                    visible_to(identity),
                )
            )
            if result.rowcount != 1:
                session.rollback()
                raise self._diagnose(session, task_id, identity, "Only archived tasks can be permanently deleted")
            conn.execute(delete(TaskCollaborator).where(TaskCollaborator.task_id == task_id))
            session.commit()

        self._db.write(work)
        logger.info("Task %s permanently deleted by %s", task_id, identity.email)

    # ---------- listings ----------
    def list_visible(self, identity: Identity) -> List[TaskRecord]:
        def work(session: Session) -> List[TaskRecord]:
            stmt = (
                select(Task)
                .where(visible_to(identity), Task.status != DELETED)
                .order_by(Task.scheduled_date.asc(), Task.start_minutes.asc(), Task.created_at.asc())
            )
            return self._records(session, session.exec(stmt))

        return self._db.read(work)

    def list_for_day(
        self,
        identity: Identity,
        day: Union[date, datetime],
        now: Optional[datetime] = None,
    ) -> List[TaskView]:
        """Visible tasks occurring on ``day`` (directly or by recurrence) with their display status."""
        candidate = calendar_date(day, calendar_zone(self._timezone))

        def work(session: Session) -> List[TaskRecord]:
            stmt = (
                select(Task)
                .where(
                    visible_to(identity),
                    Task.status != DELETED,
                    Task.scheduled_date <= candidate,
                )
                .order_by(Task.start_minutes.asc(), Task.scheduled_date.asc(), Task.created_at.asc())
            )
            return self._records(session, session.exec(stmt))

        moment = now or self._clock()
        return [
            view_for_day(record, candidate, moment, timezone=self._timezone)
            for record in self._db.read(work)
            if occurs_on(record, candidate, timezone=self._timezone)
        ]

    def list_archived(self, identity: Identity) -> List[TaskRecord]:
        now = self._clock()
        if RETENTION.sweep_on_archive:
            self._sweeper.sweep(identity, now)
        cutoff = self._sweeper.cutoff(now)

        def work(session: Session) -> List[TaskRecord]:
            stmt = (
                select(Task)
                .where(
                    visible_to(identity),
                    or_(
                        Task.status == COMPLETE,
                        and_(Task.status == DELETED, Task.deleted_at >= cutoff),
                    ),
                )
                .order_by(
                    case((Task.deleted_at == None, 1), else_=0),  # noqa: E711
                    Task.deleted_at.desc(),
                    Task.created_at.desc(),
                )
            )
            return self._records(session, session.exec(stmt))

        return self._db.read(work)

    # ---------- helpers ----------
    def _conditional_update(
        self,
        session: Session,
        task_id: str,
        identity: Identity,
        *conditions,
        values: Dict[str, object],
        missing: str,
    ) -> None:
        stmt = (
            update(Task)
            .where(Task.id == task_id, visible_to(identity), *conditions)
            .values(**values)
        )
        result = session.connection().execute(stmt)
        if result.rowcount != 1:
            session.rollback()
            logger.debug("Conditional write on task %s matched nothing", task_id)
            raise self._diagnose(session, task_id, identity, missing)

    def _diagnose(self, session: Session, task_id: str, identity: Identity, missing: str) -> TaskError:
        record = self._load(session, task_id)
        if record is None:
            return NotFound("Task not found")
        if not can_access(record, identity.user_id, identity.email):
            return Forbidden("Not authorized to modify this task")
        return NotFound(missing)

    def _replace_collaborators(self, session: Session, task_id: str, emails: Sequence[str]) -> None:
        conn = session.connection()
        conn.execute(delete(TaskCollaborator).where(TaskCollaborator.task_id == task_id))
        if emails:
            conn.execute(
                insert(TaskCollaborator),
                [{"task_id": task_id, "email": email} for email in emails],
            )

    def _load(self, session: Session, task_id: str) -> Optional[TaskRecord]:
        row = session.get(Task, task_id, populate_existing=True)
        if row is None:
            return None
        return self._records(session, [row])[0]

    def _records(self, session: Session, rows: Iterable[Task]) -> List[TaskRecord]:
        tasks = list(rows)
        if not tasks:
            return []
        by_task: Dict[str, List[str]] = defaultdict(list)
        stmt = select(TaskCollaborator).where(TaskCollaborator.task_id.in_([t.id for t in tasks]))
        for link in session.exec(stmt):
            by_task[link.task_id].append(link.email)
        return [TaskRecord.from_row(task, by_task.get(task.id, ())) for task in tasks]


__all__ = ["TaskRepository"]

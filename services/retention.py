# taskboard/services/retention.py
from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import delete, exists
from sqlmodel import Session, select

from core.choices import DELETED
from core.logs import get_logger
from core.settings import RETENTION
from models.task import Task, TaskCollaborator
from services.access import visible_to
from services.credentials import Identity
from storage.db import Database
from utils.datetime_utils import ensure_utc, utc_now

logger = get_logger("retention")


class RetentionSweeper:
    """Permanently removes soft-deleted tasks once the retention window has passed."""

    def __init__(
        self,
        db: Database,
        *,
        window: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._db = db
        self.window = window if window is not None else timedelta(days=RETENTION.window_days)
        self._clock = clock

    def cutoff(self, now: Optional[datetime] = None, window: Optional[timedelta] = None) -> datetime:
        return ensure_utc(now or self._clock()) - (window if window is not None else self.window)

    def sweep(
        self,
        identity: Identity,
        now: Optional[datetime] = None,
        window: Optional[timedelta] = None,
    ) -> int:
        """Purge expired tasks visible to ``identity``; returns how many were removed."""
        count = self._purge_expired(self.cutoff(now, window), identity)
        if count:
            logger.info("Swept %s expired task(s) for %s", count, identity.email)
        return count

    def sweep_all(self, now: Optional[datetime] = None, window: Optional[timedelta] = None) -> int:
        count = self._purge_expired(self.cutoff(now, window), None)
        logger.info("Retention sweep removed %s task(s)", count)
        return count

    def _purge_expired(self, cutoff: datetime, identity: Optional[Identity]) -> int:
        def work(session: Session) -> int:
            stmt = select(Task.id).where(Task.status == DELETED, Task.deleted_at < cutoff)
            if identity is not None:
                stmt = stmt.where(visible_to(identity))
            ids: List[str] = list(session.exec(stmt))
            if not ids:
                return 0
            conn = session.connection()
            # status/deleted_at are repeated so a concurrent restore is never purged
            result = conn.execute(
                delete(Task).where(
                    Task.id.in_(ids),
                    Task.status == DELETED,
                    Task.deleted_at < cutoff,
                )
            )
            conn.execute(
                delete(TaskCollaborator).where(
                    TaskCollaborator.task_id.in_(ids),
                    ~exists().where(Task.id == TaskCollaborator.task_id),
                )
            )
            session.commit()
            return result.rowcount or 0

        return self._db.write(work)


class RetentionJob:
    """Runs :meth:`RetentionSweeper.sweep_all` every ``interval_sec`` on a daemon thread."""

    def __init__(self, sweeper: RetentionSweeper, *, interval_sec: Optional[int] = None) -> None:
        self._sweeper = sweeper
        self.interval_sec = interval_sec or RETENTION.sweep_interval_sec
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="retention-sweep", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until :meth:`stop` is called or ``timeout`` elapses."""
        return self._stop.wait(timeout)

    def run_once(self) -> int:
        return self._sweeper.sweep_all()

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Retention sweep failed")
            self._stop.wait(self.interval_sec)


__all__ = ["RetentionJob", "RetentionSweeper"]

# taskboard/storage/db.py
from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, TypeVar

from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from core.errors import StorageUnavailable
from core.logs import get_logger
from core.settings import BACKUP, STORAGE

# Ensure SQLModel metadata is populated
import models.task  # noqa: F401
import models.user  # noqa: F401
from storage import migrations
from storage.backup import ensure_daily_backup

T = TypeVar("T")

logger = get_logger("storage")


class Database:
    """Explicitly opened/closed handle around the SQLModel engine.

    One instance is created at startup and passed to the repository,
    sweeper and user directory; nothing holds an engine at module scope.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        timeout_sec: Optional[float] = None,
        read_retries: Optional[int] = None,
        echo: Optional[bool] = None,
        backups: Optional[bool] = None,
    ) -> None:
        self.url = url or STORAGE.url
        self.timeout_sec = STORAGE.timeout_sec if timeout_sec is None else timeout_sec
        self.read_retries = STORAGE.read_retries if read_retries is None else read_retries
        self.echo = STORAGE.echo if echo is None else echo
        self.backups = BACKUP.enabled if backups is None else backups
        self._engine: Optional[Engine] = None

    # ----- lifecycle -----
    def open(self) -> "Database":
        if self._engine is not None:
            return self
        url = make_url(self.url)
        db_file = self._sqlite_file()
        if db_file is not None:
            db_file.parent.mkdir(parents=True, exist_ok=True)
        if url.get_backend_name() == "sqlite":
            kwargs = {"connect_args": {"timeout": self.timeout_sec, "check_same_thread": False}}
            if db_file is None:
                # in-memory databases live as long as their single connection
                kwargs["poolclass"] = StaticPool
        else:
            kwargs = {"pool_timeout": self.timeout_sec, "pool_pre_ping": True}
        self._engine = create_engine(self.url, echo=self.echo, **kwargs)
        SQLModel.metadata.create_all(self._engine)
        migrations.run_all(self._engine)
        if self.backups and db_file is not None:
            ensure_daily_backup(db_file, BACKUP.directory, keep_days=BACKUP.keep_days)
        logger.info("Database opened url=%s", url.render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("Database closed")

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    def session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    # ----- guarded calls -----
    def read(self, work: Callable[[Session], T]) -> T:
        """Run a read, retrying once on storage failure."""
        return self._run(work, attempts=1 + max(self.read_retries, 0), label="read")

    def write(self, work: Callable[[Session], T]) -> T:
        """Run a write exactly once; ``work`` is responsible for committing."""
        return self._run(work, attempts=1, label="write")

    def _run(self, work: Callable[[Session], T], *, attempts: int, label: str) -> T:
        last_error: Optional[SQLAlchemyError] = None
        for attempt in range(1, attempts + 1):
            try:
                with self.session() as session:
                    return work(session)
            except SQLAlchemyError as exc:
                last_error = exc
                logger.warning("Storage %s failed (attempt %s/%s): %s", label, attempt, attempts, exc)
        raise StorageUnavailable("Storage is temporarily unavailable") from last_error

    def _sqlite_file(self) -> Optional[Path]:
        url = make_url(self.url)
        if url.get_backend_name() != "sqlite":
            return None
        database = url.database or ""
        if not database or database == ":memory:" or database.startswith("file:"):
            return None
        return Path(database)


__all__ = ["Database"]

"""Operation surface for the API layer.

Each method takes the caller's credential token and returns a
:class:`Result`; engine errors come back as a :class:`Failure` instead of
being raised, so the HTTP layer only has to map ``Failure.kind`` to a status.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar, Union

from core.errors import CollaboratorRejected, NotFound, StorageUnavailable, TaskError, ValidationError
from core.logs import get_logger
from models.records import UserSummary
from services.credentials import CredentialService, Identity, authenticate
from services.retention import RetentionSweeper
from services.task_input import TaskDraft, TaskPatch
from services.task_repository import TaskRepository
from services.users import UserDirectory

T = TypeVar("T")

logger = get_logger("api")

TRY_AGAIN = "Something went wrong on our side. Please try again."


@dataclass(frozen=True)
class Failure:
    kind: str
    message: str
    fields: Dict[str, str] = field(default_factory=dict)
    rejected: Tuple[str, ...] = ()

    @classmethod
    def from_error(cls, exc: TaskError) -> "Failure":
        if isinstance(exc, StorageUnavailable):
            return cls(kind=exc.kind, message=TRY_AGAIN)
        if isinstance(exc, ValidationError):
            return cls(kind=exc.kind, message=exc.message, fields=dict(exc.errors))
        if isinstance(exc, CollaboratorRejected):
            return cls(kind=exc.kind, message=exc.message, rejected=exc.rejected)
        return cls(kind=exc.kind, message=exc.message)


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[Failure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TaskAPI:
    def __init__(
        self,
        credentials: CredentialService,
        repository: TaskRepository,
        directory: UserDirectory,
        sweeper: Optional[RetentionSweeper] = None,
    ) -> None:
        self._credentials = credentials
        self._tasks = repository
        self._users = directory
        self._sweeper = sweeper

    # ----- tasks -----
    def list_tasks(self, token: Optional[str]) -> Result:
        return self._call(token, "list_tasks", lambda who: self._tasks.list_visible(who))

    def list_for_day(
        self,
        token: Optional[str],
        day: Union[date, datetime],
        now: Optional[datetime] = None,
    ) -> Result:
        return self._call(token, "list_for_day", lambda who: self._tasks.list_for_day(who, day, now))

    def list_archived(self, token: Optional[str]) -> Result:
        return self._call(token, "list_archived", lambda who: self._tasks.list_archived(who))

    def get_task(self, token: Optional[str], task_id: str) -> Result:
        return self._call(token, "get_task", lambda who: self._tasks.get(who, task_id))

    def create_task(self, token: Optional[str], draft: Union[TaskDraft, Dict[str, Any]]) -> Result:
        if isinstance(draft, dict):
            draft = TaskDraft.from_payload(draft)
        return self._call(token, "create_task", lambda who: self._tasks.create(who, draft))

    def update_task(
        self,
        token: Optional[str],
        task_id: str,
        patch: Union[TaskPatch, Dict[str, Any]],
    ) -> Result:
        if isinstance(patch, dict):
            patch = TaskPatch.from_payload(patch)
        return self._call(token, "update_task", lambda who: self._tasks.update(who, task_id, patch))

    def set_status(self, token: Optional[str], task_id: str, status: str) -> Result:
        return self._call(token, "set_status", lambda who: self._tasks.set_status(who, task_id, status))

    def delete_task(self, token: Optional[str], task_id: str) -> Result:
        return self._call(token, "delete_task", lambda who: self._tasks.soft_delete(who, task_id))

    def restore_task(self, token: Optional[str], task_id: str) -> Result:
        return self._call(token, "restore_task", lambda who: self._tasks.restore(who, task_id))

    def purge_task(self, token: Optional[str], task_id: str) -> Result:
        return self._call(token, "purge_task", lambda who: self._tasks.purge(who, task_id))

    def sweep_expired(self, token: Optional[str]) -> Result:
        if self._sweeper is None:
            raise RuntimeError("TaskAPI was built without a retention sweeper")
        return self._call(token, "sweep_expired", lambda who: self._sweeper.sweep(who))

    # ----- people -----
    def collaborator_choices(self, token: Optional[str]) -> Result:
        """Public users the caller may add to a task (never the caller)."""
        return self._call(
            token,
            "collaborator_choices",
            lambda who: self._users.list_public_users(exclude=who.email),
        )

    def get_profile(self, token: Optional[str]) -> Result:
        return self._call(token, "get_profile", lambda who: self._profile(who))

    def update_profile(self, token: Optional[str], **changes: Any) -> Result:
        return self._call(
            token,
            "update_profile",
            lambda who: self._users.update_profile(who.email, **changes),
        )

    # ------------------------------------------------------------------
    def _profile(self, identity: Identity) -> UserSummary:
        summary = self._users.get_user_summary(identity.email)
        if summary is None:
            raise NotFound("User not found")
        return summary

    def _call(self, token: Optional[str], name: str, operation: Callable[[Identity], T]) -> Result:
        try:
            identity = authenticate(self._credentials, token)
            return Result(value=operation(identity))
        except StorageUnavailable as exc:
            logger.warning("%s failed: %s (cause: %r)", name, exc.message, exc.__cause__)
            return Result(error=Failure.from_error(exc))
        except TaskError as exc:
            logger.debug("%s rejected: %s %s", name, exc.kind, exc.message)
            return Result(error=Failure.from_error(exc))


__all__ = ["Failure", "Result", "TRY_AGAIN", "TaskAPI"]

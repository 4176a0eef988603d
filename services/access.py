"""Owner-or-collaborator access rule, shared by listings and mutations.

``can_access`` checks an already loaded task; ``visible_to`` is the same rule
as a SQL clause so queries and conditional writes filter identically.
"""
from __future__ import annotations

from typing import Iterable, Protocol

from sqlalchemy import exists, or_

from core.errors import Forbidden
from models.task import Task, TaskCollaborator
from services.credentials import Identity


class SupportsAccess(Protocol):
    owner_id: str
    collaborators: Iterable[str]


def can_access(task: SupportsAccess, user_id: str, email: str) -> bool:
    if task.owner_id == user_id:
        return True
    folded = (email or "").strip().lower()
    return bool(folded) and folded in {c.lower() for c in task.collaborators}


def ensure_access(task: SupportsAccess, identity: Identity) -> None:
    if not can_access(task, identity.user_id, identity.email):
        raise Forbidden("Not authorized to modify this task")


def visible_to(identity: Identity):
    collaborates = exists().where(
        TaskCollaborator.task_id == Task.id,
        TaskCollaborator.email == identity.email,
    )
    return or_(Task.owner_id == identity.user_id, collaborates)


__all__ = ["can_access", "ensure_access", "visible_to"]

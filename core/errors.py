"""Error taxonomy shared by the task engine and its callers."""
from __future__ import annotations

from typing import Dict, Iterable, Optional, Tuple


class TaskError(Exception):
    """Base class for every error the engine reports to its callers."""

    kind = "error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ValidationError(TaskError):
    kind = "validation_error"

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None) -> None:
        self.errors = dict(errors)
        if message is None:
            message = "; ".join(f"{field}: {text}" for field, text in sorted(self.errors.items()))
        super().__init__(message or "Invalid input")

    @classmethod
    def single(cls, field: str, text: str) -> "ValidationError":
        return cls({field: text})


class Forbidden(TaskError):
    kind = "forbidden"


class NotFound(TaskError):
    kind = "not_found"


class CollaboratorRejected(TaskError):
    kind = "collaborator_rejected"

    def __init__(self, rejected: Iterable[str]) -> None:
        self.rejected: Tuple[str, ...] = tuple(sorted(set(rejected)))
        super().__init__(
            "Some users have private profiles and cannot be added as collaborators: "
            + ", ".join(self.rejected)
        )


class AuthError(TaskError):
    kind = "auth_error"


class StorageUnavailable(TaskError):
    kind = "storage_unavailable"


__all__ = [
    "AuthError",
    "CollaboratorRejected",
    "Forbidden",
    "NotFound",
    "StorageUnavailable",
    "TaskError",
    "ValidationError",
]

"""Eligibility check for users proposed as collaborators."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

from core.choices import PUBLIC
from core.errors import CollaboratorRejected
from core.logs import get_logger
from services.users import UserDirectory, normalize_email

logger = get_logger("collaborators")


@dataclass(frozen=True)
class CollaboratorCheck:
    rejected: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.rejected


class CollaborationValidator:
    """Only users known to the directory with public visibility may be attached.

    The check runs when collaborators are added; a collaborator who later
    turns private stays on the tasks they already share.
    """

    def __init__(self, directory: UserDirectory):
        self._directory = directory

    def validate(self, emails: Iterable[str]) -> CollaboratorCheck:
        candidates = sorted({normalize_email(e) for e in emails if normalize_email(e)})
        if not candidates:
            return CollaboratorCheck()
        visibility = self._directory.visibilities(candidates)
        rejected = tuple(email for email in candidates if visibility.get(email) != PUBLIC)
        return CollaboratorCheck(rejected=rejected)

    def require(self, emails: Iterable[str]) -> None:
        check = self.validate(emails)
        if not check.ok:
            logger.info("Rejected collaborators: %s", ", ".join(check.rejected))
            raise CollaboratorRejected(check.rejected)


__all__ = ["CollaborationValidator", "CollaboratorCheck"]

# taskboard/services/users.py
from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from core.choices import PUBLIC, normalize_visibility
from core.errors import NotFound, ValidationError
from core.logs import get_logger
from core.settings import PROFILE
from models.records import UserSummary
from models.user import User
from storage.db import Database
from utils.datetime_utils import utc_now

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
TAG_RE = re.compile(r"<[^>]*>")

logger = get_logger("users")


def normalize_email(value: Optional[str]) -> str:
    return (value or "").strip().lower()


class UserDirectory:
    """Accounts, profiles and visibility lookups backed by the ``users`` table."""

    def __init__(self, db: Database):
        self._db = db

    # ----- accounts -----
    def register(
        self,
        email: str,
        password_hash: str,
        *,
        username: Optional[str] = None,
        visibility: Optional[str] = None,
    ) -> UserSummary:
        normalized = normalize_email(email)
        if not EMAIL_RE.match(normalized):
            raise ValidationError.single("email", "A valid email address is required")
        if not password_hash:
            raise ValidationError.single("password", "A password is required")
        name = self._clean_username(username) if username else normalized.split("@", 1)[0]
        user = User(
            email=normalized,
            password_hash=password_hash,
            username=name,
            visibility=normalize_visibility(visibility or PROFILE.default_visibility),
            avatar_color=PROFILE.default_avatar_color,
        )

        def work(session: Session) -> UserSummary:
            if session.get(User, normalized) is not None:
                raise ValidationError.single("email", "Account already exists")
            session.add(user)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise ValidationError.single("email", "Account already exists") from None
            return UserSummary.from_row(user)

        summary = self._db.write(work)
        logger.info("Registered user %s", normalized)
        return summary

    def get_user(self, email: str) -> Optional[User]:
        """Full account row, including the credential hash, for the credential service."""
        normalized = normalize_email(email)
        return self._db.read(lambda session: session.get(User, normalized))

    def update_profile(
        self,
        email: str,
        *,
        username: Optional[str] = None,
        visibility: Optional[str] = None,
        avatar_color: Optional[str] = None,
        avatar_image: Optional[str] = None,
        clear_avatar_image: bool = False,
        password_hash: Optional[str] = None,
    ) -> UserSummary:
        normalized = normalize_email(email)
        changes: Dict[str, object] = {}
        if username is not None:
            changes["username"] = self._clean_username(username)
        if visibility is not None:
            changes["visibility"] = normalize_visibility(visibility)
        if avatar_color is not None:
            if not COLOR_RE.match(avatar_color):
                raise ValidationError.single("avatar_color", "Color must be in #RRGGBB format")
            changes["avatar_color"] = avatar_color.upper()
        if avatar_image is not None or clear_avatar_image:
            changes["avatar_image"] = None if clear_avatar_image else avatar_image
        if password_hash is not None:
            changes["password_hash"] = password_hash

        def work(session: Session) -> UserSummary:
            user = session.get(User, normalized)
            if user is None:
                raise NotFound("User not found")
            for key, value in changes.items():
                setattr(user, key, value)
            user.updated_at = utc_now()
            session.add(user)
            session.commit()
            return UserSummary.from_row(user)

        return self._db.write(work)

    # ----- lookups -----
    def get_visibility(self, email: str) -> Optional[str]:
        """``public``/``private`` for a known user, ``None`` when nobody has that email."""
        return self.visibilities([email]).get(normalize_email(email))

    def visibilities(self, emails: Iterable[str]) -> Dict[str, str]:
        wanted = sorted({normalize_email(e) for e in emails if normalize_email(e)})
        if not wanted:
            return {}

        def work(session: Session) -> Dict[str, str]:
            stmt = select(User.email, User.visibility).where(User.email.in_(wanted))
            return {email: visibility for email, visibility in session.exec(stmt)}

        return self._db.read(work)

    def get_user_summary(self, email: str) -> Optional[UserSummary]:
        user = self.get_user(email)
        return UserSummary.from_row(user) if user else None

    def list_public_users(self, *, exclude: Optional[str] = None) -> List[UserSummary]:
        excluded = normalize_email(exclude)

        def work(session: Session) -> List[UserSummary]:
            stmt = select(User).where(User.visibility == PUBLIC).order_by(User.email.asc())
            if excluded:
                stmt = stmt.where(User.email != excluded)
            return [UserSummary.from_row(row) for row in session.exec(stmt)]

        return self._db.read(work)

    # ------------------------------------------------------------------
    def _clean_username(self, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValidationError.single("username", "Username cannot be empty")
        if TAG_RE.search(cleaned):
            raise ValidationError.single("username", "Username cannot contain HTML tags")
        if len(cleaned) > PROFILE.username_max_length:
            raise ValidationError.single(
                "username", f"Username must be at most {PROFILE.username_max_length} characters"
            )
        return cleaned


__all__ = ["UserDirectory", "normalize_email"]

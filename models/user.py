# taskboard/models/user.py
from datetime import datetime
from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from utils.datetime_utils import utc_now


class User(SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(primary_key=True)  # trimmed, lower-case
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), unique=True, index=True)
    password_hash: str
    username: str
    visibility: str = Field(default="public", index=True)
    avatar_color: str = "#9C27B0"
    avatar_image: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


__all__ = ["User"]

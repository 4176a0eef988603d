from datetime import datetime, timedelta
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from services.credentials import Identity
from services.task_input import TaskDraft
from services.task_repository import TaskRepository
from services.users import UserDirectory
from storage.db import Database
from utils.datetime_utils import UTC


class FakeClock:
    """Settable UTC clock shared by the repository and the sweeper."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 10, 12, 0, tzinfo=UTC))


@pytest.fixture
def db():
    database = Database("sqlite://", backups=False).open()
    try:
        yield database
    finally:
        database.close()


@pytest.fixture
def directory(db):
    return UserDirectory(db)


def identity_for(directory: UserDirectory, email: str) -> Identity:
    user = directory.get_user(email)
    return Identity(user_id=user.id, email=user.email)


@pytest.fixture
def people(directory):
    """alice, bob and dave are public; carol keeps a private profile."""
    directory.register("alice@example.com", "hash-a", username="Alice")
    directory.register("bob@example.com", "hash-b", username="Bob")
    directory.register("carol@example.com", "hash-c", username="Carol", visibility="private")
    directory.register("dave@example.com", "hash-d", username="Dave")
    return {
        name: identity_for(directory, f"{name}@example.com")
        for name in ("alice", "bob", "carol", "dave")
    }


@pytest.fixture
def repo(db, directory, clock):
    return TaskRepository(db, directory, clock=clock)


def make_draft(**overrides) -> TaskDraft:
    values = {
        "title": "Standup",
        "date": "2024-01-10",
        "start_time": "9:00 AM",
        "end_time": "9:30 AM",
    }
    values.update(overrides)
    return TaskDraft(**values)

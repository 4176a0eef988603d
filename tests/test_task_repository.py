from datetime import date, datetime

import pytest

from conftest import make_draft
from core.errors import CollaboratorRejected, Forbidden, NotFound, ValidationError
from services.task_input import TaskPatch
from utils.datetime_utils import UTC, TimeOfDay


def test_create_returns_pending_record(repo, people):
    alice = people["alice"]
    record = repo.create(alice, make_draft(collaborators=["Bob@Example.com ", "alice@example.com"]))

    assert record.owner_id == alice.user_id
    assert record.owner_email == "alice@example.com"
    assert record.status == "Pending"
    assert record.deleted_at is None
    assert record.date == date(2024, 1, 10)
    assert record.start_time == TimeOfDay(9, 0, "AM")
    assert record.end_time == TimeOfDay(9, 30, "AM")
    assert record.section == "work"
    # the owner is never listed as their own collaborator
    assert record.collaborators == ("bob@example.com",)
    assert repo.get(alice, record.id) == record


def test_create_reports_every_invalid_field(repo, people):
    with pytest.raises(ValidationError) as excinfo:
        repo.create(people["alice"], make_draft(title="  ", date=None, start_time=None))

    assert set(excinfo.value.errors) == {"title", "date", "start_time"}
    assert excinfo.value.errors["title"] == "Task name is required"
    assert repo.list_visible(people["alice"]) == []


def test_end_time_must_follow_start_time(repo, people):
    with pytest.raises(ValidationError) as excinfo:
        repo.create(people["alice"], make_draft(start_time="10:00 AM", end_time="9:00 AM"))

    assert excinfo.value.errors == {"end_time": "End time must be after start time"}


def test_priority_and_recurrence_are_normalised(repo, people):
    record = repo.create(
        people["alice"],
        make_draft(priority="high", recurring="weekly", section="Personal", end_time=None),
    )

    assert record.priority == "High"
    assert record.recurring == "Weekly"
    assert record.section == "personal"
    assert record.end_time is None


def test_private_or_unknown_collaborators_block_the_write(repo, people):
    alice = people["alice"]
    with pytest.raises(CollaboratorRejected) as excinfo:
        repo.create(alice, make_draft(collaborators=["carol@example.com", "ghost@example.com", "bob@example.com"]))

    assert excinfo.value.rejected == ("carol@example.com", "ghost@example.com")
    assert repo.list_visible(alice) == []


def test_collaborator_can_read_and_modify(repo, people):
    alice, bob, carol = people["alice"], people["bob"], people["carol"]
    task = repo.create(alice, make_draft(collaborators=["bob@example.com"]))

    assert [t.id for t in repo.list_visible(bob)] == [task.id]
    assert repo.set_status(bob, task.id, "Complete").status == "Complete"

    assert repo.list_visible(carol) == []
    with pytest.raises(Forbidden):
        repo.get(carol, task.id)
    with pytest.raises(Forbidden):
        repo.soft_delete(carol, task.id)
    assert repo.get(alice, task.id).status == "Complete"


def test_access_is_granted_once_added_as_collaborator(repo, people):
    alice, dave = people["alice"], people["dave"]
    task = repo.create(alice, make_draft())

    with pytest.raises(Forbidden):
        repo.set_status(dave, task.id, "Complete")

    repo.update(alice, task.id, TaskPatch(collaborators=["dave@example.com"]))

    assert repo.set_status(dave, task.id, "Complete").status == "Complete"


def test_unknown_task_is_not_found(repo, people):
    with pytest.raises(NotFound):
        repo.get(people["alice"], "missing")
    with pytest.raises(NotFound):
        repo.set_status(people["alice"], "missing", "Complete")


def test_list_visible_orders_by_date_then_start(repo, people):
    alice = people["alice"]
    repo.create(alice, make_draft(title="late", date="2024-01-11", start_time="9:00 AM", end_time=None))
    repo.create(alice, make_draft(title="afternoon", start_time="2:00 PM", end_time=None))
    repo.create(alice, make_draft(title="morning", start_time="8:00 AM", end_time=None))
    repo.create(alice, make_draft(title="midnight", start_time="12:00 AM", end_time=None))

    titles = [t.title for t in repo.list_visible(alice)]

    assert titles == ["midnight", "morning", "afternoon", "late"]


def test_set_status_refuses_derived_and_deleted(repo, people):
    task = repo.create(people["alice"], make_draft())

    for status in ("In Progress", "Deleted", "Done"):
        with pytest.raises(ValidationError):
            repo.set_status(people["alice"], task.id, status)
    assert repo.get(people["alice"], task.id).status == "Pending"


def test_update_merges_patch_over_stored_values(repo, people, clock):
    alice = people["alice"]
    task = repo.create(alice, make_draft(priority="Low"))
    clock.advance(minutes=5)

    updated = repo.update(alice, task.id, TaskPatch(title="Retro", end_time=None, priority="medium"))

    assert updated.title == "Retro"
    assert updated.end_time is None
    assert updated.priority == "Medium"
    assert updated.start_time == task.start_time
    assert updated.updated_at == clock.now
    assert updated.created_at == task.created_at


def test_update_keeps_existing_collaborators_who_turned_private(repo, people, directory):
    alice = people["alice"]
    task = repo.create(alice, make_draft(collaborators=["bob@example.com"]))
    directory.update_profile("bob@example.com", visibility="private")

    renamed = repo.update(alice, task.id, TaskPatch(title="Renamed"))
    assert renamed.collaborators == ("bob@example.com",)

    with pytest.raises(CollaboratorRejected) as excinfo:
        repo.update(alice, task.id, TaskPatch(collaborators=["bob@example.com", "carol@example.com"]))
    assert excinfo.value.rejected == ("carol@example.com",)
    assert repo.get(alice, task.id).collaborators == ("bob@example.com",)


def test_deleted_task_cannot_be_modified(repo, people):
    alice = people["alice"]
    task = repo.create(alice, make_draft())
    repo.soft_delete(alice, task.id)

    with pytest.raises(NotFound):
        repo.update(alice, task.id, TaskPatch(title="Nope"))
    with pytest.raises(NotFound):
        repo.set_status(alice, task.id, "Complete")
    with pytest.raises(NotFound):
        repo.soft_delete(alice, task.id)


def test_soft_delete_and_restore(repo, people, clock):
    alice = people["alice"]
    task = repo.create(alice, make_draft())

    repo.soft_delete(alice, task.id)
    deleted = repo.get(alice, task.id)

    assert deleted.status == "Deleted"
    assert deleted.deleted_at == clock.now
    assert repo.list_visible(alice) == []
    assert [t.id for t in repo.list_archived(alice)] == [task.id]

    clock.advance(days=2)
    repo.restore(alice, task.id)
    restored = repo.get(alice, task.id)

    assert restored.status == "Pending"
    assert restored.deleted_at is None
    assert [t.id for t in repo.list_visible(alice)] == [task.id]


def test_restore_is_refused_after_retention_window(repo, people, clock):
    alice = people["alice"]
    task = repo.create(alice, make_draft())
    repo.soft_delete(alice, task.id)

    clock.advance(days=6)

    with pytest.raises(NotFound):
        repo.restore(alice, task.id)


def test_restore_requires_deleted_task(repo, people):
    task = repo.create(people["alice"], make_draft())
    with pytest.raises(NotFound):
        repo.restore(people["alice"], task.id)


def test_purge_only_archived_tasks_and_only_once(repo, people):
    alice = people["alice"]
    task = repo.create(alice, make_draft(collaborators=["bob@example.com"]))

    with pytest.raises(NotFound):
        repo.purge(alice, task.id)

    repo.soft_delete(alice, task.id)
    with pytest.raises(Forbidden):
        repo.purge(people["dave"], task.id)

    repo.purge(alice, task.id)

    with pytest.raises(NotFound):
        repo.purge(alice, task.id)
    with pytest.raises(NotFound):
        repo.get(people["bob"], task.id)


def test_list_archived_sweeps_expired_and_orders_deleted_first(repo, people, clock):
    alice = people["alice"]
    old = repo.create(alice, make_draft(title="old"))
    recent = repo.create(alice, make_draft(title="recent"))
    edge = repo.create(alice, make_draft(title="edge"))
    done = repo.create(alice, make_draft(title="done"))
    repo.set_status(alice, done.id, "Complete")

    repo.soft_delete(alice, old.id)
    clock.advance(days=1)
    repo.soft_delete(alice, edge.id)
    clock.advance(days=2)
    repo.soft_delete(alice, recent.id)
    clock.advance(days=3)

    archived = [t.title for t in repo.list_archived(alice)]

    # "old" is six days gone, "edge" exactly five
    assert archived == ["recent", "edge", "done"]
    with pytest.raises(NotFound):
        repo.get(alice, old.id)


def test_list_for_day_includes_recurring_occurrences(repo, people):
    alice = people["alice"]
    weekly = repo.create(
        alice,
        make_draft(title="sync", date="2024-01-01", start_time="9:00 AM", end_time="10:00 AM", recurring="Weekly"),
    )
    repo.create(alice, make_draft(title="one-off", date="2024-01-09"))
    repo.create(alice, make_draft(title="future", date="2024-01-15", recurring="Daily"))

    views = repo.list_for_day(alice, date(2024, 1, 8), now=datetime(2024, 1, 8, 9, 30, tzinfo=UTC))

    assert [(v.task.id, v.display_status) for v in views] == [(weekly.id, "In Progress")]
    assert [v.task.title for v in repo.list_for_day(alice, date(2024, 1, 9))] == ["one-off"]


def test_stored_status_never_holds_in_progress(repo, people):
    alice = people["alice"]
    repo.create(alice, make_draft(date="2024-01-10", start_time="11:00 AM", end_time="1:00 PM"))

    views = repo.list_for_day(alice, date(2024, 1, 10))

    assert views[0].display_status == "In Progress"
    assert views[0].task.status == "Pending"

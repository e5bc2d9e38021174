"""Validation and persistence of time entries, projects and tasks."""

import asyncio
import sys
from datetime import date
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from timetracker.core.errors import (
    ConfirmationRequired,
    CreateFailed,
    DeleteFailed,
    UpdateFailed,
    ValidationFailed,
    WriteFailed,
)
from timetracker.db.session import build_engine, build_session_factory, create_schema
from timetracker.schemas.auth import UserOut
from timetracker.schemas.project import ProjectDraft, TaskDraft, TaskUpdate
from timetracker.schemas.time_entry import TimeEntryDraft, TimeEntryUpdate
from timetracker.services.gateway import DataGateway, SqlGateway, UnconfiguredGateway
from timetracker.services.lifecycle import EntryLifecycleManager

USER = UserOut(id="u-1", email="dana@example.com", name="Dana", role="user")


class ForbiddenGateway(DataGateway):
    """Fails the test if anything reaches the backend."""

    async def run_select(self, query):
        raise AssertionError("select reached the gateway")

    async def insert(self, table, values):
        raise AssertionError("insert reached the gateway")

    async def upsert(self, table, values, *, on):
        raise AssertionError("upsert reached the gateway")

    async def update(self, table, record_id, values):
        raise AssertionError("update reached the gateway")

    async def delete(self, table, record_id):
        raise AssertionError("delete reached the gateway")


class Counter:
    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1


@pytest.fixture()
def gateway():
    engine = build_engine("sqlite://")
    create_schema(engine)
    return SqlGateway(build_session_factory(engine))


@pytest.fixture()
def world(gateway):
    run = asyncio.run
    user = UserOut.model_validate(
        run(gateway.insert("users", {"email": "dana@example.com", "name": "Dana", "role": "user"})).data
    )
    website = run(gateway.insert("projects", {"name": "Website", "client": "Acme", "start_date": "2024-05-01"})).data
    audit = run(gateway.insert("projects", {"name": "Audit", "client": "Beta", "start_date": "2024-04-01"})).data
    design = run(gateway.insert("tasks", {"project_id": website["id"], "name": "Design"})).data
    review = run(gateway.insert("tasks", {"project_id": audit["id"], "name": "Review"})).data
    return {"user": user, "website": website, "audit": audit, "design": design, "review": review}


def _entries(gateway):
    return asyncio.run(gateway.table("time_entries").select().execute()).data


# ---- time entries


def test_missing_project_is_rejected_before_any_write():
    lifecycle = EntryLifecycleManager(ForbiddenGateway(), USER)
    with pytest.raises(ValidationFailed) as excinfo:
        asyncio.run(lifecycle.create_time_entry(TimeEntryDraft(date="2024-05-06", project_id="")))
    assert excinfo.value.fields == ["project_id"]
    assert "project_id" in excinfo.value.message


def test_every_missing_field_is_listed():
    lifecycle = EntryLifecycleManager(ForbiddenGateway(), USER)
    with pytest.raises(ValidationFailed) as excinfo:
        asyncio.run(lifecycle.create_time_entry(TimeEntryDraft(date="", project_id="", start_time="", end_time="")))
    assert excinfo.value.fields == ["date", "project_id", "start_time", "end_time"]


@pytest.mark.parametrize("start,end", [("10:00", "10:00"), ("17:00", "09:00")])
def test_non_positive_durations_are_rejected(start, end):
    lifecycle = EntryLifecycleManager(ForbiddenGateway(), USER)
    draft = TimeEntryDraft(date="2024-05-06", project_id="p-1", start_time=start, end_time=end)
    with pytest.raises(ValidationFailed) as excinfo:
        asyncio.run(lifecycle.create_time_entry(draft))
    assert excinfo.value.fields == ["end_time"]


def test_malformed_times_and_dates_are_rejected():
    lifecycle = EntryLifecycleManager(ForbiddenGateway(), USER)
    with pytest.raises(ValidationFailed) as excinfo:
        asyncio.run(lifecycle.create_time_entry(TimeEntryDraft(date="2024-05-06", project_id="p", start_time="nine")))
    assert excinfo.value.fields == ["start_time"]
    with pytest.raises(ValidationFailed) as excinfo:
        asyncio.run(lifecycle.create_time_entry(TimeEntryDraft(date="06/05/2024", project_id="p")))
    assert excinfo.value.fields == ["date"]


def test_create_stores_computed_hours_for_the_acting_user(gateway, world):
    changed = Counter()
    lifecycle = EntryLifecycleManager(gateway, world["user"], on_change=changed)
    entry = asyncio.run(
        lifecycle.create_time_entry(
            TimeEntryDraft(
                date="2024-05-06",
                project_id=world["website"]["id"],
                task_id=world["design"]["id"],
                start_time="09:00",
                end_time="10:30",
                description="Wireframes",
            )
        )
    )
    assert entry.hours == pytest.approx(1.5)
    assert entry.user_id == world["user"].id
    assert entry.task_id == world["design"]["id"]
    assert changed.calls == 1
    assert len(_entries(gateway)) == 1


def test_task_from_another_project_is_rejected(gateway, world):
    changed = Counter()
    lifecycle = EntryLifecycleManager(gateway, world["user"], on_change=changed)
    draft = TimeEntryDraft(
        date="2024-05-06",
        project_id=world["website"]["id"],
        task_id=world["review"]["id"],
    )
    with pytest.raises(ValidationFailed) as excinfo:
        asyncio.run(lifecycle.create_time_entry(draft))
    assert excinfo.value.fields == ["task_id"]
    assert _entries(gateway) == []
    assert changed.calls == 0


def test_update_recomputes_hours_and_keeps_the_date(gateway, world):
    lifecycle = EntryLifecycleManager(gateway, world["user"])
    created = asyncio.run(
        lifecycle.create_time_entry(
            TimeEntryDraft(date="2024-05-06", project_id=world["website"]["id"], start_time="09:00", end_time="10:00")
        )
    )
    updated = asyncio.run(
        lifecycle.update_time_entry(
            created.id,
            TimeEntryUpdate(
                project_id=world["audit"]["id"],
                task_id=world["review"]["id"],
                start_time="08:00",
                end_time="12:15",
                description="Moved",
            ),
        )
    )
    assert updated.hours == pytest.approx(4.25)
    assert updated.date == "2024-05-06"
    assert updated.project_id == world["audit"]["id"]
    assert updated.description == "Moved"


def test_delete_removes_the_entry(gateway, world):
    changed = Counter()
    lifecycle = EntryLifecycleManager(gateway, world["user"], on_change=changed)
    created = asyncio.run(
        lifecycle.create_time_entry(TimeEntryDraft(date="2024-05-06", project_id=world["website"]["id"]))
    )
    asyncio.run(lifecycle.delete_time_entry(created.id))
    assert _entries(gateway) == []
    assert changed.calls == 2


def test_entries_of_another_user_cannot_be_changed(gateway, world):
    owner = EntryLifecycleManager(gateway, world["user"])
    created = asyncio.run(
        owner.create_time_entry(
            TimeEntryDraft(date="2024-05-06", project_id=world["website"]["id"], description="Mine")
        )
    )
    lee = UserOut.model_validate(
        asyncio.run(gateway.insert("users", {"email": "lee@example.com", "name": "Lee", "role": "user"})).data
    )
    changed = Counter()
    intruder = EntryLifecycleManager(gateway, lee, on_change=changed)

    with pytest.raises(UpdateFailed):
        asyncio.run(
            intruder.update_time_entry(
                created.id,
                TimeEntryUpdate(project_id=world["website"]["id"], start_time="09:00", end_time="17:00"),
            )
        )
    with pytest.raises(DeleteFailed):
        asyncio.run(intruder.delete_time_entry(created.id))

    rows = _entries(gateway)
    assert len(rows) == 1
    assert rows[0]["hours"] == pytest.approx(1.0)
    assert rows[0]["description"] == "Mine"
    assert changed.calls == 0


def test_each_write_failure_has_its_own_class():
    changed = Counter()
    lifecycle = EntryLifecycleManager(UnconfiguredGateway(), USER, on_change=changed)
    with pytest.raises(CreateFailed) as created:
        asyncio.run(lifecycle.create_time_entry(TimeEntryDraft(date="2024-05-06", project_id="p-1")))
    with pytest.raises(UpdateFailed) as updated:
        asyncio.run(lifecycle.update_time_entry("e-1", TimeEntryUpdate(project_id="p-1", start_time="09:00", end_time="10:00")))
    with pytest.raises(DeleteFailed) as deleted:
        asyncio.run(lifecycle.delete_time_entry("e-1"))
    assert created.value.message == "Failed to save time entry"
    assert updated.value.code == "update_failed"
    assert deleted.value.message == "Failed to delete time entry"
    assert all(isinstance(exc.value, WriteFailed) for exc in (created, updated, deleted))
    assert changed.calls == 0


# ---- projects


def test_project_requires_name_and_client():
    lifecycle = EntryLifecycleManager(ForbiddenGateway(), USER)
    with pytest.raises(ValidationFailed) as excinfo:
        asyncio.run(lifecycle.create_project(ProjectDraft(name="  ", client="")))
    assert excinfo.value.fields == ["name", "client"]


def test_project_start_date_defaults_to_today(gateway):
    lifecycle = EntryLifecycleManager(gateway, USER, today=lambda: date(2024, 6, 3))
    project = asyncio.run(lifecycle.create_project(ProjectDraft(name="Audit", client="Beta")))
    assert project.start_date == "2024-06-03"
    assert project.description == ""


def test_project_update_replaces_fields(gateway, world):
    lifecycle = EntryLifecycleManager(gateway, world["user"])
    updated = asyncio.run(
        lifecycle.update_project(
            world["website"]["id"],
            ProjectDraft(name="Website v2", client="Acme", description="Relaunch", start_date="2024-07-01"),
        )
    )
    assert updated.name == "Website v2"
    assert updated.start_date == "2024-07-01"
    assert updated.description == "Relaunch"


def test_project_delete_needs_confirmation():
    lifecycle = EntryLifecycleManager(ForbiddenGateway(), USER)
    with pytest.raises(ConfirmationRequired):
        asyncio.run(lifecycle.delete_project("p-1"))


def test_confirmed_project_delete_cascades(gateway, world):
    lifecycle = EntryLifecycleManager(gateway, world["user"])
    asyncio.run(
        lifecycle.create_time_entry(
            TimeEntryDraft(date="2024-05-06", project_id=world["website"]["id"], task_id=world["design"]["id"])
        )
    )
    asyncio.run(lifecycle.delete_project(world["website"]["id"], confirmed=True))
    tasks = asyncio.run(gateway.table("tasks").select().eq("project_id", world["website"]["id"]).execute())
    assert tasks.data == []
    assert _entries(gateway) == []
    remaining = asyncio.run(gateway.table("projects").select().execute()).data
    assert [row["name"] for row in remaining] == ["Audit"]


# ---- tasks


def test_task_requires_a_name_and_project():
    lifecycle = EntryLifecycleManager(ForbiddenGateway(), USER)
    with pytest.raises(ValidationFailed) as excinfo:
        asyncio.run(lifecycle.create_task(TaskDraft(project_id="", name="")))
    assert excinfo.value.fields == ["project_id", "name"]
    with pytest.raises(ValidationFailed):
        asyncio.run(lifecycle.update_task("t-1", TaskUpdate(name=" ")))


def test_task_create_and_update(gateway, world):
    lifecycle = EntryLifecycleManager(gateway, world["user"])
    task = asyncio.run(
        lifecycle.create_task(TaskDraft(project_id=world["audit"]["id"], name="Fieldwork", metadata={"billable": True}))
    )
    assert task.metadata == {"billable": True}
    assert task.description == ""
    updated = asyncio.run(lifecycle.update_task(task.id, TaskUpdate(name="Field work", description="On site")))
    assert updated.name == "Field work"
    assert updated.project_id == world["audit"]["id"]
    assert updated.metadata == {}


def test_task_delete_needs_confirmation_and_cascades(gateway, world):
    lifecycle = EntryLifecycleManager(gateway, world["user"])
    asyncio.run(
        lifecycle.create_time_entry(
            TimeEntryDraft(date="2024-05-06", project_id=world["website"]["id"], task_id=world["design"]["id"])
        )
    )
    with pytest.raises(ConfirmationRequired):
        asyncio.run(lifecycle.delete_task(world["design"]["id"]))
    assert len(_entries(gateway)) == 1
    asyncio.run(lifecycle.delete_task(world["design"]["id"], confirmed=True))
    assert _entries(gateway) == []

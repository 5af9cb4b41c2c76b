from datetime import date, datetime, timedelta

import pytest

from taskdesk.db import SQLiteTaskRepository, SQLiteUserRepository, _SQLiteStore
from taskdesk.errors import ValidationError
from taskdesk.models import Priority
from taskdesk.repositories import InMemoryTaskRepository, ListQuery
from taskdesk.schemas import TaskCreate, TaskUpdate
from taskdesk.users import InMemoryUserRepository


class TickingClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 9, 0, 0)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, tmp_path):
    clock = TickingClock()
    if request.param == "sqlite":
        return SQLiteTaskRepository(str(tmp_path / "tasks.db"), clock=clock)
    return InMemoryTaskRepository(clock=clock)


@pytest.fixture(params=["memory", "sqlite"])
def users(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteUserRepository(str(tmp_path / "tasks.db"))
    return InMemoryUserRepository()


def new(title="Task", **kwargs) -> TaskCreate:
    return TaskCreate(title=title, **kwargs)


class TestTaskRepository:
    def test_create_assigns_id_defaults_and_timestamps(self, repo):
        task = repo.create("alice", new("Write report", tags=["work"]))
        assert task["id"]
        assert task["owner_id"] == "alice"
        assert task["is_completed"] is False
        assert task["priority"] == "medium"
        assert task["tags"] == ["work"]
        assert task["created_at"] == task["updated_at"]
        assert repo.get("alice", task["id"]) == task

    def test_list_is_owner_scoped_and_newest_first(self, repo):
        first = repo.create("alice", new("one"))
        second = repo.create("alice", new("two"))
        repo.create("bob", new("bob's"))
        third = repo.create("alice", new("three"))

        listed = repo.list("alice")
        assert [t["id"] for t in listed] == [third["id"], second["id"], first["id"]]
        assert [t["title"] for t in repo.list("bob")] == ["bob's"]
        assert repo.list("carol") == []

    def test_filters(self, repo):
        a = repo.create("alice", new("a", priority=Priority.HIGH, tags=["x", "y"]))
        b = repo.create("alice", new("b", priority=Priority.LOW, tags=["y"]))
        repo.toggle("alice", b["id"])

        assert [t["id"] for t in repo.list("alice", ListQuery(completed=True))] == [b["id"]]
        assert [t["id"] for t in repo.list("alice", ListQuery(completed=False))] == [a["id"]]
        assert [t["id"] for t in repo.list("alice", ListQuery(tag="x"))] == [a["id"]]
        assert len(repo.list("alice", ListQuery(tag="y"))) == 2
        assert [t["id"] for t in repo.list("alice", ListQuery(priority=Priority.LOW))] == [b["id"]]

    def test_due_date_window_is_half_open(self, repo):
        titles = {
            "start": "2024-03-10T00:00:00",
            "end": "2024-03-10T23:59:59.999999",
            "next": "2024-03-11T00:00:00",
            "before": "2024-03-09T23:59:59",
        }
        for title, due in titles.items():
            repo.create("alice", new(title, due_date=due))
        repo.create("alice", new("undated"))

        hits = repo.list("alice", ListQuery(due_on=date(2024, 3, 10)))
        assert sorted(t["title"] for t in hits) == ["end", "start"]

    def test_due_date_window_on_last_calendar_day(self, repo):
        repo.create("alice", new("last", due_date="9999-12-31T08:00:00"))
        repo.create("alice", new("before", due_date="9999-12-30T23:59:59"))
        hits = repo.list("alice", ListQuery(due_on=date.max))
        assert [t["title"] for t in hits] == ["last"]

    def test_update_only_changes_supplied_fields(self, repo):
        task = repo.create("alice", new("t", description="keep", tags=["a"], due_date="2024-01-01"))
        updated = repo.update("alice", task["id"], TaskUpdate(title="renamed", is_completed=True))
        assert updated["title"] == "renamed"
        assert updated["is_completed"] is True
        assert updated["description"] == "keep"
        assert updated["tags"] == ["a"]
        assert updated["due_date"] == datetime(2024, 1, 1)
        assert updated["updated_at"] > task["updated_at"]
        assert updated["created_at"] == task["created_at"]

        cleared = repo.update("alice", task["id"], TaskUpdate.model_validate({"dueDate": None}))
        assert cleared["due_date"] is None
        assert cleared["title"] == "renamed"

    def test_cross_owner_mutations_are_not_found(self, repo):
        task = repo.create("alice", new("mine"))
        assert repo.get("bob", task["id"]) is None
        assert repo.update("bob", task["id"], TaskUpdate(title="x")) is None
        assert repo.toggle("bob", task["id"]) is None
        assert repo.delete("bob", task["id"]) is False
        assert repo.get("alice", task["id"]) == task

    def test_toggle_twice_restores_value(self, repo):
        task = repo.create("alice", new("flip"))
        assert repo.toggle("alice", task["id"])["is_completed"] is True
        assert repo.toggle("alice", task["id"])["is_completed"] is False

    def test_delete_is_permanent(self, repo):
        task = repo.create("alice", new("gone"))
        assert repo.delete("alice", task["id"]) is True
        assert repo.get("alice", task["id"]) is None
        assert repo.delete("alice", task["id"]) is False
        assert repo.list("alice") == []

    def test_returned_records_are_copies(self, repo):
        task = repo.create("alice", new("t", tags=["a"]))
        task["tags"].append("mutated")
        assert repo.get("alice", task["id"])["tags"] == ["a"]


class TestUserRepository:
    def test_create_and_lookup(self, users):
        user = users.create("Ada", "Ada@Example.com", "hash")
        assert user["email"] == "ada@example.com"
        assert users.get(user["id"]) == user
        assert users.get_by_email("ADA@example.com") == user
        assert users.get("missing") is None
        assert users.get_by_email("nobody@example.com") is None

    def test_duplicate_email_returns_none(self, users):
        assert users.create("Ada", "ada@example.com", "hash") is not None
        assert users.create("Other", "ADA@example.com", "hash") is None


class TestListQueryFromParams:
    def test_unset_params_mean_no_constraint(self):
        assert ListQuery.from_params() == ListQuery()

    def test_completed_parsing(self):
        assert ListQuery.from_params(completed="true").completed is True
        assert ListQuery.from_params(completed="TRUE").completed is True
        assert ListQuery.from_params(completed="false").completed is False
        assert ListQuery.from_params(completed="whatever").completed is False

    def test_priority_is_ignored_when_invalid(self):
        assert ListQuery.from_params(priority="high").priority is Priority.HIGH
        assert ListQuery.from_params(priority="urgent").priority is None
        assert ListQuery.from_params(priority="HIGH").priority is None
        assert ListQuery.from_params(priority=" high").priority is None

    def test_tag_is_compared_as_sent(self):
        assert ListQuery.from_params(tag="").tag is None
        assert ListQuery.from_params(tag=" work ").tag == " work "

    def test_last_calendar_day_has_open_window(self):
        query = ListQuery.from_params(due_date="9999-12-31")
        assert query.due_window() == (datetime(9999, 12, 31), None)

    def test_due_date_uses_calendar_day(self):
        assert ListQuery.from_params(due_date="2024-03-10").due_on == date(2024, 3, 10)
        assert ListQuery.from_params(due_date="2024-03-10T18:30:00").due_on == date(2024, 3, 10)
        start, end = ListQuery(due_on=date(2024, 3, 10)).due_window()
        assert start == datetime(2024, 3, 10)
        assert end == datetime(2024, 3, 11)

    def test_bad_due_date_is_a_validation_error(self):
        with pytest.raises(ValidationError) as excinfo:
            ListQuery.from_params(due_date="someday")
        assert excinfo.value.errors[0]["field"] == "dueDate"

    def test_offset_outside_calendar_range_is_a_validation_error(self):
        with pytest.raises(ValidationError) as excinfo:
            ListQuery.from_params(due_date="0001-01-01T00:00:00+01:00")
        assert excinfo.value.errors[0]["field"] == "dueDate"


def test_sqlite_store_requires_schema_hook(tmp_path):
    with pytest.raises(TypeError):
        _SQLiteStore(str(tmp_path / "tasks.db"))

import json
from datetime import date, datetime

import pytest

from taskdesk.client import FilterOptions, SessionContext, TaskApiClient, TaskBoard
from taskdesk.client.grouping import NO_DUE_DATE, OVERDUE
from taskdesk.errors import AuthError, NotFoundError, ValidationError
from taskdesk.models import Priority
from taskdesk.schemas import UserOut

NOW = datetime(2024, 5, 15, 12, 0, 0)


def make_user() -> UserOut:
    return UserOut(id="u1", name="Ada", email="ada@example.com", created_at=NOW, updated_at=NOW)


@pytest.fixture()
def api(client):
    """Task client sending its requests through the in-process TestClient."""
    return TaskApiClient(base_url="http://testserver/api", session=SessionContext(), http=client)


@pytest.fixture()
def board(api):
    api.signup("Ada", "ada@example.com", "s3cret!")
    return TaskBoard(api, clock=lambda: NOW)


class TestFilterOptions:
    def test_unset_keys_are_not_sent(self):
        assert FilterOptions().to_params() == {}
        assert FilterOptions().is_empty()

    def test_false_is_a_real_predicate(self):
        assert FilterOptions(completed=False).to_params() == {"completed": "false"}

    def test_renders_all_keys(self):
        params = FilterOptions(completed=True, tag="work", priority=Priority.HIGH, due_date=date(2024, 3, 10)).to_params()
        assert params == {"completed": "true", "tag": "work", "priority": "high", "dueDate": "2024-03-10"}

    def test_with_changes_and_without(self):
        f = FilterOptions(tag="work").with_changes(priority="low")
        assert f == FilterOptions(tag="work", priority="low")
        assert f.without("tag") == FilterOptions(priority="low")
        assert f.with_changes(priority=None) == FilterOptions(tag="work")


class TestSessionContext:
    def test_start_and_clear_notify_listeners(self):
        session = SessionContext()
        seen = []
        session.on_change(lambda s: seen.append(s.is_authenticated))
        session.start("tok", make_user())
        assert session.is_authenticated
        session.clear()
        assert not session.is_authenticated
        assert session.token is None and session.user is None
        assert seen == [True, False]

    def test_persists_and_restores(self, tmp_path):
        path = tmp_path / "session.json"
        SessionContext(path).start("tok", make_user())
        assert path.exists()

        restored = SessionContext(path)
        assert restored.restore() is True
        assert restored.token == "tok"
        assert restored.user.email == "ada@example.com"

        restored.clear()
        assert not path.exists()

    @pytest.mark.parametrize(
        "content",
        ["not json", json.dumps({"token": "tok"}), json.dumps({"user": {"id": "u1"}}), json.dumps(["tok"])],
    )
    def test_incomplete_or_corrupt_storage_is_cleared(self, tmp_path, content):
        path = tmp_path / "session.json"
        path.write_text(content, encoding="utf-8")
        session = SessionContext(path)
        assert session.restore() is False
        assert not session.is_authenticated
        assert not path.exists()

    def test_restore_without_file(self, tmp_path):
        assert SessionContext(tmp_path / "missing.json").restore() is False
        assert SessionContext().restore() is False


class TestTaskApiClient:
    def test_signup_login_and_me(self, api):
        result = api.signup("Ada", "ada@example.com", "s3cret!")
        assert api.session.token == result.token
        assert api.get_current_user().email == "ada@example.com"

        api.logout()
        assert not api.session.is_authenticated
        api.login("ada@example.com", "s3cret!")
        assert api.session.is_authenticated

    def test_health(self, api):
        assert api.health()["status"] == "OK"

    def test_errors_map_to_taxonomy(self, api):
        api.signup("Ada", "ada@example.com", "s3cret!")
        with pytest.raises(NotFoundError):
            api.toggle_task("missing")
        with pytest.raises(ValidationError) as excinfo:
            api.create_task("t", priority="urgent")
        assert excinfo.value.errors[0]["field"] == "priority"

    def test_401_clears_session(self, api):
        api.session.start("forged-token", make_user())
        with pytest.raises(AuthError):
            api.list_tasks()
        assert not api.session.is_authenticated

    def test_blank_title_is_rejected_before_sending(self, api, task_repo):
        api.signup("Ada", "ada@example.com", "s3cret!")
        with pytest.raises(ValidationError):
            api.create_task("   ")
        assert task_repo.list(api.session.user.id) == []


class TestTaskBoard:
    def test_refresh_without_session_does_nothing(self, api):
        board = TaskBoard(api)
        board.refresh()
        assert board.tasks == []
        assert board.error is None

    def test_login_fetches_and_logout_empties(self, api):
        api.signup("Ada", "ada@example.com", "s3cret!")
        api.create_task("Already there")
        api.logout()

        board = TaskBoard(api, clock=lambda: NOW)
        assert board.tasks == []
        api.login("ada@example.com", "s3cret!")
        assert [t.title for t in board.tasks] == ["Already there"]

        api.logout()
        assert board.tasks == []

    def test_mutations_patch_local_state(self, board):
        first = board.create_task("First", priority="low")
        second = board.create_task("Second", due_date="2000-01-01", tags=["home"])
        assert [t.id for t in board.tasks] == [second.id, first.id]

        board.update_task(first.id, title="First, renamed")
        assert board.tasks[1].title == "First, renamed"

        toggled = board.toggle_task(second.id)
        assert toggled.is_completed is True
        assert board.tasks[0].is_completed is True

        assert board.delete_task(first.id) == first.id
        assert [t.id for t in board.tasks] == [second.id]

    def test_filters_refetch_from_server(self, board):
        board.create_task("Work", tags=["work"], priority="high")
        board.create_task("Home", tags=["home"])

        board.update_filter(tag="work")
        assert [t.title for t in board.tasks] == ["Work"]

        board.update_filter(tag=None, completed=False)
        assert len(board.tasks) == 2

        board.set_filters(FilterOptions(priority="high"))
        assert [t.title for t in board.tasks] == ["Work"]

        board.clear_filters()
        assert board.filters.is_empty()
        assert len(board.tasks) == 2

    def test_stats_and_groups_follow_local_tasks(self, board):
        board.create_task("Late", due_date="2024-05-01")
        board.create_task("Someday")
        done = board.create_task("Done")
        board.toggle_task(done.id)

        stats = board.stats
        assert (stats.total, stats.completed, stats.pending, stats.overdue) == (3, 1, 2, 1)
        assert [g.label for g in board.groups] == [OVERDUE, NO_DUE_DATE]

    def test_failed_mutation_leaves_state_untouched(self, board):
        board.create_task("Keep me")
        before = list(board.tasks)
        with pytest.raises(NotFoundError):
            board.update_task("missing", title="x")
        assert board.tasks == before
        assert board.error == "Task not found"
        assert board.is_loading is False

    def test_refresh_failure_keeps_tasks_and_records_error(self, board):
        board.create_task("Keep me")
        board.refresh()
        before = list(board.tasks)

        board.set_filters(FilterOptions(due_date="someday"))
        assert board.tasks == before
        assert board.error == "Validation failed"

    def test_refresh_401_signs_out_and_empties_board(self, board):
        board.create_task("Keep me")
        board.api.session.start("forged-token", board.api.session.user)
        board.refresh()
        assert board.error == "Token is not valid"
        assert not board.api.session.is_authenticated
        assert board.tasks == []

    def test_validation_failure_keeps_state(self, board):
        board.create_task("Keep me")
        before = list(board.tasks)
        with pytest.raises(ValidationError):
            board.create_task("x" * 101)
        assert board.tasks == before
        assert board.error == "Request validation failed"

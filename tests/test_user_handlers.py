import pytest

from gator.app import Command, CommandError, State
from gator.config import Config, read
from gator.database import connect
from gator.user_handlers import (
    handler_login,
    handler_register,
    handler_reset,
    handler_users,
    logged_in,
)


@pytest.fixture
def state(tmp_path):
    db = connect("sqlite://")
    config = Config(url="sqlite://", path=tmp_path / "gatorconfig.json")
    yield State(config=config, db=db)
    db.close()


def register(state, name):
    return handler_register(state, Command("register", [name]))


def test_register_creates_user_and_logs_in(state, capsys):
    user = register(state, "alice")
    assert user.name == "alice"
    assert state.db.get_user("alice").id == user.id
    assert state.config.name == "alice"
    assert read(state.config.path).name == "alice"
    assert "User 'alice' has successfully been registered!" in capsys.readouterr().out


def test_register_existing_user_fails(state):
    register(state, "alice")
    with pytest.raises(CommandError, match="user 'alice' exists"):
        register(state, "alice")


def test_register_without_args_fails(state):
    with pytest.raises(CommandError, match="no command input"):
        handler_register(state, Command("register", []))


def test_login_switches_current_user(state, capsys):
    register(state, "alice")
    register(state, "bob")
    assert state.config.name == "bob"
    user = handler_login(state, Command("login", ["alice"]))
    assert user.name == "alice"
    assert state.config.name == "alice"
    assert read(state.config.path).name == "alice"
    assert "User 'alice' has successfully logged in!" in capsys.readouterr().out


def test_login_unknown_user_fails(state):
    with pytest.raises(CommandError, match="user 'ghost' doesn't exist"):
        handler_login(state, Command("login", ["ghost"]))
    assert state.config.name is None


def test_login_without_args_fails(state):
    with pytest.raises(CommandError, match="no command input"):
        handler_login(state, Command("login", []))


def test_missing_state_is_rejected():
    with pytest.raises(CommandError):
        handler_login(None, Command("login", ["alice"]))
    with pytest.raises(CommandError):
        handler_reset(None, Command("reset"))


def test_reset_removes_all_users(state, capsys):
    register(state, "alice")
    register(state, "bob")
    handler_reset(state, Command("reset"))
    assert state.db.get_users() == []
    assert "Database successfully reset!" in capsys.readouterr().out


def test_users_marks_current(state, capsys):
    register(state, "bob")
    register(state, "alice")
    capsys.readouterr()
    names = handler_users(state, Command("users"))
    assert names == ["alice", "bob"]
    lines = capsys.readouterr().out.splitlines()
    assert lines == ["* alice (current)", "* bob"]


def test_users_empty_database(state, capsys):
    assert handler_users(state, Command("users")) == []
    assert "No users registered in database!" in capsys.readouterr().out


def test_users_without_current_user_fails(state):
    register(state, "alice")
    state.config.name = None
    with pytest.raises(CommandError, match="current user is nil"):
        handler_users(state, Command("users"))


def test_logged_in_passes_user(state):
    registered = register(state, "alice")
    received = {}

    def handler(st, command, user):
        received["user"] = user
        received["args"] = command.args
        return "done"

    wrapped = logged_in(handler)
    assert wrapped(state, Command("browse", ["5"])) == "done"
    assert received["user"] == registered
    assert received["args"] == ["5"]


def test_logged_in_requires_login(state):
    wrapped = logged_in(lambda st, command, user: user)
    with pytest.raises(CommandError, match="user is not logged in"):
        wrapped(state, Command("browse"))


def test_logged_in_rejects_empty_name(state):
    state.config.name = ""
    wrapped = logged_in(lambda st, command, user: user)
    with pytest.raises(CommandError, match="username is empty"):
        wrapped(state, Command("browse"))


def test_logged_in_unknown_user(state):
    state.config.name = "ghost"
    wrapped = logged_in(lambda st, command, user: user)
    with pytest.raises(CommandError, match="error getting user from db"):
        wrapped(state, Command("browse"))


def test_logged_in_missing_state():
    wrapped = logged_in(lambda st, command, user: user)
    with pytest.raises(CommandError, match="state is missing"):
        wrapped(None, Command("browse"))
"""Command handlers for logging in, registering, resetting and listing users."""

from __future__ import annotations

import functools
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from gator.app import Command, CommandError, State
from gator.config import ConfigError
from gator.database import Database, DatabaseError, NotFoundError, User

UserHandler = Callable[[State, Command, User], Any]


def _require_state(state: Optional[State]) -> State:
    if state is None:
        raise CommandError("state is missing")
    return state


def _require_db(state: State) -> Database:
    if state.db is None:
        raise CommandError("database is not connected")
    return state.db


def _set_current_user(state: State, username: str) -> None:
    try:
        state.config.set_user(username)
    except ConfigError as exc:
        raise CommandError(f"error setting username: {exc}") from exc


def logged_in(handler: UserHandler) -> Callable[[State, Command], Any]:
    """Wrap a handler so it receives the logged-in user as a third argument."""

    @functools.wraps(handler)
    def wrapper(state: Optional[State], command: Command) -> Any:
        state = _require_state(state)
        if state.config is None:
            raise CommandError("config is missing")
        name = state.config.name
        if name is None:
            raise CommandError("user is not logged in")
        if name == "":
            raise CommandError("username is empty")
        db = _require_db(state)
        try:
            user = db.get_user(name)
        except DatabaseError as exc:
            raise CommandError(f"error getting user from db: {exc}") from exc
        return handler(state, command, user)

    return wrapper


def handler_login(state: Optional[State], command: Command) -> User:
    """Make an existing user the current user."""
    state = _require_state(state)
    if not command.args:
        raise CommandError("no command input")
    username = command.args[0]
    db = _require_db(state)

    try:
        user = db.get_user(username)
    except NotFoundError:
        raise CommandError(f"user '{username}' doesn't exist") from None
    except DatabaseError as exc:
        raise CommandError(f"error getting user from db: {exc}") from exc

    _set_current_user(state, username)
    print(f"User '{username}' has successfully logged in!")
    return user


def handler_register(state: Optional[State], command: Command) -> User:
    """Create a new user and make it the current user."""
    state = _require_state(state)
    if not command.args:
        raise CommandError("no command input")
    username = command.args[0]
    db = _require_db(state)

    try:
        db.get_user(username)
    except NotFoundError:
        pass
    except DatabaseError as exc:
        raise CommandError(f"error getting user from db: {exc}") from exc
    else:
        raise CommandError(f"user '{username}' exists")

    now = datetime.now(timezone.utc)
    try:
        user = db.create_user(uuid.uuid4(), now, now, username)
    except DatabaseError as exc:
        raise CommandError(f"error registering user: {exc}") from exc

    _set_current_user(state, username)
    print(f"User '{username}' has successfully been registered!")
    print(
        "User details:\n"
        f"  ID = {user.id}\n"
        f"  CreatedAt = {user.created_at}\n"
        f"  UpdatedAt = {user.updated_at}\n"
        f"  Name = {user.name}"
    )
    return user


def handler_reset(state: Optional[State], command: Command) -> None:
    """Delete every user and everything that belongs to them."""
    state = _require_state(state)
    db = _require_db(state)
    try:
        db.reset()
    except DatabaseError as exc:
        raise CommandError(f"error resetting database: {exc}") from exc
    print("Database successfully reset!")


def handler_users(state: Optional[State], command: Command) -> list[str]:
    """Print every registered user, marking the current one."""
    state = _require_state(state)
    db = _require_db(state)
    try:
        users = db.get_users()
    except DatabaseError as exc:
        raise CommandError(
            f"error returning registered users from database: {exc}"
        ) from exc

    if not users:
        print("No users registered in database!")
        return users

    current = state.config.name
    if current is None:
        raise CommandError("current user is nil")

    for user in users:
        if user == current:
            print(f"* {user} (current)")
        else:
            print(f"* {user}")
    return users
"""SQLite-backed storage for users, feeds, feed follows and posts."""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, Optional

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS feeds (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    last_fetched_at TEXT
);
CREATE TABLE IF NOT EXISTS feed_follows (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    feed_id TEXT NOT NULL REFERENCES feeds (id) ON DELETE CASCADE,
    UNIQUE (user_id, feed_id)
);
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    description TEXT,
    published_at TEXT,
    feed_id TEXT NOT NULL REFERENCES feeds (id) ON DELETE CASCADE
);
"""


class DatabaseError(Exception):
    """Raised when a database operation fails."""


class NotFoundError(DatabaseError):
    """Raised when a query that must return a row returns none."""


class UniqueViolationError(DatabaseError):
    """Raised when an insert would break a unique constraint."""


@dataclass(frozen=True)
class User:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    name: str


@dataclass(frozen=True)
class Feed:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    name: str
    url: str
    user_id: uuid.UUID
    last_fetched_at: Optional[datetime] = None


@dataclass(frozen=True)
class FeedFollow:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    user_id: uuid.UUID
    feed_id: uuid.UUID


@dataclass(frozen=True)
class FeedFollowDetail:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    user_id: uuid.UUID
    feed_id: uuid.UUID
    user_name: str
    feed_name: str


@dataclass(frozen=True)
class FeedWithCreator:
    feed_name: str
    feed_url: str
    user_name: str


@dataclass(frozen=True)
class Post:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    title: str
    url: str
    description: Optional[str]
    published_at: Optional[datetime]
    feed_id: uuid.UUID


def _store_time(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.astimezone()
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _load_time(text: Optional[str]) -> Optional[datetime]:
    return None if text is None else datetime.fromisoformat(text)


def _load_id(text: str) -> uuid.UUID:
    return uuid.UUID(text)


def _user(row: sqlite3.Row) -> User:
    return User(
        id=_load_id(row["id"]),
        created_at=_load_time(row["created_at"]),
        updated_at=_load_time(row["updated_at"]),
        name=row["name"],
    )


def _feed(row: sqlite3.Row) -> Feed:
    return Feed(
        id=_load_id(row["id"]),
        created_at=_load_time(row["created_at"]),
        updated_at=_load_time(row["updated_at"]),
        name=row["name"],
        url=row["url"],
        user_id=_load_id(row["user_id"]),
        last_fetched_at=_load_time(row["last_fetched_at"]),
    )


def _follow(row: sqlite3.Row) -> FeedFollow:
    return FeedFollow(
        id=_load_id(row["id"]),
        created_at=_load_time(row["created_at"]),
        updated_at=_load_time(row["updated_at"]),
        user_id=_load_id(row["user_id"]),
        feed_id=_load_id(row["feed_id"]),
    )


def _follow_detail(row: sqlite3.Row) -> FeedFollowDetail:
    return FeedFollowDetail(
        id=_load_id(row["id"]),
        created_at=_load_time(row["created_at"]),
        updated_at=_load_time(row["updated_at"]),
        user_id=_load_id(row["user_id"]),
        feed_id=_load_id(row["feed_id"]),
        user_name=row["user_name"],
        feed_name=row["feed_name"],
    )


def _post(row: sqlite3.Row) -> Post:
    return Post(
        id=_load_id(row["id"]),
        created_at=_load_time(row["created_at"]),
        updated_at=_load_time(row["updated_at"]),
        title=row["title"],
        url=row["url"],
        description=row["description"],
        published_at=_load_time(row["published_at"]),
        feed_id=_load_id(row["feed_id"]),
    )


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.IntegrityError as exc:
        if "UNIQUE" in str(exc):
            raise UniqueViolationError(
                f"duplicate key value violates unique constraint: {exc}"
            ) from exc
        raise DatabaseError(str(exc)) from exc
    except sqlite3.Error as exc:
        raise DatabaseError(str(exc)) from exc


_FOLLOW_DETAIL_SELECT = """
SELECT ff.id, ff.created_at, ff.updated_at, ff.user_id, ff.feed_id,
       u.name AS user_name, f.name AS feed_name
FROM feed_follows ff
INNER JOIN users u ON u.id = ff.user_id
INNER JOIN feeds f ON f.id = ff.feed_id
"""


class Database:
    """Queries over an open SQLite connection."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._conn.isolation_level = None
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._depth = 0

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def create_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        with _translate_errors():
            self._conn.executescript(_SCHEMA)

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """Run the enclosed operations atomically; nested use makes savepoints."""
        savepoint = f"sp_{self._depth}"
        with _translate_errors():
            self._conn.execute("BEGIN" if self._depth == 0 else f"SAVEPOINT {savepoint}")
        outermost = self._depth == 0
        self._depth += 1
        try:
            yield self
        except BaseException:
            with _translate_errors():
                if outermost:
                    self._conn.execute("ROLLBACK")
                else:
                    self._conn.execute(f"ROLLBACK TO {savepoint}")
                    self._conn.execute(f"RELEASE {savepoint}")
            raise
        else:
            with _translate_errors():
                self._conn.execute("COMMIT" if outermost else f"RELEASE {savepoint}")
        finally:
            self._depth -= 1

    def close(self) -> None:
        self._conn.close()

    def _one(self, sql: str, params: tuple = ()) -> sqlite3.Row:
        with _translate_errors():
            row = self._conn.execute(sql, params).fetchone()
        if row is None:
            raise NotFoundError("no rows in result set")
        return row

    def _all(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with _translate_errors():
            return self._conn.execute(sql, params).fetchall()

    def _exec(self, sql: str, params: tuple = ()) -> None:
        with _translate_errors():
            self._conn.execute(sql, params)

    # users

    def create_user(self, user_id, created_at, updated_at, name) -> User:
        with self.transaction():
            self._exec(
                "INSERT INTO users (id, created_at, updated_at, name) VALUES (?, ?, ?, ?)",
                (str(user_id), _store_time(created_at), _store_time(updated_at), name),
            )
            row = self._one("SELECT * FROM users WHERE id = ?", (str(user_id),))
        return _user(row)

    def get_user(self, name) -> User:
        return _user(self._one("SELECT * FROM users WHERE name = ? LIMIT 1", (name,)))

    def get_users(self) -> list[str]:
        return [row["name"] for row in self._all("SELECT name FROM users ORDER BY name")]

    def reset(self) -> None:
        """Delete every user, and with them everything they own."""
        with self.transaction():
            self._exec("DELETE FROM users")

    # feeds

    def create_feed(self, feed_id, created_at, updated_at, name, url, user_id) -> Feed:
        with self.transaction():
            self._exec(
                "INSERT INTO feeds (id, created_at, updated_at, name, url, user_id) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    str(feed_id),
                    _store_time(created_at),
                    _store_time(updated_at),
                    name,
                    url,
                    str(user_id),
                ),
            )
            row = self._one("SELECT * FROM feeds WHERE id = ?", (str(feed_id),))
        return _feed(row)

    def get_feed_by_url(self, url) -> Feed:
        return _feed(self._one("SELECT * FROM feeds WHERE url = ? LIMIT 1", (url,)))

    def get_next_feed_to_fetch(self) -> Feed:
        """Return the feed fetched least recently, never-fetched feeds first."""
        return _feed(
            self._one(
                "SELECT * FROM feeds "
                "ORDER BY last_fetched_at IS NOT NULL, last_fetched_at ASC LIMIT 1"
            )
        )

    def list_feeds_with_creator(self) -> list[FeedWithCreator]:
        rows = self._all(
            "SELECT f.name AS feed_name, f.url AS feed_url, u.name AS user_name "
            "FROM feeds f INNER JOIN users u ON u.id = f.user_id"
        )
        return [
            FeedWithCreator(row["feed_name"], row["feed_url"], row["user_name"])
            for row in rows
        ]

    def mark_feed_fetched(self, feed_id) -> None:
        now = _store_time(datetime.now(timezone.utc))
        with self.transaction():
            self._exec(
                "UPDATE feeds SET updated_at = ?, last_fetched_at = ? WHERE id = ?",
                (now, now, str(feed_id)),
            )

    # feed follows

    def create_feed_follow(
        self, follow_id, created_at, updated_at, user_id, feed_id
    ) -> FeedFollowDetail:
        with self.transaction():
            self._exec(
                "INSERT INTO feed_follows (id, created_at, updated_at, user_id, feed_id) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    str(follow_id),
                    _store_time(created_at),
                    _store_time(updated_at),
                    str(user_id),
                    str(feed_id),
                ),
            )
            row = self._one(_FOLLOW_DETAIL_SELECT + "WHERE ff.id = ?", (str(follow_id),))
        return _follow_detail(row)

    def delete_feed_follow(self, url, user_id) -> FeedFollow:
        """Remove the user's follow of the feed with this URL and return it."""
        with self.transaction():
            row = self._one(
                "SELECT ff.* FROM feed_follows ff INNER JOIN feeds f ON f.id = ff.feed_id "
                "WHERE f.url = ? AND ff.user_id = ?",
                (url, str(user_id)),
            )
            self._exec("DELETE FROM feed_follows WHERE id = ?", (row["id"],))
        return _follow(row)

    def get_feed_follows_for_user(self, user_id) -> list[FeedFollowDetail]:
        rows = self._all(
            _FOLLOW_DETAIL_SELECT + "WHERE ff.user_id = ? ORDER BY ff.created_at DESC",
            (str(user_id),),
        )
        return [_follow_detail(row) for row in rows]

    # posts

    def create_post(
        self,
        post_id,
        created_at,
        updated_at,
        title,
        url,
        description,
        published_at,
        feed_id,
    ) -> Post:
        with self.transaction():
            self._exec(
                "INSERT INTO posts (id, created_at, updated_at, title, url, description, "
                "published_at, feed_id) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    str(post_id),
                    _store_time(created_at),
                    _store_time(updated_at),
                    title,
                    url,
                    description,
                    _store_time(published_at),
                    str(feed_id),
                ),
            )
            row = self._one("SELECT * FROM posts WHERE id = ?", (str(post_id),))
        return _post(row)

    def get_posts_for_user(self, user_id, limit) -> list[Post]:
        """Newest posts of the feeds the user follows, undated posts last."""
        if limit < 0:
            raise DatabaseError("LIMIT must not be negative")
        rows = self._all(
            "SELECT p.* FROM posts p "
            "INNER JOIN feed_follows ff ON p.feed_id = ff.feed_id "
            "WHERE ff.user_id = ? "
            "ORDER BY p.published_at IS NULL, p.published_at DESC, p.created_at DESC "
            "LIMIT ?",
            (str(user_id), int(limit)),
        )
        return [_post(row) for row in rows]


def connect(url) -> Database:
    """Open the database named by a sqlite:// URL or a file path."""
    if url.startswith("sqlite://"):
        path = url[len("sqlite://"):]
        if path.startswith("/"):
            path = path[1:]
        if not path:
            path = ":memory:"
    elif "://" in url:
        scheme = url.split("://", 1)[0]
        raise DatabaseError(f"unsupported database URL scheme: {scheme}")
    else:
        path = url
    try:
        connection = sqlite3.connect(path)
    except sqlite3.Error as exc:
        raise DatabaseError(str(exc)) from exc
    db = Database(connection)
    db.create_schema()
    return db
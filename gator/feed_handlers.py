"""Command handlers for adding, listing, following and browsing feeds."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from gator.app import Command, CommandError, State
from gator.database import (
    Database,
    DatabaseError,
    Feed,
    FeedFollow,
    FeedFollowDetail,
    FeedWithCreator,
    NotFoundError,
    Post,
    UniqueViolationError,
    User,
)

DEFAULT_POST_LIMIT = 2


def _require_state(state: Optional[State]) -> State:
    if state is None:
        raise CommandError("state is missing")
    return state


def _require_db(state: State) -> Database:
    if state.db is None:
        raise CommandError("database is not connected")
    return state.db


def _require_logged_in(state: State) -> None:
    if state.config is None or state.config.name is None:
        raise CommandError("current user is nil/not logged in")


def handler_add_feed(state: Optional[State], command: Command, user: User) -> Feed:
    """Add a feed owned by the user, then follow it on the user's behalf."""
    state = _require_state(state)
    if len(command.args) < 2:
        raise CommandError("feed name and url args required")
    feed_name, feed_url = command.args[0], command.args[1]
    _require_logged_in(state)
    db = _require_db(state)

    now = datetime.now(timezone.utc)
    try:
        feed = db.create_feed(uuid.uuid4(), now, now, feed_name, feed_url, user.id)
    except DatabaseError as exc:
        raise CommandError(f"error adding new feed to database: {exc}") from exc

    print(f"RSS Feed '{feed_name}' has successfully been added to database!")
    print(
        "Feed details:\n"
        f"  ID = {feed.id}\n"
        f"  CreatedAt = {feed.created_at}\n"
        f"  UpdatedAt = {feed.updated_at}\n"
        f"  Name = {feed.name}\n"
        f"  URL: {feed.url}\n"
        f"  UserID = {feed.user_id}"
    )

    try:
        handler_follow(state, Command("follow", [feed_url]), user)
    except CommandError as exc:
        print(f"Warning: error following feed: {exc}")

    return feed


def handler_feeds(state: Optional[State], command: Command) -> list[FeedWithCreator]:
    """Print every feed with the name of the user who added it."""
    state = _require_state(state)
    db = _require_db(state)
    try:
        feeds = db.list_feeds_with_creator()
    except DatabaseError as exc:
        raise CommandError(f"error returning feeds from database: {exc}") from exc

    if not feeds:
        print("No feeds logged in database!")
        return feeds

    print("Feeds list based on creator:")
    print()
    for feed in feeds:
        print(f"Feed name: {feed.feed_name}")
        print(f"Feed URL: {feed.feed_url}")
        print(f"Created by: {feed.user_name}")
        print()
    return feeds


def handler_follow(
    state: Optional[State], command: Command, user: User
) -> FeedFollowDetail:
    """Make the user follow the feed with the URL given as first argument."""
    state = _require_state(state)
    if not command.args:
        raise CommandError("no command input")
    url = command.args[0]
    _require_logged_in(state)
    db = _require_db(state)

    try:
        feed = db.get_feed_by_url(url)
    except DatabaseError as exc:
        raise CommandError(f"error getting feed from db: {exc}") from exc

    now = datetime.now(timezone.utc)
    try:
        follow = db.create_feed_follow(uuid.uuid4(), now, now, user.id, feed.id)
    except UniqueViolationError:
        raise CommandError("you are already following this feed") from None
    except DatabaseError as exc:
        raise CommandError(f"error creating feed follow: {exc}") from exc

    print(f"{follow.user_name} is now following: {follow.feed_name}")
    return follow


def handler_following(
    state: Optional[State], command: Command, user: User
) -> list[FeedFollowDetail]:
    """Print the names of the feeds the user follows, newest first."""
    state = _require_state(state)
    _require_logged_in(state)
    db = _require_db(state)

    try:
        follows = db.get_feed_follows_for_user(user.id)
    except DatabaseError as exc:
        raise CommandError(
            f"error returning feed follows from database: {exc}"
        ) from exc

    if not follows:
        print("No feed follows in database!")
        return follows

    print(f"Feeds followed by {user.name}:")
    print()
    for follow in follows:
        print(f"Feed name: {follow.feed_name}")
        print()
    return follows


def handler_unfollow(
    state: Optional[State], command: Command, user: User
) -> Optional[FeedFollow]:
    """Stop the user following the feed with the given URL.

    Returns the removed follow, or None when the user was not following it.
    """
    state = _require_state(state)
    _require_logged_in(state)
    if not command.args:
        raise CommandError("feed url required")
    feed_url = command.args[0]
    db = _require_db(state)

    try:
        removed = db.delete_feed_follow(feed_url, user.id)
    except NotFoundError:
        print(f"{user.name} is not following this feed!")
        return None
    except DatabaseError as exc:
        raise CommandError(f"error unfollowing feed: {exc}") from exc

    print("Feed successfully unfollowed!")
    return removed


def _post_limit(args: list[str]) -> int:
    if not args:
        return DEFAULT_POST_LIMIT
    try:
        return int(args[0].strip() if args[0].strip() == args[0] else args[0])
    except ValueError:
        print(f"Invalid limit input! Using defaut of {DEFAULT_POST_LIMIT}.")
        return DEFAULT_POST_LIMIT


def handler_browse(
    state: Optional[State], command: Command, user: User
) -> list[Post]:
    """Print the newest posts of the feeds the user follows."""
    state = _require_state(state)
    _require_logged_in(state)
    limit = _post_limit(command.args)
    db = _require_db(state)

    try:
        posts = db.get_posts_for_user(user.id, limit)
    except DatabaseError as exc:
        raise CommandError(f"error returning posts from database: {exc}") from exc

    if not posts:
        print("No posts from feeds followed in database!")
        return posts

    print(f"Posts from feeds followed by {user.name}:")
    print()
    for post in posts:
        published = "" if post.published_at is None else post.published_at
        print(f"Post name: {post.title}")
        print(f"Post url: {post.url}")
        print(f"Post pubdate: {published}")
        print(f"Post content: {post.description or ''}")
        print()
    return posts
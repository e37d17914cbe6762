# gator

`gator` is a Python library with the parts of a small RSS aggregator:

- `gator.database`: SQLite storage for users, feeds, feed follows and
  posts (`connect`, `Database`, and the `User`, `Feed`, `FeedFollow`,
  `FeedFollowDetail`, `FeedWithCreator` and `Post` records).
- `gator.config`: reading and writing the settings file
  `~/.gatorconfig.json` (`Config`, `read`, `write`, `config_path`).
- `gator.app`: the `State` passed to handlers, the `Command` record and
  the `Commands` registry that dispatches a command by name.
- `gator.user_handlers`: `handler_register`, `handler_login`,
  `handler_users`, `handler_reset`, and the `logged_in` wrapper.
- `gator.feed_handlers`: `handler_add_feed`, `handler_feeds`,
  `handler_follow`, `handler_following`, `handler_unfollow` and
  `handler_browse`.
- `gator.rssfeed`: `fetch_feed` downloads an RSS document with
  `requests` and `parse_feed` turns it into `RSSFeed` / `Channel` /
  `RSSItem` records.

## Installation

```
pip install .
```

## Configuration

`gator.config.read()` loads `.gatorconfig.json` from your home
directory; a missing file gives an empty `Config`. The file holds the
database location and the current user:

```json
{
  "db_url": "gator.db",
  "current_user_name": "alice"
}
```

`Config.set_user` (called by `handler_register` and `handler_login`)
updates `current_user_name` and saves the file.

`gator.database.connect` accepts a file path or a `sqlite://` URL
(`sqlite://` alone opens an in-memory database) and creates the tables
if needed. Any other URL scheme raises `DatabaseError`.

## Usage

```python
from gator.app import Command, Commands, State
from gator.config import read
from gator.database import connect
from gator.feed_handlers import handler_add_feed, handler_browse, handler_feeds
from gator.user_handlers import handler_register, logged_in

config = read()
state = State(config=config, db=connect(config.url or "gator.db"))

commands = Commands()
commands.register("register", handler_register)
commands.register("feeds", handler_feeds)
commands.register("addfeed", logged_in(handler_add_feed))
commands.register("browse", logged_in(handler_browse))

commands.run(state, Command("register", ["alice"]))
commands.run(state, Command("addfeed", ["Example Blog", "https://example.com/index.xml"]))
commands.run(state, Command("browse", ["5"]))
```

Handlers print their results and also return them. Failures raise
`gator.app.CommandError`; an unknown command name raises it from
`Commands.run`. Handlers that take a third `user` argument need the
`logged_in` wrapper, which looks up the user named in the config.

`handler_add_feed` also follows the new feed for the user.
`handler_browse` shows 2 posts unless a limit is given. Posts are
ordered newest first by publication date, undated posts last.

Fetching a feed:

```python
from gator.rssfeed import fetch_feed

feed = fetch_feed("https://example.com/index.xml", timeout=10)
for item in feed.channel.items:
    print(item.title, item.link)
```

`fetch_feed` raises `FeedError` for an empty URL, a network error, a
response whose `Content-Type` does not mention `xml`, a status above
299, or a document that is not well-formed XML. HTML entities in item
fields are unescaped.

## What is not included

- There is no installed command-line program; commands are run by
  registering handlers in a `Commands` registry as shown above.
- There is no aggregation loop. Nothing here fetches feeds on a timer or
  turns feed items into stored posts; `Database.get_next_feed_to_fetch`,
  `Database.mark_feed_fetched`, `fetch_feed` and `Database.create_post`
  are the pieces a caller combines to do that.
- Storage is SQLite only.

## Running the tests

```
pip install .[test]
pytest
```
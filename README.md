# linktracker

Building blocks for a chat bot that follows links and tells chats when they change.

## Modules

- `linktracker.store`: the `Link` dataclass and `InMemoryChatLinkRepository`, a thread-safe
  in-memory store of chats and their links. It can register and delete chats, save and delete
  links, list the links of one chat or of all chats, find the chats that track a URL, and
  stamp a link's `last_check` using its `time_getter`. On failure it raises
  `ChatAlreadyExistError`, `ChatIsNotExistError` or `LinkIsNotExistError`.
- `linktracker.sqlstore`: `SqlChatLinkRepository` offers the same operations on an `sqlite3`
  connection, plus `get_links_by_tag(uid, tag)` and `get_links_pagination(offset, limit)`.
  `create_schema(connection)` creates the `tg_users`, `links` and `user_link` tables and turns
  on foreign keys. Each call commits by itself unless a transaction from `linktracker.txs` is
  active.
- `linktracker.txs`: `TxBeginner(db).with_transaction(tx_func)` calls `tx_func()` inside a
  transaction. It commits on success, rolls back and re-raises on error, and returns what
  `tx_func` returned. `db` is either an object with a `begin()` method or a DB-API
  connection. While the function runs, `get_querier(default_querier)` returns the active
  transaction; outside one it returns `default_querier`.
- `linktracker.github`: `GitHubClient` reads a repository (`get_repo`) and one page of its
  issues and pull requests at a time (`get_issues_by_page`). `get_activity(repository,
  last_check_time)` gathers `Activity` entries newer than the given time. It walks the issue
  pages until it reaches an empty one. Bodies are cut to 200 characters by `trim_body`.
  `parse_owner_and_repo(url)` raises `ValueError` for a malformed URL. API failures raise
  `GitHubError`.
- `linktracker.stackoverflow`: `StackOverflowClient` reads a question (`get_question`), its
  answers and its comments. `get_activity(question, last_check_time)` returns the question
  edit, answers and comments newer than the given time. Errors derive from
  `StackOverflowError`: `InvalidQuestionURLError`, `FailedToGetQuestionError`,
  `QuestionNotFoundError` and `FailedToGetItemsError`.
- `linktracker.botapi`: `BotHandler(bot).post_updates(body)` takes a JSON link update as text,
  bytes or a dict, checks it, and sends the message built by `format_update_message` to every
  chat in `tgChatIds` through `bot.send_message(chat_id, message)`. It returns a `Response`:
  200 on success, or 400 with an error body when the body is invalid, the chat list is empty
  or the URL is empty.
- `linktracker.auth`: `auth_link_middleware(checker, next_handler)` wraps a handler that takes
  a `Request`. For paths starting with `/links` it requires a `Tg-Chat-Id` header holding a
  64-bit integer. It answers 400 when the header is invalid or the checker raises, and 401
  when `checker.check_user_existence(chat_id)` is false. Other paths go straight to
  `next_handler`.

## Install

```
pip install .
pip install ".[test]"   # with test tools
```

## Examples

```python
from linktracker.store import InMemoryChatLinkRepository, Link

repo = InMemoryChatLinkRepository()
repo.register_chat(1)
repo.save_link(1, Link(url="https://github.com/owner/project", user_add_id=1))
print([link.url for link in repo.get_list_links(1)])
```

```python
import sqlite3
from linktracker.sqlstore import SqlChatLinkRepository, create_schema
from linktracker.store import Link
from linktracker.txs import TxBeginner

conn = sqlite3.connect(":memory:")
create_schema(conn)
repo = SqlChatLinkRepository(conn)

def register_and_save():
    repo.register_chat(7)
    repo.save_link(7, Link(url="https://github.com/owner/project", tags=["go"]))

TxBeginner(conn).with_transaction(register_and_save)
print([link.url for link in repo.get_links_by_tag(7, "go")])
```

```python
from datetime import datetime, timedelta, timezone
from linktracker.github import GitHubClient

client = GitHubClient()
repo = client.get_repo("https://github.com/owner/project")
since = datetime.now(timezone.utc) - timedelta(days=1)
for activity in client.get_activity(repo, since):
    print(activity.type, activity.title)
```

## What it does not do

The package has no command and runs no server, scheduler or Telegram connection. `BotHandler`
and `auth_link_middleware` work on plain values (`Request`, `Response`), and delivering
messages is left to whatever object is passed as the bot. Nothing polls links on a schedule.
The application has to call the clients and repositories itself.

## Tests

```
pytest
```
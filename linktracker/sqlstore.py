"""Chat/link repository backed by a relational database (SQLite)."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator

from linktracker.store import (
    ChatAlreadyExistError,
    ChatIsNotExistError,
    Link,
    LinkIsNotExistError,
)
from linktracker.txs import get_querier

_SCHEMA = """
CREATE TABLE IF NOT EXISTS tg_users (
    tg_id INTEGER PRIMARY KEY
);
CREATE TABLE IF NOT EXISTS links (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL UNIQUE,
    type TEXT NOT NULL DEFAULT ''
);
CREATE TABLE IF NOT EXISTS user_link (
    tg_user_id INTEGER NOT NULL REFERENCES tg_users (tg_id) ON DELETE CASCADE,
    link_id INTEGER NOT NULL REFERENCES links (id) ON DELETE CASCADE,
    last_update TEXT,
    filters TEXT NOT NULL DEFAULT '[]',
    tags TEXT NOT NULL DEFAULT '[]',
    PRIMARY KEY (tg_user_id, link_id)
);
"""

_LINK_COLUMNS = """
SELECT l.url, l.type, ul.last_update, ul.filters, ul.tags, ul.tg_user_id
FROM user_link ul
JOIN links l ON ul.link_id = l.id
"""


def create_schema(connection: sqlite3.Connection) -> None:
    """Create the tables the repository needs and enable foreign keys."""
    connection.execute("PRAGMA foreign_keys = ON")
    connection.executescript(_SCHEMA)
    connection.commit()


def _encode_time(value: datetime | None) -> str | None:
    return None if value is None else value.isoformat()


def _decode_time(value: str | None) -> datetime | None:
    return None if value is None else datetime.fromisoformat(value)


def _row_to_link(row: tuple[Any, ...]) -> Link:
    url, link_type, last_update, filters, tags, user_id = row
    return Link(
        url=url,
        type=link_type,
        last_check=_decode_time(last_update),
        filters=json.loads(filters),
        tags=json.loads(tags),
        user_add_id=user_id,
    )


class SqlChatLinkRepository:
    """Stores chats and their tracked links in SQL tables.

    Operations join the transaction opened by ``TxBeginner.with_transaction``
    when one is active; otherwise each call commits on its own.
    """

    def __init__(
        self,
        db: sqlite3.Connection,
        time_getter: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.db = db
        self.time_getter = time_getter

    @contextmanager
    def _querier(self) -> Iterator[Any]:
        tx = get_querier(None)
        if tx is not None:
            yield tx
            return
        try:
            yield self.db
        except BaseException:
            self.db.rollback()
            raise
        else:
            self.db.commit()

    def register_chat(self, uid: int) -> None:
        with self._querier() as q:
            cursor = q.execute("INSERT OR IGNORE INTO tg_users (tg_id) VALUES (?)", (uid,))
            if cursor.rowcount == 0:
                raise ChatAlreadyExistError()

    def delete_chat(self, uid: int) -> None:
        with self._querier() as q:
            cursor = q.execute("DELETE FROM tg_users WHERE tg_id = ?", (uid,))
            if cursor.rowcount == 0:
                raise ChatIsNotExistError("Chat not found")

    def save_link(self, uid: int, link: Link) -> None:
        with self._querier() as q:
            q.execute(
                "INSERT INTO links (url, type) VALUES (?, ?) ON CONFLICT (url) DO NOTHING",
                (link.url, link.type),
            )
            (link_id,) = q.execute("SELECT id FROM links WHERE url = ?", (link.url,)).fetchone()
            q.execute(
                """
                INSERT INTO user_link (tg_user_id, link_id, last_update, filters, tags)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (tg_user_id, link_id) DO UPDATE
                SET last_update = excluded.last_update,
                    filters = excluded.filters,
                    tags = excluded.tags
                """,
                (
                    uid,
                    link_id,
                    _encode_time(link.last_check),
                    json.dumps(list(link.filters)),
                    json.dumps(list(link.tags)),
                ),
            )

    def delete_link(self, uid: int, link: Link) -> None:
        with self._querier() as q:
            q.execute(
                """
                DELETE FROM user_link
                WHERE tg_user_id = ? AND link_id = (SELECT id FROM links WHERE url = ?)
                """,
                (uid, link.url),
            )

    def get_list_links(self, uid: int) -> list[Link]:
        with self._querier() as q:
            rows = q.execute(
                _LINK_COLUMNS + " WHERE ul.tg_user_id = ? ORDER BY ul.rowid", (uid,)
            ).fetchall()
        return [_row_to_link(row) for row in rows]

    def check_user_existence(self, uid: int) -> bool:
        with self._querier() as q:
            (exists,) = q.execute(
                "SELECT EXISTS (SELECT 1 FROM tg_users WHERE tg_id = ?)", (uid,)
            ).fetchone()
        return bool(exists)

    def get_chat_ids_by_link(self, link: Link) -> list[int]:
        with self._querier() as q:
            rows = q.execute(
                """
                SELECT ul.tg_user_id
                FROM user_link ul
                INNER JOIN links l ON ul.link_id = l.id
                WHERE l.url = ?
                ORDER BY ul.rowid
                """,
                (link.url,),
            ).fetchall()
        return [chat_id for (chat_id,) in rows]

    def update_last_check(self, link: Link) -> None:
        new_time = self.time_getter()
        with self._querier() as q:
            cursor = q.execute(
                """
                UPDATE user_link
                SET last_update = ?
                WHERE tg_user_id = ? AND link_id = (SELECT id FROM links WHERE url = ?)
                """,
                (_encode_time(new_time), link.user_add_id, link.url),
            )
            if cursor.rowcount == 0:
                raise LinkIsNotExistError()

    def get_links_by_tag(self, uid: int, tag: str) -> list[Link]:
        return [link for link in self.get_list_links(uid) if tag in link.tags]

    def get_links_pagination(self, offset: int, limit: int) -> list[Link]:
        with self._querier() as q:
            rows = q.execute(
                _LINK_COLUMNS + " ORDER BY ul.rowid LIMIT ? OFFSET ?", (limit, offset)
            ).fetchall()
        return [_row_to_link(row) for row in rows]
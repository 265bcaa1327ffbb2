"""Tracked links and an in-memory chat/link repository."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable


@dataclass
class Link:
    """A link tracked by a chat."""

    url: str
    type: str = ""
    last_check: datetime | None = None
    filters: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    user_add_id: int = 0


class ChatAlreadyExistError(Exception):
    """Raised when a chat is registered twice."""

    def __init__(self, message: str = "Chat is already exist") -> None:
        super().__init__(message)
        self.message = message


class ChatIsNotExistError(Exception):
    """Raised when an operation refers to an unknown chat."""

    def __init__(self, message: str = "Chat is not exist") -> None:
        super().__init__(message)
        self.message = message


class LinkIsNotExistError(Exception):
    """Raised when an operation refers to a link that is not tracked."""

    def __init__(self, message: str = "Link is not exist") -> None:
        super().__init__(message)
        self.message = message


class InMemoryChatLinkRepository:
    """Thread-safe repository keeping chats and their links in memory."""

    def __init__(self, time_getter: Callable[[], datetime] = datetime.now) -> None:
        self.time_getter = time_getter
        self.links: dict[int, dict[str, Link]] = {}
        self._lock = threading.RLock()

    def register_chat(self, uid: int) -> None:
        with self._lock:
            if uid in self.links:
                raise ChatAlreadyExistError()
            self.links[uid] = {}

    def save_link(self, uid: int, link: Link) -> None:
        with self._lock:
            chat_links = self.links.get(uid)
            if chat_links is None:
                raise ChatIsNotExistError()
            chat_links[link.url] = link

    def delete_chat(self, uid: int) -> None:
        with self._lock:
            if uid not in self.links:
                raise ChatIsNotExistError()
            del self.links[uid]

    def delete_link(self, uid: int, link: Link) -> None:
        with self._lock:
            chat_links = self.links.get(uid, {})
            if link.url not in chat_links:
                raise LinkIsNotExistError()
            del chat_links[link.url]

    def get_list_links(self, uid: int) -> list[Link]:
        with self._lock:
            return list(self.links.get(uid, {}).values())

    def check_user_existence(self, uid: int) -> bool:
        with self._lock:
            return uid in self.links

    def get_all_links(self) -> list[Link]:
        with self._lock:
            return [link for chat_links in self.links.values() for link in chat_links.values()]

    def update_last_check(self, link: Link) -> None:
        with self._lock:
            stored = self.links.get(link.user_add_id, {}).get(link.url)
            if stored is None:
                raise LinkIsNotExistError()
            stored.last_check = self.time_getter()

    def get_chat_ids_by_link(self, link: Link) -> list[int]:
        with self._lock:
            return [
                chat_id
                for chat_id, chat_links in self.links.items()
                if link.url in chat_links
            ]
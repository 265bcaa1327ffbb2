"""HTTP handler of the bot that turns link updates into chat messages."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from http import HTTPStatus
from typing import Any, Protocol

ERR_INVALID_REQUEST_BODY = "invalid_request_body"
ERR_TG_CHATS_ID_IS_EMPTY = "tg_chats_id_is_empty"
ERR_LINK_IS_EMPTY = "link_is_empty"

ERR_DESCRIPTION_INVALID_BODY = "Invalid request body"
ERR_TG_CHATS_ID_IS_EMPTY_DESCRIPTION = "Tg chats id is empty"
ERR_LINK_IS_EMPTY_DESCRIPTION = "Link is empty"

CREATED_AT_FORMAT = "%Y-%m-%d %H:%M:%S"

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Response:
    """Status code and JSON-serialisable body of an HTTP reply."""

    status: int
    body: Any = None


def success_response(data: Any) -> Response:
    """Return a 200 reply carrying ``data``."""
    return Response(HTTPStatus.OK, data)


def bad_request_response(error: str, description: str) -> Response:
    """Return a 400 reply in the API error format."""
    return Response(
        HTTPStatus.BAD_REQUEST,
        {"description": description, "code": "400", "exceptionMessage": error},
    )


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def _parse_time(value: str) -> datetime:
    text = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    return datetime.fromisoformat(text)


@dataclass
class LinkUpdate:
    """A notification that a tracked link has changed."""

    tg_chat_ids: list[int] | None = None
    url: str | None = None
    description: str | None = None
    user_name: str | None = None
    type: str | None = None
    created_at: datetime | None = None
    id: int | None = None
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Any) -> LinkUpdate:
        """Build an update from decoded JSON; raise ValueError on bad shapes."""
        if not isinstance(data, dict):
            raise ValueError("link update must be a JSON object")

        chat_ids = data.get("tgChatIds")
        if chat_ids is not None:
            if not isinstance(chat_ids, list) or not all(
                isinstance(item, int) and not isinstance(item, bool) for item in chat_ids
            ):
                raise ValueError("tgChatIds must be a list of integers")

        update_id = data.get("id")
        if update_id is not None and (
            not isinstance(update_id, int) or isinstance(update_id, bool)
        ):
            raise ValueError("id must be an integer")

        created_raw = _optional_str(data, "createdAt")
        created_at = _parse_time(created_raw) if created_raw is not None else None

        known = {"tgChatIds", "url", "description", "userName", "type", "createdAt", "id"}
        return cls(
            tg_chat_ids=list(chat_ids) if chat_ids is not None else None,
            url=_optional_str(data, "url"),
            description=_optional_str(data, "description"),
            user_name=_optional_str(data, "userName"),
            type=_optional_str(data, "type"),
            created_at=created_at,
            id=update_id,
            extra={key: value for key, value in data.items() if key not in known},
        )


def format_update_message(update: LinkUpdate) -> str:
    """Render the chat message announcing ``update``."""
    message = f"Link updated: {update.url}"
    if update.description:
        message += f"\nDescription: {update.description}"
    if update.user_name:
        message += f"\nUpdated by: {update.user_name}"
    if update.type is not None:
        message += f"\nType: {update.type}"
    if update.created_at is not None:
        message += f"\nCreated at: {update.created_at.strftime(CREATED_AT_FORMAT)}"
    return message


class MessageSender(Protocol):
    """Anything that can deliver a text message to a chat."""

    def send_message(self, chat_id: int, message: str) -> None: ...


def _decode_body(body: Any) -> Any:
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8")
    if isinstance(body, str):
        if not body.strip():
            return {}
        return json.loads(body)
    return body


class BotHandler:
    """Handles the bot's HTTP endpoints."""

    def __init__(self, bot: MessageSender, logger: logging.Logger | None = None) -> None:
        self.bot = bot
        self.logger = logger if logger is not None else _log

    def post_updates(self, body: Any) -> Response:
        """Handle ``POST /updates``: notify every listed chat about the update."""
        try:
            update = LinkUpdate.from_dict(_decode_body(body))
        except (ValueError, UnicodeDecodeError) as exc:
            self.logger.error("Failed to bind request body: %s", exc)
            return bad_request_response(ERR_INVALID_REQUEST_BODY, ERR_DESCRIPTION_INVALID_BODY)

        if not update.tg_chat_ids:
            self.logger.warning("TgChatIds is empty")
            return bad_request_response(
                ERR_TG_CHATS_ID_IS_EMPTY, ERR_TG_CHATS_ID_IS_EMPTY_DESCRIPTION
            )

        if not update.url:
            self.logger.warning("Url is empty")
            return bad_request_response(ERR_LINK_IS_EMPTY, ERR_LINK_IS_EMPTY_DESCRIPTION)

        message = format_update_message(update)
        for chat_id in update.tg_chat_ids:
            self.logger.info("Sending message to %s: %s", chat_id, message)
            self.bot.send_message(chat_id, message)

        self.logger.info("Successfully processed PostUpdates request")
        return success_response(None)
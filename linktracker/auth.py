"""Middleware that lets only registered chats reach the links endpoints."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Callable, Mapping, Protocol

from linktracker.botapi import Response, bad_request_response

LINKS_PATH_PREFIX = "/links"
TG_CHAT_ID_HEADER = "Tg-Chat-Id"

ERR_INVALID_REQUEST_BODY = "invalid_request_body"
ERR_INTERNAL_ERROR = "internal_error"
ERR_CHAT_NOT_EXIST = "chat_not_exist"

ERR_DESCRIPTION_INVALID_BODY = "Invalid request body"
ERR_DESCRIPTION_INTERNAL_ERROR = "Internal error"
ERR_DESCRIPTION_CHAT_NOT_EXIST = "Chat does not exist"

_INT64_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_log = logging.getLogger(__name__)


@dataclass
class Request:
    """The parts of an incoming HTTP request the middleware looks at."""

    path: str
    headers: Mapping[str, str] = field(default_factory=dict)
    method: str = "GET"

    def header(self, name: str) -> str:
        """Return the header value, matched case-insensitively, or ``""``."""
        wanted = name.lower()
        return next(
            (value for key, value in self.headers.items() if key.lower() == wanted), ""
        )


class UserChecker(Protocol):
    """Tells whether a chat is registered."""

    def check_user_existence(self, chat_id: int) -> bool: ...


Handler = Callable[[Request], Response]


def _unauthorized_response(error: str, description: str) -> Response:
    return Response(
        HTTPStatus.UNAUTHORIZED,
        {"description": description, "code": "401", "exceptionMessage": error},
    )


def _parse_chat_id(text: str) -> int | None:
    if not _INT64_RE.fullmatch(text):
        return None
    value = int(text)
    return value if _INT64_MIN <= value <= _INT64_MAX else None


def _check_auth(request: Request, checker: UserChecker) -> Response | None:
    raw_id = request.header(TG_CHAT_ID_HEADER)
    _log.info("Received Tg-Chat-Id header: %r", raw_id)

    chat_id = _parse_chat_id(raw_id)
    if chat_id is None:
        _log.error("Failed to parse Tg-Chat-Id header: %r", raw_id)
        return bad_request_response(ERR_INVALID_REQUEST_BODY, ERR_DESCRIPTION_INVALID_BODY)

    try:
        exists = checker.check_user_existence(chat_id)
    except Exception as exc:
        _log.error("Failed to check user existence for %s: %s", chat_id, exc)
        return bad_request_response(ERR_INTERNAL_ERROR, ERR_DESCRIPTION_INTERNAL_ERROR)

    if not exists:
        _log.warning("User %s does not exist", chat_id)
        return _unauthorized_response(ERR_CHAT_NOT_EXIST, ERR_DESCRIPTION_CHAT_NOT_EXIST)

    _log.info("User %s exists", chat_id)
    return None


def auth_link_middleware(checker: UserChecker, next_handler: Handler) -> Handler:
    """Wrap ``next_handler`` so that ``/links`` requests need a registered chat."""

    def handler(request: Request) -> Response:
        if request.path.startswith(LINKS_PATH_PREFIX):
            _log.info("Request path starts with /links: %s", request.path)
            rejection = _check_auth(request, checker)
            if rejection is not None:
                return rejection
        return next_handler(request)

    return handler
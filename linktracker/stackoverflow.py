"""Stack Exchange API client that reports Stack Overflow question activity."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import requests

BASE_STACKOVERFLOW_API_URL = "https://api.stackexchange.com/2.2"
TRIM_BODY_LIMIT = 200
DEFAULT_TIMEOUT = 10.0

_QUERY_PARAMS = {"site": "stackoverflow", "filter": "withbody"}
_QUESTION_ID_RE = re.compile(r"questions/(\d+)")


class StackOverflowError(Exception):
    """Base class for errors raised by the Stack Overflow client."""


class FailedToGetQuestionError(StackOverflowError):
    """Raised when the question could not be fetched."""

    def __init__(self, message: str = "failed to get question") -> None:
        super().__init__(message)


class QuestionNotFoundError(StackOverflowError):
    """Raised when the API returns no question for the given id."""

    def __init__(self, message: str = "question not found") -> None:
        super().__init__(message)


class FailedToGetItemsError(StackOverflowError):
    """Raised when answers or comments could not be fetched."""

    def __init__(self, message: str = "failed to get items") -> None:
        super().__init__(message)


class InvalidQuestionURLError(StackOverflowError, ValueError):
    """Raised when a URL does not point to a Stack Overflow question."""

    def __init__(self, message: str = "invalid question url") -> None:
        super().__init__(message)


class ActivityType(str, Enum):
    """Kind of change detected on a tracked question."""

    COMMENT = "comment"
    ANSWER = "answer"
    QUESTION = "question"


@dataclass
class Activity:
    """A single change on a question since the last check."""

    type: ActivityType
    created_at: int
    body: str
    tags: list[str] = field(default_factory=list)
    user_name: str = ""


@dataclass
class Question:
    """A Stack Overflow question; dates are Unix timestamps."""

    id: int = 0
    name: str = ""
    last_activity_date: int = 0
    last_edit_date: int = 0
    tags: list[str] = field(default_factory=list)
    body: str = ""


def trim_body(body: str) -> str:
    """Shorten ``body`` to the trim limit, marking the cut with an ellipsis."""
    if len(body) > TRIM_BODY_LIMIT:
        return body[:TRIM_BODY_LIMIT] + "..."
    return body


def question_id_from_url(url: str) -> str:
    """Return the numeric question id contained in ``url``."""
    match = _QUESTION_ID_RE.search(url)
    if match is None:
        raise InvalidQuestionURLError()
    return match.group(1)


def _display_name(owner: Any) -> str:
    if isinstance(owner, dict):
        return owner.get("display_name") or ""
    return ""


def _unix(moment: datetime) -> int:
    return math.floor(moment.timestamp())


def _items(data: Any) -> list[dict[str, Any]]:
    if not isinstance(data, dict):
        return []
    items = data.get("items") or []
    return [item for item in items if isinstance(item, dict)]


def _question_from_json(data: dict[str, Any]) -> Question:
    return Question(
        id=int(data.get("question_id") or 0),
        name=_display_name(data.get("owner")),
        last_activity_date=int(data.get("last_activity_date") or 0),
        last_edit_date=int(data.get("last_edit_date") or 0),
        tags=list(data.get("tags") or []),
        body=trim_body(data.get("body") or ""),
    )


class StackOverflowClient:
    """Fetches questions, answers and comments from the Stack Exchange API."""

    def __init__(
        self,
        base_url: str = BASE_STACKOVERFLOW_API_URL,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def _get(self, url: str) -> requests.Response:
        return self.session.get(url, params=_QUERY_PARAMS, timeout=self.timeout)

    def _get_items(self, url: str) -> list[dict[str, Any]]:
        try:
            response = self._get(url)
        except requests.RequestException as exc:
            raise FailedToGetItemsError() from exc
        if response.status_code != 200:
            raise FailedToGetItemsError()
        try:
            return _items(response.json())
        except ValueError as exc:
            raise FailedToGetItemsError() from exc

    def get_question(self, question_url: str) -> Question:
        """Return the question that ``question_url`` points to."""
        question_id = question_id_from_url(question_url)
        try:
            response = self._get(f"{self.base_url}/questions/{question_id}")
        except requests.RequestException as exc:
            raise FailedToGetQuestionError() from exc
        if response.status_code != 200:
            raise FailedToGetQuestionError()
        try:
            items = _items(response.json())
        except ValueError as exc:
            raise FailedToGetQuestionError() from exc
        if not items:
            raise QuestionNotFoundError()
        return _question_from_json(items[0])

    def get_activity(self, question: Question, last_check_time: datetime) -> list[Activity]:
        """Collect question edits, answers and comments newer than ``last_check_time``."""
        activities: list[Activity] = []
        if question.last_edit_date > _unix(last_check_time):
            activities.append(
                Activity(
                    type=ActivityType.QUESTION,
                    created_at=question.last_edit_date,
                    body=trim_body(question.body),
                    tags=question.tags,
                    user_name=question.name,
                )
            )
        activities.extend(self.get_question_answer_activity(question, last_check_time))
        activities.extend(self.get_question_comment_activity(question, last_check_time))
        return activities

    def get_question_comment_activity(
        self, question: Question, last_check_time: datetime
    ) -> list[Activity]:
        """Return comments on the question created after ``last_check_time``."""
        since = _unix(last_check_time)
        comments = self._get_items(f"{self.base_url}/questions/{question.id}/comments")
        return [
            Activity(
                type=ActivityType.COMMENT,
                created_at=int(comment.get("creation_date") or 0),
                body=trim_body(comment.get("body") or ""),
                tags=question.tags,
                user_name=_display_name(comment.get("owner")),
            )
            for comment in comments
            if int(comment.get("creation_date") or 0) > since
        ]

    def get_question_answer_activity(
        self, question: Question, last_check_time: datetime
    ) -> list[Activity]:
        """Return answers to the question active after ``last_check_time``."""
        since = _unix(last_check_time)
        answers = self._get_items(f"{self.base_url}/questions/{question.id}/answers")
        return [
            Activity(
                type=ActivityType.ANSWER,
                created_at=int(answer.get("last_activity_date") or 0),
                body=trim_body(answer.get("body") or ""),
                tags=question.tags,
                user_name=_display_name(answer.get("owner")),
            )
            for answer in answers
            if int(answer.get("last_activity_date") or 0) > since
        ]
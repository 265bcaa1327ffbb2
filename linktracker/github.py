"""GitHub REST API client that reports repository and issue activity."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import requests

BASE_GITHUB_API_URL = "https://api.github.com"
TRIM_BODY_LIMIT = 200
DEFAULT_TIMEOUT = 10.0

_REPO_URL_RE = re.compile(r"(?i)(?:github\.com[/:])?([^/]+)/([^/]+?)(?:\.git)?$")


class GitHubError(Exception):
    """Raised when the GitHub API cannot be queried successfully."""


class ActivityType(str, Enum):
    """Kind of change detected on a tracked repository."""

    PULL_REQUEST = "PullRequest"
    ISSUE = "Issue"
    REPOSITORY = "Repository"


class IssueType(str, Enum):
    """GitHub reports pull requests through the issues endpoint."""

    PULL_REQUEST = "PullRequest"
    ISSUE = "Issue"


@dataclass
class Activity:
    """A single change on a repository since the last check."""

    type: ActivityType
    title: str
    created_at: datetime | None
    body: str
    user_name: str


@dataclass
class Issue:
    """An issue or pull request of a repository."""

    type: IssueType
    id: int
    title: str
    body: str
    updated_at: datetime | None
    created_at: datetime | None


@dataclass
class Repository:
    """Repository metadata as returned by the API."""

    id: int = 0
    url: str = ""
    updated_at: datetime | None = None
    created_at: datetime | None = None
    description: str = ""
    owner: str = ""


def trim_body(body: str) -> str:
    """Shorten ``body`` to the trim limit, marking the cut with an ellipsis."""
    if len(body) > TRIM_BODY_LIMIT:
        return body[:TRIM_BODY_LIMIT] + "..."
    return body


def parse_owner_and_repo(url: str) -> tuple[str, str]:
    """Extract ``(owner, repo)`` from a GitHub repository URL or path."""
    match = _REPO_URL_RE.search(url)
    if match is None:
        raise ValueError("invalid GitHub repository URL format")
    owner = match.group(1).strip()
    repo = match.group(2)
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    repo = repo.strip()
    if not owner or not repo:
        raise ValueError("empty owner or repository name")
    return owner, repo


def _parse_time(value: Any) -> datetime | None:
    if not value:
        return None
    text = str(value)
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.astimezone()


def _is_after(value: datetime | None, reference: datetime) -> bool:
    if value is None:
        return False
    return _aware(value) > _aware(reference)


def _login(data: Any) -> str:
    if isinstance(data, dict):
        return data.get("login") or ""
    return ""


def _repository_from_json(data: dict[str, Any]) -> Repository:
    return Repository(
        id=int(data.get("id") or 0),
        url=data.get("url") or "",
        updated_at=_parse_time(data.get("updated_at")),
        created_at=_parse_time(data.get("created_at")),
        description=data.get("description") or "",
        owner=_login(data.get("owner")),
    )


def _issue_from_json(data: dict[str, Any]) -> Issue:
    issue_type = (
        IssueType.PULL_REQUEST if data.get("pull_request") is not None else IssueType.ISSUE
    )
    return Issue(
        type=issue_type,
        id=int(data.get("id") or 0),
        title=data.get("title") or "",
        body=trim_body(data.get("body") or ""),
        updated_at=_parse_time(data.get("updated_at")),
        created_at=_parse_time(data.get("created_at")),
    )


class GitHubClient:
    """Fetches repositories and their issues from the GitHub API."""

    def __init__(
        self,
        base_url: str = BASE_GITHUB_API_URL,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def _get_json(self, url: str, failure: str, params: dict[str, Any] | None = None) -> Any:
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise GitHubError(failure) from exc
        if response.status_code != 200:
            raise GitHubError(failure)
        try:
            return response.json()
        except ValueError as exc:
            raise GitHubError(failure) from exc

    def get_repo(self, repo_url: str) -> Repository:
        """Return the repository that ``repo_url`` points to."""
        owner, repo = parse_owner_and_repo(repo_url)
        data = self._get_json(
            f"{self.base_url}/repos/{owner}/{repo}", "failed to get repository"
        )
        if not isinstance(data, dict):
            raise GitHubError("failed to get repository")
        return _repository_from_json(data)

    def get_issues_by_page(self, repo_url: str, page: int) -> list[Issue]:
        """Return one page of issues and pull requests of the repository."""
        owner, repo = parse_owner_and_repo(repo_url)
        data = self._get_json(
            f"{self.base_url}/repos/{owner}/{repo}/issues",
            "failed to get issues",
            params={"page": page},
        )
        if data is None:
            return []
        if not isinstance(data, list):
            raise GitHubError("failed to get issues")
        return [_issue_from_json(item) for item in data]

    def get_activity(
        self, repository: Repository, last_check_time: datetime
    ) -> list[Activity]:
        """Collect repository and issue changes made after ``last_check_time``."""
        activities: list[Activity] = []
        if _is_after(repository.updated_at, last_check_time):
            activities.append(
                Activity(
                    type=ActivityType.REPOSITORY,
                    title=repository.description,
                    created_at=repository.updated_at,
                    body="",
                    user_name=repository.owner,
                )
            )

        page = 0
        while True:
            page += 1
            issues = self.get_issues_by_page(repository.url, page)
            if not issues:
                break
            activities.extend(
                Activity(
                    type=ActivityType(issue.type.value),
                    title=issue.title,
                    created_at=issue.updated_at,
                    body=issue.body,
                    user_name=repository.owner,
                )
                for issue in issues
                if _is_after(issue.updated_at, last_check_time)
            )
        return activities
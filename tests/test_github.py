import json
from datetime import datetime, timedelta, timezone

import pytest
import responses
from responses import matchers

from linktracker.github import (
    Activity,
    ActivityType,
    GitHubClient,
    GitHubError,
    IssueType,
    Repository,
    parse_owner_and_repo,
    trim_body,
)

BASE = "http://github.test"


def _client() -> GitHubClient:
    return GitHubClient(base_url=BASE)


def _rfc3339(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def test_get_repo_success(mocked):
    mocked.add(
        responses.GET,
        f"{BASE}/repos/test/test",
        json={"id": 123, "updated_at": "2011-01-26T19:14:43Z"},
        status=200,
    )
    repo = _client().get_repo("https://github.com/test/test")
    assert repo.id == 123
    assert repo.updated_at == datetime(2011, 1, 26, 19, 14, 43, tzinfo=timezone.utc)
    assert mocked.calls[0].request.method == "GET"


def test_get_repo_fields(mocked):
    mocked.add(
        responses.GET,
        f"{BASE}/repos/octo/widgets",
        json={
            "id": 7,
            "url": "https://api.github.com/repos/octo/widgets",
            "description": "Widgets",
            "owner": {"login": "octo"},
            "created_at": "2010-01-01T00:00:00Z",
        },
    )
    repo = _client().get_repo("https://github.com/octo/widgets.git")
    assert repo.owner == "octo"
    assert repo.description == "Widgets"
    assert repo.url == "https://api.github.com/repos/octo/widgets"
    assert repo.created_at == datetime(2010, 1, 1, tzinfo=timezone.utc)
    assert repo.updated_at is None


def test_get_repo_invalid_link():
    with pytest.raises(ValueError):
        _client().get_repo("https://bad_link")


def test_get_repo_not_found(mocked):
    mocked.add(responses.GET, f"{BASE}/repos/test/test", status=404)
    with pytest.raises(GitHubError, match="failed to get repository"):
        _client().get_repo("https://github.com/test/test")


def test_get_activity_success(mocked):
    last_check_time = datetime.now(timezone.utc) - timedelta(hours=244)
    expected_time = datetime.now(timezone.utc)

    mocked.add(
        responses.GET,
        f"{BASE}/repos/test/test",
        json={
            "updated_at": _rfc3339(expected_time),
            "description": "Test repo",
            "owner": {"login": "testuser"},
        },
    )

    def issues_callback(request):
        page = request.url.split("page=")[-1] if "page=" in request.url else ""
        if page in ("", "1"):
            body = [
                {
                    "title": "Test issue",
                    "updated_at": _rfc3339(expected_time),
                    "body": "Test issue body",
                    "pull_request": None,
                }
            ]
        else:
            body = []
        return 200, {"Content-Type": "application/json"}, json.dumps(body)

    mocked.add_callback(
        responses.GET, f"{BASE}/repos/test/test/issues", callback=issues_callback
    )

    repo = Repository(
        url="https://github.com/test/test",
        description="Test repo",
        updated_at=expected_time,
        owner="testuser",
    )
    activities = _client().get_activity(repo, last_check_time)
    assert len(activities) == 2
    assert activities[0] == Activity(
        type=ActivityType.REPOSITORY,
        title="Test repo",
        created_at=expected_time,
        body="",
        user_name="testuser",
    )
    assert activities[1].type == ActivityType.ISSUE
    assert activities[1].title == "Test issue"
    assert activities[1].body == "Test issue body"
    assert activities[1].user_name == "testuser"


def test_get_activity_nothing_new(mocked):
    old = datetime(2020, 1, 1, tzinfo=timezone.utc)
    mocked.add(
        responses.GET,
        f"{BASE}/repos/test/test/issues",
        json=[{"title": "Old", "updated_at": _rfc3339(old)}],
        match=[matchers.query_param_matcher({"page": "1"})],
    )
    mocked.add(
        responses.GET,
        f"{BASE}/repos/test/test/issues",
        json=[],
        match=[matchers.query_param_matcher({"page": "2"})],
    )
    repo = Repository(url="https://github.com/test/test", updated_at=old, owner="o")
    activities = _client().get_activity(repo, datetime(2021, 1, 1, tzinfo=timezone.utc))
    assert activities == []


def test_get_activity_propagates_errors(mocked):
    mocked.add(responses.GET, f"{BASE}/repos/test/test/issues", status=500)
    repo = Repository(url="https://github.com/test/test")
    with pytest.raises(GitHubError, match="failed to get issues"):
        _client().get_activity(repo, datetime(2021, 1, 1, tzinfo=timezone.utc))


def test_get_issues_by_page_success(mocked):
    expected_time = datetime.now(timezone.utc)
    mocked.add(
        responses.GET,
        f"{BASE}/repos/test/test/issues",
        json=[
            {
                "title": "Test issue",
                "updated_at": _rfc3339(expected_time),
                "body": "Test issue body",
                "pull_request": None,
            },
            {
                "title": "Test PR",
                "updated_at": _rfc3339(expected_time),
                "body": "Test PR body",
                "pull_request": {},
            },
        ],
        match=[matchers.query_param_matcher({"page": "1"})],
    )
    issues = _client().get_issues_by_page("https://github.com/test/test", 1)
    assert len(issues) == 2
    assert issues[0].title == "Test issue"
    assert issues[0].type == IssueType.ISSUE
    assert issues[1].title == "Test PR"
    assert issues[1].type == IssueType.PULL_REQUEST


def test_get_issues_by_page_trims_body(mocked):
    mocked.add(
        responses.GET,
        f"{BASE}/repos/test/test/issues",
        json=[{"title": "Long", "body": "x" * 300}],
    )
    issues = _client().get_issues_by_page("test/test", 3)
    assert issues[0].body == "x" * 200 + "..."


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://github.com/test/test", ("test", "test")),
        ("owner/repo.git", ("owner", "repo")),
        ("https://api.github.com/repos/octo/widgets", ("octo", "widgets")),
        ("https://GitHub.com/Octo/Widgets", ("Octo", "Widgets")),
    ],
)
def test_parse_owner_and_repo(url, expected):
    assert parse_owner_and_repo(url) == expected


@pytest.mark.parametrize("url", ["https://bad_link", " / ", "noslash"])
def test_parse_owner_and_repo_invalid(url):
    with pytest.raises(ValueError):
        parse_owner_and_repo(url)


def test_trim_body():
    assert trim_body("a" * 200) == "a" * 200
    assert trim_body("a" * 201) == "a" * 200 + "..."
    assert trim_body("") == ""
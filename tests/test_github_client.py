"""Tests for GitHub API client behavior with mocked HTTP."""

import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from repohealth.config import Config
from repohealth.errors import ApiError, AuthenticationError, RateLimitError
from repohealth.github_client import GitHubClient
from repohealth.models import Actor, Issue, PullRequest, Review, TimelineEvent


def _build_client() -> GitHubClient:
    config = Config(
        owner="octo",
        repo="widgets",
        time_range="1month",
        token="gh-token",
    )
    return GitHubClient(config=config)


def _response(
    status_code: int,
    payload=None,
    text: str = "",
    headers: dict | None = None,
    links: dict | None = None,
):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.headers = headers or {}
    response.links = links or {}
    response.json.return_value = payload if payload is not None else {}
    return response


def _issue_item(number: int, created_at: str = "2026-01-10T00:00:00Z", **extra) -> dict:
    item = {
        "number": number,
        "state": "open",
        "created_at": created_at,
        "updated_at": created_at,
        "closed_at": None,
        "user": {"login": "alice", "type": "User"},
        "labels": [{"name": "bug"}],
        "assignees": [],
    }
    item.update(extra)
    return item


def _pr_item(number: int, created_at: str = "2026-01-10T00:00:00Z", merged_at: str | None = None) -> dict:
    return {
        "number": number,
        "state": "closed" if merged_at else "open",
        "created_at": created_at,
        "updated_at": created_at,
        "closed_at": merged_at,
        "merged_at": merged_at,
        "user": {"login": "bob", "type": "User"},
    }


def _utc(day: int) -> datetime:
    return datetime(2026, 1, day, tzinfo=timezone.utc)


def test_session_sends_bearer_token_and_api_version():
    """Verify the client authenticates with the configured token."""
    client = _build_client()

    assert client._session.headers["Authorization"] == "Bearer gh-token"
    assert client._session.headers["X-GitHub-Api-Version"] == "2022-11-28"


def test_get_json_retries_on_429_and_succeeds():
    """Verify _get_json retries after HTTP 429 and eventually returns JSON payload."""
    client = _build_client()
    first = _response(429, headers={"Retry-After": "1"})
    second = _response(200, payload={"full_name": "octo/widgets"})

    client._session.get = Mock(side_effect=[first, second])

    with patch("repohealth.github_client.time.sleep") as sleep_mock:
        payload = client._get_json("")

    assert payload == {"full_name": "octo/widgets"}
    assert client._session.get.call_count == 2
    sleep_mock.assert_called_once_with(1)


def test_get_json_raises_rate_limit_error_when_quota_stays_exhausted():
    """Verify exhausted primary rate limit (403 with zero remaining) raises RateLimitError."""
    client = _build_client()
    limited = _response(403, headers={"X-RateLimit-Remaining": "0"}, text="rate limit")
    client._session.get = Mock(side_effect=[limited] * client._MAX_RETRIES)

    with patch("repohealth.github_client.time.sleep") as sleep_mock:
        with pytest.raises(RateLimitError):
            client._get_json("issues")

    assert client._session.get.call_count == client._MAX_RETRIES
    assert sleep_mock.call_count == client._MAX_RETRIES - 1


def test_get_json_retries_on_5xx_and_raises_after_max_retries():
    """Verify _get_json retries retryable server errors and raises ApiError after limit."""
    client = _build_client()
    server_error = _response(503, text="service unavailable")
    client._session.get = Mock(side_effect=[server_error] * client._MAX_RETRIES)

    with patch("repohealth.github_client.time.sleep"):
        with pytest.raises(ApiError) as exc_info:
            client._get_json("issues")

    assert not isinstance(exc_info.value, RateLimitError)
    assert client._session.get.call_count == client._MAX_RETRIES


def test_get_json_unauthorized_raises_authentication_error():
    """Verify a rejected token is reported as an authentication failure without retries."""
    client = _build_client()
    client._session.get = Mock(return_value=_response(401, text="Bad credentials"))

    with pytest.raises(AuthenticationError):
        client._get_json("")

    assert client._session.get.call_count == 1


def test_get_json_not_found_raises_api_error():
    """Verify HTTP 404 raises ApiError."""
    client = _build_client()
    client._session.get = Mock(return_value=_response(404, text="Not Found"))

    with pytest.raises(ApiError):
        client._get_json("")


def test_paginate_follows_next_links():
    """Verify list pagination follows Link rel=next and aggregates every page."""
    client = _build_client()
    next_url = "https://api.github.com/repositories/1/issues?page=2"
    first = _response(200, payload=[{"id": 1}, {"id": 2}], links={"next": {"url": next_url}})
    second = _response(200, payload=[{"id": 3}])
    client._session.get = Mock(side_effect=[first, second])

    items = client._paginate("issues", {"state": "all"})

    assert [item["id"] for item in items] == [1, 2, 3]
    first_call, second_call = client._session.get.call_args_list
    assert first_call.args[0] == "https://api.github.com/repos/octo/widgets/issues"
    assert first_call.kwargs["params"] == {"state": "all", "per_page": client._PAGE_SIZE}
    assert second_call.args[0] == next_url
    assert second_call.kwargs["params"] is None


def test_paginate_rejects_non_list_payload():
    """Verify list endpoints returning an object raise ApiError."""
    client = _build_client()
    client._session.get = Mock(return_value=_response(200, payload={"message": "oops"}))

    with pytest.raises(ApiError):
        client._paginate("issues")


def test_parse_datetime_rejects_malformed_timestamp():
    """Verify unparseable timestamps propagate as ValueError."""
    client = _build_client()

    assert client._parse_datetime(None) is None
    assert client._parse_datetime("2026-01-01T06:00:00Z") == datetime(2026, 1, 1, 6, tzinfo=timezone.utc)
    with pytest.raises(ValueError):
        client._parse_datetime("yesterday-ish")


def test_get_repository_maps_payload():
    """Verify repository identity is mapped from the repository endpoint."""
    client = _build_client()
    client._get_json = Mock(
        return_value={
            "name": "widgets",
            "full_name": "octo/widgets",
            "owner": {"login": "octo"},
            "stargazers_count": 42,
            "forks_count": 7,
            "html_url": "https://github.com/octo/widgets",
            "private": False,
        }
    )

    repository = client.get_repository()

    assert repository.full_name == "octo/widgets"
    assert repository.stars == 42
    assert repository.forks == 7


def test_get_repository_private_raises_api_error():
    """Verify private repositories are rejected."""
    client = _build_client()
    client._get_json = Mock(return_value={"name": "widgets", "private": True})

    with pytest.raises(ApiError):
        client.get_repository()


def test_list_issues_drops_pull_requests_and_issues_created_before_start():
    """Verify issue listing filters PR-backed records and filters by creation time."""
    client = _build_client()
    client._paginate = Mock(
        return_value=[
            _issue_item(3, created_at="2026-01-12T00:00:00Z"),
            _issue_item(2, created_at="2026-01-11T00:00:00Z", pull_request={"url": "https://x/pulls/2"}),
            _issue_item(1, created_at="2025-12-01T00:00:00Z"),
        ]
    )

    issues = client.list_issues(_utc(1))

    assert [issue.number for issue in issues] == [3]
    assert issues[0].labels[0].name == "bug"
    params = client._paginate.call_args.args[1]
    assert params["state"] == "all"
    assert params["since"] == "2026-01-01T00:00:00Z"


def test_list_issue_comments_keeps_deleted_authors_as_none():
    """Verify comments by deleted accounts keep a missing author."""
    client = _build_client()
    client._paginate = Mock(
        return_value=[
            {"user": None, "body": "hello", "created_at": "2026-01-02T00:00:00Z"},
            {"user": {"login": "carol", "type": "User"}, "body": None, "created_at": "2026-01-03T00:00:00Z"},
        ]
    )

    comments = client.list_issue_comments(5)

    assert comments[0].author is None
    assert comments[1].author == Actor(login="carol")
    assert comments[1].body == ""
    client._paginate.assert_called_once_with("issues/5/comments")


def test_list_pull_requests_stops_at_first_older_pull_request():
    """Verify PR paging stops once a PR created before the start date appears."""
    client = _build_client()
    pages = [
        [_pr_item(4, "2026-01-20T00:00:00Z"), _pr_item(3, "2026-01-15T00:00:00Z", "2026-01-16T00:00:00Z")],
        [_pr_item(2, "2025-12-20T00:00:00Z"), _pr_item(1, "2025-12-10T00:00:00Z")],
        [_pr_item(0, "2025-11-01T00:00:00Z")],
    ]
    consumed = []

    def _pages(path, params=None):
        for page in pages:
            consumed.append(page)
            yield page

    client._iter_pages = _pages

    pull_requests = client.list_pull_requests(_utc(1))

    assert [pr.number for pr in pull_requests] == [4, 3]
    assert pull_requests[1].merged is True
    assert pull_requests[0].merged is False
    assert len(consumed) == 2


def test_list_reviews_skips_pending_reviews():
    """Verify reviews without a submission time are ignored."""
    client = _build_client()
    client._paginate = Mock(
        return_value=[
            {"id": 1, "user": {"login": "dan"}, "state": "APPROVED", "submitted_at": "2026-01-02T00:00:00Z"},
            {"id": 2, "user": {"login": "erin"}, "state": "PENDING", "submitted_at": None},
        ]
    )

    reviews = client.list_reviews(9)

    assert [review.id for review in reviews] == [1]
    assert reviews[0].state == "APPROVED"


def _make_pull_request(number: int) -> PullRequest:
    return PullRequest(
        number=number,
        state="open",
        created_at=_utc(2),
        updated_at=_utc(2),
        closed_at=None,
        merged_at=None,
        author=Actor(login="bob"),
        merged=False,
    )


def test_fetch_pull_requests_with_details_degrades_after_rate_limit():
    """Verify remaining PRs get empty details once the rate limit is exhausted."""
    client = _build_client()
    client.list_pull_requests = Mock(return_value=[_make_pull_request(n) for n in (1, 2, 3)])
    client.list_reviews = Mock(side_effect=[[], RateLimitError("exhausted")])
    client.get_pull_request_details = Mock(return_value=(3, 10, 4))

    with patch("repohealth.github_client.time.sleep"):
        results = client.fetch_pull_requests_with_details(_utc(1))

    assert [item.pull_request.number for item in results] == [1, 2, 3]
    assert results[0].pull_request.commits == 3
    assert results[1].pull_request.commits is None
    assert results[2].reviews == []
    assert client.list_reviews.call_count == 2


def test_fetch_issues_with_details_keeps_events_when_comment_fetch_fails():
    """Verify a failed comment fetch empties only the comments of that issue."""
    client = _build_client()
    issues = [
        Issue(
            number=n,
            state="open",
            created_at=_utc(2),
            updated_at=_utc(2),
            closed_at=None,
            author=Actor(login="alice"),
        )
        for n in (1, 2)
    ]
    labeled = TimelineEvent(event="labeled", created_at=_utc(3), actor=Actor(login="maint"))
    client.list_issues = Mock(return_value=issues)
    client.list_issue_comments = Mock(side_effect=[ApiError("boom"), []])
    client.list_issue_events = Mock(return_value=[labeled])

    with patch("repohealth.github_client.time.sleep"):
        results = client.fetch_issues_with_details(_utc(1))

    assert [item.issue.number for item in results] == [1, 2]
    assert results[0].comments == []
    assert results[0].events == [labeled]
    assert client.list_issue_events.call_count == 2


def test_fetch_pull_requests_with_details_keeps_reviews_when_size_fetch_fails():
    """Verify a failed size fetch leaves size fields unset but keeps the reviews."""
    client = _build_client()
    approval = Review(id=1, author=Actor(login="maint"), state="APPROVED", submitted_at=_utc(3))
    client.list_pull_requests = Mock(return_value=[_make_pull_request(1), _make_pull_request(2)])
    client.list_reviews = Mock(return_value=[approval])
    client.get_pull_request_details = Mock(side_effect=[ApiError("502 after retries"), (2, 5, 1)])

    with patch("repohealth.github_client.time.sleep"):
        results = client.fetch_pull_requests_with_details(_utc(1))

    assert results[0].reviews == [approval]
    assert results[0].pull_request.commits is None
    assert results[0].pull_request.additions is None
    assert results[1].pull_request.commits == 2
    assert results[1].reviews == [approval]


def test_fetch_pull_requests_with_details_keeps_size_when_review_fetch_fails():
    """Verify a failed review fetch empties only the reviews of that pull request."""
    client = _build_client()
    client.list_pull_requests = Mock(return_value=[_make_pull_request(1)])
    client.list_reviews = Mock(side_effect=ApiError("boom"))
    client.get_pull_request_details = Mock(return_value=(4, 20, 8))

    results = client.fetch_pull_requests_with_details(_utc(1))

    assert results[0].reviews == []
    assert results[0].pull_request.deletions == 8


def test_fetch_pull_requests_with_details_rate_limit_on_size_fetch_stops_batch():
    """Verify a rate limit during a size fetch still stops further requests."""
    client = _build_client()
    client.list_pull_requests = Mock(return_value=[_make_pull_request(n) for n in (1, 2)])
    client.list_reviews = Mock(return_value=[])
    client.get_pull_request_details = Mock(side_effect=RateLimitError("exhausted"))

    results = client.fetch_pull_requests_with_details(_utc(1))

    assert [item.pull_request.number for item in results] == [1, 2]
    assert results[1].pull_request.commits is None
    assert client.list_reviews.call_count == 1


def test_fetch_in_batches_pauses_between_batches():
    """Verify detail fetches are paced once per batch boundary."""
    client = _build_client()

    with patch("repohealth.github_client.time.sleep") as sleep_mock:
        results = client._fetch_in_batches(
            list(range(12)),
            batch_size=5,
            fetch=lambda n: n * 2,
            empty=lambda n: None,
            kind="test",
        )

    assert results == [n * 2 for n in range(12)]
    assert sleep_mock.call_count == 2

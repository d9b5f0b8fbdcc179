"""GitHub REST API client producing the analyzers' input batch."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, TypeVar

import requests

from .config import Config
from .errors import ApiError, AuthenticationError, DataValidationError, RateLimitError
from .models import (
    Actor,
    Comment,
    Issue,
    IssueWithDetails,
    Label,
    PullRequest,
    PullRequestWithDetails,
    Repository,
    Review,
    TimelineEvent,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class GitHubClient:
    """Small, typed client for the GitHub issue and pull request APIs."""

    _API_VERSION = "2022-11-28"
    _PAGE_SIZE = 100
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30
    _ISSUE_BATCH_SIZE = 5
    _PULL_REQUEST_BATCH_SIZE = 10
    _BATCH_DELAY_SECONDS = 0.2

    def __init__(self, config: Config, timeout_seconds: int = 30) -> None:
        """Initialize an authenticated GitHub API client.

        Args:
            config: Validated runtime configuration including owner/repo/token.
            timeout_seconds: Per-request timeout in seconds.
        """
        self._config = config
        self._timeout_seconds = timeout_seconds
        self._base_url = f"{config.api_url}/repos/{config.owner}/{config.repo}"

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {config.token}",
                "X-GitHub-Api-Version": self._API_VERSION,
            }
        )

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below the repository."""
        if not path:
            return self._base_url
        return f"{self._base_url}/{path.lstrip('/')}"

    def _format_datetime(self, value: datetime) -> str:
        """Format a datetime as UTC ISO8601 suitable for GitHub query params."""
        utc_value = value.astimezone(timezone.utc)
        return utc_value.isoformat().replace("+00:00", "Z")

    def _parse_datetime(self, value: Optional[str]) -> Optional[datetime]:
        """Parse GitHub ISO8601 timestamps into timezone-aware datetimes.

        Raises:
            ValueError: If ``value`` is present but not ISO8601.
        """
        if not value:
            return None

        normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
        parsed = datetime.fromisoformat(normalized)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed

    def _require_datetime(self, item: Dict[str, Any], key: str) -> datetime:
        parsed = self._parse_datetime(item.get(key))
        if parsed is None:
            raise DataValidationError(f"GitHub payload is missing required timestamp '{key}': {item}")
        return parsed

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    @staticmethod
    def _is_rate_limited(response: requests.Response) -> bool:
        if response.status_code == 429:
            return True
        return response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Execute a GET request with retry logic for rate limits and 5xx responses.

        Raises:
            RateLimitError: If the rate limit is still exhausted after all retries.
            AuthenticationError: If GitHub rejects the token.
            ApiError: If the request repeatedly fails or returns HTTP >= 400.
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self._MAX_RETRIES + 1):
            try:
                response = self._session.get(url, params=params, timeout=self._timeout_seconds)
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self._MAX_RETRIES:
                    raise ApiError(f"GitHub request failed after retries: GET {url}") from exc
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            rate_limited = self._is_rate_limited(response)
            is_retryable = rate_limited or 500 <= status_code <= 599

            if is_retryable and attempt < self._MAX_RETRIES:
                backoff = self._extract_backoff_seconds(response, attempt)
                logger.warning(
                    "Retrying GitHub request",
                    extra={"url": url, "status_code": status_code, "attempt": attempt, "backoff": backoff},
                )
                time.sleep(backoff)
                continue

            if rate_limited:
                raise RateLimitError(f"GitHub rate limit exhausted: GET {url} returned {status_code}")

            if status_code == 401:
                raise AuthenticationError("GitHub rejected the configured token (HTTP 401).")

            if status_code >= 400:
                raise ApiError(
                    "GitHub API request failed: "
                    f"GET {url} returned {status_code} - {response.text}"
                )

            return response

        raise ApiError(f"GitHub request failed after retries: GET {url}") from last_error

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a repository-relative path and decode the JSON body."""
        url = self._build_url(path)
        response = self._get(url, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"GitHub API returned invalid JSON: GET {url}") from exc

    def _iter_pages(self, path: str, params: Optional[Dict[str, Any]] = None) -> Iterator[List[Dict[str, Any]]]:
        """Yield each page of a list endpoint, following ``Link: rel="next"``."""
        url: Optional[str] = self._build_url(path)
        query: Optional[Dict[str, Any]] = dict(params or {})
        query["per_page"] = self._PAGE_SIZE

        while url:
            response = self._get(url, params=query)
            try:
                payload = response.json()
            except ValueError as exc:
                raise ApiError(f"GitHub API returned invalid JSON: GET {url}") from exc

            if not isinstance(payload, list):
                raise ApiError(f"GitHub API returned unexpected payload shape: GET {url}")

            yield payload

            # The next link already carries every query parameter.
            url = response.links.get("next", {}).get("url")
            query = None

    def _paginate(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        for page in self._iter_pages(path, params):
            items.extend(page)
        return items

    @staticmethod
    def _actor(payload: Optional[Dict[str, Any]]) -> Optional[Actor]:
        if not payload or not payload.get("login"):
            return None
        return Actor(login=str(payload["login"]), type=str(payload.get("type") or "User"))

    def _required_actor(self, item: Dict[str, Any], key: str) -> Actor:
        actor = self._actor(item.get(key))
        # Deleted accounts come back as null; GitHub shows them as "ghost".
        return actor or Actor(login="ghost")

    def get_repository(self) -> Repository:
        """Fetch repository identity. Private repositories are rejected.

        Raises:
            ApiError: If the repository is missing or private.
        """
        payload = self._get_json("")
        if not isinstance(payload, dict):
            raise ApiError("GitHub API returned unexpected repository payload shape.")

        if payload.get("private"):
            raise ApiError(f"Repository '{self._config.owner}/{self._config.repo}' is private.")

        owner = payload.get("owner") or {}
        return Repository(
            owner=str(owner.get("login") or self._config.owner),
            name=str(payload.get("name") or self._config.repo),
            full_name=str(payload.get("full_name") or f"{self._config.owner}/{self._config.repo}"),
            stars=int(payload.get("stargazers_count") or 0),
            forks=int(payload.get("forks_count") or 0),
            url=str(payload.get("html_url") or ""),
        )

    def _to_issue(self, item: Dict[str, Any]) -> Issue:
        number = item.get("number")
        if number is None or not item.get("state"):
            raise DataValidationError(f"GitHub issue payload is missing required fields: {item}")

        created_at = self._require_datetime(item, "created_at")
        return Issue(
            number=int(number),
            state=str(item["state"]),
            created_at=created_at,
            updated_at=self._parse_datetime(item.get("updated_at")) or created_at,
            closed_at=self._parse_datetime(item.get("closed_at")),
            author=self._required_actor(item, "user"),
            labels=[Label(name=str(label.get("name", ""))) for label in item.get("labels") or []],
            assignees=[
                actor
                for actor in (self._actor(assignee) for assignee in item.get("assignees") or [])
                if actor is not None
            ],
            pull_request_url=(item.get("pull_request") or {}).get("url"),
            title=str(item.get("title") or ""),
        )

    def list_issues(self, start_date: datetime) -> List[Issue]:
        """List issues created at or after ``start_date``.

        GitHub's ``since`` filter applies to ``updated_at``, so records are
        filtered again by creation time. PR-backed issue records are dropped.
        """
        params = {
            "state": "all",
            "since": self._format_datetime(start_date),
            "sort": "created",
            "direction": "desc",
        }
        issues: List[Issue] = []
        for item in self._paginate("issues", params):
            if item.get("pull_request"):
                continue
            issue = self._to_issue(item)
            if issue.created_at >= start_date:
                issues.append(issue)
        return issues

    def list_issue_comments(self, number: int) -> List[Comment]:
        """List comments on an issue in creation order."""
        return [
            Comment(
                author=self._actor(item.get("user")),
                body=str(item.get("body") or ""),
                created_at=self._require_datetime(item, "created_at"),
            )
            for item in self._paginate(f"issues/{number}/comments")
        ]

    def list_issue_events(self, number: int) -> List[TimelineEvent]:
        """List label, assignment, reopen and other events of an issue."""
        events: List[TimelineEvent] = []
        for item in self._paginate(f"issues/{number}/events"):
            kind = item.get("event")
            if not kind:
                continue
            events.append(
                TimelineEvent(
                    event=str(kind),
                    created_at=self._require_datetime(item, "created_at"),
                    actor=self._actor(item.get("actor")),
                )
            )
        return events

    def _to_pull_request(self, item: Dict[str, Any]) -> PullRequest:
        number = item.get("number")
        if number is None or not item.get("state"):
            raise DataValidationError(f"GitHub pull request payload is missing required fields: {item}")

        created_at = self._require_datetime(item, "created_at")
        merged_at = self._parse_datetime(item.get("merged_at"))
        return PullRequest(
            number=int(number),
            state=str(item["state"]),
            created_at=created_at,
            updated_at=self._parse_datetime(item.get("updated_at")) or created_at,
            closed_at=self._parse_datetime(item.get("closed_at")),
            merged_at=merged_at,
            author=self._required_actor(item, "user"),
            merged=merged_at is not None,
            title=str(item.get("title") or ""),
        )

    def list_pull_requests(self, start_date: datetime) -> List[PullRequest]:
        """List pull requests created at or after ``start_date``, newest first.

        Paging stops at the first pull request older than ``start_date``.
        """
        params = {"state": "all", "sort": "created", "direction": "desc"}
        pull_requests: List[PullRequest] = []

        for page in self._iter_pages("pulls", params):
            for item in page:
                pull_request = self._to_pull_request(item)
                if pull_request.created_at < start_date:
                    return pull_requests
                pull_requests.append(pull_request)

        return pull_requests

    def get_pull_request_details(self, number: int) -> Tuple[int, int, int]:
        """Return ``(commits, additions, deletions)`` for a pull request."""
        payload = self._get_json(f"pulls/{number}")
        if not isinstance(payload, dict):
            raise ApiError(f"GitHub API returned unexpected pull request payload shape: #{number}")
        return (
            int(payload.get("commits") or 0),
            int(payload.get("additions") or 0),
            int(payload.get("deletions") or 0),
        )

    def list_reviews(self, number: int) -> List[Review]:
        """List submitted reviews of a pull request. Pending reviews are skipped."""
        reviews: List[Review] = []
        for item in self._paginate(f"pulls/{number}/reviews"):
            submitted_at = self._parse_datetime(item.get("submitted_at"))
            if submitted_at is None:
                continue
            reviews.append(
                Review(
                    id=int(item.get("id") or 0),
                    author=self._actor(item.get("user")),
                    state=str(item.get("state") or ""),
                    submitted_at=submitted_at,
                )
            )
        return reviews

    def _fetch_part(self, fetch: Callable[[int], R], fallback: R, part: str, number: int) -> R:
        """Run one detail sub-fetch, falling back to ``fallback`` on API failure.

        Rate-limit errors propagate so the batch can stop making requests.
        """
        try:
            return fetch(number)
        except RateLimitError:
            raise
        except ApiError as exc:
            logger.warning(
                "Detail fetch failed, continuing without it",
                extra={"part": part, "number": number, "error": str(exc)},
            )
            return fallback

    def _fetch_in_batches(
        self,
        records: Sequence[T],
        batch_size: int,
        fetch: Callable[[T], R],
        empty: Callable[[T], R],
        kind: str,
    ) -> List[R]:
        """Fetch per-record details in paced batches.

        Once the rate limit is exhausted no further requests are made and every
        remaining record is returned with empty details.
        """
        results: List[R] = []

        for index, record in enumerate(records):
            if index and index % batch_size == 0:
                time.sleep(self._BATCH_DELAY_SECONDS)

            try:
                results.append(fetch(record))
            except RateLimitError:
                logger.warning(
                    "Rate limit exhausted, returning remaining records without details",
                    extra={"kind": kind, "processed": index, "total": len(records)},
                )
                results.extend(empty(remaining) for remaining in records[index:])
                break

        return results

    def _issue_with_details(self, issue: Issue) -> IssueWithDetails:
        return IssueWithDetails(
            issue=issue,
            comments=self._fetch_part(self.list_issue_comments, [], "comments", issue.number),
            events=self._fetch_part(self.list_issue_events, [], "events", issue.number),
        )

    def fetch_issues_with_details(self, start_date: datetime) -> List[IssueWithDetails]:
        """Fetch issues created since ``start_date`` with comments and events."""
        issues = self.list_issues(start_date)
        logger.info("Fetched issues", extra={"issues": len(issues)})

        return self._fetch_in_batches(
            issues,
            self._ISSUE_BATCH_SIZE,
            fetch=self._issue_with_details,
            empty=lambda issue: IssueWithDetails(issue=issue),
            kind="issue",
        )

    def _pull_request_with_details(self, pull_request: PullRequest) -> PullRequestWithDetails:
        reviews = self._fetch_part(self.list_reviews, [], "reviews", pull_request.number)
        details = self._fetch_part(self.get_pull_request_details, None, "size", pull_request.number)
        if details is not None:
            pull_request.commits, pull_request.additions, pull_request.deletions = details
        return PullRequestWithDetails(pull_request=pull_request, reviews=reviews)

    def fetch_pull_requests_with_details(self, start_date: datetime) -> List[PullRequestWithDetails]:
        """Fetch pull requests created since ``start_date`` with reviews and size stats."""
        pull_requests = self.list_pull_requests(start_date)
        logger.info("Fetched pull requests", extra={"pull_requests": len(pull_requests)})

        return self._fetch_in_batches(
            pull_requests,
            self._PULL_REQUEST_BATCH_SIZE,
            fetch=self._pull_request_with_details,
            empty=lambda pull_request: PullRequestWithDetails(pull_request=pull_request),
            kind="pull_request",
        )

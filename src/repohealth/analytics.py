"""Time-window orchestration over a fetched issue and pull request batch.

The batch is fetched once for :data:`FETCH_TIME_RANGE` and then filtered by
creation timestamp for each requested window. The backlog analyzer always
receives the unfiltered open work and the full PR history.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from .backlog import calculate_backlog_health_metrics
from .errors import ConfigurationError
from .friction import calculate_contributor_friction_metrics
from .lifecycle import calculate_issue_lifecycle_metrics
from .models import (
    IssueWithDetails,
    PullRequestWithDetails,
    Repository,
    RepositoryAnalytics,
    TimeWindow,
)
from .reviewers import calculate_reviewer_insights_metrics

logger = logging.getLogger(__name__)

TIME_RANGES = ("1week", "1month", "3months", "6months")
FETCH_TIME_RANGE = "3months"

_TIME_RANGE_OFFSETS = {
    "1week": timedelta(days=7),
    "1month": relativedelta(months=1),
    "3months": relativedelta(months=3),
    "6months": relativedelta(months=6),
}


def get_start_date(time_range: str, now: Optional[datetime] = None) -> datetime:
    """Return the start of a trailing window ending at ``now``.

    ``1week`` is seven days back; month-based windows step back whole calendar
    months, clamping to the last day of shorter months.

    Raises:
        ConfigurationError: If ``time_range`` is not a supported window.
    """
    offset = _TIME_RANGE_OFFSETS.get(time_range)
    if offset is None:
        raise ConfigurationError(
            f"Unsupported time range {time_range!r}; expected one of: {', '.join(TIME_RANGES)}."
        )

    now = now or datetime.now(timezone.utc)
    return now - offset


def filter_by_window(
    issues: Sequence[IssueWithDetails],
    pull_requests: Sequence[PullRequestWithDetails],
    start_date: datetime,
) -> Tuple[List[IssueWithDetails], List[PullRequestWithDetails]]:
    """Keep issues and pull requests created at or after ``start_date``."""
    return (
        [item for item in issues if item.issue.created_at >= start_date],
        [item for item in pull_requests if item.pull_request.created_at >= start_date],
    )


def compute_repository_analytics(
    repository: Repository,
    issues: Sequence[IssueWithDetails],
    pull_requests: Sequence[PullRequestWithDetails],
    time_range: str,
    now: Optional[datetime] = None,
) -> RepositoryAnalytics:
    """Run all four analyzers for one time window of a fetched batch.

    Window-scoped analyzers see only items created inside the window. The
    backlog analyzer sees every open issue and PR in the batch and the whole
    PR history, so it reports the same backlog for every window.
    """
    now = now or datetime.now(timezone.utc)
    start_date = get_start_date(time_range, now)
    window_issues, window_prs = filter_by_window(issues, pull_requests, start_date)

    open_issues = [item.issue for item in issues if item.issue.state == "open"]
    open_prs = [item.pull_request for item in pull_requests if item.pull_request.state == "open"]

    logger.info(
        "Computing repository analytics",
        extra={
            "repository": repository.full_name,
            "time_range": time_range,
            "window_issues": len(window_issues),
            "window_prs": len(window_prs),
            "open_issues": len(open_issues),
            "open_prs": len(open_prs),
        },
    )

    return RepositoryAnalytics(
        repository=repository,
        time_range=TimeWindow(value=time_range, start_date=start_date, end_date=now),
        issue_lifecycle=calculate_issue_lifecycle_metrics(window_issues, time_range, now=now),
        reviewer_insights=calculate_reviewer_insights_metrics(window_prs),
        contributor_friction=calculate_contributor_friction_metrics(window_prs, window_issues),
        backlog_health=calculate_backlog_health_metrics(
            open_issues, open_prs, pull_requests, now=now
        ),
    )


def compute_all_time_ranges(
    repository: Repository,
    issues: Sequence[IssueWithDetails],
    pull_requests: Sequence[PullRequestWithDetails],
    time_ranges: Sequence[str] = TIME_RANGES,
    now: Optional[datetime] = None,
) -> Dict[str, RepositoryAnalytics]:
    """Compute analytics for several windows from the same fetched batch."""
    now = now or datetime.now(timezone.utc)
    return {
        time_range: compute_repository_analytics(
            repository, issues, pull_requests, time_range, now=now
        )
        for time_range in time_ranges
    }

"""Issue lifecycle metrics.

This module computes per-issue latency samples in whole hours and folds them
into medians:
- time to first human response
- time to first meaningful human response (trimmed body longer than 10 chars)
- time to triage (first label or assignment, whichever came first)
- time to resolution (creation to close)

It also derives staleness and reopen rates over the whole issue population and
a day- or week-bucketed time series.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from .bots import is_human
from .models import (
    Comment,
    IssueLifecycleMetrics,
    IssueWithDetails,
    StaleIssueRate,
    TimelineEvent,
    TimeSeriesPoint,
)
from .stats import days_between, hours_between, median, percentage

logger = logging.getLogger(__name__)

MEANINGFUL_COMMENT_MIN_LENGTH = 10
STALE_THRESHOLDS_DAYS = (30, 60, 90)
DAILY_BUCKET_TIME_RANGES = frozenset({"1week", "1month"})


def _earliest_comment(comments: Iterable[Comment]) -> Optional[Comment]:
    earliest: Optional[Comment] = None
    for comment in comments:
        if earliest is None or comment.created_at < earliest.created_at:
            earliest = comment
    return earliest


def _earliest_event(events: Iterable[TimelineEvent], kind: str) -> Optional[TimelineEvent]:
    earliest: Optional[TimelineEvent] = None
    for event in events:
        if event.event != kind:
            continue
        if earliest is None or event.created_at < earliest.created_at:
            earliest = event
    return earliest


def _is_meaningful(comment: Comment) -> bool:
    return len((comment.body or "").strip()) > MEANINGFUL_COMMENT_MIN_LENGTH


def compute_first_response_time(item: IssueWithDetails) -> Optional[int]:
    """Hours from issue creation to the earliest comment by a human.

    Returns ``None`` when no human has commented or the interval is negative.
    """
    first = _earliest_comment(c for c in item.comments if is_human(c.author))
    if first is None:
        return None
    return hours_between(item.issue.created_at, first.created_at)


def compute_first_meaningful_response_time(item: IssueWithDetails) -> Optional[int]:
    """Hours to the earliest human comment whose trimmed body exceeds 10 characters."""
    first = _earliest_comment(
        c for c in item.comments if is_human(c.author) and _is_meaningful(c)
    )
    if first is None:
        return None
    return hours_between(item.issue.created_at, first.created_at)


def compute_triage_time(item: IssueWithDetails) -> Optional[int]:
    """Hours to the earlier of the first ``labeled`` and first ``assigned`` event."""
    candidates = [
        event
        for event in (
            _earliest_event(item.events, "labeled"),
            _earliest_event(item.events, "assigned"),
        )
        if event is not None
    ]
    if not candidates:
        return None

    triaged_at = min(event.created_at for event in candidates)
    return hours_between(item.issue.created_at, triaged_at)


def compute_resolution_time(item: IssueWithDetails) -> Optional[int]:
    """Hours from creation to close, or ``None`` for issues that were never closed."""
    if item.issue.closed_at is None:
        return None
    return hours_between(item.issue.created_at, item.issue.closed_at)


def is_reopened(item: IssueWithDetails) -> bool:
    """Return ``True`` when the issue was ever reopened.

    Requires at least one ``reopened`` event and a recorded close time, which
    may come from an earlier close cycle of an issue that is open again.
    """
    has_reopen_event = any(event.event == "reopened" for event in item.events)
    return has_reopen_event and item.issue.closed_at is not None


def bucket_start(created_at: datetime, time_range: str) -> datetime:
    """Truncate a timestamp to the start of its UTC day or Sunday-based week.

    Short windows (``1week``, ``1month``) bucket by day; longer windows bucket
    by week.
    """
    day_start = created_at.astimezone(timezone.utc).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    if time_range in DAILY_BUCKET_TIME_RANGES:
        return day_start

    days_since_sunday = (day_start.weekday() + 1) % 7
    return day_start - timedelta(days=days_since_sunday)


def calculate_time_series(
    issues: Sequence[IssueWithDetails],
    time_range: str,
) -> List[TimeSeriesPoint]:
    """Group issues into creation buckets and summarize each non-empty bucket.

    Buckets are keyed by their truncated start timestamp and returned in
    ascending order. Buckets without issues are not emitted.
    """
    buckets: Dict[datetime, List[IssueWithDetails]] = defaultdict(list)
    for item in issues:
        buckets[bucket_start(item.issue.created_at, time_range)].append(item)

    series: List[TimeSeriesPoint] = []
    for date in sorted(buckets):
        bucket_issues = buckets[date]
        first_responses: List[int] = []
        resolutions: List[int] = []

        for item in bucket_issues:
            first_response = compute_first_response_time(item)
            if first_response is not None:
                first_responses.append(first_response)

            resolution = compute_resolution_time(item)
            if resolution is not None:
                resolutions.append(resolution)

        series.append(
            TimeSeriesPoint(
                date=date,
                median_time_to_first_response=median(first_responses),
                median_time_to_resolution=median(resolutions),
                issues_created=len(bucket_issues),
                issues_closed=sum(1 for item in bucket_issues if item.issue.state == "closed"),
            )
        )

    return series


def calculate_issue_lifecycle_metrics(
    issues: Sequence[IssueWithDetails],
    time_range: str,
    now: Optional[datetime] = None,
) -> IssueLifecycleMetrics:
    """Compute issue lifecycle metrics for a window's issues.

    Business logic:
    - Each latency is sampled independently and only for issues where the
      underlying comment, event or close time exists.
    - Staleness counts open issues older than 30/60/90 days against the full
      issue population, not only the open ones.
    - Reopen rate is the share of issues flagged by :func:`is_reopened`.

    ``time_range`` only selects the time-series bucket granularity. ``now``
    defaults to the current UTC time.
    """
    now = now or datetime.now(timezone.utc)

    first_responses: List[int] = []
    meaningful_responses: List[int] = []
    triage_times: List[int] = []
    resolutions: List[int] = []
    open_issue_ages: List[int] = []
    reopened_count = 0

    for item in issues:
        first_response = compute_first_response_time(item)
        if first_response is not None:
            first_responses.append(first_response)

        meaningful = compute_first_meaningful_response_time(item)
        if meaningful is not None:
            meaningful_responses.append(meaningful)

        triage = compute_triage_time(item)
        if triage is not None:
            triage_times.append(triage)

        resolution = compute_resolution_time(item)
        if resolution is not None:
            resolutions.append(resolution)

        if item.issue.state == "open":
            open_issue_ages.append(days_between(item.issue.created_at, now))

        if is_reopened(item):
            reopened_count += 1

    total = len(issues)
    stale_30, stale_60, stale_90 = (
        sum(1 for age in open_issue_ages if age > threshold)
        for threshold in STALE_THRESHOLDS_DAYS
    )

    logger.debug(
        "Computed issue lifecycle samples",
        extra={
            "issues_total": total,
            "first_response_samples": len(first_responses),
            "meaningful_response_samples": len(meaningful_responses),
            "triage_samples": len(triage_times),
            "resolution_samples": len(resolutions),
            "reopened": reopened_count,
        },
    )

    return IssueLifecycleMetrics(
        median_time_to_first_response=median(first_responses),
        median_time_to_first_meaningful_response=median(meaningful_responses),
        median_time_to_triage=median(triage_times),
        median_time_to_resolution=median(resolutions),
        stale_issue_rate=StaleIssueRate(
            after_30_days=percentage(stale_30, total),
            after_60_days=percentage(stale_60, total),
            after_90_days=percentage(stale_90, total),
        ),
        reopened_issue_rate=percentage(reopened_count, total),
        time_series=calculate_time_series(issues, time_range),
    )

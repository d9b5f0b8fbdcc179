"""Backlog health metrics and score.

The backlog reflects the present-day open issues and pull requests, independent
of the analysis window. Open PRs are matched by number against the historical
PR batch to find out whether a human has ever reviewed them.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .bots import is_human
from .models import (
    BacklogHealthMetrics,
    Issue,
    IssueBacklog,
    PullRequest,
    PullRequestBacklog,
    PullRequestWithDetails,
)
from .stats import days_between, percentage

logger = logging.getLogger(__name__)

HEALTHY_THRESHOLD = 70
NEEDS_ATTENTION_THRESHOLD = 40

# (label, inclusive upper bound in days); the last bucket is open-ended.
ISSUE_AGE_BUCKETS: Tuple[Tuple[str, Optional[int]], ...] = (
    ("0-30", 30),
    ("31-60", 60),
    ("61-90", 90),
    ("90+", None),
)
PULL_REQUEST_AGE_BUCKETS: Tuple[Tuple[str, Optional[int]], ...] = (
    ("0-7", 7),
    ("8-14", 14),
    ("15-30", 30),
    ("30+", None),
)

# Stale-age deductions: (bucket label, multiplier), oldest bucket first.
ISSUE_STALENESS_WEIGHTS = (("90+", 2.0), ("61-90", 0.5), ("31-60", 0.1))
PULL_REQUEST_STALENESS_WEIGHTS = (("30+", 2.0), ("15-30", 0.5), ("8-14", 0.1))

ISSUE_STALENESS_CAP = 30
UNLABELED_CAP = 20
ORPHAN_CAP = 20
PULL_REQUEST_STALENESS_CAP = 15
WITHOUT_REVIEW_CAP = 15
RATIO_MULTIPLIER = 0.2


def bucket_ages(
    ages: Iterable[int],
    buckets: Sequence[Tuple[str, Optional[int]]],
) -> Dict[str, int]:
    """Count ages per bucket. An age equal to a bucket's upper bound stays in that bucket."""
    counts = {label: 0 for label, _ in buckets}
    for age in ages:
        for label, upper in buckets:
            if upper is None or age <= upper:
                counts[label] += 1
                break
    return counts


def _staleness_deduction(
    by_age: Dict[str, int],
    total: int,
    weights: Sequence[Tuple[str, float]],
    cap: float,
) -> float:
    if total == 0:
        return 0
    return sum(
        min(cap, percentage(by_age[label], total) * multiplier) for label, multiplier in weights
    )


def calculate_backlog_score(
    issue_by_age: Dict[str, int],
    total_open_issues: int,
    unlabeled_percentage: float,
    orphan_percentage: float,
    pr_by_age: Dict[str, int],
    total_open_prs: int,
    without_review_percentage: float,
) -> float:
    """Fold backlog ratios into a 0-100 score.

    Starting from 100, each stale-age share is multiplied by its weight and
    capped individually (30 per issue bucket, 15 per PR bucket). Unlabeled and
    orphan issue shares deduct ``pct * 0.2`` capped at 20, unreviewed PRs
    ``pct * 0.2`` capped at 15. The result is clamped to ``[0, 100]``.
    """
    score = 100.0
    score -= _staleness_deduction(
        issue_by_age, total_open_issues, ISSUE_STALENESS_WEIGHTS, ISSUE_STALENESS_CAP
    )
    score -= min(UNLABELED_CAP, unlabeled_percentage * RATIO_MULTIPLIER)
    score -= min(ORPHAN_CAP, orphan_percentage * RATIO_MULTIPLIER)
    score -= _staleness_deduction(
        pr_by_age, total_open_prs, PULL_REQUEST_STALENESS_WEIGHTS, PULL_REQUEST_STALENESS_CAP
    )
    score -= min(WITHOUT_REVIEW_CAP, without_review_percentage * RATIO_MULTIPLIER)
    return max(0.0, min(100.0, score))


def backlog_label(score: float) -> str:
    """Map a backlog score to ``Healthy``, ``Needs Attention`` or ``Overloaded``."""
    if score >= HEALTHY_THRESHOLD:
        return "Healthy"
    if score >= NEEDS_ATTENTION_THRESHOLD:
        return "Needs Attention"
    return "Overloaded"


def is_orphan(issue: Issue) -> bool:
    """An issue with no assignee and no attached pull request."""
    return not issue.assignees and issue.pull_request_url is None


def _has_human_review(
    pr: PullRequest,
    history: Dict[int, PullRequestWithDetails],
) -> bool:
    record = history.get(pr.number)
    if record is None:
        return False
    return any(is_human(review.author) for review in record.reviews)


def calculate_backlog_health_metrics(
    open_issues: Sequence[Issue],
    open_pull_requests: Sequence[PullRequest],
    all_pull_requests: Sequence[PullRequestWithDetails],
    now: Optional[datetime] = None,
) -> BacklogHealthMetrics:
    """Compute the backlog breakdown and score for currently open work.

    An open PR without a matching record in ``all_pull_requests`` is treated
    as never reviewed.
    """
    now = now or datetime.now(timezone.utc)

    issue_by_age = bucket_ages(
        (days_between(issue.created_at, now) for issue in open_issues), ISSUE_AGE_BUCKETS
    )
    unlabeled = sum(1 for issue in open_issues if not issue.labels)
    orphan = sum(1 for issue in open_issues if is_orphan(issue))

    pr_by_age = bucket_ages(
        (days_between(pr.created_at, now) for pr in open_pull_requests), PULL_REQUEST_AGE_BUCKETS
    )
    history = {item.pull_request.number: item for item in all_pull_requests}
    without_review = sum(
        1 for pr in open_pull_requests if not _has_human_review(pr, history)
    )

    issue_backlog = IssueBacklog(
        total_open=len(open_issues),
        by_age=issue_by_age,
        unlabeled=unlabeled,
        unlabeled_percentage=percentage(unlabeled, len(open_issues)),
        orphan=orphan,
        orphan_percentage=percentage(orphan, len(open_issues)),
    )
    pr_backlog = PullRequestBacklog(
        total_open=len(open_pull_requests),
        by_age=pr_by_age,
        without_review=without_review,
        without_review_percentage=percentage(without_review, len(open_pull_requests)),
    )

    score = calculate_backlog_score(
        issue_by_age=issue_by_age,
        total_open_issues=issue_backlog.total_open,
        unlabeled_percentage=issue_backlog.unlabeled_percentage,
        orphan_percentage=issue_backlog.orphan_percentage,
        pr_by_age=pr_by_age,
        total_open_prs=pr_backlog.total_open,
        without_review_percentage=pr_backlog.without_review_percentage,
    )

    logger.debug(
        "Computed backlog health",
        extra={
            "open_issues": issue_backlog.total_open,
            "open_prs": pr_backlog.total_open,
            "score": score,
        },
    )

    return BacklogHealthMetrics(
        score=score,
        label=backlog_label(score),
        issues=issue_backlog,
        pull_requests=pr_backlog,
    )

"""Newcomer friction metrics.

Pull requests are classified as first-time or returning by looking only at the
supplied batch: an author's earliest PR in the batch is their first-time PR.
This approximates, but is not, the contributor's all-time history.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

from .bots import is_human
from .models import (
    REVIEW_CHANGES_REQUESTED,
    ContributorFrictionMetrics,
    IssueWithDetails,
    PullRequestWithDetails,
)
from .reviewers import compute_time_to_first_review
from .stats import median, percentage

logger = logging.getLogger(__name__)


def split_first_time_pull_requests(
    pull_requests: Sequence[PullRequestWithDetails],
) -> Tuple[List[PullRequestWithDetails], List[PullRequestWithDetails]]:
    """Split PRs into ``(first_time, returning)`` lists.

    Each author's earliest-created PR in the batch is first-time; ties on the
    creation timestamp go to the PR that appears first in the batch.
    """
    first_by_author: Dict[str, PullRequestWithDetails] = {}
    for item in pull_requests:
        login = item.pull_request.author.login
        current = first_by_author.get(login)
        if current is None or item.pull_request.created_at < current.pull_request.created_at:
            first_by_author[login] = item

    first_time: List[PullRequestWithDetails] = []
    returning: List[PullRequestWithDetails] = []
    for item in pull_requests:
        if first_by_author[item.pull_request.author.login] is item:
            first_time.append(item)
        else:
            returning.append(item)

    return first_time, returning


def count_review_cycles(item: PullRequestWithDetails) -> int:
    """Number of human ``CHANGES_REQUESTED`` reviews on the pull request."""
    return sum(
        1
        for review in item.reviews
        if review.state == REVIEW_CHANGES_REQUESTED and is_human(review.author)
    )


def _merge_rate(pull_requests: Sequence[PullRequestWithDetails]) -> float:
    merged = sum(1 for item in pull_requests if item.pull_request.merged)
    return percentage(merged, len(pull_requests))


def _median_time_to_review(pull_requests: Sequence[PullRequestWithDetails]) -> float:
    samples = [
        hours
        for hours in (compute_time_to_first_review(item) for item in pull_requests)
        if hours is not None
    ]
    return median(samples)


def calculate_contributor_friction_metrics(
    pull_requests: Sequence[PullRequestWithDetails],
    issues: Sequence[IssueWithDetails],
) -> ContributorFrictionMetrics:
    """Compare outcomes of first-time and returning pull requests.

    ``first_time_issues_without_pr`` counts distinct issue authors in the
    issue batch who never authored a PR in the PR batch.
    """
    first_time, returning = split_first_time_pull_requests(pull_requests)

    pr_authors = {item.pull_request.author.login for item in pull_requests}
    issue_authors = {item.issue.author.login for item in issues}
    issues_without_pr = len(issue_authors - pr_authors)

    logger.debug(
        "Classified pull requests by author history",
        extra={
            "first_time_prs": len(first_time),
            "returning_prs": len(returning),
            "issue_authors_without_pr": issues_without_pr,
        },
    )

    return ContributorFrictionMetrics(
        first_time_prs=len(first_time),
        returning_prs=len(returning),
        first_time_merge_rate=_merge_rate(first_time),
        returning_merge_rate=_merge_rate(returning),
        first_time_median_time_to_review=_median_time_to_review(first_time),
        returning_median_time_to_review=_median_time_to_review(returning),
        first_time_median_review_cycles=median([count_review_cycles(item) for item in first_time]),
        first_time_issues_without_pr=issues_without_pr,
    )

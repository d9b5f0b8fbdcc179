"""Pull request review metrics and reviewer/contributor leaderboards."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .bots import filter_bots
from .models import (
    REVIEW_APPROVED,
    REVIEW_CHANGES_REQUESTED,
    REVIEW_COMMENTED,
    ContributorStats,
    PullRequestWithDetails,
    Review,
    ReviewerInsight,
    ReviewerInsightsMetrics,
)
from .stats import hours_between, median

logger = logging.getLogger(__name__)

LEADERBOARD_SIZE = 10


@dataclass(slots=True)
class _ReviewerAccumulator:
    prs_reviewed: int = 0
    first_review_hours_total: float = 0
    first_review_count: int = 0
    approvals: int = 0
    changes_requested: int = 0
    comments_only: int = 0

    def add(self, review: Review, first_review_hours: Optional[int]) -> None:
        self.prs_reviewed += 1
        if first_review_hours is not None:
            self.first_review_hours_total += first_review_hours
            self.first_review_count += 1

        if review.state == REVIEW_APPROVED:
            self.approvals += 1
        elif review.state == REVIEW_CHANGES_REQUESTED:
            self.changes_requested += 1
        elif review.state == REVIEW_COMMENTED:
            self.comments_only += 1

    def finalize(self, username: str) -> ReviewerInsight:
        average = (
            self.first_review_hours_total / self.first_review_count
            if self.first_review_count > 0
            else 0
        )
        return ReviewerInsight(
            username=username,
            prs_reviewed=self.prs_reviewed,
            avg_time_to_first_review=average,
            approvals=self.approvals,
            changes_requested=self.changes_requested,
            comments_only=self.comments_only,
        )


@dataclass(slots=True)
class _ContributorAccumulator:
    commits: int = 0
    additions: int = 0
    deletions: int = 0

    def finalize(self, username: str) -> ContributorStats:
        return ContributorStats(
            username=username,
            commits=self.commits,
            additions=self.additions,
            deletions=self.deletions,
            net_lines=self.additions - self.deletions,
        )


def human_reviews(item: PullRequestWithDetails) -> List[Review]:
    """Return the pull request's non-bot reviews ordered by submission time."""
    reviews = filter_bots(item.reviews, key=lambda review: review.author)
    return sorted(reviews, key=lambda review: review.submitted_at)


def compute_time_to_first_review(item: PullRequestWithDetails) -> Optional[int]:
    """Hours from PR creation to its earliest human review, or ``None``."""
    reviews = human_reviews(item)
    if not reviews:
        return None
    return hours_between(item.pull_request.created_at, reviews[0].submitted_at)


def calculate_top_contributors(
    pull_requests: Sequence[PullRequestWithDetails],
    limit: int = LEADERBOARD_SIZE,
) -> List[ContributorStats]:
    """Rank PR authors by commit volume using the PRs' own size fields.

    Size fields missing because the detail fetch was skipped count as ``0``.
    """
    contributors: Dict[str, _ContributorAccumulator] = {}
    for item in pull_requests:
        pr = item.pull_request
        stats = contributors.setdefault(pr.author.login, _ContributorAccumulator())
        stats.commits += pr.commits or 0
        stats.additions += pr.additions or 0
        stats.deletions += pr.deletions or 0

    ranked = sorted(
        (stats.finalize(username) for username, stats in contributors.items()),
        key=lambda contributor: contributor.commits,
        reverse=True,
    )
    return ranked[:limit]


def calculate_reviewer_insights_metrics(
    pull_requests: Sequence[PullRequestWithDetails],
) -> ReviewerInsightsMetrics:
    """Compute review latency, unreviewed PR counts and leaderboards.

    Business logic:
    - PRs without any human review count as merged-without-review when merged,
      or closed-without-review when closed unmerged.
    - For reviewed PRs the earliest human review by submission time is the
      first review; its latency from creation feeds the median, and for
      merged PRs so does the latency from that review to the merge.
    - Every human review credits its author with a reviewed PR and a
      disposition count; only the author of a PR's first review gets that
      PR's first-review latency added to their average.
    """
    first_review_times: List[int] = []
    review_to_merge_times: List[int] = []
    merged_without_review = 0
    closed_without_review = 0
    reviewers: Dict[str, _ReviewerAccumulator] = {}

    for item in pull_requests:
        pr = item.pull_request
        reviews = human_reviews(item)

        if not reviews:
            if pr.merged and pr.merged_at is not None:
                merged_without_review += 1
            elif pr.state == "closed" and not pr.merged:
                closed_without_review += 1
            continue

        first_review = reviews[0]
        time_to_first_review = hours_between(pr.created_at, first_review.submitted_at)
        if time_to_first_review is not None:
            first_review_times.append(time_to_first_review)
        else:
            logger.debug(
                "Dropping negative first review latency",
                extra={"pr_number": pr.number},
            )

        if pr.merged and pr.merged_at is not None:
            review_to_merge = hours_between(first_review.submitted_at, pr.merged_at)
            if review_to_merge is not None:
                review_to_merge_times.append(review_to_merge)

        for review in reviews:
            if review.author is None:
                continue
            stats = reviewers.setdefault(review.author.login, _ReviewerAccumulator())
            stats.add(review, time_to_first_review if review is first_review else None)

    top_reviewers = sorted(
        (stats.finalize(username) for username, stats in reviewers.items()),
        key=lambda reviewer: reviewer.prs_reviewed,
        reverse=True,
    )[:LEADERBOARD_SIZE]

    logger.debug(
        "Computed reviewer insight samples",
        extra={
            "prs_total": len(pull_requests),
            "first_review_samples": len(first_review_times),
            "review_to_merge_samples": len(review_to_merge_times),
            "reviewers": len(reviewers),
        },
    )

    return ReviewerInsightsMetrics(
        total_prs=len(pull_requests),
        median_time_to_first_review=median(first_review_times),
        median_time_from_review_to_merge=median(review_to_merge_times),
        prs_merged_without_review=merged_without_review,
        prs_closed_without_review=closed_without_review,
        top_reviewers=top_reviewers,
        top_contributors=calculate_top_contributors(pull_requests),
    )

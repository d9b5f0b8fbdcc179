"""Serialization and text rendering of repository analytics.

The payload uses the camelCase keys consumers of the analytics API expect.
Datetimes are rendered as UTC ISO-8601 strings with a ``Z`` suffix.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from .models import (
    BacklogHealthMetrics,
    ContributorFrictionMetrics,
    IssueLifecycleMetrics,
    RepositoryAnalytics,
    ReviewerInsightsMetrics,
)
from .stats import format_hours


def format_timestamp(value: datetime) -> str:
    """Format a datetime as UTC ISO-8601 with a ``Z`` suffix."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _issue_lifecycle_payload(metrics: IssueLifecycleMetrics) -> Dict[str, Any]:
    return {
        "medianTimeToFirstResponse": metrics.median_time_to_first_response,
        "medianTimeToFirstMeaningfulResponse": metrics.median_time_to_first_meaningful_response,
        "medianTimeToTriage": metrics.median_time_to_triage,
        "medianTimeToResolution": metrics.median_time_to_resolution,
        "staleIssueRate": {
            "after30Days": metrics.stale_issue_rate.after_30_days,
            "after60Days": metrics.stale_issue_rate.after_60_days,
            "after90Days": metrics.stale_issue_rate.after_90_days,
        },
        "reopenedIssueRate": metrics.reopened_issue_rate,
        "timeSeries": [
            {
                "date": format_timestamp(point.date),
                "medianTimeToFirstResponse": point.median_time_to_first_response,
                "medianTimeToResolution": point.median_time_to_resolution,
                "issuesCreated": point.issues_created,
                "issuesClosed": point.issues_closed,
            }
            for point in metrics.time_series
        ],
    }


def _reviewer_insights_payload(metrics: ReviewerInsightsMetrics) -> Dict[str, Any]:
    return {
        "totalPRs": metrics.total_prs,
        "medianTimeToFirstReview": metrics.median_time_to_first_review,
        "medianTimeFromReviewToMerge": metrics.median_time_from_review_to_merge,
        "prsMergedWithoutReview": metrics.prs_merged_without_review,
        "prsClosedWithoutReview": metrics.prs_closed_without_review,
        "topReviewers": [
            {
                "username": reviewer.username,
                "prsReviewed": reviewer.prs_reviewed,
                "avgTimeToFirstReview": reviewer.avg_time_to_first_review,
                "approvals": reviewer.approvals,
                "changesRequested": reviewer.changes_requested,
                "commentsOnly": reviewer.comments_only,
            }
            for reviewer in metrics.top_reviewers
        ],
        "topContributors": [
            {
                "username": contributor.username,
                "commits": contributor.commits,
                "additions": contributor.additions,
                "deletions": contributor.deletions,
                "netLines": contributor.net_lines,
            }
            for contributor in metrics.top_contributors
        ],
    }


def _contributor_friction_payload(metrics: ContributorFrictionMetrics) -> Dict[str, Any]:
    return {
        "firstTimePRs": metrics.first_time_prs,
        "returningPRs": metrics.returning_prs,
        "firstTimeMergeRate": metrics.first_time_merge_rate,
        "returningMergeRate": metrics.returning_merge_rate,
        "firstTimeMedianTimeToReview": metrics.first_time_median_time_to_review,
        "returningMedianTimeToReview": metrics.returning_median_time_to_review,
        "firstTimeMedianReviewCycles": metrics.first_time_median_review_cycles,
        "firstTimeIssuesWithoutPR": metrics.first_time_issues_without_pr,
    }


def _backlog_health_payload(metrics: BacklogHealthMetrics) -> Dict[str, Any]:
    return {
        "score": metrics.score,
        "label": metrics.label,
        "issues": {
            "totalOpen": metrics.issues.total_open,
            "byAge": dict(metrics.issues.by_age),
            "unlabeled": metrics.issues.unlabeled,
            "unlabeledPercentage": metrics.issues.unlabeled_percentage,
            "orphan": metrics.issues.orphan,
            "orphanPercentage": metrics.issues.orphan_percentage,
        },
        "pullRequests": {
            "totalOpen": metrics.pull_requests.total_open,
            "byAge": dict(metrics.pull_requests.by_age),
            "withoutReview": metrics.pull_requests.without_review,
            "withoutReviewPercentage": metrics.pull_requests.without_review_percentage,
        },
    }


def analytics_to_payload(analytics: RepositoryAnalytics) -> Dict[str, Any]:
    """Convert analytics for one window into a JSON-serializable payload."""
    repository = analytics.repository
    return {
        "repository": {
            "owner": repository.owner,
            "repo": repository.name,
            "fullName": repository.full_name,
            "stars": repository.stars,
            "forks": repository.forks,
            "url": repository.url,
        },
        "timeRange": {
            "value": analytics.time_range.value,
            "startDate": format_timestamp(analytics.time_range.start_date),
            "endDate": format_timestamp(analytics.time_range.end_date),
        },
        "issueLifecycle": _issue_lifecycle_payload(analytics.issue_lifecycle),
        "reviewerInsights": _reviewer_insights_payload(analytics.reviewer_insights),
        "contributorFriction": _contributor_friction_payload(analytics.contributor_friction),
        "backlogHealth": _backlog_health_payload(analytics.backlog_health),
    }


def _histogram_line(by_age: Dict[str, int]) -> str:
    return ", ".join(f"{label}: {count}" for label, count in by_age.items())


def generate_report(analytics: RepositoryAnalytics) -> str:
    """Generate a human-readable health report for one repository window.

    The report has four sections (issue lifecycle, reviewer insights,
    contributor friction, backlog health). Hour-based durations are formatted
    with :func:`repohealth.stats.format_hours`.
    """
    lifecycle = analytics.issue_lifecycle
    reviewers = analytics.reviewer_insights
    friction = analytics.contributor_friction
    backlog = analytics.backlog_health
    window = analytics.time_range

    lines: List[str] = [
        f"Repository: {analytics.repository.full_name}",
        f"Time range: {window.value} "
        f"({format_timestamp(window.start_date)} to {format_timestamp(window.end_date)})",
        "",
        "1) Issue Lifecycle",
        f"   Median time to first response: {format_hours(lifecycle.median_time_to_first_response)}",
        "   Median time to first meaningful response: "
        f"{format_hours(lifecycle.median_time_to_first_meaningful_response)}",
        f"   Median time to triage: {format_hours(lifecycle.median_time_to_triage)}",
        f"   Median time to resolution: {format_hours(lifecycle.median_time_to_resolution)}",
        f"   Stale after 30/60/90 days: {lifecycle.stale_issue_rate.after_30_days:.1f}% / "
        f"{lifecycle.stale_issue_rate.after_60_days:.1f}% / "
        f"{lifecycle.stale_issue_rate.after_90_days:.1f}%",
        f"   Reopened: {lifecycle.reopened_issue_rate:.1f}%",
        "",
        "2) Reviewer Insights",
        f"   Pull requests: {reviewers.total_prs}",
        f"   Median time to first review: {format_hours(reviewers.median_time_to_first_review)}",
        "   Median time from first review to merge: "
        f"{format_hours(reviewers.median_time_from_review_to_merge)}",
        f"   Merged without review: {reviewers.prs_merged_without_review}",
        f"   Closed without review: {reviewers.prs_closed_without_review}",
    ]

    if reviewers.top_reviewers:
        lines.append("   Top reviewers:")
        for reviewer in reviewers.top_reviewers:
            lines.append(
                f"     {reviewer.username}: {reviewer.prs_reviewed} reviews, "
                f"avg first review {format_hours(reviewer.avg_time_to_first_review)}, "
                f"{reviewer.approvals} approved, {reviewer.changes_requested} changes requested, "
                f"{reviewer.comments_only} commented"
            )

    if reviewers.top_contributors:
        lines.append("   Top contributors:")
        for contributor in reviewers.top_contributors:
            lines.append(
                f"     {contributor.username}: {contributor.commits} commits, "
                f"+{contributor.additions}/-{contributor.deletions} "
                f"(net {contributor.net_lines:+d})"
            )

    lines.extend(
        [
            "",
            "3) Contributor Friction",
            f"   First-time PRs: {friction.first_time_prs} "
            f"(merged {friction.first_time_merge_rate:.1f}%, "
            f"median review {format_hours(friction.first_time_median_time_to_review)}, "
            f"median review cycles {friction.first_time_median_review_cycles:g})",
            f"   Returning PRs: {friction.returning_prs} "
            f"(merged {friction.returning_merge_rate:.1f}%, "
            f"median review {format_hours(friction.returning_median_time_to_review)})",
            f"   Issue authors without a PR: {friction.first_time_issues_without_pr}",
            "",
            "4) Backlog Health",
            f"   Score: {backlog.score:.0f}/100 ({backlog.label})",
            f"   Open issues: {backlog.issues.total_open} "
            f"[{_histogram_line(backlog.issues.by_age)}]",
            f"   Unlabeled: {backlog.issues.unlabeled} "
            f"({backlog.issues.unlabeled_percentage:.1f}%)",
            f"   Orphan: {backlog.issues.orphan} ({backlog.issues.orphan_percentage:.1f}%)",
            f"   Open PRs: {backlog.pull_requests.total_open} "
            f"[{_histogram_line(backlog.pull_requests.by_age)}]",
            f"   Without review: {backlog.pull_requests.without_review} "
            f"({backlog.pull_requests.without_review_percentage:.1f}%)",
        ]
    )

    return "\n".join(lines)

"""Domain models for repository health analytics.

Input records model only the subset of GitHub payload fields the analyzers
need. Output records are immutable value objects that are rebuilt on every
analyzer call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

REVIEW_APPROVED = "APPROVED"
REVIEW_CHANGES_REQUESTED = "CHANGES_REQUESTED"
REVIEW_COMMENTED = "COMMENTED"
REVIEW_DISMISSED = "DISMISSED"


@dataclass(slots=True)
class Actor:
    """A GitHub account that authored or acted on a record."""

    login: str
    type: str = "User"


@dataclass(slots=True)
class Label:
    """An issue label."""

    name: str


@dataclass(slots=True)
class Repository:
    """Identity and headline numbers of the analyzed repository."""

    owner: str
    name: str
    full_name: str
    stars: int = 0
    forks: int = 0
    url: str = ""


@dataclass(slots=True)
class Issue:
    """Represents the minimal issue data required for lifecycle and backlog metrics."""

    number: int
    state: str
    created_at: datetime
    updated_at: datetime
    closed_at: Optional[datetime]
    author: Actor
    labels: List[Label] = field(default_factory=list)
    assignees: List[Actor] = field(default_factory=list)
    pull_request_url: Optional[str] = None
    title: str = ""


@dataclass(slots=True)
class Comment:
    """An issue comment. ``author`` is ``None`` for deleted accounts."""

    author: Optional[Actor]
    body: str
    created_at: datetime


@dataclass(slots=True)
class TimelineEvent:
    """An issue timeline event such as ``labeled``, ``assigned`` or ``reopened``."""

    event: str
    created_at: datetime
    actor: Optional[Actor] = None


@dataclass(slots=True)
class PullRequest:
    """Represents the minimal pull request data required for review metrics.

    ``commits``, ``additions`` and ``deletions`` stay ``None`` when the detail
    fetch for the pull request was skipped.
    """

    number: int
    state: str
    created_at: datetime
    updated_at: datetime
    closed_at: Optional[datetime]
    merged_at: Optional[datetime]
    author: Actor
    merged: bool
    commits: Optional[int] = None
    additions: Optional[int] = None
    deletions: Optional[int] = None
    title: str = ""


@dataclass(slots=True)
class Review:
    """A submitted pull request review."""

    id: int
    author: Optional[Actor]
    state: str
    submitted_at: datetime


@dataclass(slots=True)
class IssueWithDetails:
    """An issue together with its comments and timeline events."""

    issue: Issue
    comments: List[Comment] = field(default_factory=list)
    events: List[TimelineEvent] = field(default_factory=list)


@dataclass(slots=True)
class PullRequestWithDetails:
    """A pull request together with its reviews."""

    pull_request: PullRequest
    reviews: List[Review] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class StaleIssueRate:
    """Percentage of all issues still open past 30, 60 and 90 days."""

    after_30_days: float
    after_60_days: float
    after_90_days: float


@dataclass(frozen=True, slots=True)
class TimeSeriesPoint:
    """Issue activity for one day or week bucket."""

    date: datetime
    median_time_to_first_response: float
    median_time_to_resolution: float
    issues_created: int
    issues_closed: int


@dataclass(frozen=True, slots=True)
class IssueLifecycleMetrics:
    """Issue response, triage and resolution latencies in hours."""

    median_time_to_first_response: float
    median_time_to_first_meaningful_response: float
    median_time_to_triage: float
    median_time_to_resolution: float
    stale_issue_rate: StaleIssueRate
    reopened_issue_rate: float
    time_series: List[TimeSeriesPoint]


@dataclass(frozen=True, slots=True)
class ReviewerInsight:
    """One reviewer's review volume, dispositions and average first-review latency."""

    username: str
    prs_reviewed: int
    avg_time_to_first_review: float
    approvals: int
    changes_requested: int
    comments_only: int


@dataclass(frozen=True, slots=True)
class ContributorStats:
    """Commit and line totals for one pull request author."""

    username: str
    commits: int
    additions: int
    deletions: int
    net_lines: int


@dataclass(frozen=True, slots=True)
class ReviewerInsightsMetrics:
    """Review latency, unreviewed counts and reviewer/contributor leaderboards."""

    total_prs: int
    median_time_to_first_review: float
    median_time_from_review_to_merge: float
    prs_merged_without_review: int
    prs_closed_without_review: int
    top_reviewers: List[ReviewerInsight]
    top_contributors: List[ContributorStats]


@dataclass(frozen=True, slots=True)
class ContributorFrictionMetrics:
    """Outcomes of first-time versus returning pull requests within the batch."""

    first_time_prs: int
    returning_prs: int
    first_time_merge_rate: float
    returning_merge_rate: float
    first_time_median_time_to_review: float
    returning_median_time_to_review: float
    first_time_median_review_cycles: float
    first_time_issues_without_pr: int


@dataclass(frozen=True, slots=True)
class IssueBacklog:
    """Open issue ages, unlabeled and orphan counts."""

    total_open: int
    by_age: Dict[str, int]
    unlabeled: int
    unlabeled_percentage: float
    orphan: int
    orphan_percentage: float


@dataclass(frozen=True, slots=True)
class PullRequestBacklog:
    """Open pull request ages and how many lack a human review."""

    total_open: int
    by_age: Dict[str, int]
    without_review: int
    without_review_percentage: float


@dataclass(frozen=True, slots=True)
class BacklogHealthMetrics:
    """Present-day backlog breakdown folded into a 0-100 score."""

    score: float
    label: str
    issues: IssueBacklog
    pull_requests: PullRequestBacklog


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """The trailing window an analytics result covers."""

    value: str
    start_date: datetime
    end_date: datetime


@dataclass(frozen=True, slots=True)
class RepositoryAnalytics:
    """All four metric groups for one repository and one time window."""

    repository: Repository
    time_range: TimeWindow
    issue_lifecycle: IssueLifecycleMetrics
    reviewer_insights: ReviewerInsightsMetrics
    contributor_friction: ContributorFrictionMetrics
    backlog_health: BacklogHealthMetrics

"""Configuration parsing and validation for the repository health analytics tool."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .analytics import TIME_RANGES
from .errors import AuthenticationError, ConfigurationError

DEFAULT_API_URL = "https://api.github.com"


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the analytics generator."""

    owner: str
    repo: str
    time_range: str
    token: str
    api_url: str = DEFAULT_API_URL


def load_config(owner: str, repo: str, time_range: str) -> Config:
    """Build and validate application configuration.

    Args:
        owner: GitHub user or organization that owns the repository.
        repo: Repository name.
        time_range: One of :data:`repohealth.analytics.TIME_RANGES`.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If owner/repo are blank or the time range is unknown.
        AuthenticationError: If ``GITHUB_TOKEN`` is not configured.
    """
    owner = owner.strip()
    repo = repo.strip()
    if not owner or not repo:
        raise ConfigurationError("Both 'owner' and 'repo' must be non-empty.")

    if time_range not in TIME_RANGES:
        raise ConfigurationError(
            f"Invalid value for 'time_range': {time_range!r}. "
            f"Expected one of: {', '.join(TIME_RANGES)}."
        )

    token: str = os.getenv("GITHUB_TOKEN", "").strip()
    if not token:
        raise AuthenticationError(
            "Missing required GitHub token. "
            "Set the 'GITHUB_TOKEN' environment variable before running the analytics generator."
        )

    api_url = os.getenv("GITHUB_API_URL", "").strip() or DEFAULT_API_URL

    return Config(
        owner=owner,
        repo=repo,
        time_range=time_range,
        token=token,
        api_url=api_url.rstrip("/"),
    )

"""Application entry point for the repository health analytics tool."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional, Sequence

from .analytics import FETCH_TIME_RANGE, compute_repository_analytics, get_start_date
from .cli import parse_args
from .config import load_config
from .errors import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    DataValidationError,
)
from .github_client import GitHubClient
from .report import analytics_to_payload, generate_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_AUTHENTICATION = 3
EXIT_API = 4
EXIT_DATA_VALIDATION = 5


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging; ``LOG_LEVEL`` applies unless ``verbose`` is set."""
    level_name = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def orchestrate_analytics(argv: Optional[Sequence[str]] = None) -> int:
    """Fetch a repository batch, compute analytics and print the result.

    The batch always covers at least :data:`FETCH_TIME_RANGE`; the requested
    window is filtered from it.

    Returns:
        Process exit code.
    """
    try:
        args = parse_args(argv)
        configure_logging(args.verbose)

        config = load_config(owner=args.owner, repo=args.repo, time_range=args.time_range)
        client = GitHubClient(config=config)

        now = datetime.now(timezone.utc)
        fetch_start = min(
            get_start_date(FETCH_TIME_RANGE, now),
            get_start_date(config.time_range, now),
        )

        repository = client.get_repository()
        logger.info("Fetching issues and pull requests", extra={"repository": repository.full_name})
        issues = client.fetch_issues_with_details(fetch_start)
        pull_requests = client.fetch_pull_requests_with_details(fetch_start)
        logger.info(
            "Fetched repository batch",
            extra={"issues": len(issues), "pull_requests": len(pull_requests)},
        )

        analytics = compute_repository_analytics(
            repository=repository,
            issues=issues,
            pull_requests=pull_requests,
            time_range=config.time_range,
            now=now,
        )

        if args.output_format == "json":
            print(json.dumps(analytics_to_payload(analytics), indent=2))
        else:
            print(generate_report(analytics))
        return EXIT_OK
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION
    except AuthenticationError as exc:
        print(f"Authentication error: {exc}", file=sys.stderr)
        return EXIT_AUTHENTICATION
    except ApiError as exc:
        print(f"GitHub API error: {exc}", file=sys.stderr)
        return EXIT_API
    except DataValidationError as exc:
        print(f"Data validation error: {exc}", file=sys.stderr)
        return EXIT_DATA_VALIDATION
    except Exception:
        logger.exception("Unexpected error while generating analytics")
        return EXIT_UNEXPECTED


def main() -> None:
    """Console script entry point."""
    raise SystemExit(orchestrate_analytics())


if __name__ == "__main__":
    main()

"""Command-line argument parsing for the repository health analytics tool."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from .analytics import TIME_RANGES

OUTPUT_FORMATS = ("text", "json")


def _non_empty(value: str) -> str:
    """Parse and validate a non-blank CLI value.

    Raises:
        argparse.ArgumentTypeError: If value is empty or only whitespace.
    """
    stripped = value.strip()
    if not stripped:
        raise argparse.ArgumentTypeError("must not be empty")
    return stripped


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for analytics generation.

    Returns:
        Parsed CLI arguments containing repository owner and name, the time
        range to report, the output format and the verbosity flag.
    """
    parser = argparse.ArgumentParser(
        prog="repo-health-analytics",
        description=(
            "Compute engineering-health metrics for a GitHub repository "
            "(issue lifecycle, reviewer insights, contributor friction, backlog health)."
        ),
    )

    parser.add_argument(
        "--owner",
        type=_non_empty,
        required=True,
        help="GitHub user or organization that owns the repository.",
    )
    parser.add_argument(
        "--repo",
        type=_non_empty,
        required=True,
        help="GitHub repository name to analyze.",
    )
    parser.add_argument(
        "--time-range",
        choices=TIME_RANGES,
        default="1month",
        help="Trailing window to report (default: 1month).",
    )
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=OUTPUT_FORMATS,
        default="text",
        help="Output a text report or the JSON analytics payload (default: text).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser.parse_args(argv)

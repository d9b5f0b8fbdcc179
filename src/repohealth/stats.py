"""Statistics and duration helpers for repository health metrics.

This module provides utilities for:
- Computing an order-based median that is ``0`` for empty input.
- Computing percentages that are ``0`` for an empty population.
- Measuring whole hours and whole days between timestamps.
- Formatting hour-based durations for the text report.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

_SECONDS_PER_HOUR = 3600
_SECONDS_PER_DAY = 86400


def median(values: Sequence[float]) -> float:
    """Return the median of ``values``.

    The input is copied before sorting so the caller's sequence is left
    untouched. Even-length input yields the mean of the two middle values.

    Args:
        values: Numeric samples in any order.

    Returns:
        The median, or ``0`` when ``values`` is empty.
    """
    if not values:
        return 0

    ordered = sorted(values)
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[middle - 1] + ordered[middle]) / 2
    return ordered[middle]


def percentage(numerator: float, denominator: float) -> float:
    """Return ``numerator / denominator * 100``, or ``0`` when the denominator is ``0``."""
    if denominator == 0:
        return 0
    return numerator / denominator * 100


def hours_between(start: datetime, end: datetime) -> Optional[int]:
    """Return whole hours from ``start`` to ``end``, truncated toward zero.

    Returns ``None`` when the truncated interval is negative, which happens
    with clock skew or malformed source timestamps. Such samples are dropped
    by callers rather than recorded as zero.
    """
    hours = int((end - start).total_seconds() / _SECONDS_PER_HOUR)
    if hours < 0:
        return None
    return hours


def days_between(start: datetime, end: datetime) -> int:
    """Return whole days elapsed from ``start`` to ``end``, truncated toward zero."""
    return int((end - start).total_seconds() / _SECONDS_PER_DAY)


def format_hours(hours: Optional[float]) -> str:
    """Format an hour-based duration for display.

    Args:
        hours: Duration in hours.

    Returns:
        ``"n/a"`` when ``hours`` is ``None``, ``"<n>h"`` below two days and
        ``"<n.n>d"`` otherwise.
    """
    if hours is None:
        return "n/a"

    if hours < 48:
        return f"{hours:.0f}h"
    return f"{hours / 24:.1f}d"

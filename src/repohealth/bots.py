"""Detection of automated GitHub accounts.

Automated activity is excluded wherever a metric measures a human response.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional, TypeVar

from .models import Actor

T = TypeVar("T")

KNOWN_BOT_PREFIXES = (
    "dependabot",
    "renovate",
    "greenkeeper",
    "snyk-bot",
    "codecov",
    "allcontributors",
)


def is_bot(actor: Optional[Actor]) -> bool:
    """Return ``True`` when the actor is an automated account.

    An actor is a bot if its account type is ``Bot``, its login ends with
    ``[bot]``, or its login starts with one of :data:`KNOWN_BOT_PREFIXES`
    (case-insensitive). A missing actor is never a bot.
    """
    if actor is None:
        return False

    if actor.type == "Bot":
        return True

    login = actor.login or ""
    if login.endswith("[bot]"):
        return True

    return login.lower().startswith(KNOWN_BOT_PREFIXES)


def is_human(actor: Optional[Actor]) -> bool:
    """Return ``True`` for a present actor that is not a bot."""
    return actor is not None and not is_bot(actor)


def filter_bots(items: Iterable[T], key: Callable[[T], Optional[Actor]]) -> List[T]:
    """Keep only items whose actor, as returned by ``key``, is human."""
    return [item for item in items if is_human(key(item))]

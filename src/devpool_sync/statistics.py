"""
Reward and task statistics over the mirrored issue set.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from .labels import UNAVAILABLE, get_price
from .models import Statistics

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .models import Issue
    from .protocols import IssueTracker

logger: logging.Logger = logging.getLogger(__name__)

STATISTICS_PATH: Final[str] = "total-rewards.json"


def calculate_statistics(issues: Iterable[Issue]) -> Statistics:
    """Calculate total rewards and tasks statistics.

    An issue is completed when it is closed, otherwise assigned when it carries
    the "Unavailable" label, otherwise not assigned. The same bucket receives
    the issue's price. Issues without a usable price are counted as tasks only.
    """
    statistics = Statistics()
    rewards = statistics.rewards
    tasks = statistics.tasks

    for issue in issues:
        is_assigned = issue.has_label(UNAVAILABLE)
        is_completed = issue.is_closed

        tasks.total += 1
        if is_completed:
            tasks.completed += 1
        elif is_assigned:
            tasks.assigned += 1
        else:
            tasks.not_assigned += 1

        price = get_price(issue.labels, context=issue.url)
        if price is None:
            continue

        if is_completed:
            rewards.completed += price
        elif is_assigned:
            rewards.assigned += price
        else:
            rewards.not_assigned += price
        rewards.total += price

    return statistics


def write_statistics(tracker: IssueTracker, statistics: Statistics, path: str = STATISTICS_PATH) -> None:
    """Write statistics to the devpool repository, replacing any previous content."""
    tracker.write_json_file(path, statistics.to_dict(), "Update total rewards")
    logger.info(f"Total rewards written to {path}")

"""Data models shared by the reconciliation engine and its collaborators.

These models are a normalized view of remote issues. The GitHub adapter
converts API objects into them, and the engine, resolver and statistics
aggregator only ever see these types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal, NamedTuple

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

IssueState = Literal["open", "closed"]


@dataclass(frozen=True)
class Label:
    """A label attached to an issue. Two labels are equal when their names are."""

    name: str

    def has_prefix(self, prefix: str | tuple[str, ...]) -> bool:
        return self.name.startswith(prefix)


def make_labels(names: Iterable[str]) -> tuple[Label, ...]:
    """Build a label tuple from names, dropping duplicates but keeping order."""
    seen: dict[str, Label] = {}
    for name in names:
        if name not in seen:
            seen[name] = Label(name)
    return tuple(seen.values())


@dataclass
class Issue:
    """A partner or mirrored issue.

    `identifier` is the stable node id used for pairing, `number` is the
    per-repository handle used for API updates.
    """

    number: int
    identifier: str
    title: str
    body: str
    state: IssueState
    url: str
    assigned: bool = False
    labels: tuple[Label, ...] = ()
    merged: bool = False

    @property
    def label_names(self) -> list[str]:
        return [label.name for label in self.labels]

    @property
    def is_open(self) -> bool:
        return self.state == "open"

    @property
    def is_closed(self) -> bool:
        return self.state == "closed"

    def has_label(self, name: str) -> bool:
        return Label(name) in self.labels


@dataclass(frozen=True)
class Project:
    """A partner repository to mirror issues from."""

    url: str
    category: str | None = None


@dataclass
class ProjectRegistry:
    """Static list of partner project URLs with optional category labels."""

    urls: list[str] = field(default_factory=list)
    category: dict[str, str] = field(default_factory=dict)

    def project(self, url: str) -> Project:
        return Project(url=url, category=self.category.get(url))


@dataclass
class ProjectFilters:
    """Orgs or owner/repo entries to add to (`include`) or drop from (`exclude`) the registry."""

    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)


@dataclass
class IssuePair:
    """A mirrored issue together with its partner issue, if one still exists."""

    partner: Issue | None
    mirror: Issue
    partner_issues: list[Issue] = field(default_factory=list)


class StateChangeRule(NamedTuple):
    """An ordered rule deciding whether a mirrored issue should be opened or closed."""

    name: str
    cause: Callable[[IssuePair], bool]
    effect: IssueState
    reason: str


@dataclass
class Counters:
    """Reward or task counters split by assignment and completion."""

    not_assigned: int = 0
    assigned: int = 0
    completed: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "notAssigned": self.not_assigned,
            "assigned": self.assigned,
            "completed": self.completed,
            "total": self.total,
        }


@dataclass
class Statistics:
    """Reward and task totals over the mirrored issue set."""

    rewards: Counters = field(default_factory=Counters)
    tasks: Counters = field(default_factory=Counters)

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {"rewards": self.rewards.to_dict(), "tasks": self.tasks.to_dict()}

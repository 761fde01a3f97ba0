"""
Pytest configuration and fixtures.

The FakeTracker stands in for the GitHub API: it serves issues from memory
and records every mutation so tests can count remote calls per issue.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from devpool_sync.exceptions import RemoteCallError
from devpool_sync.models import Issue, make_labels

if TYPE_CHECKING:
    from collections.abc import Callable

    from devpool_sync.models import IssueState

DEVPOOL_URL = "https://github.com/ubiquity/devpool-directory"


class FakeTracker:
    """In-memory IssueTracker recording every mutation."""

    def __init__(self) -> None:
        self.partner_issues: dict[tuple[str, str], list[Issue]] = {}
        self.mirrors: list[Issue] = []
        self.org_repos: dict[str, list[str]] = {}
        self.failing_repos: set[tuple[str, str]] = set()
        self.failing_numbers: set[int] = set()
        self.failing_metadata_numbers: set[int] = set()
        self.fail_create: bool = False
        self.created: list[Issue] = []
        self.updates: list[tuple[int, dict[str, Any]]] = []
        self.files: dict[str, dict[str, Any]] = {}

    def add_partner_issue(self, owner: str, repo: str, issue: Issue) -> None:
        self.partner_issues.setdefault((owner, repo), []).append(issue)

    def list_issues(self, owner: str, repo: str) -> list[Issue]:
        if (owner, repo) in self.failing_repos:
            msg = f"Failed to list issues of {owner}/{repo}: 502"
            raise RemoteCallError(msg)
        return list(self.partner_issues.get((owner, repo), []))

    def list_repo_urls(self, org_or_repo: str) -> list[str]:
        if org_or_repo not in self.org_repos:
            msg = f"Getting repositories of {org_or_repo} failed: 404"
            raise RemoteCallError(msg)
        return self.org_repos[org_or_repo]

    def list_mirrored_issues(self) -> list[Issue]:
        # Copies, like a fresh API response
        return [
            Issue(**{**mirror.__dict__, "labels": tuple(mirror.labels)})
            for mirror in self.mirrors
        ]

    def create_issue(self, title: str, body: str, labels: list[str]) -> Issue:
        if self.fail_create:
            msg = f"Failed to create issue '{title}': 403"
            raise RemoteCallError(msg)
        number = len(self.mirrors) + 1
        issue = Issue(
            number=number,
            identifier=f"DEVPOOL_{number}",
            title=title,
            body=body,
            state="open",
            url=f"{DEVPOOL_URL}/issues/{number}",
            labels=make_labels(labels),
        )
        self.mirrors.append(issue)
        self.created.append(issue)
        return Issue(**{**issue.__dict__})

    def update_issue(
        self,
        number: int,
        *,
        title: str | None = None,
        body: str | None = None,
        labels: list[str] | None = None,
        state: IssueState | None = None,
    ) -> None:
        if number in self.failing_numbers:
            msg = f"Failed to update issue #{number}: 500"
            raise RemoteCallError(msg)
        if number in self.failing_metadata_numbers and state is None:
            msg = f"Failed to update issue #{number}: 422"
            raise RemoteCallError(msg)
        fields: dict[str, Any] = {"title": title, "body": body, "labels": labels, "state": state}
        fields = {key: value for key, value in fields.items() if value is not None}
        self.updates.append((number, fields))
        mirror = next(issue for issue in self.mirrors if issue.number == number)
        for key, value in fields.items():
            setattr(mirror, key, make_labels(value) if key == "labels" else value)

    def write_json_file(self, path: str, content: dict[str, Any], message: str) -> None:
        self.files[path] = content

    def updates_for(self, number: int) -> list[dict[str, Any]]:
        return [fields for issue_number, fields in self.updates if issue_number == number]

    def state_updates_for(self, number: int) -> list[dict[str, Any]]:
        return [fields for fields in self.updates_for(number) if "state" in fields]

    def metadata_updates_for(self, number: int) -> list[dict[str, Any]]:
        return [fields for fields in self.updates_for(number) if "state" not in fields]


class FakePoster:
    """SocialPoster returning sequential post ids."""

    def __init__(self, *, error: Exception | None = None) -> None:
        self.posts: list[str] = []
        self.error = error

    def post(self, text: str) -> str:
        if self.error is not None:
            raise self.error
        self.posts.append(text)
        return f"tweet-{len(self.posts)}"


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def poster() -> FakePoster:
    return FakePoster()


@pytest.fixture
def make_issue() -> Callable[..., Issue]:
    """Factory for partner issues in github.com/owner/repo."""

    def _make_issue(
        number: int = 1,
        *,
        labels: list[str] | None = None,
        state: IssueState = "open",
        assigned: bool = False,
        merged: bool = False,
        title: str | None = None,
        owner: str = "owner",
        repo: str = "repo",
        identifier: str | None = None,
    ) -> Issue:
        return Issue(
            number=number,
            identifier=identifier or f"I_{owner}_{repo}_{number}",
            title=title or f"Issue {number}",
            body="Partner description",
            state=state,
            url=f"https://github.com/{owner}/{repo}/issues/{number}",
            assigned=assigned,
            labels=make_labels(["Price: 100 USD", "Time: <1 Hour"] if labels is None else labels),
            merged=merged,
        )

    return _make_issue


@pytest.fixture
def failing_poster() -> FakePoster:
    return FakePoster(error=RemoteCallError("Failed to post tweet: 429"))

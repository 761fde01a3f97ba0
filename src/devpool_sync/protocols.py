"""Protocols defining the contracts of the engine's external collaborators.

The synchronization architecture separates concerns into:

1. IssueTracker: Reads and mutates issues in partner repositories and the devpool
2. SocialPoster: Announces newly mirrored issues
3. SyncEngine: Decides what to create, update, open or close

This separation allows:
- Testing the engine against in-memory fakes
- Keeping retry and pagination policy inside the tracker implementation
- Replacing the social network without touching reconciliation code
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .models import Issue, IssueState


class IssueTracker(Protocol):
    """Protocol for the remote issue tracking system.

    Partner repositories are addressed by owner and name. Mutations always
    target the devpool repository the tracker was created for.

    Implementations raise RemoteCallError for any failed remote call.
    """

    def list_issues(self, owner: str, repo: str) -> list[Issue]:
        """Return all issues (open and closed, excluding pull requests) of a repository."""
        ...

    def list_repo_urls(self, org_or_repo: str) -> list[str]:
        """Return repository URLs of an org ("org") or of a single repository ("owner/repo")."""
        ...

    def list_mirrored_issues(self) -> list[Issue]:
        """Return all issues of the devpool repository."""
        ...

    def create_issue(self, title: str, body: str, labels: list[str]) -> Issue:
        """Create an issue in the devpool repository."""
        ...

    def update_issue(
        self,
        number: int,
        *,
        title: str | None = None,
        body: str | None = None,
        labels: list[str] | None = None,
        state: IssueState | None = None,
    ) -> None:
        """Update the given fields of a devpool issue in a single call."""
        ...

    def write_json_file(self, path: str, content: dict[str, Any], message: str) -> None:
        """Create or overwrite a JSON file in the devpool repository."""
        ...


class SocialPoster(Protocol):
    """Protocol for posting announcements."""

    def post(self, text: str) -> str:
        """Publish text and return the id of the created post."""
        ...

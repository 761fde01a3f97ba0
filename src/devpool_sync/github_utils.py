"""
GitHub implementation of the IssueTracker protocol, built on PyGithub.
"""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any, Final

import requests
from github import Auth, Github, GithubException, UnknownObjectException

from . import utils
from .exceptions import RemoteCallError
from .models import Issue, make_labels

if TYPE_CHECKING:
    from github.Issue import Issue as GithubIssue
    from github.Repository import Repository

    from .models import IssueState

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VAR: Final[str] = "DEVPOOL_GITHUB_API_TOKEN"  # noqa: S105
_DEFAULT_TOKEN_PASS_PATH: Final[str] = "github/devpool/token"  # noqa: S105


def get_token(pass_path: str | None = None) -> str | None:
    """Get GitHub token from pass path, env var DEVPOOL_GITHUB_API_TOKEN, or default pass location."""
    if pass_path:
        return utils.get_pass_value(pass_path)

    token: str | None = os.environ.get(_TOKEN_ENV_VAR)
    if token:
        return token

    try:
        return utils.get_pass_value(_DEFAULT_TOKEN_PASS_PATH)
    except utils.PassError:
        logger.warning("No GitHub token specified nor found")
        return None


def get_client(token: str | None = None) -> Github:
    """Get a GitHub client using the token, anonymous if there is none."""
    if token:
        return Github(auth=Auth.Token(token))
    return Github()


def is_authorized_account(client: Github, login: str) -> bool:
    """Check if the authenticated user is `login`.

    Only the canonical devpool account may point mirror bodies at partner
    issues; forks would otherwise spam partners with backlinks.
    """
    try:
        return client.get_user().login == login
    except (GithubException, requests.RequestException) as e:
        msg = f"Failed to get authenticated user: {e}"
        raise RemoteCallError(msg) from e


def _is_merged(gh_issue: GithubIssue) -> bool:
    pull_request = gh_issue.pull_request
    return pull_request is not None and getattr(pull_request, "merged_at", None) is not None


def to_issue(gh_issue: GithubIssue) -> Issue:
    """Convert a PyGithub issue into the engine's Issue model."""
    return Issue(
        number=gh_issue.number,
        identifier=gh_issue.node_id,
        title=gh_issue.title,
        body=gh_issue.body or "",
        state="closed" if gh_issue.state == "closed" else "open",
        url=gh_issue.html_url,
        assigned=gh_issue.assignee is not None,
        labels=make_labels(label.name for label in gh_issue.labels),
        merged=_is_merged(gh_issue),
    )


class GitHubTracker:
    """Issue tracker backed by the GitHub REST API.

    Issues fetched from the devpool repository are kept so updates don't need
    an extra request per issue.
    """

    def __init__(self, client: Github, devpool_repo_path: str) -> None:
        self.client: Github = client
        self.devpool_repo_path: str = devpool_repo_path
        self._devpool_repo: Repository | None = None
        self._devpool_issues: dict[int, GithubIssue] = {}

    @property
    def devpool_repo(self) -> Repository:
        if self._devpool_repo is None:
            try:
                self._devpool_repo = self.client.get_repo(self.devpool_repo_path)
            except (GithubException, requests.RequestException) as e:
                msg = f"Failed to get devpool repository {self.devpool_repo_path}: {e}"
                raise RemoteCallError(msg) from e
        return self._devpool_repo

    @staticmethod
    def _issues(repo: Repository) -> list[GithubIssue]:
        # The issues endpoint also returns pull requests
        return [issue for issue in repo.get_issues(state="all") if issue.pull_request is None]

    def list_issues(self, owner: str, repo: str) -> list[Issue]:
        try:
            return [to_issue(issue) for issue in self._issues(self.client.get_repo(f"{owner}/{repo}"))]
        except (GithubException, requests.RequestException) as e:
            msg = f"Failed to list issues of {owner}/{repo}: {e}"
            raise RemoteCallError(msg) from e

    def list_mirrored_issues(self) -> list[Issue]:
        try:
            gh_issues = self._issues(self.devpool_repo)
        except (GithubException, requests.RequestException) as e:
            msg = f"Failed to list issues of {self.devpool_repo_path}: {e}"
            raise RemoteCallError(msg) from e
        self._devpool_issues = {issue.number: issue for issue in gh_issues}
        return [to_issue(issue) for issue in gh_issues]

    def list_repo_urls(self, org_or_repo: str) -> list[str]:
        params = org_or_repo.strip().strip("/").split("/")
        try:
            if len(params) == 1:
                return [repo.html_url for repo in self.client.get_organization(params[0]).get_repos()]
            if len(params) == 2:
                return [self.client.get_repo(f"{params[0]}/{params[1]}").html_url]
        except (GithubException, requests.RequestException) as e:
            msg = f"Getting repositories of {org_or_repo} failed: {e}"
            raise RemoteCallError(msg) from e

        logger.warning(f"Neither org nor repo GitHub provided: {org_or_repo}")
        return []

    def create_issue(self, title: str, body: str, labels: list[str]) -> Issue:
        try:
            gh_issue = self.devpool_repo.create_issue(title=title, body=body, labels=labels)
        except (GithubException, requests.RequestException) as e:
            msg = f"Failed to create issue '{title}': {e}"
            raise RemoteCallError(msg) from e
        self._devpool_issues[gh_issue.number] = gh_issue
        return to_issue(gh_issue)

    def update_issue(
        self,
        number: int,
        *,
        title: str | None = None,
        body: str | None = None,
        labels: list[str] | None = None,
        state: IssueState | None = None,
    ) -> None:
        fields: dict[str, Any] = {"title": title, "body": body, "labels": labels, "state": state}
        fields = {key: value for key, value in fields.items() if value is not None}
        try:
            gh_issue = self._devpool_issues.get(number) or self.devpool_repo.get_issue(number)
            gh_issue.edit(**fields)
        except (GithubException, requests.RequestException) as e:
            msg = f"Failed to update issue #{number}: {e}"
            raise RemoteCallError(msg) from e

    def write_json_file(self, path: str, content: dict[str, Any], message: str) -> None:
        text = json.dumps(content, indent=2)
        repo = self.devpool_repo
        try:
            try:
                existing = repo.get_contents(path)
            except UnknownObjectException:
                logger.info(f"File {path} doesn't exist yet.")
                repo.create_file(path, message, text)
                return
            if isinstance(existing, list):
                msg = f"{path} is a directory in {self.devpool_repo_path}"
                raise RemoteCallError(msg)
            repo.update_file(path, message, text, existing.sha)
        except (GithubException, requests.RequestException) as e:
            msg = f"Failed to write {path}: {e}"
            raise RemoteCallError(msg) from e

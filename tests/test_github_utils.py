"""
Tests for the GitHub tracker.
"""

from __future__ import annotations

import json
from unittest.mock import Mock, patch

import pytest
import requests
from github import GithubException, UnknownObjectException

from devpool_sync.exceptions import RemoteCallError
from devpool_sync.github_utils import GitHubTracker, get_token, is_authorized_account, to_issue


def _gh_label(name: str) -> Mock:
    label = Mock()
    label.name = name
    return label


def _gh_issue(number: int = 1, *, pull_request: object = None, assignee: object = None, state: str = "open") -> Mock:
    issue = Mock()
    issue.number = number
    issue.node_id = f"I_node_{number}"
    issue.title = f"Issue {number}"
    issue.body = None
    issue.state = state
    issue.html_url = f"https://github.com/owner/repo/issues/{number}"
    issue.assignee = assignee
    issue.labels = [_gh_label("Price: 10 USD"), _gh_label("bug")]
    issue.pull_request = pull_request
    return issue


@pytest.mark.unit
class TestToIssue:
    def test_conversion(self) -> None:
        issue = to_issue(_gh_issue(3, assignee=Mock(login="dev"), state="closed"))

        assert issue.number == 3
        assert issue.identifier == "I_node_3"
        assert issue.body == ""
        assert issue.state == "closed"
        assert issue.assigned
        assert issue.label_names == ["Price: 10 USD", "bug"]
        assert not issue.merged

    def test_merged_pull_request(self) -> None:
        issue = to_issue(_gh_issue(pull_request=Mock(merged_at="2024-01-15T10:30:45Z")))

        assert issue.merged


@pytest.mark.unit
class TestGitHubTracker:
    def test_list_issues_skips_pull_requests(self) -> None:
        client = Mock()
        client.get_repo.return_value.get_issues.return_value = [_gh_issue(1), _gh_issue(2, pull_request=Mock())]

        issues = GitHubTracker(client, "ubiquity/devpool-directory").list_issues("owner", "repo")

        client.get_repo.assert_called_once_with("owner/repo")
        client.get_repo.return_value.get_issues.assert_called_once_with(state="all")
        assert [issue.number for issue in issues] == [1]

    def test_list_issues_error(self) -> None:
        client = Mock()
        client.get_repo.side_effect = GithubException(404, "Not Found", None)

        with pytest.raises(RemoteCallError, match="Failed to list issues of owner/repo"):
            GitHubTracker(client, "ubiquity/devpool-directory").list_issues("owner", "repo")

    def test_list_issues_network_error(self) -> None:
        client = Mock()
        client.get_repo.side_effect = requests.ConnectionError("Connection reset by peer")

        with pytest.raises(RemoteCallError, match="Connection reset by peer"):
            GitHubTracker(client, "ubiquity/devpool-directory").list_issues("owner", "repo")

    def test_write_file_timeout(self) -> None:
        client = Mock()
        client.get_repo.return_value.get_contents.side_effect = requests.Timeout("read timed out")

        with pytest.raises(RemoteCallError, match="Failed to write total-rewards.json"):
            GitHubTracker(client, "ubiquity/devpool-directory").write_json_file("total-rewards.json", {}, "Update total rewards")

    def test_update_uses_listed_issue(self) -> None:
        client = Mock()
        gh_issue = _gh_issue(5)
        client.get_repo.return_value.get_issues.return_value = [gh_issue]
        tracker = GitHubTracker(client, "ubiquity/devpool-directory")
        tracker.list_mirrored_issues()

        tracker.update_issue(5, title="New", labels=["a"])

        gh_issue.edit.assert_called_once_with(title="New", labels=["a"])
        client.get_repo.return_value.get_issue.assert_not_called()

    def test_update_state_only(self) -> None:
        client = Mock()
        tracker = GitHubTracker(client, "ubiquity/devpool-directory")

        tracker.update_issue(7, state="closed")

        client.get_repo.return_value.get_issue.assert_called_once_with(7)
        client.get_repo.return_value.get_issue.return_value.edit.assert_called_once_with(state="closed")

    def test_update_error(self) -> None:
        client = Mock()
        client.get_repo.return_value.get_issue.return_value.edit.side_effect = GithubException(500, "boom", None)

        with pytest.raises(RemoteCallError, match="Failed to update issue #7"):
            GitHubTracker(client, "ubiquity/devpool-directory").update_issue(7, state="closed")

    def test_create_issue(self) -> None:
        client = Mock()
        client.get_repo.return_value.create_issue.return_value = _gh_issue(9)

        issue = GitHubTracker(client, "ubiquity/devpool-directory").create_issue("Title", "Body", ["x"])

        client.get_repo.assert_called_once_with("ubiquity/devpool-directory")
        client.get_repo.return_value.create_issue.assert_called_once_with(title="Title", body="Body", labels=["x"])
        assert issue.number == 9

    def test_list_org_repo_urls(self) -> None:
        client = Mock()
        client.get_organization.return_value.get_repos.return_value = [Mock(html_url="https://github.com/org/a")]

        assert GitHubTracker(client, "o/r").list_repo_urls("org") == ["https://github.com/org/a"]

    def test_list_single_repo_url(self) -> None:
        client = Mock()
        client.get_repo.return_value.html_url = "https://github.com/org/a"

        assert GitHubTracker(client, "o/r").list_repo_urls("org/a") == ["https://github.com/org/a"]

    def test_list_repo_urls_invalid_entry(self) -> None:
        assert GitHubTracker(Mock(), "o/r").list_repo_urls("a/b/c") == []

    def test_write_new_file(self) -> None:
        client = Mock()
        repo = client.get_repo.return_value
        repo.get_contents.side_effect = UnknownObjectException(404, "Not Found", None)

        GitHubTracker(client, "o/r").write_json_file("total-rewards.json", {"a": 1}, "Update total rewards")

        repo.create_file.assert_called_once_with(
            "total-rewards.json", "Update total rewards", json.dumps({"a": 1}, indent=2)
        )

    def test_overwrite_existing_file(self) -> None:
        client = Mock()
        repo = client.get_repo.return_value
        repo.get_contents.return_value = Mock(sha="abc123")

        GitHubTracker(client, "o/r").write_json_file("total-rewards.json", {"a": 1}, "Update total rewards")

        repo.update_file.assert_called_once_with(
            "total-rewards.json", "Update total rewards", json.dumps({"a": 1}, indent=2), "abc123"
        )


@pytest.mark.unit
class TestAuthentication:
    def test_is_authorized_account(self) -> None:
        client = Mock()
        client.get_user.return_value.login = "ubiquity"

        assert is_authorized_account(client, "ubiquity")
        assert not is_authorized_account(client, "someone-else")

    def test_is_authorized_account_network_error(self) -> None:
        client = Mock()
        client.get_user.side_effect = requests.ConnectionError("no route to host")

        with pytest.raises(RemoteCallError, match="Failed to get authenticated user"):
            is_authorized_account(client, "ubiquity")

    def test_token_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DEVPOOL_GITHUB_API_TOKEN", "secret")

        assert get_token() == "secret"

    @patch("devpool_sync.github_utils.utils.get_pass_value")
    def test_token_from_pass_path(self, mock_get_pass_value: Mock) -> None:
        mock_get_pass_value.return_value = "from-pass"

        assert get_token("github/token") == "from-pass"
        mock_get_pass_value.assert_called_once_with("github/token")

"""
Pairing of partner issues with their mirrored devpool issues.

A mirrored issue carries an "id: <identifier>" label holding the partner
issue's node id. That label is the only thing used for pairing, so partner
issues can be renamed or moved without losing their mirror.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlparse

from .exceptions import ConfigurationError
from .labels import ID_PREFIX, PARTNER_PREFIX, find_label, label_value

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .models import Issue


def get_repo_credentials(url: str) -> tuple[str, str]:
    """Return owner and repository names from a project or issue URL.

    Raises:
        ConfigurationError: If the URL has no owner or repository segment
    """
    path = urlparse(url.strip()).path.split("/")
    owner = path[1] if len(path) > 1 else ""
    repo = path[2] if len(path) > 2 else ""
    if not owner or not repo:
        msg = f"Missing owner name or repo name in [{url}]"
        raise ConfigurationError(msg)
    return owner, repo


def get_label_value(issue: Issue, prefix: str) -> str | None:
    """Return the value of the first label starting with `prefix`.

    Example: "Partner: my/repo" -> "my/repo", "id: 123qwe" -> "123qwe"
    """
    label = find_label(issue.labels, prefix)
    return label_value(label.name) if label else None


def find_issue_by_label(issues: Iterable[Issue], name: str) -> Issue | None:
    return next((issue for issue in issues if issue.has_label(name)), None)


def find_mirror(mirrors: Iterable[Issue], partner: Issue) -> Issue | None:
    """Return the mirrored issue of a partner issue, if one exists."""
    return find_issue_by_label(mirrors, f"id: {partner.identifier}")


def find_partner(partners: Iterable[Issue], mirror: Issue) -> Issue | None:
    """Return the partner issue a mirrored issue was created from, if it still exists."""
    identifier = get_label_value(mirror, ID_PREFIX)
    if identifier is None:
        return None
    return next((issue for issue in partners if issue.identifier == identifier), None)


def pair_issues(partners: Iterable[Issue], mirrors: Iterable[Issue]) -> list[tuple[Issue, Issue | None]]:
    """Pair every partner issue with its mirrored issue (None when not mirrored yet)."""
    by_identifier: dict[str, Issue] = {}
    for mirror in mirrors:
        identifier = get_label_value(mirror, ID_PREFIX)
        if identifier is not None:
            by_identifier.setdefault(identifier, mirror)
    return [(partner, by_identifier.get(partner.identifier)) for partner in partners]


def find_orphans(partners: Iterable[Issue], mirrors: Iterable[Issue], owner: str, repo: str) -> list[Issue]:
    """Return mirrors of `owner/repo` whose partner issue is no longer listed in that repository."""
    identifiers = {partner.identifier for partner in partners}
    full_name = f"{owner}/{repo}".lower()
    orphans: list[Issue] = []
    for mirror in mirrors:
        partner_name = get_label_value(mirror, PARTNER_PREFIX)
        if partner_name is None or partner_name.lower() != full_name:
            continue
        if get_label_value(mirror, ID_PREFIX) not in identifiers:
            orphans.append(mirror)
    return orphans

"""
Project registry loading and include/exclude filtering.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .exceptions import ConfigurationError, SyncError
from .models import ProjectFilters, ProjectRegistry
from .resolver import get_repo_credentials

if TYPE_CHECKING:
    from .protocols import IssueTracker

logger: logging.Logger = logging.getLogger(__name__)


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        msg = f"Invalid JSON in {path}: {e}"
        raise ConfigurationError(msg) from e


def _string_list(data: dict[str, Any], key: str, path: Path) -> list[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        msg = f"'{key}' in {path} must be a list of strings"
        raise ConfigurationError(msg)
    return value


def load_registry(path: str | Path) -> ProjectRegistry:
    """Load the project registry ({"urls": [...], "category": {url: label}}).

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    path = Path(path)
    try:
        data = _read_json(path)
    except FileNotFoundError as e:
        msg = f"Project registry {path} not found"
        raise ConfigurationError(msg) from e
    if not isinstance(data, dict):
        msg = f"Project registry {path} must be a JSON object"
        raise ConfigurationError(msg)

    category = data.get("category") or {}
    if not isinstance(category, dict):
        msg = f"'category' in {path} must be an object"
        raise ConfigurationError(msg)
    return ProjectRegistry(urls=_string_list(data, "urls", path), category={str(k): str(v) for k, v in category.items()})


def load_filters(path: str | Path) -> ProjectFilters:
    """Load include/exclude filters ({"in": [...], "out": [...]}); a missing file means no filters."""
    path = Path(path)
    try:
        data = _read_json(path)
    except FileNotFoundError:
        logger.debug(f"No project filters at {path}")
        return ProjectFilters()
    if not isinstance(data, dict):
        msg = f"Project filters {path} must be a JSON object"
        raise ConfigurationError(msg)
    return ProjectFilters(include=_string_list(data, "in", path), exclude=_string_list(data, "out", path))


def _full_name(url: str) -> tuple[str, str] | None:
    try:
        owner, repo = get_repo_credentials(url)
    except ConfigurationError:
        return None
    return owner.lower(), repo.lower()


def _matches(url: str, entry: str) -> bool:
    """Check if a URL belongs to an org ("org") or is a repository ("owner/repo")."""
    name = _full_name(url)
    if name is None:
        return False
    owner, repo = name
    parts = entry.strip().strip("/").lower().split("/")
    if len(parts) == 1:
        return owner == parts[0]
    return [owner, repo] == parts


def get_project_urls(
    tracker: IssueTracker,
    registry: ProjectRegistry,
    filters: ProjectFilters,
    errors: list[str] | None = None,
) -> list[str]:
    """Return the project URLs to sync.

    Starts from the registry, adds every repository of each include entry and
    removes URLs matching an exclude entry unless an include entry also
    matches them (include wins).

    Args:
        tracker: Tracker used to expand include entries into repository URLs
        registry: Static project registry
        filters: Include/exclude org-or-repo entries
        errors: Optional list collecting messages of include entries that failed

    Returns:
        Project URLs in registry order followed by included ones, without duplicates
    """
    urls: dict[str, None] = dict.fromkeys(registry.urls)

    for entry in filters.include:
        try:
            repo_urls = tracker.list_repo_urls(entry)
        except SyncError as e:
            msg = f"Getting repositories of {entry} failed: {e}"
            logger.error(msg)
            if errors is not None:
                errors.append(msg)
            continue
        for url in repo_urls:
            urls.setdefault(url)

    for entry in filters.exclude:
        for url in list(urls):
            if not _matches(url, entry):
                continue
            if any(_matches(url, included) for included in filters.include):
                logger.debug(f"Keeping {url}: excluded by {entry} but explicitly included")
                continue
            logger.debug(f"Excluding {url} ({entry})")
            del urls[url]

    return list(urls)

"""Reconciliation engine mirroring partner issues into the devpool repository.

For every partner project the engine pairs partner issues with their mirrored
issues and decides, per pair, one of:

- create: the partner issue is not mirrored yet (and qualifies for mirroring)
- update: title, body or labels of the mirror drifted from the partner issue
- transition: the mirror must be closed or reopened

Sync Flow
---------
    list mirrored issues (once per run)
           │
           ▼
    for each project URL ──► list partner issues ──► pair by "id: <node id>" label
           │                                               │
           │                         ┌─────────────────────┴──────────────┐
           │                         ▼                                    ▼
           │                 no mirror: create_mirror           mirror: update_mirror
           │                 (+ social post, cross-ref)                 + transition_mirror
           ▼
    close orphaned mirrors of the project (partner issue gone)
           │
           ▼
    re-list mirrored issues ──► calculate_statistics ──► write_statistics

State Transitions
-----------------
STATE_CHANGE_RULES is an ordered list; order is significant. The first rule
whose cause holds and whose effect differs from the mirror's state wins;
later rules are not applied, and one that asks for the opposite state is
logged as a conflict. At most one state change is issued per mirror
and run.

Error Handling
--------------
Any SyncError raised while handling a pair or a project is logged and
recorded in SyncReport.errors; the run continues with the next unit of work.
A failed metadata update does not stop the state change of the same mirror.
Nothing is retried here; retry policy belongs to the tracker implementation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exceptions import ConfigurationError, CrossReferenceError, SyncError
from .labels import ID_PREFIX, has_price_label, reconcile_labels, same_labels, without_unavailable
from .models import IssuePair, ProjectFilters, StateChangeRule, make_labels
from .projects import get_project_urls
from .resolver import find_mirror, find_orphans, get_label_value, get_repo_credentials, pair_issues
from .social import get_social_media_text
from .statistics import STATISTICS_PATH, calculate_statistics, write_statistics

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from .crossref import CrossReferenceMap
    from .models import Issue, Project, ProjectRegistry, Statistics
    from .protocols import IssueTracker, SocialPoster

logger = logging.getLogger(__name__)


def _always() -> bool:
    return True


@dataclass
class SyncConfig:
    """Everything the engine needs for a run.

    `can_rewrite_body` tells whether this run may point mirror bodies at
    partner URLs. Forks of the devpool must not, or they would spam partner
    issues with backlinks.
    """

    tracker: IssueTracker
    registry: ProjectRegistry
    filters: ProjectFilters = field(default_factory=ProjectFilters)
    poster: SocialPoster | None = None
    cross_references: CrossReferenceMap | None = None
    can_rewrite_body: Callable[[], bool] = _always
    statistics_path: str = STATISTICS_PATH


@dataclass
class SyncReport:
    """Outcome of a sync run."""

    projects_processed: int = 0
    issues_created: int = 0
    issues_updated: int = 0
    state_changes: int = 0
    errors: list[str] = field(default_factory=list)
    statistics: Statistics | None = None

    @property
    def success(self) -> bool:
        return not self.errors


# ---------------------------------------------------------------------------
# State change rules
# ---------------------------------------------------------------------------


def _missing_in_partner(pair: IssuePair) -> bool:
    identifier = get_label_value(pair.mirror, ID_PREFIX)
    return not any(issue.identifier == identifier for issue in pair.partner_issues)


def _no_price_labels(pair: IssuePair) -> bool:
    # The mirror's price label is derived from the partner's in the same pass
    return pair.partner is not None and not has_price_label(pair.partner.labels) and pair.mirror.is_open


def _merged(pair: IssuePair) -> bool:
    partner = pair.partner
    return partner is not None and partner.is_closed and partner.merged and pair.mirror.is_open


def _assigned_and_closed(pair: IssuePair) -> bool:
    partner = pair.partner
    return partner is not None and partner.is_closed and partner.assigned and pair.mirror.is_open


def _closed_not_merged(pair: IssuePair) -> bool:
    partner = pair.partner
    return partner is not None and partner.is_closed and pair.mirror.is_open


def _assigned_and_open(pair: IssuePair) -> bool:
    partner = pair.partner
    return partner is not None and partner.is_open and partner.assigned and pair.mirror.is_open


def _reopened_merged(pair: IssuePair) -> bool:
    partner = pair.partner
    return (
        partner is not None
        and partner.is_open
        and partner.merged
        and not partner.assigned
        and has_price_label(partner.labels)
        and pair.mirror.is_closed
    )


def _reopened_unassigned(pair: IssuePair) -> bool:
    partner = pair.partner
    return (
        partner is not None
        and partner.is_open
        and not partner.assigned
        and has_price_label(partner.labels)
        and pair.mirror.is_closed
    )


STATE_CHANGE_RULES: tuple[StateChangeRule, ...] = (
    StateChangeRule("missing-in-partner", _missing_in_partner, "closed", "Closed (missing in partners)"),
    StateChangeRule("no-price-labels", _no_price_labels, "closed", "Closed (no price labels)"),
    StateChangeRule("merged", _merged, "closed", "Closed (merged)"),
    StateChangeRule("assigned-and-closed", _assigned_and_closed, "closed", "Closed (assigned-closed)"),
    StateChangeRule("closed-not-merged", _closed_not_merged, "closed", "Closed (not merged)"),
    StateChangeRule("assigned-and-open", _assigned_and_open, "closed", "Closed (assigned-open)"),
    StateChangeRule("reopened-merged", _reopened_merged, "open", "Reopened (merged)"),
    StateChangeRule("reopened-unassigned", _reopened_unassigned, "open", "Reopened (unassigned)"),
)


def select_transition(pair: IssuePair, rules: Sequence[StateChangeRule] = STATE_CHANGE_RULES) -> StateChangeRule | None:
    """Return the state change to apply to a mirror, or None if its state is right.

    Args:
        pair: The mirrored issue and its partner issue
        rules: Rules in precedence order

    Returns:
        The first rule whose cause holds and whose effect differs from the
        mirror's current state. A later rule that also holds but asks for the
        opposite effect is logged as a conflict and not applied.
    """
    selected: StateChangeRule | None = None
    for rule in rules:
        if not rule.cause(pair):
            continue
        if selected is None:
            if rule.effect != pair.mirror.state:
                selected = rule
        elif rule.effect != selected.effect:
            logger.error(
                f"Rule conflict on {pair.mirror.url}: {rule.name} asks for {rule.effect}, "
                f"keeping {selected.name} ({selected.effect})"
            )
    return selected


def render_body(partner_issue: Issue) -> str:
    """Body of a mirrored issue: the URL of its partner issue."""
    return partner_issue.url


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class SyncEngine:
    """Synchronizes the devpool repository with partner projects.

    Usage:
        config = SyncConfig(tracker=GitHubTracker(client, "ubiquity/devpool-directory"), registry=registry)
        report = SyncEngine(config).run()

    The engine keeps no state between runs: every decision is recomputed from
    the remote issues and the cross-reference map.
    """

    config: SyncConfig
    rules: Sequence[StateChangeRule]

    def __init__(self, config: SyncConfig, rules: Sequence[StateChangeRule] = STATE_CHANGE_RULES) -> None:
        self.config = config
        self.rules = rules
        self.mirrors: list[Issue] = []
        self.report: SyncReport = SyncReport()

    @property
    def tracker(self) -> IssueTracker:
        return self.config.tracker

    def _error(self, message: str) -> None:
        logger.error(message)
        self.report.errors.append(message)

    def run(self) -> SyncReport:
        """Sync every configured project, then refresh the statistics file."""
        self.report = SyncReport()

        try:
            self.mirrors = self.tracker.list_mirrored_issues()
        except SyncError as e:
            self._error(f"Failed to list devpool issues: {e}")
            return self.report
        logger.info(f"Found {len(self.mirrors)} devpool issues")

        project_urls = get_project_urls(self.tracker, self.config.registry, self.config.filters, self.report.errors)
        logger.info(f"Syncing {len(project_urls)} projects")
        for url in project_urls:
            self.sync_project(self.config.registry.project(url))

        try:
            mirrors = self.tracker.list_mirrored_issues()
            statistics = calculate_statistics(mirrors)
            write_statistics(self.tracker, statistics, self.config.statistics_path)
            self.report.statistics = statistics
        except SyncError as e:
            self._error(f"Failed to update statistics: {e}")

        logger.info(
            f"Sync finished: {self.report.issues_created} created, {self.report.issues_updated} updated, "
            f"{self.report.state_changes} state changes, {len(self.report.errors)} errors"
        )
        return self.report

    def sync_project(self, project: Project) -> None:
        """Sync all issues of one partner project."""
        try:
            owner, repo = get_repo_credentials(project.url)
        except ConfigurationError as e:
            self._error(f"Skipping project: {e}")
            return

        try:
            partner_issues = self.tracker.list_issues(owner, repo)
        except SyncError as e:
            self._error(f"Failed to list issues of {project.url}: {e}")
            return
        logger.debug(f"Found {len(partner_issues)} issues in {owner}/{repo}")

        for partner, mirror in pair_issues(partner_issues, self.mirrors):
            try:
                if mirror is None:
                    self.create_mirror(partner, project)
                else:
                    self.sync_mirror(partner, mirror, project, partner_issues)
            except SyncError as e:
                self._error(f"Failed to sync {partner.url}: {e}")

        for orphan in find_orphans(partner_issues, self.mirrors, owner, repo):
            try:
                self.transition_mirror(IssuePair(partner=None, mirror=orphan, partner_issues=partner_issues))
            except SyncError as e:
                self._error(f"Failed to close {orphan.url}: {e}")

        self.report.projects_processed += 1

    def sync_mirror(self, partner: Issue, mirror: Issue, project: Project, partner_issues: list[Issue]) -> None:
        """Bring an existing mirror up to date: metadata first, then state.

        A failed metadata update does not hold back the state change.
        """
        try:
            self.update_mirror(partner, mirror, project)
        except SyncError as e:
            self._error(f"Failed to update {mirror.url}: {e}")
        self.transition_mirror(IssuePair(partner=partner, mirror=mirror, partner_issues=partner_issues))

    def mirror_labels(self, partner: Issue, project: Project) -> list[str]:
        # Owner and repo come from the issue URL: the project may have been renamed
        owner, repo = get_repo_credentials(partner.url)
        return reconcile_labels(partner, owner, repo, project.category)

    def create_mirror(self, partner: Issue, project: Project) -> Issue | None:
        """Mirror a partner issue into the devpool.

        Closed, assigned and unpriced partner issues are skipped.

        Returns:
            The created mirror, or None if nothing was created
        """
        if partner.is_closed:
            logger.debug(f"Skipping closed issue {partner.url}")
            return None
        if partner.assigned:
            logger.debug(f"Skipping assigned issue {partner.url}")
            return None
        if not has_price_label(partner.labels):
            logger.debug(f"Skipping unpriced issue {partner.url}")
            return None

        existing = find_mirror(self.mirrors, partner)
        if existing is not None:
            logger.debug(f"Issue {partner.url} is already mirrored at {existing.url}")
            return None

        created = self.tracker.create_issue(partner.title, render_body(partner), self.mirror_labels(partner, project))
        self.mirrors.append(created)
        self.report.issues_created += 1
        logger.info(f"Created: {created.url} ({partner.url})")

        self.announce(created)
        return created

    def announce(self, mirror: Issue) -> None:
        """Post a new mirror to social media and remember the post id."""
        poster = self.config.poster
        if poster is None:
            logger.debug(f"No social poster configured, not announcing {mirror.url}")
            return

        try:
            post_id = poster.post(get_social_media_text(mirror))
        except SyncError as e:
            self._error(f"Failed to post tweet for {mirror.url}: {e}")
            return

        cross_references = self.config.cross_references
        if cross_references is None:
            return
        try:
            cross_references.record(mirror.identifier, post_id)
        except CrossReferenceError as e:
            self._error(str(e))

    def update_mirror(self, partner: Issue, mirror: Issue, project: Project) -> bool:
        """Update title, body and labels of a mirror in one call if any of them changed.

        Returns:
            True if an update was sent
        """
        labels = without_unavailable(self.mirror_labels(partner, project))

        title_changed = mirror.title != partner.title
        body_changed = self.config.can_rewrite_body() and mirror.body != partner.url
        labels_changed = not same_labels(mirror.labels, labels)

        if not (title_changed or body_changed or labels_changed):
            return False

        title = partner.title if title_changed else mirror.title
        body = partner.url if body_changed else mirror.body
        new_labels = labels if labels_changed else mirror.label_names

        self.tracker.update_issue(mirror.number, title=title, body=body, labels=new_labels)

        mirror.title = title
        mirror.body = body
        mirror.labels = make_labels(new_labels)
        self.report.issues_updated += 1
        logger.info(f"Updated metadata: {mirror.url} ({partner.url})")
        return True

    def transition_mirror(self, pair: IssuePair) -> StateChangeRule | None:
        """Open or close a mirror according to the state change rules.

        Returns:
            The applied rule, or None if the mirror's state was left alone
        """
        rule = select_transition(pair, self.rules)
        if rule is None:
            return None

        self.tracker.update_issue(pair.mirror.number, state=rule.effect)
        pair.mirror.state = rule.effect
        self.report.state_changes += 1

        partner_url = pair.partner.url if pair.partner is not None else "missing"
        logger.info(f"Updated state: ({rule.reason})\n{pair.mirror.url} - ({partner_url})")
        return rule

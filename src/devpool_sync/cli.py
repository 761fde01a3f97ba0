"""
Command-line interface for the devpool synchronization tool.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from . import github_utils as ghu
from .crossref import CrossReferenceMap
from .engine import SyncConfig, SyncEngine, SyncReport
from .exceptions import RemoteCallError, SyncError
from .projects import load_filters, load_registry
from .social import TwitterPoster
from .utils import setup_logging

_TWITTER_TOKEN_ENV_VAR = "TWITTER_BEARER_TOKEN"  # noqa: S105

logger: logging.Logger = logging.getLogger(__name__)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Mirror partner bounty issues into the devpool repository")

    _ = parser.add_argument(
        "--devpool", default="ubiquity/devpool-directory", help="Devpool repository path (owner/repo)"
    )
    _ = parser.add_argument("--projects", default="projects.json", help="Project registry file")
    _ = parser.add_argument("--opt", default="opt.json", help="Include/exclude filter file")
    _ = parser.add_argument("--twitter-map", default="twitterMap.json", help="Cross-reference map of posted issues")
    _ = parser.add_argument(
        "--authorized-account",
        default="ubiquity",
        help="Only this account may rewrite mirror bodies to partner URLs (default: ubiquity)",
    )
    _ = parser.add_argument(
        "--github-pass-token", help="Path for GitHub token in pass utility (default: github/devpool/token)"
    )
    _ = parser.add_argument("--no-social", action="store_true", help="Do not post new issues to social media")
    _ = parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    return parser.parse_args(argv)


def _print_report(report: SyncReport) -> None:
    """Print a summary of the sync run."""
    status = "PASSED" if report.success else "FAILED"
    print(f"Sync {status}")
    print(f"Projects: {report.projects_processed}")
    print(f"Issues: Created={report.issues_created}, Updated={report.issues_updated}, StateChanges={report.state_changes}")
    if report.statistics is not None:
        stats = report.statistics.to_dict()
        print(f"Rewards: {stats['rewards']}")
        print(f"Tasks: {stats['tasks']}")
    for error in report.errors:
        print(f"  - {error}")


def build_config(args: argparse.Namespace) -> SyncConfig:
    """Build the engine configuration from command line arguments."""
    client = ghu.get_client(ghu.get_token(args.github_pass_token))

    try:
        authorized = ghu.is_authorized_account(client, args.authorized_account)
    except RemoteCallError as e:
        logger.error(f"Could not check the authenticated account, mirror bodies will not be rewritten: {e}")
        authorized = False
    else:
        if not authorized:
            logger.info(f"Not running as {args.authorized_account}, mirror bodies will not be rewritten")

    def can_rewrite_body() -> bool:
        return authorized

    poster: TwitterPoster | None = None
    twitter_token = os.environ.get(_TWITTER_TOKEN_ENV_VAR)
    if args.no_social:
        logger.info("Social media posting disabled")
    elif twitter_token:
        poster = TwitterPoster(twitter_token)
    else:
        logger.warning(f"{_TWITTER_TOKEN_ENV_VAR} not set, new issues will not be posted")

    return SyncConfig(
        tracker=ghu.GitHubTracker(client, args.devpool),
        registry=load_registry(args.projects),
        filters=load_filters(args.opt),
        poster=poster,
        cross_references=CrossReferenceMap.load(args.twitter_map),
        can_rewrite_body=can_rewrite_body,
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)

    verbose: bool = getattr(args, "verbose", False)
    setup_logging(verbose=verbose)

    try:
        report = SyncEngine(build_config(args)).run()
    except SyncError:
        logger.exception("Sync failed")
        sys.exit(1)

    _print_report(report)
    sys.exit(0 if report.success else 1)

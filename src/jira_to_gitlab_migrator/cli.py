"""
Command-line interface for the Jira to GitLab migration tool.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys

from . import gitlab_utils as glu
from . import jira_utils as jiu
from .attachments import JiraGitlabTransport
from .config import DEFAULT_CONFIG_PATH, SyncOptions, load_config
from .exceptions import MigrationError
from .migrator import JiraToGitlabMigrator
from .models import MigrationResult
from .utils import setup_logging

logger: logging.Logger = logging.getLogger(__name__)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Migrate Jira issues to a GitLab project")

    _ = parser.add_argument(
        "--config",
        "-c",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the JSON configuration (default: {DEFAULT_CONFIG_PATH})",
    )

    _ = parser.add_argument(
        "--simulate", action="store_true", help="Only log what would be done, without changing Jira or GitLab"
    )

    _ = parser.add_argument(
        "--jira-pass-token", help="Path for Jira password/token in pass utility (default: jira/cli/token)"
    )

    _ = parser.add_argument(
        "--gitlab-pass-token", help="Path for GitLab token in pass utility (default: gitlab/cli/token)"
    )

    _ = parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    return parser.parse_args(argv)


def build_migrator(
    options: SyncOptions,
    *,
    jira_pass_path: str | None = None,
    gitlab_pass_path: str | None = None,
) -> JiraToGitlabMigrator:
    """Create the API clients described by the configuration and wire them into a migrator."""
    jira_password = options.jira.password or jiu.get_token(jira_pass_path)
    gitlab_token = options.gitlab.private_token or glu.get_token(gitlab_pass_path)

    jira_client = jiu.get_client(options.jira, jira_password, timeout=options.request_timeout)
    gitlab_client = glu.get_client(options.gitlab.url, gitlab_token, timeout=options.request_timeout)

    transport = None
    if options.general.attachments:
        transport = JiraGitlabTransport(
            jiu.get_download_session(options.jira, jira_password),
            gitlab_client.projects.get(options.gitlab.project_path, lazy=True),
            timeout=options.attachment_timeout,
        )

    return JiraToGitlabMigrator(
        options,
        jiu.JiraSource(jira_client, options.jira.base_url),
        glu.GitlabTarget(gitlab_client),
        transport,
    )


def _print_summary(result: MigrationResult) -> None:
    stats = result.stats
    print(f"Issues seen:     {stats.issues_seen}")
    print(f"Issues skipped:  {stats.issues_skipped}")
    print(f"Issues created:  {stats.issues_created}")
    print(f"Issues updated:  {stats.issues_updated}")
    print(f"Issues closed:   {stats.issues_closed}")
    print(f"Notes created:   {stats.notes_created}")
    print(f"Attachments:     {stats.attachments_relocated}")
    if stats.errors:
        print(f"Errors ({len(stats.errors)}):")
        for error in stats.errors:
            print(f"  - {error}")
    print("Result: " + ("SUCCESS" if result.success else "COMPLETED WITH ERRORS"))


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)

    # Setup logging
    verbose: bool = getattr(args, "verbose", False)
    setup_logging(verbose=verbose)

    try:
        options = load_config(args.config)
        if args.simulate:
            options = dataclasses.replace(options, simulation=True)

        migrator = build_migrator(
            options,
            jira_pass_path=getattr(args, "jira_pass_token", None),
            gitlab_pass_path=getattr(args, "gitlab_pass_token", None),
        )
        result = migrator.migrate()

    except MigrationError:
        logger.exception("Migration failed")
        sys.exit(1)
    except Exception:
        logger.exception("Unexpected error during migration")
        sys.exit(1)

    _print_summary(result)
    sys.exit(0 if result.success else 1)

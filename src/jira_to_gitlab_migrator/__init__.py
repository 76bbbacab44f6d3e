"""
Jira to GitLab Migration Tool

Migrates Jira issues to a GitLab project with field mapping, user mapping,
attachments, comments and markup conversion. Reruns update the GitLab issues
created by earlier runs instead of duplicating them.
"""

from __future__ import annotations

from .cli import main
from .config import SyncOptions, load_config
from .exceptions import ConfigurationError, MigrationError, ProjectNotFoundError
from .migrator import JiraToGitlabMigrator
from .utils import setup_logging

# Package version
__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "JiraToGitlabMigrator",
    "MigrationError",
    "ProjectNotFoundError",
    "SyncOptions",
    "load_config",
    "main",
    "setup_logging",
]

"""
Custom exception classes for the Jira to GitLab migration tool.
"""

from __future__ import annotations


class MigrationError(Exception):
    """Base exception for migration errors."""


class ConfigurationError(MigrationError):
    """Raised when the configuration file is malformed or names an unknown mapping macro."""


class ProjectNotFoundError(MigrationError):
    """Raised when the target GitLab project cannot be resolved."""

"""Data models exchanged between the source tracker, the target tracker and the migrator.

Jira issues themselves stay raw JSON dictionaries; these models cover the
small, system-agnostic values the components pass to each other.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Attribute name -> value, sent as one GitLab create or update call
TargetDraft = dict[str, Any]


@dataclass(frozen=True)
class UserMapping:
    """Pairs a Jira identity (usually an email address) with a GitLab username."""

    source_identity: str
    target_username: str


@dataclass(frozen=True)
class Member:
    """A GitLab user with access to the target project."""

    id: int
    username: str
    name: str = ""


@dataclass(frozen=True)
class AttachmentRef:
    """A Jira attachment filename and the Markdown link it got in GitLab."""

    source_name: str
    target_markdown_link: str


@dataclass(frozen=True)
class StoredBlob:
    """Result of storing attachment bytes on the target system."""

    name: str
    markdown: str


@dataclass
class SearchPage:
    """One page of a Jira issue search."""

    total: int
    issues: list[dict[str, Any]]


@dataclass
class MigrationStats:
    """Statistics collected during migration."""

    issues_seen: int = 0
    issues_skipped: int = 0
    issues_created: int = 0
    issues_updated: int = 0
    issues_closed: int = 0
    notes_created: int = 0
    attachments_relocated: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class MigrationResult:
    """Result of a migration run."""

    success: bool
    stats: MigrationStats

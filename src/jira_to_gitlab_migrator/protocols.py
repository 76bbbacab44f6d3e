"""Protocols defining the contracts for the source tracker, target tracker and attachment transport.

The migration architecture separates concerns into four components:

1. SourceTracker: Reads issues from Jira and stores the correlation key back on them
2. TargetTracker: Creates and updates issues and notes in GitLab
3. BlobTransport: Moves attachment bytes from Jira to GitLab
4. JiraToGitlabMigrator: Maps, rewrites and reconciles each issue

This separation allows:
- Testing the migrator with mock trackers and no network access
- Keeping API quirks (JQL, custom field endpoints, GitLab sudo) out of the mapping logic

Impersonation is an explicit ``acting_as`` argument on every mutating
TargetTracker call. Implementations must not keep it as client state between
calls.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .models import Member, SearchPage, StoredBlob, TargetDraft


class SourceTracker(Protocol):
    """Protocol for reading from and annotating the source tracker (Jira)."""

    def list_custom_fields(self) -> list[dict[str, Any]]:
        """Return all field definitions, each with at least ``id`` and ``name``."""
        ...

    def create_custom_field(self, name: str, description: str) -> dict[str, Any]:
        """Create a free-text custom field and return its definition."""
        ...

    def search_issues(self, jql: str, start_at: int, max_results: int) -> SearchPage:
        """Return one page of raw issues matching the JQL query."""
        ...

    def get_issue(self, key: str) -> dict[str, Any]:
        """Return one raw issue with all fields, including its comments."""
        ...

    def update_issue(self, key: str, fields: dict[str, Any]) -> None:
        """Write the given field values onto an issue."""
        ...

    def browse_url(self, key: str) -> str:
        """Return the canonical web URL of an issue."""
        ...


class TargetTracker(Protocol):
    """Protocol for the target tracker (GitLab).

    Issue identifiers are project-scoped IIDs.
    """

    def get_project(self, path: str) -> Any:  # noqa: ANN401 - python-gitlab has no type stubs
        """Return the project at ``namespace/name``.

        Raises:
            ProjectNotFoundError: If the project does not exist or is not accessible
        """
        ...

    def list_project_members(self, project: Any) -> list[Member]:  # noqa: ANN401
        """Return the direct members of the project."""
        ...

    def namespace_group_id(self, project: Any) -> int | None:  # noqa: ANN401
        """Return the id of the group owning the project, or None for a user namespace."""
        ...

    def shared_group_ids(self, project: Any) -> list[int]:  # noqa: ANN401
        """Return the ids of the groups the project is shared with."""
        ...

    def list_group_members(self, group_id: int) -> list[Member]:
        """Return the members of a group."""
        ...

    def create_issue(self, project: Any, draft: TargetDraft, acting_as: str | None = None) -> int:  # noqa: ANN401
        """Create an issue and return its IID."""
        ...

    def update_issue(
        self, project: Any, iid: int, draft: TargetDraft, acting_as: str | None = None  # noqa: ANN401
    ) -> int:
        """Update an existing issue and return its IID.

        Raises:
            GitlabError: If the issue does not exist anymore
        """
        ...

    def add_note(self, project: Any, iid: int, body: str, acting_as: str | None = None) -> None:  # noqa: ANN401
        """Add a note (comment) to an issue."""
        ...

    def close_issue(self, project: Any, iid: int, acting_as: str | None = None) -> None:  # noqa: ANN401
        """Transition an issue to the closed state."""
        ...


class BlobTransport(Protocol):
    """Moves attachment bytes between the two systems."""

    def fetch(self, source_ref: str) -> bytes:
        """Download the attachment at the source reference (URL)."""
        ...

    def store(self, filename: str, content: bytes) -> StoredBlob:
        """Upload the bytes to the target project and return the resulting link."""
        ...

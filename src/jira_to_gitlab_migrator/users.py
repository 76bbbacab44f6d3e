"""
Jira user to GitLab member resolution.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from gitlab.exceptions import GitlabError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .models import Member, UserMapping
    from .protocols import TargetTracker

logger: logging.Logger = logging.getLogger(__name__)


def build_member_roster(target: TargetTracker, project: Any) -> dict[str, Member]:  # noqa: ANN401
    """Collect everybody who can be assigned in the project, keyed by username.

    Combines direct project members, members of the owning group and members
    of every group the project is shared with. A group whose members cannot be
    fetched is logged and skipped; the direct project members are required.
    """
    roster: dict[str, Member] = {}

    def _add(members: Iterable[Member]) -> None:
        for member in members:
            roster.setdefault(member.username, member)

    logger.info("Getting GitLab project members...")
    _add(target.list_project_members(project))

    group_ids: list[int] = []
    namespace_group_id = target.namespace_group_id(project)
    if namespace_group_id is not None:
        group_ids.append(namespace_group_id)
    try:
        group_ids.extend(gid for gid in target.shared_group_ids(project) if gid not in group_ids)
    except GitlabError as e:
        logger.warning(f"Could not list groups the project is shared with: {e}")

    for group_id in group_ids:
        logger.info(f"Getting GitLab group members for group {group_id}...")
        try:
            _add(target.list_group_members(group_id))
        except GitlabError as e:
            logger.warning(f"Could not fetch members of group {group_id}: {e}")

    logger.info(f"Found {len(roster)} GitLab users with access to the project")
    return roster


class IdentityMapper:
    """Resolves Jira users to GitLab project members through the configured user mapping."""

    def __init__(
        self,
        user_mappings: Iterable[UserMapping],
        roster: Mapping[str, Member],
        identity_field: str = "emailAddress",
    ) -> None:
        self.user_mappings: list[UserMapping] = list(user_mappings)
        self.roster: Mapping[str, Member] = roster
        self.identity_field: str = identity_field

    def resolve(self, identity: str | None) -> Member | None:
        """Return the GitLab member mapped to a Jira identity, or None when there is none.

        Both a missing mapping and a mapping to a user without access to the
        project are logged as warnings and never raise.
        """
        if not identity:
            return None

        mapping = next((um for um in self.user_mappings if um.source_identity == identity), None)
        if mapping is None:
            logger.warning(f"No user mapping found for Jira user {identity}")
            return None

        member = self.roster.get(mapping.target_username)
        if member is None:
            logger.warning(
                f"Could not find GitLab user {mapping.target_username} (mapped from {identity}) in GitLab project"
            )
            return None

        logger.debug(f"Mapped Jira user {identity} to GitLab user {member.username} ({member.id})")
        return member

    def resolve_user(self, user: Any) -> Member | None:  # noqa: ANN401 - raw Jira user JSON
        """Resolve a raw Jira user object using the configured identity attribute."""
        if not isinstance(user, Mapping):
            return None
        return self.resolve(user.get(self.identity_field))

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any, Final

from gitlab import Gitlab
from gitlab.exceptions import GitlabGetError

from . import utils
from .exceptions import ProjectNotFoundError
from .models import Member

if TYPE_CHECKING:
    from gitlab.v4.objects import Project as GitlabProject

    from .models import TargetDraft

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VAR: Final[str] = "GITLAB_TOKEN"  # noqa: S105
_DEFAULT_TOKEN_PASS_PATH: Final[str] = "gitlab/cli/token"  # noqa: S105


def get_token(pass_path: str | None = None) -> str | None:
    """Get GitLab token from pass path, env var GITLAB_TOKEN, or default pass location."""
    # Try pass path first
    if pass_path:
        return utils.get_pass_value(pass_path)

    # Try environment variable
    token: str | None = os.environ.get(_TOKEN_ENV_VAR)
    if token:
        return token

    # Try default pass path
    try:
        return utils.get_pass_value(_DEFAULT_TOKEN_PASS_PATH)
    except (ValueError, utils.PassError):
        logger.warning("No GitLab token specified nor found")
        return None


def get_client(url: str, token: str | None = None, timeout: float | None = None) -> Gitlab:
    """Get a GitLab client using the token."""
    return Gitlab(url, private_token=token, timeout=timeout)


def _sudo(acting_as: str | None) -> dict[str, str]:
    """Keyword arguments making python-gitlab send the request as another user."""
    return {"sudo": acting_as} if acting_as else {}


def _to_member(raw: Any) -> Member:  # noqa: ANN401 - gitlab has no type stubs
    return Member(id=raw.id, username=raw.username, name=getattr(raw, "name", ""))


class GitlabTarget:
    """TargetTracker backed by python-gitlab.

    Impersonation is passed per request (``sudo``); the client never keeps a
    Sudo header between calls.
    """

    _client: Gitlab

    def __init__(self, client: Gitlab) -> None:
        self._client = client

    def get_project(self, path: str) -> GitlabProject:
        try:
            return self._client.projects.get(path)
        except GitlabGetError as e:
            msg = f"Could not find GitLab project {path}: {e}"
            raise ProjectNotFoundError(msg) from e

    def list_project_members(self, project: GitlabProject) -> list[Member]:
        return [_to_member(m) for m in project.members.list(get_all=True)]

    def namespace_group_id(self, project: GitlabProject) -> int | None:
        namespace: dict[str, Any] = getattr(project, "namespace", None) or {}
        if namespace.get("kind") != "group":
            return None
        return namespace.get("id")

    def shared_group_ids(self, project: GitlabProject) -> list[int]:
        shared: list[dict[str, Any]] = getattr(project, "shared_with_groups", None) or []
        return [group["group_id"] for group in shared if "group_id" in group]

    def list_group_members(self, group_id: int) -> list[Member]:
        group = self._client.groups.get(group_id, lazy=True)
        return [_to_member(m) for m in group.members.list(get_all=True)]

    def create_issue(self, project: GitlabProject, draft: TargetDraft, acting_as: str | None = None) -> int:
        issue = project.issues.create(dict(draft), **_sudo(acting_as))
        return issue.iid

    def update_issue(
        self, project: GitlabProject, iid: int, draft: TargetDraft, acting_as: str | None = None
    ) -> int:
        result = project.issues.update(iid, dict(draft), **_sudo(acting_as))
        return result.get("iid", iid) if isinstance(result, dict) else iid

    def add_note(self, project: GitlabProject, iid: int, body: str, acting_as: str | None = None) -> None:
        issue = project.issues.get(iid, lazy=True)
        issue.notes.create({"body": body}, **_sudo(acting_as))

    def close_issue(self, project: GitlabProject, iid: int, acting_as: str | None = None) -> None:
        project.issues.update(iid, {"state_event": "close"}, **_sudo(acting_as))

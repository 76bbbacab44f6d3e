"""Tests for the python-gitlab backed target tracker."""

from unittest.mock import Mock, patch

import pytest
from gitlab.exceptions import GitlabGetError

from jira_to_gitlab_migrator import gitlab_utils as glu
from jira_to_gitlab_migrator.exceptions import ProjectNotFoundError
from jira_to_gitlab_migrator.gitlab_utils import GitlabTarget
from jira_to_gitlab_migrator.models import Member


def _gitlab_member(member_id: int, username: str) -> Mock:
    member = Mock()
    member.id = member_id
    member.username = username
    member.name = username.title()
    return member


@pytest.mark.unit
class TestGitlabTarget:
    def setup_method(self) -> None:
        self.client = Mock()
        self.project = Mock()
        self.target = GitlabTarget(self.client)

    def test_get_project(self) -> None:
        self.client.projects.get.return_value = self.project

        assert self.target.get_project("team/app") is self.project
        self.client.projects.get.assert_called_once_with("team/app")

    def test_get_project_not_found(self) -> None:
        self.client.projects.get.side_effect = GitlabGetError("404 Project Not Found", 404)

        with pytest.raises(ProjectNotFoundError, match="team/app"):
            _ = self.target.get_project("team/app")

    def test_list_project_members(self) -> None:
        self.project.members.list.return_value = [_gitlab_member(1, "alice")]

        assert self.target.list_project_members(self.project) == [Member(1, "alice", "Alice")]
        self.project.members.list.assert_called_once_with(get_all=True)

    def test_namespace_group_id(self) -> None:
        self.project.namespace = {"id": 10, "kind": "group"}
        assert self.target.namespace_group_id(self.project) == 10

        self.project.namespace = {"id": 3, "kind": "user"}
        assert self.target.namespace_group_id(self.project) is None

    def test_shared_group_ids(self) -> None:
        self.project.shared_with_groups = [{"group_id": 20, "group_name": "ops"}, {"group_id": 30}]
        assert self.target.shared_group_ids(self.project) == [20, 30]

    def test_list_group_members(self) -> None:
        group = self.client.groups.get.return_value
        group.members.list.return_value = [_gitlab_member(2, "bob")]

        assert self.target.list_group_members(20) == [Member(2, "bob", "Bob")]
        self.client.groups.get.assert_called_once_with(20, lazy=True)

    def test_create_issue(self) -> None:
        self.project.issues.create.return_value = Mock(iid=7)

        assert self.target.create_issue(self.project, {"title": "T"}) == 7
        self.project.issues.create.assert_called_once_with({"title": "T"})

    def test_create_issue_as_user(self) -> None:
        self.project.issues.create.return_value = Mock(iid=7)

        _ = self.target.create_issue(self.project, {"title": "T"}, acting_as="alice")

        self.project.issues.create.assert_called_once_with({"title": "T"}, sudo="alice")

    def test_impersonation_is_per_call(self) -> None:
        self.project.issues.create.return_value = Mock(iid=7)

        _ = self.target.create_issue(self.project, {"title": "A"}, acting_as="alice")
        _ = self.target.create_issue(self.project, {"title": "B"})

        assert self.project.issues.create.call_args_list[1].kwargs == {}

    def test_update_issue(self) -> None:
        self.project.issues.update.return_value = {"iid": 42, "title": "T"}

        assert self.target.update_issue(self.project, 42, {"title": "T"}, acting_as="bob") == 42
        self.project.issues.update.assert_called_once_with(42, {"title": "T"}, sudo="bob")

    def test_add_note(self) -> None:
        issue = self.project.issues.get.return_value

        self.target.add_note(self.project, 7, "Hello", acting_as="alice")

        self.project.issues.get.assert_called_once_with(7, lazy=True)
        issue.notes.create.assert_called_once_with({"body": "Hello"}, sudo="alice")

    def test_close_issue(self) -> None:
        self.target.close_issue(self.project, 7)

        self.project.issues.update.assert_called_once_with(7, {"state_event": "close"})


@pytest.mark.unit
class TestGetToken:
    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITLAB_TOKEN", "env-token")
        assert glu.get_token() == "env-token"

    @patch("jira_to_gitlab_migrator.utils.get_pass_value")
    def test_from_pass_path(self, mock_pass: Mock, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITLAB_TOKEN", "env-token")
        mock_pass.return_value = "pass-token"

        assert glu.get_token("custom/path") == "pass-token"
        mock_pass.assert_called_once_with("custom/path")

    @patch("jira_to_gitlab_migrator.utils.get_pass_value")
    def test_not_found(self, mock_pass: Mock, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GITLAB_TOKEN", raising=False)
        mock_pass.side_effect = glu.utils.PassError("not found")

        assert glu.get_token() is None

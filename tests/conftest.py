"""
Pytest configuration and fixtures.

Provides a configuration factory and mock Jira/GitLab trackers so the
migrator can be exercised without network access.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any
from unittest.mock import Mock

import pytest

from jira_to_gitlab_migrator.config import SyncOptions
from jira_to_gitlab_migrator.models import Member, SearchPage

if TYPE_CHECKING:
    from collections.abc import Callable

CORRELATION_FIELD_ID = "customfield_100"

BASE_CONFIG: dict[str, Any] = {
    "simulation": False,
    "jira": {"host": "jira.example.com", "username": "bot", "password": "secret", "projectKey": "PROJ"},
    "gitlab": {"url": "https://gitlab.example.com", "privateToken": "token", "namespace": "team", "projectName": "app"},
    "issueMapping": [
        {"jira": "fields.summary", "gitlab": "title"},
        {"jira": "fields.description", "gitlab": "description"},
        {"jira": "fields.components", "gitlab": "$asLabel", "field": "name"},
    ],
    "userMapping": [
        {"jiraMail": "alice@example.com", "gitlabUsername": "alice"},
        {"jiraMail": "bob@example.com", "gitlabUsername": "bob"},
    ],
    "general": {},
}


@pytest.fixture
def make_options() -> Callable[..., SyncOptions]:
    """Build SyncOptions from the base configuration, overriding top-level keys and ``general`` toggles."""

    def _make(*, general: dict[str, Any] | None = None, **overrides: Any) -> SyncOptions:
        data = copy.deepcopy(BASE_CONFIG)
        data.update(overrides)
        data["general"] = {**data["general"], **(general or {})}
        return SyncOptions.from_dict(data)

    return _make


@pytest.fixture
def make_issue() -> Callable[..., dict[str, Any]]:
    """Build a raw Jira issue; keyword arguments override fields."""

    def _make(key: str = "PROJ-1", **fields: Any) -> dict[str, Any]:
        base_fields: dict[str, Any] = {
            "summary": "Login fails",
            "description": "It *crashes* on startup",
            "components": [{"name": "ui"}],
            "assignee": {"emailAddress": "alice@example.com", "displayName": "Alice"},
            "creator": {"emailAddress": "bob@example.com", "displayName": "Bob"},
            "resolution": None,
            "created": "2024-01-15T10:30:45.000+0000",
            CORRELATION_FIELD_ID: None,
        }
        base_fields.update(fields)
        return {"id": "10001", "key": key, "fields": base_fields}

    return _make


@pytest.fixture
def gitlab_project() -> Mock:
    project = Mock()
    project.id = 42
    project.path_with_namespace = "team/app"
    return project


@pytest.fixture
def target(gitlab_project: Mock) -> Mock:
    """Mock TargetTracker with two project members."""
    mock_target = Mock()
    mock_target.get_project.return_value = gitlab_project
    mock_target.list_project_members.return_value = [Member(1, "alice", "Alice"), Member(2, "bob", "Bob")]
    mock_target.namespace_group_id.return_value = None
    mock_target.shared_group_ids.return_value = []
    mock_target.create_issue.return_value = 7
    mock_target.update_issue.side_effect = lambda project, iid, draft, acting_as=None: iid
    return mock_target


@pytest.fixture
def source() -> Mock:
    """Mock SourceTracker that already has the correlation field and returns no issues."""
    mock_source = Mock()
    mock_source.list_custom_fields.return_value = [
        {"id": "summary", "name": "Summary"},
        {"id": CORRELATION_FIELD_ID, "name": "jira2gitlab"},
    ]
    mock_source.search_issues.return_value = SearchPage(total=0, issues=[])
    mock_source.browse_url.side_effect = lambda key: f"https://jira.example.com/browse/{key}"
    mock_source.get_issue.return_value = {"key": "PROJ-1", "fields": {"comment": {"comments": []}}}
    return mock_source

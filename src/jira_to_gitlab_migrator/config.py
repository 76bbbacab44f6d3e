"""
Configuration loading for the Jira to GitLab migration tool.

The configuration is a JSON file (``config.json`` by default). Mapping rules
are decoded into typed actions here, so an unknown mapping macro stops the
run before the first issue is touched.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

from .exceptions import ConfigurationError
from .mapping import MappingRule, decode_mapping_rule
from .models import UserMapping

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH: Final[str] = "config.json"
DEFAULT_PAGE_SIZE: Final[int] = 50
DEFAULT_CORRELATION_FIELD: Final[str] = "jira2gitlab"


@dataclass(frozen=True)
class JiraSettings:
    host: str
    project_key: str
    username: str = ""
    password: str | None = None
    protocol: str = "https"
    strict_ssl: bool = True

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.host}".rstrip("/")


@dataclass(frozen=True)
class GitlabSettings:
    url: str
    namespace: str
    project_name: str
    private_token: str | None = None

    @property
    def project_path(self) -> str:
        return f"{self.namespace}/{self.project_name}"


@dataclass(frozen=True)
class GeneralSettings:
    """Feature toggles for the post-create annotations and impersonation."""

    worklog: bool = False
    estimated_time: bool = False
    backlink: bool = False
    as_original_author: bool = False
    comments: bool = False
    attachments: bool = False
    correlation_field: str | None = DEFAULT_CORRELATION_FIELD


@dataclass(frozen=True)
class IssueFilter:
    """Which Jira issues are left out of the migration entirely."""

    exclude_closed: bool = False
    exclude_before: dt.date | None = None
    date_field: str = "fields.created"


@dataclass(frozen=True)
class SyncOptions:
    jira: JiraSettings
    gitlab: GitlabSettings
    simulation: bool = False
    issue_mapping: tuple[MappingRule, ...] = ()
    user_mapping: tuple[UserMapping, ...] = ()
    general: GeneralSettings = field(default_factory=GeneralSettings)
    filter: IssueFilter = field(default_factory=IssueFilter)
    page_size: int = DEFAULT_PAGE_SIZE
    request_timeout: float | None = 30
    attachment_timeout: float | None = 60
    identity_field: str = "emailAddress"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SyncOptions:
        """Decode the parsed JSON configuration.

        Raises:
            ConfigurationError: If required settings are missing or invalid
        """
        if not isinstance(data, Mapping):
            msg = "Configuration must be a JSON object"
            raise ConfigurationError(msg)

        jira = _section(data, "jira")
        gitlab = _section(data, "gitlab")
        general = _section(data, "general", required=False)
        issue_filter = _section(data, "filter", required=False)

        page_size = data.get("pageSize", DEFAULT_PAGE_SIZE)
        if not isinstance(page_size, int) or isinstance(page_size, bool) or page_size <= 0:
            msg = f"pageSize must be a positive integer, got {page_size!r}"
            raise ConfigurationError(msg)

        return cls(
            jira=JiraSettings(
                host=_required(jira, "host", "jira"),
                project_key=_required(jira, "projectKey", "jira"),
                username=jira.get("username", ""),
                password=jira.get("password"),
                protocol=jira.get("protocol") or "https",
                strict_ssl=bool(jira.get("strictSSL", True)),
            ),
            gitlab=GitlabSettings(
                url=_required(gitlab, "url", "gitlab").rstrip("/"),
                namespace=_required(gitlab, "namespace", "gitlab"),
                project_name=_required(gitlab, "projectName", "gitlab"),
                private_token=gitlab.get("privateToken"),
            ),
            simulation=bool(data.get("simulation", False)),
            issue_mapping=tuple(decode_mapping_rule(rule) for rule in _list(data, "issueMapping")),
            user_mapping=tuple(_decode_user_mapping(um) for um in _list(data, "userMapping")),
            general=GeneralSettings(
                worklog=bool(general.get("worklog", False)),
                estimated_time=bool(general.get("estimatedTime", False)),
                backlink=bool(general.get("backlink", False)),
                as_original_author=bool(general.get("asOriginalAuthor", False)),
                comments=bool(general.get("comments", False)),
                attachments=bool(general.get("attachments", False)),
                correlation_field=general.get("correlationField", DEFAULT_CORRELATION_FIELD) or None,
            ),
            filter=_decode_filter(issue_filter),
            page_size=page_size,
            request_timeout=data.get("requestTimeout", 30),
            attachment_timeout=data.get("attachmentTimeout", 60),
            identity_field=data.get("identityField") or "emailAddress",
        )


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> SyncOptions:
    """Load and validate the configuration file.

    Raises:
        ConfigurationError: If the file is missing, not valid JSON or not a valid configuration
    """
    config_path = Path(path)
    if not config_path.exists():
        msg = f"File does not exist: {config_path}"
        raise ConfigurationError(msg)

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        msg = f"Failed to read configuration {config_path}: {e}"
        raise ConfigurationError(msg) from e

    options = SyncOptions.from_dict(data)
    logger.debug(f"Loaded configuration from {config_path} ({len(options.issue_mapping)} mapping rules)")
    return options


def _section(data: Mapping[str, Any], name: str, *, required: bool = True) -> Mapping[str, Any]:
    section = data.get(name)
    if section is None and not required:
        return {}
    if not isinstance(section, Mapping):
        msg = f"Configuration section '{name}' is missing or not an object"
        raise ConfigurationError(msg)
    return section


def _required(section: Mapping[str, Any], key: str, section_name: str) -> str:
    value = section.get(key)
    if not isinstance(value, str) or not value:
        msg = f"Missing required setting '{section_name}.{key}'"
        raise ConfigurationError(msg)
    return value


def _list(data: Mapping[str, Any], key: str) -> list[Any]:
    value = data.get(key) or []
    if not isinstance(value, list):
        msg = f"'{key}' must be a list"
        raise ConfigurationError(msg)
    return value


def _decode_user_mapping(raw: Any) -> UserMapping:  # noqa: ANN401
    if not isinstance(raw, Mapping) or not raw.get("jiraMail") or not raw.get("gitlabUsername"):
        msg = f"User mapping needs 'jiraMail' and 'gitlabUsername': {raw!r}"
        raise ConfigurationError(msg)
    return UserMapping(source_identity=raw["jiraMail"], target_username=raw["gitlabUsername"])


def _decode_filter(raw: Mapping[str, Any]) -> IssueFilter:
    exclude_before = raw.get("excludeBefore")
    if not exclude_before:
        return IssueFilter(exclude_closed=bool(raw.get("excludeClosed", False)))

    if isinstance(exclude_before, str):
        exclude_before = {"date": exclude_before}
    if not isinstance(exclude_before, Mapping):
        msg = f"filter.excludeBefore must be a date or an object, got {exclude_before!r}"
        raise ConfigurationError(msg)
    try:
        threshold = dt.date.fromisoformat(str(exclude_before.get("date")))
    except ValueError as e:
        msg = f"filter.excludeBefore.date is not an ISO date: {exclude_before.get('date')!r}"
        raise ConfigurationError(msg) from e

    return IssueFilter(
        exclude_closed=bool(raw.get("excludeClosed", False)),
        exclude_before=threshold,
        date_field=exclude_before.get("field") or "fields.created",
    )
